"""YAML config loader."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

import yaml


@dataclass
class SiteConfig:
    base_url: str = "https://www.parliament.nz"
    keyword: str = "Principles of the Treaty of Waitangi"
    sort: str = "PublicationDate"
    direction: str = "Ascending"
    locale: str = "en-NZ"


@dataclass
class CrawlConfig:
    concurrency: int = 4
    page_size: int = 20
    retry_cooldown: float = 300.0
    hash_settle_delay: float = 5.0


@dataclass
class BrowserConfig:
    browser: str = "firefox"
    headless: bool = False
    timeout_ms: int = 0  # 0 disables Playwright timeouts
    args: List[str] = field(default_factory=lambda: ["--start-maximized", "--disable-pdf-viewer"])


@dataclass
class ParseConfig:
    enabled: bool = True


@dataclass
class AppConfig:
    data_dir: str = "data"
    db_path: str = "submissions.db"
    log_dir: str = "logs"
    log_level: str = "INFO"
    pdf_dir: str = ""
    backup_dir: Optional[str] = None
    site: SiteConfig = field(default_factory=SiteConfig)
    crawl: CrawlConfig = field(default_factory=CrawlConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    parse: ParseConfig = field(default_factory=ParseConfig)

    def __post_init__(self):
        if not self.pdf_dir:
            self.pdf_dir = os.path.join(self.data_dir, "pdf")


def _section(cls, raw):
    return cls(**{k: v for k, v in (raw or {}).items() if k in cls.__dataclass_fields__})


def load_config(config_path: str = "config.yaml") -> AppConfig:
    raw = {}
    if os.path.exists(config_path):
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

    crawl = _section(CrawlConfig, raw.get("crawl"))
    if crawl.concurrency < 1:
        raise ValueError(f"crawl.concurrency must be at least 1, got {crawl.concurrency}")
    if crawl.page_size < 1:
        raise ValueError(f"crawl.page_size must be at least 1, got {crawl.page_size}")

    return AppConfig(
        data_dir=raw.get("data_dir", "data"),
        db_path=raw.get("db_path", "submissions.db"),
        log_dir=raw.get("log_dir", "logs"),
        log_level=raw.get("log_level", "INFO"),
        pdf_dir=raw.get("pdf_dir", ""),
        backup_dir=raw.get("backup_dir"),
        site=_section(SiteConfig, raw.get("site")),
        crawl=crawl,
        browser=_section(BrowserConfig, raw.get("browser")),
        parse=_section(ParseConfig, raw.get("parse")),
    )
