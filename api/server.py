"""FastAPI server for reviewing harvested submissions."""

import json
import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, StrictBool, StrictStr
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from submission_scraper.db import Database
from submission_scraper.models import GroupClassification
from submission_scraper.names import NameStore, split_submitter
from submission_scraper.pages import PageTracker
from submission_scraper.submissions import SubmissionStore

load_dotenv()

app = FastAPI(
    title="Submission Review API",
    version="0.1.0",
    description=(
        "Review harvested select committee submissions and classify each "
        "top-level submission as from an individual or a group."
    ),
)

# --- Rate limiting ---
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return Response(
        content=json.dumps({"error": "Rate limit exceeded. Please slow down."}),
        status_code=429,
        media_type="application/json",
    )


# --- CORS ---
default_origins = "http://localhost:3000,http://127.0.0.1:3000"
cors_origins = os.environ.get("CORS_ORIGINS", default_origins).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=None)
def _open_database(db_path: str) -> Database:
    return Database(db_path)


def get_db() -> Database:
    db_path = os.environ.get("SQLITE_DB_PATH", "submissions.db")
    if not os.path.exists(db_path):
        raise HTTPException(status_code=503, detail="Database not found. Run the scraper first.")
    return _open_database(db_path)


# --- Models ---

class GroupStatusRequest(BaseModel):
    is_group: StrictBool


class SubmissionNamesRequest(BaseModel):
    names: List[StrictStr]


class KnownNamesRequest(BaseModel):
    names: List[StrictStr] = Field(min_length=1)


# --- Routes ---

@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "submission-review-api"}


@app.get("/api/submissions/group-analysis")
@limiter.limit("60/minute")
async def submissions_for_group_analysis(request: Request, db: Database = Depends(get_db)):
    """Top-level submissions that have not been classified yet."""
    store = SubmissionStore(db)
    results = []
    for submission in store.list_top_level_unclassified():
        data = submission.to_dict()
        data["children"] = [c.document_id for c in store.list_children(submission.id)]
        results.append(data)
    return results


@app.get("/api/submissions/{document_id}/children")
async def submission_children(document_id: str, db: Database = Depends(get_db)):
    store = SubmissionStore(db)
    submission = store.get(document_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    return [c.to_dict() for c in store.list_children(submission.id)]


@app.put("/api/submissions/{document_id}/group-status", status_code=204)
async def set_group_status(document_id: str, req: GroupStatusRequest,
                           db: Database = Depends(get_db)):
    classification = GroupClassification.GROUP if req.is_group else GroupClassification.INDIVIDUAL
    try:
        updated = SubmissionStore(db).set_group_classification(document_id, classification)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not updated:
        raise HTTPException(status_code=404, detail="Submission not found")
    return Response(status_code=204)


@app.put("/api/submissions/{document_id}/names", status_code=204)
async def set_submission_names(document_id: str, req: SubmissionNamesRequest,
                               db: Database = Depends(get_db)):
    if not NameStore(db).set_submission_names(document_id, req.names):
        raise HTTPException(status_code=404, detail="Submission not found")
    return Response(status_code=204)


@app.post("/api/names")
@limiter.limit("30/minute")
async def add_known_names(request: Request, req: KnownNamesRequest,
                          db: Database = Depends(get_db)):
    """Record known personal names and classify submissions made up only of them."""
    names = NameStore(db)
    store = SubmissionStore(db)
    added = names.add_names(req.names)
    known = set(names.list_names())

    classified = []
    for submission in store.list_top_level_unclassified():
        parts = split_submitter(submission.submitter)
        if parts and all(p in known for p in parts):
            store.set_group_classification(submission.document_id, GroupClassification.INDIVIDUAL)
            names.set_submission_names(submission.document_id, parts)
            classified.append(submission.document_id)

    return {"added": added, "classified": classified}


@app.get("/api/stats")
async def stats(db: Database = Depends(get_db)):
    scraped, total = PageTracker(db).counts()
    data = SubmissionStore(db).stats()
    data["pages_scraped"] = scraped
    data["pages_total"] = total
    return data
