"""Resumable harvester for select committee submissions."""
