"""Release orchestration: versioning, changelog, rollback, publishing."""
