"""
Repository layer exports.
"""

from db.repositories.import_job_repository import ImportJobFailureOutcome, ImportJobRepository
from db.repositories.ingested_source_repository import IngestedSourceRepository

__all__ = [
    "ImportJobFailureOutcome",
    "ImportJobRepository",
    "IngestedSourceRepository",
]
