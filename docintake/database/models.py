from dataclasses import dataclass
from datetime import datetime


@dataclass
class JobRecord:
    """Represents a row from the document_jobs table."""

    id: int
    document_id: str
    status: str
    attempts: int
    level: int = 4
    reprocess: bool = False
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
