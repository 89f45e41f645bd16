from dataclasses import dataclass
from enum import Enum


class StageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Stage(str, Enum):
    """Pipeline stages in execution order; the value is the status column."""

    EXTRACTION = "extraction_status"
    CLASSIFICATION = "classification_status"
    METADATA = "metadata_status"
    CHUNKING = "chunking_status"

    @property
    def level(self) -> int:
        return list(Stage).index(self) + 1


@dataclass(frozen=True)
class Document:
    """Domain model for a document row."""

    id: str
    filename: str
    storage_path: str
    extraction_status: StageStatus = StageStatus.PENDING
    classification_status: StageStatus = StageStatus.PENDING
    metadata_status: StageStatus = StageStatus.PENDING
    chunking_status: StageStatus = StageStatus.PENDING
    document_type: str | None = None
    extracted_text: str | None = None
    page_count: int | None = None

    def status_of(self, stage: Stage) -> StageStatus:
        status: StageStatus = getattr(self, stage.value)
        return status


@dataclass(frozen=True)
class PipelineRunResult:
    """What one ``process_document`` call achieved."""

    success: bool
    document_id: str
    completed_by: str | None = None
