from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from docintake.classification.models import ClassificationResult
from docintake.extraction.models import ExtractionResult
from docintake.metadata.models import MetadataOutcome
from docintake.pipeline.models import Document


@dataclass(slots=True)
class PipelineContext:
    document: Document
    reprocess: bool = False
    extracted_text: str = ""
    page_count: int | None = None
    document_type: str | None = None
    extraction_result: ExtractionResult | None = None
    classification_result: ClassificationResult | None = None
    metadata_outcome: MetadataOutcome | None = None
    chunks: list[str] = field(default_factory=list)
    completed_by: str | None = None

    @property
    def document_id(self) -> str:
        return self.document.id

    @classmethod
    def for_document(cls, document: Document, reprocess: bool = False) -> "PipelineContext":
        """Seed the context with results earlier runs already persisted."""
        return cls(
            document=document,
            reprocess=reprocess,
            extracted_text=document.extracted_text or "",
            page_count=document.page_count,
            document_type=document.document_type,
        )


class PipelineStep(ABC):
    @abstractmethod
    async def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
