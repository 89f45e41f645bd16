from abc import abstractmethod
from typing import Any, ClassVar

from docintake.chunking.chunker import split_into_chunks
from docintake.classification.classifier import DocumentClassifier
from docintake.database.repositories.documents_repository import DocumentsRepository
from docintake.extraction.exceptions import ExtractionFailedError
from docintake.extraction.models import METHOD_ALL_IN_ONE, ExtractionContext
from docintake.extraction.orchestrator import ExtractionOrchestrator
from docintake.logging.logger import Log
from docintake.metadata.service import MetadataService
from docintake.pipeline.models import Stage, StageStatus
from docintake.pipeline.pipeline import PipelineContext, PipelineStep
from docintake.storage.base import BaseBlobSource


class StageStep(PipelineStep):
    """One pipeline stage with its status transitions.

    A stage already ``completed`` is skipped unless the run reprocesses. Otherwise
    it is set to ``processing``, does its work, and is set to ``completed``
    together with the result columns it returns. Any exception marks it
    ``failed`` and is re-raised.
    """

    stage: ClassVar[Stage]

    def __init__(self, documents: DocumentsRepository) -> None:
        self._documents = documents

    async def run(self, context: PipelineContext) -> PipelineContext:
        if (
            not context.reprocess
            and context.document.status_of(self.stage) is StageStatus.COMPLETED
        ):
            Log.info(f"Document {context.document_id}: {self.stage.name.lower()} already completed")
            return context

        await self._documents.update_status(
            context.document_id, {self.stage.value: StageStatus.PROCESSING}
        )
        try:
            fields = await self.execute(context)
            await self._documents.update_status(
                context.document_id, {self.stage.value: StageStatus.COMPLETED} | fields
            )
        except Exception as exc:
            await self._mark_failed(context, exc)
            raise
        Log.info(f"Document {context.document_id}: {self.stage.name.lower()} completed")
        return context

    @abstractmethod
    async def execute(self, context: PipelineContext) -> dict[str, Any]:
        """Do the stage's work and return the document columns to persist."""

    async def _mark_failed(self, context: PipelineContext, exc: Exception) -> None:
        Log.error(f"Document {context.document_id}: {self.stage.name.lower()} failed: {exc}")
        try:
            await self._documents.update_status(
                context.document_id,
                {self.stage.value: StageStatus.FAILED, "processing_error": str(exc)},
            )
        except Exception as status_exc:
            Log.error(
                f"Could not record failure of {self.stage.name.lower()} for "
                f"{context.document_id}: {status_exc}"
            )


class ExtractionStep(StageStep):
    stage = Stage.EXTRACTION

    def __init__(
        self,
        documents: DocumentsRepository,
        blob_source: BaseBlobSource,
        extraction: ExtractionOrchestrator,
        *,
        min_text_length: int = 50,
        max_pages: int = 5,
    ) -> None:
        super().__init__(documents)
        self._blob_source = blob_source
        self._extraction = extraction
        self._min_text_length = min_text_length
        self._max_pages = max_pages

    async def execute(self, context: PipelineContext) -> dict[str, Any]:
        document = context.document
        raw_bytes = await self._blob_source.download(document.storage_path)
        Log.info(f"Loaded {len(raw_bytes)} bytes for document {document.id}")

        result = await self._extraction.extract(
            ExtractionContext(
                buffer=raw_bytes,
                filename=document.filename,
                document_id=document.id,
                min_text_length=self._min_text_length,
                max_pages=self._max_pages,
            )
        )
        context.extraction_result = result
        if not result.success or not result.text:
            raise ExtractionFailedError(result)

        context.extracted_text = result.text
        context.page_count = result.pages or None
        fields: dict[str, Any] = {
            "extracted_text": result.text,
            "text_length": result.text_length,
            "page_count": context.page_count,
            "extraction_method": result.method,
        }
        if result.all_in_one_complete:
            context.document_type = result.document_type
            context.completed_by = METHOD_ALL_IN_ONE
            fields |= {
                Stage.CLASSIFICATION.value: StageStatus.COMPLETED,
                Stage.METADATA.value: StageStatus.COMPLETED,
                Stage.CHUNKING.value: StageStatus.COMPLETED,
                "document_type": result.document_type,
            }
        return fields


class ClassificationStep(StageStep):
    stage = Stage.CLASSIFICATION

    def __init__(self, documents: DocumentsRepository, classifier: DocumentClassifier) -> None:
        super().__init__(documents)
        self._classifier = classifier

    async def execute(self, context: PipelineContext) -> dict[str, Any]:
        result = await self._classifier.classify(
            context.document.filename, context.extracted_text or None
        )
        context.classification_result = result
        context.document_type = result.document_type
        Log.info(
            f"Classified document {context.document_id} as {result.document_type} "
            f"({result.method.value}, {result.confidence:.2f})"
        )
        return {"document_type": result.document_type}


class MetadataStep(StageStep):
    stage = Stage.METADATA

    def __init__(self, documents: DocumentsRepository, metadata: MetadataService) -> None:
        super().__init__(documents)
        self._metadata = metadata

    async def execute(self, context: PipelineContext) -> dict[str, Any]:
        outcome = await self._metadata.extract(
            context.document_type,
            context.extracted_text,
            context.document.filename,
            context.page_count,
        )
        context.metadata_outcome = outcome
        if outcome.degraded:
            return {"processing_config": {"generic_metadata": outcome.data}}
        await self._metadata.persist(context.document_id, outcome)
        return {}


class ChunkingStep(StageStep):
    stage = Stage.CHUNKING

    async def execute(self, context: PipelineContext) -> dict[str, Any]:
        context.chunks = split_into_chunks(context.extracted_text)
        Log.info(f"Split document {context.document_id} into {len(context.chunks)} chunks")
        return {"chunks_count": len(context.chunks)}
