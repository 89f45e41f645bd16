from docintake.database.repositories.documents_repository import DocumentsRepository
from docintake.logging.logger import Log
from docintake.pipeline.exceptions import InvalidLevelError
from docintake.pipeline.models import PipelineRunResult
from docintake.pipeline.pipeline import PipelineContext
from docintake.pipeline.steps import StageStep


class PipelineOrchestrator:
    """Runs a document through its stages in order.

    ``level`` selects how many stages run: 1 extraction, 2 adds
    classification, 3 adds metadata, 4 adds chunking. A stage failure is
    re-raised after the stage's status is set to ``failed``.
    """

    MIN_LEVEL = 1
    MAX_LEVEL = 4

    def __init__(self, documents: DocumentsRepository, steps: list[StageStep]) -> None:
        self._documents = documents
        self._steps = sorted(steps, key=lambda step: step.stage.level)

    async def process_document(
        self, document_id: str, level: int = 4, reprocess: bool = False
    ) -> PipelineRunResult:
        """Process a document up to ``level``.

        Raises:
            InvalidLevelError: if ``level`` is outside 1..4.
            DocumentNotFoundError: if the document does not exist.
            Exception: whatever made a stage fail, after its status is recorded.
        """
        if not self.MIN_LEVEL <= level <= self.MAX_LEVEL:
            raise InvalidLevelError(
                f"Level must be between {self.MIN_LEVEL} and {self.MAX_LEVEL}, got {level}"
            )

        if reprocess:
            await self._documents.reset_statuses(document_id)
            Log.info(f"Reset stage statuses of document {document_id} for reprocessing")
        document = await self._documents.find_by_id(document_id)
        Log.info(f"Processing document {document_id} ({document.filename}) up to level {level}")

        context = PipelineContext.for_document(document, reprocess=reprocess)
        for step in self._steps:
            if step.stage.level > level:
                break
            context = await step.run(context)
            if context.completed_by is not None:
                Log.info(f"Document {document_id} completed by {context.completed_by}")
                break

        return PipelineRunResult(
            success=True, document_id=document_id, completed_by=context.completed_by
        )
