"""Single-call OCR, classification and field extraction for small documents.

The PDF is attached to one language-model request that returns the full text,
the document type and its structured fields. When the answer can be validated
and stored, the strategy completes the whole pipeline for the document itself:
the metadata row is written and every stage status is marked completed. When
it cannot, the transcription is still returned so the regular stages can take
over.
"""

from typing import Any

from docintake.database.exceptions import PersistenceError
from docintake.database.repositories.documents_repository import DocumentsRepository
from docintake.extraction.base import BaseExtractionStrategy
from docintake.extraction.models import (
    METHOD_ALL_IN_ONE,
    ExtractionContext,
    ExtractionResult,
)
from docintake.extraction.orchestrator import BYTES_PER_PAGE, estimate_pages
from docintake.llm.client_base import BaseLlmClient
from docintake.llm.exceptions import LlmError
from docintake.llm.json_parsing import parse_json_object
from docintake.llm.models import ModelConfig, PdfAttachment
from docintake.llm.prompt_loader import load_prompt_template
from docintake.logging.logger import Log
from docintake.metadata.agent import RETRYABLE_LLM_ERRORS
from docintake.metadata.exceptions import MetadataError
from docintake.metadata.service import MetadataService
from docintake.pipeline.models import Stage, StageStatus
from docintake.registry.vocabulary import DocumentTypeVocabulary
from docintake.resilience.retry import RetryPolicy, retry_async


class MultimodalAllInOneExtractor(BaseExtractionStrategy):
    name = METHOD_ALL_IN_ONE
    priority = 3
    expensive = True

    def __init__(
        self,
        *,
        client: BaseLlmClient,
        model_config: ModelConfig,
        metadata: MetadataService,
        documents: DocumentsRepository,
        vocabulary: DocumentTypeVocabulary,
        max_bytes: int = 10 * BYTES_PER_PAGE,
        retry_policy: RetryPolicy | None = None,
        prompt_template: str | None = None,
    ) -> None:
        self._client = client
        self._model_config = model_config
        self._metadata = metadata
        self._documents = documents
        self._vocabulary = vocabulary
        self._max_bytes = max_bytes
        self._retry_policy = retry_policy or RetryPolicy()
        self._prompt_template = prompt_template or load_prompt_template("all_in_one_prompt.txt")

    def can_handle(self, context: ExtractionContext) -> bool:
        return (
            bool(context.buffer)
            and len(context.buffer) < self._max_bytes
            and self._client.is_configured
        )

    async def extract(self, context: ExtractionContext) -> ExtractionResult:
        try:
            answer = await self._ask_model(context)
        except LlmError as exc:
            return self.failure(f"All-in-one extraction failed: {exc}")

        text = answer.get("text")
        if not isinstance(text, str) or not text.strip():
            return self.failure("All-in-one extraction returned no text")

        raw_type = answer.get("document_type")
        document_type = self._vocabulary.normalize(raw_type) if isinstance(raw_type, str) else None
        pages = answer.get("page_count")
        if not isinstance(pages, int) or pages <= 0:
            pages = max(1, estimate_pages(context.buffer))
        confidence = answer.get("confidence")
        confidence = float(confidence) if isinstance(confidence, (int, float)) else 0.8

        raw_metadata = answer.get("extracted_metadata")
        if not isinstance(raw_metadata, dict):
            raw_metadata = {}

        completed, metadata_data = await self._complete_pipeline(
            context, document_type, raw_metadata
        )
        return ExtractionResult(
            success=True,
            method=METHOD_ALL_IN_ONE,
            text=text,
            confidence=confidence,
            pages=pages,
            all_in_one_complete=completed,
            document_type=document_type,
            extracted_metadata=metadata_data,
        )

    async def _ask_model(self, context: ExtractionContext) -> dict[str, Any]:
        fields_by_type = self._metadata.field_names_by_type()
        prompt = self._prompt_template.format(
            supported_types=", ".join(fields_by_type),
            fields_by_type="\n".join(
                f"- {type_name}: {', '.join(names)}" for type_name, names in fields_by_type.items()
            ),
        )
        attachment = PdfAttachment(filename=context.filename, data=context.buffer)

        async def call() -> dict[str, Any]:
            raw = await self._client.generate(prompt, self._model_config, attachment=attachment)
            return parse_json_object(raw)

        return await retry_async(
            call,
            policy=self._retry_policy,
            retry_on=RETRYABLE_LLM_ERRORS,
            description=f"All-in-one extraction of {context.filename}",
        )

    async def _complete_pipeline(
        self,
        context: ExtractionContext,
        document_type: str | None,
        raw_metadata: dict[str, Any],
    ) -> tuple[bool, dict[str, Any]]:
        if context.document_id is None:
            return False, raw_metadata
        if document_type is None or not self._metadata.supports(document_type):
            Log.info(
                f"All-in-one type '{document_type}' for {context.filename} is not supported, "
                "continuing with regular stages"
            )
            return False, raw_metadata
        try:
            outcome = self._metadata.prepare(document_type, raw_metadata)
            await self._metadata.persist(context.document_id, outcome)
            await self._documents.update_status(
                context.document_id,
                {stage.value: StageStatus.COMPLETED for stage in Stage}
                | {
                    "document_type": document_type,
                    "extraction_method": METHOD_ALL_IN_ONE,
                },
            )
        except (MetadataError, PersistenceError) as exc:
            Log.warning(
                f"All-in-one result for {context.filename} not stored ({exc}), "
                "continuing with regular stages"
            )
            return False, raw_metadata

        Log.info(f"All-in-one extraction completed document {context.document_id} as {document_type}")
        return True, outcome.data
