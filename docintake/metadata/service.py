from typing import Any

from docintake.database.repositories.extracted_data_repository import ExtractedDataRepository
from docintake.logging.logger import Log
from docintake.metadata.agent import MetadataExtractionAgent
from docintake.metadata.exceptions import MetadataError
from docintake.metadata.generic import extract_generic_metadata
from docintake.metadata.models import MetadataOutcome
from docintake.metadata.registry import MetadataHandlerRegistry
from docintake.registry.models import DocumentTypeConfig
from docintake.registry.type_registry import TypeRegistry


class MetadataService:
    """Routes a classified document to its agent, validator and storage table."""

    def __init__(
        self,
        *,
        type_registry: TypeRegistry,
        handlers: MetadataHandlerRegistry,
        agent: MetadataExtractionAgent,
        extracted_data: ExtractedDataRepository,
    ) -> None:
        self._type_registry = type_registry
        self._handlers = handlers
        self._agent = agent
        self._extracted_data = extracted_data

    def supports(self, document_type: str | None) -> bool:
        return (
            document_type is not None
            and self._type_registry.is_supported(document_type)
            and self._handlers.get(document_type) is not None
        )

    async def extract(
        self,
        document_type: str | None,
        text: str,
        filename: str,
        page_count: int | None = None,
    ) -> MetadataOutcome:
        """Extract structured metadata, or generic metadata for unsupported types.

        Raises:
            MetadataExtractionError: if the type's agent fails.
            MetadataValidationError: if the agent's answer fails validation.
        """
        if document_type is None or not self.supports(document_type):
            Log.info(
                f"Document type '{document_type}' has no extraction agent, "
                "using generic metadata"
            )
            return MetadataOutcome(
                data=extract_generic_metadata(text, filename, page_count, document_type),
                degraded=True,
            )
        raw = await self._agent.extract(
            self._config(document_type), self._field_names(document_type), text
        )
        return self.prepare(document_type, raw)

    def prepare(self, document_type: str, raw: dict[str, Any]) -> MetadataOutcome:
        """Clean and validate raw field values for a supported type.

        Raises:
            MetadataError: if the type is not supported.
            MetadataValidationError: if required fields are missing or inconsistent.
        """
        config = self._config(document_type)
        handler = self._handlers.get(document_type)
        if handler is None:
            raise MetadataError(f"No metadata handler for '{document_type}'")
        data = handler.clean(raw)
        handler.validate(data, config.required_fields)
        return MetadataOutcome(data=data, degraded=False, table_name=config.table_name)

    async def persist(self, document_id: str, outcome: MetadataOutcome) -> None:
        """Save type-specific data to its table; degraded data has no table."""
        if outcome.table_name is None:
            return
        await self._extracted_data.save(outcome.table_name, document_id, outcome.data)
        Log.info(f"Saved {len(outcome.data)} fields to {outcome.table_name} for {document_id}")

    def agent_name(self, document_type: str) -> str:
        return self._config(document_type).agent_name

    def field_names_by_type(self) -> dict[str, list[str]]:
        return {
            type_name: self._field_names(type_name)
            for type_name in self._type_registry.get_supported_types()
            if self.supports(type_name)
        }

    def _config(self, document_type: str) -> DocumentTypeConfig:
        config = self._type_registry.get_config(document_type)
        if config is None:
            raise MetadataError(f"Document type '{document_type}' is not supported")
        return config

    def _field_names(self, document_type: str) -> list[str]:
        handler = self._handlers.get(document_type)
        return handler.field_names if handler is not None else []
