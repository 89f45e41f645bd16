from docintake.metadata.handlers import HANDLERS, MetadataHandler
from docintake.registry.exceptions import ConfigError
from docintake.registry.models import DocumentType
from docintake.registry.type_registry import TypeRegistry


class MetadataHandlerRegistry:
    """Maps each known document type to its metadata handler."""

    def __init__(self, handlers: dict[DocumentType, MetadataHandler] | None = None) -> None:
        self._handlers = dict(handlers if handlers is not None else HANDLERS)

    def get(self, type_name: str) -> MetadataHandler | None:
        try:
            return self._handlers.get(DocumentType(type_name))
        except ValueError:
            return None

    def verify(self, type_registry: TypeRegistry) -> None:
        """Fail fast when the type registry lists types without a handler.

        Raises:
            ConfigError: naming every type that has no handler.
        """
        missing = [
            type_name
            for type_name in type_registry.get_supported_types()
            if self.get(type_name) is None
        ]
        if missing:
            raise ConfigError(f"No metadata handler for document types: {missing}")
