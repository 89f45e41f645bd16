"""Schema-driven registry of supported document types.

The schema is a JSON document of the form::

    {"document_types": {"acta": {"display_name": "...", "agent_name": "...",
                                 "table_name": "extracted_minutes",
                                 "required_fields": ["..."]}}}

Entries may also nest those keys under a ``metadata`` object. An unreadable or
invalid schema never stops the worker: the registry falls back to a built-in
table covering the core types and logs the degradation.
"""

import json
from pathlib import Path
from typing import Any, ClassVar

from docintake.logging.logger import Log
from docintake.registry.exceptions import ConfigError
from docintake.registry.models import DocumentTypeConfig

DEFAULT_SCHEMA_PATH = Path(__file__).parent / "document_types.json"


def save_function_name(table_name: str) -> str:
    """Derive the persistence function name from a storage table name.

    ``extracted_minutes`` becomes ``saveExtractedMinutes`` and
    ``extracted_property_deeds`` becomes ``saveExtractedPropertyDeeds``.
    """
    base = table_name.removeprefix("extracted_")
    return "saveExtracted" + "".join(part.capitalize() for part in base.split("_") if part)


class TypeRegistry:
    """Read-only lookups of per-type processing configuration.

    The schema is read once, on first use, and kept for the lifetime of the
    instance. ``reload()`` re-reads it explicitly.
    """

    FALLBACK_TYPES: ClassVar[dict[str, tuple[str, str, str]]] = {
        "acta": ("Acta de junta", "acta_extractor_v2", "extracted_minutes"),
        "comunicado": ("Comunicado", "comunicado_extractor_v1", "extracted_communications"),
        "factura": ("Factura", "factura_extractor_v2", "extracted_invoices"),
        "contrato": ("Contrato", "contrato_extractor_v1", "extracted_contracts"),
        "escritura": ("Escritura de compraventa", "escritura_extractor_v1", "extracted_property_deeds"),
        "albaran": ("Albarán", "albaran_extractor_v1", "extracted_delivery_notes"),
    }

    def __init__(self, schema_path: Path | None = None) -> None:
        self._schema_path = schema_path if schema_path is not None else DEFAULT_SCHEMA_PATH
        self._configs: dict[str, DocumentTypeConfig] | None = None
        self._using_fallback = False

    @property
    def using_fallback(self) -> bool:
        self._ensure_loaded()
        return self._using_fallback

    def get_config(self, type_name: str) -> DocumentTypeConfig | None:
        return self._ensure_loaded().get(type_name)

    def get_supported_types(self) -> list[str]:
        return list(self._ensure_loaded())

    def is_supported(self, type_name: str) -> bool:
        return type_name in self._ensure_loaded()

    def table_names(self) -> frozenset[str]:
        return frozenset(config.table_name for config in self._ensure_loaded().values())

    def reload(self) -> None:
        self._configs = None
        self._ensure_loaded()

    def _ensure_loaded(self) -> dict[str, DocumentTypeConfig]:
        if self._configs is None:
            try:
                self._configs = self._load_schema(self._schema_path)
                self._using_fallback = False
                Log.info(
                    f"Loaded {len(self._configs)} document types from {self._schema_path}: "
                    f"{list(self._configs)}"
                )
            except ConfigError as exc:
                Log.warning(f"Document type schema unavailable, using built-in types: {exc}")
                self._configs = self._fallback_configs()
                self._using_fallback = True
        return self._configs

    @classmethod
    def _load_schema(cls, path: Path) -> dict[str, DocumentTypeConfig]:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Failed to read {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc

        types = raw.get("document_types") if isinstance(raw, dict) else None
        if not isinstance(types, dict) or not types:
            raise ConfigError(f"{path} defines no document_types")

        configs: dict[str, DocumentTypeConfig] = {}
        for type_name, entry in types.items():
            config = cls._build_config(type_name, entry)
            if config is None:
                Log.warning(
                    f"Skipping document type '{type_name}': agent_name and table_name must be "
                    "strings and required_fields a list of strings"
                )
                continue
            configs[type_name] = config
        if not configs:
            raise ConfigError(f"{path} has no usable document types")
        return configs

    @staticmethod
    def _build_config(type_name: str, entry: Any) -> DocumentTypeConfig | None:
        if not isinstance(entry, dict):
            return None
        fields = entry.get("metadata") if isinstance(entry.get("metadata"), dict) else entry
        agent_name = fields.get("agent_name")
        table_name = fields.get("table_name")
        if not isinstance(agent_name, str) or not isinstance(table_name, str):
            return None
        required = fields.get("required_fields") or []
        if not isinstance(required, list) or not all(isinstance(name, str) for name in required):
            return None
        return DocumentTypeConfig(
            type_name=type_name,
            display_name=str(fields.get("display_name") or type_name),
            agent_name=agent_name,
            table_name=table_name,
            save_function_name=save_function_name(table_name),
            required_fields=tuple(required),
        )

    @classmethod
    def _fallback_configs(cls) -> dict[str, DocumentTypeConfig]:
        return {
            type_name: DocumentTypeConfig(
                type_name=type_name,
                display_name=display_name,
                agent_name=agent_name,
                table_name=table_name,
                save_function_name=save_function_name(table_name),
            )
            for type_name, (display_name, agent_name, table_name) in cls.FALLBACK_TYPES.items()
        }
