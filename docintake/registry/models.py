from dataclasses import dataclass, field
from enum import Enum


class DocumentType(str, Enum):
    """Document types with a structured-metadata implementation."""

    ACTA = "acta"
    COMUNICADO = "comunicado"
    FACTURA = "factura"
    CONTRATO = "contrato"
    ESCRITURA = "escritura"
    ALBARAN = "albaran"
    PRESUPUESTO = "presupuesto"


@dataclass(frozen=True)
class DocumentTypeConfig:
    """Processing configuration for one document type."""

    type_name: str
    display_name: str
    agent_name: str
    table_name: str
    save_function_name: str
    required_fields: tuple[str, ...] = field(default_factory=tuple)
