"""Per-type field specifications for structured metadata."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from docintake.metadata.exceptions import MetadataValidationError
from docintake.metadata.validators import (
    FieldValidator,
    is_missing,
    validate_array,
    validate_boolean,
    validate_date,
    validate_enum,
    validate_number,
    validate_string,
)
from docintake.registry.models import DocumentType

ConsistencyCheck = Callable[[dict[str, Any]], str | None]

_short = partial(validate_string, max_length=200)
_long = partial(validate_string, max_length=2000)
_number = validate_number
_integer = partial(validate_number, integer=True)
_date = validate_date
_flag = validate_boolean
_list = partial(validate_array, max_items=50, item_validator=_short)
_keywords = partial(validate_array, max_items=20, item_validator=_short)
_currency = partial(validate_enum, options=("EUR", "USD", "GBP"), default="EUR")


@dataclass(frozen=True)
class MetadataHandler:
    """Cleans and checks the structured data of one document type."""

    document_type: DocumentType
    fields: Mapping[str, FieldValidator]
    checks: tuple[ConsistencyCheck, ...] = field(default_factory=tuple)

    @property
    def field_names(self) -> list[str]:
        return list(self.fields)

    def clean(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        """Apply field validators; keys without a validator are dropped."""
        return {name: validator(raw.get(name)) for name, validator in self.fields.items()}

    def validate(self, data: Mapping[str, Any], required_fields: tuple[str, ...]) -> None:
        """Raises MetadataValidationError on missing required fields or failed checks."""
        missing = [name for name in required_fields if is_missing(data.get(name))]
        if missing:
            raise MetadataValidationError(
                f"{self.document_type.value}: missing required fields {missing}"
            )
        for check in self.checks:
            error = check(dict(data))
            if error:
                raise MetadataValidationError(f"{self.document_type.value}: {error}")


def _end_not_before_start(start_key: str, end_key: str) -> ConsistencyCheck:
    def check(data: dict[str, Any]) -> str | None:
        start, end = data.get(start_key), data.get(end_key)
        if start and end and end < start:
            return f"{end_key} ({end}) is earlier than {start_key} ({start})"
        return None

    return check


def _usable_not_above_total(data: dict[str, Any]) -> str | None:
    usable, total = data.get("superficie_util"), data.get("superficie_m2")
    if usable and total and usable > total:
        return f"superficie_util ({usable}) is larger than superficie_m2 ({total})"
    return None


HANDLERS: dict[DocumentType, MetadataHandler] = {
    DocumentType.ACTA: MetadataHandler(
        DocumentType.ACTA,
        {
            "document_date": _date,
            "tipo_reunion": partial(validate_enum, options=("ordinaria", "extraordinaria")),
            "lugar": _short,
            "comunidad_nombre": _short,
            "president_in": _short,
            "president_out": _short,
            "administrator": _short,
            "summary": _long,
            "decisions": _long,
            "orden_del_dia": _list,
            "acuerdos": _list,
            "topic_keywords": _keywords,
            "category": _short,
        },
    ),
    DocumentType.COMUNICADO: MetadataHandler(
        DocumentType.COMUNICADO,
        {
            "fecha": _date,
            "comunidad": _short,
            "remitente": _short,
            "resumen": _long,
            "asunto": _short,
            "tipo_comunicado": _short,
            "urgencia": partial(validate_enum, options=("baja", "media", "alta", "urgente")),
            "requiere_respuesta": _flag,
            "destinatarios": _list,
            "category": _short,
        },
    ),
    DocumentType.FACTURA: MetadataHandler(
        DocumentType.FACTURA,
        {
            "provider_name": _short,
            "client_name": _short,
            "amount": _number,
            "invoice_date": _date,
            "invoice_number": _short,
            "issue_date": _date,
            "due_date": _date,
            "subtotal": _number,
            "tax_amount": _number,
            "total_amount": _number,
            "currency": _currency,
            "payment_method": _short,
            "products_summary": _long,
            "products_count": _integer,
            "category": _short,
        },
        checks=(_end_not_before_start("issue_date", "due_date"),),
    ),
    DocumentType.CONTRATO: MetadataHandler(
        DocumentType.CONTRATO,
        {
            "titulo_contrato": _short,
            "parte_a": _short,
            "parte_b": _short,
            "objeto_contrato": _long,
            "importe_total": _number,
            "fecha_inicio": _date,
            "fecha_fin": _date,
            "duracion": _short,
            "alcance_servicios": _list,
            "confidencialidad": _flag,
            "topic_keywords": _keywords,
            "category": _short,
        },
        checks=(_end_not_before_start("fecha_inicio", "fecha_fin"),),
    ),
    DocumentType.ESCRITURA: MetadataHandler(
        DocumentType.ESCRITURA,
        {
            "vendedor_nombre": _short,
            "comprador_nombre": _short,
            "direccion_inmueble": _short,
            "precio_venta": _number,
            "fecha_escritura": _date,
            "notario_nombre": _short,
            "referencia_catastral": _short,
            "superficie_util": _number,
            "superficie_m2": _number,
            "tipo_inmueble": _short,
            "registro_propiedad": _short,
            "moneda": _currency,
            "forma_pago": _short,
            "libre_cargas": _flag,
            "fecha_entrega": _date,
            "category": _short,
        },
        checks=(
            _end_not_before_start("fecha_escritura", "fecha_entrega"),
            _usable_not_above_total,
        ),
    ),
    DocumentType.ALBARAN: MetadataHandler(
        DocumentType.ALBARAN,
        {
            "emisor_name": _short,
            "receptor_name": _short,
            "numero_albaran": _short,
            "fecha_emision": _date,
            "numero_pedido": _short,
            "emisor_direccion": _short,
            "receptor_direccion": _short,
            "mercancia": _list,
            "cantidad_total": _number,
            "peso_total": _number,
            "estado_entrega": _short,
            "firma_receptor": _flag,
            "transportista": _short,
            "observaciones": _long,
            "category": _short,
        },
    ),
    DocumentType.PRESUPUESTO: MetadataHandler(
        DocumentType.PRESUPUESTO,
        {
            "numero_presupuesto": _short,
            "titulo": _short,
            "emisor_name": _short,
            "cliente_name": _short,
            "fecha_emision": _date,
            "fecha_validez": _date,
            "subtotal": _number,
            "impuestos": _number,
            "porcentaje_impuestos": _number,
            "total": _number,
            "moneda": _currency,
            "descripcion_servicios": _list,
            "condiciones_pago": _short,
            "plazos_entrega": _short,
            "garantia": _short,
            "pago_inicial_requerido": _flag,
            "category": _short,
        },
        checks=(_end_not_before_start("fecha_emision", "fecha_validez"),),
    ),
}
