"""Canonical document-type vocabulary.

Model answers name document types freely ("Albarán", "Invoice",
"meeting minutes"). Labels are folded to lowercase ASCII with ICU and mapped
through a synonym table onto the registry's type names.
"""

import re
import unicodedata
from typing import ClassVar

import icu  # type: ignore[import-untyped]


class DocumentTypeVocabulary:
    """Normalizes free-form document-type labels."""

    _ICU_TRANSFORM: ClassVar[str] = "Any-Latin; Latin-ASCII; Lower"

    _WHITESPACE_RE: ClassVar[re.Pattern[str]] = re.compile(r"[\s_\-]+")

    SYNONYMS: ClassVar[dict[str, str]] = {
        "delivery note": "albaran",
        "nota de entrega": "albaran",
        "invoice": "factura",
        "bill": "factura",
        "contract": "contrato",
        "agreement": "contrato",
        "minutes": "acta",
        "meeting minutes": "acta",
        "acta de junta": "acta",
        "deed": "escritura",
        "property deed": "escritura",
        "escritura de compraventa": "escritura",
        "budget": "presupuesto",
        "estimate": "presupuesto",
        "quote": "presupuesto",
        "communication": "comunicado",
        "notice": "comunicado",
        "notification": "comunicado",
        "medical report": "parte medico",
        "fine": "multa",
        "traffic fine": "multa de circulacion",
    }

    def __init__(self) -> None:
        self._transliterator: icu.Transliterator = icu.Transliterator.createInstance(
            self._ICU_TRANSFORM
        )

    def fold(self, label: str) -> str:
        """Lowercase ASCII form of ``label`` with collapsed separators."""
        normalized = unicodedata.normalize("NFC", label)
        folded = self._transliterator.transliterate(normalized)
        return self._WHITESPACE_RE.sub(" ", folded).strip()

    def normalize(self, label: str) -> str:
        folded = self.fold(label)
        return self.SYNONYMS.get(folded, folded)
