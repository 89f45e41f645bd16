"""Three-tier document classifier.

1. Filename patterns: accepted at confidence >= 0.9.
2. Keyword scoring over extracted text (> 100 chars): accepted at >= 0.8.
3. Language-model classification of a text preview: accepted at >= 0.7.

Each tier only runs when the previous one was not confident enough. When none
is, the most confident attempted result is returned with ``fallback_used``.
A tier that fails yields a low-confidence result instead of raising.
"""

import re
from typing import Any, ClassVar

from docintake.classification.models import ClassificationMethod, ClassificationResult
from docintake.llm.client_base import BaseLlmClient
from docintake.llm.exceptions import LlmError
from docintake.llm.json_parsing import parse_json_object
from docintake.llm.models import ModelConfig
from docintake.llm.prompt_loader import load_prompt_template
from docintake.logging.logger import Log
from docintake.metadata.agent import RETRYABLE_LLM_ERRORS
from docintake.registry.type_registry import TypeRegistry
from docintake.registry.vocabulary import DocumentTypeVocabulary
from docintake.resilience.retry import RetryPolicy, retry_async

UNKNOWN_TYPE = "unknown"


class DocumentClassifier:
    FILENAME_THRESHOLD = 0.9
    TEXT_THRESHOLD = 0.8
    AI_THRESHOLD = 0.7
    MAX_CONFIDENCE = 0.95

    MIN_TEXT_LENGTH = 100
    PREVIEW_CHARS = 2000
    STRONG_WEIGHT = 3
    MEDIUM_WEIGHT = 1
    SCORE_TO_CONFIDENCE = 0.1

    FILENAME_PATTERNS: ClassVar[list[tuple[re.Pattern[str], str, float]]] = [
        (re.compile(r"(?<![a-z])acta"), "acta", 0.95),
        (re.compile(r"(?<![a-z])factura"), "factura", 0.95),
        (re.compile(r"(?<![a-z])contrato"), "contrato", 0.95),
        (re.compile(r"(?<![a-z])comunicado"), "comunicado", 0.95),
        (re.compile(r"(?<![a-z])presupuesto"), "presupuesto", 0.9),
        (re.compile(r"(?<![a-z])albaran"), "albaran", 0.9),
        (re.compile(r"(?<![a-z])escritura"), "escritura", 0.9),
    ]
    FILENAME_DEFAULT_CONFIDENCE = 0.3

    KEYWORDS: ClassVar[dict[str, dict[str, list[str]]]] = {
        "acta": {
            "strong": ["junta", "reunión", "presidente", "secretario", "propietarios", "acuerdos", "orden del día"],
            "medium": ["asamblea", "convocatoria", "administrador", "comunidad"],
        },
        "factura": {
            "strong": ["factura", "importe", "iva", "subtotal", "proveedor", "cliente"],
            "medium": ["precio", "cantidad", "concepto", "total"],
        },
        "contrato": {
            "strong": ["contrato", "partes", "cláusulas", "servicios", "contratante"],
            "medium": ["obligaciones", "condiciones", "duración", "precio"],
        },
        "comunicado": {
            "strong": ["comunicado", "información", "aviso", "notificación"],
            "medium": ["atentamente", "administración", "vecinos", "propietarios"],
        },
        "presupuesto": {
            "strong": ["presupuesto", "validez", "oferta"],
            "medium": ["partida", "precio", "total", "plazo"],
        },
        "albaran": {
            "strong": ["albarán", "entrega", "mercancía", "transportista"],
            "medium": ["bultos", "pedido", "recibido", "cantidad"],
        },
        "escritura": {
            "strong": ["escritura", "notario", "compraventa", "vendedor", "comprador"],
            "medium": ["registro", "finca", "inmueble", "catastral"],
        },
    }

    def __init__(
        self,
        *,
        type_registry: TypeRegistry,
        vocabulary: DocumentTypeVocabulary,
        llm_client: BaseLlmClient | None = None,
        model_config: ModelConfig | None = None,
        retry_policy: RetryPolicy | None = None,
        prompt_template: str | None = None,
    ) -> None:
        self._type_registry = type_registry
        self._vocabulary = vocabulary
        self._llm_client = llm_client
        self._model_config = model_config or ModelConfig(max_tokens=2000, timeout_seconds=30.0)
        self._retry_policy = retry_policy or RetryPolicy()
        self._prompt_template = prompt_template or load_prompt_template(
            "classification_prompt.txt"
        )
        self._keyword_patterns = {
            doc_type: {
                strength: [self._keyword_pattern(keyword) for keyword in keywords]
                for strength, keywords in groups.items()
            }
            for doc_type, groups in self.KEYWORDS.items()
        }

    async def classify(
        self,
        filename: str,
        extracted_text: str | None = None,
        use_ai: bool = True,
    ) -> ClassificationResult:
        attempts: list[ClassificationResult] = []

        by_filename = self.classify_by_filename(filename)
        if by_filename.confidence >= self.FILENAME_THRESHOLD:
            return by_filename
        attempts.append(by_filename)

        if extracted_text and len(extracted_text) > self.MIN_TEXT_LENGTH:
            by_text = self.classify_by_text(extracted_text)
            if by_text.confidence >= self.TEXT_THRESHOLD:
                return by_text
            attempts.append(by_text)

        if use_ai and self._llm_client is not None and self._llm_client.is_configured:
            by_ai = await self.classify_with_ai(extracted_text or "", filename)
            if by_ai.confidence >= self.AI_THRESHOLD:
                return by_ai
            attempts.append(by_ai)

        best = max(attempts, key=lambda result: result.confidence)
        Log.info(
            f"No classification tier was confident for {filename}, using "
            f"{best.method.value} result '{best.document_type}' ({best.confidence:.2f})"
        )
        return best.as_fallback()

    def classify_by_filename(self, filename: str) -> ClassificationResult:
        folded = self._vocabulary.fold(filename)
        for pattern, doc_type, confidence in self.FILENAME_PATTERNS:
            if pattern.search(folded):
                return ClassificationResult(
                    document_type=doc_type,
                    confidence=confidence,
                    method=ClassificationMethod.FILENAME,
                    reasoning=f"Filename contains pattern for {doc_type}",
                )
        return ClassificationResult(
            document_type=UNKNOWN_TYPE,
            confidence=self.FILENAME_DEFAULT_CONFIDENCE,
            method=ClassificationMethod.FILENAME,
            reasoning="No filename pattern matched",
        )

    def classify_by_text(self, text: str) -> ClassificationResult:
        folded = self._vocabulary.fold(text)
        best_type, best_score = UNKNOWN_TYPE, 0
        for doc_type, groups in self._keyword_patterns.items():
            score = self.STRONG_WEIGHT * self._count(groups["strong"], folded)
            score += self.MEDIUM_WEIGHT * self._count(groups["medium"], folded)
            if score > best_score:
                best_type, best_score = doc_type, score

        confidence = min(self.MAX_CONFIDENCE, best_score * self.SCORE_TO_CONFIDENCE)
        Log.debug(f"Text analysis: {best_type} (score {best_score}, confidence {confidence:.2f})")
        return ClassificationResult(
            document_type=best_type,
            confidence=confidence,
            method=ClassificationMethod.TEXT_ANALYSIS,
            reasoning=f"Keyword score {best_score} for {best_type}",
        )

    async def classify_with_ai(self, text: str, filename: str) -> ClassificationResult:
        if self._llm_client is None:
            return self._ai_failure(0.3, "AI classifier not configured")

        prompt = self._prompt_template.format(
            supported_types=", ".join(self._type_registry.get_supported_types()),
            filename=filename,
            full_text_length=len(text),
            text_preview=text[: self.PREVIEW_CHARS],
        )
        client = self._llm_client

        async def call() -> dict[str, Any]:
            raw = await client.generate(prompt, self._model_config)
            return parse_json_object(raw)

        try:
            answer = await retry_async(
                call,
                policy=self._retry_policy,
                retry_on=RETRYABLE_LLM_ERRORS,
                description=f"AI classification of {filename}",
            )
        except LlmError as exc:
            return self._ai_failure(0.3, f"AI classification error: {exc}")

        raw_type = answer.get("document_type")
        if not isinstance(raw_type, str) or not raw_type.strip():
            return self._ai_failure(0.4, "AI classifier returned no document type")

        confidence = answer.get("confidence", 0.8)
        if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
            confidence = 0.8
        reasoning = answer.get("reasoning")
        return ClassificationResult(
            document_type=self._vocabulary.normalize(raw_type),
            confidence=max(0.0, min(self.MAX_CONFIDENCE, float(confidence))),
            method=ClassificationMethod.AI_AGENT,
            reasoning=reasoning if isinstance(reasoning, str) else "AI agent classification",
        )

    def _keyword_pattern(self, keyword: str) -> re.Pattern[str]:
        return re.compile(r"\b" + re.escape(self._vocabulary.fold(keyword)) + r"\b")

    @staticmethod
    def _count(patterns: list[re.Pattern[str]], text: str) -> int:
        return sum(len(pattern.findall(text)) for pattern in patterns)

    @staticmethod
    def _ai_failure(confidence: float, reasoning: str) -> ClassificationResult:
        Log.warning(reasoning)
        return ClassificationResult(
            document_type=UNKNOWN_TYPE,
            confidence=confidence,
            method=ClassificationMethod.AI_AGENT,
            reasoning=reasoning,
        )
