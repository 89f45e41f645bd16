from dataclasses import dataclass, replace
from enum import Enum


class ClassificationMethod(str, Enum):
    FILENAME = "filename"
    TEXT_ANALYSIS = "text-analysis"
    AI_AGENT = "ai-agent"


@dataclass(frozen=True)
class ClassificationResult:
    document_type: str
    confidence: float
    method: ClassificationMethod
    reasoning: str = ""
    fallback_used: bool = False

    def as_fallback(self) -> "ClassificationResult":
        return replace(self, fallback_used=True)
