from abc import ABC, abstractmethod

from docintake.extraction.models import ExtractionContext, ExtractionResult


class BaseExtractionStrategy(ABC):
    """Contract for text extraction strategies.

    Lower ``priority`` runs first. ``expensive`` strategies are only attempted
    after the orchestrator's page-limit check passes. ``extract`` must not
    raise: failures are reported as ``ExtractionResult(success=False)``.
    """

    name: str = "base"
    priority: int = 100
    expensive: bool = False

    @abstractmethod
    def can_handle(self, context: ExtractionContext) -> bool:
        """Whether this strategy applies to the given input."""

    @abstractmethod
    async def extract(self, context: ExtractionContext) -> ExtractionResult:
        """Extract text from ``context.buffer``."""

    def failure(self, error: str, method: str | None = None) -> ExtractionResult:
        return ExtractionResult(success=False, method=method or self.name, error=error)
