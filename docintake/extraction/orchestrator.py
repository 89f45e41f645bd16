import math

from docintake.extraction.base import BaseExtractionStrategy
from docintake.extraction.models import (
    METHOD_ALL_FAILED,
    METHOD_MANUAL_REVIEW,
    ExtractionContext,
    ExtractionResult,
)
from docintake.logging.logger import Log

BYTES_PER_PAGE = 1024 * 1024


def estimate_pages(buffer: bytes) -> int:
    """Page estimate from size alone: about one page per MiB."""
    return math.ceil(len(buffer) / BYTES_PER_PAGE)


class ExtractionOrchestrator:
    """Runs extraction strategies cheapest first until one is good enough.

    A result is sufficient when it succeeded with at least
    ``context.min_text_length`` characters. An all-in-one result ends the run
    as soon as it reports the pipeline complete. Expensive strategies are only
    attempted when the estimated page count is within ``context.max_pages``;
    otherwise the run ends with a manual-review result. ``extract`` never
    raises.
    """

    def __init__(self, strategies: list[BaseExtractionStrategy]) -> None:
        self._strategies = sorted(strategies, key=lambda strategy: strategy.priority)

    @property
    def strategies(self) -> list[BaseExtractionStrategy]:
        return list(self._strategies)

    def strategy_status(self, context: ExtractionContext) -> dict[str, bool]:
        """Which strategies would accept this input."""
        return {strategy.name: self._can_handle(strategy, context) for strategy in self._strategies}

    async def extract(self, context: ExtractionContext) -> ExtractionResult:
        last_result: ExtractionResult | None = None

        for strategy in self._strategies:
            if strategy.expensive:
                estimated_pages = estimate_pages(context.buffer)
                if estimated_pages > context.max_pages:
                    Log.warning(
                        f"{context.filename}: ~{estimated_pages} pages exceeds the limit of "
                        f"{context.max_pages} for {strategy.name}, manual review required"
                    )
                    return ExtractionResult(
                        success=False,
                        method=METHOD_MANUAL_REVIEW,
                        pages=estimated_pages,
                        error=(
                            f"Document too large for automatic extraction: ~{estimated_pages} "
                            f"pages, limit {context.max_pages}"
                        ),
                    )

            if not self._can_handle(strategy, context):
                Log.debug(f"Strategy {strategy.name} cannot handle {context.filename}")
                continue

            Log.info(f"Trying extraction strategy {strategy.name} for {context.filename}")
            result = await self._run(strategy, context)
            last_result = result

            if result.success and result.all_in_one_complete:
                Log.info(f"{strategy.name} completed the whole pipeline for {context.filename}")
                return result
            if result.is_sufficient(context.min_text_length):
                Log.info(
                    f"{strategy.name} extracted {result.text_length} chars from "
                    f"{context.filename}"
                )
                return result
            Log.info(
                f"{strategy.name} insufficient for {context.filename}: "
                f"{result.text_length} chars, error={result.error}"
            )

        if last_result is None:
            return ExtractionResult(
                success=False,
                method=METHOD_ALL_FAILED,
                error="No extraction strategy could handle the document",
            )
        return last_result

    @staticmethod
    def _can_handle(strategy: BaseExtractionStrategy, context: ExtractionContext) -> bool:
        try:
            return strategy.can_handle(context)
        except Exception as exc:
            Log.error(f"Strategy {strategy.name} can_handle failed: {exc}")
            return False

    @staticmethod
    async def _run(
        strategy: BaseExtractionStrategy, context: ExtractionContext
    ) -> ExtractionResult:
        try:
            return await strategy.extract(context)
        except Exception as exc:
            Log.error(f"Strategy {strategy.name} raised for {context.filename}: {exc}")
            return strategy.failure(f"{type(exc).__name__}: {exc}")
