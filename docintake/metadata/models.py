from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class MetadataOutcome:
    """Structured metadata for a document.

    ``degraded`` is set when the data comes from best-effort generic
    extraction instead of the document type's own agent.
    """

    data: dict[str, Any] = field(default_factory=dict)
    degraded: bool = False
    table_name: str | None = None
