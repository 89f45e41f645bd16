from pathlib import Path

from docintake.llm.exceptions import LlmConfigurationError

_DEFAULT_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


def load_prompt_template(name: str, path: Path | None = None) -> str:
    """Load a prompt template from a file.

    Args:
        name: File name inside the bundled prompts directory.
        path: Explicit template path; overrides ``name`` when given.

    Returns:
        The raw template string with ``str.format`` placeholders.

    Raises:
        LlmConfigurationError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LlmConfigurationError(f"Failed to load prompt template: {exc}") from exc
