"""Isolated text extraction, run as ``python -m docintake.pdf.subprocess_extract``.

Reads the PDF at the given path with the requested engine and prints a single
JSON object on stdout: ``{"success": bool, "text": str | null, "pages": int,
"error": str | null}``. The exit code is 0 whenever the JSON was written.
"""

import argparse
import json
import sys
from pathlib import Path

from docintake.pdf.exceptions import PdfExtractionError
from docintake.pdf.factory import PdfExtractorFactory


def run(path: Path, engine: str) -> dict[str, object]:
    try:
        pdf_bytes = path.read_bytes()
        result = PdfExtractorFactory.create(engine).extract(pdf_bytes)
    except (OSError, ValueError, PdfExtractionError) as exc:
        return {"success": False, "text": None, "pages": 0, "error": str(exc)}
    return {
        "success": bool(result.text),
        "text": result.text,
        "pages": result.pages,
        "error": None if result.text else "No text layer found",
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", type=Path)
    parser.add_argument("--engine", default="pymupdf")
    args = parser.parse_args(argv)
    sys.stdout.write(json.dumps(run(args.path, args.engine)))
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
