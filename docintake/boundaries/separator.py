import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from docintake.boundaries.models import AnalysisResult, DetectedDocumentSegment
from docintake.logging.logger import Log

MAX_TITLE_LENGTH = 50


def safe_title(title: str) -> str:
    """Reduce a suggested title to characters safe in a file name."""
    cleaned = re.sub(r"[^a-zA-Z0-9\s\-_]", "", title)
    return re.sub(r"\s+", "-", cleaned.strip())[:MAX_TITLE_LENGTH]


@dataclass
class SeparationResult:
    output_files: list[Path] = field(default_factory=list)
    log_file: Path | None = None
    errors: list[str] = field(default_factory=list)


class BoundarySeparator:
    """Writes each detected segment of an analysis to its own text file."""

    def write_segments(
        self,
        result: AnalysisResult,
        original_filename: str,
        output_dir: Path,
        now: datetime | None = None,
    ) -> SeparationResult:
        now = now or datetime.now(timezone.utc)
        output_dir.mkdir(parents=True, exist_ok=True)
        separation = SeparationResult()
        written: list[dict[str, str]] = []

        for number, segment in enumerate(result.segments, start=1):
            filename = f"{number}_{segment.document_type}_{safe_title(segment.suggested_title)}.txt"
            path = output_dir / filename
            try:
                path.write_text(
                    self._render(segment, original_filename, now), encoding="utf-8"
                )
            except OSError as exc:
                message = f"Could not write document {number} ({segment.document_type}): {exc}"
                Log.error(message)
                separation.errors.append(message)
                continue
            separation.output_files.append(path)
            written.append(
                {
                    "filename": filename,
                    "type": segment.document_type,
                    "title": segment.suggested_title,
                    "lines": f"{segment.start_line}-{segment.end_line}",
                }
            )
            Log.info(f"Saved separated document {filename}")

        log_file = output_dir / f"analysis-log-{now.strftime('%Y-%m-%dT%H-%M-%S')}.json"
        log_file.write_text(
            json.dumps(
                self._log_data(result, original_filename, now, written, separation.errors),
                indent=2,
                ensure_ascii=False,
            ),
            encoding="utf-8",
        )
        separation.log_file = log_file
        return separation

    @staticmethod
    def _render(segment: DetectedDocumentSegment, original_filename: str, now: datetime) -> str:
        header = "\n".join(
            [
                "=== SEPARATED DOCUMENT ===",
                f"Original file: {original_filename}",
                f"Detected type: {segment.document_type}",
                f"Suggested title: {segment.suggested_title}",
                f"Lines: {segment.start_line}-{segment.end_line}",
                f"Confidence: {round(segment.confidence * 100)}%",
                f"Supported by pipeline: {'yes' if segment.is_supported_by_pipeline else 'no'}",
                f"Cut by: {segment.resolution.value}",
                f"Description: {segment.description}",
                f"Keywords: {', '.join(segment.keywords)}",
                f"Separated at: {now.isoformat()}",
                "==========================",
            ]
        )
        return f"{header}\n\n{segment.text_fragment}\n"

    @staticmethod
    def _log_data(
        result: AnalysisResult,
        original_filename: str,
        now: datetime,
        written: list[dict[str, str]],
        errors: list[str],
    ) -> dict[str, object]:
        return {
            "originalFile": original_filename,
            "analysisDate": now.isoformat(),
            "extractionMethod": result.extraction_method,
            "totalLinesProcessed": result.total_lines,
            "textTruncated": result.text_truncated,
            "documentsFound": len(result.segments),
            "supportedDocuments": result.supported_documents,
            "unsupportedDocuments": result.unsupported_documents,
            "detectedDocuments": [
                {
                    "type": segment.document_type,
                    "title": segment.suggested_title,
                    "lines": f"{segment.start_line}-{segment.end_line}",
                    "confidence": segment.confidence,
                    "supported": segment.is_supported_by_pipeline,
                    "keywords": list(segment.keywords),
                    "startMarker": segment.start_marker,
                    "endMarker": segment.end_marker,
                    "resolution": segment.resolution.value,
                }
                for segment in result.segments
            ],
            "outputFiles": written,
            "errors": errors,
        }
