import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from docintake.boundaries.models import AnalysisResult, DetectedDocumentSegment
from docintake.config.settings import Settings
from docintake.main import build_parser, main, run_types


def _analysis() -> AnalysisResult:
    return AnalysisResult(
        is_multi_document=False,
        confidence=0.8,
        segments=[
            DetectedDocumentSegment(
                document_type="factura",
                start_line=1,
                end_line=2,
                confidence=0.8,
                suggested_title="Factura 2024-0117",
                text_fragment="FACTURA N. 2024-0117\nImporte total: 1.210,00 EUR",
                is_supported_by_pipeline=True,
            )
        ],
        total_lines=2,
        extracted_text="FACTURA N. 2024-0117\nImporte total: 1.210,00 EUR",
        analysis_details="Single invoice",
        extraction_method="pdf-text-direct",
    )


class TestParser:
    def test_process_arguments(self) -> None:
        args = build_parser().parse_args(["process", "doc-1", "--level", "2", "--reprocess"])
        assert (args.command, args.document_id, args.level, args.reprocess) == (
            "process",
            "doc-1",
            2,
            True,
        )

    def test_rejects_invalid_level(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["process", "doc-1", "--level", "7"])

    def test_no_command_defaults_to_worker(self) -> None:
        assert build_parser().parse_args([]).command is None


class TestTypesCommand:
    def test_lists_document_types(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_types(Settings()) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["using_fallback"] is False
        names = [entry["type_name"] for entry in payload["document_types"]]
        assert "factura" in names
        assert "acta" in names


@patch("docintake.main.Log.configure")
class TestMain:
    def test_runs_worker_by_default(self, _configure: MagicMock) -> None:
        with patch("docintake.main.run_worker", new_callable=AsyncMock) as mock_run_worker:
            assert main([]) == 0
        mock_run_worker.assert_awaited_once()

    def test_process_command(self, _configure: MagicMock) -> None:
        with patch(
            "docintake.main.run_process", new_callable=AsyncMock, return_value=0
        ) as mock_run_process:
            assert main(["process", "doc-1", "--level", "3"]) == 0
        args = mock_run_process.await_args.args
        assert args[1:] == ("doc-1", 3, False)

    def test_keyboard_interrupt_exits_cleanly(self, _configure: MagicMock) -> None:
        with patch(
            "docintake.main.run_worker", new_callable=AsyncMock, side_effect=KeyboardInterrupt
        ):
            assert main(["worker"]) == 0

    def test_analyze_writes_segments(
        self, _configure: MagicMock, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        pdf_path = tmp_path / "factura.pdf"
        pdf_path.write_bytes(b"%PDF-1.4")
        detector = MagicMock()
        detector.analyze = AsyncMock(return_value=_analysis())
        out = tmp_path / "out"

        with patch("docintake.main.build_boundary_detector", return_value=detector):
            code = main(["analyze", str(pdf_path), "--output-dir", str(out)])

        assert code == 0
        detector.analyze.assert_awaited_once_with(b"%PDF-1.4", "factura.pdf")
        payload = json.loads(capsys.readouterr().out)
        assert payload["supported_documents"] == 1
        assert "extracted_text" not in payload
        assert len(payload["output_files"]) == 1
        assert Path(payload["output_files"][0]).exists()
        assert payload["errors"] == []
