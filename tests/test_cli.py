"""Tests for the docscan command-line harness."""

import json
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
from conftest import FakeEngine
from PIL import Image

from docscan.cli import file_to_data_uri, main, run_recognize
from docscan.errors import EngineUnavailable
from docscan.utils.config import AppConfig, PlatformCapabilities


def _make_test_image(path: Path, size=(200, 100)) -> None:
    """Create a test image with a dark band at the given path."""
    pixels = np.full((size[1], size[0], 3), 230, dtype=np.uint8)
    pixels[size[1] // 3 : size[1] // 2, 10:-10] = 20
    Image.fromarray(pixels).save(path)


class TestFileToDataUri:
    """Tests for reading image files into data URIs."""

    def test_mime_from_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "page.jpg"
        _make_test_image(path)
        assert file_to_data_uri(path).startswith("data:image/jpeg;base64,")

    def test_unknown_suffix_defaults_to_png(self, tmp_path: Path) -> None:
        path = tmp_path / "page.scan"
        path.write_bytes(b"\x00")
        assert file_to_data_uri(path) == "data:image/png;base64,AA=="


class TestPreprocessCommand:
    """Tests for ``docscan preprocess``."""

    def test_writes_scaled_output(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        source = tmp_path / "page.png"
        output = tmp_path / "out" / "page.png"
        _make_test_image(source, size=(400, 100))

        main(
            [
                "-c", str(tmp_path / "missing.yaml"),
                "preprocess", str(source),
                "-o", str(output),
                "--max-dimension", "200",
                "--format", "png",
            ]
        )

        with Image.open(output) as img:
            assert img.format == "PNG"
            assert img.size == (200, 50)
        assert "Output written to" in capsys.readouterr().out

    def test_pass_through_without_raster_surface(self, tmp_path: Path) -> None:
        source = tmp_path / "page.png"
        output = tmp_path / "copy.png"
        _make_test_image(source)
        config_file = tmp_path / "config.yaml"
        config_file.write_text("platform:\n  raster_surface: false\n")

        main(["-c", str(config_file), "preprocess", str(source), "-o", str(output)])
        assert output.read_bytes() == source.read_bytes()

    def test_missing_input(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["preprocess", str(tmp_path / "nope.png"), "-o", str(tmp_path / "x.png")])
        assert excinfo.value.code == 1


class TestRecognizeCommand:
    """Tests for ``docscan recognize``."""

    @patch("docscan.cli.load_tesseract_engine")
    def test_prints_text(
        self, mock_load, tmp_path: Path, capsys: pytest.CaptureFixture
    ) -> None:
        engine = FakeEngine()
        mock_load.return_value = engine
        source = tmp_path / "page.png"
        _make_test_image(source)

        main(["recognize", str(source), "--lang", "fra"])

        assert capsys.readouterr().out.strip() == "Invoice 42"
        assert engine.calls[0][1] == "fra"
        assert engine.calls[0][0].startswith("data:image/jpeg;base64,")

    @patch("docscan.cli.load_tesseract_engine")
    def test_json_output_without_preprocessing(
        self, mock_load, tmp_path: Path, capsys: pytest.CaptureFixture
    ) -> None:
        engine = FakeEngine()
        mock_load.return_value = engine
        source = tmp_path / "page.png"
        _make_test_image(source)

        main(["recognize", str(source), "--json", "--no-preprocess"])

        payload = json.loads(capsys.readouterr().out)
        assert payload == {"filename": "page.png", "text": "Invoice 42", "confidence": 91.0}
        assert engine.calls[0][0] == file_to_data_uri(source)

    @patch("docscan.cli.load_tesseract_engine")
    def test_verbose_progress_on_stderr(
        self, mock_load, tmp_path: Path, fake_engine: FakeEngine, capsys: pytest.CaptureFixture
    ) -> None:
        mock_load.return_value = fake_engine
        source = tmp_path / "page.png"
        _make_test_image(source)

        main(["recognize", str(source), "-v"])

        err = capsys.readouterr().err
        assert "[  0.0%] loading tesseract core" in err
        assert "[100.0%] recognizing text" in err

    @patch("docscan.cli.load_tesseract_engine")
    def test_engine_unavailable_exits(
        self, mock_load, tmp_path: Path, capsys: pytest.CaptureFixture
    ) -> None:
        mock_load.side_effect = EngineUnavailable("Tesseract binary not found")
        source = tmp_path / "page.png"
        _make_test_image(source)

        with pytest.raises(SystemExit) as excinfo:
            main(["recognize", str(source)])
        assert excinfo.value.code == 1
        assert "Tesseract binary not found" in capsys.readouterr().err

    @patch("docscan.cli.load_tesseract_engine")
    def test_run_recognize_uses_config_language(self, mock_load, tmp_path: Path) -> None:
        engine = FakeEngine()
        mock_load.return_value = engine
        source = tmp_path / "page.png"
        _make_test_image(source)
        config = AppConfig(
            ocr={"default_lang": "ita"}, platform=PlatformCapabilities(raster_surface=False)
        )

        result = run_recognize(source, config)

        assert result["text"] == "Invoice 42"
        assert engine.calls == [(file_to_data_uri(source), "ita")]


class TestMain:
    """Tests for argument handling."""

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 0
        assert "preprocess" in capsys.readouterr().out
