"""Shared test fixtures for the docscan test suite."""

import base64
import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image


def make_data_uri(image: Image.Image, fmt: str = "PNG") -> str:
    """Encode a Pillow image as a base64 data URI."""
    out = io.BytesIO()
    image.save(out, format=fmt)
    mime = "image/png" if fmt == "PNG" else "image/jpeg"
    return f"data:{mime};base64,{base64.b64encode(out.getvalue()).decode('ascii')}"


def image_from_data_uri(uri: str) -> Image.Image:
    """Decode a base64 data URI back into a loaded Pillow image."""
    payload = uri.split(",", 1)[1]
    img = Image.open(io.BytesIO(base64.b64decode(payload)))
    img.load()
    return img


class FakeEngine:
    """Async recognition engine returning a canned payload."""

    def __init__(self, payload=None, messages=None, error=None) -> None:
        self.payload = (
            payload
            if payload is not None
            else {"data": {"text": "Invoice 42", "confidence": 91.0}}
        )
        self.messages = messages if messages is not None else []
        self.error = error
        self.calls: list[tuple[object, str]] = []

    async def recognize(self, image, lang, logger):
        self.calls.append((image, lang))
        for message in self.messages:
            logger(message)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def sample_rgba() -> np.ndarray:
    """Create a small synthetic RGBA array with varied colors and alpha."""
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(20, 30, 4), dtype=np.uint8)


@pytest.fixture
def document_uri() -> str:
    """A 300x200 white page with a dark text-like bar, as a PNG data URI."""
    image = Image.new("RGB", (300, 200), (240, 240, 235))
    pixels = np.array(image)
    pixels[90:110, 40:260] = (30, 30, 40)
    return make_data_uri(Image.fromarray(pixels))


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine(
        messages=[
            {"status": "loading tesseract core", "progress": 0.0},
            {"status": "recognizing text", "progress": 0.5},
            {"status": "recognizing text", "progress": 1.0},
        ]
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
