"""Tesseract recognition engine driven through pytesseract.

Tesseract runs as a subprocess, so every call is pushed to a worker thread
and the event loop stays free. Progress is reported at phase boundaries.
"""

import asyncio
import io
import os
from typing import Any

import pytesseract
from PIL import Image

from docscan.errors import EngineUnavailable
from docscan.preprocessing.decode import decode_data_uri, is_inline_image
from docscan.utils.config import OCRConfig
from docscan.utils.logger import get_logger

from .engine import NativeLogger

logger = get_logger(__name__)


def load_pil_image(image: Any) -> Image.Image:
    """Open any supported image reference as a fully loaded Pillow image.

    Accepts inline-encoded data URIs, raw bytes, filesystem paths and
    binary file objects.
    """
    if is_inline_image(image):
        source: Any = io.BytesIO(decode_data_uri(image))
    elif isinstance(image, (bytes, bytearray)):
        source = io.BytesIO(bytes(image))
    elif isinstance(image, (str, os.PathLike)):
        source = os.fspath(image)
    else:
        source = image

    with Image.open(source) as img:
        img.load()
        return img.copy()


def average_confidence(data: dict[str, list]) -> float | None:
    """Mean word confidence (0..1) from ``image_to_data`` output.

    Entries without text or with a non-positive confidence (layout rows)
    are ignored; None when no word qualifies.
    """
    total = 0.0
    count = 0
    for word, conf in zip(data.get("text", []), data.get("conf", [])):
        conf = float(conf)
        if conf > 0 and str(word).strip():
            total += conf
            count += 1
    return (total / count / 100.0) if count else None


class TesseractEngine:
    """Recognition engine backed by the Tesseract binary.

    Args:
        psm: Tesseract page segmentation mode.
    """

    def __init__(self, psm: int = 3) -> None:
        self.psm = psm

    async def recognize(self, image: Any, lang: str, logger: NativeLogger) -> dict:
        """Recognize text in ``image`` and return a native result payload.

        Args:
            image: Data URI, bytes, path or binary file object.
            lang: Tesseract language code(s), e.g. ``"eng"`` or ``"eng+deu"``.
            logger: Receives ``{"status": ..., "progress": ...}`` messages.

        Returns:
            ``{"data": {"text": str, "confidence": float | None}}``.
        """
        config = f"--psm {self.psm}"

        logger({"status": "loading image", "progress": 0.0})
        pil_image = await asyncio.to_thread(load_pil_image, image)
        logger({"status": "loading image", "progress": 1.0})

        logger({"status": "recognizing text", "progress": 0.0})
        text = await asyncio.to_thread(
            pytesseract.image_to_string, pil_image, lang=lang, config=config
        )
        logger({"status": "recognizing text", "progress": 0.5})
        data = await asyncio.to_thread(
            pytesseract.image_to_data,
            pil_image,
            lang=lang,
            config=config,
            output_type=pytesseract.Output.DICT,
        )
        confidence = average_confidence(data)
        logger({"status": "recognizing text", "progress": 1.0})

        _log_result(text, confidence)
        return {"data": {"text": text, "confidence": confidence}}


def _log_result(text: str, confidence: float | None) -> None:
    if confidence is None:
        logger.info("Tesseract found no words")
    else:
        logger.info(
            "Tesseract extracted %d characters with average confidence %.2f",
            len(text),
            confidence,
        )


def load_tesseract_engine(config: OCRConfig | None = None) -> TesseractEngine:
    """Bind to the local Tesseract installation.

    Args:
        config: OCR configuration; ``tesseract_cmd`` overrides the binary path.

    Raises:
        EngineUnavailable: If the Tesseract binary cannot be found.
    """
    config = config or OCRConfig()
    if config.tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd

    try:
        version = pytesseract.get_tesseract_version()
    except pytesseract.TesseractNotFoundError as exc:
        raise EngineUnavailable(f"Tesseract binary not found: {exc}") from exc

    logger.info("Using Tesseract %s", version)
    return TesseractEngine(psm=config.psm)
