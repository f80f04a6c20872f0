"""Recognition engine binding and result normalization.

The engine is an external, possibly heavy component. It is resolved from a
loader on first use and cached; its native progress messages and result
payloads are normalized into :class:`OcrProgress` and :class:`OcrResult`.
"""

import asyncio
import inspect
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from docscan.errors import DocscanError, EngineUnavailable, RecognitionError
from docscan.utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_STATUS = "working"


@dataclass(frozen=True)
class OcrProgress:
    """One progress event reported by the recognition engine."""

    status: str
    progress: float


@dataclass(frozen=True)
class OcrResult:
    """Recognized text and the engine's confidence, when it reports one."""

    text: str
    confidence: float | None = None


ProgressSink = Callable[[OcrProgress], None]
NativeLogger = Callable[[Any], None]


class RecognitionEngine(Protocol):
    """An OCR engine with a single recognition entry point.

    ``recognize`` may be a coroutine function or a plain function. It calls
    ``logger`` with native progress messages and returns a payload whose
    ``data`` mapping (or the payload itself) carries ``text`` and
    ``confidence``.
    """

    def recognize(self, image: Any, lang: str, logger: NativeLogger) -> Any: ...


EngineLoader = Callable[[], RecognitionEngine]


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _field(message: object, name: str) -> object:
    if isinstance(message, Mapping):
        return message.get(name)
    return getattr(message, name, None)


def normalize_progress(message: object) -> OcrProgress:
    """Convert a native engine progress message into an :class:`OcrProgress`."""
    status = _field(message, "status")
    progress = _field(message, "progress")
    return OcrProgress(
        status=status if isinstance(status, str) else FALLBACK_STATUS,
        progress=float(progress) if _is_number(progress) else 0.0,
    )


def normalize_result(payload: object) -> OcrResult:
    """Extract text and confidence from a native engine result."""
    data = _field(payload, "data")
    if data is None:
        data = payload

    text = _field(data, "text")
    confidence = _field(data, "confidence")
    return OcrResult(
        text=text if isinstance(text, str) else "",
        confidence=float(confidence) if _is_number(confidence) else None,
    )


class EngineHandle:
    """Lazily resolved, cached reference to a recognition engine.

    The loader runs at most once successfully; concurrent first uses wait
    for the same resolution. A failed resolution is not cached, so a later
    call may retry binding.

    Args:
        loader: Zero-argument callable returning the engine.
    """

    def __init__(self, loader: EngineLoader) -> None:
        self._loader = loader
        self._engine: RecognitionEngine | None = None
        self._lock = threading.Lock()

    @classmethod
    def of(cls, engine: RecognitionEngine) -> "EngineHandle":
        """Wrap an already constructed engine."""
        handle = cls(lambda: engine)
        handle._engine = engine
        return handle

    @property
    def resolved(self) -> bool:
        return self._engine is not None

    def resolve(self) -> RecognitionEngine:
        """Return the engine, loading it on first use.

        Raises:
            EngineUnavailable: If the loader fails or the engine has no
                callable ``recognize`` entry point.
        """
        with self._lock:
            if self._engine is not None:
                return self._engine

            try:
                engine = self._loader()
            except EngineUnavailable:
                raise
            except (ImportError, OSError, DocscanError) as exc:
                raise EngineUnavailable(f"Recognition engine could not be loaded: {exc}") from exc

            if not callable(getattr(engine, "recognize", None)):
                raise EngineUnavailable("Recognition engine has no recognize() entry point")

            logger.info("Bound recognition engine %s", type(engine).__name__)
            self._engine = engine
            return engine


class _SinkFailure(Exception):
    """Carries an exception raised by the caller's progress sink through the engine."""

    def __init__(self, error: Exception) -> None:
        super().__init__(str(error))
        self.error = error


class RecognitionAdapter:
    """Drives a recognition engine and normalizes what it reports.

    Args:
        handle: Cached engine handle, shared by every invocation.
    """

    def __init__(self, handle: EngineHandle) -> None:
        self.handle = handle

    async def bind(self) -> RecognitionEngine:
        """Resolve the engine without blocking the event loop."""
        if self.handle.resolved:
            return self.handle.resolve()
        return await asyncio.to_thread(self.handle.resolve)

    async def recognize(
        self,
        image: Any,
        lang: str,
        on_progress: ProgressSink | None = None,
    ) -> OcrResult:
        """Recognize text in ``image``.

        Args:
            image: Preprocessed or original image reference.
            lang: Recognition language tag, e.g. ``"eng"``.
            on_progress: Receives normalized progress events in engine order.

        Returns:
            Normalized recognition result.

        Raises:
            EngineUnavailable: If the engine cannot be bound.
            RecognitionError: If the engine fails during recognition.
                Exceptions raised by ``on_progress`` propagate unchanged.
        """
        engine = await self.bind()

        def sink(message: object) -> None:
            if on_progress is None:
                return
            try:
                on_progress(normalize_progress(message))
            except Exception as exc:
                raise _SinkFailure(exc) from exc

        try:
            payload = engine.recognize(image, lang, sink)
            if inspect.isawaitable(payload):
                payload = await payload
        except RecognitionError:
            raise
        except _SinkFailure as failure:
            raise failure.error
        except Exception as exc:
            raise RecognitionError(str(exc)) from exc

        result = normalize_result(payload)
        logger.debug(
            "Recognized %d characters (confidence=%s)", len(result.text), result.confidence
        )
        return result
