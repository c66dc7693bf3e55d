"""Microphone capture with a single event channel."""

from __future__ import annotations

import io
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

import numpy as np
import sounddevice as sd
import soundfile as sf

logger = logging.getLogger(__name__)


class MicrophoneError(RuntimeError):
    """Raised when the input device cannot be opened."""


@dataclass(frozen=True)
class CaptureEvent:
    """Something the capture layer reports to its owner.

    ``kind`` is one of ``chunk``, ``stopped`` or ``error``.
    """

    kind: str
    data: Optional[np.ndarray] = None
    message: Optional[str] = None


def amplitude_level(block: np.ndarray) -> float:
    """Peak absolute amplitude of a float block, clipped to 0..1."""
    if block.size == 0:
        return 0.0
    return float(min(1.0, np.max(np.abs(block))))


def encode_wav(chunks: Iterable[np.ndarray], sample_rate: int, channels: int) -> bytes:
    """Join captured blocks into one 16-bit WAV buffer."""
    blocks = [chunk.reshape(-1, channels) for chunk in chunks if chunk.size]
    if blocks:
        audio = np.concatenate(blocks, axis=0)
    else:
        audio = np.zeros((0, channels), dtype="float32")
    buffer = io.BytesIO()
    sf.write(buffer, audio, sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


EventHandler = Callable[[CaptureEvent], None]


class AudioCapture:
    """Owns the input stream for one recording at a time."""

    mime_type = "audio/wav"

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        device: Optional[Any] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device
        self._clock = clock
        self._stream: Optional[sd.InputStream] = None
        self._handler: Optional[EventHandler] = None
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None
        self.level = 0.0

    @property
    def active(self) -> bool:
        return self._stream is not None

    @property
    def elapsed_seconds(self) -> int:
        if self._started_at is None:
            return 0
        end = self._stopped_at if self._stopped_at is not None else self._clock()
        return int(end - self._started_at)

    def _on_audio(self, indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
        del frames, time_info
        if status:
            logger.debug("Input stream status: %s", status)
        block = indata.copy()
        self.level = amplitude_level(block)
        if self._handler is not None:
            self._handler(CaptureEvent(kind="chunk", data=block))

    def start(self, on_event: EventHandler) -> None:
        if self._stream is not None:
            raise MicrophoneError("A recording is already active")
        self._handler = on_event
        self.level = 0.0
        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="float32",
                callback=self._on_audio,
                device=self.device,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            self._handler = None
            raise MicrophoneError(str(exc)) from exc
        self._stream = stream
        self._started_at = self._clock()
        self._stopped_at = None
        logger.debug("Recording started at %d Hz, %d channel(s)", self.sample_rate, self.channels)

    def stop(self) -> None:
        """Release the device and report ``stopped`` (or ``error``).

        Blocks still delivered while the stream drains reach the handler.
        """
        stream = self._stream
        self._stream = None
        if stream is None:
            self._handler = None
            return
        self._stopped_at = self._clock()
        try:
            stream.stop()
            stream.close()
        except sd.PortAudioError as exc:
            handler, self._handler = self._handler, None
            self.level = 0.0
            logger.warning("Failed to close input stream: %s", exc)
            if handler is not None:
                handler(CaptureEvent(kind="error", message=str(exc)))
            return
        handler, self._handler = self._handler, None
        self.level = 0.0
        logger.debug("Recording stopped after %ds", self.elapsed_seconds)
        if handler is not None:
            handler(CaptureEvent(kind="stopped"))

    def abort(self) -> None:
        """Release the device without reporting anything."""
        self._handler = None
        self.stop()

    def encode(self, chunks: Iterable[np.ndarray]) -> bytes:
        return encode_wav(chunks, self.sample_rate, self.channels)
