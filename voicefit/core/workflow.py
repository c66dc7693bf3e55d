"""Recording workflow: capture -> inference -> review -> store.

The state machine is a set of frozen state/event/command dataclasses and a
pure ``transition`` function. ``RecordingWorkflow`` executes the commands a
transition returns against the capture device, the gateway and the store.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, List, Optional, Tuple, Union

from voicefit.core.constants import MICROPHONE_ERROR_MESSAGE, PROCESSING_ERROR_MESSAGE
from voicefit.core.models import DraftSession, NewSession, WorkoutSession
from voicefit.utils.date_ranges import resolve_session_date

logger = logging.getLogger(__name__)


class InvalidTransition(RuntimeError):
    """Raised when an event is not allowed in the current state."""


# States


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Recording:
    started_at: float = 0.0


@dataclass(frozen=True)
class Processing:
    pass


@dataclass(frozen=True)
class Review:
    draft: DraftSession


@dataclass(frozen=True)
class Saved:
    session: Optional[WorkoutSession] = None


@dataclass(frozen=True)
class Failed:
    message: str


State = Union[Idle, Recording, Processing, Review, Saved, Failed]


# Events


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class CaptureStarted:
    started_at: float = 0.0


@dataclass(frozen=True)
class CaptureFailed:
    reason: str = ""


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class AudioReady:
    audio: bytes
    mime_type: str


@dataclass(frozen=True)
class Submit:
    audio: bytes
    mime_type: str


@dataclass(frozen=True)
class GatewaySucceeded:
    draft: DraftSession


@dataclass(frozen=True)
class GatewayFailed:
    reason: str = ""


@dataclass(frozen=True)
class Save:
    today: date


@dataclass(frozen=True)
class Discard:
    pass


@dataclass(frozen=True)
class Retry:
    pass


Event = Union[
    Start,
    CaptureStarted,
    CaptureFailed,
    Stop,
    AudioReady,
    Submit,
    GatewaySucceeded,
    GatewayFailed,
    Save,
    Discard,
    Retry,
]


# Commands


@dataclass(frozen=True)
class StartCapture:
    pass


@dataclass(frozen=True)
class StopCapture:
    pass


@dataclass(frozen=True)
class ClearBuffer:
    pass


@dataclass(frozen=True)
class CallGateway:
    audio: bytes
    mime_type: str


@dataclass(frozen=True)
class PersistSession:
    session: NewSession


@dataclass(frozen=True)
class ShowHistory:
    pass


Command = Union[StartCapture, StopCapture, ClearBuffer, CallGateway, PersistSession, ShowHistory]


@dataclass(frozen=True)
class Transition:
    state: State
    commands: Tuple[Command, ...] = ()


def finalize_draft(draft: DraftSession, today: date) -> NewSession:
    """Turn a reviewed draft into the session that gets stored."""
    return NewSession(
        date=resolve_session_date(draft.date, today),
        exercises=tuple(draft.exercises),
        raw_transcription=draft.raw_transcription,
        notes=draft.notes,
    )


def transition(state: State, event: Event) -> Transition:
    """Return the next state and the commands needed to get there."""
    if isinstance(state, (Idle, Saved)):
        if isinstance(event, Start):
            return Transition(Idle(), (ClearBuffer(), StartCapture()))
        if isinstance(event, CaptureStarted):
            return Transition(Recording(started_at=event.started_at))
        if isinstance(event, CaptureFailed):
            return Transition(Failed(MICROPHONE_ERROR_MESSAGE))
        if isinstance(event, Submit):
            return Transition(Processing(), (CallGateway(event.audio, event.mime_type),))

    elif isinstance(state, Recording):
        if isinstance(event, Stop):
            return Transition(state, (StopCapture(),))
        if isinstance(event, AudioReady):
            return Transition(
                Processing(), (ClearBuffer(), CallGateway(event.audio, event.mime_type))
            )
        if isinstance(event, CaptureFailed):
            return Transition(Failed(MICROPHONE_ERROR_MESSAGE), (StopCapture(), ClearBuffer()))

    elif isinstance(state, Processing):
        if isinstance(event, GatewaySucceeded):
            return Transition(Review(event.draft))
        if isinstance(event, GatewayFailed):
            return Transition(Failed(PROCESSING_ERROR_MESSAGE), (ClearBuffer(),))

    elif isinstance(state, Review):
        if isinstance(event, Save):
            new_session = finalize_draft(state.draft, event.today)
            return Transition(Saved(), (PersistSession(new_session), ShowHistory()))
        if isinstance(event, Discard):
            return Transition(Idle(), (ClearBuffer(),))

    elif isinstance(state, Failed):
        if isinstance(event, Retry):
            return Transition(Idle(), (ClearBuffer(),))

    raise InvalidTransition(
        f"{type(event).__name__} is not allowed while {type(state).__name__.lower()}"
    )


class RecordingWorkflow:
    """Runs the state machine against real collaborators.

    ``capture`` needs ``start(on_event)``, ``stop()``, ``abort()``,
    ``encode(chunks)``, ``mime_type``, ``elapsed_seconds`` and ``level``.
    ``gateway`` needs ``transcribe_and_extract(audio, mime_type)`` and
    ``store`` needs ``add(new_session)``.
    """

    def __init__(
        self,
        capture: Any,
        gateway: Any,
        store: Any,
        today: Callable[[], date] = date.today,
        on_show_history: Optional[Callable[[], None]] = None,
    ) -> None:
        self.capture = capture
        self.gateway = gateway
        self.store = store
        self._today = today
        self._on_show_history = on_show_history
        self._state: State = Idle()
        self._chunks: List[Any] = []
        self._lock = threading.Lock()

    @property
    def state(self) -> State:
        return self._state

    @property
    def draft(self) -> Optional[DraftSession]:
        return self._state.draft if isinstance(self._state, Review) else None

    @property
    def saved_session(self) -> Optional[WorkoutSession]:
        return self._state.session if isinstance(self._state, Saved) else None

    @property
    def elapsed_seconds(self) -> int:
        if not isinstance(self._state, Recording):
            return 0
        return int(getattr(self.capture, "elapsed_seconds", 0))

    @property
    def level(self) -> float:
        if not isinstance(self._state, Recording):
            return 0.0
        return float(getattr(self.capture, "level", 0.0))

    @property
    def buffered_chunks(self) -> int:
        with self._lock:
            return len(self._chunks)

    def dispatch(self, event: Event) -> State:
        step = transition(self._state, event)
        logger.debug(
            "%s: %s -> %s",
            type(event).__name__,
            type(self._state).__name__,
            type(step.state).__name__,
        )
        self._state = step.state
        for command in step.commands:
            self._execute(command)
        return self._state

    def _execute(self, command: Command) -> None:
        if isinstance(command, ClearBuffer):
            with self._lock:
                self._chunks = []
        elif isinstance(command, StartCapture):
            self._start_capture()
        elif isinstance(command, StopCapture):
            self._stop_capture()
        elif isinstance(command, CallGateway):
            self._call_gateway(command)
        elif isinstance(command, PersistSession):
            self._state = Saved(self.store.add(command.session))
        elif isinstance(command, ShowHistory):
            if self._on_show_history is not None:
                self._on_show_history()

    def _start_capture(self) -> None:
        try:
            self.capture.start(self._on_capture_event)
        except Exception as exc:
            logger.warning("Microphone unavailable: %s", exc)
            self.dispatch(CaptureFailed(str(exc)))
            return
        self.dispatch(CaptureStarted())

    def _stop_capture(self) -> None:
        if isinstance(self._state, Recording):
            self.capture.stop()
            return
        self.capture.abort()

    def _on_capture_event(self, event: Any) -> None:
        if event.kind == "chunk":
            with self._lock:
                if isinstance(self._state, Recording):
                    self._chunks.append(event.data)
            return
        if not isinstance(self._state, Recording):
            return
        if event.kind == "stopped":
            with self._lock:
                chunks = list(self._chunks)
            try:
                audio = self.capture.encode(chunks)
            except Exception as exc:
                logger.warning("Failed to encode recording: %s", exc)
                self.dispatch(CaptureFailed(str(exc)))
                return
            self.dispatch(AudioReady(audio, self.capture.mime_type))
        elif event.kind == "error":
            self.dispatch(CaptureFailed(event.message or ""))

    def _call_gateway(self, command: CallGateway) -> None:
        try:
            draft = self.gateway.transcribe_and_extract(command.audio, command.mime_type)
        except Exception as exc:
            logger.error("Gemini processing error: %s", exc)
            self.dispatch(GatewayFailed(str(exc)))
            return
        self.dispatch(GatewaySucceeded(draft))

    def start(self) -> State:
        return self.dispatch(Start())

    def stop(self) -> State:
        return self.dispatch(Stop())

    def submit(self, audio: bytes, mime_type: str) -> State:
        return self.dispatch(Submit(audio, mime_type))

    def save(self) -> State:
        return self.dispatch(Save(self._today()))

    def discard(self) -> State:
        return self.dispatch(Discard())

    def retry(self) -> State:
        return self.dispatch(Retry())

    def teardown(self) -> None:
        """Release the device if still held and forget any buffered audio."""
        if isinstance(self._state, Recording):
            self.capture.abort()
            self._state = Idle()
        with self._lock:
            self._chunks = []
