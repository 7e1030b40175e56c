# recorder/engine.py
"""Recording state machine.

The engine owns the in-memory action sequence for one recording. Live DOM
listeners live behind an ``EventSource`` (see ``recorder.bridge``) so the
state machine and the coalescing rule run without any browser present.
"""
import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from .actions import (
    ActionValidationError,
    BaseAction,
    CaptureAction,
    TypeTextAction,
    validate_action,
)

logger = logging.getLogger(__name__)

EventSink = Callable[[Dict[str, Any]], None]


class RecorderState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


class EventSource(Protocol):
    def attach(self, sink: EventSink) -> None: ...

    def detach(self) -> None: ...


class ActionLog(Protocol):
    def write(self, action: BaseAction) -> None: ...


def append_action(actions: Sequence[BaseAction], action: BaseAction) -> List[BaseAction]:
    """Return ``actions`` with ``action`` appended under the coalescing rule.

    A text-entry action directly after another text-entry action replaces it:
    every keystroke event already carries the field's full current value, so
    the newest one wins wholesale. Clicks and captures always append.
    """
    out = list(actions)
    if isinstance(action, TypeTextAction) and out and isinstance(out[-1], TypeTextAction):
        out[-1] = action
    else:
        out.append(action)
    return out


def build_sequence(actions: Iterable[BaseAction]) -> List[BaseAction]:
    seq: List[BaseAction] = []
    for action in actions:
        seq = append_action(seq, action)
    return seq


class ActionRecorder:
    def __init__(self, source: Optional[EventSource] = None, log: Optional[ActionLog] = None):
        self._source = source
        self._log = log
        self._state = RecorderState.IDLE
        self._actions: List[BaseAction] = []

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RecorderState.RECORDING

    @property
    def actions(self) -> Tuple[BaseAction, ...]:
        return tuple(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def start(self):
        if self.is_recording:
            return
        self._actions = []
        self._state = RecorderState.RECORDING
        if self._source is not None:
            self._source.attach(self.handle_event)
        logger.info("recording started")

    def stop(self):
        if not self.is_recording:
            return
        if self._source is not None:
            self._source.detach()
        self._state = RecorderState.IDLE
        logger.info("recording stopped with %d actions", len(self._actions))

    def load(self, actions: Iterable[BaseAction]):
        """Replace the sequence with a persisted one; only allowed while idle."""
        if self.is_recording:
            raise RuntimeError("cannot load a sequence while recording")
        self._actions = [validate_action(a) for a in actions]

    def snapshot(self) -> Tuple[BaseAction, ...]:
        """Frozen copy for export; later recording never mutates it."""
        return tuple(self._actions)

    def add_action(self, action: BaseAction) -> bool:
        if not self.is_recording:
            logger.debug("ignoring %s action while idle", action.type)
            return False
        self._actions = append_action(self._actions, action)
        if self._log is not None:
            self._log.write(action)
        return True

    def capture(self, content: Optional[str]) -> Optional[CaptureAction]:
        # missing target -> nothing to serialize -> no-op
        if content is None or not self.is_recording:
            return None
        action = CaptureAction(content=content)
        self.add_action(action)
        return action

    def handle_event(self, payload: Dict[str, Any]):
        if not self.is_recording:
            return
        try:
            action = validate_action(payload)
        except ActionValidationError as e:
            kind = payload.get("type") if isinstance(payload, dict) else None
            logger.warning("dropping malformed %s event: %s", kind or "unknown", e)
            return
        self.add_action(action)
