# recorder/actions.py
import math
from datetime import datetime, timezone
from typing import Annotated, Any, Iterable, List, Literal, Optional, Sequence, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    TypeAdapter,
    ValidationError,
    field_validator,
)

ActionType = Literal["click", "type", "capture"]


class ActionValidationError(ValueError):
    """Raised when raw data cannot be turned into an Action."""


def utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Coordinates(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    x: Union[StrictInt, StrictFloat]
    y: Union[StrictInt, StrictFloat]

    @field_validator("x", "y")
    @classmethod
    def _finite(cls, v):
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("coordinate must be finite")
        return v


class ElementInfo(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    id: Optional[str] = None
    text: Optional[str] = None  # full trimmed innerText, never truncated here
    tag_name: Optional[str] = Field(None, alias="tagName")


class BaseAction(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    timestamp: str = Field(default_factory=utc_timestamp)
    description: Optional[str] = None  # derived, never authoritative

    @field_validator("timestamp", mode="before")
    @classmethod
    def _iso_timestamp(cls, v):
        if isinstance(v, datetime):
            if v.tzinfo is None:
                v = v.replace(tzinfo=timezone.utc)
            return v.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        if not isinstance(v, str):
            raise ValueError("timestamp must be an ISO-8601 string")
        try:
            parse_timestamp(v)
        except ValueError:
            raise ValueError(f"unparseable timestamp: {v!r}")
        return v

    @property
    def moment(self) -> datetime:
        return parse_timestamp(self.timestamp)


class ClickAction(BaseAction):
    type: Literal["click"] = "click"
    coordinates: Coordinates
    element: Optional[ElementInfo] = None


class TypeTextAction(BaseAction):
    type: Literal["type"] = "type"
    text: str


class CaptureAction(BaseAction):
    type: Literal["capture"] = "capture"
    content: str  # serialized outerHTML of the capture target


Action = Annotated[
    Union[ClickAction, TypeTextAction, CaptureAction],
    Field(discriminator="type"),
]

_ACTION = TypeAdapter(Action)


def validate_action(raw: Any) -> BaseAction:
    if isinstance(raw, BaseAction):
        return raw
    try:
        return _ACTION.validate_python(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'action'}: {err['msg']}"
            for err in e.errors()
        )
        raise ActionValidationError(f"invalid action ({problems})") from e


def validate_actions(raw: Iterable[Any]) -> List[BaseAction]:
    """Validate a whole sequence; any bad element rejects the lot."""
    out = []
    for i, item in enumerate(raw):
        try:
            out.append(validate_action(item))
        except ActionValidationError as e:
            raise ActionValidationError(f"action #{i + 1}: {e}") from e
    return out


def dump_action(action: BaseAction) -> dict:
    return action.model_dump(mode="json", by_alias=True, exclude_none=True)


def actions_count(actions: Sequence[BaseAction]) -> int:
    return len(actions)


def has_captures(actions: Sequence[BaseAction]) -> bool:
    return any(isinstance(a, CaptureAction) for a in actions)
