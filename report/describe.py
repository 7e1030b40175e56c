# report/describe.py
"""Human-readable step descriptions.

``synthesize_description`` is the deterministic, offline text used in report
tables and as the fallback whenever the description service is missing or
fails. ``AnthropicDescriber`` is the optional service client; whether it is
usable is decided once, when it is constructed.
"""
import logging
from typing import Iterable, List, Optional, Protocol

from recorder.actions import BaseAction, CaptureAction, ClickAction, TypeTextAction

logger = logging.getLogger(__name__)

ELEMENT_TEXT_LIMIT = 20
DEFAULT_MODEL = "claude-sonnet-4-20250514"

DESCRIBE_PROMPT = """Describe the following user action in natural language as a step in a tutorial. Be concise but descriptive:

{details}

Generate a short, clear instruction describing this action as if you were writing a step in a how-to guide."""


class DescriptionServiceError(Exception):
    """The description service is unavailable or returned nothing usable."""


class Describer(Protocol):
    def describe(self, action: BaseAction) -> str: ...


def _number(v) -> str:
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


def element_ref(action: ClickAction) -> str:
    el = action.element
    if el is not None and el.id:
        return f"#{el.id}"
    if el is not None and el.text:
        text = el.text[:ELEMENT_TEXT_LIMIT]
        if len(el.text) > ELEMENT_TEXT_LIMIT:
            text += "..."
        return f'"{text}"'
    if el is not None and el.tag_name:
        return el.tag_name
    return "element"


def synthesize_description(action: BaseAction) -> str:
    if isinstance(action, ClickAction):
        x, y = _number(action.coordinates.x), _number(action.coordinates.y)
        return f"Click on {element_ref(action)} at ({x}, {y})"
    if isinstance(action, TypeTextAction):
        return f'Type "{action.text}" in input field'
    if isinstance(action, CaptureAction):
        return f"Capture page state ({len(action.content)} chars)"
    return f"{getattr(action, 'type', None) or 'unknown'} action"


class FallbackDescriber:
    def describe(self, action: BaseAction) -> str:
        return synthesize_description(action)


def build_prompt(action: BaseAction) -> str:
    lines = []
    if isinstance(action, ClickAction):
        el = action.element
        lines.append("Action Type: Mouse Click")
        lines.append(f"Coordinates: ({_number(action.coordinates.x)}, {_number(action.coordinates.y)})")
        lines.append(f"Element: {(el.tag_name if el else None) or 'Unknown'}")
        if el is not None and el.id:
            lines.append(f"Element ID: {el.id}")
        if el is not None and el.text:
            lines.append(f'Element Text: "{el.text}"')
    elif isinstance(action, TypeTextAction):
        lines.append("Action Type: Text Input")
        lines.append(f'Text Entered: "{action.text}"')
    elif isinstance(action, CaptureAction):
        lines.append("Action Type: HTML Capture")
        lines.append(f"Content Size: {len(action.content)} characters")
    return DESCRIBE_PROMPT.format(details="\n".join(lines))


class AnthropicDescriber:
    def __init__(self, api_key: Optional[str], model: str = DEFAULT_MODEL, max_tokens: int = 150):
        self.model = model
        self.max_tokens = max_tokens
        self._client = None
        if api_key:
            import anthropic

            self._client = anthropic.Anthropic(api_key=api_key)

    @property
    def available(self) -> bool:
        return self._client is not None

    def describe(self, action: BaseAction) -> str:
        if self._client is None:
            raise DescriptionServiceError("no API key configured")
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": build_prompt(action)}],
            )
        except Exception as e:
            raise DescriptionServiceError(f"description request failed: {e}") from e

        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        ).strip()
        if not text:
            raise DescriptionServiceError("empty description")
        return text


def describe_action(action: BaseAction, describer: Optional[Describer] = None) -> str:
    if describer is None:
        return synthesize_description(action)
    try:
        text = describer.describe(action)
    except Exception as e:
        logger.warning("description service failed, using fallback: %s", e)
        return synthesize_description(action)
    return text or synthesize_description(action)


def annotate(actions: Iterable[BaseAction], describer: Optional[Describer] = None) -> List[BaseAction]:
    """Copies of ``actions`` with ``description`` filled in; nothing else changes."""
    return [
        a.model_copy(update={"description": describe_action(a, describer)})
        for a in actions
    ]
