"""Builders and test doubles shared by the test modules."""

from datetime import datetime, timedelta, timezone

from recorder.actions import CaptureAction, ClickAction, Coordinates, ElementInfo, TypeTextAction

BASE_TIME = datetime(2024, 5, 1, 9, 30, 0, tzinfo=timezone.utc)

# 1x1 transparent PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


def ts(offset_ms: int = 0) -> str:
    moment = BASE_TIME + timedelta(milliseconds=offset_ms)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def click(offset_ms=0, x=10, y=20, **element):
    return ClickAction(
        timestamp=ts(offset_ms),
        coordinates=Coordinates(x=x, y=y),
        element=ElementInfo(**element) if element else None,
    )


def typed(text, offset_ms=0):
    return TypeTextAction(timestamp=ts(offset_ms), text=text)


def capture(content="<div>state</div>", offset_ms=0):
    return CaptureAction(timestamp=ts(offset_ms), content=content)


class FakeRenderer:
    """Returns fixed PNG bytes; fragments listed in ``fail_on`` raise."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.rendered = []

    async def render(self, html):
        self.rendered.append(html)
        if html in self.fail_on:
            raise RuntimeError(f"cannot render {html}")
        return PNG_BYTES


class FakePrinter:
    def __init__(self, fail=False):
        self.fail = fail
        self.documents = []

    async def print_pdf(self, html):
        self.documents.append(html)
        if self.fail:
            raise OSError("printer unavailable")
        return b"%PDF-1.4 fake"
