# report/export.py
"""JSON, HTML and PDF exports of a recorded action sequence.

Every export works on an ``ExportSnapshot``: an immutable copy of the actions
taken when the export is requested, so a recording that keeps going (or a
session that gets edited) cannot change a document halfway through.
"""
import asyncio
import base64
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import orjson
from jinja2 import Environment, FileSystemLoader, select_autoescape

from recorder.actions import (
    BaseAction,
    CaptureAction,
    dump_action,
    parse_timestamp,
    validate_actions,
)
from store.sessions import Session

from .describe import synthesize_description
from .render import PDF_FORMAT, CaptureRenderer, PdfPrinter, capture_max_height_mm
from .timeline import reconstruct, total_duration_seconds

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Action Recording"
FILENAME_PREFIX = "action-recording"
MIME_TYPES = {
    "json": "application/json",
    "html": "text/html",
    "pdf": "application/pdf",
}

_env = Environment(
    loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
    autoescape=select_autoescape(enabled_extensions=("html", "j2")),
    trim_blocks=True,
    lstrip_blocks=True,
)


class ExportError(Exception):
    """The export as a whole could not be produced."""


class EmptyExportError(ExportError):
    pass


class ExportCancelled(ExportError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ExportSnapshot:
    actions: Tuple[BaseAction, ...]
    title: str = ""
    description: str = ""
    generated_at: datetime = field(default_factory=_utcnow)
    identifier: Optional[str] = None

    @classmethod
    def of(
        cls,
        actions: Sequence[BaseAction],
        title: str = "",
        description: str = "",
        generated_at: Optional[datetime] = None,
        identifier: Optional[str] = None,
    ) -> "ExportSnapshot":
        return cls(
            actions=tuple(actions),
            title=title or "",
            description=description or "",
            generated_at=generated_at or _utcnow(),
            identifier=identifier,
        )

    @classmethod
    def from_session(cls, session: Session, generated_at: Optional[datetime] = None) -> "ExportSnapshot":
        return cls.of(
            session.actions,
            title=session.title,
            description=session.description or "",
            generated_at=generated_at,
            identifier=session.id,
        )

    @property
    def display_title(self) -> str:
        return self.title or DEFAULT_TITLE


ExportSource = Union[ExportSnapshot, Session]


def take_snapshot(source: ExportSource, generated_at: Optional[datetime] = None) -> ExportSnapshot:
    if isinstance(source, Session):
        snap = ExportSnapshot.from_session(source, generated_at)
    elif isinstance(source, ExportSnapshot):
        snap = source
    else:
        raise TypeError(f"cannot export {type(source).__name__}")
    if not snap.actions:
        raise EmptyExportError("nothing to export: the action sequence is empty")
    return snap


@dataclass(frozen=True)
class ExportArtifact:
    content: Union[str, bytes]
    filename: str
    mime_type: str


def export_filename(ext: str, identifier: Optional[str] = None, now: Optional[datetime] = None) -> str:
    if identifier:
        stem = identifier
    else:
        moment = (now or _utcnow()).astimezone(timezone.utc)
        stem = moment.strftime("%Y-%m-%dT%H:%M:%S").replace(":", "-")
    return f"{FILENAME_PREFIX}-{stem}.{ext}"


def artifact_for(snap: ExportSnapshot, ext: str, content: Union[str, bytes]) -> ExportArtifact:
    return ExportArtifact(
        content=content,
        filename=export_filename(ext, snap.identifier, snap.generated_at),
        mime_type=MIME_TYPES[ext],
    )


def save_artifact(artifact: ExportArtifact, out_dir: str) -> str:
    path = os.path.join(out_dir, artifact.filename)
    data = artifact.content
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        os.makedirs(out_dir, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise ExportError(f"cannot write {path}: {e}") from e
    return path


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def local_time(action: BaseAction) -> str:
    return action.moment.astimezone().strftime("%H:%M:%S")


def _table_rows(actions: Sequence[BaseAction]) -> List[dict]:
    return [
        {
            "index": i,
            "type": a.type,
            "text": synthesize_description(a),
            "time": local_time(a),
            "note": a.description,
        }
        for i, a in enumerate(actions, start=1)
    ]


# --------------------------------------------------------------------
# JSON
# --------------------------------------------------------------------

def export_json(source: ExportSource, generated_at: Optional[datetime] = None) -> str:
    snap = take_snapshot(source, generated_at)
    payload = {
        "timestamp": _iso(snap.generated_at),
        "title": snap.title,
        "description": snap.description,
        "actions": [dump_action(a) for a in snap.actions],
    }
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8")


def decode_json(text: Union[str, bytes]) -> ExportSnapshot:
    """Inverse of ``export_json``; also accepts a bare list of actions."""
    data = orjson.loads(text)
    if isinstance(data, list):
        data = {"actions": data}
    if not isinstance(data, dict) or not isinstance(data.get("actions"), list):
        raise ValueError("export document has no 'actions' list")
    generated_at = None
    if data.get("timestamp"):
        generated_at = parse_timestamp(data["timestamp"])
    return ExportSnapshot.of(
        validate_actions(data["actions"]),
        title=data.get("title") or "",
        description=data.get("description") or "",
        generated_at=generated_at,
    )


# --------------------------------------------------------------------
# HTML
# --------------------------------------------------------------------

def export_html(source: ExportSource, generated_at: Optional[datetime] = None) -> str:
    snap = take_snapshot(source, generated_at)
    template = _env.get_template("report.html.j2")
    return template.render(
        title=snap.display_title,
        description=snap.description,
        generated=snap.generated_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
        rows=_table_rows(snap.actions),
        timeline=reconstruct(snap.actions),
        total_seconds=total_duration_seconds(snap.actions),
        year=snap.generated_at.year,
    )


# --------------------------------------------------------------------
# PDF
# --------------------------------------------------------------------

@dataclass(frozen=True)
class CaptureResult:
    step: int
    timestamp: str
    image: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None

    @property
    def data_uri(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.image or b"").decode("ascii")


def _failure_text(exc: BaseException) -> str:
    message = str(exc).strip()
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


async def render_captures(
    actions: Sequence[BaseAction],
    renderer: CaptureRenderer,
    cancel: Optional[asyncio.Event] = None,
) -> List[CaptureResult]:
    """Render non-empty captures one at a time, in step order.

    A failing capture becomes an error entry and the loop moves on. A set
    ``cancel`` event stops the loop before the next capture starts; a capture
    is only added once its image (or error) is complete.
    """
    results = []
    for step, action in enumerate(actions, start=1):
        if not isinstance(action, CaptureAction) or not action.content:
            continue
        if cancel is not None and cancel.is_set():
            raise ExportCancelled(f"export cancelled before step {step}")
        try:
            image = await renderer.render(action.content)
            if not image:
                raise ValueError("renderer returned no image data")
        except Exception as e:
            logger.warning("capture at step %d failed to render: %s", step, e)
            results.append(CaptureResult(step, action.timestamp, error=_failure_text(e)))
            continue
        results.append(CaptureResult(step, action.timestamp, image=image))
    return results


def build_print_document(
    snap: ExportSnapshot,
    captures: Sequence[CaptureResult],
    pdf_format: str = PDF_FORMAT,
) -> str:
    template = _env.get_template("print.html.j2")
    return template.render(
        title=snap.display_title,
        description=snap.description,
        generated=snap.generated_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
        rows=_table_rows(snap.actions),
        captures=captures,
        image_max_height_mm=capture_max_height_mm(pdf_format),
    )


async def export_pdf(
    source: ExportSource,
    renderer: CaptureRenderer,
    printer: Optional[PdfPrinter] = None,
    cancel: Optional[asyncio.Event] = None,
    generated_at: Optional[datetime] = None,
    pdf_format: Optional[str] = None,
) -> bytes:
    snap = take_snapshot(source, generated_at)
    if printer is None:
        printer = renderer  # BrowserRenderer does both
    if pdf_format is None:
        pdf_format = getattr(printer, "pdf_format", PDF_FORMAT)
    captures = await render_captures(snap.actions, renderer, cancel)
    failed = sum(1 for c in captures if not c.ok)
    if failed:
        logger.info("%d of %d captures replaced by error markers", failed, len(captures))

    document = build_print_document(snap, captures, pdf_format)
    try:
        return await printer.print_pdf(document)
    except Exception as e:
        raise ExportError(f"PDF export failed: {e}") from e
