# main.py
import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from playwright.async_api import async_playwright

from config import (
    URL,
    HEADLESS,
    VIEWPORT,
    RECORDINGS_DIR,
    SESSIONS_DIR,
    STOP_HOTKEY,
    CAPTURE_HOTKEY,
    CAPTURE_SELECTOR,
    RENDER_WIDTH,
    RENDER_TIMEOUT_MS,
    PDF_FORMAT,
    ANTHROPIC_API_KEY,
    DESCRIBE_MODEL,
    LOG_LEVEL,
)

from recorder.actions import ActionValidationError
from recorder.bridge import BrowserEventSource
from recorder.engine import ActionRecorder
from recorder.writer import JsonlWriter, read_action_log
from report.describe import AnthropicDescriber, annotate
from report.export import (
    ExportError,
    ExportSnapshot,
    artifact_for,
    decode_json,
    export_html,
    export_json,
    export_pdf,
    save_artifact,
)
from report.render import BrowserRenderer
from report.timeline import reconstruct, total_duration_seconds
from store.sessions import FileSessionStore, NewSession

logger = logging.getLogger("action-recorder")

FORMATS = ("json", "html", "pdf")

# --------------------------------------------------------------------
# Record
# --------------------------------------------------------------------

async def record(title: Optional[str], description: Optional[str]) -> int:
    from recorder.hotkey import HotkeySignal, attach_hotkey

    writer = JsonlWriter(RECORDINGS_DIR)
    stop_signal = HotkeySignal()
    capture_signal = HotkeySignal()
    attach_hotkey(STOP_HOTKEY, stop_signal)
    attach_hotkey(CAPTURE_HOTKEY, capture_signal)
    print(f"⏺  Recording started. Stop: {STOP_HOTKEY}  Capture: {CAPTURE_HOTKEY}")

    try:
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=HEADLESS, args=["--start-maximized"])
            context = await browser.new_context(viewport=VIEWPORT)
            page = await context.new_page()
            page.on("console", lambda msg: logger.debug("[console] %s: %s", msg.type, msg.text))

            # install before navigation so every document preloads the capture script
            source = BrowserEventSource(page, CAPTURE_SELECTOR)
            await source.install()
            recorder = ActionRecorder(source=source, log=writer)
            recorder.start()

            print(f"→ navigating to: {URL}")
            await page.goto(URL, wait_until="domcontentloaded")

            while not stop_signal.triggered:
                if capture_signal.consume():
                    if await source.request_capture():
                        print(f"📸 Captured {CAPTURE_SELECTOR}")
                    else:
                        print(f"⚠️  Nothing to capture: {CAPTURE_SELECTOR} not on page")
                await asyncio.sleep(0.1)

            recorder.stop()
            await source.drain()
            await context.close()
            await browser.close()
    finally:
        writer.close()

    actions = recorder.snapshot()
    print(f"💾 Action log with {writer.count} events → {writer.path}")
    if not actions:
        print("ℹ️  No actions recorded; nothing saved.")
        return 0

    store = FileSessionStore(SESSIONS_DIR)
    session = store.create(NewSession(
        title=title or f"Recording {actions[0].moment.astimezone():%Y-%m-%d %H:%M:%S}",
        description=description,
        actions=list(actions),
    ))
    print(f"💾 Saved session {session.id} ({session.actions_count} actions)")
    return 0

# --------------------------------------------------------------------
# Export
# --------------------------------------------------------------------

def load_snapshot(ref: str, store: FileSessionStore) -> Optional[ExportSnapshot]:
    if os.path.isfile(ref):
        if ref.endswith(".jsonl"):
            return ExportSnapshot.of(read_action_log(ref))
        with open(ref, "rb") as f:
            return decode_json(f.read())
    session = store.get_by_id(ref)
    if session is None:
        return None
    return ExportSnapshot.from_session(session)


async def write_exports(snap: ExportSnapshot, formats: List[str], out_dir: str) -> List[str]:
    paths = []
    if "json" in formats:
        paths.append(save_artifact(artifact_for(snap, "json", export_json(snap)), out_dir))
    if "html" in formats:
        paths.append(save_artifact(artifact_for(snap, "html", export_html(snap)), out_dir))
    if "pdf" in formats:
        try:
            renderer = BrowserRenderer(width=RENDER_WIDTH, timeout_ms=RENDER_TIMEOUT_MS, pdf_format=PDF_FORMAT)
            async with renderer:
                pdf = await export_pdf(snap, renderer)
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"PDF export failed: {e}") from e
        paths.append(save_artifact(artifact_for(snap, "pdf", pdf), out_dir))
    return paths


def run_export(args) -> int:
    store = FileSessionStore(SESSIONS_DIR)
    try:
        snap = load_snapshot(args.source, store)
    except (ActionValidationError, ValueError) as e:
        print(f"⚠️  Cannot read {args.source}: {e}", file=sys.stderr)
        return 1
    if snap is None:
        print(f"⚠️  Recording not found: {args.source}", file=sys.stderr)
        return 1
    if not snap.actions:
        print("⚠️  No actions to export. Record some actions first.", file=sys.stderr)
        return 1

    if args.title or args.description:
        snap = ExportSnapshot.of(
            snap.actions,
            title=args.title or snap.title,
            description=args.description or snap.description,
            identifier=snap.identifier,
        )
    if args.describe:
        describer = AnthropicDescriber(ANTHROPIC_API_KEY, model=DESCRIBE_MODEL)
        if not describer.available:
            print("ℹ️  ANTHROPIC_API_KEY not set; using built-in descriptions.")
        snap = ExportSnapshot.of(
            annotate(snap.actions, describer),
            title=snap.title,
            description=snap.description,
            generated_at=snap.generated_at,
            identifier=snap.identifier,
        )

    formats = list(FORMATS) if args.format == "all" else [args.format]
    try:
        paths = asyncio.run(write_exports(snap, formats, args.out))
    except ExportError as e:
        print(f"⚠️  Export failed: {e}", file=sys.stderr)
        return 1
    for path in paths:
        print(f"💾 {path}")
    return 0

# --------------------------------------------------------------------
# Sessions
# --------------------------------------------------------------------

def run_sessions(args) -> int:
    store = FileSessionStore(SESSIONS_DIR)

    if args.action == "list":
        sessions = store.list_all()
        if not sessions:
            print("No recordings saved yet.")
        for s in sessions:
            shared = " [shared]" if s.is_shared else ""
            print(f"{s.id}  {s.created_at.astimezone():%Y-%m-%d %H:%M}  {s.actions_count:>4} actions  {s.title}{shared}")
        return 0

    if not args.id:
        print(f"⚠️  'sessions {args.action}' needs a session id", file=sys.stderr)
        return 1

    if args.action == "delete":
        if not store.delete(args.id):
            print(f"⚠️  Recording not found: {args.id}", file=sys.stderr)
            return 1
        print(f"🗑  Deleted {args.id}")
        return 0

    if args.action in ("share", "unshare"):
        session = store.set_shared(args.id, args.action == "share")
    else:
        session = store.get_by_id(args.id)
    if session is None:
        print(f"⚠️  Recording not found: {args.id}", file=sys.stderr)
        return 1

    if args.action == "share":
        print(f"🔗 Shared at {session.share_url}")
        return 0
    if args.action == "unshare":
        print(f"🔒 {session.id} is no longer shared")
        return 0

    print(session.title)
    if session.description:
        print(session.description)
    print(f"{session.actions_count} steps • {total_duration_seconds(session.actions)} seconds")
    for entry in reconstruct(session.actions):
        bar = "█" * max(1, int(entry.weight_percent // 5))
        print(f"  step {entry.step_index:>3} → {entry.step_index + 1:<3} {bar:<20} {entry.duration_formatted}")
    return 0

# --------------------------------------------------------------------
# Main
# --------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="action-recorder",
        description="Record clicks, typing and page captures, then export them as JSON, HTML or PDF",
    )
    sub = parser.add_subparsers(dest="command")

    rec = sub.add_parser("record", help="Record a session in a browser window")
    rec.add_argument("-t", "--title", help="Session title")
    rec.add_argument("-d", "--description", help="Session description")

    exp = sub.add_parser("export", help="Export a saved session or recording file")
    exp.add_argument("source", help="Session id, export .json or action log .jsonl")
    exp.add_argument("-f", "--format", choices=FORMATS + ("all",), default="all")
    exp.add_argument("-o", "--out", default=RECORDINGS_DIR, help="Output directory")
    exp.add_argument("-t", "--title", help="Override title")
    exp.add_argument("-d", "--description", help="Override description")
    exp.add_argument("--describe", action="store_true", help="Add AI step descriptions")

    ses = sub.add_parser("sessions", help="Manage saved sessions")
    ses.add_argument("action", choices=("list", "show", "share", "unshare", "delete"))
    ses.add_argument("id", nargs="?")
    return parser


def run(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "record":
        return asyncio.run(record(args.title, args.description))
    if args.command == "export":
        return run_export(args)
    if args.command == "sessions":
        return run_sessions(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(run())
