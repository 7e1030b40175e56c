# config.py
import os
from pathlib import Path

from dotenv import load_dotenv

from report.describe import DEFAULT_MODEL

load_dotenv(Path(__file__).resolve().parent / ".env")


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


URL = os.getenv("RECORDER_URL", "about:blank")
HEADLESS = _flag("RECORDER_HEADLESS", False)
VIEWPORT = {
    "width": _int("RECORDER_VIEWPORT_WIDTH", 1600),
    "height": _int("RECORDER_VIEWPORT_HEIGHT", 900),
}

RECORDINGS_DIR = os.getenv("RECORDER_RECORDINGS_DIR", "recordings")
SESSIONS_DIR = os.getenv("RECORDER_SESSIONS_DIR", os.path.join(RECORDINGS_DIR, "sessions"))

STOP_HOTKEY = os.getenv("RECORDER_STOP_HOTKEY", "ctrl+shift+s")
CAPTURE_HOTKEY = os.getenv("RECORDER_CAPTURE_HOTKEY", "ctrl+shift+c")
CAPTURE_SELECTOR = os.getenv("RECORDER_CAPTURE_SELECTOR", "body")

RENDER_WIDTH = _int("RECORDER_RENDER_WIDTH", 800)
RENDER_TIMEOUT_MS = _int("RECORDER_RENDER_TIMEOUT_MS", 10_000)
PDF_FORMAT = os.getenv("RECORDER_PDF_FORMAT", "A4")

# Description service; an empty key means the offline fallback text is used
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
DESCRIBE_MODEL = os.getenv("RECORDER_DESCRIBE_MODEL") or DEFAULT_MODEL

LOG_LEVEL = os.getenv("RECORDER_LOG_LEVEL", "INFO").upper()
