# recorder/writer.py
import logging
import os
from datetime import datetime, timezone
from typing import List

import orjson

from .actions import ActionValidationError, BaseAction, dump_action, validate_action
from .engine import build_sequence

logger = logging.getLogger(__name__)


class JsonlWriter:
    """Append-only log of every accepted action, one JSON object per line."""

    def __init__(self, out_dir: str):
        os.makedirs(out_dir, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.path = os.path.join(out_dir, f"session-{stamp}.jsonl")
        self._f = open(self.path, "ab")
        self.count = 0

    def write(self, action: BaseAction):
        self._f.write(orjson.dumps(dump_action(action)))
        self._f.write(b"\n")
        self._f.flush()
        self.count += 1
        if self.count <= 3:
            logger.debug("action log %s: %d entries", self.path, self.count)

    def close(self):
        try:
            self._f.flush()
        finally:
            self._f.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def read_action_log(path: str) -> List[BaseAction]:
    """Rebuild a recording from its log, re-applying the coalescing rule."""
    raw = []
    with open(path, "rb") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                raw.append(validate_action(orjson.loads(line)))
            except orjson.JSONDecodeError as e:
                raise ActionValidationError(f"{path}:{lineno}: not JSON ({e})") from e
            except ActionValidationError as e:
                raise ActionValidationError(f"{path}:{lineno}: {e}") from e
    return build_sequence(raw)
