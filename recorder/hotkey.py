# recorder/hotkey.py
import threading

import keyboard  # requires admin on Windows, root on Linux


class HotkeySignal:
    """Flag set from the keyboard hook thread and polled by the asyncio loop."""

    def __init__(self):
        self._count = 0
        self._lock = threading.Lock()

    @property
    def triggered(self) -> bool:
        with self._lock:
            return self._count > 0

    def trigger(self):
        with self._lock:
            self._count += 1

    def consume(self) -> bool:
        """Take one pending trigger, if any."""
        with self._lock:
            if self._count == 0:
                return False
            self._count -= 1
            return True


def attach_hotkey(hotkey: str, signal: HotkeySignal):
    t = threading.Thread(
        target=lambda: keyboard.add_hotkey(hotkey, signal.trigger), daemon=True
    )
    t.start()
    return t
