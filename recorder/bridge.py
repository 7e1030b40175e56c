# recorder/bridge.py
import asyncio
import logging
from typing import Any, Dict, Optional

from playwright.async_api import Frame, Page

from .engine import EventSink
from .selectors import recorder_script

logger = logging.getLogger(__name__)

BINDING_NAME = "__actionRecorderBridge"


class BrowserEventSource:
    """Feeds DOM events from every frame of a Playwright page into a sink.

    ``install`` must run before navigation so each new document preloads the
    capture script. ``attach``/``detach`` only flip the in-page listeners and
    are safe to call from synchronous code inside a running event loop.
    """

    def __init__(self, page: Page, capture_selector: str):
        self.page = page
        self.capture_selector = capture_selector
        self._script = recorder_script(capture_selector)
        self._sink: Optional[EventSink] = None
        self._tasks = set()

    async def install(self):
        async def record_event_binding(source, data: Dict[str, Any]):
            if self._sink is None:
                return
            self._sink(data)

        await self.page.expose_binding(BINDING_NAME, record_event_binding)
        await self.page.context.add_init_script(self._script)

        self.page.on("frameattached", lambda fr: self._spawn(self._sync_frame(fr)))
        self.page.on("framenavigated", lambda fr: self._spawn(self._sync_frame(fr)))

    def attach(self, sink: EventSink):
        self._sink = sink
        for fr in self.page.frames:
            self._spawn(self._sync_frame(fr))

    def detach(self):
        self._sink = None
        for fr in self.page.frames:
            self._spawn(self._eval(fr, "window.__actionRecorder && window.__actionRecorder.stop()"))

    async def request_capture(self) -> bool:
        """Ask the top document to serialize the capture target.

        Returns False when the target does not exist (nothing is recorded).
        """
        try:
            ok = await self.page.evaluate(
                "(sel) => !!(window.__actionRecorder && window.__actionRecorder.capture(sel))",
                self.capture_selector,
            )
        except Exception as e:
            logger.warning("capture request failed: %s", e)
            return False
        if not ok:
            logger.info("capture target %r not found; nothing captured", self.capture_selector)
        return bool(ok)

    async def drain(self):
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro):
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _sync_frame(self, fr: Frame):
        # new documents get the script from the init hook; existing ones need it evaluated
        await self._eval(fr, self._script)
        if self._sink is not None:
            await self._eval(fr, "window.__actionRecorder && window.__actionRecorder.start()")

    async def _eval(self, fr: Frame, expression: str):
        try:
            await fr.evaluate(expression)
        except Exception as e:
            logger.debug("frame %s not scriptable: %s", getattr(fr, "url", None), e)
