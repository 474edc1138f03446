"""
Autosave for an open note editor.

Edits are coalesced by a debounce timer into at most one in-flight save. Edits
made while a save is running are picked up by a single follow-up save once it
finishes. Unsaved edits only live in memory until a save succeeds.
"""
import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional

from ..api.logger import get_logger

logger = get_logger("editor.autosave")

DEFAULT_TITLE = "Untitled Note"
DEFAULT_DELAY = 0.3
MAX_CONTENT_BYTES = 5 * 1024 * 1024
MIN_POLL_INTERVAL = 0.005

SaveCallable = Callable[[str, str], Awaitable[object]]


class AutosaveController:
    """
    Tracks the editor's dirty/saving state and issues saves through save(title, content).

    Must be used from within a running asyncio event loop.
    """

    def __init__(
        self,
        save: SaveCallable,
        title: str = "",
        content: str = "",
        delay: float = DEFAULT_DELAY,
        max_content_bytes: int = MAX_CONTENT_BYTES,
        last_saved: Optional[datetime] = None,
    ):
        self._save = save
        self.title = title
        self.content = content
        self.delay = delay
        self.max_content_bytes = max_content_bytes
        self.has_changes = False
        self.is_saving = False
        self.last_saved = last_saved
        self.last_error: Optional[str] = None
        self._revision = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._inflight: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def status(self):
        """"saving", "unsaved", "error" or "saved", for the editor toolbar."""
        if self.is_saving:
            return "saving"
        if self.has_changes:
            return "error" if self.last_error else "unsaved"
        return "saved"

    def edit(self, title: Optional[str] = None, content: Optional[str] = None):
        """Records a local change and restarts the debounce window."""
        if self._closed:
            raise RuntimeError("Autosave controller is closed")
        if title is not None:
            self.title = title
        if content is not None:
            self.content = content
        self.has_changes = True
        self._revision += 1
        self._schedule()

    async def save_now(self):
        """Saves immediately if there are unsaved changes. Returns True when everything is saved."""
        while self._inflight is not None:
            await asyncio.shield(self._inflight)
        self._cancel_timer()
        if not self.has_changes:
            return True
        self._inflight = asyncio.ensure_future(self._run_save())
        return await asyncio.shield(self._inflight)

    def close(self):
        """Stops scheduling saves. A save already in flight is left to finish."""
        self._closed = True
        self._cancel_timer()

    async def wait_idle(self):
        """Waits until no save is scheduled or running."""
        while self._timer is not None or self._inflight is not None:
            if self._inflight is not None:
                await asyncio.shield(self._inflight)
            else:
                await asyncio.sleep(max(self.delay / 4, MIN_POLL_INTERVAL))

    def _schedule(self):
        self._cancel_timer()
        if self._closed or self.is_saving or self._inflight is not None:
            # The running save schedules the follow-up when it finishes
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self):
        self._timer = None
        if self._closed or self._inflight is not None or not self.has_changes:
            return
        self._inflight = asyncio.ensure_future(self._run_save())

    async def _run_save(self):
        self.is_saving = True
        revision = self._revision
        title = self.title.strip() or DEFAULT_TITLE
        content = self.content
        succeeded = False
        try:
            size = len(content.encode("utf-8"))
            if size > self.max_content_bytes:
                self.last_error = "Document is too large to save"
                logger.warning("Not saving %d byte document (limit %d)", size, self.max_content_bytes)
                return False
            await self._save(title, content)
        except Exception as exc:
            self.last_error = str(exc) or exc.__class__.__name__
            logger.warning("Autosave failed: %s", self.last_error)
            return False
        else:
            succeeded = True
            self.last_saved = datetime.now()
            self.last_error = None
            if self._revision == revision:
                self.has_changes = False
            return True
        finally:
            self.is_saving = False
            self._inflight = None
            edited_meanwhile = self._revision != revision
            if self.has_changes and (succeeded or edited_meanwhile):
                self._schedule()
