"""Debounced, single-flight persistence of the edited schema.

Status is derived rather than stored:

    SAVING   a save call is in flight
    SAVED    the current schema serializes identically to the last saved one
    UNSAVED  anything else

Every tracked edit restarts the debounce window; when it elapses the
latest schema is saved. If the window elapses while a save is still in
flight, the controller remembers that and saves again as soon as the
first call returns, so edits are coalesced but never dropped. An edit made
during a save is always scheduled, even one that reverts to the snapshot
being replaced. A failed save, whatever the error, leaves the status at
UNSAVED with the error in last_error; the next edit or flush() retries.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Protocol

from .auth import SessionContext
from .config import get_settings
from .errors import SchemaServiceError
from .schema_model import DatabaseSchema
from .store import DEFAULT_SCHEMA_NAME, SchemaStore

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    SAVED = "saved"
    UNSAVED = "unsaved"
    SAVING = "saving"


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Source of delayed callbacks. Injected so tests can drive time by hand."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


StatusListener = Callable[[SaveStatus], None]


class AutosaveController:
    """Tracks edits and persists them through a SchemaStore."""

    def __init__(
        self,
        store: SchemaStore,
        session: SessionContext,
        *,
        identity: Optional[int] = None,
        name: str = DEFAULT_SCHEMA_NAME,
        debounce: Optional[float] = None,
        scheduler: Optional[Scheduler] = None,
        on_status: Optional[StatusListener] = None,
    ):
        self.store = store
        self.session = session
        self.identity = identity
        self.name = name
        self.debounce = debounce if debounce is not None else get_settings().autosave_debounce_seconds
        self.scheduler = scheduler or LoopScheduler()
        self.last_error: Optional[Exception] = None

        empty = DatabaseSchema()
        self._current: DatabaseSchema = empty
        self._current_text = empty.canonical()
        self._last_saved = self._current_text
        self._timer: Optional[TimerHandle] = None
        self._task: Optional[asyncio.Future] = None
        self._in_flight = False
        self._pending = False
        self._closed = False
        # Bumped by reset(); results of saves started before it are discarded
        self._generation = 0

        self._listeners: List[StatusListener] = [on_status] if on_status else []
        self._reported = self.status

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> SaveStatus:
        if self._in_flight:
            return SaveStatus.SAVING
        if self._current_text == self._last_saved:
            return SaveStatus.SAVED
        return SaveStatus.UNSAVED

    @property
    def is_dirty(self) -> bool:
        return self._current_text != self._last_saved

    @property
    def is_active(self) -> bool:
        """Whether edits are currently eligible for persistence."""
        return (
            not self._closed
            and self.session.has_writer()
            and not self._current.is_empty
        )

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        status = self.status
        if status == self._reported:
            return
        self._reported = status
        logger.debug("Autosave status -> %s", status.value)
        for listener in list(self._listeners):
            listener(status)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def reset(self, schema: DatabaseSchema, identity: Optional[int] = None,
              name: Optional[str] = None) -> None:
        """Adopt a freshly loaded (already persisted) schema."""
        self._cancel_timer()
        self._generation += 1
        self._pending = False
        self._in_flight = False
        self._current = schema
        self._current_text = schema.canonical()
        self._last_saved = self._current_text
        self.identity = identity
        if name is not None:
            self.name = name
        self.last_error = None
        self._notify()

    def track(self, schema: DatabaseSchema) -> None:
        """Record an edit. Synchronous; (re)starts the debounce window."""
        self._current = schema
        self._current_text = schema.canonical()

        if not self.is_active:
            self._cancel_timer()
        elif self._in_flight or self._current_text != self._last_saved:
            # While saving, _last_saved is about to move; always schedule
            self._restart_timer()
        else:
            self._cancel_timer()
        self._notify()

    async def flush(self) -> SaveStatus:
        """Save now instead of waiting for the debounce window."""
        self._cancel_timer()
        self._start_save()
        await self.wait_until_idle()
        return self.status

    async def wait_until_idle(self) -> None:
        """Wait for the in-flight save (and any save queued behind it)."""
        while self._task is not None and not self._task.done():
            await self._task

    def close(self) -> None:
        """Stop scheduling saves. An in-flight save still completes."""
        self._closed = True
        self._cancel_timer()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _restart_timer(self) -> None:
        self._cancel_timer()
        self._timer = self.scheduler.call_later(self.debounce, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self._start_save()

    def _start_save(self) -> None:
        if self._task is not None and not self._task.done():
            # Single flight: the running task picks this up when it returns
            self._pending = True
            return
        self._task = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        while True:
            generation = self._generation
            self._pending = False
            schema, text = self._current, self._current_text
            if text == self._last_saved or not self.is_active:
                return

            self._in_flight = True
            self._notify()
            saved = False
            try:
                record = await self.store.save_schema(
                    self.identity, schema, self.name, self.session.share_token
                )
            except SchemaServiceError as e:
                if generation == self._generation:
                    self.last_error = e
                    logger.warning("Autosave of %r failed: %s", self.name, e)
            except Exception as e:
                if generation == self._generation:
                    self.last_error = e
                    logger.exception("Unexpected error while autosaving %r", self.name)
            else:
                if generation == self._generation:
                    saved = True
                    self._last_saved = text
                    self.last_error = None
                    if self.identity is None and record.identity is not None:
                        self.identity = record.identity
                        logger.info("Created schema %r with id %s", self.name, self.identity)
                else:
                    logger.debug("Discarding save result from a previous schema context")
            finally:
                if generation == self._generation:
                    self._in_flight = False
                    self._notify()

            if self._pending:
                continue
            if saved and self.is_dirty and self.is_active and self._timer is None:
                # Edited while saving but no timer is left to pick it up
                self._restart_timer()
            return
