from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

import db.crud as crud
from utils.errors import PersistenceError, ValidationError
from utils.logger import get_logger
from utils.messages import Message

_logger = get_logger(__name__)

T = TypeVar("T")
Listener = Callable[[Message], None]


class PersistentStore(Generic[T]):
    """
    An in-memory, insertion-ordered collection mirrored to one key of the
    key-value store.

    Mutations apply synchronously; every mutation queues a snapshot of the
    whole collection and a single writer task per store saves it. The writer
    skips to the newest queued snapshot, so the durable copy converges to the
    current in-memory state. Write failures are logged and never raised.

    Subclasses set KEY and implement `_item_from_dict` / `_item_to_dict`.
    """

    KEY: str = ""

    def __init__(self) -> None:
        self._items: List[T] = []
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []
        self.hydrated = False

    @classmethod
    async def open(cls, *args, **kwargs):
        """Construct and hydrate from the key-value store."""
        store = cls(*args, **kwargs)
        await store.hydrate()
        return store

    # ---------------------------
    # Serialization
    # ---------------------------

    def _item_from_dict(self, data: Dict[str, Any]) -> T:
        raise NotImplementedError

    def _item_to_dict(self, item: T) -> Dict[str, Any]:
        raise NotImplementedError

    def dumps(self) -> str:
        return json.dumps([self._item_to_dict(item) for item in self._items])

    def loads(self, raw: str) -> List[T]:
        """Parse a stored payload. Any malformed entry rejects the whole payload."""
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValidationError({self.KEY: "expected a JSON array"})
        return [self._item_from_dict(entry) for entry in data]

    # ---------------------------
    # Hydration
    # ---------------------------

    async def _on_missing(self) -> None:
        """Called when the key has never been written. Default: stay empty."""

    async def hydrate(self) -> bool:
        """
        Replace in-memory state with the stored collection.
        Returns True if stored content was loaded. Malformed content is left
        in place and the store starts empty.
        """
        try:
            raw = await crud.get_item(self.KEY)
        except PersistenceError as e:
            _logger.error(f"Failed to load '{self.KEY}': {e}")
            self.hydrated = True
            return False

        if raw is None:
            await self._on_missing()
            self.hydrated = True
            return False

        try:
            self._items = self.loads(raw)
        except (ValueError, TypeError) as e:
            # JSONDecodeError and ValidationError are ValueErrors
            _logger.warning(f"Ignoring malformed '{self.KEY}' content: {e}")
            self._items = []
            self.hydrated = True
            return False

        _logger.debug(f"Hydrated '{self.KEY}' with {len(self._items)} entries.")
        self.hydrated = True
        return True

    # ---------------------------
    # Persistence
    # ---------------------------

    def _schedule_save(self) -> None:
        self._queue.put_nowait(self.dumps())
        if self._writer is None or self._writer.done():
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                _logger.warning(
                    f"No running event loop, '{self.KEY}' is saved on the next flush()."
                )
                return
            self._writer = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while not self._queue.empty():
            payload = self._queue.get_nowait()
            taken = 1
            while not self._queue.empty():
                payload = self._queue.get_nowait()
                taken += 1
            try:
                await crud.set_item(self.KEY, payload)
            except PersistenceError as e:
                _logger.error(f"Failed to save '{self.KEY}': {e}")
            except Exception:
                _logger.exception(f"Unexpected error saving '{self.KEY}'")
            finally:
                for _ in range(taken):
                    self._queue.task_done()

    async def flush(self) -> None:
        """Wait until every queued snapshot has been written (or failed)."""
        if not self._queue.empty() and (self._writer is None or self._writer.done()):
            self._writer = asyncio.get_running_loop().create_task(self._drain())
        await self._queue.join()

    async def aclose(self) -> None:
        """Flush, then wait for the writer task to finish."""
        await self.flush()
        if self._writer is not None:
            await self._writer
            self._writer = None

    # ---------------------------
    # Change notification
    # ---------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self, message: Message) -> None:
        self._schedule_save()
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                _logger.exception(f"Listener failed on {message!r}")

    # ---------------------------
    # Read access
    # ---------------------------

    def get_all(self) -> List[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))
