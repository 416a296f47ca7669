"""Tagged load state for lazily fetched, shared data.

A ``CacheEntry`` is always in exactly one of four states::

    EMPTY ──load()──▶ LOADING(task) ──ok──▶ LOADED(value)
                              │
                              └──error──▶ FAILED(error) ──load()──▶ LOADING ...

While ``LOADING``, every caller awaits the same task, so a key never has more
than one fetch in flight and all waiters observe the same value or the same
exception. Each fetch is stamped with a generation number; ``reset()`` bumps
the generation so a fetch started before the reset cannot write its result
into the entry when it finally completes.
"""

import asyncio
import enum
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LoadState(enum.Enum):
    EMPTY = "empty"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


def _consume_exception(task: asyncio.Task) -> None:
    # Waiters may all have gone away; keep asyncio from warning about it.
    if not task.cancelled():
        task.exception()


class CacheEntry(Generic[T]):
    """One cache slot with in-flight request sharing."""

    def __init__(self, name: str = ""):
        self.name = name
        self.state = LoadState.EMPTY
        self.value: Optional[T] = None
        self.error: Optional[Exception] = None
        self.generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_loaded(self) -> bool:
        return self.state is LoadState.LOADED

    @property
    def is_loading(self) -> bool:
        return self.state is LoadState.LOADING

    async def load(self, loader: Callable[[], Awaitable[T]], *, force: bool = False) -> T:
        """Return the cached value, joining or starting a fetch as needed.

        ``force`` skips a ``LOADED`` value but still joins a fetch that is
        already in flight.
        """
        if self.state is LoadState.LOADED and not force:
            return self.value

        if self.state is LoadState.LOADING and self._task is not None:
            logger.debug("Joining in-flight load for %s", self.name or "entry")
            return await asyncio.shield(self._task)

        self.generation += 1
        task = asyncio.ensure_future(self._run(loader, self.generation))
        task.add_done_callback(_consume_exception)
        self._task = task
        self.state = LoadState.LOADING
        self.error = None
        return await asyncio.shield(task)

    async def _run(self, loader: Callable[[], Awaitable[T]], generation: int) -> T:
        try:
            value = await loader()
        except asyncio.CancelledError:
            if generation == self.generation:
                self.state = LoadState.EMPTY if self.value is None else LoadState.LOADED
                self._task = None
            raise
        except Exception as exc:
            if generation == self.generation:
                self.state = LoadState.FAILED
                self.error = exc
                self._task = None
            else:
                logger.debug("Discarding stale failure for %s", self.name or "entry")
            raise

        if generation == self.generation:
            self.state = LoadState.LOADED
            self.value = value
            self._task = None
        else:
            logger.debug("Discarding stale result for %s", self.name or "entry")
        return value

    def reset(self) -> None:
        """Forget the value and orphan any in-flight fetch."""
        self.generation += 1
        self.state = LoadState.EMPTY
        self.value = None
        self.error = None
        self._task = None
