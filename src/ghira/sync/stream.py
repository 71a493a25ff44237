"""Producer streams connecting the stages of the sync pipeline.

A stream runs an async iterator in its own task and hands items to a single
reader through a one-slot queue, so the producer never runs more than one
item ahead of the consumer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DONE = object()


class Stream(Generic[T]):
    """A lazy, finite, non-restartable sequence fed by a background task.

    Exceptions listed in ``errors`` end the stream early after being logged;
    they are kept in :attr:`error`. Any other exception is re-raised to the
    reader.
    """

    def __init__(
        self,
        source: AsyncIterator[T],
        name: str,
        errors: tuple[type[BaseException], ...] = (),
    ) -> None:
        self.name = name
        self.error: BaseException | None = None
        self._errors = errors
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=1)
        self._unexpected: BaseException | None = None
        self._claimed = False
        self._task = asyncio.create_task(self._pump(source), name=f"stream:{name}")

    async def _pump(self, source: AsyncIterator[T]) -> None:
        try:
            async for item in source:
                await self._queue.put(item)
        except asyncio.CancelledError:
            raise
        except self._errors as e:
            logger.error(f"{self.name}: stream ended early: {e}")
            self.error = e
        except Exception as e:
            self._unexpected = e
        finally:
            aclose = getattr(source, "aclose", None)
            if aclose is not None:
                await aclose()
        await self._queue.put(_DONE)

    def __aiter__(self) -> AsyncIterator[T]:
        if self._claimed:
            raise RuntimeError(f"Stream {self.name!r} can only be consumed once")
        self._claimed = True
        return self._drain()

    async def _drain(self) -> AsyncIterator[T]:
        while True:
            item = await self._queue.get()
            if item is _DONE:
                break
            yield item  # type: ignore[misc]
        await self._task
        if self._unexpected is not None:
            raise self._unexpected

    @property
    def done(self) -> bool:
        """Whether the producer task has finished."""
        return self._task.done()

    async def aclose(self) -> None:
        """Cancel the producer if it is still running."""
        if not self._task.done():
            self._task.cancel()
        await asyncio.wait([self._task])


def produce(
    source: AsyncIterator[T],
    name: str,
    errors: tuple[type[BaseException], ...] = (),
) -> Stream[T]:
    """Start a producer task for ``source`` and return its stream.

    Must be called from a running event loop.
    """
    return Stream(source, name=name, errors=errors)
