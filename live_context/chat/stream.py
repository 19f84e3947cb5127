"""Buffered ingestion of a streamed chat reply.

Fragments are accumulated as they arrive; the visible text is only
brought up to date on a fixed flush cadence, so observers see at most
one update per interval however fast the fragments come in.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable

logger = logging.getLogger(__name__)

STREAM_FLUSH_INTERVAL = 0.04

UpdateCallback = Callable[[str], None]


class ReplyStream:
    """Consumes one fragment iterator into ``text``.

    Cancelling the task running :meth:`run` discards whatever is still
    buffered and leaves ``cancelled`` set; nothing past the last flush is
    ever made visible.
    """

    def __init__(
        self,
        fragments: AsyncIterator[str],
        *,
        flush_interval: float = STREAM_FLUSH_INTERVAL,
        on_update: UpdateCallback | None = None,
    ) -> None:
        self._fragments = fragments
        self._flush_interval = flush_interval
        self._on_update = on_update
        self._buffer: list[str] = []
        self._flush_handle: asyncio.TimerHandle | None = None
        self.text = ""
        self.cancelled = False
        self.finished = False

    @property
    def buffered(self) -> str:
        return "".join(self._buffer)

    def flush(self) -> None:
        self._flush_handle = None
        if not self._buffer:
            return
        self.text += "".join(self._buffer)
        self._buffer.clear()
        if self._on_update is not None:
            self._on_update(self.text)

    def _schedule_flush(self) -> None:
        if self._flush_handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._flush_handle = loop.call_later(self._flush_interval, self.flush)

    def _discard(self) -> None:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        self._buffer.clear()

    async def run(self) -> str:
        """Drain the iterator and return the complete reply text."""
        try:
            async for fragment in self._fragments:
                if not fragment:
                    continue
                self._buffer.append(fragment)
                self._schedule_flush()
        except asyncio.CancelledError:
            self.cancelled = True
            self._discard()
            logger.debug("Reply stream cancelled with %d chars visible", len(self.text))
            raise
        except Exception:
            self._discard()
            raise

        if self._flush_handle is not None:
            self._flush_handle.cancel()
        self.flush()
        self.finished = True
        return self.text
