"""Streaming plumbing: byte-source adaptation and the entry producer.

A streaming parse runs a producer task that reads the caller's source, feeds
the format state machine and pushes finished entries into a bounded queue.
The consumer pulls from that queue through ``EntryStream``. Metadata is
handed over once, through a future, as soon as the state machine has it.
"""

import asyncio
import contextlib
import inspect
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field, fields
from typing import Any, Protocol

from .config import ParserConfig
from .logging_config import ParseLogger
from .models import FeedMetadata, ParsedEntry


class EntryParser(Protocol):
    """The narrow contract every feed format parser satisfies."""

    feed_format: str

    @property
    def metadata(self) -> FeedMetadata | None: ...

    def feed(self, data: bytes | str) -> Iterable[ParsedEntry]: ...

    def close(self) -> Iterable[ParsedEntry]: ...


async def iter_source(source: Any, chunk_size: int) -> AsyncIterator[bytes | str]:
    """Yield chunks from any supported source.

    Accepts bytes or str (sliced into chunks), async iterables, objects with
    a sync or async ``read(size)``, and sync iterables of chunks. A source
    abandoned before it is exhausted is closed.
    """
    exhausted = False
    try:
        if isinstance(source, (bytes, bytearray, memoryview, str)):
            data = bytes(source) if isinstance(source, (bytearray, memoryview)) else source
            for offset in range(0, len(data), chunk_size):
                yield data[offset : offset + chunk_size]
        elif hasattr(source, "__aiter__"):
            async for chunk in source:
                if chunk:
                    yield chunk
        elif hasattr(source, "read"):
            while True:
                chunk = source.read(chunk_size)
                if inspect.isawaitable(chunk):
                    chunk = await chunk
                if not chunk:
                    break
                yield chunk
        elif isinstance(source, Iterable):
            for chunk in source:
                if chunk:
                    yield chunk
        else:
            raise TypeError(f"Unsupported feed source type: {type(source).__name__}")
        exhausted = True
    finally:
        if not exhausted:
            await close_source(source)


async def close_source(source: Any) -> None:
    """Release a caller's source through ``aclose()`` or ``close()``."""
    if isinstance(source, (bytes, bytearray, memoryview, str)):
        return
    if hasattr(source, "aclose"):
        await source.aclose()
    elif hasattr(source, "close"):
        result = source.close()
        if inspect.isawaitable(result):
            await result


@dataclass(frozen=True)
class _Failure:
    error: BaseException


_END = object()


class EntryStream:
    """Single-pass async iterator over the entries of a streaming parse.

    Use ``async for`` to drain it, or ``aclose()`` / ``async with`` to stop
    early; stopping cancels the producer and releases the source.
    """

    def __init__(self, queue: asyncio.Queue, producer: asyncio.Task):
        self._queue = queue
        self._producer = producer
        self._finished = False

    def __aiter__(self) -> "EntryStream":
        return self

    async def __anext__(self) -> ParsedEntry:
        if self._finished:
            raise StopAsyncIteration

        item = await self._queue.get()
        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._finished = True
            raise item.error
        return item

    async def aclose(self) -> None:
        """Stop the producer and release the source."""
        self._finished = True
        if not self._producer.done():
            self._producer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._producer

    async def __aenter__(self) -> "EntryStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __del__(self):
        producer = self._producer
        if not producer.done() and not producer.get_loop().is_closed():
            producer.cancel()


@dataclass(frozen=True)
class StreamingFeed(FeedMetadata):
    """Feed metadata known up front plus the lazily produced entries."""

    entries: EntryStream = field(kw_only=True)


async def _produce(
    chunks: AsyncIterator[bytes | str],
    parser: EntryParser,
    queue: asyncio.Queue,
    metadata_ready: asyncio.Future,
    max_entries: int | None,
    logger: ParseLogger,
) -> None:
    emitted = 0

    def publish_metadata() -> None:
        if not metadata_ready.done() and parser.metadata is not None:
            metadata_ready.set_result(parser.metadata)

    async def push(entries: Iterable[ParsedEntry]) -> bool:
        nonlocal emitted
        for entry in entries:
            await queue.put(entry)
            emitted += 1
            if max_entries is not None and emitted >= max_entries:
                logger.info("Entry limit reached", entry_count=emitted)
                return False
        return True

    try:
        async for chunk in chunks:
            entries = parser.feed(chunk)
            publish_metadata()
            if not await push(entries):
                break
        else:
            entries = parser.close()
            publish_metadata()
            await push(entries)
    except asyncio.CancelledError:
        logger.debug("Producer cancelled", entry_count=emitted)
        raise
    except Exception as e:
        logger.log_parse_end(success=False, entry_count=emitted, error=str(e))
        if metadata_ready.done():
            await queue.put(_Failure(e))
        else:
            metadata_ready.set_exception(e)
        return
    finally:
        await chunks.aclose()

    logger.log_parse_end(success=True, entry_count=emitted)
    await queue.put(_END)


def _settle_metadata(metadata_ready: asyncio.Future, producer: asyncio.Task) -> None:
    if metadata_ready.done():
        return
    if producer.cancelled():
        metadata_ready.cancel()
    else:
        metadata_ready.set_exception(
            producer.exception() or RuntimeError("Producer ended without metadata")
        )


async def start_stream(
    chunks: AsyncIterator[bytes | str],
    parser: EntryParser,
    config: ParserConfig,
    logger: ParseLogger,
) -> StreamingFeed:
    """Start the producer and wait until the feed metadata is known."""
    loop = asyncio.get_running_loop()
    metadata_ready: asyncio.Future = loop.create_future()
    queue: asyncio.Queue = asyncio.Queue(maxsize=config.entry_queue_size)

    producer = asyncio.create_task(
        _produce(chunks, parser, queue, metadata_ready, config.max_entries, logger)
    )
    producer.add_done_callback(lambda task: _settle_metadata(metadata_ready, task))

    try:
        metadata = await metadata_ready
    except BaseException:
        producer.cancel()
        raise

    values = {f.name: getattr(metadata, f.name) for f in fields(FeedMetadata)}
    return StreamingFeed(**values, entries=EntryStream(queue, producer))
