"""Line-delimited JSON-RPC over standard streams.

``LineServer`` owns the framing and the per-connection ordering: each stdin line
is processed in its own task, so a slow request never stops the reader, but
replies are written strictly in arrival order. Completed replies wait in the
queue until every earlier line has been flushed.
"""

import asyncio
import json
import logging
import signal
import sys
from typing import AsyncIterator, Callable

from companies_house_mcp.mcp.errors import PARSE_ERROR, make_error_data
from companies_house_mcp.mcp.jsonrpc import Dispatcher, error_response

logger = logging.getLogger(__name__)

# Upper bound for one JSON-RPC line read from stdin
MAX_LINE_BYTES = 4 * 1024 * 1024

ReplyWriter = Callable[[str], None]

_OVERSIZED = object()


def write_stdout(line: str) -> None:
    """Write one reply line to stdout, the exclusive reply channel."""
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


async def open_stdin_reader(limit: int = MAX_LINE_BYTES) -> asyncio.StreamReader:
    """Wrap the process stdin in an asyncio StreamReader."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


def install_signal_handlers(stop: asyncio.Event) -> None:
    """Turn SIGINT/SIGTERM into a graceful drain instead of an abrupt exit."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support signal handlers
            logger.debug(f"Cannot install handler for {sig!r}")


class LineServer:
    """Base class for stdio servers speaking one JSON document per line."""

    def __init__(self, write: ReplyWriter = write_stdout, shutdown_grace: float = 1.0):
        self._write = write
        self.shutdown_grace = shutdown_grace
        self._in_flight: set[asyncio.Task] = set()

    async def process_line(self, line: str) -> str | None:
        """Return the reply line for ``line``, or None when nothing is owed."""
        raise NotImplementedError

    def parse_error_reply(self, message: str) -> str:
        return json.dumps(error_response(None, make_error_data(PARSE_ERROR, message)).model_dump())

    async def _safe_process(self, line: str) -> str | None:
        try:
            return await self.process_line(line)
        except Exception:
            # process_line implementations convert failures themselves; this
            # only guards the framing.
            logger.exception("Unhandled error while processing a line")
            return None

    async def _read_line(self, reader: asyncio.StreamReader) -> bytes | object:
        """
        Read one newline-terminated line, or the partial tail at EOF.

        A line longer than the reader's limit is consumed up to and including
        its newline, however many chunks it arrives in, and reported once as
        ``_OVERSIZED``.
        """
        try:
            return await reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            return e.partial
        except asyncio.LimitOverrunError as e:
            discarded = e.consumed

        # LimitOverrunError leaves the data buffered; drop it chunk by chunk
        # until the terminating newline has been read.
        await reader.readexactly(discarded)
        while True:
            try:
                tail = await reader.readuntil(b"\n")
            except asyncio.IncompleteReadError as e:
                discarded += len(e.partial)
                break
            except asyncio.LimitOverrunError as e:
                await reader.readexactly(e.consumed)
                discarded += e.consumed
                continue
            discarded += len(tail)
            break
        logger.warning(f"Discarded a {discarded}-byte stdin line over the read limit")
        return _OVERSIZED

    async def _read_lines(
        self, reader: asyncio.StreamReader, stop: asyncio.Event | None
    ) -> AsyncIterator[object]:
        while True:
            read = asyncio.ensure_future(self._read_line(reader))
            waiters: set[asyncio.Future] = {read}
            stopped = None
            if stop is not None:
                stopped = asyncio.ensure_future(stop.wait())
                waiters.add(stopped)
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            if stopped is not None:
                stopped.cancel()
            if read not in done:
                read.cancel()
                logger.info("Stop requested, no longer reading stdin")
                return
            raw = read.result()
            if raw is _OVERSIZED:
                yield _OVERSIZED
                continue
            if not raw:
                logger.info("stdin closed")
                return
            yield raw.decode("utf-8", errors="replace")

    async def _write_replies(self, replies: asyncio.Queue) -> None:
        while True:
            task = await replies.get()
            if task is None:
                return
            reply = await task
            if reply is None:
                continue
            try:
                self._write(reply)
            except OSError as e:
                logger.error(f"Could not write reply to stdout: {e}")

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def serve(
        self, reader: asyncio.StreamReader, stop: asyncio.Event | None = None
    ) -> None:
        """Serve until stdin closes or ``stop`` is set, then drain in-flight work."""
        replies: asyncio.Queue = asyncio.Queue()
        writer = asyncio.create_task(self._write_replies(replies))
        try:
            async for item in self._read_lines(reader, stop):
                if item is _OVERSIZED:
                    await replies.put(
                        self._spawn(self._constant(self.parse_error_reply("Message too large")))
                    )
                    continue
                line = str(item).strip()
                if not line:
                    continue
                await replies.put(self._spawn(self._safe_process(line)))
        finally:
            await replies.put(None)
            await self._drain(writer)

    async def _drain(self, writer: asyncio.Task) -> None:
        try:
            await asyncio.wait_for(asyncio.shield(writer), timeout=self.shutdown_grace)
        except asyncio.TimeoutError:
            logger.warning(
                f"Abandoning {len(self._in_flight)} in-flight request(s) "
                f"after {self.shutdown_grace}s grace period"
            )
            writer.cancel()
            for task in list(self._in_flight):
                task.cancel()
            await asyncio.gather(writer, *self._in_flight, return_exceptions=True)

    @staticmethod
    async def _constant(reply: str) -> str:
        return reply


class StdioServer(LineServer):
    """MCP server on stdin/stdout, dispatching locally."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        write: ReplyWriter = write_stdout,
        shutdown_grace: float = 1.0,
    ):
        super().__init__(write=write, shutdown_grace=shutdown_grace)
        self.dispatcher = dispatcher

    async def process_line(self, line: str) -> str | None:
        response = await self.dispatcher.handle_message(line)
        if response is None:
            return None
        return self.dispatcher.serialize_response(response)
