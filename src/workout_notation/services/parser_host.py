"""
Parser Host

Runs notation parsing in a background executor so request handlers never
block on a slow parse.

Each request gets a monotonically increasing ID and is submitted to the
executor as a (id, text) message; the reply message {id, result, error}
resolves the waiting future. A request that gets no reply within the timeout
is rejected with ParserTimeoutError. If the executor breaks, every pending
request is rejected with ParserUnavailableError, the executor is shut down,
and a new one is created on the first request after the restart backoff.
Until then requests are parsed in-process.
"""

import asyncio
import itertools
import logging
import time
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Tuple

from workout_notation.config import settings
from workout_notation.parsers.models import ParseResult
from workout_notation.parsers.notation_parser import parse

logger = logging.getLogger(__name__)


class ParserHostError(RuntimeError):
    """Base error for requests that the parser host could not complete"""


class ParserTimeoutError(ParserHostError):
    """The worker did not reply within the request timeout"""


class ParserUnavailableError(ParserHostError):
    """The worker failed or was shut down while the request was pending"""


def run_parse_request(request_id: int, text: str) -> Dict[str, Any]:
    """
    Worker entry point: one request message in, one reply message out.

    The result is plain JSON data so it can cross a process boundary.
    """
    try:
        result = parse(text)
        return {"id": request_id, "result": result.model_dump(mode="json"), "error": None}
    except Exception as e:
        logger.exception(f"Parse request {request_id} failed in worker")
        return {"id": request_id, "result": None, "error": str(e)}


def default_executor_factory(mode: str = settings.PARSER_HOST_MODE) -> Callable[[], Executor]:
    """Single-worker executor of the configured kind ('thread' or 'process')."""
    if mode == "process":
        return lambda: ProcessPoolExecutor(max_workers=1)
    return lambda: ThreadPoolExecutor(max_workers=1, thread_name_prefix="notation-parser")


class ParserHost:
    """Async front for the background parser worker"""

    def __init__(
        self,
        timeout: float = settings.PARSER_HOST_TIMEOUT_SECONDS,
        restart_backoff: float = settings.PARSER_HOST_RESTART_BACKOFF_SECONDS,
        executor_factory: Optional[Callable[[], Executor]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout = timeout
        self.restart_backoff = restart_backoff
        self._executor_factory = executor_factory or default_executor_factory()
        self._clock = clock
        self._executor: Optional[Executor] = None
        self._ids = itertools.count(1)
        self._pending: Dict[int, Tuple[asyncio.Future, asyncio.TimerHandle]] = {}
        self._unavailable_until = 0.0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def available(self) -> bool:
        return self._executor is not None or self._clock() >= self._unavailable_until

    async def parse(self, text: str) -> ParseResult:
        """
        Parse text in the background worker.

        Falls back to parsing in-process while the worker is unavailable.

        Raises:
            ParserTimeoutError: No reply within the timeout
            ParserUnavailableError: The worker failed while this request was pending
            ParserHostError: The worker replied with an error
        """
        executor = self._ensure_executor()
        if executor is None:
            logger.info("Parser worker unavailable, parsing in-process")
            return parse(text)

        loop = asyncio.get_running_loop()
        request_id = next(self._ids)
        future: asyncio.Future = loop.create_future()
        timer = loop.call_later(self.timeout, self._expire, request_id)
        self._pending[request_id] = (future, timer)
        logger.debug(f"Dispatching parse request {request_id} ({len(text)} chars)")

        try:
            work = executor.submit(run_parse_request, request_id, text)
        except Exception as e:
            self._handle_fault(e)
        else:
            work.add_done_callback(lambda done: self._deliver(loop, executor, done))

        reply = await future
        return ParseResult.model_validate(reply)

    def close(self) -> None:
        """Reject anything still pending and shut the worker down."""
        self._reject_pending(ParserUnavailableError("Parser host closed"))
        self._shutdown_executor()

    def _ensure_executor(self) -> Optional[Executor]:
        if self._executor is not None:
            return self._executor
        if self._clock() < self._unavailable_until:
            return None
        try:
            self._executor = self._executor_factory()
        except Exception as e:
            logger.error(f"Could not start parser worker: {e}")
            self._unavailable_until = self._clock() + self.restart_backoff
            return None
        logger.info("Started parser worker")
        return self._executor

    def _deliver(self, loop: asyncio.AbstractEventLoop, executor: Executor, work: Future) -> None:
        """Runs on the worker side; hands the reply to the event loop thread."""
        try:
            loop.call_soon_threadsafe(self._on_reply, executor, work)
        except RuntimeError:
            logger.debug("Event loop closed before a parse reply arrived")

    def _on_reply(self, executor: Executor, work: Future) -> None:
        if work.cancelled():
            return
        error = work.exception()
        if error is not None:
            # A worker that was already replaced has nothing left to reject
            if executor is self._executor:
                self._handle_fault(error)
            return

        reply = work.result()
        entry = self._pending.pop(reply["id"], None)
        if entry is None:
            logger.debug(f"Dropping late reply for parse request {reply['id']}")
            return

        future, timer = entry
        timer.cancel()
        if future.done():
            return
        if reply["error"]:
            future.set_exception(ParserHostError(reply["error"]))
        else:
            future.set_result(reply["result"])

    def _expire(self, request_id: int) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        future, _ = entry
        logger.warning(f"Parse request {request_id} timed out after {self.timeout}s")
        if not future.done():
            future.set_exception(ParserTimeoutError(f"Parse request {request_id} timed out after {self.timeout}s"))

    def _handle_fault(self, error: BaseException) -> None:
        logger.error(f"Parser worker failed: {error}")
        self._reject_pending(ParserUnavailableError(f"Parser worker failed: {error}"))
        self._shutdown_executor()
        self._unavailable_until = self._clock() + self.restart_backoff

    def _reject_pending(self, error: ParserHostError) -> None:
        pending = list(self._pending.values())
        self._pending.clear()
        for future, timer in pending:
            timer.cancel()
            if not future.done():
                future.set_exception(error)

    def _shutdown_executor(self) -> None:
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)


_host: Optional[ParserHost] = None


def get_parser_host() -> ParserHost:
    """Process-wide host used by the API routes."""
    global _host
    if _host is None:
        _host = ParserHost()
    return _host
