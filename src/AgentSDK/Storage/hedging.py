# === NAVMAP v1 ===
# {
#   "module": "AgentSDK.Storage.hedging",
#   "purpose": "Race a prioritised, capped set of gateway attempts and keep the first verified-size body",
#   "sections": [
#     {"id": "fetchattempt", "name": "FetchAttempt", "anchor": "class-fetchattempt", "kind": "class"},
#     {"id": "retrievalsession", "name": "RetrievalSession", "anchor": "class-retrievalsession", "kind": "class"},
#     {"id": "hedgedgatewayfetcher", "name": "HedgedGatewayFetcher", "anchor": "class-hedgedgatewayfetcher", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Hedged gateway fetching.

Gateways are third-party infrastructure with unpredictable latency.  Instead
of firing every request at once, attempts are launched in priority order and
staggered by a hedge delay:

    gateway 0 ──────────────x (fails)
    gateway 1        ───────────────✓ winner → cancel the rest
    gateway 2               ──────── (cancelled)

**Rules:**

- Attempts start in list order; the winner is whoever finishes first.
- At most ``max_concurrent`` attempts are active; when the ceiling is reached
  the oldest active attempt must settle before the next launch.
- The hedge wait ends early once a winner exists or nothing is in flight.
- Every attempt is bounded by its own timeout, independent of cooperative
  cancellation.
- When all attempts fail, :class:`GatewaysExhaustedError` carries the most
  recently recorded failure.

Everything runs on one event loop, so the winner and last-error slots need no
locks: only one task executes the check-and-write at a time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import httpx

from .cancellation import CancellationToken, CancellationTokenGroup
from .errors import (
    AttemptCancelledError,
    AttemptTimeoutError,
    ContentTooLargeError,
    GatewaysExhaustedError,
    RedirectBlockedError,
    TransportError,
)
from .net.body import BoundedBodyReader
from .net.client import check_response
from .net.instrumentation import (
    AttemptEventEmitter,
    AttemptStatus,
    AttemptTrace,
    get_attempt_emitter,
)

__all__ = [
    "DEFAULT_HEDGE_DELAY_S",
    "DEFAULT_MAX_CONCURRENT",
    "FetchAttempt",
    "HedgedGatewayFetcher",
    "RetrievalSession",
]

logger = logging.getLogger(__name__)

DEFAULT_HEDGE_DELAY_S = 2.0
DEFAULT_MAX_CONCURRENT = 3
DEFAULT_GATEWAY_TIMEOUT_S = 10.0


@dataclass
class FetchAttempt:
    """State for one gateway request, alive from launch until it settles."""

    url: str
    index: int
    token: CancellationToken
    reader: BoundedBodyReader
    task: Optional["asyncio.Task[None]"] = None

    @property
    def bytes_read(self) -> int:
        return self.reader.bytes_read


@dataclass
class RetrievalSession:
    """Per-call state: write-once winner slot, last error, shared cancellation."""

    winner: Optional[bytes] = None
    winner_index: Optional[int] = None
    last_error: Optional[BaseException] = None
    cancellation: CancellationTokenGroup = field(default_factory=CancellationTokenGroup)
    attempts: list[FetchAttempt] = field(default_factory=list)
    running: int = 0
    settled: asyncio.Event = field(default_factory=asyncio.Event)

    def claim(self, attempt: FetchAttempt, data: bytes) -> bool:
        """Record ``data`` as the winner unless another attempt already won.

        A successful claim raises the shared cancellation signal and cancels
        every other unfinished attempt.
        """
        if self.winner is not None:
            return False
        self.winner = data
        self.winner_index = attempt.index
        self.cancellation.cancel_all(f"gateway #{attempt.index} won")
        for other in self.attempts:
            if other is not attempt and other.task is not None and not other.task.done():
                other.task.cancel()
        return True

    def record_failure(self, error: BaseException) -> None:
        if self.winner is None:
            self.last_error = error

    def _on_attempt_done(self, _task: "asyncio.Task[None]") -> None:
        self.running -= 1
        self.settled.set()


class HedgedGatewayFetcher:
    """Fetch the first successful body from an ordered list of gateway URLs.

    Args:
        client: AsyncClient with redirects disabled.
        max_bytes: Byte ceiling applied to every attempt.
        timeout_s: Per-attempt timeout in seconds.
        hedge_delay_s: Delay before launching the next speculative attempt.
        max_concurrent: Ceiling on simultaneously active attempts.
        emitter: Receiver for gateway.attempt events (global emitter by default).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_bytes: int,
        timeout_s: float = DEFAULT_GATEWAY_TIMEOUT_S,
        hedge_delay_s: float = DEFAULT_HEDGE_DELAY_S,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        emitter: Optional[AttemptEventEmitter] = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.client = client
        self.max_bytes = max_bytes
        self.timeout_s = timeout_s
        self.hedge_delay_s = hedge_delay_s
        self.max_concurrent = max_concurrent
        self.emitter = emitter

    async def fetch(self, urls: Sequence[str]) -> bytes:
        """Return the body of the first attempt that completes successfully.

        Raises:
            GatewaysExhaustedError: If every attempt failed.
        """
        session = RetrievalSession()
        active: list[asyncio.Task[None]] = []

        try:
            for index, url in enumerate(urls):
                active = [task for task in active if not task.done()]
                while len(active) >= self.max_concurrent:
                    await asyncio.wait({active[0]})
                    active = [task for task in active if not task.done()]
                if session.winner is not None:
                    break

                attempt = self._launch(session, url, index)
                active.append(attempt.task)

                if index < len(urls) - 1:
                    await self._hedge(session)
                    if session.winner is not None:
                        break

            pending = [task for task in active if not task.done()]
            if pending:
                await asyncio.wait(pending)
        finally:
            await self._teardown(session)

        if session.winner is None:
            raise GatewaysExhaustedError(len(session.attempts), session.last_error) from (
                session.last_error
            )

        logger.debug(
            f"Gateway #{session.winner_index} won the race ({len(session.winner)} bytes, "
            f"{len(session.attempts)} launched)"
        )
        return session.winner

    # ------------------------------------------------------------------
    # Attempt lifecycle
    # ------------------------------------------------------------------

    def _launch(self, session: RetrievalSession, url: str, index: int) -> FetchAttempt:
        token = session.cancellation.create_token()
        attempt = FetchAttempt(
            url=url,
            index=index,
            token=token,
            reader=BoundedBodyReader(self.max_bytes, token),
        )
        session.attempts.append(attempt)
        session.running += 1
        attempt.task = asyncio.create_task(self._run_attempt(session, attempt))
        attempt.task.add_done_callback(session._on_attempt_done)
        return attempt

    async def _hedge(self, session: RetrievalSession) -> None:
        """Wait up to the hedge delay, returning early on a winner or an idle session.

        The full delay is not always spent: when every launched attempt has
        already failed, the next gateway starts immediately.
        """
        if self.hedge_delay_s <= 0:
            return
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.hedge_delay_s
        while session.winner is None and session.running > 0:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return
            session.settled.clear()
            try:
                await asyncio.wait_for(session.settled.wait(), remaining)
            except asyncio.TimeoutError:
                return

    async def _run_attempt(self, session: RetrievalSession, attempt: FetchAttempt) -> None:
        trace = AttemptTrace(attempt.url, attempt.index)
        try:
            data = await asyncio.wait_for(self._download(attempt, trace), self.timeout_s)
        except asyncio.CancelledError:
            trace.fail(AttemptStatus.CANCELLED, attempt.token.reason or "cancelled")
            raise
        except asyncio.TimeoutError:
            error = AttemptTimeoutError(attempt.url, self.timeout_s)
            trace.fail(AttemptStatus.TIMEOUT, str(error))
            self._fail(session, attempt, error)
        except AttemptCancelledError as e:
            trace.fail(AttemptStatus.CANCELLED, str(e))
        except RedirectBlockedError as e:
            trace.fail(AttemptStatus.REDIRECT, str(e))
            self._fail(session, attempt, e)
        except ContentTooLargeError as e:
            trace.fail(AttemptStatus.TOO_LARGE, str(e))
            self._fail(session, attempt, e)
        except TransportError as e:
            trace.fail(AttemptStatus.HTTP_ERROR, str(e))
            self._fail(session, attempt, e)
        except Exception as e:
            # httpx.HTTPError, plus InvalidURL and StreamError which are not
            error = TransportError(f"{type(e).__name__}: {e}", url=attempt.url)
            error.__cause__ = e
            trace.fail(AttemptStatus.NETWORK_ERROR, str(error))
            self._fail(session, attempt, error)
        else:
            if not session.claim(attempt, data):
                trace.fail(AttemptStatus.CANCELLED, "finished after another gateway won")
        finally:
            session.cancellation.remove_token(attempt.token)
            (self.emitter or get_attempt_emitter()).emit(trace.settle(attempt.bytes_read))

    async def _download(self, attempt: FetchAttempt, trace: AttemptTrace) -> bytes:
        async with self.client.stream("GET", attempt.url) as response:
            trace.response(response.status_code)
            check_response(response, attempt.url)
            return await attempt.reader.read(response)

    def _fail(self, session: RetrievalSession, attempt: FetchAttempt, error: BaseException) -> None:
        logger.debug(f"Gateway failed: {attempt.url[:30]}... ({error})")
        session.record_failure(error)

    async def _teardown(self, session: RetrievalSession) -> None:
        session.cancellation.cancel_all()
        pending = [a.task for a in session.attempts if a.task is not None and not a.task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
