"""Cooperative cancellation shared by racing gateway attempts.

Every attempt in a retrieval session holds its own :class:`CancellationToken`;
the session's :class:`CancellationTokenGroup` trips all of them at once when a
winner is recorded.  Body readers poll their token between chunks, so a loser
stops at the next chunk boundary even before its task is interrupted.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from .errors import AttemptCancelledError

__all__ = ["CancellationToken", "CancellationTokenGroup"]


class CancellationToken:
    """One attempt's view of the shared stop signal.

    Examples:
        >>> token = CancellationToken()
        >>> token.cancel("gateway #1 won")
        >>> token.raise_if_cancelled()
        Traceback (most recent call last):
        ...
        AgentSDK.Storage.errors.AttemptCancelledError: gateway #1 won
    """

    __slots__ = ("_tripped", "reason")

    def __init__(self) -> None:
        self._tripped = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        """Trip the token; the first reason given is kept."""
        if not self._tripped.is_set():
            self.reason = reason
            self._tripped.set()

    def is_cancelled(self) -> bool:
        return self._tripped.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`AttemptCancelledError` if the token has been tripped."""
        if self._tripped.is_set():
            raise AttemptCancelledError(self.reason or "cancelled")

    async def wait(self) -> None:
        await self._tripped.wait()


class CancellationTokenGroup:
    """Tokens for every live attempt of one retrieval session.

    Once :meth:`cancel_all` has run the group stays tripped: tokens handed
    out afterwards are born cancelled and are not tracked.
    """

    def __init__(self) -> None:
        self._live: set[CancellationToken] = set()
        self._reason: Optional[str] = None

    def create_token(self) -> CancellationToken:
        token = CancellationToken()
        if self._reason is not None:
            token.cancel(self._reason)
        else:
            self._live.add(token)
        return token

    def remove_token(self, token: CancellationToken) -> None:
        """Stop tracking ``token`` (its attempt has settled)."""
        self._live.discard(token)

    def cancel_all(self, reason: str = "retrieval finished") -> None:
        if self._reason is not None:
            return
        self._reason = reason
        for token in list(self._live):
            token.cancel(reason)

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    def __len__(self) -> int:
        return len(self._live)
