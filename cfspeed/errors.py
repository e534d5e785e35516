"""
Exception taxonomy for the measurement engine.

``TransferFailed`` covers one failed probe and is recoverable: the stage
logs it and moves on.  ``InvalidInput`` signals a degenerate computation
(empty sample set, zero duration) and becomes fatal when a whole stage
produced nothing.
"""
from __future__ import annotations

from typing import Optional


class SpeedtestError(Exception):
    """Base class for every error raised by ``cfspeed``."""


class InvalidInput(SpeedtestError, ValueError):
    """A statistics or throughput function was given degenerate input."""


class TransferFailed(SpeedtestError):
    """A single timed transfer did not complete.

    The underlying exception (if any) is chained as ``__cause__``.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


class MalformedServerResponse(TransferFailed):
    """The ``Server-Timing`` header was missing or could not be parsed."""
