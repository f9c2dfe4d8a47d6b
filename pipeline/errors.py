"""Error taxonomy for the trade aggregation pipeline.

Per-record and per-market errors (MalformedRecord, DecodeError and
per-market SourceErrors) are caught where they occur, counted and logged.
A SourceError raised for a whole source aborts only that source's cycle.
PersistenceFailure never fails the request that produced the result.
"""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class SourceError(PipelineError):
    """An upstream source could not deliver usable data."""

    def __init__(self, source: str, message: str,
                 status_code: Optional[int] = None) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message
        self.status_code = status_code


class SourceUnavailable(SourceError):
    """Network or HTTP failure talking to an upstream."""


class SourceRateLimited(SourceError):
    """The upstream throttled us (HTTP 429)."""


class SourceMalformedResponse(SourceError):
    """The upstream answered with something we cannot parse."""


class MalformedRecord(PipelineError):
    """A single raw record is missing a mandatory identifier."""

    def __init__(self, source: str, field_name: str) -> None:
        super().__init__(f"{source} record missing '{field_name}'")
        self.source = source
        self.field_name = field_name


class DecodeError(PipelineError):
    """A single on-chain log could not be decoded."""


class UnrecognizedEvent(DecodeError):
    """The log's first topic is not the expected event signature."""


class PersistenceFailure(PipelineError):
    """Writing a durable artifact failed."""
