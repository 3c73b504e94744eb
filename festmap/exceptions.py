"""Exception hierarchy for festmap."""

from __future__ import annotations


class FestmapError(Exception):
    """Base exception for all festmap errors."""


class MalformedScheduleError(FestmapError, ValueError):
    """A day entry of a weekly schedule could not be parsed."""

    def __init__(self, message: str, *, entry: object = None) -> None:
        self.entry = entry
        super().__init__(message)


class DataLoadError(FestmapError):
    """The merchant data document could not be read or decoded."""

    def __init__(self, message: str, *, source: str = "") -> None:
        self.source = source
        super().__init__(message)
