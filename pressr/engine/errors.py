"""Run-level exceptions.

Per-request failures never show up here: they are recorded as failed
``RequestOutcome`` objects. These exceptions abort a whole run.
"""

from pathlib import Path


class PressrError(Exception):
    """Base class for errors that abort a load test."""


class ConfigurationError(PressrError, ValueError):
    """Invalid run configuration, detected before any request is sent."""


class DataLoadError(PressrError):
    """A request data file could not be read or parsed."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to load data file '{self.path}': {reason}")


class InternalDispatchError(PressrError, RuntimeError):
    """The dispatcher could not finalize its collected outcomes.

    Indicates a bug in the dispatcher, not a problem with the target.
    """
