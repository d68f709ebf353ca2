"""Exception hierarchy shared by the analysis, submission and batch layers."""

from __future__ import annotations

from typing import Optional


class LoginProbeError(Exception):
    """Base class for every error raised by the package."""


class InputError(LoginProbeError):
    """A required request field is missing or malformed."""


class FetchError(LoginProbeError):
    """The page could not be fetched in markup-only mode."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class NavigationError(LoginProbeError):
    """The browser did not reach a settled page in time."""


class AttemptTimeoutError(NavigationError):
    """The whole attempt ran past its time envelope."""


class ElementNotFoundError(LoginProbeError):
    """An expected login-surface element is absent from the page."""


class PersistenceError(LoginProbeError):
    """The backing store rejected a read or write."""


USERNAME_NOT_FOUND = "Username field not found"
PASSWORD_NOT_FOUND = "Password field not found"
SUBMIT_NOT_FOUND = "Submit button not found"
