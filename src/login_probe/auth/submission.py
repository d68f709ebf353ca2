"""Credential submission driven as an explicit state machine.

``IDLE -> PAGE_LOADING -> DETECTING -> FILLING -> SUBMITTING -> SETTLING ->
CLASSIFIED -> TERMINAL``. Any error jumps straight to ``CLASSIFIED`` as a
failure; the browser context is released before ``TERMINAL`` on every path.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core.artifacts import LoginAttemptResult
from ..core.config import ProbeConfig, load_configuration
from ..core.errors import (
    PASSWORD_NOT_FOUND,
    SUBMIT_NOT_FOUND,
    USERNAME_NOT_FOUND,
    AttemptTimeoutError,
    ElementNotFoundError,
    LoginProbeError,
)
from ..core.models import Credentials, DetectedField, SecurityFeature, SubmitOptions
from ..recon.classifier import IDENTIFIER_TYPES, detect_fields_in_page
from ..recon.security import detect_in_page
from .outcome import explain_outcome, same_url

logger = logging.getLogger(__name__)

USERNAME_SELECTORS = (
    'input[type="email"]',
    'input[name*="email" i]',
    'input[name*="username" i]',
    'input[name*="user" i]',
    'input[name*="login" i]',
    'input[name*="account" i]',
    'input[name*="signin" i]',
    'input[id*="email" i]',
    'input[id*="username" i]',
    'input[id*="user" i]',
    'input[id*="login" i]',
    'input[id*="account" i]',
    'input[placeholder*="user" i]',
    'input[placeholder*="email" i]',
    'input[placeholder*="login" i]',
)

PASSWORD_SELECTORS = (
    'input[type="password"]',
    'input[name*="pass" i]',
    'input[id*="pass" i]',
)

SUBMIT_SELECTORS = (
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Login")',
    'button:has-text("Log in")',
    'button:has-text("Sign in")',
    'button:has-text("Submit")',
    'button:has-text("Continue")',
    '[class*="login" i]',
    '[class*="submit" i]',
)


class SubmissionState(str, Enum):
    IDLE = "idle"
    PAGE_LOADING = "page_loading"
    DETECTING = "detecting"
    FILLING = "filling"
    SUBMITTING = "submitting"
    SETTLING = "settling"
    CLASSIFIED = "classified"
    TERMINAL = "terminal"


@dataclass
class _Attempt:
    """Mutable bookkeeping for one attempt; frozen into a result at the end."""

    url: str
    started: float
    trace: List[SubmissionState] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    fields: List[DetectedField] = field(default_factory=list)
    features: List[SecurityFeature] = field(default_factory=list)
    final_url: Optional[str] = None
    cookies: List[Dict[str, Any]] = field(default_factory=list)
    response_headers: Dict[str, str] = field(default_factory=dict)
    response_status: int = 0
    success: bool = False

    @property
    def state(self) -> SubmissionState:
        return self.trace[-1] if self.trace else SubmissionState.IDLE

    def enter(self, state: SubmissionState) -> None:
        logger.debug("%s: %s -> %s", self.url, self.state.value, state.value)
        self.trace.append(state)

    def fail(self, message: str) -> None:
        self.errors.append(message)
        self.success = False
        if self.state is not SubmissionState.CLASSIFIED:
            self.enter(SubmissionState.CLASSIFIED)

    def to_result(self, finished: float) -> LoginAttemptResult:
        redirect = self.final_url if self.final_url and not same_url(self.final_url, self.url) else None
        return LoginAttemptResult(
            url=self.url,
            success=self.success,
            session_data={"cookies": list(self.cookies), "final_url": self.final_url},
            response_headers=dict(self.response_headers),
            redirect_url=redirect,
            security_features=tuple(self.features),
            response_status=self.response_status,
            errors=tuple(self.errors),
            duration_ms=int((finished - self.started) * 1000),
            state_trace=tuple(state.value for state in self.trace),
        )


class LoginSubmitter:
    """Opens a page, fills the discovered login form and classifies the outcome."""

    def __init__(
        self,
        driver: Any,
        *,
        config: Optional[ProbeConfig] = None,
        options: Optional[SubmitOptions] = None,
        field_detector: Callable[[Any], List[DetectedField]] = detect_fields_in_page,
        feature_detector: Callable[[Any], List[SecurityFeature]] = detect_in_page,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.driver = driver
        self.config = config or load_configuration()
        self.options = options or SubmitOptions()
        self.field_detector = field_detector
        self.feature_detector = feature_detector
        self.clock = clock

    @property
    def page_timeout_ms(self) -> int:
        return self.options.timeout_ms or self.config.page_load_timeout_ms

    @property
    def navigation_timeout_ms(self) -> int:
        return self.options.navigation_timeout_ms or self.config.navigation_timeout_ms

    @property
    def user_agent(self) -> str:
        return self.options.user_agent or self.config.user_agent

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------
    def submit(self, url: str, credentials: Credentials) -> LoginAttemptResult:
        attempt = _Attempt(url=url, started=self.clock())
        attempt.enter(SubmissionState.IDLE)
        logger.info("Attempting login to %s as %s", url, credentials.username)

        try:
            attempt.enter(SubmissionState.PAGE_LOADING)
            with self.driver.open_page(
                url, timeout_ms=self.page_timeout_ms, user_agent=self.user_agent
            ) as page:
                attempt.response_status = page.response_status
                attempt.response_headers = page.response_headers
                try:
                    self._drive(page, attempt, credentials)
                except LoginProbeError as exc:
                    attempt.fail(str(exc))
                except Exception as exc:
                    logger.warning("Login attempt on %s raised %s", url, exc, exc_info=True)
                    attempt.fail(str(exc) or exc.__class__.__name__)
                if attempt.final_url is None:
                    self._snapshot(page, attempt)
        except LoginProbeError as exc:
            attempt.fail(str(exc))
        except Exception as exc:
            logger.warning("Browser session for %s failed: %s", url, exc, exc_info=True)
            attempt.fail(str(exc) or exc.__class__.__name__)

        attempt.enter(SubmissionState.TERMINAL)
        result = attempt.to_result(self.clock())
        logger.info(
            "Login attempt on %s finished: %s in %dms",
            url,
            "SUCCESS" if result.success else "FAILED",
            result.duration_ms,
        )
        return result

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------
    def _drive(self, page: Any, attempt: _Attempt, credentials: Credentials) -> None:
        self._check_deadline(attempt)
        attempt.enter(SubmissionState.DETECTING)
        attempt.fields = list(self.field_detector(page.page))
        attempt.features = list(self.feature_detector(page.page))

        self._check_deadline(attempt)
        attempt.enter(SubmissionState.FILLING)
        username_field = page.query_any(self._candidates(USERNAME_SELECTORS, attempt.fields, IDENTIFIER_TYPES))
        if username_field is None:
            raise ElementNotFoundError(USERNAME_NOT_FOUND)
        password_field = page.query_any(self._candidates(PASSWORD_SELECTORS, attempt.fields, {"password"}))
        if password_field is None:
            raise ElementNotFoundError(PASSWORD_NOT_FOUND)
        page.type_into(username_field, credentials.username)
        page.type_into(password_field, credentials.password)

        self._check_deadline(attempt)
        attempt.enter(SubmissionState.SUBMITTING)
        submit_control = page.query_any(self._candidates(SUBMIT_SELECTORS, attempt.fields, {"submit"}))
        if submit_control is None:
            raise ElementNotFoundError(SUBMIT_NOT_FOUND)
        if not page.click_and_wait(submit_control, self.navigation_timeout_ms):
            logger.debug("No navigation after submitting %s; continuing", attempt.url)

        attempt.enter(SubmissionState.SETTLING)
        self._snapshot(page, attempt)

        attempt.enter(SubmissionState.CLASSIFIED)
        verdict = explain_outcome(
            attempt.url,
            attempt.final_url or "",
            page.content(),
            has_logout_affordance=page.has_logout_affordance(),
        )
        logger.debug("Outcome for %s: %s (%s)", attempt.url, verdict.reason, verdict.keyword)
        attempt.success = verdict.success

    @staticmethod
    def _candidates(
        selectors: Sequence[str], fields: Sequence[DetectedField], types: Any
    ) -> List[str]:
        ordered = list(selectors)
        for item in fields:
            if item["type"] in types and item["selector"] not in ordered:
                ordered.append(item["selector"])
        return ordered

    def _check_deadline(self, attempt: _Attempt) -> None:
        elapsed = self.clock() - attempt.started
        if elapsed > self.config.browser_envelope_s:
            raise AttemptTimeoutError(
                f"Attempt exceeded {self.config.browser_envelope_s}s envelope"
            )

    @staticmethod
    def _snapshot(page: Any, attempt: _Attempt) -> None:
        try:
            attempt.final_url = page.url
            attempt.cookies = page.cookies()
        except Exception:
            logger.debug("Could not capture session state for %s", attempt.url, exc_info=True)
