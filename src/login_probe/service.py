"""Public entry points: analyze, submit, batch and generated-form operations."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from .auth.browser import PlaywrightDriver
from .auth.submission import LoginSubmitter
from .batch.orchestrator import BatchOrchestrator
from .core.artifacts import AnalysisResult, BatchJob, GeneratedForm, LoginAttemptResult
from .core.config import ProbeConfig, load_configuration
from .core.errors import AttemptTimeoutError, InputError, PersistenceError
from .core.models import Credentials, DetectedField, SubmitOptions
from .core.storage import (
    DETECTED_FIELDS,
    LOGIN_ATTEMPTS,
    SECURITY_FEATURES,
    JsonFileStore,
    Store,
)
from .forms.generator import list_forms, save_form
from .recon.analysis import analyze_live, analyze_markup
from .recon.fetcher import FetchedPage, fetch_markup

logger = logging.getLogger(__name__)

ANALYSIS_MODES = ("static", "browser")

Fetcher = Callable[..., FetchedPage]
DriverFactory = Callable[[SubmitOptions], Any]


def _require_url(url: Optional[str]) -> str:
    if not url or not url.strip():
        raise InputError("URL is required")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise InputError(f"URL must be an absolute http(s) address: {url}")
    return url


class LoginProbe:
    """Wires configuration, storage, fetcher and browser driver together."""

    def __init__(
        self,
        config: Optional[ProbeConfig] = None,
        *,
        store: Optional[Store] = None,
        fetcher: Fetcher = fetch_markup,
        driver_factory: Optional[DriverFactory] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or load_configuration()
        self.store: Store = store if store is not None else JsonFileStore(self.config.store_path)
        self.fetcher = fetcher
        self.driver_factory = driver_factory or self._playwright_driver
        self.clock = clock
        self.orchestrator = BatchOrchestrator(self.store, self.submit)

    def _playwright_driver(self, options: SubmitOptions) -> PlaywrightDriver:
        headless = self.config.headless if options.headless is None else options.headless
        return PlaywrightDriver(headless=headless, proxy=options.proxy or self.config.proxy)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------
    def analyze(self, url: str, mode: str = "static") -> AnalysisResult:
        url = _require_url(url)
        if mode not in ANALYSIS_MODES:
            raise InputError(f"Unknown analysis mode {mode!r}; expected one of {ANALYSIS_MODES}")

        logger.info("Analyzing login page %s (mode: %s)", url, mode)
        started = self.clock()
        if mode == "browser":
            driver = self.driver_factory(SubmitOptions(use_browser=True))
            with driver.open_page(
                url,
                timeout_ms=self.config.page_load_timeout_ms,
                user_agent=self.config.user_agent,
            ) as page:
                result = analyze_live(url, page.page)
                elapsed = self.clock() - started
                if elapsed > self.config.browser_envelope_s:
                    raise AttemptTimeoutError(
                        f"Analysis exceeded {self.config.browser_envelope_s}s envelope: {url}"
                    )
        else:
            fetched = self.fetcher(
                url,
                timeout=self.config.static_envelope_s,
                user_agent=self.config.user_agent,
                proxy=self.config.proxy,
            )
            result = analyze_markup(url, fetched.text)

        result.metadata["analysis_duration_ms"] = int((self.clock() - started) * 1000)
        self._store_analysis(result)
        logger.info(
            "Analysis completed for %s in %dms: %d field(s), %d security feature(s)",
            url,
            result.metadata["analysis_duration_ms"],
            len(result.fields),
            len(result.security_features),
        )
        return result

    def _store_analysis(self, result: AnalysisResult) -> None:
        try:
            self.store.insert_many(
                DETECTED_FIELDS,
                [
                    {
                        "url": result.url,
                        "field_type": item["type"],
                        "selector": item["selector"],
                        "placeholder": item.get("placeholder"),
                        "label": item["label"],
                        "required": item["required"],
                    }
                    for item in result.fields
                ],
            )
            self.store.insert_many(
                SECURITY_FEATURES,
                [
                    {"url": result.url, "feature_type": item["type"], "details": dict(item["details"])}
                    for item in result.security_features
                ],
            )
        except PersistenceError as exc:
            logger.warning("Database storage failed, continuing with analysis: %s", exc)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    def submit(
        self,
        url: str,
        credentials: Credentials,
        options: Optional[SubmitOptions] = None,
    ) -> LoginAttemptResult:
        url = _require_url(url)
        if credentials is None or not credentials.username or not credentials.password:
            raise InputError("Missing required fields: url, credentials.username, credentials.password")

        options = options or SubmitOptions()
        submitter = LoginSubmitter(self.driver_factory(options), config=self.config, options=options)
        result = submitter.submit(url, credentials)
        self._store_attempt(result, credentials, options)
        return result

    def _store_attempt(
        self, result: LoginAttemptResult, credentials: Credentials, options: SubmitOptions
    ) -> None:
        try:
            self.store.insert(
                LOGIN_ATTEMPTS,
                {
                    "target_url": result.url,
                    "username": credentials.username,
                    "success": result.success,
                    "response_status": result.response_status,
                    "response_headers": dict(result.response_headers),
                    "redirect_url": result.redirect_url,
                    "session_cookies": result.cookies,
                    "error_message": "; ".join(result.errors) or None,
                    "attempt_duration": result.duration_ms,
                    "user_agent": options.user_agent or self.config.user_agent,
                    "proxy_used": options.proxy or self.config.proxy,
                },
            )
        except PersistenceError as exc:
            logger.warning("Could not store login attempt for %s: %s", result.url, exc)

    def login_attempt(
        self,
        url: str,
        credentials: Credentials,
        options: Optional[SubmitOptions] = None,
    ) -> Dict[str, Any]:
        """Analyzes the page, then submits credentials, and merges both reports."""

        options = options or SubmitOptions()
        analysis = self.analyze(url, "browser" if options.use_browser else "static")
        submission = self.submit(url, credentials, options)
        return {
            "success": submission.success,
            "analysis": {
                "fields": analysis.fields,
                "security_features": analysis.security_features,
                "metadata": analysis.metadata,
            },
            "submission": {
                "session_data": submission.session_data,
                "response_headers": submission.response_headers,
                "redirect_url": submission.redirect_url,
                "duration": submission.duration_ms,
            },
            "errors": list(submission.errors),
        }

    # ------------------------------------------------------------------
    # Batch jobs
    # ------------------------------------------------------------------
    def start_batch(
        self,
        job_name: str,
        target_urls: Iterable[str],
        credentials: Credentials,
        options: Optional[SubmitOptions] = None,
        *,
        background: bool = True,
    ) -> str:
        job = self.orchestrator.create_job(job_name, target_urls, credentials, options)
        if background:
            self.orchestrator.start(job, credentials)
        else:
            self.orchestrator.run(job, credentials)
        return job.id

    def get_batch(self, job_id: str) -> BatchJob:
        if not job_id:
            raise InputError("Job id is required")
        return self.orchestrator.get(job_id)

    # ------------------------------------------------------------------
    # Generated forms
    # ------------------------------------------------------------------
    def save_form(self, target_url: str, fields: Sequence[DetectedField]) -> GeneratedForm:
        return save_form(self.store, _require_url(target_url), fields)

    def list_forms(self) -> List[GeneratedForm]:
        return list_forms(self.store)


# ----------------------------------------------------------------------
# Module-level shortcuts
# ----------------------------------------------------------------------
def analyze(
    url: str,
    mode: str = "static",
    *,
    config: Optional[ProbeConfig] = None,
    store: Optional[Store] = None,
    fetcher: Fetcher = fetch_markup,
    driver_factory: Optional[DriverFactory] = None,
) -> AnalysisResult:
    probe = LoginProbe(config, store=store, fetcher=fetcher, driver_factory=driver_factory)
    return probe.analyze(url, mode)


def submit(
    url: str,
    credentials: Credentials,
    options: Optional[SubmitOptions] = None,
    *,
    config: Optional[ProbeConfig] = None,
    store: Optional[Store] = None,
    driver_factory: Optional[DriverFactory] = None,
) -> LoginAttemptResult:
    probe = LoginProbe(config, store=store, driver_factory=driver_factory)
    return probe.submit(url, credentials, options)
