"""Configuration loading utilities."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
DEFAULT_STORE_NAME = "login_probe_store.json"
DEFAULT_PAGE_LOAD_TIMEOUT_MS = 30000
DEFAULT_NAVIGATION_TIMEOUT_MS = 10000
DEFAULT_BROWSER_ENVELOPE_S = 120
DEFAULT_STATIC_ENVELOPE_S = 30


@dataclass(slots=True)
class ProbeConfig:
    """Holds runtime options shared by analysis, submission and batch runs."""

    store_path: Path
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    page_load_timeout_ms: int = DEFAULT_PAGE_LOAD_TIMEOUT_MS
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS
    browser_envelope_s: int = DEFAULT_BROWSER_ENVELOPE_S
    static_envelope_s: int = DEFAULT_STATIC_ENVELOPE_S
    proxy: Optional[str] = None


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.lower() in {"1", "true", "yes"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.debug("Ignoring non-numeric %s=%r", name, raw)
        return default
    return value if value > 0 else default


def load_configuration(
    store_name: Optional[str] = None,
    *,
    headless: Optional[bool] = None,
    page_load_timeout_ms: Optional[int] = None,
    navigation_timeout_ms: Optional[int] = None,
) -> ProbeConfig:
    """Builds a ``ProbeConfig`` from CLI input and environment variables."""

    load_dotenv()  # Loads .env values if present

    store_value = store_name or os.getenv("PROBE_STORE") or DEFAULT_STORE_NAME

    return ProbeConfig(
        store_path=Path(store_value).resolve(),
        headless=headless if headless is not None else _env_flag("HEADLESS", True),
        user_agent=os.getenv("PROBE_USER_AGENT") or DEFAULT_USER_AGENT,
        page_load_timeout_ms=page_load_timeout_ms
        or _env_int("PAGE_LOAD_TIMEOUT_MS", DEFAULT_PAGE_LOAD_TIMEOUT_MS),
        navigation_timeout_ms=navigation_timeout_ms
        or _env_int("NAVIGATION_TIMEOUT_MS", DEFAULT_NAVIGATION_TIMEOUT_MS),
        browser_envelope_s=_env_int("BROWSER_ANALYSIS_TIMEOUT", DEFAULT_BROWSER_ENVELOPE_S),
        static_envelope_s=_env_int("STATIC_ANALYSIS_TIMEOUT", DEFAULT_STATIC_ENVELOPE_S),
        proxy=os.getenv("PROBE_PROXY") or None,
    )
