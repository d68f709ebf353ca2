"""Combines field classification and security detection into one page analysis."""

from __future__ import annotations

import logging
import re
from typing import Any

from ..core.artifacts import AnalysisResult, utc_now
from .classifier import detect_fields
from .security import detect_in_markup, detect_in_page
from .signals import extract_from_page, extract_from_soup, page_context_from_soup, parse_markup

logger = logging.getLogger(__name__)

FORM_TAG = re.compile(r"<form\b", re.IGNORECASE)


def count_forms(html: str) -> int:
    return len(FORM_TAG.findall(html or ""))


def extract_title(soup) -> str:
    title = soup.title.get_text(strip=True) if soup.title else ""
    return title or "Unknown"


def analyze_markup(url: str, html: str) -> AnalysisResult:
    """Classifies fields and detects features from static markup."""

    soup = parse_markup(html)
    context = page_context_from_soup(soup, html)
    signals = extract_from_soup(soup, context)
    fields = detect_fields(signals, context)
    features = detect_in_markup(html, soup)

    logger.info(
        "Markup analysis of %s: %d field(s) from %d element(s), %d security feature(s)",
        url,
        len(fields),
        len(signals),
        len(features),
    )
    return AnalysisResult(
        url=url,
        fields=fields,
        security_features=features,
        metadata={
            "title": extract_title(soup),
            "forms_found": count_forms(html),
            "analyzed_at": utc_now(),
            "javascript_enabled": False,
            "mode": "static",
        },
    )


def analyze_live(url: str, page: Any) -> AnalysisResult:
    """Classifies fields and detects features on a rendered page."""

    signals, context = extract_from_page(page)
    fields = detect_fields(signals, context)
    features = detect_in_page(page)

    try:
        content = page.content()
    except Exception:
        logger.debug("Could not read rendered content for %s", url, exc_info=True)
        content = ""
    try:
        title = page.title() or "Unknown"
    except Exception:
        title = "Unknown"

    logger.info(
        "Browser analysis of %s: %d field(s) from %d element(s), %d security feature(s)",
        url,
        len(fields),
        len(signals),
        len(features),
    )
    return AnalysisResult(
        url=url,
        fields=fields,
        security_features=features,
        metadata={
            "title": title,
            "forms_found": count_forms(content),
            "analyzed_at": utc_now(),
            "javascript_enabled": True,
            "mode": "browser",
        },
    )
