"""Detection of authentication hardening: CAPTCHA, CSRF tokens, MFA and OAuth/SSO.

Two modes are offered and their ``details`` differ on purpose:

* :func:`detect_in_page` counts matching elements in the rendered DOM, so its
  entries carry ``count`` and ``precision="element"``.
* :func:`detect_in_markup` also accepts plain substring hits in the raw markup,
  which cannot tell a real widget from an incidental mention. Its entries carry
  ``detected_in_html=True`` and ``precision="substring"`` so callers can weigh
  them as lower-confidence evidence.

Either way at most one entry is reported per category.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup

from ..core.models import FeatureType, SecurityFeature
from .signals import parse_markup

logger = logging.getLogger(__name__)

CATEGORY_ORDER: Tuple[FeatureType, ...] = ("captcha", "csrf", "mfa", "oauth")

OAUTH_PROVIDERS = ("google", "facebook", "microsoft")
MFA_KEYWORDS = ("code", "mfa", "otp")

TEXT_MARKERS: Dict[str, Tuple[str, ...]] = {
    "captcha": ("captcha", "recaptcha", "data-sitekey"),
    "csrf": ("csrf", "_token"),
    "oauth": ("oauth", *OAUTH_PROVIDERS),
}

LIVE_SELECTORS: Dict[str, str] = {
    "captcha": ", ".join(
        (
            'img[src*="captcha" i]',
            '[class*="captcha" i]',
            '[id*="captcha" i]',
            ".g-recaptcha",
            "#recaptcha",
            "[data-sitekey]",
        )
    ),
    "csrf": ", ".join(
        (
            'input[name*="csrf" i]',
            'input[id*="csrf" i]',
            'input[name*="token" i]',
            'input[id*="token" i]',
            'meta[name="csrf-token"]',
            'meta[name="_token"]',
        )
    ),
    "mfa": ", ".join(
        f'input[{attribute}*="{keyword}" i]'
        for attribute in ("name", "placeholder", "class", "id")
        for keyword in MFA_KEYWORDS
    ),
    "oauth": ", ".join(
        f'[class*="{keyword}" i]' for keyword in ("oauth", *OAUTH_PROVIDERS, "sso")
    ),
}

LIVE_DETAIL_KEYS = {
    "captcha": "widgets_found",
    "csrf": "tokens_found",
    "mfa": "fields_found",
    "oauth": "providers_found",
}


def _attr(tag: Any, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, (list, tuple)):
        value = " ".join(value)
    return (value or "").lower()


def _contains(value: str, keywords: Iterable[str]) -> bool:
    return bool(value) and any(keyword in value for keyword in keywords)


# ----------------------------------------------------------------------
# Element predicates for markup mode
# ----------------------------------------------------------------------
def _captcha_elements(soup: BeautifulSoup) -> int:
    count = 0
    for tag in soup.find_all(True):
        if (
            (tag.name == "img" and "captcha" in _attr(tag, "src"))
            or "captcha" in _attr(tag, "class")
            or "captcha" in _attr(tag, "id")
            or "g-recaptcha" in _attr(tag, "class").split()
            or _attr(tag, "id") == "recaptcha"
            or tag.has_attr("data-sitekey")
        ):
            count += 1
    return count


def _csrf_elements(soup: BeautifulSoup) -> int:
    count = 0
    for tag in soup.find_all("input"):
        if _contains(_attr(tag, "name"), ("csrf", "token")) or _contains(
            _attr(tag, "id"), ("csrf", "token")
        ):
            count += 1
    for tag in soup.find_all("meta"):
        if _attr(tag, "name") in {"csrf-token", "_token"}:
            count += 1
    return count


def _mfa_elements(soup: BeautifulSoup) -> int:
    count = 0
    for tag in soup.find_all("input"):
        values = (_attr(tag, "name"), _attr(tag, "placeholder"), _attr(tag, "class"), _attr(tag, "id"))
        if any(_contains(value, MFA_KEYWORDS) for value in values):
            count += 1
    return count


def _oauth_elements(soup: BeautifulSoup) -> int:
    keywords = ("oauth", *OAUTH_PROVIDERS, "sso")
    return sum(1 for tag in soup.find_all(True) if _contains(_attr(tag, "class"), keywords))


MARKUP_COUNTERS: Dict[str, Callable[[BeautifulSoup], int]] = {
    "captcha": _captcha_elements,
    "csrf": _csrf_elements,
    "mfa": _mfa_elements,
    "oauth": _oauth_elements,
}


def detect_in_markup(html: str, soup: Optional[BeautifulSoup] = None) -> List[SecurityFeature]:
    """Scans static markup; entries are flagged as lower-precision evidence."""

    soup = soup if soup is not None else parse_markup(html)
    lowered = (html or "").lower()
    features: List[SecurityFeature] = []

    for category in CATEGORY_ORDER:
        try:
            element_hits = MARKUP_COUNTERS[category](soup)
        except Exception:
            logger.debug("Element scan for %s failed", category, exc_info=True)
            element_hits = 0
        text_hit = _contains(lowered, TEXT_MARKERS.get(category, ()))
        if element_hits or text_hit:
            features.append(
                {
                    "type": category,
                    "details": {
                        "detected_in_html": True,
                        "precision": "substring",
                        "matched_elements": element_hits,
                    },
                }
            )
    return features


def detect_in_page(page: Any) -> List[SecurityFeature]:
    """Counts indicator elements in a rendered page, one entry per category."""

    features: List[SecurityFeature] = []
    for category in CATEGORY_ORDER:
        try:
            count = page.locator(LIVE_SELECTORS[category]).count()
        except Exception:
            logger.debug("Live scan for %s failed", category, exc_info=True)
            continue
        if count > 0:
            features.append(
                {
                    "type": category,
                    "details": {
                        "count": count,
                        LIVE_DETAIL_KEYS[category]: count,
                        "precision": "element",
                    },
                }
            )
    return features
