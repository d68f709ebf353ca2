"""Decides whether a submission authenticated, from the URL delta and page text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup

LOGIN_URL_MARKERS = ("login", "signin")
SUCCESS_KEYWORDS = ("welcome", "dashboard", "profile", "account", "logout", "success")
FAILURE_KEYWORDS = ("invalid", "incorrect", "failed", "error", "wrong", "denied")
LOGOUT_TEXT = ("logout", "log out", "sign out", "signout")
DEFAULT_PORTS = {"http": 80, "https": 443}

# Success keywords are checked before failure keywords, so a page carrying
# both (an error banner on a dashboard-like page) is reported as a success.


@dataclass(frozen=True)
class OutcomeVerdict:
    success: bool
    reason: str
    keyword: Optional[str] = None


def normalize_url(url: str) -> str:
    """Canonical form used to compare URLs: lower-case scheme and host, no
    default port, ``/`` for an empty path and no fragment."""

    parts = urlsplit((url or "").strip())
    scheme = parts.scheme.lower()
    netloc = parts.netloc.lower()
    default_port = DEFAULT_PORTS.get(scheme)
    if default_port and netloc.endswith(f":{default_port}"):
        netloc = netloc[: -len(f":{default_port}")]
    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))


def same_url(first: Optional[str], second: Optional[str]) -> bool:
    return normalize_url(first or "") == normalize_url(second or "")


def _url_leaves_login(original_url: str, final_url: str) -> bool:
    if not final_url or same_url(original_url, final_url):
        return False
    urls = (original_url.lower(), final_url.lower())
    return not any(marker in url for url in urls for marker in LOGIN_URL_MARKERS)


def visible_text(page_content: str) -> str:
    """Drops scripts, styles and tags so only human-visible text is scanned."""

    soup = BeautifulSoup(page_content or "", "html.parser")
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    return soup.get_text(" ", strip=True).lower()


def has_logout_element(page_content: str) -> bool:
    soup = BeautifulSoup(page_content or "", "html.parser")
    for tag in soup.find_all(["a", "button"]):
        text = tag.get_text(" ", strip=True).lower()
        href = (tag.get("href") or "").lower() if tag.name == "a" else ""
        if any(marker in text for marker in LOGOUT_TEXT) or "logout" in href:
            return True
    return False


def explain_outcome(
    original_url: str,
    final_url: str,
    page_content: str,
    *,
    has_logout_affordance: Optional[bool] = None,
) -> OutcomeVerdict:
    if _url_leaves_login(original_url, final_url):
        return OutcomeVerdict(True, "navigated-away")

    text = visible_text(page_content)
    for keyword in SUCCESS_KEYWORDS:
        if keyword in text:
            return OutcomeVerdict(True, "success-keyword", keyword)

    for keyword in FAILURE_KEYWORDS:
        if keyword in text:
            return OutcomeVerdict(False, "failure-keyword", keyword)

    if has_logout_affordance is None:
        has_logout_affordance = has_logout_element(page_content)
    if has_logout_affordance:
        return OutcomeVerdict(True, "logout-affordance")

    return OutcomeVerdict(False, "no-signal")


def classify_outcome(
    original_url: str,
    final_url: str,
    page_content: str,
    *,
    has_logout_affordance: Optional[bool] = None,
) -> bool:
    return explain_outcome(
        original_url,
        final_url,
        page_content,
        has_logout_affordance=has_logout_affordance,
    ).success
