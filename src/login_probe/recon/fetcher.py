"""HTTP fetch capability used by markup-only analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

import requests

from ..core.config import DEFAULT_STATIC_ENVELOPE_S, DEFAULT_USER_AGENT
from ..core.errors import FetchError


@dataclass(frozen=True)
class FetchedPage:
    url: str
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    text: str = ""


def _prepare_session(user_agent: str, proxy: Optional[str]) -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = user_agent
    if proxy:
        session.proxies.update({"http": proxy, "https": proxy})
    return session


def fetch_markup(
    url: str,
    *,
    timeout: int = DEFAULT_STATIC_ENVELOPE_S,
    user_agent: str = DEFAULT_USER_AGENT,
    proxy: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> FetchedPage:
    """Downloads ``url`` and returns its markup, raising ``FetchError`` on any failure."""

    owned = session is None
    session = session or _prepare_session(user_agent, proxy)
    try:
        response = session.get(url, timeout=timeout, allow_redirects=True)
    except requests.Timeout as exc:
        raise FetchError(f"Fetch timeout after {timeout}s for {url}") from exc
    except requests.RequestException as exc:
        raise FetchError(f"Unable to fetch {url}: {exc}") from exc
    finally:
        if owned:
            session.close()

    if not response.ok:
        raise FetchError(
            f"Failed to fetch URL: {response.status_code} {response.reason}",
            status=response.status_code,
        )

    return FetchedPage(
        url=response.url or url,
        status=response.status_code,
        headers=dict(response.headers),
        text=response.text,
    )
