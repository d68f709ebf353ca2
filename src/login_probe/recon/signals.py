"""Extracts per-element signals from raw markup or from a rendered page."""

from __future__ import annotations

import logging
import re
from typing import Any, List, Mapping, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..core.models import ElementSignals, PageContext

logger = logging.getLogger(__name__)

CANDIDATE_TAGS = ("input", "button")
PASSWORD_MARKER = re.compile(r"""type\s*=\s*["']?password\b""", re.IGNORECASE)

LIVE_SIGNAL_SCRIPT = """
(el) => {
    const tag = el.tagName.toLowerCase();
    const text = tag === 'input' ? (el.getAttribute('value') || '') : (el.textContent || '');
    const labels = el.labels && el.labels.length ? el.labels[0].textContent || '' : '';
    return {
        tag,
        type: el.getAttribute('type'),
        name: el.getAttribute('name'),
        id: el.getAttribute('id'),
        placeholder: el.getAttribute('placeholder'),
        class: el.getAttribute('class'),
        'aria-label': el.getAttribute('aria-label'),
        required: el.hasAttribute('required'),
        text: text.trim(),
        label: labels.trim(),
    };
}
"""


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(item) for item in value).strip()
    return str(value).strip()


def build_signals(
    tag: str,
    attributes: Mapping[str, Any],
    *,
    has_password_field: bool,
    text: Optional[str] = None,
    label: Optional[str] = None,
) -> ElementSignals:
    """Normalises raw attribute values into an :class:`ElementSignals` record."""

    tag = _text(tag).lower() or "input"
    kind = "button" if tag == "button" else "input"
    default_type = "button" if kind == "button" else "text"

    raw_type = _text(attributes.get("type"))
    raw_name = _text(attributes.get("name"))
    raw_id = _text(attributes.get("id"))
    raw_placeholder = _text(attributes.get("placeholder"))
    raw_aria = _text(attributes.get("aria-label"))
    raw_text = " ".join(_text(text).split())
    required = attributes.get("required")

    return ElementSignals(
        kind=kind,
        tag=tag,
        type_attr=raw_type.lower() or default_type,
        raw_type=raw_type,
        name=raw_name.lower(),
        element_id=raw_id.lower(),
        placeholder=raw_placeholder.lower(),
        class_name=_text(attributes.get("class")).lower(),
        aria_label=raw_aria.lower(),
        required=required is not None and required is not False,
        visible_text=raw_text.lower(),
        has_sibling_password_field=has_password_field,
        raw_name=raw_name,
        raw_id=raw_id,
        raw_placeholder=raw_placeholder,
        raw_aria_label=raw_aria,
        raw_text=raw_text,
        label_text=" ".join(_text(label).split()),
    )


# ----------------------------------------------------------------------
# Markup mode
# ----------------------------------------------------------------------
def parse_markup(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html or "", "html.parser")
    except Exception:
        logger.debug("Markup could not be parsed; treating it as empty", exc_info=True)
        return BeautifulSoup("", "html.parser")


def page_context_from_soup(soup: BeautifulSoup, html: str = "") -> PageContext:
    for element in soup.find_all("input"):
        if _text(element.get("type")).lower() == "password":
            return PageContext(has_password_field=True)
    return PageContext(has_password_field=bool(html and PASSWORD_MARKER.search(html)))


def extract_from_tag(tag: Tag, *, has_password_field: bool) -> ElementSignals:
    name = (tag.name or "").lower()
    text = tag.get("value") if name == "input" else tag.get_text(" ", strip=True)
    return build_signals(
        name,
        tag.attrs,
        has_password_field=has_password_field,
        text=text,
    )


def extract_from_soup(soup: BeautifulSoup, context: PageContext) -> List[ElementSignals]:
    signals: List[ElementSignals] = []
    for element in soup.find_all(list(CANDIDATE_TAGS)):
        try:
            signals.append(
                extract_from_tag(element, has_password_field=context.has_password_field)
            )
        except Exception:
            logger.debug("Skipping unreadable <%s> tag", element.name, exc_info=True)
    return signals


def extract_from_markup(html: str) -> Tuple[List[ElementSignals], PageContext]:
    """Parses ``html`` and returns every input/button signal plus the page context."""

    soup = parse_markup(html)
    context = page_context_from_soup(soup, html)
    return extract_from_soup(soup, context), context


# ----------------------------------------------------------------------
# Live mode
# ----------------------------------------------------------------------
def page_context_from_page(page: Any) -> PageContext:
    try:
        count = page.locator('input[type="password" i]').count()
    except Exception:
        logger.debug("Password probe failed on live page", exc_info=True)
        count = 0
    return PageContext(has_password_field=count > 0)


def _safe_attr(element: Any, attribute: str) -> Optional[str]:
    try:
        return element.get_attribute(attribute)
    except Exception:
        return None


def extract_from_locator(element: Any, *, has_password_field: bool) -> ElementSignals:
    try:
        raw = element.evaluate(LIVE_SIGNAL_SCRIPT)
    except Exception:
        raw = None

    if isinstance(raw, Mapping):
        return build_signals(
            raw.get("tag") or "input",
            raw,
            has_password_field=has_password_field,
            text=raw.get("text"),
            label=raw.get("label"),
        )

    try:
        tag = element.evaluate("(el) => el.tagName.toLowerCase()")
    except Exception:
        tag = "input"
    attributes = {
        key: _safe_attr(element, key)
        for key in ("type", "name", "id", "placeholder", "class", "aria-label")
    }
    if _safe_attr(element, "required") is not None:
        attributes["required"] = True
    try:
        text = element.text_content() if tag == "button" else _safe_attr(element, "value")
    except Exception:
        text = None
    return build_signals(tag, attributes, has_password_field=has_password_field, text=text)


def _safe_locator_list(owner: Any, selector: str) -> list[Any]:
    try:
        return owner.locator(selector).all()
    except Exception:
        return []


def extract_from_page(page: Any) -> Tuple[List[ElementSignals], PageContext]:
    """Reads signals for every input and button currently rendered on ``page``."""

    context = page_context_from_page(page)
    signals: List[ElementSignals] = []
    for selector in CANDIDATE_TAGS:
        for element in _safe_locator_list(page, selector):
            signals.append(
                extract_from_locator(element, has_password_field=context.has_password_field)
            )
    return signals, context

