"""Rule-chain classifier that labels login-surface elements.

Every element is run through :data:`RULES` in order and takes the label of
the first rule whose predicate holds. Elements matching no rule are
``other`` and are dropped. When the primary pass finds no identifier field
(username or email) on a page that has a password input, a fallback stage
re-scans the raw inputs by type alone, trading precision for recall.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Hashable, Iterable, List, Optional, Sequence

from ..core.models import DetectedField, ElementSignals, FieldType, PageContext
from .signals import extract_from_markup, extract_from_page

logger = logging.getLogger(__name__)

EMAIL_KEYWORDS = ("email", "mail")
USERNAME_KEYWORDS = ("user", "login", "account", "signin", "username")
SUBMIT_KEYWORDS = ("login", "sign in", "log in", "submit", "enter", "go", "continue", "next")
IDENTIFIER_TYPES = frozenset({"username", "email"})

# Input types that never carry credentials or trigger a submission.
IGNORED_INPUT_TYPES = frozenset({"hidden", "reset", "image", "checkbox", "radio", "file", "button"})
CSS_IDENTIFIER = re.compile(r"^-?[A-Za-z_][\w-]*$")

Predicate = Callable[[ElementSignals, PageContext], bool]


@dataclass(frozen=True)
class FieldRule:
    name: str
    label: FieldType
    predicate: Predicate

    def matches(self, signals: ElementSignals, context: PageContext) -> bool:
        return self.predicate(signals, context)


def _any_contains(values: Iterable[str], keywords: Sequence[str]) -> bool:
    return any(keyword in value for value in values if value for keyword in keywords)


def _is_input(signals: ElementSignals) -> bool:
    return signals.kind == "input" and signals.type_attr not in IGNORED_INPUT_TYPES


def _password_type(signals: ElementSignals, _context: PageContext) -> bool:
    return _is_input(signals) and signals.type_attr == "password"


def _email_signal(signals: ElementSignals, _context: PageContext) -> bool:
    if not _is_input(signals):
        return False
    return signals.type_attr == "email" or _any_contains(signals.identifying_values, EMAIL_KEYWORDS)


def _username_signal(signals: ElementSignals, _context: PageContext) -> bool:
    return _is_input(signals) and _any_contains(signals.identifying_values, USERNAME_KEYWORDS)


def _submit_input(signals: ElementSignals, _context: PageContext) -> bool:
    return signals.kind == "input" and signals.type_attr == "submit"


def _text_beside_password(signals: ElementSignals, context: PageContext) -> bool:
    return (
        _is_input(signals)
        and signals.type_attr == "text"
        and context.has_password_field
        and signals.has_identifier
    )


def _submit_button(signals: ElementSignals, _context: PageContext) -> bool:
    if signals.kind != "button":
        return False
    if signals.type_attr == "submit":
        return True
    return _any_contains((signals.visible_text, signals.class_name), SUBMIT_KEYWORDS)


RULES: tuple[FieldRule, ...] = (
    FieldRule("password-type", "password", _password_type),
    FieldRule("email-signal", "email", _email_signal),
    FieldRule("username-signal", "username", _username_signal),
    FieldRule("submit-input", "submit", _submit_input),
    FieldRule("text-beside-password", "username", _text_beside_password),
    FieldRule("submit-button", "submit", _submit_button),
)


def match_rule(signals: ElementSignals, context: PageContext) -> Optional[FieldRule]:
    """Returns the first rule whose predicate holds for ``signals``."""

    for rule in RULES:
        if rule.matches(signals, context):
            return rule
    return None


def _escape_attr_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def build_selector(signals: ElementSignals) -> str:
    if signals.raw_id:
        if CSS_IDENTIFIER.match(signals.raw_id):
            return f"#{signals.raw_id}"
        return f'{signals.tag}[id="{_escape_attr_value(signals.raw_id)}"]'
    if signals.raw_name:
        return f'{signals.tag}[name="{_escape_attr_value(signals.raw_name)}"]'
    if signals.raw_type:
        return f'{signals.tag}[type="{signals.type_attr}"]'
    return f"{signals.tag}:not([type])"


def build_label(signals: ElementSignals, field_type: str) -> str:
    for candidate in (
        signals.raw_placeholder,
        signals.label_text,
        signals.raw_aria_label,
        signals.raw_text,
    ):
        if candidate:
            return candidate
    return field_type.capitalize()


def _to_field(signals: ElementSignals, field_type: FieldType, *, label: Optional[str] = None) -> DetectedField:
    detected: DetectedField = {
        "type": field_type,
        "selector": build_selector(signals),
        "label": label or build_label(signals, field_type),
        "required": signals.required,
    }
    if signals.raw_placeholder:
        detected["placeholder"] = signals.raw_placeholder
    return detected


def classify(signals: ElementSignals, context: PageContext) -> Optional[DetectedField]:
    """Labels one element, or returns ``None`` when it is not part of a login surface."""

    rule = match_rule(signals, context)
    if rule is None:
        return None
    return _to_field(signals, rule.label)


def _selector_key(item: DetectedField) -> Hashable:
    return item["selector"]


def _type_selector_key(item: DetectedField) -> Hashable:
    return (item["type"], item["selector"])


def _dedupe(
    fields: Iterable[DetectedField], key: Callable[[DetectedField], Hashable] = _selector_key
) -> List[DetectedField]:
    unique: List[DetectedField] = []
    seen: set[Hashable] = set()
    for item in fields:
        marker = key(item)
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(item)
    return unique


def classify_elements(signals: Sequence[ElementSignals], context: PageContext) -> List[DetectedField]:
    """Primary pass: every element through the rule chain, ``other`` dropped."""

    fields: List[DetectedField] = []
    for item in signals:
        detected = classify(item, context)
        if detected is None:
            logger.debug("<%s type=%s> filtered out", item.tag, item.type_attr)
            continue
        logger.debug("<%s type=%s> classified as %s", item.tag, item.type_attr, detected["type"])
        fields.append(detected)
    return _dedupe(fields, _type_selector_key)


def fallback_fields(signals: Sequence[ElementSignals]) -> List[DetectedField]:
    """Type-only re-scan used when signal-based detection found no identifier."""

    fields: List[DetectedField] = []
    for item in signals:
        if item.kind != "input":
            continue
        if item.type_attr == "password":
            fields.append(_to_field(item, "password", label="Password"))
        elif item.type_attr == "email":
            fields.append(_to_field(item, "email", label="Email"))
        elif item.type_attr == "text":
            fields.append(_to_field(item, "username", label="Username"))
    return _dedupe(fields, _type_selector_key)


def needs_fallback(fields: Sequence[DetectedField], context: PageContext) -> bool:
    if not context.has_password_field:
        return False
    return not any(item["type"] in IDENTIFIER_TYPES for item in fields)


def detect_fields(signals: Sequence[ElementSignals], context: PageContext) -> List[DetectedField]:
    """Runs the primary pass and, when it comes up short, the fallback stage."""

    primary = classify_elements(signals, context)
    if not needs_fallback(primary, context):
        return primary

    fallback = fallback_fields(signals)
    logger.info(
        "No identifier field among %d primary results; fallback found %d field(s)",
        len(primary),
        len(fallback),
    )
    return _dedupe([*fallback, *primary])


def detect_fields_in_markup(html: str) -> List[DetectedField]:
    signals, context = extract_from_markup(html)
    return detect_fields(signals, context)


def detect_fields_in_page(page) -> List[DetectedField]:
    signals, context = extract_from_page(page)
    return detect_fields(signals, context)
