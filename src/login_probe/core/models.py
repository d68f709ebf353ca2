"""Shared data structures used across the recon and auth layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, TypedDict

FieldType = Literal["username", "email", "password", "submit"]
FeatureType = Literal["captcha", "csrf", "mfa", "oauth"]


class _DetectedFieldBase(TypedDict):
    type: FieldType
    selector: str
    label: str
    required: bool


class DetectedField(_DetectedFieldBase, total=False):
    """A classified login-surface element. ``placeholder`` is only set when present."""

    placeholder: str


class SecurityFeature(TypedDict):
    """One detected hardening category with its supporting evidence."""

    type: FeatureType
    details: Dict[str, Any]


@dataclass(frozen=True, slots=True)
class PageContext:
    """Page-level facts computed once and handed to every element decision."""

    has_password_field: bool = False


@dataclass(frozen=True, slots=True)
class ElementSignals:
    """Lower-cased identifying attributes of one candidate element.

    The ``raw_*`` values keep the original casing and are only used to build
    selectors and human-facing labels. ``type_attr`` falls back to the
    browser default when the element has no ``type`` attribute, while
    ``raw_type`` stays empty.
    """

    kind: str
    tag: str
    type_attr: str = ""
    raw_type: str = ""
    name: str = ""
    element_id: str = ""
    placeholder: str = ""
    class_name: str = ""
    aria_label: str = ""
    required: bool = False
    visible_text: str = ""
    has_sibling_password_field: bool = False
    raw_name: str = ""
    raw_id: str = ""
    raw_placeholder: str = ""
    raw_aria_label: str = ""
    raw_text: str = ""
    label_text: str = ""

    @property
    def identifying_values(self) -> tuple[str, str, str, str, str]:
        return (self.name, self.element_id, self.placeholder, self.class_name, self.aria_label)

    @property
    def has_identifier(self) -> bool:
        return bool(self.name or self.element_id or self.placeholder)


@dataclass(slots=True)
class Credentials:
    username: str
    password: str = field(repr=False)

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(slots=True)
class SubmitOptions:
    """Per-attempt knobs; ``None`` values fall back to the loaded configuration."""

    user_agent: Optional[str] = None
    timeout_ms: Optional[int] = None
    navigation_timeout_ms: Optional[int] = None
    headless: Optional[bool] = None
    proxy: Optional[str] = None
    use_browser: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_agent": self.user_agent,
            "timeout_ms": self.timeout_ms,
            "navigation_timeout_ms": self.navigation_timeout_ms,
            "headless": self.headless,
            "proxy": self.proxy,
            "use_browser": self.use_browser,
        }

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "SubmitOptions":
        raw = raw or {}
        return cls(
            user_agent=raw.get("user_agent"),
            timeout_ms=raw.get("timeout_ms") or raw.get("timeout"),
            navigation_timeout_ms=raw.get("navigation_timeout_ms"),
            headless=raw.get("headless"),
            proxy=raw.get("proxy"),
            use_browser=bool(raw.get("use_browser", False)),
        )
