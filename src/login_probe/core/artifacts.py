"""Result containers produced by analysis, submission and batch runs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .models import DetectedField, SecurityFeature

JOB_PENDING = "pending"
JOB_RUNNING = "running"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class AnalysisResult:
    """Fields and hardening features discovered on one page."""

    url: str
    fields: List[DetectedField]
    security_features: List[SecurityFeature]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def field_types(self) -> Tuple[str, ...]:
        return tuple(item["type"] for item in self.fields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "fields": [dict(item) for item in self.fields],
            "security_features": [dict(item) for item in self.security_features],
            "metadata": dict(self.metadata),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4)


@dataclass(frozen=True)
class LoginAttemptResult:
    """Outcome of one credential submission. Never mutated after creation."""

    url: str
    success: bool
    session_data: Dict[str, Any] = field(default_factory=dict)
    response_headers: Dict[str, str] = field(default_factory=dict)
    redirect_url: Optional[str] = None
    security_features: Tuple[SecurityFeature, ...] = ()
    response_status: int = 0
    errors: Tuple[str, ...] = ()
    duration_ms: int = 0
    state_trace: Tuple[str, ...] = ()

    @property
    def final_url(self) -> Optional[str]:
        return self.session_data.get("final_url")

    @property
    def cookies(self) -> List[Dict[str, Any]]:
        return list(self.session_data.get("cookies") or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "success": self.success,
            "session_data": dict(self.session_data),
            "response_headers": dict(self.response_headers),
            "redirect_url": self.redirect_url,
            "security_features": [dict(item) for item in self.security_features],
            "response_status": self.response_status,
            "errors": list(self.errors),
            "duration_ms": self.duration_ms,
            "state_trace": list(self.state_trace),
        }


@dataclass
class BatchJob:
    """A named run of one credential set against many target URLs."""

    id: str
    job_name: str
    target_urls: Tuple[str, ...]
    credentials_ref: Dict[str, Any] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    status: str = JOB_PENDING
    progress: int = 0
    results: List[Dict[str, Any]] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now)
    completed_at: Optional[str] = None
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.status in {JOB_COMPLETED, JOB_FAILED}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_name": self.job_name,
            "target_urls": list(self.target_urls),
            "credentials_ref": dict(self.credentials_ref),
            "options": dict(self.options),
            "status": self.status,
            "progress": self.progress,
            "results": list(self.results),
            "created_at": self.created_at,
            "completed_at": self.completed_at,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "BatchJob":
        return cls(
            id=str(raw["id"]),
            job_name=raw.get("job_name", ""),
            target_urls=tuple(raw.get("target_urls", [])),
            credentials_ref=dict(raw.get("credentials_ref") or {}),
            options=dict(raw.get("options") or {}),
            status=raw.get("status", JOB_PENDING),
            progress=int(raw.get("progress", 0)),
            results=list(raw.get("results") or []),
            created_at=raw.get("created_at") or utc_now(),
            completed_at=raw.get("completed_at"),
            error=raw.get("error"),
        )


@dataclass
class GeneratedForm:
    """A standalone replica of a detected login form."""

    id: str
    target_url: str
    fields: List[DetectedField]
    html_code: str
    created_at: str = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "GeneratedForm":
        return cls(
            id=str(raw["id"]),
            target_url=raw.get("target_url", ""),
            fields=list(raw.get("fields") or []),
            html_code=raw.get("html_code", ""),
            created_at=raw.get("created_at") or utc_now(),
        )
