"""Login surface detection, credential submission and batch runs."""

from .core.artifacts import AnalysisResult, BatchJob, GeneratedForm, LoginAttemptResult
from .core.models import Credentials, DetectedField, SecurityFeature, SubmitOptions
from .service import LoginProbe, analyze, submit

__all__ = [
    "AnalysisResult",
    "BatchJob",
    "Credentials",
    "DetectedField",
    "GeneratedForm",
    "LoginAttemptResult",
    "LoginProbe",
    "SecurityFeature",
    "SubmitOptions",
    "analyze",
    "submit",
]
