"""Sequential batch runs of one credential set against many login pages."""

from .orchestrator import BatchOrchestrator, SubmitFn

__all__ = ["BatchOrchestrator", "SubmitFn"]
