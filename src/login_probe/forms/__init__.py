"""Standalone HTML replicas of detected login forms."""

from .generator import generate_form_html, list_forms, save_form

__all__ = ["generate_form_html", "list_forms", "save_form"]
