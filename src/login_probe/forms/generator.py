"""Builds and stores standalone HTML replicas of detected login forms."""

from __future__ import annotations

from html import escape
from typing import List, Sequence

from ..core.artifacts import GeneratedForm
from ..core.errors import InputError
from ..core.models import DetectedField
from ..core.storage import GENERATED_FORMS, Store


def generate_form_html(target_url: str, fields: Sequence[DetectedField]) -> str:
    """Renders every non-submit field as a labelled input plus one submit button."""

    blocks: List[str] = []
    for item in fields:
        if item["type"] == "submit":
            continue
        field_type = item["type"]
        label = item.get("label") or field_type.capitalize()
        attributes = [
            f'type="{"password" if field_type == "password" else "text"}"',
            f'name="{field_type}"',
            f'id="{field_type}"',
        ]
        if item.get("placeholder"):
            attributes.append(f'placeholder="{escape(item["placeholder"])}"')
        if item.get("required"):
            attributes.append("required")
        blocks.append(
            "  <div>\n"
            f'    <label for="{field_type}">{escape(label)}</label>\n'
            f"    <input {' '.join(attributes)} />\n"
            "  </div>"
        )

    body = "\n".join(blocks)
    return (
        f'<form method="POST" action="{escape(target_url)}">\n'
        f"{body}\n"
        '  <button type="submit">Login</button>\n'
        "</form>"
    )


def save_form(store: Store, target_url: str, fields: Sequence[DetectedField]) -> GeneratedForm:
    if not target_url or not fields:
        raise InputError("Missing required fields: target_url, fields")

    html_code = generate_form_html(target_url, fields)
    record = {"target_url": target_url, "fields": [dict(item) for item in fields], "html_code": html_code}
    record_id = store.insert(GENERATED_FORMS, record)
    return GeneratedForm.from_dict(store.get(GENERATED_FORMS, record_id) or {"id": record_id, **record})


def list_forms(store: Store) -> List[GeneratedForm]:
    """Saved forms, newest first."""

    forms = [GeneratedForm.from_dict(row) for row in store.select(GENERATED_FORMS)]
    return sorted(forms, key=lambda form: form.created_at, reverse=True)
