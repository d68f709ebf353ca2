import pytest

from tests.helpers.login_imports import GENERATED_FORMS, InputError, MemoryStore, generator

FIELDS = [
    {"type": "email", "selector": "#email", "label": "Email <address>", "required": True, "placeholder": 'you@"site"'},
    {"type": "password", "selector": "#pw", "label": "Password", "required": False},
    {"type": "submit", "selector": 'button[type="submit"]', "label": "Sign in", "required": False},
]


def test_generated_form_skips_submit_fields_and_escapes_values():
    html = generator.generate_form_html("https://example.com/login?next=/a&b=1", FIELDS)

    assert html.startswith('<form method="POST" action="https://example.com/login?next=/a&amp;b=1">')
    assert 'type="text" name="email" id="email" placeholder="you@&quot;site&quot;" required' in html
    assert "Email &lt;address&gt;" in html
    assert 'type="password" name="password" id="password" />' in html
    assert html.count("<button") == 1
    assert html.rstrip().endswith('<button type="submit">Login</button>\n</form>')


def test_save_form_stores_html(tmp_path):
    store = MemoryStore()

    form = generator.save_form(store, "https://example.com/login", FIELDS)

    record = store.get(GENERATED_FORMS, form.id)
    assert record["html_code"] == form.html_code
    assert record["fields"] == FIELDS
    assert form.created_at == record["created_at"]


@pytest.mark.parametrize(("url", "fields"), [("", FIELDS), ("https://example.com", [])])
def test_save_form_requires_url_and_fields(url, fields):
    with pytest.raises(InputError):
        generator.save_form(MemoryStore(), url, fields)


def test_list_forms_newest_first():
    store = MemoryStore()
    store.insert(GENERATED_FORMS, {"id": "old", "target_url": "a", "created_at": "2024-01-01T00:00:00+00:00"})
    store.insert(GENERATED_FORMS, {"id": "new", "target_url": "b", "created_at": "2024-06-01T00:00:00+00:00"})

    assert [form.id for form in generator.list_forms(store)] == ["new", "old"]
