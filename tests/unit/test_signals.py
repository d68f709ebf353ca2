from tests.helpers.fakes import FakeElement, FakeLivePage
from tests.helpers.login_imports import signals


def test_build_signals_lowercases_and_keeps_raw_values():
    result = signals.build_signals(
        "INPUT",
        {"type": "Email", "name": "UserEmail", "id": "Login-Id", "required": ""},
        has_password_field=True,
    )

    assert result.kind == "input"
    assert result.type_attr == "email"
    assert result.name == "useremail"
    assert result.raw_name == "UserEmail"
    assert result.raw_id == "Login-Id"
    assert result.required is True
    assert result.has_sibling_password_field is True


def test_build_signals_defaults_missing_type_per_tag():
    field = signals.build_signals("input", {"name": "q"}, has_password_field=False)
    button = signals.build_signals("button", {}, has_password_field=False, text="  Sign   In ")

    assert field.type_attr == "text"
    assert field.required is False
    assert button.type_attr == "button"
    assert button.raw_text == "Sign In"
    assert button.visible_text == "sign in"


def test_markup_extraction_reads_single_quotes_and_classes():
    html = "<form><input type='password' name='pwd' class='form-control big'><button>Go</button></form>"

    found, context = signals.extract_from_markup(html)

    assert context.has_password_field is True
    assert [item.tag for item in found] == ["input", "button"]
    assert found[0].type_attr == "password"
    assert found[0].class_name == "form-control big"
    assert found[1].visible_text == "go"


def test_markup_extraction_tolerates_malformed_tags():
    html = '<input type="text" name="user" <input type=password name=pw><button type="submit">Log in'

    found, context = signals.extract_from_markup(html)

    assert context.has_password_field is True
    assert found


def test_markup_extraction_of_empty_input():
    found, context = signals.extract_from_markup("")

    assert found == []
    assert context.has_password_field is False


def test_live_extraction_uses_page_context_once():
    page = FakeLivePage(
        elements={
            "input": [
                FakeElement(tag="input", type="text", name="login", label="Your login"),
                FakeElement(tag="input", type="password", id="pw", required=True),
            ],
            "button": [FakeElement(tag="button", type="submit", text="Enter")],
        },
        counts={'input[type="password" i]': 1},
    )

    found, context = signals.extract_from_page(page)

    assert context.has_password_field is True
    assert all(item.has_sibling_password_field for item in found)
    assert [item.kind for item in found] == ["input", "input", "button"]
    assert found[0].label_text == "Your login"
    assert found[1].required is True
    assert found[2].raw_text == "Enter"


def test_live_context_survives_locator_failure():
    class BrokenPage:
        def locator(self, _selector):
            raise RuntimeError("page closed")

    found, context = signals.extract_from_page(BrokenPage())

    assert found == []
    assert context.has_password_field is False
