import json

import pytest

from tests.helpers.fakes import FailingStore, FakeBrowserPage, FakeDriver, FakeElement, FakeLivePage
from tests.helpers.login_imports import (
    DETECTED_FIELDS,
    JOB_COMPLETED,
    LOGIN_ATTEMPTS,
    SECURITY_FEATURES,
    AttemptTimeoutError,
    Credentials,
    InputError,
    MemoryStore,
    ProbeConfig,
    SubmitOptions,
    service,
)
from tests.helpers.login_imports import fetcher as fetcher_module

LOGIN_URL = "https://example.com/login"
MARKUP = (
    '<title>Login</title><form><input name="username" placeholder="Username">'
    '<input type="password" name="password"><input type="hidden" name="_csrf">'
    '<button type="submit">Log in</button></form>'
)


def fake_fetcher(html=MARKUP):
    calls = []

    def fetch(url, **kwargs):
        calls.append((url, kwargs))
        return fetcher_module.FetchedPage(url=url, status=200, text=html)

    fetch.calls = calls
    return fetch


def make_probe(tmp_path, *, store=None, fetch=None, driver=None, clock=None):
    config = ProbeConfig(store_path=tmp_path / "store.json")
    kwargs = {"clock": clock} if clock is not None else {}
    return service.LoginProbe(
        config,
        store=store if store is not None else MemoryStore(),
        fetcher=fetch or fake_fetcher(),
        driver_factory=(lambda _options: driver) if driver is not None else None,
        **kwargs,
    )


def test_static_analysis_persists_one_write_per_table(tmp_path):
    store = MemoryStore()
    fetch = fake_fetcher()
    probe = make_probe(tmp_path, store=store, fetch=fetch)

    result = probe.analyze(LOGIN_URL)

    assert result.field_types == ("username", "password", "submit")
    assert result.metadata["analysis_duration_ms"] >= 0
    assert fetch.calls[0][1]["timeout"] == 30
    rows = store.select(DETECTED_FIELDS, {"url": LOGIN_URL})
    assert [row["field_type"] for row in rows] == ["username", "password", "submit"]
    assert rows[0]["placeholder"] == "Username"
    assert [row["feature_type"] for row in store.select(SECURITY_FEATURES)] == ["csrf"]


def test_storage_failure_does_not_break_analysis(tmp_path, caplog):
    probe = make_probe(tmp_path, store=FailingStore(fail_inserts=True))

    result = probe.analyze(LOGIN_URL)

    assert result.field_types == ("username", "password", "submit")
    assert "Database storage failed" in caplog.text


def test_browser_analysis_uses_the_driver(tmp_path):
    live = FakeLivePage(
        elements={"input": [FakeElement(tag="input", type="email", id="mail")]},
        content="<form></form>",
        title="Sign in",
    )
    driver = FakeDriver(FakeBrowserPage(live_page=live))
    probe = make_probe(tmp_path, driver=driver)

    result = probe.analyze(LOGIN_URL, "browser")

    assert result.field_types == ("email",)
    assert result.metadata["javascript_enabled"] is True
    assert driver.released == 1


def test_browser_analysis_past_the_envelope_fails(tmp_path):
    ticks = iter([0.0, 121.0])
    store = MemoryStore()
    driver = FakeDriver(FakeBrowserPage(live_page=FakeLivePage(content="<form></form>")))
    probe = make_probe(tmp_path, store=store, driver=driver, clock=lambda: next(ticks))

    with pytest.raises(AttemptTimeoutError, match="120s envelope"):
        probe.analyze(LOGIN_URL, "browser")

    assert driver.released == 1
    assert store.select(DETECTED_FIELDS) == []


@pytest.mark.parametrize(
    ("url", "mode"),
    [("", "static"), ("   ", "static"), ("ftp://example.com", "static"), ("example.com/login", "static"), (LOGIN_URL, "turbo")],
)
def test_analyze_rejects_bad_input(tmp_path, url, mode):
    fetch = fake_fetcher()
    probe = make_probe(tmp_path, fetch=fetch)

    with pytest.raises(InputError):
        probe.analyze(url, mode)
    assert fetch.calls == []


def test_submit_persists_attempt_without_password(tmp_path):
    store = MemoryStore()
    page = FakeBrowserPage(
        present=['input[name*="username" i]', 'input[type="password"]', 'button[type="submit"]'],
        final_url="https://example.com/home",
        content="<h1>Welcome</h1>",
    )
    probe = make_probe(tmp_path, store=store, driver=FakeDriver(page))

    result = probe.submit(LOGIN_URL, Credentials("alice", "s3cret"), SubmitOptions(proxy="http://proxy:3128"))

    assert result.success is True
    rows = store.select(LOGIN_ATTEMPTS)
    assert len(rows) == 1
    assert rows[0]["username"] == "alice"
    assert rows[0]["redirect_url"] == "https://example.com/home"
    assert rows[0]["proxy_used"] == "http://proxy:3128"
    assert rows[0]["error_message"] is None
    assert "s3cret" not in json.dumps(rows)


def test_submit_survives_storage_failure(tmp_path):
    probe = make_probe(tmp_path, store=FailingStore(fail_inserts=True), driver=FakeDriver())

    result = probe.submit(LOGIN_URL, Credentials("alice", "s3cret"))

    assert result.success is False
    assert result.errors == ("Username field not found",)


@pytest.mark.parametrize("credentials", [None, Credentials("", "pw"), Credentials("alice", "")])
def test_submit_requires_credentials(tmp_path, credentials):
    driver = FakeDriver()
    probe = make_probe(tmp_path, driver=driver)

    with pytest.raises(InputError):
        probe.submit(LOGIN_URL, credentials)
    assert driver.opened == 0


def test_login_attempt_combines_analysis_and_submission(tmp_path):
    page = FakeBrowserPage(
        present=['input[name*="username" i]', 'input[type="password"]', 'button[type="submit"]'],
        content="<p>Invalid credentials</p>",
    )
    probe = make_probe(tmp_path, driver=FakeDriver(page))

    report = probe.login_attempt(LOGIN_URL, Credentials("alice", "s3cret"))

    assert report["success"] is False
    assert [item["type"] for item in report["analysis"]["fields"]] == ["username", "password", "submit"]
    assert report["submission"]["session_data"]["final_url"] == LOGIN_URL
    assert report["errors"] == []


def test_batch_runs_inline_and_can_be_queried(tmp_path):
    probe = make_probe(tmp_path, driver=FakeDriver())

    job_id = probe.start_batch(
        "inline", [LOGIN_URL, "https://other.example/login"], Credentials("alice", "pw"), background=False
    )

    job = probe.get_batch(job_id)
    assert job.status == JOB_COMPLETED
    assert job.progress == 100
    assert [entry["errors"] for entry in job.results] == [["Username field not found"]] * 2


def test_unknown_batch_id(tmp_path):
    probe = make_probe(tmp_path)

    with pytest.raises(InputError):
        probe.get_batch("nope")


def test_forms_round_through_the_store(tmp_path):
    probe = make_probe(tmp_path)
    fields = probe.analyze(LOGIN_URL).fields

    saved = probe.save_form(LOGIN_URL, fields)

    assert [form.id for form in probe.list_forms()] == [saved.id]
    assert 'type="password"' in saved.html_code


def test_module_level_analyze(tmp_path):
    config = ProbeConfig(store_path=tmp_path / "store.json")

    result = service.analyze(LOGIN_URL, config=config, store=MemoryStore(), fetcher=fake_fetcher())

    assert result.metadata["title"] == "Login"
