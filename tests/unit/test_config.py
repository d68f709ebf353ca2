from tests.helpers.login_imports import config_module, load_configuration


def _clear(monkeypatch):
    monkeypatch.setattr(config_module, "load_dotenv", lambda *_args, **_kwargs: False)
    for key in [
        "PROBE_STORE",
        "HEADLESS",
        "PROBE_USER_AGENT",
        "PAGE_LOAD_TIMEOUT_MS",
        "NAVIGATION_TIMEOUT_MS",
        "BROWSER_ANALYSIS_TIMEOUT",
        "STATIC_ANALYSIS_TIMEOUT",
        "PROBE_PROXY",
    ]:
        monkeypatch.delenv(key, raising=False)


def test_load_configuration_uses_environment(monkeypatch, tmp_path):
    _clear(monkeypatch)
    store_path = tmp_path / "store.json"
    monkeypatch.setenv("PROBE_STORE", str(store_path))
    monkeypatch.setenv("HEADLESS", "false")
    monkeypatch.setenv("PROBE_USER_AGENT", "probe-test/1.0")
    monkeypatch.setenv("PAGE_LOAD_TIMEOUT_MS", "5000")
    monkeypatch.setenv("BROWSER_ANALYSIS_TIMEOUT", "60")
    monkeypatch.setenv("PROBE_PROXY", "http://127.0.0.1:8080")

    config = load_configuration()

    assert config.store_path == store_path.resolve()
    assert config.headless is False
    assert config.user_agent == "probe-test/1.0"
    assert config.page_load_timeout_ms == 5000
    assert config.browser_envelope_s == 60
    assert config.proxy == "http://127.0.0.1:8080"


def test_load_configuration_defaults(monkeypatch):
    _clear(monkeypatch)

    config = load_configuration()

    assert config.store_path.name == config_module.DEFAULT_STORE_NAME
    assert config.headless is True
    assert config.user_agent == config_module.DEFAULT_USER_AGENT
    assert config.page_load_timeout_ms == 30000
    assert config.navigation_timeout_ms == 10000
    assert config.browser_envelope_s == 120
    assert config.static_envelope_s == 30
    assert config.proxy is None


def test_malformed_numbers_fall_back_to_defaults(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("PAGE_LOAD_TIMEOUT_MS", "soon")
    monkeypatch.setenv("NAVIGATION_TIMEOUT_MS", "-5")

    config = load_configuration()

    assert config.page_load_timeout_ms == 30000
    assert config.navigation_timeout_ms == 10000


def test_explicit_arguments_override_environment(monkeypatch, tmp_path):
    _clear(monkeypatch)
    monkeypatch.setenv("HEADLESS", "true")
    monkeypatch.setenv("PAGE_LOAD_TIMEOUT_MS", "5000")

    config = load_configuration(str(tmp_path / "cli.json"), headless=False, page_load_timeout_ms=1234)

    assert config.store_path == (tmp_path / "cli.json").resolve()
    assert config.headless is False
    assert config.page_load_timeout_ms == 1234
