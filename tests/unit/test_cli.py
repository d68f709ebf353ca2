import sys

from tests.helpers.fakes import FakeDriver
from tests.helpers.login_imports import MemoryStore, cli, config_module, service
from tests.helpers.login_imports import fetcher as fetcher_module

MARKUP = '<form><input type="email" name="email"><input type="password" name="pw"><button>Sign in</button></form>'


def patch_probe(monkeypatch, store):
    monkeypatch.setattr(config_module, "load_dotenv", lambda *_args, **_kwargs: False)

    def fetch(url, **_kwargs):
        return fetcher_module.FetchedPage(url=url, status=200, text=MARKUP)

    def build(config):
        return service.LoginProbe(
            config, store=store, fetcher=fetch, driver_factory=lambda _options: FakeDriver()
        )

    monkeypatch.setattr(cli, "LoginProbe", build)


def test_analyze_prints_fields(monkeypatch, tmp_path, capsys):
    patch_probe(monkeypatch, MemoryStore())

    code = cli.main(["--store", str(tmp_path / "s.json"), "analyze", "https://example.com/login"])

    output = capsys.readouterr().out
    assert code == 0
    assert "=== Analysis :: https://example.com/login ===" in output
    assert 'input[name="email"]' in output
    assert " - No security features detected." in output


def test_submit_failure_exit_code(monkeypatch, tmp_path, capsys):
    patch_probe(monkeypatch, MemoryStore())

    code = cli.main(["submit", "https://example.com/login", "-U", "alice", "-P", "pw"])

    assert code == 1
    assert "Username field not found" in capsys.readouterr().out


def test_unknown_job_exits_with_input_error(monkeypatch, capsys):
    patch_probe(monkeypatch, MemoryStore())

    code = cli.main(["status", "missing"])

    assert code == 2
    assert "Job not found: missing" in capsys.readouterr().err


def test_batch_then_forms(monkeypatch, capsys):
    store = MemoryStore()
    patch_probe(monkeypatch, store)

    assert cli.main(["batch", "nightly", "https://a.example/login", "-U", "alice", "-P", "pw"]) == 0
    assert "[*] Status: completed (100%)" in capsys.readouterr().out

    assert cli.main(["forms", "save", "https://a.example/login"]) == 0
    assert cli.main(["forms", "list"]) == 0
    assert ":: https://a.example/login" in capsys.readouterr().out


def test_checkout_launcher_delegates_to_cli(monkeypatch):
    import main as launcher

    monkeypatch.setattr(cli, "main", lambda: 7)

    assert launcher.main() == 7
    assert str(launcher.SRC_PATH) in sys.path
