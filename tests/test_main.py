from main import main, parse_args, resolve_settings
from store_config import Settings


class TestResolveSettings:
    def test_cli_host_wins(self, monkeypatch):
        monkeypatch.setenv("AWTRIX_HOST", "env-host")
        s = resolve_settings(parse_args(["--awtrix-host", "cli-host"]), Settings(awtrix_host="cfg-host"))
        assert s.awtrix_host == "cli-host"

    def test_env_host_before_config(self, monkeypatch):
        monkeypatch.setenv("AWTRIX_HOST", "env-host")
        s = resolve_settings(parse_args([]), Settings(awtrix_host="cfg-host"))
        assert s.awtrix_host == "env-host"

    def test_config_host_fallback(self, monkeypatch):
        monkeypatch.delenv("AWTRIX_HOST", raising=False)
        s = resolve_settings(parse_args([]), Settings(awtrix_host="cfg-host"))
        assert s.awtrix_host == "cfg-host"

    def test_ignore_apps_are_appended(self):
        s = resolve_settings(parse_args(["--ignore-apps", "vivaldi, cava"]), Settings())
        assert s.ignore_apps == ("cava", "pavucontrol", "vivaldi")

    def test_debounce_flags(self):
        assert resolve_settings(parse_args(["--debounce-ms", "120"]), Settings()).debounce_ms == 120
        assert resolve_settings(parse_args(["--no-debounce", "--debounce-ms", "120"]), Settings()).debounce_ms == 0

    def test_log_ignored_flag(self):
        assert resolve_settings(parse_args(["--log-ignored-apps"]), Settings()).log_ignored_apps


class TestMain:
    def test_missing_host_exits_with_error(self, monkeypatch, tmp_path, capsys):
        monkeypatch.delenv("AWTRIX_HOST", raising=False)
        assert main(["--config", str(tmp_path / "onair.cfg")]) == 1
        assert "AWTRIX_HOST" in capsys.readouterr().err
