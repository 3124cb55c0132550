"""Unit tests for the command-line entry point."""

from unittest.mock import patch

from toolhub_server.__main__ import build_parser, main, settings_from_args


def test_settings_from_args_overrides(tmp_path):
    """Test that CLI flags become settings overrides."""
    args = build_parser().parse_args(
        ["--port", "9100", "--data-dir", str(tmp_path), "--cache-ttl", "60"]
    )

    settings = settings_from_args(args)

    assert settings.port == 9100
    assert settings.data_dir == str(tmp_path)
    assert settings.cache_ttl_seconds == 60


def test_main_runs_uvicorn(monkeypatch, tmp_path):
    """Test that the server is started with the configured host and port."""
    monkeypatch.setattr(
        "sys.argv", ["toolhub-server", "--data-dir", str(tmp_path), "--port", "9200"]
    )

    with patch("toolhub_server.__main__.uvicorn.run") as mock_run:
        assert main() == 0

    mock_run.assert_called_once()
    _, kwargs = mock_run.call_args
    assert kwargs["port"] == 9200
    assert kwargs["host"] == "127.0.0.1"


def test_list_servers(monkeypatch, tmp_path, capsys):
    """Test printing the configured servers without starting the server."""
    (tmp_path / "servers.json").write_text(
        '{"servers": {'
        '"docs": {"transport": "http", "url": "http://docs.test/rpc"}, '
        '"search": {"command": "search-server", "env": {"API_KEY": "${TOOLHUB_TEST_MISSING}"}}'
        "}}",
        encoding="utf-8",
    )
    monkeypatch.delenv("TOOLHUB_TEST_MISSING", raising=False)
    monkeypatch.setattr(
        "sys.argv", ["toolhub-server", "--data-dir", str(tmp_path), "--list-servers"]
    )

    with patch("toolhub_server.__main__.uvicorn.run") as mock_run:
        assert main() == 0

    mock_run.assert_not_called()
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["docs", "http", "enabled"]
    assert lines[1].startswith("search")
    assert "missing: TOOLHUB_TEST_MISSING" in lines[1]


def test_list_servers_invalid_file(monkeypatch, tmp_path, capsys):
    """Test the exit code for a malformed servers file."""
    (tmp_path / "servers.json").write_text("{not json", encoding="utf-8")
    monkeypatch.setattr(
        "sys.argv", ["toolhub-server", "--data-dir", str(tmp_path), "--list-servers"]
    )

    assert main() == 1
    assert "Invalid servers file" in capsys.readouterr().err
