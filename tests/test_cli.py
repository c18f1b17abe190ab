"""
test_cli.py — Tests for the capship / captn argument handling.

Run with:
    pytest tests/test_cli.py -v
"""

from __future__ import annotations

import pytest

from capship.app.cli import build_capship_parser, build_captn_parser, capship_main, captn_main


class TestCapshipParser:

    def test_flags(self):
        args = build_capship_parser().parse_args(
            ["-c", "/tmp/c.env", "--root", "/srv", "-m", "1024", "-l", "TRACE", "--port", "9000"]
        )
        assert args.config == "/tmp/c.env"
        assert args.root == "/srv"
        assert args.max_upload_size == 1024
        assert args.log_level == "trace"
        assert args.port == 9000
        assert args.command is None

    def test_bad_log_level(self):
        with pytest.raises(SystemExit):
            build_capship_parser().parse_args(["-l", "loud"])

    def test_config_default(self, capsys):
        assert capship_main(["config", "default"]) == 0
        out = capsys.readouterr().out
        assert "CAPSHIP_ROOT=/var/lib/capship/" in out
        assert "CAPSHIP_MAX_UPLOAD_SIZE=2097152" in out
        assert "CAPSHIP_LOG_LEVEL=info" in out

    def test_invalid_config_exits(self, tmp_path, capsys):
        config = tmp_path / "capship.env"
        config.write_text("CAPSHIP_MAX_UPLOAD_SIZE=-5\n")
        assert capship_main(["-c", str(config)]) == 2
        assert "invalid configuration" in capsys.readouterr().err


class TestCaptnParser:

    def test_pull(self):
        args = build_captn_parser().parse_args(["-a", "http://example.org/feed", "pull"])
        assert args.command == "pull"
        assert args.atom_feed == "http://example.org/feed"

    def test_alert_aliases(self):
        args = build_captn_parser().parse_args(["a", "fire"])
        assert args.command == "a"
        assert args.type == "fire"

    def test_alert_type_defaults_to_all(self):
        assert build_captn_parser().parse_args(["alert"]).type == ""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_captn_parser().parse_args([])

    def test_invalid_config_exits(self, tmp_path, capsys):
        config = tmp_path / "capship.env"
        config.write_text("CAPSHIP_HTTP_TIMEOUT_SECONDS=soon\n")
        assert captn_main(["-c", str(config), "pull"]) == 2
        assert "captn: invalid configuration" in capsys.readouterr().err
