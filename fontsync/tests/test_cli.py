"""
Tests for argument parsing, exit codes and log housekeeping
"""

import json
import os
import signal
import socket
import subprocess
import sys
import time
from pathlib import Path

import pytest
import requests

import fontsync
from fontsync import cli
from fontsync.main import build_parser, collect_overrides, main
from fontsync.managers import ConfigManager
from fontsync.models import SyncMode, SyncReport


def test_parse_serve_options():
    args = build_parser().parse_args([
        "--no-gui", "--log-level", "debug", "serve",
        "--port", "9000", "--font-dir", "/srv/fonts", "--watch-mode", "events", "--rescan-interval", "2.5"
    ])
    overrides = collect_overrides(args)

    assert SyncMode(args.mode) == SyncMode.SERVE
    assert args.no_gui
    assert overrides["log_level"] == "DEBUG"
    assert overrides["port"] == 9000
    assert overrides["font_dir"] == "/srv/fonts"
    assert overrides["watch_mode"] == "events"
    assert overrides["rescan_interval_seconds"] == 2.5
    assert overrides["server_url"] is None


def test_parse_sync_options():
    args = build_parser().parse_args(["sync", "--server-url", "http://fonts.local:8080", "--strict"])
    overrides = collect_overrides(args)

    assert overrides["server_url"] == "http://fonts.local:8080"
    assert overrides["strict"] is True
    assert overrides["port"] is None


def test_strict_not_given_keeps_config_value():
    overrides = collect_overrides(build_parser().parse_args(["sync"]))

    assert overrides["strict"] is None


def test_mode_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_invalid_watch_mode_rejected():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["serve", "--watch-mode", "sometimes"])


def test_exit_code_for_report():
    assert cli.exit_code_for_report(SyncReport(), strict=False) == cli.EXIT_SUCCESS
    assert cli.exit_code_for_report(None, strict=True) == cli.EXIT_SUCCESS

    partial = SyncReport(fetched=["A.ttf"], failures={"B.ttf": "Hash mismatch"})
    assert cli.exit_code_for_report(partial, strict=False) == cli.EXIT_SUCCESS
    assert cli.exit_code_for_report(partial, strict=True) == cli.EXIT_FAILURE

    all_failed = SyncReport(failures={"A.ttf": "Font not found: A.ttf"})
    assert cli.exit_code_for_report(all_failed, strict=False) == cli.EXIT_FAILURE


def test_cleanup_old_logs(tmp_path):
    manager = ConfigManager(tmp_path / "fontsync.json")
    manager.apply_overrides({"log_retention_days": 7})
    old_client_log = tmp_path / "fontsync-2020-01-01-00-00-00.log"
    old_server_log = tmp_path / "fontsync-server-2020-01-01.log"
    recent_log = tmp_path / "fontsync-recent.log"
    current_log = tmp_path / "fontsync-current.log"
    for log_file in (old_client_log, old_server_log, recent_log, current_log):
        log_file.write_text("log")
    month_ago = time.time() - 30 * 86400
    for log_file in (old_client_log, old_server_log, current_log):
        os.utime(log_file, (month_ago, month_ago))

    deleted = cli.cleanup_old_logs(manager, current_log)

    assert deleted == 1
    assert not old_client_log.exists()
    assert old_server_log.exists()
    assert recent_log.exists()
    assert current_log.exists()


def test_cleanup_disabled(tmp_path):
    manager = ConfigManager(tmp_path / "fontsync.json")
    manager.apply_overrides({"log_retention_days": 0})
    current_log = tmp_path / "fontsync-current.log"

    assert cli.cleanup_old_logs(manager, current_log) == 0


def test_bad_config_file_exit_code(tmp_path):
    config_file = tmp_path / "fontsync.json"
    config_file.write_text("{broken", encoding="utf-8")

    assert main(["--config", str(config_file), "sync"]) == cli.EXIT_CONFIG_ERROR


def test_invalid_server_url_exit_code(tmp_path):
    config_file = tmp_path / "fontsync.json"
    config_file.write_text(json.dumps({"log_dir": str(tmp_path / "logs")}), encoding="utf-8")

    exit_code = main(["--config", str(config_file), "sync", "--server-url", "ftp://fonts.local",
                      "--local-dir", str(tmp_path / "local")])

    assert exit_code == cli.EXIT_CONFIG_ERROR


def test_unreachable_server_exit_code(tmp_path):
    config_file = tmp_path / "fontsync.json"
    config_file.write_text(json.dumps({
        "log_dir": str(tmp_path / "logs"),
        "sync_retries": 1,
        "reconnect_initial_delay_seconds": 0.01
    }), encoding="utf-8")

    # Port 1 on loopback refuses connections
    exit_code = main(["--config", str(config_file), "sync", "--server-url", "http://127.0.0.1:1",
                      "--local-dir", str(tmp_path / "local")])

    assert exit_code == cli.EXIT_SERVER_UNREACHABLE
    assert (tmp_path / "logs").is_dir()
    # Command-line values are not written back to the config file
    assert "server_url" not in json.loads(config_file.read_text(encoding="utf-8"))


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _server_is_up(url):
    try:
        return requests.get(f"{url}/health", timeout=1).status_code == 200
    except requests.exceptions.RequestException:
        return False


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
@pytest.mark.parametrize("signum", [signal.SIGINT, signal.SIGTERM])
def test_serve_exits_cleanly_on_signal(tmp_path, signum):
    """Test that stopping `fontsync serve` with a signal is a normal exit"""
    config_file = tmp_path / "fontsync.json"
    config_file.write_text(json.dumps({"log_dir": str(tmp_path / "logs")}), encoding="utf-8")
    port = _free_port()
    env = dict(os.environ)
    package_root = str(Path(fontsync.__file__).resolve().parents[1])
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [package_root, env.get("PYTHONPATH")]))

    process = subprocess.Popen(
        [sys.executable, "-m", "fontsync", "--config", str(config_file), "serve",
         "--host", "127.0.0.1", "--port", str(port), "--font-dir", str(tmp_path / "fonts")],
        env=env, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
    )
    try:
        deadline = time.monotonic() + 30
        while not _server_is_up(f"http://127.0.0.1:{port}"):
            assert process.poll() is None, "server exited before it came up"
            assert time.monotonic() < deadline, "server did not come up"
            time.sleep(0.1)

        process.send_signal(signum)

        assert process.wait(timeout=30) == cli.EXIT_SUCCESS
    finally:
        if process.poll() is None:
            process.kill()
            process.wait()
