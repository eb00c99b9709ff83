import json
import os
import re
import signal
import sys
import threading
import time

import pytest

from conn_checker.config import ProbeConfig
from conn_checker.main import (
    EXIT_ERROR, EXIT_INTERRUPTED, EXIT_OK, _InterruptHandler, collect_overrides, main,
    parse_arguments,
)
from conn_checker.scheduler import ProbeScheduler


@pytest.fixture(autouse=True)
def _logging(restore_logging):
    yield


def write_conf(directory, *servers):
    lines = []
    for server_id, host, port in servers:
        lines += [f'appName: "svc{server_id}"', f"serverID: {server_id}",
                  f'serverIP: "{host}"', f"serverPort: {port}", ""]
    (directory / "servers.conf").write_text("\n".join(lines), encoding="utf-8")


def test_missing_argument_prints_usage(capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_arguments([])
    assert exc_info.value.code != 0
    assert "usage" in capsys.readouterr().err


def test_overrides_map_to_config_fields():
    args = parse_arguments(["cfg", "-t", "2", "-r", "1", "-w", "7", "--retry-delay", "0.5",
                            "--raw-results", "out.json", "--no-color", "-v"])
    overrides = collect_overrides(args)

    assert overrides["connect_timeout"] == 2.0
    assert overrides["retry_count"] == 1
    assert overrides["concurrency_limit"] == 7
    assert overrides["retry_delay"] == 0.5
    assert overrides["save_raw_results"] is True
    assert overrides["raw_results_file"] == "out.json"
    assert overrides["show_colors"] is False
    assert overrides["log_level"] == "DEBUG"
    assert overrides["deadline"] is None


def test_no_valid_records_exits_early(tmp_path, capsys):
    code = main([str(tmp_path), "--no-color", "--log-dir", str(tmp_path / "logs")])

    assert code == EXIT_ERROR
    out = capsys.readouterr().out
    assert "Failed to parse configs" in out
    assert "server_id=" not in out
    assert not (tmp_path / "logs").exists()


def test_invalid_option_value_exits_with_error(tmp_path, capsys):
    assert main([str(tmp_path), "--workers", "0"]) == EXIT_ERROR
    assert "concurrency_limit" in capsys.readouterr().out


def test_full_run(tmp_path, listener, closed_port, capsys):
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    log_dir = tmp_path / "logs"
    raw = tmp_path / "raw.json"
    write_conf(conf_dir, (1, "127.0.0.1", listener), (2, "127.0.0.1", closed_port))

    code = main([str(conf_dir), "--no-color", "--log-dir", str(log_dir), "-r", "2",
                 "--retry-delay", "0.01", "-t", "1", "--raw-results", str(raw)])

    assert code == EXIT_OK
    out = capsys.readouterr().out
    assert re.search(r"Total:\s+2", out)
    assert re.search(r"Succeeded:\s+1", out)
    assert re.search(r"Failed:\s+1", out)

    log_files = list(log_dir.glob("connectinfo_*.log"))
    assert len(log_files) == 1
    logged = log_files[0].read_text(encoding="utf-8")
    assert logged.count("server_id=") == 2
    assert "CONNECTIVITY CHECK SUMMARY" in logged

    data = json.loads(raw.read_text(encoding="utf-8"))
    assert data["summary"]["succeeded"] == 1


def test_wrong_setting_type_exits_with_error(tmp_path, capsys):
    settings = tmp_path / "settings.yaml"
    settings.write_text('retry_count: "three"\n')

    assert main([str(tmp_path), "-s", str(settings)]) == EXIT_ERROR
    assert "retry_count must be an integer" in capsys.readouterr().out


def test_deadline_cancels_pending_retries(tmp_path, closed_port, capsys):
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    write_conf(conf_dir, (1, "127.0.0.1", closed_port), (2, "127.0.0.1", closed_port))

    started = time.monotonic()
    code = main([str(conf_dir), "--no-color", "--log-dir", str(tmp_path / "logs"),
                 "--deadline", "0.3", "--retry-delay", "10", "-r", "5", "-t", "1"])

    assert code == EXIT_OK
    assert time.monotonic() - started < 5.0
    out = capsys.readouterr().out
    assert out.count("status=cancelled") == 2
    assert re.search(r"Total:\s+2", out)
    assert re.search(r"Cancelled:\s+2", out)


def test_interrupt_handler_cancels_scheduler(capsys):
    scheduler = ProbeScheduler(ProbeConfig())

    with _InterruptHandler(scheduler) as handler:
        handler._handle(signal.SIGINT, None)

    assert handler.interrupted
    assert scheduler.cancelled
    assert "Interrupted" in capsys.readouterr().err


@pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX signal delivery")
def test_ctrl_c_still_prints_summary(tmp_path, closed_port, capsys):
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    write_conf(conf_dir, (1, "127.0.0.1", closed_port))
    interrupt = threading.Timer(0.3, os.kill, (os.getpid(), signal.SIGINT))
    interrupt.start()

    try:
        code = main([str(conf_dir), "--no-color", "--log-dir", str(tmp_path / "logs"),
                     "--retry-delay", "10", "-r", "5", "-t", "1"])
    finally:
        interrupt.cancel()

    assert code == EXIT_INTERRUPTED
    out = capsys.readouterr().out
    assert "status=cancelled" in out
    assert re.search(r"Total:\s+1", out)
