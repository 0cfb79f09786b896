"""Tests for sheets_snapshot.scheduler.SchedulerDaemon (no real subprocesses)."""

from __future__ import annotations

import subprocess

import pytest

from sheets_snapshot.scheduler import SchedulerDaemon


def _completed(code: int) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=code)


class TestSchedulerDaemon:
    def test_rejects_zero_interval(self):
        with pytest.raises(ValueError):
            SchedulerDaemon(interval_minutes=0, cli_exe="sheets-snapshot")

    def test_build_command_without_config(self):
        daemon = SchedulerDaemon(cli_exe="/venv/bin/sheets-snapshot")
        assert daemon.build_command() == ["/venv/bin/sheets-snapshot", "run"]

    def test_build_command_forwards_config(self):
        daemon = SchedulerDaemon(config_path="config/prod.toml", cli_exe="sheets-snapshot")
        assert daemon.build_command() == ["sheets-snapshot", "run", "--config", "config/prod.toml"]

    def test_run_once_counts_success(self, monkeypatch):
        seen = {}

        def fake_run(cmd, timeout):
            seen["cmd"], seen["timeout"] = cmd, timeout
            return _completed(0)

        monkeypatch.setattr(subprocess, "run", fake_run)
        daemon = SchedulerDaemon(run_timeout_seconds=42, cli_exe="sheets-snapshot")

        assert daemon.run_once() is True
        assert daemon.runs_succeeded == 1
        assert seen == {"cmd": ["sheets-snapshot", "run"], "timeout": 42}

    def test_run_once_counts_nonzero_exit(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", lambda cmd, timeout: _completed(1))
        daemon = SchedulerDaemon(cli_exe="sheets-snapshot")

        assert daemon.run_once() is False
        assert daemon.runs_failed == 1

    def test_run_once_timeout_is_failure(self, monkeypatch):
        def fake_run(cmd, timeout):
            raise subprocess.TimeoutExpired(cmd, timeout)

        monkeypatch.setattr(subprocess, "run", fake_run)
        daemon = SchedulerDaemon(cli_exe="sheets-snapshot")

        assert daemon.run_once() is False
        assert daemon.runs_failed == 1
