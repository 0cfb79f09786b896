"""Scheduler daemon for periodic snapshot builds.

No external scheduler library is required — uses stdlib ``time``,
``signal``, and ``subprocess`` only.

Typical usage via the CLI::

    sheets-snapshot start-scheduler --interval-minutes 30

Or import directly::

    from sheets_snapshot.scheduler import SchedulerDaemon
    daemon = SchedulerDaemon(interval_minutes=30)
    daemon.start()  # blocks until Ctrl-C

Each build is invoked as a subprocess (``sheets-snapshot run``), so every
run has its own process, logging, and exit code. A failed run is logged but
does not stop the daemon, and the previous artifact stays in place.
"""

from __future__ import annotations

import logging
import platform
import signal
import subprocess
import sys
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)

_TICK_SECONDS = 5


def _find_cli_exe() -> str:
    """Locate the sheets-snapshot CLI executable inside the active virtual env.

    Adds the ``.exe`` suffix on Windows. Raises ``RuntimeError`` if not found.
    """
    scripts_dir = Path(sys.executable).parent
    name = "sheets-snapshot.exe" if platform.system() == "Windows" else "sheets-snapshot"
    candidate = scripts_dir / name
    if candidate.exists():
        return str(candidate)
    raise RuntimeError(
        f"Could not find sheets-snapshot executable in {scripts_dir}. "
        "Run: pip install -e ."
    )


class SchedulerDaemon:
    """Runs ``sheets-snapshot run`` every *interval_minutes*.

    Parameters
    ----------
    interval_minutes:
        Minutes between the start of consecutive runs.
    config_path:
        Optional TOML config forwarded as ``--config`` to every run.
    run_timeout_seconds:
        A run still going after this many seconds is killed and counted as
        failed.
    skip_initial:
        When *True*, wait one full interval before the first run instead of
        running immediately.
    cli_exe:
        Full path to the CLI executable.  Auto-detected from the active
        virtual environment when *None*.
    """

    def __init__(
        self,
        interval_minutes: int = 60,
        config_path: Optional[str] = None,
        run_timeout_seconds: int = 900,
        skip_initial: bool = False,
        cli_exe: Optional[str] = None,
    ) -> None:
        if interval_minutes < 1:
            raise ValueError(f"interval_minutes must be >= 1, got {interval_minutes}.")
        self.interval = timedelta(minutes=interval_minutes)
        self.config_path = config_path
        self.run_timeout_seconds = run_timeout_seconds
        self.skip_initial = skip_initial
        self.cli_exe = cli_exe or _find_cli_exe()
        self.runs_succeeded = 0
        self.runs_failed = 0
        self._running = False

    def build_command(self) -> list[str]:
        """Return the argv used for each scheduled run."""
        cmd = [self.cli_exe, "run"]
        if self.config_path:
            cmd += ["--config", self.config_path]
        return cmd

    def run_once(self) -> bool:
        """Run one snapshot build.  Returns ``True`` on exit code 0."""
        cmd = self.build_command()
        log.info("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, timeout=self.run_timeout_seconds)
        except subprocess.TimeoutExpired:
            log.error("Snapshot run timed out after %d s.", self.run_timeout_seconds)
            self.runs_failed += 1
            return False
        except OSError as exc:
            log.error("Could not start snapshot run: %s", exc, exc_info=True)
            self.runs_failed += 1
            return False

        if result.returncode == 0:
            log.info("Snapshot run completed successfully (exit 0).")
            self.runs_succeeded += 1
            return True
        log.error("Snapshot run exited with code %d.", result.returncode)
        self.runs_failed += 1
        return False

    def stop(self) -> None:
        """Ask the main loop to exit after the current tick."""
        self._running = False

    def start(self) -> None:
        """Start the daemon.  Blocks until Ctrl-C (or SIGTERM on Linux/macOS)."""
        next_run = datetime.now() + (self.interval if self.skip_initial else timedelta(0))
        log.info(
            "Scheduler started.  interval=%s  next run: %s",
            self.interval, next_run.isoformat(timespec="seconds"),
        )

        self._running = True

        def _shutdown(signum, frame):  # noqa: ANN001
            log.info("Signal %d received — stopping scheduler.", signum)
            self.stop()

        signal.signal(signal.SIGINT, _shutdown)
        if platform.system() != "Windows":
            signal.signal(signal.SIGTERM, _shutdown)

        while self._running:
            if datetime.now() >= next_run:
                self.run_once()
                next_run = datetime.now() + self.interval
                log.info("Next run scheduled: %s", next_run.isoformat(timespec="seconds"))
            time.sleep(_TICK_SECONDS)

        log.info(
            "Scheduler stopped.  succeeded=%d  failed=%d",
            self.runs_succeeded, self.runs_failed,
        )
