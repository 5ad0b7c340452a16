#!/usr/bin/env python3
"""Thin wrapper around the slideshow daemon binary and its pid file."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

import psutil

from core.errors import ExternalProcessFailure, HandlerFailure

logger = logging.getLogger("slideshow.daemon")

_START_TIMEOUT = float(os.getenv("SLIDESHOW_DAEMON_START_TIMEOUT", "10"))
_STOP_TIMEOUT = float(os.getenv("SLIDESHOW_DAEMON_STOP_TIMEOUT", "5"))
DEFAULT_PROVIDER = os.getenv("SLIDESHOW_BROWSER_PROVIDER", "mysql")
# The daemon always writes this name into its working directory.
PID_FILENAME = "slideshow.pid"


def connection_string(database: Mapping[str, str]) -> str:
    """Build the ``--browser`` argument: ``provider://user@host[:port]/name``.

    The password is never part of it; it travels on stdin.
    """
    provider = database.get("Provider") or DEFAULT_PROVIDER
    return "{}://{}@{}/{}".format(
        provider, database["Username"], database["Hostname"], database["Name"]
    )


class SlideshowDaemon:
    """Start, stop and inspect the background slideshow process.

    The daemon is started inside the directory of ``pid_file`` because it
    writes ``slideshow.pid`` into its working directory.
    """

    def __init__(self, binary, pid_file, database: Optional[Mapping[str, str]] = None) -> None:
        self.binary = Path(binary)
        self.pid_file = Path(pid_file)
        self.workdir = self.pid_file.parent
        self.database = dict(database or {})

    @classmethod
    def from_settings(cls, settings) -> "SlideshowDaemon":
        return cls(settings.binary(), settings.pid_file(), settings.section("Database"))

    def pid(self) -> Optional[int]:
        try:
            raw = self.pid_file.read_text().strip()
        except OSError:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning({"evt": "pid_file_garbled", "path": str(self.pid_file)})
            return None

    def is_running(self) -> bool:
        pid = self.pid()
        return pid is not None and psutil.pid_exists(pid)

    def status(self) -> dict:
        pid = self.pid()
        running = pid is not None and psutil.pid_exists(pid)
        return {
            "running": running,
            "pid": pid if running else None,
            "binary": str(self.binary),
            "pid_file": str(self.pid_file),
        }

    def _run(self, args: Sequence[str], timeout: float, stdin: Optional[str] = None) -> str:
        cmd: List[str] = [str(self.binary), *args]
        logger.info({"evt": "daemon_exec", "cmd": cmd, "cwd": str(self.workdir)})
        try:
            result = subprocess.run(
                cmd,
                input=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                cwd=str(self.workdir),
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise HandlerFailure(
                f"Slideshow binary or working directory not found: {self.binary} in {self.workdir}",
                code=2,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            output = exc.output if isinstance(exc.output, str) else ""
            raise ExternalProcessFailure(
                f"Slideshow daemon did not answer within {timeout:g}s",
                code=3,
                exit_code=-1,
                output=output,
            ) from exc
        if result.returncode != 0:
            logger.warning({"evt": "daemon_exec_failed", "rc": result.returncode})
            raise ExternalProcessFailure(
                "Slideshow daemon exited with an error",
                code=1,
                exit_code=result.returncode,
                output=result.stdout,
            )
        return result.stdout

    def start(self, collection_id: Optional[str] = None) -> dict:
        if self.is_running():
            raise HandlerFailure("Slideshow daemon is already running", code=4)
        if self.pid_file.name != PID_FILENAME:
            logger.warning(
                {"evt": "pid_file_name_mismatch", "configured": str(self.pid_file), "written": PID_FILENAME}
            )
        args = ["--daemon"]
        stdin = None
        if self.database:
            args += ["--browser", connection_string(self.database)]
            password = self.database.get("Password")
            if password:
                args.append("--stdin-password")
                stdin = password + "\n"
        if collection_id is not None:
            args += ["--collection-id", str(collection_id)]
        self._run(args, _START_TIMEOUT, stdin=stdin)
        return self.status()

    def stop(self) -> dict:
        pid = self.pid()
        if pid is None or not psutil.pid_exists(pid):
            raise HandlerFailure("Slideshow daemon is not running", code=5)
        try:
            proc = psutil.Process(pid)
            proc.terminate()
            proc.wait(timeout=_STOP_TIMEOUT)
        except psutil.NoSuchProcess:
            pass
        except psutil.TimeoutExpired as exc:
            raise HandlerFailure(f"Slideshow daemon (pid {pid}) ignored SIGTERM", code=6) from exc
        try:
            self.pid_file.unlink()
        except OSError:
            pass
        logger.info({"evt": "daemon_stopped", "pid": pid, "ts": time.time()})
        return self.status()


__all__ = ["PID_FILENAME", "SlideshowDaemon", "connection_string"]
