"""
Configuration Apply Service.

Writes rendered daemon configuration to disk and asks the daemon to reload.
The file is replaced atomically (temporary file in the same directory, then
os.replace), so the daemon never reads a half-written document. Rendering
happens first; a validation failure leaves the existing file untouched.
"""

import os
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Callable

from kohakudhcp.core.exceptions import ConfigApplyError
from kohakudhcp.host.services.event_log import EventLog
from kohakudhcp.models.enums import DhcpEventType
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

RELOAD_TIMEOUT_SECONDS = 30


@dataclass
class ApplyResult:
    """Outcome of writing one configuration file."""

    path: str
    bytes_written: int
    reloaded: bool

    def to_dict(self) -> dict:
        return {
            "success": True,
            "path": self.path,
            "bytes_written": self.bytes_written,
            "reloaded": self.reloaded,
        }


def write_atomic(path: str, content: str) -> int:
    """
    Replace path with content atomically.

    Returns:
        Number of bytes written.

    Raises:
        ConfigApplyError: If the directory or file cannot be written.
    """
    directory = os.path.dirname(os.path.abspath(path))
    data = content.encode("utf-8")
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=directory, prefix=f".{os.path.basename(path)}.", suffix=".tmp"
        )
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        raise ConfigApplyError(f"Cannot write {path}: {e}", path=path) from e
    finally:
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)
    return len(data)


def run_reload(command: list[str], path: str) -> bool:
    """
    Run a daemon reload command.

    Returns:
        True if a command ran, False if the command is empty.

    Raises:
        ConfigApplyError: If the command is missing, times out or fails.
    """
    if not command:
        logger.debug(f"No reload command configured for {path}")
        return False

    try:
        result = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            timeout=RELOAD_TIMEOUT_SECONDS,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise ConfigApplyError(
            f"Reload command {' '.join(command)!r} failed: {e}", path=path
        ) from e

    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        raise ConfigApplyError(
            f"Reload command {' '.join(command)!r} exited with "
            f"{result.returncode}: {detail}",
            path=path,
        )
    return True


class ConfigApplier:
    """
    Render, write and reload one daemon configuration.

    Args:
        name: Daemon label used in logs and events ("kea", "unbound").
        render: Callable returning the configuration text. May raise
            ValidationError, in which case nothing is written.
        path: Destination file.
        reload_command: argv of the reload command; empty to skip reload.
        events: Event log.
    """

    def __init__(
        self,
        name: str,
        render: Callable[[], str],
        path: str,
        reload_command: list[str],
        events: EventLog,
    ):
        self.name = name
        self.render = render
        self.path = path
        self.reload_command = list(reload_command or [])
        self.events = events

    def apply(self) -> ApplyResult:
        content = self.render()
        written = write_atomic(self.path, content)
        logger.info(f"Wrote {self.name} configuration to {self.path} ({written} bytes)")

        reloaded = run_reload(self.reload_command, self.path)
        if reloaded:
            logger.info(f"Reloaded {self.name}")

        self.events.record(
            DhcpEventType.CONFIG_APPLIED,
            f"Applied {self.name} configuration to {self.path}"
            + (" and reloaded" if reloaded else ""),
        )
        return ApplyResult(path=self.path, bytes_written=written, reloaded=reloaded)
