"""sing-box service actions: configuration check and restart."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from .errors import ServiceError

logger = logging.getLogger(__name__)


def _run(command: Sequence[str], timeout: float) -> subprocess.CompletedProcess[str]:
    try:
        return subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise ServiceError(f"Command not found: {command[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise ServiceError(f"Command timed out after {timeout:g}s: {' '.join(command)}") from e


def check_config(binary: str, config_dir: Path, *, timeout: float = 30.0) -> str:
    """
    Run `sing-box check -C <dir>`.

    sing-box prints nothing for a clean configuration, so any output is
    treated as a failure even when the exit code is zero.

    Raises:
        ServiceError: check failed; `output` carries the combined output
    """
    result = _run([binary, "check", "-C", str(config_dir)], timeout)
    output = (result.stdout or "") + (result.stderr or "")
    if result.returncode != 0 or output.strip():
        logger.info("Config check failed for %s (exit %s)", config_dir, result.returncode)
        raise ServiceError(f"Configuration check failed:\n{output}", output=output)
    return output


def restart_service(command: Sequence[str], *, timeout: float = 60.0) -> str:
    """
    Run the configured restart command (default `sudo systemctl restart sing-box`).

    Raises:
        ServiceError: non-zero exit; `output` carries the combined output
    """
    result = _run(command, timeout)
    output = (result.stdout or "") + (result.stderr or "")
    if result.returncode != 0:
        raise ServiceError(f"Restart failed (exit {result.returncode}): {output.strip()}", output=output)
    return output
