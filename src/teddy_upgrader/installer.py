"""Dependency installation for an upgraded instance."""

from __future__ import annotations

import asyncio
import shlex
from pathlib import Path

from teddy_upgrader.logging import get_logger

log = get_logger("teddy_upgrader.installer")


async def install_dependencies(
    root: str | Path, command: list[str], timeout: float = 600
) -> bool:
    """Run the package manager's install command inside *root*.

    Output is captured rather than streamed. Failure is logged with the
    command the operator should run by hand and reported as False.
    """
    cmd_text = shlex.join(command)
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(root),
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            log.error("dependency_install_timeout", cmd=cmd_text, timeout=timeout)
            _log_manual_instructions(root, cmd_text)
            return False
    except OSError as exc:
        log.error("dependency_install_error", cmd=cmd_text, error=str(exc))
        _log_manual_instructions(root, cmd_text)
        return False

    if proc.returncode != 0:
        log.error("dependency_install_failed", cmd=cmd_text, returncode=proc.returncode)
        log.debug("dependency_install_stderr", stderr=stderr.decode(errors="replace")[:2000])
        _log_manual_instructions(root, cmd_text)
        return False

    log.debug("dependency_install_output", stdout=stdout.decode(errors="replace")[:2000])
    return True


def _log_manual_instructions(root: str | Path, cmd_text: str) -> None:
    log.error(
        "dependency_install_manual_action_required",
        message=(
            f"Please navigate to {root} and run the command '{cmd_text}' "
            "to install the upgraded dependencies manually."
        ),
    )
