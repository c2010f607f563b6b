"""
Runs `docker` / `docker compose` CLI commands for operations the SDK lacks
"""

import asyncio
import logging
import os
import pathlib
from dataclasses import dataclass

from .settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CommandOutput:
    """Exit status and captured streams of one CLI invocation"""

    success: bool
    exit_code: int | None
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        if not self.stderr:
            return self.stdout
        if not self.stdout:
            return self.stderr
        return f"{self.stdout}\n{self.stderr}"


async def run_docker_command(
    args: list[str],
    working_dir: str | pathlib.Path | None = None,
    environment: dict[str, str] | None = None,
    timeout: float | None = None,
) -> CommandOutput:
    """
    Execute `docker <args>` and capture its output.

    Args:
        args: Arguments after the `docker` executable (e.g. ['compose', 'ps']).
        working_dir: Directory to run in. Defaults to the current directory.
        environment: Extra environment variables layered over os.environ.
        timeout: Seconds before the process is killed. Defaults to the
            configured command timeout.

    Returns:
        CommandOutput with the exit code and decoded stdout/stderr.
    """
    timeout = timeout if timeout is not None else get_settings().command_timeout
    command = ["docker", *args]
    env = {**os.environ, **environment} if environment else None
    logger.debug(f"Executing command: {' '.join(command)} in {working_dir or os.getcwd()}")

    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(working_dir) if working_dir else None,
            env=env,
        )
    except FileNotFoundError:
        logger.error("Docker CLI not found. Make sure 'docker' is in PATH.")
        return CommandOutput(success=False, exit_code=None, stderr="docker executable not found in PATH")

    try:
        stdout_data, stderr_data = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Command timed out after {timeout} seconds: {' '.join(command)}")
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        return CommandOutput(success=False, exit_code=None, stderr=f"Command timed out after {timeout} seconds")

    stdout_str = stdout_data.decode(errors="ignore").strip()
    stderr_str = stderr_data.decode(errors="ignore").strip()

    if proc.returncode == 0:
        logger.info(f"Docker command succeeded: docker {args[0] if args else ''}")
    else:
        logger.warning(f"Docker command failed with exit code {proc.returncode}: {stderr_str[:200]}")

    return CommandOutput(
        success=proc.returncode == 0,
        exit_code=proc.returncode,
        stdout=stdout_str,
        stderr=stderr_str,
    )
