"""
External command runner.

Every delegated tool (docker, git, pnpm, npm) is invoked through
CommandRunner so that exit code, output and duration are captured the same
way everywhere and tests can swap the runner for a mock.
"""

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Sequence
from pathlib import Path

from kaictl.core.exceptions import CommandFailed

from .models import RunResult

logger = logging.getLogger(__name__)

# Default per-command timeout in seconds
DEFAULT_TIMEOUT = 300


class CommandRunner:
    """
    Run external processes synchronously and capture their output.

    Args:
        timeout: Default timeout in seconds applied to every command
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    def which(self, tool: str) -> str | None:
        """Return the resolved path of a tool on PATH, or None."""
        return shutil.which(tool)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
        check: bool = False,
        interactive: bool = False,
    ) -> RunResult:
        """
        Run a command and wait for it to exit.

        Args:
            args: Full argv, starting with the executable
            cwd: Working directory
            env: Extra environment variables merged over os.environ
            timeout: Override for the default timeout (None uses the default)
            check: Raise CommandFailed on a non-zero exit code
            interactive: Inherit the terminal instead of capturing output
                (used for long-running commands whose progress the user
                should see, like `docker pull` or `pnpm install`)

        Returns:
            RunResult describing the invocation. A timeout or a missing
            executable is reported as exit code 124 or 127 respectively.

        Raises:
            CommandFailed: If check is True and the command failed
        """
        argv = [str(a) for a in args]
        merged_env = None
        if env:
            merged_env = os.environ.copy()
            merged_env.update(env)

        logger.debug(f"Running: {' '.join(argv)}")
        start = time.monotonic()
        try:
            process = subprocess.run(
                argv,
                cwd=cwd,
                env=merged_env,
                capture_output=not interactive,
                text=True,
                timeout=timeout if timeout is not None else self.timeout,
                check=False,
            )
            exit_code = process.returncode
            stdout = process.stdout or ""
            stderr = process.stderr or ""
        except subprocess.TimeoutExpired:
            exit_code, stdout, stderr = 124, "", f"Timed out: {' '.join(argv)}"
        except OSError as e:
            exit_code, stdout, stderr = 127, "", str(e)

        result = RunResult(
            args=argv,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        if not result.ok:
            logger.debug(f"Exit {result.exit_code}: {result.stderr.strip()}")
        if check and not result.ok:
            raise CommandFailed(result)
        return result
