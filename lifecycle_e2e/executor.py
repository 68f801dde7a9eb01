# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */


"""Run external command lines and enforce their exit-code contract."""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass

import sh

from lifecycle_e2e import logger
from lifecycle_e2e.constants import SUDO_PREFIX
from lifecycle_e2e.errors import CommandLaunchError, ExitCodeMismatch


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one finished command.

    Attributes:
        exit_code: Process exit status.
        stdout: Bytes written to standard output.
        stderr: Bytes written to standard error.
    """

    exit_code: int
    stdout: bytes
    stderr: bytes

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode(errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode(errors="replace")


def privileged(command_line: str, use_sudo: bool) -> str:
    """Prefix a command line with ``sudo`` when elevation is configured."""
    return f"{SUDO_PREFIX} {command_line}" if use_sudo else command_line


def run_command(command_line: str, expected_exit_code: int = 0) -> CommandResult:
    """Run a command line to completion and check its exit code.

    Uses subprocess instead of sh because the caller needs stdout and stderr
    as separate, untouched byte buffers and wants to assert on arbitrary
    exit codes rather than have non-zero codes raised for it.

    Args:
        command_line: Full command line, including any ``sudo`` prefix.
        expected_exit_code: Exit code the caller considers success.

    Returns:
        The captured result when the exit code matches.

    Raises:
        CommandLaunchError: If the command line cannot be parsed or spawned.
        ExitCodeMismatch: If the process exits with any other code.
    """
    try:
        argv = shlex.split(command_line)
    except ValueError as exc:
        raise CommandLaunchError(command_line, str(exc)) from exc
    if not argv:
        raise CommandLaunchError(command_line, "empty command line")

    logger.info("Running: %s", command_line)
    try:
        completed = subprocess.run(argv, capture_output=True, check=False)
    except OSError as exc:
        raise CommandLaunchError(command_line, str(exc)) from exc

    result = CommandResult(completed.returncode, completed.stdout, completed.stderr)
    logger.debug("'%s' exited with %d (%d bytes stdout, %d bytes stderr)",
                 command_line, result.exit_code, len(result.stdout), len(result.stderr))
    if result.exit_code != expected_exit_code:
        raise ExitCodeMismatch(command_line, expected_exit_code, result.exit_code,
                               result.stdout, result.stderr)
    return result


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.") from err
