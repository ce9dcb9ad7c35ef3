"""External command execution with logging.

All system utilities are invoked with argument lists (never through a shell).
Captured commands log their output at TRACE level; interactive commands
(partition editor, fsck) inherit the terminal.
"""

from __future__ import annotations

import shutil
import subprocess
from typing import Iterable, Sequence

from image_tools.logging import LoggerFactory
from image_tools.storage.exceptions import CommandError, MissingDependencyError


log = LoggerFactory.for_command()

# Shell convention for a command that cannot be executed
COMMAND_NOT_FOUND = 127


def run_command(
    command: Sequence[str],
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run a command, capturing its output.

    Raises:
        CommandError: If the command cannot be started, or if check is True
            and it exits non-zero
    """
    command = [str(part) for part in command]
    log.debug(f"Running command: {' '.join(command)}")
    try:
        result = subprocess.run(
            command,
            text=True,
            capture_output=True,
        )
    except OSError as error:
        raise CommandError(command, COMMAND_NOT_FOUND, str(error)) from error
    output_log = log.bind(tags=["command", "output"])
    if result.stdout:
        output_log.trace(f"stdout: {result.stdout.strip()}")
    if result.stderr:
        output_log.trace(f"stderr: {result.stderr.strip()}")
    log.debug(f"Command completed with return code {result.returncode}")
    if check and result.returncode != 0:
        raise CommandError(command, result.returncode, result.stderr or result.stdout)
    return result


def run_interactive(command: Sequence[str], check: bool = True) -> int:
    """Run a command attached to the current terminal and wait for it.

    Raises:
        CommandError: If the command cannot be started, or if check is True
            and it exits non-zero
    """
    command = [str(part) for part in command]
    log.debug(f"Running interactive command: {' '.join(command)}")
    try:
        result = subprocess.run(command)
    except OSError as error:
        raise CommandError(command, COMMAND_NOT_FOUND, str(error)) from error
    log.debug(f"Command completed with return code {result.returncode}")
    if check and result.returncode != 0:
        raise CommandError(command, result.returncode)
    return result.returncode


def find_missing(programs: Iterable[str]) -> list[str]:
    """Return the programs that are not on PATH, in the order given."""
    return [program for program in programs if shutil.which(program) is None]


def check_dependencies(programs: Iterable[str]) -> None:
    """Raise for the first required program that is not installed."""
    missing = find_missing(programs)
    if missing:
        raise MissingDependencyError(missing[0])
