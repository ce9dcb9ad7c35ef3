"""Confirmation gate for commands that touch loop devices and images.

Two questions are asked before any privileged command. Declining the second
opens the tool's source in $EDITOR, so the user can read what is about to
happen. A marker file (default ``.rtfm``) in the working directory skips both
questions.
"""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Callable, Optional

from image_tools.config.settings import get_bool, get_setting
from image_tools.logging import LoggerFactory
from image_tools.storage.commands import run_interactive
from image_tools.storage.exceptions import CommandError, ConfirmationDeclinedError


log = LoggerFactory.for_system()

FIRST_PROMPT = "WARNING: Do you know what you are doing? [yN]: "
SECOND_PROMPT = (
    "WARNING: Are you really sure? Type 'N' to see the source code "
    "and learn what you are doing! [yN]: "
)


def is_yes(answer: Optional[str]) -> bool:
    return bool(answer) and answer.strip()[:1] in ("y", "Y")


def rtfm_marker_present(directory: Optional[Path] = None) -> bool:
    marker = get_setting("rtfm_marker", ".rtfm")
    if not marker:
        return False
    return (Path(directory or os.getcwd()) / marker).exists()


def editor_command() -> list[str]:
    editor = os.environ.get("EDITOR") or get_setting("default_editor", "vi")
    return shlex.split(editor)


def open_in_editor(path: str) -> None:
    command = [*editor_command(), path]
    log.debug(f"Opening {path} for reading")
    try:
        run_interactive(command, check=False)
    except CommandError as error:
        log.warning(f"Could not open {path} in {command[0]}: {error.stderr}")


def confirm_operation(
    source_path: str,
    *,
    input_func: Callable[[str], str] = input,
    directory: Optional[Path] = None,
) -> None:
    """Ask the two confirmation questions.

    Raises:
        ConfirmationDeclinedError: If either question is not answered yes
    """
    if not get_bool("confirmations_enabled", True):
        log.debug("Confirmations disabled in settings")
        return
    if rtfm_marker_present(directory):
        log.debug("Marker file present, skipping confirmation")
        return

    try:
        if not is_yes(input_func(FIRST_PROMPT)):
            raise ConfirmationDeclinedError()
        if not is_yes(input_func(SECOND_PROMPT)):
            open_in_editor(source_path)
            raise ConfirmationDeclinedError()
    except EOFError as error:
        raise ConfirmationDeclinedError("No answer on standard input") from error
