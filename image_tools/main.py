"""image-tools command line entry point.

Usage: image-tools [--debug] [--trace] <command> [arguments]

Every command goes through the same steps, in this order:
    1. argument validation (exit 2, no external command has run yet)
    2. root check for privileged commands (exit 2)
    3. dependency check for the command's programs (exit 1)
    4. confirmation gate for privileged commands (exit 1 when declined)
    5. the command handler
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from image_tools.__version__ import __version__
from image_tools.actions import image_actions
from image_tools.app.confirmation import confirm_operation
from image_tools.config.settings import get_bool, get_setting
from image_tools.logging import LoggerFactory, setup_logging
from image_tools.storage.commands import check_dependencies
from image_tools.storage.exceptions import ImageToolsError, InvalidArgumentError
from image_tools.storage.validation import (
    validate_destination,
    validate_image,
    validate_mount_point,
    validate_optional_partition_number,
    validate_partition_number,
    validate_root,
)


log = LoggerFactory.for_system()

LOOP_DEPENDENCIES = ("losetup", "partprobe", "sync")
MOUNT_DEPENDENCIES = ("mount", "umount")

VALIDATORS: dict[str, Callable] = {
    "image": validate_image,
    "partition": validate_partition_number,
    "optional_partition": validate_optional_partition_number,
    "mount_point": validate_mount_point,
    "destination": validate_destination,
}


@dataclass(frozen=True)
class Argument:
    name: str  # handler keyword argument
    metavar: str
    kind: str  # key into VALIDATORS

    @property
    def optional(self) -> bool:
        return self.kind.startswith("optional_")


@dataclass(frozen=True)
class CommandSpec:
    name: str
    arguments: tuple[Argument, ...]
    description: str
    handler: Callable[..., int]
    privileged: bool = True
    dependencies: tuple[str, ...] = ()
    needs_partition_editor: bool = False

    @property
    def usage(self) -> str:
        parts = []
        for argument in self.arguments:
            if argument.optional:
                parts.append(f"[{argument.metavar}]")
            else:
                parts.append(f"<{argument.metavar}>")
        return f"{self.name: <11}{' '.join(parts)}"


IMAGE = Argument("image", "IMAGE", "image")
PARTITION_NO = Argument("partition_no", "PARTITION_NO", "partition")

COMMANDS: dict[str, CommandSpec] = {
    spec.name: spec
    for spec in (
        CommandSpec(
            "partitions",
            (IMAGE,),
            "List partitions contained in image.",
            image_actions.cmd_partitions,
            privileged=False,
            dependencies=("fdisk",),
        ),
        CommandSpec(
            "losetup",
            (IMAGE,),
            "Sets up an image file on a loopback device.",
            image_actions.cmd_losetup,
            dependencies=LOOP_DEPENDENCIES,
        ),
        CommandSpec(
            "mount",
            (IMAGE, PARTITION_NO, Argument("mount_point", "MOUNT_POINT", "mount_point")),
            "Mounts the selected partition from an image file.",
            image_actions.cmd_mount,
            dependencies=LOOP_DEPENDENCIES + MOUNT_DEPENDENCIES,
        ),
        CommandSpec(
            "umount",
            (IMAGE, PARTITION_NO),
            "Unmounts a partition mounted with 'mount' and detaches the image.",
            image_actions.cmd_umount,
            dependencies=LOOP_DEPENDENCIES + MOUNT_DEPENDENCIES,
        ),
        CommandSpec(
            "shrink",
            (IMAGE,),
            "Graphically edit partitions then shrink image file.",
            image_actions.cmd_shrink,
            dependencies=("fdisk",) + LOOP_DEPENDENCIES,
            needs_partition_editor=True,
        ),
        CommandSpec(
            "fsck",
            (IMAGE, Argument("partition_no", "PARTITION_NO", "optional_partition")),
            "Run file system check on one or all partitions in image.",
            image_actions.cmd_fsck,
            dependencies=LOOP_DEPENDENCIES + ("fsck",),
        ),
        CommandSpec(
            "compare-fs",
            (IMAGE, PARTITION_NO, Argument("destination", "DST", "destination")),
            "Compare a partition's files with a local or remote (host:path) directory.",
            image_actions.cmd_compare_fs,
            dependencies=LOOP_DEPENDENCIES + MOUNT_DEPENDENCIES + ("rsync",),
        ),
        CommandSpec(
            "compare-img",
            (
                Argument("source_image", "SRC_IMAGE", "image"),
                Argument("source_partition_no", "SRC_PARTITION_NO", "partition"),
                Argument("destination_image", "DST_IMAGE", "image"),
                Argument("destination_partition_no", "DST_PARTITION_NO", "partition"),
            ),
            "Compare the files of partitions in two images.",
            image_actions.cmd_compare_img,
            dependencies=LOOP_DEPENDENCIES + MOUNT_DEPENDENCIES + ("rsync",),
        ),
    )
}


def format_usage(prog: str = "image-tools") -> str:
    lines = [
        "",
        f"image-tools v{__version__}",
        "",
        "Utility for managing raw disk images produced by 'dd' and other tools.",
        "",
        f"Usage: {prog} [--debug] [--trace] <command>",
        "",
        "Available commands:",
    ]
    for spec in COMMANDS.values():
        lines.append(f"  {spec.usage}")
        lines.append(f"    {spec.description}")
        lines.append("")
    return "\n".join(lines)


def print_usage() -> None:
    print(format_usage())


def error(message: object) -> None:
    print(f"ERROR: {message}", file=sys.stderr)


def dependencies_for(spec: CommandSpec) -> list[str]:
    dependencies = list(spec.dependencies)
    if spec.needs_partition_editor:
        dependencies.append(get_setting("partition_editor", "gparted"))
    return dependencies


def validate_arguments(spec: CommandSpec, values: list[str]) -> dict[str, object]:
    """Map positional values onto the command's arguments and validate them.

    Raises:
        InvalidArgumentError: If a value is missing or invalid
    """
    if len(values) > len(spec.arguments):
        log.warning(f"Ignoring extra arguments: {' '.join(values[len(spec.arguments):])}")
    validated: dict[str, object] = {}
    for index, argument in enumerate(spec.arguments):
        value = values[index] if index < len(values) else None
        validated[argument.name] = VALIDATORS[argument.kind](value)
    return validated


def run_command(spec: CommandSpec, values: list[str]) -> int:
    kwargs = validate_arguments(spec, values)
    if spec.privileged:
        validate_root(spec.name)
    check_dependencies(dependencies_for(spec))
    if spec.privileged:
        confirm_operation(image_actions.__file__)
    return spec.handler(**kwargs) or 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-tools",
        description="Utility for managing raw disk images produced by 'dd' and other tools.",
        add_help=False,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show usage and exit")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--trace", action="store_true", help="Log raw output of every command")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("command", nargs="?")
    parser.add_argument("arguments", nargs=argparse.REMAINDER)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    spec = COMMANDS.get(args.command) if args.command else None
    if args.help or spec is None:
        print_usage()
        return 0

    setup_logging(
        debug=args.debug,
        trace=args.trace,
        log_dir=args.log_dir,
        file_logging=get_bool("file_logging_enabled", True),
    )

    try:
        return run_command(spec, args.arguments)
    except InvalidArgumentError as exc:
        error(exc)
        print_usage()
        return exc.exit_code
    except ImageToolsError as exc:
        error(exc)
        return exc.exit_code
    except OSError as exc:
        error(exc)
        return 1
    except KeyboardInterrupt:
        error("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
