"""Mounting and unmounting partitions of attached images."""

from __future__ import annotations

import os
import stat
import tempfile
from contextlib import contextmanager
from typing import Generator, Optional

from image_tools.config.settings import get_setting
from image_tools.logging import LoggerFactory
from image_tools.storage.commands import run_command
from image_tools.storage.exceptions import (
    CommandError,
    ImageToolsError,
    MountFailedError,
    PartitionNotFoundError,
    UnmountFailedError,
)


log = LoggerFactory.for_mount()


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def mount_points_of(device: str) -> list[str]:
    """Mount points where a device node is currently mounted."""
    mount_points = []
    try:
        with open("/proc/mounts", "r", encoding="utf-8") as mounts_file:
            for line in mounts_file:
                parts = line.split()
                if len(parts) > 1 and parts[0] == device:
                    # /proc/mounts escapes spaces as \040
                    mount_points.append(parts[1].replace("\\040", " "))
    except FileNotFoundError:
        return []
    return mount_points


def is_mounted(device: str) -> bool:
    return bool(mount_points_of(device))


def require_partition(partition: str) -> None:
    """Raise PartitionNotFoundError unless the partition node exists."""
    if not is_block_device(partition):
        raise PartitionNotFoundError(partition)


def mount_partition(
    partition: str, mount_point: str, options: Optional[str] = None
) -> None:
    """Mount a partition node on an existing directory.

    Raises:
        PartitionNotFoundError: If the partition node does not exist
        MountFailedError: If mount exits non-zero
    """
    require_partition(partition)
    command = ["mount"]
    if options:
        command += ["-o", options]
    command += [partition, mount_point]
    log.info(f"Mounting {partition} on {mount_point}...")
    try:
        run_command(command)
    except CommandError as error:
        raise MountFailedError(partition, mount_point, error.stderr.strip()) from error


def unmount(target: str) -> None:
    """Unmount a partition node or mount point.

    Raises:
        UnmountFailedError: If umount exits non-zero
    """
    log.info(f"Unmounting {target}...")
    try:
        run_command(["umount", target])
    except CommandError as error:
        raise UnmountFailedError(target, error.stderr.strip()) from error


@contextmanager
def temporary_mount(
    partition: str, options: Optional[str] = None
) -> Generator[str, None, None]:
    """Mount a partition on a fresh temporary directory.

    Yields the mount point. On exit the partition is unmounted and the
    directory removed.
    """
    if options is None:
        options = get_setting("compare_mount_options", "ro")
    prefix = get_setting("temp_mount_prefix", "image-tools-")
    mount_point = tempfile.mkdtemp(prefix=prefix)
    log.debug(f"Created temporary mount point {mount_point}")
    try:
        mount_partition(partition, mount_point, options=options)
    except ImageToolsError:
        os.rmdir(mount_point)
        raise
    try:
        yield mount_point
    finally:
        try:
            unmount(mount_point)
        finally:
            try:
                os.rmdir(mount_point)
            except OSError as error:
                log.warning(f"Could not remove {mount_point}: {error}")
