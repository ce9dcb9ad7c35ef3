"""Loop device setup and teardown for disk images.

A LoopDevice handle is returned by attach_image() and passed to every later
call. Nothing assumes a fixed /dev/loopN path.

Operations:
    - attach_image(): losetup --find --show --partscan, then partprobe
    - detach(): sync, then losetup --detach
    - find_loop_devices(): loop devices already attached to an image
    - list_partitions(): partition nodes of an attached loop device
    - attached_image(): context manager that always detaches on exit

Example:
    >>> with attached_image("raspios.img") as loop:
    ...     print(loop.path, loop.partitions)
    /dev/loop3 ('/dev/loop3p1', '/dev/loop3p2')
"""

from __future__ import annotations

import glob
import os
import re
from contextlib import contextmanager
from typing import Generator

from image_tools.domain.models import LoopDevice
from image_tools.logging import LoggerFactory
from image_tools.storage.commands import run_command
from image_tools.storage.exceptions import ImageToolsError, LoopSetupError


log = LoggerFactory.for_loop()

_PARTITION_SUFFIX = re.compile(r"p(\d+)$")


def _partition_sort_key(path: str) -> int:
    match = _PARTITION_SUFFIX.search(path)
    return int(match.group(1)) if match else 0


def list_partitions(device_path: str) -> tuple[str, ...]:
    """Partition block devices of a loop device, ordered by number."""
    candidates = glob.glob(f"{glob.escape(device_path)}p*")
    partitions = [
        path for path in candidates if _PARTITION_SUFFIX.search(path)
    ]
    return tuple(sorted(partitions, key=_partition_sort_key))


def rescan_partitions(device_path: str) -> None:
    run_command(["partprobe", device_path])


def attach_image(image: str) -> LoopDevice:
    """Attach an image to the first free loop device.

    Raises:
        CommandError: If losetup or partprobe fails
        LoopSetupError: If losetup does not report the device it used
    """
    log.info(f'Setting up "{image}" on a loop device...')
    result = run_command(
        ["losetup", "--find", "--show", "--partscan", image]
    )
    device_path = (result.stdout or "").strip()
    if not device_path.startswith("/dev/"):
        raise LoopSetupError(image, f"unexpected losetup output {device_path!r}")
    try:
        log.info(f"Finding partitions on {device_path}...")
        rescan_partitions(device_path)
    except ImageToolsError:
        detach(LoopDevice(path=device_path, image=image))
        raise
    partitions = list_partitions(device_path)
    log.info(
        f"Partitions found: {' '.join(partitions) if partitions else 'None'}"
    )
    return LoopDevice(path=device_path, image=image, partitions=partitions)


def detach(loop: LoopDevice) -> None:
    """Flush buffers and detach a loop device."""
    log.info(f"Cleaning up {loop.path}...")
    run_command(["sync"], check=False)
    run_command(["losetup", "--detach", loop.path])


def detach_quietly(loop: LoopDevice) -> None:
    """Detach, logging instead of raising on failure."""
    try:
        detach(loop)
    except ImageToolsError as error:
        log.warning(f"Could not detach {loop.path}: {error}")


def find_loop_devices(image: str) -> list[LoopDevice]:
    """Loop devices currently backed by the image, in losetup order.

    Parses ``losetup --associated`` lines such as
    ``/dev/loop3: [2049]:1835018 (/home/pi/raspios.img)``.
    """
    result = run_command(
        ["losetup", "--associated", os.path.abspath(image)], check=False
    )
    if result.returncode != 0:
        return []
    devices = []
    for line in (result.stdout or "").splitlines():
        device_path, sep, _rest = line.partition(":")
        device_path = device_path.strip()
        if not sep or not device_path.startswith("/dev/"):
            continue
        devices.append(
            LoopDevice(
                path=device_path,
                image=image,
                partitions=list_partitions(device_path),
            )
        )
    return devices


@contextmanager
def attached_image(image: str) -> Generator[LoopDevice, None, None]:
    """Attach an image for the duration of a block.

    The loop device is detached on every exit path. A detach failure after a
    successful block is raised; after a failed block it is only logged so the
    original error propagates.
    """
    loop = attach_image(image)
    try:
        yield loop
    except BaseException:
        detach_quietly(loop)
        raise
    detach(loop)
