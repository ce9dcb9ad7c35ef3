"""Command handlers for the image-tools CLI.

Handlers receive arguments that have already been validated and return the
process exit code. Results go to stdout; progress goes through the logger.
"""

from __future__ import annotations

from typing import Optional

from image_tools.logging import LoggerFactory
from image_tools.storage import compare, fsck, loop, mount, partition_table, shrink
from image_tools.storage.exceptions import ImageToolsError, LoopDeviceNotFoundError


log = LoggerFactory.for_system()


def cmd_partitions(image: str) -> int:
    """Print the partition rows of an image."""
    listing = partition_table.read_fdisk_listing(image)
    for line in partition_table.partition_listing(listing):
        print(line)
    return 0


def cmd_losetup(image: str) -> int:
    """Attach an image and leave it attached."""
    loop_device = loop.attach_image(image)
    print(loop_device.path)
    for partition in loop_device.partitions:
        print(f"    {partition}")
    return 0


def cmd_mount(image: str, partition_no: int, mount_point: str) -> int:
    """Attach an image and mount one of its partitions.

    The image stays attached while mounted; on failure it is detached again.
    """
    loop_device = loop.attach_image(image)
    try:
        mount.mount_partition(loop_device.partition_path(partition_no), mount_point)
    except ImageToolsError:
        loop.detach_quietly(loop_device)
        raise
    print(f"{loop_device.partition_path(partition_no)} {mount_point}")
    return 0


def cmd_umount(image: str, partition_no: int) -> int:
    """Unmount a partition mounted with cmd_mount and detach the image."""
    loop_devices = loop.find_loop_devices(image)
    if not loop_devices:
        raise LoopDeviceNotFoundError(image)
    for loop_device in loop_devices:
        partition = loop_device.partition_path(partition_no)
        if mount.is_mounted(partition):
            mount.unmount(partition)
        else:
            log.info(f"{partition} is not mounted")
        still_mounted = [p for p in loop_device.partitions if mount.is_mounted(p)]
        if still_mounted:
            log.warning(
                f"{', '.join(still_mounted)} still mounted, "
                f"leaving {loop_device.path} attached"
            )
            continue
        loop.detach(loop_device)
    return 0


def cmd_shrink(image: str) -> int:
    result = shrink.shrink_image(image)
    print(f"    Sector size: {result.sector_size} (bytes)")
    print(f"    Last partition end: {result.last_sector} (sectors)")
    print(f"    New size: {result.new_size} (bytes)")
    print(f"    Saved: {result.saved_bytes} (bytes)")
    return 0


def cmd_fsck(image: str, partition_no: Optional[int] = None) -> int:
    fsck.check_image(image, partition_no)
    return 0


def cmd_compare_fs(image: str, partition_no: int, destination: str) -> int:
    return compare.compare_image_to_destination(image, partition_no, destination)


def cmd_compare_img(
    source_image: str,
    source_partition_no: int,
    destination_image: str,
    destination_partition_no: int,
) -> int:
    return compare.compare_images(
        source_image,
        source_partition_no,
        destination_image,
        destination_partition_no,
    )
