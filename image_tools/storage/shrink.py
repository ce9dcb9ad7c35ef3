"""Shrink an image file to the end of its last partition.

Sequence:
    1. Read the sector size from ``fdisk -l`` (abort if missing or <= 0)
    2. Attach the image and run the partition editor on the loop device
    3. Detach (flushes the editor's writes), re-read the partition table
    4. Abort if the last end sector is missing or <= 0
    5. Truncate the image to ``(last_sector + 1) * sector_size`` bytes

The image is only truncated after every check has passed. There is no
rollback of the partition edits themselves.
"""

from __future__ import annotations

import os
from typing import Optional

from image_tools.config.settings import get_setting
from image_tools.domain.models import ShrinkResult
from image_tools.logging import operation_context
from image_tools.storage.commands import run_interactive
from image_tools.storage.exceptions import (
    ImageResizeError,
    InvalidLastSectorError,
    InvalidSectorSizeError,
)
from image_tools.storage.loop import attached_image
from image_tools.storage.partition_table import (
    image_sector_size,
    minimum_size,
    read_partition_table,
)


def truncate_image(image: str, size: int) -> None:
    """Set the image file length to exactly ``size`` bytes.

    Raises:
        ImageResizeError: If the file cannot be truncated
    """
    try:
        os.truncate(image, size)
    except OSError as error:
        raise ImageResizeError(image, size, error.strerror or str(error)) from error


def shrink_image(image: str, partition_editor: Optional[str] = None) -> ShrinkResult:
    """Edit partitions interactively, then cut the image down to size.

    Raises:
        InvalidSectorSizeError: If the sector size cannot be determined
        InvalidLastSectorError: If no partition end can be found afterwards
        CommandError: If losetup, partprobe or the partition editor fail
    """
    editor = partition_editor or get_setting("partition_editor", "gparted")

    with operation_context("shrink", image=image) as log:
        log.info("Calculating sector size...")
        sector_size = image_sector_size(image)
        log.info(f"Sector size: {sector_size} bytes.")
        if sector_size is None or sector_size <= 0:
            raise InvalidSectorSizeError(sector_size)

        with attached_image(image) as loop:
            log.info(f"Starting {editor}...")
            run_interactive([editor, loop.path])

        log.info("Calculating new image size...")
        table = read_partition_table(image)
        last_sector = table.last_sector
        if last_sector <= 0:
            raise InvalidLastSectorError(last_sector)
        if table.label_type == "gpt":
            log.warning(
                "GPT backup header lives after the last partition and will be "
                "cut off; repair it with 'sgdisk -e' after shrinking"
            )

        new_size = minimum_size(last_sector, sector_size)
        old_size = os.path.getsize(image)

        log.info(f"Sector size: {sector_size} (bytes)")
        log.info(f"Last partition end: {last_sector} (sectors)")
        log.info(f"New size: {new_size} (bytes)")
        if new_size > old_size:
            log.warning(
                f"New size is larger than the current image ({old_size} bytes); "
                "the image will grow"
            )

        log.info("Resizing image...")
        truncate_image(image, new_size)

        return ShrinkResult(
            image=image,
            sector_size=sector_size,
            last_sector=last_sector,
            old_size=old_size,
            new_size=new_size,
        )
