"""File system checks on the partitions of an image."""

from __future__ import annotations

from typing import Optional, Sequence

from image_tools.config.settings import get_list
from image_tools.logging import operation_context
from image_tools.storage.commands import run_interactive
from image_tools.storage.exceptions import CommandError
from image_tools.storage.loop import attached_image
from image_tools.storage.mount import require_partition

# fsck exit status bits: 1 means errors were found and corrected
FSCK_OK = 0
FSCK_CORRECTED = 1


def check_image(
    image: str,
    partition_no: Optional[int] = None,
    options: Optional[Sequence[str]] = None,
) -> int:
    """Run fsck on one partition, or every partition, of an image.

    fsck runs attached to the terminal so it can ask before repairing.
    Images without a partition table are checked as a whole device.

    Returns:
        fsck exit status (0 or 1)

    Raises:
        PartitionNotFoundError: If partition_no does not exist in the image
        CommandError: If fsck reports uncorrected errors or fails to run
    """
    if options is None:
        options = get_list("fsck_options")

    with operation_context("fsck", image=image) as log:
        with attached_image(image) as loop:
            if partition_no is not None:
                target = loop.partition_path(partition_no)
                require_partition(target)
                targets = [target]
            else:
                targets = list(loop.partitions) or [loop.path]

            log.info(f"Running file system check on {' '.join(targets)}...")
            command = ["fsck", *options, *targets]
            status = run_interactive(command, check=False)
            if status not in (FSCK_OK, FSCK_CORRECTED):
                raise CommandError(command, status)
            if status == FSCK_CORRECTED:
                log.warning("File system errors were found and corrected")
            return status
