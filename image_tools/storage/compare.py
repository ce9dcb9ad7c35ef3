"""Compare file system contents with rsync in dry-run checksum mode.

Nothing is copied: rsync only reports (``--itemize-changes``) which files
differ between the mounted image partition and the destination, which may be
a local directory or a remote ``host:path``.
"""

from __future__ import annotations

from typing import Optional, Sequence

from image_tools.config.settings import DEFAULT_COMPARE_RSYNC_OPTIONS, get_list
from image_tools.logging import operation_context
from image_tools.storage.commands import run_interactive
from image_tools.storage.loop import attached_image
from image_tools.storage.mount import require_partition, temporary_mount


def _as_source_dir(path: str) -> str:
    return path if path.endswith("/") else f"{path}/"


def build_rsync_command(
    source: str, destination: str, options: Optional[Sequence[str]] = None
) -> list[str]:
    """rsync command comparing the contents of ``source`` with ``destination``.

    ``--dry-run`` is always present, whatever the configured options say.
    """
    if options is None:
        options = get_list("compare_rsync_options", DEFAULT_COMPARE_RSYNC_OPTIONS)
    options = list(options)
    if "--dry-run" not in options and "-n" not in options:
        options.insert(0, "--dry-run")
    return ["rsync", *options, _as_source_dir(source), destination]


def compare_trees(
    source: str, destination: str, options: Optional[Sequence[str]] = None
) -> int:
    """Print the differences between two directory trees.

    Raises:
        CommandError: If rsync fails
    """
    return run_interactive(build_rsync_command(source, destination, options))


def compare_image_to_destination(
    image: str, partition_no: int, destination: str
) -> int:
    """Mount one partition of an image and compare it with ``destination``."""
    with operation_context(
        "compare", image=image, partition=partition_no, destination=destination
    ) as log:
        with attached_image(image) as loop:
            partition = loop.partition_path(partition_no)
            require_partition(partition)
            with temporary_mount(partition) as mount_point:
                log.info(f"Comparing {partition} with {destination}...")
                return compare_trees(mount_point, destination)


def compare_images(
    source_image: str,
    source_partition_no: int,
    destination_image: str,
    destination_partition_no: int,
) -> int:
    """Mount a partition of each image and compare their contents."""
    with operation_context(
        "compare", image=source_image, destination=destination_image
    ) as log:
        with attached_image(source_image) as source_loop:
            source_partition = source_loop.partition_path(source_partition_no)
            require_partition(source_partition)
            with attached_image(destination_image) as destination_loop:
                destination_partition = destination_loop.partition_path(
                    destination_partition_no
                )
                require_partition(destination_partition)
                with temporary_mount(source_partition) as source_dir, temporary_mount(
                    destination_partition
                ) as destination_dir:
                    log.info(
                        f"Comparing {source_partition} with {destination_partition}..."
                    )
                    return compare_trees(
                        source_dir, _as_source_dir(destination_dir)
                    )
