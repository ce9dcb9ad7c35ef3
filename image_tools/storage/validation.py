"""Argument and environment validation for image commands.

Every check runs before any external command is started, so an invalid
invocation never leaves a loop device or mount behind. All functions raise
specific exceptions from the exceptions module rather than returning
booleans.

Example:
    from image_tools.storage.validation import validate_image

    image = validate_image(args.image)  # raises ImageNotFoundError
"""

from __future__ import annotations

import os
from typing import Optional

from .exceptions import (
    ImageNotFoundError,
    InvalidDestinationError,
    InvalidMountPointError,
    InvalidPartitionNumberError,
    NotRootError,
)


def validate_image(image: Optional[str]) -> str:
    """Return the image path if it names an existing regular file."""
    if not image or not os.path.isfile(image):
        raise ImageNotFoundError(image)
    return image


def validate_partition_number(value: Optional[object]) -> int:
    """Return the partition number as a positive integer."""
    if value is None or isinstance(value, bool):
        raise InvalidPartitionNumberError(value)
    text = str(value).strip()
    if not text.isdigit() or int(text) <= 0:
        raise InvalidPartitionNumberError(value)
    return int(text)


def validate_optional_partition_number(value: Optional[object]) -> Optional[int]:
    if value is None:
        return None
    return validate_partition_number(value)


def validate_mount_point(mount_point: Optional[str]) -> str:
    if not mount_point or not os.path.isdir(mount_point):
        raise InvalidMountPointError(mount_point)
    return mount_point


def validate_destination(destination: Optional[str]) -> str:
    """Comparison destination: a local path or an rsync ``host:path``."""
    if not destination or not destination.strip():
        raise InvalidDestinationError(destination)
    return destination


def is_root() -> bool:
    return os.geteuid() == 0


def validate_root(command: str = "") -> None:
    if not is_root():
        raise NotRootError(command)
