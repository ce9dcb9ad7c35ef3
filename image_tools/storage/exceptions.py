"""Custom exceptions for disk image operations.

Exception Hierarchy:
    ImageToolsError (base)
        ├── InvalidArgumentError              (exit code 2)
        │   ├── ImageNotFoundError
        │   ├── InvalidPartitionNumberError
        │   ├── InvalidMountPointError
        │   ├── InvalidDestinationError
        │   └── PartitionNotFoundError
        ├── NotRootError                      (exit code 2)
        ├── DependencyError                   (exit code 1)
        │   └── MissingDependencyError
        ├── ConfirmationDeclinedError         (exit code 1)
        ├── SizeCalculationError              (exit code 1)
        │   ├── InvalidSectorSizeError
        │   └── InvalidLastSectorError
        ├── LoopDeviceError                   (exit code 1)
        │   ├── LoopDeviceNotFoundError
        │   └── LoopSetupError
        ├── MountError                        (exit code 1)
        │   ├── MountFailedError
        │   └── UnmountFailedError
        ├── ImageResizeError                  (exit code 1)
        └── CommandError                      (exit code of the command)

Usage:
    from image_tools.storage.exceptions import ImageNotFoundError

    if not Path(image).is_file():
        raise ImageNotFoundError(image)
"""

from __future__ import annotations


class ImageToolsError(Exception):
    """Base exception for all image tool operations."""

    exit_code = 1


class InvalidArgumentError(ImageToolsError):
    """A required argument is missing or invalid."""

    exit_code = 2


class ImageNotFoundError(InvalidArgumentError):
    """Image file does not exist."""

    def __init__(self, image: str | None):
        self.image = image
        if image:
            super().__init__(f"Image file not found: {image}")
        else:
            super().__init__("No image file given")


class InvalidPartitionNumberError(InvalidArgumentError):
    """Partition number is missing or not a positive integer."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid partition number: {value!r}")


class InvalidMountPointError(InvalidArgumentError):
    """Mount point is missing or not a directory."""

    def __init__(self, mount_point: str | None):
        self.mount_point = mount_point
        super().__init__(f"Mount point is not a directory: {mount_point}")


class InvalidDestinationError(InvalidArgumentError):
    """Comparison destination is missing."""

    def __init__(self, destination: str | None):
        self.destination = destination
        super().__init__(f"Invalid comparison destination: {destination!r}")


class PartitionNotFoundError(InvalidArgumentError):
    """Partition device node does not exist on the loop device."""

    def __init__(self, partition: str):
        self.partition = partition
        super().__init__(f"No such partition: {partition}")


class NotRootError(ImageToolsError):
    """Command requires root privileges."""

    exit_code = 2

    def __init__(self, command: str = ""):
        self.command = command
        super().__init__("Must run as root.")


class DependencyError(ImageToolsError):
    """Base exception for missing system dependencies."""


class MissingDependencyError(DependencyError):
    """A required external program is not installed."""

    def __init__(self, program: str):
        self.program = program
        super().__init__(f"Required package '{program}' is not installed!")


class ConfirmationDeclinedError(ImageToolsError):
    """User declined the confirmation prompt."""

    def __init__(self, message: str = "Confirmation declined"):
        super().__init__(message)


class SizeCalculationError(ImageToolsError, ValueError):
    """Base exception for image size calculation failures."""


class InvalidSectorSizeError(SizeCalculationError):
    """Sector size is missing, zero or negative."""

    def __init__(self, sector_size: object):
        self.sector_size = sector_size
        super().__init__(f"Could not calculate image sector size ({sector_size}).")


class InvalidLastSectorError(SizeCalculationError):
    """Last partition sector is missing or out of range."""

    def __init__(self, last_sector: object):
        self.last_sector = last_sector
        super().__init__(
            f"Could not find last partition sector end ({last_sector})."
        )


class LoopDeviceError(ImageToolsError):
    """Base exception for loop device errors."""


class LoopDeviceNotFoundError(LoopDeviceError):
    """No loop device is associated with the image."""

    def __init__(self, image: str):
        self.image = image
        super().__init__(f"No loop device is set up for {image}")


class LoopSetupError(LoopDeviceError):
    """losetup did not report the device it attached."""

    def __init__(self, image: str, reason: str = ""):
        self.image = image
        self.reason = reason
        msg = f"Could not set up {image} on a loop device"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class MountError(ImageToolsError):
    """Base exception for mount-related errors."""


class MountFailedError(MountError):
    """Failed to mount a partition."""

    def __init__(self, partition: str, mount_point: str, reason: str = ""):
        self.partition = partition
        self.mount_point = mount_point
        self.reason = reason
        msg = f"Failed to mount {partition} on {mount_point}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnmountFailedError(MountError):
    """Failed to unmount a partition."""

    def __init__(self, target: str, reason: str = ""):
        self.target = target
        self.reason = reason
        msg = f"Failed to unmount {target}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ImageResizeError(ImageToolsError):
    """Failed to change the length of an image file."""

    def __init__(self, image: str, size: int, reason: str = ""):
        self.image = image
        self.size = size
        self.reason = reason
        msg = f"Failed to resize {image} to {size} bytes"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class CommandError(ImageToolsError):
    """External command exited with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        message = stderr.strip() if stderr else "Command failed"
        super().__init__(
            f"Command failed ({' '.join(self.command)}, exit {returncode}): {message}"
        )

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.returncode if self.returncode > 0 else 1
