"""
Pytest configuration and shared fixtures for image-tools tests.

This module provides common fixtures and utilities used across all test modules.
No test needs root: every external command is mocked.
"""

import subprocess
from pathlib import Path
from typing import Any, Dict
from unittest.mock import Mock

import pytest
from loguru import logger

from image_tools.config import settings


# ==============================================================================
# Isolation Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Run every test against default settings in a temporary location."""
    monkeypatch.setattr(
        "image_tools.config.settings.SETTINGS_PATH",
        tmp_path / ".config" / "image-tools" / "settings.json",
    )
    settings.load_settings()
    settings.settings_store.values["file_logging_enabled"] = False
    yield
    settings.load_settings()


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop sinks added by setup_logging so they do not outlive the test."""
    yield
    logger.remove()


# ==============================================================================
# fdisk Output Fixtures
# ==============================================================================


@pytest.fixture
def fdisk_dos_output() -> str:
    """Fixture providing util-linux fdisk output for an MBR image."""
    return """Disk raspios.img: 1 GiB, 1073741824 bytes, 2097152 sectors
Units: sectors of 1 * 512 = 512 bytes
Sector size (logical/physical): 512 bytes / 512 bytes
I/O size (minimum/optimal): 512 bytes / 512 bytes
Disklabel type: dos
Disk identifier: 0x2ad7c1b0

Device       Boot  Start     End Sectors  Size Id Type
raspios.img1 *      8192  532479  524288  256M  c W95 FAT32 (LBA)
raspios.img2      532480 1843199 1310720  640M 83 Linux
"""


@pytest.fixture
def fdisk_legacy_output() -> str:
    """Fixture providing output of older fdisk releases (Units = ...)."""
    return """
Disk disk.img: 4194 MB, 4194304000 bytes
255 heads, 63 sectors/track, 509 cylinders, total 8192000 sectors
Units = sectors of 1 * 512 = 512 bytes
Sector size (logical/physical): 512 bytes / 512 bytes
I/O size (minimum/optimal): 512 bytes / 512 bytes
Disk identifier: 0x000c4661

   Device Boot      Start         End      Blocks   Id  System
disk.img1            2048      100000       48976+   c  W95 FAT32 (LBA)
disk.img2          100001     6000000     2949999+  83  Linux
"""


@pytest.fixture
def fdisk_gpt_output() -> str:
    """Fixture providing util-linux fdisk output for a GPT image."""
    return """Disk disk.img: 64 MiB, 67108864 bytes, 131072 sectors
Units: sectors of 1 * 512 = 512 bytes
Sector size (logical/physical): 512 bytes / 512 bytes
I/O size (minimum/optimal): 512 bytes / 512 bytes
Disklabel type: gpt
Disk identifier: 8D5B9D27-3E5A-4C1F-9F4B-2B1F2F6E9A10

Device      Start    End Sectors Size Type
disk.img1    2048  67583   65536  32M EFI System
disk.img2   67584 100351   32768  16M Linux filesystem
"""


@pytest.fixture
def fdisk_no_partitions_output() -> str:
    """Fixture providing fdisk output for an image without a partition table."""
    return """Disk blank.img: 8 MiB, 8388608 bytes, 16384 sectors
Units: sectors of 1 * 512 = 512 bytes
Sector size (logical/physical): 512 bytes / 512 bytes
I/O size (minimum/optimal): 512 bytes / 512 bytes
"""


# ==============================================================================
# File System Fixtures
# ==============================================================================


@pytest.fixture
def image_file(tmp_path) -> Path:
    """
    Fixture providing a sparse 4 MiB image file.

    Returns:
        Path to the image file.
    """
    image = tmp_path / "disk.img"
    with open(image, "wb") as handle:
        handle.truncate(4 * 1024 * 1024)
    return image


@pytest.fixture
def temp_mount_point(tmp_path) -> Path:
    """Fixture providing an existing mount point directory."""
    mount_dir = tmp_path / "mnt" / "test_mount"
    mount_dir.mkdir(parents=True, exist_ok=True)
    return mount_dir


# ==============================================================================
# Subprocess Mock Fixtures
# ==============================================================================


def completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> Mock:
    """Build a CompletedProcess-like mock."""
    result = Mock(spec=subprocess.CompletedProcess)
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


@pytest.fixture
def mock_subprocess_success(mocker) -> Mock:
    """
    Fixture providing a mock subprocess.run that always succeeds.

    Returns:
        Mock object for subprocess.run.
    """
    return mocker.patch("subprocess.run", return_value=completed())


@pytest.fixture
def mock_subprocess_failure(mocker) -> Mock:
    """
    Fixture providing a mock subprocess.run that always fails.

    Returns:
        Mock object for subprocess.run returning exit status 1.
    """
    return mocker.patch(
        "subprocess.run", return_value=completed(stderr="Mock error", returncode=1)
    )


@pytest.fixture
def sample_settings_data() -> Dict[str, Any]:
    """Fixture providing sample settings data."""
    return {
        "partition_editor": "kde-partitionmanager",
        "confirmations_enabled": False,
        "fsck_options": ["-f"],
    }


@pytest.fixture
def make_completed():
    """Fixture providing the CompletedProcess-like mock builder."""
    return completed
