"""
Tests for image_tools.actions.image_actions module.

This test suite covers:
- Partition listing output
- Attaching and mounting images, including cleanup on mount failure
- Unmounting and detaching every loop device backed by an image
- Shrink result reporting
"""

from unittest.mock import call, patch

import pytest

from image_tools.actions import image_actions
from image_tools.domain.models import LoopDevice, ShrinkResult
from image_tools.storage.exceptions import LoopDeviceNotFoundError, MountFailedError


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def loop3():
    return LoopDevice(
        path="/dev/loop3",
        image="disk.img",
        partitions=("/dev/loop3p1", "/dev/loop3p2"),
    )


# ==============================================================================
# partitions / losetup
# ==============================================================================


def test_cmd_partitions_prints_rows(capsys, fdisk_legacy_output):
    with patch(
        "image_tools.storage.partition_table.read_fdisk_listing",
        return_value=fdisk_legacy_output,
    ):
        assert image_actions.cmd_partitions("disk.img") == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split()[:2] == ["Device", "Boot"]
    assert lines[1].startswith("disk.img1")
    assert lines[2].startswith("disk.img2")


def test_cmd_losetup_prints_device_and_partitions(capsys, loop3):
    with patch("image_tools.storage.loop.attach_image", return_value=loop3):
        assert image_actions.cmd_losetup("disk.img") == 0

    assert capsys.readouterr().out.splitlines() == [
        "/dev/loop3",
        "    /dev/loop3p1",
        "    /dev/loop3p2",
    ]


# ==============================================================================
# mount / umount
# ==============================================================================


class TestCmdMount:
    def test_mounts_partition(self, capsys, loop3):
        with patch("image_tools.storage.loop.attach_image", return_value=loop3), patch(
            "image_tools.storage.mount.mount_partition"
        ) as mock_mount:
            assert image_actions.cmd_mount("disk.img", 2, "/mnt/root") == 0

        mock_mount.assert_called_once_with("/dev/loop3p2", "/mnt/root")
        assert capsys.readouterr().out.strip() == "/dev/loop3p2 /mnt/root"

    def test_mount_failure_detaches(self, loop3):
        error = MountFailedError("/dev/loop3p2", "/mnt/root", "wrong fs type")
        with patch("image_tools.storage.loop.attach_image", return_value=loop3), patch(
            "image_tools.storage.mount.mount_partition", side_effect=error
        ), patch("image_tools.storage.loop.detach_quietly") as mock_detach:
            with pytest.raises(MountFailedError):
                image_actions.cmd_mount("disk.img", 2, "/mnt/root")

        mock_detach.assert_called_once_with(loop3)


class TestCmdUmount:
    def test_unmounts_and_detaches_each_device(self):
        loops = [
            LoopDevice(path="/dev/loop3", image="disk.img"),
            LoopDevice(path="/dev/loop5", image="disk.img"),
        ]
        with patch(
            "image_tools.storage.loop.find_loop_devices", return_value=loops
        ), patch(
            "image_tools.storage.mount.is_mounted", side_effect=[True, False]
        ), patch(
            "image_tools.storage.mount.unmount"
        ) as mock_unmount, patch(
            "image_tools.storage.loop.detach"
        ) as mock_detach:
            assert image_actions.cmd_umount("disk.img", 2) == 0

        mock_unmount.assert_called_once_with("/dev/loop3p2")
        assert mock_detach.call_args_list == [call(loops[0]), call(loops[1])]

    def test_other_mounted_partition_keeps_device_attached(self):
        loop_device = LoopDevice(
            path="/dev/loop3",
            image="disk.img",
            partitions=("/dev/loop3p1", "/dev/loop3p2"),
        )
        mounted = {"/dev/loop3p1", "/dev/loop3p2"}
        with patch(
            "image_tools.storage.loop.find_loop_devices", return_value=[loop_device]
        ), patch(
            "image_tools.storage.mount.is_mounted", side_effect=mounted.__contains__
        ), patch(
            "image_tools.storage.mount.unmount", side_effect=mounted.discard
        ) as mock_unmount, patch(
            "image_tools.storage.loop.detach"
        ) as mock_detach:
            assert image_actions.cmd_umount("disk.img", 2) == 0

        mock_unmount.assert_called_once_with("/dev/loop3p2")
        mock_detach.assert_not_called()

    def test_detaches_once_every_partition_is_unmounted(self):
        loop_device = LoopDevice(
            path="/dev/loop3",
            image="disk.img",
            partitions=("/dev/loop3p1", "/dev/loop3p2"),
        )
        mounted = {"/dev/loop3p2"}
        with patch(
            "image_tools.storage.loop.find_loop_devices", return_value=[loop_device]
        ), patch(
            "image_tools.storage.mount.is_mounted", side_effect=mounted.__contains__
        ), patch(
            "image_tools.storage.mount.unmount", side_effect=mounted.discard
        ), patch(
            "image_tools.storage.loop.detach"
        ) as mock_detach:
            assert image_actions.cmd_umount("disk.img", 2) == 0

        mock_detach.assert_called_once_with(loop_device)

    def test_no_loop_device(self):
        with patch("image_tools.storage.loop.find_loop_devices", return_value=[]):
            with pytest.raises(LoopDeviceNotFoundError):
                image_actions.cmd_umount("disk.img", 2)


# ==============================================================================
# shrink
# ==============================================================================


def test_cmd_shrink_reports_sizes(capsys):
    result = ShrinkResult(
        image="disk.img",
        sector_size=512,
        last_sector=1843199,
        old_size=1073741824,
        new_size=943718400,
    )
    with patch("image_tools.storage.shrink.shrink_image", return_value=result):
        assert image_actions.cmd_shrink("disk.img") == 0

    out = capsys.readouterr().out
    assert "Sector size: 512 (bytes)" in out
    assert "Last partition end: 1843199 (sectors)" in out
    assert "New size: 943718400 (bytes)" in out
    assert "Saved: 130023424 (bytes)" in out
