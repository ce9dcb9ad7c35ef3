"""Tests for storage/commands.py - external command execution."""

from unittest.mock import patch

import pytest

from image_tools.storage import commands
from image_tools.storage.exceptions import CommandError, MissingDependencyError


class TestRunCommand:
    """Tests for run_command()."""

    def test_success_returns_result(self, mock_subprocess_success, make_completed):
        mock_subprocess_success.return_value = make_completed(stdout="ok\n")

        result = commands.run_command(["fdisk", "-l", "disk.img"])

        assert result.stdout == "ok\n"
        mock_subprocess_success.assert_called_once_with(
            ["fdisk", "-l", "disk.img"],
            text=True,
            capture_output=True,
        )

    def test_arguments_converted_to_strings(self, mock_subprocess_success, tmp_path):
        commands.run_command(["truncate", "--size", 512, tmp_path])

        args = mock_subprocess_success.call_args[0][0]
        assert args == ["truncate", "--size", "512", str(tmp_path)]

    def test_failure_raises_command_error(self, mock_subprocess_failure):
        with pytest.raises(CommandError) as exc_info:
            commands.run_command(["losetup", "--detach", "/dev/loop0"])

        assert exc_info.value.returncode == 1
        assert exc_info.value.stderr == "Mock error"

    def test_failure_ignored_without_check(self, mock_subprocess_failure):
        result = commands.run_command(["losetup", "-a"], check=False)

        assert result.returncode == 1


class TestRunInteractive:
    """Tests for run_interactive()."""

    def test_inherits_terminal(self, mock_subprocess_success):
        assert commands.run_interactive(["gparted", "/dev/loop0"]) == 0

        mock_subprocess_success.assert_called_once_with(["gparted", "/dev/loop0"])

    def test_failure_raises(self, mock_subprocess_failure):
        with pytest.raises(CommandError):
            commands.run_interactive(["gparted", "/dev/loop0"])

    def test_failure_returned_without_check(self, mock_subprocess_failure):
        assert commands.run_interactive(["fsck", "/dev/loop0p1"], check=False) == 1


class TestDependencies:
    """Tests for dependency checks."""

    def test_all_present(self):
        with patch("shutil.which", return_value="/usr/bin/tool"):
            commands.check_dependencies(["fdisk", "losetup"])

    def test_reports_first_missing(self):
        present = {"fdisk": "/sbin/fdisk"}
        with patch("shutil.which", side_effect=present.get):
            with pytest.raises(MissingDependencyError) as exc_info:
                commands.check_dependencies(["fdisk", "gparted", "rsync"])

        assert exc_info.value.program == "gparted"

    def test_find_missing(self):
        present = {"rsync": "/usr/bin/rsync"}
        with patch("shutil.which", side_effect=present.get):
            assert commands.find_missing(["rsync", "gparted", "fsck"]) == [
                "gparted",
                "fsck",
            ]


class TestMissingExecutable:
    """Tests for programs that cannot be started."""

    def test_captured_command_not_found(self):
        with patch("subprocess.run", side_effect=FileNotFoundError(2, "No such file")):
            with pytest.raises(CommandError) as exc_info:
                commands.run_command(["partprobe", "/dev/loop0"], check=False)

        assert exc_info.value.exit_code == commands.COMMAND_NOT_FOUND == 127
        assert exc_info.value.command == ["partprobe", "/dev/loop0"]

    def test_interactive_command_not_found(self):
        with patch("subprocess.run", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(CommandError) as exc_info:
                commands.run_interactive(["gparted", "/dev/loop0"], check=False)

        assert "Permission denied" in exc_info.value.stderr
