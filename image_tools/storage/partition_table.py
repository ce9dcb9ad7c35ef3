"""Partition table reading and minimum image size calculation.

The partition table of an image is read from the text that ``fdisk -l``
prints for it. All parsing of that text lives in this module and returns
typed results (PartitionEntry / PartitionTable), so the rest of the code
never looks at fdisk output directly.

Example listing (util-linux fdisk):

    Disk disk.img: 1 GiB, 1073741824 bytes, 2097152 sectors
    Units: sectors of 1 * 512 = 512 bytes
    Sector size (logical/physical): 512 bytes / 512 bytes
    I/O size (minimum/optimal): 512 bytes / 512 bytes
    Disklabel type: dos
    Disk identifier: 0x2ad7c1b0

    Device     Boot  Start     End Sectors  Size Id Type
    disk.img1  *      8192  532479  524288  256M  c W95 FAT32 (LBA)
    disk.img2       532480 2097151 1564672  764M 83 Linux

Older fdisk releases print ``Units = sectors of 1 * 512 = 512 bytes``; both
spellings are accepted.
"""

from __future__ import annotations

import re
from typing import Optional

from image_tools.domain.models import PartitionEntry, PartitionTable
from image_tools.logging import LoggerFactory
from image_tools.storage.commands import run_command
from image_tools.storage.exceptions import (
    InvalidLastSectorError,
    InvalidSectorSizeError,
)


log = LoggerFactory.for_partitions()

_SECTOR_SIZE_PATTERN = re.compile(
    r"^\s*Units\s*[:=]\s*sectors of .* = (\d+) bytes", re.MULTILINE
)
_LABEL_TYPE_PATTERN = re.compile(r"^\s*Disklabel type:\s*(\S+)", re.MULTILINE)
_BOOT_MARKER = "*"


def read_fdisk_listing(image: str) -> str:
    """Return the ``fdisk -l`` text for an image.

    A failing fdisk yields an empty listing, which parses to no partitions
    and no sector size.
    """
    result = run_command(["fdisk", "-l", image], check=False)
    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        log.warning(f"fdisk could not read {image}: {stderr or 'no output'}")
        return ""
    return result.stdout or ""


def parse_sector_size(text: str) -> Optional[int]:
    """Extract the sector size in bytes from a partition listing.

    Returns None when no ``Units ... = N bytes`` line is present. If several
    lines match, the last one wins.
    """
    matches = _SECTOR_SIZE_PATTERN.findall(text or "")
    if not matches:
        return None
    return int(matches[-1])


def parse_label_type(text: str) -> Optional[str]:
    match = _LABEL_TYPE_PATTERN.search(text or "")
    return match.group(1) if match else None


def _split_device(line: str, image: Optional[str]) -> tuple[str, list[str]]:
    """Separate the device column from the remaining fields of a row.

    fdisk prints rows as the image path followed by the partition number, and
    the path may contain spaces. When the image is known it is matched as a
    literal prefix; otherwise the first token is the device.
    """
    if image:
        match = re.match(rf"{re.escape(image)}\d+(?=\s)", line)
        if match:
            return match.group(0), line[match.end():].split()
    tokens = line.split()
    return (tokens[0] if tokens else ""), tokens[1:]


def _parse_entry(line: str, image: Optional[str] = None) -> Optional[PartitionEntry]:
    device, fields = _split_device(line, image)
    if not device or len(fields) < 2:
        return None
    boot = False
    if fields[0] == _BOOT_MARKER:
        boot = True
        fields = fields[1:]
    if len(fields) < 2 or not (fields[0].isdigit() and fields[1].isdigit()):
        return None
    sectors = int(fields[2]) if len(fields) > 2 and fields[2].isdigit() else None
    return PartitionEntry(
        device=device,
        start=int(fields[0]),
        end=int(fields[1]),
        sectors=sectors,
        boot=boot,
        type=" ".join(fields[4:]),
    )


def parse_partition_entries(
    text: str, image: Optional[str] = None
) -> tuple[PartitionEntry, ...]:
    """Parse partition rows out of a listing.

    Only rows whose start and end fields are non-negative integers count.
    Headers, warnings and any other rows are skipped. Pass the image path
    the listing was made for so that paths containing spaces are recognised.
    """
    entries = []
    for line in (text or "").splitlines():
        entry = _parse_entry(line, image)
        if entry is not None:
            entries.append(entry)
    return tuple(entries)


def parse_partition_table(text: str, image: Optional[str] = None) -> PartitionTable:
    return PartitionTable(
        entries=parse_partition_entries(text, image),
        sector_size=parse_sector_size(text),
        label_type=parse_label_type(text),
    )


def partition_listing(text: str) -> list[str]:
    """Lines of the listing from the partition header onwards.

    Falls back to the whole listing when there is no header row.
    """
    lines = (text or "").splitlines()
    for index, line in enumerate(lines):
        if line.split()[:1] == ["Device"]:
            return lines[index:]
    return lines


def read_partition_table(image: str) -> PartitionTable:
    table = parse_partition_table(read_fdisk_listing(image), image)
    log.debug(
        f"{image}: {len(table)} partition(s), sector size {table.sector_size}, "
        f"last sector {table.last_sector}"
    )
    return table


def image_sector_size(image: str) -> Optional[int]:
    return parse_sector_size(read_fdisk_listing(image))


def minimum_size(last_sector: int, sector_size: int) -> int:
    """Bytes needed for an image to hold every partition.

    Sector numbering is zero-based and the end sector is inclusive, so the
    image must be ``(last_sector + 1) * sector_size`` bytes long.

    Raises:
        InvalidLastSectorError: If last_sector is not a non-negative integer
        InvalidSectorSizeError: If sector_size is not a positive integer
    """
    if isinstance(sector_size, bool) or not isinstance(sector_size, int) or sector_size <= 0:
        raise InvalidSectorSizeError(sector_size)
    if isinstance(last_sector, bool) or not isinstance(last_sector, int) or last_sector < 0:
        raise InvalidLastSectorError(last_sector)
    return (last_sector + 1) * sector_size
