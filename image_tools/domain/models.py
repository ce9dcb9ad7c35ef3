"""Domain objects for disk images, partition tables and loop devices."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


NO_PARTITIONS = -1


# ==============================================================================
# Partition Table Domain
# ==============================================================================


@dataclass(frozen=True)
class PartitionEntry:
    """One row of a partition listing.

    Sector numbers are zero-based and the end sector is inclusive.
    """

    device: str  # e.g., "disk.img1"
    start: int
    end: int
    sectors: Optional[int] = None
    boot: bool = False
    type: str = ""


@dataclass(frozen=True)
class PartitionTable:
    """Partition table snapshot of an image, computed per invocation."""

    entries: tuple[PartitionEntry, ...] = ()
    sector_size: Optional[int] = None
    label_type: Optional[str] = None  # e.g., "dos" or "gpt"

    @property
    def last_sector(self) -> int:
        """Highest end sector across all entries, or -1 without entries."""
        if not self.entries:
            return NO_PARTITIONS
        return max(entry.end for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


# ==============================================================================
# Loop Device Domain
# ==============================================================================


@dataclass(frozen=True)
class LoopDevice:
    """A loop device with an image file attached.

    Returned by attach and passed explicitly to every later operation.
    """

    path: str  # e.g., "/dev/loop3"
    image: str
    partitions: tuple[str, ...] = field(default=(), compare=False)

    def partition_path(self, partition_no: int) -> str:
        """Device node for a partition (e.g., /dev/loop3p2)."""
        return f"{self.path}p{partition_no}"


# ==============================================================================
# Shrink Domain
# ==============================================================================


@dataclass(frozen=True)
class ShrinkResult:
    """Outcome of shrinking an image file."""

    image: str
    sector_size: int
    last_sector: int
    old_size: int
    new_size: int

    @property
    def saved_bytes(self) -> int:
        return self.old_size - self.new_size
