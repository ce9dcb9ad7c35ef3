"""Domain models for disk image operations.

Typed partition entries and loop device handles replace raw fdisk/losetup
text everywhere outside the storage parsing code.
"""

from __future__ import annotations

from .models import (
    NO_PARTITIONS,
    LoopDevice,
    PartitionEntry,
    PartitionTable,
    ShrinkResult,
)


__all__ = [
    "NO_PARTITIONS",
    "LoopDevice",
    "PartitionEntry",
    "PartitionTable",
    "ShrinkResult",
]
