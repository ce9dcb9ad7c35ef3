"""Disk image storage operations.

Modules:
    - partition_table: fdisk listing parsing and minimum size calculation
    - loop: loop device attach/detach
    - mount: partition mounting and temporary mount points
    - shrink: shrink an image to the end of its last partition
    - fsck: file system checks
    - compare: rsync dry-run comparisons
    - validation: argument checks
    - commands: external command execution
    - exceptions: exception hierarchy
"""
