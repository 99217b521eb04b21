#!/usr/bin/env python3
"""
VolumeCommands class for luksmount.

Thin adapters over cryptsetup, mount and umount, plus the mapper and
mount-table checks the workflows use to skip work that is already done.
"""

import os

from global_constants import (
    CRYPTSETUP_COMMAND,
    DEFAULT_FS_TYPE,
    EXIT_OPERATION_FAILED,
    MAPPER_DIR,
    MOUNT_COMMAND,
    UMOUNT_COMMAND,
)
from luks_errors import OperationFailed


class VolumeCommands:
    """
    Runs the privileged operations on a single LUKS volume.

    All methods that change system state return the CommandResult of the
    underlying command; interpreting a failure is left to the caller.
    """

    def __init__(self, executor, mapper_dir=MAPPER_DIR):
        """
        Initialize volume commands.

        Args:
            executor: SystemExecutor used for every operation
            mapper_dir: Directory holding unlocked volumes
        """
        self.executor = executor
        self.mapper_dir = mapper_dir

    def mapper_path(self, volume):
        """Return the block device path of an unlocked volume."""
        return os.path.join(self.mapper_dir, volume)

    def volume_name(self, device_path):
        """Return the volume name for a device under the mapper directory."""
        prefix = self.mapper_dir.rstrip('/') + '/'
        if device_path.startswith(prefix):
            return device_path[len(prefix):]
        return os.path.basename(device_path)

    def is_unlocked(self, volume):
        """True if the volume's mapped block device exists."""
        return self.executor.is_block_device(self.mapper_path(volume))

    def unlock(self, device_path, volume):
        """Open the container at device_path as volume (prompts for a key)."""
        return self.executor.run([CRYPTSETUP_COMMAND, '-v', 'luksOpen',
                                  device_path, volume])

    def lock(self, volume):
        """Close the mapped volume."""
        return self.executor.run([CRYPTSETUP_COMMAND, 'luksClose', volume])

    def mount(self, volume, mountpoint, fs_type=DEFAULT_FS_TYPE):
        """Mount the unlocked volume at mountpoint."""
        return self.executor.run([MOUNT_COMMAND, '-v', '-t', fs_type,
                                  self.mapper_path(volume), mountpoint])

    def unmount(self, mountpoint):
        """Unmount whatever is mounted at mountpoint."""
        return self.executor.run([UMOUNT_COMMAND, '-v', mountpoint])

    def find_mount(self, mountpoint, volume,
                   exit_code=EXIT_OPERATION_FAILED):
        """
        Look up the mount table entry for volume at mountpoint.

        Both the mountpoint and the volume must match for an entry to count.

        Args:
            mountpoint: Directory the volume would be mounted on
            volume: Mapped volume name (e.g. 'sdb1-crypt')
            exit_code: Exit code reported if the mount table is unreadable

        Returns:
            str: The matching mount table line, or None

        Raises:
            OperationFailed: If the mount table cannot be read
        """
        mapped = self.mapper_path(volume)
        try:
            table = self.executor.read_mount_table()
        except OSError as e:
            raise OperationFailed(f"Unable to read mount table: {e}",
                                  exit_code)
        for line in table:
            fields = line.split()
            if len(fields) < 2 or fields[1] != mountpoint:
                continue
            if fields[0] == mapped or os.path.basename(fields[0]) == volume:
                return line
        return None
