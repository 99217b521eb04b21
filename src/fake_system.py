#!/usr/bin/env python3
"""
Scripted SystemExecutor used by the luksmount tests.

FakeSystem keeps an in-memory picture of LUKS containers, unlocked
volumes and mounts, and answers blkid, cryptsetup, mount and umount the
way the real commands would. Mountpoint directories are real directories
under the test's mount root.
"""

import os

from command_executor import CommandResult, SystemExecutor
from global_constants import (
    BLKID_NO_DEVICES,
    LUKS_TYPE,
    MAPPER_DIR,
    MOUNT_TABLE,
)

MOUNT_FAILURE = 32


class FakeSystem(SystemExecutor):
    """In-memory block devices, device mapper and mount table."""

    def __init__(self):
        self.containers = {}
        self.filesystems = {}
        self.volumes = {}
        self.mounts = []
        self.failing = set()
        self.busy_blocks_lock = True
        self.calls = []

    def add_container(self, device_path, luks_uuid, fs_uuid, label=None):
        """Attach a LUKS container holding a filesystem."""
        self.containers[device_path] = luks_uuid
        self.filesystems[luks_uuid] = (fs_uuid, label)

    def calls_with(self, word):
        """Return recorded calls naming word as program or argument."""
        return [call for call in self.calls
                if word in call or os.path.basename(call[0]) == word]

    def run(self, args, capture=False, privileged=True):
        args = list(args)
        self.calls.append(args)
        program = os.path.basename(args[0])
        if program == 'blkid':
            return self._blkid()
        if program == 'cryptsetup':
            return self._cryptsetup(args)
        if program == 'mount':
            return self._mount(args)
        if program == 'umount':
            return self._umount(args)
        return CommandResult(127, stderr=f"{args[0]}: not found")

    def is_block_device(self, path):
        return (os.path.dirname(path) == MAPPER_DIR and
                os.path.basename(path) in self.volumes)

    def read_mount_table(self):
        if 'mtab' in self.failing:
            raise PermissionError(13, "Permission denied", MOUNT_TABLE)
        return [f"{device} {mountpoint} ext4 rw,relatime 0 0"
                for device, mountpoint in self.mounts]

    def _blkid(self):
        if 'blkid' in self.failing:
            return CommandResult(1, stderr="blkid: permission denied")
        lines = [f'{path}: UUID="{uuid}" TYPE="{LUKS_TYPE}"'
                 for path, uuid in self.containers.items()]
        for volume, (fs_uuid, label) in self.volumes.items():
            fields = f'LABEL="{label}" ' if label else ''
            lines.append(f'{MAPPER_DIR}/{volume}: {fields}UUID="{fs_uuid}" '
                         f'TYPE="ext4"')
        if not lines:
            return CommandResult(BLKID_NO_DEVICES)
        return CommandResult(0, stdout='\n'.join(lines) + '\n')

    def _cryptsetup(self, args):
        if 'luksOpen' in args:
            if 'luksOpen' in self.failing:
                return CommandResult(2, stderr="No key available")
            index = args.index('luksOpen')
            device_path, volume = args[index + 1], args[index + 2]
            luks_uuid = self.containers.get(device_path)
            if luks_uuid is None or volume in self.volumes:
                return CommandResult(5)
            self.volumes[volume] = self.filesystems[luks_uuid]
            return CommandResult(0)

        if 'luksClose' in args:
            volume = args[args.index('luksClose') + 1]
            busy = any(os.path.basename(device) == volume
                       for device, _ in self.mounts)
            if ('luksClose' in self.failing or volume not in self.volumes or
                    (busy and self.busy_blocks_lock)):
                return CommandResult(5, stderr="Device busy")
            del self.volumes[volume]
            return CommandResult(0)

        return CommandResult(1)

    def _mount(self, args):
        device, mountpoint = args[-2], args[-1]
        if 'mount' in self.failing or not os.path.isdir(mountpoint):
            return CommandResult(MOUNT_FAILURE)
        self.mounts.append((device, mountpoint))
        return CommandResult(0)

    def _umount(self, args):
        mountpoint = args[-1]
        remaining = [m for m in self.mounts if m[1] != mountpoint]
        if 'umount' in self.failing or len(remaining) == len(self.mounts):
            return CommandResult(MOUNT_FAILURE, stderr="target is busy")
        self.mounts = remaining
        return CommandResult(0)
