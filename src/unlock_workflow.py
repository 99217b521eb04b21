#!/usr/bin/env python3
"""
UnlockWorkflow class for luksmount.

Unlocks the LUKS container registered under a label and mounts the
resulting volume at <mount root>/<filesystem uuid>, with a convenience
link <mount root>/<label> pointing at it. Steps that are already done
(volume unlocked, volume mounted, link present) are skipped.
"""

import os

from device_prober import find_by_path, find_by_uuid
from global_constants import (
    DEFAULT_FS_TYPE,
    EXIT_DEVICE_LOOKUP_FAILED,
    EXIT_LOOKUP_FAILED,
    EXIT_MOUNT_FAILED,
    EXIT_OPERATION_FAILED,
    OPEN_NAMETAG,
    VOLUME_SUFFIX,
)
from label_resolver import unlock_candidates
from luks_errors import DiscoveryFailed, LookupFailed, OperationFailed
from volume_workflow import VolumeWorkflow, WorkflowResult


class UnlockWorkflow(VolumeWorkflow):
    """Unlock and mount a registered LUKS volume."""

    NAMETAG = OPEN_NAMETAG

    def __init__(self, registry, executor=None, fs_type=DEFAULT_FS_TYPE,
                 **kwargs):
        """
        Initialize unlock workflow.

        Args:
            registry: DiskRegistry loaded for this invocation
            executor: SystemExecutor (defaults to a LocalExecutor)
            fs_type: Filesystem type passed to mount
            **kwargs: Passed on to VolumeWorkflow
        """
        super().__init__(registry, executor, **kwargs)
        self.fs_type = fs_type

    def candidates(self, devices):
        return unlock_candidates(self.registry, devices)

    def run(self, label=None):
        label = self.resolve(label)
        result = WorkflowResult(label)

        uuid = self._lookup_uuid(label)
        device = self._find_device(uuid)
        result.device_path = device.device_path

        volume = os.path.basename(device.device_path) + VOLUME_SUFFIX
        result.volume = volume
        self.log(f"Unlocking {device.device_path} as volume {volume}")
        self._unlock(device.device_path, volume, result)

        fs_uuid = self._discover_fs_uuid(volume)
        result.uuid = fs_uuid

        mountpoint = self.mountpoint_for(fs_uuid)
        result.mountpoint = mountpoint
        self._mount(volume, mountpoint, result)

        result.link_path = self.link_path_for(label)
        self._link(mountpoint, result.link_path, result)

        self.log("Success - volume unlocked and mounted")
        return result

    def _lookup_uuid(self, label):
        """Find the container UUID registered for label."""
        self.log(f"Retrieving UUID for label {label}")
        uuid = self.registry.uuid_for_label(label)
        if not uuid:
            raise LookupFailed(f"Unable to read UUID for label '{label}' "
                               f"from file {self.registry.path}",
                               EXIT_LOOKUP_FAILED)
        self.log(f"Label {label} has UUID {uuid}")
        return uuid

    def _find_device(self, uuid):
        """Find the visible device holding the container."""
        self.log("Retrieving device for given UUID")
        device = find_by_uuid(self.prober.probe(), uuid)
        if device is None:
            raise LookupFailed(f"Unable to find device with UUID {uuid}",
                               EXIT_DEVICE_LOOKUP_FAILED)
        self.log(f"UUID {uuid} matches device {device.device_path}")
        return device

    def _unlock(self, device_path, volume, result):
        if self.commands.is_unlocked(volume):
            self.log(f"Volume {volume} already unlocked; skipping")
            result.actions.append('already_unlocked')
            return

        self.log(f"Unlocking {volume}")
        if not self.commands.unlock(device_path, volume).ok:
            raise OperationFailed(f"Unable to unlock {volume}",
                                  EXIT_OPERATION_FAILED)
        self.log(f"Unlocked {volume}")
        result.actions.append('unlocked')

    def _discover_fs_uuid(self, volume):
        """Find the filesystem UUID of the unlocked volume."""
        self.log(f"Retrieving UUID for unlocked volume {volume}")
        mapped = find_by_path(self.prober.probe(),
                              self.commands.mapper_path(volume))
        if mapped is None or not mapped.uuid:
            raise DiscoveryFailed(
                f"Unable to find UUID for unlocked volume {volume}")
        self.log(f"Unlocked volume {volume} has UUID {mapped.uuid}")
        return mapped.uuid

    def _mount(self, volume, mountpoint, result):
        mounted = self.commands.find_mount(mountpoint, volume,
                                           EXIT_MOUNT_FAILED)
        if mounted:
            self.log(f"Volume {volume} already mounted at {mountpoint}")
            self.log(mounted)
            result.actions.append('already_mounted')
            return

        self.log(f"Mounting {volume} at {mountpoint}")
        if not os.path.isdir(mountpoint):
            self.log(f"Creating mountpoint {mountpoint}")
            try:
                os.makedirs(mountpoint)
            except OSError as e:
                raise OperationFailed(f"Unable to create mountpoint "
                                      f"{mountpoint}: {e}", EXIT_MOUNT_FAILED)

        if not self.commands.mount(volume, mountpoint, self.fs_type).ok:
            raise OperationFailed(f"Unable to mount {volume} at {mountpoint}",
                                  EXIT_MOUNT_FAILED)
        self.log(f"Mounted {volume} at {mountpoint}")
        result.actions.append('mounted')

    def _link(self, mountpoint, link_path, result):
        if os.path.lexists(link_path):
            return
        self.log(f"Creating softlink - {link_path}")
        try:
            os.symlink(mountpoint, link_path)
        except OSError as e:
            self.warn(f"Unable to create softlink {link_path}: {e}")
            return
        result.actions.append('linked')
