#!/usr/bin/env python3
"""
LockWorkflow class for luksmount.

Unmounts the unlocked volume carrying a label, removes its mountpoint and
convenience link, and locks it. A failed unmount is reported and locking
is attempted anyway.
"""

import os

from device_prober import find_by_label, find_by_uuid
from global_constants import (
    CLOSE_NAMETAG,
    EXIT_DEVICE_LOOKUP_FAILED,
    EXIT_LOOKUP_FAILED,
    EXIT_OPERATION_FAILED,
    VOLUME_SUFFIX,
)
from label_resolver import lock_candidates
from luks_errors import LookupFailed, OperationFailed
from volume_workflow import VolumeWorkflow, WorkflowResult


class LockWorkflow(VolumeWorkflow):
    """Unmount and lock an unlocked LUKS volume."""

    NAMETAG = CLOSE_NAMETAG

    def candidates(self, devices):
        return lock_candidates(self.registry, devices)

    def run(self, label=None):
        label = self.resolve(label)
        result = WorkflowResult(label)

        self.log(f"Retrieving device and UUID for label {label}")
        devices = self.prober.probe()
        device = find_by_label(devices, label)
        if device is None and self._container_locked(label, devices, result):
            self.log("Success - volume already locked")
            return result
        if device is None:
            raise LookupFailed(f"Unable to find unlocked device with "
                               f"label {label}", EXIT_LOOKUP_FAILED)
        self.log(f"Label {label} matches device {device.device_path}")
        result.device_path = device.device_path

        if not device.uuid:
            raise LookupFailed(f"Unable to find UUID for unlocked device "
                               f"with label {label}",
                               EXIT_DEVICE_LOOKUP_FAILED)
        self.log(f"Label {label} matches UUID {device.uuid}")
        result.uuid = device.uuid

        volume = self.commands.volume_name(device.device_path)
        result.volume = volume
        result.mountpoint = self.mountpoint_for(device.uuid)
        result.link_path = self.link_path_for(label)

        self._unmount(volume, result)
        self._lock(volume, result)

        self.log("Success - volume unmounted and locked")
        return result

    def _container_locked(self, label, devices, result):
        """
        Check for a registered container that is present but locked.

        A locked volume's filesystem label is no longer visible, so a
        repeated lock finds the container through the registry instead.
        """
        uuid = self.registry.uuid_for_label(label)
        container = find_by_uuid(devices, uuid) if uuid else None
        if container is None or not container.is_luks:
            return False
        volume = os.path.basename(container.device_path) + VOLUME_SUFFIX
        if self.commands.is_unlocked(volume):
            return False
        self.log(f"Label {label} matches locked device "
                 f"{container.device_path}")
        self.log(f"Volume {volume} already locked")
        result.device_path = container.device_path
        result.volume = volume
        result.actions.append('already_locked')
        return True

    def _unmount(self, volume, result):
        """Unmount and clean up; failure only produces a warning."""
        mountpoint = result.mountpoint
        self.log(f"Unmounting {volume} from {mountpoint}")
        mounted = self.commands.find_mount(mountpoint, volume)
        if not mounted:
            self.log(f"Volume {volume} not mounted at {mountpoint}")
            result.actions.append('not_mounted')
            return

        self.log(mounted)
        self.log(f"Unmounting {mountpoint}")
        if not self.commands.unmount(mountpoint).ok:
            self.warn(f"Unable to unmount {mountpoint}, will attempt "
                      f"locking anyway")
            result.actions.append('unmount_failed')
            return

        self.log(f"Unmounted {mountpoint}; removing mountpoint")
        result.actions.append('unmounted')
        self._remove_mountpoint(mountpoint, result.link_path)

    def _remove_mountpoint(self, mountpoint, link_path):
        if os.path.islink(link_path):
            try:
                os.remove(link_path)
            except OSError as e:
                self.warn(f"Unable to remove softlink {link_path}: {e}")
        try:
            os.rmdir(mountpoint)
        except FileNotFoundError:
            pass
        except OSError as e:
            self.warn(f"Unable to remove mountpoint {mountpoint}: {e}")

    def _lock(self, volume, result):
        if not self.commands.is_unlocked(volume):
            self.log(f"Volume {volume} already locked")
            result.actions.append('already_locked')
            return

        self.log(f"Locking {volume}")
        if not self.commands.lock(volume).ok:
            raise OperationFailed(f"Unable to lock {volume}",
                                  EXIT_OPERATION_FAILED)
        self.log(f"Locked {volume}")
        result.actions.append('locked')
