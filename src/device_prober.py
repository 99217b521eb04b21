#!/usr/bin/env python3
"""
DeviceProber class for luksmount.

This module wraps blkid, the block-device identification command, and
turns its output into VisibleDevice records. blkid prints one line per
device:

    /dev/sdb1: UUID="394d9ea7-..." TYPE="crypto_LUKS" PARTUUID="..."
    /dev/mapper/sdb1-crypt: LABEL="MySecondDisk" UUID="0f3a..." TYPE="ext4"
"""

import re

from global_constants import (
    BLKID_COMMAND,
    BLKID_NO_DEVICES,
    LUKS_TYPE,
    MAPPER_DIR,
)
from luks_errors import ProbeFailed

_TOKEN_PATTERN = re.compile(r'([A-Z0-9_]+)="((?:[^"\\]|\\.)*)"')


class VisibleDevice:
    """
    A block device reported by blkid.

    Any of uuid, label and fs_type may be None when blkid omits the field.
    """

    def __init__(self, device_path, uuid=None, label=None, fs_type=None,
                 attributes=None):
        self.device_path = device_path
        self.uuid = uuid
        self.label = label
        self.fs_type = fs_type
        self.attributes = attributes or {}

    @property
    def is_luks(self):
        """True if the device is an encryption container."""
        return self.fs_type == LUKS_TYPE

    @property
    def is_mapped(self):
        """True if the device lives in the device-mapper directory."""
        return self.device_path.startswith(MAPPER_DIR + '/')

    def __repr__(self):
        return (f"VisibleDevice({self.device_path!r}, uuid={self.uuid!r}, "
                f"label={self.label!r}, fs_type={self.fs_type!r})")


def parse_blkid_line(line):
    """
    Parse one line of blkid output.

    Args:
        line: Text like '/dev/sdb1: UUID="..." TYPE="..."'

    Returns:
        VisibleDevice or None if the line has no device path
    """
    path, sep, rest = line.partition(':')
    path = path.strip()
    if not sep or not path:
        return None

    attributes = {key: value.replace('\\"', '"')
                  for key, value in _TOKEN_PATTERN.findall(rest)}
    return VisibleDevice(path,
                         uuid=attributes.get('UUID') or None,
                         label=attributes.get('LABEL') or None,
                         fs_type=attributes.get('TYPE') or None,
                         attributes=attributes)


def parse_blkid_output(text):
    """
    Parse full blkid output.

    Returns:
        list: VisibleDevice objects in output order
    """
    devices = []
    for line in text.splitlines():
        if not line.strip():
            continue
        device = parse_blkid_line(line)
        if device is not None:
            devices.append(device)
    return devices


class DeviceProber:
    """
    Enumerates the block devices currently visible to the system.

    Every call to probe() runs blkid again; results are never cached
    because unlocking a container changes what blkid reports.
    """

    def __init__(self, executor):
        """
        Initialize prober.

        Args:
            executor: SystemExecutor used to run blkid
        """
        self.executor = executor

    def probe(self):
        """
        Run blkid and parse its output.

        Returns:
            list: VisibleDevice objects

        Raises:
            ProbeFailed: If blkid is unavailable or exits with an error
        """
        result = self.executor.run([BLKID_COMMAND], capture=True)
        if (result.returncode == BLKID_NO_DEVICES and
                not result.stdout.strip()):
            return []
        if not result.ok:
            detail = (result.stderr.strip() or
                      f"exit status {result.returncode}")
            raise ProbeFailed(f"Unable to list block devices with "
                              f"{BLKID_COMMAND}: {detail}")
        return parse_blkid_output(result.stdout)


def find_by_uuid(devices, uuid):
    """Return the first device whose UUID equals uuid, or None."""
    for device in devices:
        if device.uuid and device.uuid == uuid:
            return device
    return None


def find_by_path(devices, device_path):
    """Return the device reported at device_path, or None."""
    for device in devices:
        if device.device_path == device_path:
            return device
    return None


def find_by_label(devices, label):
    """
    Return the device carrying label, or None.

    Unlocked volumes under the mapper directory win over other devices
    that happen to share the label.
    """
    matches = [device for device in devices if device.label == label]
    for device in matches:
        if device.is_mapped:
            return device
    return matches[0] if matches else None


def luks_uuids(devices):
    """Return the UUIDs of all visible encryption containers."""
    return [device.uuid for device in devices
            if device.is_luks and device.uuid]
