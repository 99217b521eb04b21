#!/usr/bin/env python3
"""
DiskRegistry class for luksmount.

Reads the static registry that maps LUKS container UUIDs to the labels an
operator uses to refer to them. The file holds one pair per line:

    c78ef5bf-4e8c-49dd-9c0b-c4f9aae9fed2 MyDisk
    394d9ea7-33da-4f2f-a56c-6725977989a0 MySecondDisk

Lookups compare whole fields, and the first matching line wins.
"""

import os

from global_constants import REGISTRY_FILE
from luks_errors import ConfigMissing


class RegistryEntry:
    """One UUID/label pair from the registry file."""

    def __init__(self, uuid, label):
        self.uuid = uuid
        self.label = label

    def __eq__(self, other):
        if not isinstance(other, RegistryEntry):
            return NotImplemented
        return (self.uuid, self.label) == (other.uuid, other.label)

    def __repr__(self):
        return f"RegistryEntry(uuid={self.uuid!r}, label={self.label!r})"


class DiskRegistry:
    """
    Ordered, read-only collection of registry entries.

    The registry is loaded fresh on every invocation and never written.
    Duplicate labels or UUIDs are tolerated; lookups return the first.
    """

    def __init__(self, entries, path=None):
        """
        Initialize registry.

        Args:
            entries: Sequence of RegistryEntry in file order
            path: File the entries were read from (for messages)
        """
        self.entries = list(entries)
        self.path = path

    @classmethod
    def load(cls, path=REGISTRY_FILE):
        """
        Read the registry file.

        Args:
            path: Registry file path

        Returns:
            DiskRegistry: Entries in file order

        Raises:
            ConfigMissing: If the file does not exist or cannot be read
        """
        if not os.path.exists(path):
            raise ConfigMissing(
                f"Unable to read UUIDs / labels from file {path}")
        try:
            with open(path, 'r') as f:
                text = f.read()
        except OSError as e:
            raise ConfigMissing(
                f"Unable to read UUIDs / labels from file {path}: {e}")
        return cls(parse_registry(text), path)

    def uuid_for_label(self, label):
        """Return the UUID registered for label, or None."""
        for entry in self.entries:
            if entry.label == label:
                return entry.uuid
        return None

    def label_for_uuid(self, uuid):
        """Return the label registered for uuid, or None."""
        for entry in self.entries:
            if entry.uuid == uuid:
                return entry.label
        return None

    def labels(self):
        """Return all labels in file order."""
        return [entry.label for entry in self.entries]

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


def parse_registry(text):
    """
    Parse registry file contents into entries.

    Blank lines, comment lines and lines with fewer than two fields are
    skipped. Fields after the second are ignored.

    Args:
        text: Registry file contents

    Returns:
        list: RegistryEntry objects in file order
    """
    entries = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 2 or fields[0].startswith('#'):
            continue
        entries.append(RegistryEntry(fields[0], fields[1]))
    return entries
