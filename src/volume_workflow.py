#!/usr/bin/env python3
"""
VolumeWorkflow base class for luksmount.

This module provides the pieces shared by the unlock and lock workflows:
- label resolution (argument or interactive menu)
- mountpoint and convenience link naming under the mount root
- operator progress output prefixed with the workflow's name tag
"""

import os
from abc import ABC, abstractmethod

from command_executor import LocalExecutor
from device_prober import DeviceProber
from global_constants import MOUNT_ROOT
from label_resolver import resolve_label
from volume_commands import VolumeCommands


class WorkflowResult:
    """
    End state of a successful workflow run.

    actions lists what was actually done, in order, e.g.
    ['unlocked', 'mounted', 'linked'] or ['already_unlocked',
    'already_mounted'] for a second unlock of the same label.
    """

    def __init__(self, label, device_path=None, volume=None, uuid=None,
                 mountpoint=None, link_path=None):
        self.label = label
        self.device_path = device_path
        self.volume = volume
        self.uuid = uuid
        self.mountpoint = mountpoint
        self.link_path = link_path
        self.actions = []

    def __repr__(self):
        return (f"WorkflowResult(label={self.label!r}, "
                f"volume={self.volume!r}, mountpoint={self.mountpoint!r}, "
                f"actions={self.actions!r})")


class VolumeWorkflow(ABC):
    """
    Abstract base class for volume workflows.

    Subclasses implement run() as a fixed sequence of steps; any step may
    raise a LuksMountError, which ends the workflow without rollback.
    """

    NAMETAG = "LUKS"

    def __init__(self, registry, executor=None, mount_root=MOUNT_ROOT,
                 quiet=False, input_func=None, output=print):
        """
        Initialize workflow.

        Args:
            registry: DiskRegistry loaded for this invocation
            executor: SystemExecutor (defaults to a LocalExecutor)
            mount_root: Directory holding mountpoints and label links
            quiet: If True, suppress progress output
            input_func: Callable used for the selection menu
            output: Callable used for all printed output
        """
        self.registry = registry
        self.executor = executor or LocalExecutor()
        self.prober = DeviceProber(self.executor)
        self.commands = VolumeCommands(self.executor)
        self.mount_root = mount_root
        self.quiet = quiet
        self.input_func = input_func
        self.output = output

    @abstractmethod
    def run(self, label=None):
        """
        Execute the workflow.

        Args:
            label: Volume label, or None to choose interactively

        Returns:
            WorkflowResult: Description of the end state

        Raises:
            LuksMountError: On the first fatal failure
        """
        pass

    @abstractmethod
    def candidates(self, devices):
        """
        Labels offered in the interactive menu.

        Args:
            devices: VisibleDevice list from the prober

        Returns:
            list: Sorted labels
        """
        pass

    def log(self, message):
        """Print a progress line unless quiet."""
        if not self.quiet:
            self.output(f"{self.NAMETAG} : {message}")

    def warn(self, message):
        """Print a warning line; shown even when quiet."""
        self.output(f"{self.NAMETAG} : {message}")

    def mountpoint_for(self, uuid):
        """Return the mountpoint path for a filesystem UUID."""
        return os.path.join(self.mount_root, uuid)

    def link_path_for(self, label):
        """Return the convenience link path for a label."""
        return os.path.join(self.mount_root, label)

    def resolve(self, label):
        """
        Return the label to operate on, showing the menu when needed.

        Raises:
            NoLabelSelected: If nothing was chosen
            ProbeFailed: If devices could not be listed for the menu
        """
        if label:
            return label
        self.log(f"No device label specified, reading labels from "
                 f"{self.registry.path}")
        devices = self.prober.probe()
        return resolve_label(None, self.candidates(devices),
                             self.input_func, self.output)
