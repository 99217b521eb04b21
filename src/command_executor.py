#!/usr/bin/env python3
"""
System command execution for luksmount.

This module provides the narrow interface through which every privileged
operation reaches the operating system: running external commands,
checking for block devices and reading the mount table. Workflows only
talk to a SystemExecutor, so tests can substitute a scripted one.
"""

import os
import stat
import subprocess
from abc import ABC, abstractmethod

from global_constants import (
    COMMAND_NOT_EXECUTABLE,
    COMMAND_NOT_FOUND,
    MOUNT_TABLE,
    SUDO_COMMAND,
)


class CommandResult:
    """
    Outcome of one external command.

    stdout is only populated for captured commands; interactive commands
    (e.g. cryptsetup asking for a passphrase) talk to the terminal directly.
    """

    def __init__(self, returncode, stdout='', stderr=''):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @property
    def ok(self):
        """True if the command exited with status 0."""
        return self.returncode == 0

    def __repr__(self):
        return (f"CommandResult(returncode={self.returncode!r}, "
                f"stdout={self.stdout!r}, stderr={self.stderr!r})")


class SystemExecutor(ABC):
    """
    Abstract gateway to the operating system.

    Implementations never raise for a failing command; failures are
    reported through CommandResult.returncode.
    """

    @abstractmethod
    def run(self, args, capture=False, privileged=True):
        """
        Run an external command to completion.

        Args:
            args: Command and arguments as a list
            capture: If True, collect stdout/stderr instead of letting the
                     command use the terminal
            privileged: If True, the command needs elevated rights

        Returns:
            CommandResult: Exit status and captured output
        """
        pass

    @abstractmethod
    def is_block_device(self, path):
        """Return True if path exists and is a block device."""
        pass

    @abstractmethod
    def read_mount_table(self):
        """
        Read the live mount table.

        Returns:
            list: Lines of the form 'device mountpoint fstype options ...'

        Raises:
            OSError: If the mount table cannot be read
        """
        pass


class LocalExecutor(SystemExecutor):
    """
    Executes commands on the local machine via subprocess.

    Privileged commands are prefixed with sudo unless the process already
    runs as root or sudo is disabled.
    """

    def __init__(self, use_sudo=None, mount_table=MOUNT_TABLE):
        """
        Initialize local executor.

        Args:
            use_sudo: True/False to force sudo on or off; None to use sudo
                      only when not running as root
            mount_table: Path of the mount table file
        """
        if use_sudo is None:
            use_sudo = os.geteuid() != 0
        self.use_sudo = use_sudo
        self.mount_table = mount_table

    def build_command(self, args, privileged=True):
        """Return the argument list actually executed."""
        if privileged and self.use_sudo:
            return [SUDO_COMMAND] + list(args)
        return list(args)

    def run(self, args, capture=False, privileged=True):
        cmd = self.build_command(args, privileged)
        try:
            if capture:
                completed = subprocess.run(cmd, stdout=subprocess.PIPE,
                                           stderr=subprocess.PIPE)
                return CommandResult(completed.returncode,
                                     completed.stdout.decode(errors='replace'),
                                     completed.stderr.decode(errors='replace'))
            completed = subprocess.run(cmd)
            return CommandResult(completed.returncode)
        except FileNotFoundError as e:
            return CommandResult(COMMAND_NOT_FOUND, stderr=str(e))
        except PermissionError as e:
            return CommandResult(COMMAND_NOT_EXECUTABLE, stderr=str(e))

    def is_block_device(self, path):
        try:
            return stat.S_ISBLK(os.stat(path).st_mode)
        except OSError:
            return False

    def read_mount_table(self):
        with open(self.mount_table, 'r') as f:
            return f.read().splitlines()
