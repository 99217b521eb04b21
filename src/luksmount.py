#!/usr/bin/env python3
"""
luksmount - LUKS volume unlock/mount utility
Unlocks registered LUKS containers by label and mounts them under a fixed
mount root, or unmounts and locks them again.
"""

import argparse
import os
import sys

from command_executor import LocalExecutor
from device_prober import DeviceProber, find_by_path, find_by_uuid
from disk_registry import DiskRegistry
from global_constants import (
    ACKNOWLEDGE_PROMPT,
    DEFAULT_FS_TYPE,
    DISPLAY_LINE_WIDTH,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    MOUNT_ROOT,
    REGISTRY_FILE,
    STATUS_NAMETAG,
    TOOL_VERSION,
    VOLUME_SUFFIX,
)
from lock_workflow import LockWorkflow
from luks_errors import LuksMountError
from unlock_workflow import UnlockWorkflow
from volume_commands import VolumeCommands


def wait_for_acknowledgment(input_func=None):
    """Block until the operator presses Enter (or input ends)."""
    input_func = input_func or input
    try:
        input_func(ACKNOWLEDGE_PROMPT)
    except (EOFError, KeyboardInterrupt):
        print(" ")


def abort(nametag, error, wait=True, input_func=None):
    """
    Report a fatal error and terminate.

    Args:
        nametag: Name tag of the running command
        error: LuksMountError describing the failure
        wait: If True, wait for acknowledgment before exiting
        input_func: Callable used for the acknowledgment prompt

    Raises:
        SystemExit: Always, with the error's exit code
    """
    print(f"{nametag} : {error}")
    print(f"{nametag} : Operation failed. Exit code: {error.exit_code}")
    if wait:
        wait_for_acknowledgment(input_func)
    sys.exit(error.exit_code)


def volume_state(entry, devices, commands, mount_root):
    """
    Describe the current state of one registered volume.

    Returns:
        str: 'not connected', 'locked', 'unlocked' or 'mounted at <path>'
    """
    container = find_by_uuid(devices, entry.uuid)
    if container is None:
        return "not connected"

    volume = os.path.basename(container.device_path) + VOLUME_SUFFIX
    if not commands.is_unlocked(volume):
        return "locked"

    mapped = find_by_path(devices, commands.mapper_path(volume))
    if mapped is not None and mapped.uuid:
        mountpoint = os.path.join(mount_root, mapped.uuid)
        if commands.find_mount(mountpoint, volume):
            return f"mounted at {mountpoint}"
    return "unlocked"


def show_status(registry, executor, mount_root=MOUNT_ROOT):
    """
    Print the state of every registered volume.

    Returns:
        list: (RegistryEntry, state) tuples in registry order
    """
    devices = DeviceProber(executor).probe()
    commands = VolumeCommands(executor)
    states = [(entry, volume_state(entry, devices, commands, mount_root))
              for entry in registry]

    print("=" * DISPLAY_LINE_WIDTH)
    print("REGISTERED LUKS VOLUMES")
    print("=" * DISPLAY_LINE_WIDTH)
    if not states:
        print(f"No volumes registered in {registry.path}")
    for entry, state in states:
        print(f"• {entry.label} ({entry.uuid}): {state}")
    return states


def _make_executor(args):
    return LocalExecutor(use_sudo=False if args.no_sudo else None)


def run_workflow(workflow_class, args):
    """
    Run the unlock or lock workflow for parsed arguments.

    Any LuksMountError is handed to abort(); success waits for
    acknowledgment like a failure does. Ctrl-C exits at once with
    EXIT_INTERRUPTED; steps already done are not rolled back.

    Returns:
        int: EXIT_SUCCESS
    """
    nametag = workflow_class.NAMETAG
    wait = not args.no_wait
    print(f"{nametag} version {TOOL_VERSION}")

    try:
        registry = DiskRegistry.load(args.registry)
        options = {'mount_root': args.mount_root}
        if workflow_class is UnlockWorkflow:
            options['fs_type'] = args.fs_type
        workflow = workflow_class(registry, _make_executor(args), **options)
        workflow.run(args.label)
    except LuksMountError as e:
        abort(nametag, e, wait)
    except KeyboardInterrupt:
        print(f"\n{nametag} : Operation cancelled by user")
        sys.exit(EXIT_INTERRUPTED)

    if wait:
        wait_for_acknowledgment()
    return EXIT_SUCCESS


def run_status(args):
    """Print registered volume states; returns the exit code."""
    print(f"{STATUS_NAMETAG} version {TOOL_VERSION}")
    try:
        registry = DiskRegistry.load(args.registry)
        show_status(registry, _make_executor(args), args.mount_root)
    except LuksMountError as e:
        abort(STATUS_NAMETAG, e, wait=False)
    return EXIT_SUCCESS


def _add_common_arguments(parser, with_label=True, with_fs_type=False):
    if with_label:
        parser.add_argument(
            'label',
            nargs='?',
            help='Label of the volume as registered in the registry file. '
                 'If omitted, a menu of available volumes is shown.')
    parser.add_argument('--registry', default=REGISTRY_FILE,
                        help=f'UUID/label registry file '
                             f'(default: {REGISTRY_FILE})')
    parser.add_argument('--mount-root', default=MOUNT_ROOT,
                        help=f'Directory for mountpoints and label links '
                             f'(default: {MOUNT_ROOT})')
    if with_fs_type:
        parser.add_argument('--fs-type', default=DEFAULT_FS_TYPE,
                            help=f'Filesystem type of unlocked volumes '
                                 f'(default: {DEFAULT_FS_TYPE})')
    parser.add_argument('--no-sudo', action='store_true',
                        help='Never prefix privileged commands with sudo')
    if with_label:
        parser.add_argument('--no-wait', action='store_true',
                            help='Exit without waiting for a key press')


def setup_argument_parser():
    """
    Set up and return the command-line argument parser.

    Returns:
        argparse.ArgumentParser: Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description='Unlock and mount, or unmount and lock, LUKS volumes '
                    'by label',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  luksmount open MyDisk             # Unlock MyDisk and mount it
  luksmount open                    # Choose a connected volume from a menu
  luksmount close MyDisk            # Unmount and lock MyDisk
  luksmount status                  # Show the state of registered volumes

Volumes are registered in {REGISTRY_FILE} as UUID / label pairs:
  c78ef5bf-4e8c-49dd-9c0b-c4f9aae9fed2 MyDisk
        """
    )
    parser.add_argument(
        '-v',
        '--version',
        action='version',
        version=f'luksmount {TOOL_VERSION}')

    subparsers = parser.add_subparsers(dest='command')
    open_parser = subparsers.add_parser(
        'open', help='Unlock a volume and mount it')
    _add_common_arguments(open_parser, with_fs_type=True)
    close_parser = subparsers.add_parser(
        'close', help='Unmount a volume and lock it')
    _add_common_arguments(close_parser)
    status_parser = subparsers.add_parser(
        'status', help='Show the state of registered volumes')
    _add_common_arguments(status_parser, with_label=False)

    return parser


def _single_command_parser(prog, description, with_fs_type):
    parser = argparse.ArgumentParser(prog=prog, description=description)
    _add_common_arguments(parser, with_fs_type=with_fs_type)
    parser.add_argument('-v', '--version', action='version',
                        version=f'{prog} {TOOL_VERSION}')
    return parser


def main(argv=None):
    """Main function for CLI interface."""
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    if args.command == 'open':
        return run_workflow(UnlockWorkflow, args)
    if args.command == 'close':
        return run_workflow(LockWorkflow, args)
    if args.command == 'status':
        return run_status(args)

    parser.print_help()
    return EXIT_SUCCESS


def open_main(argv=None):
    """Entry point for the standalone luks-open command."""
    parser = _single_command_parser(
        'luks-open', 'Unlock a LUKS volume by label and mount it', True)
    return run_workflow(UnlockWorkflow, parser.parse_args(argv))


def close_main(argv=None):
    """Entry point for the standalone luks-close command."""
    parser = _single_command_parser(
        'luks-close', 'Unmount a LUKS volume by label and lock it', False)
    return run_workflow(LockWorkflow, parser.parse_args(argv))


if __name__ == '__main__':
    sys.exit(main())
