#!/usr/bin/env python3
"""
Test cases for UnlockWorkflow class.

The workflow runs against FakeSystem, with mountpoints and label links
created in a temporary mount root.
"""

import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import MagicMock, patch

# Add src directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from disk_registry import DiskRegistry, RegistryEntry  # noqa: E402
from fake_system import FakeSystem  # noqa: E402
from global_constants import (  # noqa: E402
    CRYPTSETUP_COMMAND,
    EXIT_DEVICE_LOOKUP_FAILED,
    EXIT_DISCOVERY_FAILED,
    EXIT_LOOKUP_FAILED,
    EXIT_MOUNT_FAILED,
    EXIT_NO_LABEL,
    EXIT_OPERATION_FAILED,
    MOUNT_COMMAND,
    TEST_DEVICE,
    TEST_DEVICE_2,
    TEST_FS_UUID,
    TEST_FS_UUID_2,
    TEST_LABEL,
    TEST_LABEL_2,
    TEST_LUKS_UUID,
    TEST_LUKS_UUID_2,
    TEST_VOLUME,
)
from luks_errors import (  # noqa: E402
    DiscoveryFailed,
    LookupFailed,
    NoLabelSelected,
    OperationFailed,
)
from unlock_workflow import UnlockWorkflow  # noqa: E402


class UnlockTestCase(unittest.TestCase):
    """Common fixture: two registered disks, one attached."""

    def setUp(self):
        """Set up fake system and temporary mount root."""
        self.mount_root = tempfile.mkdtemp()
        self.system = FakeSystem()
        self.system.add_container(TEST_DEVICE, TEST_LUKS_UUID, TEST_FS_UUID,
                                  TEST_LABEL)
        self.registry = DiskRegistry([
            RegistryEntry(TEST_LUKS_UUID_2, TEST_LABEL_2),
            RegistryEntry(TEST_LUKS_UUID, TEST_LABEL),
        ], '/opt/uuid-label.txt')
        self.printed = []
        self.input_func = MagicMock(return_value='1')

    def tearDown(self):
        """Remove temporary mount root."""
        shutil.rmtree(self.mount_root)

    def make_workflow(self, **kwargs):
        return UnlockWorkflow(self.registry, self.system,
                              mount_root=self.mount_root,
                              input_func=self.input_func,
                              output=self.printed.append, **kwargs)

    @property
    def mountpoint(self):
        return os.path.join(self.mount_root, TEST_FS_UUID)

    @property
    def link_path(self):
        return os.path.join(self.mount_root, TEST_LABEL)


class TestUnlockWorkflow(UnlockTestCase):
    """Test the full unlock sequence."""

    def test_unlock_and_mount(self):
        """Test unlock, mount and link for a registered label."""
        result = self.make_workflow().run(TEST_LABEL)

        self.assertEqual(result.device_path, TEST_DEVICE)
        self.assertEqual(result.volume, TEST_VOLUME)
        self.assertEqual(result.uuid, TEST_FS_UUID)
        self.assertEqual(result.mountpoint, self.mountpoint)
        self.assertEqual(result.actions, ['unlocked', 'mounted', 'linked'])

        self.assertIn(
            [CRYPTSETUP_COMMAND, '-v', 'luksOpen', TEST_DEVICE, TEST_VOLUME],
            self.system.calls)
        self.assertIn(
            [MOUNT_COMMAND, '-v', '-t', 'ext4', '/dev/mapper/sdb1-crypt',
             self.mountpoint], self.system.calls)
        self.assertTrue(os.path.isdir(self.mountpoint))
        self.assertTrue(os.path.islink(self.link_path))
        self.assertEqual(os.readlink(self.link_path), self.mountpoint)

    def test_progress_output(self):
        """Test that progress lines carry the name tag."""
        self.make_workflow().run(TEST_LABEL)
        self.assertIn(f"LUKS Open : Label {TEST_LABEL} has UUID "
                      f"{TEST_LUKS_UUID}", self.printed)
        self.assertIn("LUKS Open : Success - volume unlocked and mounted",
                      self.printed)

    def test_quiet(self):
        """Test that quiet suppresses progress output."""
        self.make_workflow(quiet=True).run(TEST_LABEL)
        self.assertEqual(self.printed, [])

    def test_custom_fs_type(self):
        """Test that the configured filesystem type is passed to mount."""
        self.make_workflow(fs_type='xfs').run(TEST_LABEL)
        mounts = self.system.calls_with(MOUNT_COMMAND)
        self.assertEqual(mounts[0][3], 'xfs')

    def test_device_resolved_exactly_once(self):
        """Test that each registered label maps to its own device."""
        self.system.add_container(TEST_DEVICE_2, TEST_LUKS_UUID_2,
                                  TEST_FS_UUID_2, TEST_LABEL_2)
        for label, device in [(TEST_LABEL, TEST_DEVICE),
                              (TEST_LABEL_2, TEST_DEVICE_2)]:
            with self.subTest(label=label):
                result = self.make_workflow().run(label)
                self.assertEqual(result.device_path, device)
                opens = [call for call in self.system.calls_with('luksOpen')
                         if device in call]
                self.assertEqual(len(opens), 1)

    def test_unlock_is_idempotent(self):
        """Test that a second run skips unlock and mount."""
        self.make_workflow().run(TEST_LABEL)
        self.printed.clear()
        result = self.make_workflow().run(TEST_LABEL)

        self.assertEqual(result.actions, ['already_unlocked',
                                          'already_mounted'])
        self.assertEqual(len(self.system.calls_with('luksOpen')), 1)
        self.assertEqual(len(self.system.calls_with(MOUNT_COMMAND)), 1)
        self.assertEqual(len(self.system.mounts), 1)
        self.assertIn(f"LUKS Open : Volume {TEST_VOLUME} already unlocked; "
                      f"skipping", self.printed)
        self.assertIn(f"LUKS Open : Volume {TEST_VOLUME} already mounted at "
                      f"{self.mountpoint}", self.printed)

    def test_existing_mountpoint_directory(self):
        """Test that an existing mountpoint directory is reused."""
        os.makedirs(self.mountpoint)
        result = self.make_workflow().run(TEST_LABEL)
        self.assertIn('mounted', result.actions)

    def test_existing_link_kept(self):
        """Test that an existing link is left alone."""
        os.symlink('/elsewhere', self.link_path)
        result = self.make_workflow().run(TEST_LABEL)
        self.assertNotIn('linked', result.actions)
        self.assertEqual(os.readlink(self.link_path), '/elsewhere')

    @patch('unlock_workflow.os.symlink', side_effect=PermissionError('no'))
    def test_link_failure_is_warning(self, mock_symlink):
        """Test that a failed link does not fail the workflow."""
        result = self.make_workflow(quiet=True).run(TEST_LABEL)
        self.assertEqual(result.actions, ['unlocked', 'mounted'])
        self.assertTrue(any('Unable to create softlink' in line
                            for line in self.printed))


class TestUnlockInteractive(UnlockTestCase):
    """Test label selection from the menu."""

    def test_menu_lists_attached_registered_disks(self):
        """Test that only attached registered disks are offered."""
        result = self.make_workflow().run()
        self.assertEqual(result.label, TEST_LABEL)
        self.assertIn(f"1) {TEST_LABEL}", self.printed)
        self.assertNotIn(f"1) {TEST_LABEL_2}", self.printed)

    def test_invalid_choice_aborts(self):
        """Test that an invalid choice is NoLabelSelected."""
        self.input_func.return_value = '7'
        with self.assertRaises(NoLabelSelected) as context:
            self.make_workflow().run()
        self.assertEqual(context.exception.exit_code, EXIT_NO_LABEL)
        self.assertEqual(self.system.calls_with('luksOpen'), [])

    def test_empty_registry_no_devices(self):
        """Test that an empty registry gives NoLabelSelected, not a crash."""
        self.registry = DiskRegistry([], '/opt/uuid-label.txt')
        self.system = FakeSystem()
        with self.assertRaises(NoLabelSelected) as context:
            self.make_workflow().run()
        self.assertEqual(context.exception.exit_code, EXIT_NO_LABEL)
        self.input_func.assert_not_called()


class TestUnlockFailures(UnlockTestCase):
    """Test each abort condition."""

    def test_unregistered_label(self):
        """Test exit code 3 for a label missing from the registry."""
        with self.assertRaises(LookupFailed) as context:
            self.make_workflow().run('Unknown')
        self.assertEqual(context.exception.exit_code, EXIT_LOOKUP_FAILED)

    def test_label_substring_not_matched(self):
        """Test that part of a registered label is not accepted."""
        with self.assertRaises(LookupFailed):
            self.make_workflow().run('Disk')

    def test_device_not_attached(self):
        """Test exit code 4 when the container is not visible."""
        with self.assertRaises(LookupFailed) as context:
            self.make_workflow().run(TEST_LABEL_2)
        self.assertEqual(context.exception.exit_code,
                         EXIT_DEVICE_LOOKUP_FAILED)

    def test_unlock_failure(self):
        """Test exit code 5 when cryptsetup fails."""
        self.system.failing.add('luksOpen')
        with self.assertRaises(OperationFailed) as context:
            self.make_workflow().run(TEST_LABEL)
        self.assertEqual(context.exception.exit_code, EXIT_OPERATION_FAILED)
        self.assertEqual(self.system.calls_with(MOUNT_COMMAND), [])

    def test_fs_uuid_missing(self):
        """Test exit code 6 when the unlocked volume has no UUID."""
        self.system.filesystems[TEST_LUKS_UUID] = ('', None)
        with self.assertRaises(DiscoveryFailed) as context:
            self.make_workflow().run(TEST_LABEL)
        self.assertEqual(context.exception.exit_code, EXIT_DISCOVERY_FAILED)

    def test_mount_failure_leaves_volume_unlocked(self):
        """Test exit code 7 on mount failure, without rollback."""
        self.system.failing.add('mount')
        with self.assertRaises(OperationFailed) as context:
            self.make_workflow().run(TEST_LABEL)
        self.assertEqual(context.exception.exit_code, EXIT_MOUNT_FAILED)
        self.assertIn(TEST_VOLUME, self.system.volumes)
        self.assertFalse(os.path.lexists(self.link_path))

    def test_unreadable_mount_table(self):
        """Test exit code 7 when the mount table cannot be read."""
        self.system.failing.add('mtab')
        with self.assertRaises(OperationFailed) as context:
            self.make_workflow().run(TEST_LABEL)
        self.assertEqual(context.exception.exit_code, EXIT_MOUNT_FAILED)
        self.assertIn(TEST_VOLUME, self.system.volumes)
        self.assertEqual(self.system.calls_with(MOUNT_COMMAND), [])

    @patch('unlock_workflow.os.makedirs', side_effect=PermissionError('no'))
    def test_mountpoint_creation_failure(self, mock_makedirs):
        """Test exit code 7 when the mountpoint cannot be created."""
        with self.assertRaises(OperationFailed) as context:
            self.make_workflow().run(TEST_LABEL)
        self.assertEqual(context.exception.exit_code, EXIT_MOUNT_FAILED)
        self.assertEqual(self.system.calls_with(MOUNT_COMMAND), [])


if __name__ == '__main__':
    unittest.main()
