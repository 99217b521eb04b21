#!/usr/bin/env python3
"""
Global constants for luksmount - LUKS volume unlock/mount utility.

All constants follow the ALL_CAPS naming convention.
"""

TOOL_VERSION = "1.2.0"

# Name tags printed in front of every progress line
OPEN_NAMETAG = "LUKS Open"
CLOSE_NAMETAG = "LUKS Close"
STATUS_NAMETAG = "LUKS Status"

# Default locations
REGISTRY_FILE = "/opt/uuid-label.txt"
MOUNT_ROOT = "/media"
MAPPER_DIR = "/dev/mapper"
MOUNT_TABLE = "/etc/mtab"

# Unlocked volume naming - e.g. "sdc1-crypt" for /dev/sdc1
VOLUME_SUFFIX = "-crypt"

# Filesystem type assumed for every unlocked volume
DEFAULT_FS_TYPE = "ext4"

# blkid TYPE value of an encryption container
LUKS_TYPE = "crypto_LUKS"

# External commands
SUDO_COMMAND = "sudo"
BLKID_COMMAND = "/sbin/blkid"
CRYPTSETUP_COMMAND = "/sbin/cryptsetup"
MOUNT_COMMAND = "/bin/mount"
UMOUNT_COMMAND = "/bin/umount"

# blkid exits with 2 when it finds nothing to report
BLKID_NO_DEVICES = 2

# Shell-style return codes for commands that could not be started
COMMAND_NOT_EXECUTABLE = 126
COMMAND_NOT_FOUND = 127

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_MISSING = 1
EXIT_NO_LABEL = 2
EXIT_LOOKUP_FAILED = 3
EXIT_DEVICE_LOOKUP_FAILED = 4
EXIT_OPERATION_FAILED = 5
EXIT_DISCOVERY_FAILED = 6
EXIT_MOUNT_FAILED = 7
EXIT_INTERRUPTED = 130

# Prompts
MENU_HEADER = "Available LUKS devices: "
MENU_PROMPT = "Select LUKS device: "
ACKNOWLEDGE_PROMPT = "Press Enter to exit... "

# Display formatting
DISPLAY_LINE_WIDTH = 70

# Test constants
TEST_LUKS_UUID = "394d9ea7-33da-4f2f-a56c-6725977989a0"
TEST_LUKS_UUID_2 = "c78ef5bf-4e8c-49dd-9c0b-c4f9aae9fed2"
TEST_FS_UUID = "0f3a5e1c-8d2b-4c7e-9a61-2b5d7c9e4f10"
TEST_FS_UUID_2 = "7e21b0d4-5c3a-4f8e-b2d9-61a0c3e5f7b8"
TEST_LABEL = "MySecondDisk"
TEST_LABEL_2 = "MyDisk"
TEST_DEVICE = "/dev/sdb1"
TEST_DEVICE_2 = "/dev/sdc1"
TEST_VOLUME = "sdb1-crypt"
