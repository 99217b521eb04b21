"""
luksmount - LUKS volume unlock/mount and unmount/lock helper package.

This package maps registered volume labels to LUKS containers, unlocks
and mounts them under a predictable path, and reverses the process.
"""

from .global_constants import TOOL_VERSION as __version__  # noqa: F401
