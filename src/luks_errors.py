#!/usr/bin/env python3
"""
Error taxonomy for luksmount.

Every failure that ends an invocation is raised as a LuksMountError
subclass. Each error carries the message shown to the operator and the
numeric exit code the process terminates with.
"""

from global_constants import (
    EXIT_CONFIG_MISSING,
    EXIT_DISCOVERY_FAILED,
    EXIT_LOOKUP_FAILED,
    EXIT_NO_LABEL,
    EXIT_OPERATION_FAILED,
)


class LuksMountError(Exception):
    """
    Base class for all fatal luksmount errors.

    Subclasses define a default exit code; callers may override it when
    the same kind of failure maps to different codes in different steps.
    The base class has no exit code of its own, so raising it directly
    requires one.
    """

    exit_code = None

    def __init__(self, message, exit_code=None):
        """
        Initialize error.

        Args:
            message: Description shown to the operator
            exit_code: Optional exit code overriding the class default

        Raises:
            TypeError: If no exit code is given and the class has none
        """
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code
        if self.exit_code is None:
            raise TypeError(f"{type(self).__name__} requires an exit code")


class ConfigMissing(LuksMountError):
    """The label/UUID registry file does not exist."""

    exit_code = EXIT_CONFIG_MISSING


class NoLabelSelected(LuksMountError):
    """No label was given and none was picked from the menu."""

    exit_code = EXIT_NO_LABEL


class LookupFailed(LuksMountError):
    """A label, UUID or device could not be found."""

    exit_code = EXIT_LOOKUP_FAILED


class ProbeFailed(LookupFailed):
    """The block-device identification command failed or is missing."""

    exit_code = EXIT_LOOKUP_FAILED


class OperationFailed(LuksMountError):
    """An unlock, lock or mount operation returned non-zero."""

    exit_code = EXIT_OPERATION_FAILED


class DiscoveryFailed(LuksMountError):
    """The filesystem UUID of an unlocked volume could not be found."""

    exit_code = EXIT_DISCOVERY_FAILED
