#!/usr/bin/env python3
"""
Label resolution for luksmount.

A label is either given on the command line, or picked from a numbered
menu built from the registry entries whose devices are currently visible.
"""

from global_constants import MENU_HEADER, MENU_PROMPT
from luks_errors import NoLabelSelected
from device_prober import luks_uuids


def unlock_candidates(registry, devices):
    """
    Labels that can be unlocked right now.

    A registry entry qualifies when its UUID belongs to a visible
    encryption container.

    Args:
        registry: DiskRegistry
        devices: VisibleDevice list from the prober

    Returns:
        list: Sorted, de-duplicated labels
    """
    present = set(luks_uuids(devices))
    return sorted({entry.label for entry in registry
                   if entry.uuid in present})


def lock_candidates(registry, devices):
    """
    Labels that can be locked right now.

    A registry label qualifies when a visible (unlocked) filesystem
    carries exactly that label.

    Returns:
        list: Sorted, de-duplicated labels
    """
    visible_labels = {device.label for device in devices if device.label}
    return sorted({label for label in registry.labels()
                   if label in visible_labels})


def select_label(candidates, input_func=None, output=print):
    """
    Show a numbered menu and read one choice.

    The menu is shown once; anything other than a valid number, including
    empty input, end of input or Ctrl-C, counts as no selection.

    Args:
        candidates: Labels to choose from
        input_func: Callable used to read the answer
        output: Callable used to print the menu

    Returns:
        str: The chosen label, or None
    """
    if not candidates:
        return None

    output(MENU_HEADER)
    for number, label in enumerate(candidates, start=1):
        output(f"{number}) {label}")

    input_func = input_func or input
    try:
        answer = input_func(MENU_PROMPT).strip()
    except (EOFError, KeyboardInterrupt):
        output("")
        return None

    try:
        index = int(answer) - 1
    except ValueError:
        return None
    if 0 <= index < len(candidates):
        return candidates[index]
    return None


def resolve_label(label, candidates, input_func=None, output=print):
    """
    Return the label to operate on.

    Args:
        label: Label from the command line, or None/'' for the menu
        candidates: Menu entries used when no label was given
        input_func: Callable used to read the menu answer
        output: Callable used to print the menu

    Returns:
        str: Label to operate on

    Raises:
        NoLabelSelected: If no label was given and none was chosen
    """
    if label:
        return label
    if not candidates:
        raise NoLabelSelected("No registered LUKS devices available, "
                              "aborting")
    chosen = select_label(candidates, input_func, output)
    if not chosen:
        raise NoLabelSelected("No label selected, aborting")
    return chosen
