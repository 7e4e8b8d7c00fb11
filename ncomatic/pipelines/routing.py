"""Wizard step routing.

The path through the wizard depends only on the session's file-type tag::

    Custom_File_Type   fileUpload → customFileTypeAttributes → variableMetadata
                       → generalMetadata → converted
    any other tag      fileUpload → generalMetadata → variableMetadata
                       → converted

``next_step`` and ``previous_step`` walk the same tuple, which makes them
inverse of each other for every step that has a neighbour.
"""

from __future__ import annotations

from typing import Optional, Tuple

from ncomatic.models import CUSTOM_FILE_TYPE, WizardStep
from ncomatic.utils.errors import ValidationError

_CUSTOM_PATH: Tuple[WizardStep, ...] = (
    WizardStep.FILE_UPLOAD,
    WizardStep.CUSTOM_FILE_TYPE_ATTRIBUTES,
    WizardStep.VARIABLE_METADATA,
    WizardStep.GENERAL_METADATA,
    WizardStep.CONVERTED,
)

_KNOWN_PATH: Tuple[WizardStep, ...] = (
    WizardStep.FILE_UPLOAD,
    WizardStep.GENERAL_METADATA,
    WizardStep.VARIABLE_METADATA,
    WizardStep.CONVERTED,
)


def step_sequence(data_file_type: Optional[str]) -> Tuple[WizardStep, ...]:
    """Return the ordered steps for *data_file_type*."""
    return _CUSTOM_PATH if data_file_type == CUSTOM_FILE_TYPE else _KNOWN_PATH


def _position(data_file_type: Optional[str], current: WizardStep | str, *, operation: str) -> int:
    path = step_sequence(data_file_type)
    try:
        return path.index(WizardStep(current))
    except ValueError:
        raise ValidationError(
            f"Step {current!r} is not on the path for file type {data_file_type!r}",
            operation=operation,
        ) from None


def next_step(data_file_type: Optional[str], current: WizardStep | str) -> WizardStep:
    """Return the step following *current*.

    Raises:
        ValidationError: When *current* is not on the path or is the last step.
    """
    path = step_sequence(data_file_type)
    idx = _position(data_file_type, current, operation="next_step")
    if idx == len(path) - 1:
        raise ValidationError(f"{path[idx].value} is the last step", operation="next_step")
    return path[idx + 1]


def previous_step(data_file_type: Optional[str], current: WizardStep | str) -> WizardStep:
    """Return the step preceding *current*.

    Raises:
        ValidationError: When *current* is not on the path or is the first step.
    """
    path = step_sequence(data_file_type)
    idx = _position(data_file_type, current, operation="previous_step")
    if idx == 0:
        raise ValidationError(f"{path[0].value} is the first step", operation="previous_step")
    return path[idx - 1]


__all__ = ["step_sequence", "next_step", "previous_step"]
