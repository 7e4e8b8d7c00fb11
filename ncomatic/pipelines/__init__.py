"""
Public façade for the *pipelines* sub-package.

* **Wizard**
    * :class:`WizardOrchestrator`
    * :func:`merge_upload`

* **Metadata**
    * :class:`MetadataProcessor`

* **Conversion**
    * :func:`convert_session`
    * :class:`ConversionResult`

* **Routing**
    * :func:`next_step` / :func:`previous_step` / :func:`step_sequence`

Importing from ``ncomatic.pipelines`` rather than individual modules keeps
call-sites stable even when underlying filenames change.
"""

from __future__ import annotations

from .types import ConversionResult
from .routing import next_step, previous_step, step_sequence
from .metadata import MetadataProcessor
from .convert import convert_session
from .wizard import WizardOrchestrator, merge_upload

__all__: list[str] = [
    "WizardOrchestrator",
    "merge_upload",
    "MetadataProcessor",
    "convert_session",
    "ConversionResult",
    "next_step",
    "previous_step",
    "step_sequence",
]
