"""
Configuration package façade.

Exports the small, stable surface that external callers rely on:

* :func:`load_config` – Parse and validate the YAML document into a single
  :class:`ConfigSchema` instance.
* :class:`ConfigSchema` – Pydantic model representing the validated
  configuration.
* :class:`Properties` / :class:`ConfigProperties` – directory lookups read by
  the wizard once per operation.
"""

from .loader import load_config  # noqa: F401
from .properties import ConfigProperties, Properties  # noqa: F401
from .schema import ConfigSchema  # noqa: F401

__all__: list[str] = ["load_config", "ConfigSchema", "Properties", "ConfigProperties"]
