"""Converters and the registry that selects them.

Importing this package registers the built-in converters with
:data:`default_registry`:

* ``"eTuff"`` (alias ``"eTUFF"``) → :class:`TagUniversalFileFormat`
"""

from .base import Converter
from .registry import ConverterFactory, ConverterRegistry, default_registry
from .etuff import TagUniversalFileFormat  # noqa: E402 – registers "eTuff"

__all__ = [
    "Converter",
    "ConverterFactory",
    "ConverterRegistry",
    "default_registry",
    "TagUniversalFileFormat",
]
