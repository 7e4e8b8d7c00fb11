"""Keyed lookup from file-type tag to converter factory.

Selection is a plain dictionary lookup.  A tag without an entry is *not* an
error: :meth:`ConverterRegistry.create` returns ``None`` and the caller falls
back to delimited-text decomposition.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from .base import Converter

ConverterFactory = Callable[..., Converter]


class ConverterRegistry:
    """Mapping of file-type tags to converter factories."""

    def __init__(self) -> None:
        self._factories: Dict[str, ConverterFactory] = {}

    def register(self, tag: str, factory: ConverterFactory, *, replace: bool = False) -> None:
        """Associate *tag* with *factory*.

        Raises:
            ValueError: When *tag* is already registered and *replace* is false.
        """
        if tag in self._factories and not replace:
            raise ValueError(f"converter for {tag!r} already registered")
        self._factories[tag] = factory

    def converter(self, tag: str) -> Callable[[ConverterFactory], ConverterFactory]:
        """Class decorator form of :meth:`register`."""

        def _decorate(factory: ConverterFactory) -> ConverterFactory:
            self.register(tag, factory)
            return factory

        return _decorate

    def get(self, tag: Optional[str]) -> Optional[ConverterFactory]:
        """Return the factory for *tag* or ``None``."""
        if tag is None:
            return None
        return self._factories.get(tag)

    def create(self, tag: Optional[str], **kwargs) -> Optional[Converter]:
        """Build a fresh converter for *tag*, or ``None`` when none is registered."""
        factory = self.get(tag)
        return factory(**kwargs) if factory is not None else None

    def tags(self) -> List[str]:
        """Return the registered tags in sorted order."""
        return sorted(self._factories)

    def __contains__(self, tag: object) -> bool:
        return tag in self._factories


#: Registry pre-populated with the built-in converters.
default_registry = ConverterRegistry()

__all__ = ["ConverterRegistry", "ConverterFactory", "default_registry"]
