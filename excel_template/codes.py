"""Code lookup capability for enumerated columns."""

# Module responsibilities:
# - Define the CodeLookup protocol translating stored codes <-> display names.
# - Provide base/dict-backed lookup implementations and the lookup provider used at schema resolution.

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol, Sequence, runtime_checkable

from .errors import ConfigurationError


@dataclass(frozen=True)
class CodeBean:
    """One selectable entry of an enumerated column."""

    code: str
    name: str


@runtime_checkable
class CodeLookup(Protocol):
    """Bidirectional translator between stored codes and display names."""

    def get_name(self, code: str) -> Optional[str]:
        """Return the display name for ``code`` (used on export)."""

    def get_code(self, name: str) -> Optional[str]:
        """Return the stored code for ``name`` (used on import)."""

    def load_code_list(self) -> Sequence[CodeBean]:
        """Return the selectable entries, used to build dropdowns."""


class BaseCodeLookup:
    """Convenience base class; subclasses implement the two translations."""

    def load_code_list(self) -> Sequence[CodeBean]:
        return []

    def get_name(self, code: str) -> Optional[str]:
        raise NotImplementedError

    def get_code(self, name: str) -> Optional[str]:
        raise NotImplementedError


class MappingCodeLookup(BaseCodeLookup):
    """Lookup backed by an ordered ``code -> name`` mapping."""

    codes: Mapping[str, str] = {}

    def __init__(self, codes: Optional[Mapping[str, str]] = None) -> None:
        self._by_code: Dict[str, str] = dict(codes if codes is not None else self.codes)
        self._by_name: Dict[str, str] = {name: code for code, name in self._by_code.items()}

    def load_code_list(self) -> Sequence[CodeBean]:
        return [CodeBean(code=code, name=name) for code, name in self._by_code.items()]

    def get_name(self, code: str) -> Optional[str]:
        return self._by_code.get(code)

    def get_code(self, name: str) -> Optional[str]:
        return self._by_name.get(name)


class LookupProvider(Protocol):
    """Resolve a declared lookup type into a configured lookup instance."""

    def resolve(self, lookup_type: type) -> CodeLookup:
        """Return the lookup instance registered for ``lookup_type``."""


class RegistryLookupProvider:
    """Default provider: one cached instance per lookup type.

    Instances can be registered up front (for lookups that need constructor
    arguments); unregistered types are instantiated without arguments on
    first use.
    """

    def __init__(self, instances: Optional[Mapping[type, CodeLookup]] = None) -> None:
        self._instances: Dict[type, CodeLookup] = dict(instances or {})

    def register(self, lookup_type: type, instance: CodeLookup) -> None:
        self._instances[lookup_type] = instance

    def resolve(self, lookup_type: type) -> CodeLookup:
        instance = self._instances.get(lookup_type)
        if instance is not None:
            return instance
        try:
            instance = lookup_type()
        except TypeError as exc:
            raise ConfigurationError(
                f"Lookup {lookup_type.__name__} needs constructor arguments; register an instance"
            ) from exc
        if not isinstance(instance, CodeLookup):
            raise ConfigurationError(f"{lookup_type.__name__} does not implement CodeLookup")
        self._instances[lookup_type] = instance
        return instance
