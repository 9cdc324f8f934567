"""
Entry point discovery.

An entry point is a ``main`` static or class method on a public class whose
name ends in ``Runner``. Two calling conventions exist:

- structured: ``main(env: Mapping[str, object]) -> int`` receives the
  invocation context;
- legacy: ``main(args: list[str]) -> int`` receives the remaining command
  line. The class may also expose ``set_system_repository_path(path)``, which
  is called with the system root before ``main``.

Structured entry points are searched first across all modules, legacy ones
only when no module offers a structured one. Structured verdicts are cached
per module in a sidecar record; legacy lookups are always a fresh scan.
"""

import collections.abc
import inspect
import logging
import typing
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from wrapboot.constants import (
    ENTRYPOINT_CLASS_SUFFIX,
    ENTRYPOINT_METHOD,
    ENTRYPOINT_RECORD_VERSION,
    LEGACY_SYSPATH_METHOD,
)

from .loader import LoadedModule
from .record import (
    EntryPointCacheRecord,
    ScanState,
    discard_record,
    read_record,
    write_record,
)

logger = logging.getLogger(__name__)

STRUCTURED_PARAMETER_NAMES = ("env", "environment", "context")
LEGACY_PARAMETER_NAMES = ("args", "argv")


class Convention(str, Enum):
    STRUCTURED = "structured"
    LEGACY = "legacy"


@dataclass(frozen=True)
class EntryPoint:
    module: LoadedModule
    symbol_path: str
    convention: Convention
    target: Callable[..., Any]
    owner: type

    def invoke(
        self,
        context: Mapping[str, object],
        args: Sequence[str],
        system_root: Optional[Path] = None,
    ) -> int:
        """
        Call the entry point with the argument its convention expects.

        Returns:
            The integer returned by the entry point (None counts as 0)
        """
        if self.convention is Convention.STRUCTURED:
            result = self.target(context)
        else:
            set_syspath = getattr(self.owner, LEGACY_SYSPATH_METHOD, None)
            if callable(set_syspath) and system_root is not None:
                set_syspath(str(system_root))
            result = self.target(list(args))
        return 0 if result is None else int(result)


def _normalize(name: str) -> str:
    return name.casefold().replace("-", "_").replace(".", "_")


def _is_mapping_type(hint) -> bool:
    origin = typing.get_origin(hint) or hint
    return isinstance(origin, type) and issubclass(origin, collections.abc.Mapping)


def _is_sequence_type(hint) -> bool:
    origin = typing.get_origin(hint) or hint
    if not isinstance(origin, type) or issubclass(origin, (str, bytes)):
        return False
    return issubclass(origin, collections.abc.Sequence)


def convention_of(function: Callable) -> Optional[Convention]:
    """
    Work out which calling convention function follows, if any.

    The function must take exactly one required positional parameter. Its
    annotation decides (a mapping means structured, a list or sequence means
    legacy); unannotated parameters are judged by name.
    """
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return None

    positional = [
        p
        for p in signature.parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    required = [
        p
        for p in signature.parameters.values()
        if p.default is p.empty and p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
    ]
    if not positional or len(required) > 1 or (required and required[0] is not positional[0]):
        return None
    parameter = positional[0]

    try:
        hints = typing.get_type_hints(function)
    except (NameError, TypeError):
        hints = {}
    hint = hints.get(parameter.name)

    if hint is not None and hint is not typing.Any:
        if _is_mapping_type(hint):
            return Convention.STRUCTURED
        if _is_sequence_type(hint):
            return Convention.LEGACY
        return None

    if parameter.name in STRUCTURED_PARAMETER_NAMES:
        return Convention.STRUCTURED
    if parameter.name in LEGACY_PARAMETER_NAMES:
        return Convention.LEGACY
    return None


def runner_classes(module) -> List[type]:
    """Public classes defined in module whose name ends in Runner, in definition order."""
    exported = getattr(module, "__all__", None)
    classes = []
    for name, value in vars(module).items():
        if not inspect.isclass(value) or name.startswith("_"):
            continue
        if value.__module__ != module.__name__:
            continue
        if exported is not None and name not in exported:
            continue
        if name.endswith(ENTRYPOINT_CLASS_SUFFIX):
            classes.append(value)
    return classes


def entry_method(cls: type) -> Optional[Callable]:
    """The class's static or class method ``main``, bound, or None."""
    try:
        raw = inspect.getattr_static(cls, ENTRYPOINT_METHOD)
    except AttributeError:
        return None
    if not isinstance(raw, (staticmethod, classmethod)):
        return None
    return getattr(cls, ENTRYPOINT_METHOD)


def resolve_symbol(module, symbol_path: str) -> Optional[Callable]:
    target = module
    for part in symbol_path.split("."):
        target = getattr(target, part, None)
        if target is None:
            return None
    return target if callable(target) else None


class EntryPointLocator:
    """
    Finds the entry point among loaded modules.

    Args:
        entry_package: Name of the package expected to carry the entry point;
            its module is tried first
        record_version: Format version of the sidecar records
    """

    def __init__(self, entry_package: str, record_version: int = ENTRYPOINT_RECORD_VERSION):
        self.entry_package = entry_package
        self.record_version = record_version

    def prioritize(self, modules: Iterable[LoadedModule]) -> List[LoadedModule]:
        """Entry package module first, then the entry package's other modules, then the rest."""
        wanted = _normalize(self.entry_package)

        def rank(loaded: LoadedModule) -> int:
            if _normalize(loaded.path.stem) == wanted:
                return 0
            if loaded.package is not None and _normalize(loaded.package.name) == wanted:
                return 1
            return 2

        return sorted(modules, key=rank)

    def locate(self, modules: Iterable[LoadedModule]) -> Optional[EntryPoint]:
        ordered = self.prioritize(modules)
        for loaded in ordered:
            entry_point = self.find_structured(loaded)
            if entry_point is not None:
                return entry_point

        logger.debug("No structured entry point found, looking for a legacy one")
        for loaded in ordered:
            entry_point = self.find_legacy(loaded)
            if entry_point is not None:
                return entry_point
        return None

    def scan(self, module, convention: Convention) -> Optional[str]:
        """Introspect module for an entry point of the given convention."""
        for cls in runner_classes(module):
            method = entry_method(cls)
            if method is not None and convention_of(method) is convention:
                return f"{cls.__qualname__}.{ENTRYPOINT_METHOD}"
        return None

    def _entry_point(self, loaded: LoadedModule, symbol_path: str, convention: Convention):
        target = resolve_symbol(loaded.module, symbol_path)
        if target is None:
            return None
        owner_path = symbol_path.rsplit(".", 1)[0]
        owner = resolve_symbol(loaded.module, owner_path)
        return EntryPoint(loaded, symbol_path, convention, target, owner)

    def find_structured(self, loaded: LoadedModule) -> Optional[EntryPoint]:
        record = read_record(loaded.path, self.record_version)
        if record.state is ScanState.NOT_FOUND:
            return None
        if record.state is ScanState.FOUND:
            entry_point = self._entry_point(loaded, record.symbol_path, Convention.STRUCTURED)
            if entry_point is not None:
                logger.debug(f"Using cached entry point {record.symbol_path} of {loaded.name}")
                return entry_point
            # the module no longer has the recorded symbol
            discard_record(loaded.path)

        logger.debug(f"Scanning {loaded.name} for an entry point")
        symbol_path = self.scan(loaded.module, Convention.STRUCTURED)
        if symbol_path is None:
            write_record(loaded.path, EntryPointCacheRecord.not_found(self.record_version))
            return None
        write_record(
            loaded.path, EntryPointCacheRecord.found(symbol_path, self.record_version)
        )
        return self._entry_point(loaded, symbol_path, Convention.STRUCTURED)

    def find_legacy(self, loaded: LoadedModule) -> Optional[EntryPoint]:
        symbol_path = self.scan(loaded.module, Convention.LEGACY)
        if symbol_path is None:
            return None
        return self._entry_point(loaded, symbol_path, Convention.LEGACY)
