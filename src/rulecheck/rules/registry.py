# SPDX-License-Identifier: MIT
"""Predicate registry — named predicate factories and import-path resolution."""

from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping
from typing import Any

from rulecheck.rules.base import Predicate
from rulecheck.rules.external import command_exit_status
from rulecheck.rules.patterns import forbid_pattern, require_pattern

PredicateFactory = Callable[..., Predicate]


class PredicateRegistry:
    """Maps ``predicate_ref`` names to factories that build predicates."""

    def __init__(self) -> None:
        self._factories: dict[str, PredicateFactory] = {}

    def register(self, name: str, factory: PredicateFactory) -> None:
        if not name:
            raise ValueError("Predicate name must be non-empty")
        if name in self._factories:
            raise ValueError(f"Duplicate predicate registered: {name}")
        self._factories[name] = factory

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def resolve(self, ref: str, params: Mapping[str, Any] | None = None) -> Predicate:
        """Turn a ``predicate_ref`` into a callable predicate.

        Registered names are factories and are always called (with *params*
        when given). ``package.module:attribute`` refs are imported; the
        attribute is used as the predicate directly, or called as a factory
        when *params* are given.

        Raises:
            LookupError: If the ref cannot be found.
            TypeError: If the resolved object is not callable.
        """
        if ref in self._factories:
            predicate = self._factories[ref](**dict(params or {}))
        elif ":" in ref:
            target = _import_ref(ref)
            predicate = target(**dict(params)) if params else target
        else:
            msg = f"Unknown predicate {ref!r}. Registered: {self.names()}"
            raise LookupError(msg)
        if not callable(predicate):
            msg = f"Predicate {ref!r} resolved to non-callable {type(predicate).__name__}"
            raise TypeError(msg)
        return predicate


def _import_ref(ref: str) -> Any:
    module_name, _, attr_path = ref.partition(":")
    if not module_name or not attr_path:
        msg = f"Malformed predicate ref {ref!r}, expected 'package.module:attribute'"
        raise LookupError(msg)
    try:
        target: Any = importlib.import_module(module_name)
    except Exception as exc:  # module code may fail in any way while importing
        msg = f"Cannot import {module_name!r} for predicate {ref!r}: {exc}"
        raise LookupError(msg) from exc
    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            msg = f"Module {module_name!r} has no attribute {attr_path!r}"
            raise LookupError(msg) from exc
    return target


registry = PredicateRegistry()
registry.register("pattern.forbid", forbid_pattern)
registry.register("pattern.require", require_pattern)
registry.register("command.exit-status", command_exit_status)


def register_predicate(name: str) -> Callable[[PredicateFactory], PredicateFactory]:
    """Decorator form of ``registry.register`` for catalog authors."""

    def _decorator(factory: PredicateFactory) -> PredicateFactory:
        registry.register(name, factory)
        return factory

    return _decorator
