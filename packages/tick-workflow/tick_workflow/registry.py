"""WorkflowRegistry - named specifications with explicit fallback lookup."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Hashable, Iterable

from tick_workflow.config import WorkflowConfig
from tick_workflow.instance import WorkflowInstance
from tick_workflow.spec import SpecBuilder, Specification
from tick_workflow.types import DefinitionError, SpecificationNotFound, StateListener

logger = logging.getLogger(__name__)


def lineage(cls: type) -> tuple[type, ...]:
    """Return the fallback keys for a class key: its bases in MRO order, minus ``object``."""
    return tuple(base for base in cls.__mro__[1:] if base is not object)


class WorkflowRegistry:
    """Maps keys (names or classes) to specifications.

    Registering an existing key re-opens its specification: the definition
    appends to it rather than replacing it. Mutations are serialized with a
    re-entrant lock, so a definition may register other keys, but not its own
    key (DefinitionError).
    """

    def __init__(self, config: WorkflowConfig | None = None) -> None:
        self._specs: dict[Hashable, Specification] = {}
        self._lock = threading.RLock()
        self._defining: set[Hashable] = set()
        self._config = config or WorkflowConfig()

    @property
    def config(self) -> WorkflowConfig:
        return self._config

    def register(
        self,
        key: Hashable,
        definition: Callable[[SpecBuilder], Any],
        meta: dict[str, Any] | None = None,
    ) -> Specification:
        """Define or extend the specification for ``key``.

        Nothing is stored if ``definition`` raises or the result is invalid.
        Raises DefinitionError if ``definition`` registers ``key`` itself.
        """
        with self._lock:
            if key in self._defining:
                raise DefinitionError(f"Workflow {key!r} is already being defined")
            self._defining.add(key)
            try:
                spec = self._specs.get(key)
                if spec is None:
                    logger.debug("Registering workflow %r", key)
                    spec = Specification(meta)
                    spec.define(definition)
                    self._specs[key] = spec
                else:
                    logger.debug("Extending workflow %r", key)
                    spec.define(definition)
                    if meta:
                        spec.meta.update(meta)
            finally:
                self._defining.discard(key)
            return spec

    def lookup(self, key: Hashable, fallbacks: Iterable[Hashable] = ()) -> Specification:
        """Return the spec for ``key``, else for the first registered fallback.

        Raises SpecificationNotFound if neither matches.
        """
        spec = self._specs.get(key)
        if spec is not None:
            return spec
        for parent in fallbacks:
            spec = self._specs.get(parent)
            if spec is not None:
                logger.debug("Workflow %r resolved through %r", key, parent)
                return spec
        raise SpecificationNotFound(key)

    def has(self, key: Hashable) -> bool:
        """Check if ``key`` itself is registered (no fallback)."""
        return key in self._specs

    def keys(self) -> list[Hashable]:
        """Return all registered keys."""
        return list(self._specs)

    def remove(self, key: Hashable) -> None:
        """Remove a registration. Raises SpecificationNotFound if not registered."""
        with self._lock:
            if key not in self._specs:
                raise SpecificationNotFound(key)
            del self._specs[key]

    def reset(self) -> None:
        """Forget every registration."""
        with self._lock:
            self._specs.clear()

    def new(
        self,
        key: Hashable,
        *,
        context: Any = None,
        reconstitute_at: str | None = None,
        fallbacks: Iterable[Hashable] = (),
        subscribers: Iterable[StateListener] = (),
    ) -> WorkflowInstance:
        """Create an instance of the specification found for ``key``."""
        spec = self.lookup(key, fallbacks)
        return WorkflowInstance(
            spec,
            context=context,
            reconstitute_at=reconstitute_at,
            subscribers=subscribers,
            config=self._config,
        )

    def reconstitute(
        self,
        key: Hashable,
        state: str,
        *,
        context: Any = None,
        fallbacks: Iterable[Hashable] = (),
    ) -> WorkflowInstance:
        """Create an instance directly at ``state`` without running hooks."""
        return self.new(
            key, context=context, reconstitute_at=state, fallbacks=fallbacks
        )
