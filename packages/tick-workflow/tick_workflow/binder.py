"""Attach workflow instances to host objects."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Hashable

from tick_workflow.registry import lineage
from tick_workflow.types import StateListener, UnrecognizedEvent

if TYPE_CHECKING:
    from tick_workflow.instance import WorkflowInstance
    from tick_workflow.registry import WorkflowRegistry

logger = logging.getLogger(__name__)


def attach(
    host: Any,
    registry: WorkflowRegistry,
    key: Hashable | None = None,
    *,
    state: str | None = None,
    on_change: StateListener | None = None,
) -> WorkflowInstance:
    """Create a workflow instance for ``host`` and store it as ``host.workflow``.

    ``key`` defaults to the host's class, falling back through its bases.
    ``state`` is a previously persisted state name; None starts fresh.
    ``on_change`` is called with the new state name after every transition,
    including the initial entry of a fresh instance.
    """
    if key is None:
        key = type(host)
        fallbacks: tuple[Hashable, ...] = lineage(type(host))
    else:
        fallbacks = lineage(key) if isinstance(key, type) else ()
    subscribers = (on_change,) if on_change is not None else ()
    instance = registry.new(
        key,
        context=host,
        reconstitute_at=state,
        fallbacks=fallbacks,
        subscribers=subscribers,
    )
    host.workflow = instance
    logger.debug("Attached workflow at %r to %r", instance.state, host)
    return instance


class WorkflowHost:
    """Mixin exposing ``self.workflow`` through unresolved attribute access.

    Event names available in the current state become methods, predicates
    are exposed as ``is_<state>()``, and instance introspection
    (``state``, ``halted``, ``halt()`` ...) forwards to the workflow. Names
    the workflow does not handle go to the next ``__getattr__`` in the MRO.
    """

    workflow: WorkflowInstance

    def __getattr__(self, name: str) -> Any:
        workflow = self.__dict__.get("workflow")
        if workflow is not None and workflow.handles(name):
            return workflow.resolve(name)

        fallback = getattr(super(), "__getattr__", None)
        if fallback is not None:
            return fallback(name)

        if workflow is not None and name in workflow.event_names():
            raise UnrecognizedEvent(name, workflow.state)
        raise AttributeError(
            f"{type(self).__name__!r} object has no attribute {name!r}"
        )
