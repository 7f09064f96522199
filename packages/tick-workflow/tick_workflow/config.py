"""Workflow configuration dataclass."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WorkflowConfig:
    """Immutable configuration shared by a registry and its instances.

    Attributes:
        predicate_suffix: Suffix that turns a state name into a predicate
            trigger name (``instance.trigger("draft?")``).
        predicate_prefix: Prefix that turns a state name into a predicate
            attribute on a bound host (``host.is_draft()``).
        notify_on_create: Whether a fresh instance notifies its subscribers
            of the initial state. Reconstitution never notifies.
    """

    predicate_suffix: str = "?"
    predicate_prefix: str = "is_"
    notify_on_create: bool = True

    def __post_init__(self) -> None:
        if not self.predicate_suffix:
            raise ValueError("predicate_suffix must be non-empty")
        if not self.predicate_prefix:
            raise ValueError("predicate_prefix must be non-empty")
