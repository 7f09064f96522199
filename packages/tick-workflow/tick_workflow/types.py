"""Core data types and errors for workflow specifications."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Iterable

Action = Callable[..., Any]
Hook = Callable[..., None]
StateListener = Callable[[str], None]


@dataclass(frozen=True)
class Event:
    """Immutable transition edge declared on a state.

    Attributes:
        name: Event name, unique within its owning state.
        to: Name of the target state in the same specification.
        meta: Arbitrary user metadata (e.g., {"label": "Submit"}).
        action: Optional callable run as ``action(host, *args, **kwargs)``
            before the transition. Its return value becomes the trigger result.
    """

    name: str
    to: str
    meta: dict[str, Any] = field(default_factory=dict)
    action: Action | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Event name must be non-empty")
        if not self.to:
            raise ValueError(f"Event {self.name!r} needs a target state")


@dataclass(frozen=True)
class State:
    """Named node owning an ordered tuple of events plus entry/exit hooks.

    ``on_entry`` is called as ``on_entry(host, prior_state, event, *args)``
    and ``on_exit`` as ``on_exit(host, next_state, event, *args)``.
    """

    name: str
    events: tuple[Event, ...] = ()
    meta: dict[str, Any] = field(default_factory=dict)
    on_entry: Hook | None = None
    on_exit: Hook | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("State name must be non-empty")
        seen: set[str] = set()
        for event in self.events:
            if event.name in seen:
                raise ValueError(
                    f"Duplicate event {event.name!r} on state {self.name!r}"
                )
            seen.add(event.name)

    def event(self, name: str) -> Event | None:
        """Look up an event by name. Returns None if not declared here."""
        for event in self.events:
            if event.name == name:
                return event
        return None

    def event_names(self) -> list[str]:
        """Return event names in declaration order."""
        return [event.name for event in self.events]


class WorkflowError(Exception):
    """Base class for every error raised by tick-workflow."""


class SpecificationNotFound(WorkflowError, LookupError):
    """Raised when a registry lookup exhausts the key and its fallbacks."""

    def __init__(self, key: Hashable) -> None:
        self.key = key
        super().__init__(f"No workflow specification registered for {key!r}")


class DefinitionError(WorkflowError, ValueError):
    """Raised when a specification is defined inconsistently."""


class InvalidTransitionTarget(DefinitionError):
    """Raised when an event targets a state the specification does not declare."""

    def __init__(self, state: str, event: str, target: str) -> None:
        self.state = state
        self.event = event
        self.target = target
        super().__init__(
            f"Event {event!r} on state {state!r} targets unknown state {target!r}"
        )


class InvalidStateName(WorkflowError, LookupError):
    """Raised when a state name is not part of the specification."""

    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(f"Unknown state {state!r}")


class UnrecognizedEvent(WorkflowError, AttributeError):
    """Raised when a trigger name is neither an available event nor a predicate."""

    def __init__(self, event: str, state: str | None = None) -> None:
        self.event = event
        self.state = state
        if state is None:
            message = f"Unrecognized event {event!r}"
        else:
            message = f"Event {event!r} is not available in state {state!r}"
        super().__init__(message)


class TransitionHalted(WorkflowError):
    """Raised by ``trigger`` when the action called ``halt_and_raise``."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(reason or "Transition halted")


class ReentrantTrigger(WorkflowError, RuntimeError):
    """Raised when an action or hook triggers an event on its own instance."""

    def __init__(self, event: str, running: str) -> None:
        self.event = event
        self.running = running
        super().__init__(f"Cannot trigger {event!r} from inside {running}")


class HaltOutsideAction(WorkflowError, RuntimeError):
    """Raised when ``halt`` or ``halt_and_raise`` is called outside an event action."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__("halt() is only allowed inside an event action")


def collect_event_names(states: Iterable[State]) -> list[str]:
    """Return every event name declared on ``states``, first occurrence order."""
    names: dict[str, None] = {}
    for state in states:
        for event in state.events:
            names.setdefault(event.name, None)
    return list(names)
