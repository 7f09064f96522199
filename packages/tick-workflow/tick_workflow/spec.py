"""Specification model and the builder used to define it.

A definition is a plain callable taking a ``SpecBuilder``::

    def define(wf):
        wf.state("draft").event("submit", to="review")
        with wf.state("review") as review:
            review.event("approve", to="published")
            review.event("reject", to="draft")
        wf.state("published")

The builder buffers every declaration and only installs the result on the
specification when ``commit()`` succeeds, so a definition that raises part way
through leaves the specification exactly as it was.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from tick_workflow.types import (
    Action,
    DefinitionError,
    Event,
    Hook,
    InvalidTransitionTarget,
    State,
    collect_event_names,
)

logger = logging.getLogger(__name__)


class Specification:
    """Ordered states, a spec-wide transition hook, and metadata."""

    def __init__(self, meta: dict[str, Any] | None = None) -> None:
        self.meta: dict[str, Any] = dict(meta or {})
        self._states: tuple[State, ...] = ()
        self._on_transition: Hook | None = None

    @property
    def states(self) -> tuple[State, ...]:
        return self._states

    @property
    def on_transition(self) -> Hook | None:
        return self._on_transition

    @property
    def initial(self) -> State:
        """The first declared state. Raises DefinitionError if there is none."""
        if not self._states:
            raise DefinitionError("Specification declares no states")
        return self._states[0]

    def state(self, name: str) -> State | None:
        """Look up a state by name. Returns None if not declared."""
        for state in self._states:
            if state.name == name:
                return state
        return None

    def state_names(self) -> list[str]:
        """Return state names in declaration order."""
        return [state.name for state in self._states]

    def event_names(self) -> list[str]:
        """Return every event name declared on any state, first occurrence order."""
        return collect_event_names(self._states)

    def define(self, definition: Callable[[SpecBuilder], Any]) -> Specification:
        """Run ``definition`` against a fresh builder and commit the result."""
        builder = SpecBuilder(self)
        definition(builder)
        builder.commit()
        return self

    def _install(self, states: tuple[State, ...], on_transition: Hook | None) -> None:
        self._states = states
        self._on_transition = on_transition


@dataclass
class _StateDraft:
    """Mutable stand-in for a State while a definition is running."""

    name: str
    meta: dict[str, Any] = field(default_factory=dict)
    events: list[Event] = field(default_factory=list)
    on_entry: Hook | None = None
    on_exit: Hook | None = None

    @classmethod
    def from_state(cls, state: State) -> _StateDraft:
        return cls(
            name=state.name,
            meta=dict(state.meta),
            events=list(state.events),
            on_entry=state.on_entry,
            on_exit=state.on_exit,
        )

    def add_event(self, event: Event) -> None:
        if any(e.name == event.name for e in self.events):
            raise DefinitionError(
                f"Event {event.name!r} declared twice on state {self.name!r}"
            )
        self.events.append(event)

    def freeze(self) -> State:
        return State(
            name=self.name,
            events=tuple(self.events),
            meta=dict(self.meta),
            on_entry=self.on_entry,
            on_exit=self.on_exit,
        )


class StateBuilder:
    """Explicit receiver for declarations on one state. Methods chain."""

    def __init__(self, builder: SpecBuilder, draft: _StateDraft) -> None:
        self._builder = builder
        self._draft = draft

    @property
    def name(self) -> str:
        return self._draft.name

    def event(
        self,
        name: str,
        to: str,
        meta: dict[str, Any] | None = None,
        action: Action | None = None,
    ) -> StateBuilder:
        self._builder._add_event(self._draft, name, to, meta, action)
        return self

    def on_entry(self, hook: Hook) -> StateBuilder:
        self._draft.on_entry = hook
        return self

    def on_exit(self, hook: Hook) -> StateBuilder:
        self._draft.on_exit = hook
        return self

    def __enter__(self) -> StateBuilder:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None


class SpecBuilder:
    """Buffers declarations for one specification until ``commit()``.

    ``state()`` makes the declared state the current scope; the builder-level
    ``event``, ``on_entry`` and ``on_exit`` attach to that scope. The hook
    setters return the hook so they can be used as decorators.
    """

    def __init__(self, spec: Specification) -> None:
        self._spec = spec
        self._drafts: list[_StateDraft] = [
            _StateDraft.from_state(s) for s in spec.states
        ]
        self._declared: set[str] = set()
        self._scope: _StateDraft | None = None
        self._on_transition: Hook | None = spec.on_transition
        self._committed = False

    @property
    def specification(self) -> Specification:
        return self._spec

    def state(self, name: str, meta: dict[str, Any] | None = None) -> StateBuilder:
        """Declare (or re-open) a state and make it the current scope."""
        if not name:
            raise DefinitionError("State name must be non-empty")
        if name in self._declared:
            raise DefinitionError(f"State {name!r} declared twice")
        self._declared.add(name)

        draft = self._find(name)
        if draft is None:
            draft = _StateDraft(name=name, meta=dict(meta or {}))
            self._drafts.append(draft)
            logger.debug("Defining state %r", name)
        else:
            if meta:
                draft.meta.update(meta)
            logger.debug("Re-opening state %r", name)
        self._scope = draft
        return StateBuilder(self, draft)

    def event(
        self,
        name: str,
        to: str,
        meta: dict[str, Any] | None = None,
        action: Action | None = None,
    ) -> None:
        """Attach an event to the current scope."""
        self._add_event(self._current(), name, to, meta, action)

    def on_entry(self, hook: Hook) -> Hook:
        self._current().on_entry = hook
        return hook

    def on_exit(self, hook: Hook) -> Hook:
        self._current().on_exit = hook
        return hook

    def on_transition(self, hook: Hook) -> Hook:
        """Set the spec-wide transition hook. Last write wins."""
        self._on_transition = hook
        return hook

    def commit(self) -> Specification:
        """Validate the buffered definition and install it on the specification.

        Raises DefinitionError if no state is declared and
        InvalidTransitionTarget if an event targets an undeclared state.
        """
        if self._committed:
            raise DefinitionError("Builder was already committed")
        if not self._drafts:
            raise DefinitionError("Specification declares no states")

        names = {draft.name for draft in self._drafts}
        for draft in self._drafts:
            for event in draft.events:
                if event.to not in names:
                    raise InvalidTransitionTarget(draft.name, event.name, event.to)

        states = tuple(draft.freeze() for draft in self._drafts)
        self._spec._install(states, self._on_transition)
        self._committed = True
        logger.debug(
            "Committed specification with states %s", [s.name for s in states]
        )
        return self._spec

    def _find(self, name: str) -> _StateDraft | None:
        for draft in self._drafts:
            if draft.name == name:
                return draft
        return None

    def _current(self) -> _StateDraft:
        if self._scope is None:
            raise DefinitionError("Declare a state before attaching events or hooks")
        return self._scope

    def _add_event(
        self,
        draft: _StateDraft,
        name: str,
        to: str,
        meta: dict[str, Any] | None,
        action: Action | None,
    ) -> None:
        try:
            event = Event(name=name, to=to, meta=dict(meta or {}), action=action)
        except ValueError as exc:
            raise DefinitionError(str(exc)) from exc
        draft.add_event(event)
        logger.debug("Defining event %r: %r -> %r", name, draft.name, to)
