"""WorkflowInstance - the transition engine bound to one host."""
from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING, Any, Iterable

from tick_workflow.config import WorkflowConfig
from tick_workflow.types import (
    DefinitionError,
    HaltOutsideAction,
    InvalidStateName,
    ReentrantTrigger,
    State,
    StateListener,
    TransitionHalted,
    UnrecognizedEvent,
    collect_event_names,
)

if TYPE_CHECKING:
    from tick_workflow.spec import Specification

logger = logging.getLogger(__name__)

# Instance attributes a bound host forwards when it does not define them itself.
_FORWARDED = frozenset({
    "trigger",
    "state",
    "states",
    "current_state",
    "available_events",
    "halt",
    "halt_and_raise",
    "halted",
    "halted_because",
    "in_state",
    "can_trigger",
})


class WorkflowInstance:
    """One running machine: tracks the current state and executes triggers.

    A fresh instance enters the first declared state, running its entry hook
    with no prior state and no event. Passing ``reconstitute_at`` sets the
    state directly instead: no hook runs and no subscriber is notified.

    Hooks and actions receive the bound host (``context``) as their first
    argument. An unbound instance passes itself, so an action can call
    ``host.halt(...)`` either way.

    Transition order for a successful trigger: action, source ``on_exit``,
    spec ``on_transition``, state change, target ``on_entry``, subscribers.

    Actions and hooks may not trigger events on their own instance
    (ReentrantTrigger); only actions may halt (HaltOutsideAction).

    Not thread-safe: callers triggering one instance from several threads
    must serialize those calls themselves.
    """

    def __init__(
        self,
        spec: Specification,
        context: Any = None,
        reconstitute_at: str | None = None,
        subscribers: Iterable[StateListener] = (),
        config: WorkflowConfig | None = None,
    ) -> None:
        self._states: tuple[State, ...] = spec.states
        if not self._states:
            raise DefinitionError("Cannot create an instance of an empty specification")
        self._on_transition = spec.on_transition
        self.meta = spec.meta
        self._config = config or WorkflowConfig()
        self._context = context
        self._subscribers: list[StateListener] = list(subscribers)
        self._halted = False
        self._halted_because: str | None = None
        self._raise_on_halt = False
        self._in_action = False
        # What is running right now; set while hooks or actions execute.
        self._running: str | None = None

        if reconstitute_at is None:
            initial = self._states[0]
            logger.debug("Creating workflow instance at %r", initial.name)
            self._current: State = initial
            self._running = f"the initial entry of {initial.name!r}"
            try:
                self._enter(None, initial, None, (), {},
                            notify=self._config.notify_on_create)
            finally:
                self._running = None
        else:
            logger.debug("Reconstituting workflow instance at %r", reconstitute_at)
            self._current = self._find_state(reconstitute_at)

    # --- Introspection ---

    @property
    def context(self) -> Any:
        """The host hooks and actions run against (the instance if unbound)."""
        return self if self._context is None else self._context

    @property
    def config(self) -> WorkflowConfig:
        return self._config

    @property
    def state(self) -> str:
        return self._current.name

    @property
    def current_state(self) -> State:
        return self._current

    @property
    def halted(self) -> bool:
        return self._halted

    @property
    def halted_because(self) -> str | None:
        return self._halted_because

    def states(self) -> list[str]:
        """Return all state names in declaration order."""
        return [state.name for state in self._states]

    def available_events(self) -> list[str]:
        """Return event names of the current state in declaration order."""
        return self._current.event_names()

    def event_names(self) -> list[str]:
        """Return every event name declared on any state."""
        return collect_event_names(self._states)

    def in_state(self, name: str) -> bool:
        """Predicate for a declared state. Raises InvalidStateName otherwise."""
        self._find_state(name)
        return self._current.name == name

    def can_trigger(self, name: str) -> bool:
        return self._current.event(name) is not None

    # --- Binding ---

    def bind(self, context: Any) -> None:
        """Make ``context`` the receiver passed to hooks and actions."""
        logger.debug("Binding workflow instance to %r", context)
        self._context = context

    def subscribe(self, listener: StateListener) -> None:
        """Call ``listener(state_name)`` after every successful transition."""
        self._subscribers.append(listener)

    def unsubscribe(self, listener: StateListener) -> None:
        try:
            self._subscribers.remove(listener)
        except ValueError:
            pass

    def handles(self, name: str) -> bool:
        """Whether ``resolve(name)`` would succeed in the current state."""
        return (
            name in _FORWARDED
            or self._current.event(name) is not None
            or self._prefixed_state(name) is not None
        )

    def resolve(self, name: str) -> Any:
        """Return what a bound host should expose for an attribute it lacks.

        Forwarded instance attributes are returned as-is, available events
        as a callable triggering them, and ``<prefix><state>`` names as a
        callable predicate. Raises UnrecognizedEvent for anything else.
        """
        if name in _FORWARDED:
            return getattr(self, name)
        if self._current.event(name) is not None:
            return functools.partial(self.trigger, name)
        state_name = self._prefixed_state(name)
        if state_name is not None:
            return functools.partial(self.in_state, state_name)
        raise UnrecognizedEvent(name, self._current.name)

    # --- Halting ---

    def halt(self, reason: str | None = None) -> None:
        """Abort the running trigger quietly: it returns False.

        Only valid inside an event action; hooks cannot abort a transition
        and get HaltOutsideAction instead.
        """
        self._set_halt(reason, raise_on_halt=False)

    def halt_and_raise(self, reason: str | None = None) -> None:
        """Abort the running trigger by raising TransitionHalted."""
        self._set_halt(reason, raise_on_halt=True)

    def _set_halt(self, reason: str | None, raise_on_halt: bool) -> None:
        if not self._in_action:
            raise HaltOutsideAction(reason)
        self._halted = True
        self._halted_because = reason
        self._raise_on_halt = raise_on_halt

    # --- Triggering ---

    def trigger(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Fire event ``name`` from the current state.

        ``"<state>?"`` names answer the state predicate instead. Returns the
        action's return value (True if the event has no action), or False
        when the action called ``halt``. Raises TransitionHalted after
        ``halt_and_raise``, UnrecognizedEvent for unknown names, and
        ReentrantTrigger when called from inside a running action or hook.
        Errors raised by hooks and actions propagate unchanged.
        """
        event = self._current.event(name)
        if event is None:
            state_name = self._suffixed_state(name)
            if state_name is not None:
                return self._current.name == state_name
            raise UnrecognizedEvent(name, self._current.name)

        if self._running is not None:
            raise ReentrantTrigger(name, self._running)

        self._halted = False
        self._halted_because = None
        self._raise_on_halt = False

        source = self._current
        self._running = repr(name)
        try:
            if event.action is not None:
                self._in_action = True
                try:
                    result = event.action(self.context, *args, **kwargs)
                finally:
                    self._in_action = False
            else:
                result = True

            if self._halted:
                logger.info(
                    "Transition %r from %r halted: %s",
                    name, source.name, self._halted_because,
                )
                if self._raise_on_halt:
                    raise TransitionHalted(self._halted_because)
                return False

            self._transition(source, self._find_state(event.to), name, args, kwargs)
        finally:
            self._running = None
        return result

    # --- Persistence ---

    def snapshot(self) -> dict[str, Any]:
        """Serialize the current state name."""
        return {"state": self._current.name}

    def restore(self, data: dict[str, Any]) -> None:
        """Reconstitute from snapshot data. Runs no hooks, notifies nobody."""
        if self._running is not None:
            raise ReentrantTrigger("restore", self._running)
        self._current = self._find_state(data["state"])

    # --- Internals ---

    def _transition(
        self,
        source: State,
        target: State,
        event_name: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        host = self.context
        if source.on_exit is not None:
            source.on_exit(host, target.name, event_name, *args, **kwargs)
        if self._on_transition is not None:
            self._on_transition(
                host, source.name, target.name, event_name, *args, **kwargs
            )
        self._enter(source, target, event_name, args, kwargs, notify=True)

    def _enter(
        self,
        source: State | None,
        target: State,
        event_name: str | None,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        notify: bool,
    ) -> None:
        prior = source.name if source is not None else None
        self._current = target
        logger.debug("Entered %r from %r via %r", target.name, prior, event_name)
        if target.on_entry is not None:
            target.on_entry(self.context, prior, event_name, *args, **kwargs)
        if notify:
            for listener in list(self._subscribers):
                listener(target.name)

    def _lookup_state(self, name: str) -> State | None:
        for state in self._states:
            if state.name == name:
                return state
        return None

    def _find_state(self, name: str) -> State:
        state = self._lookup_state(name)
        if state is None:
            raise InvalidStateName(name)
        return state

    def _suffixed_state(self, name: str) -> str | None:
        suffix = self._config.predicate_suffix
        if name.endswith(suffix) and self._lookup_state(name[: -len(suffix)]) is not None:
            return name[: -len(suffix)]
        return None

    def _prefixed_state(self, name: str) -> str | None:
        prefix = self._config.predicate_prefix
        if name.startswith(prefix) and self._lookup_state(name[len(prefix):]) is not None:
            return name[len(prefix):]
        return None
