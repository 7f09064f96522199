"""tick-workflow - Declarative state machines bound to host objects."""
from __future__ import annotations

from tick_workflow.binder import WorkflowHost, attach
from tick_workflow.config import WorkflowConfig
from tick_workflow.instance import WorkflowInstance
from tick_workflow.registry import WorkflowRegistry, lineage
from tick_workflow.spec import SpecBuilder, Specification, StateBuilder
from tick_workflow.types import (
    DefinitionError,
    Event,
    HaltOutsideAction,
    InvalidStateName,
    InvalidTransitionTarget,
    ReentrantTrigger,
    SpecificationNotFound,
    State,
    TransitionHalted,
    UnrecognizedEvent,
    WorkflowError,
)

__all__ = [
    "WorkflowRegistry",
    "WorkflowInstance",
    "WorkflowConfig",
    "WorkflowHost",
    "Specification",
    "SpecBuilder",
    "StateBuilder",
    "State",
    "Event",
    "attach",
    "lineage",
    "WorkflowError",
    "SpecificationNotFound",
    "DefinitionError",
    "InvalidTransitionTarget",
    "InvalidStateName",
    "UnrecognizedEvent",
    "TransitionHalted",
    "ReentrantTrigger",
    "HaltOutsideAction",
]
