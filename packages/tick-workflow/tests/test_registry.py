"""Tests for WorkflowRegistry."""
import pytest
from tick_workflow import (
    DefinitionError,
    InvalidStateName,
    InvalidTransitionTarget,
    SpecificationNotFound,
    WorkflowConfig,
    WorkflowInstance,
    WorkflowRegistry,
    lineage,
)


def _two_states(wf):
    wf.state("open").event("close", to="closed")
    wf.state("closed").event("open", to="open")


class Base:
    pass


class Child(Base):
    pass


class GrandChild(Child):
    pass


class TestRegistration:
    """Test cases for register/lookup/has/keys/remove/reset."""

    def test_register_and_lookup(self):
        """register() returns the spec that lookup() finds."""
        registry = WorkflowRegistry()
        spec = registry.register("door", _two_states)
        assert registry.lookup("door") is spec
        assert spec.state_names() == ["open", "closed"]

    def test_register_meta(self):
        """Meta given at registration lands on the spec."""
        registry = WorkflowRegistry()
        spec = registry.register("door", _two_states, meta={"owner": "ops"})
        assert spec.meta == {"owner": "ops"}

    def test_register_twice_merges(self):
        """A second registration re-opens the existing specification."""
        # Arrange
        registry = WorkflowRegistry()
        first = registry.register("door", _two_states)

        # Act
        second = registry.register("door", lambda wf: wf.state("locked"))

        # Assert
        assert second is first
        assert first.state_names() == ["open", "closed", "locked"]

    def test_register_twice_merges_meta(self):
        """Meta from a second registration merges into the first."""
        registry = WorkflowRegistry()
        registry.register("door", _two_states, meta={"a": 1})
        spec = registry.register("door", lambda wf: None, meta={"b": 2})
        assert spec.meta == {"a": 1, "b": 2}

    def test_failed_definition_is_not_registered(self):
        """An invalid definition leaves the key unregistered."""
        registry = WorkflowRegistry()

        def broken(wf):
            wf.state("a").event("go", to="missing")

        with pytest.raises(InvalidTransitionTarget):
            registry.register("broken", broken)
        assert registry.has("broken") is False

    def test_class_keys(self):
        """Classes work as keys without implicit inheritance."""
        registry = WorkflowRegistry()
        registry.register(Base, _two_states)
        assert registry.has(Base) is True
        assert registry.has(Child) is False

    def test_keys(self):
        """keys() lists every registered key."""
        registry = WorkflowRegistry()
        registry.register("a", _two_states)
        registry.register(Base, _two_states)
        assert set(registry.keys()) == {"a", Base}

    def test_remove(self):
        """remove() drops a key and raises for unknown keys."""
        registry = WorkflowRegistry()
        registry.register("door", _two_states)
        registry.remove("door")
        assert registry.has("door") is False
        with pytest.raises(SpecificationNotFound):
            registry.remove("door")

    def test_reset(self):
        """reset() clears every registration."""
        registry = WorkflowRegistry()
        registry.register("a", _two_states)
        registry.register("b", _two_states)
        registry.reset()
        assert registry.keys() == []

    def test_nested_registration(self):
        """A definition may register another key while the lock is held."""
        registry = WorkflowRegistry()

        def outer(wf):
            registry.register("inner", _two_states)
            wf.state("only")

        registry.register("outer", outer)
        assert registry.has("inner") is True
        assert registry.has("outer") is True

    def test_registering_own_key_from_definition_rejected(self):
        """A definition cannot register the key it is defining."""
        # Arrange
        registry = WorkflowRegistry()

        def outer(wf):
            wf.state("a")
            registry.register("door", lambda inner: inner.state("b"))

        # Act
        with pytest.raises(DefinitionError, match="already being defined"):
            registry.register("door", outer)

        # Assert
        assert registry.has("door") is False

    def test_reopening_own_key_from_definition_rejected(self):
        """The same holds when re-opening an existing key; it keeps its states."""
        registry = WorkflowRegistry()
        spec = registry.register("door", _two_states)

        def extend(wf):
            wf.state("locked")
            registry.register("door", lambda inner: inner.state("ajar"))

        with pytest.raises(DefinitionError):
            registry.register("door", extend)
        assert spec.state_names() == ["open", "closed"]

    def test_key_usable_after_rejected_self_registration(self):
        """A rejected definition does not leave its key locked."""
        registry = WorkflowRegistry()

        def outer(wf):
            registry.register("door", _two_states)

        with pytest.raises(DefinitionError):
            registry.register("door", outer)
        spec = registry.register("door", _two_states)
        assert spec.state_names() == ["open", "closed"]


class TestLookup:
    """Lookup falls back through an explicit parent sequence."""

    def test_missing_key(self):
        """An unknown key raises SpecificationNotFound naming it."""
        registry = WorkflowRegistry()
        with pytest.raises(SpecificationNotFound) as info:
            registry.lookup("nothing")
        assert info.value.key == "nothing"

    def test_fallback_order(self):
        """The first registered fallback wins."""
        registry = WorkflowRegistry()
        registry.register("parent", _two_states)
        registry.register("grandparent", lambda wf: wf.state("x"))
        spec = registry.lookup("child", ["parent", "grandparent"])
        assert spec is registry.lookup("parent")

    def test_own_key_beats_fallback(self):
        """A key's own spec takes precedence over fallbacks."""
        registry = WorkflowRegistry()
        registry.register("child", lambda wf: wf.state("x"))
        registry.register("parent", _two_states)
        assert registry.lookup("child", ["parent"]).state_names() == ["x"]

    def test_fallbacks_exhausted(self):
        """Lookup fails once every fallback misses."""
        registry = WorkflowRegistry()
        with pytest.raises(SpecificationNotFound):
            registry.lookup("child", ["parent", "grandparent"])

    def test_lineage(self):
        """lineage() is the MRO without the class itself and object."""
        assert lineage(GrandChild) == (Child, Base)
        assert lineage(Base) == ()

    def test_subclass_inherits_through_lineage(self):
        """A subclass finds a base class spec through lineage()."""
        registry = WorkflowRegistry()
        spec = registry.register(Base, _two_states)
        assert registry.lookup(GrandChild, lineage(GrandChild)) is spec

    def test_nearest_ancestor_wins(self):
        """The closest registered ancestor is used."""
        registry = WorkflowRegistry()
        registry.register(Base, _two_states)
        child_spec = registry.register(Child, lambda wf: wf.state("child"))
        assert registry.lookup(GrandChild, lineage(GrandChild)) is child_spec


class TestInstances:
    """Test cases for new() and reconstitute()."""

    def test_new(self):
        """new() creates an instance at the initial state."""
        registry = WorkflowRegistry()
        registry.register("door", _two_states)
        instance = registry.new("door")
        assert isinstance(instance, WorkflowInstance)
        assert instance.state == "open"

    def test_new_with_fallbacks(self):
        """new() accepts fallback keys."""
        registry = WorkflowRegistry()
        registry.register(Base, _two_states)
        instance = registry.new(Child, fallbacks=lineage(Child))
        assert instance.state == "open"

    def test_new_passes_config(self):
        """Instances share the registry's config."""
        config = WorkflowConfig(predicate_suffix="_p")
        registry = WorkflowRegistry(config)
        registry.register("door", _two_states)
        instance = registry.new("door")
        assert instance.config is config
        assert instance.trigger("open_p") is True

    def test_reconstitute(self):
        """reconstitute() starts at the given state."""
        registry = WorkflowRegistry()
        registry.register("door", _two_states)
        instance = registry.reconstitute("door", "closed")
        assert instance.state == "closed"

    def test_reconstitute_unknown_state(self):
        """Reconstituting at an undeclared state fails."""
        registry = WorkflowRegistry()
        registry.register("door", _two_states)
        with pytest.raises(InvalidStateName):
            registry.reconstitute("door", "ajar")

    def test_instances_share_states(self):
        """Instances share state objects but track their own current state."""
        registry = WorkflowRegistry()
        registry.register("door", _two_states)
        a = registry.new("door")
        b = registry.new("door")
        assert a.current_state is b.current_state
        a.trigger("close")
        assert a.state == "closed"
        assert b.state == "open"
