"""Tests for the pure validation state machine."""

import pytest

from formstate.validation.reducer import (
    CancelRace,
    Discard,
    NotifyValid,
    Settle,
    StartRace,
    Update,
    Validate,
    ValidateAll,
    ValidationState,
    reduce,
)
from formstate.validation.types import Pending, Reveal


class Deferred:
    """A bare awaitable; the reducer never awaits it."""

    def __await__(self):
        yield
        return None


def effect_types(effects):
    return [type(e) for e in effects]


@pytest.fixture
def pending_state():
    """Field 'name' has a race in flight (generation 1)."""
    state, _ = reduce(ValidationState(), Update({"name": [Deferred()]}))
    return state


# =============================================================================
# Update
# =============================================================================


class TestUpdate:
    def test_sync_error_is_stored_not_revealed(self):
        state, effects = reduce(ValidationState(), Update({"name": ["Required"]}))
        assert state.validation["name"] == "Required"
        assert dict(state.errors) == {}
        assert effects == []

    def test_first_error_in_chain_wins(self):
        state, _ = reduce(ValidationState(), Update({"name": [None, "first", "second"]}))
        assert state.validation["name"] == "first"

    def test_empty_string_means_valid(self):
        state, _ = reduce(ValidationState(), Update({"name": ["", None]}))
        assert state.validation["name"] is None
        assert state.valid

    def test_sync_reveal_is_stored_as_message(self):
        state, _ = reduce(ValidationState(), Update({"name": [Reveal("Taken")]}))
        assert state.validation["name"] == "Taken"
        assert dict(state.errors) == {}

    def test_awaitable_starts_race(self):
        awaitable = Deferred()
        state, effects = reduce(ValidationState(), Update({"name": [awaitable]}))
        assert state.validation["name"] == Pending(1)
        assert effects == [StartRace("name", 1, (awaitable,))]
        assert not state.valid

    def test_sync_error_shadows_awaitables(self):
        awaitable = Deferred()
        state, effects = reduce(ValidationState(), Update({"name": [awaitable, "sync"]}))
        assert state.validation["name"] == "sync"
        assert effects == [Discard("name", (awaitable,))]
        assert state.generations.get("name") is None

    def test_new_awaitable_supersedes_pending_race(self, pending_state):
        state, effects = reduce(pending_state, Update({"name": [Deferred()]}))
        assert state.validation["name"] == Pending(2)
        assert effect_types(effects) == [CancelRace, StartRace]
        assert effects[1].generation == 2

    def test_sync_result_cancels_pending_race(self, pending_state):
        state, effects = reduce(pending_state, Update({"name": [None]}))
        assert state.validation["name"] is None
        assert effects == [CancelRace("name")]
        assert state.generations["name"] == 2

    def test_unchanged_results_keep_state(self):
        state, _ = reduce(ValidationState(), Update({"name": ["Required"]}))
        again, effects = reduce(state, Update({"name": ["Required"]}))
        assert again is state
        assert effects == []

    def test_dropped_field_cancels_race(self, pending_state):
        state, effects = reduce(pending_state, Update({}))
        assert "name" not in state.validation
        assert effects == [CancelRace("name")]

    def test_unsupported_outcome_raises(self):
        with pytest.raises(TypeError, match="returned int"):
            reduce(ValidationState(), Update({"name": [42]}))

    def test_state_is_read_only(self):
        state, _ = reduce(ValidationState(), Update({"name": ["Required"]}))
        with pytest.raises(TypeError):
            state.validation["name"] = None


# =============================================================================
# Settle
# =============================================================================


class TestSettle:
    def test_settle_stores_message_without_revealing(self, pending_state):
        state, effects = reduce(pending_state, Settle("name", 1, "Taken"))
        assert state.validation["name"] == "Taken"
        assert dict(state.errors) == {}
        assert effects == []

    def test_settle_valid(self, pending_state):
        state, _ = reduce(pending_state, Settle("name", 1, None))
        assert state.validation["name"] is None
        assert state.valid

    def test_eager_settle_reveals(self, pending_state):
        state, _ = reduce(pending_state, Settle("name", 1, Reveal("Taken")))
        assert state.validation["name"] == "Taken"
        assert state.errors["name"] == "Taken"

    def test_stale_generation_is_ignored(self, pending_state):
        superseded, _ = reduce(pending_state, Update({"name": [Deferred()]}))
        state, effects = reduce(superseded, Settle("name", 1, Reveal("Stale")))
        assert state is superseded
        assert effects == []

    def test_settle_after_revert_is_ignored(self, pending_state):
        reverted, _ = reduce(pending_state, Update({"name": [None]}))
        state, _ = reduce(reverted, Settle("name", 1, Reveal("Stale")))
        assert state is reverted
        assert "name" not in state.errors


# =============================================================================
# Validate / ValidateAll
# =============================================================================


class TestValidate:
    def test_validate_reveals_sync_error(self):
        state, _ = reduce(ValidationState(), Update({"name": ["Required"]}))
        state, _ = reduce(state, Validate("name"))
        assert state.errors["name"] == "Required"

    def test_validate_clears_error_once_valid(self):
        state, _ = reduce(ValidationState(), Update({"name": ["Required"]}))
        state, _ = reduce(state, Validate("name"))
        state, _ = reduce(state, Update({"name": [None]}))
        assert state.errors["name"] == "Required"
        state, _ = reduce(state, Validate("name"))
        assert "name" not in state.errors

    def test_validate_pending_field_reveals_nothing(self, pending_state):
        state, _ = reduce(pending_state, Validate("name"))
        assert state is pending_state

    def test_repeated_validate_keeps_state(self):
        state, _ = reduce(ValidationState(), Update({"name": ["Required"]}))
        state, _ = reduce(state, Validate("name"))
        again, _ = reduce(state, Validate("name"))
        assert again is state


class TestValidateAll:
    def test_reveals_every_sync_error(self):
        state, _ = reduce(
            ValidationState(),
            Update({"a": ["A is required"], "b": [None], "c": ["C is required"]}),
        )
        state, effects = reduce(state, ValidateAll())
        assert dict(state.errors) == {"a": "A is required", "c": "C is required"}
        assert effects == []

    def test_valid_form_notifies_immediately(self):
        calls = []
        state, _ = reduce(ValidationState(), Update({"a": [None]}))
        state, effects = reduce(state, ValidateAll(lambda: calls.append(1)))
        assert effect_types(effects) == [NotifyValid]
        assert state.on_valid is None

    def test_continuation_waits_for_pending_race(self, pending_state):
        def on_valid():
            pass

        state, effects = reduce(pending_state, ValidateAll(on_valid))
        assert effects == []
        assert state.on_valid is on_valid

        state, effects = reduce(state, Settle("name", 1, None))
        assert effects == [NotifyValid(on_valid)]
        assert state.on_valid is None

    def test_continuation_survives_invalid_settle(self, pending_state):
        def on_valid():
            pass

        state, _ = reduce(pending_state, ValidateAll(on_valid))
        state, effects = reduce(state, Settle("name", 1, "Taken"))
        assert effects == []
        assert state.on_valid is on_valid

    def test_later_call_replaces_continuation(self, pending_state):
        def first():
            pass

        def second():
            pass

        state, _ = reduce(pending_state, ValidateAll(first))
        state, _ = reduce(state, ValidateAll(second))
        assert state.on_valid is second


def test_unknown_action_raises():
    with pytest.raises(TypeError):
        reduce(ValidationState(), object())
