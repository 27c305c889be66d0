"""Tests for the validation engine: lazy reveal, async races, continuations."""

import asyncio
import logging

import pytest

from formstate.errors import EngineClosedError, MissingValidatorsError, UnknownFieldError
from formstate.validation import Pending, ValidationEngine, reveal


# =============================================================================
# Validator helpers
# =============================================================================


def validator(expected):
    return [lambda v, field_id, reveal: "invalid" if v != expected else None]


def async_validator(expected, delay=0.01):
    async def check(v, field_id, reveal):
        await asyncio.sleep(delay)
        return "invalid" if v != expected else None

    return [check]


def async_eager_validator(expected, delay=0.01):
    async def check(v, field_id, reveal):
        await asyncio.sleep(delay)
        return reveal("invalid") if v != expected else None

    return [check]


def multiple_validation(expected):
    async def check(v, field_id, reveal):
        await asyncio.sleep(0.01)
        return reveal("async") if v != expected else None

    return [check, lambda v, field_id, reveal: "sync" if v != expected else None]


class FutureValidator:
    """Async validator whose results are resolved by the test."""

    def __init__(self):
        self.futures = {}

    def __call__(self, value, field_id, reveal):
        future = asyncio.get_running_loop().create_future()
        self.futures[value] = future
        return future


def make_engine(chain, value="initial"):
    engine = ValidationEngine({"value": chain})
    engine.update({"value": value})
    return engine


# =============================================================================
# Synchronous validation
# =============================================================================


class TestSyncValidation:
    def test_initializes_valid(self):
        engine = make_engine(validator("initial"))
        snapshot = engine.snapshot()
        assert snapshot.invalid is False
        assert snapshot.waiting["value"] is False
        assert snapshot.errors.get("value") is None

    def test_invalid_initialization_is_invalid(self):
        engine = make_engine(validator("initial"), value="invalid")
        assert engine.snapshot().invalid is True

    def test_invalid_tracks_validation_state(self):
        engine = make_engine(validator("initial"))
        engine.update({"value": "update"})
        assert engine.snapshot().invalid is True

    def test_errors_are_revealed_lazily(self):
        engine = make_engine(validator("initial"))
        engine.update({"value": "update"})
        assert engine.snapshot().errors.get("value") is None
        engine.validate("value")
        assert engine.snapshot().errors["value"] == "invalid"

    def test_validate_without_field_reveals_all(self):
        engine = make_engine(validator("initial"))
        engine.update({"value": "update"})
        engine.validate()
        assert engine.snapshot().errors["value"] == "invalid"

    def test_errors_omit_keys_when_valid(self):
        engine = make_engine(validator("initial"))
        engine.update({"value": "update"})
        engine.validate("value")
        engine.update({"value": "initial"})
        engine.validate("value")
        assert "value" not in engine.snapshot().errors

    def test_revealed_error_persists_until_next_reveal(self):
        engine = make_engine(validator("initial"))
        engine.update({"value": "update"})
        engine.validate("value")
        engine.update({"value": "initial"})
        assert engine.snapshot().errors["value"] == "invalid"
        assert engine.snapshot().invalid is False

    def test_chain_runs_in_declaration_order(self):
        engine = ValidationEngine(
            {"value": [lambda v, f, r: None, lambda v, f, r: "first", lambda v, f, r: "second"]}
        )
        engine.update({"value": "x"})
        assert engine.result("value") == "first"

    def test_validators_receive_field_id(self):
        seen = []
        engine = ValidationEngine({"email": [lambda v, f, r: seen.append(f)]})
        engine.update({"email": "a@example.com"})
        assert seen == ["email"]


# =============================================================================
# Referential stability
# =============================================================================


class TestReferences:
    def test_repeated_validate_keeps_errors_reference(self):
        engine = make_engine(validator("initial"))
        engine.update({"value": "update"})
        engine.validate("value")
        errors = engine.snapshot().errors
        engine.validate("value")
        assert engine.snapshot().errors is errors

    def test_unchanged_error_keeps_errors_reference(self):
        engine = make_engine(validator("initial"))
        engine.update({"value": "one"})
        engine.validate("value")
        errors = engine.snapshot().errors
        engine.update({"value": "two"})
        engine.validate("value")
        assert engine.snapshot().errors is errors

    def test_changed_error_replaces_errors_reference(self):
        engine = make_engine(validator("initial"))
        engine.update({"value": "update"})
        engine.validate("value")
        errors = engine.snapshot().errors
        engine.update({"value": "initial"})
        engine.validate("value")
        assert engine.snapshot().errors is not errors

    def test_snapshot_is_stable_without_changes(self):
        engine = make_engine(validator("initial"))
        snapshot = engine.snapshot()
        engine.update({"value": "initial"})
        engine.validate("value")
        assert engine.snapshot() is snapshot

    def test_reveal_keeps_waiting_reference(self):
        engine = make_engine(validator("initial"), value="bad")
        waiting = engine.snapshot().waiting
        engine.validate("value")
        assert engine.snapshot().waiting is waiting


# =============================================================================
# Asynchronous validation
# =============================================================================


class TestAsyncValidation:
    @pytest.mark.asyncio
    async def test_registers_waiting_values(self):
        engine = make_engine(async_validator("initial"))
        assert engine.snapshot().waiting["value"] is True
        await engine.join()
        assert engine.snapshot().waiting["value"] is False
        engine.update({"value": "update"})
        assert engine.snapshot().waiting["value"] is True
        await engine.join()

    @pytest.mark.asyncio
    async def test_invalid_until_resolved(self):
        engine = make_engine(async_validator("initial"))
        assert engine.snapshot().invalid is True
        assert engine.result("value") == Pending(1)
        await engine.join()
        assert engine.snapshot().invalid is False

    @pytest.mark.asyncio
    async def test_error_is_revealed_lazily(self):
        engine = make_engine(async_validator("initial"))
        await engine.join()
        engine.update({"value": "update"})
        assert engine.snapshot().errors.get("value") is None
        await engine.join()
        assert engine.snapshot().errors.get("value") is None
        engine.validate("value")
        assert engine.snapshot().errors["value"] == "invalid"

    @pytest.mark.asyncio
    async def test_eager_reveal_surfaces_error(self):
        engine = make_engine(async_eager_validator("initial"))
        await engine.join()
        engine.update({"value": "update"})
        await engine.join()
        assert engine.snapshot().errors["value"] == "invalid"

    @pytest.mark.asyncio
    async def test_sync_error_takes_precedence(self):
        engine = make_engine(multiple_validation("initial"), value="invalid")
        assert engine.snapshot().waiting["value"] is False
        await engine.join()
        engine.validate("value")
        assert engine.snapshot().errors["value"] == "sync"

    @pytest.mark.asyncio
    async def test_shadowed_awaitable_is_discarded(self):
        futures = FutureValidator()
        engine = ValidationEngine({"value": [futures, lambda v, f, r: "sync"]})
        engine.update({"value": "x"})
        assert futures.futures["x"].cancelled()
        assert engine.result("value") == "sync"

    @pytest.mark.asyncio
    async def test_repeated_validation_cancels_pending(self):
        engine = make_engine(async_eager_validator("initial"))
        await engine.join()
        engine.update({"value": "update"})
        engine.update({"value": "initial"})
        await engine.join()
        assert engine.snapshot().errors.get("value") is None
        assert engine.result("value") is None

    @pytest.mark.asyncio
    async def test_stale_resolution_never_writes(self):
        futures = FutureValidator()
        engine = make_engine([futures], value="a")
        engine.update({"value": "b"})

        futures.futures["a"].set_result(reveal("stale"))
        futures.futures["b"].set_result(None)
        await engine.join()

        assert engine.result("value") is None
        assert "value" not in engine.snapshot().errors

    @pytest.mark.asyncio
    async def test_revert_to_sync_result_drops_race(self):
        futures = FutureValidator()

        def chain(v, f, r):
            return futures(v, f, r) if v == "remote" else None

        engine = make_engine([chain], value="remote")
        engine.update({"value": "local"})
        futures.futures["remote"].set_result(reveal("stale"))
        await engine.join()
        await asyncio.sleep(0)

        assert engine.result("value") is None
        assert engine.snapshot().errors == {}

    @pytest.mark.asyncio
    async def test_first_settled_awaitable_wins(self):
        first, second = FutureValidator(), FutureValidator()
        engine = make_engine([first, second])
        second.futures["initial"].set_result("second")
        await engine.join()

        assert engine.result("value") == "second"
        assert first.futures["initial"].cancelled()

    @pytest.mark.asyncio
    async def test_raising_awaitable_counts_as_valid(self, caplog):
        async def broken(v, f, r):
            raise ConnectionError("unreachable")

        with caplog.at_level(logging.WARNING):
            engine = make_engine([broken])
            await engine.join()

        assert engine.result("value") is None
        assert "unreachable" in caplog.text

    @pytest.mark.asyncio
    async def test_fields_settle_independently(self):
        name, email = FutureValidator(), FutureValidator()
        engine = ValidationEngine({"name": [name], "email": [email]})
        engine.update({"name": "ada", "email": "ada@"})

        email.futures["ada@"].set_result("Invalid email")
        await asyncio.sleep(0.01)
        assert engine.result("email") == "Invalid email"
        assert engine.snapshot().waiting["name"] is True

        name.futures["ada"].set_result(None)
        await engine.join()
        assert engine.snapshot().waiting == {"name": False, "email": False}

    def test_awaitable_outside_event_loop_raises(self):
        async def check(v, f, r):
            return None

        engine = ValidationEngine({"value": [check]})
        with pytest.raises(RuntimeError):
            engine.update({"value": "x"})


# =============================================================================
# validate_all and the on_valid continuation
# =============================================================================


class TestValidateAll:
    def test_reveals_every_sync_error(self):
        engine = ValidationEngine(
            {"name": validator("Ada"), "email": validator("ada@example.com")}
        )
        engine.update({"name": "", "email": ""})
        engine.validate_all()
        assert dict(engine.snapshot().errors) == {"name": "invalid", "email": "invalid"}

    def test_clears_errors_of_valid_fields(self):
        engine = make_engine(validator("initial"), value="bad")
        engine.validate_all()
        engine.update({"value": "initial"})
        engine.validate_all()
        assert engine.snapshot().errors == {}

    def test_runs_continuation_when_valid(self):
        calls = []
        engine = make_engine(validator("initial"))
        engine.validate_all(lambda: calls.append("submit"))
        assert calls == ["submit"]

    def test_continuation_waits_for_valid_values(self):
        calls = []
        engine = make_engine(validator("initial"), value="bad")
        engine.validate_all(lambda: calls.append("submit"))
        assert calls == []

        engine.update({"value": "initial"})
        assert calls == ["submit"]

        engine.update({"value": "bad"})
        engine.update({"value": "initial"})
        assert calls == ["submit"]

    @pytest.mark.asyncio
    async def test_continuation_waits_for_pending_checks(self):
        calls = []
        engine = make_engine(async_validator("initial"))
        engine.validate_all(lambda: calls.append("submit"))
        assert calls == []
        await engine.join()
        assert calls == ["submit"]

    @pytest.mark.asyncio
    async def test_failing_continuation_after_settle_is_logged(self, caplog):
        def submit():
            raise RuntimeError("submit failed")

        engine = make_engine(async_validator("initial"))
        engine.validate_all(submit)
        with caplog.at_level(logging.ERROR):
            await engine.join()

        assert "submit failed" in caplog.text
        assert engine.snapshot().invalid is False
        assert engine.state.on_valid is None

    def test_failing_continuation_raises_to_caller(self):
        def submit():
            raise RuntimeError("submit failed")

        engine = make_engine(validator("initial"))
        with pytest.raises(RuntimeError, match="submit failed"):
            engine.validate_all(submit)

    @pytest.mark.asyncio
    async def test_pending_check_is_not_revealed(self):
        engine = make_engine(async_validator("initial"), value="bad")
        engine.validate_all()
        assert engine.snapshot().errors == {}
        await engine.join()

    def test_later_continuation_replaces_earlier(self):
        calls = []
        engine = make_engine(validator("initial"), value="bad")
        engine.validate_all(lambda: calls.append("first"))
        engine.validate_all(lambda: calls.append("second"))
        engine.update({"value": "initial"})
        assert calls == ["second"]


# =============================================================================
# Usage errors and teardown
# =============================================================================


class TestUsage:
    def test_missing_validators_raise(self):
        engine = ValidationEngine({"value": validator("initial")})
        with pytest.raises(MissingValidatorsError) as exc_info:
            engine.update({"value": "initial", "other": 1})
        assert exc_info.value.field_id == "other"
        assert engine.state.validation == {}

    def test_equal_bag_with_nan_is_ignored(self):
        calls = []
        engine = ValidationEngine({"value": [lambda v, f, r: calls.append(v)]})
        engine.update({"value": float("nan")})
        engine.update({"value": float("nan")})
        assert len(calls) == 1

    def test_bool_replacing_number_revalidates(self):
        calls = []
        engine = ValidationEngine({"value": [lambda v, f, r: calls.append(v)]})
        engine.update({"value": 1})
        engine.update({"value": True})
        assert calls == [1, True]
        assert calls[1] is True

    def test_empty_chain_is_valid(self):
        engine = ValidationEngine({"notes": []})
        engine.update({"notes": ""})
        assert engine.result("notes") is None
        assert engine.snapshot().invalid is False

    def test_validate_unknown_field_raises(self):
        engine = make_engine(validator("initial"))
        with pytest.raises(UnknownFieldError):
            engine.validate("missing")

    def test_validator_exception_propagates(self):
        def broken(v, f, r):
            raise ValueError("bad validator")

        engine = ValidationEngine({"value": [broken]})
        with pytest.raises(ValueError, match="bad validator"):
            engine.update({"value": "x"})

    @pytest.mark.asyncio
    async def test_validator_exception_releases_awaitables(self):
        futures = FutureValidator()

        def broken(v, f, r):
            raise ValueError("bad validator")

        engine = ValidationEngine({"value": [futures, broken]})
        with pytest.raises(ValueError):
            engine.update({"value": "x"})
        assert futures.futures["x"].cancelled()

    def test_unsupported_outcome_raises(self):
        engine = ValidationEngine({"value": [lambda v, f, r: 42]})
        with pytest.raises(TypeError):
            engine.update({"value": "x"})

    def test_closed_engine_rejects_operations(self):
        engine = make_engine(validator("initial"))
        engine.close()
        assert engine.closed
        with pytest.raises(EngineClosedError):
            engine.update({"value": "other"})
        with pytest.raises(EngineClosedError):
            engine.validate("value")
        with pytest.raises(EngineClosedError):
            engine.validate_all()

    @pytest.mark.asyncio
    async def test_close_cancels_pending_races(self):
        futures = FutureValidator()
        engine = make_engine([futures])
        engine.close()
        futures.futures["initial"].set_result(reveal("late"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert engine.result("value") == Pending(1)
        assert engine.snapshot().errors == {}

    def test_close_is_idempotent(self):
        engine = make_engine(validator("initial"))
        engine.close()
        engine.close()
