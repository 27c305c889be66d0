"""Validator registry for formstate.

Provides registration and lookup for:
- Canned validators (shipped with the package, parameterised factories)
- Application validators (plain validator callables, sync or async)

Form definitions reference validators by name; the registry turns a
ValidatorDefinition into a callable.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from formstate.validation.types import (
    FieldId,
    Outcome,
    Resolved,
    Reveal,
    RevealHook,
    Validator,
    ValidatorDefinition,
)

ValidatorFactory = Callable[[ValidatorDefinition], Validator]


class ValidatorRegistry:
    """Registry for validator types.

    Validators must be explicitly registered before a form definition can
    reference them.

    Example:
        # Register an application validator
        ValidatorRegistry.register("usernameAvailable", username_available)

        # Later, resolve from a definition
        check = ValidatorRegistry.create(ValidatorDefinition(type="usernameAvailable"))
    """

    _validators: dict[str, Validator] = {}
    _factories: dict[str, ValidatorFactory] = {}

    @classmethod
    def register(cls, name: str, validator: Validator) -> None:
        """Register a ready-made validator callable by name.

        Idempotent - re-registering the same name is a no-op.
        """
        if name in cls._validators:
            return
        cls._validators[name] = validator

    @classmethod
    def register_factory(cls, name: str, factory: ValidatorFactory) -> None:
        """Register a factory that builds validators from definitions.

        Idempotent - re-registering the same name is a no-op.

        Use this for validators configured through ``params``.
        """
        if name in cls._factories:
            return
        cls._factories[name] = factory

    @classmethod
    def get(cls, name: str) -> Validator:
        """Get a registered validator callable by name.

        Raises:
            ValueError: If no validator callable is registered under the name
        """
        if name not in cls._validators:
            raise ValueError(
                f"Validator '{name}' is not registered. "
                "Application validators must be registered before use."
            )
        return cls._validators[name]

    @classmethod
    def create(cls, definition: ValidatorDefinition) -> Validator:
        """Create a validator from a definition.

        Factories take precedence over plain callables. A definition message
        replaces the message of a plain callable's failures.

        Raises:
            ValueError: If the type is not registered
        """
        validator_type = definition.type

        if validator_type in cls._factories:
            return cls._factories[validator_type](definition)

        if validator_type in cls._validators:
            validator = cls._validators[validator_type]
            if definition.message:
                return with_message(validator, definition.message)
            return validator

        raise ValueError(
            f"Validator type '{validator_type}' is not registered. "
            "Available types: " + ", ".join(cls.list_registered())
        )

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._validators or name in cls._factories

    @classmethod
    def list_registered(cls) -> list[str]:
        return sorted(set(cls._validators) | set(cls._factories))

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._validators.clear()
        cls._factories.clear()


def validator(name: str) -> Callable[[Validator], Validator]:
    """Decorator to register an application validator.

    Usage:
        @validator("usernameAvailable")
        async def username_available(value, field_id, reveal):
            taken = await users.exists(username=value)
            return reveal("Username is taken") if taken else None
    """

    def decorator(fn: Validator) -> Validator:
        ValidatorRegistry.register(name, fn)
        return fn

    return decorator


def with_message(inner: Validator, message: str) -> Validator:
    """Wrap a validator so any failure reports ``message`` instead.

    Eagerness of an async failure is preserved.
    """

    async def _resolve(pending: Awaitable[Resolved]) -> Resolved:
        resolved = await pending
        if not resolved:
            return None
        if isinstance(resolved, Reveal):
            return Reveal(message, eager=resolved.eager)
        return message

    def wrapped(value: Any, field_id: FieldId, reveal: RevealHook) -> Outcome:
        outcome = inner(value, field_id, reveal)
        if inspect.isawaitable(outcome):
            return _resolve(outcome)
        return message if outcome else None

    wrapped.__name__ = getattr(inner, "__name__", "validator")
    return wrapped
