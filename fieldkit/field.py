"""Field blueprints and instances.

A blueprint is a ``Field`` subclass produced by ``define_field``; it fixes
the field's name, default, and validator. Each instance of the blueprint
owns its own value, baseline snapshot, and validation outcome.

Dirty state is derived on every read by deep-comparing the value with the
baseline, so in-place mutation (``field.value.append(1)``) is observed.
Events are edge-triggered: ``modifiedChange`` is emitted by ``sync()``,
``commit()`` and ``reset()`` only when the dirty flag differs from the last
one reported, and ``validChange`` only when a validation outcome differs
from the previous one.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from dataclasses import dataclass, replace
from typing import (
    Any,
    Awaitable,
    Callable,
    List,
    Mapping,
    Optional,
    Type,
    TypeVar,
    Union,
)

from fieldkit.errors import DeclarationError, ErrorDescriptor, ValidationError
from fieldkit.events import MODIFIED_CHANGE, VALID_CHANGE, EventEmitter
from fieldkit.settings import get_settings
from fieldkit.values import clone_value, is_empty, values_equal

logger = logging.getLogger(__name__)

__all__ = [
    "MISSING",
    "CONFIG_KEYS",
    "Validation",
    "Validator",
    "FieldConfig",
    "ValidateOptions",
    "Field",
    "define_field",
    "is_blueprint",
    "is_config_mapping",
]

T = TypeVar("T")


class _Missing:
    """Marker for config entries that were not supplied."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

CONFIG_KEYS = frozenset({"value", "default", "validator"})

# None = never validated, True = passed, list = failed
Validation = Union[None, bool, List[ErrorDescriptor]]
Validator = Callable[[Any], Union[Any, Awaitable[Any]]]


def is_blueprint(candidate: Any) -> bool:
    """Check if candidate is a field or model blueprint.

    Uses the ``__fieldkit_blueprint__`` marker rather than ``issubclass`` so
    independently constructed blueprints are recognised too.
    """
    return isinstance(candidate, type) and getattr(candidate, "__fieldkit_blueprint__", False) is True


def is_config_mapping(candidate: Any) -> bool:
    """Check if a declaration entry is a field configuration mapping.

    An empty mapping counts as a configuration with nothing set.
    """
    if isinstance(candidate, FieldConfig):
        return True
    if not isinstance(candidate, Mapping):
        return False
    return all(isinstance(key, str) and key in CONFIG_KEYS for key in candidate)


@dataclass(frozen=True)
class FieldConfig:
    """Declared configuration of a field blueprint.

    Attributes:
        value: Explicit initial value (wins over ``default``)
        default: Fixed default, or a zero-argument factory called per instance
        validator: Callable ``(value) -> bool`` (sync or async)
    """

    value: Any = MISSING
    default: Any = MISSING
    validator: Optional[Validator] = None

    @classmethod
    def coerce(cls, config: Any) -> "FieldConfig":
        """Build a FieldConfig from a FieldConfig, a mapping, or None."""
        if config is None:
            return cls()
        if isinstance(config, cls):
            return config
        if not isinstance(config, Mapping):
            raise DeclarationError(
                f"Field configuration must be a mapping, got {type(config).__name__}",
                suggestion=f"Use a mapping with keys from: {', '.join(sorted(CONFIG_KEYS))}",
            )
        unknown = sorted(str(key) for key in config if key not in CONFIG_KEYS)
        if unknown:
            raise DeclarationError(
                f"Unknown field configuration keys: {', '.join(unknown)}",
                suggestion=f"Valid keys are: {', '.join(sorted(CONFIG_KEYS))}",
            )
        validator = config.get("validator")
        if validator is not None and not callable(validator):
            raise DeclarationError("validator must be callable")
        return cls(
            value=config.get("value", MISSING),
            default=config.get("default", MISSING),
            validator=validator,
        )

    def initial_value(self) -> Any:
        """Resolve a fresh initial value.

        Fixed values are deep-copied so instances never share containers.
        """
        if self.value is not MISSING:
            return clone_value(self.value)
        if self.default is MISSING:
            return None
        if callable(self.default):
            return self.default()
        return clone_value(self.default)


@dataclass(frozen=True)
class ValidateOptions:
    """Normalized arguments of ``validate()``.

    Attributes:
        force: Re-run validation even when an outcome is already settled
            (only consulted by models)
        skip_empty: Do not run the validator when the value is empty
    """

    force: bool = False
    skip_empty: bool = False

    @classmethod
    def coerce(
        cls,
        options: Any = None,
        *,
        force: Optional[bool] = None,
        skip_empty: Optional[bool] = None,
    ) -> "ValidateOptions":
        """Unify the accepted call conventions.

        ``options`` may be None, a bool (legacy shorthand for ``skip_empty``),
        a ValidateOptions, or a mapping with ``force``/``skip_empty`` keys.
        Keyword arguments override whatever ``options`` says.
        """
        if options is None:
            resolved = cls()
        elif isinstance(options, bool):
            resolved = cls(skip_empty=options)
        elif isinstance(options, cls):
            resolved = options
        elif isinstance(options, Mapping):
            unknown = sorted(str(key) for key in options if key not in ("force", "skip_empty"))
            if unknown:
                raise TypeError(f"Unknown validate options: {', '.join(unknown)}")
            resolved = cls(
                force=bool(options.get("force", False)),
                skip_empty=bool(options.get("skip_empty", False)),
            )
        else:
            raise TypeError(
                "validate() options must be a bool, mapping or ValidateOptions, "
                f"got {type(options).__name__}"
            )
        if force is not None:
            resolved = replace(resolved, force=force)
        if skip_empty is not None:
            resolved = replace(resolved, skip_empty=skip_empty)
        return resolved


class Field(EventEmitter):
    """A single value with baseline tracking and memoized validation.

    Do not instantiate directly; declare a blueprint with ``define_field``.

    Events:
        validChange(is_valid, field): validation outcome changed
        modifiedChange(is_dirty, field): dirty flag changed (reported by
            ``sync``, ``commit`` and ``reset``)
    """

    __fieldkit_blueprint__ = True
    __fieldkit_model__ = False

    name: str = ""
    config: FieldConfig = FieldConfig()

    def __init__(self, value: Any = MISSING) -> None:
        super().__init__()
        initial = self.config.initial_value() if value is MISSING else value
        self._value = initial
        self._baseline = clone_value(initial)
        self._validation: Validation = None
        self._reported_dirty = False
        self._pending: Optional[asyncio.Future[None]] = None

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, value: Any) -> None:
        self._value = value

    @property
    def baseline(self) -> Any:
        """Copy of the last committed value."""
        return clone_value(self._baseline)

    @property
    def is_dirty(self) -> bool:
        return not values_equal(self._value, self._baseline)

    @property
    def validation(self) -> Validation:
        return self._validation

    @property
    def is_valid(self) -> Optional[bool]:
        if self._validation is None:
            return None
        return self._validation is True

    @property
    def is_pending(self) -> bool:
        """True while a validate/sync/commit step is queued or running."""
        return self._pending is not None

    async def sync(self) -> None:
        """Wait for in-flight work, then report the current dirty state."""
        await self._serialized(self._refresh)

    async def commit(self) -> None:
        """Take the current value as the new clean baseline."""

        async def step() -> None:
            self._baseline = clone_value(self._value)
            await self._refresh()

        await self._serialized(step)

    def reset(self) -> None:
        """Restore a fresh copy of the default and mark the field clean.

        The validation outcome is kept.
        """
        self._value = self.config.initial_value()
        self._baseline = clone_value(self._value)
        self._report_dirty()

    async def validate(
        self,
        options: Any = None,
        *,
        force: Optional[bool] = None,
        skip_empty: Optional[bool] = None,
    ) -> Optional[bool]:
        """Run the validator against the current value.

        Args:
            options: ``True``/``False`` (skip-empty shorthand), a mapping, or
                a ValidateOptions
            force: Override ``options.force``
            skip_empty: Override ``options.skip_empty``

        Returns:
            The resulting ``is_valid``, or None when an empty value was skipped

        Raises:
            Exception: Whatever the validator raised if it cannot be turned
                into an error descriptor
        """
        resolved = ValidateOptions.coerce(options, force=force, skip_empty=skip_empty)
        return await self._serialized(lambda: self._run_validation(resolved))

    async def _run_validation(self, options: ValidateOptions) -> Optional[bool]:
        value = self._value
        if options.skip_empty and is_empty(value):
            logger.debug("Skipping validation of empty field %r", self.name)
            return None

        previous = self._validation
        outcome = await self._call_validator(value)
        self._validation = outcome
        if values_equal(previous, outcome):
            logger.debug("Validation of %r unchanged", self.name)
        else:
            logger.debug("Validation of %r changed to %s", self.name, self.is_valid)
            self.emit(VALID_CHANGE, self.is_valid, self)
        return self.is_valid

    async def _call_validator(self, value: Any) -> Union[bool, List[ErrorDescriptor]]:
        validator = self.config.validator
        if validator is None:
            return True
        try:
            result = validator(value)
            if inspect.isawaitable(result):
                result = await result
        except ValidationError as e:
            return list(e.errors)
        except ValueError as e:
            message = str(e)
            if not message:
                logger.debug("Validator for %r raised bare %s", self.name, type(e).__name__)
                raise
            return [ErrorDescriptor(message)]
        return self._outcome_from_result(result)

    def _outcome_from_result(self, result: Any) -> Union[bool, List[ErrorDescriptor]]:
        if result is True or result is None:
            return True
        if result is False:
            return [ErrorDescriptor(get_settings().failure_message)]
        if isinstance(result, str) and result:
            return [ErrorDescriptor(result)]
        if isinstance(result, ErrorDescriptor):
            return [result]
        if isinstance(result, (list, tuple)) and result:
            errors = [ErrorDescriptor(item) if isinstance(item, str) else item for item in result]
            if all(isinstance(item, ErrorDescriptor) for item in errors):
                return errors
        raise TypeError(f"Validator for field '{self.name}' returned unsupported result {result!r}")

    async def _refresh(self) -> None:
        self._report_dirty()

    def _report_dirty(self) -> None:
        dirty = self.is_dirty
        if dirty != self._reported_dirty:
            self._reported_dirty = dirty
            self.emit(MODIFIED_CHANGE, dirty, self)

    async def _serialized(self, step: Callable[[], Awaitable[T]]) -> T:
        # Each call waits for the previous one on this field, success or not
        previous = self._pending
        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._pending = done
        try:
            if previous is not None:
                await asyncio.shield(previous)
            return await step()
        finally:
            if previous is not None and not previous.done():
                # Cancelled while waiting: hold the queue until previous settles
                previous.add_done_callback(lambda _: self._release(done))
            else:
                self._release(done)

    def _release(self, done: "asyncio.Future[None]") -> None:
        done.set_result(None)
        if self._pending is done:
            self._pending = None

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} name={self.name!r} value={self._value!r} "
            f"dirty={self.is_dirty} valid={self.is_valid}>"
        )


def _class_name(name: str, suffix: str) -> str:
    parts = [p for p in re.split(r"[^0-9A-Za-z]+", name) if p]
    stem = "".join(p[0].upper() + p[1:] for p in parts)
    if not stem or stem[0].isdigit():
        stem = f"_{stem}"
    return f"{stem}{suffix}"


def define_field(
    name_or_blueprint: Union[str, Type[Any]],
    config: Union[FieldConfig, Mapping[str, Any], None] = None,
    **options: Any,
) -> Type[Any]:
    """Declare a field blueprint.

    Args:
        name_or_blueprint: Field name, or an existing blueprint
        config: FieldConfig or mapping with ``value``/``default``/``validator``
        **options: Same keys as ``config``; override it

    Returns:
        A ``Field`` subclass. An existing blueprint is returned unchanged.

    Example:
        >>> Tags = define_field("tags", default=list)
        >>> Tags().value
        []
    """
    if is_blueprint(name_or_blueprint):
        return name_or_blueprint  # type: ignore[return-value]
    if not isinstance(name_or_blueprint, str) or not name_or_blueprint:
        raise DeclarationError(
            f"Field name must be a non-empty string, got {name_or_blueprint!r}"
        )
    name = name_or_blueprint

    resolved = FieldConfig.coerce(config)
    if options:
        resolved = FieldConfig.coerce({**_config_items(resolved), **options})

    return type(
        _class_name(name, "Field"),
        (Field,),
        {"name": name, "config": resolved, "__module__": __name__},
    )


def _config_items(config: FieldConfig) -> dict:
    items = {}
    if config.value is not MISSING:
        items["value"] = config.value
    if config.default is not MISSING:
        items["default"] = config.default
    if config.validator is not None:
        items["validator"] = config.validator
    return items
