"""Composite models built from field blueprints.

A model blueprint is a ``Model`` subclass produced by ``define_model``. Each
instance owns one member per declared name: a ``Field`` instance, or an
instance of a nested model blueprint. Members share the same surface
(``is_dirty``, ``is_valid``, ``validation``, ``sync``, ``commit``, ``reset``,
``validate``, events), so nesting recurses naturally.

Aggregate events are edge-triggered. Member events received while a
model-level operation is running are folded into one recomputation at the
end of that operation.
"""

from __future__ import annotations

import asyncio
import logging
from types import MappingProxyType
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

from fieldkit.errors import DeclarationError, UnknownFieldError
from fieldkit.events import MODIFIED_CHANGE, VALID_CHANGE, EventEmitter
from fieldkit.field import (
    MISSING,
    FieldConfig,
    ValidateOptions,
    define_field,
    is_blueprint,
    is_config_mapping,
)
from fieldkit.values import clone_value, is_live_model, values_equal

logger = logging.getLogger(__name__)

__all__ = [
    "Declaration",
    "Model",
    "define_model",
    "resolve_declaration",
]

Declaration = Union[None, Sequence[str], Mapping[str, Any]]
Member = Any  # Field or Model instance


class Model(EventEmitter):
    """Named composite of fields and nested models.

    Do not instantiate directly; declare a blueprint with ``define_model``.

    Events:
        validChange(is_valid, model): aggregate validation changed
        modifiedChange(is_dirty, model): aggregate dirty flag changed
    """

    __fieldkit_blueprint__ = True
    __fieldkit_model__ = True

    name: str = ""
    declaration: Tuple[Tuple[str, Type[Any]], ...] = ()

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__()
        values = {} if values is None else values
        _check_mapping(values)
        _check_names(values, [name for name, _ in self.declaration])

        members: Dict[str, Member] = {}
        for name, blueprint in self.declaration:
            member = _instantiate(blueprint, values.get(name, MISSING))
            member.on(VALID_CHANGE, self._member_valid_changed)
            member.on(MODIFIED_CHANGE, self._member_modified_changed)
            members[name] = member
        self._fields: Mapping[str, Member] = MappingProxyType(members)

        self._batch_depth = 0
        self._reported_dirty = self.is_dirty
        self._reported_validation = self.validation

    @property
    def fields(self) -> Mapping[str, Member]:
        """Read-only mapping of member name to Field or Model instance."""
        return self._fields

    @property
    def value(self) -> "Model":
        """The model itself, so nested members expose a live instance."""
        return self

    @value.setter
    def value(self, values: Mapping[str, Any]) -> None:
        self.assign(values)

    @property
    def is_dirty(self) -> bool:
        return any(member.is_dirty for member in self._fields.values())

    @property
    def is_valid(self) -> Optional[bool]:
        states = [member.is_valid for member in self._fields.values()]
        if not states:
            return None
        if any(state is False for state in states):
            return False
        if all(state is True for state in states):
            return True
        return None

    @property
    def validation(self) -> Dict[str, Dict[str, Any]]:
        """Per-member outcome: the error list on failure, else ``is_valid``."""
        result: Dict[str, Dict[str, Any]] = {}
        for name, member in self._fields.items():
            state = member.is_valid
            result[name] = {"errors": member.validation if state is False else state}
        return result

    @property
    def is_pending(self) -> bool:
        return any(member.is_pending for member in self._fields.values())

    def __getitem__(self, name: str) -> Any:
        try:
            return self._fields[name].value
        except KeyError:
            raise UnknownFieldError(name, known=list(self._fields)) from None

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def assign(self, values: Mapping[str, Any]) -> None:
        """Set member values by name, recursing into nested models.

        The whole nested mapping is checked before any member is written.

        Raises:
            UnknownFieldError: If any name is not declared (nothing is set)
            TypeError: If values, or the value for a nested model, is not a
                mapping (nothing is set)
        """
        self._check_assignment(values)
        for name, value in values.items():
            member = self._fields[name]
            if is_live_model(member):
                if value is not member:
                    member.assign(value)
            else:
                member.value = value

    def _check_assignment(self, values: Any) -> None:
        _check_mapping(values)
        _check_names(values, list(self._fields))
        for name, value in values.items():
            member = self._fields[name]
            if is_live_model(member) and value is not member:
                member._check_assignment(value)

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested copy of the current values."""
        return {
            name: member.to_dict() if is_live_model(member) else clone_value(member.value)
            for name, member in self._fields.items()
        }

    async def sync(self) -> None:
        """Sync every member, then report the aggregate dirty state once."""
        await self._fan_out(self._fields.values(), lambda member: member.sync())

    async def commit(self) -> None:
        """Commit every member's value as its new baseline."""
        await self._fan_out(self._fields.values(), lambda member: member.commit())

    def reset(self) -> None:
        """Reset every member to its default."""
        self._batch_depth += 1
        try:
            for member in self._fields.values():
                member.reset()
        finally:
            self._batch_depth -= 1
            self._report()

    async def validate(
        self,
        options: Any = None,
        *,
        force: Optional[bool] = None,
        skip_empty: Optional[bool] = None,
    ) -> Optional[bool]:
        """Validate members that have no settled outcome.

        A member is validated when ``force`` is set, when it has never been
        validated, or when it has work in flight. Members with a settled
        True/False outcome are otherwise left alone.

        Args:
            options: ``True``/``False`` (skip-empty shorthand), a mapping, or
                a ValidateOptions; passed through to every member
            force: Override ``options.force``
            skip_empty: Override ``options.skip_empty``

        Returns:
            The aggregate ``is_valid`` once every dispatched member settles
        """
        resolved = ValidateOptions.coerce(options, force=force, skip_empty=skip_empty)
        forwarded = options if force is None and skip_empty is None else resolved

        due = [
            member
            for member in self._fields.values()
            if resolved.force or member.is_valid is None or member.is_pending
        ]
        logger.debug(
            "Validating %d of %d member(s) of %s",
            len(due),
            len(self._fields),
            type(self).__name__,
        )
        await self._fan_out(due, lambda member: member.validate(forwarded))
        return self.is_valid

    async def _fan_out(
        self,
        members: Iterable[Member],
        call: Callable[[Member], Awaitable[Any]],
    ) -> None:
        self._batch_depth += 1
        try:
            await asyncio.gather(*(call(member) for member in members))
        finally:
            self._batch_depth -= 1
            self._report()

    def _member_valid_changed(self, is_valid: Optional[bool], member: Member) -> None:
        if not self._batch_depth:
            self._report_validation()

    def _member_modified_changed(self, is_dirty: bool, member: Member) -> None:
        if not self._batch_depth:
            self._report_dirty()

    def _report(self) -> None:
        self._report_dirty()
        self._report_validation()

    def _report_dirty(self) -> None:
        dirty = self.is_dirty
        if dirty != self._reported_dirty:
            self._reported_dirty = dirty
            logger.debug("%s dirty state changed to %s", type(self).__name__, dirty)
            self.emit(MODIFIED_CHANGE, dirty, self)

    def _report_validation(self) -> None:
        validation = self.validation
        if not values_equal(validation, self._reported_validation):
            self._reported_validation = validation
            logger.debug("%s validation changed to %s", type(self).__name__, self.is_valid)
            self.emit(VALID_CHANGE, self.is_valid, self)

    def __repr__(self) -> str:
        names = ", ".join(self._fields)
        return (
            f"<{type(self).__name__} fields=[{names}] "
            f"dirty={self.is_dirty} valid={self.is_valid}>"
        )


def _instantiate(blueprint: Type[Any], value: Any) -> Member:
    if value is MISSING:
        return blueprint()
    if getattr(blueprint, "__fieldkit_model__", False):
        return blueprint(value)
    return blueprint(clone_value(value))


def _check_mapping(values: Any) -> None:
    if not isinstance(values, Mapping):
        raise TypeError(f"Model values must be a mapping, got {type(values).__name__}")


def _check_names(values: Mapping[str, Any], known: Sequence[str]) -> None:
    for name in values:
        if name not in known:
            raise UnknownFieldError(name, known=known)


def _resolve_entry(name: str, entry: Any) -> Type[Any]:
    if entry is MISSING:
        return define_field(name)
    if is_blueprint(entry):
        return entry
    if is_config_mapping(entry):
        return define_field(name, entry)
    # Shorthand: any other value is the field's default
    return define_field(name, FieldConfig(default=entry))


def resolve_declaration(declaration: Declaration) -> Tuple[Tuple[str, Type[Any]], ...]:
    """Normalize a model declaration into ordered ``(name, blueprint)`` pairs.

    Accepted shapes:
        * None: no members
        * a list/tuple of names: plain fields defaulting to None
        * a mapping of name to entry, where an entry is a FieldConfig, a
          configuration mapping, a field/model blueprint, or a bare value
          used as the default (callables are default factories)

    Raises:
        DeclarationError: For unsupported shapes, bad or duplicate names
    """
    if declaration is None:
        items: Iterable[Tuple[Any, Any]] = ()
    elif isinstance(declaration, Mapping):
        items = declaration.items()
    elif isinstance(declaration, (list, tuple)):
        items = [(name, MISSING) for name in declaration]
    else:
        raise DeclarationError(
            "Model declaration must be a mapping or a list of names, "
            f"got {type(declaration).__name__}"
        )

    resolved = []
    seen = set()
    for name, entry in items:
        if not isinstance(name, str) or not name:
            raise DeclarationError(f"Field name must be a non-empty string, got {name!r}")
        if name in seen:
            raise DeclarationError("Duplicate field name", field=name)
        seen.add(name)
        resolved.append((name, _resolve_entry(name, entry)))
    return tuple(resolved)


def define_model(
    declaration: Union[Declaration, Type[Model]] = None,
    *,
    name: Optional[str] = None,
) -> Type[Model]:
    """Declare a model blueprint.

    Args:
        declaration: Names, a mapping of name to entry, or an existing model
            blueprint (returned unchanged)
        name: Optional class name for the blueprint

    Example:
        >>> Address = define_model({"city": "", "zip": {"default": ""}})
        >>> Person = define_model({"name": "", "address": Address})
        >>> Person().fields["address"].value["city"]
        ''
    """
    if is_blueprint(declaration):
        if getattr(declaration, "__fieldkit_model__", False):
            return declaration  # type: ignore[return-value]
        raise DeclarationError(
            "define_model() received a field blueprint",
            suggestion="Wrap it in a mapping: define_model({'name': FieldBlueprint})",
        )
    pairs = resolve_declaration(declaration)  # type: ignore[arg-type]
    return type(
        name or "DeclaredModel",
        (Model,),
        {"name": name or "", "declaration": pairs, "__module__": __name__},
    )
