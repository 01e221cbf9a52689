"""Ready-made validators for field configurations.

Validators are plain callables ``(value) -> bool``; these helpers build
common ones and compose them.

Example:
    Age = define_field("age", validator=all_of(
        type_validator(int),
        predicate(lambda v: v >= 0, "Age cannot be negative"),
    ))
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, List

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from fieldkit.errors import ErrorDescriptor, ValidationError
from fieldkit.field import Validator

__all__ = ["type_validator", "predicate", "all_of", "errors_from_pydantic"]


def errors_from_pydantic(exc: PydanticValidationError) -> List[ErrorDescriptor]:
    """Convert pydantic error details into error descriptors."""
    return [
        ErrorDescriptor(err["msg"], tuple(err.get("loc", ())), err.get("type"))
        for err in exc.errors()
    ]


def type_validator(tp: Any, *, strict: bool = False) -> Validator:
    """Build a validator that checks a value against a type.

    Args:
        tp: Any type pydantic can validate (``int``, ``list[str]``, a
            BaseModel, an Annotated constraint, ...)
        strict: Disable pydantic's lax coercion (``"1"`` is not an int)

    Returns:
        Validator raising ValidationError with one descriptor per problem
    """
    adapter = TypeAdapter(tp)

    def validate(value: Any) -> bool:
        try:
            adapter.validate_python(value, strict=strict)
        except PydanticValidationError as e:
            raise ValidationError(errors_from_pydantic(e)) from e
        return True

    validate.__name__ = f"type_validator[{getattr(tp, '__name__', repr(tp))}]"
    return validate


def predicate(check: Callable[[Any], Any], message: str, *, code: str | None = None) -> Validator:
    """Wrap a boolean check so a falsy result fails with ``message``.

    ``check`` may be sync or async.
    """

    async def validate(value: Any) -> bool:
        result = check(value)
        if inspect.isawaitable(result):
            result = await result
        if not result:
            raise ValidationError(message, code=code)
        return True

    return validate


def all_of(*validators: Validator) -> Validator:
    """Run validators in order; the first failure wins.

    Returned failures (``False``, messages, descriptors) are passed through
    unchanged, and exceptions propagate to the field as usual.
    """

    async def validate(value: Any) -> Any:
        for validator in validators:
            result = validator(value)
            if inspect.isawaitable(result):
                result = await result
            if result is not True and result is not None:
                return result
        return True

    return validate
