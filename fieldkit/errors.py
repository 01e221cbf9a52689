"""Structured exception hierarchy for fieldkit.

Validation failures are normally *values* (lists of ``ErrorDescriptor``
stored on a field). The exceptions here cover broken declarations, bad
settings, and the one exception validators may raise to report failure
explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

__all__ = [
    "ErrorDescriptor",
    "FieldKitError",
    "DeclarationError",
    "UnknownFieldError",
    "ConfigurationError",
    "ValidationError",
]


@dataclass(frozen=True)
class ErrorDescriptor:
    """A single validation error.

    Attributes:
        message: Human readable description of the failure
        path: Location inside the value (e.g. ``("items", 0)``), empty for the
            value itself
        code: Optional machine readable error code
    """

    message: str
    path: Tuple[Union[str, int], ...] = ()
    code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        data: Dict[str, Any] = {"message": self.message}
        if self.path:
            data["path"] = list(self.path)
        if self.code:
            data["code"] = self.code
        return data

    def __str__(self) -> str:
        if self.path:
            location = ".".join(str(p) for p in self.path)
            return f"{location}: {self.message}"
        return self.message


class FieldKitError(Exception):
    """Base exception for all fieldkit errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.field = field
        self.details = details or {}
        self.suggestion = suggestion

        # Build full message
        parts = [f"[{field}] {message}" if field else message]

        if details:
            detail_lines = [f"  {k}: {v}" for k, v in details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "field": self.field,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class DeclarationError(FieldKitError):
    """A field or model declaration could not be resolved.

    Raised by ``define_field``/``define_model`` for unusable names,
    duplicate names, or declarations of an unsupported shape.
    """


class UnknownFieldError(FieldKitError, KeyError):
    """A value was addressed to a field the model does not declare."""

    def __init__(self, name: str, *, known: Sequence[str] = ()) -> None:
        details = {"known_fields": ", ".join(known)} if known else None
        super().__init__(f"Unknown field '{name}'", field=name, details=details)

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return Exception.__str__(self)


class ConfigurationError(FieldKitError):
    """Settings file exists but cannot be used."""


class ValidationError(FieldKitError, ValueError):
    """Raised by a validator to report one or more validation errors.

    ``Field.validate`` stores ``errors`` on the field instead of letting the
    exception reach the caller.

    Example:
        async def check_sku(value):
            if not value.startswith("SKU-"):
                raise ValidationError("SKU must start with 'SKU-'", code="prefix")
            return True
    """

    def __init__(
        self,
        message: Union[str, ErrorDescriptor, Sequence[ErrorDescriptor]],
        *,
        path: Sequence[Union[str, int]] = (),
        code: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        errors: List[ErrorDescriptor]
        if isinstance(message, str):
            errors = [ErrorDescriptor(message, tuple(path), code)]
        elif isinstance(message, ErrorDescriptor):
            errors = [message]
        else:
            errors = list(message)
        if not errors:
            raise TypeError("ValidationError requires at least one error")
        self.errors = errors
        super().__init__("; ".join(str(e) for e in errors), **kwargs)
