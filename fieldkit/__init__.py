"""Reactive fields and composite models.

A field tracks a value, the baseline it is compared against for dirty
checking, and the outcome of its (possibly async) validator. A model
composes named fields and nested models into one aggregate status.

Example:
    import asyncio
    from fieldkit import define_model

    Order = define_model({
        "sku": {"validator": lambda v: v.startswith("SKU-")},
        "lines": list,
    })
    order = Order()
    order.fields["sku"].value = "SKU-1"
    asyncio.run(order.validate())
    assert order.is_valid is True
"""

from fieldkit.errors import (
    ConfigurationError,
    DeclarationError,
    ErrorDescriptor,
    FieldKitError,
    UnknownFieldError,
    ValidationError,
)
from fieldkit.events import MODIFIED_CHANGE, VALID_CHANGE, EventEmitter
from fieldkit.field import (
    MISSING,
    Field,
    FieldConfig,
    ValidateOptions,
    define_field,
    is_blueprint,
)
from fieldkit.model import Model, define_model, resolve_declaration
from fieldkit.settings import FieldKitSettings, get_settings

__version__ = "1.0.0"

__all__ = [
    # Blueprints
    "define_field",
    "define_model",
    "is_blueprint",
    "resolve_declaration",
    "Field",
    "FieldConfig",
    "Model",
    "ValidateOptions",
    "MISSING",
    # Events
    "EventEmitter",
    "VALID_CHANGE",
    "MODIFIED_CHANGE",
    # Errors
    "ErrorDescriptor",
    "FieldKitError",
    "DeclarationError",
    "UnknownFieldError",
    "ConfigurationError",
    "ValidationError",
    # Settings
    "FieldKitSettings",
    "get_settings",
]
