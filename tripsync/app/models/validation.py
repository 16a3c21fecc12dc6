"""Boundary construction of typed entities.

construct() turns untyped input into either a fully-populated model or a
structured failure, so callers handle both outcomes explicitly and nothing
unvalidated reaches the store.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from tripsync.app.engine.errors import InputValidationError

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Valid(Generic[M]):
    """Successful construction."""

    value: M


@dataclass(frozen=True)
class Invalid:
    """Failed construction with pydantic-style error entries."""

    model: str
    errors: list[dict[str, Any]]


def construct(model: type[M], data: M | Mapping[str, Any]) -> Valid[M] | Invalid:
    """Validate input into model.

    Args:
        model: Target pydantic model class
        data: An instance of model (already validated) or a raw mapping

    Returns:
        Valid wrapping the instance, or Invalid with error details
    """
    if isinstance(data, model):
        return Valid(value=data)
    try:
        instance = model.model_validate(dict(data))
    except ValidationError as e:
        errors = [
            {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
            for err in e.errors()
        ]
        return Invalid(model=model.__name__, errors=errors)

    return Valid(value=instance)


def require_valid(model: type[M], data: M | Mapping[str, Any]) -> M:
    """Construct model or raise InputValidationError."""
    result = construct(model, data)
    if isinstance(result, Invalid):
        raise InputValidationError(f"Invalid {result.model}", errors=result.errors)
    return result.value
