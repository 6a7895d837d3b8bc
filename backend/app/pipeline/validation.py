"""
ProfileBuilder Backend — Validator
====================================

What:  Runs a declarative schema against an untyped input value and produces
       either Valid(data) or Invalid(violations).
How:   Schemas are pydantic models (or any type a TypeAdapter accepts).
       Pydantic applies field defaults and then checks every constraint,
       collecting ALL failing leaves in field-declaration order instead of
       stopping at the first one. The raw input is never mutated; defaults
       land only in the returned value.
Who:   Called by the request pipeline on the JSON body (write routes) or the
       query parameters (read routes).

Violation paths use the wire (alias) names joined with dots, e.g.
"sections.0.content.images.1.url". A failure on the whole value uses "body".
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Generic, List, TypeVar, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

T = TypeVar("T")

ROOT_FIELD = "body"


@dataclass(frozen=True)
class Violation:
    """One failing leaf constraint."""

    field: str
    message: str


@dataclass(frozen=True)
class Valid(Generic[T]):
    data: T


@dataclass(frozen=True)
class Invalid:
    violations: List[Violation]

    def __post_init__(self) -> None:
        if not self.violations:
            raise ValueError("Invalid outcome requires at least one violation")


ValidationOutcome = Union[Valid[T], Invalid]


@lru_cache(maxsize=None)
def _adapter(schema: Any) -> TypeAdapter:
    # Schemas are declared once per route, so adapters are built once per schema.
    return TypeAdapter(schema)


def _field_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or ROOT_FIELD


def violations_from(exc: PydanticValidationError) -> List[Violation]:
    """Flatten a pydantic error into ordered Violation records."""
    return [
        Violation(field=_field_path(err["loc"]), message=err["msg"])
        for err in exc.errors(include_url=False)
    ]


def validate(schema: Any, raw_value: Any) -> ValidationOutcome:
    """
    Validate `raw_value` against `schema`.

    Total and side-effect free: every input yields either Valid with the
    typed value or Invalid with at least one violation.
    """
    try:
        data = _adapter(schema).validate_python(raw_value)
    except PydanticValidationError as exc:
        return Invalid(violations=violations_from(exc))
    return Valid(data=data)
