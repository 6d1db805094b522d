"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/results.py
Version:        1.0.0
Description:    Explicit outcome types. `Result` wraps every backend mutation
                so local state is merged only on success; `ValidationResult`
                carries field-level errors for editors.
------------------------------------------------------------------------------
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Ok(value) or Fail(error). Never both."""

    is_ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Any = None) -> "Result":
        return cls(is_ok=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "Result":
        return cls(is_ok=False, error=error or "Unknown error")

    def __bool__(self) -> bool:
        return self.is_ok


@dataclass(frozen=True)
class ValidationResult:
    """
    Validation outcome for an editor.

    Args:
        errors: Blocking problems keyed by field name.
        warnings: Non-blocking hints (e.g. options that do not apply).
    """

    errors: Dict[str, str] = field(default_factory=dict)
    warnings: Tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def first_error(self) -> Optional[str]:
        return next(iter(self.errors.values()), None)
