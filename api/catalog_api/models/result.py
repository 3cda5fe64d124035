"""OperationResult: the value every catalog service hands back instead of raising.

A result is either ``Success(data)`` or ``Failure(kind, message)``. Callers branch
on ``result.ok`` so fatal and best-effort steps stay visible where they are used.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION_FAILURE = "validation_failure"
    STORE_FAILURE = "store_failure"
    UPLOAD_FAILURE = "upload_failure"
    ASSOCIATION_FAILURE = "association_failure"
    IMPORT_FAILURE = "import_failure"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T

    def __post_init__(self) -> None:
        if self.data is None:
            raise ValueError("Success requires data")

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False


OperationResult = Union[Success[T], Failure]


def failure(kind: ErrorKind, message: str) -> Failure:
    return Failure(kind=kind, message=message or kind.value.replace("_", " "))
