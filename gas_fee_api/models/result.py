from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar('T')


class Ok(BaseModel, Generic[T]):
    """Value obtained from the live source."""

    value: T

    @property
    def is_fallback(self) -> bool:
        return False


class Fallback(BaseModel, Generic[T]):
    """Default value used because the live source failed, `reason` says why."""

    value: T
    reason: str

    @property
    def is_fallback(self) -> bool:
        return True
