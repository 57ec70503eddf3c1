from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from ..core.config import settings

T = TypeVar("T")


class OperationError(str, Enum):
    NOT_FOUND = "not_found"
    NOT_OWNER = "not_owner"
    WRONG_STATUS = "wrong_status"
    CONFLICT = "conflict"
    INVALID = "invalid"
    PERSISTENCE = "persistence"


class OperationResult(BaseModel):
    """Outcome of a state-changing operation.

    Domain failures and persistence failures share this shape; ``error``
    tells them apart so the HTTP layer can pick a status code.
    """

    success: bool
    message: str
    error: Optional[OperationError] = None
    entity_id: Optional[int] = None

    @classmethod
    def ok(cls, message: str, entity_id: Optional[int] = None) -> "OperationResult":
        return cls(success=True, message=message, entity_id=entity_id)

    @classmethod
    def fail(cls, error: OperationError, message: str) -> "OperationResult":
        return cls(success=False, message=message, error=error)


class PageModel(BaseModel, Generic[T]):
    entity_amount: int
    entities: List[T]


class PageParameters(BaseModel):
    page_count: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size")
    page: int = Field(1, ge=1, description="1-indexed page number")

    @property
    def offset(self) -> int:
        return self.page_count * (self.page - 1)


class MessageResponse(BaseModel):
    message: str
