from pydantic import BaseModel
from typing import Generic, Optional, TypeVar

# Shared properties
T = TypeVar("T")


class CommonQueryParams(BaseModel):
    search: Optional[str] = None
    skip: Optional[int] = 0
    limit: Optional[int] = None


class JsonOutResult(BaseModel, Generic[T]):
    data: Optional[T] = None
    status: str
    status_code: str
    message: str
