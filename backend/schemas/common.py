from typing import Annotated, Generic, List, Optional, TypeVar
from fastapi import Path
from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

# Integer primary keys are signed 64-bit in every supported database
MAX_ID = 2**63 - 1

# Request ids: positive and small enough for the id columns
IdField = Annotated[int, Field(gt=0, le=MAX_ID)]
IdPath = Annotated[int, Path(gt=0, le=MAX_ID)]

def in_id_range(value: int) -> bool:
    return 0 < value <= MAX_ID

# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

# Uniform response envelope: {success, message?, data?}
class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None

# Schema for paginated lists
class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int
