from pydantic import BaseModel, Field
from typing import Optional

from models.size import SizeCategory, SizeSystem
from schemas.common import ORMBase


# Input schema for creating or replacing a size
class SizeCreate(BaseModel):
    category: SizeCategory
    system: SizeSystem
    value: str = Field(min_length=1)


# Input schema for partial size updates
class SizeUpdate(BaseModel):
    category: Optional[SizeCategory] = None
    system: Optional[SizeSystem] = None
    value: Optional[str] = Field(default=None, min_length=1)


class SizeOut(ORMBase):
    id: int
    category: SizeCategory
    system: SizeSystem
    value: str
    label: str
