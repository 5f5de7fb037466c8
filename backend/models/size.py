# backend/models/size.py
import enum
from sqlalchemy import Column, Integer, String, Enum
from database import Base

# Target group a size chart applies to
class SizeCategory(str, enum.Enum):
    MEN = "men"
    WOMEN = "women"
    KIDS = "kids"

# Sizing system the value is expressed in
class SizeSystem(str, enum.Enum):
    EU = "EU"
    US = "US"
    UK = "UK"
    CM = "CM"
    STANDARD = "Standard"

# Immutable reference data: one entry of a size chart
class Size(Base):
    __tablename__ = "sizes"

    id = Column(Integer, primary_key=True, index=True)
    category = Column(Enum(SizeCategory), nullable=False)
    system = Column(Enum(SizeSystem), nullable=False)
    value = Column(String, nullable=False)

    @property
    def label(self) -> str:
        # Plain-text form copied into order items, e.g. "EU 42"
        return f"{self.system.value} {self.value}"
