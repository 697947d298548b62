from typing import Optional
from enum import Enum
from datetime import datetime
from sqlalchemy import CheckConstraint, Column, DateTime, Enum as SAEnum, ForeignKey, Integer
from sqlmodel import SQLModel, Field, Relationship

from app.models.user import enum_values


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    EXTREME = "Extreme"


class HazardCategory(str, Enum):
    PHYSICAL = "Physical"
    CHEMICAL = "Chemical"
    BIOLOGICAL = "Biological"
    ERGONOMIC = "Ergonomic"
    ELECTRICAL = "Electrical"
    FIRE = "Fire"
    MECHANICAL = "Mechanical"
    ENVIRONMENTAL = "Environmental"
    PSYCHOSOCIAL = "Psychosocial"


def risk_level_column(nullable: bool = False, index: bool = False) -> Column:
    return Column(
        SAEnum(RiskLevel, values_callable=enum_values, native_enum=False, length=16),
        nullable=nullable,
        index=index,
    )


class Hazard(SQLModel, table=True):
    __tablename__ = "hazards"
    __table_args__ = (
        CheckConstraint("severity BETWEEN 1 AND 5", name="ck_hazards_severity_range"),
        CheckConstraint("likelihood BETWEEN 1 AND 5", name="ck_hazards_likelihood_range"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    inspection_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("inspections.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    description: str
    category: HazardCategory = Field(
        sa_column=Column(
            SAEnum(HazardCategory, values_callable=enum_values, native_enum=False, length=32),
            nullable=False,
        )
    )
    hazard_type: Optional[str] = None
    severity: int
    likelihood: int
    risk_score: int
    risk_level: RiskLevel = Field(sa_column=risk_level_column(index=True))
    engineering_control: Optional[str] = None
    administrative_control: Optional[str] = None
    ppe_control: Optional[str] = None
    immediate_action: Optional[str] = None
    confidence: Optional[float] = None
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=False), nullable=False),
    )

    inspection: Optional["Inspection"] = Relationship(back_populates="hazards")
