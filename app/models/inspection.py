from typing import Optional, List
from enum import Enum
from datetime import date, datetime
from sqlalchemy import Column, DateTime, Enum as SAEnum, ForeignKey, Integer
from sqlmodel import SQLModel, Field, Relationship

from app.models.hazard import risk_level_column, RiskLevel
from app.models.user import enum_values


class InspectionStatus(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


class Inspection(SQLModel, table=True):
    __tablename__ = "inspections"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    )
    project_name: str
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_accuracy: Optional[float] = None
    inspection_date: date = Field(index=True)
    inspector_name: Optional[str] = None
    department: Optional[str] = None
    notes: Optional[str] = None
    image_path: str
    image_filename: Optional[str] = None
    status: InspectionStatus = Field(
        default=InspectionStatus.PENDING,
        sa_column=Column(
            SAEnum(InspectionStatus, values_callable=enum_values, native_enum=False, length=16),
            nullable=False,
            default=InspectionStatus.PENDING,
            index=True,
        ),
    )
    overall_risk_level: Optional[RiskLevel] = Field(default=None, sa_column=risk_level_column(nullable=True))
    ai_summary: Optional[str] = None
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=False), nullable=False, index=True),
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=False), nullable=False, onupdate=datetime.utcnow),
    )

    owner: Optional["User"] = Relationship(back_populates="inspections")
    hazards: List["Hazard"] = Relationship(
        back_populates="inspection",
        # rows go with the inspection through ON DELETE CASCADE
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )
