from datetime import datetime
from typing import Optional, List
from enum import Enum
from sqlalchemy import Column, DateTime, Enum as SAEnum, func

from sqlmodel import SQLModel, Field, Relationship


class Role(str, Enum):
    HSE_OFFICER = "hse_officer"
    PROJECT_MANAGER = "project_manager"
    SUPERVISOR = "supervisor"
    AUDITOR = "auditor"
    ADMIN = "admin"


def enum_values(enum_cls) -> List[str]:
    """Persist enums by value ("hse_officer", "Low") rather than member name."""
    return [member.value for member in enum_cls]


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, sa_column_kwargs={"unique": True})
    email: str = Field(index=True, sa_column_kwargs={"unique": True})
    hashed_password: str
    role: Role = Field(
        default=Role.HSE_OFFICER,
        sa_column=Column(
            SAEnum(Role, values_callable=enum_values, native_enum=False, length=32),
            nullable=False,
            default=Role.HSE_OFFICER,
        ),
    )
    full_name: Optional[str] = None
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(
            DateTime(timezone=False),
            server_default=func.now(),
            nullable=False,
        )
    )

    # relationships
    inspections: List["Inspection"] = Relationship(back_populates="owner")
