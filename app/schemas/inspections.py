from typing import List, Optional, Any, Dict
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.hazard import HazardCategory, RiskLevel
from app.models.inspection import InspectionStatus


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class InspectionCreate(BaseModel):
    """Metadata submitted alongside the photograph."""

    project_name: str = Field(min_length=1)
    inspection_date: date
    location: Optional[str] = None
    inspector_name: Optional[str] = None
    department: Optional[str] = None
    notes: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    location_accuracy: Optional[float] = Field(default=None, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def blank_strings_are_missing(cls, value):
        value = _blank_to_none(value)
        return value.strip() if isinstance(value, str) else value


class HazardCreate(BaseModel):
    """Manually entered hazard. Ratings outside 1-5 are clamped, not rejected."""

    description: str = Field(min_length=1)
    category: HazardCategory
    hazard_type: Optional[str] = None
    severity: int
    likelihood: int
    engineering_control: Optional[str] = None
    administrative_control: Optional[str] = None
    ppe_control: Optional[str] = None
    immediate_action: Optional[str] = None

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator(
        "hazard_type", "engineering_control", "administrative_control", "ppe_control", "immediate_action",
        mode="before",
    )
    @classmethod
    def optional_text(cls, value):
        return _blank_to_none(value)


class HazardUpdate(BaseModel):
    """Manual override. Omitted (or blank) fields keep their stored value."""

    description: Optional[str] = None
    category: Optional[HazardCategory] = None
    hazard_type: Optional[str] = None
    severity: Optional[int] = None
    likelihood: Optional[int] = None
    engineering_control: Optional[str] = None
    administrative_control: Optional[str] = None
    ppe_control: Optional[str] = None
    immediate_action: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_strings_are_missing(cls, value):
        return _blank_to_none(value)

    def supplied(self) -> Dict[str, Any]:
        return {k: v for k, v in self.model_dump().items() if v is not None}


class HazardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    inspection_id: int
    description: str
    category: HazardCategory
    hazard_type: Optional[str]
    severity: int
    likelihood: int
    risk_score: int
    risk_level: RiskLevel
    engineering_control: Optional[str]
    administrative_control: Optional[str]
    ppe_control: Optional[str]
    immediate_action: Optional[str]
    confidence: Optional[float]
    created_at: datetime


class InspectionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    project_name: str
    location: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    location_accuracy: Optional[float]
    inspection_date: date
    inspector_name: Optional[str]
    department: Optional[str]
    notes: Optional[str]
    image_filename: Optional[str]
    status: InspectionStatus
    overall_risk_level: Optional[RiskLevel]
    ai_summary: Optional[str]
    created_at: datetime


class InspectionSummary(InspectionRead):
    hazard_count: int = 0
    extreme_count: int = 0
    high_count: int = 0


class InspectionListResponse(BaseModel):
    inspections: List[InspectionSummary]
    total: int
    page: int
    limit: int


class InspectionDetail(BaseModel):
    inspection: InspectionRead
    hazards: List[HazardRead]


class AIAnalysisResult(BaseModel):
    """What the AI vision service returned. Every field is untrusted."""

    hazards: List[Any] = Field(default_factory=list)
    overall_risk_level: Optional[str] = None
    summary: Optional[str] = None


class AnalysisResponse(BaseModel):
    inspection: InspectionRead
    hazards: List[HazardRead]
    ai_result: AIAnalysisResult
