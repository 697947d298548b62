from typing import List, Optional
from datetime import date, datetime
from pydantic import BaseModel

from app.models.hazard import HazardCategory, RiskLevel
from app.models.inspection import InspectionStatus


class RecentInspection(BaseModel):
    id: int
    project_name: str
    location: Optional[str]
    inspection_date: date
    overall_risk_level: Optional[RiskLevel]
    status: InspectionStatus
    created_at: datetime
    hazard_count: int


class CategoryCount(BaseModel):
    category: HazardCategory
    count: int


class RiskTrendPoint(BaseModel):
    date: str
    count: int
    max_risk_level: Optional[RiskLevel]


class HighRiskAlert(BaseModel):
    id: int
    description: str
    risk_level: RiskLevel
    risk_score: int
    category: HazardCategory
    inspection_id: int
    project_name: str
    location: Optional[str]
    inspection_date: date


class RiskLevelCount(BaseModel):
    overall_risk_level: RiskLevel
    count: int


class DashboardStats(BaseModel):
    total_inspections: int
    total_hazards: int
    extreme_hazards: int
    high_hazards: int
    medium_hazards: int
    low_hazards: int
    recent_inspections: List[RecentInspection]
    hazards_by_category: List[CategoryCount]
    risk_trend: List[RiskTrendPoint]
    high_risk_alerts: List[HighRiskAlert]
    inspections_by_risk: List[RiskLevelCount]
