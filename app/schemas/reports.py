from typing import Dict, List
from datetime import datetime
from pydantic import BaseModel

from app.models.hazard import RiskLevel
from app.schemas.inspections import HazardRead, InspectionRead


class InspectionReport(BaseModel):
    """Everything a HIRA report document is rendered from."""

    inspection: InspectionRead
    hazards: List[HazardRead]
    risk_counts: Dict[RiskLevel, int]
    risk_matrix: Dict[int, Dict[int, RiskLevel]]
    generated_at: datetime
