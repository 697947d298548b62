import csv
import io
import json
import re
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.models.hazard import RiskLevel
from app.schemas.inspections import HazardRead, InspectionRead
from app.schemas.reports import InspectionReport
from app.services.inspection_service import get_inspection_detail
from app.services.risk_classifier import RISK_MATRIX

EXPORT_FORMATS = {
    "csv": "text/csv",
    "json": "application/json",
}

CSV_COLUMNS = [
    "id",
    "description",
    "category",
    "hazard_type",
    "severity",
    "likelihood",
    "risk_score",
    "risk_level",
    "engineering_control",
    "administrative_control",
    "ppe_control",
    "immediate_action",
    "confidence",
]


async def build_report(session: AsyncSession, user_id: int, inspection_id: int) -> InspectionReport:
    inspection, hazards = await get_inspection_detail(session, user_id, inspection_id)
    counts = {level: 0 for level in RiskLevel}
    for hazard in hazards:
        counts[RiskLevel(hazard.risk_level)] += 1
    return InspectionReport(
        inspection=InspectionRead.model_validate(inspection),
        hazards=[HazardRead.model_validate(h) for h in hazards],
        risk_counts=counts,
        risk_matrix=RISK_MATRIX,
        generated_at=datetime.utcnow(),
    )


def export_report(report: InspectionReport, fmt: str = "csv") -> bytes:
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format: {fmt}")

    if fmt == "json":
        return json.dumps(report.model_dump(mode="json"), default=str).encode("utf-8")

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_COLUMNS)
    for h in report.hazards:
        row = h.model_dump(mode="json")
        writer.writerow(["" if row[col] is None else row[col] for col in CSV_COLUMNS])
    return buf.getvalue().encode("utf-8")


def report_filename(report: InspectionReport, ext: str) -> str:
    project = re.sub(r"[^a-z0-9]", "_", report.inspection.project_name, flags=re.IGNORECASE)
    return f"HIRA_Report_{project}_{report.inspection.inspection_date.isoformat()}.{ext}"
