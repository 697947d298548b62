from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.hazard import Hazard, RiskLevel
from app.models.inspection import Inspection
from app.schemas.dashboard import (
    CategoryCount,
    DashboardStats,
    HighRiskAlert,
    RecentInspection,
    RiskLevelCount,
    RiskTrendPoint,
)
from app.services.risk_classifier import classify


def _day(value) -> str:
    # SQLite returns DATE() as text, PostgreSQL as a date
    return value if isinstance(value, str) else value.isoformat()


async def get_dashboard_stats(
    session: AsyncSession,
    user_id: int,
    *,
    trend_days: int = 30,
    alert_limit: int = 10,
    recent_limit: int = 5,
    now: Optional[datetime] = None,
) -> DashboardStats:
    owned = Inspection.user_id == user_id
    now = now or datetime.utcnow()

    total_inspections = (
        await session.execute(select(func.count()).select_from(Inspection).where(owned))
    ).scalar_one()

    level_rows = (
        await session.execute(
            select(Hazard.risk_level, func.count())
            .join(Inspection, Inspection.id == Hazard.inspection_id)
            .where(owned)
            .group_by(Hazard.risk_level)
        )
    ).all()
    per_level = {RiskLevel(level): count for level, count in level_rows}

    hazard_count = func.count(Hazard.id)
    recent_rows = (
        await session.execute(
            select(Inspection, hazard_count)
            .outerjoin(Hazard, Hazard.inspection_id == Inspection.id)
            .where(owned)
            .group_by(Inspection.id)
            .order_by(Inspection.created_at.desc(), Inspection.id.desc())
            .limit(recent_limit)
        )
    ).all()
    recent = [
        RecentInspection(
            id=i.id,
            project_name=i.project_name,
            location=i.location,
            inspection_date=i.inspection_date,
            overall_risk_level=i.overall_risk_level,
            status=i.status,
            created_at=i.created_at,
            hazard_count=int(count or 0),
        )
        for i, count in recent_rows
    ]

    category_count = func.count(Hazard.id).label("count")
    category_rows = (
        await session.execute(
            select(Hazard.category, category_count)
            .join(Inspection, Inspection.id == Hazard.inspection_id)
            .where(owned)
            .group_by(Hazard.category)
            .order_by(category_count.desc(), Hazard.category)
        )
    ).all()

    day = func.date(Inspection.created_at).label("day")
    trend_rows = (
        await session.execute(
            select(day, func.count(Hazard.id), func.max(Hazard.risk_score))
            .outerjoin(Hazard, Hazard.inspection_id == Inspection.id)
            .where(owned, Inspection.created_at >= now - timedelta(days=trend_days))
            .group_by(day)
            .order_by(day)
        )
    ).all()
    trend = [
        RiskTrendPoint(
            date=_day(d),
            count=int(count or 0),
            max_risk_level=classify(max_score) if max_score is not None else None,
        )
        for d, count, max_score in trend_rows
    ]

    alert_rows = (
        await session.execute(
            select(Hazard, Inspection)
            .join(Inspection, Inspection.id == Hazard.inspection_id)
            .where(owned, Hazard.risk_level.in_([RiskLevel.HIGH, RiskLevel.EXTREME]))
            .order_by(Hazard.risk_score.desc(), Inspection.created_at.desc(), Hazard.id)
            .limit(alert_limit)
        )
    ).all()
    alerts = [
        HighRiskAlert(
            id=h.id,
            description=h.description,
            risk_level=h.risk_level,
            risk_score=h.risk_score,
            category=h.category,
            inspection_id=i.id,
            project_name=i.project_name,
            location=i.location,
            inspection_date=i.inspection_date,
        )
        for h, i in alert_rows
    ]

    by_risk_rows = (
        await session.execute(
            select(Inspection.overall_risk_level, func.count())
            .where(owned, Inspection.overall_risk_level.is_not(None))
            .group_by(Inspection.overall_risk_level)
        )
    ).all()

    return DashboardStats(
        total_inspections=total_inspections,
        total_hazards=sum(per_level.values()),
        extreme_hazards=per_level.get(RiskLevel.EXTREME, 0),
        high_hazards=per_level.get(RiskLevel.HIGH, 0),
        medium_hazards=per_level.get(RiskLevel.MEDIUM, 0),
        low_hazards=per_level.get(RiskLevel.LOW, 0),
        recent_inspections=recent,
        hazards_by_category=[CategoryCount(category=c, count=n) for c, n in category_rows],
        risk_trend=trend,
        high_risk_alerts=alerts,
        inspections_by_risk=[RiskLevelCount(overall_risk_level=l, count=n) for l, n in by_risk_rows],
    )
