"""Inspection aggregate: ownership, hazard mutations, risk roll-up and analysis flow.

Every read and write is scoped to the requesting user. A record that exists
but belongs to someone else is reported exactly like a missing one.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AnalysisFailedError,
    AppError,
    InvalidStateTransition,
    NotFoundError,
    PersistenceError,
)
from app.models.hazard import Hazard, RiskLevel
from app.models.inspection import Inspection, InspectionStatus
from app.schemas.inspections import (
    AIAnalysisResult,
    HazardCreate,
    HazardUpdate,
    InspectionCreate,
    InspectionRead,
    InspectionSummary,
)
from app.services.hazard_normalizer import normalize
from app.services.risk_classifier import clamp_rating, classify, parse_risk_level, score

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
MANUAL_CONFIDENCE = 1.0

ALLOWED_TRANSITIONS = {
    InspectionStatus.PENDING: {InspectionStatus.ANALYZING, InspectionStatus.FAILED},
    InspectionStatus.ANALYZING: {InspectionStatus.COMPLETED, InspectionStatus.FAILED},
}


@asynccontextmanager
async def _transaction(session: AsyncSession, action: str):
    """Commit on success; roll back and raise PersistenceError on storage failure."""
    try:
        yield
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Could not %s", action, exc_info=True)
        raise PersistenceError(f"Could not {action}") from exc


def transition(inspection: Inspection, new_status: InspectionStatus) -> None:
    current = InspectionStatus(inspection.status)
    if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(
            f"Inspection {inspection.id} cannot move from {current.value} to {new_status.value}"
        )
    inspection.status = new_status
    inspection.updated_at = datetime.utcnow()


# --- ownership ---

async def get_owned_inspection(session: AsyncSession, user_id: int, inspection_id: int) -> Inspection:
    result = await session.execute(
        select(Inspection).where(Inspection.id == inspection_id, Inspection.user_id == user_id)
    )
    inspection = result.scalars().first()
    if not inspection:
        raise NotFoundError("Inspection not found")
    return inspection


async def get_owned_hazard(session: AsyncSession, user_id: int, hazard_id: int) -> Hazard:
    result = await session.execute(
        select(Hazard)
        .join(Inspection, Inspection.id == Hazard.inspection_id)
        .where(Hazard.id == hazard_id, Inspection.user_id == user_id)
    )
    hazard = result.scalars().first()
    if not hazard:
        raise NotFoundError("Hazard not found")
    return hazard


async def list_hazards(session: AsyncSession, inspection_id: int) -> List[Hazard]:
    result = await session.execute(
        select(Hazard)
        .where(Hazard.inspection_id == inspection_id)
        .order_by(Hazard.risk_score.desc(), Hazard.id.asc())
    )
    return list(result.scalars().all())


# --- queries ---

def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def list_inspections(
    session: AsyncSession,
    user_id: int,
    risk_level: Optional[RiskLevel] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> Tuple[List[InspectionSummary], int, int, int]:
    """Return (rows, total, page, limit) with page and limit clamped to valid values."""
    page = max(1, page)
    limit = max(1, min(MAX_PAGE_SIZE, limit))

    filters = [Inspection.user_id == user_id]
    if risk_level:
        filters.append(Inspection.overall_risk_level == risk_level)
    if search and search.strip():
        like = f"%{_escape_like(search.strip())}%"
        filters.append(or_(
            Inspection.project_name.ilike(like, escape="\\"),
            Inspection.location.ilike(like, escape="\\"),
        ))

    total = (
        await session.execute(select(func.count()).select_from(Inspection).where(*filters))
    ).scalar_one()

    hazard_count = func.count(Hazard.id)
    extreme_count = func.coalesce(func.sum(case((Hazard.risk_level == RiskLevel.EXTREME, 1), else_=0)), 0)
    high_count = func.coalesce(func.sum(case((Hazard.risk_level == RiskLevel.HIGH, 1), else_=0)), 0)
    stmt = (
        select(Inspection, hazard_count, extreme_count, high_count)
        .outerjoin(Hazard, Hazard.inspection_id == Inspection.id)
        .where(*filters)
        .group_by(Inspection.id)
        .order_by(Inspection.created_at.desc(), Inspection.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = (await session.execute(stmt)).all()

    items = [
        InspectionSummary(
            **InspectionRead.model_validate(inspection).model_dump(),
            hazard_count=int(hazards or 0),
            extreme_count=int(extreme or 0),
            high_count=int(high or 0),
        )
        for inspection, hazards, extreme, high in rows
    ]
    return items, total, page, limit


async def get_inspection_detail(
    session: AsyncSession, user_id: int, inspection_id: int
) -> Tuple[Inspection, List[Hazard]]:
    inspection = await get_owned_inspection(session, user_id, inspection_id)
    return inspection, await list_hazards(session, inspection.id)


# --- risk roll-up ---

async def recompute_overall_risk(session: AsyncSession, inspection: Inspection) -> Optional[RiskLevel]:
    """Set overall_risk_level to the level of the highest-scoring hazard (None if there are none)."""
    max_score = (
        await session.execute(
            select(func.max(Hazard.risk_score)).where(Hazard.inspection_id == inspection.id)
        )
    ).scalar_one_or_none()
    level = classify(max_score) if max_score is not None else None
    inspection.overall_risk_level = level
    inspection.updated_at = datetime.utcnow()
    session.add(inspection)
    return level


# --- analysis flow ---

async def create_inspection(
    session: AsyncSession,
    user_id: int,
    payload: InspectionCreate,
    image_path: str,
    image_filename: Optional[str] = None,
) -> Inspection:
    inspection = Inspection(
        user_id=user_id,
        image_path=image_path,
        image_filename=image_filename,
        status=InspectionStatus.PENDING,
        **payload.model_dump(),
    )
    async with _transaction(session, "create inspection"):
        session.add(inspection)
    await session.refresh(inspection)
    logger.info("Inspection created", extra={"inspection_id": inspection.id, "user_id": user_id})
    return inspection


async def start_analysis(session: AsyncSession, inspection: Inspection) -> None:
    transition(inspection, InspectionStatus.ANALYZING)
    async with _transaction(session, "start analysis"):
        session.add(inspection)


async def ingest_analysis(session: AsyncSession, inspection: Inspection, result: AIAnalysisResult) -> List[Hazard]:
    """Store every hazard of one AI result and complete the inspection, atomically."""
    inspection_id = inspection.id
    hazards = [Hazard(inspection_id=inspection_id, **normalize(raw).model_dump()) for raw in result.hazards]
    overall = (
        parse_risk_level(result.overall_risk_level)
        or (classify(max(h.risk_score for h in hazards)) if hazards else None)
        or RiskLevel.LOW
    )

    transition(inspection, InspectionStatus.COMPLETED)
    try:
        for hazard in hazards:
            session.add(hazard)
            await session.flush()
        inspection.ai_summary = result.summary
        inspection.overall_risk_level = overall
        session.add(inspection)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Hazard batch rolled back", exc_info=True, extra={"inspection_id": inspection_id})
        raise PersistenceError(f"Could not store analysis for inspection {inspection_id}") from exc

    logger.info(
        "Analysis stored",
        extra={"inspection_id": inspection_id, "hazards": len(hazards), "overall_risk_level": overall.value},
    )
    return sorted(hazards, key=lambda h: h.risk_score, reverse=True)


async def mark_failed(session: AsyncSession, inspection_id: int) -> Optional[Inspection]:
    inspection = await session.get(Inspection, inspection_id, populate_existing=True)
    if inspection is None:
        return None
    if inspection.status in (InspectionStatus.PENDING, InspectionStatus.ANALYZING):
        transition(inspection, InspectionStatus.FAILED)
        async with _transaction(session, "mark inspection failed"):
            session.add(inspection)
    return inspection


def _failure_message(exc: Exception, timeout: float) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return f"AI analysis timed out after {timeout:g} seconds"
    if isinstance(exc, PersistenceError):
        return "Could not store the analysis result"
    if isinstance(exc, AppError):
        return exc.message
    return "Unexpected error during AI analysis"


async def run_analysis(
    session: AsyncSession,
    inspection: Inspection,
    analyzer,
    image_bytes: bytes,
    mime_type: str,
    timeout: float,
) -> Tuple[List[Hazard], AIAnalysisResult]:
    """pending -> analyzing -> completed, or -> failed with AnalysisFailedError.

    ``analyzer`` is anything with ``async analyze_image(image_bytes, mime_type)``
    returning an AIAnalysisResult.
    """
    inspection_id = inspection.id
    try:
        await start_analysis(session, inspection)
        result = await asyncio.wait_for(analyzer.analyze_image(image_bytes, mime_type), timeout=timeout)
        hazards = await ingest_analysis(session, inspection, result)
    except InvalidStateTransition:
        raise
    except Exception as exc:
        message = _failure_message(exc, timeout)
        logger.warning(
            "Analysis failed: %s", message,
            exc_info=not isinstance(exc, (AppError, asyncio.TimeoutError)),
            extra={"inspection_id": inspection_id},
        )
        try:
            await mark_failed(session, inspection_id)
        except (PersistenceError, SQLAlchemyError):
            # left pending/analyzing; the startup sweep fails it later
            logger.error("Could not mark inspection failed", exc_info=True, extra={"inspection_id": inspection_id})
        raise AnalysisFailedError(inspection_id, message) from exc
    return hazards, result


async def sweep_stale_analyses(session: AsyncSession, older_than: timedelta, now: Optional[datetime] = None) -> int:
    """Fail inspections left pending/analyzing by a crashed process."""
    now = now or datetime.utcnow()
    stmt = (
        update(Inspection)
        .where(
            Inspection.status.in_([InspectionStatus.PENDING, InspectionStatus.ANALYZING]),
            Inspection.updated_at < now - older_than,
        )
        .values(status=InspectionStatus.FAILED, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    async with _transaction(session, "sweep stale analyses"):
        result = await session.execute(stmt)
    if result.rowcount:
        logger.warning("Marked stale analyses as failed", extra={"count": result.rowcount})
    return result.rowcount or 0


# --- manual hazard edits ---

async def add_hazard(session: AsyncSession, user_id: int, inspection_id: int, payload: HazardCreate) -> Hazard:
    inspection = await get_owned_inspection(session, user_id, inspection_id)
    severity = clamp_rating(payload.severity)
    likelihood = clamp_rating(payload.likelihood)
    risk_score, risk_level = score(severity, likelihood)

    hazard = Hazard(
        inspection_id=inspection.id,
        description=payload.description,
        category=payload.category,
        hazard_type=payload.hazard_type,
        severity=severity,
        likelihood=likelihood,
        risk_score=risk_score,
        risk_level=risk_level,
        engineering_control=payload.engineering_control,
        administrative_control=payload.administrative_control,
        ppe_control=payload.ppe_control,
        immediate_action=payload.immediate_action,
        confidence=MANUAL_CONFIDENCE,
    )
    async with _transaction(session, "add hazard"):
        session.add(hazard)
        await session.flush()
        await recompute_overall_risk(session, inspection)
    return hazard


async def override_hazard(session: AsyncSession, user_id: int, hazard_id: int, payload: HazardUpdate) -> Hazard:
    hazard = await get_owned_hazard(session, user_id, hazard_id)

    changes = payload.supplied()
    severity = clamp_rating(changes.pop("severity", hazard.severity))
    likelihood = clamp_rating(changes.pop("likelihood", hazard.likelihood))
    risk_score, risk_level = score(severity, likelihood)
    changes.update(severity=severity, likelihood=likelihood, risk_score=risk_score, risk_level=risk_level)

    if all(getattr(hazard, field) == value for field, value in changes.items()):
        return hazard

    async with _transaction(session, "update hazard"):
        for field, value in changes.items():
            setattr(hazard, field, value)
        session.add(hazard)
        await session.flush()
        inspection = await session.get(Inspection, hazard.inspection_id)
        await recompute_overall_risk(session, inspection)
    logger.info("Hazard overridden", extra={"hazard_id": hazard_id, "risk_score": risk_score})
    return hazard


async def delete_inspection(session: AsyncSession, user_id: int, inspection_id: int, storage) -> None:
    """Delete the photograph (best-effort) and the inspection; hazards cascade in the database."""
    inspection = await get_owned_inspection(session, user_id, inspection_id)
    storage.delete(inspection.image_path)
    async with _transaction(session, "delete inspection"):
        await session.delete(inspection)
    logger.info("Inspection deleted", extra={"inspection_id": inspection_id, "user_id": user_id})
