from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_analyzer, get_storage
from app.core.config import Settings
from app.core.database import get_session
from app.core.exceptions import ValidationError
from app.core.security import CurrentUser, get_current_user, get_settings
from app.models.hazard import RiskLevel
from app.schemas.inspections import (
    AnalysisResponse,
    HazardCreate,
    HazardRead,
    HazardUpdate,
    InspectionCreate,
    InspectionDetail,
    InspectionListResponse,
    InspectionRead,
)
from app.services import inspection_service
from utils.file_utils import ImageStorage

router = APIRouter(prefix="/inspections", tags=["inspections"])

REQUIRED_METADATA = {"project_name", "inspection_date"}


def _metadata_error(exc: PydanticValidationError) -> ValidationError:
    fields = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
    if fields & REQUIRED_METADATA:
        return ValidationError("Project name and inspection date are required")
    return ValidationError(f"Invalid inspection metadata: {', '.join(sorted(fields))}")


@router.get("", response_model=InspectionListResponse)
async def list_inspections(
    risk_level: Optional[RiskLevel] = None,
    search: Optional[str] = None,
    page: int = Query(1),
    limit: int = Query(inspection_service.DEFAULT_PAGE_SIZE),
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
):
    items, total, page, limit = await inspection_service.list_inspections(
        session, user.id, risk_level=risk_level, search=search, page=page, limit=limit
    )
    return InspectionListResponse(inspections=items, total=total, page=page, limit=limit)


@router.post("/analyze", response_model=AnalysisResponse, status_code=status.HTTP_201_CREATED)
async def analyze_inspection(
    image: Optional[UploadFile] = File(None),
    project_name: Optional[str] = Form(None),
    inspection_date: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    location_accuracy: Optional[str] = Form(None),
    inspector_name: Optional[str] = Form(None),
    department: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
    storage: ImageStorage = Depends(get_storage),
    analyzer=Depends(get_analyzer),
    settings: Settings = Depends(get_settings),
):
    """Upload a site photograph, run the HIRA analysis and store the hazards."""
    if image is None or not image.filename:
        raise ValidationError("Image file is required")
    try:
        payload = InspectionCreate(
            project_name=project_name,
            inspection_date=inspection_date,
            location=location,
            latitude=latitude,
            longitude=longitude,
            location_accuracy=location_accuracy,
            inspector_name=inspector_name,
            department=department,
            notes=notes,
        )
    except PydanticValidationError as exc:
        raise _metadata_error(exc) from exc

    stored = await storage.save(image)
    try:
        inspection = await inspection_service.create_inspection(
            session, user.id, payload, image_path=stored.path, image_filename=stored.original_filename
        )
    except Exception:
        # no record points at the photo yet
        storage.delete(stored.path)
        raise
    hazards, result = await inspection_service.run_analysis(
        session,
        inspection,
        analyzer,
        stored.content,
        stored.mime_type,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )
    return AnalysisResponse(
        inspection=InspectionRead.model_validate(inspection),
        hazards=[HazardRead.model_validate(h) for h in hazards],
        ai_result=result,
    )


@router.put("/hazards/{hazard_id}", response_model=HazardRead)
async def update_hazard(
    hazard_id: int,
    payload: HazardUpdate,
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
):
    hazard = await inspection_service.override_hazard(session, user.id, hazard_id, payload)
    return HazardRead.model_validate(hazard)


@router.get("/{inspection_id}", response_model=InspectionDetail)
async def get_inspection(
    inspection_id: int,
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
):
    inspection, hazards = await inspection_service.get_inspection_detail(session, user.id, inspection_id)
    return InspectionDetail(
        inspection=InspectionRead.model_validate(inspection),
        hazards=[HazardRead.model_validate(h) for h in hazards],
    )


@router.post("/{inspection_id}/hazards", response_model=HazardRead, status_code=status.HTTP_201_CREATED)
async def add_hazard(
    inspection_id: int,
    payload: HazardCreate,
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
):
    hazard = await inspection_service.add_hazard(session, user.id, inspection_id, payload)
    return HazardRead.model_validate(hazard)


@router.delete("/{inspection_id}")
async def delete_inspection(
    inspection_id: int,
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
    storage: ImageStorage = Depends(get_storage),
):
    await inspection_service.delete_inspection(session, user.id, inspection_id, storage)
    return {"message": "Inspection deleted successfully"}
