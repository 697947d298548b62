from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
import io

from app.api.deps import get_storage
from app.core.database import get_session
from app.core.exceptions import NotFoundError
from app.core.security import CurrentUser, get_current_user
from app.schemas.reports import InspectionReport
from app.services.inspection_service import get_owned_inspection
from app.services.report_service import EXPORT_FORMATS, build_report, export_report, report_filename
from utils.file_utils import ImageStorage

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/{inspection_id}", response_model=InspectionReport)
async def get_report(
    inspection_id: int,
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
):
    return await build_report(session, user.id, inspection_id)


@router.get("/{inspection_id}/export")
async def export(
    inspection_id: int,
    format: str = Query("csv", pattern="^(csv|json)$"),
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
):
    report = await build_report(session, user.id, inspection_id)
    data = export_report(report, fmt=format)
    filename = report_filename(report, format)
    return StreamingResponse(
        io.BytesIO(data),
        media_type=EXPORT_FORMATS[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{inspection_id}/image")
async def get_image(
    inspection_id: int,
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
    storage: ImageStorage = Depends(get_storage),
):
    inspection = await get_owned_inspection(session, user.id, inspection_id)
    if not storage.exists(inspection.image_path):
        raise NotFoundError("Image file not found")
    return FileResponse(
        inspection.image_path,
        media_type=storage.mime_type(inspection.image_path),
        filename=inspection.image_filename,
    )
