# backend/secdash/api/v1/imports.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from secdash.api.dependencies import CurrentUser, ensure_role, get_current_user, require_role
from secdash.core.config import settings
from secdash.core.constants import IMPORT_ROLES, SourceTag, UserRole
from secdash.core.exceptions import InputRejectedError
from secdash.db.session import get_db
from secdash.ingestion import IMPORTABLE_SOURCES, ImportSummary, create_importer
from secdash.ingestion.file_naming import validate_filename
from secdash.ingestion.file_parser import FileParser
from secdash.schemas.ingestion import ImportResponse, PreviewResponse, UploadResponse

router = APIRouter()

# Sources that stay admin-only even through the filename-routed endpoint
ADMIN_ONLY_UPLOADS = (
    SourceTag.SCORECARD_ISSUES.value,
    SourceTag.SCORECARD_RATING.value,
    SourceTag.PERIMETER_PROTECTION.value,
    SourceTag.XDR_SECUREWORKS.value,
)

PREVIEW_ROWS = 50


async def read_upload(file: Optional[UploadFile]) -> bytes:
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.MAX_UPLOAD_BYTES} bytes"
        )
    return content


def summary_message(summary: ImportSummary) -> str:
    if summary.success:
        return f"Successfully imported {summary.processed_count} records"
    return f"Import failed: {summary.processed_count} records imported, {summary.error_count} errors"


@router.post("/imports/{source}", response_model=ImportResponse)
async def import_source(
    source: str,
    file: UploadFile = File(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Import one vendor CSV export.

    ``source`` is a source tag such as ``falcon_detections``. Row failures are
    reported in the response; only an unusable file is rejected with 400.
    """
    if source not in IMPORTABLE_SOURCES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown source: {source}")
    ensure_role(current_user, *IMPORT_ROLES[source])

    content = await read_upload(file)
    importer = create_importer(db, source)
    try:
        summary = await importer.import_csv(content, file.filename)
    except InputRejectedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ImportResponse(message=summary_message(summary), **summary.__dict__)


@router.post("/uploads", response_model=UploadResponse)
async def upload_file(
    file: UploadFile = File(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN, UserRole.ANALYST)),
):
    """Import a file routed by its name, e.g. ``Falcon_DETECTIONS_20241224.csv``"""
    content = await read_upload(file)

    validation = validate_filename(file.filename)
    if not validation.is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation.error)
    if not validation.importable:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Import of {validation.rule.description} is not supported"
        )

    source = validation.rule.source_tag
    if source in ADMIN_ONLY_UPLOADS:
        ensure_role(current_user, UserRole.ADMIN)

    report_date = None
    if validation.extracted_date:
        report_date = datetime.strptime(validation.extracted_date, "%Y%m%d").date()

    importer = create_importer(db, source)
    try:
        summary = await importer.import_csv(content, file.filename, source_tag=source, report_date=report_date)
    except InputRejectedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return UploadResponse(
        message=summary_message(summary),
        source=source,
        file_type=validation.file_type,
        extracted_date=validation.extracted_date,
        **summary.__dict__,
    )


@router.post("/uploads/preview", response_model=PreviewResponse)
async def preview_file(
    file: UploadFile = File(None),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN, UserRole.ANALYST)),
):
    """Detect a file's type and show its first normalized rows; nothing is stored"""
    content = await read_upload(file)
    parsed = FileParser().parse(file.filename, content)
    return PreviewResponse(
        type=parsed.type,
        row_count=len(parsed.data),
        data=parsed.data[:PREVIEW_ROWS],
        errors=parsed.errors,
    )
