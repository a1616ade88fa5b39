# backend/secdash/schemas/ingestion.py
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel


class ImportResponse(BaseModel):
    success: bool
    message: str
    processed_count: int
    ingestion_log_id: str
    errors: List[str] = []
    error_count: int = 0
    error_csv: Optional[str] = None


class UploadResponse(ImportResponse):
    source: str
    file_type: str
    extracted_date: Optional[str] = None


class PreviewResponse(BaseModel):
    type: str
    row_count: int
    data: List[dict] = []
    errors: List[str] = []


class IngestionLogResponse(BaseModel):
    id: str
    filename: str
    file_type: str
    checksum: str
    source: str
    rows_processed: int
    report_date: Optional[date] = None
    status: str
    error_log: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
