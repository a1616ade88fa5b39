# backend/secdash/ingestion/orchestrator.py
"""
Upload orchestration: one IngestionLog per upload, rows processed in file
order, each row's failure recorded and skipped.

    PENDING -> (rows) -> SUCCESS | FAILED
"""
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from secdash.core.constants import DEFAULT_ERROR_PREVIEW, PROGRESS_LOG_EVERY, IngestionStatus
from secdash.core.exceptions import InputRejectedError, RowError
from secdash.core.hashing import content_checksum
from secdash.core.logging import logger
from secdash.db.base import utcnow
from secdash.db.repositories.base import BaseRepository
from secdash.db.repositories.ingestion_log_repository import IngestionLogRepository
from secdash.ingestion.csv_tokenizer import parse_header, tokenize_line
from secdash.ingestion.file_naming import extract_report_date
from secdash.ingestion.normalizers.base import BaseNormalizer, RowContext


@dataclass
class ImportSummary:
    success: bool
    processed_count: int
    ingestion_log_id: str
    errors: List[str] = field(default_factory=list)
    error_count: int = 0
    error_csv: Optional[str] = None


def build_error_csv(errors: List[str]) -> str:
    """
    Two-column ``Row,Error`` CSV of row errors.

    Each entry is split at its first colon into the row label and message;
    both cells are quoted with embedded quotes doubled.
    """
    lines = ["Row,Error"]
    for error in errors:
        row, _, message = error.partition(":")
        row = row.replace('"', '""')
        message = message.strip().replace('"', '""')
        lines.append(f'"{row}","{message}"')
    return "\n".join(lines)


def decode_upload(content: Optional[bytes], filename: Optional[str]) -> str:
    """Reject unusable uploads before anything is written."""
    if not content or not filename:
        raise InputRejectedError("No file provided")
    if not filename.lower().endswith(".csv"):
        raise InputRejectedError("Only CSV files are supported")
    text = content.decode("utf-8-sig", errors="replace")
    if not text.strip():
        raise InputRejectedError("CSV file must contain at least a header row")
    return text


class IngestionRun:
    """Ingestion log bookkeeping shared by the CSV and report importers."""

    source: str = ""
    error_preview_limit: int = DEFAULT_ERROR_PREVIEW

    def __init__(self, session: AsyncSession):
        self.session = session
        self.logs = IngestionLogRepository(session)

    async def _open_log(
        self,
        content: bytes,
        filename: str,
        source: str,
        report_date: Optional[date]
    ) -> str:
        log = await self.logs.create({
            "filename": filename,
            "file_type": "csv",
            "checksum": content_checksum(content),
            "source": source,
            "rows_processed": 0,
            "report_date": report_date,
            "status": IngestionStatus.PENDING.value,
        })
        logger.info(
            f"Ingestion started for {filename}",
            extra={"ingestion_log_id": log.id, "source": source}
        )
        return log.id

    async def _close_log(self, log_id: str, processed: int, errors: List[str]) -> IngestionStatus:
        status = IngestionStatus.SUCCESS if processed > 0 else IngestionStatus.FAILED
        await self.logs.update(log_id, {
            "rows_processed": processed,
            "status": status.value,
            "error_log": "; ".join(errors) if errors else None,
            "updated_at": utcnow(),
        })
        logger.info(
            f"Ingestion finished: {processed} rows, {len(errors)} errors",
            extra={"ingestion_log_id": log_id, "source": self.source}
        )
        return status

    async def _fail_log(self, log_id: str, message: str) -> None:
        await self.session.rollback()
        await self.logs.update(log_id, {
            "status": IngestionStatus.FAILED.value,
            "error_log": message,
            "updated_at": utcnow(),
        })

    def _summary(self, log_id: str, status: IngestionStatus, processed: int, errors: List[str]) -> ImportSummary:
        return ImportSummary(
            success=status == IngestionStatus.SUCCESS,
            processed_count=processed,
            ingestion_log_id=log_id,
            errors=errors[:self.error_preview_limit],
            error_count=len(errors),
            error_csv=build_error_csv(errors) if errors else None,
        )


class CsvImporter(IngestionRun):
    """
    Imports one CSV upload through a source normalizer.

    Rows are upserted one at a time in file order. Any exception while
    handling a row is rolled back and reported as ``Row {n}: {message}``,
    where n is the 1-based data row (the header is not counted).
    """

    def __init__(self, session: AsyncSession, normalizer: BaseNormalizer):
        super().__init__(session)
        self.normalizer = normalizer
        self.source = normalizer.source
        self.error_preview_limit = normalizer.error_preview_limit
        self.records = BaseRepository(normalizer.model, session)

    async def import_csv(
        self,
        content: bytes,
        filename: str,
        source_tag: Optional[str] = None,
        report_date: Optional[date] = None
    ) -> ImportSummary:
        text = decode_upload(content, filename)
        source = source_tag or self.normalizer.source
        report_date = report_date or extract_report_date(filename) or date.today()

        log_id = await self._open_log(content, filename, source, report_date)
        try:
            processed, errors = await self._process_rows(text, report_date, log_id)
            status = await self._close_log(log_id, processed, errors)
        except Exception as e:
            logger.error(
                f"Ingestion aborted: {e}",
                exc_info=True,
                extra={"ingestion_log_id": log_id, "source": source}
            )
            await self._fail_log(log_id, str(e))
            raise

        return self._summary(log_id, status, processed, errors)

    async def _process_rows(self, text: str, report_date: date, log_id: str):
        normalizer = self.normalizer
        rows = normalizer.split_rows(text)
        headers = parse_header(rows[0])
        columns = normalizer.resolve_columns(headers)
        required = normalizer.min_columns(headers)

        processed = 0
        errors: List[str] = []

        for ordinal, line in enumerate(rows[1:], start=1):
            try:
                values = tokenize_line(line.strip(), track_nesting=normalizer.track_nesting)
                if len(values) < required:
                    if not normalizer.pad_short_rows:
                        raise RowError(f"Insufficient columns (expected {required}, got {len(values)})")
                    values.extend([""] * (required - len(values)))

                record = normalizer.normalize(RowContext(
                    headers=headers,
                    values=values,
                    columns=columns,
                    ordinal=ordinal,
                    report_date=report_date,
                ))
                await self.records.upsert(
                    normalizer.key_field, record.key, record.values, merge=normalizer.merge
                )
                processed += 1

                if processed % PROGRESS_LOG_EVERY == 0:
                    logger.info(
                        f"Processed {processed} rows",
                        extra={"ingestion_log_id": log_id, "source": self.source}
                    )
            except RowError as e:
                errors.append(f"Row {ordinal}: {e}")
                logger.warning(
                    f"Row {ordinal} rejected: {e}",
                    extra={"ingestion_log_id": log_id, "source": self.source}
                )
            except Exception as e:
                await self.session.rollback()
                message = str(e) or "Processing error"
                errors.append(f"Row {ordinal}: {message}")
                logger.warning(
                    f"Row {ordinal} rejected: {message}",
                    extra={"ingestion_log_id": log_id, "source": self.source}
                )

        return processed, errors
