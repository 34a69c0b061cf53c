"""CSV bulk import of retailers.

Rows are validated one by one; valid rows are inserted in batches through
``RetailerDirectory.bulk_create``. A failing batch is counted as failed as a
whole and does not stop the batches around it.
"""

from __future__ import annotations

import csv
import io
from typing import Any

from loguru import logger
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from retailer_desk.core.concurrency import run_in_thread_limited
from retailer_desk.core.config import settings
from retailer_desk.core.exceptions import NotFoundError, ValidationFailure
from retailer_desk.schemas.retailer import RetailerCreate
from retailer_desk.services.retailers import RetailerDirectory

REQUIRED_COLUMNS = ("uid", "name", "phone", "regionId", "areaId", "distributorId", "territoryId")
_ID_COLUMNS = {
    "regionId": "region_id",
    "areaId": "area_id",
    "distributorId": "distributor_id",
    "territoryId": "territory_id",
}


def _parse_int(value: str) -> int:
    return int(value.strip())


def _row_to_record(row: dict[str, Any]) -> RetailerCreate:
    data: dict[str, Any] = {
        "uid": row["uid"].strip(),
        "name": row["name"].strip(),
        "phone": row["phone"].strip(),
        "routes": (row.get("routes") or "").strip() or None,
        "notes": (row.get("notes") or "").strip() or None,
    }
    for column, field_name in _ID_COLUMNS.items():
        data[field_name] = _parse_int(row[column])
    points = (row.get("points") or "").strip()
    data["points"] = _parse_int(points) if points else 0
    return RetailerCreate(**data)


def parse_retailer_csv(content: bytes) -> tuple[list[RetailerCreate], list[str]]:
    """Parse CSV bytes into validated records plus per-row error messages.

    Row numbers count the header as row 1.
    """

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationFailure(f"CSV parsing error: {exc}") from exc

    reader = csv.DictReader(io.StringIO(text))
    records: list[RetailerCreate] = []
    errors: list[str] = []
    try:
        for row_number, row in enumerate(reader, start=2):
            if any(not (row.get(column) or "").strip() for column in REQUIRED_COLUMNS):
                errors.append(f"Row {row_number}: Missing required fields")
                continue
            try:
                records.append(_row_to_record(row))
            except ValidationError as exc:
                message = "; ".join(
                    f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in exc.errors()
                )
                errors.append(f"Row {row_number}: {message}")
            except ValueError:
                errors.append(f"Row {row_number}: Invalid numeric values")
    except csv.Error as exc:
        raise ValidationFailure(f"CSV parsing error: {exc}") from exc
    return records, errors


class RetailerCsvImporter:
    def __init__(self, directory: RetailerDirectory) -> None:
        self.directory = directory

    async def import_csv(self, content: bytes) -> dict[str, Any]:
        records, errors = await run_in_thread_limited(parse_retailer_csv, content)

        imported = 0
        failed = 0
        batch_size = settings.IMPORT_BATCH_SIZE
        for start in range(0, len(records), batch_size):
            batch = records[start : start + batch_size]
            batch_number = start // batch_size + 1
            try:
                imported += await self.directory.bulk_create(batch)
            except (SQLAlchemyError, NotFoundError) as exc:
                await self.directory.session.rollback()
                failed += len(batch)
                reason = exc.detail if isinstance(exc, NotFoundError) else getattr(exc, "orig", exc)
                errors.append(f"Batch {batch_number}: {reason}")
                logger.bind(batch=batch_number, size=len(batch), error=str(exc)).warning(
                    "retailer_import_batch_failed"
                )

        logger.bind(imported=imported, failed=failed, rows=len(records)).info("retailer_import_completed")
        return {
            "success": True,
            "imported": imported,
            "failed": failed,
            "errors": errors[: settings.IMPORT_MAX_ERRORS],
        }
