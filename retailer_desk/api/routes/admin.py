"""Administrator endpoints: retailer maintenance, CSV import and assignments."""

from fastapi import APIRouter, Depends, File, Request, UploadFile

from retailer_desk.api.deps import (
    RetailerQuery,
    get_directory,
    get_registry,
    retailer_query,
)
from retailer_desk.core.audit import log_audit
from retailer_desk.core.config import settings
from retailer_desk.core.deps import CallerIdentity, require_admin
from retailer_desk.core.exceptions import NotFoundError, ValidationFailure
from retailer_desk.core.rate_limit import limiter
from retailer_desk.schemas.assignment import BulkAssignmentIn, BulkAssignmentOut, BulkUnassignmentIn
from retailer_desk.schemas.common import ApiResponse, PaginatedResponse
from retailer_desk.schemas.retailer import CsvImportResult, RetailerCreate, RetailerOut, RetailerUpdate
from retailer_desk.services.assignments import AssignmentRegistry
from retailer_desk.services.csv_import import RetailerCsvImporter
from retailer_desk.services.retailers import RetailerDirectory

router = APIRouter(prefix="/admin", tags=["admin"])

_CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel"}
_CLEARABLE_FIELDS = {"routes", "notes"}


def _remote(request: Request):
    return request.client.host if request.client else None


@router.get("/retailers", response_model=PaginatedResponse[RetailerOut])
async def search_retailers(
    query: RetailerQuery = Depends(retailer_query),
    user: CallerIdentity = Depends(require_admin),
    directory: RetailerDirectory = Depends(get_directory),
):
    result = await directory.search(query.filters, query.page, query.limit)
    return PaginatedResponse(data=result["items"], meta=result["meta"])


@router.get("/retailers/{retailer_id}", response_model=ApiResponse[RetailerOut])
async def get_retailer(
    retailer_id: int,
    user: CallerIdentity = Depends(require_admin),
    directory: RetailerDirectory = Depends(get_directory),
):
    retailer = await directory.find_by_id(retailer_id)
    if retailer is None:
        raise NotFoundError("Retailer not found")
    return ApiResponse(data=retailer)


@router.post("/retailers", response_model=ApiResponse[RetailerOut], status_code=201)
async def create_retailer(
    payload: RetailerCreate,
    request: Request,
    user: CallerIdentity = Depends(require_admin),
    directory: RetailerDirectory = Depends(get_directory),
):
    retailer = await directory.create(payload)
    log_audit(user.id, "retailer", payload.uid, "CREATE", details=payload.model_dump(), remote_addr=_remote(request))
    return ApiResponse(data=retailer, message="Retailer created successfully")


@router.put("/retailers/{retailer_id}", response_model=ApiResponse[RetailerOut])
async def update_retailer(
    retailer_id: int,
    payload: RetailerUpdate,
    request: Request,
    user: CallerIdentity = Depends(require_admin),
    directory: RetailerDirectory = Depends(get_directory),
):
    changes = payload.model_dump(exclude_unset=True)
    # routes/notes may be cleared with null; the other columns may not.
    changes = {k: v for k, v in changes.items() if v is not None or k in _CLEARABLE_FIELDS}
    retailer = await directory.update(retailer_id, changes)
    log_audit(user.id, "retailer", str(retailer_id), "UPDATE", details=changes, remote_addr=_remote(request))
    return ApiResponse(data=retailer, message="Retailer updated successfully")


@router.delete("/retailers/{retailer_id}", response_model=ApiResponse[None])
async def delete_retailer(
    retailer_id: int,
    request: Request,
    user: CallerIdentity = Depends(require_admin),
    directory: RetailerDirectory = Depends(get_directory),
):
    await directory.delete(retailer_id)
    log_audit(user.id, "retailer", str(retailer_id), "DELETE", remote_addr=_remote(request))
    return ApiResponse(message="Retailer deleted successfully")


@router.post("/retailers/import", response_model=ApiResponse[CsvImportResult])
@limiter.limit(settings.IMPORT_RATE)
async def import_retailers(
    request: Request,
    file: UploadFile = File(...),
    user: CallerIdentity = Depends(require_admin),
    directory: RetailerDirectory = Depends(get_directory),
):
    filename = (file.filename or "").lower()
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type not in _CSV_CONTENT_TYPES and not filename.endswith(".csv"):
        raise ValidationFailure("Only CSV files are allowed")
    content = await file.read()
    if not content:
        raise ValidationFailure("CSV file is required")

    result = await RetailerCsvImporter(directory).import_csv(content)
    log_audit(
        user.id,
        "retailer",
        None,
        "IMPORT",
        details={"filename": file.filename, "imported": result["imported"], "failed": result["failed"]},
        remote_addr=_remote(request),
    )
    return ApiResponse(
        data=result,
        message=f"Import completed: {result['imported']} imported, {result['failed']} failed",
    )


@router.post("/assignments/bulk", response_model=ApiResponse[BulkAssignmentOut])
async def bulk_assign(
    payload: BulkAssignmentIn,
    request: Request,
    user: CallerIdentity = Depends(require_admin),
    registry: AssignmentRegistry = Depends(get_registry),
):
    result = await registry.bulk_assign(payload.sales_rep_id, payload.retailer_ids)
    log_audit(
        user.id,
        "assignment",
        str(payload.sales_rep_id),
        "ASSIGN",
        details={"retailer_ids": payload.retailer_ids, "assigned": result["assigned"]},
        remote_addr=_remote(request),
    )
    return ApiResponse(data=result, message=result["message"])


@router.post("/assignments/bulk-unassign", response_model=ApiResponse[BulkAssignmentOut])
async def bulk_unassign(
    payload: BulkUnassignmentIn,
    request: Request,
    user: CallerIdentity = Depends(require_admin),
    registry: AssignmentRegistry = Depends(get_registry),
):
    result = await registry.bulk_unassign(payload.sales_rep_id, payload.retailer_ids)
    log_audit(
        user.id,
        "assignment",
        str(payload.sales_rep_id),
        "UNASSIGN",
        details={"retailer_ids": payload.retailer_ids, "removed": result["assigned"]},
        remote_addr=_remote(request),
    )
    return ApiResponse(data=result, message=result["message"])
