"""
Watchlist management API routes.

GET lists plates, POST adds one, DELETE removes one. Any other method
on the collection gets 405 from the router.
"""

from typing import Annotated

from fastapi import APIRouter, File, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from borderwatch.api.deps import ApiKeyAuth, Watchlist
from borderwatch.application.csv_import import import_plate_csv
from borderwatch.core.logging import get_logger
from borderwatch.domain.services import InvalidPlateError

logger = get_logger(__name__)

router = APIRouter(prefix="/watchlist", tags=["watchlist"])


class PlateRequest(BaseModel):
    """Request body naming a single plate."""

    plate: str | None = Field(
        default=None,
        description="Plate text; normalized before use",
        examples=["AKH 123B"],
    )


class WatchlistResponse(BaseModel):
    """Current watchlist."""

    plates: list[str] = Field(description="Normalized plates, newest first")


class WatchlistUpdateResponse(WatchlistResponse):
    """Result of adding or removing a plate."""

    success: bool


class WatchlistImportResponse(WatchlistResponse):
    """Result of a CSV import."""

    imported: int = Field(description="Plates read from the file")


@router.get(
    "",
    response_model=WatchlistResponse,
    summary="List watchlist",
)
async def list_watchlist(watchlist: Watchlist) -> WatchlistResponse:
    """List suspicious plates, newest first."""
    return WatchlistResponse(plates=await watchlist.list_plates())


@router.post(
    "",
    response_model=WatchlistUpdateResponse,
    summary="Add plate",
    responses={400: {"description": "Plate required"}},
)
async def add_plate(
    request: PlateRequest,
    watchlist: Watchlist,
    _: ApiKeyAuth,
) -> WatchlistUpdateResponse:
    """Add a plate. Adding a plate already present is a no-op."""
    try:
        plates = await watchlist.add(request.plate)
    except InvalidPlateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return WatchlistUpdateResponse(success=True, plates=plates)


@router.delete(
    "",
    response_model=WatchlistUpdateResponse,
    summary="Remove plate",
    responses={400: {"description": "Plate required"}},
)
async def remove_plate(
    request: PlateRequest,
    watchlist: Watchlist,
    _: ApiKeyAuth,
) -> WatchlistUpdateResponse:
    """Remove every entry matching the plate."""
    try:
        plates = await watchlist.remove(request.plate)
    except InvalidPlateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return WatchlistUpdateResponse(success=True, plates=plates)


@router.post(
    "/import",
    response_model=WatchlistImportResponse,
    summary="Import plates from CSV",
    description="Merge the first column of an uploaded CSV into the watchlist.",
)
async def import_watchlist(
    file: Annotated[UploadFile, File(description="CSV file, one plate per row")],
    watchlist: Watchlist,
    _: ApiKeyAuth,
) -> WatchlistImportResponse:
    """Import suspicious plates from a CSV upload."""
    content = await file.read()
    imported, plates = await import_plate_csv(content, watchlist)

    logger.info("watchlist_csv_uploaded", filename=file.filename, imported=imported)

    return WatchlistImportResponse(imported=imported, plates=plates)
