"""
Bin Tracker — Bin Route Handlers
=================================

What:  The bin endpoints: JSON/HTML reads, metadata upsert, photo upload
       and photo download.
How:   Extracts path, query and raw body, delegates to BinService, formats
       the response. Missing bins on the read endpoints are answered here
       (they are a normal state, not an error); missing photos raise
       NotFoundError for the global handler.

Route Inventory:
    GET  /api/bin/{bin_id}          JSON read
    GET  /bin/{bin_id}?format=json  JSON read
    GET  /bin/{bin_id}              HTML read
    POST /bin/{bin_id}              metadata upsert (JSON body)
    GET  /bin/{bin_id}/photo        stream latest photo
    POST /bin/{bin_id}/photo        upload photo (raw body)

Unmatched paths (404) and wrong verbs on these paths (405) are produced by
the router itself; see the HTTPException handler in main.py.
"""

import logging
from typing import List, Optional, Set

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from pydantic import ValidationError as PydanticValidationError

from bintracker.config import settings
from bintracker.dependencies import get_bin_service
from bintracker.exceptions import BadRequestError
from bintracker.schemas.bin import (
    BinMetadataUpdate,
    BinNotFound,
    BinView,
    BinWriteResponse,
    ErrorResponse,
    PhotoUploadResponse,
)
from bintracker.services.bin_service import BinService, photo_url, to_record, to_view
from bintracker.services.pages import render_bin_page

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Bins"])

METADATA_BODY_HINT = "Expected JSON body with fields case_code/bin_type/notes"


async def _json_read(bin_id: str, service: BinService) -> JSONResponse:
    row = await service.get_bin(bin_id)
    if row is None:
        return JSONResponse(status_code=404, content=BinNotFound(bin_id=bin_id).model_dump())
    return JSONResponse(status_code=200, content=to_view(row).model_dump())


def _rejection_reason(error_types: Set[str]) -> str:
    if "json_invalid" in error_types:
        return "invalid_json"
    if "model_type" in error_types:
        return "not_an_object"
    return "invalid_fields"


def _parse_metadata_body(body: bytes) -> BinMetadataUpdate:
    """
    Decode a metadata body into a presence-aware update.

    Raises:
        BadRequestError for invalid JSON, non-object JSON, or fields that are
        neither text, numbers nor null.
    """
    try:
        return BinMetadataUpdate.model_validate_json(body)
    except PydanticValidationError as e:
        errors = e.errors()
        fields = sorted(
            {".".join(str(part) for part in err["loc"]) for err in errors if err["loc"]}
        )
        raise BadRequestError(
            message=METADATA_BODY_HINT,
            context={"reason": _rejection_reason({err["type"] for err in errors}), "fields": fields},
        )


async def _read_photo_body(request: Request, service: BinService) -> bytes:
    """
    Read the upload body, aborting as soon as it passes the size limit.

    Covers chunked uploads that carry no Content-Length.
    """
    chunks: List[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        service.check_upload_size(None, received)
        chunks.append(chunk)
    return b"".join(chunks)


# ══════════════════════════════════════════════════════════════════════════
# Reads
# ══════════════════════════════════════════════════════════════════════════

@router.get(
    "/api/bin/{bin_id}",
    response_model=BinView,
    responses={404: {"description": "Bin not registered", "model": BinNotFound}},
    summary="Read a bin as JSON",
)
async def get_bin_json(
    bin_id: str,
    service: BinService = Depends(get_bin_service),
) -> JSONResponse:
    return await _json_read(bin_id, service)


@router.get(
    "/bin/{bin_id}",
    response_class=HTMLResponse,
    responses={
        200: {"description": "Bin page (HTML), or JSON with ?format=json"},
        404: {"description": "Bin not registered"},
    },
    summary="Read a bin as HTML (or JSON with ?format=json)",
)
async def get_bin_page(
    bin_id: str,
    response_format: str = Query(default="html", alias="format"),
    service: BinService = Depends(get_bin_service),
):
    """
    Landing page for a bin label.

    Any `format` other than "json" falls back to HTML.
    """
    if response_format == "json":
        return await _json_read(bin_id, service)

    row = await service.get_bin(bin_id)
    return HTMLResponse(
        content=render_bin_page(bin_id, row),
        status_code=200 if row is not None else 404,
    )


# ══════════════════════════════════════════════════════════════════════════
# Writes
# ══════════════════════════════════════════════════════════════════════════

@router.post(
    "/bin/{bin_id}",
    response_model=BinWriteResponse,
    responses={400: {"description": "Body is not a usable JSON object", "model": ErrorResponse}},
    summary="Create or update bin metadata",
    description=(
        "Merges case_code, bin_type and notes into the bin, creating it if needed. "
        "Fields left out of the body keep their stored value; fields sent as an "
        "empty string or null overwrite it."
    ),
)
async def post_bin_metadata(
    bin_id: str,
    request: Request,
    service: BinService = Depends(get_bin_service),
) -> BinWriteResponse:
    update = _parse_metadata_body(await request.body())
    row = await service.upsert_bin(bin_id, update.changes())
    return BinWriteResponse(bin=to_record(row))


@router.post(
    "/bin/{bin_id}/photo",
    response_model=PhotoUploadResponse,
    responses={
        400: {"description": "Photo too large", "model": ErrorResponse},
        500: {"description": "Photo could not be stored", "model": ErrorResponse},
    },
    summary="Upload a bin photo",
    description=(
        "Stores the raw request body as the bin's latest photo, keeping its "
        "Content-Type, and creates the bin if needed."
    ),
)
async def post_bin_photo(
    bin_id: str,
    request: Request,
    service: BinService = Depends(get_bin_service),
) -> PhotoUploadResponse:
    declared = request.headers.get("content-length")
    service.check_upload_size(int(declared) if declared and declared.isdigit() else None)

    data = await _read_photo_body(request, service)
    content_type: Optional[str] = request.headers.get("content-type")
    logger.info("Received photo for bin %s: %d bytes (%s)", bin_id, len(data), content_type)

    key, row = await service.upload_photo(bin_id, data, content_type)
    return PhotoUploadResponse(
        bin_id=bin_id,
        photo_key=key,
        photo_url=photo_url(bin_id),
        bin=to_record(row),
    )


@router.get(
    "/bin/{bin_id}/photo",
    response_class=StreamingResponse,
    responses={
        200: {"description": "Photo bytes with their stored Content-Type"},
        404: {"description": "No photo for this bin", "model": ErrorResponse},
    },
    summary="Download the latest bin photo",
)
async def get_bin_photo(
    bin_id: str,
    service: BinService = Depends(get_bin_service),
) -> StreamingResponse:
    blob = await service.open_photo(bin_id)

    headers = {}
    if blob.cache_control:
        headers["Cache-Control"] = blob.cache_control

    return StreamingResponse(
        blob.iter_bytes(),
        media_type=blob.content_type or settings.default_photo_content_type,
        headers=headers,
    )
