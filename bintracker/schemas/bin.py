"""
Bin Tracker — Pydantic Request/Response Schemas
================================================

What:  Pydantic models defining the HTTP contract of the bin endpoints.
How:   Routes validate request payloads with these models and build JSON
       responses from them; FastAPI publishes them in the OpenAPI docs.

Presence vs. value:
    BinMetadataUpdate relies on pydantic's fields-set tracking. A field the
    client omitted is "not sent" and is left out of `changes()`; a field sent
    as "" or null is present and overwrites the stored value.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class BinMetadataUpdate(BaseModel):
    """
    Body of POST /bin/{id}.

    Unknown keys (including photo_key) are ignored; the photo reference is
    only changed through the photo upload endpoint. Numbers are stored as
    their text form (`7` → "7").
    """
    case_code: Optional[str] = Field(default=None, description="Case code the bin belongs to")
    bin_type: Optional[str] = Field(default=None, description="Kind of bin, e.g. 'plastic'")
    notes: Optional[str] = Field(default=None, description="Free-form notes")

    model_config = {"coerce_numbers_to_str": True}

    def changes(self) -> Dict[str, Optional[str]]:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class BinRecord(BaseModel):
    """Full stored row, as echoed by write endpoints."""
    bin_id: str
    case_code: Optional[str] = None
    bin_type: Optional[str] = None
    notes: Optional[str] = None
    photo_key: Optional[str] = None
    updated_at: Optional[int] = Field(default=None, description="Milliseconds since epoch")

    model_config = {"from_attributes": True}


class BinView(BaseModel):
    """
    What:  Public read model returned by GET /api/bin/{id}.
    Note:  photo_key is not exposed; photo_url is derived from it.
    """
    status: str = "ok"
    bin_id: str
    case_code: Optional[str] = None
    bin_type: Optional[str] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, description="Relative URL of the latest photo")
    updated_at: Optional[int] = None


class BinNotFound(BaseModel):
    status: str = "not_found"
    bin_id: str
    message: str = "Bin not registered yet"


class BinWriteResponse(BaseModel):
    """Returned by POST /bin/{id}."""
    status: str = "ok"
    bin: BinRecord


class PhotoUploadResponse(BaseModel):
    """Returned by POST /bin/{id}/photo."""
    status: str = "ok"
    bin_id: str
    photo_key: str
    photo_url: str
    bin: BinRecord


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for application errors.

    Example:
        {
            "error": "bad_request",
            "message": "Expected JSON body with fields case_code/bin_type/notes",
            "details": {"reason": "invalid_json"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    blob_storage: str = Field(description="Blob storage: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
