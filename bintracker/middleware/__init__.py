"""
Bin Tracker — Middleware Package
=================================

Middleware Chain:
    Request → [Trailing slash] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Paths are normalized before anything else sees them. The request ID is
    assigned next so the access log line and any error response of the same
    request carry it.
"""
