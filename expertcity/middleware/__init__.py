# Middleware package init
"""
Expert In The City Backend — Middleware Package
================================================

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    Responses unwind in reverse, so the request id header is present and the
    access log sees the final status code and duration.
"""
