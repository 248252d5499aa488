"""
Mini-Blog Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line and every log line written
    while handling the request can carry the same correlation id.
"""
