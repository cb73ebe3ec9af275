# Middleware package init
"""
Magic Movers Backend — Middleware Package
==========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: read or generate the correlation ID before anything logs
    2. Logging: one access line per request, tagged with that ID

    Responses travel back through the same chain in reverse, so the
    X-Request-ID header and the final status code are both available.
"""
