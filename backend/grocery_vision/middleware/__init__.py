# Middleware package init
"""
Grocery Vision Backend — Middleware Package
=============================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Request ID: correlation ID shared by every log line of one request
      and echoed back in the X-Request-ID response header
    - Logging: method, path, status and duration once the response is ready
"""
