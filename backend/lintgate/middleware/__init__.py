# Middleware package init
"""
Lintgate Backend: Middleware Package
=====================================

What:  The request pipeline every request passes through before routing.
How:   Stages are assembled by `lintgate.pipeline.build_middleware` and run
       outermost first:

    Request → [Request ID] → [Access Log] → [Security] → [Auth] → Route Handler

    1. Request ID: correlation ID for every log line and error envelope
    2. Access Log: method, path, status and duration once the response exists
    3. Security: preflight, rate limiting, security and CORS headers
    4. Auth: API key extraction and per-path scope checks

    Responses travel back through the same stages in reverse, so headers
    added by Security also land on 401/403 responses produced by Auth.
"""
