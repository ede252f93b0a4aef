# Middleware package init
"""
MacroRelay Backend — Middleware Package
========================================

Middleware Chain (request direction):
    Request → [Request ID] → [Access Log] → [Auth Rate Limit] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID in a ContextVar and the X-Request-ID header
    2. Access Log: one line per request with status and duration
    3. Auth Rate Limit: per-IP sliding window on /auth/login and /auth/signup
    4. CORS: FastAPI's CORSMiddleware, credentials allowed for the cookie
"""
