# Routes package init
"""
MacroRelay Backend — API Routes Package
=========================================

Route Inventory:
    - auth.py:     POST /auth/signup, POST /auth/login, GET /auth/logout, GET /auth/me,
                   PUT /auth/me/keys
    - devices.py:  GET/POST /api/devices, POST /api/devices/{id}/macros,
                   POST /api/macros/{endpoint}/trigger
    - health.py:   GET /health

Routes stay thin: they read the request, call one service, and shape the
response (status code, cookies). Errors propagate as MacroRelayError
subclasses to the global handlers in main.py.
"""
