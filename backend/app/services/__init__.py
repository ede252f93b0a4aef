# Services package init
"""
MacroRelay Backend — Services Layer
=====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Services are plain objects built once in the lifespan handler from
       explicit handles (session factory, cache, HTTP client) and reached by
       routes through the dependencies in app.dependencies.

Service Inventory:
    - PasswordHasher:    argon2id hashing on a worker thread
    - Authenticator:     sign-up, login, logout
    - SessionValidator:  token → user, with optional Redis read-through
    - DeviceService:     device and macro registration, listing
    - MacroService:      access-control gate + trigger proxy
    - TriggerClient:     outbound HTTP to the trigger service
    - access:            can_invoke / normalize_keys
"""
