# Routes package init
"""
ProfileBuilder Backend — API Routes Package
=============================================

What:  HTTP route handlers.
How:   Each handler is a business function wrapped by `api_handler`; its
       RouteConfig declares rate limit, auth, validation schema and cache
       policy. The handler itself only calls a service.

Route Inventory:
    - auth.py:        /api/auth/register, /login, /logout, /session
    - profiles.py:    /api/profiles (CRUD), /slug/{slug}, /{id}/views
    - users.py:       /api/users/{username}/profiles, PATCH /api/users/{username}
    - categories.py:  /api/categories (CRUD), /seed
    - health.py:      GET /health
"""
