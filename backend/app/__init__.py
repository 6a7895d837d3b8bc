"""
ProfileBuilder Backend — Application Package Initializer
=========================================================

What: Marks the `app` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    Every API route is a thin declaration handed to one request pipeline:

    ┌─────────────────────────────────────┐
    │     Routes (RouteConfig + handler)  │  ← declarative per-route options
    ├─────────────────────────────────────┤
    │  Pipeline: rate limit → auth gate → │  ← uniform envelope + error mapping
    │  validation → handler → cache policy│
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← profiles, users, categories
    ├─────────────────────────────────────┤
    │   Document store / session / redis  │  ← external collaborators
    └─────────────────────────────────────┘

    Route handlers never build HTTP responses themselves; they return values
    or raise errors from app.exceptions and the pipeline does the rest.
"""

__version__ = "1.0.0"
