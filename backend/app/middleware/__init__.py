# Middleware package init
"""
ProfileBuilder Backend — Middleware Package
=============================================

What:  Transport-level concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    Rate limiting, authentication, validation and caching are NOT middleware:
    they are per-route policy and run inside the request pipeline
    (app.pipeline), configured by each route's RouteConfig.
"""
