# Services package init
"""
ProfileBuilder Backend — Services Layer
=========================================

What:  Business rules between the route handlers and the document store.
How:   Stateless service objects (module-level singletons) take the store as
       their first argument and raise taxonomy errors (app.exceptions) that
       the request pipeline translates.

Service Inventory:
    - document_store.py:    DocumentStore protocol + SQLAlchemy implementation
    - session_service.py:   DocumentSessionProvider (tokens, cookies, admin flag)
    - user_service.py:      registration, credentials, account edits
    - profile_service.py:   profile CRUD, slug pages, view counts
    - category_service.py:  categories, moderation, seeding
"""
