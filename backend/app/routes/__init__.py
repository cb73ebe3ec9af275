# Routes package init
"""
Magic Movers Backend — API Routes Package
===========================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - movers.py:  /movers CRUD, load, start-mission, end-mission, top
    - items.py:   /items CRUD
    - health.py:  GET /health (service health check)

Design Principle:
    Routes are thin: they extract request data, call a service, and let the
    response model serialize the result. Errors propagate to the global
    handlers registered in main.py.
"""
