# Routes package init
"""
FlashVault Backend — API Routes Package
=========================================

Route Inventory:
    - flashlights.py: /api/flashlights (CRUD, bulk import, emitter edit)
    - references.py:  GET /api/manufacturers, GET /api/emitter-types
    - health.py:      GET /health

Routes stay thin: read the request, call a service, return its result.
Authentication is a dependency on each /api router; business rules live in
services/.
"""
