# Routes package init
"""
Grocery Vision Backend — API Routes Package
=============================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - detect.py:  POST /api/detect-items       (count grocery items)
                  POST /api/detect-freshness   (assess produce freshness)
    - health.py:  GET  /                       (liveness)
                  GET  /health                 (Gemini reachability)

Routes stay thin: read the upload, call a service, wrap the result.
"""
