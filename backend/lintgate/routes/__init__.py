# Routes package init
"""
Lintgate Backend: API Routes Package
=====================================

Route Inventory:
    - analyze.py: POST /analyze            (run phpcs over submitted code)
                  GET  /standards          (installed coding standards)
    - cache.py:   POST /cache/clear        (admin)
                  GET  /cache/stats        (admin)
    - keys.py:    POST /keys/generate      (non-production only)
    - health.py:  GET  /health             (public)

Routes stay thin: authentication and rate limiting already happened in the
middleware, and analysis logic lives in the services layer.
"""
