# Routes package init
"""
Expert In The City Backend — API Routes Package
================================================

Route Inventory:
    - reviews.py:        /api/reviews/...        session reviews (trigger recompute)
    - notifications.py:  /api/notifications/...  recipient's notifications
    - health.py:         GET /health             service health check

Routes stay thin: read the request, call a service, wrap the result.
"""
