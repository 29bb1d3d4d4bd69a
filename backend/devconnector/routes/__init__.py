"""
DevConnector Backend — API Routes Package
===========================================

Route Inventory:
    - posts.py:   /posts (posts, likes, comments)
    - health.py:  GET /health (service health check)

Routes are THIN: they extract request data, call a service, and return
its result. Business rules live in services.
"""
