"""
Bin Tracker — API Routes Package
=================================

Route Inventory:
    - health.py:  GET  /                  (liveness text)
                  GET  /health            (database + blob storage probe)
    - bins.py:    GET  /api/bin/{id}      (JSON read)
                  GET  /bin/{id}          (HTML read, JSON with ?format=json)
                  POST /bin/{id}          (metadata upsert)
                  GET  /bin/{id}/photo    (photo download)
                  POST /bin/{id}/photo    (photo upload)

Routes stay thin: parse the request, call BinService, shape the response.
"""
