"""
Price Oracle API (FastAPI)

HTTP API for the price oracle:
- GET /api/merkle-root - Current root
- GET /api/prices - Price listing
- GET /api/merkle-proof/{product_id} - Inclusion proof
- POST /api/drop-prices - Bulk price drop
- /api/admin/* - Operator controls
- GET /health - Health check

Usage:
    uvicorn api.app:app --reload
"""

__version__ = "0.1.0"
