"""
Module 09D - Exchange API (FastAPI)

HTTP API for the divtokens Exchange:
- GET /health - Health check
- GET /keys - Published issuer keys
- POST /issue - Blind issuance against a prepaid account
- POST /redeem - Redeem a batch of spend receipts

Usage:
    uvicorn api.app:app --reload
"""

__version__ = "0.1.0"
