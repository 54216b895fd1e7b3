"""
HTTP Client Module

JSON-over-HTTP client shared by the ledger gateway, blob publisher and
oracle client.
"""

from .client import HttpClient, HttpError, HttpResponse

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
]
