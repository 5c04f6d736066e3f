"""
LegalVibes - practice management core for IP law firms.

Server side: FastAPI app with JWT authentication and owner-scoped access
to clients and projects (``legalvibes.api``). Client side: an async session
store with coalesced token refresh and route guards (``legalvibes.client``).
"""

__version__ = "0.1.0"
