"""
API v1 package.

Contains versioned API routes for the BMM Registration API.
"""

from bmm.api.v1.routes import router

__all__ = ["router"]
