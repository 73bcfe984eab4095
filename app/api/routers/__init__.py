"""
app/api/routers package marker.
"""

from app.api.routers.call_record import router as call_record_router

__all__ = [
    "call_record_router",
]
