# API module exports
from taskdash.api.base import api_router

__all__ = ["api_router"]
