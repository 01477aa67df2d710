from .router import portal_router, router

__all__ = ["router", "portal_router"]
