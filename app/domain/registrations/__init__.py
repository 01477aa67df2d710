from .router import portal_router, public_router, router

__all__ = ["router", "public_router", "portal_router"]
