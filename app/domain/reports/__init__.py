from .router import event_router, router

__all__ = ["router", "event_router"]
