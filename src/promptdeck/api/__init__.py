from .routes import router, test_router

__all__ = ["router", "test_router"]
