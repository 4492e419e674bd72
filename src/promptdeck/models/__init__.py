from .schemas import EchoResponse, ErrorResponse, HealthResponse, MessageResponse, PoolStatus

__all__ = ["EchoResponse", "ErrorResponse", "HealthResponse", "MessageResponse", "PoolStatus"]
