"""Response schemas for the action-item sync API."""
from actionsync.models.schemas import (
    AnchorResponse,
    HealthCheckResponse,
    PushResponse,
    RefreshResponse,
)

__all__ = [
    "AnchorResponse",
    "HealthCheckResponse",
    "PushResponse",
    "RefreshResponse",
]
