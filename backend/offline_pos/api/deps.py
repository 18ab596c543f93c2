"""Route dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from offline_pos.services.offline_mode_service import OfflineModeManager


def get_offline_manager(request: Request) -> OfflineModeManager:
    """Service container created in the application lifespan."""
    manager = getattr(request.app.state, "offline_manager", None)
    if manager is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Offline service not initialised",
        )
    return manager


OfflineManager = Annotated[OfflineModeManager, Depends(get_offline_manager)]
