"""
FastAPI dependency injection.

The storage client and facade are built once in create_app() and kept on
app.state; these dependencies hand them to route handlers. Routes never
construct their own clients, so tests can swap in the mock client by
building the app with mock-mode settings.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..config.settings import Settings, get_settings
from ..core.storage.facade import StorageFacade


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with (falls back to env settings)."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_storage_facade(request: Request) -> StorageFacade:
    return request.app.state.storage_facade


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_app_settings)]
StorageFacadeDep = Annotated[StorageFacade, Depends(get_storage_facade)]
