"""
API Dependency Module

Provides dependencies required by FastAPI routes.
"""

from typing import Annotated

from fastapi import Depends

from httpstat.config import Settings, get_settings
from httpstat.services import HttpStatService

SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_httpstat_service(settings: SettingsDep) -> HttpStatService:
    """Get the measurement service"""
    return HttpStatService(settings=settings)


HttpStatServiceDep = Annotated[HttpStatService, Depends(get_httpstat_service)]
