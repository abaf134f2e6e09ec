"""
Health check API endpoints.

This module provides health check endpoints for monitoring
application and component status.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from ....application.container import IContainer
from ....core.interfaces.lifecycle import IComponent
from ....core.interfaces.upload import IUploadManager
from ....infrastructure.config.models import ApplicationConfig
from ....infrastructure.logging.setup import LoggingManager
from ..dependencies import get_config, get_container

router = APIRouter()

ESSENTIAL_SERVICES = (LoggingManager, IUploadManager)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _application_info(config: ApplicationConfig) -> Dict[str, Any]:
    return {
        "name": config.name,
        "version": config.version,
        "environment": config.environment
    }


@router.get("/")
async def health_check(
    config: ApplicationConfig = Depends(get_config)
) -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns overall application health status.
    """
    return {
        "status": "healthy",
        "timestamp": _now(),
        "application": _application_info(config)
    }


@router.get("/detailed")
async def detailed_health_check(
    container: IContainer = Depends(get_container),
    config: ApplicationConfig = Depends(get_config)
) -> Dict[str, Any]:
    """
    Detailed health check with component status.

    Returns health status for all registered components.
    """
    components_health: Dict[str, Any] = {}
    overall_healthy = True

    for service_type in container.get_registrations():
        component_name = service_type.__name__

        try:
            component = container.resolve(service_type)
        except Exception as e:
            components_health[component_name] = {
                "healthy": False,
                "status": "error",
                "details": {"error": str(e)}
            }
            overall_healthy = False
            continue

        if isinstance(component, IComponent):
            health_info = await component.check_health()
            components_health[component_name] = health_info

            if not health_info.get("healthy", True):
                overall_healthy = False
        else:
            components_health[component_name] = {
                "healthy": True,
                "status": "available",
                "details": {"type": "service"}
            }

    return {
        "status": "healthy" if overall_healthy else "degraded",
        "timestamp": _now(),
        "application": _application_info(config),
        "components": components_health
    }


@router.get("/ready")
async def readiness_check(
    container: IContainer = Depends(get_container)
) -> Dict[str, Any]:
    """Indicates if the application is ready to accept uploads."""
    missing_services: List[str] = [
        service.__name__ for service in ESSENTIAL_SERVICES
        if not container.is_registered(service)
    ]

    return {
        "ready": not missing_services,
        "timestamp": _now(),
        "missing_services": missing_services
    }


@router.get("/live")
async def liveness_check() -> Dict[str, Any]:
    return {
        "alive": True,
        "timestamp": _now()
    }
