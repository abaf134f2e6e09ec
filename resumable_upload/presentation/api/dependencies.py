"""
FastAPI dependency injection utilities.

This module provides dependency injection functions for FastAPI routes
to access application services and components.
"""

from typing import Any, Type, TypeVar

from fastapi import Depends, HTTPException, Request, status

from ...application.container import IContainer
from ...core.interfaces.upload import IUploadManager
from ...infrastructure.config.models import ApplicationConfig

T = TypeVar('T')


def get_container(request: Request) -> IContainer:
    """
    Get the dependency injection container from the request.

    Raises:
        HTTPException: If container is not available
    """
    if not hasattr(request.app.state, "container"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application container not available"
        )

    return request.app.state.container


def get_config(request: Request) -> ApplicationConfig:
    """
    Get the application configuration from the request.

    Raises:
        HTTPException: If configuration is not available
    """
    if not hasattr(request.app.state, "config"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application configuration not available"
        )

    return request.app.state.config


def get_component(service_type: Type[T]) -> Any:
    """
    Create a dependency function to get a specific component type.

    Args:
        service_type: Type of service to resolve

    Returns:
        Dependency function that resolves the service
    """
    def _get_component(container: IContainer = Depends(get_container)) -> T:
        try:
            return container.resolve(service_type)
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Service {service_type.__name__} not available: {str(e)}"
            )

    return _get_component


get_upload_manager = get_component(IUploadManager)
