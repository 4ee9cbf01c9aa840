"""
Health check endpoints.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....application.container import IContainer
from ....core.interfaces.lifecycle import IComponent
from ....core.services.upload_relay import UploadRelay
from ....infrastructure.config.models import RelayConfig
from ..dependencies import get_config, get_container, get_upload_relay

router = APIRouter()


@router.get("")
async def health_check(relay: UploadRelay = Depends(get_upload_relay)) -> Dict[str, Any]:
    """Status, live session count and uptime in seconds."""
    return relay.health()


@router.get("/detailed")
async def detailed_health_check(
    container: IContainer = Depends(get_container),
    config: RelayConfig = Depends(get_config)
) -> Dict[str, Any]:
    """
    Detailed health check with component status.

    Returns health status for every registered component.
    """
    components_health = {}
    overall_healthy = True

    for service_type in container.get_registrations():
        component = container.try_resolve(service_type)
        if not isinstance(component, IComponent):
            continue

        try:
            health_info = await component.check_health()
        except Exception as e:
            health_info = {"healthy": False, "status": "error", "details": {"error": str(e)}}

        components_health[component.name] = health_info
        if not health_info.get("healthy", True):
            overall_healthy = False

    return {
        "status": "ok" if overall_healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "application": {
            "name": config.name,
            "version": config.version,
            "environment": config.environment
        },
        "components": components_health
    }
