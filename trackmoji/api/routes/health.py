"""
Health Endpoint

DESIGN DECISION: The health report never fails as a whole. Each section
(resources, database, external dependency) reports its own failure
inside the payload; the endpoint itself always answers 200.

The external probe has its own short timeout, independent of the model
generation deadline.
"""

import os
import platform
import shutil
import socket
import sys
import time
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import structlog
from fastapi import APIRouter, Depends, Request

from trackmoji.api.dependencies import get_app_settings, get_components
from trackmoji.config import AppSettings
from trackmoji.orchestrator import AppComponents


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def format_uptime(seconds: float) -> str:
    """Render seconds as `Nd Nh Nm Ns`."""
    seconds = int(seconds)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    return f"{days}d {hours}h {minutes}m {seconds}s"


def _boot_time() -> Optional[str]:
    # /proc/uptime only exists on Linux
    try:
        with open("/proc/uptime") as f:
            uptime = float(f.read().split()[0])
    except (OSError, ValueError, IndexError):
        return None
    return datetime.fromtimestamp(time.time() - uptime, tz=timezone.utc).isoformat()


def system_info() -> dict[str, Any]:
    return {
        "platform": sys.platform,
        "architecture": platform.machine(),
        "pythonVersion": platform.python_version(),
        "hostname": socket.gethostname(),
        "cpuCores": {"logical": os.cpu_count()},
        "bootTime": _boot_time(),
    }


def _memory() -> dict[str, Any]:
    try:
        page_size = os.sysconf("SC_PAGE_SIZE")
        total = os.sysconf("SC_PHYS_PAGES") * page_size
        available = os.sysconf("SC_AVPHYS_PAGES") * page_size
    except (AttributeError, ValueError, OSError):
        return {"error": "Memory usage check not supported on this platform"}
    used = total - available
    return {
        "total": total,
        "available": available,
        "used": used,
        "percent": round(used / total * 100, 2) if total else None,
    }


def _disk() -> dict[str, Any]:
    try:
        usage = shutil.disk_usage("/")
    except OSError as e:
        return {"error": str(e)}
    return {
        "total": usage.total,
        "used": usage.used,
        "free": usage.free,
        "percent": round(usage.used / usage.total * 100, 2) if usage.total else None,
    }


def resource_info() -> dict[str, Any]:
    try:
        load_average = list(os.getloadavg())
    except (AttributeError, OSError):
        load_average = None
    return {
        "loadAverage": load_average,
        "memory": _memory(),
        "disk": _disk(),
        "pid": os.getpid(),
    }


async def database_status(components: AppComponents) -> dict[str, Any]:
    try:
        ok = await components.storage.ping()
    except Exception as e:
        logger.warning("health_database_failed", error=str(e))
        return {"status": "disconnected", "message": str(e)}
    if not ok:
        return {"status": "disconnected", "message": "Unexpected probe result"}
    return {"status": "connected", "message": "Database connection successful"}


async def external_status(settings: AppSettings) -> dict[str, Any]:
    if not settings.health_probe_url:
        return {"status": "skipped", "message": "No external dependency configured"}
    try:
        async with httpx.AsyncClient(timeout=settings.health_probe_timeout_seconds) as client:
            response = await client.get(settings.health_probe_url)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("health_probe_failed", url=settings.health_probe_url, error=str(e))
        return {"status": "disconnected", "message": str(e) or type(e).__name__}
    return {
        "status": "connected" if response.status_code == 200 else "error",
        "message": f"External API returned {response.status_code}",
    }


@router.get("")
async def health_check(
    request: Request,
    components: AppComponents = Depends(get_components),
    settings: AppSettings = Depends(get_app_settings),
):
    report: dict[str, Any] = {
        "status": "ok",
        "message": "API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        report["resources"] = resource_info()
    except Exception as e:
        report["resources"] = {"error": str(e)}

    report["uptime"] = format_uptime(time.monotonic() - request.app.state.started_at)
    report["system"] = system_info()
    report["database"] = await database_status(components)
    report["externalApi"] = await external_status(settings)

    return report
