"""
hubcontrol - FastAPI Application.

Main entry point for the web server providing USB topology and port power
control.
"""

from __future__ import annotations
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .config_manager import ConfigManager, get_config_manager
from .exceptions import DiscoveryError, DiscoveryTimeoutError
from .models import AppConfig, PowerControlRequest
from .power_control import control_power, get_uhubctl_info
from .usb_scanner import USBScanner

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Built frontend - relative to the project root unless overridden
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
STATIC_DIR = Path(os.environ.get("HUBCONTROL_STATIC_DIR", _PROJECT_ROOT / "frontend" / "dist"))

# Global instances
config_manager: ConfigManager | None = None
usb_scanner: USBScanner | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global config_manager, usb_scanner

    logger.info("Starting hubcontrol...")

    # Configuration is loaded once and never changes afterwards
    config_manager = get_config_manager()
    usb_scanner = USBScanner(config_manager.config)

    logger.info("hubcontrol started successfully")

    yield

    logger.info("hubcontrol stopped")


# Create FastAPI app
app = FastAPI(
    title="hubcontrol",
    description="USB hub topology and per-port power control",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for a separately served frontend during development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def _get_config() -> AppConfig:
    if config_manager is None:
        raise HTTPException(status_code=500, detail="Config not initialized")
    return config_manager.config


def _get_scanner() -> USBScanner:
    if usb_scanner is None:
        raise HTTPException(status_code=500, detail="USB scanner not initialized")
    return usb_scanner


@app.get("/api/topology")
async def get_topology(aggregate: bool = False):
    """Get the USB topology, optionally with same-vendor hubs merged."""
    scanner = _get_scanner()
    try:
        topology = await asyncio.to_thread(scanner.scan, aggregate)
    except DiscoveryTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e)) from e
    except DiscoveryError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    return JSONResponse(topology.model_dump_for_frontend())


@app.post("/api/power")
async def power(request: PowerControlRequest):
    """Switch power on a hub port via uhubctl."""
    config = _get_config()
    response = await asyncio.to_thread(control_power, request, config)
    return JSONResponse(response.model_dump(mode="json"))


@app.get("/api/uhubctl")
async def uhubctl_info():
    """Report whether uhubctl is usable and what it sees."""
    config = _get_config()
    info = await asyncio.to_thread(get_uhubctl_info, config)
    return JSONResponse(info.model_dump(mode="json"))


@app.get("/api/hub-config")
async def get_hub_config():
    """Get the configured hub layouts."""
    if config_manager is None:
        return JSONResponse([])
    return JSONResponse([h.model_dump(mode="json") for h in config_manager.get_hub_configs()])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return JSONResponse({
        "status": "healthy",
        "config_path": str(config_manager.config_path) if config_manager and config_manager.config_path else None,
        "hub_configs": len(config_manager.get_hub_configs()) if config_manager else 0,
    })


# Mount the frontend last so it doesn't shadow the API
if STATIC_DIR.exists():
    app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="frontend")


def run_server(host: str = "0.0.0.0", port: int = 8080, open_browser: bool = True):
    """Run the server."""
    import uvicorn

    if open_browser:
        # Open browser after short delay
        def open_browser_delayed():
            import time
            import webbrowser
            time.sleep(1.5)
            webbrowser.open(f"http://localhost:{port}")

        import threading
        threading.Thread(target=open_browser_delayed, daemon=True).start()

    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    # Allow running directly
    port = int(os.environ.get("HUBCONTROL_PORT", "8080"))
    host = os.environ.get("HUBCONTROL_HOST", "0.0.0.0")
    open_browser = os.environ.get("HUBCONTROL_NO_BROWSER", "").lower() not in ("1", "true", "yes")

    run_server(host=host, port=port, open_browser=open_browser)
