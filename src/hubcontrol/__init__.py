"""
hubcontrol - USB hub topology and port power control for Linux.

A web-based tool that shows the USB bus/hub/port/device tree reported by
lsusb, merges multi-chip hubs into a single virtual hub, and switches port
power through uhubctl.
"""

__version__ = "0.1.0"
__all__ = ["run_server"]

from .main import run_server
