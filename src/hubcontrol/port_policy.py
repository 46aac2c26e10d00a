"""
Per-hub port policy: hidden ports and port-to-slot mapping.

Ports are identified in the configuration by a port key
``"<child_index>.<port>"`` where child index 0 is the merging hub itself and
1, 2, ... are its merged child hubs in scan order.
"""

from __future__ import annotations
from typing import Optional

from .models import HubConfig


def port_key(child_index: int, port_num: int) -> str:
    """Build the configuration key for a port, e.g. (1, 3) -> '1.3'."""
    return f"{child_index}.{port_num}"


def is_port_hidden(hub_config: Optional[HubConfig], child_index: int, port_num: int) -> bool:
    """Check if a port should be hidden based on configuration."""
    if hub_config is None:
        return False
    return port_key(child_index, port_num) in hub_config.hidden_ports


def get_mapped_port(hub_config: Optional[HubConfig], child_index: int, port_num: int) -> Optional[int]:
    """Get the physical slot configured for a port, or None if not mapped."""
    if hub_config is None:
        return None
    return hub_config.port_map.get(port_key(child_index, port_num))
