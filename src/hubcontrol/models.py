"""
Pydantic models for USB topology, hub configuration and power control.

Defines the data structures used throughout the application for representing
USB buses, hubs, ports and devices, plus the configuration that shapes the
aggregated hub view.
"""

from __future__ import annotations
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# Frontend JSON uses camelCase keys, Python code uses snake_case names
_TOPOLOGY_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# Grid layout cell that renders as blank space
GRID_SPACER = -1


class USBDevice(BaseModel):
    """A USB device; a hub when it exposes ports."""

    model_config = _TOPOLOGY_MODEL_CONFIG

    # Identification
    bus: int = Field(description="USB bus number")
    device: int = Field(description="Device number on the bus")

    # USB IDs, filled from the lsusb device listing
    vendor_id: str = Field(default="", description="Vendor ID in hex e.g. '1a40'")
    product_id: str = Field(default="", description="Product ID in hex e.g. '0201'")
    name: str = Field(default="", description="Description from the lsusb listing")

    # Technical details from the lsusb tree
    device_class: str = Field(default="", alias="class", description="Class e.g. 'Hub'")
    driver: str = Field(default="", description="Driver string e.g. 'hub/7p'")
    speed: str = Field(default="", description="Negotiated speed e.g. '480M'")

    # Hub specific
    ports: Optional[list[USBPort]] = Field(default=None, description="Ports if hub")

    # Aggregated view
    aggregated: bool = Field(default=False, description="True if child hubs were merged")
    total_ports: Optional[int] = Field(default=None, description="Length of physical_ports")
    sub_hub_count: Optional[int] = Field(default=None, description="Merged hubs including self")
    physical_ports: Optional[list[USBPort]] = Field(default=None, description="Flattened ports")
    grid_layout: Optional[list[list[int]]] = Field(default=None, description="-1 = spacer")

    @property
    def is_leaf(self) -> bool:
        """True if nothing can be attached to this device."""
        return not self.ports

    def model_dump_for_frontend(self) -> dict:
        """Serialize for frontend consumption."""
        return self.model_dump(by_alias=True, exclude_none=True)


class USBPort(BaseModel):
    """A port on a USB hub, optionally holding a device."""

    model_config = _TOPOLOGY_MODEL_CONFIG

    port: int = Field(description="1-based position within the owning device")
    device: Optional[USBDevice] = Field(default=None, description="Attached device")

    # Aggregated view - track which physical hub this port belongs to
    hub_device: Optional[int] = Field(default=None, description="Device number of the physical hub")
    hub_port: Optional[int] = Field(default=None, description="Port number on the physical hub")
    location: Optional[str] = Field(default=None, description="USB location path e.g. '1.3'")
    mapped_port: Optional[int] = Field(default=None, description="Configured or assigned slot")
    port_key: Optional[str] = Field(default=None, description="Config lookup key e.g. '1.3'")


USBDevice.model_rebuild()


class USBBus(BaseModel):
    """A USB bus and its root hub."""

    model_config = _TOPOLOGY_MODEL_CONFIG

    bus: int
    device: USBDevice


class USBTopology(BaseModel):
    """Point-in-time snapshot of every USB bus on the host."""

    model_config = _TOPOLOGY_MODEL_CONFIG

    buses: list[USBBus] = Field(default_factory=list)
    aggregated: bool = Field(default=False, description="Whether this is the aggregated view")

    def model_dump_for_frontend(self) -> dict:
        """Serialize for frontend consumption."""
        return self.model_dump(by_alias=True, exclude_none=True)


class DeviceInfo(BaseModel):
    """Descriptive fields for one device from the flat lsusb listing."""

    vendor_id: str
    product_id: str
    name: str


def _stringify_port_key(value: Any) -> str:
    # YAML reads an unquoted 1.3 as a float
    if isinstance(value, str):
        return value.strip()
    return str(value)


class HubConfig(BaseModel):
    """User configuration for one hub model (vendor:product)."""

    model_config = ConfigDict(frozen=True)

    vendor_id: str
    product_id: str
    name: Optional[str] = Field(default=None, description="Display name override")
    physical_ports: int = Field(default=0, description="Expected number of user-facing ports")
    hidden_ports: list[str] = Field(default_factory=list, description="Port keys to drop")
    port_map: dict[str, int] = Field(default_factory=dict, description="Port key -> slot")
    grid_layout: Optional[list[list[int]]] = Field(default=None, description="Rows of slots")

    @field_validator("vendor_id", "product_id", mode="before")
    @classmethod
    def _normalise_id(cls, value: Any) -> str:
        return str(value).strip().lower()

    @field_validator("hidden_ports", mode="before")
    @classmethod
    def _normalise_hidden(cls, value: Any) -> list[str]:
        if value is None:
            return []
        return [_stringify_port_key(v) for v in value]

    @field_validator("port_map", mode="before")
    @classmethod
    def _normalise_port_map(cls, value: Any) -> dict[str, Any]:
        if value is None:
            return {}
        return {_stringify_port_key(k): v for k, v in value.items()}

    @field_validator("port_map")
    @classmethod
    def _check_slots(cls, value: dict[str, int]) -> dict[str, int]:
        for key, slot in value.items():
            if slot < 1:
                raise ValueError(f"port_map slot for {key!r} must be positive, got {slot}")
        return value

    @field_validator("grid_layout")
    @classmethod
    def _check_grid(cls, value: Optional[list[list[int]]]) -> Optional[list[list[int]]]:
        for row in value or []:
            for cell in row:
                if cell < 1 and cell != GRID_SPACER:
                    raise ValueError(f"grid_layout cell must be a slot or {GRID_SPACER}, got {cell}")
        return value

    @property
    def key(self) -> str:
        return f"{self.vendor_id}:{self.product_id}"


class AppConfig(BaseModel):
    """Application configuration, immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    port: int = Field(default=8080)
    host: str = Field(default="0.0.0.0")
    auto_open_browser: bool = Field(default=True)
    command_timeout: float = Field(default=10.0, gt=0, description="lsusb timeout in seconds")
    power_timeout: float = Field(default=30.0, gt=0, description="uhubctl timeout in seconds")
    uhubctl_command: list[str] = Field(default_factory=lambda: ["sudo", "uhubctl"])
    hubs: list[HubConfig] = Field(default_factory=list)

    def get_hub_config(self, vendor_id: str, product_id: str) -> Optional[HubConfig]:
        """Get configuration for a hub model, or None if not configured."""
        for hub in self.hubs:
            if hub.vendor_id == vendor_id and hub.product_id == product_id:
                return hub
        return None


class PowerAction(str, Enum):
    """Actions accepted by uhubctl's -a flag."""
    ON = "on"
    OFF = "off"
    CYCLE = "cycle"


class CommandStatus(str, Enum):
    """Outcome of running an external command."""
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


_LOCATION_RE = re.compile(r"^\d+(-\d+)?(\.\d+)*$")


class PowerControlRequest(BaseModel):
    """Request to switch power on a hub port."""

    bus: int
    port: int = Field(gt=0, description="Port number on the physical hub")
    action: PowerAction
    location: Optional[str] = Field(default=None, description="uhubctl hub location e.g. '1-1.4'")

    @field_validator("location")
    @classmethod
    def _check_location(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        if not _LOCATION_RE.match(value):
            raise ValueError(f"invalid USB location {value!r}")
        return value


class PowerControlResponse(BaseModel):
    """Result of a power control command."""

    success: bool
    status: CommandStatus
    message: str = ""


class UhubctlInfo(BaseModel):
    """Whether uhubctl can run, with its raw output."""

    available: bool
    status: CommandStatus
    output: str = ""
