"""
Hub aggregation for the USB topology.

Many physical hubs are built from several hub chips daisy-chained inside one
enclosure, so ``lsusb -t`` shows a hub whose ports lead to more hubs from the
same vendor. Aggregation merges such chains into one virtual hub with a single
flattened port list, applying the per-hub port policy (hidden ports, port map,
grid layout) from the configuration.

Aggregation never mutates the input tree; a new tree is built on every call.
"""

from __future__ import annotations
import logging
from typing import NamedTuple, Optional

from .models import AppConfig, HubConfig, USBBus, USBDevice, USBPort, USBTopology
from .port_policy import get_mapped_port, is_port_hidden, port_key

logger = logging.getLogger(__name__)

# Child index of the merging hub's own ports in port keys
MAIN_HUB_INDEX = 0


class CollectedPorts(NamedTuple):
    """Ports gathered from one merged hub chain."""
    ports: list[USBPort]
    merged_hubs: int


def is_hub(device: Optional[USBDevice]) -> bool:
    """Check if a device is a USB hub."""
    if device is None:
        return False
    return (
        bool(device.ports)
        or "hub" in device.device_class.lower()
        or "hub" in device.driver.lower()
    )


def shares_identity(hub: USBDevice, child: Optional[USBDevice]) -> bool:
    """True if child is a hub from the same vendor as hub.

    Product IDs are not compared.
    """
    return _is_vendor_hub(child, hub.vendor_id)


def _is_vendor_hub(device: Optional[USBDevice], vendor_id: str) -> bool:
    return device is not None and is_hub(device) and device.vendor_id == vendor_id


def _join_path(parent_path: str, port_num: int) -> str:
    if parent_path:
        return f"{parent_path}.{port_num}"
    return str(port_num)


def _copy_descriptive(device: USBDevice) -> USBDevice:
    """Copy of a device's own fields without its ports."""
    return USBDevice(
        bus=device.bus,
        device=device.device,
        vendor_id=device.vendor_id,
        product_id=device.product_id,
        name=device.name,
        device_class=device.device_class,
        driver=device.driver,
        speed=device.speed,
    )


def assign_slots(ports: list[USBPort]) -> list[USBPort]:
    """Resolve slots for a flattened port list and number it 1..N.

    When any port has a mapped slot, every unmapped port gets the lowest slot
    not taken, in list order, and the list is sorted by slot. Position
    numbers are then rewritten as the 1-based index.
    """
    if any(p.mapped_port is not None for p in ports):
        used = {p.mapped_port for p in ports if p.mapped_port is not None}
        next_available = 1
        resolved: list[USBPort] = []

        for p in ports:
            if p.mapped_port is None:
                while next_available in used:
                    next_available += 1
                p = p.model_copy(update={"mapped_port": next_available})
                used.add(next_available)
                next_available += 1
            resolved.append(p)

        # sorted() is stable, so duplicate slots keep collection order
        ports = sorted(resolved, key=lambda p: p.mapped_port)

    return [p.model_copy(update={"port": i}) for i, p in enumerate(ports, start=1)]


def collect_all_ports(
    device: USBDevice,
    base_path: str,
    vendor_id: str,
    hub_config: Optional[HubConfig],
    child_index: int,
    config: Optional[AppConfig] = None,
) -> CollectedPorts:
    """Collect the ports of a merged child hub and its same-vendor descendants.

    Further same-vendor hubs below ``device`` are merged too and keep the
    child index of the hub they hang off. Empty ports are kept as slots.
    """
    ports: list[USBPort] = []
    merged_hubs = 1

    for port in device.ports or []:
        path = _join_path(base_path, port.port)

        if is_port_hidden(hub_config, child_index, port.port):
            continue

        child = port.device
        if _is_vendor_hub(child, vendor_id):
            nested = collect_all_ports(child, path, vendor_id, hub_config, child_index, config)
            ports.extend(nested.ports)
            merged_hubs += nested.merged_hubs
            continue

        ports.append(USBPort(
            port=port.port,
            device=aggregate_device(child, path, config) if child is not None else None,
            hub_device=device.device,
            hub_port=port.port,
            location=path,
            mapped_port=get_mapped_port(hub_config, child_index, port.port),
            port_key=port_key(child_index, port.port),
        ))

    return CollectedPorts(ports, merged_hubs)


def aggregate_device(
    device: USBDevice,
    parent_path: str = "",
    config: Optional[AppConfig] = None,
) -> USBDevice:
    """Return an aggregated copy of a device subtree.

    Child hubs sharing this hub's vendor are merged into ``physical_ports``;
    every other attached device is aggregated recursively in place.
    """
    if device.is_leaf:
        return _copy_descriptive(device)

    hub_config = config.get_hub_config(device.vendor_id, device.product_id) if config else None

    collected: list[USBPort] = []
    direct_ports: list[USBPort] = []  # non-merged ports of this hub
    structural: list[USBPort] = []  # one entry per physical port
    next_child_index = 1
    merged_hubs = 0

    for port in device.ports or []:
        path = _join_path(parent_path, port.port)
        child = port.device

        if shares_identity(device, child):
            chain = collect_all_ports(
                child, path, device.vendor_id, hub_config, next_child_index, config
            )
            collected.extend(chain.ports)
            next_child_index += 1
            merged_hubs += chain.merged_hubs
            structural.append(USBPort(port=port.port, device=_copy_descriptive(child)))
            continue

        aggregated_child = aggregate_device(child, path, config) if child is not None else None
        direct_ports.append(USBPort(
            port=port.port,
            device=aggregated_child,
            hub_device=device.device,
            hub_port=port.port,
            location=path,
            mapped_port=get_mapped_port(hub_config, MAIN_HUB_INDEX, port.port),
            port_key=port_key(MAIN_HUB_INDEX, port.port),
        ))
        structural.append(USBPort(port=port.port, device=aggregated_child))

    result = _copy_descriptive(device)

    if not merged_hubs:
        result.ports = structural
        return result

    # Empty ports on the merging hub itself are internal wiring; only
    # occupied ones are user-facing
    for p in direct_ports:
        if p.device is None or is_port_hidden(hub_config, MAIN_HUB_INDEX, p.port):
            continue
        collected.append(p)

    physical_ports = assign_slots(collected)

    # Merged hubs appear here without ports; their subtrees live in physical_ports
    result.ports = structural

    name = hub_config.name if hub_config and hub_config.name else device.name
    result.name = f"{name} ({len(physical_ports)} ports)"
    result.aggregated = True
    result.sub_hub_count = merged_hubs + 1
    result.total_ports = len(physical_ports)
    result.physical_ports = physical_ports
    if hub_config is not None and hub_config.grid_layout:
        result.grid_layout = [list(row) for row in hub_config.grid_layout]

    logger.debug(
        f"Aggregated hub {device.vendor_id}:{device.product_id} on bus {device.bus} "
        f"({merged_hubs} sub-hubs, {len(physical_ports)} ports)"
    )
    return result


def aggregate_topology(topology: USBTopology, config: Optional[AppConfig] = None) -> USBTopology:
    """Build the aggregated view of a raw topology."""
    return USBTopology(
        buses=[
            USBBus(bus=bus.bus, device=aggregate_device(bus.device, "", config))
            for bus in topology.buses
        ],
        aggregated=True,
    )
