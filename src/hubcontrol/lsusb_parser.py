"""
Parse lsusb output into a USB topology tree.

Two reports are combined: the flat device listing from ``lsusb`` supplies
vendor/product IDs and names, and the indented tree from ``lsusb -t``
supplies the bus/hub/port structure.
"""

from __future__ import annotations
import logging
import re
from typing import Optional

from .models import DeviceInfo, USBBus, USBDevice, USBPort, USBTopology

logger = logging.getLogger(__name__)

# Bus 001 Device 009: ID 1a40:0201 Terminus Technology Inc. FE 2.1 7-port Hub
DEVICE_LIST_RE = re.compile(r"Bus (\d+) Device (\d+): ID ([0-9a-f]+):([0-9a-f]+) (.+)")

# /:  Bus 001.Port 001: Dev 001, Class=root_hub, Driver=xhci_hcd/6p, 480M
ROOT_HUB_RE = re.compile(
    r"^/:\s+Bus (\d+)\.Port (\d+): Dev (\d+), Class=([^,]+), Driver=([^,]+), ([\d.]+M?)"
)

# |__ Port 003: Dev 009, If 0, Class=Hub, Driver=hub/7p, 480M
# |__ Port 003: Dev 009, 480M
CHILD_DEVICE_RE = re.compile(
    r"^(\s*)\|__ Port (\d+): Dev (\d+)(?:, If (\d+))?, (?:Class=([^,]+), Driver=([^,]+), )?([\d.]+M?)"
)

NUM_PORTS_RE = re.compile(r"/(\d+)p")

# Columns of indentation per tree level
INDENT_WIDTH = 4


def device_key(bus: int, device: int) -> str:
    """Key into the device listing, e.g. (1, 9) -> '001-009'."""
    return f"{bus:03d}-{device:03d}"


def parse_device_list(output: str) -> dict[str, DeviceInfo]:
    """Parse plain ``lsusb`` output into a 'bus-device' -> DeviceInfo table.

    Lines that don't look like a device are ignored. If two lines describe
    the same bus/device the later one wins.
    """
    devices: dict[str, DeviceInfo] = {}

    for line in output.splitlines():
        match = DEVICE_LIST_RE.search(line)
        if not match:
            continue

        key = device_key(int(match.group(1)), int(match.group(2)))
        devices[key] = DeviceInfo(
            vendor_id=match.group(3),
            product_id=match.group(4),
            name=match.group(5).strip(),
        )

    return devices


def extract_num_ports(driver: str) -> int:
    """Port count from a driver string suffix, e.g. 'hub/7p' -> 7."""
    match = NUM_PORTS_RE.search(driver)
    if match:
        return int(match.group(1))
    return 0


def _make_ports(count: int) -> Optional[list[USBPort]]:
    if count <= 0:
        return None
    return [USBPort(port=i + 1) for i in range(count)]


def _build_device(
    bus: int,
    dev: int,
    device_class: str,
    driver: str,
    speed: str,
    num_ports: int,
    device_map: dict[str, DeviceInfo],
) -> USBDevice:
    info = device_map.get(device_key(bus, dev))
    if info is None:
        logger.debug(f"No lsusb listing entry for bus {bus} device {dev}")

    return USBDevice(
        bus=bus,
        device=dev,
        vendor_id=info.vendor_id if info else "",
        product_id=info.product_id if info else "",
        name=info.name if info else "",
        device_class=device_class,
        driver=driver,
        speed=speed,
        ports=_make_ports(num_ports),
    )


def _attach(parent: USBDevice, port_num: int, device: USBDevice) -> bool:
    """Attach device to the first free port of parent with that number."""
    for port in parent.ports or []:
        if port.port == port_num and port.device is None:
            port.device = device
            return True
    return False


def parse_tree_output(output: str, device_map: dict[str, DeviceInfo]) -> USBTopology:
    """Parse ``lsusb -t`` output into a topology of buses and devices.

    Depth comes from indentation. The currently open hub at each depth is
    kept in a stack; a device line attaches to the hub one level above it.
    Lines that can't be placed are skipped, so a damaged report yields a
    smaller tree rather than an error.
    """
    topology = USBTopology()

    parent_stack: list[USBDevice] = []
    seen_devices: set[tuple[int, int, int]] = set()
    current_bus: Optional[int] = None

    for line in output.splitlines():
        if not line.strip():
            continue

        root_match = ROOT_HUB_RE.match(line)
        if root_match:
            bus = int(root_match.group(1))
            dev = int(root_match.group(3))
            driver = root_match.group(5)

            root = _build_device(
                bus=bus,
                dev=dev,
                device_class=root_match.group(4),
                driver=driver,
                speed=root_match.group(6),
                num_ports=extract_num_ports(driver),
                device_map=device_map,
            )
            topology.buses.append(USBBus(bus=bus, device=root))

            current_bus = bus
            parent_stack = [root]
            seen_devices = set()
            continue

        child_match = CHILD_DEVICE_RE.match(line)
        if not child_match or current_bus is None:
            logger.debug(f"Skipping unrecognised lsusb -t line: {line!r}")
            continue

        depth = len(child_match.group(1)) // INDENT_WIDTH
        port_num = int(child_match.group(2))
        dev = int(child_match.group(3))
        interface = child_match.group(4)
        device_class = child_match.group(5) or ""
        driver = child_match.group(6) or ""
        speed = child_match.group(7)

        # A device with several interfaces is listed once per interface
        triple = (current_bus, port_num, dev)
        if triple in seen_devices:
            continue
        if interface not in (None, "0"):
            continue
        seen_devices.add(triple)

        num_ports = 0
        if "hub" in device_class.lower() or "hub" in driver.lower():
            num_ports = extract_num_ports(driver)

        device = _build_device(
            bus=current_bus,
            dev=dev,
            device_class=device_class,
            driver=driver,
            speed=speed,
            num_ports=num_ports,
            device_map=device_map,
        )

        parent_depth = depth - 1
        if parent_depth < 0 or parent_depth >= len(parent_stack):
            logger.debug(f"No open hub at depth {parent_depth} for bus {current_bus} device {dev}")
            continue

        parent = parent_stack[parent_depth]
        if not _attach(parent, port_num, device):
            logger.debug(f"Hub dev {parent.device} has no free port {port_num} for device {dev}")

        if num_ports > 0:
            # Drop stale entries left by a previous sibling's subtree
            parent_stack = parent_stack[:depth]
            parent_stack.append(device)

    return topology


def parse_usb_topology(tree_output: str, list_output: str) -> USBTopology:
    """Build a raw topology from ``lsusb -t`` and ``lsusb`` output."""
    device_map = parse_device_list(list_output)
    return parse_tree_output(tree_output, device_map)
