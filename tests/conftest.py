"""Pytest configuration and shared fixtures."""

import pytest

from hubcontrol.config_manager import reset_config_manager


LSUSB_LIST = """\
Bus 002 Device 001: ID 1d6b:0003 Linux Foundation 3.0 root hub
Bus 001 Device 001: ID 1d6b:0002 Linux Foundation 2.0 root hub
Bus 001 Device 009: ID 1a40:0201 Terminus Technology Inc. FE 2.1 7-port Hub
Bus 001 Device 010: ID 1a40:0101 Terminus Technology Inc. Hub
Bus 001 Device 011: ID 046d:c52b Logitech, Inc. Unifying Receiver
Bus 001 Device 012: ID 0781:5581 SanDisk Corp. Ultra
"""

LSUSB_TREE = """\
/:  Bus 002.Port 001: Dev 001, Class=root_hub, Driver=xhci_hcd/4p, 5000M
/:  Bus 001.Port 001: Dev 001, Class=root_hub, Driver=xhci_hcd/2p, 480M
    |__ Port 1: Dev 009, If 0, Class=Hub, Driver=hub/7p, 480M
        |__ Port 2: Dev 010, If 0, Class=Hub, Driver=hub/4p, 480M
            |__ Port 1: Dev 011, If 0, Class=Human Interface Device, Driver=usbhid, 12M
            |__ Port 1: Dev 011, If 1, Class=Human Interface Device, Driver=usbhid, 12M
            |__ Port 1: Dev 011, If 2, Class=Human Interface Device, Driver=usbhid, 12M
        |__ Port 5: Dev 012, If 0, Class=Mass Storage, Driver=usb-storage, 480M
"""


@pytest.fixture
def lsusb_list() -> str:
    """Sample plain ``lsusb`` output."""
    return LSUSB_LIST


@pytest.fixture
def lsusb_tree() -> str:
    """Sample ``lsusb -t`` output matching lsusb_list."""
    return LSUSB_TREE


@pytest.fixture(autouse=True)
def _fresh_config_manager():
    """Each test starts without a cached global config manager."""
    reset_config_manager()
    yield
    reset_config_manager()
