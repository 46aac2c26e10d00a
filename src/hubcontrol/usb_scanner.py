"""
USB topology discovery using lsusb.

Runs ``lsusb`` and ``lsusb -t`` and builds the raw or aggregated hierarchical
representation of the USB topology. Every scan is a fresh, point-in-time
snapshot; nothing is cached between scans.
"""

from __future__ import annotations
import logging
import subprocess
from typing import Optional

from .aggregator import aggregate_topology
from .exceptions import DiscoveryError, DiscoveryTimeoutError
from .lsusb_parser import parse_usb_topology
from .models import AppConfig, USBTopology

logger = logging.getLogger(__name__)

LSUSB_TREE_COMMAND = ["lsusb", "-t"]
LSUSB_LIST_COMMAND = ["lsusb"]


def run_command(args: list[str], timeout: float) -> str:
    """Run an enumeration command and return its stdout.

    Raises:
        DiscoveryTimeoutError: The command did not finish within timeout.
        DiscoveryError: The command is missing or exited nonzero.
    """
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        logger.warning(f"{' '.join(args)} timed out after {timeout}s")
        raise DiscoveryTimeoutError(f"{' '.join(args)} timed out after {timeout}s", args) from e
    except OSError as e:
        logger.warning(f"Cannot run {' '.join(args)}: {e}")
        raise DiscoveryError(f"Cannot run {' '.join(args)}: {e}", args) from e

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        logger.warning(f"{' '.join(args)} exited with status {result.returncode}: {stderr}")
        raise DiscoveryError(
            f"{' '.join(args)} exited with status {result.returncode}: {stderr}", args
        )

    return result.stdout


class USBScanner:
    """Scans the USB topology on demand."""

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or AppConfig()

    def scan_raw(self) -> USBTopology:
        """Scan and return the topology exactly as lsusb reports it."""
        timeout = self.config.command_timeout
        tree_output = run_command(LSUSB_TREE_COMMAND, timeout)
        list_output = run_command(LSUSB_LIST_COMMAND, timeout)

        topology = parse_usb_topology(tree_output, list_output)
        logger.debug(f"Scanned {len(topology.buses)} USB buses")
        return topology

    def scan(self, aggregate: bool = False) -> USBTopology:
        """Scan the topology, optionally merging same-vendor hub chains."""
        topology = self.scan_raw()
        if aggregate:
            return aggregate_topology(topology, self.config)
        return topology

    def get_tree(self, aggregate: bool = False) -> USBTopology:
        """Get current device tree."""
        return self.scan(aggregate)
