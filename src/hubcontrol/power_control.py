"""
Per-port power control through uhubctl.

Commands are passed straight through to uhubctl. Every outcome, including a
timeout or a missing binary, is reported back rather than raised.
"""

from __future__ import annotations
import logging
import subprocess

from .models import (
    AppConfig,
    CommandStatus,
    PowerControlRequest,
    PowerControlResponse,
    UhubctlInfo,
)

logger = logging.getLogger(__name__)


def build_uhubctl_args(request: PowerControlRequest, command: list[str]) -> list[str]:
    """Build the uhubctl argument list for a power request."""
    args = list(command)
    if request.location:
        args += ["-l", request.location]
    args += ["-p", str(request.port), "-a", request.action.value]
    return args


def _run(args: list[str], timeout: float) -> tuple[CommandStatus, str]:
    """Run a command, returning its status and combined output."""
    try:
        result = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        logger.warning(f"{' '.join(args)} timed out after {timeout}s")
        output = e.output if isinstance(e.output, str) else ""
        return CommandStatus.TIMEOUT, output + f"\nTimed out after {timeout}s"
    except OSError as e:
        logger.warning(f"Cannot run {' '.join(args)}: {e}")
        return CommandStatus.UNAVAILABLE, str(e)

    if result.returncode != 0:
        logger.warning(f"{' '.join(args)} exited with status {result.returncode}")
        return CommandStatus.FAILED, result.stdout or ""

    return CommandStatus.SUCCESS, result.stdout or ""


def control_power(request: PowerControlRequest, config: AppConfig) -> PowerControlResponse:
    """Switch a hub port on, off, or power-cycle it."""
    args = build_uhubctl_args(request, config.uhubctl_command)
    logger.info(
        f"Power {request.action.value} on bus {request.bus} "
        f"location {request.location or '-'} port {request.port}"
    )

    status, output = _run(args, config.power_timeout)
    return PowerControlResponse(
        success=status == CommandStatus.SUCCESS,
        status=status,
        message=output,
    )


def get_uhubctl_info(config: AppConfig) -> UhubctlInfo:
    """Run uhubctl without arguments to report the hubs it can control."""
    status, output = _run(list(config.uhubctl_command), config.power_timeout)
    return UhubctlInfo(
        available=status == CommandStatus.SUCCESS,
        status=status,
        output=output,
    )
