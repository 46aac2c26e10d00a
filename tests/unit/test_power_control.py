"""Unit tests for hubcontrol.power_control and the power request model."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from hubcontrol.models import AppConfig, CommandStatus, PowerAction, PowerControlRequest
from hubcontrol.power_control import build_uhubctl_args, control_power, get_uhubctl_info


class TestPowerControlRequest:
    def test_valid(self):
        req = PowerControlRequest(bus=1, port=3, action="cycle", location="1-1.4")
        assert req.action is PowerAction.CYCLE

    def test_dotted_location(self):
        assert PowerControlRequest(bus=1, port=3, action="on", location="1.4").location == "1.4"

    def test_empty_location_is_none(self):
        assert PowerControlRequest(bus=1, port=3, action="on", location="").location is None

    @pytest.mark.parametrize("location", ["-a", "1-1;reboot", "1..2", "abc"])
    def test_bad_location(self, location):
        with pytest.raises(ValidationError):
            PowerControlRequest(bus=1, port=3, action="on", location=location)

    def test_bad_action(self):
        with pytest.raises(ValidationError):
            PowerControlRequest(bus=1, port=3, action="toggle")

    def test_port_must_be_positive(self):
        with pytest.raises(ValidationError):
            PowerControlRequest(bus=1, port=0, action="on")


class TestControlPower:
    def test_args_with_location(self):
        req = PowerControlRequest(bus=1, port=3, action="off", location="1-1.4")
        assert build_uhubctl_args(req, ["sudo", "uhubctl"]) == [
            "sudo", "uhubctl", "-l", "1-1.4", "-p", "3", "-a", "off",
        ]

    def test_args_without_location(self):
        req = PowerControlRequest(bus=1, port=2, action="on")
        assert build_uhubctl_args(req, ["uhubctl"]) == ["uhubctl", "-p", "2", "-a", "on"]

    @patch("hubcontrol.power_control.subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="Sent power off request\n")
        req = PowerControlRequest(bus=1, port=3, action="off", location="1-1")
        response = control_power(req, AppConfig(power_timeout=4))

        assert response.success is True
        assert response.status is CommandStatus.SUCCESS
        assert "power off" in response.message
        assert mock_run.call_args.kwargs["timeout"] == 4

    @patch("hubcontrol.power_control.subprocess.run")
    def test_failure(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="No compatible devices detected!\n")
        response = control_power(PowerControlRequest(bus=1, port=3, action="on"), AppConfig())
        assert response.success is False
        assert response.status is CommandStatus.FAILED
        assert "No compatible devices" in response.message

    @patch("hubcontrol.power_control.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(["sudo", "uhubctl"], 30)
        response = control_power(PowerControlRequest(bus=1, port=3, action="cycle"), AppConfig())
        assert response.success is False
        assert response.status is CommandStatus.TIMEOUT

    @patch("hubcontrol.power_control.subprocess.run")
    def test_unavailable(self, mock_run):
        mock_run.side_effect = FileNotFoundError("sudo")
        response = control_power(PowerControlRequest(bus=1, port=3, action="on"), AppConfig())
        assert response.status is CommandStatus.UNAVAILABLE


class TestUhubctlInfo:
    @patch("hubcontrol.power_control.subprocess.run")
    def test_available(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="Current status for hub 1-1\n")
        info = get_uhubctl_info(AppConfig(uhubctl_command=["uhubctl"]))
        assert info.available is True
        assert mock_run.call_args.args[0] == ["uhubctl"]

    @patch("hubcontrol.power_control.subprocess.run")
    def test_unavailable(self, mock_run):
        mock_run.side_effect = FileNotFoundError("uhubctl")
        info = get_uhubctl_info(AppConfig())
        assert info.available is False
        assert info.status is CommandStatus.UNAVAILABLE
