from __future__ import annotations

import logging
import os
import platform
import socket
from pathlib import Path

from ..models import ServiceStatus, SystemInfo
from ..parsers import parse_meminfo, parse_os_release
from ..runner import CommandRunner

log = logging.getLogger(__name__)

# Tools that ship a binary but no systemd unit.
BINARY_ONLY = {"certbot", "git", "node", "nodejs", "ufw", "composer", "frankenphp"}

_UNITS = 1024.0


def format_bytes(value: int) -> str:
    if value < 1024:
        return f"{value} B"
    size = float(value)
    for unit in "KMGTPE":
        size /= _UNITS
        if size < _UNITS:
            return f"{size:.1f} {unit}B"
    return f"{size:.1f} EB"


def recommended_worker_connections(total_ram: int) -> int:
    gb = total_ram // (1024 ** 3)
    return max(1024, min(4096, int(gb) * 1024))


class Detector:
    def __init__(
            self,
            runner: CommandRunner | None = None,
            *,
            os_release: str = "/etc/os-release",
            lsb_release: str = "/etc/lsb-release",
            meminfo: str = "/proc/meminfo",
    ):
        self.runner = runner or CommandRunner()
        self.os_release = Path(os_release)
        self.lsb_release = Path(lsb_release)
        self.meminfo = Path(meminfo)

    def system_info(self) -> SystemInfo:
        info = SystemInfo(
            os=platform.system().lower(),
            arch=platform.machine(),
            cpu_count=os.cpu_count() or 0,
            hostname=socket.gethostname(),
            is_root=is_root(),
        )
        info.distribution, info.version = self._distribution()
        try:
            info.total_ram = parse_meminfo(self.meminfo.read_text(encoding="utf-8"))
        except OSError:
            info.total_ram = 0
        info.total_disk = self._disk_total()
        info.kernel = self.runner.output(["uname", "-r"])
        return info

    def _distribution(self) -> tuple[str, str]:
        try:
            values = parse_os_release(self.os_release.read_text(encoding="utf-8"))
            return values.get("ID", "unknown"), values.get("VERSION_ID", "")
        except OSError:
            pass
        try:
            values = parse_os_release(self.lsb_release.read_text(encoding="utf-8"))
            return values.get("DISTRIB_ID", "unknown").lower(), values.get("DISTRIB_RELEASE", "")
        except OSError:
            return "unknown", ""

    def _disk_total(self) -> int:
        lines = self.runner.output(["df", "-B1", "/"]).splitlines()
        if len(lines) < 2:
            return 0
        fields = lines[1].split()
        try:
            return int(fields[1])
        except (IndexError, ValueError):
            return 0

    def is_installed(self, service: str) -> bool:
        log.debug("checking %s", service)
        if service in BINARY_ONLY:
            return self.runner.which(service) is not None
        out = self.runner.output(["systemctl", "list-unit-files", f"{service}.service"])
        if f"{service}.service" in out:
            return True
        return self.runner.which(service) is not None

    def service_status(self, service: str) -> ServiceStatus:
        if not self.is_installed(service):
            return ServiceStatus.NOT_INSTALLED
        if service in BINARY_ONLY:
            return ServiceStatus.INSTALLED
        state = self.runner.output(["systemctl", "is-active", service])
        return {
            "active": ServiceStatus.RUNNING,
            "inactive": ServiceStatus.STOPPED,
            "failed": ServiceStatus.FAILED,
        }.get(state, ServiceStatus.INSTALLED)

    def primary_ip(self) -> str:
        out = self.runner.output(["hostname", "-I"])
        if out:
            return out.split()[0]
        for line in self.runner.output(["ip", "-4", "addr"]).splitlines():
            line = line.strip()
            if line.startswith("inet ") and "127.0.0.1" not in line:
                return line.split()[1].split("/")[0]
        return "N/A"

    def host_info(self) -> str:
        return f"{socket.gethostname()} ({self.primary_ip()})"


def is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0

