from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ServiceType(str, Enum):
    WEB = "web"
    DATABASE = "database"
    CACHE = "cache"
    QUEUE = "queue"
    MONITOR = "monitor"
    OTHER = "other"


class ServiceStatus(str, Enum):
    NOT_INSTALLED = "not_installed"
    INSTALLED = "installed"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass
class SystemInfo:
    os: str = ""
    distribution: str = ""
    version: str = ""
    kernel: str = ""
    arch: str = ""
    cpu_count: int = 0
    total_ram: int = 0
    total_disk: int = 0
    hostname: str = ""
    is_root: bool = False


@dataclass(frozen=True)
class CommandRequest:
    command: str
    description: str = ""
    needs_path: bool = False


@dataclass
class ExecutionResult:
    success: bool
    output: str = ""
    error: str = ""
    exit_code: int = 0
    duration: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class QuickCommand:
    id: str
    name: str
    description: str
    command: str
    require_root: bool = False
    confirm: bool = False


@dataclass(frozen=True)
class ToolkitCommand:
    name: str
    description: str
    command: str
    category: str
    needs_path: bool = False


@dataclass(frozen=True)
class SiteCommand:
    id: str
    name: str
    description: str
    command: str = ""
    needs_php: bool = False


@dataclass(frozen=True)
class SetupPackage:
    id: str
    name: str
    description: str
    service: str
    type: ServiceType
    install: str
    remove: str
    binary_only: bool = False
    script: str = ""


@dataclass(frozen=True)
class MenuItem:
    key: str
    title: str
    description: str = ""
    category: str = ""
