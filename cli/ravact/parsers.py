from __future__ import annotations

import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path

EXEC_FLAGS = ("--listen", "--root", "--config")

_UFW_ACTIONS = {"ALLOW", "DENY", "REJECT", "LIMIT"}
_UFW_RULE_RE = re.compile(r"^\[\s*(\d+)\]\s+(.*)$")


@dataclass
class UnitService:
    name: str = ""
    description: str = ""
    user: str = ""
    group: str = ""
    site_root: str = ""
    docroot: str = ""
    config: str = ""
    listen: str = ""
    bind: str = ""
    port: str = ""
    socket: str = ""
    conn_type: str = "socket"
    exec_start: str = ""


@dataclass
class CaddyConfig:
    root: str = ""
    conn_type: str = ""
    port: str = ""
    num_threads: str = ""
    max_threads: str = ""
    max_wait_time: str = ""
    php_ini: dict[str, str] = field(default_factory=dict)


@dataclass
class PHPFPMPool:
    name: str = ""
    user: str = "www-data"
    group: str = "www-data"
    listen: str = "/run/php/php-fpm.sock"
    listen_owner: str = "www-data"
    listen_group: str = "www-data"
    listen_mode: str = "0660"
    pm: str = "dynamic"
    max_children: int = 5
    start_servers: int = 2
    min_spare_servers: int = 1
    max_spare_servers: int = 3
    max_requests: int = 500
    config_path: str = ""


@dataclass
class RedisConfig:
    port: str = "6379"
    password: str = ""
    max_memory: str = ""
    max_memory_policy: str = ""
    bind: str = ""
    config_path: str = ""

    @property
    def has_password(self) -> bool:
        return bool(self.password)


@dataclass
class MySQLConfig:
    port: int = 3306
    bind_address: str = "127.0.0.1"
    datadir: str = "/var/lib/mysql"
    socket: str = "/var/run/mysqld/mysqld.sock"
    config_path: str = ""


@dataclass
class PostgreSQLConfig:
    port: int = 5432
    listen_addresses: str = "localhost"
    max_connections: int = 100
    shared_buffers: str = "128MB"
    log_directory: str = "/var/log/postgresql"
    data_directory: str = ""
    config_path: str = ""
    hba_path: str = ""
    version: str = ""


@dataclass
class SupervisorProgram:
    name: str = ""
    command: str = ""
    directory: str = ""
    user: str = ""
    autostart: bool = True
    autorestart: bool = True
    numprocs: int = 1
    state: str = "UNKNOWN"
    config_path: str = ""


@dataclass
class XMLRPCConfig:
    enabled: bool = False
    ip: str = "127.0.0.1"
    port: str = "9001"
    username: str = ""
    password: str = ""


@dataclass
class NginxSite:
    name: str = ""
    config_path: str = ""
    enabled: bool = False
    server_name: str = ""
    root: str = ""
    has_ssl: bool = False


@dataclass
class User:
    username: str
    uid: int
    gid: int
    home: str = ""
    shell: str = ""
    comment: str = ""
    groups: list[str] = field(default_factory=list)
    has_sudo: bool = False


@dataclass
class Group:
    name: str
    gid: int
    members: list[str] = field(default_factory=list)


@dataclass
class FirewallRule:
    number: int
    port: str
    protocol: str = "tcp"
    action: str = "allow"
    source: str = "Anywhere"
    direction: str = "in"


def _clean_path(value: str) -> str:
    value = value.strip().strip("\"'")
    if len(value) > 1:
        value = value.rstrip("/")
    return value


def _to_int(value: str, default: int) -> int:
    try:
        return int(value.strip())
    except (TypeError, ValueError):
        return default


def _logical_lines(text: str) -> list[str]:
    """Join systemd style continuation lines ending with a backslash."""
    lines: list[str] = []
    pending = ""
    for raw in text.splitlines():
        line = raw.rstrip()
        if line.endswith("\\"):
            pending += line[:-1] + " "
            continue
        lines.append(pending + line)
        pending = ""
    if pending:
        lines.append(pending)
    return lines


def split_listen(value: str) -> tuple[str, str, str, str]:
    """Return (conn_type, bind, port, socket) for a --listen value."""
    value = value.strip()
    if value.startswith("unix:") or value.startswith("unix/"):
        return "socket", "", "", value[5:]
    if ":" not in value:
        return "socket", "", "", value
    bind, _, port = value.rpartition(":")
    return "port", bind, port, ""


def exec_start_flags(exec_start: str) -> dict[str, str]:
    try:
        tokens = shlex.split(exec_start)
    except ValueError:
        tokens = exec_start.split()
    flags: dict[str, str] = {}
    for idx, token in enumerate(tokens):
        if "=" in token and token.split("=", 1)[0] in EXEC_FLAGS:
            key, value = token.split("=", 1)
            flags[key] = value.rstrip("\\").strip()
            continue
        if token in EXEC_FLAGS and idx + 1 < len(tokens):
            flags[token] = tokens[idx + 1].rstrip("\\").strip()
    return flags


def parse_unit_file(text: str, name: str = "") -> UnitService:
    svc = UnitService(name=name)
    for raw in _logical_lines(text):
        line = raw.strip()
        if not line or line.startswith(("#", ";")):
            continue
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if key == "Description":
            svc.description = value
        elif key == "User":
            svc.user = value
        elif key == "Group":
            svc.group = value
        elif key == "WorkingDirectory":
            svc.site_root = _clean_path(value)
        elif key == "ExecStart":
            svc.exec_start = value
            flags = exec_start_flags(value)
            if "--root" in flags:
                svc.docroot = _clean_path(flags["--root"])
            if "--config" in flags:
                svc.config = _clean_path(flags["--config"])
            if "--listen" in flags:
                svc.listen = flags["--listen"]
                svc.conn_type, svc.bind, svc.port, svc.socket = split_listen(svc.listen)
    return svc


def read_unit_file(path: str | Path) -> tuple[UnitService, str | None]:
    path = Path(path)
    name = path.name.removesuffix(".service")
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        return UnitService(name=name), f"cannot read {path}: {exc.strerror or exc}"
    return parse_unit_file(text, name=name), None


_CADDY_PORT_RE = re.compile(r"^(?:https?://)?[\w.-]*:(\d+)\s*\{$")


def parse_caddyfile(text: str) -> CaddyConfig:
    """Pick the FrankenPHP settings out of a generated Caddyfile."""
    cfg = CaddyConfig()
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        match = _CADDY_PORT_RE.match(line)
        if match:
            cfg.port = match.group(1)
            continue
        key, _, rest = line.partition(" ")
        rest = rest.strip()
        if key in ("num_threads", "max_threads"):
            setattr(cfg, key, rest)
        elif key == "max_wait_time":
            cfg.max_wait_time = rest.removesuffix("s")
        elif key == "root" and rest.startswith("* "):
            cfg.root = rest[2:].strip()
        elif key == "bind":
            cfg.conn_type = "socket" if rest.startswith("unix/") else "port"
        elif key == "php_ini":
            name, _, value = rest.partition(" ")
            if value:
                cfg.php_ini[name] = value.strip()
    if cfg.port and not cfg.conn_type:
        cfg.conn_type = "port"
    return cfg


def parse_php_pool(text: str) -> PHPFPMPool:
    pool = PHPFPMPool()
    in_section = False
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(";"):
            continue
        if line.startswith("[") and line.endswith("]"):
            pool.name = line[1:-1].strip()
            in_section = True
            continue
        if not in_section or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if key == "user":
            pool.user = value
        elif key == "group":
            pool.group = value
        elif key == "listen":
            pool.listen = value
        elif key == "listen.owner":
            pool.listen_owner = value
        elif key == "listen.group":
            pool.listen_group = value
        elif key == "listen.mode":
            pool.listen_mode = value
        elif key == "pm":
            pool.pm = value
        elif key == "pm.max_children":
            pool.max_children = _to_int(value, pool.max_children)
        elif key == "pm.start_servers":
            pool.start_servers = _to_int(value, pool.start_servers)
        elif key == "pm.min_spare_servers":
            pool.min_spare_servers = _to_int(value, pool.min_spare_servers)
        elif key == "pm.max_spare_servers":
            pool.max_spare_servers = _to_int(value, pool.max_spare_servers)
        elif key == "pm.max_requests":
            pool.max_requests = _to_int(value, pool.max_requests)
    return pool


def parse_redis_config(text: str) -> RedisConfig:
    cfg = RedisConfig()
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        key, value = parts[0].lower(), parts[1]
        if key == "port":
            cfg.port = value
        elif key == "requirepass":
            cfg.password = value.strip("\"")
        elif key == "maxmemory":
            cfg.max_memory = value
        elif key == "maxmemory-policy":
            cfg.max_memory_policy = value
        elif key == "bind":
            cfg.bind = " ".join(parts[1:])
    return cfg


def parse_mysql_config(text: str) -> MySQLConfig:
    cfg = MySQLConfig()
    section = ""
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", ";", "!")):
            continue
        if line.startswith("[") and line.endswith("]"):
            section = line[1:-1].strip().lower()
            continue
        if section not in ("", "mysqld") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip().replace("_", "-")
        value = value.strip()
        if key == "port":
            cfg.port = _to_int(value, cfg.port)
        elif key == "bind-address":
            cfg.bind_address = value
        elif key == "datadir":
            cfg.datadir = value
        elif key == "socket":
            cfg.socket = value
    return cfg


def parse_postgresql_config(text: str) -> PostgreSQLConfig:
    cfg = PostgreSQLConfig()
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.split("#", 1)[0].strip().strip("'\"")
        if key == "port":
            cfg.port = _to_int(value, cfg.port)
        elif key == "listen_addresses":
            cfg.listen_addresses = value
        elif key == "max_connections":
            cfg.max_connections = _to_int(value, cfg.max_connections)
        elif key == "shared_buffers":
            cfg.shared_buffers = value
        elif key == "log_directory":
            cfg.log_directory = value
        elif key == "data_directory":
            cfg.data_directory = value
    return cfg


def parse_supervisor_program(text: str) -> SupervisorProgram:
    prog = SupervisorProgram()
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith((";", "#")):
            continue
        if line.startswith("[program:") and line.endswith("]"):
            prog.name = line[len("[program:"):-1].strip()
            continue
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if key == "command":
            prog.command = value
        elif key == "directory":
            prog.directory = value
        elif key == "user":
            prog.user = value
        elif key == "autostart":
            prog.autostart = value.lower() == "true"
        elif key == "autorestart":
            prog.autorestart = value.lower() in ("true", "unexpected")
        elif key == "numprocs":
            prog.numprocs = _to_int(value, prog.numprocs)
    return prog


def parse_xmlrpc_config(text: str) -> XMLRPCConfig:
    cfg = XMLRPCConfig()
    in_section = False
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith((";", "#")):
            continue
        if line.startswith("["):
            in_section = line == "[inet_http_server]"
            if in_section:
                cfg.enabled = True
            continue
        if not in_section or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if key == "port":
            if ":" in value:
                ip, _, port = value.rpartition(":")
                cfg.ip = ip or "*"
                cfg.port = port
            else:
                cfg.port = value
        elif key == "username":
            cfg.username = value
        elif key == "password":
            cfg.password = value
    return cfg


def parse_nginx_site(text: str) -> NginxSite:
    site = NginxSite()
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("server_name ") and not site.server_name:
            site.server_name = line[len("server_name "):].rstrip(";").strip()
        elif line.startswith("root ") and not site.root:
            site.root = line[len("root "):].rstrip(";").strip()
        if (line.startswith("listen") and "443" in line) or line.startswith("ssl_certificate"):
            site.has_ssl = True
    return site


def parse_os_release(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("\"'")
    return values


def parse_meminfo(text: str) -> int:
    for raw in text.splitlines():
        if raw.startswith("MemTotal:"):
            parts = raw.split()
            if len(parts) >= 2:
                return _to_int(parts[1], 0) * 1024
    return 0


def parse_passwd(text: str) -> list[User]:
    users: list[User] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split(":")
        if len(parts) < 7:
            continue
        uid = _to_int(parts[2], -1)
        gid = _to_int(parts[3], -1)
        if uid < 0:
            continue
        users.append(
            User(username=parts[0], uid=uid, gid=gid, comment=parts[4], home=parts[5], shell=parts[6])
        )
    return users


def parse_group(text: str) -> list[Group]:
    groups: list[Group] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split(":")
        if len(parts) < 4:
            continue
        members = [m.strip() for m in parts[3].split(",") if m.strip()]
        groups.append(Group(name=parts[0], gid=_to_int(parts[2], -1), members=members))
    return groups


def parse_ufw_status(text: str) -> list[FirewallRule]:
    rules: list[FirewallRule] = []
    for raw in text.splitlines():
        match = _UFW_RULE_RE.match(raw.strip())
        if not match:
            continue
        number = int(match.group(1))
        parts = match.group(2).split()
        idx = next((i for i, p in enumerate(parts) if p.upper() in _UFW_ACTIONS), -1)
        if idx <= 0:
            continue
        target = " ".join(parts[:idx])
        action = parts[idx].lower()
        rest = parts[idx + 1:]
        direction = "in"
        if rest and rest[0].upper() in ("IN", "OUT", "FWD"):
            direction = rest[0].lower()
            rest = rest[1:]
        port, protocol = target, "tcp"
        if "/" in target.split()[0]:
            port, _, protocol = target.split()[0].partition("/")
            if target.endswith("(v6)"):
                port = f"{port} (v6)"
        elif not target[:1].isdigit():
            protocol = "any"
        rules.append(
            FirewallRule(
                number=number,
                port=port,
                protocol=protocol,
                action=action,
                source=" ".join(rest) or "Anywhere",
                direction=direction,
            )
        )
    return rules
