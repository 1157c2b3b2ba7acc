from __future__ import annotations

import logging
import os
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import NotInstalledError, ValidationError
from ..parsers import UnitService, parse_caddyfile, read_unit_file
from ..runner import CommandRunner
from .files import parse_port, read_text

log = logging.getLogger(__name__)

SYSTEMD_DIR = "/etc/systemd/system"
CONFIG_DIR = "/etc/frankenphp"
NGINX_DIR = "/etc/nginx"
RUN_DIR = "/run/frankenphp"
STORAGE_DIR = "/var/lib/caddy"
BINARY = "/usr/local/bin/frankenphp"
FPCLI = "/usr/local/bin/fpcli"
PREFIX = "frankenphp-"
ACTIONS = ("start", "stop", "restart", "enable", "disable", "status")
CONN_TYPES = ("socket", "port")
HEREDOC = "RAVACT_EOF"
_KEY_RE = re.compile(r"^[a-z0-9][a-z0-9._-]*$")
_SERVER_NAME_RE = re.compile(r"^\s*server_name\s+([^;]+);", re.MULTILINE)

# php_ini values that are not editable from the form
PHP_INI_FIXED = {
    "opcache.interned_strings_buffer": "32",
    "opcache.max_accelerated_files": "100000",
    "opcache.revalidate_freq": "0",
    "realpath_cache_size": "4096K",
    "realpath_cache_ttl": "600",
}


@dataclass
class FrankenPHPService:
    unit: UnitService
    path: str
    active: str = "unknown"
    enabled: str = "unknown"
    error: str | None = None

    @property
    def name(self) -> str:
        return self.unit.name

    @property
    def site_key(self) -> str:
        return self.unit.name.removeprefix(PREFIX)


@dataclass
class FrankenPHPSite:
    """Settings one FrankenPHP classic-mode site is generated from."""

    site_key: str
    site_root: str
    docroot: str = "public"
    domains: str = ""
    conn_type: str = "socket"
    port: str = "8000"
    user: str = "www-data"
    group: str = "www-data"
    binary: str = BINARY
    num_threads: str = "8"
    max_threads: str = "auto"
    max_wait_time: str = "15"
    memory_limit: str = "256M"
    max_execution_time: str = "30"
    upload_max_mb: str = "20"
    opcache: bool = True
    opcache_cli: bool = True
    opcache_memory: str = "512"
    validate_timestamps: bool = False
    jit: bool = False

    @property
    def service(self) -> str:
        return f"{PREFIX}{self.site_key}"

    @property
    def socket(self) -> str:
        return f"{RUN_DIR}/{self.site_key}.sock"

    @property
    def full_docroot(self) -> str:
        if not self.docroot:
            return self.site_root
        if self.docroot.startswith("/"):
            return self.docroot
        return os.path.join(self.site_root, self.docroot)

    def php_ini(self) -> dict[str, str]:
        upload = int(self.upload_max_mb)
        return {
            "memory_limit": self.memory_limit,
            "max_execution_time": self.max_execution_time,
            "upload_max_filesize": f"{upload}M",
            "post_max_size": f"{upload + 10}M",
            "opcache.enable": "1" if self.opcache else "0",
            "opcache.enable_cli": "1" if self.opcache_cli else "0",
            "opcache.memory_consumption": self.opcache_memory,
            "opcache.validate_timestamps": "1" if self.validate_timestamps else "0",
            "opcache.jit": "1255" if self.jit else "0",
            "opcache.jit_buffer_size": "64M" if self.jit else "0",
            **PHP_INI_FIXED,
        }


@dataclass
class GeneratedFile:
    name: str
    path: str
    content: str = field(repr=False, default="")


def suggest_site_key(site_root: str) -> str:
    """Name the site after the project directory (or its parent for .../app/current)."""
    path = Path(site_root.rstrip("/"))
    base = path.parent.name
    if not base or base in ("www", "var", "srv", "home"):
        base = path.name
    key = re.sub(r"[^a-z0-9._-]", "", base.lower().replace(" ", "-"))
    return key or "site"


def validate_site(site: FrankenPHPSite) -> None:
    if not _KEY_RE.match(site.site_key):
        raise ValidationError("site_key", "use lowercase letters, digits, dots, dashes and underscores")
    if not site.site_root.startswith("/"):
        raise ValidationError("site_root", "must be an absolute path")
    if site.conn_type not in CONN_TYPES:
        raise ValidationError("conn_type", f"must be one of: {', '.join(CONN_TYPES)}")
    if site.conn_type == "port":
        try:
            site.port = str(parse_port(site.port, low=1024))
        except ValidationError as exc:
            raise ValidationError("port", exc.message) from None
    if not site.user.strip():
        raise ValidationError("user", "cannot be empty")
    site.group = site.group.strip() or site.user
    for name in ("upload_max_mb", "max_execution_time", "num_threads", "max_wait_time", "opcache_memory"):
        if not getattr(site, name).strip().isdigit():
            raise ValidationError(name, "must be a number")
    if site.max_threads != "auto" and not site.max_threads.isdigit():
        raise ValidationError("max_threads", "must be a number or 'auto'")


def render_caddyfile(site: FrankenPHPSite) -> str:
    php = "\n".join(f"\t\tphp_ini {k} {v}" for k, v in site.php_ini().items() if v)
    if site.conn_type == "socket":
        address, bind = "http://", f"bind unix/{site.socket}"
    else:
        address, bind = f"http://:{site.port}", "bind 127.0.0.1"
    return f"""{{
\tfrankenphp {{
\t\tnum_threads {site.num_threads}
\t\tmax_threads {site.max_threads}
\t\tmax_wait_time {site.max_wait_time}s
{php}
\t}}
\tstorage file_system {STORAGE_DIR}/{site.site_key}/data
\tauto_https off
\tadmin off
}}

{address} {{
\t{bind}
\troot * {site.full_docroot}
\tencode zstd br gzip
\trequest_body {{
\t\tmax_size {site.upload_max_mb}MB
\t}}
\tphp_server
}}
"""


def render_unit(site: FrankenPHPSite, config_dir: str = CONFIG_DIR) -> str:
    caddyfile = f"{config_dir}/{site.site_key}/Caddyfile"
    lines = [
        "[Unit]",
        f"Description=FrankenPHP {site.site_key}",
        "After=network.target",
        "",
        "[Service]",
        "Type=notify",
        f"User={site.user}",
        f"Group={site.group}",
        f"WorkingDirectory={site.site_root}",
        f"Environment=APP_BASE_PATH={site.site_root}",
        f"Environment=XDG_CONFIG_HOME={STORAGE_DIR}/{site.site_key}/config",
        f"Environment=XDG_DATA_HOME={STORAGE_DIR}/{site.site_key}/data",
        f"RuntimeDirectory={Path(RUN_DIR).name}",
        "RuntimeDirectoryPreserve=yes",
    ]
    if site.conn_type == "socket":
        lines.append(f"ExecStartPre=/usr/bin/rm -f {site.socket}")
    lines.append(f"ExecStart={site.binary} run --config {caddyfile}")
    if site.conn_type == "socket":
        lines.append(
            f"ExecStartPost=/bin/sh -c 'for i in $(seq 1 50); do [ -S {site.socket} ] && "
            f"chmod 0660 {site.socket} && exit 0; sleep 0.1; done; "
            f"echo \"Socket not created: {site.socket}\" >&2; exit 1'"
        )
    lines += [
        f"ExecReload={site.binary} reload --config {caddyfile}",
        "Restart=always",
        "RestartSec=5s",
        "LimitNOFILE=65535",
        "",
        "[Install]",
        "WantedBy=multi-user.target",
    ]
    return "\n".join(lines) + "\n"


def render_nginx(site: FrankenPHPSite) -> str:
    upstream_name = "frankenphp_" + re.sub(r"[^A-Za-z0-9_]", "_", site.site_key)
    server = f"unix:{site.socket}" if site.conn_type == "socket" else f"127.0.0.1:{site.port}"
    return f"""upstream {upstream_name} {{
    server {server};
    keepalive 16;
}}

server {{
    listen 80;
    listen [::]:80;
    server_name {site.domains or '_'};

    client_max_body_size {site.upload_max_mb}M;

    location / {{
        proxy_pass http://{upstream_name};
        proxy_http_version 1.1;
        proxy_set_header Connection "";
        proxy_set_header Host $host;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
    }}
}}
"""


def render_fpcli(binary: str = BINARY) -> str:
    return f'#!/bin/sh\n# php CLI through FrankenPHP\nexec {binary} php-cli "$@"\n'


class FrankenPHPManager:
    def __init__(
            self,
            runner: CommandRunner | None = None,
            systemd_dir: str = SYSTEMD_DIR,
            *,
            config_dir: str = CONFIG_DIR,
            nginx_dir: str = NGINX_DIR,
    ):
        self.runner = runner or CommandRunner()
        self.systemd_dir = Path(systemd_dir)
        self.config_dir = Path(config_dir)
        self.nginx_dir = Path(nginx_dir)

    def list_services(self) -> list[FrankenPHPService]:
        services: list[FrankenPHPService] = []
        for path in sorted(self.systemd_dir.glob(f"{PREFIX}*.service")):
            unit, error = read_unit_file(path)
            if error:
                log.warning("frankenphp unit %s: %s", path, error)
            svc = FrankenPHPService(unit=unit, path=str(path), error=error)
            svc.active = self.runner.output(["systemctl", "is-active", unit.name]) or "unknown"
            svc.enabled = self.runner.output(["systemctl", "is-enabled", unit.name]) or "unknown"
            services.append(svc)
        return services

    def find_for_root(self, site_root: str) -> FrankenPHPService | None:
        wanted = os.path.normpath(site_root)
        for svc in self.list_services():
            if svc.unit.site_root and os.path.normpath(svc.unit.site_root) == wanted:
                return svc
        return None

    def binary(self) -> str:
        return self.runner.which("frankenphp") or BINARY

    def caddyfile_path(self, site_key: str) -> Path:
        return self.config_dir / site_key / "Caddyfile"

    def nginx_path(self, site_key: str) -> Path:
        return self.nginx_dir / "sites-available" / f"{site_key}.conf"

    def new_site(self, site_root: str) -> FrankenPHPSite:
        site = FrankenPHPSite(site_key=suggest_site_key(site_root), site_root=site_root, binary=self.binary())
        if not os.path.isdir(os.path.join(site_root, "public")):
            site.docroot = ""
        return site

    def load_site(self, service: FrankenPHPService) -> FrankenPHPSite:
        """Settings of a deployed service; its unit, Caddyfile and nginx vhost are read back."""
        if service.error:
            raise ValidationError("", f"configuration unknown ({service.error})")
        unit = service.unit
        site = FrankenPHPSite(site_key=service.site_key, site_root=unit.site_root, user=unit.user or "www-data",
                              group=unit.group or unit.user or "www-data")
        if unit.exec_start:
            site.binary = unit.exec_start.split()[0]
        caddyfile = Path(unit.config) if unit.config else self.caddyfile_path(service.site_key)
        try:
            self._apply_caddyfile(site, read_text(caddyfile))
        except NotInstalledError:
            log.info("no Caddyfile for %s, using defaults", service.name)
        try:
            match = _SERVER_NAME_RE.search(read_text(self.nginx_path(service.site_key)))
        except NotInstalledError:
            match = None
        domains = " ".join(match.group(1).split()) if match else ""
        if domains != "_":
            site.domains = domains
        return site

    def _apply_caddyfile(self, site: FrankenPHPSite, text: str) -> None:
        cfg = parse_caddyfile(text)
        for name in ("num_threads", "max_threads", "max_wait_time", "conn_type", "port"):
            value = getattr(cfg, name)
            if value:
                setattr(site, name, value)
        if cfg.root:
            root = site.site_root.rstrip("/") + "/"
            site.docroot = cfg.root[len(root):] if cfg.root.startswith(root) else cfg.root
        ini = cfg.php_ini
        site.memory_limit = ini.get("memory_limit", site.memory_limit)
        site.max_execution_time = ini.get("max_execution_time", site.max_execution_time)
        site.upload_max_mb = ini.get("upload_max_filesize", f"{site.upload_max_mb}M").removesuffix("M")
        site.opcache_memory = ini.get("opcache.memory_consumption", site.opcache_memory)
        site.opcache = ini.get("opcache.enable", "1") == "1"
        site.opcache_cli = ini.get("opcache.enable_cli", "1") == "1"
        site.validate_timestamps = ini.get("opcache.validate_timestamps", "0") == "1"
        site.jit = ini.get("opcache.jit", "0") not in ("0", "off")

    def generate(self, site: FrankenPHPSite) -> list[GeneratedFile]:
        validate_site(site)
        return [
            GeneratedFile("Caddyfile", str(self.caddyfile_path(site.site_key)), render_caddyfile(site)),
            GeneratedFile("Systemd Service", str(self.systemd_dir / f"{site.service}.service"),
                          render_unit(site, str(self.config_dir))),
            GeneratedFile("Nginx Config", str(self.nginx_path(site.site_key)), render_nginx(site)),
            GeneratedFile("fpcli Wrapper", FPCLI, render_fpcli(site.binary)),
        ]

    def deploy_script(self, site: FrankenPHPSite, files: list[GeneratedFile], *, new: bool) -> str:
        """Back up and write the generated files, then (re)start the service and reload nginx."""
        q = shlex.quote
        owner = q(f"{site.user}:{site.group}")
        storage = f"{STORAGE_DIR}/{site.site_key}"
        verb = "Creating" if new else "Updating"
        out = [
            "#!/bin/bash",
            "set -e",
            f"echo {q(f'{verb} FrankenPHP site: {site.site_key}')}",
            f"mkdir -p {q(str(self.config_dir / site.site_key))} {RUN_DIR}",
            f"mkdir -p {q(storage)}/config {q(storage)}/data {q(storage)}/tls",
            f"chown -R {owner} {q(storage)} {RUN_DIR}",
            f"chmod -R 750 {q(storage)}",
        ]
        for item in files:
            path = q(item.path)
            out += [
                f"mkdir -p {q(os.path.dirname(item.path))}",
                f"if [ -f {path} ]; then cp {path} {path}.bak; fi",
                f"cat > {path} <<'{HEREDOC}'",
                item.content.rstrip("\n"),
                HEREDOC,
            ]
        caddyfile = q(str(self.caddyfile_path(site.site_key)))
        enabled = q(str(self.nginx_dir / "sites-enabled" / f"{site.site_key}.conf"))
        out += [
            f"chmod +x {FPCLI}",
            f"{q(site.binary)} fmt --overwrite {caddyfile}",
            f"chown -R {owner} {q(str(self.config_dir / site.site_key))}",
            f"ln -sf {q(str(self.nginx_path(site.site_key)))} {enabled}",
            "systemctl daemon-reload",
            f"systemctl enable --now {site.service}" if new else f"systemctl restart {site.service}",
            "nginx -t && systemctl reload nginx",
            "set +e",
            f"if systemctl is-active --quiet {site.service}; then",
            f"    echo '✓ Service {site.service} is running'",
            "else",
            f"    echo '✗ Service {site.service} failed to start'",
            f"    systemctl status {site.service} --no-pager -l",
            "    exit 1",
            "fi",
        ]
        return "\n".join(out) + "\n"

    def action_command(self, service: FrankenPHPService, action: str) -> str:
        if action not in ACTIONS:
            raise ValueError(f"unknown action: {action}")
        name = shlex.quote(service.name)
        if action == "status":
            return f"systemctl status {name} --no-pager -l"
        if action in ("start", "restart"):
            return f"systemctl {action} {name} && systemctl status {name} --no-pager -l"
        return f"systemctl {action} {name} && echo '✓ {service.name}: {action} done'"

    def remove_command(self, service: FrankenPHPService) -> str:
        name = shlex.quote(service.name)
        return " && ".join(
            [
                f"systemctl stop {name}",
                f"systemctl disable {name}",
                f"rm -f {shlex.quote(service.path)}",
                "systemctl daemon-reload",
                f"echo '✓ Removed {service.name}'",
            ]
        )
