from __future__ import annotations

import logging
import re
import shlex
from pathlib import Path

from ..errors import CommandError, NotInstalledError, ValidationError
from ..parsers import NginxSite, parse_nginx_site
from ..runner import CommandRunner
from .files import list_dir, read_lines, read_text, remove, symlink, write_lines, write_text

log = logging.getLogger(__name__)

NGINX_DIR = "/etc/nginx"
TEMPLATES = {
    "static": "Static HTML site",
    "php": "Generic PHP application",
    "laravel": "Laravel application (public/ docroot)",
    "wordpress": "WordPress site",
}
PHP_SOCKET = "unix:/var/run/php/php-fpm.sock"
_SITE_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_SSL_SETTINGS = (
    "ssl_protocols TLSv1.2 TLSv1.3;",
    "ssl_ciphers HIGH:!aNULL:!MD5;",
    "ssl_prefer_server_ciphers on;",
)


def _php_location(extra: str = "") -> list[str]:
    lines = [
        "location ~ \\.php$ {",
        "    include snippets/fastcgi-php.conf;",
        f"    fastcgi_pass {PHP_SOCKET};",
    ]
    if extra:
        lines.append(f"    {extra}")
    return lines + ["}"]


def template_directives(template: str) -> list[str]:
    if template == "php":
        return _php_location() + ["", "location ~ /\\.ht {", "    deny all;", "}"]
    if template == "laravel":
        return [
            "location / {",
            "    try_files $uri $uri/ /index.php?$query_string;",
            "}",
            "",
            *_php_location("fastcgi_param SCRIPT_FILENAME $realpath_root$fastcgi_script_name;"),
            "",
            "location ~ /\\.(?!well-known).* {",
            "    deny all;",
            "}",
        ]
    if template == "wordpress":
        return [
            "location / {",
            "    try_files $uri $uri/ /index.php?$args;",
            "}",
            "",
            *_php_location(),
            "",
            "location ~ /\\.ht {",
            "    deny all;",
            "}",
            "",
            "location = /favicon.ico { log_not_found off; access_log off; }",
            "location = /robots.txt { allow all; log_not_found off; access_log off; }",
            "",
            "location ~* \\.(js|css|png|jpg|jpeg|gif|ico)$ {",
            "    expires max;",
            "    log_not_found off;",
            "}",
        ]
    return ["location / {", "    try_files $uri $uri/ =404;", "}"]


def _block(lines: list[str]) -> list[str]:
    return ["server {", *[f"    {line}" if line else "" for line in lines], "}"]


def generate_config(domain: str, root: str, template: str, *, ssl: bool = False, certbot: bool = False) -> str:
    common = [
        f"root {root};",
        "index index.html index.htm index.php;",
        "",
        f"access_log /var/log/nginx/{domain}-access.log;",
        f"error_log /var/log/nginx/{domain}-error.log;",
        "",
        *template_directives(template),
    ]
    if not ssl:
        body = ["listen 80;", "listen [::]:80;", f"server_name {domain};", "", *common]
        return "\n".join(_block(body)) + "\n"

    if certbot:
        redirect = [
            "listen 80;",
            "listen [::]:80;",
            f"server_name {domain};",
            "",
            "location /.well-known/acme-challenge/ {",
            f"    root {root};",
            "}",
            "",
            "location / {",
            "    return 301 https://$server_name$request_uri;",
            "}",
        ]
        certs = [
            f"ssl_certificate /etc/letsencrypt/live/{domain}/fullchain.pem;",
            f"ssl_certificate_key /etc/letsencrypt/live/{domain}/privkey.pem;",
        ]
    else:
        redirect = [
            "listen 80;",
            "listen [::]:80;",
            f"server_name {domain};",
            "return 301 https://$server_name$request_uri;",
        ]
        certs = [
            "# Set the certificate paths, then run an nginx config test.",
            "# ssl_certificate /path/to/certificate.crt;",
            "# ssl_certificate_key /path/to/private.key;",
        ]
    secure = [
        "listen 443 ssl http2;",
        "listen [::]:443 ssl http2;",
        f"server_name {domain};",
        "",
        *certs,
        *_SSL_SETTINGS,
        "",
        *common,
    ]
    return "\n".join(_block(redirect)) + "\n\n" + "\n".join(_block(secure)) + "\n"


class NginxManager:
    def __init__(self, runner: CommandRunner | None = None, base_dir: str = NGINX_DIR):
        self.runner = runner or CommandRunner()
        self.base_dir = Path(base_dir)
        self.available = self.base_dir / "sites-available"
        self.enabled = self.base_dir / "sites-enabled"

    def _site_path(self, name: str) -> Path:
        path = self.available / name
        if not path.exists():
            raise CommandError(f"site not found: {name}")
        return path

    def list_sites(self) -> list[NginxSite]:
        if not self.available.is_dir():
            raise NotInstalledError(f"nginx sites directory not found: {self.available}")
        sites: list[NginxSite] = []
        for path in list_dir(self.available):
            if path.name == "default" or not path.is_file():
                continue
            sites.append(self.get_site(path.name))
        return sites

    def get_site(self, name: str) -> NginxSite:
        path = self._site_path(name)
        site = parse_nginx_site(read_text(path))
        site.name = name
        site.config_path = str(path)
        link = self.enabled / name
        site.enabled = link.is_symlink() or link.exists()
        return site

    def enable_site(self, name: str) -> None:
        path = self._site_path(name)
        link = self.enabled / name
        if link.is_symlink() or link.exists():
            return
        symlink(link, path)
        log.info("enabled nginx site %s", name)

    def disable_site(self, name: str) -> None:
        link = self.enabled / name
        if link.is_symlink() or link.exists():
            remove(link)
            log.info("disabled nginx site %s", name)

    def toggle_site(self, name: str) -> bool:
        if self.get_site(name).enabled:
            self.disable_site(name)
            return False
        self.enable_site(name)
        return True

    def test_config(self) -> str:
        res = self.runner.run(["nginx", "-t"])
        output = ((res.stdout or "") + (res.stderr or "")).strip()
        if res.returncode != 0:
            raise CommandError(f"nginx config test failed: {output}", output=output, exit_code=res.returncode)
        return output

    def reload(self) -> None:
        self.runner.check(["systemctl", "reload", "nginx"], message="failed to reload nginx")

    def restart(self) -> None:
        self.runner.check(["systemctl", "restart", "nginx"], message="failed to restart nginx")

    def create_site(
            self,
            name: str,
            domain: str,
            root: str,
            template: str = "static",
            *,
            ssl: bool = False,
            certbot: bool = False,
    ) -> Path:
        name = name.strip()
        domain = domain.strip()
        root = root.strip()
        if not _SITE_RE.match(name):
            raise ValidationError("name", "site name may only contain letters, digits, dots, dashes and underscores")
        if not domain:
            raise ValidationError("domain", "domain cannot be empty")
        if not root.startswith("/"):
            raise ValidationError("root", "document root must be an absolute path")
        if template not in TEMPLATES:
            raise ValidationError("template", f"must be one of: {', '.join(TEMPLATES)}")
        path = self.available / name
        if path.exists():
            raise CommandError("site already exists")
        write_text(path, generate_config(domain, root, template, ssl=ssl, certbot=certbot))
        log.info("created nginx site %s (%s)", name, template)
        return path

    def delete_site(self, name: str) -> None:
        path = self._site_path(name)
        self.disable_site(name)
        remove(path)
        log.info("deleted nginx site %s", name)

    def certbot_command(self, domain: str) -> str:
        args = ["certbot", "--nginx", "-d", domain, "--non-interactive", "--agree-tos", "--email", f"admin@{domain}"]
        return shlex.join(args)

    def add_ssl_manual(self, name: str, cert: str, key: str, chain: str = "") -> None:
        if not cert.strip() or not key.strip():
            raise ValidationError("", "certificate and key paths are required")
        path = self._site_path(name)
        text = read_text(path)
        if "ssl_certificate" in text:
            raise CommandError("site already has SSL configured")
        text = text.replace("listen 80;", "listen 80;\n    listen 443 ssl;", 1)
        text = text.replace("listen [::]:80;", "listen [::]:80;\n    listen [::]:443 ssl;", 1)
        directives = ["", "    # SSL Configuration", f"    ssl_certificate {cert.strip()};", f"    ssl_certificate_key {key.strip()};"]
        if chain.strip():
            directives.append(f"    ssl_trusted_certificate {chain.strip()};")
        directives += [f"    {d}" for d in _SSL_SETTINGS]
        out: list[str] = []
        inserted = False
        for line in text.splitlines():
            out.append(line)
            if not inserted and line.strip().startswith("server_name"):
                out.extend(directives)
                inserted = True
        write_lines(path, out)
        log.info("added manual SSL to nginx site %s", name)

    def remove_ssl(self, name: str) -> None:
        path = self._site_path(name)
        out: list[str] = []
        for line in read_lines(path):
            stripped = line.strip()
            if stripped in ("listen 443 ssl;", "listen [::]:443 ssl;", "# SSL Configuration"):
                continue
            if stripped.startswith(("ssl_certificate", "ssl_trusted_certificate", "ssl_protocols", "ssl_ciphers", "ssl_prefer_server_ciphers")):
                continue
            out.append(line)
        write_lines(path, out)
        log.info("removed SSL from nginx site %s", name)
