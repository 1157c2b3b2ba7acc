from __future__ import annotations

import logging

from ..errors import ValidationError
from ..runner import CommandRunner

log = logging.getLogger(__name__)

PHP_VERSIONS = (
    ("8.4", "Property hooks, asymmetric visibility"),
    ("8.3", "Typed class constants, json_validate()"),
    ("8.2", "Readonly classes, DNF types"),
    ("8.1", "Enums, fibers, readonly properties"),
    ("8.0", "JIT compiler, named arguments, attributes"),
    ("7.4", "Legacy, security fixes only"),
)
DEFAULT_EXTENSIONS = (
    "cli", "fpm", "common", "mysql", "pgsql", "sqlite3",
    "curl", "gd", "mbstring", "xml", "zip", "bcmath",
    "intl", "soap", "opcache", "readline",
)
OPTIONAL_EXTENSIONS = (
    ("redis", "Redis client extension"),
    ("memcached", "Memcached client extension"),
    ("mongodb", "MongoDB driver"),
    ("imagick", "ImageMagick image processing"),
    ("xdebug", "Debugging and profiling"),
    ("apcu", "APC user cache"),
    ("uuid", "UUID generation functions"),
    ("yaml", "YAML parsing and emitting"),
    ("igbinary", "Binary serialization"),
    ("msgpack", "MessagePack serialization"),
    ("swoole", "Coroutine based async framework"),
    ("grpc", "gRPC client library"),
    ("imap", "IMAP email protocol support"),
    ("ldap", "LDAP directory access"),
    ("ssh2", "SSH2 protocol bindings"),
    ("tidy", "HTML tidying"),
    ("xsl", "XSL transformations"),
    ("gmp", "GNU multiple precision arithmetic"),
    ("bz2", "Bzip2 compression"),
    ("pcov", "Code coverage driver"),
)
NO_PHP_MESSAGE = "no PHP versions installed. Install a PHP version first"


class PHPManager:
    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    def installed_versions(self) -> list[str]:
        return [v for v, _ in PHP_VERSIONS if self.runner.which(f"php{v}")]

    def current_version(self) -> str:
        out = self.runner.output(["php", "--version"])
        if not out:
            return ""
        fields = out.splitlines()[0].split()
        return fields[1] if len(fields) > 1 else ""

    def require_any(self) -> list[str]:
        versions = self.installed_versions()
        if not versions and not self.current_version():
            raise ValidationError("", NO_PHP_MESSAGE)
        return versions

    def install_command(self, version: str) -> str:
        packages = " ".join(f"php{version}-{ext}" for ext in DEFAULT_EXTENSIONS)
        return "\n".join(
            [
                'if ! grep -qr "ondrej/php" /etc/apt/sources.list.d/ 2>/dev/null; then',
                "    apt-get update",
                "    apt-get install -y software-properties-common",
                "    add-apt-repository -y ppa:ondrej/php",
                "fi",
                "apt-get update",
                f"apt-get install -y {packages}",
                f"systemctl enable php{version}-fpm",
                f"systemctl start php{version}-fpm",
                f"php{version} --version",
            ]
        )

    def remove_command(self, version: str) -> str:
        return (
            f"apt-get remove -y php{version}-fpm php{version}-cli php{version}-common"
            " && apt-get autoremove -y"
        )

    def installed_extensions(self, version: str) -> set[str]:
        out = self.runner.output([f"php{version}", "-m"])
        return {line.strip().lower() for line in out.splitlines() if line.strip() and not line.startswith("[")}

    def extensions_command(self, version: str, extensions: list[str]) -> str:
        if not extensions:
            raise ValidationError("", "select at least one extension")
        packages = " ".join(f"php{version}-{ext}" for ext in extensions)
        return f"apt-get update && apt-get install -y {packages} && systemctl restart php{version}-fpm"
