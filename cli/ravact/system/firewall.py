from __future__ import annotations

import logging

from ..errors import CommandError, ValidationError
from ..parsers import FirewallRule, parse_ufw_status
from ..runner import CommandRunner
from .files import parse_port

log = logging.getLogger(__name__)

UFW = "ufw"
FIREWALLD = "firewalld"
NONE = "none"
PROTOCOLS = ("tcp", "udp")


class FirewallManager:
    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()
        self._kind: str | None = None

    @property
    def kind(self) -> str:
        if self._kind is None:
            if self.runner.which("ufw"):
                self._kind = UFW
            elif self.runner.which("firewall-cmd"):
                self._kind = FIREWALLD
            else:
                self._kind = NONE
        return self._kind

    def _require(self) -> str:
        if self.kind == NONE:
            raise CommandError("no firewall installed")
        return self.kind

    def status(self) -> str:
        if self.kind == UFW:
            out = self.runner.output(["ufw", "status"])
            return "active" if "Status: active" in out else "inactive"
        if self.kind == FIREWALLD:
            return self.runner.output(["systemctl", "is-active", "firewalld"]) or "unknown"
        return "not installed"

    def rules(self) -> list[FirewallRule]:
        kind = self._require()
        if kind == UFW:
            return parse_ufw_status(self.runner.check(["ufw", "status", "numbered"], message="failed to list rules"))
        rules: list[FirewallRule] = []
        ports = self.runner.check(["firewall-cmd", "--list-ports"], message="failed to list ports").split()
        for idx, item in enumerate(ports, start=1):
            port, _, proto = item.partition("/")
            rules.append(FirewallRule(number=idx, port=port, protocol=proto or "tcp"))
        services = self.runner.check(["firewall-cmd", "--list-services"], message="failed to list services").split()
        for idx, name in enumerate(services, start=len(rules) + 1):
            rules.append(FirewallRule(number=idx, port=name, protocol="service"))
        return rules

    @staticmethod
    def _spec(port: str, protocol: str) -> str:
        if "-" in port or ":" in port:
            low, _, high = port.replace("-", ":").partition(":")
            parse_port(low)
            parse_port(high)
            port = f"{low}:{high}"
        else:
            port = str(parse_port(port))
        protocol = protocol.strip().lower() or "tcp"
        if protocol not in PROTOCOLS:
            raise ValidationError("protocol", f"must be one of: {', '.join(PROTOCOLS)}")
        return f"{port}/{protocol}"

    def _firewalld(self, *args: str, message: str) -> None:
        self.runner.check(["firewall-cmd", "--permanent", *args], message=message)
        self.runner.check(["firewall-cmd", "--reload"], message="failed to reload firewall")

    def allow(self, port: str, protocol: str = "tcp") -> None:
        spec = self._spec(port, protocol)
        if self._require() == UFW:
            self.runner.check(["ufw", "allow", spec], message="failed to allow port")
        else:
            self._firewalld(f"--add-port={spec.replace(':', '-')}", message="failed to allow port")
        log.info("firewall allow %s", spec)

    def deny(self, port: str, protocol: str = "tcp") -> None:
        spec = self._spec(port, protocol)
        if self._require() == UFW:
            self.runner.check(["ufw", "deny", spec], message="failed to deny port")
        else:
            self._firewalld(f"--remove-port={spec.replace(':', '-')}", message="failed to deny port")
        log.info("firewall deny %s", spec)

    def delete_rule(self, rule: FirewallRule) -> None:
        if self._require() == UFW:
            self.runner.check(
                ["ufw", "--force", "delete", str(rule.number)],
                message="failed to delete rule",
            )
        elif rule.protocol == "service":
            self._firewalld(f"--remove-service={rule.port}", message="failed to delete rule")
        else:
            self._firewalld(f"--remove-port={rule.port}/{rule.protocol}", message="failed to delete rule")
        log.info("firewall delete rule %s", rule.number)

    def allow_service(self, service: str) -> None:
        if self._require() != FIREWALLD:
            raise CommandError("services are only supported with firewalld")
        self._firewalld(f"--add-service={service}", message="failed to allow service")

    def enable(self) -> None:
        if self._require() == UFW:
            self.runner.check(["ufw", "--force", "enable"], message="failed to enable firewall")
        else:
            self.runner.check(["systemctl", "enable", "firewalld"], message="failed to enable firewall")
            self.runner.check(["systemctl", "start", "firewalld"], message="failed to start firewall")

    def disable(self) -> None:
        if self._require() == UFW:
            self.runner.check(["ufw", "disable"], message="failed to disable firewall")
        else:
            self.runner.check(["systemctl", "stop", "firewalld"], message="failed to stop firewall")
            self.runner.check(["systemctl", "disable", "firewalld"], message="failed to disable firewall")

    def reload(self) -> None:
        if self._require() == UFW:
            self.runner.check(["ufw", "reload"], message="failed to reload firewall")
        else:
            self.runner.check(["firewall-cmd", "--reload"], message="failed to reload firewall")
