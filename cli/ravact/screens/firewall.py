from __future__ import annotations

from ..models import MenuItem
from ..parsers import FirewallRule
from ..system.firewall import PROTOCOLS
from .base import Action, MenuScreen, Navigate, back_item, kv_lines
from .forms import Field, FormScreen
from .routes import ConfirmRoute, FirewallRuleFormRoute, FirewallRuleSelectRoute, TextDisplayRoute


def rules_text(rules: list[FirewallRule]) -> str:
    if not rules:
        return "No rules configured"
    lines = [f"{'#':>3}  {'PORT':<14} {'PROTO':<8} {'ACTION':<7} {'DIR':<4} FROM"]
    lines += [f"{r.number:>3}  {r.port:<14} {r.protocol:<8} {r.action:<7} {r.direction:<4} {r.source}" for r in rules]
    return "\n".join(lines)


class FirewallManagementScreen(MenuScreen):
    title = "Firewall Management"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.status = ""

    def refresh(self) -> None:
        self.status = self.managers.firewall.status()
        super().refresh()

    def items(self) -> list[MenuItem]:
        return [
            MenuItem("rules", "View Current Rules"),
            MenuItem("allow", "Allow Port", "Open a port, a range like 8000:8100, or a firewalld service"),
            MenuItem("deny", "Deny Port", "Block a port"),
            MenuItem("delete", "Delete Rule"),
            MenuItem("enable", "Enable Firewall"),
            MenuItem("disable", "Disable Firewall"),
            MenuItem("reload", "Reload Firewall"),
            back_item("← Back to Configurations"),
        ]

    def select(self, item: MenuItem) -> Action | None:
        fw = self.managers.firewall
        if item.key == "rules":
            rules = self.guard(fw.rules)
            if rules is None:
                return None
            return Navigate(TextDisplayRoute("Firewall Rules", rules_text(rules)))
        if item.key in ("allow", "deny"):
            return Navigate(FirewallRuleFormRoute(item.key))
        if item.key == "delete":
            return Navigate(FirewallRuleSelectRoute())
        if item.key == "disable":
            return Navigate(ConfirmRoute("Disable the firewall?", self.disable))
        method = getattr(fw, item.key)
        self.guard(method)
        if not self.error:
            self.success = f"Firewall {item.key}d"
        self.refresh()
        return None

    def disable(self) -> str:
        self.managers.firewall.disable()
        return "Firewall disabled"

    def render_summary(self):
        fw = self.managers.firewall
        return kv_lines([("Firewall", fw.kind), ("Status", self.status)])


class FirewallRuleFormScreen(FormScreen):
    def __init__(self, ctx, route):
        self.title = "Allow Port" if route.action == "allow" else "Deny Port"
        super().__init__(ctx, route)

    def build_fields(self) -> list[Field]:
        return [
            Field("port", "Port", placeholder="443 or 8000:8100"),
            Field("protocol", "Protocol", "tcp", choices=PROTOCOLS),
        ]

    def apply(self, values: dict[str, str]) -> str:
        fw = self.managers.firewall
        port = values["port"].strip()
        if self.route.action == "allow" and port.isalpha():
            fw.allow_service(port)
            return f"Service {port} allowed"
        getattr(fw, self.route.action)(port, values["protocol"])
        verb = "allowed" if self.route.action == "allow" else "denied"
        return f"Port {port}/{values['protocol']} {verb}"


class FirewallRuleSelectScreen(MenuScreen):
    title = "Delete Firewall Rule"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.rules: list[FirewallRule] = []

    def refresh(self) -> None:
        self.rules = self.guard(self.managers.firewall.rules) or []
        super().refresh()

    def items(self) -> list[MenuItem]:
        out = [
            MenuItem(str(idx), f"[{r.number}] {r.port}/{r.protocol} {r.action} from {r.source}")
            for idx, r in enumerate(self.rules)
        ]
        return out + [back_item()] if out else []

    def select(self, item: MenuItem) -> Action | None:
        rule = self.rules[int(item.key)]
        return Navigate(ConfirmRoute(f"Delete rule [{rule.number}] {rule.port}/{rule.protocol}?",
                                     lambda: self.delete(rule)))

    def delete(self, rule: FirewallRule) -> str:
        self.managers.firewall.delete_rule(rule)
        return f"Rule [{rule.number}] deleted"

    def empty_text(self) -> str:
        return "No rules to delete"
