from __future__ import annotations

import os

from ..errors import RavactError, ValidationError
from ..models import CommandRequest, MenuItem
from ..parsers import NginxSite
from ..system.nginx import TEMPLATES
from .base import Action, Back, MenuScreen, Navigate, back_item, keys_help, kv_lines
from .forms import Field, FormScreen
from .routes import (
    AddSiteRoute,
    ConfirmRoute,
    EditorSelectionRoute,
    ExecutionRoute,
    SiteDetailsRoute,
    SSLManualRoute,
    SSLOptionsRoute,
)

SSL_CHOICES = ("none", "letsencrypt")


def apply_change(nginx, done: str) -> str:
    """Test and reload nginx after a site change; the message names the failed step."""
    try:
        nginx.test_config()
    except RavactError as exc:
        raise RavactError(f"{done} but config test failed: {exc}") from exc
    try:
        nginx.reload()
    except RavactError as exc:
        raise RavactError(f"{done} but reload failed: {exc}") from exc
    return done


class NginxSitesScreen(MenuScreen):
    title = "Nginx Configuration"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.sites: list[NginxSite] = []

    def on_mount(self) -> Action | None:
        self.subtitle = self.managers.detector.host_info()
        return super().on_mount()

    def refresh(self) -> None:
        self.sites = self.guard(self.managers.nginx.list_sites) or []
        super().refresh()

    def items(self) -> list[MenuItem]:
        out = []
        for site in self.sites:
            status = "✓ Live" if site.enabled else "○ Disabled"
            ssl = "SSL" if site.has_ssl else "no SSL"
            title = f"{site.name:<24} {site.server_name or '(not set)':<28} {status:<11} {ssl}"
            out.append(MenuItem(site.name, title, site.root or "(root not set)"))
        return out

    def select(self, item: MenuItem) -> Action | None:
        return Navigate(SiteDetailsRoute(item.key))

    def on_other_key(self, key: str) -> Action | None:
        nginx = self.managers.nginx
        if key == "a":
            return Navigate(AddSiteRoute())
        if key == "r":
            self.cursor = 0
            self.offset = 0
            self.refresh()
        elif key == "t":
            if self.guard(nginx.test_config) is not None:
                self.success = "Nginx configuration is valid"
        elif key == "e" and self.selected is not None:
            name = self.selected.key
            enabled = self.guard(nginx.toggle_site, name)
            if enabled is not None:
                done = f"Site '{name}' {'enabled' if enabled else 'disabled'}"
                self.success = self.guard(apply_change, nginx, done) or ""
            self.refresh()
        return None

    def render_summary(self):
        header = f"  {'Site Name':<24} {'Domain':<28} {'Status':<11} SSL"
        return [("class:label", header), ("", "\n")] if self.sites else []

    def empty_text(self) -> str:
        return "No sites configured. Press 'a' to add a new site."

    def footer(self):
        return keys_help(("Enter", "details"), ("a", "add"), ("e", "enable/disable"), ("t", "test"),
                         ("r", "refresh"), ("Esc", "back"))


class SiteDetailsScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.name = route.site
        self.title = f"Site Details: {self.name}"
        self.site: NginxSite | None = None
        self.deleted = False

    def refresh(self) -> None:
        self.site = self.guard(self.managers.nginx.get_site, self.name)
        super().refresh()

    def items(self) -> list[MenuItem]:
        if self.site is None:
            return [back_item("← Back to Sites")]
        ssl = ("remove_ssl", "Remove SSL Certificate") if self.site.has_ssl else \
            ("add_ssl", "Add SSL Certificate (Let's Encrypt)")
        return [
            MenuItem("toggle", "Toggle Enable/Disable"),
            MenuItem(*ssl),
            MenuItem("test", "Test Nginx Configuration"),
            MenuItem("reload", "Reload Nginx"),
            MenuItem("delete", "Delete Site"),
            MenuItem("edit", "Open in Editor"),
            back_item("← Back to Sites"),
        ]

    def select(self, item: MenuItem) -> Action | None:
        nginx = self.managers.nginx
        site = self.site
        if item.key == "toggle":
            enabled = self.guard(nginx.toggle_site, site.name)
            if enabled is not None:
                self.success = f"Site '{site.name}' {'enabled' if enabled else 'disabled'}"
            self.refresh()
        elif item.key == "add_ssl":
            return Navigate(SSLOptionsRoute(site.name, site.server_name.split()[0] if site.server_name else ""))
        elif item.key == "remove_ssl":
            self.guard(nginx.remove_ssl, site.name)
            if not self.error:
                self.success = self.guard(apply_change, nginx, "SSL certificate removed, site now uses HTTP only") or ""
            self.refresh()
        elif item.key == "test":
            if self.guard(nginx.test_config) is not None:
                self.success = "Nginx configuration is valid"
        elif item.key == "reload":
            self.guard(nginx.reload)
            if not self.error:
                self.success = "Nginx reloaded successfully"
        elif item.key == "delete":
            return Navigate(ConfirmRoute(f"Delete site '{site.name}'?", lambda: self.delete(site.name)))
        elif item.key == "edit":
            return Navigate(EditorSelectionRoute(site.config_path))
        return None

    def delete(self, name: str) -> str:
        self.managers.nginx.delete_site(name)
        self.deleted = True
        return f"Site '{name}' deleted"

    def on_resume(self, notice: str = "") -> Action | None:
        if self.deleted:
            return Back(notice=notice)
        return super().on_resume(notice)

    def render_summary(self):
        site = self.site
        if site is None:
            return []
        return kv_lines([
            ("Domain:", site.server_name or "(not set)"),
            ("Root Dir:", site.root or "(not set)"),
            ("Config Path:", site.config_path),
            ("Status:", "Enabled" if site.enabled else "Disabled"),
            ("SSL:", "Enabled" if site.has_ssl else "Not configured"),
        ])


class AddSiteScreen(FormScreen):
    title = "Add Nginx Site"

    def build_fields(self) -> list[Field]:
        return [
            Field("name", "Site name", placeholder="example.com"),
            Field("domain", "Domain", placeholder="example.com www.example.com"),
            Field("root", "Document root", placeholder="/var/www/example.com"),
            Field("template", "Template", "static", choices=tuple(TEMPLATES)),
            Field("ssl", "SSL", "none", choices=SSL_CHOICES),
        ]

    def apply(self, values: dict[str, str]) -> str | Action:
        nginx = self.managers.nginx
        name = values["name"].strip()
        nginx.create_site(name, values["domain"], values["root"], values["template"])
        nginx.enable_site(name)
        done = apply_change(nginx, f"Site '{name}' created and enabled")
        if values["ssl"] == "letsencrypt":
            domain = values["domain"].split()[0]
            request = CommandRequest(nginx.certbot_command(domain), f"Installing SSL certificate for {domain}")
            return Navigate(ExecutionRoute(request), replace=True)
        return done

    def render_intro(self):
        template = self.fields[3].value
        return [("class:description", f"Template: {TEMPLATES.get(template, '')}"), ("", "\n\n")]

    def footer(self):
        return keys_help(("Tab/Shift+Tab", "navigate"), ("←/→", "choose"), ("Enter", "submit"), ("Esc", "cancel"))


class SSLOptionsScreen(MenuScreen):
    title = "Add SSL Certificate"
    subtitle = "Choose SSL certificate method:"

    def items(self) -> list[MenuItem]:
        return [
            MenuItem("letsencrypt", "Let's Encrypt (Automatic)",
                     "Free, automatic certificates. The domain must point to this server and ports 80 & 443 "
                     "must be accessible"),
            MenuItem("manual", "Manual Certificate (Provide paths)",
                     "Use your own certificate and private key files. You manage renewals"),
            back_item("← Cancel"),
        ]

    def select(self, item: MenuItem) -> Action | None:
        if item.key == "manual":
            return Navigate(SSLManualRoute(self.route.site), replace=True)
        if not self.route.domain:
            self.fail(ValidationError("domain", "site has no server_name"))
            return None
        domain = self.route.domain
        request = CommandRequest(self.managers.nginx.certbot_command(domain),
                                 f"Installing SSL certificate for {domain}")
        return Navigate(ExecutionRoute(request), replace=True)


class SSLManualScreen(FormScreen):
    title = "Manual SSL Certificate"
    submit_label = "Apply"

    def build_fields(self) -> list[Field]:
        return [
            Field("cert", "Certificate path", placeholder="/etc/ssl/certs/mydomain.crt"),
            Field("key", "Private key path", placeholder="/etc/ssl/private/mydomain.key"),
            Field("chain", "Chain path (optional)"),
        ]

    def apply(self, values: dict[str, str]) -> str:
        nginx = self.managers.nginx
        for field in ("cert", "key"):
            path = values[field].strip()
            if path and not os.path.isfile(path):
                raise ValidationError(field, f"file not found: {path}")
        nginx.add_ssl_manual(self.route.site, values["cert"], values["key"], values["chain"])
        return apply_change(nginx, "SSL certificate applied")

    def render_intro(self):
        return [("class:description", "Enter full paths to certificate files"), ("", "\n\n")]
