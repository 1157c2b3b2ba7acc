from __future__ import annotations

from dataclasses import replace

from .. import catalog
from ..errors import NotImplementedFeature
from ..models import CommandRequest, MenuItem, SiteCommand
from ..system.files import read_text
from ..system.frankenphp import ACTIONS, CONN_TYPES, FrankenPHPService, FrankenPHPSite, GeneratedFile
from ..system.node import CURRENT, NODE_VERSIONS, npm_command
from ..system.php import PHP_VERSIONS
from .base import Action, MenuScreen, Navigate, back_item, keys_help, kv_lines
from .forms import Field, FormScreen
from .routes import (
    CommandListRoute,
    ConfirmRoute,
    ExecutionRoute,
    FrankenPHPReviewRoute,
    FrankenPHPServiceDetailsRoute,
    FrankenPHPSiteFormRoute,
    GitManagementRoute,
    LaravelQueueRoute,
    NodeVersionSelectRoute,
    PHPVersionSelectRoute,
    TextDisplayRoute,
)

YES_NO = ("yes", "no")
NPM_COMMANDS = ("npm_install", "npm_build")
# form fields that map 1:1 onto FrankenPHPSite string attributes
TEXT_FIELDS = (
    "site_root", "docroot", "domains", "conn_type", "port", "user", "group", "num_threads", "max_threads",
    "max_wait_time", "memory_limit", "max_execution_time", "upload_max_mb", "opcache_memory",
)
FLAG_FIELDS = ("opcache", "opcache_cli", "validate_timestamps", "jit")


def unknown_config(service: FrankenPHPService) -> str:
    return f"configuration unknown ({service.error})"


class SiteCommandsScreen(MenuScreen):
    title = "Site Commands"
    subtitle = "Run project commands in the configured directory"

    def items(self) -> list[MenuItem]:
        return [MenuItem(c.id, c.name, c.description) for c in catalog.SITE_COMMANDS] + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        cmd = next(c for c in catalog.SITE_COMMANDS if c.id == item.key)
        if cmd.id == "git":
            return Navigate(GitManagementRoute())
        if cmd.id == "frankenphp":
            return self.classic_mode()
        if cmd.id == "laravel":
            return Navigate(CommandListRoute("Laravel Permissions", catalog.LARAVEL_PERMISSIONS))
        if cmd.id == "laravel_queue":
            return Navigate(LaravelQueueRoute())
        if cmd.id in NPM_COMMANDS:
            return Navigate(NodeVersionSelectRoute(cmd))
        if not cmd.command:
            self.fail(NotImplementedFeature(cmd.name))
            return None
        if cmd.needs_php:
            if self.guard(self.managers.php.require_any) is None:
                return None
            return Navigate(PHPVersionSelectRoute(cmd))
        return Navigate(ExecutionRoute(CommandRequest(cmd.command, cmd.description, needs_path=True)))

    def classic_mode(self) -> Action:
        """Edit the service already serving the project directory, or start a new site."""
        frankenphp = self.managers.frankenphp
        root = self.ctx.config.working_dir()
        service = frankenphp.find_for_root(root)
        if service is None:
            return Navigate(FrankenPHPSiteFormRoute(frankenphp.new_site(root)))
        return Navigate(FrankenPHPSiteFormRoute(frankenphp.load_site(service), new=False))

    def render_summary(self):
        return [("class:label", "Project: "), ("class:value", self.ctx.config.working_dir()), ("", "\n")]


class PHPVersionSelectScreen(MenuScreen):
    title = "Select PHP Version"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.command: SiteCommand = route.command
        self.subtitle = self.command.name
        self.installed: set[str] = set()
        self.current = ""

    def refresh(self) -> None:
        php = self.managers.php
        self.installed = set(php.installed_versions())
        self.current = php.current_version()
        super().refresh()

    def items(self) -> list[MenuItem]:
        out = [MenuItem(CURRENT, "Use Current Version", f"Use default php ({self.current or 'unknown'})")]
        for version, _ in PHP_VERSIONS:
            if version in self.installed:
                out.append(MenuItem(version, f"PHP {version}", f"Run with php{version}"))
            else:
                out.append(MenuItem(version, f"PHP {version} (not installed)",
                                    f"Not available - install with: sudo apt install php{version}"))
        out.append(back_item())
        return out

    def select(self, item: MenuItem) -> Action | None:
        if item.key == CURRENT:
            binary = "php"
        elif item.key in self.installed:
            binary = f"php{item.key}"
        else:
            return None
        command = self.command.command.replace("{php}", binary)
        request = CommandRequest(command, f"{self.command.name} ({binary})", needs_path=True)
        return Navigate(ExecutionRoute(request), replace=True)


class NodeVersionSelectScreen(MenuScreen):
    title = "Select Node Version"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.command: SiteCommand = route.command
        self.subtitle = self.command.name
        self.current = ""
        self.nvm = False

    def refresh(self) -> None:
        node = self.managers.node
        self.current = node.current_version()
        self.nvm = node.nvm_installed()
        super().refresh()

    def items(self) -> list[MenuItem]:
        out = [MenuItem(CURRENT, "Use Current Version", f"Use the active Node.js ({self.current})")]
        out += [MenuItem(version, label, description) for version, label, description in NODE_VERSIONS]
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        command, description = npm_command(self.command.command, item.key, self.nvm)
        return Navigate(ExecutionRoute(CommandRequest(command, description, needs_path=True)), replace=True)

    def render_summary(self):
        rows = [("Current", self.current), ("nvm", "installed" if self.nvm else "not installed")]
        return kv_lines(rows)


class FrankenPHPServicesScreen(MenuScreen):
    title = "FrankenPHP Services"
    subtitle = "systemd units named frankenphp-*"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.services: list[FrankenPHPService] = []

    def refresh(self) -> None:
        self.services = self.managers.frankenphp.list_services()
        super().refresh()

    def items(self) -> list[MenuItem]:
        out = []
        for idx, svc in enumerate(self.services):
            state = unknown_config(svc) if svc.error else f"{svc.active}, {svc.enabled}"
            out.append(MenuItem(str(idx), f"{svc.site_key}  [{state}]", svc.unit.description or svc.path))
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        return Navigate(FrankenPHPServiceDetailsRoute(self.services[int(item.key)]))

    def empty_text(self) -> str:
        return "No FrankenPHP services found"

    def on_other_key(self, key: str) -> Action | None:
        if key == "r":
            self.refresh()
        return None

    def footer(self):
        return keys_help(("↑/↓", "navigate"), ("Enter", "details"), ("r", "refresh"), ("Esc", "back"))


class FrankenPHPServiceDetailsScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.service: FrankenPHPService = route.service
        self.title = f"FrankenPHP: {self.service.site_key}"

    def items(self) -> list[MenuItem]:
        out = [MenuItem(action, action.capitalize(), f"systemctl {action} {self.service.name}") for action in ACTIONS]
        out.append(MenuItem("edit", "Edit Configuration", "Regenerate the Caddyfile, unit and nginx upstream"))
        out.append(MenuItem("unit", "View Unit File", self.service.path))
        out.append(MenuItem("remove", "Remove Service", "Stop, disable and delete the unit"))
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        frankenphp = self.managers.frankenphp
        if item.key == "edit":
            return Navigate(FrankenPHPSiteFormRoute(frankenphp.load_site(self.service), new=False))
        if item.key == "unit":
            return Navigate(TextDisplayRoute(self.service.path, read_text(self.service.path)))
        if item.key == "remove":
            route = ExecutionRoute(CommandRequest(frankenphp.remove_command(self.service),
                                                  f"Remove {self.service.name}"))
            return Navigate(ConfirmRoute(f"Remove {self.service.name}?", lambda: route))
        command = frankenphp.action_command(self.service, item.key)
        return Navigate(ExecutionRoute(CommandRequest(command, f"{item.title} {self.service.name}")))

    def render_summary(self):
        unit = self.service.unit
        if self.service.error:
            return [("class:error", unknown_config(self.service)), ("", "\n")]
        rows = [
            ("Unit", unit.name),
            ("Status", f"{self.service.active} ({self.service.enabled})"),
            ("User", f"{unit.user}:{unit.group}" if unit.group else unit.user),
            ("Site root", unit.site_root),
            ("Docroot", unit.docroot),
            ("Config", unit.config),
        ]
        if unit.conn_type == "socket":
            rows.append(("Socket", unit.socket))
        else:
            rows.append(("Listen", f"{unit.bind}:{unit.port}" if unit.bind else unit.port))
        return kv_lines([(k, v) for k, v in rows if v])


class FrankenPHPSiteFormScreen(FormScreen):
    """Classic-mode site settings; submitting renders the files for review."""

    submit_label = "Review"

    def __init__(self, ctx, route):
        self.new = route.new
        self.site: FrankenPHPSite = route.site or ctx.managers.frankenphp.new_site(ctx.config.working_dir())
        if self.new:
            self.title = "FrankenPHP Classic Mode: New Site"
        else:
            self.title = f"Edit FrankenPHP Site: {self.site.site_key}"
        super().__init__(ctx, route)

    def build_fields(self) -> list[Field]:
        site = self.site
        fields = []
        if self.new:
            fields.append(Field("site_key", "Site key", site.site_key, placeholder="myapp"))
        fields += [
            Field("site_root", "Site root", site.site_root),
            Field("docroot", "Document root", site.docroot, placeholder="(site root)"),
            Field("domains", "Domains", site.domains, placeholder="example.com www.example.com"),
            Field("conn_type", "Connection", site.conn_type, choices=CONN_TYPES),
            Field("port", "Port", site.port),
            Field("user", "User", site.user),
            Field("group", "Group", site.group),
            Field("num_threads", "Threads", site.num_threads),
            Field("max_threads", "Max threads", site.max_threads),
            Field("max_wait_time", "Max wait (seconds)", site.max_wait_time),
            Field("memory_limit", "memory_limit", site.memory_limit),
            Field("max_execution_time", "max_execution_time", site.max_execution_time),
            Field("upload_max_mb", "Upload limit (MB)", site.upload_max_mb),
            Field("opcache", "OPcache", "yes" if site.opcache else "no", choices=YES_NO),
            Field("opcache_cli", "OPcache CLI", "yes" if site.opcache_cli else "no", choices=YES_NO),
            Field("opcache_memory", "OPcache memory (MB)", site.opcache_memory),
            Field("validate_timestamps", "Validate timestamps", "yes" if site.validate_timestamps else "no",
                  choices=YES_NO),
            Field("jit", "JIT", "yes" if site.jit else "no", choices=YES_NO),
        ]
        return fields

    def apply(self, values: dict[str, str]) -> Action:
        changes: dict = {name: values[name].strip() for name in TEXT_FIELDS}
        changes.update({name: values[name] == "yes" for name in FLAG_FIELDS})
        if self.new:
            changes["site_key"] = values["site_key"].strip()
        site = replace(self.site, **changes)
        files = self.managers.frankenphp.generate(site)
        return Navigate(FrankenPHPReviewRoute(site, tuple(files), self.new))


class FrankenPHPReviewScreen(MenuScreen):
    title = "Review Generated Files"
    subtitle = "Existing files are backed up to .bak before they are replaced"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.site: FrankenPHPSite = route.site
        self.files: tuple[GeneratedFile, ...] = route.files

    def items(self) -> list[MenuItem]:
        out = [MenuItem(str(idx), f"View {f.name}", f.path) for idx, f in enumerate(self.files)]
        verb = "Create Site" if self.route.new else "Update Site"
        out.append(MenuItem("deploy", verb, f"Write the files and {'enable' if self.route.new else 'restart'} "
                                            f"{self.site.service}"))
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        if item.key != "deploy":
            generated = self.files[int(item.key)]
            return Navigate(TextDisplayRoute(generated.path, generated.content))
        script = self.managers.frankenphp.deploy_script(self.site, list(self.files), new=self.route.new)
        request = CommandRequest(script, f"Deploying {self.site.service}")
        return Navigate(ConfirmRoute(f"Deploy {self.site.service}?", lambda: ExecutionRoute(request)))

    def render_summary(self):
        site = self.site
        listen = site.socket if site.conn_type == "socket" else f"127.0.0.1:{site.port}"
        return kv_lines([
            ("Service", site.service),
            ("Document root", site.full_docroot),
            ("Listen", listen),
            ("Domains", site.domains or "_"),
            ("Run as", f"{site.user}:{site.group}"),
        ])
