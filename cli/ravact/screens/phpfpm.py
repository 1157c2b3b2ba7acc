from __future__ import annotations

from dataclasses import replace

from ..errors import ValidationError
from ..models import MenuItem
from ..parsers import PHPFPMPool
from ..system.phpfpm import PM_MODES
from .base import Action, Back, MenuScreen, Navigate, back_item, kv_lines
from .forms import Field, FormScreen, restart_after, to_int
from .routes import (
    ConfirmRoute,
    PoolDetailsRoute,
    PoolFormRoute,
    PoolListRoute,
    PoolSelectRoute,
    TextDisplayRoute,
)

NUMERIC = (
    ("pm.max_children", "max_children"),
    ("pm.start_servers", "start_servers"),
    ("pm.min_spare_servers", "min_spare_servers"),
    ("pm.max_spare_servers", "max_spare_servers"),
    ("pm.max_requests", "max_requests"),
)


def pool_rows(pool: PHPFPMPool) -> list[tuple[str, str]]:
    return [
        ("User", f"{pool.user}:{pool.group}"),
        ("Listen", pool.listen),
        ("Listen owner", f"{pool.listen_owner}:{pool.listen_group} ({pool.listen_mode})"),
        ("Process manager", pool.pm),
        ("Max children", str(pool.max_children)),
        ("Start servers", str(pool.start_servers)),
        ("Spare servers", f"{pool.min_spare_servers}-{pool.max_spare_servers}"),
        ("Max requests", str(pool.max_requests)),
        ("Config file", pool.config_path),
    ]


def delete_pool(fpm, name: str) -> str:
    fpm.delete_pool(name)
    return restart_after(f"pool '{name}' deleted", fpm.reload, "reload")


class PHPFPMManagementScreen(MenuScreen):
    title = "PHP-FPM Pool Management"

    def on_mount(self) -> Action | None:
        self.guard(self.managers.phpfpm.detect_version)
        return super().on_mount()

    def items(self) -> list[MenuItem]:
        return [
            MenuItem("list", "List All Pools", "Show every pool in pool.d"),
            MenuItem("create", "Create New Pool", "Add a pool with its own socket and user"),
            MenuItem("edit", "Edit Pool", "Change an existing pool"),
            MenuItem("delete", "Delete Pool", "Remove a pool (www is protected)"),
            MenuItem("restart", "Restart PHP-FPM Service", "Full restart of the FPM master"),
            MenuItem("reload", "Reload PHP-FPM Service", "Graceful reload"),
            MenuItem("status", "View Service Status", "systemctl status"),
            back_item("Back"),
        ]

    def select(self, item: MenuItem) -> Action | None:
        fpm = self.managers.phpfpm
        if item.key == "list":
            return Navigate(PoolListRoute())
        if item.key == "create":
            return Navigate(PoolFormRoute())
        if item.key in ("edit", "delete"):
            pools = self.guard(fpm.list_pools)
            if pools is None:
                return None
            if not pools:
                self.error = f"no pools available to {item.key}"
                return None
            return Navigate(PoolSelectRoute(item.key, tuple(pools)))
        if item.key == "restart":
            self.guard(fpm.restart)
            if not self.error:
                self.success = "PHP-FPM restarted successfully"
        elif item.key == "reload":
            self.guard(fpm.reload)
            if not self.error:
                self.success = "PHP-FPM reloaded successfully"
        elif item.key == "status":
            return Navigate(TextDisplayRoute(f"{fpm.service} status", fpm.status()))
        return None

    def render_summary(self):
        fpm = self.managers.phpfpm
        return kv_lines([("Version", fpm.version), ("Pool directory", str(fpm.pool_dir))])


class PoolListScreen(MenuScreen):
    title = "PHP-FPM Pools"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.pools: list[PHPFPMPool] = []

    def refresh(self) -> None:
        self.pools = self.guard(self.managers.phpfpm.list_pools) or []
        super().refresh()

    def items(self) -> list[MenuItem]:
        return [MenuItem(str(idx), f"{p.name:<20} {p.pm:<9} {p.listen}", f"{p.user}:{p.group}")
                for idx, p in enumerate(self.pools)]

    def select(self, item: MenuItem) -> Action | None:
        return Navigate(PoolDetailsRoute(self.pools[int(item.key)]))

    def empty_text(self) -> str:
        return "No pools found"


class PoolDetailsScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.pool: PHPFPMPool = route.pool
        self.title = f"Pool: {self.pool.name}"
        self.deleted = False

    def refresh(self) -> None:
        pool = self.guard(self.managers.phpfpm.get_pool, self.pool.name)
        if pool is not None:
            self.pool = pool
        super().refresh()

    def on_resume(self, notice: str = "") -> Action | None:
        if self.deleted:
            return Back(notice=notice)
        return super().on_resume(notice)

    def items(self) -> list[MenuItem]:
        return [MenuItem("edit", "Edit Pool"), MenuItem("delete", "Delete Pool"), back_item()]

    def select(self, item: MenuItem) -> Action | None:
        if item.key == "edit":
            return Navigate(PoolFormRoute(self.pool))
        return Navigate(ConfirmRoute(f"Delete pool '{self.pool.name}'?", self.delete))

    def delete(self) -> str:
        notice = delete_pool(self.managers.phpfpm, self.pool.name)
        self.deleted = True
        return notice

    def render_summary(self):
        return kv_lines(pool_rows(self.pool))


class PoolFormScreen(FormScreen):
    def __init__(self, ctx, route):
        self.editing: PHPFPMPool | None = route.pool
        self.title = f"Edit Pool: {route.pool.name}" if route.pool else "Create New Pool"
        super().__init__(ctx, route)

    def build_fields(self) -> list[Field]:
        pool = self.editing or PHPFPMPool()
        fields = []
        if self.editing is None:
            fields.append(Field("name", "Pool name", placeholder="mysite"))
        fields += [
            Field("user", "User", pool.user),
            Field("group", "Group", pool.group),
            Field("listen", "Listen", pool.listen if self.editing else "", placeholder="default socket"),
            Field("pm", "Process manager", pool.pm, choices=PM_MODES),
        ]
        fields += [Field(name, name, str(getattr(pool, attr))) for name, attr in NUMERIC]
        return fields

    def apply(self, values: dict[str, str]) -> str:
        fpm = self.managers.phpfpm
        base = self.editing or PHPFPMPool(name=values["name"])
        numbers = {attr: to_int(values[name], name) for name, attr in NUMERIC}
        for name, attr in NUMERIC:
            if numbers[attr] < 0:
                raise ValidationError(name, "cannot be negative")
        pool = replace(
            base,
            user=values["user"].strip(),
            group=values["group"].strip(),
            listen=values["listen"].strip(),
            pm=values["pm"],
            **numbers,
        )
        if self.editing is None:
            pool = fpm.create_pool(pool)
            done = f"pool '{pool.name}' created"
        else:
            if not pool.listen:
                pool.listen = fpm.default_listen(pool.name)
            fpm.update_pool(pool)
            done = f"pool '{pool.name}' updated"
        return restart_after(done, fpm.reload, "reload")


class PoolSelectScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.title = "Select Pool to Edit" if route.purpose == "edit" else "Select Pool to Delete"

    def items(self) -> list[MenuItem]:
        return [MenuItem(str(idx), p.name, p.listen) for idx, p in enumerate(self.route.pools)] + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        pool = self.route.pools[int(item.key)]
        if self.route.purpose == "edit":
            return Navigate(PoolFormRoute(pool), replace=True)
        fpm = self.managers.phpfpm
        return Navigate(ConfirmRoute(f"Delete pool '{pool.name}'?", lambda: delete_pool(fpm, pool.name)),
                        replace=True)
