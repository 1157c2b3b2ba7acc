from __future__ import annotations

from ..models import MenuItem
from ..parsers import RedisConfig
from ..system.files import parse_port
from .base import Action, MenuScreen, Navigate, back_item, kv_lines
from .forms import Field, FormScreen, PasswordForm, restart_after
from .routes import EditorSelectionRoute, RedisPasswordRoute, RedisPortRoute


class RedisConfigScreen(MenuScreen):
    title = "Redis Configuration"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.config: RedisConfig | None = None
        self.status = ""

    def refresh(self) -> None:
        redis = self.managers.redis
        self.config = self.guard(redis.get_config)
        self.status = redis.status()
        super().refresh()

    def items(self) -> list[MenuItem]:
        return [
            MenuItem("password", "Change Password", "Set or change the requirepass directive"),
            MenuItem("port", "Change Port", "Change the port Redis listens on"),
            MenuItem("test", "Test Connection", "Ping the server with redis-cli"),
            MenuItem("restart", "Restart Redis", "Restart the Redis service"),
            MenuItem("edit", "View Configuration File", "Open redis.conf in an editor"),
            back_item(),
        ]

    def select(self, item: MenuItem) -> Action | None:
        redis = self.managers.redis
        if item.key == "password":
            return Navigate(RedisPasswordRoute())
        if item.key == "port":
            return Navigate(RedisPortRoute())
        if item.key == "test":
            self.guard(redis.test_connection)
            if not self.error:
                self.success = "Redis connection successful (PONG)"
        elif item.key == "restart":
            self.guard(redis.restart)
            if not self.error:
                self.success = "Redis restarted successfully"
            self.refresh()
        elif item.key == "edit":
            if self.config is None:
                return None
            return Navigate(EditorSelectionRoute(self.config.config_path))
        return None

    def render_summary(self):
        cfg = self.config
        if cfg is None:
            return []
        return kv_lines([
            ("Status", self.status),
            ("Port", cfg.port),
            ("Password", "set" if cfg.has_password else "not set"),
            ("Max memory", cfg.max_memory or "unlimited"),
            ("Eviction policy", cfg.max_memory_policy or "default"),
            ("Config file", cfg.config_path),
        ])


class RedisPasswordScreen(PasswordForm):
    title = "Change Redis Password"
    min_length = 8

    def apply(self, values: dict[str, str]) -> str:
        redis = self.managers.redis
        redis.set_password(self.check_password(values))
        return restart_after("password set", redis.restart)


class RedisPortScreen(FormScreen):
    title = "Change Redis Port"

    def build_fields(self) -> list[Field]:
        cfg = self.guard(self.managers.redis.get_config)
        return [Field("port", "Port", cfg.port if cfg else "", placeholder="6379")]

    def apply(self, values: dict[str, str]) -> str:
        redis = self.managers.redis
        port = parse_port(values["port"])
        redis.set_port(port)
        return restart_after(f"port set to {port}", redis.restart)
