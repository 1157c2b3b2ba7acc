from __future__ import annotations

import pytest

from ravact.errors import CommandError, NotInstalledError, ValidationError
from ravact.screens.base import Back, Navigate
from ravact.screens.nginx import AddSiteScreen, SiteDetailsScreen
from ravact.screens.routes import AddSiteRoute, SiteDetailsRoute
from ravact.system.nginx import NginxManager, generate_config


@pytest.fixture
def nginx(runner, tmp_path) -> NginxManager:
    (tmp_path / "nginx" / "sites-available").mkdir(parents=True)
    (tmp_path / "nginx" / "sites-enabled").mkdir()
    return NginxManager(runner, str(tmp_path / "nginx"))


def test_list_sites_requires_directory(runner, tmp_path) -> None:
    with pytest.raises(NotInstalledError):
        NginxManager(runner, str(tmp_path / "missing")).list_sites()


def test_create_enable_and_list(nginx) -> None:
    (nginx.available / "default").write_text("server {}\n")
    nginx.create_site("shop", "shop.example.com", "/var/www/shop/public", "laravel")

    [site] = nginx.list_sites()
    assert site.name == "shop"
    assert site.server_name == "shop.example.com"
    assert site.root == "/var/www/shop/public"
    assert not site.enabled

    assert nginx.toggle_site("shop") is True
    assert (nginx.enabled / "shop").is_symlink()
    assert nginx.get_site("shop").enabled

    assert nginx.toggle_site("shop") is False
    assert not (nginx.enabled / "shop").exists()


def test_create_site_validation(nginx) -> None:
    with pytest.raises(ValidationError) as exc:
        nginx.create_site("shop", "shop.test", "var/www")
    assert exc.value.field == "root"

    with pytest.raises(ValidationError):
        nginx.create_site("../etc", "shop.test", "/var/www")

    nginx.create_site("shop", "shop.test", "/var/www")
    with pytest.raises(CommandError, match="site already exists"):
        nginx.create_site("shop", "shop.test", "/var/www")


def test_delete_site_removes_link(nginx) -> None:
    nginx.create_site("blog", "blog.test", "/var/www/blog", "wordpress")
    nginx.enable_site("blog")

    nginx.delete_site("blog")

    assert not (nginx.available / "blog").exists()
    assert not (nginx.enabled / "blog").is_symlink()
    with pytest.raises(CommandError, match="site not found"):
        nginx.get_site("blog")


def test_manual_ssl_added_and_removed(nginx) -> None:
    nginx.create_site("app", "app.test", "/srv/app", "php")

    nginx.add_ssl_manual("app", "/etc/ssl/app.crt", "/etc/ssl/app.key")

    text = (nginx.available / "app").read_text()
    assert "listen 443 ssl;" in text
    assert "ssl_certificate /etc/ssl/app.crt;" in text
    assert nginx.get_site("app").has_ssl
    with pytest.raises(CommandError, match="already has SSL"):
        nginx.add_ssl_manual("app", "/a.crt", "/a.key")

    nginx.remove_ssl("app")

    text = (nginx.available / "app").read_text()
    assert "ssl_certificate" not in text
    assert "443" not in text
    assert not nginx.get_site("app").has_ssl


def test_generate_config_with_certbot_redirects() -> None:
    text = generate_config("shop.test", "/srv/shop", "static", ssl=True, certbot=True)

    assert text.count("server {") == 2
    assert "/etc/letsencrypt/live/shop.test/fullchain.pem" in text
    assert "return 301 https://$server_name$request_uri;" in text


def test_config_test_failure_carries_output(runner, nginx) -> None:
    runner.on("nginx", "-t", returncode=1, stderr="nginx: [emerg] unexpected end of file")

    with pytest.raises(CommandError, match="unexpected end of file") as exc:
        nginx.test_config()
    assert exc.value.exit_code == 1


def test_certbot_command_quotes_domain(nginx) -> None:
    assert nginx.certbot_command("shop.test").startswith("certbot --nginx -d shop.test ")


def _fill(screen, **values) -> None:
    for field in screen.fields:
        if field.name in values:
            field.value = values[field.name]
    screen.focus = len(screen.fields) - 1


def test_add_site_with_letsencrypt_runs_certbot(ctx, etc) -> None:
    screen = AddSiteScreen(ctx, AddSiteRoute())
    _fill(screen, name="shop", domain="shop.test www.shop.test", root="/srv/shop", ssl="letsencrypt")

    action = screen.handle_key("enter")

    assert isinstance(action, Navigate)
    assert action.replace
    assert action.route.request.command.startswith("certbot --nginx -d shop.test ")
    assert (etc / "nginx" / "sites-enabled" / "shop").is_symlink()


def test_add_site_reports_failed_config_test(ctx, etc, runner) -> None:
    runner.on("nginx", "-t", returncode=1, stderr="nginx: [emerg] duplicate listen")
    screen = AddSiteScreen(ctx, AddSiteRoute())
    _fill(screen, name="shop", domain="shop.test", root="/srv/shop")

    assert screen.handle_key("enter") is None
    assert screen.error.startswith("Site 'shop' created and enabled but config test failed: ")
    assert (etc / "nginx" / "sites-available" / "shop").exists()


def test_add_site_focuses_invalid_root(ctx) -> None:
    screen = AddSiteScreen(ctx, AddSiteRoute())
    _fill(screen, name="shop", domain="shop.test", root="srv")

    screen.handle_key("enter")

    assert screen.fields[screen.focus].name == "root"


def test_site_details_toggle_and_delete(ctx, etc) -> None:
    ctx.managers.nginx.create_site("blog", "blog.test", "/srv/blog")
    screen = SiteDetailsScreen(ctx, SiteDetailsRoute("blog"))
    screen.on_mount()

    screen.handle_key("enter")
    assert screen.success == "Site 'blog' enabled"
    assert screen.site.enabled

    screen.handle_key("x")
    screen.cursor = [item.key for item in screen.entries].index("delete")
    confirm = screen.handle_key("enter")
    assert confirm.route.on_confirm() == "Site 'blog' deleted"
    assert screen.on_resume("Site 'blog' deleted") == Back(notice="Site 'blog' deleted")
