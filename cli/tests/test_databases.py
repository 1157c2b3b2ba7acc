from __future__ import annotations

import pytest

from ravact.errors import CommandError, NotInstalledError, ValidationError
from ravact.system.mysql import MySQLManager
from ravact.system.postgresql import PostgreSQLManager
from ravact.system.redis import RedisManager


@pytest.fixture
def redis_conf(tmp_path):
    path = tmp_path / "redis.conf"
    path.write_text("bind 127.0.0.1\nport 6379\n# requirepass foobared\n", encoding="utf-8")
    return path


def test_redis_set_port_rewrites_directive(runner, redis_conf) -> None:
    mgr = RedisManager(runner, (str(redis_conf),))

    mgr.set_port("6380")

    assert "port 6380" in redis_conf.read_text()
    assert mgr.get_config().port == "6380"


def test_redis_rejects_bad_port(runner, redis_conf) -> None:
    mgr = RedisManager(runner, (str(redis_conf),))

    with pytest.raises(ValidationError, match="between 1-65535"):
        mgr.set_port("70000")
    assert "port 6379" in redis_conf.read_text()


def test_redis_password_inserted_after_port_then_cleared(runner, redis_conf) -> None:
    mgr = RedisManager(runner, (str(redis_conf),))

    mgr.set_password("longsecret")
    lines = redis_conf.read_text().splitlines()
    assert lines[lines.index("port 6379") + 1] == "requirepass longsecret"

    mgr.set_password("")
    assert "requirepass" not in redis_conf.read_text().replace("# requirepass", "")


def test_redis_missing_config(runner, tmp_path) -> None:
    with pytest.raises(NotInstalledError):
        RedisManager(runner, (str(tmp_path / "none.conf"),)).get_config()


def test_redis_test_connection(runner, redis_conf) -> None:
    mgr = RedisManager(runner, (str(redis_conf),))
    runner.on("redis-cli", stdout="PONG\n")
    mgr.test_connection()

    runner.on("redis-cli", stdout="NOAUTH Authentication required.\n")
    with pytest.raises(CommandError, match="Redis connection failed"):
        mgr.test_connection()


def test_redis_restart_falls_back_to_second_unit(runner, redis_conf) -> None:
    runner.on("systemctl", "restart", "redis-server", returncode=5, stderr="Unit not found")
    RedisManager(runner, (str(redis_conf),)).restart()

    assert ["systemctl", "restart", "redis"] in runner.calls


def test_mysql_change_port_in_mysqld_section(runner, tmp_path) -> None:
    cnf = tmp_path / "my.cnf"
    cnf.write_text("[client]\nport = 3306\n\n[mysqld]\nport = 3306\nuser = mysql\n", encoding="utf-8")
    mgr = MySQLManager(runner, (str(cnf),), debian_cnf=str(tmp_path / "debian.cnf"))

    mgr.change_port(3307)

    text = cnf.read_text()
    assert text.startswith("[client]\nport = 3306\n")
    assert "[mysqld]\nport = 3307" in text
    assert (tmp_path / "my.cnf.bak").exists()


def test_mysql_change_port_adds_section(runner, tmp_path) -> None:
    cnf = tmp_path / "my.cnf"
    cnf.write_text("!includedir /etc/mysql/conf.d/\n", encoding="utf-8")
    mgr = MySQLManager(runner, (str(cnf),), debian_cnf=str(tmp_path / "debian.cnf"))

    mgr.change_port("3310")

    assert mgr.get_config().port == 3310


def test_mysql_port_below_1024_rejected(runner, tmp_path) -> None:
    cnf = tmp_path / "my.cnf"
    cnf.write_text("[mysqld]\n", encoding="utf-8")
    mgr = MySQLManager(runner, (str(cnf),), debian_cnf=str(tmp_path / "debian.cnf"))

    with pytest.raises(ValidationError, match="between 1024-65535"):
        mgr.change_port(80)


def test_mysql_root_password_requires_running_service(runner, tmp_path) -> None:
    mgr = MySQLManager(runner, (), debian_cnf=str(tmp_path / "debian.cnf"))
    runner.on("systemctl", "is-active", stdout="inactive\n")

    with pytest.raises(CommandError, match="not running"):
        mgr.change_root_password("secret")


def test_mysql_create_database_with_user(runner, tmp_path) -> None:
    mgr = MySQLManager(runner, (), debian_cnf=str(tmp_path / "debian.cnf"))

    mgr.create_database("shop", "shop_user", "pw")

    statements = [call[-1] for call in runner.calls]
    assert any("CREATE DATABASE IF NOT EXISTS `shop`" in s for s in statements)
    assert any("GRANT ALL PRIVILEGES ON `shop`.*" in s for s in statements)


def test_mysql_rejects_bad_identifier(runner, tmp_path) -> None:
    mgr = MySQLManager(runner, (), debian_cnf=str(tmp_path / "debian.cnf"))

    with pytest.raises(ValidationError):
        mgr.create_database("shop; DROP DATABASE mysql")
    assert runner.calls == []


def test_mysql_list_databases_hides_system(runner, tmp_path) -> None:
    mgr = MySQLManager(runner, (), debian_cnf=str(tmp_path / "debian.cnf"))
    runner.on("mysql", stdout="Database\ninformation_schema\nmysql\nshop\nsys\n")

    assert mgr.list_databases() == ["shop"]


@pytest.fixture
def pg_dir(tmp_path):
    base = tmp_path / "postgresql"
    for version in ("14", "16"):
        main = base / version / "main"
        main.mkdir(parents=True)
        (main / "postgresql.conf").write_text(
            "#port = 5432\nmax_connections = 100\n#shared_buffers = 128MB\n", encoding="utf-8"
        )
    return base


def test_postgresql_picks_newest_version(runner, pg_dir) -> None:
    cfg = PostgreSQLManager(runner, str(pg_dir)).get_config()

    assert cfg.version == "16"
    assert cfg.hba_path.endswith("16/main/pg_hba.conf")


def test_postgresql_change_port_uncomments(runner, pg_dir) -> None:
    mgr = PostgreSQLManager(runner, str(pg_dir))

    mgr.change_port("5433")

    text = (pg_dir / "16" / "main" / "postgresql.conf").read_text()
    assert text.splitlines()[0] == "port = 5433"
    assert mgr.get_config().port == 5433


def test_postgresql_settings_validation(runner, pg_dir) -> None:
    mgr = PostgreSQLManager(runner, str(pg_dir))

    with pytest.raises(ValidationError, match="between 10 and 10000"):
        mgr.update_max_connections(5)
    with pytest.raises(ValidationError, match="128MB"):
        mgr.update_shared_buffers("lots")

    mgr.update_max_connections("250")
    mgr.update_shared_buffers("512MB")
    cfg = mgr.get_config()
    assert cfg.max_connections == 250
    assert cfg.shared_buffers == "512MB"


def test_postgresql_create_database_tolerates_existing_user(runner, pg_dir) -> None:
    mgr = PostgreSQLManager(runner, str(pg_dir))
    runner.on("sudo", "-u", "postgres", "psql", "-c", "CREATE USER app WITH PASSWORD 'pw';",
              returncode=1, stderr='ERROR:  role "app" already exists')

    mgr.create_database("app", "app", "pw")

    assert runner.calls[-1][-1] == "CREATE DATABASE app OWNER app;"


def test_postgresql_create_database_reports_other_errors(runner, pg_dir) -> None:
    mgr = PostgreSQLManager(runner, str(pg_dir))
    runner.on("sudo", "-u", "postgres", "psql", returncode=1, stderr="ERROR:  permission denied")

    with pytest.raises(CommandError, match="failed to create database: ERROR:  permission denied"):
        mgr.create_database("app")


def test_postgresql_export_command(runner, pg_dir) -> None:
    cmd = PostgreSQLManager(runner, str(pg_dir)).export_command("shop", "/tmp/out dir/shop.sql")

    assert cmd == "sudo -u postgres pg_dump shop > '/tmp/out dir/shop.sql'"
