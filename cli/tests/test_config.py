from __future__ import annotations

import stat

from ravact import config


def test_missing_config_gives_defaults(config_home) -> None:
    cfg = config.load_config()

    assert cfg == config.default_config()
    assert cfg.editor == "nano"
    assert cfg.command_timeout == config.DEFAULT_TIMEOUT


def test_save_and_load_round_trip(config_home) -> None:
    cfg = config.AppConfig(
        editor="vi",
        project_path="/srv/app",
        theme="light",
        command_timeout=30,
        scripts_dir="/opt/scripts",
        paths={"nginx_dir": "/usr/local/nginx"},
    )

    path = config.save_config(cfg)

    assert path == str(config_home / "config.toml")
    assert stat.S_IMODE((config_home / "config.toml").stat().st_mode) == 0o600
    assert config.load_config() == cfg


def test_ill_typed_values_fall_back(config_home) -> None:
    config_home.mkdir()
    (config_home / "config.toml").write_text(
        'editor = ""\n'
        'theme = "solarized"\n'
        'command_timeout = "soon"\n'
        "[paths]\n"
        'nginx_dir = "/opt/nginx"\n'
        'unknown_dir = "/x"\n'
        "redis_conf = 5\n",
        encoding="utf-8",
    )

    cfg = config.load_config()

    assert cfg.editor == "nano"
    assert cfg.theme == "dark"
    assert cfg.command_timeout == config.DEFAULT_TIMEOUT
    assert cfg.paths == {"nginx_dir": "/opt/nginx"}


def test_working_dir_defaults_to_cwd(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert config.AppConfig().working_dir() == str(tmp_path)
    assert config.AppConfig(project_path="/srv").working_dir() == "/srv"
