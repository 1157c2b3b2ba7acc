from __future__ import annotations

from typer.testing import CliRunner

from ravact import config, main


def test_version_option() -> None:
    result = CliRunner().invoke(main._build_app(), ["--version"])

    assert result.exit_code == 0
    assert "Ravact version" in result.output


def test_help_lists_commands() -> None:
    result = CliRunner().invoke(main._build_app(), ["--help"])

    assert result.exit_code == 0
    for name in ("settings", "script", "info", "status"):
        assert name in result.output


def test_settings_set_and_get(config_home, tmp_path) -> None:
    app = main._build_app()
    runner = CliRunner()

    result = runner.invoke(app, ["settings", "set", "--editor", "vi", "--theme", "light",
                                 "--project-path", str(tmp_path), "--path", "nginx_dir=/opt/nginx"])
    assert result.exit_code == 0, result.output
    assert "Settings updated" in result.output

    cfg = config.load_config()
    assert (cfg.editor, cfg.theme, cfg.project_path) == ("vi", "light", str(tmp_path))
    assert cfg.paths == {"nginx_dir": "/opt/nginx"}

    result = runner.invoke(app, ["settings", "get", "paths.nginx_dir"])
    assert result.exit_code == 0
    assert result.output.strip() == "/opt/nginx"


def test_settings_rejects_unknown_values(config_home) -> None:
    app = main._build_app()
    runner = CliRunner()

    assert runner.invoke(app, ["settings", "set", "--theme", "neon"]).exit_code == 2
    assert runner.invoke(app, ["settings", "set", "--path", "bogus=/x"]).exit_code == 2
    assert runner.invoke(app, ["settings", "get", "colour"]).exit_code == 2
    assert not (config_home / "config.toml").exists()


def test_script_list_and_run(config_home, tmp_path) -> None:
    scripts = tmp_path / "scripts"
    scripts.mkdir()
    (scripts / "hello.sh").write_text('#!/bin/bash\necho "hello $WHO"\n', encoding="utf-8")
    (scripts / "notes.txt").write_text("ignored\n", encoding="utf-8")
    app = main._build_app()
    runner = CliRunner()

    result = runner.invoke(app, ["script", "list", "--dir", str(scripts)])
    assert result.exit_code == 0
    assert result.output.split() == ["hello"]

    result = runner.invoke(app, ["script", "run", "hello", "--dir", str(scripts), "-e", "WHO=world"])
    assert result.exit_code == 0, result.output
    assert "hello world" in result.output


def test_script_without_directory_configured(config_home) -> None:
    result = CliRunner().invoke(main._build_app(), ["script", "list"])

    assert result.exit_code == 2
    assert "No scripts directory configured" in result.output
