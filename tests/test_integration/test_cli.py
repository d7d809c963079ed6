"""Tests for the env-doctor command line."""

from __future__ import annotations

import json
import logging

import pytest

from env_doctor.__main__ import main
from env_doctor.__version import __version__


@pytest.fixture(autouse=True)
def restore_logging():
    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def app(project):
    return project(
        {
            ".env": "API_URL=https://api.example.com\n",
            "src/index.ts": "fetch(process.env.API_URL);\nconsole.log(process.env.EXTRA);\n",
        }
    )


def run(*argv) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(list(argv))
    return exc_info.value.code


class TestCheck:
    def test_warnings_pass_by_default(self, app, capsys):
        assert run("check", str(app)) == 0
        out = capsys.readouterr().out
        assert "Missing Variables (1 issue)" in out
        assert "Found 0 error(s), 1 warning(s)" in out

    def test_strict_fails_on_warnings(self, app):
        assert run("check", str(app), "--strict") == 1

    def test_strict_from_config(self, app):
        (app / "env-doctor.json").write_text('{"strict": true}', encoding="utf-8")
        assert run("check", str(app)) == 1

    def test_errors_fail(self, app):
        (app / "env-doctor.json").write_text(
            json.dumps({"variables": {"EXTRA": {"required": True}}}), encoding="utf-8"
        )
        assert run("check", str(app)) == 1

    def test_clean_project(self, project, capsys):
        root = project({".env": "A=1\n", "src/index.ts": "use(process.env.A);\n"})
        assert run("check", str(root)) == 0
        assert "No issues found" in capsys.readouterr().out

    def test_json_format(self, app, capsys):
        assert run("check", str(app), "--format", "json") == 0
        report = json.loads(capsys.readouterr().out)

        assert report["version"] == __version__
        assert report["summary"]["warnings"] == 1
        assert [issue["variable"] for issue in report["issues"]] == ["EXTRA"]

    def test_explicit_config(self, app):
        (app / "strict.json").write_text('{"strict": true}', encoding="utf-8")
        assert run("check", str(app), "-c", "strict.json") == 1

    def test_environment_files(self, app, capsys):
        (app / ".env.production").write_text("EXTRA=1\n", encoding="utf-8")
        assert run("check", str(app), "--env", "production", "--strict") == 0
        assert "No issues found" in capsys.readouterr().out

    def test_not_a_directory(self, tmp_path):
        assert run("check", str(tmp_path / "missing")) == 2


class TestMatrix:
    @pytest.fixture
    def environments(self, project):
        return project(
            {
                ".env.dev": "API_URL=https://dev.example.com\n",
                ".env.prod": "OTHER=1\n",
                "env-doctor.json": json.dumps(
                    {
                        "environments": {
                            "dev": {"files": [".env.dev"]},
                            "prod": {"files": [".env.prod"]},
                        },
                        "variables": {"API_URL": {"required": True}},
                    }
                ),
            }
        )

    def test_console(self, environments, capsys):
        assert run("matrix", str(environments)) == 1
        out = capsys.readouterr().out

        assert out.split("\n")[0].split() == ["Variable", "dev", "prod", "Status"]
        assert "missing API_URL: Required variable is missing in prod" in out

    def test_json(self, environments, capsys):
        assert run("matrix", str(environments), "--format", "json") == 1
        data = json.loads(capsys.readouterr().out)

        assert data["environments"] == ["dev", "prod"]
        assert data["matrix"]["API_URL"]["prod"]["status"] == "missing"
        assert data["summary"]["error_count"] == 1

    def test_select_environment(self, environments):
        assert run("matrix", str(environments), "--env", "dev") == 0

    def test_unknown_environment(self, environments, capsys):
        assert run("matrix", str(environments), "--env", "qa") == 1
        assert "Error: No environments" in capsys.readouterr().err


class TestSync:
    def test_prints_template(self, app, capsys):
        assert run("sync", str(app)) == 0
        lines = capsys.readouterr().out.split("\n")

        assert any(line.startswith("API_URL=") for line in lines)
        assert "EXTRA=" in lines

    def test_write(self, app, capsys):
        assert run("sync", str(app), "--write") == 0

        template = (app / ".env.example").read_text(encoding="utf-8")
        assert "EXTRA=" in template.split("\n")
        assert "Wrote 2 variable(s)" in capsys.readouterr().out

    def test_custom_output(self, app):
        assert run("sync", str(app), "--output", "env.template") == 0
        assert (app / "env.template").is_file()
        assert not (app / ".env.example").exists()


class TestInit:
    def test_creates_config(self, tmp_path, capsys):
        assert run("init", str(tmp_path)) == 0

        data = json.loads((tmp_path / "env-doctor.json").read_text(encoding="utf-8"))
        assert data["templateFile"] == ".env.example"
        assert "Created" in capsys.readouterr().out

    def test_refuses_to_overwrite(self, tmp_path, capsys):
        (tmp_path / "env-doctor.json").write_text("{}", encoding="utf-8")

        assert run("init", str(tmp_path)) == 1
        assert "already exists" in capsys.readouterr().err
        assert (tmp_path / "env-doctor.json").read_text(encoding="utf-8") == "{}"

    def test_force(self, tmp_path):
        (tmp_path / "env-doctor.json").write_text("{}", encoding="utf-8")

        assert run("init", str(tmp_path), "--force") == 0
        assert "envFiles" in (tmp_path / "env-doctor.json").read_text(encoding="utf-8")


class TestArguments:
    def test_version(self, capsys):
        assert run("--version") == 0
        assert capsys.readouterr().out.strip() == f"env-doctor {__version__}"

    def test_subcommand_required(self, capsys):
        assert run() == 2
        assert "A subcommand is required" in capsys.readouterr().err
