"""
Command line trigger, wired to in-memory backends.
"""

import json

import pytest
import yaml
from click.testing import CliRunner

from bundlepush.cli.main import cli
from bundlepush.storage.config import BackendType
from bundlepush.storage.registry import BackendRegistry


@pytest.fixture
def fake_backends(world, monkeypatch):
    for backend in BackendType:
        monkeypatch.setitem(BackendRegistry._backends, backend, world.make_client)
    return world


@pytest.fixture
def config_file(tmp_path, s3_route_raw):
    def write(cdn=None, **extra):
        path = tmp_path / "bundlepush.yaml"
        path.write_text(yaml.safe_dump({"cdn": cdn or s3_route_raw, "lang": "en", **extra}))
        return str(path)
    return write


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


class TestPublishCommand:

    def test_publish(self, fake_backends, config_file, output_dir):
        result = CliRunner().invoke(cli, ["publish", str(output_dir), "--config", config_file()])

        assert result.exit_code == 0, result.output
        assert "Publish summary" in result.output
        assert fake_backends.all_names() == ["css/site.css", "js/app.js", "js/vendor.js"]
        assert (output_dir / "wp.previous.json").exists()

    def test_upload_failures_exit_code(self, fake_backends, config_file, output_dir):
        fake_backends.fail_put = {"js/app.js"}

        result = CliRunner().invoke(cli, ["publish", str(output_dir), "--config", config_file()])

        assert result.exit_code == 3

    def test_configuration_error_exit_code(self, fake_backends, config_file, output_dir):
        path = config_file(cdn={"type": "s3", "bucket": "b"})

        result = CliRunner().invoke(cli, ["publish", str(output_dir), "--config", path])

        assert result.exit_code == 2
        assert "Configuration error" in result.output
        assert fake_backends.all_names() == []

    def test_journal_is_not_published(self, fake_backends, config_file, output_dir, s3_route_raw):
        path = config_file(cdn={**s3_route_raw, "test": r"\.(js|json)$"})
        runner = CliRunner()

        runner.invoke(cli, ["publish", str(output_dir), "--config", path])
        result = runner.invoke(cli, ["publish", str(output_dir), "--config", path, "--delete-previous"])

        assert result.exit_code == 0, result.output
        assert "wp.previous.json" not in fake_backends.all_names()
        assert fake_backends.all_names() == ["js/app.js", "js/vendor.js"]


class TestCleanCommand:

    def test_clean_after_publish(self, fake_backends, config_file, output_dir):
        path = config_file()
        runner = CliRunner()
        runner.invoke(cli, ["publish", str(output_dir), "--config", path])

        result = runner.invoke(cli, ["clean", str(output_dir), "--config", path])

        assert result.exit_code == 0, result.output
        assert "Deleted 3 previous bundle files" in result.output
        assert fake_backends.all_names() == []
        assert not (output_dir / "wp.previous.json").exists()

    def test_clean_without_journal(self, fake_backends, config_file, output_dir):
        result = CliRunner().invoke(cli, ["clean", str(output_dir), "--config", config_file()])
        assert result.exit_code == 4


class TestValidateCommand:

    def test_json_output(self, config_file, s3_route_raw):
        path = config_file(cdn=[
            {**s3_route_raw, "test": r"\.js$"},
            {"type": "ftp", "host": "ftp.example.com", "destPath": "/www", "test": r"\.css$"},
        ])

        result = CliRunner().invoke(cli, ["validate", "--config", path, "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == [
            {"type": "s3", "target": "static", "test": "/\\.js$/"},
            {"type": "ftp", "target": "ftp.example.com:/www", "test": "/\\.css$/"},
        ]

    def test_duplicate_with_yes(self, config_file, s3_route_raw):
        route = {**s3_route_raw, "test": r"\.js$"}
        path = config_file(cdn=[route, route])

        result = CliRunner().invoke(cli, ["validate", "--config", path, "--yes"])

        assert result.exit_code == 0, result.output
        assert "2 route(s) valid" in result.output

    def test_duplicate_declined_at_prompt(self, config_file, s3_route_raw):
        route = {**s3_route_raw, "test": r"\.js$"}
        path = config_file(cdn=[route, route])

        result = CliRunner().invoke(cli, ["validate", "--config", path], input="n\n")

        assert result.exit_code == 2
