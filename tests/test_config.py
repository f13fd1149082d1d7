"""
Route and option configuration.
"""

import re

import pytest

from bundlepush.core.errors import ConfigurationError, ErrorCode
from bundlepush.storage.config import (
    DEFAULT_JOURNAL_NAME,
    BackendType,
    PublishOptions,
    Route,
    compile_pattern,
    load_options,
    pattern_key,
    routes_from_json,
)


class TestPatterns:

    def test_bare_source_compiles(self):
        assert compile_pattern(r"\.js$").search("dist/app.js")

    def test_slash_wrapped_form_with_flags(self):
        pattern = compile_pattern(r"/\.CSS$/i")
        assert pattern.pattern == r"\.CSS$"
        assert pattern.flags & re.IGNORECASE
        assert pattern.search("site.css")

    def test_compiled_pattern_passes_through(self):
        compiled = re.compile(r"\.png$")
        assert compile_pattern(compiled) is compiled

    def test_key_is_stable_between_forms(self):
        assert pattern_key(compile_pattern(r"\.js$")) == r"/\.js$/"
        assert pattern_key(compile_pattern(r"/\.js$/")) == r"/\.js$/"
        assert pattern_key(re.compile(r"\.js$", re.I)) == r"/\.js$/i"

    def test_empty_is_rejected(self):
        with pytest.raises(ValueError):
            compile_pattern("")


class TestRoute:

    def test_from_dict_keeps_extras_in_options(self, s3_route_raw):
        route = Route.from_dict({**s3_route_raw, "test": r"\.js$", "acl": "private", "region": "eu-west-1"})

        assert route.backend is BackendType.S3
        assert route.bucket == "static"
        assert route.options == {"acl": "private", "region": "eu-west-1"}
        assert route.matches("js/app.js")

    def test_journal_round_trip_preserves_pattern(self, s3_route_raw):
        route = Route.from_dict({**s3_route_raw, "test": re.compile(r"\.css$")})

        restored = Route.from_dict(route.to_dict())

        assert restored == route
        assert restored.to_dict()["test"] == r"/\.css$/"

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError) as exc:
            Route.from_dict({"type": "aliyun"})
        assert exc.value.error_code is ErrorCode.UNSUPPORTED_BACKEND

    def test_bad_pattern(self, s3_route_raw):
        with pytest.raises(ConfigurationError) as exc:
            Route.from_dict({**s3_route_raw, "test": "("})
        assert exc.value.error_code is ErrorCode.INVALID_PATTERN

    def test_routes_sharing_an_account_share_a_connection_key(self, s3_route_raw):
        a = Route.from_dict({**s3_route_raw, "test": r"\.js$"})
        b = Route.from_dict({**s3_route_raw, "test": r"\.css$"})
        c = Route.from_dict({**s3_route_raw, "bucket": "other"})

        assert a.connection_key == b.connection_key
        assert a.connection_key != c.connection_key

    def test_routes_from_json_single_and_list(self, s3_route_raw):
        assert isinstance(routes_from_json(s3_route_raw), Route)
        assert len(routes_from_json([s3_route_raw, s3_route_raw])) == 2

        with pytest.raises(ConfigurationError):
            routes_from_json("s3")


class TestPublishOptions:

    def test_camel_case_keys(self, s3_route_raw):
        options = PublishOptions.from_mapping({
            "cdn": s3_route_raw,
            "deletePrevious": True,
            "deleteOutput": 1,
            "logName": "previous.json",
            "lang": "en",
        })

        assert options.delete_previous is True
        assert options.delete_output is True
        assert options.log_name == "previous.json"
        assert options.multi_route is False

    def test_snake_case_keys(self, s3_route_raw):
        options = PublishOptions.from_mapping({"cdn": [s3_route_raw], "delete_previous": True})
        assert options.delete_previous is True
        assert options.multi_route is True

    def test_default_journal_path_is_beside_output(self, tmp_path):
        options = PublishOptions()
        assert options.journal_path(tmp_path) == tmp_path / DEFAULT_JOURNAL_NAME

    def test_journal_path_overrides(self, tmp_path):
        options = PublishOptions(log_name="last.json", log_path=str(tmp_path / "logs"))
        assert options.journal_path(tmp_path / "dist") == tmp_path / "logs" / "last.json"


class TestLoadOptions:

    def test_yaml(self, tmp_path):
        config = tmp_path / "bundlepush.yaml"
        config.write_text(
            "cdn:\n"
            "  - type: s3\n"
            "    accessKey: AK\n"
            "    secretKey: SK\n"
            "    bucket: static\n"
            "    test: '\\.js$'\n"
            "deletePrevious: true\n"
        )

        options = load_options(config)

        assert options.delete_previous is True
        assert options.cdn[0]["test"] == r"\.js$"

    def test_json(self, tmp_path):
        config = tmp_path / "bundlepush.json"
        config.write_text('{"cdn": {"type": "ftp", "host": "h", "destPath": "/"}}')
        assert load_options(config).cdn["type"] == "ftp"

    def test_malformed(self, tmp_path):
        config = tmp_path / "bundlepush.yaml"
        config.write_text("cdn: [unclosed")
        with pytest.raises(ConfigurationError):
            load_options(config)

    def test_not_a_mapping(self, tmp_path):
        config = tmp_path / "bundlepush.yaml"
        config.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            load_options(config)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_options(tmp_path / "nope.yaml")
