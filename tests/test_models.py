import argparse

import pytest
from pydantic import ValidationError

from csvclean.errors import ConfigurationError
from csvclean.main import parse_permissions
from csvclean.models import Configuration, derive_output_path, resolve_delimiter


def test_resolve_delimiter():
    assert resolve_delimiter(";") == ";"
    assert resolve_delimiter("\\t") == "\t"
    with pytest.raises(ValueError):
        resolve_delimiter("\\n")
    with pytest.raises(ValueError):
        resolve_delimiter("")


@pytest.mark.parametrize(
    "given, expected",
    [
        ("/tmp/foo/data.csv", "/tmp/foo/data_clean.csv"),
        ("data.csv", "data_clean.csv"),
        ("dir/archive.tar.gz", "dir/archive_clean.tar.gz"),
        ("/srv/README", "/srv/README_clean"),
        ("/data.dir/file.csv", "/data.dir/file_clean.csv"),
    ],
)
def test_derive_output_path(given, expected):
    assert derive_output_path(given) == expected


def test_output_path_is_derived_unless_in_place():
    assert Configuration(input_path="/tmp/foo/data.csv").output_path == "/tmp/foo/data_clean.csv"
    assert Configuration(input_path="/tmp/foo/data.csv", in_place=True).output_path is None
    assert Configuration(input_path="a.csv", output_path="b.csv").output_path == "b.csv"


def test_defaults():
    config = Configuration(input_path="a.csv")
    assert config.delimiter == ","
    assert config.encapsulation == '"'
    assert config.comment is None
    assert config.permissions == 0o666
    assert config.encoding == "utf-8"
    assert not (config.header or config.in_place or config.truncate or config.verbose)


def test_configuration_is_frozen():
    config = Configuration(input_path="a.csv")
    with pytest.raises(ValidationError):
        config.delimiter = ";"


def test_empty_comment_means_unset():
    assert Configuration(input_path="a.csv", comment="").comment is None


@pytest.mark.parametrize(
    "options, message",
    [
        ({"delimiter": "ab"}, "delimiter must be a single character"),
        ({"comment": "##"}, "comment marker must be a single character"),
        ({"delimiter": '"'}, "invalid field delimiter"),
        ({"delimiter": "\n"}, "invalid field delimiter"),
        ({"comment": ","}, "invalid comment marker"),
        ({"permissions": 0o10000}, "permissions"),
        ({"encoding": "klingon"}, "unknown encoding"),
        ({"in_place": True, "output_path": "b.csv"}, "outfile may not be specified"),
    ],
)
def test_build_rejects_invalid_options(options, message):
    with pytest.raises(ConfigurationError) as exc:
        Configuration.build(input_path="a.csv", **options)
    assert message in str(exc.value)
    assert "Value error" not in str(exc.value)


@pytest.mark.parametrize(
    "raw, expected",
    [("0666", 0o666), ("0o640", 0o640), ("420", 420), ("0x1a4", 0o644), ("0", 0)],
)
def test_parse_permissions(raw, expected):
    assert parse_permissions(raw) == expected


@pytest.mark.parametrize("raw", ["rw-r--r--", "089", "-1"])
def test_parse_permissions_rejects(raw):
    with pytest.raises(argparse.ArgumentTypeError):
        parse_permissions(raw)
