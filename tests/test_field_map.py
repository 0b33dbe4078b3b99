import pytest

from syncrelease.errors import ConfigError, FieldNotFoundError
from syncrelease.field_map import FieldMap, LiteralSpan, TrackedField
from syncrelease.semver import VERSION_FIELDS, SemVer

from conftest import RELEASE_ANCHORS, VERSION_HEADER


def test_parse_c_header():
    text = VERSION_HEADER.format(major=1, minor=2, patch=3, tweak="rc.1")
    field_map = FieldMap.parse(text, RELEASE_ANCHORS)

    assert list(field_map) == ["major", "minor", "patch", "tweak"]
    assert field_map["major"] == "1"
    assert field_map["tweak"] == "rc.1"
    assert field_map.render() == text


def test_set_changes_only_the_value():
    text = VERSION_HEADER.format(major=1, minor=2, patch=3, tweak="")
    field_map = FieldMap.parse(text, RELEASE_ANCHORS)

    assert field_map.set("minor", "3")
    assert field_map.set("patch", "0")
    assert not field_map.set("major", "1")
    assert field_map.changed
    assert field_map.changed_fields() == ["minor", "patch"]
    assert field_map.render() == VERSION_HEADER.format(major=1, minor=3, patch=0, tweak="")


def test_quoting_styles():
    text = "A = 'one';\nB = two;\nC=\"three\"\n"
    field_map = FieldMap.parse(text, {"major": "A =", "minor": "B =", "patch": "C="})

    assert field_map["major"] == "one"
    assert field_map["minor"] == "two"
    assert field_map["patch"] == "three"

    field_map.set("major", "1")
    field_map.set("minor", "2")
    field_map.set("patch", "3")
    assert field_map.render() == "A = '1';\nB = 2;\nC=\"3\"\n"


def test_anchor_whitespace_is_flexible():
    text = "static\tconst char  semver_major[] =\t\"4\";\n"
    field_map = FieldMap.parse(text, {"major": "static const char semver_major[] ="})
    assert field_map["major"] == "4"


def test_first_occurrence_wins():
    text = "VERSION_MAJOR = 1\n# VERSION_MAJOR = 9\n"
    field_map = FieldMap.parse(text, {"major": "VERSION_MAJOR ="})
    field_map.set("major", "2")
    assert field_map.render() == "VERSION_MAJOR = 2\n# VERSION_MAJOR = 9\n"


def test_tokens_alternate_literals_and_fields():
    field_map = FieldMap.parse('X = "1" tail', {"major": "X ="})
    assert field_map.tokens == [
        LiteralSpan('X = "'),
        TrackedField("major", "1"),
        LiteralSpan('" tail'),
    ]


def test_missing_field():
    field_map = FieldMap.parse("nothing here\n", RELEASE_ANCHORS)

    assert "major" not in field_map
    assert field_map.get("major") is None
    with pytest.raises(FieldNotFoundError) as excinfo:
        field_map.require("major")
    assert excinfo.value.field == "major"
    with pytest.raises(FieldNotFoundError):
        field_map.set("major", "1")


def test_empty_anchor_rejected():
    with pytest.raises(ConfigError):
        FieldMap.parse("X = 1", {"major": "   "})


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        FieldMap.load(tmp_path / "version.h", RELEASE_ANCHORS)


def test_save_preserves_line_endings(tmp_path):
    path = tmp_path / "version.h"
    text = VERSION_HEADER.format(major=1, minor=2, patch=3, tweak="").replace("\n", "\r\n")
    path.write_bytes(text.encode("utf-8"))

    field_map = FieldMap.load(path, RELEASE_ANCHORS)
    field_map.set("patch", "4")
    field_map.save(path)

    expected = VERSION_HEADER.format(major=1, minor=2, patch=4, tweak="").replace("\n", "\r\n")
    assert path.read_bytes() == expected.encode("utf-8")
    assert not field_map.changed
    # No backup or staging file left behind
    assert sorted(p.name for p in tmp_path.iterdir()) == ["version.h"]


def test_version_fields_round_trip(tmp_path):
    path = tmp_path / "version.h"
    path.write_text(VERSION_HEADER.format(major=0, minor=0, patch=0, tweak=""))
    version = SemVer.parse("4.10.2-rc.3+ab12cd34ef")

    field_map = FieldMap.load(path, RELEASE_ANCHORS)
    for name, value in version.fields().items():
        field_map.set(name, value)
    field_map.save(path)

    reloaded = FieldMap.load(path, RELEASE_ANCHORS)
    assert SemVer.from_fields(*(reloaded[name] for name in VERSION_FIELDS)) == version
