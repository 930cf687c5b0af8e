import datetime
import json

import pytest

from fbconv.confreader import JsonReader, Value, Values, replace_env_vars
from fbconv.confsource import ChangeSet


def _values(payload):
    return JsonReader().values(ChangeSet(data=json.dumps(payload).encode(), format="json"))


def test_replace_env_vars(monkeypatch):
    monkeypatch.setenv("FBCONV_TEST_VAR", "value")
    assert replace_env_vars(b"x=${FBCONV_TEST_VAR}") == b"x=value"


def test_replace_env_vars_unset(monkeypatch):
    monkeypatch.delenv("FBCONV_TEST_MISSING", raising=False)
    assert replace_env_vars(b"x=${FBCONV_TEST_MISSING}") == b"x="


def test_replace_env_vars_no_pattern():
    assert replace_env_vars(b"$HOME {x}") == b"$HOME {x}"


def test_merge_deep_override():
    base = ChangeSet(data=b'{"a": {"b": 1, "c": 3}, "d": [1, 2], "keep": true}', format="json")
    override = ChangeSet(data=b"a:\n  b: 2\nd: [3]\nkeep: false\n", format="yaml")
    reader = JsonReader()
    merged = reader.merge(base, override)
    data = reader.values(merged).data()
    assert data["a"]["b"] == 2
    assert data["a"]["c"] == 3
    assert data["d"] == [3]
    assert data["keep"] is False
    assert merged.format == "json"
    assert merged.checksum == merged.sum()


def test_merge_toml_and_scalar_replaces_map():
    base = ChangeSet(data=b'{"a": {"b": 1}}', format="json")
    override = ChangeSet(data=b'a = "flat"\n', format="toml")
    reader = JsonReader()
    data = reader.values(reader.merge(base, override)).data()
    assert data == {"a": "flat"}


def test_merge_skips_empty_and_none():
    only = ChangeSet(data=b'{"x": 1}', format="json")
    reader = JsonReader()
    merged = reader.merge(None, ChangeSet(), only)
    assert reader.values(merged).data() == {"x": 1}


def test_merge_nothing_gives_null():
    assert JsonReader().merge().data == b"null"


def test_merge_unknown_format_falls_back_to_json():
    reader = JsonReader()
    merged = reader.merge(ChangeSet(data=b'{"x": 5}', format="conf"))
    assert reader.values(merged).get("x").as_int(0) == 5


def test_merge_invalid_data():
    with pytest.raises(ValueError):
        JsonReader().merge(ChangeSet(data=b"{broken", format="json"))


def test_merge_non_mapping():
    with pytest.raises(ValueError):
        JsonReader().merge(ChangeSet(data=b"[1, 2]", format="json"))


def test_merge_does_not_alias_sources():
    reader = JsonReader()
    first = ChangeSet(data=b'{"a": {"b": 1}}', format="json")
    merged = reader.merge(first, ChangeSet(data=b'{"a": {"c": 2}}', format="json"))
    again = reader.merge(first)
    assert reader.values(again).data() == {"a": {"b": 1}}
    assert reader.values(merged).get("a", "c").as_int(0) == 2


def test_values_requires_change_set():
    with pytest.raises(ValueError):
        JsonReader().values(None)


def test_values_requires_json():
    with pytest.raises(ValueError):
        JsonReader().values(ChangeSet(data=b"a: 1", format="yaml"))


def test_values_invalid_json_becomes_string():
    values = JsonReader().values(ChangeSet(data=b"not json", format="json"))
    assert values.get().as_str("") == "not json"
    assert values.map() == {}


def test_values_env_substitution(monkeypatch):
    monkeypatch.setenv("FBCONV_TEST_LEVEL", "debug")
    values = JsonReader().values(
        ChangeSet(data=b'{"level": "${FBCONV_TEST_LEVEL}"}', format="json")
    )
    assert values.get("level").as_str("") == "debug"


def test_get_missing_path_gives_defaults():
    values = _values({"a": {"b": 1}})
    assert values.get("a", "x").as_int(7) == 7
    assert values.get("a", "b", "c").as_str("d") == "d"


def test_as_bool():
    assert Value(True).as_bool(False) is True
    assert Value("true").as_bool(False) is True
    assert Value("f").as_bool(True) is False
    assert Value("yes").as_bool(True) is True
    assert Value(1).as_bool(False) is False


def test_as_int():
    assert Value(5).as_int(0) == 5
    assert Value("12").as_int(0) == 12
    assert Value("1.5").as_int(-1) == -1
    assert Value(1.5).as_int(-1) == -1
    assert Value(True).as_int(-1) == -1


def test_as_str():
    assert Value("text").as_str("d") == "text"
    assert Value(3).as_str("d") == "d"


def test_as_float():
    assert Value(1.5).as_float(0.0) == 1.5
    assert Value(2).as_float(0.0) == 2.0
    assert Value("2.5").as_float(0.0) == 2.5
    assert Value("x").as_float(9.0) == 9.0
    assert Value(" 1").as_float(9.0) == 9.0


def test_as_duration():
    default = datetime.timedelta(seconds=1)
    assert Value("1h30m").as_duration(default) == datetime.timedelta(hours=1, minutes=30)
    assert Value("250ms").as_duration(default) == datetime.timedelta(milliseconds=250)
    assert Value("-2s").as_duration(default) == -datetime.timedelta(seconds=2)
    assert Value("0").as_duration(default) == datetime.timedelta(0)
    assert Value("bad").as_duration(default) == default
    assert Value("5").as_duration(default) == default
    assert Value(5).as_duration(default) == default


def test_as_string_list():
    assert Value("a,b").as_string_list(None) == ["a", "b"]
    assert Value(["x", "y"]).as_string_list(None) == ["x", "y"]
    assert Value("single").as_string_list(["d"]) == ["d"]
    assert Value([1]).as_string_list(["d"]) == ["d"]


def test_as_string_map():
    result = Value({"a": "x", "n": 1, "t": True}).as_string_map(None)
    assert result == {"a": "x", "n": "1", "t": "true"}
    assert Value("x").as_string_map({"k": "v"}) == {"k": "v"}


def test_set_and_delete():
    values = _values({"top": 1})
    values.set(5, "x", "y")
    assert values.get("x", "y").as_int(0) == 5
    values.delete("x", "y")
    assert values.get("x", "y").as_int(-1) == -1
    assert values.get("x").as_string_map(None) == {}
    values.delete("top")
    assert "top" not in values.map()
    values.delete()
    assert values.map() == {}


def test_set_root():
    values = _values({"a": 1})
    values.set({"b": 2})
    assert values.data() == {"b": 2}


def test_values_bytes_round_trip():
    payload = {"a": [1, "two"], "b": {"c": None}}
    values = _values(payload)
    assert json.loads(values.to_bytes()) == payload
    assert json.loads(values.get("a").to_bytes()) == payload["a"]


def test_data_is_a_copy():
    values = _values({"a": {"b": 1}})
    copy = values.data()
    copy["a"]["b"] = 99
    assert values.get("a", "b").as_int(0) == 1
    inner = values.get("a").data()
    inner["b"] = 42
    assert values.get("a", "b").as_int(0) == 1


def test_reader_extra_encoders():
    from fbconv.confencoders import YamlEncoder

    class CustomYaml(YamlEncoder):
        name = "conf"

    reader = JsonReader(encoders=[CustomYaml()])
    merged = reader.merge(ChangeSet(data=b"k: v\n", format="conf"))
    assert reader.values(merged).get("k").as_str("") == "v"
    assert str(reader) == "json"
    assert isinstance(reader.values(merged), Values)