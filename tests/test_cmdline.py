import os
import uuid
from datetime import timedelta

import pytest

from zinx.cmdline import Args, FlagError, FlagNames, FlagSet, flag_name


def test_flag_names_get_missing_is_none():
    names = FlagNames()
    assert names.get("absent") is None


def test_flag_names_set_then_get():
    names = FlagNames()
    names.set("port", 3)
    assert names.get("port") == 3


def test_flag_name_repeats_are_numbered():
    base = "opt" + uuid.uuid4().hex
    first = flag_name(base)
    second = flag_name(base)
    third = flag_name(base)
    assert first == base
    assert second == base + "1"
    assert third == base + "2"


def test_flag_set_renames_duplicates():
    fs = FlagSet()
    names = [fs.add_string("c", "", "config") for _ in range(3)]
    assert names[0] == "c"
    assert len(set(names)) == 3
    assert all(n.startswith("c") for n in names)


def test_defaults_are_kept_when_not_given():
    fs = FlagSet()
    name = fs.add_string("c", "default.json", "config")
    rest = fs.parse([])
    assert fs[name] == "default.json"
    assert rest == []


@pytest.mark.parametrize(
    "argv",
    [["-c", "x.json"], ["-c=x.json"], ["--c", "x.json"], ["--c=x.json"]],
)
def test_string_flag_forms(argv):
    fs = FlagSet()
    name = fs.add_string("c", "", "config")
    fs.parse(argv)
    assert fs[name] == "x.json"


def test_bool_flag_forms():
    fs = FlagSet()
    v = fs.add_bool("v", False, "verbose")
    q = fs.add_bool("q", True, "quiet")
    fs.parse(["-v", "-q=false"])
    assert fs[v] is True
    assert fs[q] is False


def test_numeric_flags():
    fs = FlagSet()
    n = fs.add_int("n", 0, "count")
    f = fs.add_float("f", 0.0, "ratio")
    fs.parse(["-n", "42", "-f", "2.5"])
    assert fs[n] == 42
    assert fs[f] == 2.5


def test_duration_flag():
    fs = FlagSet()
    a = fs.add_duration("a", timedelta(0), "first")
    b = fs.add_duration("b", timedelta(0), "second")
    fs.parse(["-a", "1500ms", "-b", "1h30m"])
    assert fs[a] == timedelta(milliseconds=1500)
    assert fs[b] == timedelta(hours=1, minutes=30)


def test_parsing_stops_at_first_positional():
    fs = FlagSet()
    name = fs.add_string("c", "", "config")
    rest = fs.parse(["-c", "x", "rest", "-c", "y"])
    assert rest == ["rest", "-c", "y"]
    assert fs.args == rest
    assert fs[name] == "x"


def test_double_dash_ends_flags():
    fs = FlagSet()
    name = fs.add_bool("v", False, "verbose")
    rest = fs.parse(["--", "-v"])
    assert rest == ["-v"]
    assert fs[name] is False


@pytest.mark.parametrize(
    "argv",
    [["-unknown"], ["-n"], ["-n", "abc"], ["-d", "5 parsecs"], ["---n"], ["-v=maybe"], ["-h"]],
)
def test_parse_errors(argv):
    fs = FlagSet()
    fs.add_int("n", 0, "count")
    fs.add_duration("d", timedelta(0), "delay")
    fs.add_bool("v", False, "verbose")
    with pytest.raises(FlagError):
        fs.parse(argv)


def test_redefined_flag_raises():
    fs = FlagSet()
    fs.add_string("c", "", "first")
    fs.add_string("c1", "", "explicit")
    with pytest.raises(FlagError):
        fs.add_string("c", "", "clashes with c1")


def test_args_relative_config_is_joined(tmp_path):
    fs = FlagSet()
    args = Args(exe_abs_dir=str(tmp_path))
    args.init_config_flag(fs, "conf/default.json", "config file")
    fs.parse(["-c", "conf/mine.json"])
    args.flag_handle()
    assert args.config_file == os.path.join(str(tmp_path), "conf/mine.json")


def test_args_absolute_config_is_kept(tmp_path):
    absolute = str(tmp_path / "abs.json")
    fs = FlagSet()
    args = Args(exe_abs_dir="/somewhere")
    args.init_config_flag(fs, absolute, "config file")
    fs.parse([])
    args.flag_handle()
    assert args.config_file == absolute


def test_args_init_config_flag_only_once():
    fs = FlagSet()
    args = Args()
    args.init_config_flag(fs, "a.json", "config file")
    args.init_config_flag(fs, "b.json", "config file")
    assert list(fs.values) == ["c"]
    assert args.config_file == "a.json"