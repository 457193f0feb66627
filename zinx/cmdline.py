"""Command-line flags whose repeated names get numbered, plus the standard program arguments."""

from __future__ import annotations

import os
import re
import sys
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Optional, Sequence


class FlagError(ValueError):
    """Raised when flags are defined twice or the command line cannot be parsed."""


class FlagNames:
    """Thread-safe record of how often each flag name has been asked for."""

    def __init__(self) -> None:
        self._names: dict[str, int] = {}
        self._lock = threading.Lock()

    def set(self, key: str, val: int) -> None:
        with self._lock:
            self._names[key] = val

    def get(self, key: str) -> Optional[int]:
        """Return the count stored for ``key``, or None if it was never set."""
        with self._lock:
            return self._names.get(key)

    def next_name(self, expect: str) -> str:
        """Return ``expect`` the first time, then ``expect1``, ``expect2`` and so on."""
        with self._lock:
            num = self._names.get(expect)
            if num is None:
                self._names[expect] = 1
                return expect
            self._names[expect] = num + 1
            return f"{expect}{num}"


_default_names = FlagNames()


def flag_name(expect: str) -> str:
    """Return a process-wide unique flag name based on ``expect``."""
    return _default_names.next_name(expect)


_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(s: str) -> bool:
    if s in _TRUE_WORDS:
        return True
    if s in _FALSE_WORDS:
        return False
    raise ValueError(f"invalid syntax {s!r}")


_LEADING_ZERO_OCTAL = re.compile(r"[+-]?0[0-7_]+")


def _parse_int(s: str) -> int:
    if _LEADING_ZERO_OCTAL.fullmatch(s):
        return int(s, 8)
    return int(s, 0)


# Units expressed in microseconds, the resolution of timedelta.
_DURATION_UNITS = {
    "ns": 1e-3,
    "us": 1.0,
    "µs": 1.0,
    "μs": 1.0,
    "ms": 1e3,
    "s": 1e6,
    "m": 60e6,
    "h": 3600e6,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def _parse_duration(s: str) -> timedelta:
    """Parse durations such as ``300ms``, ``-1.5h`` or ``2h45m``."""
    rest = s
    sign = 1
    if rest[:1] in ("+", "-"):
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {s!r}")
    total = 0.0
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        if match is None:
            raise ValueError(f"invalid duration {s!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return timedelta(microseconds=sign * total)


@dataclass
class _Flag:
    name: str
    usage: str
    default: Any
    convert: Callable[[str], Any]
    is_bool: bool = False


class FlagSet:
    """A set of named flags parsed from an argument list.

    Flags are written ``-name value``, ``-name=value`` or with two dashes;
    boolean flags take no separate value. Parsing stops at the first
    argument that is not a flag, or after ``--``.
    """

    def __init__(self, names: Optional[FlagNames] = None) -> None:
        self._names = names if names is not None else FlagNames()
        self._flags: dict[str, _Flag] = {}
        self.values: dict[str, Any] = {}
        self.args: list[str] = []

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    def _define(
        self,
        expect_name: str,
        default: Any,
        usage: str,
        convert: Callable[[str], Any],
        is_bool: bool = False,
    ) -> str:
        actual = self._names.next_name(expect_name)
        if actual in self._flags:
            raise FlagError(f"flag redefined: {actual}")
        self._flags[actual] = _Flag(actual, usage, default, convert, is_bool)
        self.values[actual] = default
        return actual

    def add_bool(self, expect_name: str, default: bool, usage: str) -> str:
        """Define a boolean flag and return the name it was given."""
        return self._define(expect_name, default, usage, _parse_bool, is_bool=True)

    def add_int(self, expect_name: str, default: int, usage: str) -> str:
        """Define an integer flag and return the name it was given."""
        return self._define(expect_name, default, usage, _parse_int)

    def add_float(self, expect_name: str, default: float, usage: str) -> str:
        """Define a floating-point flag and return the name it was given."""
        return self._define(expect_name, default, usage, float)

    def add_string(self, expect_name: str, default: str, usage: str) -> str:
        """Define a string flag and return the name it was given."""
        return self._define(expect_name, default, usage, str)

    def add_duration(self, expect_name: str, default: timedelta, usage: str) -> str:
        """Define a duration flag and return the name it was given."""
        return self._define(expect_name, default, usage, _parse_duration)

    def parse(self, argv: Optional[Sequence[str]] = None) -> list[str]:
        """Parse ``argv`` (default: ``sys.argv[1:]``) and return the remaining arguments."""
        args = list(sys.argv[1:] if argv is None else argv)
        while args:
            s = args[0]
            if len(s) < 2 or s[0] != "-":
                break
            dashes = 1
            if s[1] == "-":
                dashes = 2
                if len(s) == 2:
                    args.pop(0)
                    break
            name = s[dashes:]
            if not name or name[0] in "-=":
                raise FlagError(f"bad flag syntax: {s}")
            args.pop(0)

            value: Optional[str] = None
            if "=" in name:
                name, value = name.split("=", 1)

            flag = self._flags.get(name)
            if flag is None:
                if name in ("help", "h"):
                    raise FlagError("help requested")
                raise FlagError(f"flag provided but not defined: -{name}")

            if flag.is_bool:
                if value is None:
                    self.values[name] = True
                    continue
            elif value is None:
                if not args:
                    raise FlagError(f"flag needs an argument: -{name}")
                value = args.pop(0)

            try:
                self.values[name] = flag.convert(value)
            except ValueError as exc:
                raise FlagError(f"invalid value {value!r} for flag -{name}: {exc}") from exc

        self.args = args
        return list(args)


def _exe_name() -> str:
    if sys.argv and sys.argv[0]:
        return os.path.basename(sys.argv[0])
    return "."


@dataclass
class Args:
    """Standard arguments: the working directory, the program name and the config file."""

    exe_abs_dir: str = field(default_factory=os.getcwd)
    exe_name: str = field(default_factory=_exe_name)
    config_file: str = ""
    _flag_set: Optional[FlagSet] = field(default=None, init=False, repr=False)
    _config_flag: str = field(default="", init=False, repr=False)

    def init_config_flag(self, flag_set: FlagSet, default_value: str, tips: str) -> None:
        """Register the ``-c`` config-file flag on ``flag_set``; later calls do nothing."""
        if self._flag_set is not None:
            return
        self._flag_set = flag_set
        self._config_flag = flag_set.add_string("c", default_value, tips)
        self.config_file = default_value

    def flag_handle(self) -> None:
        """Take the parsed config-file value and make it absolute against ``exe_abs_dir``."""
        if self._flag_set is not None:
            self.config_file = self._flag_set[self._config_flag]
        if not os.path.isabs(self.config_file):
            self.config_file = os.path.join(self.exe_abs_dir, self.config_file)