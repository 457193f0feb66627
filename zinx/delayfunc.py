"""A callback with its arguments, to be run when a timer fires."""

from __future__ import annotations

from typing import Any, Callable, Iterable

from zinx import zlog


class DelayFunc:
    """A function and the positional arguments it is called with."""

    def __init__(self, f: Callable[..., Any], args: Iterable[Any] = ()) -> None:
        self.f = f
        self.args = list(args)

    def __str__(self) -> str:
        name = getattr(self.f, "__name__", type(self.f).__name__)
        shown = " ".join(str(a) for a in self.args)
        return f"{{DelayFun:{name}, args:[{shown}]}}"

    def __repr__(self) -> str:
        return f"DelayFunc({self.f!r}, {self.args!r})"

    def call(self) -> None:
        """Run the function; an exception it raises is logged, not propagated."""
        try:
            self.f(*self.args)
        except Exception as exc:
            zlog.error(str(self), "Call err: ", exc)