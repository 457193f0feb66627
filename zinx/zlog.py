"""Leveled logger with a configurable header and a process-wide default instance."""

from __future__ import annotations

import os
import sys
import threading
import traceback
from datetime import datetime
from enum import IntEnum
from typing import Any, Optional, TextIO

LOG_MAX_BUF = 1024 * 1024

# Header flag bits; combine them to choose what each log line starts with.
BIT_DATE = 1 << 0
BIT_TIME = 1 << 1
BIT_MICROSECONDS = 1 << 2
BIT_LONG_FILE = 1 << 3
BIT_SHORT_FILE = 1 << 4
BIT_LEVEL = 1 << 5
BIT_STD_FLAG = BIT_DATE | BIT_TIME
BIT_DEFAULT = BIT_LEVEL | BIT_SHORT_FILE | BIT_STD_FLAG

_TIME_BITS = BIT_DATE | BIT_TIME | BIT_MICROSECONDS
_FILE_BITS = BIT_SHORT_FILE | BIT_LONG_FILE

_THIS_FILE = os.path.normcase(os.path.abspath(__file__))


class LogLevel(IntEnum):
    """Severity of a log line."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    PANIC = 4
    FATAL = 5

    @property
    def tag(self) -> str:
        return f"[{self.name}]"


class PanicError(RuntimeError):
    """Raised by the panic methods after the message has been logged."""


def _sprint(args: tuple) -> str:
    """Join operands, with a space between two operands that are both non-strings."""
    out = []
    prev_is_str = False
    for i, arg in enumerate(args):
        is_str = isinstance(arg, str)
        if i > 0 and not is_str and not prev_is_str:
            out.append(" ")
        out.append(str(arg))
        prev_is_str = is_str
    return "".join(out)


def _sprintln(args: tuple) -> str:
    return " ".join(str(a) for a in args) + "\n"


def _sprintf(fmt: str, args: tuple) -> str:
    return fmt % args if args else fmt


def _caller() -> tuple[str, int]:
    """File name and line of the first frame outside this module."""
    frame = sys._getframe(1)
    while frame is not None:
        filename = frame.f_code.co_filename
        if os.path.normcase(os.path.abspath(filename)) != _THIS_FILE:
            return filename, frame.f_lineno
        frame = frame.f_back
    return "unknown-file", 0


class ZinxLogger:
    """Thread-safe logger writing formatted lines to a text stream or file.

    When ``out`` is None the logger writes to whatever ``sys.stderr`` is at the
    moment of writing.
    """

    def __init__(self, out: Optional[TextIO], prefix: str, flag: int) -> None:
        self._lock = threading.Lock()
        self._out = out
        self._prefix = prefix
        self._flag = flag
        self._file: Optional[TextIO] = None
        self._debug_closed = False

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass

    def _format_header(self, now: datetime, file: str, line: int, level: LogLevel) -> str:
        parts = []
        if self._prefix:
            parts.append(f"<{self._prefix}>")

        flag = self._flag
        if flag & _TIME_BITS:
            if flag & BIT_DATE:
                parts.append(f"{now.year:04d}/{now.month:02d}/{now.day:02d} ")
            if flag & (BIT_TIME | BIT_MICROSECONDS):
                parts.append(f"{now.hour:02d}:{now.minute:02d}:{now.second:02d}")
                if flag & BIT_MICROSECONDS:
                    parts.append(f".{now.microsecond:06d}")
                parts.append(" ")
            if flag & BIT_LEVEL:
                parts.append(level.tag)
            if flag & _FILE_BITS:
                if flag & BIT_SHORT_FILE:
                    file = os.path.basename(file)
                parts.append(f"{file}:{line}: ")
        return "".join(parts)

    def output(self, level: LogLevel, s: str) -> None:
        """Write one line at ``level`` with the configured header."""
        now = datetime.now()
        file, line = "", 0
        if self._flag & _FILE_BITS:
            file, line = _caller()

        with self._lock:
            text = self._format_header(now, file, line, LogLevel(level)) + s
            if s and not s.endswith("\n"):
                text += "\n"
            out = self._out if self._out is not None else sys.stderr
            out.write(text)
            flush = getattr(out, "flush", None)
            if flush is not None:
                flush()

    def debugf(self, fmt: str, *args: Any) -> None:
        if self._debug_closed:
            return
        self.output(LogLevel.DEBUG, _sprintf(fmt, args))

    def debug(self, *args: Any) -> None:
        if self._debug_closed:
            return
        self.output(LogLevel.DEBUG, _sprintln(args))

    def infof(self, fmt: str, *args: Any) -> None:
        self.output(LogLevel.INFO, _sprintf(fmt, args))

    def info(self, *args: Any) -> None:
        self.output(LogLevel.INFO, _sprintln(args))

    def warnf(self, fmt: str, *args: Any) -> None:
        self.output(LogLevel.WARN, _sprintf(fmt, args))

    def warn(self, *args: Any) -> None:
        self.output(LogLevel.WARN, _sprintln(args))

    def errorf(self, fmt: str, *args: Any) -> None:
        self.output(LogLevel.ERROR, _sprintf(fmt, args))

    def error(self, *args: Any) -> None:
        self.output(LogLevel.ERROR, _sprintln(args))

    def fatalf(self, fmt: str, *args: Any) -> None:
        """Log at FATAL level and exit the process with status 1."""
        self.output(LogLevel.FATAL, _sprintf(fmt, args))
        raise SystemExit(1)

    def fatal(self, *args: Any) -> None:
        """Log at FATAL level and exit the process with status 1."""
        self.output(LogLevel.FATAL, _sprintln(args))
        raise SystemExit(1)

    def panicf(self, fmt: str, *args: Any) -> None:
        """Log at PANIC level and raise PanicError with the message."""
        s = _sprintf(fmt, args)
        self.output(LogLevel.PANIC, s)
        raise PanicError(s)

    def panic(self, *args: Any) -> None:
        """Log at PANIC level and raise PanicError with the message."""
        s = _sprintln(args)
        self.output(LogLevel.PANIC, s)
        raise PanicError(s)

    def stack(self, *args: Any) -> None:
        """Log the message followed by the stacks of all running threads."""
        names = {t.ident: t.name for t in threading.enumerate()}
        dumps = []
        for ident, frame in sys._current_frames().items():
            header = f"thread {ident} [{names.get(ident, 'unknown')}]:\n"
            dumps.append(header + "".join(traceback.format_stack(frame)))
        trace = "\n".join(dumps)[:LOG_MAX_BUF]
        self.output(LogLevel.ERROR, _sprint(args) + "\n" + trace + "\n")

    def flags(self) -> int:
        with self._lock:
            return self._flag

    def reset_flags(self, flag: int) -> None:
        with self._lock:
            self._flag = flag

    def add_flag(self, flag: int) -> None:
        with self._lock:
            self._flag |= flag

    def set_prefix(self, prefix: str) -> None:
        with self._lock:
            self._prefix = prefix

    def set_log_file(self, file_dir: str, file_name: str) -> None:
        """Send output to ``file_dir/file_name``, appending, creating both if needed."""
        try:
            os.makedirs(file_dir, mode=0o775, exist_ok=True)
        except OSError:
            pass
        full_path = os.path.join(str(file_dir), file_name)
        handle = open(full_path, "a", encoding="utf-8")
        with self._lock:
            self._close_file()
            self._file = handle
            self._out = handle

    def _close_file(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._out = None

    def close(self) -> None:
        """Close the bound log file, if any, and go back to standard error."""
        with self._lock:
            self._close_file()

    def close_debug(self) -> None:
        self._debug_closed = True

    def open_debug(self) -> None:
        self._debug_closed = False


std_zinx_log = ZinxLogger(None, "", BIT_DEFAULT)


def flags() -> int:
    return std_zinx_log.flags()


def reset_flags(flag: int) -> None:
    std_zinx_log.reset_flags(flag)


def add_flag(flag: int) -> None:
    std_zinx_log.add_flag(flag)


def set_prefix(prefix: str) -> None:
    std_zinx_log.set_prefix(prefix)


def set_log_file(file_dir: str, file_name: str) -> None:
    std_zinx_log.set_log_file(file_dir, file_name)


def close_debug() -> None:
    std_zinx_log.close_debug()


def open_debug() -> None:
    std_zinx_log.open_debug()


def debugf(fmt: str, *args: Any) -> None:
    std_zinx_log.debugf(fmt, *args)


def debug(*args: Any) -> None:
    std_zinx_log.debug(*args)


def infof(fmt: str, *args: Any) -> None:
    std_zinx_log.infof(fmt, *args)


def info(*args: Any) -> None:
    std_zinx_log.info(*args)


def warnf(fmt: str, *args: Any) -> None:
    std_zinx_log.warnf(fmt, *args)


def warn(*args: Any) -> None:
    std_zinx_log.warn(*args)


def errorf(fmt: str, *args: Any) -> None:
    std_zinx_log.errorf(fmt, *args)


def error(*args: Any) -> None:
    std_zinx_log.error(*args)


def fatalf(fmt: str, *args: Any) -> None:
    std_zinx_log.fatalf(fmt, *args)


def fatal(*args: Any) -> None:
    std_zinx_log.fatal(*args)


def panicf(fmt: str, *args: Any) -> None:
    std_zinx_log.panicf(fmt, *args)


def panic(*args: Any) -> None:
    std_zinx_log.panic(*args)


def stack(*args: Any) -> None:
    std_zinx_log.stack(*args)