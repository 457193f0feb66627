"""Framework-wide settings with defaults, loadable from a JSON file."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from zinx import zlog
from zinx.cmdline import Args, FlagSet

DEFAULT_MAX_PACKET_SIZE = 4096

_UINT32_MAX = 2**32 - 1
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

# JSON key (matched case-insensitively) -> (attribute, kind)
_JSON_FIELDS = {
    "host": ("host", "str"),
    "tcpport": ("tcp_port", "int"),
    "name": ("name", "str"),
    "openkcp": ("open_kcp", "bool"),
    "kcpdatashards": ("kcp_data_shards", "int"),
    "kcpparityshards": ("kcp_parity_shards", "int"),
    "version": ("version", "str"),
    "maxpacketsize": ("max_packet_size", "uint32"),
    "maxconn": ("max_conn", "int"),
    "workerpoolsize": ("worker_pool_size", "uint32"),
    "maxworkertasklen": ("max_worker_task_len", "uint32"),
    "maxmsgchanlen": ("max_msg_chan_len", "uint32"),
    "conffilepath": ("conf_file_path", "str"),
    "logdir": ("log_dir", "str"),
    "logfile": ("log_file", "str"),
    "logdebugclose": ("log_debug_close", "bool"),
}

_CONFIG_FLAG_TIPS = "config file; defaults to <exeDir>/conf/zinx.json"


def _cwd() -> str:
    try:
        return os.getcwd()
    except OSError:
        return "."


def _check(key: str, value: Any, kind: str) -> Any:
    if kind == "str" and isinstance(value, str):
        return value
    if kind == "bool" and isinstance(value, bool):
        return value
    if kind in ("int", "uint32") and isinstance(value, int) and not isinstance(value, bool):
        low, high = (0, _UINT32_MAX) if kind == "uint32" else (_INT64_MIN, _INT64_MAX)
        if low <= value <= high:
            return value
        raise ValueError(f"value {value} out of range for field {key}")
    raise ValueError(f"cannot unmarshal {type(value).__name__} into field {key} of type {kind}")


def path_exists(path: str) -> bool:
    """Return whether ``path`` exists; errors other than "not found" are raised."""
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    return True


@dataclass
class GlobalObj:
    """All global settings of the framework."""

    name: str = "ZinxServerApp"
    version: str = "V1.0"
    tcp_port: int = 8999
    host: str = "0.0.0.0"
    max_conn: int = 12000
    max_packet_size: int = DEFAULT_MAX_PACKET_SIZE
    conf_file_path: str = field(
        default_factory=lambda: os.path.join(_cwd(), "conf", "zinx.json")
    )
    worker_pool_size: int = 10
    max_worker_task_len: int = 1024
    max_msg_chan_len: int = 1024
    log_dir: str = field(default_factory=lambda: os.path.join(_cwd(), "log"))
    log_file: str = ""
    log_debug_close: bool = False
    open_kcp: bool = False
    kcp_block: Any = None
    kcp_data_shards: int = 10
    kcp_parity_shards: int = 3
    tcp_server: Any = None

    def _apply_json(self, document: Any) -> None:
        if not isinstance(document, dict):
            raise ValueError("configuration must be a JSON object")
        updates = {}
        for key, value in document.items():
            spec = _JSON_FIELDS.get(key.lower())
            if spec is None or value is None:
                continue
            attr, kind = spec
            updates[attr] = _check(key, value, kind)
        for attr, value in updates.items():
            setattr(self, attr, value)

    def reload(self) -> None:
        """Load settings from ``conf_file_path`` if it exists, then apply the log settings."""
        try:
            exists = path_exists(self.conf_file_path)
        except OSError:
            exists = False
        if not exists:
            return

        with open(self.conf_file_path, "rb") as fh:
            document = json.loads(fh.read())
        self._apply_json(document)

        if self.log_file:
            zlog.set_log_file(self.log_dir, self.log_file)
        if self.log_debug_close:
            zlog.close_debug()


global_object: Optional[GlobalObj] = None


def init_global_object(argv: Optional[Sequence[str]] = None) -> GlobalObj:
    """Parse the ``-c`` flag from ``argv``, build the settings and load the config file."""
    global global_object

    pwd = _cwd()
    flag_set = FlagSet()
    args = Args(exe_abs_dir=pwd)
    args.init_config_flag(flag_set, os.path.join(pwd, "conf", "zinx.json"), _CONFIG_FLAG_TIPS)
    flag_set.parse(argv)
    args.flag_handle()

    obj = GlobalObj(conf_file_path=args.config_file, log_dir=os.path.join(pwd, "log"))
    obj.reload()
    global_object = obj
    return obj