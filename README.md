# zinx

A small framework for building TCP servers in Python. Clients exchange
length-prefixed messages with the server; each message carries a numeric ID
that selects the router which handles it. Around that core the package offers
a connection manager, a worker pool, a leveled logger, hierarchical timing
wheels for scheduling delayed calls, and an area-of-interest grid for game
worlds. It uses only the standard library.

## Wire format

Every message is an 8-byte header followed by its payload:

| bytes | field                       |
|-------|-----------------------------|
| 0–3   | payload length, uint32 LE   |
| 4–7   | message ID, uint32 LE       |
| 8–    | payload                     |

`zinx.datapack.DataPack` packs and unpacks this format. `unpack` reads only
the header and returns a `zinx.message.Message` with an empty payload and the
announced `data_len`; the payload is read from the stream afterwards. A header
whose declared length exceeds the maximum packet size (4096 by default, 0 for
no limit) raises `PacketTooLargeError`; a header shorter than 8 bytes raises
`ValueError`.

```python
from zinx.datapack import DataPack
from zinx.message import Message

pack = DataPack(4096)
frame = pack.pack(Message.from_payload(1, b"hello"))
header = pack.unpack(frame[:8])   # header.msg_id == 1, header.data_len == 5
```

Any object with a `head_len` property and `pack` / `unpack` methods (the
`zinx.datapack.Packet` protocol) can replace `DataPack` through
`Server(config, packet=...)`.

## Writing a server

Subclass `zinx.router.BaseRouter` and override `handle` (and, if needed,
`pre_handle` and `post_handle`). Each hook receives a `zinx.router.Request`
with `connection`, `msg`, `data` and `msg_id`. Register a router per message
ID on a `zinx.server.Server`, then call `serve()`, which blocks until the
server is stopped or interrupted.

```python
from zinx.config import init_global_object
from zinx.router import BaseRouter
from zinx.server import Server


class EchoRouter(BaseRouter):
    def handle(self, request):
        request.connection.send_buff_msg(request.msg_id, request.data)


server = Server(init_global_object([]))
server.add_router(0, EchoRouter())
server.on_conn_start = lambda conn: print("connected", conn.conn_id)
server.serve()
```

`start()` binds the listener and accepts connections on a background thread;
`stop()` closes the listener, stops every connection and shuts the worker pool
down. `server.address` gives the bound address. New connections beyond
`max_conn` are closed at once.

Registering a second router for the same message ID raises
`zinx.msghandler.RouterExistsError`. With a worker pool (the default, ten
workers) the requests of one connection are handled in order by one worker;
with `worker_pool_size` set to 0 each request is handled on a thread of its
own.

Each `zinx.connection.Connection` can carry properties (`set_property`,
`get_property`, which raises `KeyError` for a missing key, and
`remove_property`). `send_msg` writes a frame straight to the socket;
`send_buff_msg` hands it to the connection's writer thread. Sending on a closed
connection raises `ConnectionClosedError`, and a buffered send that cannot be
queued within 5 ms raises `SendTimeoutError`. `zinx.connmanager.ConnManager`
keeps the live connections by ID; `get` raises `ConnectionNotFoundError` for
an unknown ID.

## Configuration

`zinx.config.GlobalObj` holds the settings. `init_global_object(argv)` reads
the `-c` flag from `argv`, builds the settings and loads the JSON file, by
default `conf/zinx.json` under the working directory. A missing file leaves the
defaults in place: name `ZinxServerApp`, port 8999 on `0.0.0.0`, up to 12000
connections, 4096-byte packets, ten workers with queues of 1024 and a send
buffer of 1024 frames.

Keys are matched without regard to case; unknown keys are ignored and a value
of the wrong type raises `ValueError`:

```json
{
  "Name": "MyServer",
  "Host": "127.0.0.1",
  "TCPPort": 7777,
  "MaxConn": 100,
  "MaxPacketSize": 8192,
  "WorkerPoolSize": 4,
  "MaxWorkerTaskLen": 512,
  "MaxMsgChanLen": 512,
  "LogDir": "./log",
  "LogFile": "server.log",
  "LogDebugClose": true
}
```

When `LogFile` is set the shared logger writes to that file; `LogDebugClose`
turns debug lines off. `zinx.cmdline` provides the flag parser behind `-c`
(`FlagSet`, whose repeated flag names are numbered `name`, `name1`, ...).

## Demo

A ping/hello server and a matching client are included:

```
zinx-server [-c path/to/zinx.json]
zinx-client [--host 127.0.0.1] [--port 8999] [--count N] [--interval 1.0]
```

On each new connection the server sets two properties and sends message 2;
it answers message ID 0 with a ping reply and ID 1 with a hello reply. The
client sends a ping at each interval and prints every reply it receives, until
`--count` replies have arrived or the connection ends.

## Logging

`zinx.zlog` provides `ZinxLogger` and module-level helpers on a shared logger
that writes to standard error: `debug`, `info`, `warn`, `error`, `stack`, their
`...f` formatting variants, `panic` (logs, then raises `PanicError`) and
`fatal` (logs, then raises `SystemExit(1)`). Headers are controlled by the bit
flags `BIT_DATE`, `BIT_TIME`, `BIT_MICROSECONDS`, `BIT_LONG_FILE`,
`BIT_SHORT_FILE` and `BIT_LEVEL` through `flags`, `reset_flags` and
`add_flag`; `set_prefix`, `set_log_file`, `close_debug` and `open_debug` adjust
the shared logger.

## Timers

`zinx.delayfunc.DelayFunc` wraps a callable with its arguments; a failing call
is logged rather than propagated. `zinx.timer.Timer.at` and `Timer.after`
create a one-shot timer, and `run()` fires it on a background thread.
`zinx.timewheel.TimeWheel` and `zinx.timerscheduler.TimerScheduler` manage many
timers on hour, minute and second wheels: `create_timer_at` and
`create_timer_after` return a timer ID, `cancel_timer` removes it, and
`start()` moves due callbacks into `trigger_chan`.
`new_auto_exec_timer_scheduler()` returns a scheduler that also runs due calls
by itself.

## Area of interest

`zinx.aoi.AOIManager` divides a rectangular map into a grid of `Grid` cells and
answers which player IDs are in the cell at a position and the cells around it
(`pids_by_pos`, `surround_grids_by_gid`), the basis for broadcasting movement
and chat to nearby players.

## What the package does not do

- There is only a TCP transport. Setting `open_kcp` makes `Server.start`
  raise `ValueError`.
- The area-of-interest grid stores player IDs only; there is no player or
  world management, no game server and no protobuf message handling.