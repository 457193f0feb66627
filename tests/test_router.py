from dataclasses import dataclass

from zinx.message import Message
from zinx.router import BaseRouter, Request


@dataclass
class FakeConn:
    conn_id: int


def test_request_exposes_message_fields():
    conn = FakeConn(conn_id=4)
    msg = Message.from_payload(9, b"payload")
    req = Request(connection=conn, msg=msg)
    assert req.connection is conn
    assert req.msg_id == 9
    assert req.data == b"payload"


def test_request_with_empty_payload():
    req = Request(connection=FakeConn(1), msg=Message(msg_id=0))
    assert req.data == b""
    assert req.msg.data_len == 0


def test_base_router_hooks_return_none():
    router = BaseRouter()
    req = Request(connection=FakeConn(1), msg=Message.from_payload(1, b"x"))
    results = [router.pre_handle(req), router.handle(req), router.post_handle(req)]
    assert results == [None, None, None]


def test_subclass_overrides_only_handle():
    seen = []

    class Echo(BaseRouter):
        def handle(self, request):
            seen.append(request.data)
            return request.msg_id

    router = Echo()
    req = Request(connection=FakeConn(2), msg=Message.from_payload(3, b"hello"))
    results = [router.pre_handle(req), router.handle(req), router.post_handle(req)]
    assert results == [None, 3, None]
    assert req.data == b"hello"
    assert seen == [b"hello"]