import socket

import pytest

from bytemodel.codec import Reader, Type
from bytemodel.model import Primitive
from bytemodel.udpserver import UdpServer


def _packet(name="int32", value=231):
    return Primitive.create(name, Type.I32, value).pack()


def test_process_stores_primitive():
    server = UdpServer(0, "127.0.0.1")
    primitive = server.process(_packet())
    assert primitive.value() == 231
    assert primitive.name == "int32"
    assert set(server.primitives) == {"int32"}
    assert server.current == "int32"


def test_process_prints_primitive_details(capsys):
    server = UdpServer(0, "127.0.0.1")
    server.process(_packet())
    out = capsys.readouterr().out
    assert "\t |Name:int32" in out
    assert "\t |Size:17" in out


def test_process_non_primitive_prints_data(capsys):
    server = UdpServer(0, "127.0.0.1")
    assert server.process(b"hello") is None
    assert "data:hello" in capsys.readouterr().out
    assert server.primitives == {}


def test_reply_echoes_without_primitives():
    server = UdpServer(0, "127.0.0.1")
    assert server.reply(b"hello") == b"hello"


def test_reply_after_primitive_sends_modified_primitive():
    server = UdpServer(0, "127.0.0.1")
    packet = _packet()
    server.process(packet)
    answer = server.reply(packet)
    primitive = Primitive.unpack(Reader(answer))
    assert primitive.name == "int16"
    assert primitive.value() == 75
    assert len(answer) == primitive.size
    assert server.primitives == {}


def test_modify_replaces_current():
    server = UdpServer(0, "127.0.0.1")
    server.process(_packet())
    primitive = server.modify("int32")
    assert primitive.value() == 75
    assert server.current == "int16"
    assert set(server.primitives) == {"int16"}


def test_truncated_primitive_raises():
    server = UdpServer(0, "127.0.0.1")
    with pytest.raises(ValueError):
        server.process(b"\x01\x00")


def test_serve_once_requires_bind():
    server = UdpServer(0, "127.0.0.1")
    with pytest.raises(RuntimeError):
        server.serve_once()


def test_serve_once_over_loopback():
    with UdpServer(0, "127.0.0.1") as server:
        address = server.bind()
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as client:
            client.settimeout(5)
            client.sendto(_packet(), address)
            sent = server.serve_once()
            received, _ = client.recvfrom(1024)
    assert received == sent
    assert Primitive.unpack(Reader(received)).value() == 75