"""UDP server that receives packed primitives and answers with a modified one."""

from __future__ import annotations

import argparse
import socket
from typing import Dict, Optional, Tuple

from .codec import Reader, Type, Wrapper
from .model import Primitive

BUFFER_SIZE = 1024
DEFAULT_PORT = 8888
DEFAULT_ADDRESS = "127.0.0.1"

_REPLY_NAME = "int16"
_REPLY_VALUE = 75


class UdpServer:
    """Datagram server keeping the primitives it has received, keyed by name."""

    def __init__(self, port: int = DEFAULT_PORT, address: str = DEFAULT_ADDRESS) -> None:
        self.port = port
        self.address = address
        self.primitives: Dict[str, Primitive] = {}
        self.current = ""
        self.peer: Optional[Tuple[str, int]] = None
        self._socket: Optional[socket.socket] = None

    def __enter__(self) -> "UdpServer":
        self.bind()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def bind(self) -> Tuple[str, int]:
        """Create and bind the socket; return the bound address."""
        if self._socket is not None:
            return self._socket.getsockname()
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((self.address, self.port))
        except OSError:
            sock.close()
            raise
        self._socket = sock
        host, port = sock.getsockname()
        print(f"Server started at:{host}:{port}")
        return host, port

    def start(self) -> None:
        """Bind and serve datagrams until interrupted."""
        self.bind()
        while True:
            self.serve_once()

    def serve_once(self) -> bytes:
        """Receive one datagram, process it and send the reply; return the reply."""
        if self._socket is None:
            raise RuntimeError("server is not bound")
        data, peer = self._socket.recvfrom(BUFFER_SIZE)
        self.peer = peer
        self.process(data)
        answer = self.reply(data)
        self._socket.sendto(answer, peer)
        return answer

    def process(self, data: bytes) -> Optional[Primitive]:
        """Report a datagram; store it if it holds a packed primitive."""
        if self.peer is not None:
            print(f"packet from:{self.peer[0]}:{self.peer[1]}")
        if data and data[0] == Wrapper.PRIMITIVE:
            primitive = Primitive.unpack(Reader(data))
            self.primitives.setdefault(primitive.name, primitive)
            self.current = primitive.name
            print("Primitive:")
            print(f"\t |Name:{primitive.name}")
            print(f"\t |Size:{primitive.size}")
            print("\t |Data:" + "".join(f"[{byte}]" for byte in primitive.data))
            return primitive
        print("data:" + bytes(data).decode("latin-1"))
        return None

    def reply(self, data: bytes) -> bytes:
        """Return the answer to ``data``: an echo, or a fresh packed primitive."""
        if not self.primitives:
            return bytes(data)
        primitive = self.modify(self.current)
        packed = primitive.pack()
        self.primitives.pop(self.current, None)
        return packed

    def modify(self, key: str) -> Primitive:
        """Replace the primitive stored under ``key`` with the reply primitive."""
        self.primitives.pop(key, None)
        primitive = Primitive.create(_REPLY_NAME, Type.I16, _REPLY_VALUE)
        self.primitives.setdefault(primitive.name, primitive)
        self.current = primitive.name
        return primitive

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Serve packed primitives over UDP.")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--address", default=DEFAULT_ADDRESS)
    args = parser.parse_args(argv)
    server = UdpServer(args.port, args.address)
    try:
        server.start()
    except KeyboardInterrupt:
        pass
    finally:
        server.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())