"""UDP procurement client that places one order with a factory server."""

from __future__ import annotations

import getpass
import re
import socket
import sys
import time
from dataclasses import dataclass, field
from typing import Sequence

from partsorder.message import MAX_FACTORIES, SIZE, Message, Purpose

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value >= (1 << 31) else value


def _say(text: str) -> None:
    print(text, flush=True)


def _user_name() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError, ImportError):
        return "unknown"


class ProtocolError(Exception):
    """The factory server ended the protocol abruptly."""

    def __init__(self, message: Message) -> None:
        super().__init__(f"received invalid message {message}")
        self.message = message


@dataclass
class ProcurementResult:
    """What the factories reported for one order."""

    order_size: int
    num_factories: int
    parts_made: dict[int, int] = field(default_factory=dict)
    iterations: dict[int, int] = field(default_factory=dict)
    elapsed_ms: float = 0.0

    @property
    def total(self) -> int:
        """Parts reported by the confirmed sub-factories."""
        return sum(self.parts_made.get(i, 0) for i in range(1, self.num_factories + 1))


def procure(
    order_size: int, host: str, port: int, sock: socket.socket | None = None
) -> ProcurementResult:
    """Place an order and collect production reports until every factory completes."""
    try:
        socket.inet_pton(socket.AF_INET, host)
    except OSError:
        raise ValueError(f"Invalid server IP address: {host!r}") from None

    request = Message(Purpose.REQUEST_MSG, order_size=order_size)
    payload = request.pack()

    owned = sock is None
    if sock is None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        return _collect(sock, payload, request, order_size, (host, port))
    finally:
        if owned:
            sock.close()


def _collect(
    sock: socket.socket,
    payload: bytes,
    request: Message,
    order_size: int,
    server: tuple[str, int],
) -> ProcurementResult:
    sock.sendto(payload, server)
    _say(f"\nPROCUREMENT Sent this message to the FACTORY server: {request}")

    _say("\nPROCUREMENT is now waiting for order confirmation ...")
    data, _ = sock.recvfrom(SIZE)
    confirm = Message.unpack(data)
    _say(f"PROCUREMENT received this from the FACTORY server: {confirm}\n")

    start = time.perf_counter()
    num_factories = min(_to_int32(confirm.num_fac), MAX_FACTORIES)
    result = ProcurementResult(order_size, num_factories)

    active = num_factories
    while active > 0:
        data, _ = sock.recvfrom(SIZE)
        message = Message.unpack(data)
        fac_id = message.fac_id
        if message.purpose == Purpose.PRODUCTION_MSG:
            _say(
                f"PROCUREMENT: Factory #{fac_id:<2d}  produced {message.parts_made:<5d} parts"
                f" in {message.duration:<4d} milliSecs"
            )
            result.iterations[fac_id] = result.iterations.get(fac_id, 0) + 1
            result.parts_made[fac_id] = result.parts_made.get(fac_id, 0) + message.parts_made
        elif message.purpose == Purpose.COMPLETION_MSG:
            _say(f"PROCUREMENT: Factory #{fac_id:<2d}       COMPLETED its task")
            active -= 1
        elif message.purpose == Purpose.PROTOCOL_ERR:
            _say(f"PROCUREMENT: Received invalid msg {message}\n")
            raise ProtocolError(message)

    result.elapsed_ms = (time.perf_counter() - start) * 1000.0
    return result


def format_summary(result: ProcurementResult) -> str:
    """Render the client's end-of-order report."""
    lines = [
        "",
        "",
        "****** PROCUREMENT Summary Report ******",
        "    Sub-Factory      Parts Made      Iterations",
    ]
    lines.extend(
        f"           {i:4d}        {result.parts_made.get(i, 0):8d}"
        f"            {result.iterations.get(i, 0):4d}"
        for i in range(1, result.num_factories + 1)
    )
    lines.extend(
        [
            "===================================================",
            f"Grand total parts made   = {result.total:5d}   vs  order size of {result.order_size:5d}",
            "",
            f"Order-to-Completion time = {result.elapsed_ms:.1f} milliSeconds",
            "",
        ]
    )
    return "\n".join(lines)


def parse_args(argv: Sequence[str]) -> tuple[int, str, int]:
    """Read <order_size> <FactoryServerIP> <port>."""
    args = list(argv)
    if len(args) < 3:
        raise ValueError("expected <order_size> <FactoryServerIP> <port>")
    order_size = _atoi(args[0]) & 0xFFFFFFFF
    port = _atoi(args[2]) & 0xFFFF
    return order_size, args[1], port


def main(argv: Sequence[str] | None = None) -> int:
    """Place one order from the command line and print the report."""
    args = sys.argv[1:] if argv is None else list(argv)
    _say("\nPROCUREMENT: Started.\n")
    _say(f"Logged in as user '{_user_name()}' on {time.ctime()}\n\n")

    try:
        order_size, host, port = parse_args(args)
    except ValueError:
        _say("PROCUREMENT Usage: procurement <order_size> <FactoryServerIP> <port>")
        return 255

    _say(f"Attempting Factory server at '{host}' : {port}")
    try:
        result = procure(order_size, host, port)
    except ProtocolError:
        return 1
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return 255
    except OSError as exc:
        print(f"Error during recvfrom(): {exc}", file=sys.stderr)
        return 255

    print(format_summary(result), end="", flush=True)
    _say("\n>>> PROCUREMENT Terminated")
    return 0