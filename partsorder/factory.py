"""Multi-threaded UDP factory server that fills part orders with sub-factory threads."""

from __future__ import annotations

import getpass
import os
import random
import re
import select
import signal
import socket
import sys
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Sequence

from partsorder.message import MAX_FACTORIES, SIZE, Message, Purpose

DEFAULT_PORT = 50015
DEFAULT_HOST = "0.0.0.0"
MIN_CAPACITY, MAX_CAPACITY = 10, 50
MIN_DURATION, MAX_DURATION = 500, 1200

_POLL_SECONDS = 0.2
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


@dataclass
class SubFactory:
    """Parameters and running totals of one sub-factory thread."""

    factory_id: int
    capacity: int
    duration: int
    parts_made: int = 0
    iterations: int = 0


def clamp_factories(n: int) -> int:
    """Keep the number of sub-factories between 1 and MAX_FACTORIES."""
    if n <= 0:
        return 1
    return min(n, MAX_FACTORIES)


def format_summary(factories: Iterable[SubFactory], order_size: int, elapsed_ms: float) -> str:
    """Render the server's end-of-order report."""
    factories = list(factories)
    lines = [
        "",
        "****** FACTORY Server Summary Report ******",
        "    Sub-Factory      Parts Made      Iterations",
    ]
    lines.extend(
        f"           {f.factory_id:4d}        {f.parts_made:8d}            {f.iterations:4d}"
        for f in factories
    )
    total = sum(f.parts_made for f in factories)
    lines.extend(
        [
            "====================================================",
            f"Grand total parts made   = {total:5d}   vs  order size of {order_size:5d}",
            "",
            f"Order-to-Completion time = {elapsed_ms:.1f} milliSeconds",
            "",
            "",
        ]
    )
    return "\n".join(lines)


class FactoryServer:
    """UDP server that splits each order among a fixed number of sub-factory threads."""

    def __init__(
        self,
        num_factories: int = 1,
        port: int = DEFAULT_PORT,
        host: str = DEFAULT_HOST,
        rng: random.Random | None = None,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        self.num_factories = clamp_factories(num_factories)
        self._rng = rng if rng is not None else random.Random()
        self._sleep = sleep if sleep is not None else time.sleep
        self._lock = threading.Lock()
        self._remaining = 0
        self._client: tuple[str, int] | None = None
        self._stopping = threading.Event()
        self._closed = False
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self._sock.bind((host, port))
        except OSError:
            self._sock.close()
            raise
        self.address: tuple[str, int] = self._sock.getsockname()

    def __enter__(self) -> FactoryServer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def handle_order(self, request: Message, client: tuple[str, int]) -> list[SubFactory]:
        """Confirm an order, build it with the sub-factories and return their totals."""
        self._client = client
        order_size = _to_int32(request.order_size)
        with self._lock:
            self._remaining = order_size

        confirm = replace(request, purpose=Purpose.ORDR_CONFIRM, num_fac=self.num_factories)
        self._sock.sendto(confirm.pack(), client)
        _say(f"\n\nFACTORY sent this Order Confirmation to the client {confirm}\n")

        start = time.perf_counter()
        factories: list[SubFactory] = []
        threads: list[threading.Thread] = []
        for factory_id in range(1, self.num_factories + 1):
            info = SubFactory(
                factory_id,
                self._rng.randint(MIN_CAPACITY, MAX_CAPACITY),
                self._rng.randint(MIN_DURATION, MAX_DURATION),
            )
            factories.append(info)
            _say(
                f"Created Factory Thread # {factory_id:2d} with capacity = {info.capacity:3d} parts"
                f" & duration = {info.duration:4d} mSec"
            )
            thread = threading.Thread(
                target=self.run_sub_factory,
                args=(info, client),
                name=f"sub-factory-{factory_id}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)

        for thread in threads:
            thread.join()

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        print(format_summary(factories, order_size, elapsed_ms), end="", flush=True)
        return factories

    def run_sub_factory(self, info: SubFactory, client: tuple[str, int]) -> None:
        """Take work from the shared order until none is left, reporting each batch."""
        while True:
            with self._lock:
                if self._remaining <= 0:
                    break
                to_make = min(self._remaining, info.capacity)
                self._remaining -= to_make
                info.parts_made += to_make
                info.iterations += 1

            self._sleep(info.duration / 1000.0)

            production = Message(
                Purpose.PRODUCTION_MSG,
                fac_id=info.factory_id,
                capacity=info.capacity,
                parts_made=to_make,
                duration=info.duration,
            )
            self._sock.sendto(production.pack(), client)
            _say(
                f"Factory # {info.factory_id:2d}: Going to make {to_make:5d} parts"
                f" in {info.duration:4d} mSec"
            )

        done = Message(Purpose.COMPLETION_MSG, fac_id=info.factory_id)
        self._sock.sendto(done.pack(), client)
        _say(
            f">>> Factory # {info.factory_id:<3d} : Terminating after making total of "
            f"{info.parts_made:<5d} parts in {info.iterations:<4d} iterations"
        )

    def _receive(self) -> tuple[bytes, tuple[str, int]] | None:
        while not self._stopping.is_set():
            try:
                ready, _, _ = select.select([self._sock], [], [], _POLL_SECONDS)
                if ready:
                    return self._sock.recvfrom(SIZE)
            except (OSError, ValueError):
                if self._stopping.is_set():
                    return None
                raise
        return None

    def serve_forever(self) -> None:
        """Accept and fill orders one after another until close() is called."""
        while not self._stopping.is_set():
            _say("\nFACTORY server waiting for Order Requests\n")
            received = self._receive()
            if received is None:
                return
            data, client = received
            request = Message.unpack(data)
            _say(f"FACTORY server received: {request}")
            _say(f"        From IP {client[0]} Port {client[1]}")
            self.handle_order(request, client)

    def close(self) -> None:
        """Tell the current client the protocol has ended and release the socket."""
        if self._closed:
            return
        self._closed = True
        self._stopping.set()
        if self._client is not None:
            try:
                self._sock.sendto(Message(Purpose.PROTOCOL_ERR).pack(), self._client)
            except OSError:
                pass
        self._sock.close()


def parse_args(argv: Sequence[str]) -> tuple[int, int]:
    """Read [numThreads] [port]; returns the clamped thread count and the port."""
    args = list(argv)
    if len(args) > 2:
        raise ValueError("too many arguments")
    n = _atoi(args[0]) if args else 1
    port = _atoi(args[1]) & 0xFFFF if len(args) > 1 else DEFAULT_PORT
    return clamp_factories(n), port


def _interrupt(signum: int, frame: object) -> None:
    raise KeyboardInterrupt


def main(argv: Sequence[str] | None = None) -> int:
    """Run the factory server from the command line."""
    args = sys.argv[1:] if argv is None else list(argv)
    _say("\nThis is the FACTORY server\n")
    _say(f"Logged in as user '{_user_name()}' on {time.ctime()}\n")

    try:
        n, port = parse_args(args)
    except ValueError:
        _say("FACTORY Usage: factory [numThreads] [port]")
        return 1

    _say(f"\nI will attempt to accept orders at port {port} and use {n} sub-factories.\n")
    try:
        server = FactoryServer(n, port)
    except OSError as exc:
        print(f"Could not bind to port {port}: {exc.strerror}", file=sys.stderr)
        return 255

    _say(f"\nBound socket to IP {server.address[0]} Port {server.address[1]}")

    in_main_thread = threading.current_thread() is threading.main_thread()
    previous = signal.signal(signal.SIGTERM, _interrupt) if in_main_thread else None
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        _say(f"\n### I ({os.getpid()}) have been nicely asked to TERMINATE. goodbye\n")
    finally:
        server.close()
        if in_main_thread:
            signal.signal(signal.SIGTERM, previous)
    return 0