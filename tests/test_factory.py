import random
import socket
import threading

import pytest

from partsorder.factory import (
    DEFAULT_PORT,
    FactoryServer,
    SubFactory,
    clamp_factories,
    format_summary,
    main,
    parse_args,
)
from partsorder.message import MAX_FACTORIES, Message, Purpose


@pytest.fixture
def client():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(5.0)
    yield sock
    sock.close()


@pytest.fixture
def naps():
    return []


@pytest.fixture
def server(naps):
    srv = FactoryServer(3, 0, "127.0.0.1", random.Random(7), naps.append)
    yield srv
    srv.close()


def drain(sock, completions):
    messages = []
    done = 0
    while done < completions:
        data, _ = sock.recvfrom(1024)
        message = Message.unpack(data)
        messages.append(message)
        if message.purpose == Purpose.COMPLETION_MSG:
            done += 1
    return messages


@pytest.mark.parametrize(
    "given, expected",
    [(0, 1), (-5, 1), (1, 1), (7, 7), (MAX_FACTORIES, MAX_FACTORIES), (100, MAX_FACTORIES)],
)
def test_clamp_factories(given, expected):
    assert clamp_factories(given) == expected


@pytest.mark.parametrize(
    "argv, expected",
    [
        ([], (1, DEFAULT_PORT)),
        (["4"], (4, DEFAULT_PORT)),
        (["0", "6000"], (1, 6000)),
        (["30", "6000"], (MAX_FACTORIES, 6000)),
        (["abc"], (1, DEFAULT_PORT)),
    ],
)
def test_parse_args(argv, expected):
    assert parse_args(argv) == expected


def test_parse_args_rejects_extra_arguments():
    with pytest.raises(ValueError):
        parse_args(["1", "2", "3"])


def test_main_prints_usage_on_bad_arguments(capsys):
    assert main(["1", "2", "3"]) == 1
    assert "Usage" in capsys.readouterr().out


def test_server_clamps_factory_count():
    with FactoryServer(99, 0, "127.0.0.1") as srv:
        assert srv.num_factories == MAX_FACTORIES


def test_handle_order_fills_whole_order(server, client, naps):
    factories = server.handle_order(
        Message(Purpose.REQUEST_MSG, order_size=100), client.getsockname()
    )
    messages = drain(client, 3)

    confirm = messages[0]
    assert confirm.purpose == Purpose.ORDR_CONFIRM
    assert confirm.num_fac == 3
    assert confirm.order_size == 100

    productions = [m for m in messages if m.purpose == Purpose.PRODUCTION_MSG]
    completions = [m for m in messages if m.purpose == Purpose.COMPLETION_MSG]
    assert sum(m.parts_made for m in productions) == 100
    assert sum(f.parts_made for f in factories) == 100
    assert sorted(m.fac_id for m in completions) == [1, 2, 3]

    for info in factories:
        assert 10 <= info.capacity <= 50
        assert 500 <= info.duration <= 1200
        mine = [m for m in productions if m.fac_id == info.factory_id]
        assert info.iterations == len(mine)
        assert all(m.parts_made <= info.capacity for m in mine)

    assert sorted(naps) == sorted(m.duration / 1000.0 for m in productions)


def test_empty_order_only_completes(server, client, naps):
    factories = server.handle_order(
        Message(Purpose.REQUEST_MSG, order_size=0), client.getsockname()
    )
    messages = drain(client, 3)
    assert [m.purpose for m in messages[1:]] == [Purpose.COMPLETION_MSG] * 3
    assert all(f.parts_made == 0 and f.iterations == 0 for f in factories)
    assert naps == []


def test_close_notifies_last_client(server, client):
    server.handle_order(Message(Purpose.REQUEST_MSG, order_size=20), client.getsockname())
    drain(client, 3)
    server.close()
    data, _ = client.recvfrom(1024)
    assert Message.unpack(data).purpose == Purpose.PROTOCOL_ERR


def test_serve_forever_answers_requests_until_closed(server, client):
    worker = threading.Thread(target=server.serve_forever, daemon=True)
    worker.start()
    client.sendto(Message(Purpose.REQUEST_MSG, order_size=40).pack(), server.address)
    messages = drain(client, 3)
    assert messages[0].purpose == Purpose.ORDR_CONFIRM
    made = sum(m.parts_made for m in messages if m.purpose == Purpose.PRODUCTION_MSG)
    assert made == 40
    server.close()
    worker.join(timeout=5)
    assert not worker.is_alive()


def test_format_summary_reports_each_factory():
    factories = [
        SubFactory(1, 20, 600, parts_made=20, iterations=1),
        SubFactory(2, 30, 700, parts_made=10, iterations=1),
    ]
    text = format_summary(factories, 30, 12.5)
    lines = text.splitlines()
    assert "    Sub-Factory      Parts Made      Iterations" in lines
    assert lines[3].split() == ["1", "20", "1"]
    assert lines[4].split() == ["2", "10", "1"]
    assert "Grand total parts made   =    30   vs  order size of    30" in lines
    assert "Order-to-Completion time = 12.5 milliSeconds" in lines
    assert text.endswith("\n\n")