# partsorder

A small UDP client and server that simulate filling a parts order.

- **Factory server** (`partsorder.factory`): waits on a UDP port for order
  requests and handles one order at a time. It confirms each order and tells the
  client how many sub-factories will serve it. It then starts that many
  sub-factory threads. Each thread gets a random capacity of 10–50 parts per
  iteration and a random duration of 500–1200 ms per iteration. The threads share
  the remaining work under a lock. A thread reports every batch it makes and
  sends a completion message when no work is left. When all threads have
  finished, the server prints a summary report.
- **Procurement client** (`partsorder.procurement`): sends one order request and
  waits for the confirmation. It then collects production and completion
  messages until every confirmed sub-factory has completed. At the end it prints
  a summary report with the order-to-completion time.

## Wire format

Every message is 28 bytes: seven 32-bit fields in network byte order. The first
field, the purpose, is signed. The other six are unsigned: order size, number of
factories, factory id, capacity, parts made and duration (ms).

The purposes are `PRODUCTION_MSG` (1), `COMPLETION_MSG` (2), `REQUEST_MSG` (3),
`ORDR_CONFIRM` (4) and `PROTOCOL_ERR` (5).

## Installation

```
pip install .
```

## Running

Start the factory server. Both arguments are optional:

- the number of sub-factory threads (default 1; values below 1 become 1, and the
  maximum is 20);
- the port (default 50015).

```
partsorder-factory 5 50015
```

If you give more than two arguments, the server prints a usage line and exits
with status 1. If it cannot bind the port, it exits with status 255.

Stop the server with Ctrl-C or SIGTERM. Before it exits, it sends a
`PROTOCOL_ERR` message to the most recent client, if there was one.

In another terminal, place an order. The arguments are the order size, the
server's IPv4 address and the port.

```
partsorder-procurement 1000 127.0.0.1 50015
```

The client exits with the following statuses:

| Status | Cause |
| --- | --- |
| 0 | Success. |
| 1 | The server sent a `PROTOCOL_ERR`. |
| 255 | Missing arguments, an invalid IPv4 address or a socket error. |

## Using the library

### `partsorder.message`

- `Purpose` is an `IntEnum` of the message purposes.
- `Message` is a dataclass with the fields `purpose`, `order_size`, `num_fac`,
  `fac_id`, `capacity`, `parts_made` and `duration`.
- `Message.pack()` encodes a message. It raises `ValueError` if a field is out
  of range.
- `Message.unpack(data)` decodes a datagram. Short data is zero-filled and extra
  bytes are ignored.
- `Message.describe()`, which `str()` also uses, returns a one-line rendering
  such as `{ REQUEST    , OrderSz=100 }`. An unknown purpose renders as
  `{ UNDEFINED_MSG }`.

### `partsorder.factory`

`FactoryServer(num_factories=1, port=50015, host="0.0.0.0", rng=None, sleep=None)`
binds a UDP socket. The bound address is available as `address`; pass port 0 to
have the system pick a free port. You can supply your own `random.Random` and
your own sleep function, which makes runs repeatable and fast in tests.

| Method | What it does |
| --- | --- |
| `serve_forever()` | Handles orders until `close()` is called. |
| `handle_order(request, client)` | Fills a single order and returns the list of `SubFactory` records (`factory_id`, `capacity`, `duration`, `parts_made`, `iterations`). |
| `close()` | Sends the protocol-error message and releases the socket. |

The server also works as a context manager.

The module also provides these helpers:

- `clamp_factories(n)`
- `format_summary(factories, order_size, elapsed_ms)`
- `parse_args(argv)`
- `main(argv=None)`

### `partsorder.procurement`

`procure(order_size, host, port, sock=None)` places an order and returns a
`ProcurementResult`. The result holds `order_size`, `num_factories`, the
per-factory dicts `parts_made` and `iterations`, `elapsed_ms` and the `total`
property.

`procure` raises the following errors:

- `ValueError` for an address that is not IPv4.
- `ProtocolError` when the server sends `PROTOCOL_ERR`. The offending message is
  in the error's `message` attribute.

You can pass your own socket, for example one with a timeout.

The module also provides these helpers:

- `format_summary(result)`
- `parse_args(argv)`
- `main(argv=None)`

## What it does not do

The client does not use timeouts or retries, and the server does not check that
packets arrive. Neither side handles lost datagrams: if one is dropped, the
client waits forever unless you give `procure` a socket with a timeout. Only
IPv4 is supported.

## Running the tests

```
pip install .[test]
pytest
```