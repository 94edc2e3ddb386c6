# titan

Building blocks for a Redis-compatible server, and a client that checks a
running server of that kind command by command. Only the standard library
is used.

## Modules

- `titan.resp`: RESP encoding and decoding. `Encoder` writes errors, simple
  strings, bulk strings, null bulk strings, integers and array headers to a
  binary stream; `Decoder` reads them back; `Reader` reads up to a delimiter
  without consuming more than it needs. One-shot helpers such as
  `reply_bulk_string`, `reply_array`, `read_integer` and `read_array` wrap
  them. Malformed input raises `ProtocolError`; a stream that ends too early
  while reading a header line raises `EOFError`.
- `titan.zsetkeys`: the storage key layout of a sorted set —
  `zset_member_key`, `zset_score_prefix`, `zset_score_key` — and the
  `MemberScore` dataclass.
- `titan.metrics`: `Counter`, `Gauge`, `Histogram` and their label vectors
  `CounterVec`, `GaugeVec`, `HistogramVec`; `exponential_buckets`; a
  `Registry` whose `expose()` renders every collector in the Prometheus text
  format. `get_metrics()` returns the process-wide `Metrics` object, whose
  collectors are registered in `titan.metrics.REGISTRY`; `measure(logger_name,
  level)` counts one log entry.
- `titan.statusserver`: `StatusServer(addr, registry=None)` serves the
  registry at `GET /metrics` over HTTP. `listen_and_serve(addr)` and
  `serve(sock)` block until `stop()` or `graceful_stop()` is called; the
  latter waits up to one second for requests in flight and raises
  `TimeoutError` if they do not finish.
- `titan.tls`: `tls_config(cert_file, key_file)` returns a server-side
  `ssl.SSLContext` loaded with the certificate and key.
- `titan.util`: `client_id_generator()` returns a thread-safe allocator whose
  first id is 2; `generate_trace_id()` returns a random UUID string.
- `titan.client`: a blocking RESP client. `dial("host:port")` returns a
  `Connection` whose `do(command, *args)` returns the reply (status as `str`,
  bulk as `bytes`, integers as `int`, arrays as lists, nil as `None`) and
  raises `ReplyError` on an error reply. `Pool` keeps idle connections and
  checks them with `PING` when borrowed. `to_int`, `to_float`, `to_string`,
  `to_bytes` and `to_strings` convert replies; converting nil raises
  `NilReplyError`.
- `titan.checks_string`, `titan.checks_key`, `titan.checks_list`,
  `titan.checks_zset`, `titan.checks_system`: `StringChecker`, `KeyChecker`,
  `ListChecker`, `ZSetChecker`, `SystemChecker` and `MultiChecker` send
  commands over a connection, track the values they expect, and raise
  `AssertionError` when a reply differs. `expected_output` gives the full
  ordered range reply of a sorted set.
- `titan.autoclient`: `AutoClient` runs the normal-path cases
  (`string_case`, `list_case`, `zset_case`, `key_case`, `system_case`,
  `multi_case`).
- `titan.abnormal`: `Abnormal` runs the same families of cases with
  malformed commands and checks the exact error replies.

## Encoding and decoding RESP

```python
import io
from titan.resp import Decoder, Encoder

out = io.BytesIO()
Encoder(out).bulk_string("hello")
assert out.getvalue() == b"$5\r\nhello\r\n"

decoder = Decoder(io.BytesIO(b"*1\r\n$5\r\nhello\r\n"))
assert decoder.array() == 1
assert decoder.bulk_string() == "hello"
```

## Exposing metrics

```python
import threading
from titan.metrics import get_metrics
from titan.statusserver import StatusServer

get_metrics().connection_online_gauge_vec.with_label_values("default").inc()

server = StatusServer("127.0.0.1:9100")
threading.Thread(target=server.listen_and_serve, args=("127.0.0.1:9100",)).start()
# ... GET http://127.0.0.1:9100/metrics ...
server.stop()
```

## Checking a running server

```python
from titan.autoclient import AutoClient

password = "password"
client = AutoClient()
client.start("127.0.0.1:7369", password)
try:
    client.system_case()
    client.string_case()
    client.list_case()
    client.key_case()
finally:
    client.close()
```

Each case raises `AssertionError` at the first reply that differs from the
expected one. Some cases sleep to let keys expire, so a full run takes
several seconds.

From the command line:

```
titan-autotest --addr 127.0.0.1:7369 --password password --testcase string
titan-autotest --help
```

`--testcase` takes `string`, `list` or `key`; any other value, or none, runs
all three. `--addr` defaults to `:7369`. The command prints each failing case
to standard error and exits with status 1 if any failed.

## What this package does not do

It contains no data store and no server that answers Redis commands: the
RESP codec, the sorted-set key layout and the metrics are parts for one, and
the checkers need such a server already running to talk to.

## Installing

```
pip install .
pip install ".[test]"   # with pytest, to run the tests
```

Python 3.10 or later is required.