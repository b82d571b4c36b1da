# dnspipe

dnspipe is a set of asyncio building blocks for a DNS query pipeline, built
on dnspython. Each stage works on a query context. It can look at or change
the query, answer it itself, or pass it on to the rest of the chain and then
work on the response. The package also has a command line tool. The tool
probes DNS servers over TCP/TLS and writes or converts configuration files.

## Installing

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Pipeline stages

A stage has a coroutine method `exec(qctx, next)`. `qctx` is a
`dnspipe.chain.QueryContext`. It holds the query (`q`), the response (`r`,
`None` until something sets it), a copy of the query as received
(`original_query`) and the client address (`client_addr`). `next` is the rest
of the chain, a `dnspipe.chain.ChainNode` or `None`. A stage runs it with
`await exec_chain_node(qctx, next)`. `build_chain(stages)` links a list of
stages.

| Module | Stage | What it does |
| --- | --- | --- |
| `dnspipe.chain` | `Sequence` | Runs its own list of stages, then the rest of the chain |
| `dnspipe.chain` | `Return` | Ends the chain; nothing after it runs |
| `dnspipe.chain` | `Marker` | Marks queries that pass it; `match(qctx)` tells whether a query was marked |
| `dnspipe.blackhole` | `BlackHole` | Answers A/AAAA queries with fixed addresses. Otherwise it sets an empty reply with a given rcode, or drops the response when the rcode is negative |
| `dnspipe.bufsize` | `BufSize` | Caps the query's EDNS0 UDP size at a value between 512 and 4096 |
| `dnspipe.ttl` | `TTL` | Clamps response TTLs to a maximum and/or minimum |
| `dnspipe.sleep` | `Sleep` | Waits a number of milliseconds before continuing |
| `dnspipe.edns0_filter` | `Filter` | Removes EDNS0 from the query (`no_edns`). With `keep`, it keeps only the listed option codes. Otherwise it removes all options |
| `dnspipe.padding` | `PadQuery`, `ResponsePadding` | Pad queries to 128 and responses to 468 octets (RFC 8467) |
| `dnspipe.misc_optm` | `MiscOptimizer` | Refuses unusual queries and caps the UDP size at 1200. It keeps only answers of the queried type, renamed and shuffled, and strips padding |
| `dnspipe.dual_selector` | `Selector` | Prefers IPv4 or IPv6 (`Mode`). When the name has records of the preferred type, it answers the other type with an empty reply |
| `dnspipe.reverse_lookup` | `ReverseLookup` | Remembers which queried name an address came from and can answer PTR queries from that. Also has `lookup(addr)` and `http_lookup(ip_str)` |
| `dnspipe.cache` | `CachePlugin` | In-memory LRU response cache (`MemoryBackend`). Optional zlib compression and lazy refresh of expired entries |
| `dnspipe.metrics_collector` | `Collector` | Counts queries, errors and in-flight queries, and keeps a latency `Histogram` |
| `dnspipe.query_summary` | `QuerySummary` | Logs one line per query through the `logging` module |

Other pieces:

- `dnspipe.matchers`: `HasValidAnswer` and `QueryIsEdns0`. Their
  `match(qctx)` method returns a bool.
- `dnspipe.udpme`: `UdpmeUpstream`. It sends a query over UDP and awaits
  `exchange(m, timeout)`, which returns the first reply that carries EDNS0.
- `dnspipe.edns0_filter` also has the EDNS0 helpers `upgrade_edns0`,
  `remove_edns0`, `get_option`, `set_options` and `remove_option`.
  `dnspipe.padding` has `pad_to_minimum`.
- `dnspipe.ptr`: `parse_ptr_name` turns an `in-addr.arpa.`/`ip6.arpa.` name
  into an address.
- `dnspipe.strutil`: small string and address helpers.
- `dnspipe.certs`: `load_cert_pool` reads PEM certificates from files.
  `generate_certificate` makes a self-signed ECDSA certificate and key for
  tests.

## Example

```python
import asyncio

import dns.message

from dnspipe.blackhole import BlackHole
from dnspipe.chain import QueryContext, Sequence, build_chain, exec_chain_node
from dnspipe.ttl import TTL


async def run() -> None:
    q = dns.message.make_query("example.com.", "A")
    qctx = QueryContext(q, ("192.0.2.10", 5353))
    chain = build_chain([Sequence([BlackHole(ipv4=["127.0.0.1"])]), TTL(maximum_ttl=60)])
    await exec_chain_node(qctx, chain)
    print(qctx.r.answer)


asyncio.run(run())
```

## Command line

The `dnspipe` command bundles a few tools.

Write a template configuration file, or convert a configuration file from one
format to another. Supported extensions are json, yaml and yml. `conv`
refuses to overwrite an existing output file.

```
dnspipe config gen config.yaml
dnspipe config conv -i config.yaml -o config.json
```

Test a DNS server over TCP (port 53 by default) or TLS (port 853 by default):

```
dnspipe probe conn-reuse tcp://192.0.2.1
dnspipe probe pipeline tls://dns.example.com
dnspipe probe idle-timeout tcp://192.0.2.1:53
```

- `conn-reuse` sends three queries one after another on one connection
  (RFC 1035).
- `pipeline` sends five queries at once and reports whether the answers came
  back out of order (RFC 7766).
- `idle-timeout` measures how long the server keeps a connection open after
  it answers.

The same probes are available as `probe_connection_reuse`, `probe_pipeline`
and `probe_idle_timeout` in `dnspipe.probe`.

## What it does not do

dnspipe is a library of stages, not a running resolver.

- It has no DNS server or listener.
- It has no general upstream forwarder beyond `UdpmeUpstream`.
- It has nothing that reads a configuration file and builds a pipeline from
  it. The file that `dnspipe config gen` writes is only a template.
- It does not add or strip the EDNS Client Subnet option. `CachePlugin` only
  reads that option to build its cache key.
- It does not answer from zone-file records.
- Its caches live in memory only.