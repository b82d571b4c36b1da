"""Cache responses in memory, with optional lazy (stale-while-refresh) serving."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import time
import zlib
from collections import OrderedDict
from typing import NamedTuple

import dns.exception
import dns.message
import dns.rcode
import dns.rdatatype

from dnspipe.chain import ChainNode, Executable, QueryContext, exec_chain_node
from dnspipe.edns0_filter import ECS, get_option

logger = logging.getLogger(__name__)

DEFAULT_SIZE = 1024
LAZY_UPDATE_TIMEOUT = 30.0  # RFC 8767 section 5, around 10 to 30 seconds
EMPTY_ANSWER_TTL = 300
RECOMMENDED_LAZY_TTL = 30  # RFC 8767 section 4
MAX_MSG_SIZE = 65535


class CacheEntry(NamedTuple):
    value: bytes
    stored_at: float
    expires_at: float


class MemoryBackend:
    """A size-bounded LRU store whose entries vanish at their expiry time."""

    def __init__(self, size: int = 0) -> None:
        self.size = size if size > 0 else DEFAULT_SIZE
        self._data: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key``, or None."""
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at <= time.time():
            del self._data[key]
            return None
        self._data.move_to_end(key)
        return entry

    def store(self, key: str, value: bytes, stored_at: float, expires_at: float) -> None:
        """Store ``value`` under ``key``; times are seconds since the epoch."""
        self._data[key] = CacheEntry(bytes(value), stored_at, expires_at)
        self._data.move_to_end(key)
        while len(self._data) > self.size:
            self._data.popitem(last=False)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


def _rrsets(msg: dns.message.Message):
    yield from msg.answer
    yield from msg.authority
    yield from msg.additional


def _minimal_ttl(msg: dns.message.Message) -> int:
    return min((rrset.ttl for rrset in _rrsets(msg)), default=0)


def _subtract_ttl(msg: dns.message.Message, delta: int) -> None:
    for rrset in _rrsets(msg):
        rrset.ttl = max(rrset.ttl - delta, 1)


def _set_ttl(msg: dns.message.Message, ttl: int) -> None:
    for rrset in _rrsets(msg):
        rrset.ttl = ttl


def _ecs_text(ecs) -> str:
    network = ipaddress.ip_network(f"{ecs.address}/{ecs.srclen}", strict=False)
    return f"{network.network_address}/{ecs.srclen}"


class CachePlugin:
    """Serves cached responses and stores fresh NOERROR/NXDOMAIN ones.

    With ``lazy_cache_ttl`` set, entries live that long and expired answers
    are served with TTL ``lazy_cache_reply_ttl`` while a background query
    refreshes them. ``when_hit`` runs after every cache hit.
    """

    def __init__(
        self,
        size: int = 0,
        lazy_cache_ttl: int = 0,
        lazy_cache_reply_ttl: int = 0,
        cache_everything: bool = False,
        compress_resp: bool = False,
        when_hit: Executable | None = None,
    ) -> None:
        self.backend = MemoryBackend(size)
        self.lazy_cache_ttl = lazy_cache_ttl
        self.lazy_cache_reply_ttl = (
            lazy_cache_reply_ttl if lazy_cache_reply_ttl > 0 else RECOMMENDED_LAZY_TTL
        )
        self.cache_everything = cache_everything
        self.compress_resp = compress_resp
        self.when_hit = when_hit
        self.query_total = 0
        self.hit_total = 0
        self.lazy_hit_total = 0
        self._lazy_tasks: dict[str, asyncio.Future] = {}

    @property
    def size(self) -> int:
        """Number of records currently cached."""
        return len(self.backend)

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        self.query_total += 1
        q = qctx.q

        try:
            key = self.msg_key(q)
        except ValueError as exc:
            logger.error("get msg key: %s", exc)
            key = ""
        if not key:
            await exec_chain_node(qctx, next)
            return

        try:
            cached, lazy_hit = self.lookup(key)
        except ValueError as exc:
            logger.error("lookup cache: %s", exc)
            cached, lazy_hit = None, False

        if lazy_hit:
            self.lazy_hit_total += 1
            self._lazy_update(key, qctx, next)
        if cached is not None:
            self.hit_total += 1
            cached.id = q.id
            logger.debug("cache hit")
            qctx.set_response(cached)
            if self.when_hit is not None:
                await self.when_hit.exec(qctx, None)
            return

        logger.debug("cache miss")
        try:
            await exec_chain_node(qctx, next)
        finally:
            self._store_quietly(key, qctx.r)

    def msg_key(self, msg: dns.message.Message) -> str:
        """Return the cache key of a query, or "" if it should not be cached."""
        if self.cache_everything or len(msg.question) > 1:
            try:
                wire = msg.to_wire()
            except dns.exception.DNSException as exc:
                raise ValueError(f"failed to pack query msg, {exc}") from exc
            return (b"\x00\x00" + wire[2:]).hex()
        if not msg.question:
            return ""
        question = msg.question[0]
        parts = [
            question.name.to_text().lower(),
            str(int(question.rdtype)),
            str(int(question.rdclass)),
        ]
        ecs = get_option(msg, ECS)
        if ecs is not None:
            parts.append(_ecs_text(ecs))
        return "|".join(parts)

    def lookup(self, key: str) -> tuple[dns.message.Message | None, bool]:
        """Return ``(response, lazy_hit)`` for ``key``.

        The response's TTLs are adjusted; its id is left for the caller.
        Raises ValueError if the cached data is corrupt.
        """
        entry = self.backend.get(key)
        if entry is None:
            return None, False

        value = entry.value
        if self.compress_resp:
            value = self._decompress(value)
        try:
            r = dns.message.from_wire(value)
        except dns.exception.DNSException as exc:
            raise ValueError(f"failed to unpack cached data, {exc}") from exc

        msg_ttl = EMPTY_ANSWER_TTL if not r.answer else _minimal_ttl(r)
        now = time.time()
        if entry.stored_at + msg_ttl > now:
            _subtract_ttl(r, int(now - entry.stored_at))
            return r, False

        if self.lazy_cache_ttl > 0:
            _set_ttl(r, self.lazy_cache_reply_ttl)
            return r, True
        return None, False

    def store_msg(self, key: str, r: dns.message.Message) -> bool:
        """Store ``r`` under ``key`` if it may be cached; return whether it was."""
        rcode = r.rcode()
        if rcode not in (dns.rcode.NOERROR, dns.rcode.NXDOMAIN) or r.flags & dns.flags.TC:
            return False
        value = r.to_wire()

        if self.lazy_cache_ttl > 0:
            ttl = self.lazy_cache_ttl
        elif rcode == dns.rcode.NXDOMAIN:
            # RFC 2308: negative answers live for the SOA minimum.
            ttl = 0
            for rrset in r.authority:
                if rrset.rdtype == dns.rdatatype.SOA:
                    for soa in rrset:
                        ttl = soa.minimum
        else:
            ttl = _minimal_ttl(r)
        if ttl == 0:
            return False

        if self.compress_resp:
            value = zlib.compress(value)
        now = time.time()
        self.backend.store(key, value, now, now + ttl)
        return True

    def close(self) -> None:
        """Cancel pending background updates and drop all cached data."""
        for task in list(self._lazy_tasks.values()):
            task.cancel()
        self._lazy_tasks.clear()
        self.backend.clear()

    @staticmethod
    def _decompress(value: bytes) -> bytes:
        d = zlib.decompressobj()
        try:
            out = d.decompress(value, MAX_MSG_SIZE + 1)
        except zlib.error as exc:
            raise ValueError(f"decompress err: {exc}") from exc
        if len(out) > MAX_MSG_SIZE or d.unconsumed_tail:
            raise ValueError("invalid compressed data, not a dns msg")
        return out

    def _store_quietly(self, key: str, r: dns.message.Message | None) -> None:
        if r is None:
            return
        try:
            self.store_msg(key, r)
        except Exception as exc:  # noqa: BLE001 - a failed store must not fail the query
            logger.error("cache store: %s", exc)

    def _lazy_update(self, key: str, qctx: QueryContext, next: ChainNode | None) -> None:
        if key in self._lazy_tasks:
            return
        lazy_ctx = qctx.copy()
        self._lazy_tasks[key] = asyncio.ensure_future(self._run_lazy(key, lazy_ctx, next))

    async def _run_lazy(self, key: str, lazy_ctx: QueryContext, next: ChainNode | None) -> None:
        logger.debug("start lazy cache update")
        try:
            try:
                await asyncio.wait_for(exec_chain_node(lazy_ctx, next), LAZY_UPDATE_TIMEOUT)
            except Exception as exc:  # noqa: BLE001
                logger.warning("failed to update lazy cache: %s", exc)
            self._store_quietly(key, lazy_ctx.r)
            logger.debug("lazy cache updated")
        finally:
            self._lazy_tasks.pop(key, None)