"""Query context, executable chains, sequences and markers."""

from __future__ import annotations

import copy
import itertools
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional, Protocol

import dns.message

from dnspipe.strutil import IPAddress, ip_from_sockaddr

_query_ids = itertools.count(1)
_marks = itertools.count(1)


class QueryContext:
    """One query travelling through the plugin chain, with its response."""

    def __init__(self, q: dns.message.Message, client_addr: object = None) -> None:
        self.q = q
        self.r: dns.message.Message | None = None
        self.client_addr: IPAddress | None = (
            None if client_addr is None else ip_from_sockaddr(client_addr)
        )
        self.original_query = copy.deepcopy(q)
        self.id = next(_query_ids)
        self.start_time = time.monotonic()
        self._marks: set[int] = set()

    def set_response(self, r: dns.message.Message | None) -> None:
        """Set (or with None, drop) the response."""
        self.r = r

    def copy(self) -> "QueryContext":
        """Return an independent copy of this context."""
        dup = copy.copy(self)
        dup.q = copy.deepcopy(self.q)
        dup.r = copy.deepcopy(self.r)
        dup._marks = set(self._marks)
        return dup

    def add_mark(self, mark: int) -> None:
        self._marks.add(mark)

    def has_mark(self, mark: int) -> bool:
        return mark in self._marks


class Executable(Protocol):
    async def exec(self, qctx: QueryContext, next: Optional["ChainNode"]) -> None:
        ...


@dataclass
class ChainNode:
    """A link in a chain of executables."""

    executable: Executable
    next: Optional["ChainNode"] = None

    def __init__(self, executable: Executable, next: Optional["ChainNode"] = None) -> None:
        self.executable = executable
        self.next = next


async def exec_chain_node(qctx: QueryContext, node: ChainNode | None) -> None:
    """Run ``node`` and, through it, the rest of its chain. None is a no-op."""
    if node is None:
        return
    await node.executable.exec(qctx, node.next)


def build_chain(executables: Iterable[Executable]) -> ChainNode | None:
    """Link executables in order and return the first node."""
    head: ChainNode | None = None
    for executable in reversed(list(executables)):
        head = ChainNode(executable, head)
    return head


class Sequence:
    """Runs its own chain of executables, then continues with the outer chain."""

    def __init__(self, executables: Iterable[Executable]) -> None:
        self._chain = build_chain(executables)

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        await exec_chain_node(qctx, self._chain)
        await exec_chain_node(qctx, next)


class Return:
    """Stops the chain: nothing after it runs."""

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        # Continue with an empty chain instead of ``next``: the chain ends here.
        await exec_chain_node(qctx, None)


def allocate_mark() -> int:
    """Return a mark id that no other caller has received."""
    return next(_marks)


class Marker:
    """Marks queries that pass through it and matches marked queries."""

    def __init__(self) -> None:
        self.mark = allocate_mark()

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        qctx.add_mark(self.mark)
        await exec_chain_node(qctx, next)

    def match(self, qctx: QueryContext) -> bool:
        return qctx.has_mark(self.mark)