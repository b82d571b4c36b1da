"""Delay queries before passing them on."""

from __future__ import annotations

import asyncio

from dnspipe.chain import ChainNode, QueryContext, exec_chain_node


class Sleep:
    """Waits ``duration_ms`` milliseconds, then continues the chain.

    Cancelling the surrounding task interrupts the wait.
    """

    def __init__(self, duration_ms: int = 0) -> None:
        self.duration_ms = duration_ms

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        if self.duration_ms > 0:
            await asyncio.sleep(self.duration_ms / 1000)
        await exec_chain_node(qctx, next)