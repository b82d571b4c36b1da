"""Log one summary line per query."""

from __future__ import annotations

import logging
import time

from dnspipe.chain import ChainNode, QueryContext, exec_chain_node

logger = logging.getLogger(__name__)

DEFAULT_MSG = "query summary"


class QuerySummary:
    """Logs name, type, class, client, rcode, elapsed time and error of each query.

    Queries with other than exactly one question are not logged, and an
    error from the chain is then not passed on.
    """

    def __init__(self, msg: str = "") -> None:
        self.msg = msg or DEFAULT_MSG

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        error: Exception | None = None
        try:
            await exec_chain_node(qctx, next)
        except Exception as exc:  # noqa: BLE001 - logged, then re-raised
            error = exc

        q = qctx.q
        if len(q.question) != 1:
            return None
        question = q.question[0]
        fields = {
            "uqid": qctx.id,
            "qname": question.name.to_text(),
            "qtype": int(question.rdtype),
            "qclass": int(question.rdclass),
            "client": "" if qctx.client_addr is None else str(qctx.client_addr),
            "resp_rcode": -1 if qctx.r is None else int(qctx.r.rcode()),
            "elapsed": time.monotonic() - qctx.start_time,
            "error": None if error is None else str(error),
        }
        text = " ".join(f"{k}={v}" for k, v in fields.items())
        logger.info("%s %s", self.msg, text, extra={"query_summary": fields})
        if error is not None:
            raise error
        return None