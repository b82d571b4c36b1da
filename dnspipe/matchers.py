"""Matchers that look at the query or the response of a query context."""

from __future__ import annotations

from dnspipe.chain import QueryContext


class HasValidAnswer:
    """Matches when the response answers one of the query's questions.

    An answer counts when its name, type and class equal those of a question.
    """

    def match(self, qctx: QueryContext) -> bool:
        r = qctx.r
        if r is None:
            return False
        questions = {(q.name, q.rdtype, q.rdclass) for q in qctx.q.question}
        return any((rrset.name, rrset.rdtype, rrset.rdclass) in questions for rrset in r.answer)


class QueryIsEdns0:
    """Matches queries that carry an EDNS0 record."""

    def match(self, qctx: QueryContext) -> bool:
        return qctx.q.edns >= 0