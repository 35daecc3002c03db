"""
Candidate ranking by round-trip time.

Every candidate is probed once; the ``desired_count`` lowest-RTT servers are
returned in ascending order.  A single failed probe aborts the whole ranking
so the caller never acts on a partial ordering.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Sequence

from .api import Server
from .errors import NoCandidatesError

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[Server, int], Awaitable[float]]


@dataclass
class Candidate:
    """A server paired with its measured RTT, used only for sorting."""

    server: Server
    rtt_ms: float


async def rank_servers(
    candidates: Sequence[Server],
    desired_count: int,
    probe: ProbeFunc,
) -> List[Server]:
    """Return the *desired_count* servers with the lowest RTT, best first.

    *probe* is called as ``await probe(server, 1)`` exactly once per
    candidate.  Any exception it raises propagates unchanged.
    """
    if not candidates:
        raise NoCandidatesError("no candidate servers to rank")

    if desired_count > len(candidates):
        logger.warning(
            "requested %d servers but only %d candidates are available",
            desired_count,
            len(candidates),
        )
        desired_count = len(candidates)

    ranked: List[Candidate] = []
    for server in candidates:
        rtt = await probe(server, 1)
        logger.info("candidate %s (%s): %.2f ms", server.name, server.location, rtt)
        ranked.append(Candidate(server=server, rtt_ms=rtt))

    # sorted() is stable: equal RTTs keep their input order
    ranked = sorted(ranked, key=lambda c: c.rtt_ms)

    return [c.server for c in ranked[:desired_count]]
