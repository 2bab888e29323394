"""
Unconnected element detection.

Two modes:

``referenced`` (default)
    An element is connected if it is an entry point or the successor of some
    declared element. Simple set difference. An island of elements that only
    reference each other (e.g. ``A -> B -> A``) that the main flow never
    reaches is not reported in this mode.

``rooted``
    Breadth-first traversal from the entry points; everything not visited is
    unconnected. Catches the islands above.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Set

from .node_types import Flow

logger = logging.getLogger(__name__)

REFERENCED = "referenced"
ROOTED = "rooted"
REACHABILITY_MODES = (REFERENCED, ROOTED)


def referenced_names(flow: Flow) -> Set[str]:
    referenced: Set[str] = set(flow.entry_points)
    for el in flow:
        referenced.update(el.successors)
    return referenced


def visit_order(flow: Flow) -> List[str]:
    """Names reached from the entry points, in breadth-first discovery order."""
    order: List[str] = []
    visited: Set[str] = set()
    queue: Deque[str] = deque(flow.entry_points)
    while queue:
        name = queue.popleft()
        if name in visited:
            continue
        visited.add(name)
        order.append(name)
        el = flow.get(name)
        if el is None:
            # not an element; nothing to expand
            continue
        for nxt in el.successors:
            if nxt not in visited:
                queue.append(nxt)
    return order


def reachable_from_entries(flow: Flow) -> Set[str]:
    return set(visit_order(flow))


def find_unconnected(flow: Flow, mode: str = REFERENCED) -> List[str]:
    """
    Return declared elements not reached from the flow's entry points.

    Args:
        flow: graph built by ``build_flow``
        mode: ``referenced`` or ``rooted`` (see module docstring)

    Returns:
        Element names in declaration order; empty when every element is connected.
    """
    if mode == REFERENCED:
        connected = referenced_names(flow)
    elif mode == ROOTED:
        connected = reachable_from_entries(flow)
    else:
        raise ValueError(f"Unknown reachability mode: {mode!r} (expected one of {REACHABILITY_MODES})")

    unconnected = [name for name in flow.declared_names() if name not in connected]
    logger.debug("Reachability (%s): %d declared, %d unconnected", mode, len(flow), len(unconnected))
    return unconnected
