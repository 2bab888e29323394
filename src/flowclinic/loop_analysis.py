"""
Effectful elements inside loops.

Every loop body is walked forward from the loop's next-value connector. Each
element met on the way runs once per iteration, so record operations, action
calls, subflow calls and nested loops met there are reported.

Walk rules:
 - every connector is followed (fault, default, each decision rule, nested
   loops' next/no-more-values), so an element reachable on any branch counts;
 - the walk stops when it gets back to its own loop, and the loop is then
   reported itself: it is reachable from its own iteration edge. The loop's
   exit edge is never followed;
 - the visited set is shared by all loops of one call: a nested loop reached
   from an outer body is not walked again as a top-level loop;
 - outer loops are walked first. Loops are taken in breadth-first discovery
   order from the entry points. Loops the entry points never reach follow,
   those no other such loop's body reaches first, each group in declaration
   order.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Collection, Deque, Dict, List, Set, Tuple

from .node_types import EFFECTFUL_KINDS, ElementKind, Flow, FlowElement
from .reachability import visit_order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoopBody:
    loop: str
    visited: Tuple[str, ...]
    sensitive: Tuple[str, ...]


def _body_reach(flow: Flow, loop: FlowElement) -> Set[str]:
    """Names reachable from a loop's iteration edge, without passing its head."""
    seen: Set[str] = set()
    queue: Deque[str] = deque([loop.next_value] if loop.next_value else [])
    while queue:
        name = queue.popleft()
        if name == loop.name or name in seen:
            continue
        seen.add(name)
        el = flow.get(name)
        if el is not None:
            queue.extend(el.successors)
    return seen


def _loops_outer_first(flow: Flow) -> List[FlowElement]:
    loops = {el.name: el for el in flow.loops()}
    ordered: List[FlowElement] = [loops[n] for n in visit_order(flow) if n in loops]
    seen = {el.name for el in ordered}

    rest = [el for name, el in loops.items() if name not in seen]
    nested: Set[str] = set()
    for el in rest:
        nested.update(_body_reach(flow, el) - {el.name})
    # outermost of the unreached loops first; mutually nested ones keep declaration order
    ordered.extend(el for el in rest if el.name not in nested)
    ordered.extend(el for el in rest if el.name in nested)
    return ordered


def _walk_loop(
    flow: Flow,
    loop: FlowElement,
    visited: Set[str],
    sensitive_kinds: Collection[ElementKind],
) -> LoopBody:
    body: List[str] = []
    sensitive: Dict[str, None] = {}
    closes = False
    visited.add(loop.name)

    queue: Deque[Tuple[str, str]] = deque()
    if loop.next_value:
        queue.append((loop.next_value, loop.name))

    while queue:
        name, referrer = queue.popleft()
        el = flow.resolve(name, referrer)
        if el.name == loop.name:
            # back at the loop head: end of one iteration
            closes = True
            continue
        if el.name in visited:
            continue
        visited.add(el.name)
        body.append(el.name)
        for nxt in el.successors:
            queue.append((nxt, el.name))
        if el.kind in sensitive_kinds:
            sensitive.setdefault(el.name, None)

    if closes and loop.kind in sensitive_kinds:
        # reachable from its own iteration edge
        sensitive = {loop.name: None, **sensitive}

    logger.debug("Loop %s: %d elements in body, %d effectful", loop.name, len(body), len(sensitive))
    return LoopBody(loop=loop.name, visited=tuple(body), sensitive=tuple(sensitive))


def analyze_loops(flow: Flow, sensitive_kinds: Collection[ElementKind] = EFFECTFUL_KINDS) -> List[LoopBody]:
    """
    Walk every loop body and classify what runs inside it.

    Args:
        flow: graph built by ``build_flow``
        sensitive_kinds: element kinds reported when met inside a loop body

    Returns:
        One ``LoopBody`` per walked loop. Loops already reached from a
        previously walked body are not walked on their own.

    Raises:
        BrokenReferenceError: a connector inside a loop body targets an unknown element
    """
    visited: Set[str] = set()
    bodies: List[LoopBody] = []
    for loop in _loops_outer_first(flow):
        if loop.name in visited:
            continue
        bodies.append(_walk_loop(flow, loop, visited, sensitive_kinds))
    return bodies


def find_effectful_elements_in_loops(
    flow: Flow, sensitive_kinds: Collection[ElementKind] = EFFECTFUL_KINDS
) -> List[str]:
    """Union of the effectful elements of every loop body, in discovery order."""
    found: Dict[str, None] = {}
    for body in analyze_loops(flow, sensitive_kinds):
        for name in body.sensitive:
            found.setdefault(name, None)
    return list(found)
