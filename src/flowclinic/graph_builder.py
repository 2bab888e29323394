"""
Graph builder: parsed flow document -> ``Flow``.

Flow items are the positionable, connectable elements of a flow (decisions,
loops, record operations, ...). Flow metadata that is not positionable
(name, label, variables, constants, text templates, formulas, ...) is left out
of the graph.

Collections are recognised by key. Collection keys the tool does not know are
still taken as flow items when one of their instances has a ``name`` and a
``connector`` or ``faultConnector``, so element kinds added to the metadata
format later still take part in the analysis.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import FlowParseError
from .node_types import COLLECTION_KINDS, ElementKind, Flow, FlowElement

logger = logging.getLogger(__name__)

FLOW_ROOT_KEY = "Flow"


def as_list(value: Any) -> List[Any]:
    """Normalise a value that may hold one item or many.

    A collection with a single entry comes out of the parser as the bare
    entry rather than a list of one.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _target(connector: Any) -> Optional[str]:
    if not isinstance(connector, Mapping):
        return None
    ref = connector.get("targetReference")
    if isinstance(ref, str) and ref:
        return ref
    return None


def _ordered_unique(names: Iterable[Optional[str]]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for n in names:
        if n and n not in seen:
            seen[n] = None
    return tuple(seen)


def successors_of(raw: Mapping[str, Any]) -> Tuple[str, ...]:
    """Names an element can transition to, in connector priority order.

    primary connector, fault connector, default connector (decisions, waits),
    each rule's connector (decisions), each wait event's connector, then the
    loop's next-value and no-more-values connectors.
    """
    targets: List[Optional[str]] = [
        _target(raw.get("connector")),
        _target(raw.get("faultConnector")),
        _target(raw.get("defaultConnector")),
    ]
    for rule in as_list(raw.get("rules")):
        if isinstance(rule, Mapping):
            targets.append(_target(rule.get("connector")))
    for event in as_list(raw.get("waitEvents")):
        if isinstance(event, Mapping):
            targets.append(_target(event.get("connector")))
    targets.append(_target(raw.get("nextValueConnector")))
    targets.append(_target(raw.get("noMoreValuesConnector")))
    return _ordered_unique(targets)


def is_flow_item(key: str, value: Any, extra_keys: Sequence[str] = ()) -> bool:
    if key in COLLECTION_KINDS or key in extra_keys:
        return True
    for instance in as_list(value):
        if (
            isinstance(instance, Mapping)
            and ("connector" in instance or "faultConnector" in instance)
            and "name" in instance
        ):
            return True
    return False


def entry_points_of(flow_doc: Mapping[str, Any]) -> Tuple[str, ...]:
    """Start connector target, scheduled path targets and legacy ``startElementReference``."""
    targets: List[Optional[str]] = []
    start = flow_doc.get("start")
    if isinstance(start, Mapping):
        targets.append(_target(start.get("connector")))
        for path in as_list(start.get("scheduledPaths")):
            if isinstance(path, Mapping):
                targets.append(_target(path.get("connector")))
    legacy = flow_doc.get("startElementReference")
    if isinstance(legacy, str):
        targets.append(legacy)
    return _ordered_unique(targets)


def _flow_body(document: Mapping[str, Any]) -> Mapping[str, Any]:
    if not isinstance(document, Mapping):
        raise FlowParseError(f"Flow document must be a mapping, got {type(document).__name__}")
    if set(document) == {FLOW_ROOT_KEY}:
        body = document[FLOW_ROOT_KEY]
        if not isinstance(body, Mapping):
            raise FlowParseError("Flow document has an empty <Flow> root")
        return body
    return document


def _make_element(key: str, kind: ElementKind, raw: Mapping[str, Any]) -> FlowElement:
    next_value = no_more_values = None
    if kind is ElementKind.LOOP:
        next_value = _target(raw.get("nextValueConnector"))
        no_more_values = _target(raw.get("noMoreValuesConnector"))
    return FlowElement(
        name=str(raw["name"]),
        kind=kind,
        collection=key,
        successors=successors_of(raw),
        next_value=next_value,
        no_more_values=no_more_values,
        raw=raw,
    )


def build_flow(document: Mapping[str, Any], extra_flow_item_keys: Sequence[str] = ()) -> Flow:
    """
    Build the flow graph from a parsed document.

    Args:
        document: ``{"Flow": {...}}`` as produced by the parser, or the inner mapping
        extra_flow_item_keys: collection keys to treat as flow items in addition
            to the known kinds (tagged ``unrecognized``)

    Returns:
        Flow: element index in declaration order plus entry points. The input
        document is not modified.
    """
    body = _flow_body(document)
    elements: Dict[str, FlowElement] = {}
    sniffed: List[str] = []

    for key, value in body.items():
        if not is_flow_item(key, value, extra_flow_item_keys):
            continue
        kind = ElementKind.from_collection(key)
        if key not in COLLECTION_KINDS and key not in extra_flow_item_keys:
            sniffed.append(key)
        for raw in as_list(value):
            if not isinstance(raw, Mapping) or not raw.get("name"):
                continue
            el = _make_element(key, kind, raw)
            elements[el.name] = el

    if sniffed:
        logger.debug("Collections classified as flow items by shape: %s", ", ".join(sniffed))
    label = body.get("label")
    flow = Flow(
        elements=elements,
        entry_points=entry_points_of(body),
        label=label if isinstance(label, str) else None,
    )
    logger.debug("Built flow graph: %d elements, %d entry points", len(flow), len(flow.entry_points))
    return flow
