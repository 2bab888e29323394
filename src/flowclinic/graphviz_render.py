from __future__ import annotations

from typing import Iterable, Mapping, Optional, Tuple

from graphviz import Digraph
from graphviz.backend import ExecutableNotFound

from .node_types import ElementKind, Flow, FlowElement

START_NODE = "__start__"

_KIND_SHAPES = {
    ElementKind.DECISION: "diamond",
    ElementKind.LOOP: "hexagon",
    ElementKind.SCREEN: "note",
    ElementKind.SUBFLOW: "component",
}


def _fill_for(name: str, unconnected: set, loop_sensitive: set) -> str:
    # red = unconnected, amber = effectful inside a loop, white otherwise
    if name in unconnected:
        return "#F44336"
    if name in loop_sensitive:
        return "#FFC107"
    return "#FFFFFF"


def _edge_label(el: FlowElement, dst: str) -> Optional[str]:
    if el.is_loop:
        if dst == el.next_value:
            return "next"
        if dst == el.no_more_values:
            return "done"
    return None


def _is_fault_edge(el: FlowElement, dst: str) -> bool:
    fault = el.raw.get("faultConnector")
    return isinstance(fault, Mapping) and fault.get("targetReference") == dst


def render_flow_graph(
    flow: Flow,
    output_base: str,
    fmt: str = "svg",
    unconnected: Iterable[str] = (),
    loop_sensitive: Iterable[str] = (),
) -> Tuple[str, str]:
    """
    Render the flow graph with findings highlighted.

    Returns (dot_path, image_path). The .dot file is always written; image_path
    is "" when the Graphviz executable is not installed.
    """
    bad = set(unconnected)
    hot = set(loop_sensitive)
    dot = Digraph(
        "flowclinic",
        graph_attr={
            "rankdir": "TB",
            "splines": "spline",
            "label": flow.label or "Flow",
            "labelloc": "t",
        },
        node_attr={"shape": "box", "style": "rounded,filled", "fontname": "Helvetica"},
        edge_attr={"arrowhead": "vee"},
    )

    dot.node(START_NODE, label="START", shape="circle", fillcolor="#4CAF50")
    for el in flow:
        label = f"{el.name}\n{el.kind.value if el.kind is not ElementKind.UNRECOGNIZED else el.collection}"
        dot.node(
            el.name,
            label=label,
            shape=_KIND_SHAPES.get(el.kind, "box"),
            fillcolor=_fill_for(el.name, bad, hot),
        )

    for entry in flow.entry_points:
        dot.edge(START_NODE, entry, color="#4CAF50", penwidth="2")

    for el in flow:
        for dst in el.successors:
            attrs = {"color": "black", "style": "solid"}
            label = _edge_label(el, dst)
            if label:
                attrs["label"] = label
            if _is_fault_edge(el, dst):
                attrs["style"] = "dashed"
                attrs["color"] = "#F44336"
            dot.edge(el.name, dst, **attrs)

    dot_path = f"{output_base}.dot"
    image_path = f"{output_base}.{fmt}"
    dot.save(dot_path)

    try:
        dot.render(output_base, format=fmt, cleanup=True)
    except ExecutableNotFound:
        # Only DOT written; caller should inform user
        image_path = ""
    return dot_path, image_path
