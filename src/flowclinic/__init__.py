"""
flowclinic - static checks for flow metadata (*.flow-meta.xml)

    from flowclinic import validate_flow, load_flow_document

    report = validate_flow(load_flow_document("force-app/main/default/flows/My_Flow.flow-meta.xml"))
    for finding in report.findings:
        print(finding.kind.value, finding.elements)

Checks:
  - unconnected elements (not reached from the start of the flow)
  - record operations, actions, subflows and nested loops inside loop bodies
"""

from .errors import BrokenReferenceError, FlowClinicError, FlowParseError, UsageError
from .flow_parser import is_flow_path, load_flow_document, parse_flow_xml
from .graph_builder import build_flow, successors_of
from .loop_analysis import analyze_loops, find_effectful_elements_in_loops
from .node_types import ElementKind, Finding, FindingKind, Flow, FlowElement, Severity
from .reachability import find_unconnected
from .unused_elements import find_unused_elements


def validate_flow(*args, **kwargs):
    """Lazy import wrapper for validate_flow to avoid loading config dependencies at package import time."""
    from .validator import validate_flow as _validate_flow

    return _validate_flow(*args, **kwargs)


from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("flowclinic")
except PackageNotFoundError:
    # Fallback for development/uninstalled package
    __version__ = "unknown"

__all__ = [
    "BrokenReferenceError",
    "ElementKind",
    "Finding",
    "FindingKind",
    "Flow",
    "FlowClinicError",
    "FlowElement",
    "FlowParseError",
    "Severity",
    "UsageError",
    "analyze_loops",
    "build_flow",
    "find_effectful_elements_in_loops",
    "find_unconnected",
    "find_unused_elements",
    "is_flow_path",
    "load_flow_document",
    "parse_flow_xml",
    "successors_of",
    "validate_flow",
    "__version__",
]
