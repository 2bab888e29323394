from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Collection, Dict, List, Mapping, Optional, Tuple, Union

from .config_loader import FlowClinicConfig
from .errors import UsageError
from .flow_parser import is_flow_path, load_flow_document
from .graph_builder import build_flow
from .loop_analysis import LoopBody, analyze_loops
from .node_types import Finding, FindingKind, Flow
from .reachability import find_unconnected
from .unused_elements import find_unused_elements

logger = logging.getLogger(__name__)

SUMMARY_VERSION = "1.0"

# Remediation steps printed with unconnected elements. Usually the result of
# parallel work on one flow merged by hand.
REMEDIATION: Dict[FindingKind, str] = {
    FindingKind.UNCONNECTED_ELEMENTS: (
        "Steps to resolve flow conflicts:\n"
        "    1. Deploy the flow to a development org\n"
        "    2. Try the automatic layout. If it works, you are done\n"
        "    3. If there are conflicts and auto-layout is not allowed, save a new version. Warnings will show up.\n"
        "    4. Resolve the warnings by connecting all the elements. This usually comes from work done in "
        "parallel where everything has to be kept (the owners decide the best order)\n"
        "    5. Save with auto-layout, retrieve it and push it to the branch again"
    ),
}

_MESSAGES: Dict[FindingKind, str] = {
    FindingKind.UNCONNECTED_ELEMENTS: "Unconnected elements",
    FindingKind.LOOP_SENSITIVE_ELEMENTS: "CRUD operations, actions or subflows inside loops",
    FindingKind.UNUSED_ELEMENTS: "Unused elements in flow",
}


@dataclass
class ValidationReport:
    flow: Flow
    findings: List[Finding] = field(default_factory=list)
    loops: List[LoopBody] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def exit_code(self) -> int:
        for f in self.findings:
            if f.fails:
                return f.exit_code
        return 0

    @property
    def status(self) -> str:
        return "failed" if self.exit_code else "passed"

    def finding(self, kind: FindingKind) -> Optional[Finding]:
        for f in self.findings:
            if f.kind == kind:
                return f
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": SUMMARY_VERSION,
            "flow": self.source or self.flow.label,
            "status": self.status,
            "exit_code": self.exit_code,
            "elements": len(self.flow),
            "entry_points": list(self.flow.entry_points),
            "findings": [f.to_dict() for f in self.findings],
            "loops": [
                {"loop": b.loop, "body": list(b.visited), "sensitive": list(b.sensitive)}
                for b in self.loops
            ],
        }


def _finding(config: FlowClinicConfig, kind: FindingKind, names: List[str]) -> Finding:
    return Finding(
        kind=kind,
        severity=config.severity_for(kind),
        elements=tuple(names),
        exit_code=config.exit_code_for(kind),
        message=_MESSAGES[kind],
    )


def validate_flow(
    document: Union[Mapping[str, Any], Flow],
    config: Optional[FlowClinicConfig] = None,
    source: Optional[str] = None,
) -> ValidationReport:
    """
    Run every check against one flow.

    Args:
        document: parsed flow document or an already built Flow
        config: configuration, defaults when None
        source: file name shown in the report

    Returns:
        ValidationReport with one finding per check that found something,
        ordered unconnected, loop-sensitive, unused.

    Raises:
        BrokenReferenceError: a loop body references an undeclared element
    """
    config = config or FlowClinicConfig()
    if isinstance(document, Flow):
        flow = document
    else:
        flow = build_flow(document, extra_flow_item_keys=config.extra_flow_item_keys)
    report = ValidationReport(flow=flow, source=source)

    unconnected = find_unconnected(flow, mode=config.reachability_mode)
    if unconnected:
        report.findings.append(_finding(config, FindingKind.UNCONNECTED_ELEMENTS, unconnected))

    report.loops = analyze_loops(flow, config.sensitive_kinds())
    in_loops: Dict[str, None] = {}
    for body in report.loops:
        for name in body.sensitive:
            in_loops.setdefault(name, None)
    if in_loops:
        report.findings.append(_finding(config, FindingKind.LOOP_SENSITIVE_ELEMENTS, list(in_loops)))

    unused = find_unused_elements(flow)
    if unused:
        report.findings.append(_finding(config, FindingKind.UNUSED_ELEMENTS, unused))

    logger.info(
        "Validated %s: %d elements, %d findings", source or flow.label or "flow", len(flow), len(report.findings)
    )
    return report


def render_report(report: ValidationReport, kinds: Optional[Collection[FindingKind]] = None) -> str:
    lines: List[str] = []
    for f in report.findings:
        if kinds is not None and f.kind not in kinds:
            continue
        if f.kind == FindingKind.UNCONNECTED_ELEMENTS:
            lines.append(f"{f.message}: {', '.join(f.elements)}")
            lines.append("(not reached from any element)")
            lines.append("")
            lines.append(REMEDIATION[f.kind])
        elif f.kind == FindingKind.LOOP_SENSITIVE_ELEMENTS:
            lines.append(f"{f.message}: {json.dumps(list(f.elements))}")
            for body in report.loops:
                if body.sensitive:
                    lines.append(f"  - loop {body.loop}: {', '.join(body.sensitive)}")
        else:
            lines.append(f"{f.message}: {json.dumps(list(f.elements))}")
        lines.append("")
    return "\n".join(lines).rstrip("\n")


def write_summary(report: ValidationReport, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    out = output_dir / "summary.json"
    out.write_text(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    return out


def _flow_stem(path: Path) -> str:
    # My_Flow.flow-meta.xml -> My_Flow
    return path.name.split(".")[0]


def run_validation(
    flow_path: Optional[Union[str, Path]],
    config: Optional[FlowClinicConfig] = None,
    output_dir: Optional[Union[str, Path]] = None,
    render_graph: bool = False,
) -> Tuple[int, ValidationReport]:
    """
    Validate one flow file, print the report and write optional artifacts.

    Returns:
        (exit_code, report)

    Raises:
        UsageError: no path given or the path is not a *.flow-meta.xml file
    """
    config = config or FlowClinicConfig()
    if not flow_path:
        raise UsageError("No file specified.")
    if not is_flow_path(flow_path):
        raise UsageError("You must specify one flow to validate (*.flow-meta.xml).")

    path = Path(flow_path)
    if not path.is_file():
        raise UsageError(f"File not found: {path}")
    document = load_flow_document(path)
    report = validate_flow(document, config, source=str(path))

    # loop findings go to stderr, everything else to stdout
    text = render_report(report, [k for k in FindingKind if k != FindingKind.LOOP_SENSITIVE_ELEMENTS])
    if text:
        print(text)
    text = render_report(report, [FindingKind.LOOP_SENSITIVE_ELEMENTS])
    if text:
        print(text, file=sys.stderr)

    if output_dir is not None or render_graph:
        out_dir = Path(output_dir or config.output)
        summary = write_summary(report, out_dir)
        print(f"\n📄 Summary written: {summary}")
        if render_graph:
            _render(report, out_dir / _flow_stem(path), config.format)

    return report.exit_code, report


def _render(report: ValidationReport, output_base: Path, fmt: str) -> None:
    # Lazy import keeps graphviz off the plain validation path
    from .graphviz_render import render_flow_graph

    unconnected = report.finding(FindingKind.UNCONNECTED_ELEMENTS)
    in_loops = report.finding(FindingKind.LOOP_SENSITIVE_ELEMENTS)
    dot_path, image_path = render_flow_graph(
        report.flow,
        str(output_base),
        fmt=fmt,
        unconnected=unconnected.elements if unconnected else (),
        loop_sensitive=in_loops.elements if in_loops else (),
    )
    if image_path:
        print(f"🖼  Graph written: {image_path}")
    else:
        print(f"⚠ Graphviz 'dot' not found, only DOT written: {dot_path}")
