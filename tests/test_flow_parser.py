from __future__ import annotations

from pathlib import Path

import pytest

from flowclinic.errors import FlowParseError
from flowclinic.flow_parser import is_flow_path, load_flow_document, parse_flow_xml


@pytest.mark.parametrize(
    "path,expected",
    [
        ("My_Flow.flow-meta.xml", True),
        ("force-app/main/default/flows/My_Flow.flow-meta.xml", True),
        (Path("flows") / "A.B.flow-meta.xml", True),
        ("My_Flow.xml", False),
        ("flow-meta.xml", False),
        ("My_Flow.flow-meta.json", False),
        ("My_Flow.object-meta.xml", False),
        ("", False),
    ],
)
def test_is_flow_path(path, expected):
    assert is_flow_path(path) is expected


def test_parse_strips_namespace_and_keeps_single_children_bare():
    xml = """<?xml version="1.0" encoding="UTF-8"?>
<Flow xmlns="http://soap.sforce.com/2006/04/metadata">
    <label>Demo</label>
    <assignments>
        <name>A</name>
        <connector><targetReference>B</targetReference></connector>
    </assignments>
    <recordUpdates><name>B</name></recordUpdates>
    <recordUpdates><name>C</name></recordUpdates>
    <description/>
</Flow>"""
    doc = parse_flow_xml(xml)
    assert list(doc) == ["Flow"]
    flow = doc["Flow"]
    assert flow["label"] == "Demo"
    assert flow["assignments"] == {"name": "A", "connector": {"targetReference": "B"}}
    assert flow["recordUpdates"] == [{"name": "B"}, {"name": "C"}]
    assert flow["description"] == ""


def test_parse_accepts_bytes():
    doc = parse_flow_xml(b"<Flow><label>x</label></Flow>")
    assert doc == {"Flow": {"label": "x"}}


def test_parse_empty_root():
    assert parse_flow_xml("<Flow/>") == {"Flow": {}}


def test_malformed_xml_raises_parse_error():
    with pytest.raises(FlowParseError) as exc:
        parse_flow_xml("<Flow><label>oops</Flow>", filename="Broken.flow-meta.xml")
    assert "Broken.flow-meta.xml" in str(exc.value)


def test_load_example_flow(example_flows: Path):
    doc = load_flow_document(example_flows / "Contact_Sync.flow-meta.xml")
    flow = doc["Flow"]
    # single decision with a single rule stays a mapping
    assert isinstance(flow["decisions"], dict)
    assert isinstance(flow["decisions"]["rules"], dict)
    assert isinstance(flow["assignments"], list)
    assert flow["start"]["scheduledPaths"]["connector"]["targetReference"] == "Get_Contacts"
