from __future__ import annotations

import copy

import pytest

from flowclinic.errors import BrokenReferenceError
from flowclinic.graph_builder import build_flow
from flowclinic.loop_analysis import analyze_loops, find_effectful_elements_in_loops
from flowclinic.node_types import ElementKind


def _to(name: str) -> dict:
    return {"targetReference": name}


def _loop(name: str, body: str | None, after: str | None = None) -> dict:
    loop = {"name": name}
    if body:
        loop["nextValueConnector"] = _to(body)
    if after:
        loop["noMoreValuesConnector"] = _to(after)
    return loop


def test_update_inside_loop_reports_loop_and_update():
    doc = {
        "Flow": {
            "start": {"connector": _to("L")},
            "loops": _loop("L", "U", "After"),
            "recordUpdates": {"name": "U", "connector": _to("L")},
            "recordCreates": {"name": "After"},
        }
    }
    flow = build_flow(doc)
    assert set(find_effectful_elements_in_loops(flow)) == {"L", "U"}
    (body,) = analyze_loops(flow)
    assert body.loop == "L"
    assert body.sensitive == ("L", "U")
    # the exit path is not part of the body
    assert "After" not in body.visited


def test_loop_returning_to_itself_is_reported_even_with_only_assignments():
    doc = {
        "Flow": {
            "start": {"connector": _to("L")},
            "loops": _loop("L", "A", "Save"),
            "assignments": {"name": "A", "connector": _to("L")},
            "recordUpdates": {"name": "Save"},
        }
    }
    # the exit edge is not followed, so Save stays out
    assert find_effectful_elements_in_loops(build_flow(doc)) == ["L"]


def test_loop_iterating_straight_into_itself():
    doc = {"Flow": {"loops": _loop("L", "L")}}
    (body,) = analyze_loops(build_flow(doc))
    assert body.visited == ()
    assert body.sensitive == ("L",)


def test_loop_not_reported_when_loops_are_not_sensitive():
    doc = {
        "Flow": {
            "loops": _loop("L", "A"),
            "assignments": {"name": "A", "connector": _to("L")},
        }
    }
    assert find_effectful_elements_in_loops(build_flow(doc), sensitive_kinds={ElementKind.RECORD_UPDATE}) == []


def test_every_decision_branch_is_followed():
    doc = {
        "Flow": {
            "start": {"connector": _to("L")},
            "loops": _loop("L", "D"),
            "decisions": {
                "name": "D",
                "defaultConnector": _to("Assign"),
                "rules": {"name": "Should_Send", "connector": _to("Send")},
            },
            "actionCalls": {"name": "Send", "connector": _to("L")},
            "assignments": {"name": "Assign", "connector": _to("L")},
        }
    }
    found = find_effectful_elements_in_loops(build_flow(doc))
    assert "Send" in found
    assert "Assign" not in found
    assert "D" not in found


def test_fault_paths_inside_loop_are_followed():
    doc = {
        "Flow": {
            "start": {"connector": _to("L")},
            "loops": _loop("L", "Call"),
            "subflows": {"name": "Call", "connector": _to("L"), "faultConnector": _to("Log")},
            "recordCreates": {"name": "Log", "connector": _to("L")},
        }
    }
    assert set(find_effectful_elements_in_loops(build_flow(doc))) == {"L", "Call", "Log"}


def test_nested_loop_reported_in_outer_body_and_not_walked_again():
    doc = {
        "Flow": {
            "start": {"connector": _to("Outer")},
            # inner declared first: the walk order must still start from the outer loop
            "loops": [
                _loop("Inner", "Touch", "Outer"),
                _loop("Outer", "Inner", "Done"),
            ],
            "assignments": [{"name": "Touch", "connector": _to("Inner")}, {"name": "Done"}],
        }
    }
    bodies = analyze_loops(build_flow(doc))
    assert [b.loop for b in bodies] == ["Outer"]
    outer = bodies[0]
    assert "Inner" in outer.sensitive
    assert "Touch" in outer.visited
    assert set(find_effectful_elements_in_loops(build_flow(doc))) == {"Outer", "Inner"}


def test_unreachable_loops_are_still_walked():
    doc = {
        "Flow": {
            "loops": _loop("Island", "Q"),
            "recordLookups": {"name": "Q", "connector": _to("Island")},
        }
    }
    assert find_effectful_elements_in_loops(build_flow(doc)) == ["Island", "Q"]


def test_unreachable_nested_loops_walk_outer_first():
    doc = {
        "Flow": {
            # no entry point; inner declared before outer
            "loops": [
                _loop("Inner", "Tally", "Save"),
                _loop("Outer", "Prepare"),
            ],
            "assignments": [
                {"name": "Prepare", "connector": _to("Inner")},
                {"name": "Tally", "connector": _to("Inner")},
            ],
            "recordUpdates": {"name": "Save", "connector": _to("Outer")},
        }
    }
    bodies = analyze_loops(build_flow(doc))
    assert [b.loop for b in bodies] == ["Outer"]
    found = find_effectful_elements_in_loops(build_flow(doc))
    assert set(found) == {"Outer", "Inner", "Save"}


def test_unreachable_loops_in_separate_islands_keep_declaration_order():
    doc = {
        "Flow": {
            "loops": [_loop("First", "A"), _loop("Second", "B")],
            "assignments": [
                {"name": "A", "connector": _to("First")},
                {"name": "B", "connector": _to("Second")},
            ],
        }
    }
    assert [b.loop for b in analyze_loops(build_flow(doc))] == ["First", "Second"]


def test_loop_without_next_value_has_empty_body():
    doc = {"Flow": {"loops": _loop("L", None, "After"), "recordUpdates": {"name": "After"}}}
    (body,) = analyze_loops(build_flow(doc))
    assert body.visited == ()
    assert body.sensitive == ()


def test_sensitive_kinds_can_be_narrowed():
    doc = {
        "Flow": {
            "loops": _loop("L", "Get"),
            "recordLookups": {"name": "Get", "connector": _to("Upd")},
            "recordUpdates": {"name": "Upd", "connector": _to("L")},
        }
    }
    found = find_effectful_elements_in_loops(build_flow(doc), sensitive_kinds={ElementKind.RECORD_UPDATE})
    assert found == ["Upd"]


def test_broken_reference_in_loop_body_raises():
    doc = {
        "Flow": {
            "loops": _loop("L", "A"),
            "assignments": {"name": "A", "connector": _to("Ghost")},
        }
    }
    with pytest.raises(BrokenReferenceError) as exc:
        find_effectful_elements_in_loops(build_flow(doc))
    assert exc.value.name == "Ghost"
    assert exc.value.referrer == "A"


def test_repeated_runs_give_identical_results_and_leave_document_untouched():
    doc = {
        "Flow": {
            "start": {"connector": _to("L")},
            "loops": _loop("L", "U"),
            "recordUpdates": {"name": "U", "connector": _to("L")},
        }
    }
    before = copy.deepcopy(doc)
    first = find_effectful_elements_in_loops(build_flow(doc))
    second = find_effectful_elements_in_loops(build_flow(doc))
    flow = build_flow(doc)
    assert find_effectful_elements_in_loops(flow) == find_effectful_elements_in_loops(flow)
    assert first == second
    assert doc == before
