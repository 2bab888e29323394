"""
Unused resource detection (variables, constants, text templates, formulas).

Not implemented yet: always reports nothing. Input/output variables may be
needed by other flows, so whatever rule lands here has to take that into
account before reporting them.
"""
from __future__ import annotations

from typing import List

from .node_types import Flow


def find_unused_elements(flow: Flow) -> List[str]:
    return []
