"""
Exception hierarchy for flowclinic.

Findings (unconnected elements, effectful elements inside loops) are not
exceptions; they are returned as ``Finding`` values. The classes below are for
runs that could not complete.
"""

from __future__ import annotations

from typing import Optional


class FlowClinicError(Exception):
    """Base class for all flowclinic errors."""


class UsageError(FlowClinicError):
    """No flow file given, or the path is not a ``*.flow-meta.xml`` file."""


class FlowParseError(FlowClinicError):
    """The flow document could not be parsed."""


class ConfigError(FlowClinicError):
    """A configuration value is not valid."""


class BrokenReferenceError(FlowClinicError):
    """A connector targets an element that is not declared in the flow."""

    def __init__(self, name: str, referrer: Optional[str] = None):
        self.name = name
        self.referrer = referrer
        if referrer:
            msg = f"Element '{referrer}' references unknown element '{name}'"
        else:
            msg = f"Reference to unknown element '{name}'"
        super().__init__(msg)
