"""
Graph model shared by the builder and the analysis passes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .errors import BrokenReferenceError


class ElementKind(Enum):
    ACTION_CALL = "action-call"
    ASSIGNMENT = "assignment"
    DECISION = "decision"
    LOOP = "loop"
    RECORD_CREATE = "record-create"
    RECORD_DELETE = "record-delete"
    RECORD_LOOKUP = "record-lookup"
    RECORD_UPDATE = "record-update"
    SCREEN = "screen"
    SUBFLOW = "subflow"
    # positionable collection the tool does not know by name
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_collection(cls, key: str) -> "ElementKind":
        return COLLECTION_KINDS.get(key, cls.UNRECOGNIZED)

    @classmethod
    def parse(cls, value: str) -> "ElementKind":
        """Accept either a kind value (``record-update``) or a collection key (``recordUpdates``)."""
        if value in COLLECTION_KINDS:
            return COLLECTION_KINDS[value]
        return cls(value)


# Document collection key -> element kind
COLLECTION_KINDS: Dict[str, ElementKind] = {
    "actionCalls": ElementKind.ACTION_CALL,
    "assignments": ElementKind.ASSIGNMENT,
    "decisions": ElementKind.DECISION,
    "loops": ElementKind.LOOP,
    "recordCreates": ElementKind.RECORD_CREATE,
    "recordDeletes": ElementKind.RECORD_DELETE,
    "recordLookups": ElementKind.RECORD_LOOKUP,
    "recordUpdates": ElementKind.RECORD_UPDATE,
    "screens": ElementKind.SCREEN,
    "subflows": ElementKind.SUBFLOW,
}

EFFECTFUL_KINDS: frozenset[ElementKind] = frozenset(
    {
        ElementKind.LOOP,
        ElementKind.RECORD_CREATE,
        ElementKind.RECORD_DELETE,
        ElementKind.RECORD_LOOKUP,
        ElementKind.RECORD_UPDATE,
        ElementKind.ACTION_CALL,
        ElementKind.SUBFLOW,
    }
)


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class FindingKind(str, Enum):
    UNCONNECTED_ELEMENTS = "unconnected_elements"
    LOOP_SENSITIVE_ELEMENTS = "loop_sensitive_elements"
    UNUSED_ELEMENTS = "unused_elements"


@dataclass(frozen=True)
class FlowElement:
    name: str
    kind: ElementKind
    collection: str  # document key the element was declared under
    successors: Tuple[str, ...] = ()
    next_value: Optional[str] = None  # loops only
    no_more_values: Optional[str] = None  # loops only
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_loop(self) -> bool:
        return self.kind is ElementKind.LOOP


@dataclass(frozen=True)
class Flow:
    """Immutable graph built once per validation run.

    ``elements`` keeps declaration order, which is also the order every
    analysis pass reports in.
    """

    elements: Mapping[str, FlowElement]
    entry_points: Tuple[str, ...] = ()
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.elements, MappingProxyType):
            object.__setattr__(self, "elements", MappingProxyType(dict(self.elements)))

    def __contains__(self, name: object) -> bool:
        return name in self.elements

    def __iter__(self) -> Iterator[FlowElement]:
        return iter(self.elements.values())

    def __len__(self) -> int:
        return len(self.elements)

    def get(self, name: str) -> Optional[FlowElement]:
        return self.elements.get(name)

    def resolve(self, name: str, referrer: Optional[str] = None) -> FlowElement:
        try:
            return self.elements[name]
        except KeyError:
            raise BrokenReferenceError(name, referrer) from None

    def declared_names(self) -> List[str]:
        return list(self.elements)

    def loops(self) -> List[FlowElement]:
        return [el for el in self.elements.values() if el.is_loop]


@dataclass(frozen=True)
class Finding:
    """One category of problem found by a validation pass."""

    kind: FindingKind
    severity: Severity
    elements: Tuple[str, ...]
    exit_code: int
    message: str = ""

    @property
    def fails(self) -> bool:
        return self.severity in (Severity.ERROR, Severity.WARNING) and self.exit_code != 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "elements": list(self.elements),
            "exit_code": self.exit_code,
            "message": self.message,
        }
