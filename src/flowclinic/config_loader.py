"""
Configuration loader - YAML (flowclinic.yaml) or pyproject.toml [tool.flowclinic]
"""

from __future__ import annotations

import logging
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .errors import ConfigError
from .node_types import EFFECTFUL_KINDS, ElementKind, FindingKind, Severity
from .reachability import REACHABILITY_MODES, REFERENCED

logger = logging.getLogger(__name__)

CONFIG_CANDIDATES = (
    "flowclinic.yaml",
    "flowclinic.yml",
    ".flowclinic.yaml",
    ".flowclinic.yml",
    "pyproject.toml",  # only with [tool.flowclinic]
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ExitCodesConfig:
    """Process exit status per outcome"""
    unconnected_elements: int = 1
    loop_sensitive_elements: int = 1
    unused_elements: int = 0
    usage_error: int = 2
    broken_reference: int = 3


@dataclass
class SeveritiesConfig:
    unconnected_elements: str = Severity.ERROR.value
    loop_sensitive_elements: str = Severity.ERROR.value
    # advisory until unused detection exists
    unused_elements: str = Severity.INFO.value


@dataclass
class FlowClinicConfig:
    reachability_mode: str = REFERENCED
    loop_sensitive_kinds: List[str] = field(
        default_factory=lambda: sorted(k.value for k in EFFECTFUL_KINDS)
    )
    extra_flow_item_keys: List[str] = field(default_factory=list)
    output: str = "flowclinic_results"
    format: str = "svg"
    log_level: str = "WARNING"
    exit_codes: ExitCodesConfig = field(default_factory=ExitCodesConfig)
    severities: SeveritiesConfig = field(default_factory=SeveritiesConfig)

    def sensitive_kinds(self) -> frozenset[ElementKind]:
        return frozenset(ElementKind.parse(k) for k in self.loop_sensitive_kinds)

    def severity_for(self, kind: FindingKind) -> Severity:
        return Severity(getattr(self.severities, kind.value))

    def exit_code_for(self, kind: FindingKind) -> int:
        return int(getattr(self.exit_codes, kind.value))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_path: Optional[Path] = None) -> FlowClinicConfig:
    """
    Load configuration.

    Args:
        config_path: explicit config file; if None the current directory is searched

    Returns:
        FlowClinicConfig: loaded configuration, or defaults when nothing is found
    """
    if config_path:
        return _load_config_file(Path(config_path))

    found = find_config_file()
    if found:
        logger.info("Using config file: %s", found)
        return _load_config_file(found)

    logger.debug("No config file found, using defaults")
    return FlowClinicConfig()


def find_config_file(cwd: Optional[Path] = None) -> Optional[Path]:
    base = Path(cwd) if cwd else Path.cwd()
    for name in CONFIG_CANDIDATES:
        candidate = base / name
        if not candidate.exists():
            continue
        if candidate.name == "pyproject.toml":
            if _has_flowclinic_config(candidate):
                return candidate
            continue
        return candidate
    return None


def _load_config_file(config_path: Path) -> FlowClinicConfig:
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _load_yaml_config(config_path)
    if suffix == ".toml":
        return _load_toml_config(config_path)
    raise ValueError(f"Unsupported config file format: {suffix}")


def _load_yaml_config(config_path: Path) -> FlowClinicConfig:
    with config_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not data:
        return FlowClinicConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top level must be a mapping")
    return parse_config_data(data)


def _load_toml_config(config_path: Path) -> FlowClinicConfig:
    with config_path.open("rb") as f:
        data = tomllib.load(f)
    # pyproject.toml
    if "tool" in data and "flowclinic" in data["tool"]:
        data = data["tool"]["flowclinic"]
    return parse_config_data(data)


def _has_flowclinic_config(pyproject_path: Path) -> bool:
    try:
        with pyproject_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError:
        return False
    return "tool" in data and "flowclinic" in data["tool"]


def parse_config_data(data: Dict[str, Any]) -> FlowClinicConfig:
    """Merge a raw mapping over the defaults, validating as it goes."""
    config = FlowClinicConfig()

    if "reachability_mode" in data:
        mode = str(data["reachability_mode"]).strip().lower()
        if mode not in REACHABILITY_MODES:
            raise ConfigError(f"reachability_mode must be one of {REACHABILITY_MODES}, got {mode!r}")
        config.reachability_mode = mode
    if "loop_sensitive_kinds" in data:
        kinds = [str(k) for k in data["loop_sensitive_kinds"] or []]
        for k in kinds:
            try:
                ElementKind.parse(k)
            except ValueError:
                raise ConfigError(f"Unknown element kind in loop_sensitive_kinds: {k!r}") from None
        config.loop_sensitive_kinds = kinds
    if "extra_flow_item_keys" in data:
        config.extra_flow_item_keys = [str(k) for k in data["extra_flow_item_keys"] or []]
    if "output" in data:
        config.output = str(data["output"])
    if "format" in data:
        config.format = str(data["format"])
    if "log_level" in data:
        level = str(data["log_level"]).upper()
        if level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {LOG_LEVELS}, got {level!r}")
        config.log_level = level

    codes = data.get("exit_codes") or {}
    for name in asdict(config.exit_codes):
        if name in codes:
            try:
                setattr(config.exit_codes, name, int(codes[name]))
            except (TypeError, ValueError):
                raise ConfigError(f"exit_codes.{name} must be an integer, got {codes[name]!r}") from None

    severities = data.get("severities") or {}
    for name in asdict(config.severities):
        if name in severities:
            val = str(severities[name]).strip().lower()
            try:
                Severity(val)
            except ValueError:
                raise ConfigError(f"severities.{name} must be error|warning|info, got {val!r}") from None
            setattr(config.severities, name, val)

    return config


def create_example_config() -> str:
    """Example flowclinic.yaml content"""
    return """# flowclinic configuration
version: "1.0"

# referenced: an element is connected if any element (or the start) points at it
# rooted:     an element is connected if it is reachable from the start
reachability_mode: referenced

# Element kinds reported when found inside a loop body
loop_sensitive_kinds:
  - action-call
  - loop
  - record-create
  - record-delete
  - record-lookup
  - record-update
  - subflow

# Extra metadata collections to treat as connectable elements (e.g. waits)
extra_flow_item_keys: []

# Artifacts (summary.json, graph) when requested with --output / --graph
output: "flowclinic_results"
format: "svg"

log_level: WARNING

exit_codes:
  unconnected_elements: 1
  loop_sensitive_elements: 1
  unused_elements: 0
  usage_error: 2
  broken_reference: 3

severities:
  unconnected_elements: error
  loop_sensitive_elements: error
  unused_elements: info
"""


def save_example_config(output_path: Optional[Path] = None) -> Path:
    if output_path is None:
        output_path = Path("flowclinic.yaml")
    output_path.write_text(create_example_config(), encoding="utf-8")
    return output_path
