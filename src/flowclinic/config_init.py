"""
Config scaffolding and display - `flowclinic --init` / `flowclinic --show-config`
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml

from .config_loader import FlowClinicConfig, create_example_config, load_config


def init_config(output_path: Optional[Path] = None, force: bool = False) -> Path:
    """
    Write an example flowclinic.yaml.

    Args:
        output_path: target file, defaults to ./flowclinic.yaml
        force: overwrite an existing file

    Returns:
        Path: the written file

    Raises:
        FileExistsError: the file exists and force is False
    """
    if output_path is None:
        output_path = Path("flowclinic.yaml")

    if output_path.exists() and not force:
        raise FileExistsError(f"Config file already exists: {output_path} (use --force to overwrite)")

    output_path.write_text(create_example_config(), encoding="utf-8")

    print(f"✅ Config written: {output_path}")
    print("\n💡 Next steps:")
    print("1. Pick reachability_mode (referenced | rooted)")
    print("2. Adjust loop_sensitive_kinds and exit_codes for your pipeline")
    print("3. Run 'flowclinic path/to/My_Flow.flow-meta.xml'")
    return output_path


def format_config_display(config: FlowClinicConfig) -> str:
    lines = []
    lines.append("📋 Effective configuration:")
    lines.append("━" * 50)
    lines.append(f"  🔗 reachability_mode: {config.reachability_mode}")
    lines.append(f"  🔁 loop_sensitive_kinds: {', '.join(config.loop_sensitive_kinds) or '-'}")
    lines.append(f"  🧩 extra_flow_item_keys: {', '.join(config.extra_flow_item_keys) or '-'}")
    lines.append(f"  📁 output: {config.output}  📄 format: {config.format}")
    lines.append(f"  📝 log_level: {config.log_level}")
    lines.append("\n🚦 Exit codes / severities:")
    codes = config.exit_codes
    sev = config.severities
    lines.append(f"  unconnected_elements:    {codes.unconnected_elements} ({sev.unconnected_elements})")
    lines.append(f"  loop_sensitive_elements: {codes.loop_sensitive_elements} ({sev.loop_sensitive_elements})")
    lines.append(f"  unused_elements:         {codes.unused_elements} ({sev.unused_elements})")
    lines.append(f"  usage_error:             {codes.usage_error}")
    lines.append(f"  broken_reference:        {codes.broken_reference}")
    return "\n".join(lines)


def show_config(config_path: Optional[Path] = None) -> FlowClinicConfig:
    """Print the configuration that a run would use."""
    config = load_config(config_path)
    print(format_config_display(config))
    print("\n" + "━" * 50)
    print(yaml.safe_dump(config.to_dict(), sort_keys=False), end="")
    print("━" * 50)
    print("💡 Config lookup: flowclinic.yaml > .flowclinic.yaml > pyproject.toml [tool.flowclinic]")
    return config
