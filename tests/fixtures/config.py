"""Write small quiz_manager.toml files for config and CLI tests."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping


def _render_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_render_value(item) for item in value) + "]"
    return '"' + str(value).replace("\\", "\\\\").replace('"', '\\"') + '"'


def render_toml(tables: Mapping[str, Mapping[str, object]]) -> str:
    chunks: list[str] = []
    for table, values in tables.items():
        chunks.append(f"[{table}]")
        for key, value in values.items():
            chunks.append(f"{key} = {_render_value(value)}")
        chunks.append("")
    return "\n".join(chunks)


def write_config(
    path: Path, tables: Mapping[str, Mapping[str, object]]
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_toml(tables), encoding="utf-8")
    return path
