"""Helpers for the code graph: similarity, paths, rendering and symbol matching."""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from pathlib import Path, PurePath

from codegraphrag.types import CodeNode

_ROOT_INDICATORS = (
    "Cargo.toml",
    "package.json",
    ".git",
    "pyproject.toml",
    "go.mod",
    "pom.xml",
    "build.gradle",
    "composer.json",
)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors; 0.0 for mismatched or zero vectors."""
    if len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def detect_project_root(start: str | Path | None = None) -> Path:
    """The nearest directory at or above start holding a project marker, else start."""
    origin = Path(start) if start is not None else Path.cwd()
    for directory in (origin, *origin.parents):
        if any((directory / marker).exists() for marker in _ROOT_INDICATORS):
            return directory
    return origin


def to_relative_path(absolute_path: str, project_root: str | Path) -> str:
    """The path relative to the project root; raises ValueError if outside it."""
    try:
        relative = PurePath(absolute_path).relative_to(PurePath(project_root))
    except ValueError:
        raise ValueError(
            f"Path {absolute_path} is not within project root {project_root}"
        ) from None
    text = str(relative)
    return "" if text == "." else text


def render_nodes_json(nodes: Sequence[CodeNode]) -> None:
    """Print the nodes as indented JSON."""
    print(json.dumps([node.to_dict() for node in nodes], indent=2, ensure_ascii=False))


def nodes_to_markdown(nodes: Sequence[CodeNode]) -> str:
    """Render nodes as Markdown, grouped by file path."""
    if not nodes:
        return "No matching nodes found."

    by_file: dict[str, list[CodeNode]] = {}
    for node in nodes:
        by_file.setdefault(node.path, []).append(node)

    parts = [f"# Found {len(nodes)} GraphRAG nodes\n\n"]
    for file_path, file_nodes in by_file.items():
        parts.append(f"## File: {file_path}\n\n")
        for node in file_nodes:
            parts.append(f"### {node.kind} `{node.name}`\n")
            parts.append(f"**ID:** {node.id}  \n")
            parts.append(f"**Description:** {node.description}  \n")
            if node.symbols:
                parts.append("**Symbols:**  \n")
                parts.extend(
                    f"- `{symbol}`  \n"
                    for symbol in sorted(set(node.symbols))
                    if "_" not in symbol
                )
            parts.append("\n")
        parts.append("---\n\n")
    return "".join(parts)


def _strip_repeated(text: str, prefix: str) -> str:
    while prefix and text.startswith(prefix):
        text = text[len(prefix):]
    return text


def symbols_match(import_name: str, export_name: str) -> bool:
    """Whether an imported name refers to an exported one, ignoring marker prefixes."""
    if import_name == export_name:
        return True
    clean_import = import_name
    for prefix in ("import_", "use_", "from_"):
        clean_import = _strip_repeated(clean_import, prefix)
    clean_export = export_name
    for prefix in ("export_", "pub_", "public_"):
        clean_export = _strip_repeated(clean_export, prefix)
    return clean_import == clean_export


def is_parent_child_relationship(path1: str, path2: str) -> bool:
    """Whether one path is exactly one level below the other."""
    parts1 = path1.split("/")
    parts2 = path2.split("/")
    if abs(len(parts1) - len(parts2)) != 1:
        return False
    shorter, longer = (parts1, parts2) if len(parts1) < len(parts2) else (parts2, parts1)
    return longer[: len(shorter)] == shorter