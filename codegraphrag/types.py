"""Data structures of the code knowledge graph."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class FunctionInfo:
    """A function found in a file, with its location and call information."""

    name: str
    signature: str
    start_line: int
    end_line: int
    calls: list[str] = field(default_factory=list)
    called_by: list[str] = field(default_factory=list)
    parameters: list[str] = field(default_factory=list)
    return_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """A JSON-ready dictionary of this function."""
        return asdict(self)


@dataclass
class CodeNode:
    """A file or module in the graph, identified by its project-relative path."""

    id: str
    name: str
    kind: str
    path: str
    description: str
    symbols: list[str] = field(default_factory=list)
    hash: str = ""
    embedding: list[float] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)
    functions: list[FunctionInfo] = field(default_factory=list)
    size_lines: int = 0
    language: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        """A JSON-ready dictionary of this node, functions included."""
        return asdict(self)


@dataclass
class CodeRelationship:
    """A directed, typed edge between two nodes."""

    source: str
    target: str
    relation_type: str
    description: str
    confidence: float
    weight: float

    def to_dict(self) -> dict[str, Any]:
        """A JSON-ready dictionary of this relationship."""
        return asdict(self)


@dataclass
class CodeGraph:
    """All nodes, keyed by id, and the relationships between them."""

    nodes: dict[str, CodeNode] = field(default_factory=dict)
    relationships: list[CodeRelationship] = field(default_factory=list)


@dataclass
class CodeBlock:
    """A block of source code taken from a file during indexing."""

    path: str
    language: str
    content: str
    symbols: list[str] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0
    hash: str = ""