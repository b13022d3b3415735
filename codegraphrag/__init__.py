"""Code knowledge graph data model, relationship discovery and task-focused views."""

__version__ = "0.1.0"
__all__ = [
    "ai",
    "embedding",
    "graph_optimization",
    "relationships",
    "types",
    "utils",
]