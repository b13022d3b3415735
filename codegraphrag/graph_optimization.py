"""Task-focused subgraph extraction and compact Markdown views of the code graph."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from codegraphrag.types import CodeBlock, CodeGraph, CodeNode, CodeRelationship
from codegraphrag.utils import cosine_similarity

TOKENS_PER_NODE = 100
TOKENS_PER_RELATIONSHIP = 50
MAX_NODES_TO_SHOW = 20
BLOCK_EMBEDDING_DIMENSION = 128

_COMMON_WORDS = frozenset(
    {
        "about", "after", "again", "below", "could", "every", "first", "found", "great",
        "house", "large", "learn", "never", "other", "place", "plant", "point", "right",
        "small", "sound", "spell", "still", "study", "their", "there", "these", "thing",
        "think", "three", "water", "where", "which", "world", "would", "write",
    }
)


def _trim_non_alphanumeric(word: str) -> str:
    start, end = 0, len(word)
    while start < end and not word[start].isalnum():
        start += 1
    while end > start and not word[end - 1].isalnum():
        end -= 1
    return word[start:end]


def _byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


def _last_segment(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def _lines(content: str) -> list[str]:
    parts = content.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


@dataclass
class TaskFocusedSubgraph:
    """A small part of the code graph chosen for one task."""

    nodes: list[CodeNode] = field(default_factory=list)
    relationships: list[CodeRelationship] = field(default_factory=list)
    relevant_files: set[str] = field(default_factory=set)
    key_concepts: dict[str, float] = field(default_factory=dict)

    def estimated_token_count(self) -> int:
        """A rough count of the tokens this subgraph would take in a prompt."""
        return (
            len(self.nodes) * TOKENS_PER_NODE
            + len(self.relationships) * TOKENS_PER_RELATIONSHIP
        )

    def _has_node(self, node_id: str) -> bool:
        return any(node.id == node_id for node in self.nodes)

    def add_node(self, node: CodeNode) -> None:
        """Record the node's file and add the node unless its id is present."""
        self.relevant_files.add(node.path)
        if not self._has_node(node.id):
            self.nodes.append(node)

    def add_relationship(self, relationship: CodeRelationship) -> None:
        """Add a relationship unless one with the same ends and type is present."""
        key = (relationship.source, relationship.target, relationship.relation_type)
        if not any((r.source, r.target, r.relation_type) == key for r in self.relationships):
            self.relationships.append(relationship)

    def add_key_concept(self, concept: str, relevance: float) -> None:
        """Set the relevance of a concept."""
        self.key_concepts[concept] = relevance

    def to_markdown(self) -> str:
        """A concise Markdown summary of the subgraph."""
        parts = [
            f"# Code Knowledge Graph: {len(self.nodes)} nodes, "
            f"{len(self.relationships)} relationships\n\n"
        ]
        parts.extend(self._concepts_section())
        parts.extend(self._files_section())
        parts.extend(self._nodes_section())
        parts.extend(self._relationships_section())
        return "".join(parts)

    def _concepts_section(self) -> list[str]:
        if not self.key_concepts:
            return []
        ranked = sorted(self.key_concepts.items(), key=lambda item: item[1], reverse=True)
        parts = ["## Key Concepts\n\n"]
        parts.extend(
            f"- **{concept}** (relevance: {relevance:.2f})\n" for concept, relevance in ranked[:10]
        )
        parts.append("\n")
        return parts

    def _files_section(self) -> list[str]:
        if not self.relevant_files:
            return []
        files = sorted(self.relevant_files)
        parts = ["## Relevant Files\n\n"]
        parts.extend(f"- `{file}`\n" for file in files[:15])
        if len(files) > 15:
            parts.append(f"- *(and {len(files) - 15} more files)*\n")
        parts.append("\n")
        return parts

    def _nodes_section(self) -> list[str]:
        if not self.nodes:
            return []
        by_kind: dict[str, list[CodeNode]] = {}
        for node in self.nodes:
            by_kind.setdefault(node.kind, []).append(node)

        parts = ["## Key Components\n\n"]
        shown = 0
        for kind, nodes in by_kind.items():
            parts.append(f"### {kind.upper()}s\n\n")
            for node in nodes[:5]:
                parts.append(f"- **{node.name}**: {node.description}\n")
                shown += 1
                if shown >= MAX_NODES_TO_SHOW:
                    break
            if len(nodes) > 5:
                parts.append(f"- *(and {len(nodes) - 5} more {kind}s)*\n")
            parts.append("\n")
            if shown >= MAX_NODES_TO_SHOW:
                break
        return parts

    def _relationships_section(self) -> list[str]:
        if not self.relationships:
            return []
        by_type: dict[str, list[CodeRelationship]] = {}
        for rel in self.relationships:
            by_type.setdefault(rel.relation_type, []).append(rel)
        ranked = sorted(by_type.items(), key=lambda item: len(item[1]), reverse=True)

        parts = ["## Relationships\n\n"]
        for rel_type, rels in ranked[:5]:
            parts.append(f"### {rel_type} relationships\n\n")
            parts.extend(
                f"- `{_last_segment(rel.source)}` → `{_last_segment(rel.target)}`\n"
                for rel in rels[:3]
            )
            if len(rels) > 3:
                parts.append(f"- *(and {len(rels) - 3} more {rel_type} relationships)*\n")
            parts.append("\n")
        return parts


@dataclass
class GraphOptimizer:
    """Extracts task-specific subgraphs within a token budget."""

    max_token_budget: int

    def extract_task_subgraph(
        self,
        task_description: str,
        query_embedding: Sequence[float],
        full_graph: CodeGraph,
    ) -> TaskFocusedSubgraph:
        """The nodes most similar to the query, their links and close neighbours."""
        subgraph = TaskFocusedSubgraph()
        relevant = self._find_relevant_nodes(query_embedding, full_graph, 20)

        for node, relevance in relevant:
            subgraph.add_node(node)
            self._extract_key_concepts(subgraph, node, relevance)
            if subgraph.estimated_token_count() > self.max_token_budget:
                break

        node_ids = {node.id for node, _ in relevant}
        for rel in full_graph.relationships:
            if rel.source in node_ids and rel.target in node_ids:
                subgraph.add_relationship(rel)

        additional: dict[str, None] = {}
        for rel in full_graph.relationships:
            if rel.source in node_ids and rel.target not in node_ids:
                additional[rel.target] = None
            elif rel.target in node_ids and rel.source not in node_ids:
                additional[rel.source] = None
            if subgraph.estimated_token_count() > self.max_token_budget:
                break

        added = 0
        for node_id in additional:
            node = full_graph.nodes.get(node_id)
            if node is None:
                continue
            if added >= 20:
                break
            subgraph.add_node(node)
            added += 1
            for rel in full_graph.relationships:
                if (
                    node_id in (rel.source, rel.target)
                    and subgraph._has_node(rel.source)
                    and subgraph._has_node(rel.target)
                ):
                    subgraph.add_relationship(rel)

        return subgraph

    def generate_task_focused_view(
        self,
        task_description: str,
        query_embedding: Sequence[float],
        full_graph: CodeGraph,
        code_blocks: Sequence[CodeBlock],
    ) -> str:
        """A Markdown overview of the graph and code snippets relevant to a task."""
        subgraph = self.extract_task_subgraph(task_description, query_embedding, full_graph)
        snippets = self._find_relevant_code_snippets(query_embedding, subgraph, code_blocks, 5)

        parts = [
            "# Task-Focused Code Overview\n\n",
            f"**Task:** {task_description}\n\n",
            "## Knowledge Graph Summary\n\n",
            subgraph.to_markdown(),
        ]
        if snippets:
            parts.append("## Relevant Code Snippets\n\n")
            for number, (block, similarity) in enumerate(snippets, start=1):
                parts.append(_render_snippet(number, block, similarity))
        return "".join(parts)

    @staticmethod
    def _find_relevant_nodes(
        query_embedding: Sequence[float], graph: CodeGraph, limit: int
    ) -> list[tuple[CodeNode, float]]:
        scored = [
            (node, cosine_similarity(query_embedding, node.embedding))
            for node in graph.nodes.values()
        ]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:limit]

    @staticmethod
    def _extract_key_concepts(
        subgraph: TaskFocusedSubgraph, node: CodeNode, relevance: float
    ) -> None:
        subgraph.add_key_concept(node.name, relevance)
        subgraph.add_key_concept(node.kind, relevance * 0.8)
        for word in node.description.split():
            if _byte_length(word) > 4 and is_likely_technical_term(word):
                subgraph.add_key_concept(_trim_non_alphanumeric(word), relevance * 0.5)

    @staticmethod
    def _find_relevant_code_snippets(
        query_embedding: Sequence[float],
        subgraph: TaskFocusedSubgraph,
        code_blocks: Sequence[CodeBlock],
        limit: int,
    ) -> list[tuple[CodeBlock, float]]:
        relevant: list[tuple[CodeBlock, float]] = []
        for block in code_blocks:
            if block.path not in subgraph.relevant_files:
                continue
            similarity = cosine_similarity(query_embedding, generate_block_embedding(block))
            if any(symbol in subgraph.key_concepts for symbol in block.symbols):
                similarity *= 1.5
            if similarity > 0.5:
                relevant.append((block, similarity))
        relevant.sort(key=lambda item: item[1], reverse=True)
        return relevant[:limit]


def _render_snippet(number: int, block: CodeBlock, similarity: float) -> str:
    parts = [
        f"### Snippet {number} (Relevance: {similarity:.2f})\n\n",
        f"File: `{block.path}`\n\n",
    ]
    display_symbols = [symbol for symbol in block.symbols if "_" not in symbol]
    if display_symbols:
        parts.append("**Symbols:** ")
        parts.append(", ".join(f"`{symbol}`" for symbol in display_symbols))
        parts.append("\n\n")

    parts.append("```")
    if block.language and block.language != "text":
        parts.append(block.language)
    parts.append("\n")

    lines = _lines(block.content)
    if len(lines) > 20:
        parts.extend(f"{line}\n" for line in lines[:10])
        parts.append(f"// ... {len(lines) - 20} lines omitted ... for brevity\n")
        parts.extend(f"{line}\n" for line in lines[-10:])
    else:
        parts.append(block.content)
        if not block.content.endswith("\n"):
            parts.append("\n")
    parts.append("```\n\n")
    return "".join(parts)


def generate_block_embedding(block: CodeBlock) -> list[float]:
    """A deterministic unit vector derived from the block's hash."""
    vector = [0.0] * BLOCK_EMBEDDING_DIMENSION
    for index, byte in enumerate(block.hash.encode("utf-8")):
        vector[index % BLOCK_EMBEDDING_DIMENSION] = byte / 255.0
    norm = math.sqrt(sum(value * value for value in vector))
    if norm > 0.0:
        vector = [value / norm for value in vector]
    return vector


def is_likely_technical_term(word: str) -> bool:
    """Whether a word looks like a technical term rather than common English."""
    cleaned = _trim_non_alphanumeric(word).lower()
    if cleaned in _COMMON_WORDS:
        return False
    has_mixed_case = any(c.isupper() for c in cleaned) and any(c.islower() for c in cleaned)
    return has_mixed_case or "_" in cleaned or _byte_length(cleaned) > 6