import math

import pytest

from codegraphrag.graph_optimization import (
    GraphOptimizer,
    TaskFocusedSubgraph,
    generate_block_embedding,
    is_likely_technical_term,
)
from codegraphrag.types import CodeBlock, CodeGraph, CodeNode, CodeRelationship


def make_node(node_id, embedding=None, kind="source_file", description="plain file"):
    return CodeNode(
        id=node_id,
        name=node_id.rsplit("/", 1)[-1].split(".")[0],
        kind=kind,
        path=node_id,
        description=description,
        embedding=list(embedding or []),
    )


def make_rel(source, target, relation_type="imports"):
    return CodeRelationship(
        source=source,
        target=target,
        relation_type=relation_type,
        description="d",
        confidence=0.9,
        weight=1.0,
    )


def test_estimated_token_count_uses_fixed_costs():
    subgraph = TaskFocusedSubgraph()
    subgraph.add_node(make_node("a.rs"))
    subgraph.add_node(make_node("b.rs"))
    subgraph.add_relationship(make_rel("a.rs", "b.rs"))
    assert subgraph.estimated_token_count() == 250


def test_add_node_deduplicates_by_id_and_tracks_file():
    subgraph = TaskFocusedSubgraph()
    subgraph.add_node(make_node("src/a.rs"))
    subgraph.add_node(make_node("src/a.rs"))
    assert len(subgraph.nodes) == 1
    assert subgraph.relevant_files == {"src/a.rs"}


def test_add_relationship_deduplicates_on_ends_and_type():
    subgraph = TaskFocusedSubgraph()
    subgraph.add_relationship(make_rel("a", "b"))
    subgraph.add_relationship(make_rel("a", "b"))
    subgraph.add_relationship(make_rel("a", "b", "contains"))
    assert [r.relation_type for r in subgraph.relationships] == ["imports", "contains"]


def test_empty_subgraph_markdown_is_only_heading():
    assert (
        TaskFocusedSubgraph().to_markdown()
        == "# Code Knowledge Graph: 0 nodes, 0 relationships\n\n"
    )


def test_markdown_orders_concepts_by_relevance():
    subgraph = TaskFocusedSubgraph()
    subgraph.add_key_concept("low", 0.1)
    subgraph.add_key_concept("high", 0.9)
    text = subgraph.to_markdown()
    assert "## Key Concepts" in text
    assert text.index("**high**") < text.index("**low**")


def test_markdown_limits_file_list():
    subgraph = TaskFocusedSubgraph()
    for i in range(17):
        subgraph.add_node(make_node(f"f{i:02d}.py"))
    text = subgraph.to_markdown()
    assert "- `f00.py`" in text
    assert "- `f16.py`" not in text
    assert "- *(and 2 more files)*" in text


def test_markdown_relationship_uses_last_path_segment():
    subgraph = TaskFocusedSubgraph()
    subgraph.add_relationship(make_rel("src/a/b.rs", "src/c.rs"))
    text = subgraph.to_markdown()
    assert "### imports relationships" in text
    assert "- `b.rs` → `c.rs`" in text


def test_markdown_groups_nodes_by_upper_case_kind():
    subgraph = TaskFocusedSubgraph()
    subgraph.add_node(make_node("x.py", kind="test_file", description="checks things"))
    text = subgraph.to_markdown()
    assert "### TEST_FILEs" in text
    assert "- **x**: checks things" in text


@pytest.mark.parametrize(
    "word, expected",
    [
        ("implementation", True),
        ("my_var", True),
        ("about", False),
        ("'which'", False),
        ("tiny", False),
    ],
)
def test_is_likely_technical_term(word, expected):
    assert is_likely_technical_term(word) is expected


def test_block_embedding_is_unit_length_and_deterministic():
    block = CodeBlock(path="a.py", language="python", content="x", hash="abc123")
    first = generate_block_embedding(block)
    assert len(first) == 128
    assert math.isclose(math.sqrt(sum(v * v for v in first)), 1.0, rel_tol=1e-9)
    assert generate_block_embedding(block) == first


def test_block_embedding_of_empty_hash_is_zero():
    block = CodeBlock(path="a.py", language="python", content="x", hash="")
    assert generate_block_embedding(block) == [0.0] * 128


def _graph():
    near = make_node("src/near.rs", [1.0, 0.0], description="handles serialization")
    mid = make_node("src/mid.rs", [0.7, 0.7])
    graph = CodeGraph(nodes={n.id: n for n in (near, mid)})
    graph.relationships.append(make_rel("src/near.rs", "src/mid.rs"))
    return graph


def test_extract_task_subgraph_collects_nodes_links_and_concepts():
    subgraph = GraphOptimizer(10_000).extract_task_subgraph("task", [1.0, 0.0], _graph())
    assert {n.id for n in subgraph.nodes} == {"src/near.rs", "src/mid.rs"}
    assert len(subgraph.relationships) == 1
    assert subgraph.key_concepts["near"] == pytest.approx(1.0)
    assert subgraph.key_concepts["source_file"] == pytest.approx(0.8)
    assert subgraph.key_concepts["serialization"] == pytest.approx(0.5)


def test_extract_task_subgraph_stops_at_budget():
    subgraph = GraphOptimizer(0).extract_task_subgraph("task", [1.0, 0.0], _graph())
    assert [n.id for n in subgraph.nodes] == ["src/near.rs"]
    assert "mid" not in subgraph.key_concepts


def test_extract_task_subgraph_adds_neighbours():
    graph = _graph()
    outsider = make_node("lib/outside.rs", [0.0, 0.0])
    graph.nodes[outsider.id] = outsider
    graph.relationships.append(make_rel("lib/outside.rs", "src/near.rs", "calls"))
    graph.nodes.update({f"n{i}": make_node(f"n{i}", [1.0, 0.0]) for i in range(20)})
    subgraph = GraphOptimizer(100_000).extract_task_subgraph("task", [1.0, 0.0], graph)
    ids = {n.id for n in subgraph.nodes}
    assert "lib/outside.rs" in ids
    assert any(r.source == "lib/outside.rs" for r in subgraph.relationships)


def _view_setup(content, language="rust", symbols=()):
    block = CodeBlock(
        path="src/near.rs",
        language=language,
        content=content,
        symbols=list(symbols),
        hash="deadbeef",
    )
    query = generate_block_embedding(block)
    node = make_node("src/near.rs", query)
    graph = CodeGraph(nodes={node.id: node})
    return block, query, graph


def test_task_focused_view_includes_snippet():
    block, query, graph = _view_setup("fn main() {}", symbols=["main", "function_main"])
    view = GraphOptimizer(10_000).generate_task_focused_view("fix it", query, graph, [block])
    assert view.startswith(
        "# Task-Focused Code Overview\n\n**Task:** fix it\n\n## Knowledge Graph Summary\n\n"
    )
    assert "## Relevant Code Snippets" in view
    assert "File: `src/near.rs`" in view
    assert "**Symbols:** `main`\n\n" in view
    assert "```rust\nfn main() {}\n```\n\n" in view


def test_task_focused_view_truncates_long_blocks():
    content = "\n".join(f"line{i}" for i in range(25))
    block, query, graph = _view_setup(content, language="text")
    view = GraphOptimizer(10_000).generate_task_focused_view("t", query, graph, [block])
    assert "```\nline0\n" in view
    assert "// ... 5 lines omitted ... for brevity\n" in view
    assert "line12\n" not in view
    assert "line24\n```" in view


def test_task_focused_view_skips_blocks_outside_subgraph():
    block, query, graph = _view_setup("x = 1")
    other = CodeBlock(path="elsewhere.rs", language="rust", content="y", hash="deadbeef")
    view = GraphOptimizer(10_000).generate_task_focused_view("t", query, graph, [other])
    assert "## Relevant Code Snippets" not in view