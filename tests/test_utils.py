import json
from pathlib import Path

import pytest

from codegraphrag.types import CodeNode
from codegraphrag.utils import (
    cosine_similarity,
    detect_project_root,
    is_parent_child_relationship,
    nodes_to_markdown,
    render_nodes_json,
    symbols_match,
    to_relative_path,
)


def _node(node_id, symbols=()):
    return CodeNode(
        id=node_id,
        name=Path(node_id).stem,
        kind="source_file",
        path=node_id,
        description=f"about {node_id}",
        symbols=list(symbols),
        embedding=[0.5, 0.25],
    )


def test_cosine_of_identical_vectors_is_one():
    assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)


def test_cosine_of_orthogonal_vectors_is_zero():
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0


def test_cosine_of_mismatched_lengths_is_zero():
    assert cosine_similarity([1.0, 2.0], [1.0]) == 0.0


def test_cosine_with_zero_vector_is_zero():
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


def test_cosine_is_symmetric_and_bounded():
    a, b = [0.3, -1.2, 4.0], [2.0, 0.5, -0.7]
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))
    assert -1.0 <= cosine_similarity(a, b) <= 1.0


def test_detect_project_root_walks_up(tmp_path):
    project = tmp_path / "proj"
    nested = project / "a" / "b"
    nested.mkdir(parents=True)
    (project / "pyproject.toml").write_text("")
    assert detect_project_root(nested) == project


def test_detect_project_root_prefers_nearest_marker(tmp_path):
    outer = tmp_path / "outer"
    inner = outer / "inner"
    inner.mkdir(parents=True)
    (outer / ".git").mkdir()
    (inner / "go.mod").write_text("")
    assert detect_project_root(inner) == inner


def test_to_relative_path_inside_root():
    result = to_relative_path("/proj/src/a.rs", "/proj")
    assert result == str(Path("src") / "a.rs")


def test_to_relative_path_of_root_itself_is_empty():
    assert to_relative_path("/proj", "/proj") == ""


def test_to_relative_path_outside_root_raises():
    with pytest.raises(ValueError, match="is not within project root"):
        to_relative_path("/other/a.rs", "/proj")


def test_render_nodes_json_prints_node_dicts(capsys):
    nodes = [_node("src/a.rs", ["Foo"])]
    render_nodes_json(nodes)
    printed = json.loads(capsys.readouterr().out)
    assert printed == [nodes[0].to_dict()]


def test_markdown_for_no_nodes():
    assert nodes_to_markdown([]) == "No matching nodes found."


def test_markdown_groups_by_file_and_hides_typed_symbols():
    nodes = [
        _node("src/a.rs", ["Foo", "function_bar", "Foo"]),
        _node("src/b.rs"),
    ]
    markdown = nodes_to_markdown(nodes)
    assert markdown.startswith("# Found 2 GraphRAG nodes\n\n")
    assert "## File: src/a.rs" in markdown
    assert "## File: src/b.rs" in markdown
    assert markdown.count("- `Foo`") == 1
    assert "function_bar" not in markdown
    assert markdown.count("---\n\n") == 2


@pytest.mark.parametrize(
    ("imported", "exported", "expected"),
    [
        ("foo", "foo", True),
        ("import_foo", "export_foo", True),
        ("use_use_x", "pub_x", True),
        ("from_mod", "public_mod", True),
        ("foo", "bar", False),
        ("import_foo", "export_bar", False),
    ],
)
def test_symbols_match(imported, exported, expected):
    assert symbols_match(imported, exported) is expected


@pytest.mark.parametrize(
    ("path1", "path2", "expected"),
    [
        ("src/a", "src/a/b.rs", True),
        ("src/a", "src/b/c.rs", False),
        ("a/b", "a/b", False),
        ("a", "a/b/c", False),
    ],
)
def test_is_parent_child_relationship(path1, path2, expected):
    assert is_parent_child_relationship(path1, path2) is expected
    assert is_parent_child_relationship(path2, path1) is expected