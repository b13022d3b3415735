import json

from codegraphrag.types import (
    CodeBlock,
    CodeGraph,
    CodeNode,
    CodeRelationship,
    FunctionInfo,
)


def _function():
    return FunctionInfo(name="run", signature="run(...)", start_line=3, end_line=8)


def _node():
    return CodeNode(
        id="src/a.rs",
        name="a",
        kind="source_file",
        path="src/a.rs",
        description="a rust file",
        symbols=["function_run"],
        hash="abc",
        embedding=[0.5, 0.25],
        imports=["serde"],
        exports=["run"],
        functions=[_function()],
        size_lines=12,
        language="rust",
    )


def test_function_info_to_dict_keeps_values():
    info = _function()
    data = info.to_dict()
    assert data["name"] == info.name
    assert data["start_line"] == info.start_line
    assert data["calls"] == []
    assert data["return_type"] is None


def test_code_node_to_dict_field_order():
    data = _node().to_dict()
    assert list(data) == [
        "id",
        "name",
        "kind",
        "path",
        "description",
        "symbols",
        "hash",
        "embedding",
        "imports",
        "exports",
        "functions",
        "size_lines",
        "language",
    ]


def test_code_node_to_dict_nests_functions():
    node = _node()
    data = node.to_dict()
    assert data["functions"] == [node.functions[0].to_dict()]


def test_code_node_to_dict_is_json_round_trippable():
    data = _node().to_dict()
    assert json.loads(json.dumps(data)) == data


def test_code_node_to_dict_is_a_copy():
    node = _node()
    data = node.to_dict()
    data["symbols"].append("extra")
    assert node.symbols == ["function_run"]


def test_code_node_defaults():
    node = CodeNode(id="x", name="x", kind="file", path="x", description="d")
    assert node.symbols == []
    assert node.functions == []
    assert node.language == "unknown"
    assert node.size_lines == 0


def test_relationship_to_dict():
    rel = CodeRelationship("a", "b", "imports", "desc", 0.9, 1.0)
    assert rel.to_dict() == {
        "source": "a",
        "target": "b",
        "relation_type": "imports",
        "description": "desc",
        "confidence": 0.9,
        "weight": 1.0,
    }


def test_code_graph_starts_empty_and_is_independent():
    first = CodeGraph()
    second = CodeGraph()
    first.nodes["a"] = _node()
    assert second.nodes == {}
    assert second.relationships == []


def test_code_block_defaults():
    block = CodeBlock(path="a.py", language="python", content="x = 1")
    assert block.symbols == []
    assert (block.start_line, block.end_line) == (0, 0)