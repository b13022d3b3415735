"""Rule-based discovery of relationships between files, and file metadata helpers."""

from __future__ import annotations

import posixpath
from collections.abc import Callable, Iterator, Sequence

from codegraphrag.types import CodeBlock, CodeNode, CodeRelationship, FunctionInfo
from codegraphrag.utils import is_parent_child_relationship, symbols_match


def _parent_dir(path: str) -> str | None:
    trimmed = path.rstrip("/")
    if not trimmed:
        return None
    return posixpath.dirname(trimmed)


def _others(source: CodeNode, nodes: Sequence[CodeNode]) -> Iterator[CodeNode]:
    return (node for node in nodes if node.id != source.id)


def _import_relationships(
    source: CodeNode, all_nodes: Sequence[CodeNode]
) -> Iterator[CodeRelationship]:
    for imported in source.imports:
        for target in _others(source, all_nodes):
            if any(symbols_match(imported, exp) for exp in target.exports) or any(
                symbols_match(imported, sym) for sym in target.symbols
            ):
                yield CodeRelationship(
                    source=source.id,
                    target=target.id,
                    relation_type="imports",
                    description=f"Imports {imported} from {target.name}",
                    confidence=0.9,
                    weight=1.0,
                )


def _sibling_relationships(
    source: CodeNode, all_nodes: Sequence[CodeNode]
) -> Iterator[CodeRelationship]:
    source_dir = _parent_dir(source.path)
    source_dir = "." if source_dir is None else source_dir
    for other in _others(source, all_nodes):
        other_dir = _parent_dir(other.path)
        other_dir = "." if other_dir is None else other_dir
        if source_dir == other_dir and source.language == other.language:
            yield CodeRelationship(
                source=source.id,
                target=other.id,
                relation_type="sibling_module",
                description=f"Same directory: {source_dir}",
                confidence=0.6,
                weight=0.5,
            )


def _hierarchy_relationships(
    source: CodeNode, all_nodes: Sequence[CodeNode]
) -> Iterator[CodeRelationship]:
    for other in _others(source, all_nodes):
        if is_parent_child_relationship(source.path, other.path):
            if len(source.path) < len(other.path):
                parent, child = source.id, other.id
            else:
                parent, child = other.id, source.id
            yield CodeRelationship(
                source=parent,
                target=child,
                relation_type="contains",
                description="Hierarchical module relationship",
                confidence=0.8,
                weight=0.7,
            )


def _rust_relationships(
    source: CodeNode, all_nodes: Sequence[CodeNode]
) -> Iterator[CodeRelationship]:
    for other in _others(source, all_nodes):
        if other.language != "rust":
            continue
        if source.name == "mod" and other.path.startswith(source.path.replace("/mod.rs", "/")):
            yield CodeRelationship(
                source=source.id,
                target=other.id,
                relation_type="mod_declaration",
                description="Rust module declaration",
                confidence=0.8,
                weight=0.8,
            )
        if source.name in ("lib", "main"):
            source_dir = _parent_dir(source.path) or ""
            if other.path.startswith(source_dir):
                yield CodeRelationship(
                    source=source.id,
                    target=other.id,
                    relation_type="crate_root",
                    description="Rust crate root relationship",
                    confidence=0.7,
                    weight=0.6,
                )


def _js_ts_relationships(
    source: CodeNode, all_nodes: Sequence[CodeNode]
) -> Iterator[CodeRelationship]:
    if source.name != "index":
        return
    source_dir = _parent_dir(source.path) or ""
    for other in _others(source, all_nodes):
        if other.language not in ("javascript", "typescript"):
            continue
        if other.path.startswith(source_dir) and other.name != "index":
            yield CodeRelationship(
                source=source.id,
                target=other.id,
                relation_type="index_module",
                description="JavaScript index module relationship",
                confidence=0.7,
                weight=0.6,
            )


def _python_relationships(
    source: CodeNode, all_nodes: Sequence[CodeNode]
) -> Iterator[CodeRelationship]:
    if source.name != "__init__":
        return
    source_dir = _parent_dir(source.path) or ""
    for other in _others(source, all_nodes):
        if other.language != "python":
            continue
        if other.path.startswith(source_dir) and other.name != "__init__":
            yield CodeRelationship(
                source=source.id,
                target=other.id,
                relation_type="package_init",
                description="Python package initialization",
                confidence=0.8,
                weight=0.7,
            )


_LANGUAGE_RULES: dict[
    str, Callable[[CodeNode, Sequence[CodeNode]], Iterator[CodeRelationship]]
] = {
    "rust": _rust_relationships,
    "javascript": _js_ts_relationships,
    "typescript": _js_ts_relationships,
    "python": _python_relationships,
}


def _deduplicate(relationships: list[CodeRelationship]) -> list[CodeRelationship]:
    unique: dict[tuple[str, str, str], CodeRelationship] = {}
    for rel in sorted(relationships, key=lambda r: (r.source, r.target, r.relation_type)):
        unique.setdefault((rel.source, rel.target, rel.relation_type), rel)
    return list(unique.values())


def discover_relationships(
    new_files: Sequence[CodeNode], all_nodes: Sequence[CodeNode]
) -> list[CodeRelationship]:
    """Find relationships from new files to all nodes, sorted and without duplicates."""
    found: list[CodeRelationship] = []
    for source in new_files:
        found.extend(_import_relationships(source, all_nodes))
        found.extend(_sibling_relationships(source, all_nodes))
        found.extend(_hierarchy_relationships(source, all_nodes))
        rule = _LANGUAGE_RULES.get(source.language)
        if rule is not None:
            found.extend(rule(source, all_nodes))
    return _deduplicate(found)


def extract_functions_from_block(block: CodeBlock) -> list[FunctionInfo]:
    """Function records for the block's "function_" symbols."""
    functions = []
    for symbol in block.symbols:
        if "function_" not in symbol and "method_" not in symbol:
            continue
        if symbol.startswith("function_"):
            name = symbol[len("function_"):]
            functions.append(
                FunctionInfo(
                    name=name,
                    signature=f"{name}(...)",
                    start_line=block.start_line,
                    end_line=block.end_line,
                )
            )
    return functions


def _strip_prefix(text: str, prefix: str) -> str | None:
    return text[len(prefix):] if text.startswith(prefix) else None


def extract_imports_exports(
    symbols: Sequence[str], language: str, relative_path: str
) -> tuple[list[str], list[str]]:
    """Imports and exports inferred from symbol names, each sorted and unique."""
    imports: set[str] = set()
    exports: set[str] = set()

    for symbol in symbols:
        if "import_" in symbol:
            name = _strip_prefix(symbol, "import_")
            if name is not None:
                imports.add(name)
        if "export_" in symbol or "public_" in symbol:
            name = _strip_prefix(symbol, "export_")
            if name is None:
                name = _strip_prefix(symbol, "public_")
            if name is not None:
                exports.add(name)

    if language == "rust":
        for symbol in symbols:
            if symbol.startswith("use_"):
                imports.add(symbol[len("use_"):])
            if symbol.startswith("pub_"):
                exports.add(symbol[len("pub_"):])
    elif language in ("javascript", "typescript"):
        for symbol in symbols:
            if "require_" in symbol or "from_" in symbol:
                imports.add(symbol)
            if "module_exports" in symbol or "export_" in symbol:
                exports.add(symbol)
    elif language == "python":
        for symbol in symbols:
            if "import_" in symbol or "from_" in symbol:
                imports.add(symbol)
            if "function_" in symbol or "class_" in symbol:
                exports.add(symbol)

    return sorted(imports), sorted(exports)


def determine_file_kind(relative_path: str) -> str:
    """Classify a file by its path."""
    if "/src/" in relative_path or "/lib/" in relative_path:
        return "source_file"
    if any(marker in relative_path for marker in ("/test", "_test.", ".test.")):
        return "test_file"
    if relative_path.endswith((".md", ".txt", ".rst")):
        return "documentation"
    if "/config" in relative_path or ".config" in relative_path:
        return "config_file"
    if "/examples" in relative_path or "/demo" in relative_path:
        return "example_file"
    return "file"


def generate_simple_description(
    file_name: str, language: str, symbols: Sequence[str], lines: int
) -> str:
    """A one-line description counting functions and classes."""
    function_count = sum(1 for s in symbols if "function_" in s or "method_" in s)
    class_count = sum(1 for s in symbols if "class_" in s or "struct_" in s)
    if function_count and class_count:
        return (
            f"{file_name} {language} file with {function_count} functions "
            f"and {class_count} classes ({lines} lines)"
        )
    if function_count:
        return f"{file_name} {language} file with {function_count} functions ({lines} lines)"
    if class_count:
        return f"{file_name} {language} file with {class_count} classes ({lines} lines)"
    return f"{file_name} {language} file ({lines} lines)"