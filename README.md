# codegraphrag

A library for working with a code knowledge graph. Each node is a source
file, edges are typed relationships between files, and the graph can be
condensed into a short Markdown overview for a given task.

## Installation

```
pip install codegraphrag
```

To run the tests, install the `test` extra as well:

```
pip install "codegraphrag[test]"
pytest
```

## Modules

- `codegraphrag.embedding`
  - `parse_provider_model` splits a `provider:model` string. Unknown
    providers, and strings without a prefix, give `FASTEMBED`.
  - `EmbeddingConfig` holds a code model and a text model.
    `active_provider()` returns the provider of the code model.
    `vector_dimension(provider, model)` returns the size of a known model and
    raises `ValueError` for any other. `api_key(provider)` reads
    `JINA_API_KEY`, `VOYAGE_API_KEY` or `GOOGLE_API_KEY` from the environment.
  - `split_texts_into_token_limited_batches` groups texts into batches that
    respect both a count limit and a token limit. By default it counts words
    and punctuation marks; any counting function can be passed instead.
  - `calculate_content_hash` and `calculate_unique_content_hash` return
    SHA-256 hex digests. The second one also hashes the file path.
- `codegraphrag.types` holds the data model as dataclasses: `CodeNode`,
  `CodeRelationship`, `FunctionInfo`, `CodeGraph` and `CodeBlock`.
- `codegraphrag.utils` provides `cosine_similarity`, `detect_project_root`,
  `to_relative_path`, `symbols_match` and `is_parent_child_relationship`.
  `nodes_to_markdown` renders nodes as Markdown and `render_nodes_json`
  prints them as JSON.
- `codegraphrag.relationships`
  - `discover_relationships` finds relationships from new files to all
    nodes: imports, siblings in the same directory, path hierarchy, and the
    `mod.rs`, `lib.rs`/`main.rs`, `index.js` and `__init__.py` conventions.
  - `extract_imports_exports`, `extract_functions_from_block`,
    `determine_file_kind` and `generate_simple_description` derive file
    metadata from symbol names and paths.
- `codegraphrag.graph_optimization`
  - `GraphOptimizer.extract_task_subgraph` picks the nodes most similar to
    a query embedding, the relationships between them, and up to 20
    neighbouring nodes. The result is a `TaskFocusedSubgraph` within a token
    budget.
  - `generate_task_focused_view` renders that subgraph as Markdown, together
    with the most relevant code blocks.
- `codegraphrag.ai`: `AIEnhancements` sends prompts to an OpenRouter chat
  completion endpoint through `requests`. It asks for file descriptions and
  for architectural relationships. A failed call raises `LLMError`.

## Example

```python
from codegraphrag.embedding import EmbeddingConfig, parse_provider_model
from codegraphrag.relationships import discover_relationships
from codegraphrag.types import CodeNode

provider, model = parse_provider_model("jinaai:jina-embeddings-v3")
dim = EmbeddingConfig().vector_dimension(provider, model)  # 1024

a = CodeNode(id="src/a.rs", name="a", kind="source_file", path="src/a.rs",
             description="", imports=["helper"], size_lines=10, language="rust")
b = CodeNode(id="src/b.rs", name="b", kind="source_file", path="src/b.rs",
             description="", exports=["helper"], size_lines=10, language="rust")
for rel in discover_relationships([a], [a, b]):
    print(rel.source, rel.relation_type, rel.target)
```

The model features need an API key. You pass it to `AIEnhancements` yourself;
the package does not read it from a file or from the environment.

## What the package does not do

- It has no command-line tool.
- It does not parse source files into code blocks. You provide the
  `CodeBlock` objects.
- It does not compute embeddings. Node embeddings and query embeddings must
  come from elsewhere. `generate_block_embedding` only derives a fixed vector
  from a block's hash.
- It does not store the graph. `CodeGraph` lives in memory only.