"""Language-model assisted descriptions and architectural relationship discovery."""

from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from pathlib import PurePath
from typing import Any

import requests

from codegraphrag.relationships import discover_relationships
from codegraphrag.types import CodeBlock, CodeNode, CodeRelationship

CHAT_COMPLETIONS_URL = "https://openrouter.ai/api/v1/chat/completions"
REQUEST_TITLE = "codegraphrag"
AI_BATCH_SIZE = 3
MAX_SAMPLE_SIZE = 1500
MAX_DESCRIPTION_LENGTH = 300
MIN_ARCHITECTURAL_CONFIDENCE = 0.7
ARCHITECTURAL_WEIGHT = 0.9
REQUEST_TIMEOUT = 120

_IMPORTANT_LANGUAGES = frozenset({"rust", "typescript", "python", "go"})

_ARCHITECTURE_PROMPT_HEADER = (
    "You are an expert software architect. Analyze these code files and identify "
    "ARCHITECTURAL relationships.\n"
    "Focus on design patterns, dependency injection, factory patterns, observer patterns, etc.\n"
    "Look for relationships that go beyond simple imports - identify architectural "
    "significance.\n\n"
    "Respond with a JSON array of relationships. For each relationship, include:\n"
    "- source_path: relative path of source file\n"
    "- target_path: relative path of target file\n"
    "- relation_type: one of 'implements_pattern', 'dependency_injection', "
    "'factory_creates', 'observer_pattern', 'strategy_pattern', 'adapter_pattern', "
    "'decorator_pattern', 'architectural_dependency'\n"
    "- description: brief explanation of the architectural relationship\n"
    "- confidence: 0.0-1.0 confidence score\n\n"
)

_REQUIRED_TEXT_FIELDS = ("source_path", "target_path", "relation_type", "description")


class LLMError(RuntimeError):
    """A language-model call could not produce a response."""


def _count_functions(symbols: Sequence[str]) -> int:
    return sum(1 for s in symbols if "function_" in s or "method_" in s)


def _count_classes(symbols: Sequence[str]) -> int:
    return sum(1 for s in symbols if "class_" in s or "struct_" in s)


def _count_interfaces(symbols: Sequence[str]) -> int:
    return sum(1 for s in symbols if "interface_" in s or "trait_" in s)


def _deduplicate(relationships: list[CodeRelationship]) -> list[CodeRelationship]:
    unique: dict[tuple[str, str, str], CodeRelationship] = {}
    for rel in sorted(relationships, key=lambda r: (r.source, r.target, r.relation_type)):
        unique.setdefault((rel.source, rel.target, rel.relation_type), rel)
    return list(unique.values())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class AIEnhancements:
    """Uses a chat-completion model to describe files and find architectural links."""

    def __init__(
        self,
        api_key: str | None,
        description_model: str,
        relationship_model: str,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.description_model = description_model
        self.relationship_model = relationship_model
        self.session = session if session is not None else requests.Session()

    def discover_relationships_with_ai_enhancement(
        self, new_files: Sequence[CodeNode], all_nodes: Sequence[CodeNode]
    ) -> list[CodeRelationship]:
        """Rule-based relationships plus model-found architectural ones, deduplicated."""
        relationships = discover_relationships(new_files, all_nodes)
        relationships.extend(self._discover_complex_relationships(new_files, all_nodes))
        return _deduplicate(relationships)

    def _discover_complex_relationships(
        self, new_files: Sequence[CodeNode], all_nodes: Sequence[CodeNode]
    ) -> list[CodeRelationship]:
        complex_files = [node for node in new_files if self.should_use_ai_for_relationships(node)]
        found: list[CodeRelationship] = []
        for start in range(0, len(complex_files), AI_BATCH_SIZE):
            batch = complex_files[start:start + AI_BATCH_SIZE]
            found.extend(self._analyze_architectural_batch(batch, all_nodes))
        return found

    def should_use_ai_for_relationships(self, node: CodeNode) -> bool:
        """Whether a file looks architecturally significant enough for model analysis."""
        is_interface_heavy = any("interface_" in s or "trait_" in s for s in node.symbols)
        is_config_or_setup = any(
            "config" in s or "setup" in s or "init" in s for s in node.symbols
        )
        is_core_module = (
            "core" in node.path
            or "lib" in node.path
            or node.name in ("main", "index")
        )
        has_many_exports = len(node.exports) > 5
        is_large_file = node.size_lines > 200
        return (is_interface_heavy or is_config_or_setup or is_core_module) and (
            has_many_exports or is_large_file
        )

    def _architecture_prompt(
        self, source_nodes: Sequence[CodeNode], all_nodes: Sequence[CodeNode]
    ) -> str:
        parts = [_ARCHITECTURE_PROMPT_HEADER, "SOURCE FILES TO ANALYZE:\n"]
        for node in source_nodes:
            parts.append(
                f"File: {node.path}\nLanguage: {node.language}\n"
                f"Key symbols: {', '.join(node.symbols[:8])}\n"
                f"Exports: {', '.join(node.exports[:5])}\n\n"
            )

        parts.append("POTENTIAL RELATIONSHIP TARGETS:\n")
        source_ids = {node.id for node in source_nodes}
        targets = [
            node
            for node in all_nodes
            if node.id not in source_ids and (node.exports or node.size_lines > 100)
        ][:10]
        for node in targets:
            parts.append(
                f"File: {node.path}\nLanguage: {node.language}\n"
                f"Exports: {', '.join(node.exports[:3])}\n\n"
            )
        parts.append("JSON Response:")
        return "".join(parts)

    def _analyze_architectural_batch(
        self, source_nodes: Sequence[CodeNode], all_nodes: Sequence[CodeNode]
    ) -> list[CodeRelationship]:
        prompt = self._architecture_prompt(source_nodes, all_nodes)
        try:
            response = self.call_llm(self.relationship_model, prompt)
        except LLMError as error:
            print(f"Warning: AI architectural analysis failed: {error}", file=sys.stderr)
            return []

        known_paths = {node.path for node in all_nodes}
        valid = []
        for rel in self.parse_architectural_relationships(response):
            if rel.confidence > MIN_ARCHITECTURAL_CONFIDENCE and rel.target in known_paths:
                rel.weight = ARCHITECTURAL_WEIGHT
                valid.append(rel)
        return valid

    def parse_architectural_relationships(self, response: str) -> list[CodeRelationship]:
        """Relationships from a JSON array answer; empty if the answer is malformed."""
        try:
            items = json.loads(response)
        except ValueError:
            return []
        if not isinstance(items, list):
            return []

        relationships = []
        for item in items:
            if not isinstance(item, dict):
                return []
            if not all(isinstance(item.get(name), str) for name in _REQUIRED_TEXT_FIELDS):
                return []
            if not _is_number(item.get("confidence")):
                return []
            relationships.append(
                CodeRelationship(
                    source=item["source_path"],
                    target=item["target_path"],
                    relation_type=item["relation_type"],
                    description=item["description"],
                    confidence=float(item["confidence"]),
                    weight=ARCHITECTURAL_WEIGHT,
                )
            )
        return relationships

    def should_use_ai_for_description(
        self, symbols: Sequence[str], lines: int, language: str
    ) -> bool:
        """Whether a file is complex enough that a model description is worthwhile."""
        function_count = _count_functions(symbols)
        class_count = _count_classes(symbols)
        interface_count = _count_interfaces(symbols)

        is_large_complex = lines > 100 and function_count + class_count > 5
        is_config_file = any("config" in s or "setting" in s for s in symbols)
        is_core_file = any("main" in s or "lib" in s or "core" in s for s in symbols)
        has_architecture = interface_count > 0 or class_count > 3
        return (
            is_large_complex or is_config_file or is_core_file or has_architecture
        ) and language in _IMPORTANT_LANGUAGES

    def build_content_sample(self, file_blocks: Sequence[CodeBlock]) -> str:
        """A bounded excerpt of a file's blocks, those with most symbols first."""
        parts = []
        total = 0
        for block in sorted(file_blocks, key=lambda b: len(b.symbols), reverse=True):
            if total >= MAX_SAMPLE_SIZE:
                break
            content = block.content
            if len(content) > 300:
                content = f"{content[:150]}\n...\n{content[-150:]}"
            parts.append(f"// Block: {len(block.symbols)} symbols\n{content}\n\n")
            total += len(content) + 50
        return "".join(parts)

    def extract_ai_description(
        self,
        content_sample: str,
        file_path: str,
        language: str,
        symbols: Sequence[str],
    ) -> str:
        """A short model-written description of a file's role; raises LLMError on failure."""
        file_name = PurePath(file_path).name or "unknown"
        prompt = (
            f"Analyze this {language} file and provide a concise 2-3 sentence description "
            "focusing on its ROLE and PURPOSE in the codebase.\n"
            "Focus on what this file accomplishes, its architectural significance, and how "
            "it fits into the larger system.\n"
            "Avoid listing specific functions/classes - instead describe the file's overall "
            "responsibility.\n\n"
            f"File: {file_name}\n"
            f"Language: {language}\n"
            f"Stats: {_count_functions(symbols)} functions, "
            f"{_count_classes(symbols)} classes/structs\n"
            f"Key symbols: {', '.join(symbols[:5])}\n\n"
            f"Code sample:\n{content_sample}\n\n"
            "Description:"
        )
        try:
            description = self.call_llm(self.description_model, prompt)
        except LLMError as error:
            print(f"Warning: AI description failed for {file_path}: {error}", file=sys.stderr)
            raise

        cleaned = description.strip()
        if len(cleaned) > MAX_DESCRIPTION_LENGTH:
            return f"{cleaned[:MAX_DESCRIPTION_LENGTH - 3]}..."
        return cleaned

    def call_llm(
        self, model_name: str, prompt: str, json_schema: dict[str, Any] | None = None
    ) -> str:
        """Send one user message to the chat-completion API and return the answer text."""
        if self.api_key is None:
            raise LLMError("OpenRouter API key not configured")

        body: dict[str, Any] = {
            "model": model_name,
            "messages": [{"role": "user", "content": prompt}],
        }
        if json_schema is not None:
            body["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "relationship", "strict": True, "schema": json_schema},
            }

        try:
            response = self.session.post(
                CHAT_COMPLETIONS_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "X-Title": REQUEST_TITLE,
                },
                json=body,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as error:
            raise LLMError(str(error)) from error

        if not response.ok:
            try:
                error_text = response.text
            except (requests.RequestException, ValueError):
                error_text = "Unable to read error response"
            raise LLMError(f"API error: {response.status_code} {response.reason} - {error_text}")

        try:
            data = response.json()
        except ValueError as error:
            raise LLMError(f"Invalid response body: {error}") from error

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str):
            raise LLMError(f"Failed to get response content: {data!r}")
        return content