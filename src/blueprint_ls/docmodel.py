"""Per-document view used by the language services."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from urllib.parse import unquote, urlparse

from blueprint_ls.blueprint import Blueprint, TreeNode, collect_nodes_at
from blueprint_ls.exceptions import UnsupportedFormatError
from blueprint_ls.position import COMPLETION_COLUMN_LEEWAY, SourcePosition


class DocumentFormat(Enum):
    YAML = "yaml"
    JSONC = "jsonc"


class QuoteType(Enum):
    NONE = "none"
    SINGLE = "single"
    DOUBLE = "double"


_TRAILING_WORD = re.compile(r"""[^\s{}\[\],:]*$""")


def uri_to_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri)


def format_from_path(path: str) -> DocumentFormat:
    suffix = Path(path).suffix.lower()
    if suffix in {".yml", ".yaml"}:
        return DocumentFormat.YAML
    if suffix == ".jsonc":
        return DocumentFormat.JSONC
    raise UnsupportedFormatError(path)


def format_from_uri(uri: str) -> DocumentFormat:
    return format_from_path(str(uri_to_path(uri)))


def _enclosing_quote(text: str) -> QuoteType:
    quote: str | None = None
    escaped = False
    for char in text:
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
            continue
        if quote is None and char in "\"'":
            quote = char
        elif char == quote:
            quote = None
    if quote == '"':
        return QuoteType.DOUBLE
    if quote == "'":
        return QuoteType.SINGLE
    return QuoteType.NONE


@dataclass
class CursorContext:
    position: SourcePosition
    format: DocumentFormat
    text_before: str
    text_after: str = ""
    nodes: list[TreeNode] = field(default_factory=list)
    path: list[str] = field(default_factory=list)
    in_array: bool = False

    @property
    def innermost(self) -> TreeNode | None:
        return self.nodes[-1] if self.nodes else None

    @property
    def structural_path(self) -> list[str]:
        """Keys enclosing the cursor, read from the current text.

        The tree is not used here because it may predate the last edit.
        """
        return list(self.path)

    @property
    def in_list_item(self) -> bool:
        if self.format is DocumentFormat.JSONC:
            return self.in_array
        stripped = self.text_before.lstrip()
        return stripped == "-" or (stripped.startswith("- ") and ":" not in stripped)

    @property
    def enclosing_quote(self) -> QuoteType:
        return _enclosing_quote(self.text_before)

    def is_key_position(self) -> bool:
        stripped = self.text_before.lstrip()
        if stripped.startswith("- "):
            stripped = stripped[2:]
        return ":" not in stripped

    @property
    def typed_prefix(self) -> str:
        """What the user has typed of the current token on this line."""
        stripped = self.text_before.lstrip()
        if self.format is DocumentFormat.YAML and stripped.startswith("- "):
            item = stripped[2:].lstrip()
            if ":" not in item:
                return item
        if self.is_key_position():
            match = _TRAILING_WORD.search(self.text_before)
            return match.group(0) if match else ""
        value = self.text_before.rsplit(":", 1)[1].strip()
        if self.format is DocumentFormat.JSONC:
            value = re.split(r"[\[,]", value)[-1].strip()
        return value


@dataclass
class DocumentContext:
    uri: str
    content: str
    format: DocumentFormat
    blueprint: Blueprint | None = None
    tree: TreeNode | None = None
    last_valid_blueprint: Blueprint | None = None
    last_valid_tree: TreeNode | None = None
    version: int = 0

    def updated(
        self,
        content: str,
        blueprint: Blueprint | None,
        tree: TreeNode | None,
        version: int | None = None,
    ) -> "DocumentContext":
        return DocumentContext(
            uri=self.uri,
            content=content,
            format=self.format,
            blueprint=blueprint,
            tree=tree,
            last_valid_blueprint=blueprint if blueprint is not None else self.effective_blueprint,
            last_valid_tree=tree if tree is not None else self.effective_tree,
            version=self.version + 1 if version is None else version,
        )

    @property
    def effective_blueprint(self) -> Blueprint | None:
        return self.blueprint if self.blueprint is not None else self.last_valid_blueprint

    @property
    def effective_tree(self) -> TreeNode | None:
        return self.tree if self.tree is not None else self.last_valid_tree

    def line_text(self, line: int) -> str:
        lines = self.content.split("\n")
        if line < 1 or line > len(lines):
            return ""
        return lines[line - 1].rstrip("\r")

    def cursor_context(
        self,
        position: SourcePosition,
        leeway: int = COMPLETION_COLUMN_LEEWAY,
    ) -> CursorContext:
        text = self.line_text(position.line)
        split_at = max(0, min(len(text), position.column - 1))
        lines = self.content.split("\n")
        in_array = False
        if self.format is DocumentFormat.YAML:
            path = infer_yaml_path(lines, position.line - 1, text[:split_at])
        else:
            preceding = "\n".join(lines[: position.line - 1] + [text[:split_at]])
            path, in_array = infer_jsonc_path(preceding)
        return CursorContext(
            position=position,
            format=self.format,
            text_before=text[:split_at],
            text_after=text[split_at:],
            nodes=collect_nodes_at(self.effective_tree, position, leeway),
            path=path,
            in_array=in_array,
        )


_YAML_KEY = re.compile(r"""^(\s*)(?:-\s+)?["']?([^"'#:]+?)["']?\s*:(?:\s|$)""")


def _key_indent(line: str) -> int:
    stripped = line.lstrip(" ")
    indent = len(line) - len(stripped)
    while stripped.startswith("- ") or stripped == "-":
        stripped = stripped[2:].lstrip(" ")
        indent = len(line) - len(stripped)
    return indent


def infer_yaml_path(lines: list[str], line_index: int, text_before: str) -> list[str]:
    """Keys enclosing the cursor, read from indentation.

    The key on the cursor's own line is included only when the cursor sits in
    its value.
    """
    path: list[str] = []
    own = _YAML_KEY.match(text_before)
    if own is not None:
        path.append(own.group(2).strip())
    indent = _key_indent(text_before) if text_before.strip() else len(text_before)
    for previous in reversed(lines[:line_index]):
        if not previous.strip() or previous.lstrip().startswith("#"):
            continue
        previous_indent = _key_indent(previous)
        if previous_indent >= indent:
            continue
        match = _YAML_KEY.match(previous)
        if match is None:
            continue
        path.insert(0, match.group(2).strip())
        indent = previous_indent
        if indent == 0:
            break
    return path


@dataclass
class _JsonFrame:
    kind: str
    key: str | None = None
    after_colon: bool = False


def infer_jsonc_path(text: str) -> tuple[list[str], bool]:
    """Keys enclosing the end of a (possibly unfinished) JSONC document.

    The flag reports whether the innermost open container is an array.
    """
    stack: list[_JsonFrame] = []
    index = 0
    last_string: str | None = None
    while index < len(text):
        char = text[index]
        if char == "/" and text.startswith("//", index):
            newline = text.find("\n", index)
            index = len(text) if newline == -1 else newline
            continue
        if char == "/" and text.startswith("/*", index):
            close = text.find("*/", index + 2)
            index = len(text) if close == -1 else close + 2
            continue
        if char == '"':
            end = index + 1
            while end < len(text) and text[end] != '"':
                end += 2 if text[end] == "\\" else 1
            last_string = text[index + 1 : end]
            if end >= len(text) and stack and stack[-1].kind == "{" and not stack[-1].after_colon:
                # Unterminated key: the cursor is still typing it.
                stack[-1].key = None
            index = end + 1
            continue
        if char in "{[":
            stack.append(_JsonFrame(kind=char))
        elif char in "}]":
            if stack:
                stack.pop()
            if stack:
                stack[-1].after_colon = False
                stack[-1].key = None
        elif char == ":" and stack and stack[-1].kind == "{":
            stack[-1].key = last_string
            stack[-1].after_colon = True
        elif char == "," and stack and stack[-1].kind == "{":
            stack[-1].key = None
            stack[-1].after_colon = False
        index += 1
    path: list[str] = []
    for frame in stack:
        if frame.kind == "{" and frame.key is not None and frame.after_colon:
            path.append(frame.key)
    return path, bool(stack) and stack[-1].kind == "["
