"""
Script analysis for resource discovery.

Builds a syntax tree of a JavaScript source with tree-sitter and walks it to
find dynamically imported modules and string literals that look like asset
paths. Sources tree-sitter cannot parse cleanly are scanned with a regex.
"""

import codecs
import re
from typing import List, Optional

import tree_sitter_javascript
from tree_sitter import Language, Node, Parser

from .errors import ScriptParseError
from ..utils.log import get_logger
from ..utils.paths import has_asset_extension


JS_LANGUAGE = Language(tree_sitter_javascript.language())

# Strings shaped like a URL or a path: //host, http(s)://, ./x, ../x, /x
URL_LIKE_PATTERN = re.compile(r'^(?:(?:https?:)?//|\.\.?/|/[^/])', re.IGNORECASE)

# Quoted URL/path strings, used when no syntax tree is available
QUOTED_PATH_PATTERN = re.compile(
    r'([\'"`])((?:https?:)?//[^\s\'"`]+|\.\.?/[^\s\'"`]+|/[^\s\'"`]+)\1'
)

_SIMPLE_ESCAPES = {
    'n': '\n', 'r': '\r', 't': '\t', 'b': '\b', 'f': '\f', 'v': '\v', '0': '\0',
}


def looks_like_asset_path(value: str) -> bool:
    """Check whether a string literal is a path to a known asset type."""
    return bool(URL_LIKE_PATTERN.match(value)) and has_asset_extension(value)


def parse_script(source: str) -> Node:
    """
    Parse JavaScript source into a syntax tree.

    Args:
        source: Script text

    Returns:
        Root node of the tree

    Raises:
        ScriptParseError: If the source contains syntax errors
    """
    parser = Parser(JS_LANGUAGE)
    tree = parser.parse(source.encode('utf-8'))
    root = tree.root_node

    if root.has_error:
        raise ScriptParseError(_describe_error(root))

    return root


def _describe_error(root: Node) -> str:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == 'ERROR' or node.is_missing:
            row, column = node.start_point
            return f"Unexpected token ({row + 1}:{column})"
        stack.extend(reversed(node.children))
    return "Syntax error"


def _unescape(sequence: str) -> str:
    body = sequence[1:]
    if len(body) == 1:
        return _SIMPLE_ESCAPES.get(body, body)
    try:
        return codecs.decode(sequence, 'unicode_escape')
    except UnicodeDecodeError:
        return body


def string_value(node: Node) -> str:
    """
    Get the value of a ``string`` node with escape sequences decoded.

    Args:
        node: A tree-sitter ``string`` node

    Returns:
        The literal's value without quotes
    """
    parts = []
    for child in node.named_children:
        text = child.text.decode('utf-8', errors='ignore')
        if child.type == 'escape_sequence':
            parts.append(_unescape(text))
        else:
            parts.append(text)
    return ''.join(parts)


class ScriptResourceVisitor:
    """
    Collects resource references from a JavaScript syntax tree.

    Only two node kinds matter: dynamic ``import(...)`` calls and string
    literals. Everything else is just traversed.
    """

    def __init__(self):
        self.imports: List[str] = []
        self.asset_strings: List[str] = []

    def visit(self, root: Node) -> None:
        # Iterative walk; minified bundles nest deeper than the recursion limit
        stack = [root]
        while stack:
            node = stack.pop()
            handler = getattr(self, f"visit_{node.type}", None)
            if handler is not None:
                handler(node)
            stack.extend(reversed(node.children))

    def visit_call_expression(self, node: Node) -> None:
        callee = node.child_by_field_name('function')
        if callee is None or callee.type != 'import':
            return

        source = self._first_argument(node)
        if source is not None and source.type == 'string':
            self.imports.append(string_value(source))

    def visit_string(self, node: Node) -> None:
        value = string_value(node).strip()
        if looks_like_asset_path(value):
            self.asset_strings.append(value)

    @staticmethod
    def _first_argument(call: Node) -> Optional[Node]:
        arguments = call.child_by_field_name('arguments')
        if arguments is None or not arguments.named_children:
            return None
        return arguments.named_children[0]


class ScriptResourceFinder:
    """Finds resource references in JavaScript source."""

    def __init__(self):
        self.logger = get_logger("extractor")

    def find(self, source: str) -> List[str]:
        """
        Find raw (unresolved) resource references in a script.

        Args:
            source: Script text

        Returns:
            References in discovery order, possibly with duplicates
        """
        if not source or not source.strip():
            return []

        try:
            root = parse_script(source)
        except ScriptParseError as e:
            self.logger.warning(
                f"Failed to parse script with AST, falling back to regex: {e}"
            )
            return self.find_with_regex(source)

        visitor = ScriptResourceVisitor()
        visitor.visit(root)
        return visitor.imports + visitor.asset_strings

    def find_with_regex(self, source: str) -> List[str]:
        """
        Scan quoted strings for asset paths without building a tree.

        Args:
            source: Script text

        Returns:
            References in source order
        """
        return [
            match.group(2)
            for match in QUOTED_PATH_PATTERN.finditer(source)
            if has_asset_extension(match.group(2))
        ]
