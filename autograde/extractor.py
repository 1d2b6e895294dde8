"""
Source fragment extraction for LLM grading prompts.

The brace-based extractors are a textual heuristic, not a parser: braces
inside string literals or comments are counted like any other brace and can
end a fragment early or late. The Python extractors use the `ast` module
instead and return nothing for sources that do not parse.
"""

import ast
import re

EXPORT_QUALIFIER = re.compile(r"^export\s+(?:default\s+)?")


def _declaration_pattern(name: str) -> re.Pattern:
    escaped = re.escape(name)
    return re.compile(
        r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?"
        rf"(?:function\s*\*?\s*{escaped}\b|(?:const|let|var)\s+{escaped}\s*[:=])"
    )


def extract_function(source_text: str, name: str) -> str:
    """
    Extract a function declaration from brace-delimited source code.

    Finds the first line declaring `name`, then accumulates lines, counting
    `{` and `}` from the first line containing an opening brace, until the
    running balance is back to zero on a line after the declaration line.

    Args:
        source_text: Full source text (TypeScript/JavaScript style).
        name: Function name to extract.

    Returns:
        The function text with any leading export qualifier removed, or an
        empty string if no declaration was found.
    """
    lines = source_text.split("\n")
    declaration = _declaration_pattern(name)

    start_line = next((i for i, line in enumerate(lines) if declaration.search(line)), -1)
    if start_line == -1:
        return ""

    collected: list[str] = []
    balance = 0
    started = False

    for i in range(start_line, len(lines)):
        line = lines[i]
        if "{" in line:
            started = True

        collected.append(line)
        if not started:
            continue

        balance += line.count("{") - line.count("}")
        if balance == 0 and i > start_line:
            break

    fragment = "\n".join(collected).strip()
    return EXPORT_QUALIFIER.sub("", fragment)


def _matching_close(text: str, open_index: int) -> int:
    """Return the index of the brace closing the one at `open_index`, or -1."""
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def extract_test_block(test_source_text: str, name: str) -> str:
    """
    Extract a `describe("<name>()", ...)` test group from a mocha test file.

    Args:
        test_source_text: Full test source text.
        name: Label of the test group, with or without the trailing "()".

    Returns:
        The whole `describe(...)` call through its closing `)` and optional
        `;`, or an empty string if the group is absent.
    """
    label = re.escape(name.removesuffix("()"))
    header = re.compile(rf"describe\s*\(\s*([\"'`]){label}(?:\(\))?\1\s*,")
    match = header.search(test_source_text)
    if not match:
        return ""

    open_index = test_source_text.find("{", match.end())
    if open_index == -1:
        return ""

    close_index = _matching_close(test_source_text, open_index)
    if close_index == -1:
        return test_source_text[match.start():].strip()

    tail = re.compile(r"\s*\)\s*;?").match(test_source_text, close_index + 1)
    end = tail.end() if tail else close_index + 1
    return test_source_text[match.start():end].strip()


def extract_python_function(source_text: str, name: str) -> str:
    """
    Extract a top-level Python function (or class) definition by name.

    Args:
        source_text: Python module source.
        name: Function or class name.

    Returns:
        The definition source including decorators, or an empty string.
    """
    try:
        tree = ast.parse(source_text)
    except SyntaxError:
        return ""

    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)) and node.name == name:
            return _node_source(source_text, node)
    return ""


def _normalize(name: str) -> str:
    return name.replace("_", "").lower()


def extract_python_tests(test_source_text: str, name: str) -> str:
    """
    Extract the pytest tests that exercise a function.

    Picks every top-level test function or test class whose name contains
    the function name, ignoring case and underscores, so `double_loop`
    matches both `test_double_loop_draws` and `TestDoubleLoop`.

    Args:
        test_source_text: Python test module source.
        name: Function under test.

    Returns:
        The matching definitions joined by blank lines, or an empty string.
    """
    try:
        tree = ast.parse(test_source_text)
    except SyntaxError:
        return ""

    target = _normalize(name)
    blocks = []
    for node in tree.body:
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            continue
        if not node.name.lower().startswith("test"):
            continue
        if target in _normalize(node.name):
            blocks.append(_node_source(test_source_text, node))

    return "\n\n".join(blocks)


def _node_source(source_text: str, node: ast.AST) -> str:
    lines = source_text.split("\n")
    first = min([d.lineno for d in getattr(node, "decorator_list", [])] + [node.lineno])
    return "\n".join(lines[first - 1:node.end_lineno]).strip()
