"""
Import rewriting for the flat sandbox layout.

Test modules and implementations import each other from their original
nested locations (`../src/turtlesoup`, `src.turtle`, ...). Inside a sandbox
every file sits in one directory, so those references are rewritten through
an explicit {original module name: sandbox module name} mapping. This is a
textual pass over known reference forms, not module resolution.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .config import PYTHON, TYPESCRIPT


@dataclass(frozen=True)
class RewriteRule:
    """A single compiled substitution applied to a copied source file."""

    description: str
    pattern: re.Pattern
    replacement: str | Callable[[re.Match], str]

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


def python_rules(original: str, sandbox: str) -> list[RewriteRule]:
    """
    Build rules for Python import statements.

    Handles `from src.mod import x`, `from ..src.mod import x`,
    `from .mod import x`, `import src.mod as m` and
    `from src import mod [as m]`. A bare `import src.mod` becomes
    `import mod`, so code that keeps using the dotted name will still fail
    to resolve.
    """
    name = re.escape(original)

    def import_module_as(match: re.Match) -> str:
        alias = match.group(2) or original
        if alias == sandbox:
            return f"{match.group(1)}import {sandbox}"
        return f"{match.group(1)}import {sandbox} as {alias}"

    return [
        RewriteRule(
            description=f"from <pkg>.{original} import -> from {sandbox} import",
            pattern=re.compile(rf"^(\s*from\s+)\.*(?:[A-Za-z_]\w*\.)*{name}(\s+import\b)", re.MULTILINE),
            replacement=rf"\g<1>{sandbox}\g<2>",
        ),
        RewriteRule(
            description=f"import <pkg>.{original} -> import {sandbox}",
            pattern=re.compile(rf"^(\s*import\s+)(?:[A-Za-z_]\w*\.)+{name}\b", re.MULTILINE),
            replacement=rf"\g<1>{sandbox}",
        ),
        RewriteRule(
            description=f"from <pkg> import {original} -> import {sandbox} as {original}",
            pattern=re.compile(
                rf"^([ \t]*)from[ \t]+(?:\.+|\.*[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)[ \t]+import[ \t]+"
                rf"{name}(?:[ \t]+as[ \t]+([A-Za-z_]\w*))?[ \t]*$",
                re.MULTILINE,
            ),
            replacement=import_module_as,
        ),
    ]


def typescript_rules(original: str, sandbox: str) -> list[RewriteRule]:
    """Build rules for `from "..."`, `require("...")` and `import("...")` references."""
    name = re.escape(original)
    return [
        RewriteRule(
            description=f"relative reference to {original} -> ./{sandbox}",
            pattern=re.compile(
                rf"(\bfrom\s+|\brequire\s*\(\s*|\bimport\s*\(\s*)([\"'])"
                rf"(?:\.{{1,2}}/)+(?:[\w.-]+/)*{name}(?:\.[jt]s)?\2"
            ),
            replacement=rf"\g<1>\g<2>./{sandbox}\g<2>",
        ),
    ]


class ImportRewriter:
    """
    Applies the declared rewrite pass for one assignment language.

    Attributes:
        mapping: Original module name -> sandbox module name.
        rules: Compiled rules, in application order.
    """

    def __init__(self, mapping: dict[str, str], language: str = PYTHON) -> None:
        if language == PYTHON:
            builder = python_rules
        elif language == TYPESCRIPT:
            builder = typescript_rules
        else:
            raise ValueError(f"Unsupported assignment language: {language!r}")

        self.mapping = dict(mapping)
        self.language = language
        self.rules: list[RewriteRule] = []
        for original, sandbox in self.mapping.items():
            self.rules.extend(builder(original, sandbox))

    def rewrite(self, text: str) -> str:
        """
        Rewrite every known module reference in `text`.

        Args:
            text: Source of a copied test module or implementation.

        Returns:
            Source with references pointing at the flat sandbox names.
        """
        for rule in self.rules:
            text = rule.apply(text)
        return text

    def rewrite_file(self, path: Path) -> None:
        """Rewrite a file in place."""
        content = path.read_text(encoding="utf-8")
        path.write_text(self.rewrite(content), encoding="utf-8")
