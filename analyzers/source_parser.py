"""Per-language source parsers used for signature verification.

Each parser turns one file into a ParsedSource: the functions and methods it
declares, their parameter lists, and enough about each body for the stub
predicates to work on. Parsers never execute the code they read.
"""

import ast
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Type

from contracts import GapDetectionError


@dataclass
class FunctionSignature:
    """A declared function or method and a summary of its body."""
    name: str
    params: List[str]
    line: int
    end_line: int
    kind: str = "function"
    has_varargs: bool = False
    optional_params: int = 0
    body_statements: int = 0
    has_branching: bool = False
    is_empty: bool = False
    raises_not_implemented: bool = False
    returned_string: Optional[str] = None
    returns_placeholder: bool = False
    body_text: str = ""

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def min_arity(self) -> int:
        """Parameters a caller must pass; ones with defaults are optional."""
        return self.arity - self.optional_params

    def accepts_arity(self, expected: int) -> bool:
        """True when a call with `expected` arguments matches the declaration."""
        if expected < self.min_arity:
            return False
        return self.has_varargs or expected <= self.arity

    def describe_arity(self) -> str:
        if self.has_varargs:
            return f"at least {self.min_arity}"
        if self.optional_params:
            return f"{self.min_arity} to {self.arity}"
        return str(self.arity)


@dataclass
class ParsedSource:
    """Result of parsing one source file."""
    path: str
    language: str
    functions: List[FunctionSignature] = field(default_factory=list)
    line_count: int = 0

    def find(self, name: str) -> List[FunctionSignature]:
        return [f for f in self.functions if f.name == name]


class SourceParser:
    """Base class for language parsers."""

    language = "unknown"
    extensions: tuple = ()

    def parse(self, path: Path) -> ParsedSource:
        """Read and parse a file.

        Raises:
            GapDetectionError: If the file cannot be read or parsed
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise GapDetectionError(str(path), f"unreadable: {e}") from e
        return self.parse_text(text, str(path))

    def parse_text(self, text: str, path: str = "<memory>") -> ParsedSource:
        raise NotImplementedError


# Python

_PLACEHOLDER_VALUES = (None, "", 0, False)


class PythonParser(SourceParser):
    """Python parser built on the standard-library ast module."""

    language = "python"
    extensions = (".py", ".pyi")

    def parse_text(self, text: str, path: str = "<memory>") -> ParsedSource:
        try:
            tree = ast.parse(text, filename=path)
        except (SyntaxError, ValueError) as e:
            raise GapDetectionError(path, f"syntax error: {e}") from e

        lines = text.splitlines()
        functions = []
        for node in ast.walk(tree):
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                functions.append(self._signature(node, lines))
        functions.sort(key=lambda f: (f.line, f.name))
        return ParsedSource(path=path, language=self.language, functions=functions, line_count=len(lines))

    def _signature(self, node, lines: List[str]) -> FunctionSignature:
        args = node.args
        positional = [a.arg for a in getattr(args, "posonlyargs", [])] + [a.arg for a in args.args]
        is_method = bool(positional) and positional[0] in ("self", "cls")
        if is_method:
            positional = positional[1:]
        params = positional + [a.arg for a in args.kwonlyargs]

        body = list(node.body)
        if body and isinstance(body[0], ast.Expr) and isinstance(getattr(body[0], "value", None), ast.Constant) \
                and isinstance(body[0].value.value, str):
            body = body[1:]  # docstring

        end_line = getattr(node, "end_lineno", None) or node.lineno
        signature = FunctionSignature(
            name=node.name,
            params=params,
            line=node.lineno,
            end_line=end_line,
            kind="method" if is_method else "function",
            has_varargs=args.vararg is not None or args.kwarg is not None,
            optional_params=len(args.defaults) + sum(1 for d in args.kw_defaults if d is not None),
            body_statements=len(body),
            body_text="\n".join(lines[node.lineno - 1:end_line]),
        )

        signature.is_empty = all(
            isinstance(stmt, ast.Pass)
            or (isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant) and stmt.value.value is Ellipsis)
            for stmt in body
        )
        signature.has_branching = any(
            isinstance(n, (ast.If, ast.For, ast.AsyncFor, ast.While, ast.Try, ast.With, ast.AsyncWith,
                           ast.IfExp, ast.BoolOp, ast.comprehension))
            for stmt in body for n in ast.walk(stmt)
        )
        for stmt in body:
            if isinstance(stmt, ast.Raise) and _names_not_implemented(stmt.exc):
                signature.raises_not_implemented = True

        if len(body) == 1 and isinstance(body[0], ast.Return):
            value = body[0].value
            if isinstance(value, ast.Constant) and isinstance(value.value, str):
                signature.returned_string = value.value
            elif value is None or (isinstance(value, ast.Constant) and value.value in _PLACEHOLDER_VALUES):
                signature.returns_placeholder = True
            elif isinstance(value, (ast.List, ast.Dict, ast.Tuple, ast.Set)) and not _container_items(value):
                signature.returns_placeholder = True
        return signature


def _names_not_implemented(exc) -> bool:
    if exc is None:
        return False
    target = exc.func if isinstance(exc, ast.Call) else exc
    return isinstance(target, ast.Name) and target.id == "NotImplementedError"


def _container_items(node) -> list:
    if isinstance(node, ast.Dict):
        return node.keys
    return node.elts


# JavaScript / TypeScript

_JS_KEYWORDS = {"if", "for", "while", "switch", "catch", "function", "return", "else", "do", "with", "constructor"}

_JS_FUNCTION_PATTERNS = [
    # function foo(a, b) / export default async function foo<T>(a: T)
    re.compile(r"^[ \t]*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(?P<name>[A-Za-z_$][\w$]*)\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)\)", re.M),
    # const foo = async (a, b) => / const foo = function (a)
    re.compile(r"^[ \t]*(?:export\s+)?(?:const|let|var)\s+(?P<name>[A-Za-z_$][\w$]*)\s*(?::[^=]+)?=\s*(?:async\s+)?(?:function\s*\*?\s*)?\((?P<params>[^)]*)\)\s*(?::[^=>{]+)?(?:=>)?", re.M),
    # class methods: async foo(a, b): Promise<X> {
    re.compile(r"^[ \t]+(?:public\s+|private\s+|protected\s+|static\s+|readonly\s+)*(?:async\s+)?(?P<name>[A-Za-z_$][\w$]*)\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)\)(?=\s*(?::\s*[^{;]+)?\{)", re.M),
]

_JS_BODY_START_RE = re.compile(r"\s*(?::[^{;=]*)?\s*(?P<arrow>=>)?\s*")

_JS_BRANCH_RE = re.compile(r"\b(if|for|while|switch|catch|case)\b|\?[^.?]|&&|\|\|")
_JS_RETURN_STRING_RE = re.compile(r"^\s*return\s+(['\"`])(?P<text>.*)\1\s*;?\s*$", re.S)
_JS_RETURN_PLACEHOLDER_RE = re.compile(r"^\s*return\s*(null|undefined|\[\s*\]|\{\s*\}|''|\"\"|false|0)?\s*;?\s*$")
_JS_NOT_IMPLEMENTED_RE = re.compile(r"throw\s+new\s+\w*Error\(\s*['\"`][^'\"`]*not\s+implemented", re.I)


class JavaScriptParser(SourceParser):
    """Declaration-pattern parser for JavaScript and TypeScript.

    Matches function, arrow-function and method declarations and walks braces
    to find each body. Good enough for symbol and arity checks without a JS
    toolchain.
    """

    language = "javascript"
    extensions = (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx")

    def parse_text(self, text: str, path: str = "<memory>") -> ParsedSource:
        functions: Dict[tuple, FunctionSignature] = {}
        for pattern in _JS_FUNCTION_PATTERNS:
            for match in pattern.finditer(text):
                name = match.group("name")
                if name in _JS_KEYWORDS:
                    continue
                line = text.count("\n", 0, match.start()) + 1
                if (name, line) in functions:
                    continue
                is_arrow = match.group(0).rstrip().endswith("=>")
                functions[(name, line)] = self._signature(
                    name, match.group("params"), line, text, match.end(), is_arrow
                )

        ordered = sorted(functions.values(), key=lambda f: (f.line, f.name))
        return ParsedSource(path=path, language=self.language, functions=ordered, line_count=text.count("\n") + 1)

    def _signature(
        self, name: str, raw_params: str, line: int, text: str, offset: int, is_arrow: bool
    ) -> FunctionSignature:
        params, has_varargs, optional = _split_js_params(raw_params)
        body, end_offset = _extract_body(text, offset, is_arrow)
        statements = [s for s in re.split(r";\s*|\n", body) if s.strip() and not s.strip().startswith("//")]
        end_line = text.count("\n", 0, end_offset) + 1

        signature = FunctionSignature(
            name=name,
            params=params,
            line=line,
            end_line=end_line,
            has_varargs=has_varargs,
            optional_params=optional,
            body_statements=len(statements),
            body_text=text[offset:end_offset],
        )
        signature.is_empty = not statements
        signature.has_branching = bool(_JS_BRANCH_RE.search(body))
        signature.raises_not_implemented = bool(_JS_NOT_IMPLEMENTED_RE.search(body))
        if len(statements) == 1:
            string_match = _JS_RETURN_STRING_RE.match(statements[0])
            if string_match:
                signature.returned_string = string_match.group("text")
            elif _JS_RETURN_PLACEHOLDER_RE.match(statements[0]):
                signature.returns_placeholder = True
        return signature


def _split_js_params(raw: str):
    """Split a parameter list into (names, has_rest, optional_count).

    A parameter is optional when it has a default (``a = 1``) or is marked
    with ``?`` in TypeScript.
    """
    params, has_varargs, optional = [], False, 0
    depth, current, top, previous = 0, "", "", ""
    for char in raw + ",":
        if char in "<({[":
            depth += 1
        elif char in ">)}]" and not (char == ">" and previous == "="):
            depth -= 1
        previous = char
        if char == "," and depth <= 0:
            token, head = current.strip(), top.strip()
            current, top = "", ""
            if not token:
                continue
            if token.startswith("..."):
                has_varargs = True
                continue
            match = re.match(r"[A-Za-z_$][\w$]*", token)
            if match:
                params.append(match.group(0))
            elif token[0] in "{[":
                params.append("_destructured")
            else:
                continue
            if re.search(r"(?<![=!<>])=(?!>)", head) or re.match(r"[A-Za-z_$][\w$]*\s*\?", head):
                optional += 1
        else:
            current += char
            if depth <= 0:
                top += char
    return params, has_varargs, optional


def _extract_body(text: str, offset: int, is_arrow: bool):
    """Return (body, end_offset) for the declaration ending at offset.

    Braced bodies are matched brace by brace; expression-bodied arrow
    functions are read to the end of the line and treated as a return.
    """
    lead = _JS_BODY_START_RE.match(text, offset)
    start = lead.end()
    is_arrow = is_arrow or bool(lead.group("arrow"))
    if start >= len(text) or text[start] != "{":
        if not is_arrow:
            return "", start
        newline = text.find("\n", start)
        end = newline if newline != -1 else len(text)
        return f"return {text[start:end].strip().rstrip(';')}", end

    depth, index, quote = 0, start, None
    while index < len(text):
        char = text[index]
        if quote:
            if char == "\\":
                index += 1
            elif char == quote:
                quote = None
        elif char in "'\"`":
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start + 1:index], index + 1
        index += 1
    return text[start + 1:], len(text)


# Registry

PARSERS: Dict[str, Type[SourceParser]] = {
    "python": PythonParser,
    "javascript": JavaScriptParser,
}


def get_parser(path: Path) -> Optional[SourceParser]:
    """Return a parser for the file's extension, or None when unsupported."""
    suffix = Path(path).suffix.lower()
    for parser_class in PARSERS.values():
        if suffix in parser_class.extensions:
            return parser_class()
    return None


def supported_extensions() -> List[str]:
    return sorted(ext for parser_class in PARSERS.values() for ext in parser_class.extensions)
