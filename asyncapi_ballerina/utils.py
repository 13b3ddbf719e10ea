"""Naming helpers shared by both generation directions."""

import re
from typing import Optional

BALLERINA_KEYWORDS = frozenset({
    "abstract", "annotation", "any", "anydata", "as", "ascending", "base16",
    "base64", "boolean", "break", "by", "byte", "check", "checkpanic", "class",
    "client", "commit", "configurable", "const", "continue", "decimal",
    "descending", "distinct", "do", "else", "enum", "equals", "error",
    "external", "fail", "false", "field", "final", "float", "foreach", "from",
    "function", "future", "handle", "if", "import", "in", "int", "is",
    "isolated", "join", "json", "key", "let", "limit", "listener", "lock",
    "map", "match", "never", "new", "null", "object", "on", "order", "outer",
    "panic", "parameter", "private", "public", "readonly", "record", "remote",
    "resource", "retry", "return", "returns", "rollback", "select", "service",
    "source", "start", "stream", "string", "table", "transaction",
    "transactional", "trap", "true", "type", "typedesc", "typeof", "var",
    "wait", "where", "while", "worker", "xml", "xmlns",
})

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_SPLIT_RE = re.compile(r"[^A-Za-z0-9]+")
PATH_PLACEHOLDER_RE = re.compile(r"\{([\w\-.]+)\}")


def escape_identifier(name: str) -> str:
    """Prefix reserved words with a quote so they stay usable as identifiers."""
    if name in BALLERINA_KEYWORDS:
        return f"'{name}"
    return name


def get_valid_name(name: str, is_type: bool = False) -> str:
    """
    Turn an arbitrary document name into a Ballerina identifier.

    Separators are dropped and the following word capitalized
    ("x-api-key" -> "xApiKey"), a leading digit gets an underscore, type names
    start upper-case and field/parameter names lower-case. Reserved words are
    escaped.
    """
    if not name:
        raise ValueError("Cannot derive an identifier from an empty name")

    if _IDENTIFIER_RE.match(name):
        candidate = name
    else:
        parts = [p for p in _SPLIT_RE.split(name) if p]
        if not parts:
            raise ValueError(f"Cannot derive an identifier from '{name}'")
        candidate = parts[0] + "".join(p[0].upper() + p[1:] for p in parts[1:])

    if candidate[0].isdigit():
        candidate = f"_{candidate}"

    if is_type:
        candidate = candidate[0].upper() + candidate[1:]
        return escape_identifier(candidate)

    if not name.isupper():
        candidate = candidate[0].lower() + candidate[1:]
    return escape_identifier(candidate)


def extract_reference_type(ref: str) -> str:
    """'#/components/schemas/Foo' -> 'Foo'."""
    if not ref or "/" not in ref:
        raise ValueError(f"Invalid reference: {ref!r}")
    return ref.rstrip("/").rsplit("/", 1)[-1]


def path_placeholders(path: str):
    """Names of ``{param}`` placeholders in a channel path, in order."""
    return PATH_PLACEHOLDER_RE.findall(path)


def replace_placeholders(path: str, replacer) -> str:
    return PATH_PLACEHOLDER_RE.sub(lambda m: replacer(m.group(1)), path)


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def normalize_doc(text: Optional[str]) -> Optional[str]:
    """Collapse a (possibly multi-line) description onto a single line."""
    if not text:
        return None
    return " ".join(text.split())
