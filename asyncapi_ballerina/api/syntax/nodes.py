"""
Structured representation of the Ballerina constructs emitted by the client
generator.

Names are validated when a node is constructed and union types de-duplicate
their members, so rendering never has to re-check what it is given. Every node
renders itself; templates only lay the rendered pieces out into files.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Union

from asyncapi_ballerina.utils import BALLERINA_KEYWORDS

INDENT = "    "

_IDENTIFIER_RE = re.compile(r"^'?[A-Za-z_][A-Za-z0-9_]*$")


def check_identifier(name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid Ballerina identifier: {name!r}")
    return name


def _indent_lines(text: str, level: int) -> str:
    prefix = INDENT * level
    return "\n".join(prefix + line if line else line for line in text.splitlines())


# ------------------------------------------------------------------------------
# Type descriptors

class TypeDescriptor:
    def render(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class TypeRef(TypeDescriptor):
    """A (possibly module-qualified) named type, e.g. ``websocket:BearerTokenConfig``."""

    name: str
    module: Optional[str] = None

    def __post_init__(self):
        check_identifier(self.name)
        if self.module is not None:
            check_identifier(self.module)

    def render(self) -> str:
        if self.module:
            return f"{self.module}:{self.name}"
        return self.name


@dataclass(frozen=True)
class AnonymousRecordType(TypeDescriptor):
    def render(self) -> str:
        return "record {}"


@dataclass(frozen=True)
class ArrayType(TypeDescriptor):
    member: TypeDescriptor

    def render(self) -> str:
        return f"{_wrap_compound(self.member)}[]"


@dataclass(frozen=True)
class OptionalType(TypeDescriptor):
    inner: TypeDescriptor

    def render(self) -> str:
        if isinstance(self.inner, OptionalType):
            return self.inner.render()
        return f"{_wrap_compound(self.inner)}?"


@dataclass(frozen=True)
class MapType(TypeDescriptor):
    value: TypeDescriptor

    def render(self) -> str:
        return f"map<{self.value.render()}>"


@dataclass(frozen=True)
class UnionType(TypeDescriptor):
    """
    Union of member types.

    Nested unions are flattened and members that render identically are
    dropped, keeping the first occurrence. The member order is therefore the
    order in which callers supply them.
    """

    members: Tuple[TypeDescriptor, ...]

    def __post_init__(self):
        flattened = []
        seen = set()
        for member in self.members:
            nested = member.members if isinstance(member, UnionType) else (member,)
            for item in nested:
                key = item.render()
                if key in seen:
                    continue
                seen.add(key)
                flattened.append(item)
        if not flattened:
            raise ValueError("A union type needs at least one member")
        object.__setattr__(self, "members", tuple(flattened))

    @classmethod
    def of(cls, *members: TypeDescriptor) -> TypeDescriptor:
        union = cls(tuple(members))
        if len(union.members) == 1:
            return union.members[0]
        return union

    def render(self) -> str:
        return "|".join(member.render() for member in self.members)


@dataclass(frozen=True)
class IntersectionType(TypeDescriptor):
    members: Tuple[TypeDescriptor, ...]

    def render(self) -> str:
        return " & ".join(_wrap_compound(member) for member in self.members)


def _wrap_compound(type_desc: TypeDescriptor) -> str:
    if isinstance(type_desc, (UnionType, IntersectionType)):
        return f"({type_desc.render()})"
    return type_desc.render()


def readonly(type_desc: TypeDescriptor) -> IntersectionType:
    return IntersectionType((TypeRef("readonly"), type_desc))


# ------------------------------------------------------------------------------
# Expressions

class Expression:
    def render(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class Literal(Expression):
    """A constant value: string, number, boolean, nil, or a list/mapping of those."""

    value: Any

    def render(self) -> str:
        return _render_literal(self.value)


def _render_literal(value: Any) -> str:
    if value is None:
        return "()"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_render_literal(item) for item in value) + "]"
    if isinstance(value, dict):
        entries = ", ".join(f"{json.dumps(str(k))}: {_render_literal(v)}" for k, v in value.items())
        return "{" + entries + "}"
    raise ValueError(f"Unsupported literal value: {value!r}")


NIL = Literal(None)


@dataclass(frozen=True)
class Name(Expression):
    name: str

    def __post_init__(self):
        check_identifier(self.name)

    def render(self) -> str:
        return self.name


SELF = Name("self")


@dataclass(frozen=True)
class FieldAccess(Expression):
    target: Expression
    field_name: str

    def __post_init__(self):
        check_identifier(self.field_name)

    def render(self) -> str:
        return f"{self.target.render()}.{self.field_name}"


@dataclass(frozen=True)
class MemberAccess(Expression):
    """``target[key]``"""

    target: Expression
    key: Expression

    def render(self) -> str:
        return f"{self.target.render()}[{self.key.render()}]"


def _render_args(args: Sequence[Expression]) -> str:
    return ", ".join(arg.render() for arg in args)


@dataclass(frozen=True)
class FunctionCall(Expression):
    name: str
    args: Tuple[Expression, ...] = ()

    def __post_init__(self):
        check_identifier(self.name)

    def render(self) -> str:
        return f"{self.name}({_render_args(self.args)})"


@dataclass(frozen=True)
class MethodCall(Expression):
    target: Expression
    method: str
    args: Tuple[Expression, ...] = ()

    def __post_init__(self):
        check_identifier(self.method)

    def render(self) -> str:
        return f"{self.target.render()}.{self.method}({_render_args(self.args)})"


@dataclass(frozen=True)
class RemoteCall(Expression):
    target: Expression
    method: str
    args: Tuple[Expression, ...] = ()

    def __post_init__(self):
        check_identifier(self.method)

    def render(self) -> str:
        return f"{self.target.render()}->{self.method}({_render_args(self.args)})"


@dataclass(frozen=True)
class TypeArgument(Expression):
    """A type used in expression position, e.g. ``ensureType(websocket:ClientSecureSocket)``."""

    type: TypeDescriptor

    def render(self) -> str:
        return self.type.render()


@dataclass(frozen=True)
class NewExpression(Expression):
    args: Tuple[Expression, ...] = ()

    def render(self) -> str:
        return f"new ({_render_args(self.args)})"


@dataclass(frozen=True)
class Check(Expression):
    expr: Expression

    def render(self) -> str:
        return f"check {self.expr.render()}"


@dataclass(frozen=True)
class TypeCast(Expression):
    type: TypeDescriptor
    expr: Expression

    def render(self) -> str:
        return f"<{self.type.render()}>{self.expr.render()}"


@dataclass(frozen=True)
class TypeTest(Expression):
    expr: Expression
    type: TypeDescriptor

    def render(self) -> str:
        return f"{self.expr.render()} is {self.type.render()}"


@dataclass(frozen=True)
class BinaryExpression(Expression):
    left: Expression
    operator: str
    right: Expression

    def render(self) -> str:
        return f"{self.left.render()} {self.operator} {self.right.render()}"


@dataclass(frozen=True)
class StringTemplate(Expression):
    """``string `/rooms/${getEncodedUri(roomId)}```; parts are text or expressions."""

    parts: Tuple[Union[str, Expression], ...]

    def render(self) -> str:
        body = []
        for part in self.parts:
            if isinstance(part, str):
                if "`" in part:
                    raise ValueError(f"Backtick not allowed in string template text: {part!r}")
                body.append(part)
            else:
                body.append("${" + part.render() + "}")
        return "string `" + "".join(body) + "`"


@dataclass(frozen=True)
class Spread(Expression):
    expr: Expression

    def render(self) -> str:
        return f"...{self.expr.render()}"


MappingEntry = Union[Tuple[str, Expression], Spread]


@dataclass(frozen=True)
class MappingConstructor(Expression):
    """
    ``{key: value, ...}``. Keys that are valid identifiers are written bare,
    anything else is quoted. ``multiline`` puts one entry per line.
    """

    entries: Tuple[MappingEntry, ...] = ()
    multiline: bool = False

    def _render_entry(self, entry: MappingEntry) -> str:
        if isinstance(entry, Spread):
            return entry.render()
        key, value = entry
        bare = _IDENTIFIER_RE.match(key) and not key.startswith("'") and key not in BALLERINA_KEYWORDS
        key_text = key if bare else json.dumps(key)
        return f"{key_text}: {value.render()}"

    def render(self) -> str:
        if not self.entries:
            return "{}"
        rendered = [self._render_entry(entry) for entry in self.entries]
        if not self.multiline:
            return "{" + ", ".join(rendered) + "}"
        return "{\n" + ",\n".join(INDENT + line for line in rendered) + "\n}"


@dataclass(frozen=True)
class ListConstructor(Expression):
    items: Tuple[Expression, ...] = ()

    def render(self) -> str:
        return "[" + _render_args(self.items) + "]"


# ------------------------------------------------------------------------------
# Statements

class Statement:
    def render(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class VariableDeclaration(Statement):
    type: TypeDescriptor
    name: str
    init: Optional[Expression] = None

    def __post_init__(self):
        check_identifier(self.name)

    def render(self) -> str:
        if self.init is None:
            return f"{self.type.render()} {self.name};"
        return f"{self.type.render()} {self.name} = {self.init.render()};"


@dataclass(frozen=True)
class Assignment(Statement):
    target: Expression
    value: Expression

    def render(self) -> str:
        return f"{self.target.render()} = {self.value.render()};"


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    expr: Expression

    def render(self) -> str:
        return f"{self.expr.render()};"


@dataclass(frozen=True)
class Return(Statement):
    expr: Optional[Expression] = None

    def render(self) -> str:
        if self.expr is None:
            return "return;"
        return f"return {self.expr.render()};"


def render_block(statements: Sequence[Statement]) -> str:
    inner = "\n".join(stmt.render() for stmt in statements)
    if not inner:
        return "{\n}"
    return "{\n" + _indent_lines(inner, 1) + "\n}"


@dataclass(frozen=True)
class IfElse(Statement):
    condition: Expression
    body: Tuple[Statement, ...]
    else_body: Tuple[Statement, ...] = ()

    def render(self) -> str:
        text = f"if {self.condition.render()} {render_block(self.body)}"
        if self.else_body:
            text += f" else {render_block(self.else_body)}"
        return text


@dataclass(frozen=True)
class DoBlock(Statement):
    body: Tuple[Statement, ...]

    def render(self) -> str:
        return f"do {render_block(self.body)}"


# ------------------------------------------------------------------------------
# Declarations

@dataclass(frozen=True)
class DocComment:
    description: Optional[str] = None
    params: Tuple[Tuple[str, str], ...] = ()
    returns: Optional[str] = None

    def render(self) -> str:
        lines = []
        if self.description:
            lines.extend(f"# {line}" for line in self.description.splitlines())
        for name, text in self.params:
            lines.append(f"# + {name} - {text}")
        if self.returns:
            lines.append(f"# + return - {self.returns}")
        return "\n".join(lines)

    def __bool__(self) -> bool:
        return bool(self.description or self.params or self.returns)


def _with_doc(doc: Optional[DocComment], text: str) -> str:
    if doc:
        return f"{doc.render()}\n{text}"
    return text


@dataclass(frozen=True)
class RecordField:
    name: str
    type: TypeDescriptor
    default: Optional[Expression] = None
    optional: bool = False
    doc: Optional[str] = None

    def __post_init__(self):
        check_identifier(self.name)
        if self.optional and self.default is not None:
            raise ValueError(f"Record field '{self.name}' cannot be both optional and defaulted")

    @property
    def is_required(self) -> bool:
        return not self.optional and self.default is None

    def render(self) -> str:
        marker = "?" if self.optional else ""
        text = f"{self.type.render()} {self.name}{marker}"
        if self.default is not None:
            text += f" = {self.default.render()}"
        return _with_doc(DocComment(self.doc) if self.doc else None, text + ";")


@dataclass(frozen=True)
class IncludedRecord:
    type: TypeDescriptor

    def render(self) -> str:
        return f"*{self.type.render()};"


@dataclass(frozen=True)
class RecordTypeDefinition:
    name: str
    fields: Tuple[Union[RecordField, IncludedRecord], ...]
    doc: Optional[str] = None
    closed: bool = True

    def __post_init__(self):
        check_identifier(self.name)
        names = [f.name for f in self.fields if isinstance(f, RecordField)]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate fields in record '{self.name}': {sorted(duplicates)}")

    def field_named(self, name: str) -> Optional[RecordField]:
        for item in self.fields:
            if isinstance(item, RecordField) and item.name == name:
                return item
        return None

    def render(self) -> str:
        open_token, close_token = ("{|", "|}") if self.closed else ("{", "}")
        body = "\n".join(item.render() for item in self.fields)
        if body:
            text = f"public type {self.name} record {open_token}\n{_indent_lines(body, 1)}\n{close_token};"
        else:
            text = f"public type {self.name} record {open_token}{close_token};"
        return _with_doc(DocComment(self.doc) if self.doc else None, text)


@dataclass(frozen=True)
class TypeAliasDefinition:
    name: str
    type: TypeDescriptor
    doc: Optional[str] = None

    def __post_init__(self):
        check_identifier(self.name)

    def render(self) -> str:
        text = f"public type {self.name} {self.type.render()};"
        return _with_doc(DocComment(self.doc) if self.doc else None, text)


@dataclass(frozen=True)
class Parameter:
    name: str
    type: TypeDescriptor
    default: Optional[Expression] = None

    def __post_init__(self):
        check_identifier(self.name)

    @property
    def is_required(self) -> bool:
        return self.default is None

    def render(self) -> str:
        text = f"{self.type.render()} {self.name}"
        if self.default is not None:
            text += f" = {self.default.render()}"
        return text


def order_parameters(params: Sequence[Parameter]) -> Tuple[Parameter, ...]:
    """Required parameters first, keeping the relative order inside each group."""
    return tuple(p for p in params if p.is_required) + tuple(p for p in params if not p.is_required)


@dataclass(frozen=True)
class ObjectField:
    name: str
    type: TypeDescriptor
    qualifiers: Tuple[str, ...] = ("final",)

    def __post_init__(self):
        check_identifier(self.name)

    def render(self) -> str:
        prefix = " ".join(self.qualifiers)
        return f"{prefix} {self.type.render()} {self.name};".lstrip()


@dataclass(frozen=True)
class FunctionDefinition:
    name: str
    params: Tuple[Parameter, ...] = ()
    returns: Optional[TypeDescriptor] = None
    body: Tuple[Statement, ...] = ()
    qualifiers: Tuple[str, ...] = ("isolated",)
    doc: Optional[DocComment] = None

    def __post_init__(self):
        check_identifier(self.name)
        seen = [p.name for p in self.params]
        if len(seen) != len(set(seen)):
            raise ValueError(f"Duplicate parameter names in function '{self.name}': {seen}")

    def render(self) -> str:
        prefix = " ".join(self.qualifiers + ("function",))
        signature = f"{prefix} {self.name}({', '.join(p.render() for p in self.params)})"
        if self.returns is not None:
            signature += f" returns {self.returns.render()}"
        return _with_doc(self.doc, f"{signature} {render_block(self.body)}")


@dataclass(frozen=True)
class ClassDefinition:
    name: str
    fields: Tuple[ObjectField, ...] = ()
    functions: Tuple[FunctionDefinition, ...] = ()
    qualifiers: Tuple[str, ...] = ("public", "isolated", "client")
    doc: Optional[str] = None

    def __post_init__(self):
        check_identifier(self.name)

    def render(self) -> str:
        members = [f.render() for f in self.fields]
        members.extend(fn.render() for fn in self.functions)
        body = "\n\n".join(members)
        header = " ".join(self.qualifiers + ("class", self.name))
        text = f"{header} {{\n{_indent_lines(body, 1)}\n}}"
        return _with_doc(DocComment(self.doc) if self.doc else None, text)


TypeDefinition = Union[RecordTypeDefinition, TypeAliasDefinition]
