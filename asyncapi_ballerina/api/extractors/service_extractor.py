"""
Decode a parsed Ballerina module into plain dataclasses.

The textX tree is inspected only here. Service members become a closed set
of kinds (resource function, remote function, other) so the AsyncAPI mapper
never deals with grammar classes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from textx import get_location

from asyncapi_ballerina.api.gen_logging import get_logger

logger = get_logger(__name__)


# ------------------------------------------------------------------------------
# Types

class TypeKind(Enum):
    NAMED = "named"
    MAP = "map"
    STREAM = "stream"
    NIL = "nil"
    LITERAL = "literal"
    GROUP = "group"


@dataclass(frozen=True)
class BalType:
    """One member of a (possibly union) type descriptor."""

    kind: TypeKind
    name: Optional[str] = None
    module: Optional[str] = None
    inner: Optional["BalTypeDesc"] = None
    completion: Optional["BalTypeDesc"] = None
    array_depth: int = 0
    optional: bool = False
    readonly: bool = False

    @property
    def qualified_name(self) -> Optional[str]:
        if self.name is None:
            return None
        return f"{self.module}:{self.name}" if self.module else self.name

    @property
    def is_error(self) -> bool:
        return self.kind is TypeKind.NAMED and self.name == "error" and not self.module and self.array_depth == 0

    @property
    def is_nil(self) -> bool:
        return self.kind is TypeKind.NIL and self.array_depth == 0


@dataclass(frozen=True)
class BalTypeDesc:
    members: Tuple[BalType, ...]

    @property
    def nilable(self) -> bool:
        return any(m.is_nil or (m.optional and m.array_depth == 0) for m in self.members)

    def without_error_and_nil(self) -> Tuple[BalType, ...]:
        return tuple(m for m in self.members if not m.is_error and not m.is_nil)

    def is_named(self, qualified_name: str) -> bool:
        return len(self.members) == 1 and self.members[0].qualified_name == qualified_name

    def render(self) -> str:
        return "|".join(_render_member(m) for m in self.members)


def _render_member(member: BalType) -> str:
    if member.kind is TypeKind.MAP:
        text = f"map<{member.inner.render()}>"
    elif member.kind is TypeKind.STREAM:
        text = f"stream<{member.inner.render()}" + (f", {member.completion.render()}>" if member.completion else ">")
    elif member.kind is TypeKind.NIL:
        text = "()"
    elif member.kind is TypeKind.LITERAL:
        text = f'"{member.name}"'
    elif member.kind is TypeKind.GROUP:
        text = f"({member.inner.render()})"
    else:
        text = member.qualified_name
    text += "[]" * member.array_depth
    if member.optional:
        text += "?"
    if member.readonly:
        text = f"readonly & {text}"
    return text


# ------------------------------------------------------------------------------
# Declarations

@dataclass(frozen=True)
class Reference:
    """An identifier used as a value, e.g. a constant name in an annotation."""

    name: str
    module: Optional[str] = None


@dataclass(frozen=True)
class Annotation:
    name: str
    module: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)

    def is_(self, module: str, name: str) -> bool:
        return self.module == module and self.name == name


@dataclass(frozen=True)
class Parameter:
    name: str
    type: BalTypeDesc
    default: Any = None
    annotations: Tuple[Annotation, ...] = ()

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def annotated(self, module: str, name: str) -> bool:
        return any(a.is_(module, name) for a in self.annotations)


@dataclass(frozen=True)
class PathSegment:
    name: str
    type: Optional[BalTypeDesc] = None

    @property
    def is_param(self) -> bool:
        return self.type is not None


class MemberKind(Enum):
    RESOURCE = "resource"
    REMOTE = "remote"
    OTHER = "other"


@dataclass(frozen=True)
class ResourceFunction:
    accessor: str
    path: Tuple[PathSegment, ...]
    params: Tuple[Parameter, ...] = ()
    returns: Optional[BalTypeDesc] = None
    body: str = ""
    line: Optional[int] = None
    kind: MemberKind = MemberKind.RESOURCE

    @property
    def name(self) -> str:
        segments = "/".join(s.name if not s.is_param else f"[{s.name}]" for s in self.path) or "."
        return f"{self.accessor} {segments}"


@dataclass(frozen=True)
class RemoteFunction:
    name: str
    params: Tuple[Parameter, ...] = ()
    returns: Optional[BalTypeDesc] = None
    description: Optional[str] = None
    line: Optional[int] = None
    kind: MemberKind = MemberKind.REMOTE


@dataclass(frozen=True)
class OtherMember:
    name: str
    kind: MemberKind = MemberKind.OTHER


ServiceMember = Union[ResourceFunction, RemoteFunction, OtherMember]


@dataclass(frozen=True)
class ServiceDeclaration:
    base_path: str
    listener: str
    annotations: Tuple[Annotation, ...] = ()
    members: Tuple[ServiceMember, ...] = ()
    line: Optional[int] = None

    def annotation(self, module: str, name: str) -> Optional[Annotation]:
        return next((a for a in self.annotations if a.is_(module, name)), None)


@dataclass(frozen=True)
class ClassDefinition:
    name: str
    is_service: bool = False
    includes: Tuple[str, ...] = ()
    members: Tuple[ServiceMember, ...] = ()


@dataclass(frozen=True)
class RecordFieldDef:
    name: str
    type: BalTypeDesc
    optional: bool = False
    default: Any = None
    readonly: bool = False


@dataclass(frozen=True)
class RecordDefinition:
    name: str
    fields: Tuple[RecordFieldDef, ...] = ()
    includes: Tuple[str, ...] = ()
    closed: bool = False


@dataclass(frozen=True)
class TypeAlias:
    name: str
    type: BalTypeDesc


@dataclass(frozen=True)
class EnumDefinition:
    name: str
    members: Tuple[Tuple[str, str], ...] = ()

    @property
    def values(self) -> Tuple[str, ...]:
        return tuple(value for _, value in self.members)


TypeDeclaration = Union[RecordDefinition, TypeAlias, EnumDefinition]


@dataclass(frozen=True)
class ModuleDefinition:
    imports: Dict[str, str] = field(default_factory=dict)
    services: Tuple[ServiceDeclaration, ...] = ()
    classes: Dict[str, ClassDefinition] = field(default_factory=dict)
    types: Dict[str, TypeDeclaration] = field(default_factory=dict)
    constants: Dict[str, Any] = field(default_factory=dict)
    listeners: Dict[str, str] = field(default_factory=dict)


# ------------------------------------------------------------------------------
# Decoding

def _cls(obj) -> str:
    return obj.__class__.__name__


def _line(obj) -> Optional[int]:
    try:
        return get_location(obj).get("line")
    except (AttributeError, TypeError):
        return None


def unquote(name: str) -> str:
    """``'type`` -> ``type``"""
    return name[1:] if name and name.startswith("'") else name


def decode_type(type_desc) -> BalTypeDesc:
    return BalTypeDesc(tuple(_decode_single(single) for single in type_desc.members))


def _decode_single(single) -> BalType:
    atom = single.base
    kind = _cls(atom)
    common = dict(
        array_depth=len(single.arrays),
        optional=bool(single.optional),
        readonly=bool(single.intersect),
    )
    if kind == "MapType":
        return BalType(TypeKind.MAP, inner=decode_type(atom.value), **common)
    if kind == "StreamType":
        completion = decode_type(atom.completion) if atom.completion else None
        return BalType(TypeKind.STREAM, inner=decode_type(atom.value), completion=completion, **common)
    if kind == "NilType":
        return BalType(TypeKind.NIL, **common)
    if kind == "LiteralType":
        return BalType(TypeKind.LITERAL, name=atom.value, **common)
    if kind == "GroupType":
        return BalType(TypeKind.GROUP, inner=decode_type(atom.inner), **common)
    return BalType(TypeKind.NAMED, name=unquote(atom.name), module=atom.module or None, **common)


def decode_value(value) -> Any:
    """Annotation field values: primitives stay as-is, mappings/lists recurse."""
    kind = _cls(value)
    if kind == "MappingValue":
        return {unquote(f.key): decode_value(f.value) for f in value.fields}
    if kind == "ListValue":
        return [decode_value(item) for item in value.items]
    if kind == "QualifiedRef":
        return Reference(unquote(value.name), value.module or None)
    return value


def decode_annotation(annotation) -> Annotation:
    fields = decode_value(annotation.value) if annotation.value is not None else {}
    return Annotation(
        name=unquote(annotation.ref.name),
        module=annotation.ref.module or None,
        fields=fields,
    )


NIL_DEFAULT = "()"


def _decode_default(value) -> Any:
    """Unset optional matches come back from textX as ``""``."""
    if not isinstance(value, str):
        return value
    value = value.strip()
    if value == "{}":
        return {}
    if value == "[]":
        return []
    return value or None


def decode_parameter(param) -> Parameter:
    default = param.default
    return Parameter(
        name=unquote(param.name),
        type=decode_type(param.type),
        default=_decode_default(default),
        annotations=tuple(decode_annotation(a) for a in param.annotations),
    )


def block_text(block) -> str:
    parts = []
    for item in block.items:
        if isinstance(item, str):
            parts.append(item)
        else:
            parts.append("{" + block_text(item) + "}")
    return " ".join(p.strip() for p in parts if p.strip())


def _returns(member) -> Optional[BalTypeDesc]:
    return decode_type(member.returns) if member.returns is not None else None


def decode_member(member) -> ServiceMember:
    kind = _cls(member)
    if kind == "ResourceFunction":
        if member.path.root:
            segments: Tuple[PathSegment, ...] = ()
        else:
            segments = tuple(
                PathSegment(unquote(s.name), decode_type(s.type)) if _cls(s) == "PathParam"
                else PathSegment(s.name)
                for s in member.path.segments
            )
        return ResourceFunction(
            accessor=member.accessor,
            path=segments,
            params=tuple(decode_parameter(p) for p in member.params),
            returns=_returns(member),
            body=block_text(member.body),
            line=_line(member),
        )
    if kind == "RemoteFunction":
        return RemoteFunction(
            name=unquote(member.name),
            params=tuple(decode_parameter(p) for p in member.params),
            returns=_returns(member),
            line=_line(member),
        )
    name = getattr(member, "name", None) or _cls(member)
    return OtherMember(name=unquote(name))


def _service_path(path) -> str:
    if not path:
        return "/"
    path = path.strip()
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/") or "/"


def decode_service(service) -> ServiceDeclaration:
    return ServiceDeclaration(
        base_path=_service_path(service.path),
        listener=service.listener.strip(),
        annotations=tuple(decode_annotation(a) for a in service.annotations),
        members=tuple(decode_member(m) for m in service.members),
        line=_line(service),
    )


def decode_class(cls) -> ClassDefinition:
    includes = tuple(
        f"{m.type.module}:{m.type.name}" if m.type.module else m.type.name
        for m in cls.members if _cls(m) == "TypeInclusion"
    )
    members = tuple(decode_member(m) for m in cls.members if _cls(m) != "TypeInclusion")
    is_service = bool(cls.service) or any(i.endswith("Service") for i in includes)
    return ClassDefinition(unquote(cls.name), is_service, includes, members)


def decode_type_definition(definition) -> TypeDeclaration:
    name = unquote(definition.name)
    body = definition.body
    if _cls(body) != "RecordType":
        return TypeAlias(name, decode_type(body))

    fields = []
    includes = []
    for entry in body.entries:
        if _cls(entry) == "TypeInclusion":
            includes.append(f"{entry.type.module}:{entry.type.name}" if entry.type.module else entry.type.name)
            continue
        fields.append(RecordFieldDef(
            name=unquote(entry.name),
            type=decode_type(entry.type),
            optional=bool(entry.optional),
            default=_decode_default(entry.default),
            readonly=bool(entry.readonly),
        ))
    return RecordDefinition(name, tuple(fields), tuple(includes), closed=bool(body.closed))


def decode_module(model) -> ModuleDefinition:
    """Convert a textX ``BallerinaModule`` into a ``ModuleDefinition``."""
    imports = {}
    for imp in model.imports:
        prefix = imp.prefix or imp.package.rsplit(".", 1)[-1]
        imports[prefix] = f"{imp.org}/{imp.package}"

    services, classes, types, constants, listeners = [], {}, {}, {}, {}
    for member in model.members:
        kind = _cls(member)
        if kind == "ServiceDecl":
            services.append(decode_service(member))
        elif kind == "ServiceClass":
            decoded = decode_class(member)
            classes[decoded.name] = decoded
        elif kind == "TypeDefinition":
            decoded = decode_type_definition(member)
            types[decoded.name] = decoded
        elif kind == "EnumDecl":
            enum_members = tuple(
                (unquote(m.name), m.value if m.value else unquote(m.name)) for m in member.members
            )
            types[unquote(member.name)] = EnumDefinition(unquote(member.name), enum_members)
            for member_name, value in enum_members:
                constants[member_name] = value
        elif kind == "ConstDecl":
            constants[unquote(member.name)] = _decode_default(member.value)
        elif kind == "ListenerDecl":
            listeners[unquote(member.name)] = member.init.strip()

    logger.debug(
        f"[EXTRACT] {len(services)} services, {len(classes)} classes, {len(types)} types, {len(constants)} constants"
    )
    return ModuleDefinition(imports, tuple(services), classes, types, constants, listeners)
