"""
Ballerina WebSocket resource -> AsyncAPI channel, messages and schemas.

One ``RemoteMapper`` handles the resource functions of one service. Problems
local to a single handler are recorded as diagnostics and the handler is
skipped; sibling handlers keep mapping.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

from asyncapi_ballerina.api import constants as C
from asyncapi_ballerina.api.extractors.service_extractor import (
    BalType,
    BalTypeDesc,
    ClassDefinition,
    EnumDefinition,
    MemberKind,
    ModuleDefinition,
    NIL_DEFAULT,
    Parameter,
    RecordDefinition,
    RemoteFunction,
    ResourceFunction,
    TypeAlias,
    TypeKind,
)
from asyncapi_ballerina.api.extractors.type_mapper import to_schema_type
from asyncapi_ballerina.api.gen_logging import get_logger
from asyncapi_ballerina.utils import capitalize

logger = get_logger(__name__)

NEW_CLASS_RE = re.compile(r"\bnew\s+([A-Za-z_][A-Za-z0-9_]*)\s*\(")
CALLER_TYPE = "websocket:Caller"


@dataclass(frozen=True)
class AsyncApiConverterDiagnostic:
    message: str
    severity: str = "WARNING"
    location: Optional[str] = None

    def __str__(self) -> str:
        where = f" ({self.location})" if self.location else ""
        return f"{self.severity}: {self.message}{where}"


class MappingProblem(Exception):
    """Raised inside a single handler mapping; becomes a diagnostic."""


def schema_ref(name: str) -> Dict[str, str]:
    return {"$ref": f"#/components/schemas/{name}"}


def message_ref(name: str) -> Dict[str, str]:
    return {"$ref": f"#/components/messages/{name}"}


class SchemaCollector:
    """Builds ``components.schemas`` entries on demand from module type definitions."""

    def __init__(self, module: ModuleDefinition, dispatcher_key: Optional[str] = None):
        self.module = module
        self.dispatcher_key = dispatcher_key
        self.schemas: Dict[str, Dict[str, Any]] = {}

    def schema_for(self, type_desc: BalTypeDesc) -> Dict[str, Any]:
        members = [m for m in type_desc.members if not m.is_nil]
        if not members:
            raise MappingProblem(f"Type '{type_desc.render()}' has no JSON representation")
        if len(members) == 1:
            schema = self.member_schema(members[0])
        else:
            schema = {"oneOf": [self.member_schema(m) for m in members]}
        if type_desc.nilable:
            schema[C.X_NULLABLE] = True
        return schema

    def member_schema(self, member: BalType) -> Dict[str, Any]:
        if member.array_depth:
            schema = self._base_schema(member)
            for _ in range(member.array_depth):
                schema = {"type": "array", "items": schema}
            return schema
        return self._base_schema(member)

    def _base_schema(self, member: BalType) -> Dict[str, Any]:
        if member.kind is TypeKind.MAP:
            return {"type": "object", "additionalProperties": self.schema_for(member.inner)}
        if member.kind is TypeKind.LITERAL:
            return {"type": "string", "const": member.name}
        if member.kind in (TypeKind.GROUP, TypeKind.STREAM):
            return self.schema_for(member.inner)
        if member.kind is TypeKind.NIL:
            return {}
        if not member.module:
            builtin = to_schema_type(member.name)
            if builtin is not None:
                return builtin
            if member.name in self.module.types:
                self.register(member.name)
                return schema_ref(member.name)
        raise MappingProblem(f"Type '{member.qualified_name}' is not defined in the module")

    def register(self, name: str) -> None:
        if name in self.schemas:
            return
        self.schemas[name] = {}
        definition = self.module.types[name]
        if isinstance(definition, RecordDefinition):
            schema = self._record_schema(definition)
        elif isinstance(definition, EnumDefinition):
            schema = {"type": "string", "enum": list(definition.values)}
        elif isinstance(definition, TypeAlias):
            schema = self.schema_for(definition.type)
        else:
            raise MappingProblem(f"Unsupported type definition '{name}'")
        self.schemas[name] = schema
        logger.debug(f"[SCHEMA] {name}")

    def _record_schema(self, record: RecordDefinition) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        required: List[str] = []
        for record_field in record.fields:
            prop = self.schema_for(record_field.type)
            if record_field.readonly:
                prop["readOnly"] = True
            default = record_field.default
            if default is None:
                if not record_field.optional:
                    required.append(record_field.name)
            elif record_field.name == self.dispatcher_key and isinstance(default, str) and default != NIL_DEFAULT:
                prop["const"] = default
            elif default != NIL_DEFAULT:
                prop["default"] = default
            properties[record_field.name] = prop

        body: Dict[str, Any] = {"type": "object"}
        if required:
            body["required"] = required
        body["properties"] = properties
        if record.closed:
            body["additionalProperties"] = False

        if not record.includes:
            return body
        parts = []
        for include in record.includes:
            if ":" in include or include not in self.module.types:
                raise MappingProblem(f"Included record '{include}' is not defined in the module")
            self.register(include)
            parts.append(schema_ref(include))
        return {"allOf": parts + [body]}


@dataclass
class ChannelMapping:
    path: str
    channel: Dict[str, Any]
    messages: Dict[str, Dict[str, Any]]


class RemoteMapper:
    """Maps the resource functions of one service declaration."""

    def __init__(self, module: ModuleDefinition, dispatcher_key: str):
        self.module = module
        self.dispatcher_key = dispatcher_key
        self.schemas = SchemaCollector(module, dispatcher_key)
        self.messages: Dict[str, Dict[str, Any]] = {}
        self.diagnostics: List[AsyncApiConverterDiagnostic] = []
        self._handled: Set[str] = set()
        self._operations_of: Dict[str, Tuple[List[str], List[str]]] = {}

    # -- diagnostics ------------------------------------------------------------

    def report(self, message: str, location: Optional[str] = None, severity: str = "WARNING") -> None:
        diagnostic = AsyncApiConverterDiagnostic(message, severity, location)
        logger.warning(str(diagnostic))
        self.diagnostics.append(diagnostic)

    # -- channels ---------------------------------------------------------------

    def map_resource(self, base_path: str, function: ResourceFunction) -> Optional[ChannelMapping]:
        location = f"resource {function.name}" + (f" line {function.line}" if function.line else "")
        if function.accessor != "get":
            self.report(f"Only 'get' resources upgrade to websocket, skipping '{function.name}'", location)
            return None
        try:
            path, parameters = self._channel_path(base_path, function)
            channel: Dict[str, Any] = {}
            if parameters:
                channel["parameters"] = parameters
            channel["bindings"] = {"ws": self._binding(function.params)}
        except MappingProblem as e:
            self.report(str(e), location, severity="ERROR")
            return None

        service_class = self._service_class(function)
        if service_class is None:
            self.report(f"Could not find the service class returned by '{function.name}'", location)
            return ChannelMapping(path, channel, {})

        publish, subscribe = self._operations(service_class)
        if publish:
            channel["publish"] = {"message": {"oneOf": [message_ref(name) for name in publish]}}
        if subscribe:
            channel["subscribe"] = {"message": {"oneOf": [message_ref(name) for name in subscribe]}}
        logger.debug(f"[CHANNEL] {path}: publish={publish} subscribe={subscribe}")
        return ChannelMapping(path, channel, {n: self.messages[n] for n in publish + subscribe})

    def _channel_path(self, base_path: str, function: ResourceFunction) -> Tuple[str, Dict[str, Any]]:
        segments = []
        parameters: Dict[str, Any] = {}
        for segment in function.path:
            if segment.is_param:
                segments.append(f"{{{segment.name}}}")
                parameters[segment.name] = {"schema": self.schemas.schema_for(segment.type)}
            else:
                segments.append(segment.name)
        path = base_path.rstrip("/")
        if segments:
            path = f"{path}/{'/'.join(segments)}"
        return path or "/", parameters

    def _binding(self, params: Tuple[Parameter, ...]) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        headers: Dict[str, Any] = {}
        query_required: List[str] = []
        header_required: List[str] = []
        for param in params:
            if param.type.is_named(CALLER_TYPE) or param.type.is_named("http:Request"):
                continue
            header = next((a for a in param.annotations if a.is_(C.HTTP_MODULE, "Header")), None)
            prop = self.schemas.schema_for(param.type)
            if param.has_default and param.default != NIL_DEFAULT:
                prop["default"] = param.default
            if header is not None:
                name = header.fields.get("name") or param.name
                headers[name] = prop
                if not param.has_default and not param.type.nilable:
                    header_required.append(name)
            else:
                query[param.name] = prop
                if not param.has_default and not param.type.nilable:
                    query_required.append(param.name)

        binding: Dict[str, Any] = {}
        if query:
            binding["query"] = _object(query, query_required)
        if headers:
            binding["headers"] = _object(headers, header_required)
        binding["bindingVersion"] = C.WS_BINDING_VERSION
        return binding

    def _service_class(self, function: ResourceFunction) -> Optional[ClassDefinition]:
        if function.returns is not None:
            for member in function.returns.without_error_and_nil():
                if member.kind is TypeKind.NAMED and member.name in self.module.classes:
                    return self.module.classes[member.name]
        match = NEW_CLASS_RE.search(function.body)
        if match and match.group(1) in self.module.classes:
            return self.module.classes[match.group(1)]
        return None

    # -- messages ---------------------------------------------------------------

    def _operations(self, service_class: ClassDefinition) -> Tuple[List[str], List[str]]:
        if service_class.name not in self._operations_of:
            self._operations_of[service_class.name] = self._map_class(service_class)
        return self._operations_of[service_class.name]

    def _map_class(self, service_class: ClassDefinition) -> Tuple[List[str], List[str]]:
        publish: List[str] = []
        subscribe: List[str] = []
        for member in service_class.members:
            if member.kind is not MemberKind.REMOTE or member.name in C.LIFECYCLE_REMOTE_FUNCTIONS:
                continue
            if not member.name.startswith("on"):
                continue
            location = f"{service_class.name}.{member.name}" + (f" line {member.line}" if member.line else "")
            try:
                name, responses = self._map_remote(member)
            except MappingProblem as e:
                self.report(str(e), location)
                continue
            if name not in publish:
                publish.append(name)
            for response in responses:
                if response not in subscribe:
                    subscribe.append(response)
        return publish, subscribe

    def _map_remote(self, function: RemoteFunction) -> Tuple[str, List[str]]:
        payload = next((p for p in function.params if not p.type.is_named(CALLER_TYPE)), None)
        if payload is None:
            raise MappingProblem(f"Remote function '{function.name}' has no message parameter")

        name = self._message_name(payload.type)
        message: Dict[str, Any] = {"payload": self.schemas.schema_for(payload.type)}
        if function.name not in C.GENERIC_REMOTE_FUNCTIONS:
            self._check_dispatcher_field(function, payload.type)

        responses: List[str] = []
        if function.returns is not None:
            members = function.returns.without_error_and_nil()
            streaming = any(m.kind is TypeKind.STREAM for m in members)
            for member in members:
                target = member.inner if member.kind is TypeKind.STREAM else BalTypeDesc((member,))
                for inner in target.without_error_and_nil():
                    response = self._message_name(BalTypeDesc((inner,)))
                    self.messages.setdefault(response, {"payload": self.schemas.member_schema(inner)})
                    if response not in responses:
                        responses.append(response)
            if responses:
                refs = [message_ref(r) for r in responses]
                message[C.X_RESPONSE] = refs[0] if len(refs) == 1 else {"oneOf": refs}
                message[C.X_RESPONSE_TYPE] = C.STREAMING if streaming else C.SIMPLE_RPC

        if name in self._handled:
            raise MappingProblem(f"Message '{name}' is handled by more than one remote function")
        self._handled.add(name)
        self.messages[name] = message
        return name, responses

    def _message_name(self, type_desc: BalTypeDesc) -> str:
        members = type_desc.without_error_and_nil()
        if len(members) != 1 or members[0].name is None:
            raise MappingProblem(f"Message type '{type_desc.render()}' must be a single named type")
        member = members[0]
        suffix = "Array" * member.array_depth
        return capitalize(member.name) + suffix

    def _check_dispatcher_field(self, function: RemoteFunction, type_desc: BalTypeDesc) -> None:
        members = type_desc.without_error_and_nil()
        if len(members) != 1:
            return
        definition = self.module.types.get(members[0].name)
        if not isinstance(definition, RecordDefinition):
            return
        if not self._has_field(definition, self.dispatcher_key):
            self.report(
                f"Record '{definition.name}' used by '{function.name}' has no '{self.dispatcher_key}' field"
            )

    def _has_field(self, record: RecordDefinition, name: str) -> bool:
        if any(f.name == name for f in record.fields):
            return True
        for include in record.includes:
            included = self.module.types.get(include)
            if isinstance(included, RecordDefinition) and self._has_field(included, name):
                return True
        return False


def _object(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object"}
    if required:
        schema["required"] = required
    schema["properties"] = properties
    return schema
