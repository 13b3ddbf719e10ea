"""
Ballerina type definitions from ``components.schemas`` and message payloads.

Schema references form a graph (networkx); strongly connected components mark
reference cycles. A required field whose direct reference stays inside its
cycle is made nilable, otherwise no finite value of the record could exist.
"""

from typing import Any, Dict, List, Optional, Set

import networkx as nx

from asyncapi_ballerina.api import constants as C
from asyncapi_ballerina.api.document import AsyncApiDocument, Message
from asyncapi_ballerina.api.extractors.type_mapper import UNSUPPORTED, to_host_type
from asyncapi_ballerina.api.gen_logging import get_logger
from asyncapi_ballerina.api.syntax.nodes import (
    AnonymousRecordType,
    ArrayType,
    IncludedRecord,
    Literal,
    MapType,
    OptionalType,
    RecordField,
    RecordTypeDefinition,
    TypeAliasDefinition,
    TypeDefinition,
    TypeDescriptor,
    TypeRef,
    UnionType,
)
from asyncapi_ballerina.utils import capitalize, extract_reference_type, get_valid_name, normalize_doc

logger = get_logger(__name__)

ANYDATA = TypeRef("anydata")


def schema_type_name(ref: str) -> str:
    return get_valid_name(extract_reference_type(ref), is_type=True)


def collect_refs(schema: Any) -> List[str]:
    """All ``$ref`` values inside a schema fragment, in document order."""
    refs = []
    if isinstance(schema, dict):
        if isinstance(schema.get("$ref"), str):
            refs.append(schema["$ref"])
        for key, value in schema.items():
            if key != "$ref":
                refs.extend(collect_refs(value))
    elif isinstance(schema, list):
        for item in schema:
            refs.extend(collect_refs(item))
    return refs


def build_schema_graph(schemas: Dict[str, Any]) -> nx.DiGraph:
    graph = nx.DiGraph()
    for name in schemas:
        graph.add_node(get_valid_name(name, is_type=True))
    for name, schema in schemas.items():
        owner = get_valid_name(name, is_type=True)
        for ref in collect_refs(schema):
            graph.add_edge(owner, schema_type_name(ref), type="reference")
    return graph


class SchemaTypeBuilder:
    """Collects type definitions for one document; use one instance per generation run."""

    def __init__(self, document: AsyncApiDocument):
        self.document = document
        self.definitions: Dict[str, Optional[TypeDefinition]] = {}
        self.graph = build_schema_graph(document.schemas)
        self._payloads: Dict[str, TypeDescriptor] = {}
        self._cycle_of: Dict[str, int] = {}
        for index, component in enumerate(nx.strongly_connected_components(self.graph)):
            node = next(iter(component))
            if len(component) > 1 or self.graph.has_edge(node, node):
                for member in component:
                    self._cycle_of[member] = index
        if self._cycle_of:
            logger.debug(f"[TYPES] cyclic schemas: {sorted(self._cycle_of)}")

    # -- public -----------------------------------------------------------------

    def build(self) -> List[TypeDefinition]:
        for name, schema in self.document.schemas.items():
            self.define(get_valid_name(name, is_type=True), schema or {})
        return self.result()

    def result(self) -> List[TypeDefinition]:
        return [definition for definition in self.definitions.values() if definition is not None]

    def define(self, name: str, schema: Dict[str, Any]) -> None:
        if name in self.definitions:
            return
        self.definitions[name] = None
        if self._is_object(schema) or "allOf" in schema:
            definition: TypeDefinition = self._record(name, schema)
        else:
            definition = TypeAliasDefinition(
                name, self.schema_to_type(schema, name, name), doc=normalize_doc(schema.get("description"))
            )
        self.definitions[name] = definition
        logger.debug(f"[TYPES] {name}")

    def payload_type(self, message: Message) -> TypeDescriptor:
        """Type of a message payload, hoisting inline objects into a record named after the message."""
        payload = message.payload
        if not payload:
            return ANYDATA
        if "$ref" in payload:
            return TypeRef(schema_type_name(payload["$ref"]))
        name = get_valid_name(message.name, is_type=True)
        if name not in self._payloads:
            if self._is_object(payload) or "allOf" in payload:
                record_name = self._unique_name(name)
                self.define(record_name, payload)
                self._payloads[name] = TypeRef(record_name)
            else:
                self._payloads[name] = self.schema_to_type(payload, name, name)
        return self._payloads[name]

    def schema_to_type(self, schema: Optional[Dict[str, Any]], owner: str, hint: str) -> TypeDescriptor:
        """
        Map a schema fragment to a type descriptor.

        Args:
            schema: JSON schema fragment.
            owner: Name of the enclosing type definition.
            hint: Name used if an inline object has to be hoisted.
        """
        schema = schema or {}
        nullable = schema.get("nullable") is True or schema.get(C.X_NULLABLE) is True
        type_desc = self._schema_to_type(schema, owner, hint)
        return OptionalType(type_desc) if nullable else type_desc

    # -- internals --------------------------------------------------------------

    def _schema_to_type(self, schema: Dict[str, Any], owner: str, hint: str) -> TypeDescriptor:
        if "$ref" in schema:
            return TypeRef(schema_type_name(schema["$ref"]))

        variants = schema.get("oneOf") or schema.get("anyOf")
        if variants:
            return UnionType.of(*[
                self.schema_to_type(variant, owner, f"{hint}{index}")
                for index, variant in enumerate(variants, start=1)
            ])

        if "allOf" in schema or self._is_object(schema):
            name = self._unique_name(hint)
            self.define(name, schema)
            return TypeRef(name)

        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            members = [t for t in schema_type if t != "null"]
            inner = UnionType.of(*[self._schema_to_type({**schema, "type": t}, owner, hint) for t in members]) \
                if members else ANYDATA
            return OptionalType(inner) if "null" in schema_type else inner

        if schema_type == "array":
            items = schema.get("items")
            if not items:
                return ArrayType(ANYDATA)
            return ArrayType(self.schema_to_type(items, owner, f"{hint}Item"))

        if schema_type == "object":
            additional = schema.get("additionalProperties")
            if isinstance(additional, dict):
                return MapType(self.schema_to_type(additional, owner, f"{hint}Value"))
            return AnonymousRecordType()

        if schema_type is None:
            return ANYDATA

        host_type = to_host_type(schema_type, schema.get("format"))
        if host_type is UNSUPPORTED:
            logger.warning(f"Schema type '{schema_type}' used in '{owner}' is not supported, using anydata")
            return ANYDATA
        return TypeRef(host_type)

    @staticmethod
    def _is_object(schema: Dict[str, Any]) -> bool:
        return "properties" in schema and schema.get("type") in (None, "object")

    def _unique_name(self, name: str) -> str:
        candidate = name
        index = 1
        existing = set(self.definitions) | set(self.graph.nodes)
        while candidate in existing:
            index += 1
            candidate = f"{name}{index}"
        return candidate

    def _closes_cycle(self, owner: str, schema: Dict[str, Any]) -> bool:
        ref = schema.get("$ref")
        if not isinstance(ref, str):
            return False
        target = schema_type_name(ref)
        return owner in self._cycle_of and self._cycle_of.get(target) == self._cycle_of[owner]

    def _record(self, name: str, schema: Dict[str, Any]) -> RecordTypeDefinition:
        members: List[Any] = []
        required: Set[str] = set(schema.get("required") or [])
        parts = [schema]
        for part in schema.get("allOf") or []:
            if "$ref" in part:
                members.append(IncludedRecord(TypeRef(schema_type_name(part["$ref"]))))
            else:
                parts.append(part)
                required.update(part.get("required") or [])

        for part in parts:
            for prop, prop_schema in (part.get("properties") or {}).items():
                prop_schema = prop_schema or {}
                field_name = get_valid_name(prop)
                hint = name + capitalize(field_name.lstrip("'"))
                field_type = self.schema_to_type(prop_schema, name, hint)
                is_required = prop in required
                if is_required and self._closes_cycle(name, prop_schema):
                    field_type = OptionalType(field_type)
                default = prop_schema.get("default")
                members.append(RecordField(
                    name=field_name,
                    type=field_type,
                    default=Literal(default) if default is not None and not is_required else None,
                    optional=not is_required and default is None,
                    doc=normalize_doc(prop_schema.get("description")),
                ))

        return RecordTypeDefinition(
            name,
            tuple(members),
            doc=normalize_doc(schema.get("description")),
            closed=schema.get("additionalProperties") is False,
        )


def build_schema_types(document: AsyncApiDocument) -> List[TypeDefinition]:
    return SchemaTypeBuilder(document).build()
