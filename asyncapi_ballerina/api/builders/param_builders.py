"""
Channel parameter mapping.

Path parameters come from the channel's ``parameters`` map, query and header
parameters from the JSON schema fragments inside ``bindings.ws``. Each one is
mapped to a typed client init parameter.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from asyncapi_ballerina.api import constants as C
from asyncapi_ballerina.api.document import AsyncApiDocument, Channel, ChannelParameterDecl
from asyncapi_ballerina.api.extractors.type_mapper import is_scalar, to_host_type
from asyncapi_ballerina.api.gen_logging import get_logger
from asyncapi_ballerina.api.syntax.nodes import (
    ArrayType,
    Literal,
    OptionalType,
    Parameter,
    TypeDescriptor,
    TypeRef,
    order_parameters,
)
from asyncapi_ballerina.errors import (
    AsyncApiGeneratorError,
    UnsupportedBindingError,
    UnsupportedParameterTypeError,
)
from asyncapi_ballerina.utils import extract_reference_type, get_valid_name, normalize_doc, path_placeholders

logger = get_logger(__name__)


class ParameterOrigin(Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"


@dataclass(frozen=True)
class ChannelParameter:
    name: str
    host_name: str
    origin: ParameterOrigin
    type: TypeDescriptor
    is_array: bool = False
    item_type: Optional[str] = None
    has_default: bool = False
    default_value: Any = None
    nullable: bool = False
    description: Optional[str] = None

    @property
    def schema_type(self) -> str:
        return self.type.render()

    def as_parameter(self) -> Parameter:
        default = Literal(self.default_value) if self.has_default else None
        return Parameter(self.host_name, self.type, default)


@dataclass(frozen=True)
class ChannelParameters:
    parameters: Tuple[ChannelParameter, ...] = ()

    def of(self, origin: ParameterOrigin) -> Tuple[ChannelParameter, ...]:
        return tuple(p for p in self.parameters if p.origin is origin)

    @property
    def function_parameters(self) -> Tuple[Parameter, ...]:
        return order_parameters([p.as_parameter() for p in self.parameters])

    @property
    def docs(self) -> Tuple[Tuple[str, str], ...]:
        return tuple((p.host_name, p.description) for p in self.parameters if p.description)


def check_websocket_binding(channel: Channel) -> None:
    bindings = channel.bindings
    if bindings is None or bindings.ws is None:
        raise UnsupportedBindingError(
            f"Channel '{channel.path}': this tool supports only the websocket protocol, use ws bindings"
        )
    others = [p for p in bindings.protocols if p != "ws"]
    if others:
        logger.warning(f"Channel '{channel.path}': ignoring non websocket bindings {others}")


def map_channel_parameters(channel: Channel, document: AsyncApiDocument) -> ChannelParameters:
    """
    Map path, query and header parameters of one channel.

    Raises:
        UnsupportedBindingError: the channel has no ws binding.
        UnsupportedParameterTypeError: a parameter cannot be expressed as a
            client parameter, or a path placeholder has no declaration.
    """
    check_websocket_binding(channel)

    declared = {decl.name for decl in channel.parameters}
    for name in path_placeholders(channel.path):
        if name not in declared:
            raise UnsupportedParameterTypeError(
                f"Channel '{channel.path}': path parameter '{name}' is not declared in the channel parameters", name
            )

    mapped = [map_path_parameter(decl, document) for decl in channel.parameters]
    for name, schema in channel.bindings.query_properties.items():
        mapped.append(map_binding_parameter(name, schema or {}, document, ParameterOrigin.QUERY))
    for name, schema in channel.bindings.header_properties.items():
        mapped.append(map_binding_parameter(name, schema or {}, document, ParameterOrigin.HEADER))

    seen = {}
    for param in mapped:
        if param.host_name in seen:
            raise AsyncApiGeneratorError(
                f"Channel '{channel.path}': parameters '{seen[param.host_name]}' and '{param.name}' "
                f"both map to '{param.host_name}'"
            )
        seen[param.host_name] = param.name
        logger.debug(f"[PARAM] {param.origin.value} {param.schema_type} {param.host_name}")

    return ChannelParameters(tuple(mapped))


def map_path_parameter(decl: ChannelParameterDecl, document: AsyncApiDocument) -> ChannelParameter:
    schema = decl.schema
    if schema is None:
        param_type = TypeRef("string")
    elif "$ref" in schema:
        param_type = _scalar_reference(decl.name, schema["$ref"], document, "path")
    else:
        host_type = to_host_type(schema.get("type"), schema.get("format"))
        if not is_scalar(host_type):
            raise UnsupportedParameterTypeError(_invalid_path_param(decl.name), decl.name)
        param_type = TypeRef(host_type)

    return ChannelParameter(
        name=decl.name,
        host_name=get_valid_name(decl.name),
        origin=ParameterOrigin.PATH,
        type=param_type,
        description=normalize_doc(decl.description or (schema or {}).get("description")),
    )


def _invalid_path_param(name: str) -> str:
    return f"Path parameter contains an invalid type, which is not supported by Ballerina : {name}"


def _scalar_reference(name: str, ref: str, document: AsyncApiDocument, origin: str) -> TypeRef:
    target = document.resolve_schema({"$ref": ref})
    target_type = target.get("type")
    if target_type == "object" or "properties" in target:
        raise UnsupportedParameterTypeError(
            f"Ballerina does not support object type {origin} parameters : {name}", name
        )
    if not is_scalar(to_host_type(target_type, target.get("format"))):
        raise UnsupportedParameterTypeError(
            f"Unsupported parameter type is found in the parameter : {name}", name
        )
    return TypeRef(get_valid_name(extract_reference_type(ref), is_type=True))


def map_binding_parameter(name: str, schema: Dict[str, Any], document: AsyncApiDocument,
                          origin: ParameterOrigin) -> ChannelParameter:
    """Map a query or header property of the ws binding."""
    is_array = False
    item_type = None
    value_type = None

    if "$ref" in schema:
        param_type: TypeDescriptor = _scalar_reference(name, schema["$ref"], document, origin.value)
        target = document.resolve_schema({"$ref": schema["$ref"]})
        value_type = to_host_type(target.get("type"), target.get("format"))
    elif schema.get("type") == "array":
        if origin is ParameterOrigin.HEADER:
            raise UnsupportedParameterTypeError(
                f"Array type header parameters are not supported : {name}", name
            )
        item = _array_item_type(name, schema.get("items"), document)
        param_type = ArrayType(item)
        is_array = True
        item_type = item.render()
    else:
        host_type = to_host_type(schema.get("type"), schema.get("format"))
        if not is_scalar(host_type):
            raise UnsupportedParameterTypeError(
                f"Unsupported parameter type is found in the parameter : {name}", name
            )
        param_type = TypeRef(host_type)
        value_type = host_type

    nullable = schema.get(C.X_NULLABLE) is True
    if nullable:
        param_type = OptionalType(param_type)

    default = schema.get("default")
    if default is not None and value_type is not None:
        default = _coerce_default(name, default, value_type)

    return ChannelParameter(
        name=name,
        host_name=get_valid_name(name),
        origin=origin,
        type=param_type,
        is_array=is_array,
        item_type=item_type,
        has_default=default is not None,
        default_value=default,
        nullable=nullable,
        description=normalize_doc(schema.get("description")),
    )


def _coerce_default(name: str, value: Any, host_type: str) -> Any:
    """Convert a default value to the parameter's type so the literal matches it."""
    if host_type == "string":
        return str(value)
    try:
        if host_type in ("int", "byte"):
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise ValueError(value)
            return int(value)
        if host_type in ("float", "decimal"):
            if isinstance(value, bool):
                raise ValueError(value)
            return float(value)
        if host_type == "boolean":
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lower() in ("true", "false"):
                return value.strip().lower() == "true"
            raise ValueError(value)
    except (TypeError, ValueError) as e:
        raise UnsupportedParameterTypeError(
            f"Default value {value!r} of the parameter '{name}' is not a valid {host_type}", name
        ) from e
    return value


def _array_item_type(name: str, items: Optional[Dict[str, Any]], document: AsyncApiDocument) -> TypeRef:
    items = items or {}
    if "$ref" in items:
        return _scalar_reference(name, items["$ref"], document, "array item")
    item_type = items.get("type")
    if item_type is None:
        raise UnsupportedParameterTypeError(
            f"Please define the array item type of the parameter : {name}", name
        )
    if item_type not in C.QUERY_ARRAY_ITEM_TYPES:
        raise UnsupportedParameterTypeError(
            f"Unsupported parameter type is found in the parameter : {name}", name
        )
    return TypeRef(to_host_type(item_type, items.get("format")))
