"""
Client ``init`` function assembly.

Produces the constructor parameters, the transport client configuration, the
conditional copies of optional settings, the API key handling (including the
runtime branch for documents that allow both key and token auth) and the
connection URL with encoded path parameters.
"""

from dataclasses import dataclass
from typing import List, Tuple

from asyncapi_ballerina.api import constants as C
from asyncapi_ballerina.api.builders.auth_resolver import AuthResolution
from asyncapi_ballerina.api.builders.config_builders import (
    API_KEYS_CONFIG_TYPE,
    CONNECTION_CONFIG_TYPE,
    build_token_auth_type,
    ws_type,
)
from asyncapi_ballerina.api.builders.param_builders import ChannelParameters, ParameterOrigin
from asyncapi_ballerina.api.document import AsyncApiDocument, Channel
from asyncapi_ballerina.api.gen_logging import get_logger
from asyncapi_ballerina.api.syntax.nodes import (
    ArrayType,
    Assignment,
    BinaryExpression,
    Check,
    DocComment,
    DoBlock,
    Expression,
    FieldAccess,
    FunctionCall,
    FunctionDefinition,
    IfElse,
    Literal,
    MapType,
    MappingConstructor,
    MemberAccess,
    MethodCall,
    NIL,
    Name,
    NewExpression,
    OptionalType,
    Parameter,
    Return,
    SELF,
    Spread,
    Statement,
    StringTemplate,
    TypeArgument,
    TypeCast,
    TypeDescriptor,
    TypeRef,
    TypeTest,
    VariableDeclaration,
    order_parameters,
)
from asyncapi_ballerina.utils import PATH_PLACEHOLDER_RE, get_valid_name

logger = get_logger(__name__)

CONFIG = Name(C.CONFIG)
CLIENT_CONFIG = Name(C.CLIENT_CONFIG)
QUERY_PARAM = Name(C.QUERY_PARAM)
MODIFIED_URL = Name(C.MODIFIED_URL)
API_KEYS = Name("apiKeys")
STRING = TypeRef("string")

# Optional transport settings copied only when the user supplied them
CONDITIONAL_CONFIG_FIELDS = (
    ("secureSocket", ws_type(C.SECURE_SOCKET)),
    ("pingPongHandler", ws_type(C.PING_PONG_SERVICE)),
    ("retryConfig", ws_type(C.RETRY_CONFIG)),
    ("cookies", ArrayType(TypeRef(C.COOKIE, C.HTTP_MODULE))),
)


@dataclass(frozen=True)
class PathTemplate:
    expression: Expression
    path_parameters_found: bool


@dataclass(frozen=True)
class ClientInit:
    function: FunctionDefinition
    path_parameters_found: bool
    query_parameters_found: bool


def build_path_template(path: str) -> PathTemplate:
    """
    Rewrite ``{param}`` placeholders into ``${getEncodedUri(param)}``
    interpolations. Paths without placeholders stay plain string literals.
    """
    parts = []
    position = 0
    for match in PATH_PLACEHOLDER_RE.finditer(path):
        if match.start() > position:
            parts.append(path[position:match.start()])
        encoded = FunctionCall(C.ENCODE_URI_FUNCTION, (Name(get_valid_name(match.group(1))),))
        parts.append(encoded)
        position = match.end()

    if not parts:
        return PathTemplate(Literal(path), False)
    if position < len(path):
        parts.append(path[position:])
    return PathTemplate(StringTemplate(tuple(parts)), True)


def build_service_url_parameter(document: AsyncApiDocument) -> Parameter:
    if document.has_default_server_url:
        return Parameter(C.SERVICE_URL, STRING, Literal(document.server_url))
    return Parameter(C.SERVICE_URL, STRING)


def build_init_parameters(resolution: AuthResolution, service_url: Parameter,
                          channel_params: ChannelParameters) -> Tuple[Parameter, ...]:
    """Constructor parameters, required ones first."""
    if resolution.token:
        params = [Parameter(C.CONFIG, CONNECTION_CONFIG_TYPE), service_url]
    else:
        config = Parameter(C.CONFIG, CONNECTION_CONFIG_TYPE, MappingConstructor())
        params = [config, service_url] if not service_url.is_required else [service_url, config]
        if resolution.api_key:
            params.insert(0, Parameter(C.API_KEY_CONFIG_PARAM, API_KEYS_CONFIG_TYPE))
    params.extend(channel_params.function_parameters)
    return order_parameters(params)


def build_client_config_declaration(resolution: AuthResolution) -> VariableDeclaration:
    entries = []
    if resolution.token and not resolution.api_key:
        entries.append((C.AUTH, FieldAccess(CONFIG, C.AUTH)))
    for field_name in C.FORWARDED_CONFIG_FIELDS:
        value: Expression = FieldAccess(CONFIG, field_name)
        if field_name == "customHeaders":
            value = MappingConstructor((Spread(value),))
        entries.append((field_name, value))
    return VariableDeclaration(
        ws_type(C.CLIENT_CONFIGURATION),
        C.CLIENT_CONFIG,
        MappingConstructor(tuple(entries), multiline=True),
    )


def build_config_copy_block() -> DoBlock:
    """One independent ``if config.x is T`` copy per optional setting."""
    statements = []
    for field_name, field_type in CONDITIONAL_CONFIG_FIELDS:
        source = FieldAccess(CONFIG, field_name)
        statements.append(
            IfElse(
                TypeTest(source, field_type),
                (Assignment(
                    FieldAccess(CLIENT_CONFIG, field_name),
                    Check(MethodCall(source, "ensureType", (TypeArgument(field_type),))),
                ),),
            )
        )
    return DoBlock(tuple(statements))


def _api_key_injection(resolution: AuthResolution, source: Expression) -> List[Statement]:
    statements: List[Statement] = []
    for scheme_name, key_name in resolution.header_api_keys.items():
        key_field = resolution.api_key_field_for(scheme_name)
        statements.append(Assignment(
            MemberAccess(FieldAccess(CLIENT_CONFIG, "customHeaders"), Literal(key_name)),
            FieldAccess(source, key_field.field_name),
        ))
    for scheme_name, key_name in resolution.query_api_keys.items():
        key_field = resolution.api_key_field_for(scheme_name)
        statements.append(Assignment(
            MemberAccess(QUERY_PARAM, Literal(key_name)),
            FieldAccess(source, key_field.field_name),
        ))
    return statements


def build_api_key_statements(resolution: AuthResolution) -> List[Statement]:
    """Store the API keys on the client and place them in headers / query."""
    if not resolution.api_key:
        return []
    key_slot = FieldAccess(SELF, C.API_KEY_CONFIG_PARAM)
    if not resolution.token:
        source = Name(C.API_KEY_CONFIG_PARAM)
        return [Assignment(key_slot, MethodCall(source, "cloneReadOnly"))] + _api_key_injection(resolution, source)
    return [build_combined_auth_branch(resolution)]


def build_combined_auth_branch(resolution: AuthResolution) -> IfElse:
    """
    ``config.auth`` is either ``ApiKeysConfig`` or one of the token configs:
    keys go to the key slot, anything else is forwarded as transport auth.
    """
    auth = FieldAccess(CONFIG, C.AUTH)
    key_slot = FieldAccess(SELF, C.API_KEY_CONFIG_PARAM)
    then_body = [
        VariableDeclaration(API_KEYS_CONFIG_TYPE, API_KEYS.name, TypeCast(API_KEYS_CONFIG_TYPE, auth)),
        Assignment(key_slot, MethodCall(API_KEYS, "cloneReadOnly")),
    ]
    then_body.extend(_api_key_injection(resolution, API_KEYS))
    else_body = (
        Assignment(FieldAccess(CLIENT_CONFIG, C.AUTH), TypeCast(build_token_auth_type(resolution), auth)),
        Assignment(key_slot, NIL),
    )
    return IfElse(TypeTest(auth, API_KEYS_CONFIG_TYPE), tuple(then_body), else_body)


def build_header_parameter_statements(channel_params: ChannelParameters) -> List[Statement]:
    statements: List[Statement] = []
    for param in channel_params.of(ParameterOrigin.HEADER):
        value = Name(param.host_name)
        base_type: TypeDescriptor = param.type.inner if isinstance(param.type, OptionalType) else param.type
        header_value = value if base_type.render() == "string" else MethodCall(value, "toString")
        assignment = Assignment(
            MemberAccess(FieldAccess(CLIENT_CONFIG, "customHeaders"), Literal(param.name)),
            header_value,
        )
        if param.nullable:
            statements.append(IfElse(TypeTest(value, base_type), (assignment,)))
        else:
            statements.append(assignment)
    return statements


def build_query_map_declaration(channel_params: ChannelParameters) -> VariableDeclaration:
    entries = tuple(
        (param.name, Name(param.host_name)) for param in channel_params.of(ParameterOrigin.QUERY)
    )
    return VariableDeclaration(MapType(TypeRef("anydata")), C.QUERY_PARAM, MappingConstructor(entries))


def build_client_init(document: AsyncApiDocument, resolution: AuthResolution, channel: Channel,
                      channel_params: ChannelParameters) -> ClientInit:
    service_url = build_service_url_parameter(document)
    params = build_init_parameters(resolution, service_url, channel_params)
    has_query = bool(channel_params.of(ParameterOrigin.QUERY) or resolution.query_api_keys)

    body: List[Statement] = [build_client_config_declaration(resolution), build_config_copy_block()]
    if has_query:
        body.append(build_query_map_declaration(channel_params))
    body.extend(build_api_key_statements(resolution))
    body.extend(build_header_parameter_statements(channel_params))

    template = build_path_template(channel.path)
    url: Expression = Name(C.SERVICE_URL)
    if channel.path not in ("", "/"):
        url = BinaryExpression(url, "+", template.expression)
    body.append(VariableDeclaration(STRING, C.MODIFIED_URL, url))
    if has_query:
        body.append(Assignment(
            MODIFIED_URL,
            BinaryExpression(MODIFIED_URL, "+", Check(FunctionCall(C.QUERY_PATH_FUNCTION, (QUERY_PARAM,)))),
        ))

    body.append(VariableDeclaration(
        ws_type(C.WEBSOCKET_CLIENT),
        C.WEBSOCKET_EP,
        Check(NewExpression((MODIFIED_URL, CLIENT_CONFIG))),
    ))
    body.append(Assignment(FieldAccess(SELF, C.CLIENT_EP), Name(C.WEBSOCKET_EP)))
    body.append(Return())

    param_docs = [
        (C.CONFIG, "The configurations to be used when initializing the `connector`"),
        (C.SERVICE_URL, "URL of the target service"),
    ]
    if resolution.api_key and not resolution.token:
        param_docs.insert(0, (C.API_KEY_CONFIG_PARAM, "API keys for authorization"))
    param_docs.extend(channel_params.docs)
    order = [p.name for p in params]
    param_docs.sort(key=lambda item: order.index(item[0]) if item[0] in order else len(order))

    function = FunctionDefinition(
        name="init",
        params=params,
        returns=OptionalType(TypeRef("error")),
        body=tuple(body),
        qualifiers=("public", "isolated"),
        doc=DocComment(
            "Gets invoked to initialize the `connector`.",
            tuple(param_docs),
            "An error if connector initialization failed",
        ),
    )
    logger.debug(f"[INIT] {len(params)} parameters, {len(body)} statements")
    return ClientInit(function, template.path_parameters_found, has_query)
