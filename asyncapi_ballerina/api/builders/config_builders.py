"""
Configuration record synthesis.

Builds the record types a generated client exposes to its users from an
``AuthResolution``: ``ApiKeysConfig``, the custom OAuth2 grant records that
carry a document-provided URL as default, and ``ConnectionConfig``.
"""

from typing import List, Optional, Tuple

from asyncapi_ballerina.api import constants as C
from asyncapi_ballerina.api.builders.auth_resolver import AuthResolution, AuthType
from asyncapi_ballerina.api.gen_logging import get_logger
from asyncapi_ballerina.api.syntax.nodes import (
    ArrayType,
    IncludedRecord,
    Literal,
    ListConstructor,
    MapType,
    MappingConstructor,
    NIL,
    ObjectField,
    OptionalType,
    RecordField,
    RecordTypeDefinition,
    TypeDescriptor,
    TypeRef,
    UnionType,
    readonly,
)
from asyncapi_ballerina.utils import normalize_doc

logger = get_logger(__name__)

API_KEYS_CONFIG_DOC = (
    "Provides API key configurations needed when communicating with a remote WEBSOCKET service endpoint."
)
CONNECTION_CONFIG_DOC = (
    "Provides a set of configurations for controlling the behaviours when communicating "
    "with a remote WebSocket service endpoint."
)
AUTH_FIELD_DOC = "Configurations related to client authentication"
COMBINED_AUTH_FIELD_DOC = (
    "Provides Auth configurations needed when communicating with a remote Websocket service endpoint."
)


def ws_type(name: str) -> TypeRef:
    return TypeRef(name, C.WEBSOCKET_MODULE)


API_KEYS_CONFIG_TYPE = TypeRef(C.API_KEYS_CONFIG)
CONNECTION_CONFIG_TYPE = TypeRef(C.CONNECTION_CONFIG)

# (auth type, generic library type, custom record name, overridden field, URL attribute, docs)
_GRANT_OVERRIDES = (
    (AuthType.CLIENT_CREDENTIALS, C.CLIENT_CREDENTIALS_GRANT_CONFIG, C.TOKEN_URL,
     "client_credentials_token_url", "OAuth2 Client Credentials Grant Configs", "Token URL"),
    (AuthType.PASSWORD, C.PASSWORD_GRANT_CONFIG, C.TOKEN_URL,
     "password_token_url", "OAuth2 Password Grant Configs", "Token URL"),
    (AuthType.REFRESH_TOKEN, C.REFRESH_TOKEN_GRANT_CONFIG, C.REFRESH_URL,
     "refresh_token_url", "OAuth2 Refresh Token Grant Configs", "Refresh URL"),
)


def auth_config_type(resolution: AuthResolution, auth_type: AuthType) -> TypeRef:
    """Library type for a token auth tag, or the custom record when a URL was captured."""
    if auth_type is AuthType.BEARER:
        return ws_type(C.BEARER_TOKEN_CONFIG)
    if auth_type is AuthType.BASIC:
        return ws_type(C.CREDENTIALS_CONFIG)
    for tag, type_name, _, url_attr, _, _ in _GRANT_OVERRIDES:
        if tag is auth_type:
            if getattr(resolution, url_attr):
                return TypeRef(type_name)
            return ws_type(type_name)
    raise ValueError(f"No auth config type for {auth_type}")


def build_token_auth_type(resolution: AuthResolution) -> TypeDescriptor:
    """Union of the token auth config types, in the order the auth types were found."""
    members = [auth_config_type(resolution, auth_type) for auth_type in resolution.token_types]
    return UnionType.of(*members)


def build_auth_field_type(resolution: AuthResolution) -> Optional[TypeDescriptor]:
    """Type of ``ConnectionConfig.auth``; None when only API keys are used."""
    if not resolution.token:
        return None
    token_type = build_token_auth_type(resolution)
    if resolution.api_key:
        return UnionType.of(token_type, API_KEYS_CONFIG_TYPE)
    return token_type


def build_api_keys_config(resolution: AuthResolution) -> Optional[RecordTypeDefinition]:
    if not resolution.api_key:
        return None
    fields = tuple(
        RecordField(name=key.field_name, type=TypeRef("string"), doc=normalize_doc(key.description))
        for key in resolution.api_key_fields
    )
    return RecordTypeDefinition(C.API_KEYS_CONFIG, fields, doc=API_KEYS_CONFIG_DOC)


def build_grant_config_records(resolution: AuthResolution) -> List[RecordTypeDefinition]:
    """Custom grant records whose URL field defaults to the document's URL."""
    records = []
    for _, type_name, url_field, url_attr, record_doc, field_doc in _GRANT_OVERRIDES:
        url = getattr(resolution, url_attr)
        if not url:
            continue
        records.append(
            RecordTypeDefinition(
                type_name,
                (
                    IncludedRecord(ws_type(type_name)),
                    RecordField(url_field, TypeRef("string"), default=Literal(url), doc=field_doc),
                ),
                doc=record_doc,
            )
        )
        logger.debug(f"[CONFIG] {type_name}.{url_field} defaults to {url}")
    return records


def _transport_fields() -> Tuple[RecordField, ...]:
    string = TypeRef("string")
    decimal = TypeRef("decimal")
    return (
        RecordField("subProtocols", ArrayType(string), default=ListConstructor(),
                    doc="Negotiable sub protocols of the client"),
        RecordField("customHeaders", MapType(string), default=MappingConstructor(),
                    doc="Custom headers, which should be sent to the server"),
        RecordField("readTimeout", decimal, default=Literal(-1),
                    doc="Read timeout (in seconds) of the client"),
        RecordField("writeTimeout", decimal, default=Literal(-1),
                    doc="Write timeout (in seconds) of the client"),
        RecordField("secureSocket", OptionalType(ws_type(C.SECURE_SOCKET)), default=NIL,
                    doc="SSL/TLS-related options"),
        RecordField("maxFrameSize", TypeRef("int"), default=Literal(65536),
                    doc="The maximum payload size of a WebSocket frame in bytes"),
        RecordField("webSocketCompressionEnabled", TypeRef("boolean"), default=Literal(True),
                    doc="Enable support for compression in the WebSocket"),
        RecordField("handShakeTimeout", decimal, default=Literal(300),
                    doc="Time (in seconds) that a connection waits to get the response of the WebSocket handshake"),
        RecordField("cookies", ArrayType(TypeRef(C.COOKIE, C.HTTP_MODULE)), optional=True,
                    doc="An Array of http:Cookie"),
        RecordField("pingPongHandler", ws_type(C.PING_PONG_SERVICE), optional=True,
                    doc="A service to handle the ping/pong frames"),
        RecordField("retryConfig", OptionalType(ws_type(C.RETRY_CONFIG)), default=NIL,
                    doc="Configurations associated with retrying"),
        RecordField("validation", TypeRef("boolean"), default=Literal(True),
                    doc="Enable/disable constraint validation"),
    )


def build_connection_config(resolution: AuthResolution) -> RecordTypeDefinition:
    fields = []
    auth_type = build_auth_field_type(resolution)
    if auth_type is not None:
        doc = COMBINED_AUTH_FIELD_DOC if resolution.combined else AUTH_FIELD_DOC
        fields.append(RecordField(C.AUTH, auth_type, doc=doc))
    fields.extend(_transport_fields())
    return RecordTypeDefinition(C.CONNECTION_CONFIG, tuple(fields), doc=CONNECTION_CONFIG_DOC)


def build_api_key_class_field(resolution: AuthResolution) -> Optional[ObjectField]:
    """``final readonly & ApiKeysConfig apiKeyConfig;``, nilable when token auth may be used instead."""
    if not resolution.api_key:
        return None
    key_type = readonly(API_KEYS_CONFIG_TYPE)
    if resolution.token:
        key_type = OptionalType(key_type)
    return ObjectField(C.API_KEY_CONFIG_PARAM, key_type)


def build_auth_records(resolution: AuthResolution) -> List[RecordTypeDefinition]:
    """All configuration records, in output order."""
    records = []
    api_keys = build_api_keys_config(resolution)
    if api_keys is not None:
        records.append(api_keys)
    records.extend(build_grant_config_records(resolution))
    records.append(build_connection_config(resolution))
    return records
