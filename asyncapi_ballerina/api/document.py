"""
AsyncAPI document loading and decoding.

The loader reads YAML/JSON, pulls schemas referenced from other files into
``components.schemas`` and decodes the result into read-only dataclasses.
Nothing downstream of ``decode_document`` looks at raw dictionaries except for
JSON-schema fragments, which are passed through as-is.
"""

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from asyncapi_ballerina.api.gen_logging import get_logger
from asyncapi_ballerina.errors import AsyncApiGeneratorError, UnsupportedReferenceError
from asyncapi_ballerina.utils import extract_reference_type, replace_placeholders

logger = get_logger(__name__)

LOCAL_SCHEMA_PREFIX = "#/components/schemas/"
LOCAL_MESSAGE_PREFIX = "#/components/messages/"


# ------------------------------------------------------------------------------
# Security schemes

class SchemeFamily(Enum):
    HTTP = "http"
    OAUTH2 = "oauth2"
    HTTP_API_KEY = "httpapikey"
    USER_PASSWORD = "userpassword"
    API_KEY = "apikey"
    OTHER = "other"

    @classmethod
    def from_type(cls, type_name: Optional[str]) -> "SchemeFamily":
        normalized = (type_name or "").strip().lower()
        for family in cls:
            if family.value == normalized:
                return family
        return cls.OTHER


@dataclass(frozen=True)
class OAuthFlow:
    token_url: Optional[str] = None
    refresh_url: Optional[str] = None
    authorization_url: Optional[str] = None
    scopes: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> Optional["OAuthFlow"]:
        if raw is None:
            return None
        return cls(
            token_url=_blank_to_none(raw.get("tokenUrl")),
            refresh_url=_blank_to_none(raw.get("refreshUrl")),
            authorization_url=_blank_to_none(raw.get("authorizationUrl")),
            scopes=tuple((raw.get("scopes") or {}).keys()),
        )


@dataclass(frozen=True)
class OAuthFlows:
    client_credentials: Optional[OAuthFlow] = None
    password: Optional[OAuthFlow] = None
    authorization_code: Optional[OAuthFlow] = None
    implicit: Optional[OAuthFlow] = None

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "OAuthFlows":
        raw = raw or {}
        return cls(
            client_credentials=OAuthFlow.from_dict(raw.get("clientCredentials")),
            password=OAuthFlow.from_dict(raw.get("password")),
            authorization_code=OAuthFlow.from_dict(raw.get("authorizationCode")),
            implicit=OAuthFlow.from_dict(raw.get("implicit")),
        )


@dataclass(frozen=True)
class SecurityScheme:
    """One entry of ``components.securitySchemes``."""

    name: str
    family: SchemeFamily
    type_name: str
    scheme: Optional[str] = None
    flows: OAuthFlows = field(default_factory=OAuthFlows)
    location: Optional[str] = None
    key_name: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, name: str, raw: Dict[str, Any]) -> "SecurityScheme":
        if not isinstance(raw, dict):
            raise AsyncApiGeneratorError(f"Security scheme '{name}' must be a mapping")
        scheme = raw.get("scheme")
        location = raw.get("in")
        return cls(
            name=name,
            family=SchemeFamily.from_type(raw.get("type")),
            type_name=str(raw.get("type") or ""),
            scheme=scheme.strip().lower() if isinstance(scheme, str) else None,
            flows=OAuthFlows.from_dict(raw.get("flows")),
            location=location.strip().lower() if isinstance(location, str) else None,
            key_name=raw.get("name"),
            description=raw.get("description"),
        )


# ------------------------------------------------------------------------------
# Channels and messages

@dataclass(frozen=True)
class ChannelParameterDecl:
    name: str
    description: Optional[str] = None
    schema: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ChannelBinding:
    """The ``bindings`` object of a channel, keyed by protocol."""

    protocols: Tuple[str, ...]
    ws: Optional[Dict[str, Any]] = None

    def _section(self, key: str) -> Dict[str, Any]:
        section = (self.ws or {}).get(key) or {}
        return section.get("properties") or {}

    @property
    def query_properties(self) -> Dict[str, Any]:
        return self._section("query")

    @property
    def header_properties(self) -> Dict[str, Any]:
        return self._section("headers")


@dataclass(frozen=True)
class Message:
    name: str
    payload: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    responses: Tuple["Message", ...] = ()


@dataclass(frozen=True)
class Channel:
    path: str
    description: Optional[str] = None
    parameters: Tuple[ChannelParameterDecl, ...] = ()
    bindings: Optional[ChannelBinding] = None
    publish_messages: Tuple[Message, ...] = ()
    subscribe_messages: Tuple[Message, ...] = ()


# ------------------------------------------------------------------------------
# Document

@dataclass(frozen=True)
class AsyncApiDocument:
    title: str
    version: str
    server_url: str
    channels: Tuple[Channel, ...]
    schemas: Dict[str, Any]
    security_schemes: Optional[Dict[str, SecurityScheme]]
    raw: Dict[str, Any] = field(repr=False, default_factory=dict)

    @property
    def has_default_server_url(self) -> bool:
        return self.server_url != "/"

    def resolve_ref(self, ref: str) -> Dict[str, Any]:
        if not isinstance(ref, str) or not ref.startswith("#/"):
            raise UnsupportedReferenceError(f"Only local references are supported, found: {ref}")
        return _follow_pointer(self.raw, ref[1:], ref)

    def resolve_schema(self, schema: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Follow ``$ref`` chains until a concrete schema is reached."""
        seen = set()
        current = schema or {}
        while "$ref" in current:
            ref = current["$ref"]
            if ref in seen:
                raise UnsupportedReferenceError(f"Reference cycle without a concrete schema: {ref}")
            seen.add(ref)
            current = self.resolve_ref(ref)
        return current


def load_asyncapi_document(path) -> AsyncApiDocument:
    """Load an AsyncAPI document (YAML or JSON) and decode it."""
    source = Path(path).resolve()
    raw = _read_file(source)
    if not isinstance(raw, dict):
        raise AsyncApiGeneratorError(f"{source} does not contain an AsyncAPI document")
    _RefBundler(raw, source).bundle()
    logger.debug(f"[LOAD] {source}")
    return decode_document(raw)


def load_asyncapi_document_str(content: str) -> AsyncApiDocument:
    raw = yaml.safe_load(content)
    if not isinstance(raw, dict):
        raise AsyncApiGeneratorError("Input does not contain an AsyncAPI document")
    return decode_document(raw)


def decode_document(raw: Dict[str, Any]) -> AsyncApiDocument:
    version = str(raw.get("asyncapi") or "")
    if version and not version.startswith("2."):
        raise AsyncApiGeneratorError(f"Only AsyncAPI 2.x documents are supported, found {version}")

    components = raw.get("components") or {}
    raw_schemes = components.get("securitySchemes")
    security_schemes = None
    if raw_schemes is not None:
        security_schemes = {
            name: SecurityScheme.from_dict(name, scheme) for name, scheme in raw_schemes.items()
        }

    info = raw.get("info") or {}
    decoder = _MessageDecoder(raw)
    channels = tuple(
        _decode_channel(path, channel or {}, decoder)
        for path, channel in (raw.get("channels") or {}).items()
    )

    return AsyncApiDocument(
        title=str(info.get("title") or ""),
        version=str(info.get("version") or ""),
        server_url=_server_url(raw.get("servers") or {}),
        channels=channels,
        schemas=dict(components.get("schemas") or {}),
        security_schemes=security_schemes,
        raw=raw,
    )


def _decode_channel(path: str, raw: Dict[str, Any], decoder: "_MessageDecoder") -> Channel:
    parameters = tuple(
        ChannelParameterDecl(name=name, description=(decl or {}).get("description"), schema=(decl or {}).get("schema"))
        for name, decl in (raw.get("parameters") or {}).items()
    )

    bindings = None
    raw_bindings = raw.get("bindings")
    if raw_bindings is not None:
        bindings = ChannelBinding(protocols=tuple(raw_bindings.keys()), ws=raw_bindings.get("ws"))

    return Channel(
        path=path,
        description=raw.get("description"),
        parameters=parameters,
        bindings=bindings,
        publish_messages=decoder.operation_messages(raw.get("publish"), path, "Publish"),
        subscribe_messages=decoder.operation_messages(raw.get("subscribe"), path, "Subscribe"),
    )


class _MessageDecoder:
    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw

    def operation_messages(self, operation: Optional[Dict[str, Any]], path: str, kind: str) -> Tuple[Message, ...]:
        if not operation or "message" not in operation:
            return ()
        fallback = _channel_fallback_name(path, kind)
        return self.messages(operation["message"], fallback)

    def messages(self, raw: Any, fallback: str) -> Tuple[Message, ...]:
        if not isinstance(raw, dict):
            return ()
        variants = raw.get("oneOf") or raw.get("anyOf")
        if variants:
            return tuple(
                self.message(item, f"{fallback}{index}") for index, item in enumerate(variants, start=1)
            )
        return (self.message(raw, fallback),)

    def message(self, raw: Dict[str, Any], fallback: str, with_responses: bool = True) -> Message:
        name = raw.get("name")
        if "$ref" in raw:
            ref = raw["$ref"]
            resolved = _follow_pointer(self.raw, ref[1:], ref) if ref.startswith("#/") else None
            if resolved is None:
                raise UnsupportedReferenceError(f"Only local message references are supported: {ref}")
            name = resolved.get("name") or extract_reference_type(ref)
            raw = resolved

        responses = ()
        if with_responses and raw.get("x-response"):
            response_name = f"{name or fallback}Response"
            responses = tuple(
                self.message(item, f"{response_name}{index}" if index else response_name, with_responses=False)
                for index, item in enumerate(_as_variants(raw["x-response"]))
            )

        return Message(
            name=name or raw.get("title") or fallback,
            payload=raw.get("payload"),
            description=raw.get("description") or raw.get("summary"),
            responses=responses,
        )


def _as_variants(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    return list(raw.get("oneOf") or raw.get("anyOf") or [raw])


def _channel_fallback_name(path: str, kind: str) -> str:
    words = [w for w in path.replace("{", "").replace("}", "").split("/") if w]
    stem = "".join(w[:1].upper() + w[1:] for w in words) or "Root"
    return f"{stem}{kind}Message"


def _server_url(servers: Dict[str, Any]) -> str:
    if not servers:
        return "/"
    server = next(iter(servers.values())) or {}
    url = str(server.get("url") or "/")
    if url == "/":
        return url

    variables = server.get("variables") or {}

    def substitute(name: str) -> str:
        variable = variables.get(name) or {}
        if "default" not in variable:
            raise AsyncApiGeneratorError(f"Server variable '{name}' has no default value")
        return str(variable["default"])

    url = replace_placeholders(url, substitute)
    if "://" not in url:
        url = f"{server.get('protocol') or 'ws'}://{url}"
    return url


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ------------------------------------------------------------------------------
# File loading and cross-document references

def _read_file(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(path, encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def _follow_pointer(document: Any, pointer: str, ref: str) -> Any:
    current = document
    for part in [p for p in pointer.split("/") if p]:
        part = part.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            raise UnsupportedReferenceError(f"Cannot resolve reference: {ref}")
    return current


class _RefBundler:
    """Copy schemas referenced from other files into the root document."""

    def __init__(self, root: Dict[str, Any], root_path: Path):
        self.root = root
        self.root_path = root_path
        self._files: Dict[Path, Any] = {root_path: root}
        self._localized: Dict[Tuple[Path, str], str] = {}

    def bundle(self) -> None:
        self._walk(self.root, self.root_path)

    def _walk(self, node: Any, current: Path) -> None:
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str):
                local = self._localize(ref, current)
                if local is not None:
                    node["$ref"] = local
            for value in list(node.values()):
                self._walk(value, current)
        elif isinstance(node, list):
            for item in node:
                self._walk(item, current)

    def _localize(self, ref: str, current: Path) -> Optional[str]:
        file_part, _, pointer = ref.partition("#")
        if not file_part and current == self.root_path:
            return None

        target = (current.parent / file_part).resolve() if file_part else current
        if target == self.root_path:
            return f"#{pointer}"

        key = (target, pointer)
        if key in self._localized:
            return self._localized[key]

        if target not in self._files:
            self._files[target] = _read_file(target)
        fragment = copy.deepcopy(_follow_pointer(self._files[target], pointer, ref))

        name = pointer.rstrip("/").rsplit("/", 1)[-1] if pointer.strip("/") else target.stem
        components = self.root["components"] = self.root.get("components") or {}
        schemas = components["schemas"] = components.get("schemas") or {}
        if name in schemas and schemas[name] != fragment:
            raise UnsupportedReferenceError(
                f"Schema '{name}' referenced from {target.name} clashes with an existing schema"
            )

        local = f"{LOCAL_SCHEMA_PREFIX}{name}"
        self._localized[key] = local
        schemas[name] = fragment
        logger.debug(f"[BUNDLE] {ref} -> {local}")
        self._walk(fragment, target)
        return local
