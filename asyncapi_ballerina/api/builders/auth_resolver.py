"""
Security scheme resolution.

Classifies the document's security schemes and derives what the generated
client needs: which auth config types go into the ``auth`` union, the token
URLs worth baking into custom grant records, and where API keys are placed.
The result is an immutable ``AuthResolution`` that the config and init
builders receive explicitly.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from asyncapi_ballerina.api.document import SchemeFamily, SecurityScheme
from asyncapi_ballerina.api.gen_logging import get_logger
from asyncapi_ballerina.errors import NoUsableAuthError, UnsupportedSchemeError
from asyncapi_ballerina.utils import get_valid_name

logger = get_logger(__name__)


class AuthType(Enum):
    BASIC = "basic"
    BEARER = "bearer"
    CLIENT_CREDENTIALS = "client-credentials"
    PASSWORD = "password"
    REFRESH_TOKEN = "refresh-token"
    API_KEY = "api-key"


@dataclass(frozen=True)
class ApiKeyField:
    scheme_name: str
    key_name: str
    field_name: str
    location: str
    description: Optional[str] = None


@dataclass(frozen=True)
class AuthResolution:
    """What the security schemes of a document require from the client."""

    auth_types: Tuple[AuthType, ...] = ()
    api_key: bool = False
    token: bool = False
    client_credentials_token_url: Optional[str] = None
    password_token_url: Optional[str] = None
    refresh_token_url: Optional[str] = None
    query_api_keys: Dict[str, str] = field(default_factory=dict)
    header_api_keys: Dict[str, str] = field(default_factory=dict)
    api_key_fields: Tuple[ApiKeyField, ...] = ()

    @property
    def combined(self) -> bool:
        return self.api_key and self.token

    @property
    def has_auth(self) -> bool:
        return self.api_key or self.token

    @property
    def token_types(self) -> Tuple[AuthType, ...]:
        return tuple(t for t in self.auth_types if t is not AuthType.API_KEY)

    def api_key_field_for(self, scheme_name: str) -> ApiKeyField:
        key_name = self.query_api_keys.get(scheme_name) or self.header_api_keys.get(scheme_name)
        if key_name is None:
            raise KeyError(scheme_name)
        field_name = get_valid_name(key_name)
        return next(f for f in self.api_key_fields if f.field_name == field_name)


NO_AUTH = AuthResolution()


def resolve_auth(schemes: Mapping[str, SecurityScheme]) -> AuthResolution:
    """
    Classify every security scheme and accumulate the auth requirements.

    Args:
        schemes: scheme name -> decoded SecurityScheme, in document order.

    Returns:
        AuthResolution with auth types in first-seen order.

    Raises:
        UnsupportedSchemeError: for userPassword / apiKey schemes and for
            http or oauth2 schemes that contribute no usable auth type.
        NoUsableAuthError: if neither key nor token auth was found.
    """
    accumulator = _AuthAccumulator()
    for scheme in schemes.values():
        accumulator.add(scheme)
    resolution = accumulator.result()

    if not resolution.has_auth:
        raise NoUsableAuthError("Ballerina unsupported type of security schema")

    logger.debug(
        f"[AUTH] types={[t.value for t in resolution.auth_types]} "
        f"api_key={resolution.api_key} token={resolution.token}"
    )
    return resolution


class _AuthAccumulator:
    """Per-call scratch state; only the frozen result leaves ``resolve_auth``."""

    def __init__(self):
        self.auth_types: List[AuthType] = []
        self.api_key = False
        self.token = False
        self.urls: Dict[str, str] = {}
        self.query_api_keys: Dict[str, str] = {}
        self.header_api_keys: Dict[str, str] = {}
        self.api_key_fields: List[ApiKeyField] = []

    def add(self, scheme: SecurityScheme) -> None:
        family = scheme.family
        if family is SchemeFamily.HTTP:
            self._add_http(scheme)
        elif family is SchemeFamily.OAUTH2:
            self._add_oauth2(scheme)
        elif family is SchemeFamily.HTTP_API_KEY:
            self._add_api_key(scheme)
        elif family is SchemeFamily.USER_PASSWORD:
            raise UnsupportedSchemeError("userPassword type security schema doesn't support yet")
        elif family is SchemeFamily.API_KEY:
            raise UnsupportedSchemeError("apiKey type security schema doesn't support yet")
        else:
            logger.warning(f"Security scheme '{scheme.name}' of type '{scheme.type_name}' is not supported, skipping")

    def _tag(self, auth_type: AuthType) -> None:
        if auth_type not in self.auth_types:
            self.auth_types.append(auth_type)

    def _capture_url(self, slot: str, url: Optional[str], scheme_name: str) -> None:
        if not url:
            return
        existing = self.urls.get(slot)
        if existing is None:
            self.urls[slot] = url
        elif existing != url:
            logger.warning(f"Ignoring {slot} '{url}' of scheme '{scheme_name}', already using '{existing}'")

    def _add_http(self, scheme: SecurityScheme) -> None:
        if scheme.scheme == "basic":
            self._tag(AuthType.BASIC)
        elif scheme.scheme == "bearer":
            self._tag(AuthType.BEARER)
        else:
            raise UnsupportedSchemeError(
                f"http security scheme '{scheme.name}' uses unsupported scheme '{scheme.scheme}'"
            )
        self.token = True

    def _add_oauth2(self, scheme: SecurityScheme) -> None:
        flows = scheme.flows
        tagged = False
        if flows.client_credentials is not None:
            self._tag(AuthType.CLIENT_CREDENTIALS)
            self._capture_url("client credentials token URL", flows.client_credentials.token_url, scheme.name)
            tagged = True
        if flows.password is not None:
            self._tag(AuthType.PASSWORD)
            self._capture_url("password token URL", flows.password.token_url, scheme.name)
            tagged = True
        if flows.authorization_code is not None:
            self._tag(AuthType.BEARER)
            self._tag(AuthType.REFRESH_TOKEN)
            code = flows.authorization_code
            self._capture_url("refresh URL", code.refresh_url or code.token_url, scheme.name)
            tagged = True
        if flows.implicit is not None:
            self._tag(AuthType.BEARER)
            tagged = True
        if not tagged:
            raise UnsupportedSchemeError(f"oauth2 security scheme '{scheme.name}' declares no supported flow")
        self.token = True

    def _add_api_key(self, scheme: SecurityScheme) -> None:
        key_name = scheme.key_name or scheme.name
        if scheme.location == "query":
            self.query_api_keys[scheme.name] = key_name
        elif scheme.location == "header":
            self.header_api_keys[scheme.name] = key_name
        else:
            raise UnsupportedSchemeError(
                f"httpApiKey security scheme '{scheme.name}' must be placed in the query or a header, "
                f"found '{scheme.location}'"
            )

        field_name = get_valid_name(key_name)
        if all(f.field_name != field_name for f in self.api_key_fields):
            self.api_key_fields.append(
                ApiKeyField(
                    scheme_name=scheme.name,
                    key_name=key_name,
                    field_name=field_name,
                    location=scheme.location,
                    description=scheme.description,
                )
            )
        self._tag(AuthType.API_KEY)
        self.api_key = True

    def result(self) -> AuthResolution:
        return AuthResolution(
            auth_types=tuple(self.auth_types),
            api_key=self.api_key,
            token=self.token,
            client_credentials_token_url=self.urls.get("client credentials token URL"),
            password_token_url=self.urls.get("password token URL"),
            refresh_token_url=self.urls.get("refresh URL"),
            query_api_keys=dict(self.query_api_keys),
            header_api_keys=dict(self.header_api_keys),
            api_key_fields=tuple(self.api_key_fields),
        )
