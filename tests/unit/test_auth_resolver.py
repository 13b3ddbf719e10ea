"""
Unit tests for security scheme classification.
"""

import pytest

from asyncapi_ballerina.api.builders.auth_resolver import AuthType, resolve_auth
from asyncapi_ballerina.api.document import SecurityScheme
from asyncapi_ballerina.errors import NoUsableAuthError, UnsupportedSchemeError


def schemes(**raw):
    return {name: SecurityScheme.from_dict(name, value) for name, value in raw.items()}


class TestTokenAuth:

    def test_http_basic_and_bearer(self):
        resolution = resolve_auth(schemes(
            basicAuth={"type": "http", "scheme": "basic"},
            bearerAuth={"type": "http", "scheme": "Bearer"},
        ))
        assert resolution.auth_types == (AuthType.BASIC, AuthType.BEARER)
        assert resolution.token
        assert not resolution.api_key

    def test_unsupported_http_scheme(self):
        with pytest.raises(UnsupportedSchemeError):
            resolve_auth(schemes(digest={"type": "http", "scheme": "digest"}))

    def test_oauth2_flows_in_order(self):
        resolution = resolve_auth(schemes(oauth={
            "type": "oauth2",
            "flows": {
                "clientCredentials": {"tokenUrl": "https://example.com/token", "scopes": {}},
                "password": {"tokenUrl": "https://example.com/password", "scopes": {}},
                "authorizationCode": {
                    "authorizationUrl": "https://example.com/auth",
                    "tokenUrl": "https://example.com/code-token",
                    "refreshUrl": "https://example.com/refresh",
                    "scopes": {},
                },
            },
        }))
        assert resolution.auth_types == (
            AuthType.CLIENT_CREDENTIALS, AuthType.PASSWORD, AuthType.BEARER, AuthType.REFRESH_TOKEN,
        )
        assert resolution.client_credentials_token_url == "https://example.com/token"
        assert resolution.password_token_url == "https://example.com/password"
        assert resolution.refresh_token_url == "https://example.com/refresh"

    def test_refresh_url_falls_back_to_token_url(self):
        resolution = resolve_auth(schemes(oauth={
            "type": "oauth2",
            "flows": {"authorizationCode": {"tokenUrl": "https://example.com/code-token", "scopes": {}}},
        }))
        assert resolution.refresh_token_url == "https://example.com/code-token"

    def test_blank_urls_are_absent(self):
        resolution = resolve_auth(schemes(oauth={
            "type": "oauth2",
            "flows": {"clientCredentials": {"tokenUrl": "  ", "scopes": {}}},
        }))
        assert resolution.auth_types == (AuthType.CLIENT_CREDENTIALS,)
        assert resolution.client_credentials_token_url is None

    def test_first_url_wins(self):
        resolution = resolve_auth(schemes(
            first={"type": "oauth2", "flows": {"clientCredentials": {"tokenUrl": "https://a/token"}}},
            second={"type": "oauth2", "flows": {"clientCredentials": {"tokenUrl": "https://b/token"}}},
        ))
        assert resolution.client_credentials_token_url == "https://a/token"
        assert resolution.auth_types == (AuthType.CLIENT_CREDENTIALS,)

    def test_oauth2_without_flows(self):
        with pytest.raises(UnsupportedSchemeError):
            resolve_auth(schemes(oauth={"type": "oauth2", "flows": {}}))


class TestApiKeyAuth:

    def test_query_and_header_keys(self):
        resolution = resolve_auth(schemes(
            queryKey={"type": "httpApiKey", "in": "query", "name": "api-key"},
            headerKey={"type": "httpApiKey", "in": "header", "name": "X-Client-Id", "description": "Client"},
        ))
        assert resolution.api_key
        assert not resolution.token
        assert resolution.query_api_keys == {"queryKey": "api-key"}
        assert resolution.header_api_keys == {"headerKey": "X-Client-Id"}
        assert [f.field_name for f in resolution.api_key_fields] == ["apiKey", "xClientId"]
        assert resolution.api_key_field_for("headerKey").description == "Client"

    def test_same_key_name_gives_one_field(self):
        resolution = resolve_auth(schemes(
            a={"type": "httpApiKey", "in": "query", "name": "token"},
            b={"type": "httpApiKey", "in": "header", "name": "token"},
        ))
        assert len(resolution.api_key_fields) == 1

    def test_cookie_location_rejected(self):
        with pytest.raises(UnsupportedSchemeError):
            resolve_auth(schemes(key={"type": "httpApiKey", "in": "cookie", "name": "session"}))

    def test_combined(self):
        resolution = resolve_auth(schemes(
            bearer={"type": "http", "scheme": "bearer"},
            key={"type": "httpApiKey", "in": "header", "name": "api-key"},
        ))
        assert resolution.combined
        assert resolution.auth_types == (AuthType.BEARER, AuthType.API_KEY)
        assert resolution.token_types == (AuthType.BEARER,)


class TestRejections:

    def test_user_password(self):
        with pytest.raises(UnsupportedSchemeError, match="userPassword"):
            resolve_auth(schemes(up={"type": "userPassword"}))

    def test_bare_api_key(self):
        with pytest.raises(UnsupportedSchemeError, match="apiKey"):
            resolve_auth(schemes(key={"type": "apiKey", "in": "user"}))

    def test_empty_map(self):
        with pytest.raises(NoUsableAuthError):
            resolve_auth({})

    def test_only_unknown_types(self):
        with pytest.raises(NoUsableAuthError):
            resolve_auth(schemes(cert={"type": "X509"}))

    def test_resolution_is_deterministic(self):
        raw = dict(
            bearer={"type": "http", "scheme": "bearer"},
            basic={"type": "http", "scheme": "basic"},
            key={"type": "httpApiKey", "in": "query", "name": "k"},
        )
        assert resolve_auth(schemes(**raw)) == resolve_auth(schemes(**raw))
