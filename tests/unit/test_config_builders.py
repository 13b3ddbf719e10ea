"""
Unit tests for configuration record synthesis.
"""

from asyncapi_ballerina.api.builders.auth_resolver import NO_AUTH, resolve_auth
from asyncapi_ballerina.api.builders.config_builders import (
    build_api_key_class_field,
    build_api_keys_config,
    build_auth_field_type,
    build_auth_records,
    build_connection_config,
    build_grant_config_records,
)
from asyncapi_ballerina.api.document import SecurityScheme

BEARER = {"type": "http", "scheme": "bearer"}
BASIC = {"type": "http", "scheme": "basic"}
HEADER_KEY = {"type": "httpApiKey", "in": "header", "name": "api-key"}
QUERY_KEY = {"type": "httpApiKey", "in": "query", "name": "appId"}


def resolve(**raw):
    return resolve_auth({name: SecurityScheme.from_dict(name, value) for name, value in raw.items()})


class TestAuthField:

    def test_bearer_and_api_key_union(self):
        resolution = resolve(bearerAuth=BEARER, keyAuth=HEADER_KEY)
        assert build_auth_field_type(resolution).render() == "websocket:BearerTokenConfig|ApiKeysConfig"

    def test_api_key_only_has_no_auth_field(self):
        resolution = resolve(keyAuth=HEADER_KEY)
        assert build_auth_field_type(resolution) is None
        config = build_connection_config(resolution)
        assert config.field_named("auth") is None

    def test_token_union_follows_scheme_order(self):
        first = build_auth_field_type(resolve(a=BASIC, b=BEARER)).render()
        second = build_auth_field_type(resolve(a=BASIC, b=BEARER)).render()
        assert first == second == "websocket:CredentialsConfig|websocket:BearerTokenConfig"

    def test_grant_without_url_uses_library_type(self):
        resolution = resolve(oauth={"type": "oauth2", "flows": {"clientCredentials": {"scopes": {}}}})
        assert build_auth_field_type(resolution).render() == "websocket:OAuth2ClientCredentialsGrantConfig"
        assert build_grant_config_records(resolution) == []

    def test_grant_with_url_uses_custom_record(self):
        resolution = resolve(oauth={
            "type": "oauth2",
            "flows": {"clientCredentials": {"tokenUrl": "https://example.com/token", "scopes": {}}},
        })
        assert build_auth_field_type(resolution).render() == "OAuth2ClientCredentialsGrantConfig"


class TestRecords:

    def test_api_keys_config_fields(self):
        resolution = resolve(a=HEADER_KEY, b=QUERY_KEY)
        record = build_api_keys_config(resolution)
        assert record.name == "ApiKeysConfig"
        assert [(f.name, f.type.render(), f.is_required) for f in record.fields] == [
            ("apiKey", "string", True),
            ("appId", "string", True),
        ]

    def test_no_api_keys_config_without_keys(self):
        assert build_api_keys_config(resolve(b=BEARER)) is None

    def test_token_url_override(self):
        resolution = resolve(oauth={
            "type": "oauth2",
            "flows": {"clientCredentials": {"tokenUrl": "https://example.com/token", "scopes": {}}},
        })
        [record] = build_grant_config_records(resolution)
        assert record.name == "OAuth2ClientCredentialsGrantConfig"
        rendered = record.render()
        assert "*websocket:OAuth2ClientCredentialsGrantConfig;" in rendered
        assert 'string tokenUrl = "https://example.com/token";' in rendered

    def test_refresh_url_override(self):
        resolution = resolve(oauth={
            "type": "oauth2",
            "flows": {"authorizationCode": {"refreshUrl": "https://example.com/refresh", "scopes": {}}},
        })
        [record] = build_grant_config_records(resolution)
        assert record.name == "OAuth2RefreshTokenGrantConfig"
        assert 'string refreshUrl = "https://example.com/refresh";' in record.render()

    def test_connection_config_transport_fields(self):
        config = build_connection_config(NO_AUTH)
        rendered = config.render()
        assert "string[] subProtocols = [];" in rendered
        assert "map<string> customHeaders = {};" in rendered
        assert "decimal handShakeTimeout = 300;" in rendered
        assert "websocket:ClientSecureSocket? secureSocket = ();" in rendered
        assert "http:Cookie[] cookies?;" in rendered
        assert "websocket:PingPongService pingPongHandler?;" in rendered
        assert "boolean validation = true;" in rendered

    def test_auth_records_order(self):
        resolution = resolve(
            key=HEADER_KEY,
            oauth={"type": "oauth2", "flows": {"password": {"tokenUrl": "https://example.com/pw", "scopes": {}}}},
        )
        assert [r.name for r in build_auth_records(resolution)] == [
            "ApiKeysConfig", "OAuth2PasswordGrantConfig", "ConnectionConfig",
        ]


class TestClassField:

    def test_key_only_field_is_required(self):
        assert build_api_key_class_field(resolve(k=HEADER_KEY)).render() == (
            "final readonly & ApiKeysConfig apiKeyConfig;"
        )

    def test_combined_field_is_nilable(self):
        assert build_api_key_class_field(resolve(b=BEARER, k=HEADER_KEY)).render() == (
            "final (readonly & ApiKeysConfig)? apiKeyConfig;"
        )

    def test_no_field_without_keys(self):
        assert build_api_key_class_field(resolve(b=BEARER)) is None
