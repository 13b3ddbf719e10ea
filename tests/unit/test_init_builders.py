"""
Unit tests for the client init function assembly.
"""

from asyncapi_ballerina.api.builders.auth_resolver import NO_AUTH, resolve_auth
from asyncapi_ballerina.api.builders.init_builders import (
    build_client_config_declaration,
    build_client_init,
    build_combined_auth_branch,
    build_config_copy_block,
    build_init_parameters,
    build_path_template,
)
from asyncapi_ballerina.api.builders.param_builders import ChannelParameters, map_channel_parameters
from asyncapi_ballerina.api.document import SecurityScheme
from asyncapi_ballerina.api.syntax.nodes import Literal, Parameter, TypeRef

BEARER = {"type": "http", "scheme": "bearer"}
HEADER_KEY = {"type": "httpApiKey", "in": "header", "name": "api-key"}
QUERY_KEY = {"type": "httpApiKey", "in": "query", "name": "appId"}

REQUIRED_URL = Parameter("serviceUrl", TypeRef("string"))
DEFAULT_URL = Parameter("serviceUrl", TypeRef("string"), Literal("ws://localhost:9090"))


def resolve(**raw):
    return resolve_auth({name: SecurityScheme.from_dict(name, value) for name, value in raw.items()})


class TestPathTemplate:

    def test_placeholder_is_encoded(self):
        template = build_path_template("/rooms/{roomId}")
        assert template.path_parameters_found
        assert "${getEncodedUri(roomId)}" in template.expression.render()
        assert template.expression.render() == "string `/rooms/${getEncodedUri(roomId)}`"

    def test_multiple_placeholders_and_suffix(self):
        template = build_path_template("/rooms/{room-id}/users/{user}/feed")
        assert template.expression.render() == (
            "string `/rooms/${getEncodedUri(roomId)}/users/${getEncodedUri(user)}/feed`"
        )

    def test_plain_path(self):
        template = build_path_template("/chat")
        assert not template.path_parameters_found
        assert template.expression.render() == '"/chat"'


class TestInitParameters:

    def names(self, params):
        return [p.render() for p in params]

    def test_token_auth_requires_config(self):
        params = build_init_parameters(resolve(b=BEARER), DEFAULT_URL, ChannelParameters())
        assert self.names(params) == ["ConnectionConfig config", 'string serviceUrl = "ws://localhost:9090"']

    def test_no_auth_with_default_url(self):
        params = build_init_parameters(NO_AUTH, DEFAULT_URL, ChannelParameters())
        assert self.names(params) == ["ConnectionConfig config = {}", 'string serviceUrl = "ws://localhost:9090"']

    def test_no_auth_with_required_url(self):
        params = build_init_parameters(NO_AUTH, REQUIRED_URL, ChannelParameters())
        assert self.names(params) == ["string serviceUrl", "ConnectionConfig config = {}"]

    def test_api_key_only_puts_key_config_first(self):
        params = build_init_parameters(resolve(k=HEADER_KEY), REQUIRED_URL, ChannelParameters())
        assert self.names(params) == [
            "ApiKeysConfig apiKeyConfig", "string serviceUrl", "ConnectionConfig config = {}",
        ]

    def test_combined_uses_single_config(self):
        params = build_init_parameters(resolve(b=BEARER, k=HEADER_KEY), DEFAULT_URL, ChannelParameters())
        assert [p.name for p in params] == ["config", "serviceUrl"]


class TestInitBody:

    def test_client_config_forwards_auth_for_token_only(self):
        rendered = build_client_config_declaration(resolve(b=BEARER)).render()
        assert rendered.startswith("websocket:ClientConfiguration clientConfig = {\n")
        assert "    auth: config.auth," in rendered
        assert "    customHeaders: {...config.customHeaders}," in rendered
        assert "    validation: config.validation\n}" in rendered

    def test_client_config_without_auth_for_combined(self):
        rendered = build_client_config_declaration(resolve(b=BEARER, k=HEADER_KEY)).render()
        assert "auth:" not in rendered

    def test_copy_block_has_one_conditional_per_field(self):
        rendered = build_config_copy_block().render()
        assert rendered.startswith("do {")
        assert rendered.count("if config.") == 4
        assert (
            "if config.secureSocket is websocket:ClientSecureSocket {\n"
            "        clientConfig.secureSocket = check config.secureSocket.ensureType(websocket:ClientSecureSocket);\n"
            "    }"
        ) in rendered
        assert "if config.cookies is http:Cookie[] {" in rendered

    def test_combined_auth_branch(self):
        rendered = build_combined_auth_branch(resolve(b=BEARER, k=HEADER_KEY)).render()
        assert rendered == (
            "if config.auth is ApiKeysConfig {\n"
            "    ApiKeysConfig apiKeys = <ApiKeysConfig>config.auth;\n"
            "    self.apiKeyConfig = apiKeys.cloneReadOnly();\n"
            '    clientConfig.customHeaders["api-key"] = apiKeys.apiKey;\n'
            "} else {\n"
            "    clientConfig.auth = <websocket:BearerTokenConfig>config.auth;\n"
            "    self.apiKeyConfig = ();\n"
            "}"
        )


class TestClientInit:

    def test_full_init_with_query_and_path(self, load_document, chat_asyncapi):
        document = load_document(chat_asyncapi)
        channel = document.channels[0]
        params = map_channel_parameters(channel, document)
        resolution = resolve_auth(document.security_schemes)
        init = build_client_init(document, resolution, channel, params)

        assert init.path_parameters_found
        assert init.query_parameters_found
        rendered = init.function.render()
        assert "public isolated function init(ConnectionConfig config, int roomId, string nickname" in rendered
        assert 'string serviceUrl = "wss://chat.example.com:443"' in rendered
        assert "map<anydata> queryParam = {nickname: nickname, \"limit\": 'limit, tags: tags};" in rendered
        assert 'string modifiedUrl = serviceUrl + string `/rooms/${getEncodedUri(roomId)}`;' in rendered
        assert "modifiedUrl = modifiedUrl + check getPathForQueryParam(queryParam);" in rendered
        assert "websocket:Client websocketEp = check new (modifiedUrl, clientConfig);" in rendered
        assert "self.clientEp = websocketEp;" in rendered
        assert 'if xTraceId is string {\n        clientConfig.customHeaders["X-Trace-Id"] = xTraceId;\n    }' in rendered

    def test_query_api_key_only(self, load_document, minimal_asyncapi):
        document = load_document(minimal_asyncapi)
        channel = document.channels[0]
        resolution = resolve(q=QUERY_KEY)
        init = build_client_init(document, resolution, channel, map_channel_parameters(channel, document))

        assert init.query_parameters_found
        assert not init.path_parameters_found
        rendered = init.function.render()
        assert "self.apiKeyConfig = apiKeyConfig.cloneReadOnly();" in rendered
        assert 'queryParam["appId"] = apiKeyConfig.appId;' in rendered
        assert "string modifiedUrl = serviceUrl;" in rendered
