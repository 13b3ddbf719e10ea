"""Identifiers and library type names used by the generated Ballerina code."""

WEBSOCKET_MODULE = "websocket"
HTTP_MODULE = "http"

# Generated type / variable names
CONNECTION_CONFIG = "ConnectionConfig"
API_KEYS_CONFIG = "ApiKeysConfig"
API_KEY_CONFIG_PARAM = "apiKeyConfig"
CONFIG = "config"
CLIENT_CONFIG = "clientConfig"
SERVICE_URL = "serviceUrl"
MODIFIED_URL = "modifiedUrl"
QUERY_PARAM = "queryParam"
AUTH = "auth"
CLIENT_EP = "clientEp"
WEBSOCKET_EP = "websocketEp"
DEFAULT_CLIENT_NAME = "Client"

# Helper functions emitted into utils.bal
ENCODE_URI_FUNCTION = "getEncodedUri"
QUERY_PATH_FUNCTION = "getPathForQueryParam"

# Library types
CLIENT_CONFIGURATION = "ClientConfiguration"
WEBSOCKET_CLIENT = "Client"
SECURE_SOCKET = "ClientSecureSocket"
PING_PONG_SERVICE = "PingPongService"
RETRY_CONFIG = "WebSocketRetryConfig"
COOKIE = "Cookie"

# Token auth library types and their custom override names
BEARER_TOKEN_CONFIG = "BearerTokenConfig"
CREDENTIALS_CONFIG = "CredentialsConfig"
CLIENT_CREDENTIALS_GRANT_CONFIG = "OAuth2ClientCredentialsGrantConfig"
PASSWORD_GRANT_CONFIG = "OAuth2PasswordGrantConfig"
REFRESH_TOKEN_GRANT_CONFIG = "OAuth2RefreshTokenGrantConfig"

TOKEN_URL = "tokenUrl"
REFRESH_URL = "refreshUrl"

# Transport fields copied one-to-one into the websocket client configuration
FORWARDED_CONFIG_FIELDS = (
    "subProtocols",
    "customHeaders",
    "readTimeout",
    "writeTimeout",
    "maxFrameSize",
    "webSocketCompressionEnabled",
    "handShakeTimeout",
    "validation",
)

# Query array item types accepted as-is
QUERY_ARRAY_ITEM_TYPES = ("string", "integer", "boolean", "number")

# Reverse direction
ASYNCAPI_VERSION = "2.5.0"
WS_BINDING_VERSION = "0.1.0"
SERVICE_CONFIG_ANNOTATION = "ServiceConfig"
DISPATCHER_KEY = "dispatcherKey"
X_DISPATCHER_KEY = "x-dispatcherKey"
X_RESPONSE = "x-response"
X_RESPONSE_TYPE = "x-response-type"
X_NULLABLE = "x-nullable"
SIMPLE_RPC = "simple-rpc"
STREAMING = "streaming"
LIFECYCLE_REMOTE_FUNCTIONS = frozenset({
    "onOpen", "onClose", "onError", "onIdleTimeout", "onPing", "onPong",
})
GENERIC_REMOTE_FUNCTIONS = frozenset({
    "onMessage", "onTextMessage", "onBinaryMessage",
})
DEFAULT_LISTENER_PORT = "9090"
