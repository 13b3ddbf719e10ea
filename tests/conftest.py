"""
Pytest configuration and shared fixtures for the asyncapi-ballerina test suite.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from asyncapi_ballerina.api.document import load_asyncapi_document_str
from asyncapi_ballerina.api.extractors.service_extractor import decode_module
from asyncapi_ballerina.language import build_module_str, get_metamodel


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def temp_output_dir():
    """Create a temporary directory for generated code output."""
    temp_dir = tempfile.mkdtemp(prefix="balasync_test_")
    yield Path(temp_dir)
    # Cleanup after test
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="session")
def ballerina_metamodel():
    """Return the Ballerina metamodel (cached for session)."""
    return get_metamodel()


@pytest.fixture
def write_file(temp_output_dir):
    """Factory fixture to write content to a temporary file."""
    def _write(content: str, filename: str = "asyncapi.yaml") -> Path:
        file_path = temp_output_dir / filename
        file_path.write_text(content, encoding="utf-8")
        return file_path
    return _write


@pytest.fixture
def load_document():
    """Factory fixture to decode an AsyncAPI document from YAML text."""
    def _load(content: str):
        return load_asyncapi_document_str(content)
    return _load


@pytest.fixture
def decode_source():
    """Factory fixture to parse Ballerina source text into a ModuleDefinition."""
    def _decode(content: str):
        return decode_module(build_module_str(content))
    return _decode


# Test data fixtures for common scenarios

@pytest.fixture
def chat_asyncapi():
    """Bearer + header API key document with path, query and header parameters."""
    return """
asyncapi: 2.5.0
info:
  title: Chat
  version: 1.0.0
  description: Chat rooms over websocket.
servers:
  production:
    url: "{host}:{port}"
    protocol: wss
    variables:
      host:
        default: chat.example.com
      port:
        default: "443"
channels:
  /rooms/{roomId}:
    parameters:
      roomId:
        description: Identifier of the room
        schema:
          type: integer
    bindings:
      ws:
        bindingVersion: 0.1.0
        query:
          type: object
          properties:
            nickname:
              type: string
              description: Display name
            limit:
              type: integer
              default: 20
            tags:
              type: array
              items:
                type: string
        headers:
          type: object
          properties:
            X-Trace-Id:
              type: string
              x-nullable: true
    publish:
      message:
        oneOf:
          - $ref: '#/components/messages/Subscribe'
          - $ref: '#/components/messages/Ping'
    subscribe:
      message:
        oneOf:
          - $ref: '#/components/messages/Ticker'
          - $ref: '#/components/messages/Pong'
components:
  schemas:
    Subscribe:
      type: object
      required: [event, room]
      properties:
        event:
          type: string
        room:
          type: string
    Ping:
      type: object
      required: [event]
      properties:
        event:
          type: string
    Pong:
      type: object
      required: [event]
      properties:
        event:
          type: string
    Ticker:
      type: object
      required: [event, price]
      properties:
        event:
          type: string
        price:
          type: number
          format: float
        volume:
          type: integer
  messages:
    Subscribe:
      payload:
        $ref: '#/components/schemas/Subscribe'
      x-response:
        $ref: '#/components/messages/Ticker'
    Ping:
      payload:
        $ref: '#/components/schemas/Ping'
      x-response:
        $ref: '#/components/messages/Pong'
    Ticker:
      payload:
        $ref: '#/components/schemas/Ticker'
    Pong:
      payload:
        $ref: '#/components/schemas/Pong'
  securitySchemes:
    bearerAuth:
      type: http
      scheme: bearer
    apiKeyAuth:
      type: httpApiKey
      in: header
      name: api-key
"""


@pytest.fixture
def minimal_asyncapi():
    """No servers, no security, a single channel without parameters."""
    return """
asyncapi: 2.5.0
info:
  title: Echo
  version: 1.0.0
channels:
  /:
    bindings:
      ws: {}
    publish:
      message:
        $ref: '#/components/messages/Echo'
components:
  schemas:
    Echo:
      type: object
      properties:
        text:
          type: string
  messages:
    Echo:
      payload:
        $ref: '#/components/schemas/Echo'
"""


@pytest.fixture
def chat_service_source():
    """A Ballerina websocket service with one resource and one service class."""
    return '''
import ballerina/http;
import ballerina/websocket;

const EVENT = "event";

public type Subscribe record {|
    string event = "subscribe";
    string room;
    int? 'limit;
|};

public type Ticker record {
    string event;
    readonly float price;
    int volume?;
    map<string> extra = {};
};

public enum Side {
    BUY,
    SELL = "sell"
}

public type Order record {|
    *Subscribe;
    Side side;
|};

listener websocket:Listener chatListener = new (9091);

@websocket:ServiceConfig {dispatcherKey: EVENT}
service /chat on chatListener {
    resource function get rooms/[int roomId](string nickname, @http:Header {name: "x-trace"} string? trace, int 'limit = 10) returns websocket:Service|websocket:UpgradeError {
        return new ChatService();
    }
}

service class ChatService {
    *websocket:Service;

    remote function onSubscribe(websocket:Caller caller, Subscribe message) returns Ticker|error {
        return {event: "ticker", price: 1.0};
    }

    remote function onOrder(Order message) returns stream<Ticker> {
        return [].toStream();
    }

    remote function onPing(byte[] data) returns byte[] {
        return data;
    }

    remote function onClose(websocket:Caller caller, int statusCode, string reason) {
        io:println("closed");
    }
}
'''
