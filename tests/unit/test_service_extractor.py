"""
Unit tests for parsing Ballerina services and decoding them into dataclasses.
"""

import pytest
from textx import TextXSemanticError

from asyncapi_ballerina.api.extractors.service_extractor import (
    EnumDefinition,
    MemberKind,
    RecordDefinition,
    Reference,
    TypeKind,
    unquote,
)


@pytest.fixture
def chat_module(decode_source, chat_service_source):
    return decode_source(chat_service_source)


class TestModuleDeclarations:

    def test_imports(self, chat_module):
        assert chat_module.imports == {"http": "ballerina/http", "websocket": "ballerina/websocket"}

    def test_constants_include_enum_members(self, chat_module):
        assert chat_module.constants == {"EVENT": "event", "BUY": "BUY", "SELL": "sell"}

    def test_listener_initializer(self, chat_module):
        assert chat_module.listeners == {"chatListener": "new (9091)"}

    def test_closed_record(self, chat_module):
        record = chat_module.types["Subscribe"]
        assert isinstance(record, RecordDefinition)
        assert record.closed
        event, room, limit = record.fields
        assert event.default == "subscribe"
        assert room.default is None and not room.optional
        assert limit.name == "limit"
        assert limit.type.nilable

    def test_open_record_fields(self, chat_module):
        record = chat_module.types["Ticker"]
        assert not record.closed
        fields = {f.name: f for f in record.fields}
        assert fields["price"].readonly
        assert fields["volume"].optional
        assert fields["extra"].default == {}
        assert fields["extra"].type.render() == "map<string>"

    def test_record_inclusion(self, chat_module):
        record = chat_module.types["Order"]
        assert record.includes == ("Subscribe",)
        assert [f.name for f in record.fields] == ["side"]

    def test_enum(self, chat_module):
        enum = chat_module.types["Side"]
        assert isinstance(enum, EnumDefinition)
        assert enum.values == ("BUY", "sell")


class TestServices:

    def test_service_declaration(self, chat_module):
        [service] = chat_module.services
        assert service.base_path == "/chat"
        assert service.listener == "chatListener"
        config = service.annotation("websocket", "ServiceConfig")
        assert config.fields == {"dispatcherKey": Reference("EVENT")}

    def test_resource_function(self, chat_module):
        [resource] = chat_module.services[0].members
        assert resource.kind is MemberKind.RESOURCE
        assert resource.name == "get rooms/[roomId]"
        assert resource.path[1].type.render() == "int"
        nickname, trace, limit = resource.params
        assert nickname.type.render() == "string" and not nickname.has_default
        assert trace.annotated("http", "Header")
        assert trace.annotations[0].fields == {"name": "x-trace"}
        assert limit.name == "limit" and limit.default == 10
        assert resource.returns.render() == "websocket:Service|websocket:UpgradeError"
        assert "new ChatService()" in resource.body

    def test_service_class(self, chat_module):
        service_class = chat_module.classes["ChatService"]
        assert service_class.is_service
        assert service_class.includes == ("websocket:Service",)
        names = [m.name for m in service_class.members]
        assert names == ["onSubscribe", "onOrder", "onPing", "onClose"]
        assert all(m.kind is MemberKind.REMOTE for m in service_class.members)

    def test_remote_function_types(self, chat_module):
        on_subscribe, on_order, on_ping, on_close = chat_module.classes["ChatService"].members
        assert on_subscribe.params[0].type.is_named("websocket:Caller")
        assert [m.name for m in on_subscribe.returns.without_error_and_nil()] == ["Ticker"]
        [streamed] = on_order.returns.members
        assert streamed.kind is TypeKind.STREAM
        assert streamed.inner.render() == "Ticker"
        assert on_ping.params[0].type.members[0].array_depth == 1
        assert on_close.returns is None


class TestDecodingDetails:

    def test_nil_default_and_root_resource(self, decode_source):
        module = decode_source('''
service on new websocket:Listener(8080) {
    resource function get .(string? token = ()) returns websocket:Service {
        return new EchoService();
    }
}
''')
        [service] = module.services
        assert service.base_path == "/"
        [resource] = service.members
        assert resource.path == ()
        assert resource.name == "get ."
        assert resource.params[0].default == "()"

    def test_annotation_values(self, decode_source):
        module = decode_source('''
@websocket:ServiceConfig {dispatcherKey: "kind", subProtocols: ["a", "b"], maxFrameSize: 10}
service /feed on feedListener {
}
''')
        config = module.services[0].annotation("websocket", "ServiceConfig")
        assert config.fields == {"dispatcherKey": "kind", "subProtocols": ["a", "b"], "maxFrameSize": 10}

    def test_quoted_identifiers(self):
        assert unquote("'type") == "type"
        assert unquote("name") == "name"


class TestValidation:

    def test_duplicate_type_names(self, decode_source):
        with pytest.raises(TextXSemanticError, match="Duplicate definition 'Item'"):
            decode_source('''
type Item record {|
    string id;
|};

enum Item {
    A
}
''')

    def test_repeated_path_parameter(self, decode_source):
        with pytest.raises(TextXSemanticError, match="id"):
            decode_source('''
service / on l {
    resource function get a/[string id]/[string id]() {
    }
}
''')

    def test_import_prefix(self, ballerina_metamodel):
        model = ballerina_metamodel.model_from_str("import ballerina/websocket as ws;\n")
        assert model.imports[0].prefix == "ws"
        assert model.imports[0].package == "websocket"

    def test_grammar_ships_with_package(self, project_root):
        assert (project_root / "asyncapi_ballerina" / "grammar" / "ballerina.tx").is_file()
