"""
WebSocket client generation: AsyncAPI document -> Ballerina client module.

The decoded document flows through the auth resolver, the config synthesizer,
the channel parameter mapper and the init builder; the resulting syntax nodes
are laid out into ``types.bal``, ``client.bal`` and ``utils.bal`` by Jinja
templates.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

from asyncapi_ballerina.api import constants as C
from asyncapi_ballerina.api.builders.auth_resolver import NO_AUTH, AuthResolution, resolve_auth
from asyncapi_ballerina.api.builders.config_builders import build_api_key_class_field, build_auth_records, ws_type
from asyncapi_ballerina.api.builders.init_builders import build_client_init
from asyncapi_ballerina.api.builders.param_builders import map_channel_parameters
from asyncapi_ballerina.api.builders.type_builders import SchemaTypeBuilder
from asyncapi_ballerina.api.document import AsyncApiDocument, Channel
from asyncapi_ballerina.api.gen_logging import get_logger
from asyncapi_ballerina.api.syntax.nodes import (
    Check,
    ClassDefinition,
    DocComment,
    ExpressionStatement,
    FieldAccess,
    FunctionDefinition,
    Name,
    ObjectField,
    OptionalType,
    Parameter,
    RemoteCall,
    Return,
    SELF,
    TypeDefinition,
    TypeDescriptor,
    TypeRef,
    UnionType,
    VariableDeclaration,
)
from asyncapi_ballerina.errors import AsyncApiGeneratorError
from asyncapi_ballerina.utils import get_valid_name, normalize_doc

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent.parent / "templates"

CLIENT_EP = FieldAccess(SELF, C.CLIENT_EP)
ERROR = TypeRef("error")


@dataclass(frozen=True)
class GeneratorOptions:
    client_name: str = C.DEFAULT_CLIENT_NAME
    license_header: Optional[str] = None


@dataclass
class ClientModule:
    client: ClassDefinition
    types: List[TypeDefinition] = field(default_factory=list)
    auth: AuthResolution = NO_AUTH
    path_parameters_found: bool = False
    query_parameters_found: bool = False

    @property
    def needs_utils(self) -> bool:
        return self.path_parameters_found or self.query_parameters_found


def select_channel(document: AsyncApiDocument) -> Channel:
    """The client connects to a single channel: the first one declared."""
    if not document.channels:
        raise AsyncApiGeneratorError("The AsyncAPI document declares no channels")
    if len(document.channels) > 1:
        skipped = [c.path for c in document.channels[1:]]
        logger.warning(f"Generating the client for channel '{document.channels[0].path}', ignoring {skipped}")
    return document.channels[0]


def _message_functions(channel: Channel, types: SchemaTypeBuilder) -> List[FunctionDefinition]:
    functions: List[FunctionDefinition] = []
    names = set()
    answered = set()

    def add(function: FunctionDefinition) -> None:
        if function.name in names:
            logger.warning(f"Skipping duplicate remote function '{function.name}'")
            return
        names.add(function.name)
        functions.append(function)

    for message in channel.publish_messages:
        type_name = get_valid_name(message.name, is_type=True)
        payload_type = types.payload_type(message)
        arg = get_valid_name(type_name)
        body = [ExpressionStatement(Check(RemoteCall(CLIENT_EP, "writeMessage", (Name(arg),))))]

        if message.responses:
            response_type = UnionType.of(*[types.payload_type(r) for r in message.responses])
            answered.update(r.name for r in message.responses)
            body.append(VariableDeclaration(response_type, "response", Check(RemoteCall(CLIENT_EP, "readMessage"))))
            body.append(Return(Name("response")))
            returns: TypeDescriptor = UnionType.of(response_type, ERROR)
            return_doc = f"The `{response_type.render()}` response received from the server"
        else:
            body.append(Return())
            returns = OptionalType(ERROR)
            return_doc = "An error if the message could not be written"

        add(FunctionDefinition(
            name=f"do{type_name}",
            params=(Parameter(arg, payload_type),),
            returns=returns,
            body=tuple(body),
            qualifiers=("remote", "isolated"),
            doc=DocComment(
                normalize_doc(message.description) or f"Sends a `{type_name}` message",
                ((arg, f"`{type_name}` message to be sent"),),
                return_doc,
            ),
        ))

    for message in channel.subscribe_messages:
        if message.name in answered:
            continue
        type_name = get_valid_name(message.name, is_type=True)
        payload_type = types.payload_type(message)
        add(FunctionDefinition(
            name=f"read{type_name}",
            returns=UnionType.of(payload_type, ERROR),
            body=(
                VariableDeclaration(payload_type, "message", Check(RemoteCall(CLIENT_EP, "readMessage"))),
                Return(Name("message")),
            ),
            qualifiers=("remote", "isolated"),
            doc=DocComment(
                normalize_doc(message.description) or f"Reads a `{type_name}` message",
                returns=f"The `{type_name}` message received from the server",
            ),
        ))

    add(FunctionDefinition(
        name="closeConnection",
        returns=OptionalType(ERROR),
        body=(ExpressionStatement(Check(RemoteCall(CLIENT_EP, "close"))), Return()),
        qualifiers=("remote", "isolated"),
        doc=DocComment("Closes the connection with the server", returns="An error if closing the connection failed"),
    ))
    return functions


def generate_client_module(document: AsyncApiDocument, options: GeneratorOptions = GeneratorOptions()) -> ClientModule:
    """
    Build the syntax of a Ballerina client for the first channel of a document.

    Auth is resolved only when the document declares ``securitySchemes``;
    an empty or unusable map fails generation.
    """
    if document.security_schemes is not None:
        resolution = resolve_auth(document.security_schemes)
    else:
        resolution = NO_AUTH
        logger.info("No security schemes declared, generating a client without auth")

    channel = select_channel(document)
    channel_params = map_channel_parameters(channel, document)
    init = build_client_init(document, resolution, channel, channel_params)

    types = SchemaTypeBuilder(document)
    types.build()
    functions = [init.function] + _message_functions(channel, types)

    fields: List[ObjectField] = [ObjectField(C.CLIENT_EP, ws_type(C.WEBSOCKET_CLIENT))]
    key_field = build_api_key_class_field(resolution)
    if key_field is not None:
        fields.append(key_field)

    doc = normalize_doc(document.raw.get("info", {}).get("description")) or (
        f"Client for the `{channel.path}` channel of {document.title or 'the service'}"
    )
    client = ClassDefinition(get_valid_name(options.client_name, is_type=True), tuple(fields), tuple(functions), doc=doc)

    logger.info(f"[CLIENT] {client.name}: {len(functions)} functions, channel {channel.path}")
    return ClientModule(
        client=client,
        types=build_auth_records(resolution) + types.result(),
        auth=resolution,
        path_parameters_found=init.path_parameters_found,
        query_parameters_found=init.query_parameters_found,
    )


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_client_module(module: ClientModule, options: GeneratorOptions = GeneratorOptions()) -> Dict[str, str]:
    """Render the module into ``file name -> source``."""
    env = _environment()
    context = {"license_header": options.license_header}

    files = {
        "types.bal": env.get_template("types.bal.jinja").render(
            types=[definition.render() for definition in module.types], **context
        ),
        "client.bal": env.get_template("client.bal.jinja").render(
            client=module.client.render(), **context
        ),
    }
    if module.needs_utils:
        files["utils.bal"] = env.get_template("utils.bal.jinja").render(
            encode_uri=module.path_parameters_found or module.query_parameters_found,
            query_path=module.query_parameters_found,
            **context,
        )
    return files


def write_client_module(files: Dict[str, str], out_dir: Path) -> List[Path]:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name, content in files.items():
        target = out_dir / name
        target.write_text(content, encoding="utf-8")
        logger.debug(f"[GENERATED] {target}")
        written.append(target)
    return written
