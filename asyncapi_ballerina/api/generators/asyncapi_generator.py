"""
AsyncAPI specification generator for Ballerina WebSocket services.

Each service declaration of a module becomes one AsyncAPI 2.5.0 document
documenting its channels, their publish/subscribe messages and the schemas
those messages reference.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from asyncapi_ballerina.api import constants as C
from asyncapi_ballerina.api.extractors.service_extractor import (
    MemberKind,
    ModuleDefinition,
    Reference,
    ServiceDeclaration,
)
from asyncapi_ballerina.api.gen_logging import get_logger
from asyncapi_ballerina.api.generators.remote_mapper import AsyncApiConverterDiagnostic, RemoteMapper
from asyncapi_ballerina.errors import MissingDispatchAnnotationError
from asyncapi_ballerina.utils import capitalize

logger = get_logger(__name__)

LISTENER_PORT_RE = re.compile(r"\(\s*(?:port\s*=\s*)?(\d+)")
INFO_VERSION = "0.1.0"


@dataclass
class AsyncApiConversion:
    document: Dict[str, Any]
    diagnostics: List[AsyncApiConverterDiagnostic] = field(default_factory=list)
    file_name: str = "asyncapi.yaml"


def extract_dispatcher_value(service: ServiceDeclaration, constants: Optional[Dict[str, Any]] = None) -> str:
    """
    Read ``dispatcherKey`` from the service's ``@websocket:ServiceConfig``.

    Raises:
        MissingDispatchAnnotationError: no annotation, not the websocket
            service config, no dispatcher key, or an empty/non-string value.
    """
    if not service.annotations:
        raise MissingDispatchAnnotationError("No annotation is present on top of the service")

    annotation = service.annotation(C.WEBSOCKET_MODULE, C.SERVICE_CONFIG_ANNOTATION)
    if annotation is None:
        raise MissingDispatchAnnotationError(
            f"No @{C.WEBSOCKET_MODULE}:{C.SERVICE_CONFIG_ANNOTATION} annotation is present on top of the service"
        )
    if C.DISPATCHER_KEY not in annotation.fields:
        raise MissingDispatchAnnotationError(
            f"No {C.DISPATCHER_KEY} field is present in the @{C.WEBSOCKET_MODULE}:{C.SERVICE_CONFIG_ANNOTATION} annotation"
        )

    value = annotation.fields[C.DISPATCHER_KEY]
    if isinstance(value, Reference) and value.module is None:
        if value.name not in (constants or {}):
            raise MissingDispatchAnnotationError(f"{C.DISPATCHER_KEY} refers to an unknown constant '{value.name}'")
        value = constants[value.name]
    if not isinstance(value, str) or not value.strip():
        raise MissingDispatchAnnotationError(f"{C.DISPATCHER_KEY} value cannot be empty")
    return value.strip()


def listener_port(service: ServiceDeclaration, module: ModuleDefinition) -> str:
    listener = module.listeners.get(service.listener, service.listener)
    match = LISTENER_PORT_RE.search(listener)
    return match.group(1) if match else C.DEFAULT_LISTENER_PORT


def service_title(base_path: str) -> str:
    parts = [p for p in re.split(r"[^A-Za-z0-9]+", base_path) if p]
    return "".join(capitalize(p) for p in parts) or "Service"


def convert_service(service: ServiceDeclaration, module: ModuleDefinition) -> AsyncApiConversion:
    dispatcher_key = extract_dispatcher_value(service, module.constants)
    mapper = RemoteMapper(module, dispatcher_key)
    title = service_title(service.base_path)

    channels: Dict[str, Any] = {}
    messages: Dict[str, Any] = {}
    for member in service.members:
        if member.kind is not MemberKind.RESOURCE:
            continue
        mapping = mapper.map_resource(service.base_path, member)
        if mapping is None:
            continue
        if mapping.path in channels:
            mapper.report(f"Channel '{mapping.path}' is declared by more than one resource")
            continue
        channels[mapping.path] = mapping.channel
        messages.update(mapping.messages)

    document: Dict[str, Any] = {
        "asyncapi": C.ASYNCAPI_VERSION,
        "info": {"title": title, "version": INFO_VERSION},
        "servers": {
            "development": {
                "url": "{server}:{port}" + (service.base_path if service.base_path != "/" else ""),
                "protocol": "ws",
                "protocolVersion": "13",
                "variables": {
                    "server": {"default": "ws://localhost"},
                    "port": {"default": listener_port(service, module)},
                },
            }
        },
        "channels": channels,
    }
    components: Dict[str, Any] = {}
    if mapper.schemas.schemas:
        components["schemas"] = mapper.schemas.schemas
    if messages:
        components["messages"] = messages
    if components:
        document["components"] = components
    document[C.X_DISPATCHER_KEY] = dispatcher_key

    logger.info(f"[ASYNCAPI] {title}: {len(channels)} channels, {len(messages)} messages")
    return AsyncApiConversion(document, mapper.diagnostics)


def generate_asyncapi_documents(module: ModuleDefinition) -> List[AsyncApiConversion]:
    """One conversion per service declaration, in source order."""
    conversions = []
    used = set()
    for service in module.services:
        conversion = convert_service(service, module)
        stem = service_title(service.base_path).lower() if service.base_path != "/" else "service"
        name = f"{stem}_asyncapi"
        index = 1
        while name in used:
            index += 1
            name = f"{stem}_asyncapi_{index}"
        used.add(name)
        conversion.file_name = f"{name}.yaml"
        conversions.append(conversion)
    return conversions


def dump_document(document: Dict[str, Any], as_json: bool = False) -> str:
    if as_json:
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
    return yaml.dump(document, default_flow_style=False, sort_keys=False, allow_unicode=True)


def write_asyncapi_documents(conversions: List[AsyncApiConversion], out_dir: Path, as_json: bool = False) -> List[Path]:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for conversion in conversions:
        target = out_dir / conversion.file_name
        if as_json:
            target = target.with_suffix(".json")
        with open(target, "w", encoding="utf-8") as f:
            f.write(dump_document(conversion.document, as_json))
        logger.debug(f"[GENERATED] AsyncAPI spec: {target}")
        written.append(target)
    return written
