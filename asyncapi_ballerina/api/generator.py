"""
Main entry points for code generation in both directions.

    AsyncAPI document  ->  Ballerina WebSocket client  (generate_client)
    Ballerina service  ->  AsyncAPI documents          (generate_asyncapi)

Architecture:
    - document.py: AsyncAPI loading, ``$ref`` bundling and decoding
    - extractors/: type mapping, Ballerina source decoding
    - builders/: auth resolution, config records, parameters, init function, types
    - generators/: client module assembly, AsyncAPI document assembly
    - syntax/: structured Ballerina syntax nodes
"""

from pathlib import Path
from typing import List, Optional

from asyncapi_ballerina.api.document import load_asyncapi_document
from asyncapi_ballerina.api.extractors.service_extractor import decode_module
from asyncapi_ballerina.api.gen_logging import get_logger
from asyncapi_ballerina.api.generators.asyncapi_generator import (
    AsyncApiConversion,
    generate_asyncapi_documents,
    write_asyncapi_documents,
)
from asyncapi_ballerina.api.generators.client_generator import (
    GeneratorOptions,
    generate_client_module,
    render_client_module,
    write_client_module,
)
from asyncapi_ballerina.language import build_module

logger = get_logger(__name__)


def generate_client(spec_path: Path, out_dir: Path, options: Optional[GeneratorOptions] = None) -> List[Path]:
    """
    Generate ``types.bal``, ``client.bal`` and (when needed) ``utils.bal``.

    Args:
        spec_path: AsyncAPI document (YAML or JSON)
        out_dir: Directory the Ballerina sources are written to
        options: Client name and license header
    """
    options = options or GeneratorOptions()
    document = load_asyncapi_document(spec_path)
    logger.info(f"[CLIENT] {document.title or spec_path} ({len(document.channels)} channels)")

    module = generate_client_module(document, options)
    files = render_client_module(module, options)
    return write_client_module(files, out_dir)


def convert_service_file(source_path: Path) -> List[AsyncApiConversion]:
    model = build_module(str(source_path))
    return generate_asyncapi_documents(decode_module(model))


def generate_asyncapi(source_path: Path, out_dir: Path, as_json: bool = False):
    """
    Generate one AsyncAPI document per service declared in ``source_path``.

    Returns:
        (written paths, conversions) so callers can report diagnostics.
    """
    conversions = convert_service_file(source_path)
    if not conversions:
        logger.warning(f"No service declarations found in {source_path}")
    written = write_asyncapi_documents(conversions, out_dir, as_json)
    return written, conversions
