from pathlib import Path

import click

from datetime import date
from rich import pretty
from rich.console import Console
from rich.table import Table

from asyncapi_ballerina.api.builders.auth_resolver import NO_AUTH, resolve_auth
from asyncapi_ballerina.api.builders.param_builders import map_channel_parameters
from asyncapi_ballerina.api.document import load_asyncapi_document
from asyncapi_ballerina.api.gen_logging import configure_gen_logging
from asyncapi_ballerina.api.generator import generate_asyncapi, generate_client
from asyncapi_ballerina.api.generators.client_generator import GeneratorOptions, select_channel
from asyncapi_ballerina.api import constants as C

pretty.install()
console = Console()


def _today() -> str:
    return date.today().strftime('%Y-%m-%d')


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log per parameter / per field detail.")
@click.option("-q", "--quiet", is_flag=True, help="Only log warnings and errors.")
@click.pass_context
def cli(context, verbose, quiet):
    context.ensure_object(dict)
    configure_gen_logging(verbose=verbose, quiet=quiet)


@cli.command("client", help="Generate a Ballerina WebSocket client from an AsyncAPI document.")
@click.pass_context
@click.argument("spec_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", "out_dir", default="generated", help="Output directory (default: ./generated)")
@click.option("--client-name", default=C.DEFAULT_CLIENT_NAME, help="Name of the generated client class.")
@click.option(
    "--license", "license_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="File whose text is prepended to every generated source as a comment.",
)
def client_cmd(context, spec_path, out_dir, client_name, license_path):
    try:
        license_header = Path(license_path).read_text(encoding="utf-8") if license_path else None
        options = GeneratorOptions(client_name=client_name, license_header=license_header)
        out_path = Path(out_dir).resolve()
        written = generate_client(Path(spec_path), out_path, options)
        for path in written:
            console.print(f"[{_today()}] Generated: {path}", style="green")
        console.print(f"[{_today()}] Client emitted to: {out_path}", style="green")
    except Exception as e:
        console.print(f"[{_today()}] Client generation failed with error(s): {e}", style="red")
        context.exit(1)
    else:
        context.exit(0)


@cli.command("asyncapi", help="Generate AsyncAPI documents from a Ballerina WebSocket service.")
@click.pass_context
@click.argument("source_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", "out_dir", default="generated", help="Output directory (default: ./generated)")
@click.option("--json", "as_json", is_flag=True, help="Write JSON instead of YAML.")
def asyncapi_cmd(context, source_path, out_dir, as_json):
    try:
        written, conversions = generate_asyncapi(Path(source_path), Path(out_dir).resolve(), as_json)
        for conversion in conversions:
            for diagnostic in conversion.diagnostics:
                console.print(f"[{_today()}] {diagnostic}", style="yellow")
        for path in written:
            console.print(f"[{_today()}] AsyncAPI spec: {path}", style="green")
    except Exception as e:
        console.print(f"[{_today()}] AsyncAPI generation failed with error(s): {e}", style="red")
        context.exit(1)
    else:
        context.exit(0)


@cli.command("inspect", help="Print the auth and channel parameters derived from an AsyncAPI document.")
@click.pass_context
@click.argument("spec_path", type=click.Path(exists=True, dir_okay=False))
def inspect_cmd(context, spec_path):
    try:
        document = load_asyncapi_document(spec_path)
        resolution = resolve_auth(document.security_schemes) if document.security_schemes is not None else NO_AUTH
        channel = select_channel(document)
        parameters = map_channel_parameters(channel, document)

        console.print(f"[{_today()}] Document validation success!", style="green")
        console.print(f"Title:       {document.title}")
        console.print(f"Server URL:  {document.server_url}")
        console.print(f"Auth types:  {', '.join(t.value for t in resolution.auth_types) or '-'}")
        for label, url in (
            ("Client credentials token URL", resolution.client_credentials_token_url),
            ("Password token URL", resolution.password_token_url),
            ("Refresh URL", resolution.refresh_token_url),
        ):
            if url:
                console.print(f"{label}: {url}")
        for key_field in resolution.api_key_fields:
            console.print(f"API key:     {key_field.key_name} (in {key_field.location}) -> {key_field.field_name}")

        table = Table(title=f"Channel {channel.path}")
        table.add_column("Parameter")
        table.add_column("In")
        table.add_column("Type")
        table.add_column("Default")
        for param in parameters.parameters:
            default = repr(param.default_value) if param.has_default else ""
            table.add_row(param.host_name, param.origin.value, param.schema_type, default)
        console.print(table)
    except Exception as e:
        console.print(f"[{_today()}] Inspect failed with error(s): {e}", style="red")
        context.exit(1)
    else:
        context.exit(0)


def main():
    cli(prog_name="bal-asyncapi")
