# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
ZoneCert CLI

Commands for working with requests and zone policies offline:
- csr: Generate a key pair and a CSR
- policy show: Show the rules compiled from a zone policy document
- policy check: Check a request against a zone policy document
- zone: Show the default values a zone policy document proposes
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click
import yaml
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from zonecert import __version__
from zonecert.config import IssuanceConfig
from zonecert.exceptions import ValidationError, ZoneCertError
from zonecert.policy import (
    Policy,
    ZoneConfiguration,
    ZonePolicyDocument,
    compile_policy,
    extract_zone_configuration,
)
from zonecert.request import CertificateRequest

console = Console()

_FORMAT_OPTION = click.option(
    "--format", "fmt",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    help="Output format (table, json, or yaml).",
)


def _output_json(data: object) -> None:
    """Print data as JSON to stdout."""
    click.echo(json.dumps(data, indent=2, default=str))


def _output_yaml(data: object) -> None:
    """Print data as YAML to stdout."""
    click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(1)


def _request_options(func):
    """Subject and key options shared by ``csr`` and ``policy check``."""
    options = [
        click.option("--cn", "common_name", required=True, help="Subject common name."),
        click.option("--org", "organization", default=None, help="Subject organization (O)."),
        click.option("--ou", "organizational_unit", multiple=True, help="Organizational unit (repeatable)."),
        click.option("--country", default=None, help="Two-letter country code (C)."),
        click.option("--province", default=None, help="State or province (ST)."),
        click.option("--locality", default=None, help="Locality or city (L)."),
        click.option("--san", "san_dns", multiple=True, help="DNS subject alternative name (repeatable)."),
        click.option(
            "--key-algorithm",
            type=click.Choice(["rsa", "ecdsa"]),
            default=None,
            help="Key algorithm (default from config: rsa).",
        ),
        click.option("--key-length", type=int, default=None, help="RSA key size in bits."),
        click.option("--key-curve", default=None, help="EC curve (e.g. prime256v1)."),
        click.option(
            "--config", "config_path",
            type=click.Path(exists=True, dir_okay=False),
            default=None,
            help="Issuance config YAML file.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_request(
    common_name: str,
    organization: Optional[str],
    organizational_unit: tuple[str, ...],
    country: Optional[str],
    province: Optional[str],
    locality: Optional[str],
    san_dns: tuple[str, ...],
    key_algorithm: Optional[str],
    key_length: Optional[int],
    key_curve: Optional[str],
    config_path: Optional[str],
) -> CertificateRequest:
    config = IssuanceConfig.from_yaml(config_path) if config_path else IssuanceConfig()
    return CertificateRequest(
        common_name,
        organization=organization,
        organizational_unit=organizational_unit or None,
        country=country,
        province=province,
        locality=locality,
        san_dns=san_dns,
        key_algorithm=key_algorithm,
        key_length=key_length,
        key_curve=key_curve,
        config=config,
    )


def _load_document(path: str) -> ZonePolicyDocument:
    try:
        return ZonePolicyDocument.from_file(path)
    except (ValueError, yaml.YAMLError) as e:
        _fail(f"Cannot read policy document {path}: {e}")


def _policy_data(policy: Policy) -> dict:
    return {
        "name": policy.name,
        "subject": {
            "CN": list(policy.subject_cn_regexes),
            "O": list(policy.subject_o_regexes),
            "OU": list(policy.subject_ou_regexes),
            "C": list(policy.subject_c_regexes),
            "ST": list(policy.subject_st_regexes),
            "L": list(policy.subject_l_regexes),
        },
        "san": {
            "dns": list(policy.san_dns_regexes),
            "ip": list(policy.san_ip_regexes),
            "email": list(policy.san_email_regexes),
            "uri": list(policy.san_uri_regexes),
            "upn": list(policy.san_upn_regexes),
        },
        "key_types": [str(kt) for kt in policy.key_types],
    }


def _zone_data(zone: ZoneConfiguration) -> dict:
    def _field(cert_field):
        value = cert_field.value
        return {
            "value": list(value) if isinstance(value, tuple) else value,
            "locked": cert_field.locked,
        }

    return {
        "organization": _field(zone.organization),
        "organizational_unit": _field(zone.organizational_unit),
        "country": _field(zone.country),
        "province": _field(zone.province),
        "locality": _field(zone.locality),
        "key_type": str(zone.key_type) if zone.key_type else None,
        "key_type_locked": zone.key_type_locked,
    }


@click.group()
@click.version_option(__version__, prog_name="zonecert")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool):
    """Build CSRs and check them against zone policies."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@_request_options
@click.option(
    "--key-out",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write the private key (PKCS#8 PEM) to this file.",
)
def csr(key_out: Optional[str], **request_args):
    """Generate a key pair and print a PEM CSR."""
    try:
        request = _build_request(**request_args)
        pem = request.csr
        if key_out:
            Path(key_out).write_text(request.private_key_pem)
    except ZoneCertError as e:
        _fail(str(e))
    click.echo(pem, nl=False)


@cli.group()
def policy():
    """Inspect and apply zone policy documents."""
    pass


@policy.command("show")
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@_FORMAT_OPTION
def policy_show(document: str, fmt: str):
    """Show the rules compiled from a policy DOCUMENT (JSON or YAML)."""
    try:
        compiled = compile_policy(_load_document(document), name=Path(document).stem)
    except ZoneCertError as e:
        _fail(str(e))

    data = _policy_data(compiled)
    if fmt == "json":
        _output_json(data)
        return
    if fmt == "yaml":
        _output_yaml(data)
        return

    console.print(f"\n[bold blue]Zone policy: {compiled.name}[/bold blue]\n")
    table = Table(box=box.ROUNDED)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Rules")
    for field, rules in data["subject"].items():
        table.add_row(field, escape("\n".join(rules)) or "[red]none allowed[/red]")
    for kind, rules in data["san"].items():
        table.add_row(f"SAN {kind}", escape("\n".join(rules)) or "[red]none allowed[/red]")
    table.add_row("Key types", ", ".join(data["key_types"]))
    console.print(table)


@policy.command("check")
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@_request_options
@click.option("--strict", is_flag=True, default=False, help="Treat absent locked fields as violations.")
def policy_check(document: str, strict: bool, **request_args):
    """Check a request against a policy DOCUMENT. Exits 1 on violation."""
    try:
        compiled = compile_policy(_load_document(document), name=Path(document).stem)
        request = _build_request(**request_args)
        strict = strict or request.config.strict_locked_fields
        result = compiled.check(request, strict=strict)
    except ZoneCertError as e:
        _fail(str(e))

    for advisory in result.advisories:
        console.print(f"[yellow]advisory[/yellow] {advisory.field}: {advisory.message}")

    if result.passed:
        console.print("[green]✓ Request satisfies the zone policy[/green]")
        return

    table = Table(box=box.ROUNDED, title="Policy violations")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")
    table.add_column("Reason", style="red")
    for violation in result.violations:
        table.add_row(violation.field, escape(violation.value or ""), escape(violation.message))
    console.print(table)
    try:
        result.raise_for_violations()
    except ValidationError as e:
        _fail(str(e))


@cli.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@_FORMAT_OPTION
def zone(document: str, fmt: str):
    """Show the default values a policy DOCUMENT proposes."""
    try:
        zone_config = extract_zone_configuration(_load_document(document))
    except ZoneCertError as e:
        _fail(str(e))

    data = _zone_data(zone_config)
    if fmt == "json":
        _output_json(data)
        return
    if fmt == "yaml":
        _output_yaml(data)
        return

    table = Table(box=box.SIMPLE, show_header=True)
    table.add_column("Field", style="bold cyan", no_wrap=True)
    table.add_column("Default")
    table.add_column("Locked")
    for name in ("organization", "organizational_unit", "country", "province", "locality"):
        entry = data[name]
        value = entry["value"]
        shown = ", ".join(value) if isinstance(value, list) else (value or "—")
        table.add_row(name, shown, "[red]yes[/red]" if entry["locked"] else "no")
    table.add_row(
        "key_type",
        data["key_type"] or "—",
        "[red]yes[/red]" if data["key_type_locked"] else "no",
    )
    console.print(table)


if __name__ == "__main__":
    cli()
