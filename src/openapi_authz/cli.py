"""CLI entry point for openapi-authz."""

import logging
import os
import tempfile
from pathlib import Path

import click

from openapi_authz.errors import AuthzError, OutputWriteError
from openapi_authz.generator.code import DEFAULT_NAMESPACE, DEFAULT_TARGET, GENERATORS, generate
from openapi_authz.parser.base import AuthPolicy, Config
from openapi_authz.parser.openapi import DEFAULT_BEARER_SCHEME, DEFAULT_ROLE_PREFIX, load_config

logger = logging.getLogger(__name__)

_spec_option = click.option(
    "-i", "--in", "in_path", required=True,
    type=click.Path(dir_okay=False, path_type=Path), help="Path to OpenAPI YAML file.",
)
_scheme_option = click.option(
    "--bearer-scheme", default=DEFAULT_BEARER_SCHEME, show_default=True,
    help="Security scheme name that carries roles and scopes.",
)
_prefix_option = click.option(
    "--role-prefix", default=DEFAULT_ROLE_PREFIX, show_default=True,
    help="Token prefix that marks a role rather than a scope.",
)


def _load(in_path: Path, bearer_scheme: str, role_prefix: str) -> Config:
    try:
        return load_config(in_path, bearer_scheme=bearer_scheme, role_prefix=role_prefix)
    except AuthzError as e:
        raise click.ClickException(f"parse spec: {e}") from e


def _write_output(path: Path, code: str) -> None:
    """Write ``code`` to ``path`` so that readers never see a partial file."""
    tmp_path = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", newline="\n", dir=path.parent,
            prefix=f".{path.name}.", suffix=".tmp", delete=False,
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(code)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise OutputWriteError(f"{path}: {e}") from e


def _describe(policy: AuthPolicy) -> str:
    if not policy.require_auth:
        return "public"
    parts = ["auth"]
    if policy.roles:
        parts.append("roles=" + ",".join(policy.roles))
    if policy.scopes:
        parts.append("scopes=" + ",".join(policy.scopes))
    return " ".join(parts)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """openapi-authz: generate route authorization policies from OpenAPI security."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command("generate")
@_spec_option
@click.option("-o", "--out", "out_path", required=True, type=click.Path(dir_okay=False, path_type=Path), help="Path to output source file.")
@click.option("--pkg", default=DEFAULT_NAMESPACE, show_default=True, help="Package / module name for generated code.")
@click.option("--target", default=DEFAULT_TARGET, show_default=True, type=click.Choice(sorted(GENERATORS)), help="Language of the generated code.")
@_scheme_option
@_prefix_option
def generate_cmd(in_path: Path, out_path: Path, pkg: str, target: str, bearer_scheme: str, role_prefix: str):
    """Generate a RouteKey -> AuthPolicy map from an OpenAPI document."""
    cfg = _load(in_path, bearer_scheme, role_prefix)

    try:
        code = generate(pkg, cfg, target=target)
    except AuthzError as e:
        raise click.ClickException(f"generate code: {e}") from e

    try:
        _write_output(out_path, code)
    except AuthzError as e:
        raise click.ClickException(f"write output: {e}") from e

    logger.info(f"Wrote {out_path}")
    click.echo(f"Generated {out_path} ({len(cfg.policies)} routes)")


@main.command("inspect")
@_spec_option
@_scheme_option
@_prefix_option
def inspect_cmd(in_path: Path, bearer_scheme: str, role_prefix: str):
    """Print the resolved policy of every operation, sorted by method and path."""
    cfg = _load(in_path, bearer_scheme, role_prefix)
    for key, policy in cfg.sorted_items():
        click.echo(f"{key.method:<7} {key.path}  {_describe(policy)}")
