# SPDX-License-Identifier: Apache-2.0
"""Click CLI entry point. Install with: pip install ./sdk then sealedtally --help."""
import json

import click

from .client import SealedTallyClient
from .exceptions import SealedTallyError


def _echo(data) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


def _run(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except SealedTallyError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option("--api-url", default="http://localhost:8000", envvar="SEALEDTALLY_API_URL", help="API base URL")
@click.option("--identity", default=None, envvar="SEALEDTALLY_IDENTITY", help="Address to act as")
@click.pass_context
def cli(ctx, api_url, identity):
    """SealedTally: encrypted voting and sealed-bid rounds."""
    ctx.ensure_object(dict)
    if "client" not in ctx.obj:
        ctx.obj["client"] = SealedTallyClient(api_url, identity=identity)


@cli.command()
@click.option("--name", required=True)
@click.option("--description", required=True)
@click.option("--category", required=True)
@click.pass_context
def propose(ctx, name, description, category):
    """Register a new entry."""
    entry_id = _run(ctx.obj["client"].propose, name, description, category)
    _echo({"entry_id": entry_id})


@cli.command()
@click.argument("identity")
@click.pass_context
def authorize(ctx, identity):
    """Allow IDENTITY to submit (administrator only)."""
    _echo(_run(ctx.obj["client"].authorize, identity))


@cli.command()
@click.argument("identity")
@click.pass_context
def revoke(ctx, identity):
    """Remove IDENTITY from the participants (administrator only)."""
    _echo(_run(ctx.obj["client"].revoke, identity))


@cli.command("open-round")
@click.argument("entry_ids", nargs=-1, type=int)
@click.option("--mode", type=click.Choice(["sum", "max"]), default=None, help="Tally mode (server default if omitted)")
@click.pass_context
def open_round(ctx, entry_ids, mode):
    """Open a round over ENTRY_IDS (administrator only)."""
    _echo(_run(ctx.obj["client"].open_round, list(entry_ids), mode))


@cli.command()
@click.option("--entry", "entry_id", required=True, type=int)
@click.option("--score", required=True, type=int)
@click.option("--encrypt/--no-encrypt", default=True, help="Encrypt locally before sending (default)")
@click.pass_context
def submit(ctx, entry_id, score, encrypt):
    """Submit a score or bid for an entry in the open round."""
    client = ctx.obj["client"]
    if encrypt:
        _echo(_run(client.submit_encrypted, entry_id, score))
    else:
        _echo(_run(client.submit_score, entry_id, score))


@cli.command("close-round")
@click.pass_context
def close_round(ctx):
    """Close the open round and request the tally (administrator only)."""
    _echo(_run(ctx.obj["client"].close_round))


@cli.command()
@click.argument("entry_id", type=int)
@click.pass_context
def entry(ctx, entry_id):
    """Show an entry."""
    _echo(_run(ctx.obj["client"].get_entry, entry_id))


@cli.command("round-info")
@click.pass_context
def round_info(ctx):
    """Show the current round."""
    _echo(_run(ctx.obj["client"].current_round))


@cli.command()
@click.argument("round_number", type=int)
@click.option("--verify-audit", is_flag=True, help="Also check the round's audit hashes")
@click.pass_context
def results(ctx, round_number, verify_audit):
    """Show the results of ROUND_NUMBER."""
    client = ctx.obj["client"]
    out = _run(client.round_results, round_number)
    if verify_audit:
        out["audit"] = _run(client.verify_round_audit, round_number)
    _echo(out)


def main():
    """Entry point for console_scripts."""
    cli(obj={})


if __name__ == "__main__":
    main()
