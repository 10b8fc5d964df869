#!/usr/bin/env python3
"""
CLI for swap card operators

Commands:
    swap-cards            - Assemble and print a viewer's swap cards
    check-self-exclusion  - Scan storage for self-proposals (exit 1 if any)
    schema-check          - Verify the tables the swap card query reads

Usage:
    python cli.py swap-cards 4f1c... --limit 20
    python cli.py swap-cards 4f1c... --json
    python cli.py check-self-exclusion --show 50
    python cli.py schema-check
"""

import json
import sys

import click


def get_app_context(config_overrides=None):
    """Get Flask app context for database access."""
    from app import create_app
    app = create_app(config_overrides)
    return app.app_context()


@click.group()
@click.version_option(version="1.0.0", prog_name="swap-cards-cli")
def cli():
    """Swap card operator CLI - inspect the read path and its invariants."""
    pass


@cli.command("swap-cards")
@click.argument("viewer_id")
@click.option("--limit", default=None, help="Cards per page (default 100, max 100)")
@click.option("--offset", default=None, help="Cards to skip (default 0)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def swap_cards(viewer_id, limit, offset, output_json):
    """
    Assemble swap cards for VIEWER_ID exactly as the API would.
    """
    from api.contracts import SwapCardsParams, ValidationError, parse_params, validation_error_body

    raw = {k: v for k, v in (("limit", limit), ("offset", offset)) if v is not None}
    try:
        params = parse_params(SwapCardsParams, raw)
    except ValidationError as e:
        if output_json:
            click.echo(json.dumps(validation_error_body(e), indent=2))
        else:
            click.secho(f"Invalid {e.field or 'parameter'}: {e}", fg="red")
        sys.exit(2)

    with get_app_context():
        from services.swap_cards import SwapCardError, assemble_swap_cards

        try:
            result = assemble_swap_cards(viewer_id, limit=params.limit, offset=params.offset)
        except SwapCardError as e:
            click.secho(f"{e.code}: {e.message}", fg="red")
            sys.exit(1)

    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    meta = result.metadata
    click.echo(f"Viewer: {viewer_id}")
    click.echo(f"{'SWAP':<38} {'STATUS':<10} {'PROPOSALS':>9}  LABEL")
    for card in result.cards:
        data = card.to_dict()
        click.echo(
            f"{data['userSwap']['id']:<38} {(data['userSwap']['status'] or '-'):<10} "
            f"{data['proposalCount']:>9}  {data['cardMetadata']['proposalStatus']}"
        )

    pagination = result.pagination
    quality = meta['dataQuality']
    perf = meta['performance']
    click.echo()
    click.echo(
        f"Cards {pagination['offset'] + 1 if result.cards else 0}-"
        f"{pagination['offset'] + len(result.cards)} of {pagination['total']}"
        f"{' (more)' if pagination['hasMore'] else ''}"
    )
    click.echo(f"Proposals: {meta['totalProposals']} (avg {meta['averageProposalsPerSwap']} per swap)")
    click.echo(
        f"Data quality: degraded={quality['degradedCount']} excluded={quality['excludedCount']} "
        f"self_exclusion={quality['selfExclusionMode']}"
    )
    colour = "green" if perf['withinBudget'] else "yellow"
    click.secho(f"Elapsed: {perf['elapsedMs']}ms ({perf['category']})", fg=colour)


@cli.command("check-self-exclusion")
@click.option("--database-url", default=None, help="Override DATABASE_URL")
@click.option("--show", default=20, show_default=True, help="Max offending rows to list")
def check_self_exclusion(database_url, show):
    """
    Scan storage for proposals made by the owner of the target swap.

    The read path filters these; their presence means a writer let them in.
    Exits 1 when any exist.
    """
    from db.engine import dispose_engines, get_engine
    from db.sql import count_self_proposals, find_self_proposals

    engine = get_engine(database_url=database_url)
    try:
        with engine.connect() as conn:
            total = count_self_proposals(conn)
            rows = find_self_proposals(conn, limit=show) if total else []
    finally:
        dispose_engines()

    if not total:
        click.secho("OK: no self-proposals in storage", fg="green")
        return

    click.secho(f"FOUND {total} self-proposal(s)", fg="red")
    for proposal_id, swap_id, proposer in rows:
        click.echo(f"   proposal={proposal_id} swap={swap_id} proposer={proposer}")
    if total > len(rows):
        click.echo(f"   ... and {total - len(rows)} more")
    sys.exit(1)


@cli.command("schema-check")
def schema_check():
    """Verify the tables and columns the swap card query needs."""
    with get_app_context({"SCHEMA_CHECK_ON_STARTUP": False}):
        from services.schema_check import check_and_report
        ok = check_and_report(echo=click.echo)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    cli()
