"""
Calculate ROOTS allocations from the Seeds snapshot.

Privy users (direct transfer) are separated from external wallets (Merkle claim).

Usage:
    roots-allocate [--snapshot FILE] [--subgraph-url URL] [--pool N] [--data-dir DIR]

Prerequisites:
    roots-fetch-privy first to generate privy-wallets.json (optional; without
    it every earner goes to the Merkle claim list)

Output:
    privy-allocations.json, external-allocations.json, allocation-summary.json,
    seeds-snapshot.json
"""
import sys

import click

from config import Config
from distribution.allocations import (
    allocations_to_json,
    calculate_allocations,
    load_exclusion_set,
    load_snapshot,
)
from distribution.exceptions import DistributionError
from distribution.subgraph import fetch_seeds_balances
from distribution.utils import format_units, utc_now, write_files


def _section(title, color):
    click.echo('\n' + click.style('=' * 70, fg=color))
    click.echo(click.style(f'  {title}', fg=color, bold=True))
    click.echo(click.style('=' * 70, fg=color))


@click.command()
@click.option('--data-dir', default=Config.DATA_DIR, show_default=True, help='Distribution data directory')
@click.option('--snapshot', 'snapshot_file', type=click.Path(exists=True, dir_okay=False),
              help='Use a saved snapshot instead of querying the subgraph')
@click.option('--subgraph-url', default=Config.SUBGRAPH_URL, show_default=True)
@click.option('--pool', type=click.IntRange(min=1), default=Config.AIRDROP_ROOTS_AMOUNT, show_default=True,
              help='Total ROOTS to distribute, in wei')
def main(data_dir, snapshot_file, subgraph_url, pool):
    click.echo(click.style('=== ROOTS Allocation Calculator ===\n', fg='cyan', bold=True))

    try:
        if snapshot_file:
            records = load_snapshot(snapshot_file)
            source = snapshot_file
            click.echo(f'Loaded {len(records)} balances from {snapshot_file}')
        else:
            records = fetch_seeds_balances(subgraph_url, page_size=Config.SUBGRAPH_PAGE_SIZE)
            source = subgraph_url

        if not records:
            click.secho('No Seeds balances found!', fg='red')
            sys.exit(1)

        wallets_path = Config.get_data_file(Config.PRIVY_WALLETS_FILE, data_dir)
        privy_wallets = load_exclusion_set(wallets_path)
        if privy_wallets is None:
            click.secho(f'⚠ {wallets_path} not found. Run roots-fetch-privy first.', fg='yellow')
            click.secho('  Proceeding without Privy user separation...', fg='yellow')
        else:
            click.echo(f'Loaded {len(privy_wallets)} Privy wallet addresses')

        result = calculate_allocations(records, privy_wallets, pool)
    except DistributionError as e:
        click.secho(f'Error: {e}', fg='red')
        sys.exit(1)

    click.echo('\nConversion calculation:')
    click.echo(f'  Total Seeds earned: {format_units(result.total_seeds, Config.SEEDS_DECIMALS)}')
    click.echo(f'  Total ROOTS for airdrop: {format_units(pool, Config.ROOTS_DECIMALS)}')
    click.echo(f'  Conversion ratio: {result.conversion_ratio:.6f} ROOTS per Seed (raw)')

    summary = result.summary(utc_now(), source)
    outputs = [
        (Config.SNAPSHOT_FILE, [r.to_dict() for r in records]),
        (Config.DIRECT_ALLOCATIONS_FILE, allocations_to_json(result.direct_transfers)),
        (Config.CLAIM_ALLOCATIONS_FILE, allocations_to_json(result.proof_claims)),
        (Config.SUMMARY_FILE, summary),
    ]
    outputs = [(Config.get_data_file(name, data_dir), data) for name, data in outputs]
    write_files(outputs)
    click.echo('')
    for path, _ in outputs:
        click.echo(f'✓ Saved: {path}')

    _section('ALLOCATION SUMMARY', 'green')
    click.echo(f'  Total earners:   {summary["totalEarners"]:,}')
    click.echo('\n  Privy users (direct transfer):')
    click.echo(f'    Count: {result.direct_totals.count:,}')
    click.echo(f'    Seeds: {format_units(result.direct_totals.total_seeds, Config.SEEDS_DECIMALS)}')
    click.echo(f'    ROOTS: {format_units(result.direct_totals.total_roots, Config.ROOTS_DECIMALS)}')
    click.echo('\n  External users (Merkle claim):')
    click.echo(f'    Count: {result.claim_totals.count:,}')
    click.echo(f'    Seeds: {format_units(result.claim_totals.total_seeds, Config.SEEDS_DECIMALS)}')
    click.echo(f'    ROOTS: {format_units(result.claim_totals.total_roots, Config.ROOTS_DECIMALS)}')
    click.echo(f'\n  Undistributed dust: {result.dust} wei')

    click.echo('\nNext steps:')
    click.echo('  1. Review privy-allocations.json for direct transfers')
    click.echo('  2. Run roots-transfer --dry-run to validate')
    click.echo('  3. Run roots-merkle to build the claim tree from external-allocations.json')


if __name__ == '__main__':
    main()
