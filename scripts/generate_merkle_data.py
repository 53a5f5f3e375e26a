"""
Generate the Merkle root and claim proofs for external wallets.

Only external-allocations.json is included; Privy users receive direct
transfers instead.

Usage:
    roots-merkle [--data-dir DIR] [--force]

Output:
    merkle-root.txt   - root to pass to setMerkleRoot
    proofs.json       - address -> {address, seedsEarned, rootsAmount, proof}, served to the claim page
    merkle-snapshot.json - root, totals and recipient count for verification
"""
import os
import sys

import click
from eth_utils import encode_hex

from config import Config
from distribution.allocations import load_allocations
from distribution.exceptions import DistributionError
from distribution.merkle import build_distribution
from distribution.utils import format_units, utc_now, write_files


@click.command()
@click.option('--data-dir', default=Config.DATA_DIR, show_default=True, help='Distribution data directory')
@click.option('--force', is_flag=True, help='Overwrite existing merkle output without asking')
def main(data_dir, force):
    click.echo(click.style('=== Seeds Airdrop Merkle Tree Generator ===\n', fg='cyan', bold=True))

    allocations_path = Config.get_data_file(Config.CLAIM_ALLOCATIONS_FILE, data_dir)
    root_path = Config.get_data_file(Config.MERKLE_ROOT_FILE, data_dir)
    proofs_path = Config.get_data_file(Config.PROOFS_FILE, data_dir)
    snapshot_path = Config.get_data_file(Config.MERKLE_SNAPSHOT_FILE, data_dir)

    try:
        allocations = load_allocations(allocations_path)
    except DistributionError as e:
        click.secho(f'Error: {e}', fg='red')
        sys.exit(1)

    click.echo(f'Loaded {len(allocations)} external allocations from {allocations_path}')

    if not allocations:
        click.echo('\nNo external users to include in Merkle tree.')
        click.echo('All users are Privy users and will receive direct transfers.')

    if os.path.exists(proofs_path) and not force:
        click.echo(f'\n⚠️  WARNING: {proofs_path} already exists!')
        if not click.confirm('Overwrite existing merkle distribution?', default=False):
            click.echo('Cancelled.')
            return

    click.echo('\nBuilding Merkle tree...')
    try:
        tree, claims = build_distribution(allocations)
    except DistributionError as e:
        click.secho(f'Error: {e}', fg='red')
        sys.exit(1)

    merkle_root = encode_hex(tree.root)
    token_total = sum(a.roots_amount for a in allocations)
    click.echo(f'  Merkle root: {merkle_root}')
    click.echo(f'  Total eligible addresses: {len(tree.leaves)}')

    # merkle-root.txt goes last: a root on disk means its proofs are there too
    write_files([
        (proofs_path, claims),
        (snapshot_path, {
            'timestamp': utc_now(),
            'note': 'Merkle tree for EXTERNAL wallets only. Privy users receive direct transfers.',
            'merkleRoot': merkle_root,
            'tokenTotal': str(token_total),
            'eligibleAddresses': len(claims),
            'totalSeeds': str(sum(a.seeds_earned for a in allocations)),
        }),
        (root_path, merkle_root),
    ])

    click.echo(f'\n✓ Merkle root written to {root_path}')
    click.echo(f'✓ {len(claims)} claims written to {proofs_path}')
    click.echo(f'✓ Verification snapshot written to {snapshot_path}')

    amounts = sorted((a.roots_amount for a in allocations), reverse=True)
    if amounts:
        n = len(amounts)
        median = amounts[n // 2] if n % 2 == 1 else (amounts[n // 2 - 1] + amounts[n // 2]) // 2
        click.echo('\n' + click.style('━' * 70, fg='cyan'))
        click.echo(click.style('  DISTRIBUTION STATISTICS', fg='cyan', bold=True))
        click.echo(click.style('━' * 70, fg='cyan'))
        click.echo(f'  Total Recipients:  {n:,}')
        click.echo(f'  Total Amount:      {format_units(token_total, Config.ROOTS_DECIMALS)} ROOTS')
        click.echo(f'  Maximum Amount:    {format_units(amounts[0], Config.ROOTS_DECIMALS)} ROOTS')
        click.echo(f'  Average Amount:    {format_units(token_total // n, Config.ROOTS_DECIMALS)} ROOTS')
        click.echo(f'  Median Amount:     {format_units(median, Config.ROOTS_DECIMALS)} ROOTS')
        click.echo(f'  Minimum Amount:    {format_units(amounts[-1], Config.ROOTS_DECIMALS)} ROOTS')
        click.echo(click.style('━' * 70, fg='cyan'))

    click.echo('\nNext steps:')
    click.echo(f'  1. Fund the airdrop contract with {format_units(token_total, Config.ROOTS_DECIMALS)} ROOTS')
    click.echo(f'  2. Call setMerkleRoot("{merkle_root}")')
    click.echo('  3. Host proofs.json for frontend access')


if __name__ == '__main__':
    main()
