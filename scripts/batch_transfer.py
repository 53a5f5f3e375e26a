"""
Execute ROOTS transfers to Privy wallet users.

Usage:
    roots-transfer [--dry-run] [--resume] [--retry-failed] [--batch-size=N] [--delay=N]

Options:
    --dry-run         Validate and print the batch without executing transfers
    --resume          Continue from transfer-state.json (pending records only)
    --retry-failed    With --resume: requeue failed records before continuing
    --batch-size=N    Transfers per batch before pausing (default: 50)
    --delay=N         Pause between batches in ms (default: 1000)

Prerequisites:
    roots-allocate first to generate privy-allocations.json

Environment:
    TREASURY_PRIVATE_KEY - key of the treasury wallet holding ROOTS
    TREASURY_ADDRESS     - treasury address for dry-run balance checks (optional)
    ROOTS_TOKEN_ADDRESS  - ROOTS token contract
    RPC_URL              - Base RPC URL

Output:
    transfer-state.json - progress state, rewritten after every transfer
    transfer-log.json   - final log of all transfers
"""
import sys
import time

import click

from config import Config, ContractAddresses
from distribution.allocations import load_allocations
from distribution.exceptions import DistributionError
from distribution.executor import BatchTransferExecutor
from distribution.token import Erc20Token
from distribution.transfer_state import TransferState, TransferStateStore
from distribution.utils import format_units, utc_now, write_json


def load_state(store, data_dir, resume, dry_run):
    if resume:
        click.echo('Resuming from saved state...')
        return store.load()

    allocations = load_allocations(Config.get_data_file(Config.DIRECT_ALLOCATIONS_FILE, data_dir))
    click.echo(f'\nLoaded {len(allocations)} allocations')
    total = sum(a.roots_amount for a in allocations)
    click.echo(f'Total ROOTS to distribute: {format_units(total, Config.ROOTS_DECIMALS)}')

    if store.exists() and not dry_run:
        click.echo(click.style(f'\n⚠️  {store.path} already exists.', fg='yellow', bold=True))
        click.echo('Use --resume to continue it. Starting fresh forgets which transfers were sent.')
        if not click.confirm(click.style('Discard saved state and start fresh?', fg='yellow', bold=True),
                             default=False):
            click.secho('Cancelled.', fg='red')
            sys.exit(1)

    return TransferState.from_allocations(allocations)


@click.command()
@click.option('--dry-run', is_flag=True, help='Validate without executing transfers')
@click.option('--resume', is_flag=True, help='Resume from last saved state')
@click.option('--retry-failed', is_flag=True, help='With --resume, requeue failed transfers')
@click.option('--batch-size', type=click.IntRange(min=1), default=Config.DEFAULT_BATCH_SIZE, show_default=True)
@click.option('--delay', type=click.IntRange(min=0), default=Config.DEFAULT_BATCH_DELAY_MS, show_default=True,
              help='Pause between batches in ms')
@click.option('--data-dir', default=Config.DATA_DIR, show_default=True, help='Distribution data directory')
@click.option('--rpc-url', default=Config.RPC_URL, show_default=True)
@click.option('--token', 'token_address', default=ContractAddresses.ROOTS_TOKEN, show_default=True)
def main(dry_run, resume, retry_failed, batch_size, delay, data_dir, rpc_url, token_address):
    if retry_failed and not resume:
        raise click.UsageError('--retry-failed only applies together with --resume')

    click.echo(click.style('=== ROOTS Batch Transfer ===\n', fg='cyan', bold=True))
    click.echo(f"Mode: {'DRY RUN (no transfers)' if dry_run else 'LIVE'}")
    click.echo(f'Resume: {resume}')
    click.echo(f'Batch size: {batch_size}')
    click.echo(f'Delay between batches: {delay}ms')
    click.echo(f'RPC: {rpc_url}')
    click.echo(f'ROOTS Token: {token_address}')

    private_key = Config.TREASURY_PRIVATE_KEY
    if not dry_run and not private_key:
        click.secho('\nError: TREASURY_PRIVATE_KEY or DEPLOYER_PRIVATE_KEY required for live transfers', fg='red')
        sys.exit(1)

    store = TransferStateStore(Config.get_data_file(Config.TRANSFER_STATE_FILE, data_dir))

    try:
        state = load_state(store, data_dir, resume, dry_run)
        if retry_failed:
            requeued = state.requeue_failed()
            click.echo(f'Requeued {requeued} failed transfers')

        click.echo(f'\nState: {state.completed_count} completed, {state.failed_count} failed, '
                   f'{state.pending_count} pending')

        if dry_run:
            holder = Config.TREASURY_ADDRESS or None
            token = Erc20Token(rpc_url, token_address, holder=holder) if holder else None
        else:
            token = Erc20Token(rpc_url, token_address, private_key=private_key)
            holder = token.holder
            click.echo(f'Treasury address: {holder}')

        executor = BatchTransferExecutor(
            state, store, token,
            batch_size=batch_size,
            delay_ms=delay,
            sleep=time.sleep,
        )

        if holder is None:
            click.echo('\nNo TREASURY_ADDRESS set - skipping balance check')
        executor.validate(holder)
    except DistributionError as e:
        click.secho(f'\nError: {e}', fg='red')
        sys.exit(1)

    if dry_run:
        executor.preview()
        return

    gas = token.native_balance(holder)
    click.echo(f'Treasury ETH balance: {format_units(gas, 18, precision=4)}')
    if gas < Config.MIN_GAS_BALANCE:
        click.secho('\n⚠ Low ETH balance for gas. Consider funding treasury.', fg='yellow')

    # Fresh state goes to disk before the first submission
    store.save(state)
    executor.run()
    executor.print_summary()

    log_path = Config.get_data_file(Config.TRANSFER_LOG_FILE, data_dir)
    write_json(log_path, state.to_log(utc_now()))
    click.echo(f'\n✓ Transfer log saved: {log_path}')


if __name__ == '__main__':
    main()
