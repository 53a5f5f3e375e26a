"""
Sequential, resumable executor for direct ROOTS transfers.

Transfers from the treasury are submitted strictly one after another and the
full state is persisted after every attempt. Concurrent submissions from one
account would race on the nonce.
"""
import time
from typing import Callable, List

import click
from web3 import Web3

from config import Config
from distribution.exceptions import InsufficientFunds, InvalidAddress, TransferFailure
from distribution.transfer_state import TransferRecord, TransferState, TransferStateStore
from distribution.utils import format_units


def find_invalid_addresses(records: List[TransferRecord]) -> List[str]:
    return [r.address for r in records if not Web3.is_address(r.address)]


class BatchTransferExecutor:
    def __init__(
        self,
        state: TransferState,
        store: TransferStateStore,
        token,
        batch_size: int = Config.DEFAULT_BATCH_SIZE,
        delay_ms: int = Config.DEFAULT_BATCH_DELAY_MS,
        transfer_delay_ms: int = Config.TRANSFER_DELAY_MS,
        sleep: Callable[[float], None] = time.sleep,
        symbol: str = 'ROOTS',
        decimals: int = Config.ROOTS_DECIMALS,
    ):
        if batch_size < 1:
            raise ValueError('batch_size must be at least 1')
        self.state = state
        self.store = store
        self.token = token
        self.batch_size = batch_size
        self.delay_ms = delay_ms
        self.transfer_delay_ms = transfer_delay_ms
        self.sleep = sleep
        self.symbol = symbol
        self.decimals = decimals

    def fmt(self, amount: int) -> str:
        return f'{format_units(amount, self.decimals)} {self.symbol}'

    def validate(self, holder: str = None):
        """
        Preconditions shared by dry and live runs.

        Raises:
            InvalidAddress: a pending record has a malformed address
            InsufficientFunds: holder can't cover every pending amount
        """
        pending = self.state.pending()
        invalid = find_invalid_addresses(pending)
        if invalid:
            raise InvalidAddress(invalid)

        if holder is None:
            return
        needed = self.state.pending_total()
        balance = self.token.balance_of(holder)
        click.echo(f'Treasury {self.symbol} balance: {self.fmt(balance)}')
        if balance < needed:
            raise InsufficientFunds(needed, balance)

    def preview(self):
        """Print every pending transfer the live run would submit. Deterministic, no side effects."""
        pending = self.state.pending()
        click.echo(f'\nProcessing {len(pending)} pending transfers...')
        click.echo('\n--- DRY RUN PREVIEW ---')
        for i, record in enumerate(pending, 1):
            click.echo(f'  [{i}/{len(pending)}] {record.address}: {self.fmt(record.amount)}')
        click.echo(f'\nTotal: {self.fmt(self.state.pending_total())}')
        click.echo('\nDry run complete. No transfers executed.')
        click.echo('Run without --dry-run to execute transfers.')

    def run(self) -> TransferState:
        pending = self.state.pending()
        click.echo(f'\nProcessing {len(pending)} pending transfers...')

        batch_count = 0
        for i, record in enumerate(pending, 1):
            click.echo(f'\n[{i}/{len(pending)}] Transferring to {record.address}...')
            click.echo(f'  Amount: {self.fmt(record.amount)}')

            self._execute(record)
            self.store.save(self.state)

            if i == len(pending):
                break
            batch_count += 1
            if batch_count >= self.batch_size:
                click.echo(f'\nBatch complete. Waiting {self.delay_ms}ms...')
                self.sleep(self.delay_ms / 1000)
                batch_count = 0
            else:
                self.sleep(self.transfer_delay_ms / 1000)

        return self.state

    def _execute(self, record: TransferRecord):
        tx_hash = None
        try:
            tx_hash = self.token.transfer(record.address, record.amount)
            click.echo(f'  TX: {tx_hash}')
            if not self.token.wait_for_receipt(tx_hash):
                raise TransferFailure(record.address, 'Transaction reverted')
        except TransferFailure as e:
            self.state.mark_failed(record.address, e.message, tx_hash=tx_hash)
            click.secho(f'  Status: FAILED ({e.message})', fg='red')
            return
        except Exception as e:
            # RPC/signing errors end this record only; the loop moves on
            message = str(e) or e.__class__.__name__
            self.state.mark_failed(record.address, message, tx_hash=tx_hash)
            click.secho(f'  Status: FAILED - {message}', fg='red')
            return

        self.state.mark_success(record.address, tx_hash)
        click.secho('  Status: SUCCESS', fg='green')

    def print_summary(self):
        state = self.state
        click.echo('\n' + click.style('=' * 70, fg='cyan'))
        click.echo(click.style('  TRANSFER COMPLETE', fg='cyan', bold=True))
        click.echo(click.style('=' * 70, fg='cyan'))
        click.echo(f'  Completed: {state.completed_count}')
        click.echo(f'  Failed:    {state.failed_count}')
        click.echo(f'  Pending:   {state.pending_count}')

        failed = state.failed()
        if failed:
            click.secho('\nFailed transfers:', fg='red', bold=True)
            for record in failed:
                click.echo(f'  {record.address}: {record.error}')
            click.echo('\n--resume retries only still-pending transfers, not failed ones.')
            click.echo('Investigate the failures, then run with --resume --retry-failed to requeue them.')
