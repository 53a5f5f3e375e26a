import json

import pytest
from click.testing import CliRunner

from config import Config
from distribution.allocations import Allocation, SnapshotRecord
from distribution.transfer_state import TransferStateStore


def make_address(i):
    return '0x' + f'{i:040x}'


class FakeToken:
    """Stand-in for Erc20Token: records transfers, fails on request."""

    def __init__(self, balance=10**30, holder=make_address(0xdead), revert=(), explode=()):
        self.balance = balance
        self.holder = holder
        self.revert = set(revert)
        self.explode = set(explode)
        self.transfers = []
        self.balance_queries = []

    def balance_of(self, address):
        self.balance_queries.append(address)
        return self.balance

    def native_balance(self, address):
        return 10**18

    def transfer(self, to, amount):
        if to in self.explode:
            raise ValueError('nonce too low')
        self.transfers.append((to, amount))
        return '0x' + f'{len(self.transfers):064x}'

    def wait_for_receipt(self, tx_hash):
        to, _ = self.transfers[int(tx_hash, 16) - 1]
        return to not in self.revert


@pytest.fixture
def runner():
    yield CliRunner()


@pytest.fixture
def data_dir(tmp_path):
    d = tmp_path / 'distribution-data'
    d.mkdir()
    yield d


@pytest.fixture
def fake_token():
    yield FakeToken()


@pytest.fixture
def snapshot():
    """
    Factory for snapshot records.

    Usage: records = snapshot([100, 200, 300])  # addresses 0x..01, 0x..02, 0x..03
    """
    def _snapshot(totals, start=1):
        return [
            SnapshotRecord(address=make_address(start + i), total=total, purchases=total)
            for i, total in enumerate(totals)
        ]
    return _snapshot


@pytest.fixture
def allocations():
    def _allocations(amounts, start=1):
        return [
            Allocation(address=make_address(start + i), seeds_earned=amount, roots_amount=amount * 10**12)
            for i, amount in enumerate(amounts)
        ]
    return _allocations


@pytest.fixture
def write_direct_allocations(data_dir):
    """Writes privy-allocations.json the way roots-allocate does"""
    def _write(allocs):
        path = data_dir / Config.DIRECT_ALLOCATIONS_FILE
        path.write_text(json.dumps([a.to_dict() for a in allocs], indent=2))
        return path
    return _write


@pytest.fixture
def state_store(data_dir):
    yield TransferStateStore(str(data_dir / Config.TRANSFER_STATE_FILE))


@pytest.fixture
def patch_token(monkeypatch):
    """Routes scripts.batch_transfer to a FakeToken and disables sleeps"""
    def _patch(token):
        def factory(rpc_url, token_address, private_key=None, holder=None):
            return token
        monkeypatch.setattr('scripts.batch_transfer.Erc20Token', factory)
        monkeypatch.setattr('time.sleep', lambda seconds: None)
        monkeypatch.setattr(Config, 'TREASURY_PRIVATE_KEY', '0x' + '11' * 32)
        monkeypatch.setattr(Config, 'TREASURY_ADDRESS', '')
        return token
    return _patch
