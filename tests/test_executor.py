import json

import pytest

from distribution.exceptions import InsufficientFunds, InvalidAddress
from distribution.executor import BatchTransferExecutor
from distribution.transfer_state import FAILED, PENDING, SUCCESS, TransferRecord, TransferState

from tests.conftest import FakeToken, make_address


@pytest.fixture
def make_executor(state_store):
    """
    Factory for executors over a fresh state.

    Usage: executor, sleeps = make_executor(allocs, token, batch_size=2)
    """
    def _make(allocs, token, **kwargs):
        sleeps = []
        state = TransferState.from_allocations(allocs)
        executor = BatchTransferExecutor(state, state_store, token, sleep=sleeps.append, **kwargs)
        return executor, sleeps
    return _make


def test_transfers_in_order(make_executor, allocations, fake_token):
    allocs = allocations([3, 1, 2])
    executor, _ = make_executor(allocs, fake_token)
    state = executor.run()

    assert fake_token.transfers == [(a.address, a.roots_amount) for a in allocs]
    assert state.completed_count == 3
    assert all(t.tx_hash for t in state.transfers.values())


def test_failures_are_recorded_and_loop_continues(make_executor, allocations):
    token = FakeToken(revert={make_address(2)}, explode={make_address(3)})
    executor, _ = make_executor(allocations([1, 2, 3, 4]), token)
    state = executor.run()

    assert state.transfers[make_address(1)].status == SUCCESS
    assert state.transfers[make_address(2)].status == FAILED
    assert state.transfers[make_address(2)].error == 'Transaction reverted'
    assert state.transfers[make_address(2)].tx_hash is not None
    assert state.transfers[make_address(3)].status == FAILED
    assert state.transfers[make_address(3)].error == 'nonce too low'
    assert state.transfers[make_address(4)].status == SUCCESS


def test_state_persisted_after_every_transfer(make_executor, allocations, state_store):
    snapshots = []

    class Spy(FakeToken):
        def transfer(self, to, amount):
            if state_store.exists():
                with open(state_store.path) as f:
                    snapshots.append(json.load(f)['completedCount'])
            return super().transfer(to, amount)

    executor, _ = make_executor(allocations([1, 1, 1]), Spy())
    executor.run()

    # Before each submission the file reflects every earlier transfer
    assert snapshots == [1, 2]
    assert state_store.load().completed_count == 3


def test_batch_and_transfer_delays(make_executor, allocations, fake_token):
    executor, sleeps = make_executor(
        allocations([1] * 5), fake_token, batch_size=2, delay_ms=1500, transfer_delay_ms=100
    )
    executor.run()
    # No pause after the final transfer
    assert sleeps == [0.1, 1.5, 0.1, 1.5]


def test_insufficient_funds(make_executor, allocations):
    token = FakeToken(balance=5 * 10**12)
    executor, _ = make_executor(allocations([2, 2, 2]), token)

    with pytest.raises(InsufficientFunds) as exc:
        executor.validate(token.holder)

    assert exc.value.needed == 6 * 10**12
    assert exc.value.available == 5 * 10**12
    assert exc.value.shortfall == 10**12
    assert token.transfers == []


def test_funds_check_counts_pending_only(make_executor, allocations):
    token = FakeToken(balance=2 * 10**12)
    executor, _ = make_executor(allocations([5, 2]), token)
    executor.state.mark_success(make_address(1), '0x1')
    executor.validate(token.holder)


def test_invalid_address_rejected(make_executor, allocations, fake_token):
    executor, _ = make_executor(allocations([1]), fake_token)
    executor.state.transfers['0xnope'] = TransferRecord('0xnope', 1)
    with pytest.raises(InvalidAddress) as exc:
        executor.validate()
    assert exc.value.addresses == ['0xnope']


def test_only_pending_processed(make_executor, allocations, fake_token):
    executor, _ = make_executor(allocations([1, 2, 3]), fake_token)
    executor.state.mark_success(make_address(1), '0x1')
    executor.state.mark_failed(make_address(2), 'boom')
    executor.run()

    assert fake_token.transfers == [(make_address(3), 3 * 10**12)]
    assert executor.state.transfers[make_address(2)].status == FAILED


def test_preview_has_no_side_effects(make_executor, allocations, fake_token, state_store, capsys):
    executor, sleeps = make_executor(allocations([1, 2]), fake_token)
    executor.preview()
    out = capsys.readouterr().out

    assert make_address(1) in out and make_address(2) in out
    assert 'No transfers executed' in out
    assert fake_token.transfers == []
    assert sleeps == []
    assert not state_store.exists()
    assert all(t.status == PENDING for t in executor.state.transfers.values())


def test_batch_size_must_be_positive(state_store, fake_token):
    with pytest.raises(ValueError):
        BatchTransferExecutor(TransferState('a', 'b'), state_store, fake_token, batch_size=0)
