import json

import pytest

from config import Config
from distribution.transfer_state import FAILED, SUCCESS, TransferState
from scripts.batch_transfer import main

from tests.conftest import FakeToken, make_address


def invoke(runner, data_dir, *args, **kwargs):
    return runner.invoke(main, ['--data-dir', str(data_dir), '--delay', '0', *args], **kwargs)


@pytest.fixture
def saved_state(state_store, allocations):
    """State with 10 success, 2 failed, 3 pending"""
    state = TransferState.from_allocations(allocations([1] * 15))
    for i in range(1, 11):
        state.mark_success(make_address(i), f'0x{i:064x}')
    state.mark_failed(make_address(11), 'Transaction reverted')
    state.mark_failed(make_address(12), 'nonce too low')
    state_store.save(state)
    return state


def test_fresh_live_run(runner, data_dir, allocations, write_direct_allocations, patch_token, state_store):
    token = patch_token(FakeToken())
    allocs = allocations([4, 5, 6])
    write_direct_allocations(allocs)

    result = invoke(runner, data_dir)

    assert result.exit_code == 0, result.output
    assert token.transfers == [(a.address, a.roots_amount) for a in allocs]
    assert state_store.load().completed_count == 3
    log = json.loads((data_dir / Config.TRANSFER_LOG_FILE).read_text())
    assert log['summary']['completed'] == 3
    assert len(log['transfers']) == 3


def test_resume_processes_only_pending(runner, data_dir, saved_state, patch_token, state_store):
    token = patch_token(FakeToken())

    result = invoke(runner, data_dir, '--resume')
    assert result.exit_code == 0, result.output
    assert [to for to, _ in token.transfers] == [make_address(13), make_address(14), make_address(15)]

    state = state_store.load()
    assert state.completed_count == 13
    assert state.failed_count == 2
    assert state.pending_count == 0
    for i in range(1, 11):
        assert state.transfers[make_address(i)].tx_hash == saved_state.transfers[make_address(i)].tx_hash
    assert state.transfers[make_address(11)].error == 'Transaction reverted'

    # Second resume: nothing left to do
    token.transfers.clear()
    result = invoke(runner, data_dir, '--resume')
    assert result.exit_code == 0, result.output
    assert token.transfers == []
    assert '--resume retries only still-pending transfers' in result.output


def test_resume_retry_failed(runner, data_dir, saved_state, patch_token, state_store):
    token = patch_token(FakeToken())

    result = invoke(runner, data_dir, '--resume', '--retry-failed')
    assert result.exit_code == 0, result.output
    assert len(token.transfers) == 5
    assert state_store.load().completed_count == 15


def test_retry_failed_requires_resume(runner, data_dir, patch_token):
    patch_token(FakeToken())
    result = invoke(runner, data_dir, '--retry-failed')
    assert result.exit_code != 0


def test_resume_without_state_aborts(runner, data_dir, allocations, write_direct_allocations, patch_token, state_store):
    token = patch_token(FakeToken())
    write_direct_allocations(allocations([1]))

    result = invoke(runner, data_dir, '--resume')
    assert result.exit_code == 1
    assert token.transfers == []
    assert not state_store.exists()


def test_resume_with_corrupt_state_aborts(runner, data_dir, allocations, write_direct_allocations,
                                          patch_token, state_store):
    token = patch_token(FakeToken())
    write_direct_allocations(allocations([1]))
    with open(state_store.path, 'w') as f:
        f.write('{"startedAt": ')

    result = invoke(runner, data_dir, '--resume')
    assert result.exit_code == 1
    assert token.transfers == []
    # Never silently replaced by a fresh state
    with open(state_store.path) as f:
        assert f.read() == '{"startedAt": '


def test_insufficient_funds_aborts_before_transfers(runner, data_dir, allocations, write_direct_allocations,
                                                    patch_token, state_store):
    token = patch_token(FakeToken(balance=10**12))
    write_direct_allocations(allocations([1, 1]))

    result = invoke(runner, data_dir)
    assert result.exit_code == 1
    assert 'short' in result.output
    assert token.transfers == []
    assert not state_store.exists()


def test_missing_allocations_aborts(runner, data_dir, patch_token):
    patch_token(FakeToken())
    result = invoke(runner, data_dir)
    assert result.exit_code == 1
    assert 'not found' in result.output


def test_live_run_requires_key(runner, data_dir, allocations, write_direct_allocations, monkeypatch):
    monkeypatch.setattr(Config, 'TREASURY_PRIVATE_KEY', '')
    write_direct_allocations(allocations([1]))
    result = invoke(runner, data_dir)
    assert result.exit_code == 1


def test_transfer_failures_do_not_fail_the_run(runner, data_dir, allocations, write_direct_allocations,
                                               patch_token, state_store):
    patch_token(FakeToken(revert={make_address(2)}))
    write_direct_allocations(allocations([1, 2, 3]))

    result = invoke(runner, data_dir)
    assert result.exit_code == 0, result.output
    assert f'{make_address(2)}: Transaction reverted' in result.output
    state = state_store.load()
    assert state.transfers[make_address(2)].status == FAILED
    assert state.transfers[make_address(3)].status == SUCCESS


def test_fresh_run_over_existing_state_needs_confirmation(runner, data_dir, allocations, saved_state,
                                                          write_direct_allocations, patch_token, state_store):
    token = patch_token(FakeToken())
    write_direct_allocations(allocations([1]))

    result = invoke(runner, data_dir, input='n\n')
    assert result.exit_code == 1
    assert token.transfers == []
    assert state_store.load().completed_count == 10


def test_dry_run_is_pure_and_repeatable(runner, data_dir, allocations, write_direct_allocations,
                                        patch_token, state_store, monkeypatch):
    token = patch_token(FakeToken())
    monkeypatch.setattr(Config, 'TREASURY_ADDRESS', make_address(0xdead))
    write_direct_allocations(allocations([7, 8, 9]))

    first = invoke(runner, data_dir, '--dry-run')
    second = invoke(runner, data_dir, '--dry-run')

    assert first.exit_code == 0, first.output
    assert first.output == second.output
    assert 'DRY RUN PREVIEW' in first.output
    assert token.transfers == []
    assert token.balance_queries == [make_address(0xdead)] * 2
    assert not state_store.exists()
    assert not (data_dir / Config.TRANSFER_LOG_FILE).exists()


def test_dry_run_reports_insufficient_funds(runner, data_dir, allocations, write_direct_allocations,
                                           patch_token, monkeypatch):
    patch_token(FakeToken(balance=0))
    monkeypatch.setattr(Config, 'TREASURY_ADDRESS', make_address(0xdead))
    write_direct_allocations(allocations([1]))

    result = invoke(runner, data_dir, '--dry-run')
    assert result.exit_code == 1


def test_dry_run_resume_leaves_state_untouched(runner, data_dir, saved_state, patch_token, state_store):
    patch_token(FakeToken())
    with open(state_store.path) as f:
        before = f.read()

    result = invoke(runner, data_dir, '--dry-run', '--resume', '--retry-failed')
    assert result.exit_code == 0, result.output
    assert '[5/5]' in result.output
    with open(state_store.path) as f:
        assert f.read() == before
