"""
Persisted progress of the direct-transfer run.

TransferState is the only mutable artifact of the pipeline. It is written
in full after every transfer attempt so a killed run loses at most the
in-flight transfer.
"""
import json
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from distribution.allocations import Allocation, check_unique_addresses
from distribution.exceptions import StateLoadFailure
from distribution.utils import utc_now, write_json

PENDING = 'pending'
SUCCESS = 'success'
FAILED = 'failed'
STATUSES = (PENDING, SUCCESS, FAILED)


@dataclass
class TransferRecord:
    address: str
    amount: int
    status: str = PENDING
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    timestamp: Optional[str] = None

    def to_dict(self) -> dict:
        out = {'address': self.address, 'amount': str(self.amount), 'status': self.status}
        if self.tx_hash is not None:
            out['txHash'] = self.tx_hash
        if self.error is not None:
            out['error'] = self.error
        if self.timestamp is not None:
            out['timestamp'] = self.timestamp
        return out

    @classmethod
    def from_dict(cls, data: dict) -> 'TransferRecord':
        status = data.get('status', PENDING)
        if status not in STATUSES:
            raise ValueError(f"Unknown transfer status {status!r} for {data.get('address')}")
        return cls(
            address=data['address'].lower(),
            amount=int(data['amount']),
            status=status,
            tx_hash=data.get('txHash'),
            error=data.get('error'),
            timestamp=data.get('timestamp'),
        )


@dataclass
class TransferState:
    started_at: str
    last_updated: str
    transfers: Dict[str, TransferRecord] = field(default_factory=dict)

    @classmethod
    def from_allocations(cls, allocations: Iterable[Allocation], now: str = None) -> 'TransferState':
        allocations = list(allocations)
        check_unique_addresses(a.address for a in allocations)
        now = now or utc_now()
        transfers = {}
        for allocation in allocations:
            transfers[allocation.address] = TransferRecord(allocation.address, allocation.roots_amount)
        return cls(started_at=now, last_updated=now, transfers=transfers)

    @property
    def total_allocations(self) -> int:
        return len(self.transfers)

    def _count(self, status) -> int:
        return sum(1 for t in self.transfers.values() if t.status == status)

    @property
    def completed_count(self) -> int:
        return self._count(SUCCESS)

    @property
    def failed_count(self) -> int:
        return self._count(FAILED)

    @property
    def pending_count(self) -> int:
        return self._count(PENDING)

    def pending(self) -> List[TransferRecord]:
        return [t for t in self.transfers.values() if t.status == PENDING]

    def failed(self) -> List[TransferRecord]:
        return [t for t in self.transfers.values() if t.status == FAILED]

    def pending_total(self) -> int:
        return sum(t.amount for t in self.pending())

    def mark_success(self, address: str, tx_hash: str, now: str = None):
        record = self._pending_record(address)
        record.status = SUCCESS
        record.tx_hash = tx_hash
        record.error = None
        record.timestamp = now or utc_now()

    def mark_failed(self, address: str, error: str, tx_hash: str = None, now: str = None):
        record = self._pending_record(address)
        record.status = FAILED
        record.tx_hash = tx_hash
        record.error = error
        record.timestamp = now or utc_now()

    def requeue_failed(self) -> int:
        """Move every failed record back to pending. Only called on explicit operator request."""
        failed = self.failed()
        for record in failed:
            record.status = PENDING
            record.error = None
            record.tx_hash = None
            record.timestamp = None
        return len(failed)

    def _pending_record(self, address: str) -> TransferRecord:
        record = self.transfers[address]
        if record.status != PENDING:
            raise ValueError(f'{address} is already {record.status}')
        return record

    def to_dict(self) -> dict:
        return {
            'startedAt': self.started_at,
            'lastUpdated': self.last_updated,
            'totalAllocations': self.total_allocations,
            'completedCount': self.completed_count,
            'failedCount': self.failed_count,
            'pendingCount': self.pending_count,
            'transfers': {addr: t.to_dict() for addr, t in self.transfers.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TransferState':
        transfers = {}
        for address, record in data['transfers'].items():
            transfers[address.lower()] = TransferRecord.from_dict(record)
        return cls(started_at=data['startedAt'], last_updated=data['lastUpdated'], transfers=transfers)

    def to_log(self, completed_at: str) -> dict:
        return {
            'summary': {
                'startedAt': self.started_at,
                'completedAt': completed_at,
                'totalAllocations': self.total_allocations,
                'completed': self.completed_count,
                'failed': self.failed_count,
                'pending': self.pending_count,
            },
            'transfers': [t.to_dict() for t in self.transfers.values()],
        }


class TransferStateStore:
    """Reads and atomically rewrites transfer-state.json"""

    def __init__(self, path):
        self.path = path

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def load(self) -> TransferState:
        if not self.exists():
            raise StateLoadFailure(f'No saved transfer state at {self.path}')
        try:
            with open(self.path, 'r') as f:
                return TransferState.from_dict(json.load(f))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise StateLoadFailure(f'Could not parse transfer state {self.path}: {e}') from e

    def save(self, state: TransferState, now: str = None):
        state.last_updated = now or utc_now()
        write_json(self.path, state.to_dict())
