"""
Seeds -> ROOTS allocation calculator.

Converts a Seeds snapshot into proportional ROOTS amounts and splits the
recipients into direct transfers (Privy embedded wallets) and Merkle claims
(everyone else).
"""
import os
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from config import Config
from distribution.exceptions import DuplicateAddress, EmptySnapshot, MissingInputError
from distribution.utils import format_units, load_json

BREAKDOWN_FIELDS = ('purchases', 'sales', 'referrals', 'milestones', 'recruitments')


@dataclass(frozen=True)
class SnapshotRecord:
    address: str
    total: int
    purchases: int = 0
    sales: int = 0
    referrals: int = 0
    milestones: int = 0
    recruitments: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> 'SnapshotRecord':
        # Subgraph rows key the address as `user`
        address = data.get('user') or data.get('address')
        if not address:
            raise ValueError(f"Snapshot row has no address: {data}")
        return cls(
            address=address.lower(),
            total=int(data['total']),
            **{k: int(data.get(k) or 0) for k in BREAKDOWN_FIELDS},
        )

    def to_dict(self) -> dict:
        out = {'user': self.address, 'total': str(self.total)}
        out.update({k: str(getattr(self, k)) for k in BREAKDOWN_FIELDS})
        return out


@dataclass(frozen=True)
class Allocation:
    address: str
    seeds_earned: int
    roots_amount: int

    def to_dict(self) -> dict:
        return {
            'address': self.address,
            'seedsEarned': str(self.seeds_earned),
            'seedsEarnedFormatted': format_units(self.seeds_earned, Config.SEEDS_DECIMALS),
            'rootsAmount': str(self.roots_amount),
            'rootsAmountFormatted': format_units(self.roots_amount, Config.ROOTS_DECIMALS),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Allocation':
        return cls(
            address=data['address'].lower(),
            seeds_earned=int(data.get('seedsEarned', 0)),
            roots_amount=int(data['rootsAmount']),
        )


@dataclass
class PartitionTotals:
    count: int = 0
    total_seeds: int = 0
    total_roots: int = 0

    def add(self, allocation: Allocation):
        self.count += 1
        self.total_seeds += allocation.seeds_earned
        self.total_roots += allocation.roots_amount

    def to_dict(self) -> dict:
        return {
            'count': self.count,
            'totalSeeds': str(self.total_seeds),
            'totalRoots': str(self.total_roots),
        }


@dataclass
class AllocationResult:
    direct_transfers: List[Allocation]
    proof_claims: List[Allocation]
    total_seeds: int
    total_roots: int
    direct_totals: PartitionTotals = field(default_factory=PartitionTotals)
    claim_totals: PartitionTotals = field(default_factory=PartitionTotals)

    @property
    def allocated(self) -> int:
        return self.direct_totals.total_roots + self.claim_totals.total_roots

    @property
    def dust(self) -> int:
        return self.total_roots - self.allocated

    @property
    def conversion_ratio(self) -> float:
        # Informational only, amounts never go through floats
        return self.total_roots / self.total_seeds

    def summary(self, timestamp: str, source: str) -> dict:
        return {
            'timestamp': timestamp,
            'subgraphUrl': source,
            'totalSeedsEarned': str(self.total_seeds),
            'totalRootsAllocated': str(self.total_roots),
            'conversionRatio': str(self.conversion_ratio),
            'totalEarners': self.direct_totals.count + self.claim_totals.count,
            'privyUsers': self.direct_totals.to_dict(),
            'externalUsers': self.claim_totals.to_dict(),
            'dust': str(self.dust),
        }


def calculate_allocations(
    records: Iterable[SnapshotRecord],
    exclusion_set: Optional[Set[str]],
    total_roots: int,
) -> AllocationResult:
    """
    Calculate ROOTS allocations and separate by wallet type.

    roots = seeds * total_roots // total_seeds. The floor remainder is left
    undistributed. Addresses whose share floors to zero are dropped.

    Args:
        records: Snapshot rows, one per earner
        exclusion_set: Addresses paid by direct transfer (case-insensitive)
        total_roots: Token pool in base units

    Raises:
        EmptySnapshot: when the snapshot holds no points
        DuplicateAddress: when two rows share an address (case-insensitive)
    """
    if total_roots <= 0:
        raise ValueError(f"Token pool must be positive, got {total_roots}")

    records = list(records)
    check_unique_addresses(r.address for r in records)
    total_seeds = sum(r.total for r in records)
    if total_seeds == 0:
        raise EmptySnapshot('No Seeds found in snapshot')

    excluded = {a.lower() for a in (exclusion_set or ())}
    result = AllocationResult(
        direct_transfers=[], proof_claims=[], total_seeds=total_seeds, total_roots=total_roots
    )

    for record in records:
        roots = (record.total * total_roots) // total_seeds
        if roots == 0:
            continue

        allocation = Allocation(record.address.lower(), record.total, roots)
        if allocation.address in excluded:
            result.direct_transfers.append(allocation)
            result.direct_totals.add(allocation)
        else:
            result.proof_claims.append(allocation)
            result.claim_totals.add(allocation)

    return result


def check_unique_addresses(addresses: Iterable[str]):
    counts = Counter(a.lower() for a in addresses)
    duplicates = [a for a, n in counts.items() if n > 1]
    if duplicates:
        raise DuplicateAddress(duplicates)


def load_snapshot(path) -> List[SnapshotRecord]:
    """Load a saved snapshot: either a list of rows or an object with a `balances` list"""
    data = load_json(path)
    rows = data['balances'] if isinstance(data, dict) else data
    return [SnapshotRecord.from_dict(row) for row in rows]


def load_exclusion_set(path) -> Optional[Set[str]]:
    """Returns the lowercase address set, or None when the file doesn't exist"""
    if not os.path.exists(path):
        return None
    return {address.lower() for address in load_json(path)}


def load_allocations(path) -> List[Allocation]:
    if not os.path.exists(path):
        raise MissingInputError(f"{path} not found. Run calculate_allocations first.")
    allocations = [Allocation.from_dict(row) for row in load_json(path)]
    check_unique_addresses(a.address for a in allocations)
    return allocations


def allocations_to_json(allocations: Iterable[Allocation]) -> List[Dict[str, str]]:
    return [a.to_dict() for a in allocations]
