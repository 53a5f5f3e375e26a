"""
Errors raised by the distribution pipeline.

Everything except TransferFailure aborts the current run; scripts catch
DistributionError at the command boundary and exit nonzero.
"""


class DistributionError(Exception):
    pass


class EmptySnapshot(DistributionError):
    """Snapshot has no points to convert (total is zero)."""


class SnapshotFetchError(DistributionError):
    """Subgraph returned errors or could not be reached."""


class MissingInputError(DistributionError):
    """A required input file from an earlier stage is missing."""


class InvalidAddress(DistributionError):
    def __init__(self, addresses):
        self.addresses = list(addresses)
        super().__init__(f"{len(self.addresses)} malformed address(es): {', '.join(self.addresses)}")


class DuplicateAddress(DistributionError):
    def __init__(self, addresses):
        self.addresses = sorted(addresses)
        super().__init__(f"{len(self.addresses)} address(es) appear more than once: {', '.join(self.addresses)}")


class LeafNotFound(DistributionError):
    """Requested leaf is not part of the tree."""


class ProofVerificationError(DistributionError):
    """A generated proof does not verify against the tree root."""


class StateLoadFailure(DistributionError):
    """Persisted transfer state is missing or unreadable on --resume."""


class InsufficientFunds(DistributionError):
    def __init__(self, needed: int, available: int):
        self.needed = needed
        self.available = available
        self.shortfall = needed - available
        super().__init__(
            f"Insufficient balance: need {needed}, have {available} (short {self.shortfall})"
        )


class TransferFailure(DistributionError):
    """A single transfer reverted or could not be submitted. Recorded, not fatal."""

    def __init__(self, address: str, message: str):
        self.address = address
        self.message = message
        super().__init__(f"{address}: {message}")
