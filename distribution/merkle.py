from itertools import zip_longest
from typing import Dict, Iterable, List, Sequence, Tuple

from eth_abi.packed import encode_packed
from eth_utils import encode_hex, to_bytes
from web3 import Web3

from distribution.allocations import Allocation, check_unique_addresses
from distribution.exceptions import LeafNotFound, ProofVerificationError

ZERO_ROOT = b'\x00' * 32


def create_leaf(address: str, amount: int) -> bytes:
    """keccak256(abi.encodePacked(address, uint256)), as re-derived by the claim contract"""
    return Web3.keccak(encode_packed(['address', 'uint256'], [address.lower(), int(amount)]))


def ordered_pair(a: bytes, b: bytes) -> Tuple[bytes, bytes]:
    return (a, b) if a <= b else (b, a)


def combined_hash(a, b):
    if a is None:
        return b
    if b is None:
        return a
    return Web3.keccak(b"".join(ordered_pair(a, b)))


def verify_proof(leaf: bytes, proof: Sequence, root: bytes) -> bool:
    computed = leaf
    for sibling in proof:
        if isinstance(sibling, str):
            sibling = to_bytes(hexstr=sibling)
        computed = combined_hash(computed, sibling)
    return computed == root


class MerkleTree:
    def __init__(self, leaves: Iterable[bytes]):
        self.leaves = sorted(set(leaves))
        self.layers = MerkleTree.get_layers(self.leaves)

    @property
    def root(self) -> bytes:
        if not self.leaves:
            return ZERO_ROOT
        return self.layers[-1][0]

    def get_proof(self, leaf: bytes) -> List[str]:
        try:
            idx = self.leaves.index(leaf)
        except ValueError:
            raise LeafNotFound(f"Leaf {encode_hex(leaf)} not found in tree") from None
        proof = []
        for layer in self.layers:
            pair_idx = idx + 1 if idx % 2 == 0 else idx - 1
            if pair_idx < len(layer):
                proof.append(encode_hex(layer[pair_idx]))
            idx //= 2
        return proof

    @staticmethod
    def get_layers(elements):
        layers = [elements]
        while len(layers[-1]) > 1:
            layers.append(MerkleTree.get_next_layer(layers[-1]))
        return layers

    @staticmethod
    def get_next_layer(elements):
        # An odd trailing node pairs with None and is carried up unchanged
        return [
            combined_hash(a, b) for a, b in zip_longest(elements[::2], elements[1::2])
        ]


def build_distribution(allocations: Iterable[Allocation]) -> Tuple[MerkleTree, Dict[str, dict]]:
    """
    Build the tree over claim allocations and a proof for every address.

    Every proof is checked against the root before returning so a bad
    encoding never reaches the output files.

    Raises:
        DuplicateAddress: when an address appears twice
        ProofVerificationError: when a proof fails to verify

    Returns:
        Tuple of (tree, claims) where claims maps lowercase address to
        {address, seedsEarned, rootsAmount, proof}
    """
    allocations = list(allocations)
    check_unique_addresses(a.address for a in allocations)
    leaves = {a.address: create_leaf(a.address, a.roots_amount) for a in allocations}
    tree = MerkleTree(leaves.values())

    claims = {}
    for allocation in allocations:
        leaf = leaves[allocation.address]
        proof = tree.get_proof(leaf)
        if not verify_proof(leaf, proof, tree.root):
            raise ProofVerificationError(f"Proof check failed for {allocation.address}")
        claims[allocation.address] = {
            'address': allocation.address,
            'seedsEarned': str(allocation.seeds_earned),
            'rootsAmount': str(allocation.roots_amount),
            'proof': proof,
        }
    return tree, claims
