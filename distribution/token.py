from typing import Optional

from eth_account import Account
from eth_utils import encode_hex
from web3 import Web3

# ERC20 ABI (just what the transfer run needs)
ERC20_ABI = [
    {
        'name': 'transfer',
        'type': 'function',
        'stateMutability': 'nonpayable',
        'inputs': [
            {'name': 'to', 'type': 'address'},
            {'name': 'amount', 'type': 'uint256'},
        ],
        'outputs': [{'name': '', 'type': 'bool'}],
    },
    {
        'name': 'balanceOf',
        'type': 'function',
        'stateMutability': 'view',
        'inputs': [{'name': 'account', 'type': 'address'}],
        'outputs': [{'name': '', 'type': 'uint256'}],
    },
    {
        'name': 'symbol',
        'type': 'function',
        'stateMutability': 'view',
        'inputs': [],
        'outputs': [{'name': '', 'type': 'string'}],
    },
]


class Erc20Token:
    """
    Transfer primitive over an ERC20 token.

    Signs locally with the treasury key and submits raw transactions, one at
    a time. Read-only when no private key is given.
    """

    def __init__(
        self,
        rpc_url: str,
        token_address: str,
        private_key: Optional[str] = None,
        holder: Optional[str] = None,
        receipt_timeout: int = 180,
    ):
        self.web3 = Web3(Web3.HTTPProvider(rpc_url))
        self.contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(token_address), abi=ERC20_ABI
        )
        self.account = Account.from_key(private_key) if private_key else None
        if self.account is not None:
            holder = self.account.address
        self.holder = Web3.to_checksum_address(holder) if holder else None
        self.receipt_timeout = receipt_timeout

    @property
    def chain_id(self) -> int:
        return self.web3.eth.chain_id

    def symbol(self) -> str:
        return self.contract.functions.symbol().call()

    def balance_of(self, address: str) -> int:
        return self.contract.functions.balanceOf(Web3.to_checksum_address(address)).call()

    def native_balance(self, address: str) -> int:
        return self.web3.eth.get_balance(Web3.to_checksum_address(address))

    def transfer(self, to: str, amount: int) -> str:
        if self.account is None:
            raise RuntimeError('No signing key configured for transfers')
        tx = self.contract.functions.transfer(Web3.to_checksum_address(to), int(amount)).build_transaction({
            'from': self.account.address,
            'nonce': self.web3.eth.get_transaction_count(self.account.address, 'pending'),
            'chainId': self.chain_id,
        })
        signed = self.account.sign_transaction(tx)
        return encode_hex(self.web3.eth.send_raw_transaction(signed.raw_transaction))

    def wait_for_receipt(self, tx_hash: str) -> bool:
        """Blocks until mined. True when the transfer succeeded, False on revert."""
        receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        return receipt['status'] == 1
