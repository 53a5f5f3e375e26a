import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class ContractAddresses:
    ROOTS_TOKEN = os.getenv(
        'ROOTS_TOKEN_ADDRESS',
        os.getenv('NEXT_PUBLIC_ROOTS_TOKEN_ADDRESS', '0x21952Cb029da00902EDA5c83a01825Ae2E645e03')
    )


class Config:
    # Directory structure
    DATA_DIR = os.getenv('DISTRIBUTION_DATA_DIR', 'distribution-data')

    # Exclusion set (Privy embedded wallets)
    PRIVY_USERS_FILE = 'privy-users.json'
    PRIVY_WALLETS_FILE = 'privy-wallets.json'
    PRIVY_WALLETS_TXT_FILE = 'privy-wallets.txt'

    # Allocation files
    SNAPSHOT_FILE = 'seeds-snapshot.json'
    DIRECT_ALLOCATIONS_FILE = 'privy-allocations.json'
    CLAIM_ALLOCATIONS_FILE = 'external-allocations.json'
    SUMMARY_FILE = 'allocation-summary.json'

    # Merkle output files
    MERKLE_ROOT_FILE = 'merkle-root.txt'
    PROOFS_FILE = 'proofs.json'
    MERKLE_SNAPSHOT_FILE = 'merkle-snapshot.json'

    # Transfer files
    TRANSFER_STATE_FILE = 'transfer-state.json'
    TRANSFER_LOG_FILE = 'transfer-log.json'

    # External services
    SUBGRAPH_URL = os.getenv(
        'SUBGRAPH_URL',
        os.getenv(
            'NEXT_PUBLIC_SUBGRAPH_URL',
            'https://api.studio.thegraph.com/query/1722311/localroots-subgraph/v0.0.3'
        )
    )
    PRIVY_API_URL = 'https://auth.privy.io/api/v1/users'
    PRIVY_APP_ID = os.getenv('PRIVY_APP_ID', os.getenv('NEXT_PUBLIC_PRIVY_APP_ID', ''))
    PRIVY_APP_SECRET = os.getenv('PRIVY_APP_SECRET', '')
    RPC_URL = os.getenv('RPC_URL', os.getenv('NEXT_PUBLIC_BASE_RPC_URL', 'https://sepolia.base.org'))
    TREASURY_PRIVATE_KEY = os.getenv('TREASURY_PRIVATE_KEY', os.getenv('DEPLOYER_PRIVATE_KEY', ''))
    TREASURY_ADDRESS = os.getenv('TREASURY_ADDRESS', '')

    # Token parameters
    ROOTS_DECIMALS = 18
    SEEDS_DECIMALS = 6
    # 10% of 1B ROOTS supply
    AIRDROP_ROOTS_AMOUNT = int(os.getenv('AIRDROP_ROOTS_AMOUNT', '100000000')) * 10**ROOTS_DECIMALS

    # Paging and batching
    SUBGRAPH_PAGE_SIZE = 1000
    PRIVY_PAGE_SIZE = 100
    DEFAULT_BATCH_SIZE = 50
    DEFAULT_BATCH_DELAY_MS = 1000
    TRANSFER_DELAY_MS = 100
    MIN_GAS_BALANCE = 10**16  # 0.01 ETH

    @classmethod
    def get_data_file(cls, name: str, data_dir: str = None) -> str:
        """Returns the path to a distribution data file"""
        return os.path.join(data_dir or cls.DATA_DIR, name)
