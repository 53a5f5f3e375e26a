"""
Privy user export.

Collects the embedded wallet of every Privy user. These custodial wallets
are the exclusion set: they get direct transfers instead of Merkle claims.
"""
from typing import Dict, List, Optional

import click
import requests


def fetch_privy_users(
    api_url: str,
    app_id: str,
    app_secret: str,
    page_size: int = 100,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
) -> List[dict]:
    """Fetch all users from the Privy management API, following next_cursor"""
    session = session or requests.Session()
    users = []
    cursor = None

    click.echo('Fetching users from Privy API...')

    while True:
        params = {'limit': page_size}
        if cursor:
            params['cursor'] = cursor

        response = session.get(
            api_url,
            params=params,
            auth=(app_id, app_secret),
            headers={'privy-app-id': app_id, 'Content-Type': 'application/json'},
            timeout=timeout,
        )
        if not response.ok:
            raise requests.HTTPError(
                f'Privy API error {response.status_code}: {response.text}', response=response
            )

        result = response.json()
        page = result.get('data') or []
        if not page:
            break

        users.extend(page)
        click.echo(f'  Fetched {len(users)} users...')

        cursor = result.get('next_cursor')
        if not cursor:
            break

    click.echo(f'Total users fetched: {len(users)}')
    return users


def _find_account(linked_accounts, predicate) -> Optional[Dict]:
    return next((acct for acct in linked_accounts if predicate(acct)), None)


def extract_embedded_wallets(users: List[dict]) -> List[dict]:
    """
    Keep users that have a Privy-created Ethereum embedded wallet.

    Externally connected wallets (MetaMask etc.) are ignored; those holders
    claim through the Merkle distributor.
    """
    output = []
    for user in users:
        linked = user.get('linked_accounts') or user.get('linkedAccounts') or []
        wallet = _find_account(linked, lambda a: (
            a.get('type') == 'wallet'
            and (a.get('wallet_client_type') or a.get('walletClientType')) == 'privy'
            and (a.get('chain_type') or a.get('chainType')) == 'ethereum'
            and a.get('address')
        ))
        if wallet is None:
            continue

        email = _find_account(linked, lambda a: a.get('type') == 'email' and a.get('address'))
        phone = _find_account(linked, lambda a: a.get('type') == 'phone' and a.get('number'))

        output.append({
            'userId': user.get('id'),
            'walletAddress': wallet['address'].lower(),
            'email': email['address'] if email else None,
            'phone': phone['number'] if phone else None,
            'createdAt': user.get('created_at') or user.get('createdAt'),
        })
    return output
