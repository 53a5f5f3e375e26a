"""
Export Privy embedded wallet addresses.

These are the recipients paid by direct transfer; everyone else claims
through the Merkle distributor.

Usage:
    roots-fetch-privy [--data-dir DIR]

Environment:
    PRIVY_APP_ID, PRIVY_APP_SECRET

Output:
    privy-users.json, privy-wallets.json, privy-wallets.txt
"""
import sys

import click
import requests

from config import Config
from distribution.privy import extract_embedded_wallets, fetch_privy_users
from distribution.utils import write_json, write_text


@click.command()
@click.option('--data-dir', default=Config.DATA_DIR, show_default=True, help='Distribution data directory')
@click.option('--app-id', default=Config.PRIVY_APP_ID, help='Privy app ID')
@click.option('--app-secret', default=Config.PRIVY_APP_SECRET, help='Privy app secret (management API)')
def main(data_dir, app_id, app_secret):
    click.echo(click.style('=== Privy Users Fetcher ===\n', fg='cyan', bold=True))

    if not app_id:
        click.secho('Error: PRIVY_APP_ID environment variable is required', fg='red')
        sys.exit(1)
    if not app_secret:
        click.secho('Error: PRIVY_APP_SECRET environment variable is required', fg='red')
        click.echo('Get your app secret from the Privy Dashboard')
        sys.exit(1)

    try:
        users = fetch_privy_users(Config.PRIVY_API_URL, app_id, app_secret, page_size=Config.PRIVY_PAGE_SIZE)
    except requests.RequestException as e:
        click.secho(f'Error fetching Privy users: {e}', fg='red')
        sys.exit(1)

    if not users:
        click.echo('No users found in Privy.')
        return

    click.echo('\nExtracting embedded wallet addresses...')
    wallet_users = extract_embedded_wallets(users)
    wallets = [u['walletAddress'] for u in wallet_users]

    click.echo('\nSummary:')
    click.echo(f'  Total Privy users: {len(users)}')
    click.echo(f'  Users with embedded wallets: {len(wallet_users)}')
    click.echo(f'  Users without embedded wallets: {len(users) - len(wallet_users)}')

    users_path = Config.get_data_file(Config.PRIVY_USERS_FILE, data_dir)
    wallets_path = Config.get_data_file(Config.PRIVY_WALLETS_FILE, data_dir)
    txt_path = Config.get_data_file(Config.PRIVY_WALLETS_TXT_FILE, data_dir)

    write_json(users_path, wallet_users)
    write_json(wallets_path, wallets)
    write_text(txt_path, '\n'.join(wallets))

    click.echo(f'\n✓ Saved: {users_path}')
    click.echo(f'✓ Saved: {wallets_path}')
    click.echo(f'✓ Saved: {txt_path}')


if __name__ == '__main__':
    main()
