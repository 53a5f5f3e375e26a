"""
Seeds snapshot fetcher.

Pages through `seedsBalances` on the marketplace subgraph. Any GraphQL or
transport error aborts the fetch: a truncated snapshot would silently shift
every holder's share.
"""
from typing import List, Optional

import click
import requests

from distribution.allocations import SnapshotRecord
from distribution.exceptions import SnapshotFetchError

SEEDS_BALANCES_QUERY = """{
  seedsBalances(
    first: %(first)d
    skip: %(skip)d
    orderBy: total
    orderDirection: desc
    where: { total_gt: "0" }
  ) {
    user
    total
    purchases
    sales
    referrals
    milestones
    recruitments
  }
}"""


def fetch_seeds_balances(
    url: str,
    page_size: int = 1000,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
) -> List[SnapshotRecord]:
    """
    Fetch all Seeds balances from the subgraph.

    Stops on an empty page or a page shorter than page_size.

    Raises:
        SnapshotFetchError: on HTTP failure or GraphQL errors
    """
    session = session or requests.Session()
    records = []
    skip = 0

    click.echo('Fetching Seeds balances from subgraph...')
    click.echo(f'  URL: {url}')

    while True:
        query = SEEDS_BALANCES_QUERY % {'first': page_size, 'skip': skip}
        try:
            response = session.post(url, json={'query': query}, timeout=timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            raise SnapshotFetchError(f'Subgraph request failed at skip={skip}: {e}') from e

        if body.get('errors'):
            raise SnapshotFetchError(f"GraphQL errors: {body['errors']}")

        page = (body.get('data') or {}).get('seedsBalances') or []
        if not page:
            break

        records.extend(SnapshotRecord.from_dict(row) for row in page)
        click.echo(f'  Fetched {len(records)} balances...')

        if len(page) < page_size:
            break
        skip += page_size

    click.echo(f'Total balances fetched: {len(records)}')
    return records
