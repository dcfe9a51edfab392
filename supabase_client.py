"""
Thin client for the Supabase (PostgREST) REST API.

Filters are passed through as query parameters, e.g. ``{'owner_id': eq(42)}``
or ``{'reserved_by': IS_NULL}``.
"""

import logging

import requests

logger = logging.getLogger(__name__)

IS_NULL = 'is.null'


def eq(value):
    return f"eq.{value}"


class StoreError(Exception):
    """The data store call failed or returned a non-2xx status."""


class SupabaseClient:
    def __init__(self, url, key, session=None):
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self.session = session or requests.Session()
        self.headers = {
            'apikey': key,
            'Authorization': f'Bearer {key}',
            'Content-Type': 'application/json',
        }

    def select(self, table, filters=None):
        return self._request('GET', table, filters=filters)

    def insert(self, table, row):
        return self._request('POST', table, body=row, prefer='return=representation')

    def update(self, table, values, filters):
        return self._request('PATCH', table, body=values, filters=filters, prefer='return=representation')

    def _request(self, method, table, body=None, filters=None, prefer=None):
        headers = dict(self.headers)
        if prefer:
            headers['Prefer'] = prefer

        try:
            response = self.session.request(
                method,
                f"{self.base_url}/{table}",
                params=filters or {},
                json=body,
                headers=headers,
            )
            response.raise_for_status()
            return response.json() if response.content else []
        except requests.HTTPError as e:
            logger.error(f"Supabase error on {method} {table}: {e.response.status_code} {e.response.text[:200]}")
            raise StoreError(f"{method} {table} failed with HTTP {e.response.status_code}") from e
        except ValueError as e:
            logger.error(f"Supabase returned a non-JSON body on {method} {table}: {e}")
            raise StoreError(f"{method} {table} returned an invalid body") from e
        except requests.RequestException as e:
            logger.error(f"Supabase request error on {method} {table}: {e}")
            raise StoreError(f"{method} {table} failed") from e
