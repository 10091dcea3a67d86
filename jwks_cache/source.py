import logging
from typing import Protocol
from urllib.parse import urlparse

import requests

from .errors import FetchError, HttpStatusError, KeySetParseError, TransportError
from .keyset import JsonWebKeySet

logger = logging.getLogger('jwks_cache.source')

DEFAULT_CONNECT_TIMEOUT = 20.0  # seconds
DEFAULT_TIMEOUT = 10.0  # seconds


class JwksSource(Protocol):
    def fetch_keys(self) -> JsonWebKeySet:
        """Return the current key set or raise a FetchError."""
        ...


class WebSource:
    """Fetches a key set with a single HTTP GET. No retries."""

    def __init__(self, url: str, connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
                 timeout: float = DEFAULT_TIMEOUT, session: requests.Session | None = None):
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f'JWKS URL must be absolute: {url!r}')
        self.url = url
        self.connect_timeout = connect_timeout
        self.timeout = timeout
        self._session = session or requests.Session()

    @staticmethod
    def builder() -> 'WebSourceBuilder':
        return WebSourceBuilder()

    def fetch_keys(self) -> JsonWebKeySet:
        try:
            resp = self._session.get(self.url, timeout=(self.connect_timeout, self.timeout),
                                     headers={'Accept': 'application/json'})
        except requests.RequestException as e:
            raise TransportError(f'Failed fetching the key set from {self.url}: {e}') from e
        if not 200 <= resp.status_code < 300:
            raise HttpStatusError(resp.status_code, self.url)
        try:
            document = resp.json()
        except ValueError as e:
            raise KeySetParseError(f'Key set from {self.url} is not valid JSON: {e}') from e
        keys = JsonWebKeySet.from_dict(document)
        logger.debug('jwks_fetched', extra={'url': self.url, 'key_count': len(keys)})
        return keys


class WebSourceBuilder:
    def __init__(self):
        self._connect_timeout = DEFAULT_CONNECT_TIMEOUT
        self._timeout = DEFAULT_TIMEOUT
        self._session = None

    def connect_timeout(self, seconds: float) -> 'WebSourceBuilder':
        self._connect_timeout = seconds
        return self

    def timeout(self, seconds: float) -> 'WebSourceBuilder':
        self._timeout = seconds
        return self

    def session(self, session: requests.Session) -> 'WebSourceBuilder':
        self._session = session
        return self

    def build(self, url: str) -> WebSource:
        return WebSource(url, connect_timeout=self._connect_timeout, timeout=self._timeout,
                         session=self._session)


class StaticSource:
    """Returns a preconfigured key set, or raises a preconfigured error."""

    def __init__(self, keys: JsonWebKeySet | None = None, error: FetchError | None = None):
        self.keys = keys if keys is not None else JsonWebKeySet.empty()
        self.error = error
        self.calls = 0

    def set_keys(self, keys: JsonWebKeySet):
        self.keys = keys
        self.error = None

    def set_error(self, error: FetchError):
        self.error = error

    def fetch_keys(self) -> JsonWebKeySet:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.keys
