import json
import logging
from datetime import timedelta
from typing import Any, Iterable

import jwt
from jwt.algorithms import RSAAlgorithm

from .builder import DEFAULT_TIME_TO_LIVE, JwksClientBuilder
from .cache import Cache, Clock
from .errors import MissingKid, TokenDecodeError
from .keyset import JsonWebKey, JsonWebKeySet
from .source import JwksSource

logger = logging.getLogger('jwks_cache.client')

# Used when the key does not declare its own alg.
DEFAULT_ALGORITHM = 'RS256'


class JwksClient:
    """Looks up verification keys by kid and verifies tokens with them.

    Safe to share between threads; keys are fetched from ``source`` on
    demand and cached for ``time_to_live``.
    """

    def __init__(self, source: JwksSource, time_to_live: timedelta = DEFAULT_TIME_TO_LIVE,
                 clock: Clock | None = None):
        self.source = source
        self.cache = Cache(time_to_live, clock=clock)

    @staticmethod
    def builder() -> JwksClientBuilder:
        return JwksClientBuilder()

    def get(self, key_id: str) -> JsonWebKey:
        """Return the key for ``key_id``, fetching the key set if needed.

        Raises KeyNotFound if the key is not in the key set after a refresh.
        """
        return self.cache.get_or_refresh(key_id, self.source.fetch_keys)

    def get_opt(self, key_id: str) -> JsonWebKey | None:
        return self.get(key_id)

    def keys(self) -> JsonWebKeySet:
        return self.cache.get_key_set(self.source.fetch_keys)

    def decode(self, token: str, audience: Iterable[str] = ()) -> dict[str, Any]:
        """Verify ``token`` against the key named in its header and return its claims.

        An empty ``audience`` disables audience validation. Only RSA keys can
        be used; EC keys raise UnsupportedKeyType.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as e:
            raise TokenDecodeError(f'Invalid token header: {e}') from e

        kid = header.get('kid')
        if not kid:
            raise MissingKid()

        key = self.get(kid)
        # TODO: verify EC keys once ES* tokens need to be accepted
        rsa_key = key.as_rsa_public_key()
        algorithm = key.algorithm or DEFAULT_ALGORITHM
        audience = list(audience)

        try:
            public_key = RSAAlgorithm.from_jwk(json.dumps(rsa_key.to_dict()))
            claims = jwt.decode(
                token,
                public_key,
                algorithms=[algorithm],
                audience=audience or None,
                options={'verify_aud': bool(audience), 'require': ['exp']},
            )
        except (jwt.PyJWTError, ValueError) as e:
            # ValueError: key material rejected by cryptography
            logger.debug('jwt_decode_failed', extra={'kid': kid, 'error': str(e)})
            raise TokenDecodeError(f'Token decoding error: {e}') from e
        return claims
