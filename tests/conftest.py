import json
import time

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from jwks_cache.keyset import JsonWebKeySet

KID = 'go14h7EBWUvPRncjniI_2'


class FakeClock:
    def __init__(self, now: int = 1_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(scope='session')
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def rsa_jwk(private_key, kid=KID, **extra):
    jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    jwk.update({'kid': kid, 'alg': 'RS256', 'use': 'sig'})
    jwk.update(extra)
    return jwk


def key_set(*jwks) -> JsonWebKeySet:
    return JsonWebKeySet.from_dict({'keys': list(jwks)})


def make_token(private_key, kid=KID, **claims):
    payload = {'iss': 'me', 'aud': 'jwks-cache', 'exp': int(time.time()) + 3600}
    payload.update(claims)
    headers = {'kid': kid} if kid is not None else {}
    return jwt.encode(payload, private_key, algorithm='RS256', headers=headers)
