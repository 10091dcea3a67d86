import pytest

from jwks_cache.errors import KeyNotFound, KeySetParseError, UnsupportedKeyType
from jwks_cache.keyset import EcPublicJwk, JsonWebKeySet, RsaPublicJwk

RSA_JWKS = '''
{
  "keys": [
    {
      "alg": "RS256",
      "kty": "RSA",
      "use": "sig",
      "n": "qjNzuylUQpyU9qX3_bMGpiRUO1G_xKbB0fyqQy0naETviHIqPS2D3lGcfK9XIFLZOq1O7K2KRXEE5nSDTf-S9qc0nPRkS38CXK4DBKPTBXtjufLK3e9lN9dh8Ehazx8xNmdCc6aocVKKlamOJv7Qr_UgmoFllq7W-UQ0YK2qfN8WgqxOQUPrss-40RWslCAKpjZmMOpIpRXQLGmR-GGZUdQZXnTUhnhRyDz5VcXHH--o1PkH_F0rlabMxgNFfsCIWKWbGy8G89bNrvoeVKq15QPCeaGBV13f2Do6XHGt0l2M3eYz85wyz1pISvjQuR4PrtJr6VsuHz3Puh_KgY8GqQ",
      "e": "AQAB",
      "kid": "go14h7EBWUvPRncjniI_2",
      "x5t": "dfrlEXMuWrPaCbmIrpXaiwNjFf4",
      "x5c": ["MIIDDTCCAfWgAwIBAgIJWUyDuZMhkTwpMA0GCSqGSIb3DQEBCwUAMCQxIjAgBgNVBAMTGWRldi1mOHJkejF3dy5ldS5hdXRoMC5jb20w"]
    }
  ]
}
'''

EC_JWKS = {
    'keys': [
        {
            'alg': 'ES256',
            'kty': 'EC',
            'crv': 'P-256',
            'x': 'LEBfQpwTDXJtLFiPcnYvGv-WaFXZGBnFP_yGhLL9MGc',
            'y': 'a1Or3ovkpH12b0o3ruZUtm_z8bg3xQtHXi-uPC7UJT0',
            'kid': 'test-key',
        }
    ]
}


def test_parse_rsa_key_set():
    keys = JsonWebKeySet.from_json(RSA_JWKS)
    key = keys.get_key('go14h7EBWUvPRncjniI_2')
    assert isinstance(key, RsaPublicJwk)
    assert key.algorithm == 'RS256'
    assert key.use == 'sig'
    assert key.exponent == 'AQAB'
    assert key.x5t == 'dfrlEXMuWrPaCbmIrpXaiwNjFf4'
    assert len(key.certificates) == 1
    assert key.as_rsa_public_key() is key
    with pytest.raises(UnsupportedKeyType):
        key.as_ec_public_key()


def test_parse_ec_key_set():
    key = JsonWebKeySet.from_dict(EC_JWKS).get_key('test-key')
    assert isinstance(key, EcPublicJwk)
    assert key.algorithm == 'ES256'
    ec = key.as_ec_public_key()
    assert ec.x == 'LEBfQpwTDXJtLFiPcnYvGv-WaFXZGBnFP_yGhLL9MGc'
    assert ec.y == 'a1Or3ovkpH12b0o3ruZUtm_z8bg3xQtHXi-uPC7UJT0'
    with pytest.raises(UnsupportedKeyType) as exc:
        key.as_rsa_public_key()
    assert exc.value.key_type == 'EC'


def test_empty_key_set_has_no_keys():
    keys = JsonWebKeySet.empty()
    assert len(keys) == 0
    with pytest.raises(KeyNotFound) as exc:
        keys.get_key('anything')
    assert exc.value.key_id == 'anything'


def test_take_key_matches_get_key():
    keys = JsonWebKeySet.from_json(RSA_JWKS)
    assert keys.take_key('go14h7EBWUvPRncjniI_2') == keys.get_key('go14h7EBWUvPRncjniI_2')
    with pytest.raises(KeyNotFound):
        keys.take_key('other')


def test_duplicate_kid_first_match_wins():
    doc = {'keys': [
        {'kty': 'RSA', 'kid': 'dup', 'n': 'first', 'e': 'AQAB'},
        {'kty': 'RSA', 'kid': 'dup', 'n': 'second', 'e': 'AQAB'},
    ]}
    assert JsonWebKeySet.from_dict(doc).get_key('dup').modulus == 'first'


def test_serialized_key_set_parses_back_to_same_keys():
    original = JsonWebKeySet.from_dict({'keys': JsonWebKeySet.from_json(RSA_JWKS).to_dict()['keys'] + EC_JWKS['keys']})
    parsed = JsonWebKeySet.from_dict(original.to_dict())
    assert parsed == original
    for before, after in zip(original, parsed):
        assert (before.key_id, before.algorithm) == (after.key_id, after.algorithm)


@pytest.mark.parametrize('doc', [
    [],
    {'no_keys': []},
    {'keys': [{'kty': 'oct', 'kid': 'a', 'k': 'secret'}]},
    {'keys': [{'kty': 'RSA', 'kid': 'a', 'e': 'AQAB'}]},
    {'keys': [{'kty': 'EC', 'crv': 'P-256', 'x': 'x', 'y': 'y'}]},
    {'keys': [{'kty': 'RSA', 'kid': 'a', 'n': 'n', 'e': 'AQAB', 'use': 'wrap'}]},
    {'keys': ['not an object']},
])
def test_malformed_documents_are_rejected(doc):
    with pytest.raises(KeySetParseError):
        JsonWebKeySet.from_dict(doc)


def test_invalid_json_is_rejected():
    with pytest.raises(KeySetParseError) as exc:
        JsonWebKeySet.from_json('{"keys": [')
    assert isinstance(exc.value.cause, ValueError)
