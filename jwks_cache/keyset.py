"""JSON Web Key Set model.

Only public keys are modelled: RSA (``n``/``e``) and EC (``crv``/``x``/``y``).
See RFC 7517 for the member names.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

from .errors import KeyNotFound, KeySetParseError, UnsupportedKeyType

KEY_USES = {'sig', 'enc'}


def _require(data: dict, name: str) -> str:
    value = data.get(name)
    if not isinstance(value, str) or not value:
        raise KeySetParseError(f'JWK is missing required member {name!r}')
    return value


def _optional_str(data: dict, name: str) -> str | None:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise KeySetParseError(f'JWK member {name!r} must be a string')
    return value


def _common_members(data: dict) -> dict[str, Any]:
    use = _optional_str(data, 'use')
    if use is not None and use not in KEY_USES:
        raise KeySetParseError(f'Unknown JWK use: {use!r}')
    x5c = data.get('x5c')
    if x5c is not None and (not isinstance(x5c, list) or not all(isinstance(c, str) for c in x5c)):
        raise KeySetParseError("JWK member 'x5c' must be a list of strings")
    return {
        'key_id': _require(data, 'kid'),
        'algorithm': _optional_str(data, 'alg'),
        'use': use,
        'x5t': _optional_str(data, 'x5t'),
        'certificates': tuple(x5c) if x5c is not None else None,
    }


def _put_common(out: dict, key) -> dict:
    if key.algorithm is not None:
        out['alg'] = key.algorithm
    if key.use is not None:
        out['use'] = key.use
    if key.x5t is not None:
        out['x5t'] = key.x5t
    if key.certificates is not None:
        out['x5c'] = list(key.certificates)
    return out


@dataclass(frozen=True)
class RsaPublicJwk:
    key_id: str
    modulus: str
    exponent: str
    algorithm: str | None = None
    use: str | None = None
    x5t: str | None = None
    # X.509 certificate chain
    certificates: tuple[str, ...] | None = None

    key_type = 'RSA'

    @classmethod
    def from_dict(cls, data: dict) -> 'RsaPublicJwk':
        return cls(modulus=_require(data, 'n'), exponent=_require(data, 'e'), **_common_members(data))

    def to_dict(self) -> dict[str, Any]:
        out = {'kty': 'RSA', 'kid': self.key_id, 'n': self.modulus, 'e': self.exponent}
        return _put_common(out, self)

    def as_rsa_public_key(self) -> 'RsaPublicJwk':
        return self

    def as_ec_public_key(self):
        raise UnsupportedKeyType(self.key_type)


@dataclass(frozen=True)
class EcPublicJwk:
    key_id: str
    curve: str
    x: str
    y: str
    algorithm: str | None = None
    use: str | None = None
    x5t: str | None = None
    certificates: tuple[str, ...] | None = None

    key_type = 'EC'

    @classmethod
    def from_dict(cls, data: dict) -> 'EcPublicJwk':
        return cls(curve=_require(data, 'crv'), x=_require(data, 'x'), y=_require(data, 'y'),
                   **_common_members(data))

    def to_dict(self) -> dict[str, Any]:
        out = {'kty': 'EC', 'kid': self.key_id, 'crv': self.curve, 'x': self.x, 'y': self.y}
        return _put_common(out, self)

    def as_rsa_public_key(self):
        raise UnsupportedKeyType(self.key_type)

    def as_ec_public_key(self) -> 'EcPublicJwk':
        return self


JsonWebKey = Union[RsaPublicJwk, EcPublicJwk]

_KEY_TYPES = {'RSA': RsaPublicJwk, 'EC': EcPublicJwk}


def parse_key(data: Any) -> JsonWebKey:
    if not isinstance(data, dict):
        raise KeySetParseError('JWK must be a JSON object')
    kty = data.get('kty')
    key_cls = _KEY_TYPES.get(kty)
    if key_cls is None:
        raise KeySetParseError(f'Unsupported JWK kty: {kty!r}')
    return key_cls.from_dict(data)


@dataclass(frozen=True)
class JsonWebKeySet:
    keys: tuple[JsonWebKey, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> 'JsonWebKeySet':
        return cls()

    @classmethod
    def from_keys(cls, keys) -> 'JsonWebKeySet':
        return cls(tuple(keys))

    @classmethod
    def from_dict(cls, document: Any) -> 'JsonWebKeySet':
        if not isinstance(document, dict):
            raise KeySetParseError('JWKS document must be a JSON object')
        keys = document.get('keys')
        if not isinstance(keys, list):
            raise KeySetParseError("JWKS document has no 'keys' list")
        return cls(tuple(parse_key(k) for k in keys))

    @classmethod
    def from_json(cls, text: str | bytes) -> 'JsonWebKeySet':
        try:
            document = json.loads(text)
        except ValueError as e:
            raise KeySetParseError(f'JWKS document is not valid JSON: {e}') from e
        return cls.from_dict(document)

    def to_dict(self) -> dict[str, Any]:
        return {'keys': [k.to_dict() for k in self.keys]}

    def get_key(self, key_id: str) -> JsonWebKey:
        # Duplicate kids are not forbidden by RFC 7517; the first match wins.
        for key in self.keys:
            if key.key_id == key_id:
                return key
        raise KeyNotFound(key_id)

    def take_key(self, key_id: str) -> JsonWebKey:
        return self.get_key(key_id)

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[JsonWebKey]:
        return iter(self.keys)
