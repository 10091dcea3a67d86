from .builder import JwksClientBuilder
from .client import JwksClient
from .errors import (
    FetchError,
    HttpStatusError,
    JwksClientError,
    KeyNotFound,
    KeySetParseError,
    MissingKid,
    TokenDecodeError,
    TransportError,
    UnsupportedKeyType,
)
from .keyset import EcPublicJwk, JsonWebKey, JsonWebKeySet, RsaPublicJwk
from .source import JwksSource, StaticSource, WebSource
