import jwt


class JwksClientError(Exception):
    """Base for every error raised by the client.

    Errors raised while handling another exception chain it with
    ``raise ... from``; ``cause`` exposes the original for inspection.
    """

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__


class FetchError(JwksClientError):
    """The key set could not be fetched from its source."""


class TransportError(FetchError):
    pass


class HttpStatusError(FetchError):
    def __init__(self, status_code: int, url: str):
        super().__init__(f'Failed fetching the key set: HTTP {status_code} from {url}')
        self.status_code = status_code
        self.url = url


class KeySetParseError(FetchError):
    pass


class KeyNotFound(JwksClientError):
    def __init__(self, key_id: str):
        super().__init__(f'Cannot find key for key_id: {key_id}')
        self.key_id = key_id


class MissingKid(JwksClientError):
    def __init__(self):
        super().__init__('Missing kid value in the JWT token header')


class UnsupportedKeyType(JwksClientError):
    def __init__(self, key_type: str):
        super().__init__(f'Unsupported key type for this operation: {key_type}')
        self.key_type = key_type


class TokenDecodeError(JwksClientError):
    """Malformed token, bad signature, expired token or audience mismatch."""

    @property
    def is_expired_signature(self) -> bool:
        return isinstance(self.cause, jwt.ExpiredSignatureError)

    @property
    def is_invalid_audience(self) -> bool:
        return isinstance(self.cause, jwt.InvalidAudienceError)

    @property
    def is_invalid_signature(self) -> bool:
        return isinstance(self.cause, jwt.InvalidSignatureError)
