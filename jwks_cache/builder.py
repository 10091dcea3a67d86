from datetime import timedelta

from .cache import Clock

DEFAULT_TIME_TO_LIVE = timedelta(hours=24)


class JwksClientBuilder:
    def __init__(self):
        self._time_to_live = DEFAULT_TIME_TO_LIVE
        self._clock = None

    def time_to_live(self, ttl: timedelta) -> 'JwksClientBuilder':
        if ttl < timedelta(0):
            raise ValueError('time_to_live must not be negative')
        self._time_to_live = ttl
        return self

    def clock(self, clock: Clock) -> 'JwksClientBuilder':
        """Millisecond clock used for expiry checks. Monotonic by default."""
        self._clock = clock
        return self

    def build(self, source):
        from .client import JwksClient
        return JwksClient(source, time_to_live=self._time_to_live, clock=self._clock)
