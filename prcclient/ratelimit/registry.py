"""Registry of route pacers.

One :class:`RoutePacer` per normalized route, created on first use and kept
for the lifetime of the registry. Routes are bounded by the API surface, so
nothing is ever removed.
"""

from typing import Callable, Dict, Iterator, Optional
from urllib.parse import urlsplit

from prcclient.core.config import PacingConfig
from prcclient.ratelimit.pacer import RoutePacer


def normalize_route(path: str) -> str:
    """Strip scheme, host, query and fragment from a path or URL.

    >>> normalize_route("https://api.policeroleplay.community/v1/server?x=1")
    '/v1/server'
    >>> normalize_route("v1/server")
    '/v1/server'
    """
    route = urlsplit(path.strip()).path or "/"
    if not route.startswith("/"):
        route = "/" + route
    return route


class PacerRegistry:
    """Owns the pacers for one client.

    Args:
        config: Pacing parameters shared by every pacer.
        clock: Optional monotonic millisecond clock passed to each pacer.
        wall_clock: Optional Unix-seconds clock passed to each pacer.
    """

    def __init__(
        self,
        config: Optional[PacingConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        wall_clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or PacingConfig()
        self._clock = clock
        self._wall_clock = wall_clock
        self._pacers: Dict[str, RoutePacer] = {}

    def for_route(self, path: str) -> RoutePacer:
        """Return the pacer for ``path``, creating it on first use."""
        route = normalize_route(path)
        pacer = self._pacers.get(route)
        if pacer is None:
            pacer = RoutePacer(route, self.config, clock=self._clock, wall_clock=self._wall_clock)
            self._pacers[route] = pacer
        return pacer

    @property
    def routes(self) -> list[str]:
        return list(self._pacers)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_route(path) in self._pacers

    def __len__(self) -> int:
        return len(self._pacers)

    def __iter__(self) -> Iterator[RoutePacer]:
        return iter(list(self._pacers.values()))

    async def aclose(self) -> None:
        """Stop every pacer's pump and timers."""
        for pacer in self:
            await pacer.aclose()
