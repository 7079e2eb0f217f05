"""Region filter for scraped server records.

A pure predicate over substrings of ``location`` and ``name``: it selects
records, it never modifies them.
"""

from dataclasses import dataclass

from qlview.models import ServerRecord


@dataclass(frozen=True)
class RegionFilter:
    """Case-insensitive substring match on a server's location or name."""

    name: str
    location_tokens: tuple[str, ...] = ()
    name_tokens: tuple[str, ...] = ()

    def matches(self, server: ServerRecord) -> bool:
        """Whether *server* belongs to this region and is addressable."""
        if not server.name or not server.address:
            return False
        location = server.location.lower()
        if any(token in location for token in self.location_tokens):
            return True
        name = server.name.lower()
        return any(token in name for token in self.name_tokens)

    def select(self, servers: list[ServerRecord]) -> list[ServerRecord]:
        """Return the matching subset of *servers*, in order."""
        return [s for s in servers if self.matches(s)]


# Australia / New Zealand. The location column holds country codes, so
# "au" and "nz" are matched as substrings.
OCEANIA = RegionFilter(
    name="oceania",
    location_tokens=("au", "nz"),
    name_tokens=("sydney", "melbourne", "oceania"),
)
