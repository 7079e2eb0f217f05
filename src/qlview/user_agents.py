"""User-Agent selection for the browser page and the stats request.

Both sources sit behind basic bot detection, so every page and request
presents a current desktop browser UA. The UA is picked once per rotator
(per service) rather than per request: real browsers do not change
User-Agent mid-session.
"""

from fake_useragent import UserAgent


class UserAgentRotator:
    """Picks desktop User-Agent strings from one browser family.

    The headless engine is Chromium, so the default family is Chrome;
    claiming Firefox on a Chromium engine is trivially detectable.
    """

    def __init__(self, browser_family: str = "Chrome"):
        self._browser_family = browser_family
        self._ua = UserAgent(
            browsers=[browser_family],
            platforms=["desktop"],
            min_version=120.0,
        )
        self._current: str | None = None

    @property
    def browser_family(self) -> str:
        return self._browser_family

    def get(self) -> str:
        """Return this session's UA string, choosing one on first call."""
        if self._current is None:
            self._current = self._ua.random
        return self._current

    def rotate(self) -> str:
        """Discard the current UA and pick a new one."""
        self._current = None
        return self.get()

    def get_headers(self, accept: str = "*/*") -> dict[str, str]:
        """Return browser-like request headers with the session UA.

        For Chrome, includes the Sec-CH-UA client hints real Chrome sends.
        """
        headers: dict[str, str] = {
            "User-Agent": self.get(),
            "Accept": accept,
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        if self._browser_family == "Chrome":
            headers["Sec-CH-UA-Platform"] = '"Windows"'
            headers["Sec-CH-UA-Mobile"] = "?0"
        return headers
