"""User-agent parsing into browser, operating system and device kind."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from user_agents import parse

logger = logging.getLogger(__name__)

DEFAULT_DEVICE = "desktop"
_UNKNOWN_FAMILIES = frozenset({"", "Other"})


@dataclass(frozen=True)
class UserAgentInfo:
    """Parsed user-agent fields. Unknown values are None."""

    browser_name: Optional[str] = None
    browser_version: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    device_kind: str = DEFAULT_DEVICE

    @property
    def browser(self) -> Optional[str]:
        """Browser name and version as one label, e.g. ``"Chrome 120.0.0"``."""
        return _label(self.browser_name, self.browser_version)

    @property
    def os(self) -> Optional[str]:
        """Operating system name and version as one label."""
        return _label(self.os_name, self.os_version)


def _label(name: Optional[str], version: Optional[str]) -> Optional[str]:
    if not name:
        return None
    return f"{name} {version}" if version else name


def _known(value: str | None) -> Optional[str]:
    if value is None or value in _UNKNOWN_FAMILIES:
        return None
    return value


def parse_user_agent(ua_string: str | None) -> UserAgentInfo:
    """Parse *ua_string*; never raises.

    Falls back to empty values with a ``desktop`` device when the string is
    empty or cannot be parsed.
    """
    if not ua_string:
        return UserAgentInfo()
    try:
        ua = parse(ua_string)
    except Exception as exc:
        logger.debug("user-agent parse failed: %s", exc)
        return UserAgentInfo()

    browser_name = _known(ua.browser.family)
    os_name = _known(ua.os.family)

    if ua.is_tablet:
        device = "tablet"
    elif ua.is_mobile:
        device = "mobile"
    elif ua.is_bot:
        device = "bot"
    else:
        device = DEFAULT_DEVICE

    return UserAgentInfo(
        browser_name=browser_name,
        browser_version=(ua.browser.version_string or None) if browser_name else None,
        os_name=os_name,
        os_version=(ua.os.version_string or None) if os_name else None,
        device_kind=device,
    )
