"""User-agent classification for click analytics.

Keyword matching against the lowercased user-agent string. Order matters:
tablets are checked before phones because iPad and Android tablet strings
also mention "mobile" or "android", and Edge/Opera before Chrome because
their strings contain "chrome" as well.
"""

import re
from typing import NamedTuple, Optional

DEFAULT_DEVICE = "desktop"
UNKNOWN = "Unknown"

_TABLET_KEYWORDS = ("ipad", "tablet", "kindle", "silk", "playbook")
_MOBILE_KEYWORDS = ("mobile", "iphone", "ipod", "android", "blackberry", "opera mini", "iemobile", "windows phone")

# (token, browser name); first match wins
_BROWSERS = (
    ("edg/", "Edge"),
    ("edge/", "Edge"),
    ("opr/", "Opera"),
    ("opera", "Opera"),
    ("samsungbrowser", "Samsung Internet"),
    ("ucbrowser", "UC Browser"),
    ("yabrowser", "Yandex"),
    ("fxios", "Firefox"),
    ("firefox", "Firefox"),
    ("crios", "Chrome"),
    ("chrome", "Chrome"),
    ("chromium", "Chromium"),
    ("safari", "Safari"),
    ("msie", "Internet Explorer"),
    ("trident/", "Internet Explorer"),
)

_OPERATING_SYSTEMS = (
    ("windows phone", "Windows Phone"),
    ("windows", "Windows"),
    ("iphone", "iOS"),
    ("ipad", "iOS"),
    ("ipod", "iOS"),
    ("android", "Android"),
    ("cros", "Chrome OS"),
    ("mac os x", "Mac OS"),
    ("macintosh", "Mac OS"),
    ("linux", "Linux"),
)

# Android tablets omit "mobile" from their user agent
_ANDROID_TABLET = re.compile(r"android(?!.*mobile)")


class ClientInfo(NamedTuple):
    device: str
    browser: str
    os: str


def detect_device(user_agent: str) -> str:
    """
    Classify a lowercased user agent as mobile, tablet or desktop.

    Anything unrecognised, bots and crawlers included, counts as desktop.
    """
    if any(keyword in user_agent for keyword in _TABLET_KEYWORDS) or _ANDROID_TABLET.search(user_agent):
        return "tablet"
    if any(keyword in user_agent for keyword in _MOBILE_KEYWORDS):
        return "mobile"
    return DEFAULT_DEVICE


def _first_match(user_agent: str, table) -> str:
    for token, name in table:
        if token in user_agent:
            return name
    return UNKNOWN


def parse_user_agent(user_agent: Optional[str]) -> ClientInfo:
    """
    Extract device class, browser name and operating system from a
    User-Agent header.

    Args:
        user_agent: Raw header value, possibly missing

    Returns:
        ClientInfo with "desktop" / "Unknown" defaults for anything not recognised
    """
    if not user_agent:
        return ClientInfo(DEFAULT_DEVICE, UNKNOWN, UNKNOWN)

    ua = user_agent.lower()
    return ClientInfo(
        device=detect_device(ua),
        browser=_first_match(ua, _BROWSERS),
        os=_first_match(ua, _OPERATING_SYSTEMS),
    )
