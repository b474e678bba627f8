from typing import Optional

from ua_parser import parse

UNKNOWN_DEVICE = "Unknown device"


def parse_user_agent(user_agent: Optional[str]) -> str:
    """Short device label for a session, e.g. "Chrome on Windows" """
    if not user_agent:
        return UNKNOWN_DEVICE

    ua = parse(user_agent)
    browser = ua.user_agent.family if ua and ua.user_agent else "Other"
    os_name = ua.os.family if ua and ua.os else "Other"

    if browser == "Other" and os_name == "Other":
        return UNKNOWN_DEVICE
    return f"{browser} on {os_name}"
