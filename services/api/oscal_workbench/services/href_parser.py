"""Classification of OSCAL href strings."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class HrefType(str, Enum):
    URN = "urn"
    ABSOLUTE_URL = "absolute-url"
    FRAGMENT = "fragment"
    RELATIVE = "relative"


@dataclass(frozen=True)
class ParsedHref:
    """An href split into its path and fragment parts."""

    type: HrefType
    path: str
    fragment: Optional[str] = None
    is_resolvable: bool = False


def _split_fragment(href: str):
    path, sep, fragment = href.partition("#")
    return path, (fragment if sep else None)


def parse_href(href: str) -> ParsedHref:
    """Classify an href as a URN, absolute URL, fragment or relative path.

    Relative paths are reported as not resolvable because they need a base
    URL before they point anywhere. Never raises.
    """
    if href.startswith("urn:"):
        return ParsedHref(type=HrefType.URN, path=href, is_resolvable=False)

    if href.startswith("http://") or href.startswith("https://"):
        path, fragment = _split_fragment(href)
        return ParsedHref(
            type=HrefType.ABSOLUTE_URL,
            path=path,
            fragment=fragment,
            is_resolvable=True,
        )

    if href.startswith("#"):
        return ParsedHref(
            type=HrefType.FRAGMENT,
            path="",
            fragment=href[1:],
            is_resolvable=True,
        )

    path, fragment = _split_fragment(href)
    return ParsedHref(
        type=HrefType.RELATIVE,
        path=path,
        fragment=fragment,
        is_resolvable=False,
    )
