"""URL trees — the data model and its string grammar.

``parse_url`` and ``serialize_url`` are the only bit-exact external
contract of the package.
"""

from trellis.url.grammar import UrlParser, parse_url, serialize_url
from trellis.url.tree import PRIMARY_OUTLET, UrlSegment, UrlSegmentGroup, UrlTree

__all__ = [
    "PRIMARY_OUTLET",
    "UrlParser",
    "UrlSegment",
    "UrlSegmentGroup",
    "UrlTree",
    "parse_url",
    "serialize_url",
]
