"""URL grammar — recursive-descent parser and serializer.

Grammar::

    tree        := '/'? children? ('?' query)? ('#' fragment)?
    children    := segment ('/' segment)* ('/' parens)? | parens
    parens      := '(' outletGroup ('//' outletGroup)* ')'
    outletGroup := (outletName ':')? children
    segment     := pathToken (';' key '=' value)*
    query       := pair ('&' pair)*

The parser makes a single left-to-right pass over the remaining input
with no backtracking.  ``serialize_url(parse_url(s))`` normalizes *s*;
``parse_url(serialize_url(t))`` is structurally equal to *t*.
"""

import re
from collections.abc import Mapping
from urllib.parse import quote, unquote

from trellis.errors import UrlParseError
from trellis.url.tree import (
    PRIMARY_OUTLET,
    QueryParams,
    UrlSegment,
    UrlSegmentGroup,
    UrlTree,
    map_children_into_list,
)

# encodeURIComponent leaves these alone; @ : $ , are additionally kept
# readable in every URL component.
_COMPONENT_SAFE = "-_.!~*'()"
_STRING_SAFE = _COMPONENT_SAFE + "@:$,"
_SEGMENT_SAFE = _STRING_SAFE.replace("(", "").replace(")", "") + "&"
_FRAGMENT_SAFE = _COMPONENT_SAFE + ";,/?:@&=+$#"

_SEGMENT_RE = re.compile(r"^[^/()?;=#]+")
_QUERY_PARAM_RE = re.compile(r"^[^=?&#]+")
_QUERY_PARAM_VALUE_RE = re.compile(r"^[^&#]+")


# -- Encoding ----------------------------------------------------------------


def encode_uri_string(s: str) -> str:
    """Component encoding that keeps ``@ : $ ,`` unescaped."""
    return quote(s, safe=_STRING_SAFE)


def encode_uri_query(s: str) -> str:
    """Encode a query key or value (``;`` stays escaped)."""
    return encode_uri_string(s)


def encode_uri_segment(s: str) -> str:
    """Encode a path token or matrix key/value: escape ``( )``, keep ``&``."""
    return quote(s, safe=_SEGMENT_SAFE)


def encode_uri_fragment(s: str) -> str:
    return quote(s, safe=_FRAGMENT_SAFE)


def decode(s: str) -> str:
    try:
        return unquote(s, errors="strict")
    except UnicodeDecodeError as exc:
        msg = f"Malformed percent-encoding in {s!r}"
        raise UrlParseError(msg) from exc


def decode_query(s: str) -> str:
    """Decode a query key or value; the first ``+`` means a space."""
    return decode(s.replace("+", "%20", 1))


# -- Serialization -----------------------------------------------------------


def serialize_segment(segment: UrlSegment) -> str:
    """Serialize one segment with its matrix parameters (``a;k=v``)."""
    return encode_uri_segment(segment.path) + _serialize_matrix_params(segment.parameters)


def _serialize_matrix_params(params: Mapping[str, str]) -> str:
    return "".join(
        f";{encode_uri_segment(key)}={encode_uri_segment(value)}" for key, value in params.items()
    )


def serialize_paths(group: UrlSegmentGroup) -> str:
    return "/".join(serialize_segment(s) for s in group.segments)


def _serialize_group(group: UrlSegmentGroup, *, root: bool) -> str:
    if not group.has_children():
        return serialize_paths(group)

    if root:
        primary = group.children.get(PRIMARY_OUTLET)
        head = _serialize_group(primary, root=False) if primary is not None else ""
        named = [
            f"{outlet}:{_serialize_group(child, root=False)}"
            for outlet, child in group.children.items()
            if outlet != PRIMARY_OUTLET
        ]
        return f"{head}({'//'.join(named)})" if named else head

    def _entry(child: UrlSegmentGroup, outlet: str) -> list[str]:
        rendered = _serialize_group(child, root=False)
        # A bare primary entry whose first token holds ':' would re-parse as an outlet name
        if outlet == PRIMARY_OUTLET and not (child.segments and ":" in child.segments[0].path):
            return [rendered]
        return [f"{outlet}:{rendered}"]

    entries = map_children_into_list(group, _entry)
    if group.number_of_children == 1 and PRIMARY_OUTLET in group.children:
        return f"{serialize_paths(group)}/{entries[0]}"
    return f"{serialize_paths(group)}/({'//'.join(entries)})"


def _serialize_query_params(params: QueryParams) -> str:
    pairs: list[str] = []
    for name, value in params.items():
        values = value if isinstance(value, list) else [value]
        pairs.extend(f"{encode_uri_query(name)}={encode_uri_query(v)}" for v in values)
    return f"?{'&'.join(pairs)}" if pairs else ""


def serialize_url(tree: UrlTree) -> str:
    """Render a ``UrlTree`` as a URL string."""
    path = "/" + _serialize_group(tree.root, root=True)
    query = _serialize_query_params(tree.query_params)
    fragment = f"#{encode_uri_fragment(tree.fragment)}" if tree.fragment is not None else ""
    return f"{path}{query}{fragment}"


# -- Parsing -----------------------------------------------------------------


def _match(pattern: re.Pattern[str], s: str) -> str:
    m = pattern.match(s)
    return m.group(0) if m else ""


class UrlParser:
    """Single-pass recursive-descent parser over the unconsumed input.

    Usage::

        parser = UrlParser("/a/(b//aux:c)?q=1#top")
        tree = parser.parse()
    """

    __slots__ = ("remaining", "url")

    def __init__(self, url: str) -> None:
        self.url = url
        self.remaining = url

    def parse(self) -> UrlTree:
        root = self.parse_root_segment()
        query = self.parse_query_params()
        if self.remaining and not self.peek_starts_with("#"):
            msg = f"Cannot parse url '{self.url}': unexpected '{self.remaining}'"
            raise UrlParseError(msg)
        fragment = self.parse_fragment()
        return UrlTree(root, query, fragment)

    def parse_root_segment(self) -> UrlSegmentGroup:
        self.consume_optional("/")
        if self.remaining == "" or self.peek_starts_with("?") or self.peek_starts_with("#"):
            return UrlSegmentGroup()
        # The root group never carries segments itself
        return UrlSegmentGroup((), self.parse_children())

    def parse_query_params(self) -> QueryParams:
        params: QueryParams = {}
        if self.consume_optional("?"):
            while True:
                self._parse_query_param(params)
                if not self.consume_optional("&"):
                    break
        return params

    def parse_fragment(self) -> str | None:
        if self.consume_optional("#"):
            fragment, self.remaining = self.remaining, ""
            return decode(fragment)
        return None

    def parse_children(self) -> dict[str, UrlSegmentGroup]:
        if self.remaining == "":
            return {}

        self.consume_optional("/")

        segments: list[UrlSegment] = []
        if not self.peek_starts_with("("):
            segments.append(self._parse_segment())

        while (
            self.peek_starts_with("/")
            and not self.peek_starts_with("//")
            and not self.peek_starts_with("/(")
        ):
            self.capture("/")
            segments.append(self._parse_segment())

        children: dict[str, UrlSegmentGroup] = {}
        if self.peek_starts_with("/("):
            self.capture("/")
            children = self._parse_parens()

        result: dict[str, UrlSegmentGroup] = {}
        if self.peek_starts_with("("):
            result = self._parse_parens()

        if segments or children:
            result[PRIMARY_OUTLET] = UrlSegmentGroup(segments, children)

        return result

    def _parse_segment(self) -> UrlSegment:
        path = _match(_SEGMENT_RE, self.remaining)
        if path == "" and self.peek_starts_with(";"):
            msg = f"Empty path url segment cannot have parameters: '{self.remaining}'."
            raise UrlParseError(msg)
        self.capture(path)
        return UrlSegment(decode(path), self._parse_matrix_params())

    def _parse_matrix_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        while self.consume_optional(";"):
            self._parse_param(params)
        return params

    def _parse_param(self, params: dict[str, str]) -> None:
        key = _match(_SEGMENT_RE, self.remaining)
        if not key:
            return
        self.capture(key)
        value = ""
        if self.consume_optional("="):
            value_match = _match(_SEGMENT_RE, self.remaining)
            if value_match:
                value = value_match
                self.capture(value)
        params[decode(key)] = decode(value)

    def _parse_query_param(self, params: QueryParams) -> None:
        key = _match(_QUERY_PARAM_RE, self.remaining)
        if not key:
            return
        self.capture(key)
        value = ""
        if self.consume_optional("="):
            value_match = _match(_QUERY_PARAM_VALUE_RE, self.remaining)
            if value_match:
                value = value_match
                self.capture(value)

        decoded_key = decode_query(key)
        decoded_value = decode_query(value)
        if decoded_key in params:
            current = params[decoded_key]
            if not isinstance(current, list):
                current = [current]
                params[decoded_key] = current
            current.append(decoded_value)
        else:
            params[decoded_key] = decoded_value

    def _parse_parens(self) -> dict[str, UrlSegmentGroup]:
        groups: dict[str, UrlSegmentGroup] = {}
        self.capture("(")

        while self.remaining and not self.peek_starts_with(")"):
            path = _match(_SEGMENT_RE, self.remaining)
            following = self.remaining[len(path) : len(path) + 1]
            # Anything else means an unescaped character or an unclosed group
            if following not in ("/", ")", ";"):
                msg = f"Cannot parse url '{self.url}'"
                raise UrlParseError(msg)

            outlet = PRIMARY_OUTLET
            if ":" in path:
                outlet = path[: path.index(":")]
                self.capture(outlet)
                self.capture(":")

            children = self.parse_children()
            if len(children) == 1 and PRIMARY_OUTLET in children:
                groups[outlet] = children[PRIMARY_OUTLET]
            else:
                groups[outlet] = UrlSegmentGroup((), children)
            self.consume_optional("//")

        self.capture(")")
        return groups

    def peek_starts_with(self, s: str) -> bool:
        return self.remaining.startswith(s)

    def consume_optional(self, s: str) -> bool:
        if self.peek_starts_with(s):
            self.remaining = self.remaining[len(s) :]
            return True
        return False

    def capture(self, s: str) -> None:
        if not self.consume_optional(s):
            msg = f'Expected "{s}".'
            raise UrlParseError(msg)


def parse_url(url: str) -> UrlTree:
    """Parse a URL string into a ``UrlTree``.

    Raises ``UrlParseError`` when the input does not follow the grammar.
    """
    return UrlParser(url).parse()
