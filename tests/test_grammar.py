"""Tests for trellis.url.grammar — parsing, serialization and encoding."""

import pytest

from trellis.errors import UrlParseError
from trellis.url.grammar import (
    UrlParser,
    decode_query,
    encode_uri_fragment,
    encode_uri_query,
    encode_uri_segment,
    parse_url,
    serialize_url,
)
from trellis.url.tree import PRIMARY_OUTLET, UrlSegment, UrlSegmentGroup, UrlTree


def paths(group: UrlSegmentGroup) -> list[str]:
    return [s.path for s in group.segments]


class TestParse:
    def test_empty(self) -> None:
        tree = parse_url("/")
        assert not tree.root.has_children()
        assert tree.query_params == {}
        assert tree.fragment is None

    def test_root_never_has_segments(self) -> None:
        tree = parse_url("/a/b")
        assert tree.root.segments == ()
        assert paths(tree.root.children[PRIMARY_OUTLET]) == ["a", "b"]

    def test_leading_slash_optional(self) -> None:
        assert parse_url("a/b") == parse_url("/a/b")

    def test_full_example(self) -> None:
        tree = parse_url("/team/33;open=true/(user/victor//support:help)?debug=1#top")

        team = tree.root.children[PRIMARY_OUTLET]
        assert paths(team) == ["team", "33"]
        assert dict(team.segments[1].parameters) == {"open": "true"}
        assert paths(team.children[PRIMARY_OUTLET]) == ["user", "victor"]
        assert paths(team.children["support"]) == ["help"]
        assert tree.query_params == {"debug": "1"}
        assert tree.fragment == "top"

    def test_named_outlet_after_segments(self) -> None:
        tree = parse_url("/a(aux:b)")
        assert paths(tree.root.children[PRIMARY_OUTLET]) == ["a"]
        assert paths(tree.root.children["aux"]) == ["b"]

    def test_unprefixed_entry_in_parens_is_primary(self) -> None:
        tree = parse_url("/(a//aux:b)")
        assert paths(tree.root.children[PRIMARY_OUTLET]) == ["a"]
        assert paths(tree.root.children["aux"]) == ["b"]

    def test_nested_outlets(self) -> None:
        tree = parse_url("/a/(b/(c//x:d)//y:e)")
        a = tree.root.children[PRIMARY_OUTLET]
        b = a.children[PRIMARY_OUTLET]
        assert paths(b) == ["b"]
        assert paths(b.children["x"]) == ["d"]
        assert paths(a.children["y"]) == ["e"]

    def test_matrix_param_without_value(self) -> None:
        segment = parse_url("/a;flag").root.children[PRIMARY_OUTLET].segments[0]
        assert dict(segment.parameters) == {"flag": ""}

    def test_repeated_query_key_becomes_list(self) -> None:
        assert parse_url("/a?x=1&x=2&x=3").query_params == {"x": ["1", "2", "3"]}

    def test_query_key_without_value(self) -> None:
        assert parse_url("/a?flag").query_params == {"flag": ""}

    def test_query_only(self) -> None:
        tree = parse_url("/?q=1")
        assert not tree.root.has_children()
        assert tree.query_params == {"q": "1"}

    def test_percent_decoding(self) -> None:
        tree = parse_url("/one%20two;k%3D=v%2F#a%20b")
        segment = tree.root.children[PRIMARY_OUTLET].segments[0]
        assert segment.path == "one two"
        assert dict(segment.parameters) == {"k=": "v/"}
        assert tree.fragment == "a b"

    def test_parser_object(self) -> None:
        parser = UrlParser("/a?x=1")
        tree = parser.parse()
        assert parser.remaining == ""
        assert tree.query_params == {"x": "1"}


class TestQueryDecoding:
    def test_first_plus_is_space(self) -> None:
        assert decode_query("a+b+c") == "a b+c"

    def test_percent_in_query(self) -> None:
        assert parse_url("/a?q=x%26y").query_params == {"q": "x&y"}

    def test_plus_in_parsed_query(self) -> None:
        assert parse_url("/a?q=hello+world").query_params == {"q": "hello world"}


class TestParseErrors:
    def test_unclosed_group(self) -> None:
        with pytest.raises(UrlParseError):
            parse_url("/(a")

    def test_empty_segment_with_matrix_params(self) -> None:
        with pytest.raises(UrlParseError, match="Empty path url segment"):
            parse_url("/a/;x=1")

    def test_malformed_percent_encoding(self) -> None:
        with pytest.raises(UrlParseError):
            parse_url("/%E0%A4")

    def test_group_without_closing_paren(self) -> None:
        with pytest.raises(UrlParseError, match=r'Expected "\)"'):
            parse_url("/x/(a/b")

    def test_double_slash_outside_group(self) -> None:
        with pytest.raises(UrlParseError, match="unexpected '//b'"):
            parse_url("/a//b")

    def test_trailing_input_after_group(self) -> None:
        with pytest.raises(UrlParseError):
            parse_url("/(a)/b")

    def test_expected_literal_named(self) -> None:
        parser = UrlParser("b")
        with pytest.raises(UrlParseError, match='Expected "a"'):
            parser.capture("a")


class TestSerialize:
    @pytest.mark.parametrize(
        "url",
        [
            "/",
            "/a/b",
            "/a;p=1;q=2/b",
            "/a/(b//aux:c)",
            "/a(aux:b)",
            "/(aux:b)",
            "/a/(b/(c//x:d)//y:e)",
            "/a?x=1&x=2",
            "/a?q=1#frag",
            "/team/33;open=true/(user/victor//support:help)?debug=1#top",
        ],
    )
    def test_normalized_urls_are_stable(self, url: str) -> None:
        assert serialize_url(parse_url(url)) == url

    def test_primary_in_parens_is_normalized(self) -> None:
        assert serialize_url(parse_url("/(a//aux:b)")) == "/a(aux:b)"

    def test_primary_entry_with_colon_keeps_its_outlet(self) -> None:
        tree = parse_url("/x/(a%3Ab//aux:c)")
        x = tree.root.children[PRIMARY_OUTLET]
        assert paths(x.children[PRIMARY_OUTLET]) == ["a:b"]

        url = serialize_url(tree)
        assert url == "/x/(primary:a:b//aux:c)"
        assert parse_url(url) == tree

    def test_fragment_consumes_rest_of_input(self) -> None:
        parser = UrlParser("/a#x//y")
        assert parser.parse().fragment == "x//y"
        assert parser.remaining == ""

    def test_reparse_is_structurally_equal(self) -> None:
        tree = parse_url("/a;k=v/(b//aux:c/d)?x=1&x=2#f")
        assert parse_url(serialize_url(tree)) == tree

    def test_segment_encoding(self) -> None:
        group = UrlSegmentGroup([UrlSegment("one two"), UrlSegment("(x)"), UrlSegment("a@b:c&d")])
        tree = UrlTree(UrlSegmentGroup((), {PRIMARY_OUTLET: group}))
        assert serialize_url(tree) == "/one%20two/%28x%29/a@b:c&d"

    def test_matrix_param_encoding(self) -> None:
        segment = UrlSegment("a", {"k": "v w", "x": "1;2"})
        assert str(segment) == "a;k=v%20w;x=1%3B2"

    def test_query_and_fragment_encoding(self) -> None:
        tree = UrlTree(
            UrlSegmentGroup((), {PRIMARY_OUTLET: UrlSegmentGroup([UrlSegment("a")])}),
            {"q": "a;b c", "list": ["1", "2"]},
            "x y/?",
        )
        assert serialize_url(tree) == "/a?q=a%3Bb%20c&list=1&list=2#x%20y/?"


class TestEncoders:
    def test_query_keeps_readable_characters(self) -> None:
        assert encode_uri_query("a@b:c$d,e") == "a@b:c$d,e"

    def test_query_escapes_reserved(self) -> None:
        assert encode_uri_query("a&b=c;d") == "a%26b%3Dc%3Bd"

    def test_segment_escapes_parens_keeps_ampersand(self) -> None:
        assert encode_uri_segment("(a&b)") == "%28a&b%29"

    def test_fragment_is_uri_encoded(self) -> None:
        assert encode_uri_fragment("a b#c") == "a%20b#c"
