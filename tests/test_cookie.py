import pytest

from webappserver.cookie import HttpCookie, split_csv


def test_split_csv_basic():
    assert split_csv(b"a=1; b=2") == [b"a=1", b"b=2"]


def test_split_csv_quotes_protect_semicolons_and_are_removed():
    assert split_csv(b'a=1; b="x;y"; ; c ') == [b"a=1", b"b=x;y", b"c"]


def test_split_csv_empty():
    assert split_csv(b"") == []
    assert split_csv(b" ; ;") == []


def test_to_bytes_minimal_cookie():
    cookie = HttpCookie(b"sessionid", b"abc", 600)
    assert cookie.to_bytes() == b"sessionid=abc; Max-Age=600; Path=/; Version=1"


def test_to_bytes_all_attributes():
    cookie = HttpCookie(b"n", b"v", 10, b"/app", b"note", b"example.com", True, True, b"Lax")
    assert cookie.to_bytes() == (
        b"n=v; Comment=note; Domain=example.com; Max-Age=10; Path=/app; Secure; HttpOnly; SameSite=Lax; Version=1"
    )


def test_zero_max_age_omitted():
    cookie = HttpCookie(b"n", b"v", 0, b"")
    assert cookie.to_bytes() == b"n=v; Version=1"


def test_str_fields_are_encoded():
    cookie = HttpCookie("firstCookie", "hello", 600)
    assert cookie.name == b"firstCookie"
    assert cookie.value == b"hello"


def test_parse_attributes():
    cookie = HttpCookie.parse(b"sid=xyz; Path=/; Domain=example.com; Max-Age=600; Secure; HttpOnly; SameSite=Strict")
    assert cookie.name == b"sid"
    assert cookie.value == b"xyz"
    assert cookie.path == b"/"
    assert cookie.domain == b"example.com"
    assert cookie.max_age == 600
    assert cookie.secure is True
    assert cookie.http_only is True
    assert cookie.same_site == b"Strict"
    assert cookie.version == 1


def test_parse_without_path_leaves_it_empty():
    cookie = HttpCookie.parse(b"a=1")
    assert cookie.path == b""
    assert cookie.max_age == 0


def test_parse_second_unknown_pair_is_ignored():
    cookie = HttpCookie.parse(b"a=1; b=2")
    assert (cookie.name, cookie.value) == (b"a", b"1")


def test_parse_part_without_equals_uses_part_as_name_and_value():
    cookie = HttpCookie.parse(b"foo")
    assert (cookie.name, cookie.value) == (b"foo", b"foo")


def test_parse_bad_number_gives_zero():
    cookie = HttpCookie.parse(b"a=1; Max-Age=soon; Version=x")
    assert cookie.max_age == 0
    assert cookie.version == 0


@pytest.mark.parametrize(
    "cookie",
    [
        HttpCookie(b"sessionid", b"abc", 600),
        HttpCookie(b"n", b"v", 10, b"/app", b"note", b"example.com", True, True, b"Lax"),
        HttpCookie(b"secondCookie", b"world", 600, b"/", secure=True),
    ],
)
def test_round_trip(cookie):
    assert HttpCookie.parse(cookie.to_bytes()) == cookie