from __future__ import annotations
from urllib.parse import parse_qsl
from promised_request.application.services.flatten import FormData, flatten_form, serialize_query, to_string
from promised_request.domain.model import Blob, FileList


def test_serialize_query_flat_and_nested():
    assert serialize_query({"a": 1, "b": "x y"}) == "a=1&b=x%20y"
    assert serialize_query({"a": {"b": [1, 2]}}) == "a%5Bb%5D%5B0%5D=1&a%5Bb%5D%5B1%5D=2"


def test_serialize_query_empty_and_prefix():
    assert serialize_query({}) == ""
    assert serialize_query({"k": "v"}, "p") == "p%5Bk%5D=v"


def test_serialize_query_scalars_coerced():
    assert serialize_query({"t": True, "n": None, "f": 1.5}) == "t=true&n=null&f=1.5"


def test_serialize_query_keeps_uri_component_safe_chars():
    assert serialize_query({"q": "a-b_c.d!e~f*g'h(i)"}) == "q=a-b_c.d!e~f*g'h(i)"
    assert serialize_query({"q": "a&b=c/d"}) == "q=a%26b%3Dc%2Fd"


def test_serialize_query_parses_back_to_leaf_paths():
    data = {"user": {"name": "Ana", "tags": ["x", "y"]}, "page": 2}
    pairs = parse_qsl(serialize_query(data))
    assert pairs == [("user[name]", "Ana"), ("user[tags][0]", "x"), ("user[tags][1]", "y"), ("page", "2")]


def test_flatten_form_one_field_per_leaf():
    avatar = Blob(b"png-bytes", "a.png", "image/png")
    pairs = flatten_form({"user": {"name": "Ana", "avatar": avatar, "roles": ["a", "b"]}})
    assert pairs == [
        ("user[name]", "Ana"),
        ("user[avatar]", avatar),
        ("user[roles][0]", "a"),
        ("user[roles][1]", "b"),
    ]


def test_flatten_form_renames_indexed_blobs_to_file():
    b1, b2 = Blob(b"1", "one.txt"), Blob(b"2", "two.txt")
    assert flatten_form({"docs": FileList([b1, b2])}) == [("docs[file]", b1), ("docs[file]", b2)]
    assert flatten_form([b1]) == [("file", b1)]


def test_flatten_form_drops_none_and_is_pure():
    data = {"a": None, "b": {"c": 1}}
    first = flatten_form(data)
    assert first == [("b[c]", 1)]
    assert flatten_form(data) == first
    assert data == {"a": None, "b": {"c": 1}}


def test_form_data_splits_fields_and_files():
    blob = Blob(b"x", "x.bin")
    form = FormData.from_data({"n": 3, "f": blob, "raw": b"zz"})
    assert form.fields == [("n", "3")]
    assert form.files[0] == ("f", blob)
    assert form.files[1][1].content == b"zz"
    assert len(form) == 3
    assert form.get_all("n") == ["3"]


def test_to_string():
    assert to_string("s") == "s"
    assert to_string(b"b") == "b"
    assert to_string(False) == "false"
    assert to_string(7) == "7"


def test_only_plain_digit_keys_count_as_positions():
    b1, b2, b3, b4, b5 = (Blob(bytes([i])) for i in range(5))
    pairs = flatten_form({"+3": b1, "1_0": b2, " 3": b3, "-1": b4, "3": b5})
    assert [name for name, _ in pairs] == ["+3", "1_0", " 3", "-1", "file"]
