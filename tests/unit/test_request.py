"""
Unit tests for HTTP request parsing and form parsing.
"""

import pytest

from sloth.http import FormParseError, HTTPParseError, HTTPRequest, RequestParser, parse_query
from sloth.http.request import MAX_FORM_SIZE

from conftest import make_request


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/api/users"
        assert request.version == "HTTP/1.1"
        assert request.query_string == "page=1&limit=10"
        assert request.query_params == {"page": ["1"], "limit": ["10"]}
        assert request.get_query("page") == "1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        request = RequestParser().parse(sample_get_request)

        assert request.headers["host"] == "localhost:8080"
        assert request.host == "localhost:8080"
        assert request.user_agent == "pytest"
        assert request.get_header("ACCEPT") == "application/json"

    def test_parse_body(self, sample_form_request: bytes):
        request = RequestParser().parse(sample_form_request)

        assert request.method == "POST"
        assert request.body == b"name=sloth&legs=four"
        assert request.content_type == "application/x-www-form-urlencoded"
        assert request.content_length == 20

    def test_body_cut_at_content_length(self):
        data = b"POST / HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcdef"
        assert RequestParser().parse(data).body == b"abc"

    @pytest.mark.parametrize("method", ["GET", "POST", "PATCH", "OPTIONS", "PROPFIND"])
    def test_any_method_token(self, method: str):
        request = RequestParser().parse(f"{method} / HTTP/1.1\r\n\r\n".encode())
        assert request.method == method

    def test_lowercase_method_rejected(self):
        with pytest.raises(HTTPParseError):
            RequestParser().parse(b"get / HTTP/1.1\r\n\r\n")

    def test_path_is_decoded(self):
        request = RequestParser().parse(b"GET /caf%C3%A9 HTTP/1.1\r\n\r\n")
        assert request.path == "/café"

    def test_repeated_headers_joined(self):
        data = b"GET / HTTP/1.1\r\nAccept: text/html\r\nAccept: text/plain\r\n\r\n"
        request = RequestParser().parse(data)

        assert request.headers["accept"] == "text/html, text/plain"

    def test_folded_header(self):
        data = b"GET / HTTP/1.1\r\nX-Long: first\r\n  second\r\n\r\n"
        assert RequestParser().parse(data).headers["x-long"] == "first second"

    def test_json_body(self):
        data = b'POST / HTTP/1.1\r\nContent-Length: 13\r\n\r\n{"name": "a"}'
        assert RequestParser().parse(data).json == {"name": "a"}

    def test_invalid_json_body(self):
        data = b"POST / HTTP/1.1\r\nContent-Length: 3\r\n\r\n{x}"
        request = RequestParser().parse(data)

        with pytest.raises(HTTPParseError):
            request.json


class TestRequestParserErrors:
    """Malformed requests and the status codes they map to."""

    @pytest.mark.parametrize("data", [
        b"GET /\r\n\r\n",
        b"GET / HTTP/1.1",
        b"GET / HTTP/1.1\r\nno colon here\r\n\r\n",
        b"GET / HTTP/1.1\r\n folded first\r\n\r\n",
        b"POST / HTTP/1.1\r\nContent-Length: abc\r\n\r\n",
        b"POST / HTTP/1.1\r\nContent-Length: -1\r\n\r\n",
        b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nshort",
        b"GET /a/../etc/passwd HTTP/1.1\r\n\r\n",
        b"POST / HTTP/1.1\r\nTransfer-Encoding: chunked\r\nContent-Length: 6\r\n\r\nname=a",
    ])
    def test_bad_request(self, data: bytes):
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(data)
        assert exc_info.value.status_code == 400

    def test_unsupported_version(self):
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(b"GET / HTTP/2.0\r\n\r\n")
        assert exc_info.value.status_code == 505

    def test_transfer_encoding_not_implemented(self):
        data = b"POST / HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\n6\r\nname=a\r\n0\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(data)
        assert exc_info.value.status_code == 501

    def test_too_large(self):
        parser = RequestParser(max_request_size=32)

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(b"GET /" + b"a" * 64 + b" HTTP/1.1\r\n\r\n")
        assert exc_info.value.status_code == 413


class TestKeepAlive:
    @pytest.mark.parametrize("version,connection,expected", [
        ("HTTP/1.1", None, True),
        ("HTTP/1.1", "close", False),
        ("HTTP/1.0", None, False),
        ("HTTP/1.0", "keep-alive", True),
    ])
    def test_is_keep_alive(self, version, connection, expected):
        header = f"Connection: {connection}\r\n" if connection else ""
        data = f"GET / {version}\r\n{header}\r\n".encode()

        assert RequestParser().parse(data).is_keep_alive is expected


class TestParseQuery:
    """Tests for the strict urlencoded parser."""

    def test_pairs(self):
        assert parse_query("a=1&b=2&a=3") == {"a": ["1", "3"], "b": ["2"]}

    def test_plus_and_escapes(self):
        assert parse_query("q=two+words&s=%2Fslash") == {"q": ["two words"], "s": ["/slash"]}

    def test_key_without_value(self):
        assert parse_query("flag&x=1") == {"flag": [""], "x": ["1"]}

    def test_empty_pairs_skipped(self):
        assert parse_query("&&a=1&") == {"a": ["1"]}
        assert parse_query("") == {}

    @pytest.mark.parametrize("query", ["a=1;b=2", "a=%zz", "a=%4", "%=1", "a=100%"])
    def test_malformed(self, query: str):
        with pytest.raises(FormParseError):
            parse_query(query)


FORM = {"Content-Type": "application/x-www-form-urlencoded"}


class TestParseForm:
    """Tests for HTTPRequest.parse_form()."""

    def test_query_only_for_get(self):
        request = make_request("GET", "/?a=1&a=2")
        request.parse_form()

        assert request.form == {"a": ["1", "2"]}
        assert request.post_form == {}

    def test_body_values_before_query_values(self, sample_form_request: bytes):
        request = RequestParser().parse(sample_form_request)
        request.parse_form()

        assert request.post_form == {"name": ["sloth"], "legs": ["four"]}
        assert request.form == {"name": ["sloth"], "legs": ["four"], "source": ["zoo"]}
        assert request.form_value("name") == "sloth"

    def test_body_wins_for_same_key(self):
        request = make_request("PUT", "/?k=query", FORM, b"k=body")

        assert request.form_value("k") == "body"
        assert request.form["k"] == ["body", "query"]

    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH"])
    def test_body_parsed_for_form_methods(self, method: str):
        request = make_request(method, "/", FORM, b"x=1")
        request.parse_form()

        assert request.post_form == {"x": ["1"]}

    @pytest.mark.parametrize("method", ["GET", "DELETE", "HEAD"])
    def test_body_ignored_for_other_methods(self, method: str):
        request = make_request(method, "/", FORM, b"x=1")
        request.parse_form()

        assert request.post_form == {}
        assert request.form == {}

    def test_non_form_body_ignored(self):
        request = make_request("POST", "/", {"Content-Type": "application/json"}, b'{"a": 1}')
        request.parse_form()

        assert request.post_form == {}

    def test_missing_content_type(self):
        request = make_request("POST", "/", body=b"x=1")
        request.parse_form()

        assert request.post_form == {}

    def test_content_type_with_charset(self):
        headers = {"Content-Type": "application/x-www-form-urlencoded; charset=utf-8"}
        request = make_request("POST", "/", headers, b"x=%C3%A9")
        request.parse_form()

        assert request.post_form == {"x": ["é"]}

    @pytest.mark.parametrize("content_type", ["not a media type", "text", "text/plain; charset"])
    def test_invalid_content_type(self, content_type: str):
        request = make_request("POST", "/", {"Content-Type": content_type}, b"x=1")

        with pytest.raises(FormParseError):
            request.parse_form()

    def test_malformed_body(self):
        request = make_request("POST", "/", FORM, b"x=%%")

        with pytest.raises(FormParseError):
            request.parse_form()

    def test_body_too_large(self):
        request = HTTPRequest(
            method="POST",
            path="/",
            headers={"content-type": "application/x-www-form-urlencoded"},
            body=b"x=" + b"a" * MAX_FORM_SIZE,
        )

        with pytest.raises(FormParseError) as exc_info:
            request.parse_form()
        assert exc_info.value.status_code == 413

    def test_idempotent(self):
        request = make_request("GET", "/?a=1")
        request.parse_form()
        request.form["a"].append("mutated")

        request.parse_form()

        assert request.form == {"a": ["1", "mutated"]}

    def test_failure_not_repeated(self):
        request = make_request("GET", "/?a=%zz")

        with pytest.raises(FormParseError):
            request.parse_form()
        request.parse_form()

        assert request.form == {}

    def test_form_value_default(self):
        request = make_request("GET", "/")
        assert request.form_value("missing", "fallback") == "fallback"
