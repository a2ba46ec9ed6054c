"""
Unit tests for handler wrappers: pipeline, compression and access logging.
"""

import gzip
import json
import logging

import pytest

from sloth.config import APIConfig
from sloth.dispatcher import Dispatcher
from sloth.middleware import (
    CompressionMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    chain,
)

from conftest import make_request, serve


BIG_TEXT = "the quick brown sloth " * 100


def text_handler(body: str, content_type: str = "text/plain", status: int = 200):
    def handler(writer, request):
        writer.headers.set("Content-Type", content_type)
        writer.write_header(status)
        writer.write(body)
    return handler


class Tag(Middleware):
    """Appends its label to X-Order before calling next."""

    def __init__(self, label: str):
        self.label = label

    def handle(self, writer, request, next):
        writer.headers.add("X-Order", self.label)
        next(writer, request)


class TestPipeline:
    """Tests for Middleware and MiddlewarePipeline."""

    def test_middleware_is_a_wrapper(self):
        handler = Tag("a")(text_handler("ok"))
        writer = serve(handler, make_request("GET"))

        assert writer.body == b"ok"
        assert writer.sent_headers.get_list("X-Order") == ["a"]

    def test_first_added_is_outermost(self):
        handler = chain(Tag("outer"), Tag("inner"))(text_handler("ok"))
        writer = serve(handler, make_request("GET"))

        assert writer.sent_headers.get_list("X-Order") == ["outer", "inner"]

    def test_function_wrappers_mix(self):
        def stamp(handler):
            def stamped(writer, request):
                writer.headers.add("X-Order", "fn")
                handler(writer, request)
            return stamped

        pipeline = MiddlewarePipeline(stamp).use(Tag("cls"))
        writer = serve(pipeline(text_handler("ok")), make_request("GET"))

        assert len(pipeline) == 2
        assert writer.sent_headers.get_list("X-Order") == ["fn", "cls"]

    def test_short_circuit(self):
        class Deny(Middleware):
            def handle(self, writer, request, next):
                writer.write_header(401)

        called = []
        writer = serve(Deny()(lambda w, r: called.append(r)), make_request("GET"))

        assert writer.status == 401
        assert called == []

    def test_name(self):
        assert Tag("x").name == "Tag"


class TestCompressionMiddleware:
    """Tests for CompressionMiddleware."""

    def test_compresses_large_text(self):
        handler = CompressionMiddleware()(text_handler(BIG_TEXT))
        request = make_request("GET", headers={"Accept-Encoding": "gzip, deflate"})
        writer = serve(handler, request)

        assert writer.status == 200
        assert writer.sent_headers.get("Content-Encoding") == "gzip"
        assert writer.sent_headers.get("Vary") == "Accept-Encoding"
        assert gzip.decompress(writer.body) == BIG_TEXT.encode()

    def test_client_without_gzip(self):
        handler = CompressionMiddleware()(text_handler(BIG_TEXT))
        writer = serve(handler, make_request("GET"))

        assert "Content-Encoding" not in writer.sent_headers
        assert writer.body == BIG_TEXT.encode()

    def test_small_body_untouched(self):
        handler = CompressionMiddleware()(text_handler("tiny"))
        writer = serve(handler, make_request("GET", headers={"Accept-Encoding": "gzip"}))

        assert writer.body == b"tiny"
        assert "Content-Encoding" not in writer.sent_headers

    def test_binary_type_untouched(self):
        handler = CompressionMiddleware()(text_handler(BIG_TEXT, "image/png"))
        writer = serve(handler, make_request("GET", headers={"Accept-Encoding": "gzip"}))

        assert "Content-Encoding" not in writer.sent_headers

    def test_existing_vary_extended(self):
        def handler(writer, request):
            writer.headers.set("Content-Type", "text/plain")
            writer.headers.set("Vary", "Cookie")
            writer.write(BIG_TEXT)

        writer = serve(
            CompressionMiddleware()(handler),
            make_request("GET", headers={"Accept-Encoding": "gzip"}),
        )

        assert writer.sent_headers.get("Vary") == "Cookie, Accept-Encoding"

    def test_status_and_headers_preserved(self):
        def handler(writer, request):
            writer.headers.set("Content-Type", "text/plain")
            writer.headers.set("X-Custom", "kept")
            writer.write_header(201)
            writer.write(BIG_TEXT)

        writer = serve(
            CompressionMiddleware()(handler),
            make_request("GET", headers={"Accept-Encoding": "gzip"}),
        )

        assert writer.status == 201
        assert writer.sent_headers.get("X-Custom") == "kept"

    def test_outer_headers_survive(self):
        """Headers set by outer wrappers before the handler ran are kept."""
        handler = LoggingMiddleware()(CompressionMiddleware()(text_handler(BIG_TEXT)))
        writer = serve(handler, make_request("GET", headers={"Accept-Encoding": "gzip"}))

        assert "X-Request-Id" in writer.sent_headers
        assert writer.sent_headers.get("Content-Encoding") == "gzip"

    def test_empty_response_gets_ok(self):
        writer = serve(CompressionMiddleware()(lambda w, r: None), make_request("GET"))

        assert writer.status == 200
        assert writer.body == b""

    def test_dispatcher_json(self):
        class Rows:
            def get(self, request):
                return 200, [{"id": i, "name": "sloth"} for i in range(100)], None

        handler = CompressionMiddleware()(Dispatcher(APIConfig()).handler_for(Rows()))
        writer = serve(handler, make_request("GET", headers={"Accept-Encoding": "gzip"}))

        assert writer.sent_headers.get("Content-Type") == "application/json"
        assert len(json.loads(gzip.decompress(writer.body))) == 100

    @pytest.mark.parametrize("level", [0, 10])
    def test_invalid_level(self, level: int):
        with pytest.raises(ValueError):
            CompressionMiddleware(level=level)


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware."""

    def test_logs_text_line(self, caplog):
        handler = LoggingMiddleware()(text_handler("hello", status=201))

        with caplog.at_level(logging.INFO, logger="sloth.access"):
            serve(handler, make_request("POST", "/animals?kind=sloth"))

        [record] = [r for r in caplog.records if r.name == "sloth.access"]
        assert '"POST /animals?kind=sloth" 201 5' in record.getMessage()
        assert record.getMessage().startswith("127.0.0.1 - - [")

    def test_logs_json(self, caplog):
        handler = LoggingMiddleware(log_format="json")(text_handler("hello"))

        with caplog.at_level(logging.INFO, logger="sloth.access"):
            writer = serve(handler, make_request("GET", "/x"))

        [record] = [r for r in caplog.records if r.name == "sloth.access"]
        entry = json.loads(record.getMessage())
        assert entry["method"] == "GET"
        assert entry["path"] == "/x"
        assert entry["status_code"] == 200
        assert entry["request_id"] == writer.sent_headers.get("X-Request-ID")

    def test_request_id_header(self):
        writer = serve(LoggingMiddleware()(text_handler("ok")), make_request("GET"))
        assert len(writer.sent_headers.get("X-Request-ID")) == 8

    def test_request_id_disabled(self):
        handler = LoggingMiddleware(include_request_id=False)(text_handler("ok"))
        writer = serve(handler, make_request("GET"))

        assert "X-Request-ID" not in writer.sent_headers

    def test_skip_paths(self, caplog):
        handler = LoggingMiddleware(skip_paths=["/health"])(text_handler("ok"))

        with caplog.at_level(logging.INFO, logger="sloth.access"):
            serve(handler, make_request("GET", "/health"))

        assert not [r for r in caplog.records if r.name == "sloth.access"]

    def test_failure_logged_and_raised(self, caplog):
        def broken(writer, request):
            raise RuntimeError("boom")

        with caplog.at_level(logging.INFO, logger="sloth.access"):
            with pytest.raises(RuntimeError):
                serve(LoggingMiddleware()(broken), make_request("GET", "/x"))

        [record] = [r for r in caplog.records if r.name == "sloth.access"]
        assert record.levelno == logging.ERROR
        assert "RuntimeError: boom" in record.getMessage()

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            LoggingMiddleware(log_format="xml")
