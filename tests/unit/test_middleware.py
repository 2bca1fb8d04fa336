"""
Unit tests for the middleware pipeline and the access log.
"""

import json
import logging

import pytest

from helloweb.http.response import HTTPResponse
from helloweb.middleware import (
    FunctionMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    RequestLog,
    function_middleware,
)
from helloweb.samples import build_router

from conftest import make_request


class Tag(Middleware):
    """Records the order it was entered and left in."""

    def __init__(self, label, trace):
        self.label = label
        self.trace = trace

    def __call__(self, request, next):
        self.trace.append(f"{self.label}>")
        response = next(request)
        self.trace.append(f"<{self.label}")
        return response


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_empty_pipeline_returns_handler(self):
        pipeline = MiddlewarePipeline()
        router = build_router("hello-world")

        handler = pipeline.wrap(router.handle)

        assert handler(make_request("GET", "/")).body == b"Hello World"

    def test_first_added_is_outermost(self):
        trace = []
        pipeline = MiddlewarePipeline().use(Tag("a", trace), Tag("b", trace))

        def final(request):
            trace.append("handler")
            return HTTPResponse(body=b"done")

        pipeline.wrap(final)(make_request("GET", "/"))

        assert trace == ["a>", "b>", "handler", "<b", "<a"]
        assert len(pipeline) == 2
        assert [mw.label for mw in pipeline] == ["a", "b"]

    def test_short_circuit(self):
        """Test a middleware can answer without calling next."""
        @function_middleware
        def deny(request, next):
            return HTTPResponse(body=b"denied")

        def final(request):
            raise AssertionError("should not be reached")

        handler = MiddlewarePipeline().add(deny).wrap(final)

        assert handler(make_request("GET", "/")).body == b"denied"

    def test_function_middleware(self):
        @function_middleware
        def sample_header(request, next):
            response = next(request)
            response.set_header("X-Sample", "query-params")
            return response

        handler = MiddlewarePipeline().add(sample_header).wrap(build_router().handle)
        response = handler(make_request("GET", "/sum?a=1&b=2"))

        assert isinstance(sample_header, FunctionMiddleware)
        assert sample_header.name == "sample_header"
        assert response.headers["X-Sample"] == "query-params"
        assert response.body == b"3"


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware."""

    def run(self, middleware, target, method="GET"):
        handler = MiddlewarePipeline().add(middleware).wrap(build_router().handle)
        request = make_request(method, target, client_address=("10.0.0.1", 5000))
        return handler(request)

    def test_text_log_line(self, caplog):
        with caplog.at_level(logging.INFO, logger="helloweb.access"):
            response = self.run(LoggingMiddleware(), "/sum?a=3&b=4")

        assert response.body == b"7"
        assert len(caplog.records) == 1
        line = caplog.records[0].getMessage()
        assert line.startswith("10.0.0.1 - - [")
        assert '"GET /sum?a=3&b=4" 200 1 ' in line

    def test_json_log_line(self, caplog):
        with caplog.at_level(logging.INFO, logger="helloweb.access"):
            response = self.run(LoggingMiddleware(log_format="json"), "/params?x=1")

        entry = json.loads(caplog.records[0].getMessage())
        assert entry["method"] == "GET"
        assert entry["path"] == "/params"
        assert entry["query"] == "x=1"
        assert entry["status_code"] == 200
        assert entry["content_length"] == 4
        assert entry["request_id"] == response.headers["X-Request-ID"]

    def test_request_id_header(self):
        response = self.run(LoggingMiddleware(), "/")

        assert len(response.headers["X-Request-ID"]) == 8

    def test_request_id_header_disabled(self):
        response = self.run(LoggingMiddleware(include_request_id=False), "/")
        assert "X-Request-ID" not in response.headers

    def test_skip_paths(self, caplog):
        with caplog.at_level(logging.INFO, logger="helloweb.access"):
            self.run(LoggingMiddleware(skip_paths=["/"]), "/")

        assert caplog.records == []

    def test_errors_logged_and_reraised(self, caplog):
        def boom(request):
            raise RuntimeError("boom")

        handler = MiddlewarePipeline().add(LoggingMiddleware()).wrap(boom)

        with caplog.at_level(logging.INFO, logger="helloweb.access"):
            with pytest.raises(RuntimeError):
                handler(make_request("GET", "/"))

        assert caplog.records[0].levelno == logging.ERROR
        assert "RuntimeError: boom" in caplog.records[0].getMessage()

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            LoggingMiddleware(log_format="xml")


class TestRequestLog:
    """Tests for RequestLog formatting."""

    def make_entry(self, **overrides):
        values = dict(
            request_id="abcd1234",
            method="GET",
            path="/sum",
            query="",
            client_ip="",
            user_agent="-",
            status_code=200,
            content_length=1,
            duration_ms=1.23456,
            timestamp="19/Oct/2026:12:00:00 +0000",
        )
        values.update(overrides)
        return RequestLog(**values)

    def test_to_text_without_query(self):
        assert self.make_entry().to_text() == (
            '- - - [19/Oct/2026:12:00:00 +0000] "GET /sum" 200 1 1.23ms'
        )

    def test_to_text_with_query(self):
        assert '"GET /sum?a=1"' in self.make_entry(query="a=1").to_text()

    def test_to_dict_rounds_duration(self):
        assert self.make_entry().to_dict()["duration_ms"] == 1.23
