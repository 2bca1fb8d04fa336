"""
Unit tests for HTTP responses and the handler-facing ResponseWriter.
"""

import json
import logging
from datetime import datetime, timezone

import pytest

from helloweb.http.response import (
    DEFAULT_CONTENT_TYPE,
    HTTPResponse,
    ResponseBuilder,
    ResponseWriter,
    error_response,
    format_http_date,
    method_not_allowed,
    not_found,
    redirect,
)
from helloweb.http.status_codes import HTTPStatus


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_basic(self):
        """Test serialization to bytes."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"Content-Type": "text/plain"},
            body=b"Hello World",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Type: text/plain\r\n" in result
        assert b"Content-Length: 11\r\n" in result
        assert b"Server: helloweb/1.0\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\nHello World")

    def test_to_bytes_without_body(self):
        """Test HEAD-style serialization keeps Content-Length but drops the body."""
        response = HTTPResponse(body=b"Hello World")

        result = response.to_bytes(include_body=False)

        assert b"Content-Length: 11\r\n" in result
        assert result.endswith(b"\r\n\r\n")
        assert b"Hello World" not in result

    def test_explicit_headers_not_overridden(self):
        """Test that caller-supplied Server/Content-Length headers win."""
        response = HTTPResponse(headers={"server": "custom"}, body=b"abc")

        result = response.to_bytes(server_name="helloweb/1.0")

        assert b"server: custom\r\n" in result
        assert b"Server: helloweb/1.0" not in result

    def test_set_header_chains(self):
        response = HTTPResponse().set_header("Connection", "close").set_header("X-A", "b")

        assert response.get_header("connection") == "close"
        assert response.get_header("x-a") == "b"
        assert response.get_header("missing") is None


class TestResponseWriter:
    """Tests for the writer handlers receive."""

    def test_defaults(self):
        """Test a fresh writer reports 200 and an empty body."""
        writer = ResponseWriter()

        assert writer.status == HTTPStatus.OK
        assert writer.wrote_header is False
        assert writer.body == b""

    def test_write_commits_ok(self):
        """Test the first write commits status 200."""
        writer = ResponseWriter()

        count = writer.write("Hello World")

        assert count == 11
        assert writer.wrote_header is True
        assert writer.status == HTTPStatus.OK
        assert writer.text == "Hello World"

    def test_write_returns_encoded_length(self):
        """Test the byte count is of the UTF-8 encoding, not the characters."""
        writer = ResponseWriter()
        assert writer.write("é") == 2
        assert writer.write(b"ab") == 2
        assert writer.body == "é".encode("utf-8") + b"ab"

    def test_write_header_before_write(self):
        writer = ResponseWriter()
        writer.write_header(201)
        writer.write("created")

        assert writer.status == HTTPStatus.CREATED
        assert writer.to_response().status == HTTPStatus.CREATED

    def test_write_header_after_write_is_ignored(self, caplog):
        """Test that only the first status counts and the rest are logged."""
        writer = ResponseWriter()
        writer.write("Hello")

        with caplog.at_level(logging.WARNING, logger="helloweb.http.response"):
            writer.write_header(404)

        assert writer.status == HTTPStatus.OK
        assert "Superfluous write_header(404)" in caplog.text

    def test_second_write_header_is_ignored(self):
        writer = ResponseWriter()
        writer.write_header(202)
        writer.write_header(500)

        assert writer.status == HTTPStatus.ACCEPTED

    def test_write_header_unknown_code(self):
        writer = ResponseWriter()
        with pytest.raises(ValueError):
            writer.write_header(799)

    def test_default_content_type(self):
        """Test a body without Content-Type is labelled text/plain."""
        writer = ResponseWriter()
        writer.write("Hello")

        response = writer.to_response()

        assert response.get_header("Content-Type") == DEFAULT_CONTENT_TYPE
        assert response.body == b"Hello"

    def test_explicit_content_type_kept(self):
        writer = ResponseWriter()
        writer.set_header("content-type", "application/json")
        writer.write("{}")

        response = writer.to_response()

        assert response.get_header("Content-Type") == "application/json"
        assert DEFAULT_CONTENT_TYPE not in response.headers.values()

    def test_empty_body_has_no_content_type(self):
        response = ResponseWriter().to_response()

        assert response.status == HTTPStatus.OK
        assert response.get_header("Content-Type") is None


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_fluent_interface(self):
        """Test method chaining."""
        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("X-Custom", "value")
            .json({"id": 1})
            .build())

        assert response.status == HTTPStatus.CREATED
        assert response.headers["X-Custom"] == "value"
        assert json.loads(response.body) == {"id": 1}
        assert "application/json" in response.headers["Content-Type"]

    def test_redirect(self):
        """Test temporary and permanent redirects."""
        temporary = ResponseBuilder().redirect("/new").build()
        assert temporary.status == HTTPStatus.FOUND
        assert temporary.headers["Location"] == "/new"

        permanent = ResponseBuilder().redirect("/new", permanent=True).build()
        assert permanent.status == HTTPStatus.MOVED_PERMANENTLY


class TestConvenienceFunctions:
    """Tests for response convenience functions."""

    def test_not_found(self):
        response = not_found()
        assert response.status == HTTPStatus.NOT_FOUND
        assert json.loads(response.body) == {"error": "Not Found"}

    def test_error_response_defaults_to_phrase(self):
        response = error_response(HTTPStatus.REQUEST_TIMEOUT)
        assert json.loads(response.body) == {"error": "Request Timeout"}

    def test_method_not_allowed(self):
        """Test 405 response carries the Allow header."""
        response = method_not_allowed(["GET", "POST"])

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, POST"
        assert json.loads(response.body)["allowed"] == ["GET", "POST"]

    def test_redirect(self):
        response = redirect("/docs/", permanent=True)
        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "/docs/"


class TestFormatHttpDate:
    """Tests for format_http_date()."""

    def test_format(self):
        dt = datetime(2026, 10, 19, 8, 5, 3, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Mon, 19 Oct 2026 08:05:03 GMT"
