"""
Unit tests for URL routing.
"""

import json

import pytest

from helloweb.http.router import (
    Handler,
    HandlerFunc,
    Route,
    Router,
    as_handler,
    clean_path,
)
from helloweb.http.status_codes import HTTPStatus

from conftest import make_request


def write_text(text):
    """Plain-function handler that writes text."""
    def handler(request, writer):
        writer.write(text)
    return handler


class Echo(Handler):
    def serve(self, request, writer):
        writer.write(f"{request.method} {request.path}")


class TestRoute:
    """Tests for Route.covers()."""

    def test_exact_pattern(self):
        route = Route(pattern="/sum", method=None, handler=Echo())

        assert route.subtree is False
        assert route.covers("/sum")
        assert not route.covers("/sum/")
        assert not route.covers("/summary")

    def test_subtree_pattern(self):
        route = Route(pattern="/sum/", method=None, handler=Echo())

        assert route.subtree is True
        assert route.covers("/sum/")
        assert route.covers("/sum/a/b")
        assert not route.covers("/sum")

    def test_root_covers_everything(self):
        route = Route(pattern="/", method=None, handler=Echo())
        assert route.covers("/")
        assert route.covers("/anything/at/all")


class TestRouterMatching:
    """Tests for pattern precedence."""

    @pytest.fixture
    def router(self):
        router = Router()
        router.add_route("/", write_text("root"))
        router.add_route("/sum", write_text("exact"))
        router.add_route("/sum/", write_text("subtree"))
        router.add_route("/sum/hello", write_text("hello"))
        return router

    @pytest.mark.parametrize("path,expected", [
        ("/", "/"),
        ("/sum", "/sum"),
        ("/sum/", "/sum/"),
        ("/sum/hello", "/sum/hello"),
        ("/sum/hello/x", "/sum/"),
        ("/sum/other", "/sum/"),
        ("/summary", "/"),
        ("/nothing", "/"),
    ])
    def test_longest_pattern_wins(self, router, path, expected):
        """Test that the most specific covering pattern is chosen."""
        assert router.match_pattern(path) == expected

    def test_registration_order_does_not_matter(self):
        """Test that registering / last or first makes no difference."""
        first = Router()
        first.add_route("/", write_text("root"))
        first.add_route("/sum/", write_text("subtree"))

        last = Router()
        last.add_route("/sum/", write_text("subtree"))
        last.add_route("/", write_text("root"))

        for router in (first, last):
            assert router.handle(make_request("GET", "/sum/x")).text == "subtree"

    def test_no_match_without_root(self):
        router = Router()
        router.add_route("/sum", write_text("exact"))

        assert router.match("GET", "/other") is None
        assert router.match_pattern("/other") is None

    def test_match_returns_route(self, router):
        route = router.match("GET", "/sum/hello")

        assert route is not None
        assert route.pattern == "/sum/hello"


class TestRouterHandle:
    """Tests for Router.handle()."""

    def test_handler_output_becomes_response(self):
        router = Router()
        router.add_route("/", write_text("Hello World"))

        response = router.handle(make_request("GET", "/"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello World"
        assert response.get_header("Content-Type") == "text/plain; charset=utf-8"

    def test_not_found(self):
        """Test 404 when no pattern covers the path."""
        router = Router()
        router.add_route("/sum", write_text("exact"))

        response = router.handle(make_request("GET", "/nothing"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert "/nothing" in json.loads(response.body)["error"]

    def test_method_not_allowed(self):
        """Test 405 with an Allow header when the method is missing."""
        router = Router()
        router.add_route("/users", write_text("list"), method="GET")
        router.add_route("/users", write_text("create"), method="POST")

        response = router.handle(make_request("DELETE", "/users"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, HEAD, POST"

    def test_specific_method_beats_any(self):
        router = Router()
        router.add_route("/", write_text("any"))
        router.add_route("/", write_text("post"), method="POST")

        assert router.handle(make_request("POST", "/")).text == "post"
        assert router.handle(make_request("GET", "/")).text == "any"

    def test_head_falls_back_to_get(self):
        router = Router()
        router.add_route("/", write_text("Hello"), method="GET")

        response = router.handle(make_request("HEAD", "/"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello"

    def test_any_method_route(self):
        router = Router()
        router.add_route("/", Echo())

        for method in ("GET", "POST", "PUT", "DELETE"):
            assert router.handle(make_request(method, "/")).text == f"{method} /"

    def test_handler_exception_propagates(self):
        def boom(request, writer):
            raise RuntimeError("boom")

        router = Router()
        router.add_route("/", boom)

        with pytest.raises(RuntimeError):
            router.handle(make_request("GET", "/"))

    def test_router_is_callable(self):
        router = Router()
        router.add_route("/", write_text("Hello"))
        assert router(make_request("GET", "/")).text == "Hello"


class TestRedirects:
    """Tests for trailing-slash and path-cleaning redirects."""

    def test_trailing_slash_redirect(self):
        """Test /docs redirects to /docs/ when only the subtree is registered."""
        router = Router()
        router.add_route("/docs/", write_text("docs"))

        response = router.handle(make_request("GET", "/docs"))

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "/docs/"

    def test_trailing_slash_redirect_keeps_query(self):
        router = Router()
        router.add_route("/docs/", write_text("docs"))

        response = router.handle(make_request("GET", "/docs?page=2&q=x"))

        assert response.headers["Location"] == "/docs/?page=2&q=x"

    def test_exact_pattern_suppresses_redirect(self):
        """Test /sum is served by its exact route even though /sum/ exists."""
        router = Router()
        router.add_route("/sum", write_text("exact"))
        router.add_route("/sum/", write_text("subtree"))

        response = router.handle(make_request("GET", "/sum"))

        assert response.status == HTTPStatus.OK
        assert response.text == "exact"

    @pytest.mark.parametrize("target,location", [
        ("/sum//hello", "/sum/hello"),
        ("/./params", "/params"),
        ("/a/../sum?a=1", "/sum?a=1"),
    ])
    def test_unclean_path_redirect(self, target, location):
        router = Router()
        router.add_route("/", write_text("root"))

        response = router.handle(make_request("GET", target))

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == location

    @pytest.mark.parametrize("target,location", [
        ("//params?x=1", "/params?x=1"),
        ("/a%3Fb//c", "/a%3Fb/c"),
        ("/caf%C3%A9//menu", "/caf%C3%A9/menu"),
        ("/100%25//x", "/100%25/x"),
    ])
    def test_redirect_location_is_escaped(self, target, location):
        """Test the Location path is re-escaped after cleaning."""
        router = Router()
        router.add_route("/", write_text("root"))

        response = router.handle(make_request("GET", target))

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == location

    def test_redirect_location_cannot_split_headers(self):
        """Test decoded CR/LF stay escaped inside the Location value."""
        router = Router()
        router.add_route("/", write_text("root"))

        response = router.handle(make_request("GET", "/x//%0d%0aSet-Cookie:%20evil=1"))
        location = response.headers["Location"]

        assert location == "/x/%0D%0ASet-Cookie:%20evil=1"
        assert "\r" not in location and "\n" not in location
        assert b"\r\nSet-Cookie" not in response.to_bytes()

    def test_trailing_slash_redirect_is_escaped(self):
        router = Router()
        router.add_route("/a b/", write_text("spaced"))

        response = router.handle(make_request("GET", "/a%20b"))

        assert response.headers["Location"] == "/a%20b/"


class TestRegistration:
    """Tests for add_route() and the decorators."""

    @pytest.mark.parametrize("pattern", ["", "sum", "sum/"])
    def test_invalid_pattern(self, pattern):
        router = Router()
        with pytest.raises(ValueError):
            router.add_route(pattern, write_text("x"))

    def test_invalid_handler(self):
        router = Router()
        with pytest.raises(TypeError):
            router.add_route("/", "not a handler")

    def test_reregistration_replaces(self):
        """Test the later registration of a pattern wins."""
        router = Router()
        router.add_route("/", write_text("first"))
        router.add_route("/", write_text("second"))

        assert len(router) == 1
        assert router.handle(make_request("GET", "/")).text == "second"

    def test_method_is_uppercased(self):
        router = Router()
        route = router.add_route("/", write_text("x"), method="get")
        assert route.method == "GET"

    def test_decorators(self):
        """Test route() and get() register the function unchanged."""
        router = Router()

        @router.get("/hello")
        def hello(request, writer):
            writer.write("get")

        @router.route("/hello", "POST")
        def create(request, writer):
            writer.write("post")

        @router.route("/any")
        def anything(request, writer):
            writer.write("any")

        assert callable(hello)
        assert router.handle(make_request("GET", "/hello")).text == "get"
        assert router.handle(make_request("POST", "/hello")).text == "post"
        assert router.handle(make_request("PUT", "/any")).text == "any"

    def test_routes_sorted(self):
        router = Router()
        router.add_route("/sum", write_text("x"))
        router.add_route("/", write_text("x"))
        router.add_route("/params", write_text("x"))

        assert [r.pattern for r in router.routes()] == ["/", "/params", "/sum"]

    def test_print_routes(self, capsys):
        router = Router()
        router.add_route("/sum", write_text("x"), name="sum")
        router.print_routes()

        out = capsys.readouterr().out
        assert "ANY" in out
        assert "/sum" in out


class TestHandlerAdapters:
    """Tests for HandlerFunc and as_handler()."""

    def test_handler_func_adapts_function(self):
        def greet(request, writer):
            writer.write("Hello World")

        handler = HandlerFunc(greet)

        assert isinstance(handler, Handler)
        assert handler.name == "greet"
        assert repr(handler) == "HandlerFunc(greet)"

    def test_as_handler_keeps_handler_objects(self):
        echo = Echo()
        assert as_handler(echo) is echo

    def test_as_handler_accepts_duck_typed_serve(self):
        class Duck:
            def serve(self, request, writer):
                writer.write("quack")

        duck = Duck()
        assert as_handler(duck) is duck

    def test_as_handler_wraps_functions(self):
        handler = as_handler(write_text("x"))
        assert isinstance(handler, HandlerFunc)

    def test_as_handler_rejects_others(self):
        with pytest.raises(TypeError):
            as_handler(42)


class TestCleanPath:
    """Tests for clean_path()."""

    @pytest.mark.parametrize("path,expected", [
        ("", "/"),
        ("/", "/"),
        ("/sum", "/sum"),
        ("/sum/", "/sum/"),
        ("sum", "/sum"),
        ("//sum///hello", "/sum/hello"),
        ("/a/./b/", "/a/b/"),
        ("/a/b/../c", "/a/c"),
        ("/../a", "/a"),
    ])
    def test_clean(self, path, expected):
        assert clean_path(path) == expected
