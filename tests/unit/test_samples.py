"""
Unit tests for the sample routers.
"""

import pytest

from helloweb.http.router import Router
from helloweb.http.status_codes import HTTPStatus
from helloweb.samples import DEFAULT_SAMPLE, SAMPLES, build_router, sample_names

from conftest import make_request


def get(router: Router, target: str, method: str = "GET"):
    return router.handle(make_request(method, target))


class TestBuildRouter:
    """Tests for build_router()."""

    @pytest.mark.parametrize("name", sorted(SAMPLES))
    def test_every_sample_builds(self, name):
        router = build_router(name)

        assert isinstance(router, Router)
        assert len(router) > 0

    def test_default_sample(self):
        assert DEFAULT_SAMPLE == "query-params"
        assert [r.pattern for r in build_router().routes()] == [
            "/", "/params", "/sum", "/sum/", "/sum/hello",
        ]

    def test_fresh_router_each_call(self):
        assert build_router("hello-world") is not build_router("hello-world")

    def test_unknown_sample(self):
        with pytest.raises(ValueError) as exc_info:
            build_router("nope")

        assert "nope" in str(exc_info.value)
        assert "query-params" in str(exc_info.value)

    def test_sample_names(self):
        assert set(sample_names()) == {
            "hello-world",
            "hello-handler",
            "hello-func",
            "hello-name",
            "query-params",
        }


class TestGreetingSamples:
    """Tests for the three Hello World routers and hello-name."""

    @pytest.mark.parametrize("name", ["hello-world", "hello-handler", "hello-func"])
    def test_hello_world(self, name):
        router = build_router(name)

        for target in ("/", "/anything", "/a/b?c=d"):
            response = get(router, target)
            assert response.status == HTTPStatus.OK
            assert response.body == b"Hello World"

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
    def test_hello_world_any_method(self, method):
        assert get(build_router("hello-world"), "/", method).text == "Hello World"

    def test_hello_name(self):
        router = build_router("hello-name")

        assert get(router, "/hello?name=Ada").text == "Hello Ada"
        assert get(router, "/hello").text == "Hello "

    def test_hello_name_only_serves_hello(self):
        router = build_router("hello-name")

        assert get(router, "/").status == HTTPStatus.NOT_FOUND
        assert get(router, "/hello/x").status == HTTPStatus.NOT_FOUND


class TestQueryParamsSample:
    """Tests for the precedence table of the query-params router."""

    @pytest.fixture
    def router(self):
        return build_router("query-params")

    @pytest.mark.parametrize("target,expected", [
        ("/sum?a=3&b=4", "7"),
        ("/sum?a=3&b=4&c=foo", "7"),
        ("/sum/", "sum"),
        ("/sum/xyz", "sum"),
        ("/sum/hello", "Hello"),
        ("/sum/hello/more", "sum"),
        ("/", "Hello"),
        ("/anything", "Hello"),
        ("/params?x=1", "x:1\n"),
    ])
    def test_routing(self, router, target, expected):
        response = get(router, target)

        assert response.status == HTTPStatus.OK
        assert response.text == expected

    def test_sum_is_not_redirected(self, router):
        """Test /sum hits the exact route instead of redirecting to /sum/."""
        response = get(router, "/sum")

        assert response.status == HTTPStatus.OK
        assert response.text == "0"
