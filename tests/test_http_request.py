import pytest

from themis.http_request import HttpMethod, HttpRequest, UnknownMethodError


@pytest.mark.parametrize("name", [m.name for m in HttpMethod])
def test_set_method_round_trip(name):
    request = HttpRequest()
    request.set_method(name)
    assert request.method is HttpMethod[name]
    assert request.method_string() == name


@pytest.mark.parametrize("name", ["get", "FETCH", "", "GET "])
def test_set_method_unknown(name):
    request = HttpRequest()
    with pytest.raises(UnknownMethodError):
        request.set_method(name)


def test_unknown_method_keeps_previous():
    request = HttpRequest()
    request.set_method("POST")
    with pytest.raises(UnknownMethodError):
        request.set_method("BREW")
    assert request.method is HttpMethod.POST


def test_get_header_is_case_insensitive():
    request = HttpRequest(headers={"content-type": "application/x-www-form-urlencoded"})
    assert request.get_header("Content-Type") == "application/x-www-form-urlencoded"
    assert request.get_header("CONTENT-TYPE") == "application/x-www-form-urlencoded"


def test_get_header_missing():
    request = HttpRequest(headers={"host": "example.com"})
    assert request.get_header("Content-Length") is None


def test_defaults_are_independent():
    first = HttpRequest()
    second = HttpRequest()
    first.headers["host"] = "example.com"
    first.body.extend(b"abc")
    assert second.headers == {}
    assert second.body == bytearray()