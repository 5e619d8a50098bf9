# ruff: noqa: S101, S113
import pytest
import requests


@pytest.fixture
def ssl_server(temp_server_factory):
    """A listening temp server serving both HTTP and HTTPS."""
    return temp_server_factory(ssl=True)


def test_ssl_server_exposes_both_urls(ssl_server):
    """Test that a TLS server listens on two ports."""
    assert ssl_server.ssl_port > 0
    assert ssl_server.ssl_port != ssl_server.port
    assert ssl_server.ssl_url == f"https://localhost:{ssl_server.ssl_port}"
    assert ssl_server.url == f"http://localhost:{ssl_server.port}"
    assert ssl_server.https.listening
    assert ssl_server.ca_cert.startswith("-----BEGIN CERTIFICATE-----")
    assert ssl_server.ca_file.read_text() == ssl_server.ca_cert


def test_ssl_server_serves_routes_on_both_listeners(ssl_server):
    """Test that routes are reachable over HTTP and HTTPS."""
    ssl_server.get("/foo", "bar")

    assert requests.get(ssl_server.url + "/foo").text == "bar"
    response = requests.get(ssl_server.ssl_url + "/foo", verify=str(ssl_server.ca_file))
    assert response.text == "bar"


def test_ssl_server_is_not_trusted_without_ca(ssl_server):
    """Test that clients that do not trust the issued CA reject the server."""
    ssl_server.get("/foo", "bar")
    with pytest.raises(requests.exceptions.SSLError):
        requests.get(ssl_server.ssl_url + "/foo")


def test_ssl_server_restart(ssl_server):
    """Test that both listeners stop and start together and the credentials are kept."""
    ssl_server.get("/foo", "bar")
    ca_cert = ssl_server.ca_cert
    port, ssl_port = ssl_server.port, ssl_server.ssl_port

    ssl_server.close()
    assert ssl_server.url is None
    assert ssl_server.ssl_url is None
    assert ssl_server.ssl_port is None
    assert not ssl_server.https.listening

    ssl_server.listen()
    assert ssl_server.port != port
    assert ssl_server.ssl_port != ssl_port
    assert ssl_server.ca_cert == ca_cert

    response = requests.get(ssl_server.ssl_url + "/foo", verify=str(ssl_server.ca_file))
    assert response.text == "bar"


def test_ssl_server_with_certificate_options(temp_server_factory):
    """Test that certificate options are used for the issued certificate."""
    server = temp_server_factory(
        ssl=True, certificate={"alt_names": ["localhost"], "organization": "acme"}
    )
    server.get("/", "ok")
    response = requests.get(server.ssl_url, verify=str(server.ca_file))
    assert response.text == "ok"
