"""Tests for the IPFS HTTP client."""

import httpx
import pytest

from chainproof_api.distributed.ipfs import IPFSClient
from chainproof_api.errors import PublishError

API_URL = "http://ipfs.test:5001"
GATEWAY = "https://gateway.test"


def make_client(handler) -> IPFSClient:
    transport = httpx.MockTransport(handler)
    return IPFSClient(api_url=API_URL, gateway_url=GATEWAY, client=httpx.Client(transport=transport))


def test_publish_posts_to_add_endpoint():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.read()
        return httpx.Response(200, json={"Name": "photo.jpg", "Hash": "QmTestHash", "Size": "1234"})

    receipt = make_client(handler).publish(b"image-bytes", file_name="photo.jpg")

    assert seen["url"] == f"{API_URL}/api/v0/add?pin=true"
    assert b"image-bytes" in seen["body"]
    assert b'filename="photo.jpg"' in seen["body"]
    assert receipt.network_hash == "QmTestHash"
    assert receipt.size_bytes == 1234
    assert receipt.gateway_url == f"{GATEWAY}/ipfs/QmTestHash"


def test_size_falls_back_to_payload_length():
    client = make_client(lambda request: httpx.Response(200, json={"Hash": "QmNoSize"}))
    assert client.publish(b"12345").size_bytes == 5


def test_http_error_raises_publish_error():
    client = make_client(lambda request: httpx.Response(500, text="node exploded"))
    with pytest.raises(PublishError):
        client.publish(b"data")


def test_transport_error_raises_publish_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PublishError):
        make_client(handler).publish(b"data")


def test_malformed_json_raises_publish_error():
    client = make_client(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(PublishError, match="malformed"):
        client.publish(b"data")


def test_missing_hash_raises_publish_error():
    client = make_client(lambda request: httpx.Response(200, json={"Size": "4"}))
    with pytest.raises(PublishError, match="did not include a hash"):
        client.publish(b"data")


def test_gateway_url_strips_trailing_slash():
    client = IPFSClient(api_url=API_URL, gateway_url="https://ipfs.io/")
    assert client.gateway_url("QmX") == "https://ipfs.io/ipfs/QmX"
