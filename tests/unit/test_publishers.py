"""Tests for publishers — local store and the Pinata HTTP client.

The Pinata client is exercised against ``httpx.MockTransport`` so no
network access is needed.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from pydantic import SecretStr

from provenant.bridge.publishers import (
    LocalStorePublisher,
    PinataPublisher,
    Publisher,
    PublishPermanentError,
    PublishTransientError,
    RetrievalError,
    build_publisher,
    sanitize_filename,
)
from provenant.config import ProvenantConfig

CID = "bafkreigh2akiscaildcqabsyg3dfr6chu3fgpregiymsck7e7aqa4s52zy"
UPLOAD_URL = "https://uploads.example.test/v3/files"
GATEWAY = "https://gw.example.test/ipfs"


def _pinata(handler, **kwargs) -> PinataPublisher:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return PinataPublisher(
        kwargs.pop("jwt", "test-jwt"),
        upload_url=UPLOAD_URL,
        gateway=GATEWAY,
        client=client,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Local store
# ---------------------------------------------------------------------------


class TestLocalStorePublisher:
    def test_satisfies_protocol(self, local_publisher):
        assert isinstance(local_publisher, Publisher)

    def test_publish_and_fetch(self, local_publisher: LocalStorePublisher):
        locator = local_publisher.publish(b"bytes", timeout=1.0)
        assert locator.startswith("sha256:")
        assert local_publisher.fetch(locator) == b"bytes"

    def test_empty_payload_is_permanent(self, local_publisher: LocalStorePublisher):
        with pytest.raises(PublishPermanentError):
            local_publisher.publish(b"", timeout=1.0)

    def test_oversize_payload_is_permanent(self, artifact_store):
        publisher = LocalStorePublisher(artifact_store, max_bytes=3)
        with pytest.raises(PublishPermanentError):
            publisher.publish(b"four", timeout=1.0)

    def test_fetch_missing(self, local_publisher: LocalStorePublisher):
        with pytest.raises(RetrievalError):
            local_publisher.fetch("sha256:" + "11" * 32)


# ---------------------------------------------------------------------------
# Pinata
# ---------------------------------------------------------------------------


class TestPinataPublish:
    def test_success_returns_cid(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"cid": CID}})

        assert _pinata(handler).publish(b"doc", timeout=5.0) == CID
        assert seen[0].headers["Authorization"] == "Bearer test-jwt"
        assert str(seen[0].url) == UPLOAD_URL

    def test_legacy_response_shape(self):
        publisher = _pinata(lambda r: httpx.Response(200, json={"IpfsHash": CID}))
        assert publisher.publish(b"doc", timeout=5.0) == CID

    def test_missing_jwt_is_permanent(self):
        publisher = _pinata(lambda r: httpx.Response(200), jwt="")
        assert publisher.is_configured is False
        with pytest.raises(PublishPermanentError):
            publisher.publish(b"doc", timeout=5.0)

    @pytest.mark.parametrize("status", [429, 500, 502, 503])
    def test_server_side_errors_are_transient(self, status):
        publisher = _pinata(lambda r: httpx.Response(status))
        with pytest.raises(PublishTransientError):
            publisher.publish(b"doc", timeout=5.0)

    @pytest.mark.parametrize("status", [400, 401, 403, 413])
    def test_client_errors_are_permanent(self, status):
        publisher = _pinata(lambda r: httpx.Response(status))
        with pytest.raises(PublishPermanentError):
            publisher.publish(b"doc", timeout=5.0)

    def test_timeout_is_transient(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(PublishTransientError, match="timed out"):
            _pinata(handler).publish(b"doc", timeout=5.0)

    def test_connection_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(PublishTransientError):
            _pinata(handler).publish(b"doc", timeout=5.0)

    def test_missing_cid_is_permanent(self):
        publisher = _pinata(lambda r: httpx.Response(200, json={"data": {}}))
        with pytest.raises(PublishPermanentError, match="no CID"):
            publisher.publish(b"doc", timeout=5.0)

    def test_non_json_body_is_permanent(self):
        publisher = _pinata(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(PublishPermanentError):
            publisher.publish(b"doc", timeout=5.0)

    def test_oversize_rejected_before_request(self):
        calls: list[httpx.Request] = []
        publisher = _pinata(lambda r: calls.append(r) or httpx.Response(200), max_bytes=2)
        with pytest.raises(PublishPermanentError):
            publisher.publish(b"doc", timeout=5.0)
        assert calls == []


class TestPinataRetrieval:
    def test_gateway_url(self):
        publisher = _pinata(lambda r: httpx.Response(200))
        assert publisher.gateway_url(CID) == f"{GATEWAY}/{CID}"
        assert publisher.gateway_url(CID, filename="my doc.pdf").endswith("?filename=my_doc.pdf")

    @pytest.mark.parametrize("bad", ["", "   ", "not-a-cid", "Qm123"])
    def test_gateway_url_rejects_bad_cids(self, bad):
        with pytest.raises(ValueError):
            _pinata(lambda r: httpx.Response(200)).gateway_url(bad)

    def test_download(self):
        publisher = _pinata(lambda r: httpx.Response(200, content=b"doc"))
        assert publisher.download(CID) == b"doc"

    def test_download_not_found(self):
        publisher = _pinata(lambda r: httpx.Response(404))
        with pytest.raises(RetrievalError, match="not found"):
            publisher.download(CID)

    def test_download_bad_cid(self):
        with pytest.raises(RetrievalError):
            _pinata(lambda r: httpx.Response(200)).download("nope")


class TestHelpers:
    def test_sanitize_filename(self):
        assert sanitize_filename("../etc/passwd") == "_etc_passwd"
        assert len(sanitize_filename("a" * 400)) == 255

    def test_build_publisher_kinds(self, tmp_path: Path):
        base = {"artifact_store_path": tmp_path / "a"}
        assert build_publisher(ProvenantConfig(publisher="none", **base)) is None
        assert isinstance(
            build_publisher(ProvenantConfig(publisher="local", **base)), LocalStorePublisher
        )
        pinata = build_publisher(
            ProvenantConfig(publisher="pinata", pinata_jwt=SecretStr("t"), **base)
        )
        assert isinstance(pinata, PinataPublisher)
        assert pinata.is_configured

    def test_build_publisher_unknown(self):
        with pytest.raises(ValueError):
            build_publisher(ProvenantConfig(publisher="s3"))
