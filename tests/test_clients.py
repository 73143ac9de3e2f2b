import json
import threading
from pathlib import Path
from typing import List

import httpx
import pytest

from nft_api.core.config import PublishingCredentials
from nft_api.core.errors import ConfigurationError, ExternalServiceFault, RenderFailed
from nft_api.modules.nfts.clients.base import RenderJobSpec, RenderResult
from nft_api.modules.nfts.clients.ledger import LedgerGatewayClient
from nft_api.modules.nfts.clients.metadata import HttpMetadataFetcher, to_gateway_url
from nft_api.modules.nfts.clients.pinata import PinataPublisher
from nft_api.modules.nfts.clients.render import FileCopyRenderer, LocalRenderQueue

CREDS = PublishingCredentials(
    api_key="k", secret_api_key="s", gateway="https://gw.test/", api_base_url="https://pinata.test"
)


def _client(handler, base_url: str = "") -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), base_url=base_url)


def _spec(token_id: str = "42", hero_tier: str = "Epic") -> RenderJobSpec:
    return RenderJobSpec(
        token_id=token_id,
        token_address="TokenAddr001",
        hero_tier=hero_tier,
        recipe="Woodland Respite",
        cosmetic_traits={"faceStyle": "Round"},
    )


# --- pinata ---


def test_pinata_pins_json_documents() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"IpfsHash": "QmDoc"})

    pub = PinataPublisher(CREDS, client=_client(handler, CREDS.api_base_url))
    result = pub.publish({"name": "Hero"}, "application/json", name="TokenAddr001_revealed.json")

    assert result.content_address == "QmDoc"
    assert result.url == "https://gw.test/ipfs/QmDoc"
    req = seen[0]
    assert req.url.path == "/pinning/pinJSONToIPFS"
    assert req.headers["pinata_api_key"] == "k"
    assert req.headers["pinata_secret_api_key"] == "s"
    body = json.loads(req.content)
    assert body["pinataContent"] == {"name": "Hero"}
    assert body["pinataMetadata"] == {"name": "TokenAddr001_revealed.json"}


def test_pinata_pins_files(tmp_path: Path) -> None:
    image = tmp_path / "42.png"
    image.write_bytes(b"\x89PNG-data")
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"IpfsHash": "QmImg"})

    pub = PinataPublisher(CREDS, client=_client(handler, CREDS.api_base_url))
    result = pub.publish(image, "image/png", name="42.png")

    assert result.url == "https://gw.test/ipfs/QmImg"
    assert seen[0].url.path == "/pinning/pinFileToIPFS"
    assert seen[0].headers["content-type"].startswith("multipart/form-data")
    assert b"\x89PNG-data" in seen[0].content


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"unexpected": True}),
    ],
)
def test_pinata_bad_responses_are_service_faults(response: httpx.Response) -> None:
    pub = PinataPublisher(CREDS, client=_client(lambda request: response, CREDS.api_base_url))
    with pytest.raises(ExternalServiceFault) as ei:
        pub.publish({"a": 1}, "application/json", name="doc.json")
    assert ei.value.service == "pinata"
    assert ei.value.retryable


def test_pinata_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    pub = PinataPublisher(CREDS, client=_client(handler, CREDS.api_base_url))
    with pytest.raises(ExternalServiceFault):
        pub.publish(b"raw", "image/png", name="raw.png")


# --- ledger ---


def test_ledger_updates_metadata_pointer() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"signature": "5igX"})

    ledger = LedgerGatewayClient("https://ledger.test", client=_client(handler, "https://ledger.test"))
    receipt = ledger.update_metadata_pointer("TokenAddr001", "key-ref", "https://gw.test/ipfs/QmDoc")

    assert receipt.signature == "5igX"
    assert receipt.metadata_url == "https://gw.test/ipfs/QmDoc"
    assert seen[0].url.path == "/tokens/TokenAddr001/metadata-uri"
    assert seen[0].headers["x-signing-key"] == "key-ref"
    assert json.loads(seen[0].content)["metadata_uri"] == "https://gw.test/ipfs/QmDoc"


def test_ledger_error_status() -> None:
    ledger = LedgerGatewayClient(
        "https://ledger.test", client=_client(lambda r: httpx.Response(503), "https://ledger.test")
    )
    with pytest.raises(ExternalServiceFault) as ei:
        ledger.update_metadata_pointer("TokenAddr001", "key-ref", "u")
    assert ei.value.service == "ledger"


def test_ledger_requires_a_gateway_url() -> None:
    with pytest.raises(ConfigurationError):
        LedgerGatewayClient("")


# --- metadata fetcher ---


def test_to_gateway_url() -> None:
    assert to_gateway_url("ipfs://QmX/1.json", "https://gw.test/") == "https://gw.test/ipfs/QmX/1.json"
    assert to_gateway_url("https://arweave.test/abc", "https://gw.test") == "https://arweave.test/abc"


def test_fetcher_returns_document() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://gw.test/ipfs/QmMinted"
        return httpx.Response(200, json={"name": "Hero #1"})

    fetcher = HttpMetadataFetcher("https://gw.test", client=_client(handler))
    assert fetcher.fetch("TokenAddr001", "ipfs://QmMinted") == {"name": "Hero #1"}


@pytest.mark.parametrize(
    "response",
    [httpx.Response(404), httpx.Response(200, text="<html>"), httpx.Response(200, json=[])],
)
def test_fetcher_failures_yield_none(response: httpx.Response) -> None:
    fetcher = HttpMetadataFetcher("https://gw.test", client=_client(lambda request: response))
    assert fetcher.fetch("TokenAddr001", "ipfs://QmMinted") is None



def test_fetcher_keeps_an_empty_document() -> None:
    fetcher = HttpMetadataFetcher("https://gw.test", client=_client(lambda request: httpx.Response(200, json={})))
    assert fetcher.fetch("TokenAddr001", "ipfs://QmMinted") == {}

# --- render ---


def test_file_copy_renderer(tmp_path: Path) -> None:
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "epic.png").write_bytes(b"epic-template")
    queue = LocalRenderQueue(FileCopyRenderer(templates, tmp_path / "out"), max_workers=1)
    try:
        result = queue.submit(_spec()).wait(timeout=5)
    finally:
        queue.shutdown()

    assert result.image_path == tmp_path / "out" / "42.png"
    assert result.image_path.read_bytes() == b"epic-template"
    sidecar = json.loads((tmp_path / "out" / "42.json").read_text(encoding="utf-8"))
    assert sidecar["hero_tier"] == "Epic"
    assert sidecar["cosmetic_traits"] == {"faceStyle": "Round"}


def test_missing_template_is_a_render_failure(tmp_path: Path) -> None:
    queue = LocalRenderQueue(FileCopyRenderer(tmp_path / "templates", tmp_path / "out"), max_workers=1)
    try:
        job = queue.submit(_spec(hero_tier="Mythic"))
        with pytest.raises(RenderFailed) as ei:
            job.wait(timeout=5)
    finally:
        queue.shutdown()
    assert ei.value.details["token_id"] == "42"
    assert not ei.value.retryable


def test_render_timeout(tmp_path: Path) -> None:
    release = threading.Event()

    def slow(spec: RenderJobSpec) -> RenderResult:
        release.wait(5)
        return RenderResult(image_path=tmp_path / "never.png")

    queue = LocalRenderQueue(slow, max_workers=1)
    try:
        with pytest.raises(RenderFailed, match="timed out"):
            queue.submit(_spec()).wait(timeout=0.05)
    finally:
        release.set()
        queue.shutdown()
