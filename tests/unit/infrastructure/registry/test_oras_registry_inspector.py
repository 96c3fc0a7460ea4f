"""Unit tests for OrasRegistryInspector against a fake oras client."""

import json

import pytest
import requests

from chartscan.config import RegistryCredential
from chartscan.domain.scan.model.value import ImageReference, LayerDescriptor
from chartscan.domain.shared.error import InspectError
from chartscan.infrastructure.registry.inspector import (
    DOCKER_MANIFEST,
    DOCKER_MANIFEST_LIST,
    OCI_INDEX,
    OCI_MANIFEST,
    OrasRegistryInspector,
)

AMD64_DIGEST = "sha256:" + "1" * 64
ARM64_DIGEST = "sha256:" + "2" * 64


def _manifest(*sizes, media_type=OCI_MANIFEST) -> dict:
    return {
        "schemaVersion": 2,
        "mediaType": media_type,
        "config": {"digest": "sha256:cfg", "size": 1234},
        "layers": [{"digest": f"sha256:{i}", "size": size} for i, size in enumerate(sizes)],
    }


def _response(status_code: int, body=None, content: bytes | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = content if content is not None else json.dumps(body).encode()
    return response


class FakeRemote:
    def __init__(self, handler, prefix: str) -> None:
        self.handler = handler
        self.prefix = prefix
        self.requests: list[tuple[str, str, dict]] = []

    def do_request(self, url, method="GET", data=None, headers=None, **kwargs):
        self.requests.append((method, url, headers or {}))
        return self.handler(url)


class FakeOrasClient:
    def __init__(self, handler, hostname=None, insecure=False) -> None:
        self.hostname = hostname
        self.insecure = insecure
        self.remote = FakeRemote(handler, "http" if insecure else "https")
        self.logins: list[dict] = []

    def login(self, **kwargs):
        self.logins.append(kwargs)


class Registry:
    """Serves manifests to every client the inspector creates."""

    def __init__(self, handler) -> None:
        self.handler = handler
        self.clients: list[FakeOrasClient] = []

    def client_factory(self, **kwargs) -> FakeOrasClient:
        client = FakeOrasClient(self.handler, **kwargs)
        self.clients.append(client)
        return client

    def inspector(self, **kwargs) -> OrasRegistryInspector:
        return OrasRegistryInspector(client_factory=self.client_factory, **kwargs)

    @property
    def urls(self) -> list[str]:
        return [url for client in self.clients for _, url, _ in client.remote.requests]


class TestManifestLookup:
    @pytest.mark.asyncio
    async def test_docker_hub_reference(self):
        registry = Registry(lambda url: _response(200, _manifest(100, 200, media_type=DOCKER_MANIFEST)))

        layers = await registry.inspector().inspect(ImageReference("nginx:1.27"))

        assert layers == [
            LayerDescriptor(digest="sha256:0", size=100),
            LayerDescriptor(digest="sha256:1", size=200),
        ]
        assert registry.urls == ["https://registry-1.docker.io/v2/library/nginx/manifests/1.27"]
        method, _, headers = registry.clients[0].remote.requests[0]
        assert method == "GET"
        assert OCI_INDEX in headers["Accept"]
        assert DOCKER_MANIFEST in headers["Accept"]

    @pytest.mark.asyncio
    async def test_digest_reference_requests_digest(self):
        digest = "sha256:" + "f" * 64
        registry = Registry(lambda url: _response(200, _manifest(5)))

        await registry.inspector().inspect(ImageReference(f"ghcr.io/org/app:1.0@{digest}"))

        assert registry.urls == [f"https://ghcr.io/v2/org/app/manifests/{digest}"]

    @pytest.mark.asyncio
    async def test_insecure_registry_uses_http(self):
        registry = Registry(lambda url: _response(200, _manifest(5)))

        inspector = registry.inspector(insecure_registries=["localhost:5000"])
        await inspector.inspect(ImageReference("localhost:5000/app"))

        assert registry.clients[0].insecure is True
        assert registry.urls == ["http://localhost:5000/v2/app/manifests/latest"]

    @pytest.mark.asyncio
    async def test_zero_layers(self):
        registry = Registry(lambda url: _response(200, _manifest()))

        assert await registry.inspector().inspect(ImageReference("ghcr.io/org/scratch:1")) == []

    @pytest.mark.asyncio
    async def test_missing_size_is_unknown(self):
        manifest = _manifest(10)
        manifest["layers"].append({"digest": "sha256:nosize"})
        registry = Registry(lambda url: _response(200, manifest))

        layers = await registry.inspector().inspect(ImageReference("ghcr.io/org/app:1"))

        assert layers[1] == LayerDescriptor(digest="sha256:nosize", size=None)

    @pytest.mark.asyncio
    async def test_schema1_manifest_has_unknown_sizes(self):
        manifest = {
            "schemaVersion": 1,
            "fsLayers": [{"blobSum": "sha256:a"}, {"blobSum": "sha256:b"}],
        }
        registry = Registry(lambda url: _response(200, manifest))

        layers = await registry.inspector().inspect(ImageReference("quay.io/legacy/app:1"))

        assert layers == [
            LayerDescriptor(digest="sha256:a", size=None),
            LayerDescriptor(digest="sha256:b", size=None),
        ]


class TestIndexResolution:
    @pytest.fixture
    def index(self):
        return {
            "schemaVersion": 2,
            "mediaType": OCI_INDEX,
            "manifests": [
                {
                    "digest": ARM64_DIGEST,
                    "mediaType": OCI_MANIFEST,
                    "platform": {"os": "linux", "architecture": "arm64"},
                },
                {
                    "digest": AMD64_DIGEST,
                    "mediaType": OCI_MANIFEST,
                    "platform": {"os": "linux", "architecture": "amd64"},
                },
            ],
        }

    @pytest.mark.asyncio
    async def test_resolves_default_platform(self, index):
        def handler(url: str) -> requests.Response:
            if url.endswith(AMD64_DIGEST):
                return _response(200, _manifest(1000, 2000))
            if url.endswith(ARM64_DIGEST):
                return _response(200, _manifest(1))
            return _response(200, index)

        registry = Registry(handler)
        layers = await registry.inspector().inspect(ImageReference("ghcr.io/org/app:1.0"))

        assert [layer.size for layer in layers] == [1000, 2000]
        assert registry.urls == [
            "https://ghcr.io/v2/org/app/manifests/1.0",
            f"https://ghcr.io/v2/org/app/manifests/{AMD64_DIGEST}",
        ]

    @pytest.mark.asyncio
    async def test_configured_platform(self, index):
        def handler(url: str) -> requests.Response:
            if url.endswith(ARM64_DIGEST):
                return _response(200, _manifest(7))
            if url.endswith(AMD64_DIGEST):
                return _response(200, _manifest(1000))
            return _response(200, index)

        inspector = Registry(handler).inspector(platform_architecture="arm64")
        layers = await inspector.inspect(ImageReference("ghcr.io/org/app:1.0"))

        assert [layer.size for layer in layers] == [7]

    @pytest.mark.asyncio
    async def test_docker_manifest_list(self, index):
        index["mediaType"] = DOCKER_MANIFEST_LIST

        def handler(url: str) -> requests.Response:
            if url.endswith(AMD64_DIGEST):
                return _response(200, _manifest(42, media_type=DOCKER_MANIFEST))
            return _response(200, index)

        layers = await Registry(handler).inspector().inspect(ImageReference("nginx:1.27"))

        assert [layer.size for layer in layers] == [42]

    @pytest.mark.asyncio
    async def test_platform_missing_from_index(self, index):
        inspector = Registry(lambda url: _response(200, index)).inspector(platform_os="windows")

        with pytest.raises(InspectError, match="windows/amd64"):
            await inspector.inspect(ImageReference("ghcr.io/org/app:1.0"))

    @pytest.mark.asyncio
    async def test_nested_index(self, index):
        inspector = Registry(lambda url: _response(200, index)).inspector()

        with pytest.raises(InspectError, match="nested image index"):
            await inspector.inspect(ImageReference("ghcr.io/org/app:1.0"))


class TestClients:
    @pytest.mark.asyncio
    async def test_one_client_per_registry_host(self):
        registry = Registry(lambda url: _response(200, _manifest(1)))
        inspector = registry.inspector()

        await inspector.inspect(ImageReference("ghcr.io/org/a:1"))
        await inspector.inspect(ImageReference("ghcr.io/org/b:1"))
        await inspector.inspect(ImageReference("quay.io/org/c:1"))

        assert [client.hostname for client in registry.clients] == ["ghcr.io", "quay.io"]

    @pytest.mark.asyncio
    async def test_inspectors_do_not_share_clients(self):
        registry = Registry(lambda url: _response(200, _manifest(1)))

        await registry.inspector().inspect(ImageReference("ghcr.io/org/app:1"))
        await registry.inspector().inspect(ImageReference("ghcr.io/org/app:1"))

        assert len(registry.clients) == 2
        assert registry.clients[0] is not registry.clients[1]

    @pytest.mark.asyncio
    async def test_credentials_log_in_once(self):
        registry = Registry(lambda url: _response(200, _manifest(1)))
        inspector = registry.inspector(
            credentials={"ghcr.io": RegistryCredential(username="bot", password="s3cret")},
        )

        await inspector.inspect(ImageReference("ghcr.io/org/private:1"))
        await inspector.inspect(ImageReference("ghcr.io/org/private:2"))

        assert registry.clients[0].logins == [
            {"hostname": "ghcr.io", "username": "bot", "password": "s3cret"}
        ]

    @pytest.mark.asyncio
    async def test_docker_hub_credentials_keyed_by_docker_io(self):
        registry = Registry(lambda url: _response(200, _manifest(1)))
        inspector = registry.inspector(
            credentials={"docker.io": RegistryCredential(username="user", password="pass")},
        )

        await inspector.inspect(ImageReference("bitnami/redis:7"))

        assert registry.clients[0].hostname == "registry-1.docker.io"
        assert registry.clients[0].logins[0]["username"] == "user"

    @pytest.mark.asyncio
    async def test_anonymous_registries_skip_login(self):
        registry = Registry(lambda url: _response(200, _manifest(1)))
        inspector = registry.inspector(
            credentials={"ghcr.io": RegistryCredential(username="bot", password="s3cret")},
        )

        await inspector.inspect(ImageReference("quay.io/org/app:1"))

        assert registry.clients[0].logins == []

    @pytest.mark.asyncio
    async def test_failed_login(self):
        class RejectingClient(FakeOrasClient):
            def login(self, **kwargs):
                raise requests.HTTPError("401 Client Error: Unauthorized")

        inspector = OrasRegistryInspector(
            credentials={"ghcr.io": RegistryCredential(username="bot", password="wrong")},
            client_factory=lambda **kwargs: RejectingClient(lambda url: _response(200, _manifest(1)), **kwargs),
        )

        with pytest.raises(InspectError, match="login to registry ghcr.io failed"):
            await inspector.inspect(ImageReference("ghcr.io/org/private:1"))


class TestFailures:
    @pytest.mark.asyncio
    async def test_manifest_unknown(self):
        registry = Registry(lambda url: _response(404, {"errors": [{"code": "MANIFEST_UNKNOWN"}]}))

        with pytest.raises(InspectError, match="manifest unknown") as exc_info:
            await registry.inspector().inspect(ImageReference("ghcr.io/org/app:missing"))
        assert exc_info.value.reference == "ghcr.io/org/app:missing"

    @pytest.mark.asyncio
    async def test_still_unauthorized(self):
        registry = Registry(lambda url: _response(401, {"errors": [{"code": "UNAUTHORIZED"}]}))

        with pytest.raises(InspectError, match="401"):
            await registry.inspector().inspect(ImageReference("registry.example.io/org/private:1"))

    @pytest.mark.asyncio
    async def test_server_error(self):
        registry = Registry(lambda url: _response(500, content=b""))

        with pytest.raises(InspectError, match="500"):
            await registry.inspector().inspect(ImageReference("ghcr.io/org/app:1"))

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        registry = Registry(lambda url: _response(200, content=b"<html>"))

        with pytest.raises(InspectError, match="malformed"):
            await registry.inspector().inspect(ImageReference("ghcr.io/org/app:1"))

    @pytest.mark.asyncio
    async def test_manifest_is_not_an_object(self):
        registry = Registry(lambda url: _response(200, ["not", "a", "manifest"]))

        with pytest.raises(InspectError, match="malformed"):
            await registry.inspector().inspect(ImageReference("ghcr.io/org/app:1"))

    @pytest.mark.asyncio
    async def test_manifest_without_layers(self):
        registry = Registry(lambda url: _response(200, {"schemaVersion": 2}))

        with pytest.raises(InspectError, match="lists no layers"):
            await registry.inspector().inspect(ImageReference("ghcr.io/org/app:1"))

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(url: str) -> requests.Response:
            raise requests.ConnectionError("name resolution failed")

        with pytest.raises(InspectError, match="name resolution failed"):
            await Registry(handler).inspector().inspect(ImageReference("registry.invalid/app:1"))

    @pytest.mark.asyncio
    async def test_invalid_reference_creates_no_client(self):
        registry = Registry(lambda url: _response(200, _manifest(1)))

        with pytest.raises(InspectError):
            await registry.inspector().inspect(ImageReference("Not A Reference"))

        assert registry.clients == []
