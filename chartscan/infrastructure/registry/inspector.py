"""OCI Distribution API adapter for RegistryInspector port, built on oras-py."""

import asyncio
import threading
from collections.abc import Callable, Mapping
from typing import Any

import logfire
import requests
from oras.client import OrasClient
from oras.container import Container

from chartscan.config import RegistryCredential
from chartscan.domain.scan.model.value import ImageReference, LayerDescriptor
from chartscan.domain.scan.port.registry_inspector import RegistryInspector
from chartscan.domain.shared.error import InspectError
from chartscan.infrastructure.registry.reference import registry_key, to_container

OCI_INDEX = "application/vnd.oci.image.index.v1+json"
OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"

MANIFEST_ACCEPT = ", ".join([OCI_INDEX, OCI_MANIFEST, DOCKER_MANIFEST_LIST, DOCKER_MANIFEST])


class OrasRegistryInspector(RegistryInspector):
    """Reads image manifests through oras, without pulling layers.

    oras answers the registry's 401 challenge (anonymous or logged-in bearer
    tokens, or basic auth) and keeps the tokens on its client, so one client is
    kept per registry host for the lifetime of this inspector. The oras client is
    blocking; each inspection runs in a worker thread so that it stays under the
    caller's concurrency limit and deadline.

    Multi-platform indexes are resolved to a single platform before layer sizes
    are read.
    """

    def __init__(
        self,
        platform_os: str = "linux",
        platform_architecture: str = "amd64",
        insecure_registries: list[str] | None = None,
        credentials: Mapping[str, RegistryCredential] | None = None,
        client_factory: Callable[..., OrasClient] = OrasClient,
    ) -> None:
        self._platform_os = platform_os
        self._platform_architecture = platform_architecture
        self._insecure = set(insecure_registries or [])
        self._credentials = dict(credentials or {})
        self._client_factory = client_factory
        self._clients: dict[str, OrasClient] = {}
        self._lock = threading.Lock()

    async def inspect(self, reference: ImageReference) -> list[LayerDescriptor]:
        container = to_container(reference)
        return await asyncio.to_thread(self._inspect, reference, container)

    def _inspect(self, reference: ImageReference, container: Container) -> list[LayerDescriptor]:
        client = self._client_for(container)

        identifier = container.digest or container.tag
        manifest = self._get_manifest(client, reference, container, identifier)
        if _is_index(manifest):
            digest = self._select_platform(reference, manifest)
            manifest = self._get_manifest(client, reference, container, digest)
            if _is_index(manifest):
                raise InspectError(f"nested image index for {reference}", reference=reference)

        layers = _layers_of(manifest)
        if layers is None:
            raise InspectError(f"manifest for {reference} lists no layers", reference=reference)

        logfire.debug("Image inspected", image=reference, layers=len(layers))
        return layers

    def _client_for(self, container: Container) -> OrasClient:
        """Get the client for a registry host, logging in on first use."""
        host = container.registry
        with self._lock:
            if (client := self._clients.get(host)) is not None:
                return client

            key = registry_key(container)
            client = self._client_factory(hostname=host, insecure=key in self._insecure)
            if (credential := self._credentials.get(key)) is not None:
                try:
                    client.login(
                        hostname=host,
                        username=credential.username,
                        password=credential.password,
                    )
                except (requests.RequestException, ValueError) as e:
                    raise InspectError(f"login to registry {key} failed: {e}") from e
                logfire.debug("Registry login", registry=key)

            self._clients[host] = client
            return client

    def _get_manifest(
        self, client: OrasClient, reference: ImageReference, container: Container, identifier: str
    ) -> dict[str, Any]:
        remote = client.remote
        url = f"{remote.prefix}://{container.registry}/v2/{container.api_prefix}/manifests/{identifier}"

        try:
            response = remote.do_request(url, "GET", headers={"Accept": MANIFEST_ACCEPT})
        except requests.RequestException as e:
            raise InspectError(f"registry request failed: {e}", reference=reference) from e

        if response.status_code == 404:
            raise InspectError(
                f"manifest unknown: {container.api_prefix}:{identifier}", reference=reference
            )
        if response.status_code != 200:
            raise InspectError(
                f"registry {container.registry} returned {response.status_code} "
                f"for {container.api_prefix}:{identifier}",
                reference=reference,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise InspectError(f"malformed manifest for {reference}: {e}", reference=reference) from e
        if not isinstance(body, dict):
            raise InspectError(f"malformed manifest for {reference}", reference=reference)
        return body

    def _select_platform(self, reference: ImageReference, index: dict[str, Any]) -> str:
        for entry in index.get("manifests") or []:
            if not isinstance(entry, dict):
                continue
            platform = entry.get("platform") or {}
            if (
                platform.get("os") == self._platform_os
                and platform.get("architecture") == self._platform_architecture
                and isinstance(entry.get("digest"), str)
            ):
                return entry["digest"]
        raise InspectError(
            f"no {self._platform_os}/{self._platform_architecture} image in index for {reference}",
            reference=reference,
        )


def _is_index(manifest: dict[str, Any]) -> bool:
    media_type = manifest.get("mediaType")
    if media_type in (OCI_INDEX, DOCKER_MANIFEST_LIST):
        return True
    # OCI indexes may omit mediaType
    return media_type is None and "manifests" in manifest and "layers" not in manifest


def _layers_of(manifest: dict[str, Any]) -> list[LayerDescriptor] | None:
    layers = manifest.get("layers")
    if isinstance(layers, list):
        return [
            LayerDescriptor(digest=str(layer.get("digest", "")), size=_size_of(layer))
            for layer in layers
            if isinstance(layer, dict)
        ]

    # Schema 1 manifests list layers without sizes
    fs_layers = manifest.get("fsLayers")
    if isinstance(fs_layers, list):
        return [
            LayerDescriptor(digest=str(layer.get("blobSum", "")), size=None)
            for layer in fs_layers
            if isinstance(layer, dict)
        ]

    return None


def _size_of(layer: dict[str, Any]) -> int | None:
    size = layer.get("size")
    if isinstance(size, int) and not isinstance(size, bool) and size >= 0:
        return size
    return None
