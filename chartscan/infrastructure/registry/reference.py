"""Docker-style normalization on top of oras reference parsing.

oras parses ``[registry/][namespace/]repository[:tag|@digest]`` into a
Container; the Docker CLI conventions it does not apply are added here:

    nginx                      -> registry-1.docker.io/library/nginx:latest
    bitnami/redis:7.2          -> registry-1.docker.io/bitnami/redis:7.2
    ghcr.io/org/app@sha256:... -> ghcr.io/org/app@sha256:...
"""

from oras.container import Container

from chartscan.domain.shared.error import InspectError

DOCKER_HUB = "docker.io"
DOCKER_HUB_API = "registry-1.docker.io"

_DOCKER_HUB_ALIASES = {"docker.io", "index.docker.io", "registry-1.docker.io"}


def to_container(reference: str) -> Container:
    """Parse an image reference into an oras Container.

    References without a registry point at Docker Hub, whose API is served from
    ``registry-1.docker.io`` and whose single-segment names live under
    ``library/``. A digest pins the manifest, so a tag written next to one is
    dropped.

    Raises:
        InspectError: If the reference cannot be parsed.
    """
    if not reference or any(c.isspace() for c in reference):
        raise InspectError(f"invalid image reference {reference!r}", reference=reference)

    name, at, digest = reference.partition("@")
    if at:
        slash, colon = name.rfind("/"), name.rfind(":")
        if colon > slash:
            name = name[:colon]
        name = f"{name}@{digest}"

    try:
        container = Container(name, registry=DOCKER_HUB)
    except ValueError as e:
        raise InspectError(f"invalid image reference {reference!r}: {e}", reference=reference) from e

    if container.registry in _DOCKER_HUB_ALIASES:
        container.registry = DOCKER_HUB_API
        if not container.namespace:
            container.namespace = "library"
    return container


def registry_key(container: Container) -> str:
    """Name under which a registry is configured (credentials, insecure hosts)."""
    return DOCKER_HUB if container.registry == DOCKER_HUB_API else container.registry
