"""Image reference discovery in chart YAML documents.

Charts describe their images in several conventions, and nothing in a raw
values.yaml or manifest says which one a given subtree follows. The walk below
visits every mapping in a document and tries all of them:

    image: nginx:1.27                     # scalar image field

    image:                                # structured image field
      registry: docker.io
      repository: library/nginx
      tag: "1.27"                         # or digest: sha256:...

    repository: bitnami/redis             # sibling repository/tag fields
    tag: 7.2.4

Anything that does not fit a convention is ignored rather than reported.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import yaml

from chartscan.domain.scan.model.value import ChartDocument, ImageReference

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_SUFFIXES = (".yaml", ".yml")

# Column-0 document start marker; the marker stays with the document it opens.
_DOCUMENT_START = re.compile(r"^(?=---(?:[ \t\r]|$))", re.MULTILINE)


@dataclass
class ParsedDocument:
    """The YAML trees decoded from one chart file."""

    name: str
    trees: list[Any] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def is_config_document(name: str, suffixes: Iterable[str] = DEFAULT_DOCUMENT_SUFFIXES) -> bool:
    """Check whether an archive member holds structured configuration."""
    return name.endswith(tuple(suffixes))


def parse_document(document: ChartDocument) -> ParsedDocument:
    """Parse every YAML document contained in a chart file.

    A file may hold several documents separated by ``---``. Each one is parsed on
    its own so that a broken document only costs itself: the error is logged and
    recorded, and the remaining documents are still returned. Empty documents are
    dropped.
    """
    parsed = ParsedDocument(name=document.name)

    try:
        text = document.content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.warning("Skipping %s: not valid UTF-8 (%s)", document.name, e)
        parsed.errors.append(str(e))
        return parsed

    for index, chunk in enumerate(_split_documents(text)):
        try:
            trees = list(yaml.safe_load_all(chunk))
        except yaml.YAMLError as e:
            logger.warning("Skipping document %d of %s: %s", index, document.name, e)
            parsed.errors.append(str(e))
            continue
        parsed.trees.extend(tree for tree in trees if tree is not None)

    return parsed


def extract_references(tree: Any) -> set[ImageReference]:
    """Collect every image reference found anywhere in a parsed YAML tree.

    Every mapping is checked against all conventions and then descended into,
    whether or not it produced a reference. The mapping held by a structured
    ``image`` field is not checked for sibling fields, since its repository and
    tag were already composed with the registry.

    A node shared through YAML anchors is read once per context it appears in
    (as an ``image`` value or not), so the result matches the same tree with
    every alias expanded, and recursive aliases still terminate.
    """
    found: set[ImageReference] = set()
    visited: set[tuple[int, bool]] = set()
    # (node, whether node is the value of an ``image`` key)
    pending: list[tuple[Any, bool]] = [(tree, False)]

    while pending:
        node, under_image = pending.pop()
        match node:
            case dict():
                if (id(node), under_image) in visited:
                    continue
                visited.add((id(node), under_image))
                found.update(_references_at(node, siblings=not under_image))
                pending.extend((value, key == "image") for key, value in node.items())
            case list():
                # Items of a sequence are never image values, whatever holds it
                if (id(node), False) in visited:
                    continue
                visited.add((id(node), False))
                pending.extend((item, False) for item in node)
            case _:
                pass

    return found


def compose_reference(image: dict[Any, Any]) -> ImageReference | None:
    """Build a reference from a structured ``image`` mapping.

    ``registry`` is optional, ``repository`` falls back to ``name``, and a digest
    wins over a tag. Returns None when no repository can be determined.
    """
    repository = _text(image, "repository") or _text(image, "name")
    if not repository:
        return None

    registry = _text(image, "registry").rstrip("/")
    reference = f"{registry}/{repository}" if registry else repository

    if digest := _text(image, "digest"):
        reference += f"@{digest}"
    elif tag := _text(image, "tag"):
        reference += f":{tag}"

    return ImageReference(reference)


def _references_at(mapping: dict[Any, Any], siblings: bool = True) -> Iterable[ImageReference]:
    """Apply each convention to a single mapping, without descending.

    Empty strings count as absent: ``image: ""`` and a sibling pair with an
    empty repository or tag yield nothing, since no registry could resolve them.
    """
    match mapping.get("image"):
        case str() as image if image:
            yield ImageReference(image)
        case dict() as image:
            if (composed := compose_reference(image)) is not None:
                yield composed
        case _:
            pass

    if not siblings:
        return

    repository = mapping.get("repository")
    tag = mapping.get("tag")
    if isinstance(repository, str) and isinstance(tag, str) and repository and tag:
        yield ImageReference(f"{repository}:{tag}")


def _text(mapping: dict[Any, Any], key: str) -> str:
    value = mapping.get(key)
    return value if isinstance(value, str) else ""


def _split_documents(text: str) -> list[str]:
    """Split a YAML stream into one chunk per document.

    Chunks holding only directives or comments are carried over to the next
    document, since ``%YAML`` directives belong to the document that follows.
    """
    chunks: list[str] = []
    preamble = ""
    for chunk in _DOCUMENT_START.split(text):
        if _is_preamble(chunk):
            preamble += chunk
            continue
        chunks.append(preamble + chunk)
        preamble = ""
    return chunks


def _is_preamble(chunk: str) -> bool:
    for line in chunk.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith(("#", "%")):
            return False
    return True
