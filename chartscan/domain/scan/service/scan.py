"""ScanService - orchestrates a chart scan from download to image sizes."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from chartscan.domain.scan.model.value import ChartDocument, ImageInfo, ImageReference
from chartscan.domain.scan.port.archive_reader import ArchiveReader
from chartscan.domain.scan.port.chart_fetcher import ChartFetcher
from chartscan.domain.scan.service.extractor import (
    DEFAULT_DOCUMENT_SUFFIXES,
    extract_references,
    is_config_document,
    parse_document,
)
from chartscan.domain.scan.service.scheduler import InspectionScheduler
from chartscan.domain.shared.service import Service

logger = logging.getLogger(__name__)


@dataclass
class ReferenceCollection:
    """Unique references found across a set of chart files."""

    references: set[ImageReference] = field(default_factory=set)
    documents_scanned: int = 0
    documents_skipped: int = 0


@dataclass
class ScanResult:
    """Result of a chart scan."""

    chart_url: str
    images: list[ImageInfo]
    references: set[ImageReference]
    failed: list[ImageReference]
    documents_scanned: int
    documents_skipped: int
    started_at: datetime
    completed_at: datetime


def collect_references(
    documents: Iterable[ChartDocument],
    suffixes: Iterable[str] = DEFAULT_DOCUMENT_SUFFIXES,
) -> ReferenceCollection:
    """Extract and deduplicate image references from chart files.

    Files without a recognized suffix are ignored. A file that fails to parse,
    wholly or in part, is counted as skipped; whatever parsed is still used.
    """
    suffixes = tuple(suffixes)
    collection = ReferenceCollection()

    for document in documents:
        if not is_config_document(document.name, suffixes):
            continue

        parsed = parse_document(document)
        collection.documents_scanned += 1
        if parsed.errors:
            collection.documents_skipped += 1

        for tree in parsed.trees:
            collection.references.update(extract_references(tree))

    return collection


class ScanService(Service):
    """Discovers the images a chart pulls and measures each of them.

    Downloading and unpacking the archive are the only steps whose failure aborts
    a scan. Broken documents and failed inspections only shrink the result.
    """

    fetcher: ChartFetcher
    archive: ArchiveReader
    scheduler: InspectionScheduler
    document_suffixes: tuple[str, ...] = DEFAULT_DOCUMENT_SUFFIXES

    async def scan(self, chart_url: str) -> ScanResult:
        """Scan a chart archive for images and inspect each unique one.

        Args:
            chart_url: Location of the packaged chart (.tgz).

        Returns:
            ScanResult; `images` may be empty.

        Raises:
            ChartFetchError: If the archive cannot be downloaded.
            ChartUnpackError: If the archive cannot be unpacked.
        """
        started_at = datetime.now(UTC)
        logger.info("Scanning chart %s", chart_url)

        data = await self.fetcher.fetch(chart_url)
        # Materialize so that unpack errors surface before any inspection starts
        documents = list(self.archive.read(data))

        collection = collect_references(documents, self.document_suffixes)
        logger.info(
            "Found %d unique image reference(s) in %d document(s) (%d skipped)",
            len(collection.references),
            collection.documents_scanned,
            collection.documents_skipped,
        )

        report = await self.scheduler.inspect_all(collection.references)

        completed_at = datetime.now(UTC)
        logger.info(
            "Scan of %s completed: %d image(s) measured, %d failed",
            chart_url,
            len(report.images),
            len(report.failed),
        )

        return ScanResult(
            chart_url=chart_url,
            images=report.images,
            references=collection.references,
            failed=report.failed,
            documents_scanned=collection.documents_scanned,
            documents_skipped=collection.documents_skipped,
            started_at=started_at,
            completed_at=completed_at,
        )
