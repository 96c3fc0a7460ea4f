"""InspectionScheduler - bounded fan-out of registry lookups."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from chartscan.domain.scan.model.value import ImageInfo, ImageReference
from chartscan.domain.scan.port.registry_inspector import RegistryInspector
from chartscan.domain.shared.error import ConfigurationError, InspectError
from chartscan.domain.shared.service import Service

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5
DEFAULT_INSPECT_TIMEOUT = 120.0  # seconds


@dataclass
class InspectionReport:
    """Outcome of inspecting a set of references."""

    images: list[ImageInfo] = field(default_factory=list)
    failed: list[ImageReference] = field(default_factory=list)


class InspectionScheduler(Service):
    """Inspects every reference against its registry, at most `concurrency` at a time.

    Each reference gets its own task. A task waits for a free slot, then gives the
    inspector `timeout` seconds to answer. Failures and timeouts are logged and
    leave the reference out of the result; they never cancel sibling tasks. The
    scheduler returns only once every task has finished.
    """

    inspector: RegistryInspector
    concurrency: int = DEFAULT_CONCURRENCY
    timeout: float = DEFAULT_INSPECT_TIMEOUT

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ConfigurationError(f"Inspection concurrency must be at least 1, got {self.concurrency}")
        if self.timeout <= 0:
            raise ConfigurationError(f"Inspection timeout must be positive, got {self.timeout}")

    async def inspect_all(self, references: Iterable[ImageReference]) -> InspectionReport:
        """Inspect each unique reference and collect the ones that succeeded.

        Args:
            references: References to inspect. Duplicates are inspected once.

        Returns:
            InspectionReport with one ImageInfo per successful reference, sorted
            by reference, and the references that failed.
        """
        unique = sorted(set(references))
        if not unique:
            return InspectionReport()

        # Created per call so the limiter belongs to the running event loop
        slots = asyncio.Semaphore(self.concurrency)
        logger.info(
            "Inspecting %d image(s), concurrency=%d, timeout=%.0fs",
            len(unique),
            self.concurrency,
            self.timeout,
        )

        outcomes = await asyncio.gather(*(self._inspect_one(ref, slots) for ref in unique))

        report = InspectionReport()
        for ref, info in zip(unique, outcomes):
            if info is None:
                report.failed.append(ref)
            else:
                report.images.append(info)

        logger.info(
            "Inspection finished: %d succeeded, %d failed",
            len(report.images),
            len(report.failed),
        )
        return report

    async def _inspect_one(
        self, reference: ImageReference, slots: asyncio.Semaphore
    ) -> ImageInfo | None:
        """Run one inspection job. Returns None on any failure."""
        try:
            async with slots:
                layers = await asyncio.wait_for(
                    self.inspector.inspect(reference),
                    timeout=self.timeout,
                )
        except asyncio.TimeoutError:
            logger.warning("Failed to inspect %s: timed out after %.0fs", reference, self.timeout)
            return None
        except InspectError as e:
            logger.warning("Failed to inspect %s: %s", reference, e.message)
            return None
        except Exception as e:
            logger.warning("Failed to inspect %s: %s", reference, e, exc_info=True)
            return None

        # One unknown layer size invalidates the whole image; no partial totals
        unknown = [layer.digest for layer in layers if layer.size is None or layer.size < 0]
        if unknown:
            logger.warning("Failed to inspect %s: size of layer %s is unknown", reference, unknown[0])
            return None

        return ImageInfo(
            reference=reference,
            total_size_bytes=sum(layer.size or 0 for layer in layers),
            layer_count=len(layers),
        )
