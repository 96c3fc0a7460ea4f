"""tar.gz adapter for ArchiveReader port."""

import io
import tarfile
import zlib
from collections.abc import Iterable, Iterator

import logfire

from chartscan.domain.scan.model.value import ChartDocument
from chartscan.domain.scan.port.archive_reader import ArchiveReader
from chartscan.domain.scan.service.extractor import DEFAULT_DOCUMENT_SUFFIXES
from chartscan.domain.shared.error import ChartUnpackError

DEFAULT_MAX_UNPACKED_BYTES = 256 * 1024 * 1024


class TarArchiveReader(ArchiveReader):
    """Reads gzip-compressed tar archives, the format `helm package` produces.

    Only members whose name ends in one of `suffixes` are read; everything else
    is skipped without being decompressed into memory. The bytes read across
    all members are capped at `max_unpacked_bytes`, so a small archive cannot
    expand without bound.
    """

    def __init__(
        self,
        suffixes: Iterable[str] = DEFAULT_DOCUMENT_SUFFIXES,
        max_unpacked_bytes: int = DEFAULT_MAX_UNPACKED_BYTES,
    ) -> None:
        self._suffixes = tuple(suffixes)
        self._max_unpacked_bytes = max_unpacked_bytes

    def read(self, data: bytes) -> Iterator[ChartDocument]:
        try:
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
                count = 0
                unpacked = 0
                for member in tar:
                    if not member.isfile() or not member.name.endswith(self._suffixes):
                        continue
                    if unpacked + member.size > self._max_unpacked_bytes:
                        raise self._too_large()
                    extracted = tar.extractfile(member)
                    if extracted is None:
                        continue
                    content = extracted.read(self._max_unpacked_bytes - unpacked + 1)
                    unpacked += len(content)
                    if unpacked > self._max_unpacked_bytes:
                        raise self._too_large()
                    count += 1
                    yield ChartDocument(name=member.name, content=content)
        except (tarfile.TarError, zlib.error, EOFError, OSError) as e:
            logfire.warning("Chart archive could not be unpacked", error=str(e))
            raise ChartUnpackError(f"reading chart archive: {e}", code="chart_unpack_failed") from e

        logfire.debug("Chart archive unpacked", files=count, size_bytes=unpacked)

    def _too_large(self) -> ChartUnpackError:
        logfire.warning("Chart archive too large once unpacked", max_bytes=self._max_unpacked_bytes)
        return ChartUnpackError(
            f"chart archive unpacks to more than {self._max_unpacked_bytes} bytes",
            code="chart_too_large",
        )
