"""Scan a chart archive for the images it references."""

from pydantic import Field, field_validator

from chartscan.domain.scan.model.value import ImageInfo
from chartscan.domain.scan.service.scan import ScanService
from chartscan.domain.shared.command import Command, CommandHandler, Result


class ScanChart(Command):
    chart_url: str = Field(min_length=1)

    @field_validator("chart_url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("chart_url must not be blank")
        return value


class ScanChartResult(Result):
    images: list[ImageInfo]
    reference_count: int
    failed_count: int


class ScanChartHandler(CommandHandler[ScanChart, ScanChartResult]):
    scan_service: ScanService

    async def run(self, cmd: ScanChart) -> ScanChartResult:
        result = await self.scan_service.scan(cmd.chart_url)
        return ScanChartResult(
            images=result.images,
            reference_count=len(result.references),
            failed_count=len(result.failed),
        )
