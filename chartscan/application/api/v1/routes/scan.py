"""Chart scan API route."""

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter
from pydantic import BaseModel

from chartscan.domain.scan.command.scan_chart import ScanChart, ScanChartHandler
from chartscan.domain.shared.error import ValidationError

router = APIRouter(tags=["scan"], route_class=DishkaRoute)


class ScanRequest(BaseModel):
    chart_url: str | None = None


class ImageInfoDTO(BaseModel):
    image: str
    size_bytes: int
    layers: int


@router.post(
    "/scan",
    response_model=list[ImageInfoDTO],
    description="List the images a chart references, with their size and layer count",
)
async def scan_chart(
    payload: ScanRequest,
    handler: FromDishka[ScanChartHandler],
) -> list[ImageInfoDTO]:
    if payload.chart_url is None or not payload.chart_url.strip():
        raise ValidationError("chart_url is required", field="chart_url")

    result = await handler.run(ScanChart(chart_url=payload.chart_url))

    return [
        ImageInfoDTO(
            image=info.reference,
            size_bytes=info.total_size_bytes,
            layers=info.layer_count,
        )
        for info in result.images
    ]
