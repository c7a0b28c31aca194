"""Chart image and PDF report export endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.core.config import config
from app.core.dependencies import enforce_rate_limit
from app.models.requests import ChartExportRequest, ReportExportRequest
from app.services.charts import ChartSpec, render_pdf_report, render_pie_chart

router = APIRouter(prefix="/export", tags=["export"], dependencies=[Depends(enforce_rate_limit)])


def _chart_spec(chart: ChartExportRequest) -> ChartSpec:
    title = (chart.title or "").strip() or config.DEFAULT_CHART_TITLE
    return ChartSpec(title=title, percentages=chart.percentages.model_dump())


@router.post("/chart.png", response_class=Response)
def export_chart_image(payload: ChartExportRequest):
    """Render one chart panel as a PNG download."""
    png = render_pie_chart(_chart_spec(payload))
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": 'attachment; filename="chart.png"'},
    )


@router.post("/report.pdf", response_class=Response)
def export_pdf_report(payload: ReportExportRequest):
    """Render every chart panel into a multi-page A4 PDF."""
    charts = [_chart_spec(chart) for chart in payload.charts]
    pdf = render_pdf_report(charts)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    print(f"[EXPORT] PDF report with {len(charts)} chart(s), {len(pdf)} bytes", flush=True)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="charts-{stamp}.pdf"'},
    )
