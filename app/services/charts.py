"""Pie chart rendering and PDF report export with Pillow."""

import math
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Iterable

from PIL import Image, ImageDraw, ImageFont

from app.services.coverage import CANDIDATE, CATEGORIES, NO, YES

CHART_LABELS = {
    YES: "Yes",
    CANDIDATE: "Automation Candidate",
    NO: "No",
}
CHART_COLORS = {
    YES: "#008000",
    CANDIDATE: "#FFD700",
    NO: "#FF0000",
}

CHART_SIZE = (800, 560)
PIE_BOX = (60, 90, 460, 490)

# A4 portrait at 100 dpi
PDF_DPI = 100
A4_PX = (827, 1169)
PDF_MARGIN_PX = round(10 / 25.4 * PDF_DPI)
PDF_SCALE = 0.9
PDF_GAP_PX = PDF_MARGIN_PX


@dataclass
class ChartSpec:
    """One chart panel: a title plus the category percentages it shows."""

    title: str
    percentages: dict[str, Any]

    def values(self) -> dict[str, float]:
        values = {}
        for category in CATEGORIES:
            try:
                values[category] = max(0.0, float(self.percentages.get(category, 0) or 0))
            except (TypeError, ValueError):
                values[category] = 0.0
        return values


def _font(size: int):
    return ImageFont.load_default(size=size)


def _draw_text(draw, xy, text, font, fill="black", align="center"):
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x, y = xy
    if align == "center":
        x -= (right - left) / 2
    y -= (bottom - top) / 2
    draw.text((x - left, y - top), text, fill=fill, font=font)


def _format_percent(value: float) -> str:
    return f"{value:.1f}%"


def render_chart_image(chart: ChartSpec) -> Image.Image:
    """Draw a chart panel and return it as an RGB image."""
    image = Image.new("RGB", CHART_SIZE, "white")
    draw = ImageDraw.Draw(image)
    title_font = _font(28)
    label_font = _font(18)

    _draw_text(draw, (CHART_SIZE[0] // 2, 40), chart.title, title_font)

    values = chart.values()
    total = sum(values.values())
    cx = (PIE_BOX[0] + PIE_BOX[2]) / 2
    cy = (PIE_BOX[1] + PIE_BOX[3]) / 2
    radius = (PIE_BOX[2] - PIE_BOX[0]) / 2

    if total <= 0:
        draw.ellipse(PIE_BOX, outline="#999999", width=2)
        _draw_text(draw, (cx, cy), "No test cases", label_font, fill="#666666")
    else:
        start = -90.0
        for category in CATEGORIES:
            value = values[category]
            if value <= 0:
                continue
            sweep = value / total * 360.0
            draw.pieslice(PIE_BOX, start, start + sweep, fill=CHART_COLORS[category], outline="white")
            mid = math.radians(start + sweep / 2)
            lx = cx + radius * 0.65 * math.cos(mid)
            ly = cy + radius * 0.65 * math.sin(mid)
            _draw_text(draw, (lx, ly), _format_percent(value), label_font)
            start += sweep

    legend_x, legend_y = PIE_BOX[2] + 50, PIE_BOX[1] + 120
    for category in CATEGORIES:
        draw.rectangle(
            (legend_x, legend_y, legend_x + 20, legend_y + 20), fill=CHART_COLORS[category]
        )
        _draw_text(
            draw,
            (legend_x + 32, legend_y + 10),
            f"{CHART_LABELS[category]}: {_format_percent(values[category])}",
            label_font,
            align="left",
        )
        legend_y += 40
    return image


def render_pie_chart(chart: ChartSpec) -> bytes:
    """Render a chart panel as PNG bytes."""
    buffer = BytesIO()
    render_chart_image(chart).save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def layout_pdf_pages(charts: Iterable[ChartSpec]) -> list[Image.Image]:
    """Stack chart images onto A4 pages, starting a new page when one would overflow."""
    page_w, page_h = A4_PX
    width = int((page_w - 2 * PDF_MARGIN_PX) * PDF_SCALE)

    pages: list[Image.Image] = []
    page = None
    y = PDF_MARGIN_PX
    for chart in charts:
        image = render_chart_image(chart)
        height = int(image.height * width / image.width)
        image = image.resize((width, height), Image.Resampling.LANCZOS)
        if page is None or y + height > page_h - PDF_MARGIN_PX:
            page = Image.new("RGB", A4_PX, "white")
            pages.append(page)
            y = PDF_MARGIN_PX
        page.paste(image, (PDF_MARGIN_PX, y))
        y += height + PDF_GAP_PX
    return pages


def render_pdf_report(charts: Iterable[ChartSpec]) -> bytes:
    """Render all charts into a multi-page PDF."""
    pages = layout_pdf_pages(charts)
    if not pages:
        raise ValueError("At least one chart is required for a PDF report")
    buffer = BytesIO()
    pages[0].save(
        buffer,
        format="PDF",
        save_all=True,
        append_images=pages[1:],
        resolution=PDF_DPI,
    )
    return buffer.getvalue()
