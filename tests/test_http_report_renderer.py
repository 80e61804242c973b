from __future__ import annotations

import asyncio

import httpx
import pytest

from batch_report_runner.domain.errors import ReportRenderError
from batch_report_runner.domain.models import RenderLayout, WorkItem
from batch_report_runner.infrastructure.rendering import HttpReportRenderer

ENDPOINT = "https://renderer.example.com/export"
ITEM = WorkItem(item_id="A-17", group_key="north")


def test_render_sends_layout_parameters_and_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"%PDF-1.7")

    renderer = HttpReportRenderer(
        ENDPOINT,
        access_token="secret-token",
        transport=httpx.MockTransport(handler),
    )
    layout = RenderLayout(
        page_size="Letter",
        portrait=False,
        top_margin=0.25,
        content_range="A1:H40",
        sheet_id="7",
    )

    content = asyncio.run(renderer.render(ITEM, layout))

    assert content == b"%PDF-1.7"
    assert len(seen) == 1
    request = seen[0]
    assert request.method == "GET"
    assert request.headers["Authorization"] == "Bearer secret-token"
    params = request.url.params
    assert params["format"] == "pdf"
    assert params["item"] == "A-17"
    assert params["group"] == "north"
    assert params["size"] == "Letter"
    assert params["portrait"] == "false"
    assert params["fitw"] == "true"
    assert params["fith"] == "false"
    assert params["top_margin"] == "0.25"
    assert params["bottom_margin"] == "0.5"
    assert params["range"] == "A1:H40"
    assert params["gid"] == "7"


def test_export_params_omit_optional_range_and_sheet() -> None:
    renderer = HttpReportRenderer(ENDPOINT)

    params = renderer.export_params(ITEM, RenderLayout())

    assert "range" not in params
    assert "gid" not in params


def test_render_without_token_sends_no_authorization_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"%PDF")

    renderer = HttpReportRenderer(ENDPOINT, transport=httpx.MockTransport(handler))
    asyncio.run(renderer.render(ITEM, RenderLayout()))

    assert "Authorization" not in seen[0].headers


def test_render_raises_on_error_status() -> None:
    renderer = HttpReportRenderer(
        ENDPOINT,
        transport=httpx.MockTransport(lambda _request: httpx.Response(429, text="slow down")),
    )

    with pytest.raises(ReportRenderError, match="429 slow down"):
        asyncio.run(renderer.render(ITEM, RenderLayout()))


def test_render_raises_on_empty_document() -> None:
    renderer = HttpReportRenderer(
        ENDPOINT,
        transport=httpx.MockTransport(lambda _request: httpx.Response(200, content=b"")),
    )

    with pytest.raises(ReportRenderError, match="empty document"):
        asyncio.run(renderer.render(ITEM, RenderLayout()))


def test_render_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    renderer = HttpReportRenderer(ENDPOINT, transport=httpx.MockTransport(handler))

    with pytest.raises(ReportRenderError, match="connection refused"):
        asyncio.run(renderer.render(ITEM, RenderLayout()))


def test_renderer_rejects_blank_endpoint() -> None:
    with pytest.raises(ValueError):
        HttpReportRenderer("   ")
