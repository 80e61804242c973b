"""HTTP client for the external report export endpoint."""

from __future__ import annotations

import httpx

from batch_report_runner.domain.errors import ReportRenderError
from batch_report_runner.domain.models import RenderLayout, WorkItem
from batch_report_runner.domain.ports import ReportRenderer


def _flag(value: bool) -> str:
    return "true" if value else "false"


class HttpReportRenderer(ReportRenderer):
    """Render one item by calling an export URL with layout query parameters."""

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float = 60.0,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = self._normalize_endpoint(endpoint)
        self._timeout_seconds = timeout_seconds
        self._access_token = access_token
        self._transport = transport

    async def render(self, item: WorkItem, layout: RenderLayout) -> bytes:
        """Call the export endpoint and return the artifact bytes."""

        params = self.export_params(item, layout)
        headers = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as http_client:
                response = await http_client.get(
                    self._endpoint,
                    params=params,
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            raise ReportRenderError(f"GET {self._endpoint} failed: {exc}") from exc
        self._ensure_success(response)
        if not response.content:
            raise ReportRenderError(
                f"Renderer returned an empty document for item '{item.item_id}'."
            )
        return response.content

    def export_params(self, item: WorkItem, layout: RenderLayout) -> dict[str, str]:
        """Build export query parameters for one item."""

        params = {
            "format": "pdf",
            "item": item.item_id,
            "group": item.group_key,
            "size": layout.page_size,
            "portrait": _flag(layout.portrait),
            "fitw": _flag(layout.fit_width),
            "fith": _flag(layout.fit_height),
            "top_margin": f"{layout.top_margin:g}",
            "bottom_margin": f"{layout.bottom_margin:g}",
            "left_margin": f"{layout.left_margin:g}",
            "right_margin": f"{layout.right_margin:g}",
        }
        if layout.content_range:
            params["range"] = layout.content_range
        if layout.sheet_id:
            params["gid"] = layout.sheet_id
        return params

    def _ensure_success(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        detail = response.text.strip()[:500] or "<no response body>"
        raise ReportRenderError(
            f"{response.request.method} {response.request.url} failed: "
            f"{response.status_code} {detail}"
        )

    def _normalize_endpoint(self, endpoint: str) -> str:
        normalized = endpoint.strip()
        if not normalized:
            raise ValueError("Renderer endpoint cannot be empty.")
        return normalized


__all__ = ["HttpReportRenderer"]
