from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from tableview.core.exceptions import ActionError, RemoteSyncError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(connect=5.0, read=15.0, write=10.0, pool=15.0)
REQUEST_HEADERS = {"HX-Request": "true", "Accept": "text/html"}


class RenderClient:
    """
    Thin httpx wrapper for the remote render service.

    - `fetch` GETs a table fragment (full card or targeted patch) as text
    - `post` submits a bulk/row action as a form
    Transport and HTTP status failures are raised as RemoteSyncError /
    ActionError so callers never deal with httpx exceptions directly.
    """

    def __init__(
            self,
            base_url: str = "",
            client: Optional[httpx.Client] = None,
            timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ):
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> RenderClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def fetch(self, url: str, params: Optional[Mapping[str, Any]] = None) -> str:
        try:
            response = self._client.get(url, params=dict(params or {}), headers=REQUEST_HEADERS)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RemoteSyncError(
                f"Render service answered {exc.response.status_code} for {url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteSyncError(f"Render service request to {url} failed: {exc}") from exc

        logger.debug(
            "Fragment fetched",
            extra={"url": str(response.request.url), "bytes": len(response.content)},
        )
        return response.text

    def post(
            self,
            endpoint: str,
            ids: Iterable[str] = (),
            extra_params: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """POST `id` once per selected row plus any extra form fields."""
        form = form_pairs(ids, extra_params)

        try:
            response = self._client.post(
                endpoint,
                data=form,
                headers=REQUEST_HEADERS,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = exc.response.text.strip() or f"HTTP {exc.response.status_code}"
            raise ActionError(message) from exc
        except httpx.HTTPError as exc:
            raise ActionError(f"Action request to {endpoint} failed: {exc}") from exc

        logger.info("Action posted", extra={"endpoint": endpoint, "count": len(form["id"])})
        return response.text


def form_pairs(ids: Iterable[str], extra_params: Optional[Mapping[str, Any]] = None) -> Dict[str, List[str]]:
    """Form fields as a multi-dict, the way the render service receives them."""
    out: Dict[str, List[str]] = {"id": [str(row_id) for row_id in ids]}
    for key, value in (extra_params or {}).items():
        out.setdefault(str(key), []).append(str(value))
    return out
