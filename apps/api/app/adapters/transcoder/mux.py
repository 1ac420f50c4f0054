"""Mux Video adapter."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.adapters.transcoder.base import DirectUpload, TranscoderClient, TranscoderError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = httpx.Timeout(10.0, connect=5.0)


def _upstream_message(response: httpx.Response) -> str:
    try:
        body: Any = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            messages = error.get("messages")
            if isinstance(messages, list) and messages:
                return "; ".join(str(message) for message in messages)
            if error.get("type"):
                return str(error["type"])
    return f"Transcoder request failed with status {response.status_code}"


class MuxTranscoder(TranscoderClient):
    """Talks to the Mux REST API with basic token auth."""

    def __init__(
        self,
        *,
        token_id: str | None,
        token_secret: str | None,
        base_url: str = "https://api.mux.com",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._configured = bool(token_id and token_secret)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url,
            auth=(token_id or "", token_secret or ""),
            timeout=_DEFAULT_TIMEOUT,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if not self._configured:
            raise TranscoderError("Mux credentials are not configured")
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("transcoder.transport_error method=%s path=%s error=%s", method, path, type(exc).__name__)
            raise TranscoderError(f"Transcoder unreachable: {exc}") from exc
        if response.is_error:
            message = _upstream_message(response)
            logger.warning(
                "transcoder.rejected method=%s path=%s status=%s",
                method,
                path,
                response.status_code,
            )
            raise TranscoderError(message, status_code=response.status_code)
        return response

    async def create_direct_upload(
        self,
        *,
        cors_origin: str,
        playback_policy: list[str],
        passthrough: str | None,
        test: bool,
    ) -> DirectUpload:
        new_asset_settings: dict[str, Any] = {"playback_policy": list(playback_policy)}
        if passthrough is not None:
            new_asset_settings["passthrough"] = passthrough
        body = {
            "cors_origin": cors_origin,
            "new_asset_settings": new_asset_settings,
            "test": test,
        }
        response = await self._request("POST", "/video/v1/uploads", json=body)
        try:
            payload = response.json()
        except ValueError as exc:
            raise TranscoderError("Transcoder returned an unreadable upload response", status_code=response.status_code) from exc
        data = (payload.get("data") if isinstance(payload, dict) else None) or {}
        upload_id = data.get("id")
        upload_url = data.get("url")
        if not upload_id or not upload_url:
            raise TranscoderError("Transcoder response is missing the upload target")
        return DirectUpload(
            upload_id=upload_id,
            upload_url=upload_url,
            cors_origin=data.get("cors_origin", cors_origin),
            playback_policy=list(playback_policy),
            passthrough=passthrough,
            test=bool(data.get("test", test)),
        )

    async def delete_asset(self, asset_id: str) -> None:
        await self._request("DELETE", f"/video/v1/assets/{asset_id}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["MuxTranscoder"]
