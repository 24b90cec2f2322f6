"""
Naksh Backend — Media Host Client (Cloudinary)
================================================

What:  Uploads and deletes user media on the media host.
How:   `MediaHost` is the interface; `CloudinaryMediaHost` talks to the
       Cloudinary upload API over httpx with signed requests.
Who:   routes/media.py (through dependencies.get_media_host) and the
       health route.

Reliability:
    - Tenacity retries transport failures and 5xx answers
      (`retry_max_attempts`, exponential backoff with jitter).
    - 4xx answers are never retried.
    - Every failure leaves this module as MediaHostError(message, http_code);
      the error transformer decides what the caller sees.

Upload profiles fix folder, resource type, accepted extensions and size cap:
    avatar      naksh/avatars          image   jpg jpeg png webp   5MB
    post_image  naksh/posts/images     image   jpg jpeg png webp   10MB
    post_video  naksh/posts/videos     video   mp4 mov avi webm    100MB
    chat_media  naksh/chats            auto    images + mp4 mov    50MB
The global `media_max_file_size` setting caps every profile.
"""

import hashlib
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from naksh.config import settings
from naksh.exceptions import MediaHostError

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"


@dataclass(frozen=True)
class UploadProfile:
    folder: str
    resource_type: str
    allowed_formats: tuple
    max_file_size: int


UPLOAD_PROFILES: Dict[str, UploadProfile] = {
    "avatar": UploadProfile("naksh/avatars", "image", ("jpg", "jpeg", "png", "webp"), 5_000_000),
    "post_image": UploadProfile("naksh/posts/images", "image", ("jpg", "jpeg", "png", "webp"), 10_000_000),
    "post_video": UploadProfile("naksh/posts/videos", "video", ("mp4", "mov", "avi", "webm"), 100_000_000),
    "chat_media": UploadProfile(
        "naksh/chats", "auto", ("jpg", "jpeg", "png", "webp", "mp4", "mov"), 50_000_000
    ),
}

VIDEO_FORMATS = {"mp4", "mov", "avi", "webm"}


@dataclass
class MediaUpload:
    """What the media host reports back for one stored file."""
    url: str
    public_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    duration_seconds: Optional[float] = None
    bytes: Optional[int] = None
    format: Optional[str] = None
    resource_type: str = "image"


class MediaHost(ABC):

    @abstractmethod
    async def upload(
        self, content: bytes, filename: str, profile: str, public_id: Optional[str] = None
    ) -> MediaUpload:
        """`public_id` names the asset inside the profile folder; the host picks one when absent."""
        ...

    @abstractmethod
    async def delete(self, public_id: str, resource_type: str = "image") -> bool:
        """True when the asset was removed, False when it did not exist."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        ...

    async def close(self) -> None:
        return None


class _RetryableResponse(Exception):
    """5xx answer from the media host; retried, then converted to MediaHostError."""

    def __init__(self, response: httpx.Response):
        self.response = response
        super().__init__(f"Media host answered {response.status_code}")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"HTTP {response.status_code}"


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """
    Cloudinary request signature: sha1 of the sorted `key=value` pairs joined
    with '&', immediately followed by the API secret.
    """
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryMediaHost(MediaHost):

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_attempts: Optional[int] = None,
        min_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
    ):
        self.cloud_name = cloud_name if cloud_name is not None else settings.cloudinary_cloud_name
        self.api_key = api_key if api_key is not None else settings.cloudinary_api_key
        self.api_secret = api_secret if api_secret is not None else settings.cloudinary_api_secret
        self._client = httpx.AsyncClient(
            base_url=f"{CLOUDINARY_API_BASE}/{self.cloud_name}",
            timeout=settings.media_timeout_seconds,
            transport=transport,
        )
        self._retrying = AsyncRetrying(
            retry=retry_if_exception_type((httpx.TransportError, _RetryableResponse)),
            stop=stop_after_attempt(max_attempts or settings.retry_max_attempts),
            wait=wait_exponential(
                multiplier=settings.retry_min_wait if min_wait is None else min_wait,
                max=settings.retry_max_wait if max_wait is None else max_wait,
            )
            + wait_random(0, 1 if min_wait is None else 0),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    # ── Transport ─────────────────────────────────────────────────────────

    async def _send_once(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = await self._client.request(method, path, **kwargs)
        if response.status_code >= 500:
            raise _RetryableResponse(response)
        return response

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send with retries; 4xx is returned, everything else that fails raises MediaHostError."""
        try:
            return await self._retrying.copy()(self._send_once, method, path, **kwargs)
        except _RetryableResponse as exc:
            raise MediaHostError(_error_message(exc.response), http_code=exc.response.status_code) from exc
        except httpx.TimeoutException as exc:
            raise MediaHostError("Request timed out", http_code=504) from exc
        except httpx.TransportError as exc:
            raise MediaHostError(f"Media host unreachable: {exc}", http_code=503) from exc

    def _signed(self, params: Dict[str, Any]) -> Dict[str, Any]:
        signed = {key: value for key, value in params.items() if value is not None}
        signed["timestamp"] = int(time.time())
        signed["signature"] = sign_params(signed, self.api_secret)
        signed["api_key"] = self.api_key
        return signed

    # ── Operations ────────────────────────────────────────────────────────

    async def upload(
        self, content: bytes, filename: str, profile: str, public_id: Optional[str] = None
    ) -> MediaUpload:
        options = UPLOAD_PROFILES.get(profile)
        if options is None:
            raise MediaHostError(f"Unknown upload profile '{profile}'", http_code=400)

        start_time = time.perf_counter()
        response = await self._send(
            "POST",
            f"/{options.resource_type}/upload",
            data=self._signed({"folder": options.folder, "public_id": public_id}),
            files={"file": (filename, content)},
        )
        if response.status_code >= 400:
            raise MediaHostError(_error_message(response), http_code=response.status_code)

        payload = response.json()
        logger.info(
            "Uploaded %s (%d bytes) to %s in %.0fms",
            filename,
            len(content),
            payload.get("public_id"),
            (time.perf_counter() - start_time) * 1000,
        )
        return MediaUpload(
            url=payload["secure_url"],
            public_id=payload["public_id"],
            width=payload.get("width"),
            height=payload.get("height"),
            duration_seconds=payload.get("duration"),
            bytes=payload.get("bytes"),
            format=payload.get("format"),
            resource_type=payload.get("resource_type", options.resource_type),
        )

    async def delete(self, public_id: str, resource_type: str = "image") -> bool:
        response = await self._send(
            "POST",
            f"/{resource_type}/destroy",
            data=self._signed({"public_id": public_id}),
        )
        if response.status_code >= 400:
            raise MediaHostError(_error_message(response), http_code=response.status_code)
        result = response.json().get("result")
        if result == "ok":
            return True
        if result == "not found":
            return False
        raise MediaHostError(f"Unexpected destroy result '{result}'", http_code=502)

    async def health_check(self) -> bool:
        """Pings the admin API; False on any failure."""
        if not (self.cloud_name and self.api_key and self.api_secret):
            return False
        try:
            response = await self._client.get("/ping", auth=(self.api_key, self.api_secret))
        except httpx.HTTPError as exc:
            logger.warning("Media host health check failed: %s", exc)
            return False
        return response.status_code == 200

    async def close(self) -> None:
        await self._client.aclose()
