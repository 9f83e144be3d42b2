from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import httpx

from itinerary_desk.core.config import Settings
from itinerary_desk.core.errors import TransportError
from itinerary_desk.integrations.http_utils import build_timeout, send_request

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    """put/delete/public_url over a flat key space such as ``<itinerary>/<file>``.

    ``put`` never overwrites an existing key.
    """

    def put(self, key: str, data: bytes, content_type: str | None = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def public_url(self, key: str) -> str: ...


class LocalObjectStorage:
    def __init__(self, root: str, base_url: str) -> None:
        self._root = Path(root)
        self._base_url = base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root.resolve() not in path.parents:
            raise ValueError(f"Storage key escapes the storage root: {key}")
        return path

    def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        path = self._path(key)
        try:
            os.makedirs(path.parent, exist_ok=True)
            with open(path, "xb") as handle:
                handle.write(data)
        except OSError as exc:
            raise TransportError(f"Could not store {key}") from exc

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            if path.exists():
                path.unlink()
        except OSError as exc:
            raise TransportError(f"Could not delete {key}") from exc

    def public_url(self, key: str) -> str:
        return f"{self._base_url}/{quote(key)}"


class SupabaseObjectStorage:
    """Supabase Storage REST API, authenticated with the service key."""

    def __init__(
        self,
        *,
        url: str,
        service_key: str,
        bucket: str,
        timeout: httpx.Timeout | None = None,
        trust_env: bool = False,
    ) -> None:
        if not url or not service_key:
            raise ValueError("Supabase storage credentials are not configured.")
        self._base_url = f"{url.rstrip('/')}/storage/v1"
        self._service_key = service_key
        self._bucket = bucket
        self._timeout = timeout
        self._trust_env = trust_env

    def _headers(self, **extra: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._service_key}",
            "apikey": self._service_key,
            **extra,
        }

    def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        self._call(
            "POST",
            f"{self._base_url}/object/{self._bucket}/{quote(key)}",
            content=data,
            headers=self._headers(
                **{
                    "Content-Type": content_type or "application/octet-stream",
                    "Cache-Control": "3600",
                    "x-upsert": "false",
                }
            ),
        )

    def delete(self, key: str) -> None:
        self._call(
            "DELETE",
            f"{self._base_url}/object/{self._bucket}",
            json={"prefixes": [key]},
            headers=self._headers(**{"Content-Type": "application/json"}),
        )

    def public_url(self, key: str) -> str:
        return f"{self._base_url}/object/public/{self._bucket}/{quote(key)}"

    def _call(self, method: str, url: str, **kwargs: object) -> httpx.Response:
        try:
            response = send_request(
                method,
                url,
                timeout=self._timeout,
                trust_env=self._trust_env,
                **kwargs,  # type: ignore[arg-type]
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Storage %s failed: status=%s", method, exc.response.status_code
            )
            raise TransportError("File storage rejected the request.") from exc
        except httpx.RequestError as exc:
            logger.warning("Storage unreachable: %s", type(exc).__name__)
            raise TransportError("File storage is unreachable.") from exc
        return response


def build_storage(settings: Settings) -> ObjectStorage:
    backend = settings.storage_backend.lower()
    if backend == "supabase":
        return SupabaseObjectStorage(
            url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            bucket=settings.storage_bucket,
            timeout=build_timeout(settings.http_timeout_seconds),
            trust_env=settings.http_trust_env,
        )
    if backend == "local":
        return LocalObjectStorage(
            root=settings.local_storage_path,
            base_url=settings.local_storage_base_url,
        )
    raise ValueError(f"Unsupported STORAGE_BACKEND: {settings.storage_backend}")
