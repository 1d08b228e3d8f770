import asyncio
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any, Callable, Protocol
from urllib.parse import quote

from loguru import logger

from pdf_dashboard.config import Settings
from pdf_dashboard.exceptions import ObjectExistsError, StorageAccessError, StorageError
from pdf_dashboard.models.file import StorageEntry, UploadResult

PUBLIC_MOUNT = "/storage"


async def run_io_bound(func: Callable[..., Any], *args, **kwargs):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))


class StorageBackend(Protocol):
    bucket: str

    async def list(self, prefix: str = "", limit: int = 100, offset: int = 0) -> list[StorageEntry]: ...

    async def upload(
        self,
        key: str,
        payload: bytes,
        cache_control: str = "3600",
        overwrite: bool = False,
        content_type: str | None = None,
    ) -> UploadResult: ...

    def get_public_url(self, key: str) -> str: ...


class LocalStorageBackend:
    """Stores objects as files in a directory that the app serves under /storage."""

    def __init__(self, root: Path, public_base_url: str, bucket: str = "local"):
        self.root = root
        self.bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")

    def _collect(self, prefix: str, limit: int, offset: int) -> list[StorageEntry]:
        paths = sorted(
            path
            for path in self.root.iterdir()
            if path.is_file() and not path.name.startswith(".") and path.name.startswith(prefix)
        )
        entries = []
        for path in paths[offset : offset + limit]:
            stat = path.stat()
            entries.append(
                StorageEntry(
                    name=path.name,
                    created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    metadata={"size": stat.st_size},
                )
            )
        return entries

    async def list(self, prefix: str = "", limit: int = 100, offset: int = 0) -> list[StorageEntry]:
        try:
            entries = await run_io_bound(self._collect, prefix, limit, offset)
        except PermissionError as exc:
            raise StorageAccessError(f"permission denied listing {self.root}") from exc
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        logger.debug("Local listing root={} prefix={} entries={}", str(self.root), prefix, len(entries))
        return entries

    def _write(self, destination: Path, payload: bytes, overwrite: bool) -> None:
        mode = "wb" if overwrite else "xb"
        with destination.open(mode) as handle:
            handle.write(payload)

    async def upload(
        self,
        key: str,
        payload: bytes,
        cache_control: str = "3600",
        overwrite: bool = False,
        content_type: str | None = None,
    ) -> UploadResult:
        destination = self.root / key
        try:
            await run_io_bound(self._write, destination, payload, overwrite)
        except FileExistsError as exc:
            raise ObjectExistsError(f"The resource already exists: {key}") from exc
        except PermissionError as exc:
            raise StorageAccessError(f"permission denied writing {key}") from exc
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        logger.debug(
            "File saved storage_key={} destination={} size_bytes={}",
            key,
            str(destination),
            len(payload),
        )
        return UploadResult(path=key)

    def get_public_url(self, key: str) -> str:
        return f"{self._public_base_url}{PUBLIC_MOUNT}/{quote(key)}"


def build_storage_backend(app_settings: Settings) -> StorageBackend:
    if app_settings.storage_backend == "minio":
        from pdf_dashboard.services.minio_storage import MinioStorageBackend

        return MinioStorageBackend(app_settings)
    return LocalStorageBackend(
        app_settings.upload_path,
        app_settings.public_base_url,
        bucket=app_settings.bucket,
    )
