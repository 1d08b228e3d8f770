from io import BytesIO
from itertools import islice
from urllib.parse import quote

import urllib3
from loguru import logger
from minio import Minio
from minio.error import S3Error

from pdf_dashboard.config import Settings
from pdf_dashboard.exceptions import ObjectExistsError, StorageAccessError, StorageError, is_policy_error
from pdf_dashboard.models.file import StorageEntry, UploadResult
from pdf_dashboard.services.storage import run_io_bound

ACCESS_ERROR_CODES = {"AccessDenied", "AllAccessDisabled", "InvalidAccessKeyId", "SignatureDoesNotMatch"}
MISSING_OBJECT_CODES = {"NoSuchKey", "NoSuchObject"}


def _translate(exc: S3Error) -> StorageError:
    message = f"{exc.code}: {exc.message}"
    if exc.code in ACCESS_ERROR_CODES:
        return StorageAccessError(message, policy=is_policy_error(message) or exc.code == "AccessDenied")
    return StorageError(message)


class MinioStorageBackend:
    """S3-compatible bucket; objects are expected to be publicly readable.

    MinIO assigns no stable object id, so entries are identified by key.
    """

    def __init__(self, app_settings: Settings, client: Minio | None = None):
        self._client = client or Minio(
            endpoint=app_settings.minio_endpoint,
            access_key=app_settings.minio_access_key,
            secret_key=app_settings.minio_secret_key,
            secure=app_settings.minio_secure,
        )
        self.bucket = app_settings.bucket
        scheme = "https" if app_settings.minio_secure else "http"
        base = app_settings.minio_public_url or f"{scheme}://{app_settings.minio_endpoint}"
        self._public_base_url = base.rstrip("/")

    def _collect(self, prefix: str, limit: int, offset: int) -> list[StorageEntry]:
        objects = self._client.list_objects(self.bucket, prefix=prefix or None)
        files = (obj for obj in objects if not obj.is_dir)
        entries = []
        for obj in islice(files, offset, offset + limit):
            entries.append(
                StorageEntry(
                    name=obj.object_name,
                    created_at=obj.last_modified,
                    metadata={"size": obj.size, "etag": obj.etag},
                )
            )
        return entries

    async def list(self, prefix: str = "", limit: int = 100, offset: int = 0) -> list[StorageEntry]:
        try:
            entries = await run_io_bound(self._collect, prefix, limit, offset)
        except S3Error as exc:
            raise _translate(exc) from exc
        except urllib3.exceptions.HTTPError as exc:
            raise StorageError(str(exc)) from exc
        logger.debug("MinIO listing bucket={} prefix={} entries={}", self.bucket, prefix, len(entries))
        return entries

    def _exists(self, key: str) -> bool:
        try:
            self._client.stat_object(self.bucket, key)
        except S3Error as exc:
            if exc.code in MISSING_OBJECT_CODES:
                return False
            raise
        return True

    def _put(self, key: str, payload: bytes, cache_control: str, overwrite: bool, content_type: str | None):
        # stat-then-put: MinIO has no conditional create here, so this is best effort
        if not overwrite and self._exists(key):
            raise ObjectExistsError(f"The resource already exists: {key}")
        return self._client.put_object(
            self.bucket,
            key,
            BytesIO(payload),
            len(payload),
            content_type=content_type or "application/pdf",
            metadata={"Cache-Control": f"max-age={cache_control}"},
        )

    async def upload(
        self,
        key: str,
        payload: bytes,
        cache_control: str = "3600",
        overwrite: bool = False,
        content_type: str | None = None,
    ) -> UploadResult:
        try:
            result = await run_io_bound(self._put, key, payload, cache_control, overwrite, content_type)
        except S3Error as exc:
            raise _translate(exc) from exc
        except urllib3.exceptions.HTTPError as exc:
            raise StorageError(str(exc)) from exc
        logger.debug(
            "Object stored bucket={} storage_key={} version_id={} size_bytes={}",
            self.bucket,
            key,
            result.version_id,
            len(payload),
        )
        return UploadResult(path=result.object_name)

    def get_public_url(self, key: str) -> str:
        return f"{self._public_base_url}/{self.bucket}/{quote(key)}"
