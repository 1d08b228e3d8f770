from datetime import datetime, timezone

from loguru import logger

from pdf_dashboard.exceptions import (
    AccessError,
    BackendError,
    NotFoundError,
    StorageAccessError,
    StorageError,
    ValidationError,
    is_policy_error,
)
from pdf_dashboard.models.file import FileDiagnosis, FileListing, FileRef, StorageEntry, StoredFile
from pdf_dashboard.services.storage import StorageBackend


def is_pdf(name: str) -> bool:
    return name.lower().endswith(".pdf")


def to_stored_file(entry: StorageEntry, backend: StorageBackend) -> StoredFile:
    return StoredFile(
        id=entry.id or entry.name,
        name=entry.name,
        url=backend.get_public_url(entry.name),
        uploaded_at=entry.created_at or datetime.now(timezone.utc),
        size=entry.metadata.get("size") or 0,
    )


async def _fetch_entries(backend: StorageBackend, limit: int) -> list[StorageEntry]:
    try:
        return await backend.list("", limit=limit, offset=0)
    except StorageAccessError as exc:
        logger.error("Storage listing denied bucket={} error={}", backend.bucket, str(exc))
        if exc.policy or is_policy_error(str(exc)):
            raise AccessError("Permission denied. Please check storage bucket policies.") from exc
        raise AccessError(f"Storage access denied: {exc}") from exc
    except StorageError as exc:
        logger.error("Storage listing failed bucket={} error={}", backend.bucket, str(exc))
        raise BackendError(str(exc)) from exc


async def list_pdfs(backend: StorageBackend, limit: int = 100) -> FileListing:
    entries = await _fetch_entries(backend, limit)
    files = [to_stored_file(entry, backend) for entry in entries if is_pdf(entry.name)]
    logger.info(
        "Files listed bucket={} total_files={} pdf_count={}",
        backend.bucket,
        len(entries),
        len(files),
    )
    return FileListing(files=files, bucket=backend.bucket, total_files=len(entries), pdf_count=len(files))


def match_file(files: list[StoredFile], identifier: str, allow_substring: bool = True) -> StoredFile | None:
    """Exact id first, then exact name, then (optionally) name containing the identifier."""
    tiers = [
        ("id", lambda f: f.id == identifier),
        ("name", lambda f: f.name == identifier),
    ]
    if allow_substring:
        tiers.append(("substring", lambda f: identifier in f.name))
    for tier, predicate in tiers:
        for candidate in files:
            if predicate(candidate):
                logger.debug("File matched identifier={} tier={} name={}", identifier, tier, candidate.name)
                return candidate
    return None


async def resolve_pdf(backend: StorageBackend, identifier: str, limit: int = 1000) -> StoredFile:
    if not identifier:
        raise ValidationError("File ID is required")
    listing = await list_pdfs(backend, limit=limit)
    match = match_file(listing.files, identifier)
    if match is None:
        logger.warning("File not found identifier={} scanned={}", identifier, listing.pdf_count)
        raise NotFoundError("File not found")
    return match


async def diagnose_pdf(backend: StorageBackend, identifier: str, limit: int = 100) -> FileDiagnosis:
    listing = await list_pdfs(backend, limit=limit)
    match = match_file(listing.files, identifier, allow_substring=False)
    return FileDiagnosis(
        searching_for=identifier,
        found=match is not None,
        matched_file=match,
        all_files=[FileRef(id=f.id, name=f.name) for f in listing.files],
        total_files=len(listing.files),
    )
