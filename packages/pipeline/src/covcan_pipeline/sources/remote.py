"""
sources/remote.py — Downloads the raw input snapshots.

Fetching is kept apart from the pipeline: `covcan fetch` refreshes the two
CSV files under settings.raw_dir, and `covcan run` only ever reads local
files.

Usage:
    from covcan_pipeline.sources.remote import download_snapshot, fetch_all

    path = await download_snapshot(settings.primary_url, settings.primary_path)
    paths = await fetch_all()          # both snapshots, sequentially
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import httpx
import structlog

from covcan_shared.config import settings
from covcan_pipeline.utils.retry import with_retry

log = structlog.get_logger(__name__)

CHUNK_SIZE = 256 * 1024


@with_retry(max_attempts=3, base_delay=2.0, retry_on=(httpx.HTTPError,))
async def download_snapshot(
    url: str,
    dest: Path,
    *,
    timeout: float | None = None,
) -> Path:
    """
    Stream *url* to *dest*, replacing it only once the download completes.

    Args:
        url:     Source URL.
        dest:    Destination file path; parent directories are created.
        timeout: Request timeout in seconds (default: settings.download_timeout).

    Returns:
        *dest*.

    Raises:
        httpx.HTTPError: After the final failed attempt.
    """
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    log.info("downloading", url=url, dest=str(dest))

    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".part", dir=dest.parent)
    tmp = Path(tmp_name)
    size = 0
    try:
        with os.fdopen(fd, "wb") as fh:
            async with httpx.AsyncClient(
                timeout=timeout or settings.download_timeout,
                follow_redirects=True,
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes(chunk_size=CHUNK_SIZE):
                        fh.write(chunk)
                        size += len(chunk)
        os.replace(tmp, dest)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise

    log.info("download_complete", dest=str(dest), bytes=size)
    return dest


async def fetch_all(raw_dir: Path | None = None) -> list[Path]:
    """Download the primary and secondary snapshots into *raw_dir*."""
    raw_dir = Path(raw_dir) if raw_dir else settings.raw_dir
    targets = [
        (settings.primary_url, raw_dir / settings.primary_filename),
        (settings.secondary_url, raw_dir / settings.secondary_filename),
    ]
    return [await download_snapshot(url, dest) for url, dest in targets]
