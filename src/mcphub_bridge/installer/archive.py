"""
Archive download and extraction for managed runtimes.

The whole archive is buffered in memory, then unpacked into the destination.
"""

import asyncio
import gzip
import io
import logging
import tarfile
import zipfile
import zlib
from pathlib import Path

import aiohttp

from ..errors import ArchiveError, FilesystemError, NetworkError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


async def download(url: str) -> bytes:
    """Download url into memory, failing on any non-2xx status."""
    logger.info(f"Downloading {url}")
    try:
        async with aiohttp.ClientSession(trust_env=True) as session:
            async with session.get(url) as response:
                if response.status >= 300:
                    raise NetworkError(f"HTTP {response.status} fetching {url}")
                buffer = bytearray()
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    buffer.extend(chunk)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise NetworkError(f"Failed to fetch {url}: {e}") from e

    logger.debug(f"Downloaded {len(buffer)} bytes from {url}")
    return bytes(buffer)


def _extract_tar_gz(data: bytes, dest_dir: Path) -> None:
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as archive:
        archive.extractall(dest_dir, filter="data")


def _extract_zip(data: bytes, dest_dir: Path) -> None:
    root = dest_dir.resolve()
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        for name in archive.namelist():
            target = (root / name).resolve()
            if target != root and root not in target.parents:
                raise ArchiveError(f"Archive member escapes destination: {name}")
        archive.extractall(dest_dir)


def extract(data: bytes, dest_dir: Path, archive_format: str) -> None:
    """Unpack an in-memory archive ("tar.gz" or "zip") into dest_dir."""
    logger.debug(f"Extracting {archive_format} archive into {dest_dir}")
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        if archive_format == "tar.gz":
            _extract_tar_gz(data, dest_dir)
        elif archive_format == "zip":
            _extract_zip(data, dest_dir)
        else:
            raise ArchiveError(f"Unsupported archive format: {archive_format}")
    except (tarfile.TarError, zipfile.BadZipFile, gzip.BadGzipFile, zlib.error, EOFError) as e:
        raise ArchiveError(f"Failed to extract archive: {e}") from e
    except OSError as e:
        raise FilesystemError(f"Failed to write archive contents to {dest_dir}: {e}") from e


async def fetch_and_extract(url: str, dest_dir: Path, archive_format: str) -> None:
    """
    Download url and unpack it into dest_dir.

    Raises:
        NetworkError: transport failure or non-success status
        ArchiveError: corrupt or unsupported archive
        FilesystemError: dest_dir could not be written
    """
    data = await download(url)
    extract(data, dest_dir, archive_format)
