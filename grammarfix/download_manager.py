"""
Model Download Manager for GrammarFix

Streams a remote GGUF file to disk with progress callbacks.

The file is written to '<destination>.part' and only renamed into place
once every byte has arrived, so the model-ready check never sees a
half-written model.
"""

import os
import threading
import time
from pathlib import Path
from typing import Callable

import requests

from grammarfix.config import (
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_CONNECT_TIMEOUT_SECONDS,
    DOWNLOAD_READ_TIMEOUT_SECONDS,
)
from grammarfix.errors import DownloadCancelled, DownloadError
from grammarfix.logging_config import debug_log, info, warning

# on_progress(received_bytes, total_bytes); total_bytes is -1 when unknown
ProgressCallback = Callable[[int, int], None]


def format_megabytes(num_bytes: int) -> str:
    """Format a byte count as megabytes with one decimal ('12.3 MB')."""
    return f"{num_bytes / 1024 / 1024:.1f} MB"


class ModelDownloader:
    """
    Downloads a single model file over HTTP(S).

    One downloader handles one download at a time. cancel() may be called
    from another thread (the UI) and is honoured between chunks. A cancel stays
    in effect until reset().
    """

    def __init__(self, chunk_size: int = DOWNLOAD_CHUNK_SIZE, session: requests.Session = None):
        self.chunk_size = chunk_size
        self.session = session or requests.Session()
        self._cancel_event = threading.Event()

    def reset(self):
        """Clear a previous cancel request; call before starting a new download."""
        self._cancel_event.clear()

    def cancel(self):
        """Request cancellation of the running download."""
        debug_log("[DOWNLOAD] Cancel requested")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def download(self, url: str, destination, on_progress: ProgressCallback = None) -> Path:
        """
        Download url to destination.

        Args:
            url: Remote file URL
            destination: Final path of the file
            on_progress: Called after every chunk with (received, total)

        Returns:
            Path of the completed file

        Raises:
            DownloadCancelled: If cancel() was called since the last reset()
            DownloadError: On HTTP, network or disk errors
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        part_path = destination.with_name(destination.name + ".part")

        info(f"Downloading model from {url}")
        debug_log(f"[DOWNLOAD] Target: {destination}")
        start_time = time.time()
        received = 0

        try:
            with self.session.get(
                url,
                stream=True,
                timeout=(DOWNLOAD_CONNECT_TIMEOUT_SECONDS, DOWNLOAD_READ_TIMEOUT_SECONDS),
            ) as response:
                response.raise_for_status()
                try:
                    total = int(response.headers.get('Content-Length', -1))
                except ValueError:
                    total = -1
                debug_log(f"[DOWNLOAD] Content-Length: {total}")

                with open(part_path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if self._cancel_event.is_set():
                            raise DownloadCancelled("Download cancelled")
                        if not chunk:
                            continue
                        f.write(chunk)
                        received += len(chunk)
                        if on_progress:
                            on_progress(received, total)

            if total != -1 and received != total:
                raise DownloadError(
                    f"Incomplete download: received {format_megabytes(received)} "
                    f"of {format_megabytes(total)}"
                )

            os.replace(part_path, destination)

        except DownloadError:
            self._remove_partial(part_path)
            raise
        except requests.exceptions.HTTPError as e:
            self._remove_partial(part_path)
            status = e.response.status_code if e.response is not None else "unknown"
            raise DownloadError(f"Server returned HTTP {status} for {url}") from e
        except requests.exceptions.Timeout as e:
            self._remove_partial(part_path)
            raise DownloadError(f"Download timed out after {DOWNLOAD_READ_TIMEOUT_SECONDS}s without data") from e
        except requests.exceptions.ConnectionError as e:
            self._remove_partial(part_path)
            raise DownloadError(f"Could not connect to {url}") from e
        except requests.exceptions.RequestException as e:
            self._remove_partial(part_path)
            raise DownloadError(f"Download failed: {e}") from e
        except OSError as e:
            self._remove_partial(part_path)
            raise DownloadError(f"Could not write model file: {e}") from e

        elapsed = time.time() - start_time
        info(f"Download complete: {format_megabytes(received)} in {elapsed:.1f}s")
        return destination

    def _remove_partial(self, part_path: Path):
        """Delete a leftover .part file, logging instead of raising."""
        try:
            if part_path.exists():
                part_path.unlink()
                debug_log(f"[DOWNLOAD] Removed partial file {part_path}")
        except OSError as e:
            warning(f"Could not remove partial download {part_path}: {e}")
