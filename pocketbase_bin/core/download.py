"""
Network download with redirect handling, progress tracking and timeouts.

This module provides:
- HTTP/HTTPS downloads streamed straight to disk
- Redirect following with a bounded hop count
- Progress reporting (bytes, percentage, speed, ETA) when the size is known
- Cancellation of an in-flight transfer via threading.Event

Failed transfers are not retried and never leave a partial file behind.
"""

import logging
import socket
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urljoin

import requests
from urllib3.exceptions import ReadTimeoutError

from pocketbase_bin.core.exceptions import (
    DownloadCancelledError,
    DownloadTimeoutError,
    FilesystemError,
    HttpStatusError,
    NetworkError,
    TooManyRedirectsError,
)

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

CHUNK_SIZE = 8192

# Minimum seconds between two progress reports
PROGRESS_INTERVAL = 0.5

# Seconds between checks of the cancel event while a body is streaming
CANCEL_POLL_INTERVAL = 0.1


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


ProgressCallback = Callable[[DownloadProgress], None]


class Downloader:
    """
    Streams a remote resource to a local file.

    Args:
        session: HTTP session (a fresh one is created if None)
        timeout: Connect/read timeout in seconds
        max_redirects: Maximum redirect hops before giving up
        progress_callback: Optional callback for progress updates
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        max_redirects: int = 5,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        if max_redirects < 0:
            raise ValueError("max_redirects cannot be negative")

        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.progress_callback = progress_callback

    @classmethod
    def from_config(
        cls,
        config,
        session: Optional[requests.Session] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> "Downloader":
        """Create a downloader from a ProvisionConfig."""
        return cls(
            session=session,
            timeout=config.download_timeout,
            max_redirects=config.max_redirects,
            progress_callback=progress_callback,
        )

    def fetch(
        self,
        url: str,
        destination: Path,
        cancel_event: Optional[threading.Event] = None,
    ) -> Path:
        """
        Download url to destination.

        Args:
            url: URL to download from
            destination: Local path to save file (overwritten)
            cancel_event: Set from another thread to abort the transfer

        Returns:
            Path to downloaded file

        Raises:
            HttpStatusError: Final response was not 200
            TooManyRedirectsError: Redirect chain exceeded max_redirects
            DownloadTimeoutError: Connect or read timed out
            NetworkError: Connection-level failure or truncated body
            DownloadCancelledError: cancel_event was set
            FilesystemError: Destination could not be written
            ValueError: If URL or destination is empty

        Example:
            >>> downloader = Downloader(timeout=30)
            >>> downloader.fetch(
            ...     "https://github.com/o/r/releases/download/0.22.0/pb.zip",
            ...     Path("pb.zip"),
            ... )
        """
        if not url:
            raise ValueError("URL cannot be empty")

        if not destination:
            raise ValueError("Destination path cannot be empty")

        destination = Path(destination)
        _check_cancelled(cancel_event)

        logger.info(f"Downloading from {url}")
        response = self._open(url, cancel_event)

        with response:
            try:
                self._write_body(response, destination, cancel_event)
            except BaseException:
                destination.unlink(missing_ok=True)
                raise

        logger.info("Download completed")
        return destination

    def _open(
        self, url: str, cancel_event: Optional[threading.Event]
    ) -> requests.Response:
        """Issue the request, following redirects, and return the 200 response."""
        current = url

        for _ in range(self.max_redirects + 1):
            _check_cancelled(cancel_event)
            response = self._request(current)
            status = response.status_code

            if status in REDIRECT_STATUSES:
                location = response.headers.get("Location")
                response.close()
                if not location:
                    raise HttpStatusError(status, "redirect without Location", current)
                current = urljoin(current, location)
                logger.debug(f"Redirect {status} -> {current}")
                continue

            if status != 200:
                reason = response.reason or ""
                response.close()
                raise HttpStatusError(status, reason, current)

            return response

        raise TooManyRedirectsError(url, self.max_redirects)

    def _request(self, url: str) -> requests.Response:
        try:
            return self.session.get(
                url, stream=True, timeout=self.timeout, allow_redirects=False
            )
        except requests.Timeout as e:
            raise DownloadTimeoutError(
                f"Download timeout after {self.timeout}s: {url}"
            ) from e
        except requests.RequestException as e:
            raise NetworkError(f"Network error while fetching {url}: {e}", e) from e

    def _write_body(
        self,
        response: requests.Response,
        destination: Path,
        cancel_event: Optional[threading.Event],
    ) -> int:
        """Stream the response body into destination; returns bytes written."""
        total_size = _content_length(response)
        downloaded = 0
        start_time = time.monotonic()
        last_progress_time = start_time

        watcher = CancelWatcher(response, cancel_event)
        watcher.start()

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    _check_cancelled(cancel_event)
                    if not chunk:
                        continue

                    f.write(chunk)
                    downloaded += len(chunk)

                    current_time = time.monotonic()
                    if total_size and (
                        current_time - last_progress_time >= PROGRESS_INTERVAL
                        or downloaded >= total_size
                    ):
                        self._report(downloaded, total_size, current_time - start_time)
                        last_progress_time = current_time

        except requests.RequestException as e:
            if watcher.fired:
                raise DownloadCancelledError("Download cancelled") from e
            if _is_read_timeout(e):
                raise DownloadTimeoutError(
                    f"Download timeout after {self.timeout}s: {response.url}"
                ) from e
            raise NetworkError(f"Connection lost during download: {e}", e) from e
        except OSError as e:
            if watcher.fired:
                raise DownloadCancelledError("Download cancelled") from e
            raise FilesystemError(
                f"Cannot write download ({e.strerror})", destination
            ) from e
        finally:
            watcher.stop()

        # An aborted socket can also look like a clean end of stream
        _check_cancelled(cancel_event)

        if total_size is not None and downloaded < total_size:
            raise NetworkError(
                f"Incomplete download: received {downloaded} of {total_size} bytes"
            )

        return downloaded

    def _report(self, downloaded: int, total_size: int, elapsed: float) -> None:
        if not self.progress_callback:
            return

        speed = downloaded / elapsed if elapsed > 0 else 0
        remaining = max(total_size - downloaded, 0)
        eta = remaining / speed if speed > 0 else 0

        self.progress_callback(
            DownloadProgress(
                bytes_downloaded=downloaded,
                total_bytes=total_size,
                percentage=min(downloaded / total_size * 100, 100.0),
                speed_bps=speed,
                eta_seconds=eta,
            )
        )


class CancelWatcher:
    """
    Aborts a streaming response from a background thread once cancelled.

    Checking the cancel event between chunks cannot interrupt a read that is
    blocked on the socket, so the watcher shuts the socket down instead. The
    blocked read then fails (or ends early) and the caller maps that to
    DownloadCancelledError by checking ``fired``.

    Args:
        response: Streaming response whose connection may be aborted
        cancel_event: Event to watch (the watcher is inert if None)
    """

    def __init__(
        self, response: requests.Response, cancel_event: Optional[threading.Event]
    ):
        self.response = response
        self.cancel_event = cancel_event
        self.fired = False
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self.cancel_event is None:
            return
        self._thread = threading.Thread(
            target=self._run, name="pocketbase-bin-cancel", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop watching; waits for the watcher thread to exit."""
        self._done.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        while not self._done.is_set():
            if self.cancel_event.wait(CANCEL_POLL_INTERVAL):
                if not self._done.is_set():
                    self.fired = True
                    _abort_connection(self.response)
                return


def _abort_connection(response: requests.Response) -> None:
    """Shut down the socket under a streaming response."""
    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        logger.debug("No socket to abort; cancellation applies at next chunk")
        return

    logger.debug("Aborting download connection")
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        # Already closed by the peer or by the reading thread
        logger.debug(f"Socket shutdown failed: {e}")


def _is_read_timeout(error: requests.RequestException) -> bool:
    """
    Check whether a streaming error was caused by a read timeout.

    While iterating a body, requests reports urllib3's ReadTimeoutError as a
    plain ConnectionError wrapping it.
    """
    if isinstance(error, requests.Timeout):
        return True
    return any(isinstance(arg, ReadTimeoutError) for arg in error.args)


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise DownloadCancelledError("Download cancelled")


def _content_length(response: requests.Response) -> Optional[int]:
    """Declared body size, or None if the header is absent or malformed."""
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        size = int(value)
    except ValueError:
        logger.debug(f"Ignoring malformed Content-Length: {value!r}")
        return None
    return size if size >= 0 else None


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    else:
        # Unknown total size
        return f"{mb_downloaded:.1f} MB " f"at {speed_mbps:.1f} MB/s"
