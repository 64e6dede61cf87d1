"""
Distribution download with authentication, proxy support and cancellation.

This module provides the single-attempt fetch used by the installer:
- HTTP/HTTPS downloads with TLS verification (via requests)
- HTTP Basic authentication from configuration or URI user-info
- Authenticated proxies
- Bounded connect/read timeouts
- Chunked streaming with cooperative cancellation
- Local ``file:`` URIs

Only credential-free URIs are ever logged. There is no retry loop; a failed
download surfaces to the caller.
"""

import logging
import platform
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, Optional, Tuple, Union
from urllib.parse import quote, unquote, urlsplit, urlunsplit
from urllib.request import url2pathname

import requests
from requests.auth import HTTPBasicAuth
from requests.exceptions import HTTPError, RequestException, Timeout

from wrapperkit import __version__
from wrapperkit.core.exceptions import (
    ConfigurationError,
    DownloadInterruptedError,
    InsecureAuthenticationError,
    NetworkError,
)
from wrapperkit.core.paths import safe_uri

logger = logging.getLogger(__name__)

BUFFER_SIZE = 10 * 1024
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 10.0


@dataclass
class NetworkSettings:
    """Already-resolved network configuration for downloads."""

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT

    user: Optional[str] = None
    """Basic authentication user; overrides URI user-info when set"""

    password: Optional[str] = None

    proxies: Dict[str, str] = field(default_factory=dict)
    """Proxy URL per scheme, e.g. {'https': 'http://proxy:3128'}"""

    proxy_user: Optional[str] = None
    proxy_password: Optional[str] = None

    allow_insecure_auth: bool = True
    """Whether Basic credentials may be sent over plain HTTP (with a warning)"""


def _with_credentials(url: str, user: str, password: str) -> str:
    """Embed credentials in a URL, replacing any it already carries."""
    parts = urlsplit(url)
    host = parts.netloc.rpartition("@")[2]
    netloc = f"{quote(user, safe='')}:{quote(password, safe='')}@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


class Downloader:
    """
    Downloads a distribution to a local file.

    Example:
        >>> downloader = Downloader(NetworkSettings(connect_timeout=5))
        >>> downloader.download("https://example.org/tool-1.2.3.zip", Path("tool.zip.part"))
    """

    def __init__(
        self,
        settings: Optional[NetworkSettings] = None,
        app_name: str = "wrapperkit",
        app_version: str = __version__,
    ):
        """
        Initialize downloader.

        Args:
            settings: Network settings (defaults: 10s timeouts, no auth, no proxy)
            app_name: Application name reported in the User-Agent
            app_version: Application version reported in the User-Agent
        """
        self.settings = settings or NetworkSettings()
        self.app_name = app_name
        self.app_version = app_version

    @property
    def user_agent(self) -> str:
        """User-Agent header identifying the wrapper and its platform."""
        return (
            f"{self.app_name}/{self.app_version} "
            f"({platform.system()};{platform.release()};{platform.machine()}) "
            f"({platform.python_implementation()};{platform.python_version()})"
        )

    def resolve_credentials(self, uri: str) -> Optional[Tuple[str, str]]:
        """
        Resolve Basic authentication credentials for a URI.

        Explicitly configured credentials win over user-info embedded in the
        URI.

        Returns:
            (user, password) or None if no credentials are available
        """
        if self.settings.user is not None and self.settings.password is not None:
            return self.settings.user, self.settings.password

        parts = urlsplit(uri)
        if parts.username is not None:
            return unquote(parts.username), unquote(parts.password or "")

        return None

    def resolve_proxies(self) -> Dict[str, str]:
        """Proxy mapping for requests, with proxy credentials attached if configured."""
        proxies = dict(self.settings.proxies)

        if self.settings.proxy_user is not None:
            for scheme, proxy_url in proxies.items():
                proxies[scheme] = _with_credentials(
                    proxy_url, self.settings.proxy_user, self.settings.proxy_password or ""
                )
                logger.debug(f"Using authenticated {scheme} proxy: {safe_uri(proxy_url)}")

        return proxies

    def download(
        self,
        uri: str,
        destination: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
    ) -> Path:
        """
        Download ``uri`` to ``destination``.

        The destination is either completely written or removed again; the
        caller is responsible for moving it to its final location.

        Args:
            uri: Distribution URI (credentials allowed)
            destination: Local file to write
            cancel_event: Optional event; when set, the download is aborted
                at the next chunk boundary

        Returns:
            Path to the downloaded file

        Raises:
            NetworkError: If the transfer fails or times out
            DownloadInterruptedError: If cancelled through ``cancel_event``
            ConfigurationError: If the URI scheme is not supported
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        scheme = urlsplit(uri).scheme.lower()
        logger.info(f"Downloading {safe_uri(uri)}")

        try:
            if scheme in ("http", "https"):
                self._download_http(uri, destination, cancel_event)
            elif scheme == "file":
                self._download_local(uri, destination, cancel_event)
            else:
                raise ConfigurationError(
                    f"Unsupported distribution URI scheme '{scheme}': {safe_uri(uri)}"
                )
        except BaseException:
            destination.unlink(missing_ok=True)
            raise

        logger.debug(f"Download complete: {destination}")
        return destination

    def _download_http(
        self, uri: str, destination: Path, cancel_event: Optional[threading.Event]
    ) -> None:
        safe = safe_uri(uri)
        auth = None

        credentials = self.resolve_credentials(uri)
        if credentials is not None:
            if urlsplit(uri).scheme.lower() != "https":
                if not self.settings.allow_insecure_auth:
                    raise InsecureAuthenticationError(
                        f"Refusing to send HTTP Basic Authentication credentials over an "
                        f"insecure connection to {safe}. Use HTTPS or allow insecure "
                        "authentication explicitly."
                    )
                logger.warning(
                    "WARNING - Using HTTP Basic Authentication over an insecure connection "
                    "to download the distribution. Please consider using HTTPS."
                )
            # UTF-8 credentials; requests would encode str values as latin-1
            user, password = credentials
            auth = HTTPBasicAuth(user.encode("utf-8"), password.encode("utf-8"))

        proxies = self.resolve_proxies()

        try:
            with requests.get(
                safe,
                headers={"User-Agent": self.user_agent},
                auth=auth,
                proxies=proxies or None,
                stream=True,
                timeout=(self.settings.connect_timeout, self.settings.read_timeout),
                allow_redirects=True,
            ) as response:
                try:
                    response.raise_for_status()
                except HTTPError as e:
                    raise NetworkError(
                        f"Downloading from {safe} failed: HTTP {response.status_code} "
                        f"{response.reason}"
                    ) from e

                with open(destination, "wb") as out:
                    self._copy_chunks(
                        response.iter_content(chunk_size=BUFFER_SIZE), out, cancel_event
                    )
        except Timeout as e:
            raise NetworkError(f"Downloading from {safe} failed: timeout") from e
        except RequestException as e:
            reason = str(e)
            for proxy_url in proxies.values():
                reason = reason.replace(proxy_url, safe_uri(proxy_url))
            raise NetworkError(f"Downloading from {safe} failed: {reason}") from e
        except OSError as e:
            raise NetworkError(f"Downloading from {safe} failed: {e}") from e

    def _download_local(
        self, uri: str, destination: Path, cancel_event: Optional[threading.Event]
    ) -> None:
        source = Path(url2pathname(urlsplit(uri).path))

        try:
            with open(source, "rb") as inp, open(destination, "wb") as out:
                self._copy_chunks(
                    iter(lambda: inp.read(BUFFER_SIZE), b""), out, cancel_event
                )
        except OSError as e:
            raise NetworkError(f"Downloading from {safe_uri(uri)} failed: {e}") from e

    @staticmethod
    def _copy_chunks(
        chunks: Iterable[bytes],
        out: BinaryIO,
        cancel_event: Optional[threading.Event],
    ) -> int:
        downloaded = 0
        for chunk in chunks:
            if cancel_event is not None and cancel_event.is_set():
                raise DownloadInterruptedError("Download was interrupted!")
            if chunk:
                out.write(chunk)
                downloaded += len(chunk)
        return downloaded


__all__ = [
    "Downloader",
    "NetworkSettings",
    "BUFFER_SIZE",
]
