"""HTTP transport shared by every BigFix resource service."""

from collections.abc import Callable
from types import TracebackType
from urllib.parse import urlsplit, urlunsplit

import requests
import structlog

logger = structlog.get_logger()

BASE_URL = "https://{server}:{port}"


class Transport:
    """Configured HTTP client for one BigFix server.

    Holds a single ``requests.Session`` with basic credentials, TLS policy and
    the XML ``Accept`` header. Configuration is fixed at construction, so one
    instance can be shared by concurrent callers.
    """

    def __init__(
        self,
        server_name: str,
        port: int,
        user_name: str,
        password: str,
        verify_ssl: bool = True,
        timeout: float = 120.0,
        before_request: Callable[[str], None] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            server_name: BigFix server host name
            port: BigFix REST API port
            user_name: Operator user name
            password: Operator password
            verify_ssl: Whether to verify TLS certificates
            timeout: Per-request timeout in seconds
            before_request: Rate-limit hook called with a limiter tag before every attempt
            session: Pre-built session, mainly for tests
        """
        if not server_name:
            raise ValueError("BigFix server name required")

        self.server_name = server_name
        self.port = port
        self.base_url = BASE_URL.format(server=server_name, port=port)
        self.timeout = timeout
        self.before_request = before_request

        self.session = session or requests.Session()
        self.session.auth = (user_name, password)
        self.session.verify = verify_ssl
        self.session.headers.update({"Accept": "application/xml"})

        logger.debug("Transport initialized", base_url=self.base_url, verify_ssl=verify_ssl, timeout=timeout)

    def url_for(self, path: str) -> str:
        """Return the absolute URL for an API path."""
        return self.base_url + path

    def resource_for(self, path: str) -> str:
        """Return the resource URL for an API path, without its query string."""
        parts = urlsplit(self.url_for(path))
        return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))

    def get(self, path: str, tag: str = "") -> requests.Response:
        """Perform exactly one GET request.

        Transport-level failures propagate as ``requests.RequestException``;
        the retry engine decides what to do with them.
        """
        if self.before_request is not None:
            self.before_request(tag)

        url = self.url_for(path)
        logger.debug("Sending request", url=url, tag=tag)
        return self.session.get(url, timeout=self.timeout)

    def close(self) -> None:
        """Release pooled connections."""
        self.session.close()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
