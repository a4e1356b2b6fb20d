"""BigFix client: one transport, one retry engine, one service per entity kind."""

import threading
from collections.abc import Callable
from types import TracebackType

import requests
import structlog

from bigfix_inventory.config import ConnectionConfig
from bigfix_inventory.retry import RetryEngine
from bigfix_inventory.services import (
    ActionService,
    AnalysisService,
    ComputerService,
    FixletService,
    PropertyService,
    RoleService,
    SiteService,
    TaskService,
)
from bigfix_inventory.transport import Transport

logger = structlog.get_logger()


class BigFixClient:
    """Entry point to the BigFix REST API.

    All services share the transport and retry engine, so a client may be used
    from several threads at once.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        before_request: Callable[[str], None] | None = None,
        cancel_event: threading.Event | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Connection settings
            before_request: Rate-limit hook called with a limiter tag before every attempt
            cancel_event: Set it to abort in-flight fetches before their next attempt
            session: Pre-built HTTP session, mainly for tests
            sleep: Backoff sleep function, mainly for tests
        """
        self.config = config
        self.transport = Transport(
            server_name=config.server_name,
            port=config.port,
            user_name=config.user_name,
            password=config.password,
            verify_ssl=not config.insecure_skip_verify,
            timeout=config.request_timeout,
            before_request=before_request,
            session=session,
        )
        self.engine = RetryEngine(
            max_attempts=config.max_retries,
            min_delay=config.min_retry_delay_seconds,
            sleep=sleep,
            cancel_event=cancel_event,
        )

        self.computers = ComputerService(self.transport, self.engine)
        self.sites = SiteService(self.transport, self.engine)
        self.analyses = AnalysisService(self.transport, self.engine)
        self.tasks = TaskService(self.transport, self.engine)
        self.fixlets = FixletService(self.transport, self.engine)
        self.actions = ActionService(self.transport, self.engine)
        self.properties = PropertyService(self.transport, self.engine)
        self.roles = RoleService(self.transport, self.engine)

        logger.debug("BigFix client initialized", base_url=self.transport.base_url, max_retries=config.max_retries)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "BigFixClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
