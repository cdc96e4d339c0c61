"""Base class for FastAPI-backed services.

A ``Service`` owns a FastAPI app, a logger, a loaded ``Config`` and a small set of built-in endpoints (``/status``,
``/heartbeat``, ``/endpoints``). Subclasses register their own endpoints with ``add_endpoint`` and release resources
in ``shutdown_cleanup``.
"""

import threading
import uuid
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel
from urllib3.util.url import Url, parse_url

from taskledger.core.config import Config, SettingsLike
from taskledger.core.logging import setup_logger
from taskledger.core.types import (
    EndpointsOutput,
    EndpointsSchema,
    Heartbeat,
    HeartbeatSchema,
    ServerStatus,
    StatusOutput,
    StatusSchema,
    TaskSchema,
)
from taskledger.core.utils import ifnone


class Service:
    """Base class for HTTP services.

    Args:
        url: URL the service binds to. Defaults to ``default_url()``.
        summary: OpenAPI summary.
        description: OpenAPI description.
        config: Fully loaded configuration. Takes precedence over ``config_defaults`` and ``config_overrides``.
        config_defaults: Pydantic model holding the default settings of the service.
        config_overrides: Runtime overrides applied on top of defaults and environment variables.
        use_structlog: Whether the service logger is a structlog logger.
        log_level: Level of the service logger.
        log_dir: Directory of the service log file.
    """

    def __init__(
        self,
        *,
        url: str | Url | None = None,
        summary: str | None = None,
        description: str | None = None,
        config: Config | None = None,
        config_defaults: BaseModel | None = None,
        config_overrides: SettingsLike = None,
        use_structlog: bool = False,
        log_level: str = "INFO",
        log_dir: str | None = None,
    ):
        self.id = uuid.uuid1()
        self.name = self.__class__.__name__
        if config is None:
            config = Config.load(defaults=config_defaults, overrides=config_overrides)
        self.config = config
        self.status = ServerStatus.Available
        self._url = self.build_url(url)
        self._endpoints: List[str] = []
        self._tasks: Dict[str, TaskSchema] = {}

        self.logger = setup_logger(
            self.name,
            log_dir=log_dir,
            logger_level=log_level.upper(),
            use_structlog=use_structlog,
            structlog_bind={"service": self.name} if use_structlog else None,
        )

        self.app = FastAPI(
            title=self.name,
            summary=ifnone(summary, default=f"{self.name} API"),
            description=ifnone(description, default=""),
            lifespan=self._lifespan,
        )

        self.add_endpoint("status", self.status_func, schema=StatusSchema, methods=["GET"])
        self.add_endpoint("heartbeat", self.heartbeat_func, schema=HeartbeatSchema, methods=["GET"])
        self.add_endpoint("endpoints", self.endpoints_func, schema=EndpointsSchema, methods=["GET"])

    @classmethod
    def default_url(cls) -> Url:
        return parse_url("http://localhost:8000")

    @classmethod
    def build_url(cls, url: str | Url | None = None) -> Url:
        if url is None:
            return cls.default_url()
        return url if isinstance(url, Url) else parse_url(str(url))

    @property
    def url(self) -> Url:
        return self._url

    @property
    def endpoints(self) -> List[str]:
        return list(self._endpoints)

    @property
    def tasks(self) -> Dict[str, TaskSchema]:
        return self._tasks

    def add_endpoint(
        self,
        path: str,
        func: Callable,
        schema: TaskSchema | None = None,
        api_route_kwargs: Optional[Dict[str, Any]] = None,
        methods: list[str] | None = None,
    ) -> None:
        """Register a route on the app.

        The schema's output model, when given, becomes the route's ``response_model``.
        """
        path = path.removeprefix("/")
        api_route_kwargs = dict(ifnone(api_route_kwargs, default={}))
        if schema is not None and schema.output_schema is not None:
            api_route_kwargs.setdefault("response_model", schema.output_schema)
        api_route_kwargs.setdefault("name", schema.name if schema is not None else func.__name__)

        if path not in self._endpoints:
            self._endpoints.append(path)
        self.app.add_api_route(
            "/" + path,
            endpoint=func,
            methods=ifnone(methods, default=["POST"]),
            **api_route_kwargs,
        )
        if schema is not None:
            self._tasks[schema.name] = schema
        else:
            self.logger.warning(f"No task schema provided for endpoint {path}.")

    # -------------------------------------------------------------------------
    # Built-in endpoints
    # -------------------------------------------------------------------------

    async def status_func(self) -> StatusOutput:
        return StatusOutput(status=self.status)

    async def heartbeat_func(self) -> Heartbeat:
        return await self.heartbeat()

    async def endpoints_func(self) -> EndpointsOutput:
        return EndpointsOutput(endpoints=self.endpoints)

    async def heartbeat(self) -> Heartbeat:
        """Return the heartbeat of the service. Subclasses add dependency checks."""
        return Heartbeat(status=self.status, server_id=str(self.id), message=f"{self.name} is {self.status.value}.")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.startup()
        try:
            yield
        finally:
            self.status = ServerStatus.Stopping
            await self.shutdown_cleanup()
            self.status = ServerStatus.Down

    async def startup(self) -> None:
        """Hook run once when the ASGI server starts."""
        self.logger.info(f"{self.name} starting at {self.url}.")

    async def shutdown_cleanup(self) -> None:
        """Hook run once when the ASGI server stops."""
        self.logger.info(f"{self.name} shutting down.")

    @classmethod
    def launch(cls, *, url: str | Url | None = None, block: bool = True, log_level: str = "info", **kwargs):
        """Create the service and serve it with uvicorn.

        With ``block=False`` the server runs in a daemon thread and the service instance is returned immediately.

        Raises:
            RuntimeError: If the server fails to start, e.g. because the port is already in use.
        """
        service = cls(url=url, **kwargs)
        host = service.url.host or "localhost"
        port = service.url.port or 8000
        server = uvicorn.Server(uvicorn.Config(service.app, host=host, port=port, log_level=log_level))

        def _serve():
            try:
                server.run()
            except (OSError, SystemExit) as e:
                # uvicorn exits the process when it cannot bind
                service.status = ServerStatus.FailedToLaunch
                service.logger.critical(f"{service.name} failed to launch at {service.url}: {e!r}")
                raise RuntimeError(f"Failed to launch {service.name} at {service.url}") from e

        if block:
            _serve()
        else:
            threading.Thread(target=_serve, name=f"{service.name}-server", daemon=True).start()
        return service
