"""TaskLedger Service - user accounts and owner-scoped task tracking over HTTP."""

from datetime import timedelta
from typing import List, Optional

from fastapi import Depends, Query, Request, Security, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from urllib3.util.url import Url, parse_url

from taskledger.config import load_taskledger_config
from taskledger.core import SettingsLike, TaskSchema, as_bool
from taskledger.core.exceptions import TaskLedgerError, Unauthenticated, ValidationError
from taskledger.core.security import (
    AuthGuard,
    PasswordHasher,
    TokenService,
    bearer_scheme,
    parse_keyring,
    require_subject,
)
from taskledger.core.service import Service
from taskledger.core.types import Heartbeat
from taskledger.db import TaskLedgerDB
from taskledger.middleware import RequestLoggingMiddleware
from taskledger.models import (
    ErrorResponse,
    LoginPayload,
    RegisterPayload,
    TaskCreateRequest,
    TaskListResponse,
    TaskResponse,
    TokenResponse,
    UserResponse,
)
from taskledger.repositories import TaskRepository, UserRepository
from taskledger.services import AccountService, TaskService

RegisterSchema = TaskSchema(name="register", input_schema=RegisterPayload, output_schema=UserResponse)
LoginSchema = TaskSchema(name="login", input_schema=LoginPayload, output_schema=TokenResponse)
ListUsersSchema = TaskSchema(name="list_users", input_schema=None, output_schema=None)
GetUserSchema = TaskSchema(name="get_user", input_schema=None, output_schema=UserResponse)
CreateTaskSchema = TaskSchema(name="create_task", input_schema=TaskCreateRequest, output_schema=TaskResponse)
ListTasksSchema = TaskSchema(name="list_tasks", input_schema=None, output_schema=TaskListResponse)


def _error_response(status_code: int, detail: str, error_code: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=detail, error_code=error_code).model_dump(),
        headers=headers,
    )


def taskledger_error_handler(request: Request, exc: TaskLedgerError) -> JSONResponse:
    """Render a ``TaskLedgerError`` with its own status and error code."""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return _error_response(exc.status_code, exc.message, exc.error_code, headers)


def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        detail = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        detail = "Invalid request"
    return _error_response(ValidationError.status_code, detail, ValidationError.error_code)


async def require_directory_access(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Optional[str]:
    """Gate for ``GET /`` and ``GET /{id}``: open when USER_DIRECTORY_PUBLIC is set, bearer-protected otherwise."""
    if request.app.state.user_directory_public:
        return None
    return await require_subject(request, credentials)


class TaskLedgerService(Service):
    """User account and task tracking service.

    Configuration is accessed via ``self.config.TASKLEDGER`` and can be overridden with ``TASKLEDGER__*`` env vars.

    Example:
        ```python
        # Default settings (reads TASKLEDGER__* env vars)
        TaskLedgerService.launch(block=True)

        # Unit testing with in-memory repositories, no MongoDB
        service = TaskLedgerService(enable_db=False, user_repo=fake_users, task_repo=fake_tasks)
        ```
    """

    def __init__(
        self,
        *,
        url: str | Url | None = None,
        enable_db: bool = True,
        config_overrides: SettingsLike = None,
        user_repo: Optional[UserRepository] = None,
        task_repo: Optional[TaskRepository] = None,
        token_service: Optional[TokenService] = None,
        password_hasher: Optional[PasswordHasher] = None,
        **kwargs,
    ):
        """Initialize TaskLedgerService.

        Args:
            url: Service URL override. Defaults to config.TASKLEDGER.URL.
            enable_db: Connect repositories to MongoDB. When False, both repositories must be given.
            config_overrides: Config overrides applied over defaults and environment variables.
            user_repo: User repository override.
            task_repo: Task repository override.
            token_service: Token service override. Defaults to one built from the JWT_* settings.
            password_hasher: Password hasher override. Defaults to one built from BCRYPT_ROUNDS.
            **kwargs: Passed to Service base class.
        """
        if not enable_db and (user_repo is None or task_repo is None):
            raise ValueError("user_repo and task_repo are required when enable_db is False")

        config = load_taskledger_config(config_overrides)
        cfg = config.TASKLEDGER

        kwargs.setdefault("use_structlog", as_bool(cfg.USE_STRUCTLOG))
        kwargs.setdefault("log_level", cfg.LOG_LEVEL)
        kwargs.setdefault("log_dir", cfg.LOG_DIR)

        super().__init__(
            url=url if url is not None else cfg.URL,
            summary="TaskLedger Service",
            description="User registration, bearer token authentication and owner-scoped task listing.",
            config=config,
            **kwargs,
        )

        # Database + repositories
        self.db: Optional[TaskLedgerDB] = None
        if enable_db:
            self.db = TaskLedgerDB(uri=cfg.MONGO_URI, db_name=cfg.MONGO_DB, timeout_ms=int(cfg.MONGO_TIMEOUT_MS))
        self.user_repo = user_repo if user_repo is not None else UserRepository(self.db)
        self.task_repo = task_repo if task_repo is not None else TaskRepository(self.db)

        # Security
        if token_service is None:
            secret = self.config.get_secret("TASKLEDGER", "JWT_SECRET")
            if not secret:
                raise ValueError("No signing secret configured. Set TASKLEDGER__JWT_SECRET.")
            token_service = TokenService(
                secret,
                key_id=cfg.JWT_KEY_ID,
                retired_keys=parse_keyring(self.config.get_secret("TASKLEDGER", "JWT_RETIRED_KEYS")),
                algorithm=cfg.JWT_ALGORITHM,
                ttl=timedelta(seconds=int(cfg.JWT_EXPIRES_IN)),
            )
        self.token_service = token_service
        self.password_hasher = password_hasher or PasswordHasher(
            rounds=int(cfg.BCRYPT_ROUNDS),
            timeout=float(cfg.HASH_TIMEOUT_SECONDS),
        )
        self.guard = AuthGuard(self.token_service)
        self.user_directory_public = as_bool(cfg.USER_DIRECTORY_PUBLIC)
        self.app.state.auth_guard = self.guard
        self.app.state.user_directory_public = self.user_directory_public

        # Domain services
        self.accounts = AccountService(
            self.user_repo, self.password_hasher, self.token_service, logger=self.logger
        )
        self.tasks_service = TaskService(
            self.task_repo,
            self.user_repo,
            self.guard,
            default_page_size=int(cfg.DEFAULT_PAGE_SIZE),
            max_page_size=int(cfg.MAX_PAGE_SIZE),
            logger=self.logger,
        )

        # Exception handlers
        self.app.add_exception_handler(TaskLedgerError, taskledger_error_handler)
        self.app.add_exception_handler(RequestValidationError, request_validation_error_handler)
        self.app.add_exception_handler(Exception, self._unexpected_error_handler)

        # Request logging
        self.app.add_middleware(
            RequestLoggingMiddleware,
            service_name=self.name,
            log_metrics=True,
            add_request_id_header=True,
            logger=self.logger,
        )

        # Fixed paths first so "/{id}" does not shadow them
        self._register_account_endpoints()
        self._register_task_endpoints()
        self._register_user_directory_endpoints()

    @classmethod
    def default_url(cls) -> Url:
        """Return default URL from config (respects TASKLEDGER__URL env var)."""
        return parse_url(load_taskledger_config().TASKLEDGER.URL)

    # -------------------------------------------------------------------------
    # Endpoint registration
    # -------------------------------------------------------------------------

    def _register_account_endpoints(self) -> None:
        self.add_endpoint(
            "/login",
            self.login,
            schema=LoginSchema,
            methods=["POST"],
        )
        self.add_endpoint(
            "/",
            self.register,
            schema=RegisterSchema,
            methods=["POST"],
            api_route_kwargs={"status_code": status.HTTP_201_CREATED},
        )

    def _register_task_endpoints(self) -> None:
        self.add_endpoint(
            "/task",
            self.create_task,
            schema=CreateTaskSchema,
            methods=["POST"],
            api_route_kwargs={"status_code": status.HTTP_201_CREATED},
        )
        self.add_endpoint(
            "/task",
            self.list_tasks,
            schema=ListTasksSchema,
            methods=["GET"],
        )

    def _register_user_directory_endpoints(self) -> None:
        self.add_endpoint(
            "/",
            self.list_users,
            schema=ListUsersSchema,
            methods=["GET"],
            api_route_kwargs={"response_model": List[UserResponse]},
        )
        self.add_endpoint("/{id}", self.get_user, schema=GetUserSchema, methods=["GET"])

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def startup(self) -> None:
        await super().startup()
        if self.db is not None:
            await self.db.connect()
            await self.db.ensure_indexes()

    async def shutdown_cleanup(self) -> None:
        """Close database connection on shutdown."""
        await super().shutdown_cleanup()
        if self.db is not None:
            await self.db.disconnect()

    async def heartbeat(self) -> Heartbeat:
        heartbeat = await super().heartbeat()
        if self.db is None:
            heartbeat.details = {"database": "disabled"}
            return heartbeat

        try:
            reachable = await self.db.ping()
        except Exception as e:
            self.logger.warning(f"Database ping failed: {e!r}")
            reachable = False
        heartbeat.details = {"database": "reachable" if reachable else "unreachable"}
        if not reachable:
            heartbeat.message = f"{self.name} is {self.status.value}, database unreachable."
        return heartbeat

    def _unexpected_error_handler(self, request: Request, exc: Exception) -> JSONResponse:
        self.logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR")

    # -------------------------------------------------------------------------
    # Account handlers
    # -------------------------------------------------------------------------

    async def register(self, payload: RegisterPayload) -> UserResponse:
        """Register a new user. The response never includes the password hash."""
        return await self.accounts.register(payload.email, payload.name, payload.password)

    async def login(self, payload: LoginPayload) -> TokenResponse:
        """Exchange email and password for a bearer token."""
        return await self.accounts.login(payload.email, payload.password)

    async def list_users(self, _: Optional[str] = Depends(require_directory_access)) -> List[UserResponse]:
        return await self.accounts.list()

    async def get_user(self, id: str, _: Optional[str] = Depends(require_directory_access)) -> UserResponse:
        return await self.accounts.get(id)

    # -------------------------------------------------------------------------
    # Task handlers
    # -------------------------------------------------------------------------

    async def create_task(
        self,
        payload: TaskCreateRequest,
        subject: str = Depends(require_subject),
    ) -> TaskResponse:
        """Create a task owned by the caller. Owner fields in the body are ignored."""
        return await self.tasks_service.create_for_owner(
            subject, payload.title, payload.description, payload.status
        )

    async def list_tasks(
        self,
        offset: Optional[str] = Query(None, description="1-based page number"),
        limit: Optional[str] = Query(None, description="Page size"),
        subject: str = Depends(require_subject),
    ) -> TaskListResponse:
        """List one page of the caller's tasks."""
        return await self.tasks_service.list_for_owner(subject, offset, limit)
