"""Task creation and owner-scoped, paginated listing."""

import logging
from typing import Dict, List, Optional

from taskledger.core.exceptions import Forbidden
from taskledger.core.security import AuthGuard
from taskledger.models import TaskListResponse, TaskOwner, TaskResponse
from taskledger.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, paginate, parse_window
from taskledger.repositories import TaskRepository, UserRepository


class TaskService:
    """Task operations. Every operation runs behind ``AuthGuard`` and is scoped to the authenticated subject.

    The ``*_for_owner`` variants take an already authenticated subject id, which is how the HTTP layer calls them
    after resolving the guard as a dependency. The header-taking variants authenticate first.
    """

    def __init__(
        self,
        tasks: TaskRepository,
        users: UserRepository,
        guard: AuthGuard,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
        logger=None,
    ):
        self.tasks = tasks
        self.users = users
        self.guard = guard
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.logger = logger or logging.getLogger(__name__)

    async def create(
        self,
        auth_header: Optional[str],
        title: str,
        description: str,
        status: Optional[bool] = None,
    ) -> TaskResponse:
        subject = self.guard.authenticate(auth_header)
        return await self.create_for_owner(subject, title, description, status)

    async def create_for_owner(
        self,
        owner_id: str,
        title: str,
        description: str,
        status: Optional[bool] = None,
    ) -> TaskResponse:
        owner = await self.users.find_by_id(owner_id)
        if owner is None:
            raise Forbidden("Token subject does not exist")

        task = await self.tasks.insert(
            owner_id=owner.id,
            title=title,
            description=description,
            status=bool(status) if status is not None else False,
        )
        self.logger.info(f"Created task {task.id} for user {owner.id}")
        return TaskResponse.from_task(task, TaskOwner(id=owner.id, name=owner.name))

    async def list(
        self,
        auth_header: Optional[str],
        offset: Optional[str] = None,
        limit: Optional[str] = None,
    ) -> TaskListResponse:
        subject = self.guard.authenticate(auth_header)
        return await self.list_for_owner(subject, offset, limit)

    async def list_for_owner(
        self,
        owner_id: str,
        offset: Optional[str] = None,
        limit: Optional[str] = None,
    ) -> TaskListResponse:
        window = parse_window(offset, limit, default_limit=self.default_page_size, max_limit=self.max_page_size)
        page = await paginate(
            window,
            fetch=lambda skip, take: self.tasks.find_many(owner_id, skip=skip, take=take),
            count=lambda: self.tasks.count(owner_id),
        )

        owners: Dict[str, Optional[TaskOwner]] = {}
        items: List[TaskResponse] = []
        for task in page.items:
            if task.owner_id not in owners:
                user = await self.users.find_by_id(task.owner_id)
                owners[task.owner_id] = TaskOwner(id=user.id, name=user.name) if user else None
            items.append(TaskResponse.from_task(task, owners[task.owner_id]))

        return TaskListResponse(tasks=items, amount_items=page.total_count, total_pages=page.total_pages)
