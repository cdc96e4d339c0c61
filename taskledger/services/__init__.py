from taskledger.services.account_service import AccountService, normalize_email
from taskledger.services.task_service import TaskService

__all__ = ["AccountService", "normalize_email", "TaskService"]
