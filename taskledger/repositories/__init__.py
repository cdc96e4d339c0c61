from taskledger.repositories.base_repository import BaseRepository, parse_object_id
from taskledger.repositories.task_repository import TaskRepository
from taskledger.repositories.user_repository import UserRepository

__all__ = ["BaseRepository", "parse_object_id", "TaskRepository", "UserRepository"]
