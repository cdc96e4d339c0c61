from taskledger.core.config import Config, SettingsLike
from taskledger.core.logging import get_logger, setup_logger
from taskledger.core.types import TaskSchema
from taskledger.core.utils import as_bool, ifnone

__all__ = [
    "as_bool",
    "Config",
    "get_logger",
    "ifnone",
    "SettingsLike",
    "setup_logger",
    "TaskSchema",
]
