from taskledger.config import TaskLedgerConfig, TaskLedgerSettings, get_taskledger_config, reset_taskledger_config
from taskledger.db import TaskLedgerDB
from taskledger.service import TaskLedgerService

__all__ = [
    "get_taskledger_config",
    "reset_taskledger_config",
    "TaskLedgerConfig",
    "TaskLedgerDB",
    "TaskLedgerService",
    "TaskLedgerSettings",
]
