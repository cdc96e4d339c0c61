from enum import Enum
from typing import Type

from pydantic import BaseModel


class TaskSchema(BaseModel):
    """A task schema with strongly-typed input and output models"""

    name: str
    input_schema: None | Type[BaseModel] = None
    output_schema: None | Type[BaseModel] = None


class ServerStatus(Enum):
    Down = "Down"
    Launching = "Launching"
    FailedToLaunch = "FailedToLaunch"
    Available = "Available"
    Stopping = "Stopping"


class StatusOutput(BaseModel):
    status: ServerStatus


class Heartbeat(BaseModel):
    """Heartbeat status of a server.

    Attributes:
        status: The current status of the server.
        server_id: The unique identifier of the server.
        message: Human-readable message describing the status of the server.
        details: Additional details about the server status, e.g. reachability of the database.
    """

    status: ServerStatus = ServerStatus.Down
    server_id: str | None = None
    message: str | None = None
    details: dict | None = None


class EndpointsOutput(BaseModel):
    endpoints: list[str]


StatusSchema = TaskSchema(name="status", output_schema=StatusOutput)
HeartbeatSchema = TaskSchema(name="heartbeat", output_schema=Heartbeat)
EndpointsSchema = TaskSchema(name="endpoints", output_schema=EndpointsOutput)
