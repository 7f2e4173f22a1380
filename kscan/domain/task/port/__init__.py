from kscan.domain.task.port.logs import LogsReader, LogStream
from kscan.domain.task.port.task_runner import TaskRunner

__all__ = ["LogStream", "LogsReader", "TaskRunner"]
