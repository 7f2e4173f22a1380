from kscan.domain.task.model.value import (
    ANNOTATION_CONTAINER_IMAGES,
    LABEL_MANAGED_BY,
    LABEL_SCANNER,
    LABEL_TASK_NAME,
    MANAGED_BY,
    JobConditionType,
    Secret,
    SecretState,
    Task,
)

__all__ = [
    "ANNOTATION_CONTAINER_IMAGES",
    "LABEL_MANAGED_BY",
    "LABEL_SCANNER",
    "LABEL_TASK_NAME",
    "MANAGED_BY",
    "JobConditionType",
    "Secret",
    "SecretState",
    "Task",
]
