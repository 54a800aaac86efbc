from helan_chat.scheduler.state.models import RunTrigger, TaskExecutionRecord, TaskState, TaskStatus

__all__ = ["RunTrigger", "TaskExecutionRecord", "TaskState", "TaskStatus"]
