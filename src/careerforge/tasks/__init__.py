"""Task implementations served by the orchestrator."""

from careerforge.exceptions import ConfigError
from careerforge.tasks.base import BaseTask
from careerforge.tasks.chat_query import ChatQueryTask
from careerforge.tasks.insights import InsightsTask
from careerforge.tasks.resume_analysis import ResumeAnalysisTask
from careerforge.tasks.skill_progress import SkillProgressTask

__all__ = [
    "BaseTask",
    "ChatQueryTask",
    "ResumeAnalysisTask",
    "InsightsTask",
    "SkillProgressTask",
    "TASK_CLASSES",
    "build_tasks",
    "get_task_class",
]

TASK_CLASSES: dict[str, type[BaseTask]] = {
    cls.name: cls
    for cls in (ChatQueryTask, ResumeAnalysisTask, InsightsTask, SkillProgressTask)
}


def get_task_class(task_name: str) -> type[BaseTask]:
    if task_name not in TASK_CLASSES:
        raise ConfigError(f"Unknown task: {task_name}")
    return TASK_CLASSES[task_name]


def build_tasks(task_config: dict[str, dict] | None = None) -> dict[str, BaseTask]:
    """Instantiate every task with its optional config overrides."""
    task_config = task_config or {}
    return {name: cls(task_config.get(name, {})) for name, cls in TASK_CLASSES.items()}
