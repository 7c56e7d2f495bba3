"""Dashboard aggregates over a project list."""

from collections import Counter
from dataclasses import dataclass

from pm_sync.models import Priority, Project, ProjectStatus


@dataclass
class DashboardStats:
    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]

    @property
    def active(self) -> int:
        return self.by_status[ProjectStatus.ACTIVE.value]

    @property
    def completed(self) -> int:
        return self.by_status[ProjectStatus.COMPLETED.value]


def dashboard_stats(projects: list[Project]) -> DashboardStats:
    """Count projects overall and per status and priority.

    Every known status and priority appears in the result, with 0 when no
    project has it. Unknown values are counted under their own key.
    """
    statuses = Counter(p.status for p in projects)
    priorities = Counter(p.priority for p in projects)

    by_status = {s.value: 0 for s in ProjectStatus}
    by_status.update(statuses)
    by_priority = {p.value: 0 for p in Priority}
    by_priority.update(priorities)

    return DashboardStats(total=len(projects), by_status=by_status, by_priority=by_priority)
