"""Client-side aggregation over fetched projects.

Ranking, filtering and summary statistics used to present a user's
projects. Everything here is a pure function over in-memory snapshots.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel

from .schemas.common import UpdateStatus
from .schemas.projects import Project, ProjectUpdate

FREQUENT_PROJECTS_LIMIT = 9

RankingKey = Callable[[Project], tuple]


# ---------------------------------------------------------------------------
# Best / worst ranking
# ---------------------------------------------------------------------------

def _best_key(project: Project) -> tuple:
    # more updates, then fewer development days, then lower average
    return (-project.updates_number, project.total_development_days, project.average_development_time)


def _worst_key(project: Project) -> tuple:
    return (project.updates_number, -project.total_development_days, -project.average_development_time)


def _running_best(
    projects: Sequence[Project],
    grouped: bool,
    key: RankingKey,
    exclude: Optional[Project] = None,
) -> Optional[Project]:
    """Single pass over the projects with at least one update.

    A candidate replaces the current holder only when strictly better, so
    full ties keep the earliest project in list order. ``exclude`` is skipped
    by identifier.
    """
    holder = None
    holder_key = None
    for project in projects:
        if project.has_groups != grouped or project.updates_number == 0:
            continue
        if exclude is not None and project.id == exclude.id:
            continue
        project_key = key(project)
        if holder is None or project_key < holder_key:
            holder, holder_key = project, project_key
    return holder


def best_personal_project(projects: Sequence[Project]) -> Optional[Project]:
    return _running_best(projects, False, _best_key)


def best_group_project(projects: Sequence[Project]) -> Optional[Project]:
    return _running_best(projects, True, _best_key)


def worst_personal_project(projects: Sequence[Project]) -> Optional[Project]:
    """Worst personal project, never the one ranked best."""
    return _running_best(projects, False, _worst_key, exclude=best_personal_project(projects))


def worst_group_project(projects: Sequence[Project]) -> Optional[Project]:
    return _running_best(projects, True, _worst_key, exclude=best_group_project(projects))


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------

def frequent_projects(projects: Sequence[Project], limit: int = FREQUENT_PROJECTS_LIMIT) -> List[Project]:
    """Projects with the most updates first; equal counts keep list order."""
    return sorted(projects, key=lambda project: project.updates_number, reverse=True)[:limit]


def filter_projects(query: str, projects: List[Project]) -> List[Project]:
    if not query:
        return projects
    query = query.lower()

    def matches(project: Project) -> bool:
        fields = [
            project.name,
            project.short_description,
            project.description,
            project.version,
            *(group.name for group in project.groups),
        ]
        return any(query in field.lower() for field in fields)

    return [project for project in projects if matches(project)]


# ---------------------------------------------------------------------------
# Overview statistics
# ---------------------------------------------------------------------------

class OverviewStats(BaseModel):
    total: int = 0
    personal: int = 0
    personal_percentage: float = 0.0
    group: int = 0
    group_percentage: float = 0.0


class OverviewFullStats(OverviewStats):
    status: UpdateStatus
    by_me: int = 0
    by_me_percentage: float = 0.0


class ProjectPerformanceStats(BaseModel):
    id: str
    name: str
    updates: int
    total_development_days: int
    average_days_per_update: int

    @classmethod
    def from_project(cls, project: Optional[Project]) -> Optional["ProjectPerformanceStats"]:
        if project is None:
            return None
        return cls(
            id=project.id,
            name=project.name,
            updates=project.updates_number,
            total_development_days=project.total_development_days,
            average_days_per_update=project.average_development_time,
        )


class Overview(BaseModel):
    total_projects: OverviewStats
    total_updates: OverviewStats
    updates_by_status: Dict[UpdateStatus, OverviewFullStats]
    development_days: OverviewStats
    average_development_days: OverviewStats
    best_personal_project: Optional[ProjectPerformanceStats] = None
    worst_personal_project: Optional[ProjectPerformanceStats] = None
    best_group_project: Optional[ProjectPerformanceStats] = None
    worst_group_project: Optional[ProjectPerformanceStats] = None


def _percentage(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(part * 100 / total, 2)


def _stats(personal: int, group: int) -> OverviewStats:
    total = personal + group
    return OverviewStats(
        total=total,
        personal=personal,
        personal_percentage=_percentage(personal, total),
        group=group,
        group_percentage=_percentage(group, total),
    )


def _involves(update: ProjectUpdate, user_id: str) -> bool:
    """Whether ``user_id`` drove ``update`` to its current status."""
    if update.status == UpdateStatus.PUBLISHED:
        actor = update.published_by
    elif update.status == UpdateStatus.IN_DEVELOPMENT:
        actor = update.started_by
    else:
        actor = update.author
    return actor is not None and actor.id == user_id


def build_overview(projects: Sequence[Project], user_id: str) -> Overview:
    personal = [project for project in projects if not project.has_groups]
    grouped = [project for project in projects if project.has_groups]

    def count_updates(items: Sequence[Project], status: Optional[UpdateStatus] = None) -> int:
        return sum(
            1 for project in items for update in project.updates
            if status is None or update.status == status
        )

    def development_days(items: Sequence[Project]) -> int:
        return sum(project.total_development_days for project in items)

    def average_days(items: Sequence[Project]) -> int:
        # sum of the per-project averages
        return sum(project.average_development_time for project in items)

    by_status = {}
    for status in UpdateStatus:
        stats = _stats(count_updates(personal, status), count_updates(grouped, status))
        by_me = sum(
            1 for project in projects for update in project.updates
            if update.status == status and _involves(update, user_id)
        )
        by_status[status] = OverviewFullStats(
            **stats.model_dump(),
            status=status,
            by_me=by_me,
            by_me_percentage=_percentage(by_me, stats.total),
        )

    personal_days = development_days(personal)
    group_days = development_days(grouped)
    return Overview(
        total_projects=_stats(len(personal), len(grouped)),
        total_updates=_stats(count_updates(personal), count_updates(grouped)),
        updates_by_status=by_status,
        development_days=_stats(personal_days, group_days),
        average_development_days=_stats(average_days(personal), average_days(grouped)),
        best_personal_project=ProjectPerformanceStats.from_project(best_personal_project(projects)),
        worst_personal_project=ProjectPerformanceStats.from_project(worst_personal_project(projects)),
        best_group_project=ProjectPerformanceStats.from_project(best_group_project(projects)),
        worst_group_project=ProjectPerformanceStats.from_project(worst_group_project(projects)),
    )
