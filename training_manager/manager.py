"""
Reconciliation engine.

TrainingManager takes a parsed training schedule and a Galaxy repository and
converges Galaxy onto the schedule: it creates the training role and any
configured group that does not exist yet, then replaces each configured
group's membership with the configured users and assigns the training role to
exactly the groups with a window covering today.

A run is fail-fast: the first error aborts it and is re-raised. Roles or groups
created before the failure are not rolled back.
"""

import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from training_manager import schedule
from training_manager.config import DEFAULT_TRAINING_ROLE
from training_manager.galaxy.base import GalaxyRepository
from training_manager.schedule import TrainingConfig
from training_manager.types import (
    Email,
    Group,
    GroupName,
    GroupUpdatePayload,
    Role,
    RoleID,
    RoleName,
    User,
    UserID,
)

logger = logging.getLogger(__name__)


class ReconciliationError(Exception):
    """Raised when Galaxy and the schedule cannot be reconciled."""
    pass


def run_all(executor: ThreadPoolExecutor, calls: Sequence[Callable[[], Any]]) -> List[Any]:
    """
    Run callables concurrently and wait for all of them.

    Returns the results in submission order. On the first failure every call
    that has not started yet is cancelled and the exception is re-raised.
    """
    futures: List[Future] = [executor.submit(call) for call in calls]
    if not futures:
        return []

    done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
    for future in futures:
        if future in done and future.exception() is not None:
            for pending in not_done:
                pending.cancel()
            raise future.exception()

    return [future.result() for future in futures]


@dataclass
class Snapshot:
    """Remote state read once at the start of a run."""
    users: List[User]
    roles: List[Role]
    groups: List[Group]


@dataclass(frozen=True)
class GroupPlan:
    name: GroupName
    user_ids: List[UserID]
    active: bool


@dataclass
class ReconciliationPlan:
    """What a run will do, computed before any mutating call."""
    today: date
    missing_roles: List[RoleName] = field(default_factory=list)
    missing_groups: List[GroupName] = field(default_factory=list)
    groups: List[GroupPlan] = field(default_factory=list)

    def describe(self) -> List[str]:
        lines = [f"Plan for {self.today.isoformat()}:"]
        for role in self.missing_roles:
            lines.append(f"  create role {role}")
        for group in self.missing_groups:
            lines.append(f"  create group {group}")
        for group_plan in self.groups:
            state = "active" if group_plan.active else "inactive"
            lines.append(f"  update group {group_plan.name}: "
                         f"{len(group_plan.user_ids)} members, {state}")
        return lines


class TrainingManager:
    """
    Applies a training schedule to Galaxy.

    Remote calls that do not depend on each other (the three snapshot reads,
    role creations, group creations, group updates) are issued concurrently
    on a thread pool of `max_workers` threads.
    """

    def __init__(self, galaxy: GalaxyRepository, role_name: str = DEFAULT_TRAINING_ROLE,
                 role_description: str = "", max_workers: int = 4):
        self.galaxy = galaxy
        self.role_name = RoleName.parse(role_name)
        self.role_description = role_description
        self.max_workers = max_workers

        self.stats = {
            'roles_created': 0,
            'groups_created': 0,
            'groups_updated': 0,
            'groups_active': 0,
            'users_assigned': 0,
            'start_time': None,
            'end_time': None,
            'runtime_seconds': 0,
        }

    def fetch_snapshot(self, executor: ThreadPoolExecutor) -> Snapshot:
        users, roles, groups = run_all(executor, [
            self.galaxy.get_users,
            self.galaxy.get_roles,
            self.galaxy.get_groups,
        ])
        logger.debug(f"Galaxy snapshot: {len(users)} users, {len(roles)} roles, {len(groups)} groups")
        return Snapshot(users=users, roles=roles, groups=groups)

    def plan(self, config: TrainingConfig, snapshot: Snapshot, today: date) -> ReconciliationPlan:
        """
        Compute the reconciliation plan. Pure: issues no remote calls.

        Raises:
            ReconciliationError: If groups and schedule disagree, or a configured
                email does not belong to any Galaxy user
        """
        unscheduled = [str(name) for name in config.groups if name not in config.schedule]
        if unscheduled:
            raise ReconciliationError(f"No schedule entry for groups: {', '.join(unscheduled)}")
        orphaned = [str(name) for name in config.schedule if name not in config.groups]
        if orphaned:
            raise ReconciliationError(f"Schedule entries for unknown groups: {', '.join(orphaned)}")

        users_by_email: Dict[Email, User] = {user.email: user for user in snapshot.users}
        existing_groups = {group.name for group in snapshot.groups}
        existing_roles = {role.name for role in snapshot.roles}

        plan = ReconciliationPlan(today=today)
        if self.role_name not in existing_roles:
            plan.missing_roles.append(self.role_name)
        plan.missing_groups = [name for name in config.groups if name not in existing_groups]

        for group_name, emails in config.groups.items():
            unknown = [str(email) for email in emails if email not in users_by_email]
            if unknown:
                raise ReconciliationError(
                    f"Group {group_name}: no Galaxy user with email {', '.join(unknown)}"
                )

            user_ids = []
            for email in emails:
                user_id = users_by_email[email].id
                if user_id not in user_ids:
                    user_ids.append(user_id)

            active = any(window.contains(today) for window in config.schedule[group_name])
            plan.groups.append(GroupPlan(name=group_name, user_ids=user_ids, active=active))

        return plan

    def dry_run(self, config: TrainingConfig, today: Optional[date] = None) -> ReconciliationPlan:
        """Fetch a snapshot and compute the plan without changing anything."""
        today = today or schedule.today()
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            snapshot = self.fetch_snapshot(executor)
        plan = self.plan(config, snapshot, today)
        for line in plan.describe():
            logger.info(line)
        return plan

    def apply_config(self, config: TrainingConfig, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Converge Galaxy onto the schedule.

        Args:
            config: Parsed schedule document
            today: Date to evaluate windows against; defaults to the current
                local date, sampled once for the whole run

        Returns:
            Run statistics

        Raises:
            ReconciliationError: On consistency failures
            GalaxyAPIError: On remote failures
        """
        today = today or schedule.today()
        self.stats['start_time'] = datetime.now()
        try:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                snapshot = self.fetch_snapshot(executor)
                plan = self.plan(config, snapshot, today)

                created_roles = self._create_missing_roles(executor, plan.missing_roles)
                created_groups = self._create_missing_groups(executor, plan.missing_groups)

                training_role = self._find_training_role(snapshot.roles + created_roles)
                groups_by_name = {group.name: group for group in snapshot.groups + created_groups}

                self._update_groups(executor, plan, groups_by_name, training_role.id)
        finally:
            self.stats['end_time'] = datetime.now()
            self.stats['runtime_seconds'] = (
                self.stats['end_time'] - self.stats['start_time']
            ).total_seconds()

        return self.stats

    def _create_missing_roles(self, executor: ThreadPoolExecutor,
                              missing_roles: List[RoleName]) -> List[Role]:
        calls = [
            lambda name=name: self.galaxy.create_role(str(name), self.role_description)
            for name in missing_roles
        ]
        roles = run_all(executor, calls)
        for role in roles:
            logger.info(f"Created role {role.name}")
        self.stats['roles_created'] += len(roles)
        return roles

    def _create_missing_groups(self, executor: ThreadPoolExecutor,
                               missing_groups: List[GroupName]) -> List[Group]:
        calls = [lambda name=name: self.galaxy.create_group(str(name)) for name in missing_groups]
        groups = run_all(executor, calls)
        for group in groups:
            logger.info(f"Created group {group.name}")
        self.stats['groups_created'] += len(groups)
        return groups

    def _find_training_role(self, roles: List[Role]) -> Role:
        for role in roles:
            if role.name == self.role_name:
                return role
        raise ReconciliationError(f"Role {self.role_name} not found in Galaxy after creation")

    def _update_groups(self, executor: ThreadPoolExecutor, plan: ReconciliationPlan,
                       groups_by_name: Dict[GroupName, Group], training_role_id: RoleID):
        missing = [str(group_plan.name) for group_plan in plan.groups if group_plan.name not in groups_by_name]
        if missing:
            raise ReconciliationError(f"Groups not found in Galaxy after creation: {', '.join(missing)}")

        calls = []
        for group_plan in plan.groups:
            group = groups_by_name[group_plan.name]
            payload = GroupUpdatePayload(
                name=group_plan.name,
                user_ids=list(group_plan.user_ids),
                role_ids=[training_role_id] if group_plan.active else [],
            )
            calls.append(lambda group=group, payload=payload: self.galaxy.update_group(group.id, payload))

        run_all(executor, calls)

        for group_plan in plan.groups:
            state = "assigned" if group_plan.active else "removed"
            logger.info(f"Updated group {group_plan.name}: {len(group_plan.user_ids)} members, "
                        f"role {self.role_name} {state}")
            self.stats['groups_updated'] += 1
            self.stats['users_assigned'] += len(group_plan.user_ids)
            if group_plan.active:
                self.stats['groups_active'] += 1
