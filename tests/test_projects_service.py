"""Tests for ProjectService: policy enforcement, team membership and task/project business rules."""

import unittest
from datetime import datetime, timedelta, timezone

from app.core.errors import BadRequest, Conflict, Forbidden, NotFound, ValidationFailed
from app.models import ProjectStatus, Role, TaskStatus
from app.schemas.projects import (
    ObjectiveCreate,
    ObjectiveUpdate,
    ProjectCreate,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
)
from app.services.projects import ProjectService
from tests.support import add_client, add_user, make_session_factory, principal

START = datetime(2026, 1, 1, tzinfo=timezone.utc)


class ProjectServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = make_session_factory()()
        self.service = ProjectService(self.session)
        self.client = add_client(self.session)
        self.manager = principal(add_user(self.session, "pm@x.com", role=Role.PROJECT_MANAGER))
        self.member = principal(add_user(self.session, "member@x.com"))
        self.outsider = principal(add_user(self.session, "outsider@x.com"))

    def tearDown(self) -> None:
        self.session.close()

    def _create(self, name: str = "Launch", team: list[int] | None = None, **kwargs):
        return self.service.create_project(
            ProjectCreate(
                name=name,
                channel="Social",
                client_id=self.client.id,
                objectives=[ObjectiveCreate(title="Reach", kpi="impressions", target_value=1000)],
                team_members=team if team is not None else [self.member.id],
                start_date=START,
                **kwargs,
            )
        )

    def _task(self, project_id: int, assignee_id: int | None = None, days: int = 10):
        return self.service.create_task(
            project_id,
            TaskCreate(name="Post", assignee_id=assignee_id, due_date=START + timedelta(days=days)),
            self.manager,
        )


class TestCreateProject(ProjectServiceTestCase):
    def test_create(self) -> None:
        project = self._create()
        self.assertEqual(project.status, ProjectStatus.DRAFT)
        self.assertEqual(project.client.name, "Acme")
        self.assertEqual([m.id for m in project.team_members], [self.member.id])
        self.assertEqual(len(project.objectives), 1)

    def test_inactive_client(self) -> None:
        inactive = add_client(self.session, name="Old Co", is_active=False)
        with self.assertRaises(BadRequest):
            self.service.create_project(
                ProjectCreate(
                    name="X",
                    channel="Email",
                    client_id=inactive.id,
                    objectives=[ObjectiveCreate(title="T", kpi="k", target_value=1)],
                )
            )

    def test_unknown_team_member(self) -> None:
        with self.assertRaises(BadRequest):
            self._create(team=[self.member.id, 9999])


class TestProjectAccess(ProjectServiceTestCase):
    def test_member_sees_only_own_projects(self) -> None:
        mine = self._create("Mine")
        other = self._create("Other", team=[])
        self.assertEqual(self.service.get_project(mine.id, self.member).name, "Mine")
        with self.assertRaises(Forbidden):
            self.service.get_project(other.id, self.member)

        projects, meta = self.service.list_projects(self.member)
        self.assertEqual([p.name for p in projects], ["Mine"])
        self.assertEqual(meta.total, 1)

        projects, _ = self.service.list_projects(self.manager, sort_by="name", sort_order="asc")
        self.assertEqual([p.name for p in projects], ["Mine", "Other"])

    def test_not_found_before_forbidden(self) -> None:
        with self.assertRaises(NotFound):
            self.service.get_project(9999, self.outsider)

    def test_member_cannot_modify_project(self) -> None:
        project = self._create()
        with self.assertRaises(Forbidden):
            self.service.update_project(project.id, ProjectUpdate(name="Hijack"), self.member)
        with self.assertRaises(Forbidden):
            self.service.delete_project(project.id, self.member)
        with self.assertRaises(Forbidden):
            self.service.create_objective(
                project.id, ObjectiveCreate(title="T", kpi="k", target_value=1), self.member
            )

    def test_list_filters(self) -> None:
        self._create("Alpha", status=ProjectStatus.ACTIVE)
        self._create("Beta")
        projects, _ = self.service.list_projects(self.manager, status=ProjectStatus.ACTIVE)
        self.assertEqual([p.name for p in projects], ["Alpha"])
        projects, _ = self.service.list_projects(self.manager, search="bet")
        self.assertEqual([p.name for p in projects], ["Beta"])


class TestProjectUpdates(ProjectServiceTestCase):
    def test_completing_project_stamps_end_date(self) -> None:
        project = self._create()
        updated = self.service.update_project(project.id, ProjectUpdate(status=ProjectStatus.COMPLETED), self.manager)
        self.assertIsNotNone(updated.end_date)

    def test_team_membership(self) -> None:
        project = self._create(team=[])
        updated = self.service.add_team_member(project.id, self.outsider.id, self.manager)
        self.assertEqual([m.id for m in updated.team_members], [self.outsider.id])
        with self.assertRaises(Conflict):
            self.service.add_team_member(project.id, self.outsider.id, self.manager)
        updated = self.service.remove_team_member(project.id, self.outsider.id, self.manager)
        self.assertEqual(updated.team_members, [])

    def test_objective_crud(self) -> None:
        project = self._create()
        objective_id = project.objectives[0].id
        updated = self.service.update_objective(
            project.id, objective_id, ObjectiveUpdate(current_value=250), self.manager
        )
        self.assertEqual(updated.objectives[0].current_value, 250)
        updated = self.service.delete_objective(project.id, objective_id, self.manager)
        self.assertEqual(updated.objectives, [])
        with self.assertRaises(NotFound):
            self.service.delete_objective(project.id, objective_id, self.manager)


class TestTasks(ProjectServiceTestCase):
    def test_due_date_before_start_rejected(self) -> None:
        project = self._create()
        with self.assertRaises(ValidationFailed):
            self._task(project.id, days=-1)

    def test_assignee_must_be_active(self) -> None:
        project = self._create()
        gone = add_user(self.session, "gone@x.com", is_active=False)
        with self.assertRaises(BadRequest):
            self._task(project.id, assignee_id=gone.id)

    def test_member_updates_only_assigned_task(self) -> None:
        project = self._create()
        mine = self._task(project.id, assignee_id=self.member.id).tasks[-1]
        theirs = self._task(project.id, assignee_id=self.outsider.id).tasks[-1]

        updated = self.service.update_task(
            project.id, mine.id, TaskUpdate(status=TaskStatus.IN_PROGRESS), self.member
        )
        self.assertEqual(updated.tasks[0].status, TaskStatus.IN_PROGRESS)
        with self.assertRaises(Forbidden):
            self.service.update_task(project.id, theirs.id, TaskUpdate(status=TaskStatus.COMPLETED), self.member)

    def test_admin_updates_any_task(self) -> None:
        admin = principal(add_user(self.session, "admin@x.com", role=Role.ADMIN))
        project = self._create()
        task = self._task(project.id, assignee_id=self.member.id).tasks[-1]
        updated = self.service.update_task(project.id, task.id, TaskUpdate(name="Edited"), admin)
        self.assertEqual(updated.tasks[0].name, "Edited")

    def test_completing_task_stamps_completed_at(self) -> None:
        project = self._create()
        task = self._task(project.id, assignee_id=self.member.id).tasks[-1]
        self.assertIsNone(task.completed_at)
        updated = self.service.update_task(
            project.id, task.id, TaskUpdate(status=TaskStatus.COMPLETED), self.member
        )
        self.assertIsNotNone(updated.tasks[0].completed_at)

    def test_delete_task_requires_manager(self) -> None:
        project = self._create()
        task = self._task(project.id, assignee_id=self.member.id).tasks[-1]
        with self.assertRaises(Forbidden):
            self.service.delete_task(project.id, task.id, self.member)
        self.assertEqual(self.service.delete_task(project.id, task.id, self.manager).tasks, [])
        with self.assertRaises(NotFound):
            self.service.update_task(project.id, task.id, TaskUpdate(name="x"), self.manager)


if __name__ == "__main__":
    unittest.main()
