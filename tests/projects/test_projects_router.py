from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from blightstone.projects.models import ProjectDB, ProjectMemberDB


def make_project(**kwargs):
    defaults = dict(
        id=uuid4(),
        name="Launch campaign",
        description="Spring launch",
        type="Marketing",
        priority="High",
        status="Active",
        created_by=uuid4(),
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )
    return ProjectDB(**{**defaults, **kwargs})


@pytest.fixture
def db_result(mock_db):
    """One result object serving lookups, listings and member joins."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    result.scalars.return_value.all.return_value = []
    result.all.return_value = []
    mock_db.execute.return_value = result

    async def mock_refresh(obj):
        obj.created_at = obj.created_at or datetime.now(timezone.utc)
        obj.updated_at = datetime.now(timezone.utc)

    mock_db.refresh = mock_refresh
    return result


def added(mock_db, cls):
    return [call.args[0] for call in mock_db.add.call_args_list if isinstance(call.args[0], cls)]


def test_list_projects(client: TestClient, mock_db, current_user, db_result):
    project = make_project()
    member = ProjectMemberDB(project_id=project.id, user_id=uuid4(), role="member")
    db_result.scalars.return_value.all.return_value = [project]
    db_result.all.return_value = [(member, "Bob", "bob@x.com")]

    response = client.get("/api/projects/")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    [returned] = data["projects"]
    assert returned["name"] == "Launch campaign"
    assert returned["project_members"] == [
        {"user_id": str(member.user_id), "role": "member", "name": "Bob", "email": "bob@x.com"}
    ]


def test_create_project_owned_by_session_user(client: TestClient, mock_db, current_user, db_result):
    member_id = uuid4()

    response = client.post(
        "/api/projects/",
        json={"name": "New project", "team_members": [str(member_id), str(member_id)]},
    )

    assert response.status_code == 200
    project = response.json()["project"]
    assert project["created_by"] == str(current_user.id)
    assert project["status"] == "Active"
    [created] = added(mock_db, ProjectDB)
    assert created.created_by == current_user.id
    [membership] = added(mock_db, ProjectMemberDB)
    assert membership.user_id == member_id
    assert membership.project_id == created.id


def test_create_project_requires_name(client: TestClient, current_user):
    response = client.post("/api/projects/", json={"description": "no name"})

    assert response.status_code == 400
    assert response.json()["error"].startswith("name")


def test_create_project_requires_session(client: TestClient):
    response = client.post("/api/projects/", json={"name": "New project"})

    assert response.status_code == 401


def test_get_project_not_found(client: TestClient, current_user, db_result):
    response = client.get(f"/api/projects/{uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Project not found"}


def test_update_project_replaces_members(client: TestClient, mock_db, current_user, db_result):
    project = make_project()
    db_result.scalar_one_or_none.return_value = project
    new_member = uuid4()

    response = client.put(
        f"/api/projects/{project.id}",
        json={"status": "Completed", "team_members": [str(new_member)]},
    )

    assert response.status_code == 200
    assert response.json()["project"]["status"] == "Completed"
    assert project.name == "Launch campaign"
    [membership] = added(mock_db, ProjectMemberDB)
    assert membership.user_id == new_member


def test_update_project_keeps_members_when_omitted(
    client: TestClient, mock_db, current_user, db_result
):
    project = make_project()
    db_result.scalar_one_or_none.return_value = project

    response = client.put(f"/api/projects/{project.id}", json={"name": "Renamed"})

    assert response.status_code == 200
    assert project.name == "Renamed"
    assert added(mock_db, ProjectMemberDB) == []


def test_update_project_rejects_null_name(client: TestClient, mock_db, current_user, db_result):
    project = make_project()
    db_result.scalar_one_or_none.return_value = project

    response = client.put(f"/api/projects/{project.id}", json={"name": None})

    assert response.status_code == 400
    assert response.json()["error"].startswith("name")
    assert project.name == "Launch campaign"
    mock_db.commit.assert_not_awaited()


def test_delete_project(client: TestClient, mock_db, current_user, db_result):
    project = make_project()
    db_result.scalar_one_or_none.return_value = project

    response = client.delete(f"/api/projects/{project.id}")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    mock_db.delete.assert_awaited_once_with(project)
    mock_db.commit.assert_awaited_once()
