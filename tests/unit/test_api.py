"""
Unit tests for deployment/api.py

Exercises the REST surface through FastAPI's TestClient.
"""

import asyncio

import pytest
from unittest.mock import patch

from fastapi.testclient import TestClient

from conftest import make_catalog, progress_doc, quest, split_doc

from questline.bootstrap.app import AppState, QuestlineApp
from questline.bootstrap.config import QuestlineConfig
from questline.deployment import create_fastapi_app
from questline.errors import TransactionAbortedError
from questline.store import InMemoryProgressStore


@pytest.fixture
def app():
    catalog = make_catalog(
        quest("a", maps=["customs"]),
        quest("b", requires=["a"], maps=["customs"]),
        quest("bear", factionName="BEAR"),
    )
    store = InMemoryProgressStore({
        "p1": split_doc(),
        "p2": split_doc(pvp=progress_doc({"a": {"complete": True}, "bear": {"complete": True}})),
    })
    return QuestlineApp(catalog=catalog, store=store, config=QuestlineConfig()).build()


@pytest.fixture
def client(app):
    return TestClient(create_fastapi_app(app.context))


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client):
        """Test health reports the catalog size."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["quests"] == 3


class TestProgress:
    """Test progress endpoints."""

    def test_create_document(self, client):
        """Test creating a document returns 201."""
        response = client.post("/api/v1/progress/newplayer", json={"game_edition": 4})
        assert response.status_code == 201
        assert response.json() == {"playerId": "newplayer", "version": 1}

        report = client.get("/api/v1/progress/newplayer").json()["data"]
        assert report["gameEdition"] == 4
        assert report["displayName"] == "newpla"

    def test_create_document_bad_edition(self, client):
        """Test an out-of-range edition is rejected."""
        response = client.post("/api/v1/progress/newplayer", json={"game_edition": 9})
        assert response.status_code == 400
        assert response.json()["detail"] == "Game edition must be a number between 1 and 6"

    def test_missing_progress(self, client):
        """Test an unknown player gives 404."""
        assert client.get("/api/v1/progress/nobody").status_code == 404

    def test_bad_game_mode(self, client):
        """Test an unknown game mode gives 400."""
        response = client.get("/api/v1/progress/p1", params={"gameMode": "arena"})
        assert response.status_code == 400
        assert "pvp" in response.json()["detail"]

    def test_update_task(self, client):
        """Test completing a quest is reflected in the report."""
        response = client.post("/api/v1/progress/p1/tasks/a", json={"state": "completed"})
        assert response.status_code == 200
        body = response.json()
        assert body["data"]["taskId"] == "a"
        assert body["event"]["unlocked"] == ["b"]

        tasks = {t["id"]: t for t in client.get("/api/v1/progress/p1").json()["data"]["tasksProgress"]}
        assert tasks["a"]["complete"] is True
        assert tasks["b"]["complete"] is False

    def test_update_task_bad_state(self, client, app):
        """Test an invalid state gives 400 and leaves storage alone."""
        response = client.post("/api/v1/progress/p1/tasks/a", json={"state": "done"})
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid state provided")
        assert app.context.store.get("p1").version == 1

    def test_update_task_missing_player(self, client):
        """Test updating a missing player gives 404."""
        response = client.post("/api/v1/progress/nobody/tasks/a", json={"state": "completed"})
        assert response.status_code == 404

    def test_batch_update(self, client):
        """Test a batch update returns one event per entry."""
        response = client.post("/api/v1/progress/p1/tasks", json=[
            {"id": "a", "state": "completed"},
            {"id": "b", "state": "failed"},
        ])
        assert response.status_code == 200
        assert response.json()["data"]["updatedTasks"] == ["a", "b"]
        assert len(response.json()["events"]) == 2

    def test_batch_update_empty(self, client):
        """Test an empty batch is rejected."""
        response = client.post("/api/v1/progress/p1/tasks", json=[])
        assert response.status_code == 400
        assert response.json()["detail"] == "Request body must be a non-empty array"

    def test_objective_update(self, client):
        """Test objective updates."""
        response = client.post("/api/v1/progress/p1/objectives/a-obj", json={"count": 2})
        assert response.status_code == 200
        assert response.json()["data"]["count"] == 2

        objectives = client.get("/api/v1/progress/p1").json()["data"]["taskObjectivesProgress"]
        by_id = {o["id"]: o for o in objectives}
        assert by_id["a-obj"] == {"id": "a-obj", "complete": False, "count": 2, "invalid": False}
        # bear-obj is added by the faction sweep the report reflects
        assert by_id["bear-obj"]["invalid"] is True

    def test_objective_update_empty(self, client):
        """Test an objective update needs a state or a count."""
        response = client.post("/api/v1/progress/p1/objectives/a-obj", json={})
        assert response.status_code == 400
        assert response.json()["detail"] == "Either state or count must be provided"

    @pytest.mark.parametrize("level,status", [(42, 200), (80, 400), (0, 400)])
    def test_set_level(self, client, level, status):
        """Test the level range."""
        response = client.put("/api/v1/progress/p1/level", json={"level": level})
        assert response.status_code == status

    def test_sweep(self, client):
        """Test the sweep lists invalidated quests and objectives."""
        response = client.post("/api/v1/progress/p2/sweep")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["invalidatedTasks"] == ["bear"]
        assert data["invalidatedObjectives"] == ["bear-obj"]

        events = client.get("/api/v1/progress/p2/events").json()["data"]
        assert events[0]["reason"] == "faction_mismatch"

    def test_conflict(self, client, app):
        """Test an aborted transaction gives 409."""
        with patch.object(
            app.context.progress_service,
            "update_single_quest",
            side_effect=TransactionAbortedError("p1", "tx1", 5),
        ):
            response = client.post("/api/v1/progress/p1/tasks/a", json={"state": "completed"})
        assert response.status_code == 409

    def test_unexpected_error(self, client, app):
        """Test unexpected errors give 500 without details."""
        with patch.object(
            app.context.progress_service,
            "update_single_quest",
            side_effect=RuntimeError("disk on fire"),
        ):
            response = client.post("/api/v1/progress/p1/tasks/a", json={"state": "completed"})
        assert response.status_code == 500
        assert response.json()["detail"] == "Internal server error"


class TestTeam:
    """Test team endpoints."""

    def test_needed_by(self, client):
        """Test needed-by across members."""
        response = client.get("/api/v1/team/needed-by", params={"members": "p1,p2,ghost"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["a"] == ["p1"]
        assert data["b"] == ["p2"]
        assert response.json()["meta"]["members"] == ["p1", "p2", "ghost"]

    def test_needed_by_no_members(self, client):
        """Test an empty member list is rejected."""
        response = client.get("/api/v1/team/needed-by", params={"members": " , "})
        assert response.status_code == 400


class TestAppLifecycle:
    """Test QuestlineApp build and lifecycle."""

    def test_build_without_catalog_fails(self):
        """Test building with no catalog source fails."""
        app = QuestlineApp(config=QuestlineConfig())
        with pytest.raises(ValueError):
            app.build()
        assert app.context.state == AppState.FAILED

    def test_start_stop(self, app, tmp_path):
        """Test hooks run and the invalidation log is exported on stop."""
        calls = []
        app.on_startup(lambda ctx: calls.append("start"))
        app.on_shutdown(lambda ctx: calls.append("stop"))
        app.config.storage.invalidation_log_file = str(tmp_path / "events.json")

        asyncio.run(app.start())
        assert app.context.state == AppState.RUNNING
        asyncio.run(app.stop())

        assert calls == ["start", "stop"]
        assert app.context.state == AppState.STOPPED
        assert (tmp_path / "events.json").exists()
        assert not app.context.store.initialized
