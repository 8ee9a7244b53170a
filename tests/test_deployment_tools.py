import json

import pytest

from services.deployment_tools import DAY_MS, build_deployment_server, cleanup_candidates
from services.vercel import DeploymentProviderError

NOW = 1_700_000_000.0
NOW_MS = int(NOW * 1000)


def _deployment(uid, days_old, *, target=None, state="READY", url=None):
    return {
        "uid": uid,
        "url": url or f"{uid}.vercel.app",
        "state": state,
        "createdAt": NOW_MS - int(days_old * DAY_MS),
        "projectId": "prj_1",
        "target": target,
    }


class FakeVercel:
    def __init__(self, deployments=(), fail_delete=()):
        self.deployments = {d["uid"]: d for d in deployments}
        self.fail_delete = set(fail_delete)
        self.deleted = []
        self.cancelled = []
        self.closed = False

    def list_deployments(self, project_id=None, limit=20):
        return list(self.deployments.values())[:limit]

    def get_deployment(self, deployment_id):
        if deployment_id not in self.deployments:
            raise DeploymentProviderError("Vercel API Error: 404 - Deployment not found", status_code=404)
        return self.deployments[deployment_id]

    def delete_deployment(self, deployment_id):
        if deployment_id in self.fail_delete:
            raise DeploymentProviderError("Vercel API Error: 500 - boom", status_code=500)
        self.deleted.append(deployment_id)
        return {"state": "DELETED"}

    def cancel_deployment(self, deployment_id):
        self.cancelled.append(deployment_id)
        return {}

    def list_projects(self):
        return [{"id": "prj_1", "name": "burbar-shop", "framework": "nextjs", "createdAt": NOW_MS}]

    def deployment_events(self, deployment_id):
        return [{"created": NOW_MS, "text": f"line {i}"} for i in range(30)]

    def close(self):
        self.closed = True


def _server(client):
    return build_deployment_server(client, clock=lambda: NOW)


def _data(result):
    assert result["isError"] is False, result
    return json.loads(result["content"][0]["text"])


def test_cleanup_scenario_keeps_recent_and_skips_production():
    old = [_deployment(f"dpl_{i}", 8 + i) for i in range(6)]
    production = _deployment("dpl_prod", 8.5, target="production")
    client = FakeVercel(old + [production])

    data = _data(_server(client).invoke("cleanup_old_deployments", {"keepCount": 5, "excludeProduction": True}))

    assert client.deleted == ["dpl_5"]
    assert data["deletedCount"] == 1
    assert data["deleted"][0]["id"] == "dpl_5"
    assert data["errors"] == []


def test_cleanup_never_deletes_production_even_when_not_excluded():
    client = FakeVercel(
        [_deployment("dpl_new", 8), _deployment("dpl_prod", 20, target="production")]
    )

    data = _data(
        _server(client).invoke("cleanup_old_deployments", {"keepCount": 1, "excludeProduction": False})
    )

    assert client.deleted == []
    assert data["failedCount"] == 1
    assert data["errors"][0]["deployment"] == "dpl_prod"
    assert "production" in data["errors"][0]["error"]


def test_cleanup_skips_recent_and_building_and_collects_failures():
    client = FakeVercel(
        [
            _deployment("dpl_fresh", 1),
            _deployment("dpl_building", 30, state="BUILDING"),
            _deployment("dpl_keep", 9),
            _deployment("dpl_a", 10),
            _deployment("dpl_b", 11),
        ],
        fail_delete={"dpl_a"},
    )

    data = _data(_server(client).invoke("cleanup_old_deployments", {"keepCount": 1}))

    assert client.deleted == ["dpl_b"]
    assert data["errors"] == [{"deployment": "dpl_a", "error": "Vercel API Error: 500 - boom"}]


def test_cleanup_candidates_orders_newest_first():
    deployments = [_deployment("a", 10), _deployment("b", 30), _deployment("c", 20)]
    picked = cleanup_candidates(deployments, cutoff_ms=NOW_MS - 7 * DAY_MS, keep_count=1, exclude_production=True)
    assert [d["uid"] for d in picked] == ["c", "b"]


def test_cleanup_validation():
    result = _server(FakeVercel()).invoke("cleanup_old_deployments", {"keepCount": 0, "olderThanDays": 0})
    text = result["content"][0]["text"]
    assert result["isError"] is True
    assert "keepCount" in text and "olderThanDays" in text


def test_delete_refuses_production():
    client = FakeVercel([_deployment("dpl_prod", 1, target="production")])
    result = _server(client).invoke("delete_deployment", {"deploymentId": "dpl_prod"})
    assert result["isError"] is True
    assert "Cannot delete production deployments" in result["content"][0]["text"]
    assert client.deleted == []


def test_delete_preview_deployment():
    client = FakeVercel([_deployment("dpl_1", 1)])
    data = _data(_server(client).invoke("delete_deployment", {"deploymentId": "dpl_1"}))
    assert data == {"deleted": True, "id": "dpl_1", "url": "dpl_1.vercel.app", "previousState": "READY"}


def test_provider_errors_are_error_results():
    result = _server(FakeVercel()).invoke("get_deployment", {"deploymentId": "dpl_missing"})
    assert result["isError"] is True
    assert result["content"][0]["text"] == "Error: Vercel API Error: 404 - Deployment not found"


def test_list_deployments_filters_by_state():
    client = FakeVercel([_deployment("dpl_1", 1), _deployment("dpl_2", 1, state="ERROR")])
    data = _data(_server(client).invoke("list_deployments", {"status": "ERROR"}))
    assert [d["id"] for d in data["deployments"]] == ["dpl_2"]
    assert data["deployments"][0]["target"] == "preview"


def test_list_deployments_rejects_unknown_state():
    result = _server(FakeVercel()).invoke("list_deployments", {"status": "DONE"})
    assert result["isError"] is True


def test_logs_return_last_twenty_events():
    data = _data(_server(FakeVercel()).invoke("get_deployment_logs", {"deploymentId": "dpl_1"}))
    assert len(data["events"]) == 20
    assert data["events"][-1]["text"] == "line 29"


def test_cancel_and_projects():
    client = FakeVercel()
    server = _server(client)
    assert _data(server.invoke("cancel_deployment", {"deploymentId": "dpl_1"})) == {"cancelled": True, "id": "dpl_1"}
    assert client.cancelled == ["dpl_1"]
    projects = _data(server.invoke("list_projects", {}))
    assert projects["projects"][0]["name"] == "burbar-shop"


def test_shutdown_closes_client():
    client = FakeVercel()
    _server(client).shutdown()
    assert client.closed is True


@pytest.mark.parametrize("name", ["get_deployment", "delete_deployment", "cancel_deployment", "get_deployment_logs"])
def test_deployment_id_required(name):
    result = _server(FakeVercel()).invoke(name, {})
    assert result["isError"] is True
    assert "deploymentId" in result["content"][0]["text"]
