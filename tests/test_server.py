import json

import pytest
from fastapi.testclient import TestClient

from polyflow.server.app import create_app
from polyflow.settings import Settings


def write_workflow(directory, filename, data):
    path = directory / filename
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def workflows_dir(tmp_path):
    write_workflow(tmp_path, "fan.json", {
        "name": "fan",
        "description": "fan out and back in",
        "steps": {
            "init": {"language": "fake"},
            "a": {"language": "fake", "depends_on": ["init"]},
            "b": {"language": "fake", "depends_on": ["init"]},
            "merge": {"language": "fake", "depends_on": ["a", "b"]},
        },
    })
    write_workflow(tmp_path, "broken.json", {
        "name": "broken",
        "steps": {
            "a": {"language": "fake"},
            "b": {"language": "fake", "code": "fail", "depends_on": ["a"]},
        },
    })
    write_workflow(tmp_path, "loop.json", {
        "name": "loop",
        "steps": {
            "a": {"language": "fake", "depends_on": ["b"]},
            "b": {"language": "fake", "depends_on": ["a"]},
        },
    })
    (tmp_path / "garbage.json").write_text("{oops", encoding="utf-8")
    return tmp_path


@pytest.fixture
def client(workflows_dir, registry):
    app = create_app(Settings(workflows_dir=str(workflows_dir)), registry=registry)
    with TestClient(app) as c:
        yield c


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_list_workflows(client):
    r = client.get("/api/workflows")
    assert r.status_code == 200

    by_name = {w["name"]: w for w in r.json()}
    assert set(by_name) == {"fan", "broken", "loop", "garbage"}
    assert by_name["fan"]["description"] == "fan out and back in"
    assert by_name["fan"]["step_count"] == 4
    assert by_name["garbage"]["error"]


def test_plan(client):
    r = client.get("/api/workflows/fan/plan")
    assert r.status_code == 200
    assert r.json() == {"workflow_name": "fan", "levels": [["init"], ["a", "b"], ["merge"]]}


def test_plan_of_cyclic_workflow_is_unprocessable(client):
    r = client.get("/api/workflows/loop/plan")
    assert r.status_code == 422
    assert "Circular dependency" in r.json()["detail"]


def test_unknown_workflow_is_404(client):
    assert client.get("/api/workflows/ghost/plan").status_code == 404
    assert client.post("/api/workflows/ghost/run", json={}).status_code == 404


def test_unloadable_workflow_is_422(client):
    r = client.post("/api/workflows/garbage/run", json={})
    assert r.status_code == 422


def test_run_sequential_without_body(client, fake_runner):
    r = client.post("/api/workflows/fan/run")
    assert r.status_code == 200

    body = r.json()
    assert body["workflow_name"] == "fan"
    assert body["status"] == "completed"
    assert body["error"] is None
    assert [s["step_name"] for s in body["steps"]] == ["init", "a", "b", "merge"]
    assert [s["step_number"] for s in body["steps"]] == [1, 2, 3, 4]
    assert body["steps"][-1]["output"] == {"step": "merge", "inputs": ["a", "b"]}
    assert fake_runner.called() == ["init", "a", "b", "merge"]


def test_run_parallel(client):
    r = client.post("/api/workflows/fan/run", json={"mode": "parallel", "max_concurrency": 2})
    assert r.status_code == 200

    body = r.json()
    assert body["status"] == "completed"
    assert body["levels"] == [["init"], ["a", "b"], ["merge"]]
    assert {s["step_name"] for s in body["steps"]} == {"init", "a", "b", "merge"}


def test_failed_run_is_still_a_report(client):
    r = client.post("/api/workflows/broken/run", json={"mode": "sequential"})
    assert r.status_code == 200

    body = r.json()
    assert body["status"] == "failed"
    assert body["error_kind"] == "executor_failure"
    assert body["steps"][-1]["status"] == "failed"
    assert body["steps"][-1]["console"] == "about to fail"


def test_cyclic_run_reports_graph_error(client, fake_runner):
    r = client.post("/api/workflows/loop/run", json={})
    assert r.status_code == 200
    assert r.json()["error_kind"] == "cycle_detected"
    assert r.json()["steps"] == []
    assert fake_runner.calls == []


def test_invalid_request_body(client):
    r = client.post("/api/workflows/fan/run", json={"mode": "sideways"})
    assert r.status_code == 422
    r = client.post("/api/workflows/fan/run", json={"max_concurrency": -1})
    assert r.status_code == 422


def test_unloadable_python_workflow_is_listed_with_error(client, workflows_dir):
    (workflows_dir / "dup.py").write_text(
        "from polyflow import python, wf\n"
        "def workflow():\n"
        "    return wf('dup', python('a', 'x'), python('a', 'y'))\n",
        encoding="utf-8",
    )

    r = client.get("/api/workflows")
    assert r.status_code == 200
    by_name = {w["name"]: w for w in r.json()}
    assert "Duplicate step name: 'a'" in by_name["dup"]["error"]
    assert by_name["fan"]["error"] is None

    r = client.post("/api/workflows/dup/run", json={})
    assert r.status_code == 422
