import json
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

import httpx
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

_IMPORT_DIR = Path(tempfile.mkdtemp(prefix="nodebase-api-import-"))
os.environ.setdefault("DATABASE_PATH", str(_IMPORT_DIR / "import.db"))

from nodebase import main
from nodebase.engine import Engine
from nodebase.realtime import RealtimeHub
from nodebase.workflow.store import WorkflowStore


def _echo(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"url": str(request.url)})


class ApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = Path(tempfile.mkdtemp(prefix="nodebase-api-tests-"))
        self._old_engine = main.engine
        self.engine = Engine(
            store=WorkflowStore(self.tmp_dir / "test.db"),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(_echo)),
            hub=RealtimeHub(),
            max_attempts=2,
        )
        main.engine = self.engine
        self.client = TestClient(main.app)

    def tearDown(self) -> None:
        main.engine = self._old_engine
        self.engine.store.close()
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def _create_echo_workflow(self) -> tuple[str, str]:
        created = self.client.post("/api/workflows", json={"name": "echo"}).json()
        workflow_id = created["id"]
        trigger_id = created["nodes"][0]["id"]
        resp = self.client.put(
            f"/api/workflows/{workflow_id}",
            json={
                "nodes": [
                    {"id": trigger_id, "type": "INITIAL"},
                    {
                        "id": "http-1",
                        "type": "HTTP_REQUEST",
                        "data": {
                            "endpoint": "https://echo.test/{{x}}",
                            "method": "GET",
                            "variableName": "resp",
                        },
                        "position": {"x": 200, "y": 0},
                    },
                ],
                "connections": [{"from_node_id": trigger_id, "to_node_id": "http-1"}],
            },
        )
        self.assertEqual(resp.status_code, 200)
        return workflow_id, trigger_id

    def _latest_execution(self, workflow_id: str) -> dict:
        executions = self.client.get(f"/api/workflows/{workflow_id}/executions").json()
        self.assertEqual(len(executions), 1)
        return executions[0]

    def test_health(self):
        self.assertEqual(self.client.get("/api/health").json()["status"], "ok")

    def test_workflow_crud(self):
        created = self.client.post("/api/workflows", json={}).json()
        workflow_id = created["id"]
        self.assertTrue(created["name"].startswith("workflow-"))
        self.assertEqual([n["type"] for n in created["nodes"]], ["INITIAL"])

        self.assertTrue(any(wf["id"] == workflow_id for wf in self.client.get("/api/workflows").json()))

        renamed = self.client.patch(f"/api/workflows/{workflow_id}", json={"name": "renamed"})
        self.assertEqual(renamed.status_code, 200)
        self.assertEqual(self.client.get(f"/api/workflows/{workflow_id}").json()["name"], "renamed")
        self.assertEqual(
            self.client.patch(f"/api/workflows/{workflow_id}", json={"name": ""}).status_code, 422
        )

        self.assertEqual(self.client.delete(f"/api/workflows/{workflow_id}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/workflows/{workflow_id}").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/workflows/{workflow_id}").status_code, 404)

    def test_save_rejects_dangling_connection(self):
        workflow_id = self.client.post("/api/workflows", json={}).json()["id"]
        resp = self.client.put(
            f"/api/workflows/{workflow_id}",
            json={
                "nodes": [{"id": "a", "type": "INITIAL"}],
                "connections": [{"from_node_id": "a", "to_node_id": "ghost"}],
            },
        )
        self.assertEqual(resp.status_code, 400)

    def test_save_rejects_unknown_node_type(self):
        workflow_id = self.client.post("/api/workflows", json={}).json()["id"]
        resp = self.client.put(
            f"/api/workflows/{workflow_id}",
            json={"nodes": [{"id": "a", "type": "SEND_EMAIL"}]},
        )
        self.assertEqual(resp.status_code, 422)

    def test_manual_execution_runs_in_background(self):
        workflow_id, trigger_id = self._create_echo_workflow()

        resp = self.client.post(
            f"/api/workflows/{workflow_id}/execute", json={"initialData": {"x": 1}}
        )
        self.assertEqual(resp.status_code, 200)
        execution_id = resp.json()["executionId"]

        execution = self.client.get(f"/api/executions/{execution_id}").json()
        self.assertEqual(execution["status"], "SUCCESS")
        self.assertEqual(execution["output"]["x"], 1)
        self.assertEqual(execution["output"]["resp"]["data"], {"url": "https://echo.test/1"})

        markdown = self.client.get(f"/api/executions/{execution_id}?format=markdown")
        self.assertIn("SUCCESS", markdown.text)

        status = self.client.get(f"/api/realtime/manual-trigger-execution/nodes/{trigger_id}").json()
        self.assertEqual(status["status"], "success")
        status = self.client.get("/api/realtime/http-request-execution/nodes/http-1").json()
        self.assertEqual(status["status"], "success")

    def test_execute_without_body(self):
        workflow_id = self.client.post("/api/workflows", json={}).json()["id"]
        resp = self.client.post(f"/api/workflows/{workflow_id}/execute")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self._latest_execution(workflow_id)["status"], "SUCCESS")

    def test_execute_unknown_workflow(self):
        self.assertEqual(self.client.post("/api/workflows/missing/execute").status_code, 404)

    def test_failed_execution_is_recorded(self):
        workflow_id = self.client.post("/api/workflows", json={}).json()["id"]
        self.client.put(
            f"/api/workflows/{workflow_id}",
            json={"nodes": [{"id": "h", "type": "HTTP_REQUEST", "data": {"method": "GET"}}]},
        )

        self.client.post(f"/api/workflows/{workflow_id}/execute")

        execution = self._latest_execution(workflow_id)
        self.assertEqual(execution["status"], "FAILED")
        self.assertEqual(execution["error_type"], "configuration_error")
        status = self.client.get("/api/realtime/http-request-execution/nodes/h").json()
        self.assertEqual(status["status"], "error")

    def test_stripe_webhook(self):
        workflow_id, _ = self._create_echo_workflow()
        event = {
            "id": "evt_123",
            "type": "checkout.session.completed",
            "created": 1700000000,
            "livemode": False,
            "data": {"object": {"amount_total": 500}},
        }

        missing = self.client.post("/api/webhooks/stripe", json=event)
        self.assertEqual(missing.status_code, 400)
        self.assertIn("workflowId", missing.json()["error"])

        malformed = self.client.post("/api/webhooks/stripe", json={"unexpected": True})
        self.assertEqual(malformed.status_code, 400)
        self.assertIn("workflowId", malformed.json()["error"])

        invalid = self.client.post(
            f"/api/webhooks/stripe?workflowId={workflow_id}&eventType=invoice.paid",
            json={"unexpected": True},
        )
        self.assertEqual(invalid.status_code, 400)
        self.assertIn("Invalid Stripe event payload", invalid.json()["error"])

        missing_type = self.client.post(f"/api/webhooks/stripe?workflowId={workflow_id}", json=event)
        self.assertEqual(missing_type.status_code, 400)
        self.assertIn("eventType", missing_type.json()["error"])

        ignored = self.client.post(
            f"/api/webhooks/stripe?workflowId={workflow_id}&eventType=invoice.paid", json=event
        )
        self.assertEqual(ignored.status_code, 200)
        self.assertIn("not processed", ignored.json()["message"])
        self.assertEqual(self.client.get(f"/api/workflows/{workflow_id}/executions").json(), [])

        accepted = self.client.post(
            f"/api/webhooks/stripe?workflowId={workflow_id}&eventType=checkout.session.completed",
            json=event,
        )
        self.assertEqual(accepted.status_code, 200)
        output = self._latest_execution(workflow_id)["output"]
        self.assertEqual(
            output["stripe"],
            {
                "eventId": "evt_123",
                "eventType": "checkout.session.completed",
                "timestamp": 1700000000,
                "livemode": False,
                "raw": {"amount_total": 500},
            },
        )

    def test_google_form_webhook_and_script(self):
        workflow_id, _ = self._create_echo_workflow()
        submission = {
            "formId": "form-1",
            "formTitle": "Signup",
            "responseId": "resp-1",
            "timestamp": "2024-01-01T00:00:00Z",
            "respondentEmail": "ada@example.com",
            "responses": {"Name": "Ada"},
        }

        resp = self.client.post(f"/api/webhooks/google-form?workflowId={workflow_id}", json=submission)
        self.assertEqual(resp.status_code, 200)
        output = self._latest_execution(workflow_id)["output"]
        self.assertEqual(output["googleForm"], submission)

        script = self.client.get(f"/api/workflows/{workflow_id}/google-form-script").text
        expected_url = json.dumps(
            f"{main.settings.public_base_url.rstrip('/')}/api/webhooks/google-form?workflowId={workflow_id}"
        )
        self.assertIn(f"var WEBHOOK_URL = {expected_url};", script)
        self.assertIn("function onFormSubmit(e)", script)

    def test_unknown_realtime_channel(self):
        self.assertEqual(self.client.get("/api/realtime/nope/nodes/x").status_code, 404)
        self.assertEqual(
            self.client.get("/api/realtime/http-request-execution/nodes/never-ran").json()["status"],
            "initial",
        )


if __name__ == "__main__":
    unittest.main()
