import json
import logging
import sqlite3
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from .config import configure_logging, get_settings
from .engine import create_engine
from .jobs import send_workflow_execution
from .models import (
    CreateWorkflowRequest,
    ExecuteWorkflowRequest,
    ExecuteWorkflowResponse,
    HealthResponse,
    RenameWorkflowRequest,
    SaveWorkflowRequest,
)
from .realtime.channels import CHANNEL_NAMES, STATUS_TOPIC, latest_status
from .triggers import (
    GoogleFormSubmission,
    StripeEvent,
    generate_google_form_script,
    google_form_initial_data,
    stripe_initial_data,
)
from .workflow.schema import Workflow

load_dotenv()

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

engine = create_engine(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await engine.aclose()


app = FastAPI(
    title="Nodebase API",
    description="Build workflows from triggers and actions and run them in the background",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_workflow(workflow_id: str) -> None:
    if not engine.store.exists(workflow_id):
        raise HTTPException(status_code=404, detail="Workflow not found")


def _queue_execution(background_tasks: BackgroundTasks, workflow_id: str, initial_data: dict) -> str:
    event_id = uuid.uuid4().hex
    background_tasks.add_task(
        send_workflow_execution, engine.runner, workflow_id, initial_data, event_id
    )
    logger.info("Queued execution %s of workflow %s", event_id, workflow_id)
    return event_id


@app.get("/api/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


# --- Workflows ---

@app.post("/api/workflows")
def create_workflow(request: CreateWorkflowRequest):
    name = request.name or f"workflow-{uuid.uuid4().hex[:8]}"
    return engine.store.create(name).model_dump(mode="json")


@app.get("/api/workflows")
def list_workflows():
    return [wf.model_dump(mode="json") for wf in engine.store.list_workflows()]


@app.get("/api/workflows/{workflow_id}")
def get_workflow(workflow_id: str):
    wf = engine.store.load(workflow_id)
    if wf is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return wf.model_dump(mode="json")


@app.patch("/api/workflows/{workflow_id}")
def rename_workflow(workflow_id: str, request: RenameWorkflowRequest):
    if not engine.store.rename(workflow_id, request.name):
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"status": "renamed", "workflow_id": workflow_id, "name": request.name}


@app.put("/api/workflows/{workflow_id}")
def save_workflow(workflow_id: str, request: SaveWorkflowRequest):
    existing = engine.store.load(workflow_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    nodes = [node.model_copy(update={"workflow_id": workflow_id}) for node in request.nodes]
    updated = Workflow(
        id=workflow_id,
        name=existing.name,
        nodes=nodes,
        connections=request.connections,
        created_at=existing.created_at,
    )
    try:
        engine.store.save(updated)
    except sqlite3.IntegrityError as e:
        raise HTTPException(status_code=400, detail=f"Invalid workflow graph: {e}") from e
    return engine.store.load(workflow_id).model_dump(mode="json")


@app.delete("/api/workflows/{workflow_id}")
def delete_workflow(workflow_id: str):
    if not engine.store.delete(workflow_id):
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"status": "deleted", "workflow_id": workflow_id}


@app.delete("/api/workflows/{workflow_id}/nodes/{node_id}")
def delete_node(workflow_id: str, node_id: str):
    if not engine.store.delete_node(workflow_id, node_id):
        raise HTTPException(status_code=404, detail="Node not found")
    return {"status": "deleted", "node_id": node_id}


# --- Execution ---

@app.post("/api/workflows/{workflow_id}/execute", response_model=ExecuteWorkflowResponse)
def execute_workflow(
    workflow_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[ExecuteWorkflowRequest] = None,
):
    """Manual trigger: run the workflow in the background."""
    _require_workflow(workflow_id)
    initial_data = request.initial_data if request else {}
    event_id = _queue_execution(background_tasks, workflow_id, initial_data)
    return ExecuteWorkflowResponse(execution_id=event_id)


@app.get("/api/workflows/{workflow_id}/executions")
def list_workflow_executions(workflow_id: str):
    _require_workflow(workflow_id)
    return [e.to_dict() for e in engine.store.list_executions(workflow_id)]


@app.get("/api/executions/{execution_id}")
def get_execution(execution_id: str, format: str = "json"):
    execution = engine.store.get_execution(execution_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")
    if format == "markdown":
        return PlainTextResponse(execution.to_markdown(), media_type="text/markdown")
    return execution.to_dict()


# --- Trigger webhooks ---

@app.post("/api/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    workflowId: Optional[str] = None,
    eventType: Optional[str] = None,
):
    if not workflowId:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Missing required query parameter: workflowId"},
        )
    if not eventType:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Missing required query parameter: eventType"},
        )
    _require_workflow(workflowId)

    try:
        event = StripeEvent.model_validate(await request.json())
    except ValueError as e:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": f"Invalid Stripe event payload: {e}"},
        )

    # Only trigger for the configured event type
    if event.type != eventType:
        logger.info("Ignoring Stripe event %s (configured for %s)", event.type, eventType)
        return {"success": True, "message": f"Event {event.type} acknowledged but not processed"}

    event_id = _queue_execution(background_tasks, workflowId, stripe_initial_data(event))
    return {"success": True, "executionId": event_id}


@app.post("/api/webhooks/google-form")
def google_form_webhook(
    submission: GoogleFormSubmission,
    background_tasks: BackgroundTasks,
    workflowId: Optional[str] = None,
):
    if not workflowId:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Missing required query parameter: workflowId"},
        )
    _require_workflow(workflowId)
    event_id = _queue_execution(background_tasks, workflowId, google_form_initial_data(submission))
    return {"success": True, "executionId": event_id}


@app.get("/api/workflows/{workflow_id}/google-form-script", response_class=PlainTextResponse)
def google_form_script(workflow_id: str):
    _require_workflow(workflow_id)
    base = settings.public_base_url.rstrip("/")
    webhook_url = f"{base}/api/webhooks/google-form?workflowId={workflow_id}"
    return generate_google_form_script(webhook_url)


# --- Realtime node status ---

def _require_channel(channel: str) -> None:
    if channel not in CHANNEL_NAMES:
        raise HTTPException(status_code=404, detail="Unknown channel")


@app.get("/api/realtime/{channel}")
async def stream_channel(channel: str):
    _require_channel(channel)

    async def event_stream():
        async for event in engine.hub.stream(channel, [STATUS_TOPIC]):
            yield f"data: {json.dumps(event.model_dump(mode='json'))}\n\n"

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@app.get("/api/realtime/{channel}/nodes/{node_id}")
def node_status(channel: str, node_id: str):
    _require_channel(channel)
    status = latest_status(engine.hub.history, channel, STATUS_TOPIC, node_id)
    return {"channel": channel, "node_id": node_id, "status": status}
