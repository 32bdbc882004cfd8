"""HTTP request node executor."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..jobs.runner import Publisher, StepRunner
from ..realtime.channels import http_request_channel
from ..workflow.context import WorkflowContext
from ..workflow.errors import BodyValidationError, NodeConfigurationError
from .templating import render

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
BODY_METHODS = ("POST", "PUT", "PATCH")


class HttpRequestExecutor:
    """Calls an HTTP endpoint and stores the response under ``variableName``.

    Node data:
        endpoint      URL template, e.g. ``https://api.example.com/items/{{id}}``
        method        one of GET, POST, PUT, DELETE, PATCH
        variableName  context key the response is written to
        body          JSON template, sent only for POST, PUT and PATCH

    Configuration, template and body problems are non-retriable. Failures of
    the request itself (network errors, non-2xx responses) propagate as
    ``httpx.HTTPError`` so the job runner retries them.
    """

    def __init__(self, http_client: httpx.AsyncClient):
        self.http = http_client

    async def __call__(
        self,
        *,
        data: dict[str, Any],
        node_id: str,
        context: WorkflowContext,
        step: StepRunner,
        publish: Publisher,
    ) -> WorkflowContext:
        await publish(http_request_channel.status(node_id, "loading"))
        try:
            result = await self._execute(data, node_id, context, step)
        except Exception:
            await publish(http_request_channel.status(node_id, "error"))
            raise
        await publish(http_request_channel.status(node_id, "success"))
        return result

    async def _execute(
        self,
        data: dict[str, Any],
        node_id: str,
        context: WorkflowContext,
        step: StepRunner,
    ) -> WorkflowContext:
        if not data.get("endpoint"):
            raise NodeConfigurationError("HTTP Request node: No endpoint configured")
        if not data.get("variableName"):
            raise NodeConfigurationError("HTTP Request node: Variable name not configured")
        if not data.get("method"):
            raise NodeConfigurationError("HTTP Request node: Method not configured")

        method = str(data["method"]).upper()
        if method not in SUPPORTED_METHODS:
            raise NodeConfigurationError(f"HTTP Request node: Unsupported method {data['method']!r}")
        variable_name: str = data["variableName"]

        endpoint = render(data["endpoint"], context)
        payload: Any = None
        has_body = method in BODY_METHODS and bool(data.get("body"))
        if has_body:
            resolved_body = render(data["body"], context)
            try:
                payload = json.loads(resolved_body)
            except json.JSONDecodeError as e:
                raise BodyValidationError(
                    f"HTTP Request node: Body is not valid JSON after resolving variables: {e}"
                ) from e

        async def send() -> WorkflowContext:
            logger.info("Node %s: %s %s", node_id, method, endpoint)
            if has_body:
                response = await self.http.request(method, endpoint, json=payload)
            else:
                response = await self.http.request(method, endpoint)
            response.raise_for_status()

            content_type = response.headers.get("content-type", "")
            response_data: Any = response.text
            if "application/json" in content_type:
                try:
                    response_data = response.json()
                except json.JSONDecodeError:
                    logger.warning("Node %s: response declared JSON but did not parse, keeping text", node_id)

            return context.with_value(
                variable_name,
                {
                    "data": response_data,
                    "httpResponse": {
                        "status": response.status_code,
                        "statusText": response.reason_phrase,
                        "data": response_data,
                    },
                },
                written_by=node_id,
            )

        return await step.run(f"http-request-{node_id}", send)
