import json
import logging
from typing import Any, Optional

import httpx

from .core.exceptions import ResponseSerializationError, RuntimeApiError
from .models.invocation import Failure, InvocationRequest

logger = logging.getLogger("bootstrap.client")

HEADER_REQUEST_ID = "Lambda-Runtime-Aws-Request-Id"
HEADER_DEADLINE_MS = "Lambda-Runtime-Deadline-Ms"
HEADER_FUNCTION_ARN = "Lambda-Runtime-Invoked-Function-Arn"
HEADER_TRACE_ID = "Lambda-Runtime-Trace-Id"
HEADER_CLIENT_CONTEXT = "Lambda-Runtime-Client-Context"
HEADER_COGNITO_IDENTITY = "Lambda-Runtime-Cognito-Identity"
HEADER_ERROR_TYPE = "Lambda-Runtime-Function-Error-Type"


class RuntimeApiClient:
    """
    Blocking client for the Runtime API (next / response / error / init error).
    """

    def __init__(self, client: httpx.Client):
        """
        Args:
            client: httpx.Client whose base_url points at http://<host>/<api-version>
        """
        self.client = client

    def poll_next(self) -> InvocationRequest:
        """
        Fetch the next invocation. Blocks until the Runtime API has an event.

        Raises:
            RuntimeApiError: unexpected status code
            httpx.HTTPError: transport failure
        """
        path = "/runtime/invocation/next"
        response = self.client.get(path, timeout=None)
        if response.status_code != 200:
            raise RuntimeApiError(response.status_code, path, response.text)

        headers = response.headers
        content = response.content
        return InvocationRequest(
            request_id=headers[HEADER_REQUEST_ID],
            deadline_ms=int(headers.get(HEADER_DEADLINE_MS, "0")),
            invoked_function_arn=headers.get(HEADER_FUNCTION_ARN, ""),
            trace_id=headers.get(HEADER_TRACE_ID),
            client_context=_parse_json_header(headers, HEADER_CLIENT_CONTEXT),
            cognito_identity=_parse_json_header(headers, HEADER_COGNITO_IDENTITY),
            payload=json.loads(content) if content else None,
        )

    def post_success(self, request_id: str, value: Any) -> None:
        try:
            body = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise ResponseSerializationError(e) from e

        self._post(
            f"/runtime/invocation/{request_id}/response",
            content=body.encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )

    def post_failure(self, request_id: str, outcome: Failure) -> None:
        self._post_error(f"/runtime/invocation/{request_id}/error", outcome)

    def post_init_failure(self, outcome: Failure) -> None:
        self._post_error("/runtime/init/error", outcome)

    def close(self) -> None:
        self.client.close()

    def _post_error(self, path: str, outcome: Failure) -> None:
        self._post(
            path,
            content=json.dumps(outcome.to_payload()).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                HEADER_ERROR_TYPE: outcome.kind.wire_name,
            },
        )

    def _post(self, path: str, content: bytes, headers: dict) -> None:
        response = self.client.post(path, content=content, headers=headers)
        if response.status_code != 202:
            raise RuntimeApiError(response.status_code, path, response.text)
        logger.debug("Posted %s", path, extra={"status_code": response.status_code})


def _parse_json_header(headers: httpx.Headers, name: str) -> Optional[Any]:
    raw = headers.get(name)
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Ignoring {name} header that is not valid JSON")
        return None
