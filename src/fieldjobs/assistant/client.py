from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx

from fieldjobs.config.settings import AppSettings
from fieldjobs.diagnostics.context import DiagnosticContext
from fieldjobs.shared.logging import get_logger, log_event


class AssistantError(RuntimeError):
    pass


@dataclass(frozen=True)
class AssistantReply:
    response: str
    session_id: str
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"response": self.response, "session_id": self.session_id, "suggestions": list(self.suggestions)}


class AssistantClient:
    """Sends a technician question plus the diagnostic context to the remote assistant.

    One attempt per call; a failed call surfaces as ``AssistantError``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        agent_id: str = "mechanic-assistant",
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.agent_id = agent_id
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._transport = transport
        self._logger = get_logger("fieldjobs.assistant")

    async def ask(
        self,
        message: str,
        context: DiagnosticContext,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        job_id: Optional[str] = None,
    ) -> AssistantReply:
        session_id = session_id or uuid4().hex
        body = {
            "message": message,
            "session_id": session_id,
            "user_id": user_id,
            "context": {
                "agent_type": "mechanic-assistant",
                "job_id": job_id,
                "diagnostic_context": context.to_dict(),
                "summary": context.render(),
            },
        }
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        url = f"{self.base_url}/chat/{self.agent_id}"

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            log_event(self._logger, "assistant.unreachable", job_id=job_id, error=str(exc))
            raise AssistantError(f"assistant request failed: {exc}") from exc

        if response.status_code >= 300:
            log_event(self._logger, "assistant.rejected", job_id=job_id, status_code=response.status_code)
            raise AssistantError(f"assistant request failed: {response.status_code} {response.text}")

        try:
            data = response.json()
        except ValueError as exc:
            raise AssistantError("assistant returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise AssistantError("assistant reply is not an object")
        text = data.get("message") or data.get("response")
        if not text:
            raise AssistantError("assistant reply has no message")
        return AssistantReply(
            response=text,
            session_id=data.get("session_id") or session_id,
            suggestions=list(data.get("suggestions") or []),
        )


def build_assistant(settings: AppSettings) -> Optional[AssistantClient]:
    if not settings.assistant_url:
        return None
    return AssistantClient(
        settings.assistant_url,
        api_key=settings.assistant_api_key,
        agent_id=settings.assistant_agent_id,
        timeout_seconds=settings.assistant_timeout_seconds,
    )
