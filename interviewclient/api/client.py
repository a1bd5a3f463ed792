"""aiohttp client for the remote interview service."""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Type, TypeVar
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel, ValidationError

from ..errors import ApiError, MalformedResponseError
from ..models.api import ChatResponse, ReportResponse, StartInterviewResponse
from ..models.audio import AudioArtifact

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class InterviewApiClient:
    """Thin REST client for the interview endpoints.

    Every failure surfaces as ``ApiError``; bodies that are not JSON or do not
    match the expected shape surface as ``MalformedResponseError``. Nothing is
    retried.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Service root, e.g. ``http://localhost:8000/api``
            token_provider: Returns the bearer token for report calls, or None
            timeout_seconds: Total per-request timeout; only connects are bounded if None
            session: Existing aiohttp session to reuse (not closed by ``close``)
        """
        self.base_url = base_url.rstrip('/')
        self.token_provider = token_provider
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

        logger.info(f"InterviewApiClient initialized for {self.base_url}")

    async def __aenter__(self) -> "InterviewApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            if self.timeout_seconds:
                timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            else:
                timeout = aiohttp.ClientTimeout(total=None, sock_connect=30)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def start_interview(self, candidate_name: Optional[str] = None,
                              cv_text: Optional[str] = None) -> StartInterviewResponse:
        payload = {
            "candidate_name": candidate_name or None,
            "cv_text": cv_text or None,
        }
        body = await self._request("POST", "/interview/start", json=payload)
        return self._parse(StartInterviewResponse, body, "start")

    async def start_interview_with_cv(self, cv_bytes: bytes, cv_filename: str,
                                      candidate_name: Optional[str] = None,
                                      content_type: str = "application/octet-stream") -> StartInterviewResponse:
        form = aiohttp.FormData()
        if candidate_name:
            form.add_field("candidate_name", candidate_name)
        form.add_field("cv_file", cv_bytes, filename=cv_filename, content_type=content_type)
        body = await self._request("POST", "/interview/start-with-cv", data=form)
        return self._parse(StartInterviewResponse, body, "start-with-cv")

    async def send_message(self, session_id: str, message: str) -> ChatResponse:
        body = await self._request("POST", "/interview/chat",
                                   json={"session_id": session_id, "message": message})
        return self._parse(ChatResponse, body, "chat")

    async def send_audio_message(self, session_id: str, artifact: AudioArtifact,
                                 text: Optional[str] = None) -> ChatResponse:
        form = aiohttp.FormData()
        form.add_field("session_id", session_id)
        form.add_field("audio", artifact.data, filename=artifact.filename, content_type=artifact.mime_type)
        if text:
            form.add_field("message", text)
        logger.debug(f"Uploading {artifact.size_bytes} bytes of {artifact.mime_type}")
        body = await self._request("POST", "/interview/chat-audio", data=form)
        return self._parse(ChatResponse, body, "chat-audio")

    async def get_report(self, session_id: str) -> ReportResponse:
        body = await self._request("POST", "/interview/report",
                                   json={"session_id": session_id},
                                   headers=self._auth_headers())
        return self._parse(ReportResponse, body, "report")

    async def delete_session(self, session_id: str) -> None:
        await self._request("DELETE", f"/interview/{quote(session_id, safe='')}", expect_body=False)

    async def _request(self, method: str, path: str, *, json: Any = None, data: Any = None,
                       headers: Optional[Dict[str, str]] = None, expect_body: bool = True) -> Any:
        url = f"{self.base_url}{path}"
        session = self._get_session()
        logger.debug(f"{method} {url}")

        try:
            async with session.request(method, url, json=json, data=data, headers=headers) as response:
                if response.status >= 400:
                    error_text = await response.text(errors="replace")
                    raise ApiError(f"{method} {path} failed", status=response.status,
                                   detail=error_text[:500])
                if not expect_body:
                    return None
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise MalformedResponseError(f"{method} {path} returned invalid JSON",
                                                 status=response.status) from e
        except aiohttp.ClientError as e:
            raise ApiError(f"{method} {path} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise ApiError(f"{method} {path} timed out") from e

    @staticmethod
    def _parse(model: Type[ModelT], body: Any, call: str) -> ModelT:
        try:
            return model.model_validate(body)
        except ValidationError as e:
            logger.warning(f"Unexpected {call} response shape: {e}")
            raise MalformedResponseError(f"Unexpected {call} response", detail=str(e)) from e
