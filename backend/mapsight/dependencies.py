"""FastAPI dependency injection."""

from __future__ import annotations

import uuid
from collections import OrderedDict

from fastapi import Depends

from mapsight.config import Settings, settings
from mapsight.engine.config import PipelineConfig
from mapsight.engine.extractor import DetectionSession


class SessionStore:
    """In-process detection sessions, oldest evicted first once ``limit`` is reached."""

    def __init__(self, limit: int = 32) -> None:
        self.limit = limit
        self._sessions: OrderedDict[str, DetectionSession] = OrderedDict()

    def create(self) -> tuple[str, DetectionSession]:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = DetectionSession()
        while len(self._sessions) > self.limit:
            self._sessions.popitem(last=False)
        return session_id, self._sessions[session_id]

    def get(self, session_id: str) -> DetectionSession | None:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    def __len__(self) -> int:
        return len(self._sessions)


_store = SessionStore(limit=settings.mapsight_session_limit)


def get_settings() -> Settings:
    return settings


def get_session_store() -> SessionStore:
    return _store


def get_pipeline_config(app_settings: Settings = Depends(get_settings)) -> PipelineConfig:
    return PipelineConfig.from_settings(app_settings)
