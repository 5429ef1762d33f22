"""Test the HTTP command surface."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from charsheet.backends.base import BackendCapabilities
from charsheet.backends.registry import BackendRegistry
from charsheet.controllers.sheet_controllers import sheet_router
from charsheet.engine.trigger import TriggerEvaluator
from charsheet.models.settings_models import SheetSettings
from charsheet.services.host import InMemoryChatHost, LocalEventSource
from charsheet.services.sheet_service import (
    CharacterSheetService,
    get_event_source,
    get_sheet_service,
)
from tests.fakes import RecordingBackend, WordMeasurer, build_chat, no_sleep


class TestSheetControllers:
    """Test cases for the sheet router."""

    @pytest.fixture(autouse=True)
    def setup(self, config) -> None:
        backend = RecordingBackend(BackendCapabilities(raw_window=True))
        self.host = InMemoryChatHost(chat=build_chat(11))
        self.events = LocalEventSource()
        self.service = CharacterSheetService(
            self.host,
            sheet_settings=SheetSettings(prompt="Summarize.", prompt_interval=10),
            registry=BackendRegistry(backend, backend, backend, backend, backend),
            config=config,
            evaluator=TriggerEvaluator(self.host, sleep=no_sleep),
            token_measurer=WordMeasurer(),
        )
        self.service.attach(self.events)

        app = FastAPI()
        app.include_router(sheet_router)
        app.dependency_overrides[get_sheet_service] = lambda: self.service
        app.dependency_overrides[get_event_source] = lambda: self.events
        self.client = TestClient(app)

    def test_get_sheet(self) -> None:
        self.service.current_sheet = "Brave knight"

        response = self.client.get("/sheet")

        assert response.status_code == 200
        assert response.json() == {"sheet": "Brave knight"}

    def test_command_freeze(self) -> None:
        response = self.client.post("/sheet/command", json={"action": "freeze"})

        assert response.status_code == 200
        assert response.json() == {
            "action": "freeze",
            "result": "Character sheet updates frozen",
        }
        assert self.service.settings.frozen is True

    def test_command_defaults_to_update(self) -> None:
        response = self.client.post("/sheet/command", json={"quiet": True})

        assert response.status_code == 200
        assert response.json()["action"] == "update"
        assert self.service.get_current_summary() == "New sheet"

    def test_unknown_action_is_rejected(self) -> None:
        response = self.client.post("/sheet/command", json={"action": "explode"})

        assert response.status_code == 422

    def test_command_failure_returns_500(self) -> None:
        with patch(
            "charsheet.controllers.sheet_controllers.execute",
            AsyncMock(side_effect=RuntimeError("boom")),
        ):
            response = self.client.post("/sheet/command", json={"action": "get"})

        assert response.status_code == 500
        assert response.json()["detail"] == "boom"

    def test_appended_message_runs_live_update(self) -> None:
        response = self.client.post(
            "/sheet/messages",
            json={"speaker": "User", "text": "And then?", "is_user": True},
        )

        assert response.status_code == 200
        assert response.json() == {"sheet": "New sheet"}
        assert len(self.host.chat) == 12
        assert self.host.chat[10].summary == "New sheet"
