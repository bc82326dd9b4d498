"""Tests for the IVR voice menu."""

import xml.etree.ElementTree as ET

import pytest
from httpx import AsyncClient

from dialer.telephony.twiml import FALLBACK_TWIML, build_voice_menu


class TestBuildVoiceMenu:
    def test_menu_structure(self) -> None:
        root = ET.fromstring(build_voice_menu("Asha", "Support", action_url="/call-status"))

        assert root.tag == "Response"
        gather = root.find("Gather")
        assert gather is not None
        assert gather.get("numDigits") == "1"
        assert gather.get("action") == "/call-status"
        assert gather.get("method") == "POST"

        prompts = [say.text for say in gather.findall("Say")]
        assert "Hello Asha" in prompts[0]
        assert "press 1" in prompts[1]
        assert "press 2" in prompts[1]
        assert "press 3" in prompts[1]

        goodbye = root.findall("Say")[-1].text
        assert "Support team" in goodbye

    def test_defaults_for_blank_values(self) -> None:
        root = ET.fromstring(build_voice_menu("  ", None))

        assert "Hello Customer" in root.find("Gather/Say").text
        assert "Sales team" in root.findall("Say")[-1].text

    def test_text_is_escaped(self) -> None:
        document = build_voice_menu('<Ann & "Bo">', "CRM", action_url="https://x/cb?a=1&b=2")

        root = ET.fromstring(document)
        assert '<Ann & "Bo">' in root.find("Gather/Say").text
        assert root.find("Gather").get("action") == "https://x/cb?a=1&b=2"

    def test_fallback_is_valid(self) -> None:
        root = ET.fromstring(FALLBACK_TWIML)
        assert "unable to process your call" in root.find("Say").text


class TestTwimlRoute:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "POST"])
    async def test_serves_menu(self, async_client: AsyncClient, method: str) -> None:
        response = await async_client.request(
            method,
            "/twiml",
            params={"customerName": "Asha Rao", "department": "Collection"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/xml")
        root = ET.fromstring(response.text)
        assert "Hello Asha Rao" in root.find("Gather/Say").text
        assert root.find("Gather").get("action") == "https://dialer.example.com/call-status"
        assert "Collection team" in root.findall("Say")[-1].text

    @pytest.mark.asyncio
    async def test_defaults_without_params(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/twiml")

        root = ET.fromstring(response.text)
        assert "Hello Customer" in root.find("Gather/Say").text
