from __future__ import annotations

import io
from types import SimpleNamespace

import pytest
from PIL import Image

from splitter.services.extraction_service import ExtractionService
from splitter.utils.prompts import RETRY_EMPHASIS


class FakeCompletions:
    def __init__(self, reply: str):
        self.reply = reply
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(reply: str):
    completions = FakeCompletions(reply)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def _jpeg() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (10, 10), color="white").save(buf, format="JPEG")
    return buf.getvalue()


@pytest.mark.asyncio
async def test_extract_sends_image_and_prompt():
    client, completions = _client('{"total": 1}')
    service = ExtractionService(model="vision-model", client=client)
    text = await service.extract(_jpeg())
    assert text == '{"total": 1}'
    call = completions.calls[0]
    assert call["model"] == "vision-model"
    content = call["messages"][0]["content"]
    assert content[0]["type"] == "text"
    assert not content[0]["text"].startswith(RETRY_EMPHASIS)
    assert content[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")


@pytest.mark.asyncio
async def test_retry_prompt_opens_with_emphasis():
    client, completions = _client("{}")
    await ExtractionService(client=client).extract(_jpeg(), retry=True)
    prompt = completions.calls[0]["messages"][0]["content"][0]["text"]
    assert prompt.startswith(RETRY_EMPHASIS)


@pytest.mark.asyncio
async def test_correct_includes_discrepancies_and_payload():
    client, completions = _client('{"total": 2}')
    service = ExtractionService(correction_model="fixer", client=client)
    text = await service.correct({"total": 3}, ["Calculated total (2.00) doesn't match receipt total (3.00)"])
    assert text == '{"total": 2}'
    call = completions.calls[0]
    assert call["model"] == "fixer"
    assert call["messages"][0]["role"] == "system"
    user_prompt = call["messages"][1]["content"]
    assert "doesn't match receipt total (3.00)" in user_prompt
    assert '"total": 3' in user_prompt


@pytest.mark.asyncio
async def test_empty_model_reply_becomes_empty_string():
    client, _ = _client(None)
    assert await ExtractionService(client=client).extract(_jpeg()) == ""


@pytest.mark.asyncio
async def test_image_is_preprocessed_once_per_scan(monkeypatch):
    from splitter.services import extraction_service

    seen = []

    def counting_preprocess(data):
        seen.append(data)
        return b"processed"

    monkeypatch.setattr(extraction_service, "preprocess_image", counting_preprocess)
    client, completions = _client("{}")
    service = ExtractionService(client=client)
    image = _jpeg()
    await service.extract(image)
    await service.extract(image, retry=True)
    assert seen == [image]
    assert completions.calls[1]["messages"][0]["content"][1]["image_url"]["url"].endswith("cHJvY2Vzc2Vk")

    await service.extract(b"another image")
    assert seen == [image, b"another image"]
