"""Tests for the blob uploader and the Gemini extractor with mocked transports."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from tomekeeper.schemas import EXTRACTION_SCHEMA
from tomekeeper.services.extractor import GeminiExtractor, build_extraction_prompt
from tomekeeper.services.uploader import HttpBlobUploader


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHttpBlobUploader:

    async def test_posts_multipart_and_reads_file_url(self, settings):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = request.content
            return httpx.Response(200, json={"file_url": "https://blob.test/abc.pdf"})

        async with _client(handler) as client:
            url = await HttpBlobUploader(settings, client).upload(b"%PDF-1.7", "Core.pdf", "application/pdf")

        assert url == "https://blob.test/abc.pdf"
        assert seen["url"] == settings.blob_upload_url
        assert b'filename="Core.pdf"' in seen["body"]

    async def test_accepts_url_key(self, settings):
        async with _client(lambda r: httpx.Response(200, json={"url": "https://blob.test/x"})) as client:
            assert await HttpBlobUploader(settings, client).upload(b"x", "x.pdf") == "https://blob.test/x"

    async def test_http_error_propagates(self, settings):
        async with _client(lambda r: httpx.Response(503)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await HttpBlobUploader(settings, client).upload(b"x", "x.pdf")

    async def test_missing_url_in_reply(self, settings):
        async with _client(lambda r: httpx.Response(200, json={"ok": True})) as client:
            with pytest.raises(ValueError, match="no file_url"):
                await HttpBlobUploader(settings, client).upload(b"x", "x.pdf")


def _genai_client(reply_text):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=MagicMock(text=reply_text))
    return client


class TestGeminiExtractor:

    async def test_extracts_and_normalizes(self, settings):
        reply = "```json\n" + json.dumps({"game_mechanics": {"dice_system": "d20"}, "npcs": None}) + "\n```"
        genai = _genai_client(reply)
        pdf_response = httpx.Response(200, content=b"%PDF-1.7", headers={"content-type": "application/pdf"})

        async with _client(lambda r: pdf_response) as http:
            extractor = GeminiExtractor(settings, client=genai, http_client=http)
            content = await extractor.extract("https://blob.test/core.pdf", EXTRACTION_SCHEMA)

        assert content.game_mechanics.dice_system == "d20"
        assert content.npcs == []
        kwargs = genai.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == settings.model_extractor
        assert kwargs["config"].response_mime_type == "application/json"

    async def test_reply_without_json_raises(self, settings):
        async with _client(lambda r: httpx.Response(200, content=b"%PDF")) as http:
            extractor = GeminiExtractor(settings, client=_genai_client("Sorry, I cannot read this."), http_client=http)
            with pytest.raises(ValueError, match="no JSON object"):
                await extractor.extract("https://blob.test/core.pdf", EXTRACTION_SCHEMA)

    async def test_download_failure_propagates(self, settings):
        async with _client(lambda r: httpx.Response(404)) as http:
            extractor = GeminiExtractor(settings, client=_genai_client("{}"), http_client=http)
            with pytest.raises(httpx.HTTPStatusError):
                await extractor.extract("https://blob.test/missing.pdf", EXTRACTION_SCHEMA)

    def test_prompt_lists_sections(self):
        prompt = build_extraction_prompt(EXTRACTION_SCHEMA)
        for name in EXTRACTION_SCHEMA["properties"]:
            assert name in prompt
