"""OpenRouterProvider over a mocked AsyncOpenAI client."""

from unittest.mock import AsyncMock, MagicMock

from arbor.models import SamplingParams
from arbor.providers.base import GenerationRequest
from arbor.providers.openrouter import OpenRouterProvider


def _completion(
    content: str | None = "Hello!",
    model: str = "openai/gpt-4o",
    finish_reason: str = "stop",
    usage: tuple[int, int] | None = (10, 5),
) -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = finish_reason

    completion = MagicMock()
    completion.choices = [choice]
    completion.model = model
    if usage is None:
        completion.usage = None
    else:
        completion.usage.prompt_tokens, completion.usage.completion_tokens = usage
    completion.model_dump.return_value = {"id": "gen-test"}
    return completion


def _chunk(text: str | None = None, finish_reason: str | None = None, model: str = "openai/gpt-4o"):
    chunk = MagicMock()
    chunk.choices = [MagicMock()]
    chunk.choices[0].delta.content = text
    chunk.choices[0].finish_reason = finish_reason
    chunk.model = model
    chunk.usage = None
    return chunk


def _usage_chunk(prompt_tokens: int, completion_tokens: int) -> MagicMock:
    chunk = MagicMock()
    chunk.choices = []
    chunk.model = "openai/gpt-4o"
    chunk.usage.prompt_tokens = prompt_tokens
    chunk.usage.completion_tokens = completion_tokens
    return chunk


async def _async_iter(items: list):
    for item in items:
        yield item


def _client(create_return) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=create_return)
    return client


def _request(sampling_params: SamplingParams | None = None) -> GenerationRequest:
    return GenerationRequest(
        model="openai/gpt-4o",
        messages=[
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Hello"},
        ],
        sampling_params=sampling_params or SamplingParams(),
    )


class TestConstruction:
    def test_name(self):
        assert OpenRouterProvider(client=_client(None)).name == "openrouter"

    def test_uses_openrouter_base_url(self):
        provider = OpenRouterProvider(api_key="test-key")
        assert provider._client.base_url.host == "openrouter.ai"

    def test_sets_title_header(self):
        provider = OpenRouterProvider(api_key="test-key")
        assert provider._client.default_headers["X-Title"] == "Arbor"

    def test_has_suggested_models(self):
        assert "openai/gpt-4o" in OpenRouterProvider.suggested_models


class TestGenerate:
    async def test_content_and_metadata(self):
        provider = OpenRouterProvider(client=_client(_completion("Routed!")))
        result = await provider.generate(_request())
        assert result.content == "Routed!"
        assert result.model == "openai/gpt-4o"
        assert result.finish_reason == "stop"
        assert result.usage == {"input_tokens": 10, "output_tokens": 5}
        assert result.latency_ms is not None
        assert result.raw_response == {"id": "gen-test"}

    async def test_missing_usage_and_content(self):
        provider = OpenRouterProvider(client=_client(_completion(None, usage=None)))
        result = await provider.generate(_request())
        assert result.content == ""
        assert result.usage is None

    async def test_system_message_stays_inline(self):
        client = _client(_completion())
        await OpenRouterProvider(client=client).generate(_request())
        params = client.chat.completions.create.call_args.kwargs
        assert params["messages"][0] == {"role": "system", "content": "Be brief."}
        assert params["model"] == "openai/gpt-4o"
        assert params["max_tokens"] == 2048

    async def test_unset_sampling_params_are_omitted(self):
        client = _client(_completion())
        await OpenRouterProvider(client=client).generate(_request())
        params = client.chat.completions.create.call_args.kwargs
        for key in ("temperature", "top_p", "frequency_penalty", "presence_penalty", "stop"):
            assert key not in params

    async def test_sampling_params_forwarded(self):
        client = _client(_completion())
        sampling = SamplingParams(
            temperature=0.3, top_p=0.9, max_tokens=100, stop_sequences=["END"]
        )
        await OpenRouterProvider(client=client).generate(_request(sampling))
        params = client.chat.completions.create.call_args.kwargs
        assert params["temperature"] == 0.3
        assert params["top_p"] == 0.9
        assert params["max_tokens"] == 100
        assert params["stop"] == ["END"]


class TestGenerateStream:
    async def test_deltas_then_final(self):
        chunks = [
            _chunk("Hel"),
            _chunk("lo"),
            _chunk(None, finish_reason="stop"),
            _usage_chunk(12, 2),
        ]
        client = _client(_async_iter(chunks))
        provider = OpenRouterProvider(client=client)

        received = [c async for c in provider.generate_stream(_request())]
        deltas = [c.text for c in received if c.type == "text_delta"]
        assert deltas == ["Hel", "lo"]

        final = received[-1]
        assert final.is_final
        assert final.type == "message_stop"
        assert final.result.content == "Hello"
        assert final.result.finish_reason == "stop"
        assert final.result.usage == {"input_tokens": 12, "output_tokens": 2}

    async def test_requests_usage_in_stream(self):
        client = _client(_async_iter([_chunk("x")]))
        [c async for c in OpenRouterProvider(client=client).generate_stream(_request())]
        params = client.chat.completions.create.call_args.kwargs
        assert params["stream"] is True
        assert params["stream_options"] == {"include_usage": True}

    async def test_empty_stream_still_ends(self):
        client = _client(_async_iter([]))
        received = [c async for c in OpenRouterProvider(client=client).generate_stream(_request())]
        assert len(received) == 1
        assert received[0].is_final
        assert received[0].result.content == ""
        assert received[0].result.model == "openai/gpt-4o"
