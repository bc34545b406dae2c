"""Chat-completions providers built on the ``openai`` SDK.

Anything that speaks the OpenAI chat completions protocol can reuse this
class; subclasses only configure the AsyncOpenAI client and a name.
"""

import time
from collections.abc import AsyncIterator
from typing import Any

from openai import AsyncOpenAI

from arbor.providers.base import (
    GenerationRequest,
    GenerationResult,
    LLMProvider,
    StreamChunk,
)


def _usage_dict(usage: Any) -> dict[str, int] | None:
    if usage is None:
        return None
    return {"input_tokens": usage.prompt_tokens, "output_tokens": usage.completion_tokens}


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class OpenAICompatibleProvider(LLMProvider):
    def __init__(self, client: AsyncOpenAI) -> None:
        self._client = client

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        started = time.monotonic()
        completion = await self._client.chat.completions.create(
            **self._completion_kwargs(request)
        )
        first = completion.choices[0]
        return GenerationResult(
            content=first.message.content or "",
            model=completion.model,
            finish_reason=first.finish_reason,
            usage=_usage_dict(completion.usage),
            latency_ms=_elapsed_ms(started),
            raw_response=completion.model_dump(),
        )

    async def generate_stream(
        self, request: GenerationRequest
    ) -> AsyncIterator[StreamChunk]:
        kwargs = self._completion_kwargs(request)
        kwargs.update(stream=True, stream_options={"include_usage": True})

        started = time.monotonic()
        text_parts: list[str] = []
        final = GenerationResult(content="", model=request.model)

        async for event in await self._client.chat.completions.create(**kwargs):
            if event.model:
                final.model = event.model
            # The usage-only event at the end of the stream has no choices
            if event.usage:
                final.usage = _usage_dict(event.usage)
            if not event.choices:
                continue

            delta_text = event.choices[0].delta.content
            if delta_text:
                text_parts.append(delta_text)
                yield StreamChunk(type="text_delta", text=delta_text)
            if event.choices[0].finish_reason:
                final.finish_reason = event.choices[0].finish_reason

        final.content = "".join(text_parts)
        final.latency_ms = _elapsed_ms(started)
        yield StreamChunk(type="message_stop", is_final=True, result=final)

    @staticmethod
    def _completion_kwargs(request: GenerationRequest) -> dict[str, Any]:
        """Arguments for chat.completions.create(); unset sampling knobs are left out."""
        sampling = request.sampling_params
        # The conversation root is a system message, so it travels inline
        kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": [{"role": m["role"], "content": m["content"]} for m in request.messages],
            "max_tokens": sampling.max_tokens,
        }
        for key in ("temperature", "top_p", "frequency_penalty", "presence_penalty"):
            value = getattr(sampling, key)
            if value is not None:
                kwargs[key] = value
        if sampling.stop_sequences:
            kwargs["stop"] = sampling.stop_sequences
        return kwargs
