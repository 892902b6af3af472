from typing import List, Dict, Any, Optional, Sequence
import logging
import httpx

from ..config import settings
from ..core.errors import SynthesisError
from .prompts import ANSWER_SYSTEM_PROMPT, ANSWER_USER_TEMPLATE

logger = logging.getLogger("docqa.llm")


def build_context(chunks: Sequence[str], budget: int) -> str:
    """
    Join context chunks with blank lines, truncated to ``budget`` characters.
    Chunks keep their given (relevance) order.
    """
    context = "\n\n".join(chunk for chunk in chunks if chunk)
    if len(context) > budget:
        context = context[:budget]
    return context


class AnswerSynthesizer:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        context_char_budget: Optional[int] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if api_key is None and settings.openai_api_key is not None:
            api_key = settings.openai_api_key.get_secret_value()
        self.api_key = api_key or ""
        self.model = model or settings.chat_model
        self.base_url = base_url or f"{settings.openai_base_url.rstrip('/')}/chat/completions"
        self.context_char_budget = context_char_budget or settings.context_char_budget
        self.timeout = timeout
        self._transport = transport

    async def answer(self, question: str, context_chunks: Sequence[str]) -> str:
        """
        Returns a short answer to ``question`` grounded in ``context_chunks``.

        Raises SynthesisError when the call fails or yields no content.
        """
        context = build_context(context_chunks, self.context_char_budget)
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": ANSWER_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": ANSWER_USER_TEMPLATE.format(context=context, question=question),
            },
        ]
        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": settings.answer_max_tokens,
            "temperature": settings.answer_temperature,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.base_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            logger.error("Answer request failed (%s): %s", type(exc).__name__, exc)
            raise SynthesisError(
                "Answer generation failed",
                details=type(exc).__name__,
            ) from exc
        except ValueError as exc:
            raise SynthesisError("Answer response is not JSON") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None

        if not isinstance(content, str) or not content.strip():
            raise SynthesisError("No answer received from the language model")

        return content.strip()
