from __future__ import annotations

import threading
from typing import Dict, List, Optional, Sequence

from loguru import logger as log

from quantai.core.logging import get_llm_logger
from quantai.core.types import NewsItem
from quantai.llm import prompts
from quantai.llm.client import LLMClient


class AITextService:
    """Advisory text generation: chat, news impact and strategy outlook.

    Every method returns text. With no client or no API key the static demo
    fallbacks are returned; when a configured call fails the matching failure
    string is returned instead. Nothing here raises into trading code.
    """

    def __init__(self, client: Optional[LLMClient] = None, enabled: bool = True, max_history: int = 20) -> None:
        self.client = client
        self.enabled = enabled
        self.max_history = max_history
        self._history: List[Dict[str, str]] = []
        self._chat_lock = threading.Lock()

    @property
    def available(self) -> bool:
        return bool(self.enabled and self.client is not None and self.client.configured)

    def chat(self, message: str) -> str:
        if not self.available:
            return prompts.FALLBACK_CHAT
        with self._chat_lock:
            messages = [{"role": "system", "content": prompts.COPILOT_SYSTEM_PROMPT}]
            messages.extend(self._history)
            messages.append({"role": "user", "content": message})
            reply = self._ask("chat", messages, use_cache=False)
            if reply is None:
                return prompts.FAILED_CHAT
            self._history.extend([{"role": "user", "content": message}, {"role": "assistant", "content": reply}])
            if len(self._history) > self.max_history:
                self._history = self._history[-self.max_history:]
            return reply

    def reset_chat(self) -> None:
        with self._chat_lock:
            self._history.clear()

    def analyze_impact(self, news: NewsItem) -> str:
        if not self.available:
            return prompts.FALLBACK_NEWS_IMPACT
        prompt = prompts.NEWS_IMPACT_PROMPT.format(
            title=news.title,
            source=news.source,
            summary=news.summary,
            region=news.region,
        )
        reply = self._ask("news_impact", [{"role": "user", "content": prompt}])
        return prompts.FAILED_NEWS_IMPACT if reply is None else reply

    def strategy_outlook(self, watchlist: Sequence[str]) -> str:
        if not self.available:
            return prompts.FALLBACK_STRATEGY
        prompt = prompts.STRATEGY_OUTLOOK_PROMPT.format(watchlist=", ".join(watchlist))
        reply = self._ask("strategy_outlook", [{"role": "user", "content": prompt}], max_tokens=160)
        return prompts.FAILED_STRATEGY if reply is None else reply

    def _ask(self, call: str, messages: List[Dict[str, str]], max_tokens: int = 512, use_cache: bool = True) -> Optional[str]:
        get_llm_logger().debug({"event": "llm_request", "call": call, "prompt": messages[-1]["content"]})
        try:
            return self.client.call(messages, max_tokens=max_tokens, use_cache=use_cache)
        except Exception as e:
            log.warning(f"AI text service error during {call}: {e}")
            return None
