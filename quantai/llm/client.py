from __future__ import annotations

import hashlib
import json
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger as log

from quantai.core.config import LLMConfig
from quantai.core.logging import get_llm_logger


@dataclass
class LLMUsage:
    """Running call and token counters."""
    total_calls: int = 0
    failed_calls: int = 0
    cache_hits: int = 0
    total_tokens_input: int = 0
    total_tokens_output: int = 0

    def record(self, tokens_input: int, tokens_output: int) -> None:
        self.total_calls += 1
        self.total_tokens_input += tokens_input
        self.total_tokens_output += tokens_output

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_calls": self.total_calls,
            "failed_calls": self.failed_calls,
            "cache_hits": self.cache_hits,
            "tokens_input": self.total_tokens_input,
            "tokens_output": self.total_tokens_output,
        }


@dataclass
class LLMClient:
    """Minimal client for an OpenAI-compatible /chat/completions endpoint.

    `call` returns the completion text, or None when the key is missing or
    every attempt failed. It never raises.
    """

    base_url: str
    api_key: str
    model: str
    timeout_sec: float = 30.0
    retries: int = 2
    retry_delay_sec: float = 1.0
    transport: Optional[httpx.BaseTransport] = None
    usage: LLMUsage = field(default_factory=LLMUsage)
    _cache: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, cfg: LLMConfig) -> "LLMClient":
        # Environment wins over the YAML file so keys stay out of config
        return cls(
            base_url=os.getenv("LLM_BASE_URL", cfg.base_url),
            api_key=os.getenv("LLM_API_KEY", cfg.api_key),
            model=os.getenv("LLM_MODEL", cfg.model),
            timeout_sec=cfg.timeout_sec,
            retries=cfg.retries,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def call(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.4,
        max_tokens: int = 512,
        use_cache: bool = True,
    ) -> Optional[str]:
        if not self.api_key:
            return None

        cache_key = hashlib.sha256(
            json.dumps(
                {"messages": messages, "temperature": temperature, "max_tokens": max_tokens, "model": self.model},
                sort_keys=True,
            ).encode("utf-8")
        ).hexdigest()
        if use_cache and cache_key in self._cache:
            self.usage.cache_hits += 1
            return self._cache[cache_key]

        req_id = uuid.uuid4().hex[:8]
        trace = get_llm_logger()
        for attempt in range(max(1, self.retries)):
            started = time.time()
            try:
                with httpx.Client(timeout=self.timeout_sec, transport=self.transport) as client:
                    resp = client.post(
                        f"{self.base_url}/chat/completions",
                        headers={"Authorization": f"Bearer {self.api_key}"},
                        json={
                            "model": self.model,
                            "messages": messages,
                            "temperature": temperature,
                            "max_tokens": max_tokens,
                        },
                    )
                    resp.raise_for_status()
                    data = resp.json()
                content = str(data["choices"][0]["message"]["content"]).strip()
                usage = data.get("usage", {}) or {}
                self.usage.record(int(usage.get("prompt_tokens", 0)), int(usage.get("completion_tokens", 0)))
                trace.debug({
                    "event": "llm_call",
                    "req_id": req_id,
                    "model": self.model,
                    "attempt": attempt + 1,
                    "latency_ms": int((time.time() - started) * 1000),
                    "usage": usage,
                    "response": content,
                })
                if not content:
                    return None
                if use_cache:
                    self._cache[cache_key] = content
                return content
            except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
                log.warning(f"LLM call failed attempt {attempt + 1}: {e}")
                if attempt + 1 < self.retries and self.retry_delay_sec > 0:
                    time.sleep(self.retry_delay_sec)

        self.usage.failed_calls += 1
        return None
