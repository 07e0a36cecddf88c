"""
Singleton OpenAI client with rate limiting using aiolimiter.
"""
import os
from aiolimiter import AsyncLimiter
from openai import AsyncOpenAI
from loguru import logger

from recofeed.config import OPENAI_API_KEY, CONCURRENCY


class OpenAIClient:
    """
    Singleton OpenAI client for the cuisine classifier.
    Uses AsyncRateLimiter for rate limiting instead of semaphores.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not OpenAIClient._initialized:
            api_key = OPENAI_API_KEY or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ValueError("OPENAI_API_KEY must be set in environment or config")

            self.client = AsyncOpenAI(api_key=api_key)
            # Token bucket capped well under typical per-second OpenAI limits
            self.rate_limiter = AsyncLimiter(max_rate=min(CONCURRENCY, 500), time_period=1.0)
            OpenAIClient._initialized = True

    async def chat_completions_create(self, **kwargs):
        """
        Create a chat completion with rate limiting.
        Accepts all arguments that AsyncOpenAI.chat.completions.create accepts.

        Returns:
            The response from OpenAI's chat completions API.
        """
        async with self.rate_limiter:
            try:
                return await self.client.chat.completions.create(**kwargs)
            except Exception as e:
                logger.debug(f"⚠️ OpenAI API request failed: {e}")
                raise

    async def close(self):
        """Close the underlying HTTP client."""
        await self.client.close()
