#!/usr/bin/env python3
"""
Claude API Client
Handles all interactions with the Anthropic API
"""

import os
import math
import logging
from typing import AsyncIterator, Dict, List, Optional

import anthropic

from core.config import Config


def estimate_tokens(text: str) -> int:
    """Rough token count (about 4 characters per token)"""
    return math.ceil(len(text) / 4)


def fits_in_context(
    system_prompt: str,
    messages: List[Dict],
    max_context_tokens: int = Config.CLAUDE_CONTEXT_TOKENS,
) -> bool:
    """Check a prompt fits in the context window, leaving a 10% buffer"""
    total = estimate_tokens(system_prompt)
    for message in messages:
        total += estimate_tokens(message.get('content', ''))
    return total < max_context_tokens * 0.9


class ClaudeClient:
    """Client for the Anthropic Messages API"""

    def __init__(self, api_key: Optional[str] = None, model: str = Config.CLAUDE_MODEL,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize Claude client

        Args:
            api_key: Anthropic key, defaults to ANTHROPIC_API_KEY
            model: Model name
            logger: Logger instance
        """
        self.api_key = api_key or os.getenv('ANTHROPIC_API_KEY')
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self.client = anthropic.Anthropic(api_key=self.api_key)
        self._async_client: Optional[anthropic.AsyncAnthropic] = None

    def generate_response(
        self,
        system_prompt: str,
        messages: List[Dict],
        max_tokens: int = Config.CLAUDE_MAX_TOKENS,
        temperature: float = 0.7,
        stop_sequences: Optional[List[str]] = None,
    ) -> Dict:
        """
        Call Claude with a full message list

        Returns:
            Dict with content, usage (input_tokens/output_tokens) and stop_reason
        """
        prompt_chars = len(system_prompt) + sum(len(m.get('content', '')) for m in messages)
        self.logger.info(f"   🤖 [CLAUDE API] Sending prompt ({prompt_chars} chars)")

        params = {
            'model': self.model,
            'max_tokens': max_tokens,
            'temperature': temperature,
            'system': system_prompt,
            'messages': messages,
        }
        if stop_sequences:
            params['stop_sequences'] = stop_sequences

        try:
            message = self.client.messages.create(**params)
        except Exception as e:
            self.logger.error(f"   ❌ Exception in Claude API call: {str(e)}")
            raise

        content = ''.join(
            block.text for block in message.content if getattr(block, 'type', None) == 'text'
        )

        self.logger.info(
            f"   ✅ [CLAUDE API] Received {len(content)} chars "
            f"({message.usage.input_tokens} in / {message.usage.output_tokens} out tokens)"
        )

        return {
            'content': content,
            'usage': {
                'input_tokens': message.usage.input_tokens,
                'output_tokens': message.usage.output_tokens,
            },
            'stop_reason': message.stop_reason or 'end_turn',
        }

    def generate(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int = Config.CLAUDE_MAX_TOKENS,
        temperature: float = 0.7,
    ) -> str:
        """
        Single-turn generation

        Raises:
            RuntimeError: If Claude returns no text
        """
        response = self.generate_response(
            system_prompt,
            [{'role': 'user', 'content': user_message}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        if not response['content'].strip():
            self.logger.warning("   ⚠️ Claude API returned empty response")
            raise RuntimeError("Claude API returned empty response")
        return response['content']

    async def stream(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int = Config.CLAUDE_MAX_TOKENS,
        temperature: float = 0.7,
    ) -> AsyncIterator[str]:
        """Yield text deltas as Claude generates them"""
        if self._async_client is None:
            self._async_client = anthropic.AsyncAnthropic(api_key=self.api_key)

        self.logger.info(f"   🤖 [CLAUDE API] Streaming prompt ({len(system_prompt) + len(user_message)} chars)")

        async with self._async_client.messages.stream(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{'role': 'user', 'content': user_message}],
        ) as stream:
            async for text in stream.text_stream:
                yield text
