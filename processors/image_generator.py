#!/usr/bin/env python3
"""
Image Generator

Generates featured images with Gemini's image model over the Generative
Language REST API. Images come back inline as base64 and are returned as
data URLs.
"""

import logging
from typing import Dict, List, Optional
import requests

from core.config import Config
from core.prompts import ASPECT_RATIO_HINTS

GEMINI_API_BASE = 'https://generativelanguage.googleapis.com/v1beta/models'


class ImageBlockedError(ValueError):
    """Gemini refused the prompt on safety grounds"""


def format_image_error(error: Exception) -> str:
    """Turn an image generation exception into a user-facing message"""
    message = str(error)
    if isinstance(error, ImageBlockedError) or 'SAFETY' in message:
        return 'Image generation was blocked by safety filters. Please try a different prompt.'
    if 'rate limit' in message.lower() or ' 429' in message:
        return 'Image generation rate limit reached. Please wait a moment and try again.'
    if 'quota' in message.lower() or 'RESOURCE_EXHAUSTED' in message:
        return 'Image generation quota exceeded. Please try again later.'
    return f'Image generation failed: {message}'


class ImageGenerator:
    """Gemini image generation client"""

    def __init__(self, session: Optional[requests.Session] = None, model: str = Config.GEMINI_IMAGE_MODEL):
        self.session = session or requests.Session()
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def generate_images(self, prompt: str, aspect_ratio: Optional[str] = None) -> List[Dict[str, str]]:
        """
        Generate images for a prompt

        Args:
            prompt: Full image prompt, including anything to avoid
            aspect_ratio: '16:9', '1:1' or '9:16', added to the prompt as a hint

        Returns:
            [{'mime_type', 'data'}] with base64 data

        Raises:
            ValueError: Missing API key or an empty prompt
            ImageBlockedError: Prompt blocked by safety filters
            RuntimeError: API error or no image in the response
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt cannot be empty")

        api_key = Config.get_api_keys()['google_ai']
        if not api_key:
            raise ValueError("GOOGLE_AI_API_KEY is not configured")

        full_prompt = prompt
        if aspect_ratio in ASPECT_RATIO_HINTS:
            full_prompt += f"\n\nImage format: {ASPECT_RATIO_HINTS[aspect_ratio]}"

        self.logger.info(f"🎨 [GEMINI] Generating image ({len(full_prompt)} char prompt)")
        response = self.session.post(
            f"{GEMINI_API_BASE}/{self.model}:generateContent",
            json={
                'contents': [{'parts': [{'text': full_prompt}]}],
                'generationConfig': {'responseModalities': ['TEXT', 'IMAGE']},
            },
            headers={'x-goog-api-key': api_key},
            timeout=Config.LONG_TIMEOUT,
        )
        if response.status_code != 200:
            raise RuntimeError(f"Gemini API error {response.status_code}: {response.text[:300]}")

        data = response.json()
        block_reason = (data.get('promptFeedback') or {}).get('blockReason')
        if block_reason:
            raise ImageBlockedError(f"Prompt blocked: {block_reason}")

        candidates = data.get('candidates') or []
        if candidates and candidates[0].get('finishReason') == 'SAFETY':
            raise ImageBlockedError("Image blocked: SAFETY")

        images = []
        for candidate in candidates[:1]:
            for part in (candidate.get('content') or {}).get('parts') or []:
                inline = part.get('inlineData') or {}
                if (inline.get('mimeType') or '').startswith('image/') and inline.get('data'):
                    images.append({'mime_type': inline['mimeType'], 'data': inline['data']})

        if not images:
            raise RuntimeError("No images were generated")

        self.logger.info(f"✅ [GEMINI] Received {len(images)} image(s)")
        return images

    def generate_image_data_url(self, prompt: str, aspect_ratio: str = '16:9') -> str:
        image = self.generate_images(prompt, aspect_ratio)[0]
        return f"data:{image['mime_type']};base64,{image['data']}"
