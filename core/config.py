#!/usr/bin/env python3
"""
Centralized configuration management for the content repurposer backend
"""

import os
from typing import Dict, List, Optional


class Config:
    """Centralized configuration constants and environment management"""

    # File processing limits
    MAX_WHISPER_FILE_SIZE_MB = 25
    MAX_TRANSCRIPT_CHARS = 150000
    MAX_RESPONSE_BODY_CHARS = 10000

    # HTTP timeouts (seconds)
    DEFAULT_TIMEOUT = 30
    LONG_TIMEOUT = 300
    SHORT_TIMEOUT = 15

    # Retry settings
    DEFAULT_RETRIES = 3
    MAX_RETRIES = 5

    # Claude API settings
    CLAUDE_MODEL = "claude-sonnet-4-20250514"
    CLAUDE_MAX_TOKENS = 4096
    CLAUDE_CONTEXT_TOKENS = 200000

    # Groq Whisper settings (OpenAI-compatible endpoint)
    WHISPER_MODEL = "whisper-large-v3"
    GROQ_BASE_URL = "https://api.groq.com/openai/v1"

    # Audio download settings
    COBALT_MAX_ATTEMPTS = 3
    COBALT_BACKOFF_SECONDS = 1.0
    STALLED_CHUNK_TIMEOUT = 20
    DOWNLOAD_CHUNK_SIZE = 64 * 1024

    # Gemini image generation settings
    GEMINI_IMAGE_MODEL = "gemini-2.0-flash-preview-image-generation"

    # Text-to-speech settings
    ELEVENLABS_MODEL = "eleven_multilingual_v2"
    TTS_SEGMENT_DELAY = 0.1
    SEGMENT_PAUSE_MS = 400

    # Transcript batch settings
    BATCH_CONCURRENCY = 3

    # Storage
    AUDIO_BUCKET = os.getenv("AUDIO_BUCKET", "audio")

    @staticmethod
    def get_api_keys() -> Dict[str, Optional[str]]:
        """Get all configured API keys"""
        return {
            'claude': os.getenv('ANTHROPIC_API_KEY'),
            'groq': os.getenv('GROQ_API_KEY'),
            'elevenlabs': os.getenv('ELEVENLABS_API_KEY'),
            'google_tts': os.getenv('GOOGLE_CLOUD_API_KEY'),
            'google_ai': os.getenv('GOOGLE_AI_API_KEY'),
            'youtube': os.getenv('YOUTUBE_API_KEY'),
        }

    @staticmethod
    def get_download_settings() -> Dict[str, Optional[str]]:
        """Get proxy and Cobalt settings used by the audio downloader"""
        residential_proxy = os.getenv('RESIDENTIAL_PROXY_URL')
        return {
            'ytdlp_proxy': os.getenv('YTDLP_PROXY_URL') or residential_proxy,
            'residential_proxy': residential_proxy,
            'cobalt_url': os.getenv('COBALT_API_URL'),
            'cobalt_key': os.getenv('COBALT_API_KEY'),
        }

    @staticmethod
    def get_default_headers(language: str = 'en') -> Dict[str, str]:
        """Get default HTTP headers for YouTube page requests"""
        return {
            'User-Agent': os.getenv(
                'USER_AGENT',
                'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
                '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
            ),
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': f'{language},en;q=0.9',
        }

    @staticmethod
    def get_cors_origins() -> List[str]:
        """Get allowed CORS origins"""
        return os.getenv("CORS_ORIGINS", "*").split(",")

    @staticmethod
    def validate_environment() -> Dict[str, object]:
        """Validate required environment variables and return status"""
        required = {
            'ANTHROPIC_API_KEY': bool(os.getenv('ANTHROPIC_API_KEY')),
            'SUPABASE_URL': bool(os.getenv('SUPABASE_URL')),
            'SUPABASE_SERVICE_ROLE_KEY': bool(os.getenv('SUPABASE_SERVICE_ROLE_KEY')),
        }

        optional = {
            'GROQ_API_KEY': bool(os.getenv('GROQ_API_KEY')),
            'ELEVENLABS_API_KEY': bool(os.getenv('ELEVENLABS_API_KEY')),
            'GOOGLE_CLOUD_API_KEY': bool(os.getenv('GOOGLE_CLOUD_API_KEY')),
            'GOOGLE_AI_API_KEY': bool(os.getenv('GOOGLE_AI_API_KEY')),
            'YOUTUBE_API_KEY': bool(os.getenv('YOUTUBE_API_KEY')),
            'COBALT_API_URL': bool(os.getenv('COBALT_API_URL')),
            'RESIDENTIAL_PROXY_URL': bool(os.getenv('RESIDENTIAL_PROXY_URL')),
        }

        return {
            'required': required,
            'optional': optional,
            'all_required_present': all(required.values()),
            'missing_required': [name for name, present in required.items() if not present],
        }
