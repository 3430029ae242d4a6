#!/usr/bin/env python3
"""
Whisper Transcriber

Transcribes downloaded YouTube audio with Whisper large-v3 on Groq, using
the OpenAI client against Groq's OpenAI-compatible endpoint.
"""

import os
import logging
from pathlib import Path
from typing import Dict, List, Optional
from openai import OpenAI

from core.config import Config
from processors.audio_downloader import AudioDownloader

MIME_TYPES = {
    'mp3': 'audio/mpeg',
    'm4a': 'audio/mp4',
    'mp4': 'audio/mp4',
    'webm': 'audio/webm',
    'wav': 'audio/wav',
    'ogg': 'audio/ogg',
    'flac': 'audio/flac',
}


def get_mime_type(filename: str) -> str:
    """Map a filename extension to the MIME type sent with the upload"""
    extension = Path(filename).suffix.lstrip('.').lower()
    return MIME_TYPES.get(extension, 'audio/mpeg')


def format_transcription_error(error: Exception) -> str:
    """Turn a transcription exception into a user-facing message"""
    message = str(error)
    if 'rate_limit' in message:
        return 'Transcription rate limit reached. Please wait a moment and try again.'
    if 'file_too_large' in message or 'too large' in message:
        return f'Audio file is too large for transcription. Maximum size is {Config.MAX_WHISPER_FILE_SIZE_MB}MB.'
    return f'Transcription failed: {message}'


def _read(item, key):
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


class WhisperTranscriber:
    """Groq Whisper client plus the YouTube download-then-transcribe flow"""

    def __init__(self, client: Optional[OpenAI] = None, downloader: Optional[AudioDownloader] = None):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._client = client
        self.downloader = downloader or AudioDownloader()

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            api_key = os.getenv('GROQ_API_KEY')
            if not api_key:
                raise ValueError("GROQ_API_KEY is not configured")
            self._client = OpenAI(api_key=api_key, base_url=Config.GROQ_BASE_URL)
            self.logger.info("✅ Groq Whisper client initialized")
        return self._client

    def transcribe_audio(
        self,
        buffer: bytes,
        filename: str,
        language: Optional[str] = None,
        prompt: Optional[str] = None,
        temperature: float = 0,
    ) -> Dict:
        """
        Transcribe an in-memory audio file

        Args:
            buffer: Audio bytes
            filename: Name used to infer the MIME type
            language: Optional ISO language hint
            prompt: Optional vocabulary/context prompt
            temperature: Sampling temperature

        Returns:
            Dict with text, language, duration and segments ({id, start, end, text})

        Raises:
            ValueError: If the buffer exceeds the Whisper upload limit
        """
        max_size = Config.MAX_WHISPER_FILE_SIZE_MB * 1024 * 1024
        if len(buffer) > max_size:
            raise ValueError(
                f"Audio file too large. Maximum size is {Config.MAX_WHISPER_FILE_SIZE_MB}MB"
            )

        params = {
            'model': Config.WHISPER_MODEL,
            'response_format': 'verbose_json',
            'temperature': temperature,
        }
        if language:
            params['language'] = language
        if prompt:
            params['prompt'] = prompt

        self.logger.info(
            f"📡 [WHISPER] Sending {filename} ({len(buffer) / 1024 / 1024:.1f}MB) to Groq"
        )
        transcription = self.client.audio.transcriptions.create(
            file=(filename, buffer, get_mime_type(filename)),
            **params
        )

        segments: List[Dict] = []
        for index, segment in enumerate(_read(transcription, 'segments') or []):
            segments.append({
                'id': index,
                'start': _read(segment, 'start'),
                'end': _read(segment, 'end'),
                'text': _read(segment, 'text'),
            })

        text = _read(transcription, 'text') or ''
        self.logger.info(f"✅ [WHISPER] Transcribed {len(text):,} characters")

        return {
            'text': text,
            'language': _read(transcription, 'language'),
            'duration': _read(transcription, 'duration'),
            'segments': segments,
        }

    def transcribe_youtube_video(self, video_id: str, language: Optional[str] = None) -> Dict:
        """Download a video's audio and transcribe it"""
        audio = self.downloader.download(video_id)
        result = self.transcribe_audio(audio.buffer, audio.filename, language=language)
        if result.get('duration') is None:
            result['duration'] = audio.duration
        result['download_strategy'] = audio.strategy
        return result
