#!/usr/bin/env python3
"""
Text-to-Speech Synthesizer

Converts script segments to audio with Google Cloud TTS or ElevenLabs,
then stitches the per-segment clips into one MP3 with pydub.
"""

import io
import os
import re
import time
import base64
import logging
from typing import Callable, Dict, List, Optional
import requests
from pydub import AudioSegment

from core.config import Config

GOOGLE_TTS_ENDPOINT = 'https://texttospeech.googleapis.com/v1/text:synthesize'
ELEVENLABS_TTS_ENDPOINT = 'https://api.elevenlabs.io/v1/text-to-speech'

PROVIDERS = ('google', 'elevenlabs')

VOICE_OPTIONS = {
    'google': {
        'en-US-Neural2-A': {'name': 'Neural2 A (Male)', 'gender': 'MALE'},
        'en-US-Neural2-C': {'name': 'Neural2 C (Female)', 'gender': 'FEMALE'},
        'en-US-Neural2-D': {'name': 'Neural2 D (Male)', 'gender': 'MALE'},
        'en-US-Neural2-E': {'name': 'Neural2 E (Female)', 'gender': 'FEMALE'},
        'en-US-Neural2-F': {'name': 'Neural2 F (Female)', 'gender': 'FEMALE'},
        'en-US-Neural2-G': {'name': 'Neural2 G (Female)', 'gender': 'FEMALE'},
        'en-US-Neural2-H': {'name': 'Neural2 H (Female)', 'gender': 'FEMALE'},
        'en-US-Neural2-I': {'name': 'Neural2 I (Male)', 'gender': 'MALE'},
        'en-US-Neural2-J': {'name': 'Neural2 J (Male)', 'gender': 'MALE'},
        'en-US-Studio-M': {'name': 'Studio M (Male)', 'gender': 'MALE'},
        'en-US-Studio-O': {'name': 'Studio O (Female)', 'gender': 'FEMALE'},
    },
    'elevenlabs': {
        'pNInz6obpgDQGcFmaJgB': {'name': 'Adam', 'gender': 'MALE'},
        'EXAVITQu4vr4xnSDxMaL': {'name': 'Bella', 'gender': 'FEMALE'},
        '21m00Tcm4TlvDq8ikWAM': {'name': 'Rachel', 'gender': 'FEMALE'},
        'AZnzlk1XvdvUeBnXmlld': {'name': 'Domi', 'gender': 'FEMALE'},
        'MF3mGyEYCl7XYWbV9V6O': {'name': 'Elli', 'gender': 'FEMALE'},
        'TxGEqnHWrfWFTfGW9XjX': {'name': 'Josh', 'gender': 'MALE'},
        'VR6AewLTigWG4xSOukaG': {'name': 'Arnold', 'gender': 'MALE'},
        'yoZ06aMxZJJ28mfd3POQ': {'name': 'Sam', 'gender': 'MALE'},
    },
}

# USD per million characters
COST_PER_MILLION_CHARS = {
    'google': 16,
    'elevenlabs': 30,
}


def clean_text_for_tts(text: str) -> str:
    """
    Strip markdown and expand abbreviations for natural phrasing

    Examples:
        >>> clean_text_for_tts("**Big** ideas, e.g. this...")
        'Big ideas, for example this,'
    """
    text = re.sub(r'[*_`]', '', text)
    text = re.sub(r'\betc\.', 'etcetera', text, flags=re.IGNORECASE)
    text = re.sub(r'\be\.g\.', 'for example', text, flags=re.IGNORECASE)
    text = re.sub(r'\bi\.e\.', 'that is', text, flags=re.IGNORECASE)
    text = text.replace('...', ', ').replace('—', ', ').replace('–', ', ')
    return re.sub(r'\s+', ' ', text).strip()


def estimate_speech_seconds(text: str) -> int:
    words = len(text.split())
    return -(-words * 2 // 5)  # ceil(words / 2.5)


def estimate_tts_cost(text: str, provider: str) -> Dict:
    """
    Estimate synthesis cost

    Returns:
        {'characters': int, 'estimated_cost': float (USD, 2 decimals)}
    """
    if provider not in COST_PER_MILLION_CHARS:
        raise ValueError(f"Unknown TTS provider: {provider}")
    characters = len(text)
    cost = characters / 1_000_000 * COST_PER_MILLION_CHARS[provider]
    return {'characters': characters, 'estimated_cost': round(cost, 2)}


def get_available_voices(provider: str) -> Dict:
    if provider not in VOICE_OPTIONS:
        raise ValueError(f"Unknown TTS provider: {provider}")
    return VOICE_OPTIONS[provider]


def concatenate_audio_segments(clips: List[bytes], pause_ms: int = Config.SEGMENT_PAUSE_MS) -> bytes:
    """
    Join MP3 clips with a short silence between speakers

    Args:
        clips: MP3-encoded clips in playback order
        pause_ms: Silence inserted between consecutive clips

    Returns:
        A single MP3 file

    Raises:
        ValueError: If there is nothing to concatenate
    """
    if not clips:
        raise ValueError("No audio segments to concatenate")

    combined: Optional[AudioSegment] = None
    for clip in clips:
        segment = AudioSegment.from_file(io.BytesIO(clip), format='mp3')
        if combined is None:
            combined = segment
        else:
            combined += AudioSegment.silent(duration=pause_ms, frame_rate=segment.frame_rate)
            combined += segment

    output = io.BytesIO()
    combined.export(output, format='mp3', bitrate='128k')
    return output.getvalue()


class TTSSynthesizer:
    """Synthesize speech with Google Cloud TTS or ElevenLabs"""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _synthesize_with_google(self, text: str, voice_id: str, speaking_rate: Optional[float],
                                pitch: Optional[float]) -> bytes:
        api_key = Config.get_api_keys()['google_tts']
        if not api_key:
            raise ValueError("Google Cloud API key not configured")

        response = self.session.post(
            f"{GOOGLE_TTS_ENDPOINT}?key={api_key}",
            json={
                'input': {'text': text},
                'voice': {'languageCode': 'en-US', 'name': voice_id},
                'audioConfig': {
                    'audioEncoding': 'MP3',
                    'speakingRate': speaking_rate or 1.0,
                    'pitch': pitch or 0,
                    'effectsProfileId': ['headphone-class-device'],
                },
            },
            timeout=Config.DEFAULT_TIMEOUT,
        )
        if response.status_code != 200:
            raise RuntimeError(f"Google TTS error: {response.text}")

        return base64.b64decode(response.json()['audioContent'])

    def _synthesize_with_elevenlabs(self, text: str, voice_id: str, stability: Optional[float]) -> bytes:
        api_key = Config.get_api_keys()['elevenlabs']
        if not api_key:
            raise ValueError("ElevenLabs API key not configured")

        response = self.session.post(
            f"{ELEVENLABS_TTS_ENDPOINT}/{voice_id}",
            json={
                'text': text,
                'model_id': os.getenv('ELEVENLABS_MODEL_ID', Config.ELEVENLABS_MODEL),
                'voice_settings': {
                    'stability': stability or 0.5,
                    'similarity_boost': 0.75,
                    'style': 0.5,
                    'use_speaker_boost': True,
                },
            },
            headers={'xi-api-key': api_key, 'Accept': 'audio/mpeg'},
            timeout=Config.LONG_TIMEOUT,
        )
        if response.status_code != 200:
            raise RuntimeError(f"ElevenLabs error: {response.text}")

        return response.content

    def text_to_speech(
        self,
        text: str,
        provider: str,
        voice_id: str,
        speaking_rate: Optional[float] = None,
        pitch: Optional[float] = None,
    ) -> Dict:
        """
        Convert text to speech

        Args:
            text: Text to speak (cleaned before sending)
            provider: 'google' or 'elevenlabs'
            voice_id: Provider voice name or ID
            speaking_rate: Google speaking rate, or ElevenLabs stability
            pitch: Google pitch in semitones

        Returns:
            {'audio': bytes, 'duration': estimated seconds, 'format': 'mp3'}
        """
        cleaned = clean_text_for_tts(text)

        if provider == 'google':
            audio = self._synthesize_with_google(cleaned, voice_id, speaking_rate, pitch)
        elif provider == 'elevenlabs':
            audio = self._synthesize_with_elevenlabs(cleaned, voice_id, speaking_rate)
        else:
            raise ValueError(f"Unknown TTS provider: {provider}")

        return {
            'audio': audio,
            'duration': estimate_speech_seconds(cleaned),
            'format': 'mp3',
        }

    def synthesize_segments(
        self,
        segments: List[Dict],
        voice_map: Dict[str, Dict[str, str]],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> List[Dict]:
        """
        Synthesize each segment with its speaker's voice

        Args:
            segments: [{'speaker', 'text'}] in playback order
            voice_map: speaker -> {'provider', 'voice_id'}
            on_progress: Called with (completed, total) after each segment

        Returns:
            [{'speaker', 'text', 'audio', 'duration'}]

        Raises:
            ValueError: If a speaker has no voice configured
        """
        missing = sorted({s['speaker'] for s in segments if s['speaker'] not in voice_map})
        if missing:
            raise ValueError(f"No voice configured for speaker: {', '.join(missing)}")

        results = []
        total = len(segments)

        for index, segment in enumerate(segments):
            voice = voice_map[segment['speaker']]
            self.logger.info(f"🔊 [TTS] Segment {index + 1}/{total} ({segment['speaker']}, {voice['provider']})")

            result = self.text_to_speech(segment['text'], voice['provider'], voice['voice_id'])
            results.append({
                'speaker': segment['speaker'],
                'text': segment['text'],
                'audio': result['audio'],
                'duration': result['duration'],
            })

            if on_progress:
                on_progress(index + 1, total)

            if index < total - 1:
                time.sleep(Config.TTS_SEGMENT_DELAY)

        return results
