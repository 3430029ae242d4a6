#!/usr/bin/env python3
"""
ElevenLabs Studio Projects

Long-form podcast audio is rendered asynchronously by ElevenLabs Studio:
create a conversation-mode podcast project, poll its state, then download
the latest snapshot once it can be downloaded.
"""

import logging
from typing import Dict, List, Optional
import requests

from core.config import Config

STUDIO_BASE_URL = 'https://api.elevenlabs.io/v1/studio'


class ElevenLabsProjects:
    """Client for the ElevenLabs Studio podcast endpoints"""

    def __init__(self, api_key: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key or Config.get_api_keys()['elevenlabs']
        if not self.api_key:
            raise ValueError("ElevenLabs API key not configured")
        self.session = session or requests.Session()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def headers(self) -> Dict[str, str]:
        return {'xi-api-key': self.api_key}

    def _check(self, response: requests.Response, action: str):
        if response.status_code >= 400:
            raise RuntimeError(f"ElevenLabs {action} failed ({response.status_code}): {response.text[:200]}")

    def create_podcast_project(
        self,
        name: str,
        segments: List[Dict],
        voice_map: Dict[str, str],
        quality_preset: str = 'high',
    ) -> str:
        """
        Create a two-voice podcast project

        Args:
            name: Project name
            segments: [{'speaker', 'text'}] script segments
            voice_map: speaker -> ElevenLabs voice ID; the first speaker
                in the script is the host, the other the guest
            quality_preset: ElevenLabs quality preset

        Returns:
            ElevenLabs project ID
        """
        speakers = []
        for segment in segments:
            if segment['speaker'] not in speakers:
                speakers.append(segment['speaker'])

        missing = [s for s in speakers if not voice_map.get(s)]
        if missing:
            raise ValueError(f"No voice configured for speaker: {', '.join(missing)}")
        if len(speakers) < 2:
            raise ValueError("Podcast projects need two speakers")

        script_text = '\n\n'.join(f"{s['speaker']}: {s['text']}" for s in segments)

        response = self.session.post(
            f"{STUDIO_BASE_URL}/podcasts",
            json={
                'model_id': Config.ELEVENLABS_MODEL,
                'name': name,
                'mode': {
                    'type': 'conversation',
                    'conversation': {
                        'host_voice_id': voice_map[speakers[0]],
                        'guest_voice_id': voice_map[speakers[1]],
                    },
                },
                'source': {'type': 'text', 'text': script_text},
                'quality_preset': quality_preset,
            },
            headers=self.headers,
            timeout=Config.DEFAULT_TIMEOUT,
        )
        self._check(response, 'project creation')

        project_id = response.json()['project']['project_id']
        self.logger.info(f"🎙️ [ELEVENLABS] Created podcast project {project_id}")
        return project_id

    def get_project_status(self, project_id: str) -> Dict:
        """
        Returns:
            {'state', 'progress' (0-1), 'can_be_downloaded'}
        """
        response = self.session.get(
            f"{STUDIO_BASE_URL}/projects/{project_id}",
            headers=self.headers,
            timeout=Config.SHORT_TIMEOUT,
        )
        self._check(response, 'status check')

        data = response.json()
        progress = data.get('progress')
        if progress is None:
            progress = (data.get('creation_meta') or {}).get('creation_progress', 0)

        return {
            'state': data.get('state'),
            'progress': progress or 0,
            'can_be_downloaded': bool(data.get('can_be_downloaded')),
        }

    def download_project_audio(self, project_id: str) -> bytes:
        """Download the newest snapshot of a finished project as MP3"""
        response = self.session.get(
            f"{STUDIO_BASE_URL}/projects/{project_id}/snapshots",
            headers=self.headers,
            timeout=Config.SHORT_TIMEOUT,
        )
        self._check(response, 'snapshot listing')

        snapshots = response.json().get('snapshots') or []
        if not snapshots:
            raise RuntimeError(f"No snapshots available for project {project_id}")

        latest = max(snapshots, key=lambda s: s.get('created_at_unix') or 0)

        audio = self.session.post(
            f"{STUDIO_BASE_URL}/projects/{project_id}/snapshots/{latest['project_snapshot_id']}/stream",
            json={'convert_to_mpeg': True},
            headers=self.headers,
            timeout=Config.LONG_TIMEOUT,
        )
        self._check(audio, 'audio download')

        self.logger.info(f"✅ [ELEVENLABS] Downloaded {len(audio.content) / 1024 / 1024:.1f}MB for {project_id}")
        return audio.content
