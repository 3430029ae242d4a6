"""
Transcript Service

Fetches YouTube transcripts (official captions first, Whisper fallback)
and stores them in Supabase along with pasted custom text.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional
import requests

from core.config import Config
from core.text_utils import format_transcript
from core.youtube_parser import build_youtube_url, extract_video_id, generate_project_name
from processors.transcript_processor import TranscriptProcessor
from processors.whisper_transcriber import WhisperTranscriber, format_transcription_error

logger = logging.getLogger(__name__)


class TranscriptService:
    """Transcript acquisition and persistence"""

    def __init__(
        self,
        supabase=None,
        transcript_processor: Optional[TranscriptProcessor] = None,
        whisper: Optional[WhisperTranscriber] = None,
    ):
        session = requests.Session()
        self._supabase = supabase
        self.transcript_processor = transcript_processor or TranscriptProcessor(session=session)
        self._whisper = whisper
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def supabase(self):
        if self._supabase is None:
            from app.middleware.auth import get_supabase_admin
            self._supabase = get_supabase_admin()
        return self._supabase

    @property
    def whisper(self) -> WhisperTranscriber:
        if self._whisper is None:
            self._whisper = WhisperTranscriber()
        return self._whisper

    def _fetch_official_segments(self, video_id: str, language: str) -> List[Dict]:
        """Caption segments from the transcript API, then the watch-page scrape"""
        result = self.transcript_processor.get_youtube_transcript(video_id, language)
        if result.get('success') and result.get('transcript'):
            self.logger.info(f"✅ [TRANSCRIPT] Found {result['type']} captions for {video_id}")
            return result['transcript']

        self.logger.info(f"⚠️ [TRANSCRIPT] Transcript API failed ({result.get('error')}), scraping watch page")
        return self.transcript_processor.scrape_caption_track(video_id, language)

    async def fetch_transcript(
        self,
        url: str,
        include_timestamps: bool = False,
        enable_fallback: bool = True,
        language: Optional[str] = None,
    ) -> Dict:
        """
        Fetch a transcript for a YouTube video

        Args:
            url: YouTube URL or bare video ID
            include_timestamps: Prefix segments with [MM:SS] in the formatted text
            enable_fallback: Transcribe with Whisper when captions are unavailable
            language: Preferred caption language

        Returns:
            Dict with video_id, title, transcript, segments, source, language, duration

        Raises:
            ValueError: If the URL is not a YouTube video
            RuntimeError: If captions fail and the fallback is disabled or also fails
        """
        video_id = extract_video_id(url)
        if not video_id:
            raise ValueError("Invalid YouTube URL")

        language = language or 'en'
        title = await asyncio.to_thread(self.transcript_processor.fetch_video_title, video_id)

        try:
            segments = await asyncio.to_thread(self._fetch_official_segments, video_id, language)
            return {
                'video_id': video_id,
                'title': title,
                'transcript': format_transcript(segments, include_timestamps),
                'segments': segments,
                'source': 'youtube',
                'language': language,
                'duration': None,
            }
        except Exception as youtube_error:
            if not enable_fallback:
                raise RuntimeError(str(youtube_error)) from youtube_error

            self.logger.info(f"🎧 [TRANSCRIPT] Captions unavailable for {video_id}, falling back to Whisper")

            try:
                whisper_result = await asyncio.to_thread(self.whisper.transcribe_youtube_video, video_id)
            except Exception as whisper_error:
                self.logger.error(f"❌ [TRANSCRIPT] Both transcript sources failed for {video_id}")
                raise RuntimeError(
                    f"Failed to get transcript. YouTube error: {youtube_error}. "
                    f"Whisper error: {format_transcription_error(whisper_error)}"
                ) from whisper_error

            segments = [
                {
                    'text': seg['text'],
                    'start': seg['start'],
                    'duration': (seg['end'] or 0) - (seg['start'] or 0),
                }
                for seg in whisper_result.get('segments') or []
            ] or [{'text': whisper_result.get('text', '')}]

            return {
                'video_id': video_id,
                'title': title,
                'transcript': format_transcript(segments, include_timestamps),
                'segments': segments,
                'source': 'whisper',
                'language': whisper_result.get('language'),
                'duration': whisper_result.get('duration'),
            }

    async def fetch_transcripts_batch(self, urls: List[str], **options) -> Dict:
        """
        Fetch transcripts for several videos, a few at a time

        Returns:
            Dict with 'successful' results and 'failed' [{url, error}] entries
        """
        successful: List[Dict] = []
        failed: List[Dict] = []
        semaphore = asyncio.Semaphore(Config.BATCH_CONCURRENCY)

        async def fetch_one(url: str):
            async with semaphore:
                try:
                    successful.append(await self.fetch_transcript(url, **options))
                except Exception as e:
                    failed.append({'url': url, 'error': str(e)})

        await asyncio.gather(*(fetch_one(url) for url in urls))

        self.logger.info(f"📦 [BATCH] {len(successful)} succeeded, {len(failed)} failed")
        return {'successful': successful, 'failed': failed}

    def get_or_create_project(self, user_id: str, project_name: Optional[str] = None) -> str:
        """Find a project by name for the user, creating it when missing"""
        name = project_name or generate_project_name()

        existing = self.supabase.table('projects')\
            .select('id')\
            .eq('user_id', user_id)\
            .eq('name', name)\
            .limit(1)\
            .execute()
        if existing.data:
            return existing.data[0]['id']

        created = self.supabase.table('projects')\
            .insert({'user_id': user_id, 'name': name})\
            .execute()
        self.logger.info(f"📁 Created project '{name}'")
        return created.data[0]['id']

    def save_transcript(
        self,
        user_id: str,
        result: Dict,
        include_timestamps: bool = False,
        project_name: Optional[str] = None,
    ) -> Dict:
        """Persist a fetched transcript under a project"""
        project_id = self.get_or_create_project(user_id, project_name)

        row = {
            'user_id': user_id,
            'project_id': project_id,
            'video_id': result['video_id'],
            'video_title': result['title'],
            'video_url': build_youtube_url(result['video_id']),
            'content': result['transcript'],
            'has_timestamps': include_timestamps,
            'source': 'whisper' if result['source'] == 'whisper' else 'official',
        }

        saved = self.supabase.table('transcripts').insert(row).execute()
        if not saved.data:
            raise RuntimeError("Failed to save transcript")

        self.logger.info(f"💾 Saved transcript for {result['video_id']}")
        return saved.data[0]

    def list_transcripts(self, user_id: str, project_id: Optional[str] = None) -> List[Dict]:
        query = self.supabase.table('transcripts')\
            .select('id, project_id, video_id, video_title, video_url, source, has_timestamps, created_at')\
            .eq('user_id', user_id)
        if project_id:
            query = query.eq('project_id', project_id)
        return query.order('created_at', desc=True).execute().data or []

    def save_custom_transcript(
        self,
        user_id: str,
        title: str,
        content: str,
        project_name: Optional[str] = None,
    ) -> Dict:
        """
        Save pasted text (scripts, notes) to the transcript library

        The row gets a synthetic custom-<ms> video id and no URL. It is filed
        under a project only when project_name is given.
        """
        project_id = self.get_or_create_project(user_id, project_name) if project_name else None

        row = {
            'user_id': user_id,
            'project_id': project_id,
            'video_id': f"custom-{int(time.time() * 1000)}",
            'video_title': title,
            'video_url': None,
            'content': content,
            'source': 'custom',
        }

        saved = self.supabase.table('transcripts').insert(row).execute()
        if not saved.data:
            raise RuntimeError("Failed to save transcript")

        self.logger.info(f"💾 Saved custom transcript {title!r} ({len(content)} chars)")
        return saved.data[0]
