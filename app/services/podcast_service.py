"""
Podcast Service

Turns generated content or saved transcripts into two-host podcast scripts
and drives audio generation. ElevenLabs jobs render in Studio and are
finalized while the client polls; Google jobs synthesize per segment in a
background task.
"""

import asyncio
import json
import logging
import re
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from core.claude_client import ClaudeClient
from core.errors import BadRequestError, JobConflictError, NotFoundError
from core.event_emitter import JobEventEmitter
from core.prompts import (
    HOST_PERSONAS, PodcastScriptPrompt, TranscriptSynthesisPrompt, estimate_segment_duration, estimate_total_duration,
)
from core.storage_manager import StorageManager
from processors.elevenlabs_projects import ElevenLabsProjects
from processors.script_parser import preprocess_segments
from processors.tts_synthesizer import PROVIDERS, TTSSynthesizer, concatenate_audio_segments

logger = logging.getLogger(__name__)

JOB_STATUSES = ('pending', 'generating_script', 'generating_audio', 'stitching', 'complete', 'failed')
AUDIO_IN_PROGRESS = ('generating_audio', 'stitching')
EXPORT_FORMATS = ('json', 'txt', 'srt')
DEFAULT_HOST_NAMES = {'host1': 'Alex', 'host2': 'Jamie'}

CODE_FENCE_RE = re.compile(r'```(?:json)?\n?')

# Background synthesis tasks, held so they are not garbage collected mid-run
_background_tasks = set()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_script_response(response: str) -> Dict:
    """
    Parse Claude's podcast script output

    Code fences are stripped before parsing; each segment gets a
    `duration` estimate in seconds.

    Raises:
        ValueError: If the output is not a JSON script with a title and segments
    """
    cleaned = CODE_FENCE_RE.sub('', response).strip()

    try:
        script = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"❌ [PODCAST] Could not parse script JSON: {e}")
        logger.debug(f"Raw response: {response}")
        raise ValueError("Failed to parse podcast script from AI response") from e

    if not isinstance(script, dict) or not script.get('title') or not isinstance(script.get('segments'), list):
        raise ValueError("Failed to parse podcast script from AI response")

    script['segments'] = [
        {**segment, 'duration': estimate_segment_duration(segment.get('text', ''))}
        for segment in script['segments']
    ]
    script.setdefault('description', '')
    script.setdefault('keyTakeaways', [])
    return script


def format_srt_time(seconds: float) -> str:
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    millis = int(round((seconds % 1) * 1000))
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def export_script(script: Dict, export_format: str) -> str:
    """
    Render a podcast script as json, txt (markdown) or srt subtitles

    Raises:
        ValueError: For an unknown format
    """
    if export_format == 'json':
        return json.dumps(script, indent=2)

    if export_format == 'txt':
        lines = [f"# {script.get('title', '')}", '', script.get('description', ''), '', '---', '']
        for segment in script.get('segments', []):
            lines.extend([f"**{segment['speaker']}:** {segment['text']}", ''])
        lines.extend(['---', '', '## Key Takeaways', ''])
        lines.extend(f"- {takeaway}" for takeaway in script.get('keyTakeaways', []))
        return '\n'.join(lines) + '\n'

    if export_format == 'srt':
        blocks = []
        current = 0
        for index, segment in enumerate(script.get('segments', []), start=1):
            duration = segment.get('duration') or estimate_segment_duration(segment['text'])
            blocks.append(
                f"{index}\n"
                f"{format_srt_time(current)} --> {format_srt_time(current + duration)}\n"
                f"[{segment['speaker']}] {segment['text']}\n"
            )
            current += duration
        return '\n'.join(blocks)

    raise ValueError(f"Unknown export format: {export_format}")


def get_default_voices(provider: str) -> Dict[str, str]:
    if provider not in PROVIDERS:
        raise ValueError(f"Unknown TTS provider: {provider}")
    return {
        'host1': HOST_PERSONAS['alex']['default_voice'][provider],
        'host2': HOST_PERSONAS['jamie']['default_voice'][provider],
    }


def job_to_response(job: Dict) -> Dict:
    return {
        'id': job['id'],
        'user_id': job.get('user_id'),
        'content_id': job.get('content_id'),
        'status': job.get('status'),
        'progress': job.get('progress') or 0,
        'script': job.get('script'),
        'audio_url': job.get('audio_url'),
        'duration': job.get('duration'),
        'error': job.get('error'),
        'created_at': job.get('created_at'),
        'updated_at': job.get('updated_at'),
    }


class PodcastService:
    """Podcast script and audio job orchestration"""

    def __init__(self, supabase=None, claude: Optional[ClaudeClient] = None,
                 tts: Optional[TTSSynthesizer] = None, elevenlabs: Optional[ElevenLabsProjects] = None,
                 storage: Optional[StorageManager] = None):
        self._supabase = supabase
        self._claude = claude
        self._elevenlabs = elevenlabs
        self._storage = storage
        self.tts = tts or TTSSynthesizer()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def supabase(self):
        if self._supabase is None:
            from app.middleware.auth import get_supabase_admin
            self._supabase = get_supabase_admin()
        return self._supabase

    @property
    def claude(self) -> ClaudeClient:
        if self._claude is None:
            self._claude = ClaudeClient(logger=self.logger)
        return self._claude

    @property
    def elevenlabs(self) -> ElevenLabsProjects:
        if self._elevenlabs is None:
            self._elevenlabs = ElevenLabsProjects()
        return self._elevenlabs

    @property
    def storage(self) -> StorageManager:
        if self._storage is None:
            self._storage = StorageManager(supabase=self.supabase)
        return self._storage

    # ============================================
    # Script generation
    # ============================================

    def generate_podcast_script(self, content: str, options: Optional[Dict] = None) -> Dict:
        """
        Generate a two-host podcast script from content

        Args:
            content: Source article or post text
            options: Prompt options (host_names, host_roles, target_duration,
                tone, focus_guidance, include_intro, include_outro)

        Returns:
            Script dict with title, description, segments and keyTakeaways

        Raises:
            ValueError: If Claude's output is not a valid script
        """
        prompt = PodcastScriptPrompt.build(content, options)
        self.logger.info(f"🎙️ [PODCAST] Generating script ({len(content)} chars of source)")

        response = self.claude.generate(
            PodcastScriptPrompt.SYSTEM,
            prompt,
            PodcastScriptPrompt.MAX_TOKENS,
            PodcastScriptPrompt.TEMPERATURE,
        )
        script = parse_script_response(response)

        self.logger.info(f"✅ [PODCAST] Script ready: {script['title']!r} ({len(script['segments'])} segments)")
        return script

    def synthesize_transcripts(self, transcripts: List[Dict]) -> str:
        """One transcript is used as is; several are merged by Claude"""
        if len(transcripts) == 1:
            return transcripts[0]['content']

        self.logger.info(f"🧩 [PODCAST] Merging {len(transcripts)} transcripts into one source")
        return self.claude.generate(
            TranscriptSynthesisPrompt.SYSTEM,
            TranscriptSynthesisPrompt.build(transcripts),
            TranscriptSynthesisPrompt.MAX_TOKENS,
            TranscriptSynthesisPrompt.TEMPERATURE,
        )

    # ============================================
    # Persistence helpers
    # ============================================

    def _load_content(self, user_id: str, content_id: str) -> Dict:
        result = self.supabase.table('generated_content')\
            .select('*')\
            .eq('id', content_id)\
            .eq('user_id', user_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise NotFoundError("Content not found")
        return result.data[0]

    def _load_transcripts(self, user_id: str, transcript_ids: List[str]) -> List[Dict]:
        result = self.supabase.table('transcripts')\
            .select('id, video_title, content')\
            .in_('id', transcript_ids)\
            .eq('user_id', user_id)\
            .execute()

        if not result.data:
            raise NotFoundError("No transcripts found")
        return result.data

    def get_job_row(self, user_id: str, job_id: str) -> Optional[Dict]:
        result = self.supabase.table('podcast_jobs')\
            .select('*')\
            .eq('id', job_id)\
            .eq('user_id', user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _update_job(self, job_id: str, **fields) -> Optional[Dict]:
        fields['updated_at'] = _now()
        result = self.supabase.table('podcast_jobs').update(fields).eq('id', job_id).execute()
        return result.data[0] if result.data else None

    def _fail_job(self, job_id: str, error: Exception):
        self.logger.error(f"❌ [PODCAST] Job {job_id} failed: {error}")
        self._update_job(job_id, status='failed', error=str(error) or 'Audio generation failed')

    def _load_pronunciation_rules(self, user_id: str) -> List[Dict]:
        result = self.supabase.table('pronunciation_rules')\
            .select('*')\
            .eq('user_id', user_id)\
            .eq('is_enabled', True)\
            .execute()
        return result.data or []

    @staticmethod
    def _voice_map(host_names: Dict, voice_host1: str, voice_host2: str) -> Dict[str, str]:
        return {
            host_names.get('host1') or DEFAULT_HOST_NAMES['host1']: voice_host1,
            host_names.get('host2') or DEFAULT_HOST_NAMES['host2']: voice_host2,
        }

    # ============================================
    # Job lifecycle
    # ============================================

    async def generate_podcast_from_content(self, user_id: str, request: Dict) -> Dict:
        """
        Create a podcast job for a piece of generated content

        Args:
            user_id: Owner of the content
            request: content_id, tts_provider ('none', 'google', 'elevenlabs'),
                optional voice_host1/voice_host2 and script options

        Returns:
            The job as returned to clients. Script-only jobs come back
            complete; audio jobs come back in generating_audio.

        Raises:
            NotFoundError: If the content does not exist
        """
        content = await asyncio.to_thread(self._load_content, user_id, request['content_id'])
        return await self._run_podcast_job(user_id, content['content'], request, content_id=request['content_id'])

    async def generate_podcast_from_transcripts(self, user_id: str, request: Dict) -> Dict:
        """
        Create a podcast job from saved transcripts

        Several transcripts are first merged by Claude into one source text.
        The job has no content_id; the transcript ids are kept in its options.

        Args:
            user_id: Owner of the transcripts
            request: transcript_ids plus the same provider and script options
                as generate_podcast_from_content

        Raises:
            NotFoundError: If none of the transcripts belong to the user
        """
        transcripts = await asyncio.to_thread(self._load_transcripts, user_id, request['transcript_ids'])
        source_text = await asyncio.to_thread(self.synthesize_transcripts, transcripts)
        return await self._run_podcast_job(
            user_id, source_text, request,
            extra_options={'source_transcript_ids': request['transcript_ids']},
        )

    async def _run_podcast_job(self, user_id: str, source_text: str, request: Dict,
                               content_id: Optional[str] = None, extra_options: Optional[Dict] = None) -> Dict:
        provider = request.get('tts_provider') or 'none'
        host_names = request.get('host_names') or dict(DEFAULT_HOST_NAMES)

        options = {
            'target_duration': request.get('target_duration') or 'medium',
            'tone': request.get('tone') or 'casual',
            'tts_provider': provider,
            'host_names': host_names,
            'host_roles': request.get('host_roles'),
            'focus_guidance': request.get('focus_guidance'),
            **(extra_options or {}),
        }
        created = await asyncio.to_thread(
            lambda: self.supabase.table('podcast_jobs').insert({
                'user_id': user_id,
                'content_id': content_id,
                'status': 'generating_script',
                'progress': 0,
                'options': options,
            }).execute()
        )
        if not created.data:
            raise RuntimeError("Failed to create podcast job")
        job = created.data[0]
        self.logger.info(f"🎙️ [PODCAST] Created job {job['id']} (provider: {provider})")

        try:
            script = await asyncio.to_thread(self.generate_podcast_script, source_text, {
                'host_names': host_names,
                'host_roles': request.get('host_roles'),
                'target_duration': request.get('target_duration'),
                'tone': request.get('tone'),
                'focus_guidance': request.get('focus_guidance'),
                'include_intro': request.get('include_intro', True),
                'include_outro': request.get('include_outro', True),
            })
            duration, _ = estimate_total_duration(script['segments'])

            if provider == 'none':
                updated = await asyncio.to_thread(
                    self._update_job, job['id'],
                    status='complete', progress=100, script=script, duration=duration,
                )
                return job_to_response(updated or job)

            defaults = get_default_voices(provider)
            voice_host1 = request.get('voice_host1') or defaults['host1']
            voice_host2 = request.get('voice_host2') or defaults['host2']
            voice_map = self._voice_map(host_names, voice_host1, voice_host2)

            if provider == 'elevenlabs':
                project_id = await asyncio.to_thread(
                    self.elevenlabs.create_podcast_project, f"Podcast {job['id']}", script['segments'], voice_map
                )
                updated = await asyncio.to_thread(
                    self._update_job, job['id'],
                    status='generating_audio', progress=30, script=script, duration=duration,
                    options={**options, 'elevenlabs_project_id': project_id,
                             'voice_host1': voice_host1, 'voice_host2': voice_host2},
                )
                return job_to_response(updated or job)

            updated = await asyncio.to_thread(
                self._update_job, job['id'],
                status='generating_audio', progress=0, script=script, duration=duration,
                options={**options, 'voice_host1': voice_host1, 'voice_host2': voice_host2},
            )
            self._start_background_synthesis(user_id, job['id'], script['segments'], voice_map, provider)
            return job_to_response(updated or job)

        except Exception as e:
            await asyncio.to_thread(self._fail_job, job['id'], e)
            raise

    def _start_background_synthesis(self, user_id: str, job_id: str, segments: List[Dict],
                                    voice_map: Dict[str, str], provider: str):
        emitter = JobEventEmitter(job_id)

        async def run():
            try:
                await self.synthesize_job_audio(user_id, job_id, segments, voice_map, provider, emitter)
            except Exception as e:
                # Failure is already recorded on the job row
                self.logger.error(f"❌ [PODCAST] Background synthesis for {job_id} failed: {e}")

        task = asyncio.create_task(run())
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    async def synthesize_job_audio(
        self,
        user_id: str,
        job_id: str,
        segments: List[Dict],
        voice_map: Dict[str, str],
        provider: str,
        emitter: Optional[JobEventEmitter] = None,
    ) -> Dict:
        """
        Synthesize every segment, stitch, upload and complete the job

        Progress runs 0-80 during synthesis, 85 while stitching, 100 when
        the audio is uploaded. Any failure marks the job failed and re-raises.

        Returns:
            The completed job row
        """
        loop = asyncio.get_running_loop()

        def on_progress(done: int, total: int):
            progress = round(done / total * 80)
            self._update_job(job_id, status='generating_audio', progress=progress)
            if emitter:
                asyncio.run_coroutine_threadsafe(
                    emitter.progress('generating_audio', progress, completed=done, total=total),
                    loop,
                )

        try:
            rules = await asyncio.to_thread(self._load_pronunciation_rules, user_id)
            prepared = preprocess_segments(segments, rules)
            tts_voice_map = {speaker: {'provider': provider, 'voice_id': voice_id}
                             for speaker, voice_id in voice_map.items()}

            results = await asyncio.to_thread(self.tts.synthesize_segments, prepared, tts_voice_map, on_progress)

            await asyncio.to_thread(self._update_job, job_id, status='stitching', progress=85)
            if emitter:
                await emitter.progress('stitching', 85)

            audio = await asyncio.to_thread(concatenate_audio_segments, [r['audio'] for r in results])
            filename = f"podcast_{job_id}_{int(time.time() * 1000)}.mp3"
            audio_url = await asyncio.to_thread(self.storage.upload_audio, audio, user_id, filename)
            duration = sum(r['duration'] for r in results)

            completed = await asyncio.to_thread(
                self._update_job, job_id,
                status='complete', progress=100, audio_url=audio_url, duration=duration,
            )
            self.logger.info(f"✅ [PODCAST] Audio ready for job {job_id}: {audio_url}")
            if emitter:
                await emitter.complete({'audio_url': audio_url, 'duration': duration})
            return completed or {'id': job_id, 'status': 'complete', 'audio_url': audio_url}

        except Exception as e:
            await asyncio.to_thread(self._fail_job, job_id, e)
            if emitter:
                await emitter.error(str(e))
            raise

    async def get_podcast_job(self, user_id: str, job_id: str) -> Optional[Dict]:
        """
        Fetch a job, advancing ElevenLabs jobs that are still rendering

        When the Studio project can be downloaded the audio is stored and the
        job completed; while converting or queued, progress moves through
        30-90. Provider errors are logged and the stored job is returned.

        Returns:
            The job, or None if the user has no such job
        """
        job = await asyncio.to_thread(self.get_job_row, user_id, job_id)
        if not job:
            return None

        project_id = (job.get('options') or {}).get('elevenlabs_project_id')
        if job.get('status') != 'generating_audio' or not project_id:
            return job_to_response(job)

        try:
            status = await asyncio.to_thread(self.elevenlabs.get_project_status, project_id)

            if status['can_be_downloaded']:
                audio = await asyncio.to_thread(self.elevenlabs.download_project_audio, project_id)
                filename = f"podcast_{job_id}_{int(time.time() * 1000)}.mp3"
                audio_url = await asyncio.to_thread(self.storage.upload_audio, audio, user_id, filename)

                # 128 kbps MP3
                estimated = round(len(audio) * 8 / (128 * 1000))
                updated = await asyncio.to_thread(
                    self._update_job, job_id,
                    status='complete', progress=100, audio_url=audio_url,
                    duration=estimated or job.get('duration'),
                )
                self.logger.info(f"✅ [PODCAST] ElevenLabs audio finalized for job {job_id}")
                return job_to_response(updated or job)

            if status['state'] in ('converting', 'in_queue'):
                progress = 30 + round((status.get('progress') or 0) * 60)
                if progress > (job.get('progress') or 0):
                    await asyncio.to_thread(self._update_job, job_id, progress=progress)
                    job['progress'] = progress

        except Exception as e:
            self.logger.error(f"❌ [PODCAST] Error checking ElevenLabs status for {job_id}: {e}")

        return job_to_response(job)

    async def generate_audio_for_job(
        self,
        user_id: str,
        job_id: str,
        voice_host1: Optional[str] = None,
        voice_host2: Optional[str] = None,
        provider: str = 'google',
    ) -> Dict:
        """
        Generate audio for an existing script-only job

        Raises:
            NotFoundError: Unknown job
            BadRequestError: Job has no script, or provider is unknown
            JobConflictError: Audio generation already running
        """
        if provider not in PROVIDERS:
            raise BadRequestError(f"Unknown TTS provider: {provider}")

        job = await asyncio.to_thread(self.get_job_row, user_id, job_id)
        if not job:
            raise NotFoundError("Podcast job not found")

        script = job.get('script') or {}
        if not script.get('segments'):
            raise BadRequestError("Job has no script to generate audio from")

        if job.get('status') in AUDIO_IN_PROGRESS:
            raise JobConflictError("Audio generation already in progress")

        options = job.get('options') or {}
        defaults = get_default_voices(provider)
        voice_host1 = voice_host1 or defaults['host1']
        voice_host2 = voice_host2 or defaults['host2']
        voice_map = self._voice_map(options.get('host_names') or {}, voice_host1, voice_host2)

        await asyncio.to_thread(self._update_job, job_id, status='generating_audio', progress=0, error=None)

        if provider == 'elevenlabs':
            try:
                project_id = await asyncio.to_thread(
                    self.elevenlabs.create_podcast_project, f"Podcast {job_id}", script['segments'], voice_map
                )
            except Exception as e:
                await asyncio.to_thread(self._fail_job, job_id, e)
                raise

            updated = await asyncio.to_thread(
                self._update_job, job_id, progress=30,
                options={**options, 'tts_provider': provider, 'elevenlabs_project_id': project_id,
                         'voice_host1': voice_host1, 'voice_host2': voice_host2},
            )
            return job_to_response(updated or job)

        completed = await self.synthesize_job_audio(user_id, job_id, script['segments'], voice_map, provider)
        return job_to_response(completed)

    def list_podcast_jobs(self, user_id: str, limit: int = 20, status: Optional[str] = None) -> List[Dict]:
        query = self.supabase.table('podcast_jobs')\
            .select('*')\
            .eq('user_id', user_id)\
            .order('created_at', desc=True)\
            .limit(limit)

        if status:
            query = query.eq('status', status)

        result = query.execute()
        return [job_to_response(job) for job in result.data or []]

    def delete_podcast_job(self, user_id: str, job_id: str):
        self.supabase.table('podcast_jobs')\
            .delete()\
            .eq('id', job_id)\
            .eq('user_id', user_id)\
            .execute()
        self.logger.info(f"🗑️ [PODCAST] Deleted job {job_id}")

    # ============================================
    # Script audio (pasted scripts)
    # ============================================

    async def generate_script_audio(
        self,
        user_id: str,
        segments: List[Dict],
        voice_map: Dict[str, str],
        provider: str = 'elevenlabs',
        title: Optional[str] = None,
        save_to_library: bool = True,
    ) -> Dict:
        """
        Synthesize a parsed script and optionally save it as a transcript

        Args:
            segments: [{'speaker', 'text'}]
            voice_map: speaker -> voice ID for the provider

        Returns:
            {'audio': MP3 bytes, 'duration': seconds, 'transcript_id': str or None}

        Raises:
            BadRequestError: If a speaker has no voice
        """
        missing = [s for s in dict.fromkeys(seg['speaker'] for seg in segments) if not voice_map.get(s)]
        if missing:
            raise BadRequestError(f"No voice selected for speaker: {missing[0]}")

        rules = await asyncio.to_thread(self._load_pronunciation_rules, user_id)
        prepared = preprocess_segments(segments, rules)
        tts_voice_map = {speaker: {'provider': provider, 'voice_id': voice_id}
                         for speaker, voice_id in voice_map.items()}

        results = await asyncio.to_thread(self.tts.synthesize_segments, prepared, tts_voice_map)
        audio = await asyncio.to_thread(concatenate_audio_segments, [r['audio'] for r in results])

        transcript_id = None
        if save_to_library:
            transcript_id = await asyncio.to_thread(self._save_script_transcript, user_id, segments, title)

        return {
            'audio': audio,
            'duration': sum(r['duration'] for r in results),
            'transcript_id': transcript_id,
        }

    def _save_script_transcript(self, user_id: str, segments: List[Dict], title: Optional[str]) -> Optional[str]:
        content = '\n\n'.join(f"**{s['speaker']}:**\n{s['text']}" for s in segments)
        try:
            result = self.supabase.table('transcripts').insert({
                'user_id': user_id,
                'video_id': f"script-{int(time.time() * 1000)}",
                'video_title': title or f"Script - {datetime.now().strftime('%Y-%m-%d')}",
                'video_url': '',
                'content': content,
                'source': 'official',
            }).execute()
        except Exception as e:
            self.logger.warning(f"⚠️ [SCRIPT] Could not save script to library: {e}")
            return None
        return result.data[0]['id'] if result.data else None
