"""
Podcast Routes

Create podcast jobs from generated content or saved transcripts, poll them,
generate audio for script-only jobs and export scripts.
"""

import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from sse_starlette.sse import EventSourceResponse

from app.middleware.auth import resolve_user_id, verify_supabase_jwt
from app.middleware.rate_limit import rate_limit
from app.services.podcast_service import (
    EXPORT_FORMATS, JOB_STATUSES, PodcastService, export_script, get_default_voices,
)
from core.errors import ServiceError
from core.event_emitter import JobEventEmitter
from processors.tts_synthesizer import get_available_voices
from core.text_utils import sanitize_filename

logger = logging.getLogger(__name__)

router = APIRouter()

EXPORT_MEDIA_TYPES = {
    'json': 'application/json',
    'txt': 'text/plain',
    'srt': 'application/x-subrip',
}


class HostNames(BaseModel):
    host1: str = Field('Alex', min_length=1, max_length=50)
    host2: str = Field('Jamie', min_length=1, max_length=50)


class HostRoles(BaseModel):
    host1: Optional[str] = Field(None, max_length=500)
    host2: Optional[str] = Field(None, max_length=500)


class PodcastOptions(BaseModel):
    """Provider and script options shared by podcast job requests"""
    tts_provider: Literal['none', 'google', 'elevenlabs'] = 'none'
    target_duration: Literal['short', 'medium', 'long'] = 'medium'
    tone: Literal['casual', 'professional', 'educational', 'entertaining'] = 'casual'
    host_names: Optional[HostNames] = None
    host_roles: Optional[HostRoles] = None
    focus_guidance: Optional[str] = Field(None, max_length=2000)
    include_intro: bool = True
    include_outro: bool = True
    voice_host1: Optional[str] = None
    voice_host2: Optional[str] = None


class CreatePodcastRequest(PodcastOptions):
    """Request model for a podcast job from generated content"""
    content_id: str


class TranscriptPodcastRequest(PodcastOptions):
    """Request model for a podcast job from saved transcripts"""
    transcript_ids: List[str] = Field(..., min_length=1, max_length=10)


class GenerateAudioRequest(BaseModel):
    """Request model for generating audio for an existing job"""
    provider: Literal['google', 'elevenlabs'] = 'google'
    voice_host1: Optional[str] = None
    voice_host2: Optional[str] = None


def get_podcast_service() -> PodcastService:
    return PodcastService()


def _http_error(e: ServiceError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/generate/podcast", status_code=status.HTTP_201_CREATED)
async def create_podcast(
    request: CreatePodcastRequest,
    user_id: str = Depends(rate_limit('generate')),
    service: PodcastService = Depends(get_podcast_service),
):
    """
    Create a podcast job for generated content

    Script-only jobs (tts_provider 'none') return complete. Audio jobs return
    in generating_audio; poll GET /api/generate/podcast/{id} for progress.
    """
    logger.info(f"🎙️ Podcast request from {user_id} for content {request.content_id} ({request.tts_provider})")

    try:
        return await service.generate_podcast_from_content(user_id, request.model_dump())
    except ServiceError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"❌ Podcast generation failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate podcast: {str(e)}"
        )


@router.post("/generate/podcast/from-transcripts", status_code=status.HTTP_201_CREATED)
async def create_podcast_from_transcripts(
    request: TranscriptPodcastRequest,
    user_id: str = Depends(rate_limit('generate')),
    service: PodcastService = Depends(get_podcast_service),
):
    """Create a podcast job from up to ten saved transcripts"""
    logger.info(f"🎙️ Podcast request from {user_id} for {len(request.transcript_ids)} transcripts ({request.tts_provider})")

    try:
        return await service.generate_podcast_from_transcripts(user_id, request.model_dump())
    except ServiceError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"❌ Podcast generation from transcripts failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate podcast: {str(e)}"
        )


@router.get("/generate/podcast")
async def list_podcasts(
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    user_id: str = Depends(verify_supabase_jwt),
    service: PodcastService = Depends(get_podcast_service),
):
    """List the user's podcast jobs, newest first"""
    if status_filter and status_filter not in JOB_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown status: {status_filter}")

    jobs = await asyncio.to_thread(service.list_podcast_jobs, user_id, limit, status_filter)
    return {'jobs': jobs}


@router.get("/generate/podcast/voices")
async def list_voices(
    provider: Literal['google', 'elevenlabs'] = 'google',
    user_id: str = Depends(verify_supabase_jwt),
):
    """Available voices and the default host voices for a provider"""
    return {
        'provider': provider,
        'voices': get_available_voices(provider),
        'defaults': get_default_voices(provider),
    }


@router.get("/generate/podcast/{job_id}")
async def get_podcast(
    job_id: str,
    user_id: str = Depends(verify_supabase_jwt),
    service: PodcastService = Depends(get_podcast_service),
):
    """
    Poll a podcast job

    ElevenLabs jobs are finalized here once their audio is ready.
    """
    job = await service.get_podcast_job(user_id, job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Podcast job not found")
    return job


@router.delete("/generate/podcast/{job_id}")
async def delete_podcast(
    job_id: str,
    user_id: str = Depends(verify_supabase_jwt),
    service: PodcastService = Depends(get_podcast_service),
):
    try:
        await asyncio.to_thread(service.delete_podcast_job, user_id, job_id)
    except Exception as e:
        logger.error(f"❌ Failed to delete podcast job {job_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete podcast job: {str(e)}"
        )
    return {'success': True}


@router.post("/generate/podcast/{job_id}/audio")
async def generate_podcast_audio(
    job_id: str,
    request: GenerateAudioRequest,
    user_id: str = Depends(rate_limit('generate')),
    service: PodcastService = Depends(get_podcast_service),
):
    """Generate audio for a job that already has a script"""
    try:
        return await service.generate_audio_for_job(
            user_id, job_id, request.voice_host1, request.voice_host2, request.provider
        )
    except ServiceError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"❌ Audio generation failed for job {job_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate audio: {str(e)}"
        )


@router.get("/generate/podcast/{job_id}/export")
async def export_podcast_script(
    job_id: str,
    format: str = Query('txt'),
    user_id: str = Depends(verify_supabase_jwt),
    service: PodcastService = Depends(get_podcast_service),
):
    """Download a job's script as json, txt or srt"""
    if format not in EXPORT_FORMATS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown export format: {format}")

    job = await service.get_podcast_job(user_id, job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Podcast job not found")
    if not job.get('script'):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Job has no script to export")

    filename = sanitize_filename(job['script'].get('title') or f"podcast_{job_id}").replace(' ', '_')
    return PlainTextResponse(
        export_script(job['script'], format),
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={'Content-Disposition': f'attachment; filename="{filename}.{format}"'},
    )


@router.get("/generate/podcast/{job_id}/events")
async def stream_podcast_events(
    job_id: str,
    token: Optional[str] = None,
    service: PodcastService = Depends(get_podcast_service),
):
    """
    Stream audio synthesis progress via Server-Sent Events

    Only jobs synthesizing in the background have a live stream; poll the
    job otherwise. The token comes as a query parameter for EventSource.
    """
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing authentication token")

    user_id = await asyncio.to_thread(resolve_user_id, token)
    job = await asyncio.to_thread(service.get_job_row, user_id, job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Podcast job not found")

    logger.info(f"📡 Starting SSE stream for podcast job: {job_id} (user: {user_id})")

    return EventSourceResponse(
        JobEventEmitter.stream_events(job_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        }
    )
