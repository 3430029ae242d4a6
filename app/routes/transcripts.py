"""
Transcript Routes

Fetch YouTube transcripts (captions with a Whisper fallback), save them or
pasted custom text to the user's library and list saved transcripts.
"""

import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from typing import List, Optional

from app.middleware.auth import verify_supabase_jwt
from app.middleware.rate_limit import rate_limit
from app.services.transcript_service import TranscriptService

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_BATCH_URLS = 20


class FetchTranscriptRequest(BaseModel):
    """Request model for fetching one transcript"""
    url: str = Field(..., min_length=1, description="YouTube URL or 11-character video ID")
    include_timestamps: bool = Field(False, description="Prefix transcript lines with [MM:SS]")
    enable_fallback: bool = Field(True, description="Transcribe audio with Whisper when captions are missing")
    language: Optional[str] = Field(None, description="Preferred caption language")
    project_name: Optional[str] = Field(None, description="Project to file the transcript under")


class BatchTranscriptRequest(BaseModel):
    """Request model for fetching several transcripts"""
    urls: List[str] = Field(..., min_length=1, max_length=MAX_BATCH_URLS)
    include_timestamps: bool = False
    enable_fallback: bool = True
    project_name: Optional[str] = None


class CustomTranscriptRequest(BaseModel):
    """Request model for saving pasted text as a transcript"""
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    project_name: Optional[str] = None


class TranscriptResponse(BaseModel):
    """A saved transcript"""
    id: str
    video_id: str
    title: str
    video_url: str
    content: str
    source: str
    has_timestamps: bool = False
    project_id: Optional[str] = None
    created_at: Optional[str] = None
    message: Optional[str] = None


def get_transcript_service() -> TranscriptService:
    return TranscriptService()


def _to_response(row: dict, source: str, message: Optional[str] = None) -> TranscriptResponse:
    return TranscriptResponse(
        id=row['id'],
        video_id=row['video_id'],
        title=row.get('video_title') or row['video_id'],
        video_url=row.get('video_url') or '',
        content=row.get('content') or '',
        source=source,
        has_timestamps=bool(row.get('has_timestamps')),
        project_id=row.get('project_id'),
        created_at=row.get('created_at'),
        message=message,
    )


@router.post("/transcripts", response_model=TranscriptResponse, status_code=status.HTTP_201_CREATED)
async def fetch_transcript(
    request: FetchTranscriptRequest,
    user_id: str = Depends(rate_limit('transcripts')),
    service: TranscriptService = Depends(get_transcript_service),
):
    """
    Fetch a transcript and save it to the library

    Args:
        request: URL and fetch options
        user_id: User ID extracted from JWT token

    Returns:
        The saved transcript
    """
    logger.info(f"📝 Transcript request from {user_id}: {request.url}")

    try:
        result = await service.fetch_transcript(
            request.url,
            include_timestamps=request.include_timestamps,
            enable_fallback=request.enable_fallback,
            language=request.language,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    try:
        row = await asyncio.to_thread(
            service.save_transcript, user_id, result, request.include_timestamps, request.project_name
        )
    except Exception as e:
        logger.error(f"❌ Failed to save transcript: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save transcript: {str(e)}"
        )

    message = ('Transcript fetched using audio transcription (no captions available)'
               if result['source'] == 'whisper' else 'Transcript fetched successfully')
    return _to_response(row, result['source'], message)


@router.post("/transcripts/batch")
async def fetch_transcripts_batch(
    request: BatchTranscriptRequest,
    user_id: str = Depends(rate_limit('transcripts_batch')),
    service: TranscriptService = Depends(get_transcript_service),
):
    """
    Fetch and save several transcripts

    Individual failures are reported per URL and do not fail the batch.
    """
    logger.info(f"📦 Batch transcript request from {user_id}: {len(request.urls)} URLs")

    batch = await service.fetch_transcripts_batch(
        request.urls,
        include_timestamps=request.include_timestamps,
        enable_fallback=request.enable_fallback,
    )

    saved = []
    failed = list(batch['failed'])
    for result in batch['successful']:
        try:
            row = await asyncio.to_thread(
                service.save_transcript, user_id, result, request.include_timestamps, request.project_name
            )
            saved.append(_to_response(row, result['source']))
        except Exception as e:
            logger.error(f"❌ Failed to save transcript for {result['video_id']}: {e}")
            failed.append({'url': result['video_id'], 'error': f"Failed to save transcript: {str(e)}"})

    return {
        'successful': saved,
        'failed': failed,
        'total': len(request.urls),
    }


@router.post("/transcripts/custom", response_model=TranscriptResponse, status_code=status.HTTP_201_CREATED)
async def save_custom_transcript(
    request: CustomTranscriptRequest,
    user_id: str = Depends(rate_limit('transcripts')),
    service: TranscriptService = Depends(get_transcript_service),
):
    """Save pasted text (scripts, notes) to the library for content generation"""
    logger.info(f"📝 Custom transcript from {user_id}: {request.title!r}")

    try:
        row = await asyncio.to_thread(
            service.save_custom_transcript, user_id, request.title, request.content, request.project_name
        )
    except Exception as e:
        logger.error(f"❌ Failed to save custom transcript: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save transcript: {str(e)}"
        )

    return _to_response(row, 'custom', 'Custom content saved successfully')


@router.get("/transcripts")
async def list_transcripts(
    project_id: Optional[str] = None,
    user_id: str = Depends(verify_supabase_jwt),
    service: TranscriptService = Depends(get_transcript_service),
):
    """List the user's saved transcripts, newest first"""
    try:
        transcripts = await asyncio.to_thread(service.list_transcripts, user_id, project_id)
        return {'transcripts': transcripts}
    except Exception as e:
        logger.error(f"❌ Failed to list transcripts: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list transcripts: {str(e)}"
        )
