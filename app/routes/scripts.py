"""
Script Routes

Parse pasted scripts into speaker segments and synthesize them to audio.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional

from app.middleware.auth import verify_supabase_jwt
from app.middleware.rate_limit import rate_limit
from app.routes.podcast import get_podcast_service
from app.services.podcast_service import PodcastService
from core.errors import ServiceError
from processors.script_parser import estimate_duration, format_duration, parse_script, preprocess_segments
from processors.tts_synthesizer import estimate_tts_cost

logger = logging.getLogger(__name__)

router = APIRouter()


class ParseScriptRequest(BaseModel):
    """Request model for parsing a script"""
    script: str = Field(..., min_length=1, max_length=100_000)
    preprocess: bool = Field(False, description="Normalize numbers and money for TTS")


class ScriptSegment(BaseModel):
    speaker: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class GenerateScriptAudioRequest(BaseModel):
    """Request model for synthesizing script segments"""
    segments: List[ScriptSegment] = Field(..., min_length=1)
    voice_map: Dict[str, str] = Field(..., description="Speaker name to voice ID")
    provider: Literal['google', 'elevenlabs'] = 'elevenlabs'
    title: Optional[str] = Field(None, max_length=200)
    save_to_library: bool = True


@router.post("/scripts/parse")
async def parse_script_text(
    request: ParseScriptRequest,
    user_id: str = Depends(verify_supabase_jwt),
):
    """
    Split a script into speaker segments

    Returns:
        mode, speakers, segments, estimated duration and TTS cost estimates
    """
    parsed = parse_script(request.script)
    segments = parsed['segments']
    if request.preprocess:
        segments = preprocess_segments(segments)

    seconds = estimate_duration(segments)
    text = ' '.join(segment['text'] for segment in segments)

    logger.info(f"📜 Parsed script for {user_id}: {len(segments)} segments, {len(parsed['speakers'])} speakers")
    return {
        'mode': parsed['mode'],
        'speakers': parsed['speakers'],
        'segments': segments,
        'estimated_duration': seconds,
        'estimated_duration_formatted': format_duration(seconds),
        'cost_estimates': {
            'google': estimate_tts_cost(text, 'google'),
            'elevenlabs': estimate_tts_cost(text, 'elevenlabs'),
        },
    }


@router.post("/scripts/generate-audio")
async def generate_script_audio(
    request: GenerateScriptAudioRequest,
    user_id: str = Depends(rate_limit('generate')),
    service: PodcastService = Depends(get_podcast_service),
):
    """
    Synthesize script segments into one MP3

    Returns:
        audio/mpeg attachment; X-Transcript-Id names the saved library copy
    """
    logger.info(f"🔊 Script audio request from {user_id}: {len(request.segments)} segments ({request.provider})")

    try:
        result = await service.generate_script_audio(
            user_id,
            [segment.model_dump() for segment in request.segments],
            request.voice_map,
            provider=request.provider,
            title=request.title,
            save_to_library=request.save_to_library,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"❌ Script audio generation failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Audio generation failed: {str(e)}"
        )

    filename = ''.join(c if c.isalnum() else '_' for c in (request.title or 'script-audio'))
    return Response(
        content=result['audio'],
        media_type='audio/mpeg',
        headers={
            'Content-Disposition': f'attachment; filename="{filename}.mp3"',
            'X-Transcript-Id': result['transcript_id'] or '',
            'X-Audio-Duration': str(result['duration']),
        },
    )
