"""
Content Generation Routes

Generate original content from saved transcripts, either in one response
or streamed token by token over Server-Sent Events, and featured images
for saved content.
"""

import asyncio
import json
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Literal, Optional
from sse_starlette.sse import EventSourceResponse

from app.middleware.auth import resolve_user_id, verify_supabase_jwt
from app.middleware.rate_limit import limiter, rate_limit
from app.services.content_service import ContentService
from core.errors import ServiceError
from core.prompts import FORMAT_PROMPTS, IMAGE_MOODS, IMAGE_STYLES, VOICE_PROMPTS
from processors.image_generator import format_image_error

logger = logging.getLogger(__name__)

router = APIRouter()

LENGTH_TYPES = ('words', 'paragraphs', 'characters')


class LengthConstraint(BaseModel):
    type: str = Field(..., description="words, paragraphs or characters")
    value: int = Field(..., gt=0)

    @field_validator('type')
    @classmethod
    def check_type(cls, value: str) -> str:
        if value not in LENGTH_TYPES:
            raise ValueError(f"type must be one of {', '.join(LENGTH_TYPES)}")
        return value


class GenerateRequest(BaseModel):
    """Request model for content generation"""
    transcript_ids: List[str] = Field(..., min_length=1, max_length=10)
    format: str = Field(..., description="Output format, e.g. linkedin or blog-long")
    voice: str = Field('professional', description="Writing voice, or 'custom' with a tone profile")
    tone_profile_id: Optional[str] = None
    custom_instructions: Optional[str] = Field(None, max_length=2000)
    length_constraint: Optional[LengthConstraint] = None

    @field_validator('format')
    @classmethod
    def check_format(cls, value: str) -> str:
        if value not in FORMAT_PROMPTS:
            raise ValueError(f"Unknown format: {value}")
        return value

    @field_validator('voice')
    @classmethod
    def check_voice(cls, value: str) -> str:
        if value not in VOICE_PROMPTS:
            raise ValueError(f"Unknown voice: {value}")
        return value

    def to_service_request(self) -> Dict:
        request = self.model_dump()
        if self.length_constraint:
            request['length_constraint'] = self.length_constraint.model_dump()
        return request


class GenerateImageRequest(BaseModel):
    """Request model for a featured image"""
    content_id: str
    style: str = 'photorealistic'
    mood: str = 'professional'
    custom_prompt: Optional[str] = Field(None, max_length=500)
    aspect_ratio: Literal['16:9', '1:1', '9:16'] = '16:9'

    @field_validator('style')
    @classmethod
    def check_style(cls, value: str) -> str:
        if value not in IMAGE_STYLES:
            raise ValueError(f"Unknown image style: {value}")
        return value

    @field_validator('mood')
    @classmethod
    def check_mood(cls, value: str) -> str:
        if value not in IMAGE_MOODS:
            raise ValueError(f"Unknown image mood: {value}")
        return value


def get_content_service() -> ContentService:
    return ContentService()


def _http_error(e: ServiceError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/generate", status_code=status.HTTP_201_CREATED)
async def generate_content(
    request: GenerateRequest,
    user_id: str = Depends(rate_limit('generate')),
    service: ContentService = Depends(get_content_service),
):
    """
    Generate content from transcripts and save it

    Args:
        request: Transcripts, format, voice and options
        user_id: User ID extracted from JWT token

    Returns:
        The saved generated_content row
    """
    logger.info(f"✍️ Generating {request.format} content from {len(request.transcript_ids)} transcripts for {user_id}")

    try:
        return await service.generate_from_transcripts(user_id, request.to_service_request())
    except ServiceError as e:
        raise _http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Content generation failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate content: {str(e)}"
        )


@router.post("/generate/image", status_code=status.HTTP_201_CREATED)
async def generate_image(
    request: GenerateImageRequest,
    user_id: str = Depends(rate_limit('generate')),
    service: ContentService = Depends(get_content_service),
):
    """
    Generate a featured image for saved content

    The image is stored on the content row as a data URL. Safety blocks and
    bad prompts are 400s; Gemini failures are 502s.
    """
    logger.info(f"🎨 Image request from {user_id} for content {request.content_id} ({request.style}/{request.mood})")

    try:
        image_url = await asyncio.to_thread(
            service.generate_image_for_content,
            user_id,
            request.content_id,
            request.style,
            request.mood,
            request.custom_prompt,
            request.aspect_ratio,
        )
    except ServiceError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=format_image_error(e))
    except Exception as e:
        logger.error(f"❌ Image generation failed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=format_image_error(e))

    return {'image_url': image_url, 'message': 'Image generated successfully'}


@router.get("/generate/stream")
async def stream_content(
    transcript_ids: str = Query(..., description="Comma-separated transcript IDs"),
    format: str = Query(...),
    voice: str = Query('professional'),
    tone_profile_id: Optional[str] = None,
    custom_instructions: Optional[str] = None,
    token: Optional[str] = None,
    service: ContentService = Depends(get_content_service),
):
    """
    Stream generated content via Server-Sent Events

    NOTE: EventSource doesn't support custom headers, so the token comes
    in as a query parameter.

    Events: 'token' with {text}, then 'complete' with {content}, or 'error'.
    """
    if not token:
        logger.warning("🔒 SSE request without token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing authentication token")

    user_id = await asyncio.to_thread(resolve_user_id, token)

    rate = limiter.check(user_id, 'generate')
    if not rate.success:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded. Try again in {rate.retry_after} seconds.",
            headers=rate.headers(),
        )

    try:
        request = GenerateRequest(
            transcript_ids=[t for t in transcript_ids.split(',') if t],
            format=format,
            voice=voice,
            tone_profile_id=tone_profile_id,
            custom_instructions=custom_instructions,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    async def generate_and_stream():
        try:
            async for event in service.stream_from_transcripts(user_id, request.to_service_request()):
                if event['type'] == 'token':
                    yield {"event": "token", "data": json.dumps({"text": event['text']})}
                else:
                    yield {"event": "complete", "data": json.dumps({"content": event['content']}, default=str)}
                await asyncio.sleep(0)
        except Exception as e:
            logger.error(f"❌ Streaming generation failed: {e}", exc_info=True)
            yield {"event": "error", "data": json.dumps({"message": str(e)})}

    return EventSourceResponse(
        generate_and_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        }
    )


@router.get("/generate/{content_id}")
async def get_generated_content(
    content_id: str,
    user_id: str = Depends(verify_supabase_jwt),
    service: ContentService = Depends(get_content_service),
):
    """Fetch one piece of generated content"""
    try:
        return await asyncio.to_thread(service.get_content, content_id, user_id)
    except ServiceError as e:
        raise _http_error(e)
