"""
YouTube Search Routes
"""

import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Literal, Optional
import requests

from app.middleware.rate_limit import rate_limit
from core.youtube_search import YouTubeAPIError, YouTubeSearch, format_youtube_error

logger = logging.getLogger(__name__)

router = APIRouter()


def get_youtube_search() -> YouTubeSearch:
    try:
        return YouTubeSearch()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.get("/youtube/search")
async def search_youtube(
    q: str = Query(..., min_length=1, max_length=200),
    max_results: int = Query(10, ge=1, le=50),
    order: Literal['relevance', 'date', 'rating', 'viewCount', 'title'] = 'relevance',
    video_duration: Literal['any', 'short', 'medium', 'long'] = 'any',
    published_after: Literal['any', 'day', 'week', 'month', 'year'] = 'any',
    channel_id: Optional[str] = None,
    region_code: Optional[str] = Query(None, min_length=2, max_length=2),
    page_token: Optional[str] = None,
    include_details: bool = False,
    user_id: str = Depends(rate_limit('youtube_search')),
    youtube: YouTubeSearch = Depends(get_youtube_search),
):
    """
    Search YouTube videos

    With include_details, each result also carries duration and statistics.
    """
    try:
        results = await asyncio.to_thread(
            youtube.search_videos,
            q,
            max_results=max_results,
            order=order,
            video_duration=video_duration,
            published_after=published_after,
            channel_id=channel_id,
            region_code=region_code,
            page_token=page_token,
        )

        if include_details and results['items']:
            ids = [item['video_id'] for item in results['items'] if item['video_id']]
            details = await asyncio.to_thread(youtube.get_multiple_video_details, ids)
            by_id = {d['video_id']: d for d in details}
            for item in results['items']:
                detail = by_id.get(item['video_id'])
                if detail:
                    item.update({
                        'duration': detail['duration_seconds'],
                        'view_count': detail['view_count'],
                        'like_count': detail['like_count'],
                    })

        return results

    except (YouTubeAPIError, requests.RequestException) as e:
        logger.error(f"❌ YouTube search failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=format_youtube_error(e))
