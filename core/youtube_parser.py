#!/usr/bin/env python3
"""
YouTube URL Parsing

Video ID extraction and URL helpers shared by the transcript and search flows.
"""

import re
from datetime import datetime
from typing import Dict, List, Optional

VIDEO_ID_RE = re.compile(r'^[a-zA-Z0-9_-]{11}$')

YOUTUBE_PATTERNS = [
    re.compile(r'(?:youtube\.com/watch\?v=)([a-zA-Z0-9_-]{11})'),
    re.compile(r'(?:youtu\.be/)([a-zA-Z0-9_-]{11})'),
    re.compile(r'(?:youtube\.com/embed/)([a-zA-Z0-9_-]{11})'),
    re.compile(r'(?:youtube\.com/shorts/)([a-zA-Z0-9_-]{11})'),
    re.compile(r'(?:youtube\.com/live/)([a-zA-Z0-9_-]{11})'),
]

THUMBNAIL_QUALITY = {
    'default': 'default',
    'medium': 'mqdefault',
    'high': 'hqdefault',
    'maxres': 'maxresdefault',
}


def extract_video_id(url: Optional[str]) -> Optional[str]:
    """
    Extract the video ID from a YouTube URL or bare ID

    Args:
        url: watch, youtu.be, embed, shorts or live URL, or an 11-char ID

    Returns:
        Video ID or None if the input is not recognised

    Examples:
        >>> extract_video_id("https://youtu.be/dQw4w9WgXcQ")
        'dQw4w9WgXcQ'
        >>> extract_video_id("not a url") is None
        True
    """
    if not url or not isinstance(url, str):
        return None

    trimmed = url.strip()
    if VIDEO_ID_RE.match(trimmed):
        return trimmed

    for pattern in YOUTUBE_PATTERNS:
        match = pattern.search(trimmed)
        if match:
            return match.group(1)

    return None


def is_valid_video_id(video_id: str) -> bool:
    return bool(video_id) and bool(VIDEO_ID_RE.match(video_id))


def build_youtube_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def build_thumbnail_url(video_id: str, quality: str = 'medium') -> str:
    """Build a thumbnail URL; unknown qualities fall back to medium"""
    suffix = THUMBNAIL_QUALITY.get(quality, THUMBNAIL_QUALITY['medium'])
    return f"https://img.youtube.com/vi/{video_id}/{suffix}.jpg"


def parse_multiple_urls(text: Optional[str]) -> List[str]:
    """Split pasted input into one URL per non-blank line"""
    if not text or not isinstance(text, str):
        return []
    return [line.strip() for line in text.split('\n') if line.strip()]


def extract_multiple_video_ids(urls: List[str]) -> List[Dict]:
    """
    Extract IDs from a list of URLs

    Returns:
        List of {'url', 'video_id', 'valid'} dicts in input order
    """
    results = []
    for url in urls:
        video_id = extract_video_id(url)
        results.append({
            'url': url,
            'video_id': video_id,
            'valid': video_id is not None,
        })
    return results


def generate_project_name(now: Optional[datetime] = None) -> str:
    """Generate a timestamped project folder name (YYYY-MM-DD_HH-MM-SS)"""
    now = now or datetime.now()
    return now.strftime('%Y-%m-%d_%H-%M-%S')
