"""
Transcript Processing Module

Handles extraction of YouTube caption tracks. The youtube-transcript-api
library is tried first; the watch-page timedtext scrape is kept as a
second route for videos the library cannot list.
"""

import re
import logging
from typing import Dict, List, Optional
import requests
from bs4 import BeautifulSoup

from core.config import Config
from core.youtube_parser import build_youtube_url

logger = logging.getLogger(__name__)

CAPTIONS_RE = re.compile(r'"captions":\s*\{\s*"playerCaptionsTracklistRenderer"')
CAPTION_URL_RE = re.compile(r'"baseUrl":"(https://www\.youtube\.com/api/timedtext[^"]+)"')


class TranscriptProcessor:
    """Handles transcript extraction from YouTube caption tracks"""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def get_youtube_transcript(self, video_id: str, language: str = 'en') -> Dict:
        """
        Extract transcript from YouTube video

        Args:
            video_id: YouTube video ID
            language: Preferred caption language code

        Returns:
            Dictionary with transcript data, or success=False with an error
        """
        languages = [language] if language == 'en' else [language, 'en']

        try:
            from youtube_transcript_api import YouTubeTranscriptApi

            ytt_api = YouTubeTranscriptApi()
            transcript_list = ytt_api.list(video_id)

            # Manual captions first, auto-generated second
            try:
                transcript = transcript_list.find_manually_created_transcript(languages)
                transcript_data = transcript.fetch()
                transcript_type = 'manual'
            except Exception:
                try:
                    transcript = transcript_list.find_generated_transcript(languages)
                    transcript_data = transcript.fetch()
                    transcript_type = 'auto_generated'
                except Exception:
                    return {
                        'success': False,
                        'error': f'No {language} transcript available',
                        'video_id': video_id
                    }

            entries = []
            for entry in transcript_data:
                entries.append({
                    'start': entry.start,
                    'text': entry.text,
                    'duration': getattr(entry, 'duration', 0)
                })

            return {
                'success': True,
                'transcript': entries,
                'type': transcript_type,
                'video_id': video_id,
                'total_entries': len(entries)
            }

        except Exception as e:
            self.logger.warning(f"Could not extract transcript for {video_id}: {e}")
            return {
                'success': False,
                'error': str(e),
                'video_id': video_id
            }

    def scrape_caption_track(self, video_id: str, language: str = 'en') -> List[Dict]:
        """
        Fetch captions by scraping the watch page for a timedtext URL

        Args:
            video_id: YouTube video ID
            language: Preferred language, sent as Accept-Language

        Returns:
            List of {'text', 'start', 'duration'} segments

        Raises:
            RuntimeError: If the page has no captions or the track is empty
        """
        self.logger.info(f"🔍 [CAPTIONS] Scraping caption track for {video_id}")

        response = self.session.get(
            build_youtube_url(video_id),
            headers=Config.get_default_headers(language),
            timeout=Config.DEFAULT_TIMEOUT
        )
        if response.status_code != 200:
            raise RuntimeError(f"Failed to fetch video page: {response.status_code}")

        html = response.text
        if not CAPTIONS_RE.search(html):
            raise RuntimeError("No captions available for this video")

        url_match = CAPTION_URL_RE.search(html)
        if not url_match:
            raise RuntimeError("Could not find caption track URL")

        caption_url = url_match.group(1).replace('\\u0026', '&') + '&fmt=json3'

        caption_response = self.session.get(caption_url, timeout=Config.DEFAULT_TIMEOUT)
        if caption_response.status_code != 200:
            raise RuntimeError(f"Failed to fetch captions: {caption_response.status_code}")

        segments = self.parse_json3_events(caption_response.json())
        if not segments:
            raise RuntimeError("Caption track is empty")

        self.logger.info(f"✅ [CAPTIONS] Scraped {len(segments)} caption segments")
        return segments

    @staticmethod
    def parse_json3_events(data: Dict) -> List[Dict]:
        """Convert a json3 timedtext payload into transcript segments"""
        segments = []
        for event in data.get('events') or []:
            segs = event.get('segs')
            if not segs:
                continue

            text = ''.join(seg.get('utf8', '') for seg in segs).strip()
            if text:
                segments.append({
                    'text': text,
                    'start': (event.get('tStartMs') or 0) / 1000,
                    'duration': (event.get('dDurationMs') or 0) / 1000,
                })
        return segments

    def fetch_video_title(self, video_id: str) -> str:
        """
        Look up a video's title from its watch page

        Returns:
            The title meta tag, og:title, or the video ID when neither is found
        """
        try:
            response = self.session.get(
                build_youtube_url(video_id),
                headers=Config.get_default_headers(),
                timeout=Config.SHORT_TIMEOUT
            )
            if response.status_code != 200:
                return video_id

            soup = BeautifulSoup(response.text, 'html.parser')

            title_tag = soup.find('meta', attrs={'name': 'title'})
            if title_tag and title_tag.get('content'):
                return title_tag['content']

            og_tag = soup.find('meta', attrs={'property': 'og:title'})
            if og_tag and og_tag.get('content'):
                return og_tag['content']

            return video_id

        except requests.RequestException as e:
            self.logger.warning(f"⚠️ Could not fetch title for {video_id}: {e}")
            return video_id
