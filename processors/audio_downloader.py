"""
YouTube Audio Downloader

Downloads a video's audio track for Whisper transcription when no caption
track is available. Strategies run in a fixed priority order and the first
one that yields audio wins:

1. yt-dlp through a proxy
2. Cobalt tunnel
3. Innertube player API through the residential proxy
4. Innertube player API direct

Each strategy returns an AudioDownloadResult or raises. If every strategy
fails, AudioDownloadError carries the collected per-strategy messages.
"""

import os
import time
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
import requests

from core.config import Config
from core.youtube_parser import build_youtube_url

logger = logging.getLogger(__name__)

INNERTUBE_PLAYER_URL = "https://www.youtube.com/youtubei/v1/player"
INNERTUBE_CLIENT = {
    'clientName': 'ANDROID',
    'clientVersion': '19.09.37',
    'androidSdkVersion': 30,
    'hl': 'en',
    'gl': 'US',
}
INNERTUBE_USER_AGENT = 'com.google.android.youtube/19.09.37 (Linux; U; Android 11) gzip'


class AudioDownloadError(Exception):
    """Raised when every download strategy has failed"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Audio download failed. Errors: {'; '.join(self.errors)}")


class StrategySkipped(Exception):
    """Raised by a strategy whose configuration is absent"""


class EmptyTunnelError(RuntimeError):
    """Cobalt returned a tunnel URL that streamed no bytes"""


@dataclass
class AudioDownloadResult:
    """Downloaded audio plus the metadata Whisper needs"""
    buffer: bytes
    filename: str
    format: str
    duration: Optional[float] = None
    strategy: Optional[str] = None

    @property
    def size_mb(self) -> float:
        return len(self.buffer) / (1024 * 1024)


class AudioDownloader:
    """Runs the audio download fallback chain for a YouTube video"""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        settings: Optional[Dict[str, Optional[str]]] = None,
        max_bytes: Optional[int] = None,
        stall_timeout: int = Config.STALLED_CHUNK_TIMEOUT,
    ):
        """
        Args:
            session: HTTP session (a new one is created when omitted)
            settings: Proxy/Cobalt settings, defaults to Config.get_download_settings()
            max_bytes: Largest acceptable download, defaults to the Whisper upload limit
            stall_timeout: Seconds without a received chunk before a stream is abandoned
        """
        self.session = session or requests.Session()
        self.settings = settings if settings is not None else Config.get_download_settings()
        self.max_bytes = max_bytes or Config.MAX_WHISPER_FILE_SIZE_MB * 1024 * 1024
        self.stall_timeout = stall_timeout
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def strategies(self) -> List[Tuple[str, Callable[[str], AudioDownloadResult]]]:
        """Strategies in priority order"""
        return [
            ('yt-dlp', self.download_with_ytdlp),
            ('Cobalt', self.download_with_cobalt),
            ('Innertube (proxy)', self.download_with_proxy_innertube),
            ('Innertube', self.download_with_innertube),
        ]

    def download(self, video_id: str) -> AudioDownloadResult:
        """
        Download audio for a video, trying each strategy in order

        Args:
            video_id: YouTube video ID

        Returns:
            AudioDownloadResult from the first strategy that succeeds

        Raises:
            AudioDownloadError: If every strategy fails or is skipped
        """
        errors: List[str] = []

        for name, strategy in self.strategies():
            try:
                self.logger.info(f"🎧 [AUDIO] Trying {name} for {video_id}")
                result = strategy(video_id)
                self._check_size(result.buffer)
                result.strategy = name
                self.logger.info(f"✅ [AUDIO] {name} succeeded ({result.size_mb:.1f}MB, {result.format})")
                return result
            except StrategySkipped as e:
                self.logger.info(f"⏭️ [AUDIO] {name} skipped: {e}")
                errors.append(f"{name}: {e}")
            except Exception as e:
                self.logger.warning(f"⚠️ [AUDIO] {name} failed: {e}")
                errors.append(f"{name}: {e}")

        self.logger.error(f"❌ [AUDIO] All download strategies failed for {video_id}")
        raise AudioDownloadError(errors)

    # ------------------------------------------------------------------
    # Strategy 1: yt-dlp via proxy
    # ------------------------------------------------------------------

    def download_with_ytdlp(self, video_id: str) -> AudioDownloadResult:
        proxy = self.settings.get('ytdlp_proxy')
        if not proxy:
            raise StrategySkipped("no proxy configured")

        import yt_dlp

        with tempfile.TemporaryDirectory() as tmp_dir:
            ydl_opts = {
                'format': 'bestaudio[abr<=96]/bestaudio/best',
                'outtmpl': os.path.join(tmp_dir, f"{video_id}.%(ext)s"),
                'proxy': proxy,
                'quiet': True,
                'no_warnings': True,
                'noplaylist': True,
                'socket_timeout': self.stall_timeout,
                'max_filesize': self.max_bytes,
            }

            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(build_youtube_url(video_id), download=True)

            files = sorted(Path(tmp_dir).glob(f"{video_id}.*"))
            if not files:
                raise RuntimeError("yt-dlp produced no file")

            path = files[0]
            extension = path.suffix.lstrip('.') or 'webm'
            return AudioDownloadResult(
                buffer=path.read_bytes(),
                filename=path.name,
                format=extension,
                duration=(info or {}).get('duration'),
            )

    # ------------------------------------------------------------------
    # Strategy 2: Cobalt tunnel
    # ------------------------------------------------------------------

    def download_with_cobalt(self, video_id: str) -> AudioDownloadResult:
        """
        Download audio through a Cobalt instance

        Tunnel URLs sometimes stream nothing while Cobalt is still
        fetching upstream, so empty or stalled streams are retried with
        exponential backoff. Auth and API errors are not retried.
        """
        api_url = self.settings.get('cobalt_url')
        if not api_url:
            raise StrategySkipped("COBALT_API_URL not configured")

        last_error: Optional[Exception] = None

        for attempt in range(Config.COBALT_MAX_ATTEMPTS):
            try:
                download_url = self._request_cobalt_url(api_url, video_id)
                buffer = self._stream_download(download_url)
                if not buffer:
                    raise EmptyTunnelError("Cobalt tunnel returned empty audio")

                return AudioDownloadResult(
                    buffer=buffer,
                    filename=f"{video_id}.mp3",
                    format='mp3',
                )
            except (EmptyTunnelError, requests.Timeout, requests.ConnectionError) as e:
                last_error = e
                if attempt < Config.COBALT_MAX_ATTEMPTS - 1:
                    delay = Config.COBALT_BACKOFF_SECONDS * (2 ** attempt)
                    self.logger.warning(
                        f"⚠️ [COBALT] Attempt {attempt + 1}/{Config.COBALT_MAX_ATTEMPTS} failed: {e}. "
                        f"Retrying in {delay:.0f}s"
                    )
                    time.sleep(delay)

        raise RuntimeError(
            f"Cobalt failed after {Config.COBALT_MAX_ATTEMPTS} attempts: {last_error}"
        )

    def _request_cobalt_url(self, api_url: str, video_id: str) -> str:
        headers = {
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        }
        api_key = self.settings.get('cobalt_key')
        if api_key:
            headers['Authorization'] = f"Api-Key {api_key}"

        response = self.session.post(
            api_url,
            json={
                'url': build_youtube_url(video_id),
                'downloadMode': 'audio',
                'audioFormat': 'mp3',
                'audioBitrate': '64',
            },
            headers=headers,
            timeout=Config.DEFAULT_TIMEOUT,
        )

        if response.status_code in (401, 403):
            raise PermissionError("Cobalt authentication failed - check COBALT_API_KEY")
        if response.status_code != 200:
            raise RuntimeError(f"Cobalt error: {response.status_code}")

        data = response.json()
        if data.get('status') == 'error':
            error = data.get('error') or {}
            message = error.get('message') or error.get('code') if isinstance(error, dict) else error
            raise RuntimeError(message or 'Cobalt download failed')

        download_url = data.get('url')
        if not download_url:
            picker = data.get('picker') or []
            download_url = picker[0].get('url') if picker else None
        if not download_url:
            raise RuntimeError("No download URL from Cobalt")

        return download_url

    # ------------------------------------------------------------------
    # Strategies 3 and 4: Innertube player API
    # ------------------------------------------------------------------

    def download_with_proxy_innertube(self, video_id: str) -> AudioDownloadResult:
        proxy = self.settings.get('residential_proxy')
        if not proxy:
            raise StrategySkipped("RESIDENTIAL_PROXY_URL not configured")
        return self._download_with_innertube(video_id, {'http': proxy, 'https': proxy})

    def download_with_innertube(self, video_id: str) -> AudioDownloadResult:
        return self._download_with_innertube(video_id, None)

    def _download_with_innertube(self, video_id: str, proxies: Optional[Dict[str, str]]) -> AudioDownloadResult:
        player = self._fetch_player_response(video_id, proxies)
        audio_format = self.select_audio_format(player)

        mime_type = audio_format.get('mimeType') or 'audio/webm'
        extension = 'm4a' if 'mp4' in mime_type else 'webm'

        buffer = self._stream_download(audio_format['url'], proxies=proxies)
        if not buffer:
            raise RuntimeError("Downloaded audio stream was empty")

        length = (player.get('videoDetails') or {}).get('lengthSeconds')
        return AudioDownloadResult(
            buffer=buffer,
            filename=f"{video_id}.{extension}",
            format=extension,
            duration=float(length) if length else None,
        )

    def _fetch_player_response(self, video_id: str, proxies: Optional[Dict[str, str]]) -> Dict:
        response = self.session.post(
            INNERTUBE_PLAYER_URL,
            json={
                'context': {'client': INNERTUBE_CLIENT},
                'videoId': video_id,
                'contentCheckOk': True,
                'racyCheckOk': True,
            },
            headers={
                'User-Agent': INNERTUBE_USER_AGENT,
                'Content-Type': 'application/json',
                'X-YouTube-Client-Name': '3',
                'X-YouTube-Client-Version': INNERTUBE_CLIENT['clientVersion'],
            },
            proxies=proxies,
            timeout=Config.DEFAULT_TIMEOUT,
        )
        if response.status_code != 200:
            raise RuntimeError(f"Innertube player request failed: {response.status_code}")

        player = response.json()
        playability = player.get('playabilityStatus') or {}
        if playability.get('status') not in (None, 'OK'):
            reason = playability.get('reason') or playability.get('status')
            raise RuntimeError(f"Video not playable: {reason}")

        if not player.get('streamingData'):
            raise RuntimeError("No streaming data available")

        return player

    @staticmethod
    def select_audio_format(player: Dict) -> Dict:
        """
        Pick the lowest-bitrate audio-only adaptive format with a direct URL

        Raises:
            RuntimeError: If the player response has no usable audio format
        """
        formats = (player.get('streamingData') or {}).get('adaptiveFormats') or []
        audio_formats = [
            f for f in formats
            if (f.get('mimeType') or '').startswith('audio/') and f.get('url')
        ]
        if not audio_formats:
            raise RuntimeError("No audio formats available")

        return min(audio_formats, key=lambda f: f.get('bitrate') or 0)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _stream_download(self, url: str, proxies: Optional[Dict[str, str]] = None) -> bytes:
        """
        Stream a URL into memory

        The read timeout applies between chunks, so a stream that stops
        delivering bytes for stall_timeout seconds raises instead of hanging.
        """
        chunks = []
        total = 0

        with self.session.get(
            url,
            stream=True,
            proxies=proxies,
            timeout=(Config.SHORT_TIMEOUT, self.stall_timeout),
        ) as response:
            if response.status_code != 200:
                raise RuntimeError(f"Failed to download audio: {response.status_code}")

            for chunk in response.iter_content(chunk_size=Config.DOWNLOAD_CHUNK_SIZE):
                if not chunk:
                    continue
                total += len(chunk)
                if total > self.max_bytes:
                    raise RuntimeError(
                        f"Audio too large (>{self.max_bytes / 1024 / 1024:.0f}MB)"
                    )
                chunks.append(chunk)

        return b''.join(chunks)

    def _check_size(self, buffer: bytes):
        if len(buffer) > self.max_bytes:
            raise RuntimeError(
                f"Audio too large ({len(buffer) / 1024 / 1024:.1f}MB)"
            )
