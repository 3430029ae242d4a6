"""
Content Generation Service

Combines stored transcripts, an optional tone profile and Claude to
generate original content, then saves it to generated_content. Featured
images are generated with Gemini from a Claude-suggested concept.
"""

import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional

from core.claude_client import ClaudeClient, fits_in_context
from core.errors import BadRequestError, NotFoundError
from core.prompts import ContentGenerationPrompt, ImagePrompt
from core.text_utils import extract_title
from processors.image_generator import ImageGenerator

logger = logging.getLogger(__name__)


class ContentService:
    """Generate and persist repurposed content"""

    def __init__(self, supabase=None, claude: Optional[ClaudeClient] = None,
                 image_generator: Optional[ImageGenerator] = None):
        self._supabase = supabase
        self._claude = claude
        self._image_generator = image_generator
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
    def image_generator(self) -> ImageGenerator:
        if self._image_generator is None:
            self._image_generator = ImageGenerator()
        return self._image_generator

    def _load_transcripts(self, user_id: str, transcript_ids: List[str]) -> List[str]:
        result = self.supabase.table('transcripts')\
            .select('content')\
            .in_('id', transcript_ids)\
            .eq('user_id', user_id)\
            .execute()

        if not result.data:
            raise NotFoundError("Failed to fetch transcripts")
        return [row['content'] for row in result.data]

    def _load_tone_dna(self, user_id: str, tone_profile_id: Optional[str]) -> Optional[str]:
        if not tone_profile_id:
            return None

        result = self.supabase.table('tone_profiles')\
            .select('style_dna')\
            .eq('id', tone_profile_id)\
            .eq('user_id', user_id)\
            .limit(1)\
            .execute()

        if not result.data:
            self.logger.warning(f"⚠️ Tone profile {tone_profile_id} not found, using default voice")
            return None
        return result.data[0]['style_dna']

    def build_prompts(self, user_id: str, request: Dict) -> Dict[str, str]:
        """
        Assemble system prompt and user message for a generation request

        Raises:
            NotFoundError: If none of the transcripts belong to the user
            BadRequestError: If the prompt would overflow the context window
        """
        transcripts = self._load_transcripts(user_id, request['transcript_ids'])
        tone_dna = self._load_tone_dna(user_id, request.get('tone_profile_id'))

        system_prompt = ContentGenerationPrompt.build_system(
            content_format=request['format'],
            voice=request['voice'],
            tone_dna=tone_dna,
            custom_instructions=request.get('custom_instructions'),
            length_constraint=request.get('length_constraint'),
        )
        user_message = ContentGenerationPrompt.build_user_message(transcripts)

        if not fits_in_context(system_prompt, [{'role': 'user', 'content': user_message}]):
            raise BadRequestError("Selected transcripts are too long to process together")

        return {'system': system_prompt, 'user': user_message}

    def save_content(self, user_id: str, request: Dict, content: str) -> Dict:
        row = {
            'user_id': user_id,
            'transcript_ids': request['transcript_ids'],
            'format': request['format'],
            'voice': request['voice'],
            'content': content,
            'title': extract_title(content, request['format']),
            'tone_profile_id': request.get('tone_profile_id'),
        }

        saved = self.supabase.table('generated_content').insert(row).execute()
        if not saved.data:
            raise RuntimeError("Failed to save content")

        self.logger.info(f"💾 Saved {request['format']} content ({len(content)} chars)")
        return saved.data[0]

    async def generate_from_transcripts(self, user_id: str, request: Dict) -> Dict:
        """
        Generate content from transcripts and save it

        Args:
            user_id: Owner of the transcripts
            request: transcript_ids, format, voice, and optional tone_profile_id,
                custom_instructions, length_constraint

        Returns:
            The saved generated_content row
        """
        prompts = await asyncio.to_thread(self.build_prompts, user_id, request)

        content = await asyncio.to_thread(
            self.claude.generate,
            prompts['system'],
            prompts['user'],
            ContentGenerationPrompt.MAX_TOKENS,
            ContentGenerationPrompt.TEMPERATURE,
        )

        return await asyncio.to_thread(self.save_content, user_id, request, content)

    async def stream_from_transcripts(self, user_id: str, request: Dict) -> AsyncIterator[Dict]:
        """
        Stream generation progress

        Yields:
            {'type': 'token', 'text': ...} for each delta, then
            {'type': 'complete', 'content': <saved row>}
        """
        prompts = await asyncio.to_thread(self.build_prompts, user_id, request)

        parts = []
        async for text in self.claude.stream(
            prompts['system'],
            prompts['user'],
            ContentGenerationPrompt.MAX_TOKENS,
            ContentGenerationPrompt.TEMPERATURE,
        ):
            parts.append(text)
            yield {'type': 'token', 'text': text}

        content = ''.join(parts)
        if not content.strip():
            raise RuntimeError("Claude API returned empty response")

        saved = await asyncio.to_thread(self.save_content, user_id, request, content)
        yield {'type': 'complete', 'content': saved}

    def get_content(self, content_id: str, user_id: str) -> Dict:
        result = self.supabase.table('generated_content')\
            .select('*')\
            .eq('id', content_id)\
            .eq('user_id', user_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise NotFoundError("Content not found")
        return result.data[0]

    def build_image_prompt(self, content: Dict, style: str, mood: str, custom_prompt: Optional[str] = None) -> str:
        """
        Image prompt for a piece of content

        A custom prompt is used as the subject directly. Otherwise Claude
        suggests a concept; if its reply is not usable JSON the content
        title becomes the subject.
        """
        if custom_prompt:
            subject = custom_prompt
        else:
            response = self.claude.generate(
                ImagePrompt.SYSTEM,
                ImagePrompt.build_suggestion_message(content['content'], content.get('format')),
                ImagePrompt.MAX_TOKENS,
                ImagePrompt.TEMPERATURE,
            )
            suggestion = ImagePrompt.parse_suggestion(response)
            if suggestion and suggestion['mainSubject']:
                subject = f"{suggestion['mainSubject']}. {suggestion['composition']}"
            else:
                self.logger.warning("⚠️ Image concept was not valid JSON, using the content title")
                subject = extract_title(content['content'], content.get('format')) or 'Professional content illustration'

        return (
            f"{ImagePrompt.build(subject, style, mood)}\n\n"
            f"DO NOT include: {ImagePrompt.negative_prompt()}"
        )

    def generate_image_for_content(
        self,
        user_id: str,
        content_id: str,
        style: str = 'photorealistic',
        mood: str = 'professional',
        custom_prompt: Optional[str] = None,
        aspect_ratio: str = '16:9',
    ) -> str:
        """
        Generate a featured image and store it on the content row

        Returns:
            The image as a data URL, also saved to generated_content.image_url

        Raises:
            NotFoundError: If the content does not exist
        """
        content = self.get_content(content_id, user_id)
        prompt = self.build_image_prompt(content, style, mood, custom_prompt)

        image_url = self.image_generator.generate_image_data_url(prompt, aspect_ratio)

        self.supabase.table('generated_content')\
            .update({'image_url': image_url})\
            .eq('id', content_id)\
            .eq('user_id', user_id)\
            .execute()
        self.logger.info(f"🖼️ Saved {style}/{mood} image for content {content_id}")
        return image_url
