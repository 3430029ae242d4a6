"""
Tests for app/services/content_service.py

Supabase and Claude are faked; async methods run under asyncio.run.
"""

import asyncio
import pytest
from unittest.mock import MagicMock

from app.services.content_service import ContentService
from core.claude_client import ClaudeClient
from core.errors import BadRequestError, NotFoundError
from core.prompts import ImagePrompt
from processors.image_generator import ImageGenerator

IMAGE_URL = "data:image/png;base64,aW1hZ2U="


@pytest.fixture
def mock_claude():
    return MagicMock(spec=ClaudeClient)


@pytest.fixture
def mock_image_generator():
    generator = MagicMock(spec=ImageGenerator)
    generator.generate_image_data_url.return_value = IMAGE_URL
    return generator


@pytest.fixture
def service(fake_supabase, mock_claude, mock_image_generator):
    return ContentService(supabase=fake_supabase, claude=mock_claude, image_generator=mock_image_generator)


@pytest.fixture
def request_data():
    return {
        'transcript_ids': ['t1', 't2'],
        'format': 'linkedin',
        'voice': 'professional',
        'tone_profile_id': None,
        'custom_instructions': None,
        'length_constraint': None,
    }


class TestBuildPrompts:
    """Tests for build_prompts() method"""

    @pytest.mark.unit
    def test_loads_user_transcripts(self, service, fake_supabase, request_data):
        """Should load only the user's transcripts and number them"""
        fake_supabase.queue('transcripts', [{'content': 'First transcript'}, {'content': 'Second transcript'}])

        prompts = service.build_prompts('user-123', request_data)

        assert '--- TRANSCRIPT 1 ---\nFirst transcript' in prompts['user']
        assert 'LINKEDIN-SPECIFIC REQUIREMENTS' in prompts['system']
        query = fake_supabase.queries_for('transcripts')[0]
        assert query.called('in_') == [(('id', ['t1', 't2']), {})]
        assert (('user_id', 'user-123'), {}) in query.called('eq')

    @pytest.mark.unit
    def test_no_transcripts(self, service, request_data):
        """Should raise NotFoundError when nothing belongs to the user"""
        with pytest.raises(NotFoundError):
            service.build_prompts('user-123', request_data)

    @pytest.mark.unit
    def test_tone_profile(self, service, fake_supabase, request_data):
        """Should ghostwrite in the stored style for the custom voice"""
        fake_supabase.queue('transcripts', [{'content': 'Transcript'}])
        fake_supabase.queue('tone_profiles', [{'style_dna': 'Writes in lowercase.'}])

        prompts = service.build_prompts('user-123', {
            **request_data, 'voice': 'custom', 'tone_profile_id': 'tone-1',
        })

        assert 'Writes in lowercase.' in prompts['system']
        assert prompts['system'].startswith('You are a ghostwriter')

    @pytest.mark.unit
    def test_missing_tone_profile_uses_default(self, service, fake_supabase, request_data):
        """Should fall back to the base prompt when the profile is missing"""
        fake_supabase.queue('transcripts', [{'content': 'Transcript'}])

        prompts = service.build_prompts('user-123', {**request_data, 'tone_profile_id': 'gone'})

        assert 'ghostwriter' not in prompts['system']

    @pytest.mark.unit
    def test_context_overflow(self, service, fake_supabase, request_data):
        """Should refuse transcripts that do not fit in the context window"""
        fake_supabase.queue('transcripts', [{'content': 'x' * 800_000}])

        with pytest.raises(BadRequestError, match="too long"):
            service.build_prompts('user-123', request_data)


class TestGenerate:
    """Tests for generate_from_transcripts() and stream_from_transcripts()"""

    @pytest.mark.unit
    def test_generates_and_saves(self, service, fake_supabase, mock_claude, request_data):
        """Should save Claude's output with a derived title"""
        fake_supabase.queue('transcripts', [{'content': 'Transcript'}])
        fake_supabase.queue('generated_content', [{'id': 'content-1'}])
        mock_claude.generate.return_value = 'Hook line here\n\nBody of the post.'

        saved = asyncio.run(service.generate_from_transcripts('user-123', request_data))

        assert saved == {'id': 'content-1'}
        row = fake_supabase.payloads('generated_content', 'insert')[0]
        assert row['title'] == 'Hook line here'
        assert row['format'] == 'linkedin'
        assert row['transcript_ids'] == ['t1', 't2']
        assert row['user_id'] == 'user-123'

    @pytest.mark.unit
    def test_save_failure(self, service, fake_supabase, mock_claude, request_data):
        """Should raise when the insert returns no row"""
        fake_supabase.queue('transcripts', [{'content': 'Transcript'}])
        mock_claude.generate.return_value = 'Content'

        with pytest.raises(RuntimeError, match="Failed to save content"):
            asyncio.run(service.generate_from_transcripts('user-123', request_data))

    @pytest.mark.unit
    def test_stream_yields_tokens_then_complete(self, service, fake_supabase, mock_claude, request_data):
        """Should stream deltas and finish with the saved row"""
        fake_supabase.queue('transcripts', [{'content': 'Transcript'}])
        fake_supabase.queue('generated_content', [{'id': 'content-2'}])

        async def fake_stream(*args, **kwargs):
            for part in ['Hello ', 'world']:
                yield part

        mock_claude.stream = fake_stream

        async def collect():
            return [event async for event in service.stream_from_transcripts('user-123', request_data)]

        events = asyncio.run(collect())

        assert events == [
            {'type': 'token', 'text': 'Hello '},
            {'type': 'token', 'text': 'world'},
            {'type': 'complete', 'content': {'id': 'content-2'}},
        ]
        assert fake_supabase.payloads('generated_content', 'insert')[0]['content'] == 'Hello world'


class TestGetContent:
    """Tests for get_content() method"""

    @pytest.mark.unit
    def test_found(self, service, fake_supabase):
        fake_supabase.queue('generated_content', [{'id': 'content-1', 'content': 'Body'}])
        assert service.get_content('content-1', 'user-123')['content'] == 'Body'

    @pytest.mark.unit
    def test_not_found(self, service):
        with pytest.raises(NotFoundError):
            service.get_content('missing', 'user-123')


class TestBuildImagePrompt:
    """Tests for build_image_prompt() method"""

    @pytest.fixture
    def content(self):
        return {'id': 'content-1', 'format': 'blog-long', 'content': '# Why Habits Beat Goals\n\nBody text.'}

    @pytest.mark.unit
    def test_custom_prompt_skips_claude(self, service, mock_claude, content):
        """Should use the custom prompt as the subject without asking Claude"""
        prompt = service.build_image_prompt(content, 'minimalist', 'soft-light', 'A single paper boat on still water')

        mock_claude.generate.assert_not_called()
        assert 'A single paper boat on still water' in prompt
        assert prompt.startswith('Minimalist')
        assert prompt.endswith('DO NOT include: ' + ImagePrompt.negative_prompt())

    @pytest.mark.unit
    def test_uses_claude_concept(self, service, mock_claude, content):
        """Should build the subject from Claude's suggested concept"""
        mock_claude.generate.return_value = (
            '```json\n{"mainSubject": "A runner on an endless staircase", '
            '"composition": "Low angle, centered", "colorPalette": "warm oranges"}\n```'
        )

        prompt = service.build_image_prompt(content, 'photorealistic', 'professional')

        assert 'A runner on an endless staircase. Low angle, centered' in prompt
        system, message = mock_claude.generate.call_args.args[:2]
        assert system == ImagePrompt.SYSTEM
        assert 'Create an image prompt for the following blog-long' in message

    @pytest.mark.unit
    def test_falls_back_to_title(self, service, mock_claude, content):
        """Should use the content title when the concept is not valid JSON"""
        mock_claude.generate.return_value = 'Sorry, here is an idea: stairs'

        prompt = service.build_image_prompt(content, 'photorealistic', 'professional')

        assert 'Why Habits Beat Goals' in prompt


class TestGenerateImageForContent:
    """Tests for generate_image_for_content() method"""

    @pytest.mark.unit
    def test_saves_image_url(self, service, fake_supabase, mock_image_generator):
        """Should generate the image and store it on the user's content row"""
        fake_supabase.queue('generated_content', [{'id': 'content-1', 'format': 'linkedin', 'content': 'Body'}])

        image_url = service.generate_image_for_content(
            'user-123', 'content-1', custom_prompt='A lighthouse at dusk', aspect_ratio='1:1'
        )

        assert image_url == IMAGE_URL
        prompt, aspect_ratio = mock_image_generator.generate_image_data_url.call_args.args
        assert 'A lighthouse at dusk' in prompt
        assert aspect_ratio == '1:1'
        assert fake_supabase.payloads('generated_content', 'update') == [{'image_url': IMAGE_URL}]
        update = fake_supabase.queries_for('generated_content')[1]
        assert update.called('eq') == [(('id', 'content-1'), {}), (('user_id', 'user-123'), {})]

    @pytest.mark.unit
    def test_unknown_content(self, service, mock_image_generator):
        """Should raise NotFoundError without calling Gemini"""
        with pytest.raises(NotFoundError):
            service.generate_image_for_content('user-123', 'missing')

        mock_image_generator.generate_image_data_url.assert_not_called()
