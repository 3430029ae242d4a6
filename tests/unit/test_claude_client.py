"""
Tests for core/claude_client.py

The Anthropic SDK is mocked; no API calls are made.
"""

import asyncio
import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from core.claude_client import ClaudeClient, estimate_tokens, fits_in_context


def _message(text, stop_reason='end_turn'):
    return SimpleNamespace(
        content=[SimpleNamespace(type='text', text=text)],
        usage=SimpleNamespace(input_tokens=12, output_tokens=34),
        stop_reason=stop_reason,
    )


@pytest.fixture
def mock_anthropic():
    with patch('core.claude_client.anthropic') as mock_module:
        yield mock_module


@pytest.fixture
def client(mock_anthropic):
    return ClaudeClient(api_key='test-key')


class TestTokenEstimates:
    """Tests for estimate_tokens() and fits_in_context()"""

    @pytest.mark.unit
    def test_estimate_tokens(self):
        """Should assume about four characters per token"""
        assert estimate_tokens('a' * 8) == 2
        assert estimate_tokens('a' * 9) == 3

    @pytest.mark.unit
    def test_fits_with_buffer(self):
        """Should keep a 10% buffer below the context size"""
        assert fits_in_context('a' * 100, [{'role': 'user', 'content': 'b' * 200}], max_context_tokens=100)
        assert not fits_in_context('a' * 200, [{'role': 'user', 'content': 'b' * 160}], max_context_tokens=100)


class TestClaudeClient:
    """Tests for ClaudeClient"""

    @pytest.mark.unit
    def test_requires_api_key(self, mock_anthropic, monkeypatch):
        """Should raise without an API key"""
        monkeypatch.delenv('ANTHROPIC_API_KEY', raising=False)
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            ClaudeClient()

    @pytest.mark.unit
    def test_generate_response(self, client):
        """Should join text blocks and report usage"""
        client.client.messages.create.return_value = _message('Generated text')

        result = client.generate_response('system', [{'role': 'user', 'content': 'hi'}],
                                          stop_sequences=['END'])

        assert result == {
            'content': 'Generated text',
            'usage': {'input_tokens': 12, 'output_tokens': 34},
            'stop_reason': 'end_turn',
        }
        kwargs = client.client.messages.create.call_args.kwargs
        assert kwargs['system'] == 'system'
        assert kwargs['stop_sequences'] == ['END']

    @pytest.mark.unit
    def test_generate_returns_text(self, client):
        """Should return the content of a single-turn call"""
        client.client.messages.create.return_value = _message('Hello')
        assert client.generate('system', 'user message', max_tokens=100, temperature=0.2) == 'Hello'

        kwargs = client.client.messages.create.call_args.kwargs
        assert kwargs['messages'] == [{'role': 'user', 'content': 'user message'}]
        assert kwargs['max_tokens'] == 100

    @pytest.mark.unit
    def test_generate_empty_response(self, client):
        """Should raise when Claude returns only whitespace"""
        client.client.messages.create.return_value = _message('   ')
        with pytest.raises(RuntimeError, match="empty response"):
            client.generate('system', 'user')

    @pytest.mark.unit
    def test_api_error_propagates(self, client):
        """Should re-raise API exceptions"""
        client.client.messages.create.side_effect = Exception("overloaded")
        with pytest.raises(Exception, match="overloaded"):
            client.generate('system', 'user')

    @pytest.mark.unit
    def test_stream_yields_deltas(self, client, mock_anthropic):
        """Should yield each text delta from the streaming API"""

        async def text_stream():
            for part in ['Hel', 'lo']:
                yield part

        stream = MagicMock()
        stream.text_stream = text_stream()
        context = MagicMock()
        context.__aenter__.return_value = stream
        context.__aexit__.return_value = False
        mock_anthropic.AsyncAnthropic.return_value.messages.stream.return_value = context

        async def collect():
            return [text async for text in client.stream('system', 'user')]

        assert asyncio.run(collect()) == ['Hel', 'lo']
