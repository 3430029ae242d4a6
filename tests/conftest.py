"""
Shared pytest fixtures for content repurposer backend tests

This file contains fixtures that are available to all test files.
"""

import pytest
from types import SimpleNamespace
from typing import Dict, List, Optional


class FakeQuery:
    """
    Chainable stand-in for a supabase-py query builder

    Every builder method (select, eq, insert, update, ...) is recorded and
    returns the query. execute() pops the next queued result for the table.
    """

    def __init__(self, table_name: str, results: Dict[str, List]):
        self.table_name = table_name
        self.calls = []
        self._results = results

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def execute(self):
        queue = self._results.get(self.table_name) or []
        data = queue.pop(0) if queue else []
        if isinstance(data, Exception):
            raise data
        return SimpleNamespace(data=data)

    def called(self, name: str) -> List:
        return [(args, kwargs) for method, args, kwargs in self.calls if method == name]


class FakeSupabase:
    """Supabase client whose tables return queued rows"""

    def __init__(self, results: Optional[Dict[str, List]] = None):
        self.results = {table: list(rows) for table, rows in (results or {}).items()}
        self.queries: List[FakeQuery] = []

    def queue(self, table: str, *results):
        self.results.setdefault(table, []).extend(results)

    def table(self, name: str) -> FakeQuery:
        query = FakeQuery(name, self.results)
        self.queries.append(query)
        return query

    def queries_for(self, table: str) -> List[FakeQuery]:
        return [q for q in self.queries if q.table_name == table]

    def payloads(self, table: str, method: str) -> List:
        """First positional argument of every insert/update on a table"""
        return [args[0] for q in self.queries_for(table) for args, _ in q.called(method)]


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    """Empty fake Supabase client; queue rows with fake_supabase.queue(table, rows)"""
    return FakeSupabase()


@pytest.fixture
def sample_urls() -> Dict[str, str]:
    """Sample YouTube URLs for testing"""
    return {
        'watch': 'https://www.youtube.com/watch?v=dQw4w9WgXcQ',
        'watch_with_params': 'https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42s&list=PL123',
        'short_link': 'https://youtu.be/dQw4w9WgXcQ',
        'embed': 'https://www.youtube.com/embed/dQw4w9WgXcQ',
        'shorts': 'https://www.youtube.com/shorts/dQw4w9WgXcQ',
        'live': 'https://www.youtube.com/live/dQw4w9WgXcQ',
        'bare_id': 'dQw4w9WgXcQ',
        'vimeo': 'https://vimeo.com/123456789',
        'blog_post': 'https://example.com/blog/my-article',
    }


@pytest.fixture
def sample_video_id() -> str:
    return 'dQw4w9WgXcQ'


@pytest.fixture
def sample_script() -> Dict:
    """A parsed two-host podcast script"""
    return {
        'title': 'Why Habits Beat Goals',
        'description': 'Alex and Jamie dig into systems thinking.',
        'segments': [
            {'speaker': 'Alex', 'text': 'Welcome back to the show everyone.', 'emotion': 'warm', 'duration': 3},
            {'speaker': 'Jamie', 'text': 'Today we are talking about habits and why they matter.',
             'emotion': 'excited', 'duration': 4},
            {'speaker': 'Alex', 'text': 'So goals are useless?', 'emotion': 'curious', 'duration': 2},
        ],
        'keyTakeaways': ['Systems beat goals', 'Start small'],
    }


@pytest.fixture
def sample_webhook() -> Dict:
    """A webhook_configs row"""
    return {
        'id': 'wh-1',
        'user_id': 'user-123',
        'name': 'Publish to CMS',
        'endpoint_url': 'https://hooks.example.com/publish',
        'http_method': 'POST',
        'auth_type': 'bearer',
        'auth_config': {'token': 'secret-token'},
        'headers': {'X-Source': 'repurposer'},
        'payload_template': {'post': {'status': 'draft'}},
        'field_mappings': {'post.title': 'title', 'post.body': 'content'},
        'retry_count': 2,
        'timeout_ms': 5000,
        'enabled': True,
    }


@pytest.fixture
def sample_content_row() -> Dict:
    """A generated_content row"""
    return {
        'id': 'content-1',
        'user_id': 'user-123',
        'title': 'Habits Beat Goals',
        'content': '# Habits Beat Goals\n\nSystems matter more than targets.',
        'format': 'blog-short',
        'voice': 'professional',
        'created_at': '2024-10-23T12:00:00+00:00',
    }
