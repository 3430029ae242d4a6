"""
Tests for app/services/webhook_service.py

HTTP calls go through a mocked requests.Session; backoff sleeps are patched.
"""

import base64
import pytest
import requests
from unittest.mock import Mock, patch

from app.services.webhook_service import (
    WebhookService,
    build_auth_headers,
    build_payload,
    content_row_to_data,
    get_nested_value,
    set_nested_value,
)
from core.errors import BadRequestError, NotFoundError


def http_response(status_code, text=''):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = text
    return response


@pytest.fixture
def mock_session():
    return Mock(spec=requests.Session)


@pytest.fixture
def service(fake_supabase, mock_session):
    return WebhookService(supabase=fake_supabase, session=mock_session)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch('app.services.webhook_service.time.sleep') as sleep:
        yield sleep


class TestNestedValues:
    """Tests for get_nested_value() and set_nested_value()"""

    @pytest.mark.unit
    def test_get_nested(self):
        data = {'metadata': {'wordCount': 25}, 'tags': ['a', 'b']}
        assert get_nested_value(data, 'metadata.wordCount') == 25
        assert get_nested_value(data, 'tags.1') == 'b'

    @pytest.mark.unit
    def test_get_missing_path(self):
        assert get_nested_value({'a': {'b': 1}}, 'a.c.d') is None
        assert get_nested_value({'tags': ['a']}, 'tags.5') is None

    @pytest.mark.unit
    def test_set_creates_intermediate_objects(self):
        data = {}
        set_nested_value(data, 'post.meta.title', 'Hello')
        assert data == {'post': {'meta': {'title': 'Hello'}}}

    @pytest.mark.unit
    def test_set_replaces_scalar_parent(self):
        """Should overwrite a non-object on the path with an object"""
        data = {'post': 'draft'}
        set_nested_value(data, 'post.title', 'Hello')
        assert data == {'post': {'title': 'Hello'}}

    @pytest.mark.unit
    def test_set_list_index(self):
        data = {'blocks': [{'text': ''}, {'text': ''}]}
        set_nested_value(data, 'blocks.1.text', 'Second')
        assert data['blocks'][1] == {'text': 'Second'}

    @pytest.mark.unit
    def test_set_list_index_past_end(self):
        """Should pad the list with None up to the index"""
        data = {'tags': ['a']}
        set_nested_value(data, 'tags.3', 'd')
        assert data['tags'] == ['a', None, None, 'd']

    @pytest.mark.unit
    def test_set_creates_list_element(self):
        """Should create the element when an index path reaches into an empty list"""
        payload = build_payload(
            {'properties': {'Name': {'title': []}}},
            {'properties.Name.title.0.text.content': 'title'},
            {'title': 'T'},
        )
        assert payload == {'properties': {'Name': {'title': [{'text': {'content': 'T'}}]}}}

    @pytest.mark.unit
    def test_set_named_key_on_list_is_skipped(self):
        data = {'tags': ['a']}
        set_nested_value(data, 'tags.first', 'x')
        assert data == {'tags': ['a']}


class TestBuildPayload:
    """Tests for build_payload()"""

    @pytest.mark.unit
    def test_fills_mapped_fields(self, sample_webhook):
        """Should copy the template and fill every mapping"""
        payload = build_payload(
            sample_webhook['payload_template'],
            sample_webhook['field_mappings'],
            {'title': 'Habits', 'content': 'Body text'},
        )

        assert payload == {'post': {'status': 'draft', 'title': 'Habits', 'body': 'Body text'}}
        assert sample_webhook['payload_template'] == {'post': {'status': 'draft'}}

    @pytest.mark.unit
    def test_missing_content_field_is_none(self):
        assert build_payload({}, {'image': 'imageUrl'}, {}) == {'image': None}

    @pytest.mark.unit
    def test_empty_template(self):
        assert build_payload(None, None, {'title': 'x'}) == {}

    @pytest.mark.unit
    def test_content_row_uses_mapping_names(self, sample_content_row):
        """Should expose imageUrl, seoData and createdAt to field mappings"""
        row = {**sample_content_row, 'image_url': 'https://cdn/img.png', 'seo_data': {'slug': 'habits'}}

        payload = build_payload(
            {},
            {'createdAt': 'createdAt', 'image': 'imageUrl', 'slug': 'seoData.slug'},
            content_row_to_data(row),
        )

        assert payload == {
            'createdAt': '2024-10-23T12:00:00+00:00',
            'image': 'https://cdn/img.png',
            'slug': 'habits',
        }


class TestBuildAuthHeaders:
    """Tests for build_auth_headers()"""

    @pytest.mark.unit
    def test_bearer(self):
        assert build_auth_headers('bearer', {'token': 'abc'}) == {'Authorization': 'Bearer abc'}

    @pytest.mark.unit
    def test_api_key(self):
        headers = build_auth_headers('api_key', {'header_name': 'X-API-Key', 'api_key': 'k1'})
        assert headers == {'X-API-Key': 'k1'}

    @pytest.mark.unit
    def test_basic(self):
        headers = build_auth_headers('basic', {'username': 'user', 'password': 'pass'})
        assert headers == {'Authorization': 'Basic ' + base64.b64encode(b'user:pass').decode()}

    @pytest.mark.unit
    def test_custom_header(self):
        headers = build_auth_headers('custom_header', {'header_name': 'X-Sig', 'header_value': 'v'})
        assert headers == {'X-Sig': 'v'}

    @pytest.mark.unit
    def test_incomplete_configs(self):
        """Should send no auth rather than a half-built header"""
        assert build_auth_headers('bearer', {}) == {}
        assert build_auth_headers('api_key', {'header_name': 'X-API-Key'}) == {}
        assert build_auth_headers('basic', {'username': 'user'}) == {}
        assert build_auth_headers('none', None) == {}


class TestExecuteWebhook:
    """Tests for execute_webhook() method"""

    @pytest.mark.unit
    def test_success(self, service, mock_session, sample_webhook, no_sleep):
        """Should send the payload with merged headers and stop after success"""
        mock_session.request.return_value = http_response(201, '{"id": 7}')

        result = service.execute_webhook(sample_webhook, {'title': 'Habits', 'content': 'Body'})

        assert result['success'] is True
        assert result['status_code'] == 201
        assert result['response'] == '{"id": 7}'
        assert result['error'] is None
        method, url = mock_session.request.call_args.args
        kwargs = mock_session.request.call_args.kwargs
        assert (method, url) == ('POST', 'https://hooks.example.com/publish')
        assert kwargs['json']['post']['title'] == 'Habits'
        assert kwargs['headers']['Authorization'] == 'Bearer secret-token'
        assert kwargs['headers']['X-Source'] == 'repurposer'
        assert kwargs['headers']['Content-Type'] == 'application/json'
        assert kwargs['timeout'] == 5
        no_sleep.assert_not_called()

    @pytest.mark.unit
    def test_retries_with_backoff(self, service, mock_session, sample_webhook, no_sleep):
        """Should retry failed attempts with 1s, 2s backoff"""
        mock_session.request.side_effect = [
            http_response(500, 'boom'),
            requests.Timeout(),
            http_response(200, 'ok'),
        ]

        result = service.execute_webhook(sample_webhook, {})

        assert result['success'] is True
        assert mock_session.request.call_count == 3
        assert [c.args[0] for c in no_sleep.call_args_list] == [1, 2]

    @pytest.mark.unit
    def test_gives_up_after_retries(self, service, mock_session, sample_webhook):
        """Should report the last failure once retries are exhausted"""
        mock_session.request.return_value = http_response(503, 'Service Unavailable')

        result = service.execute_webhook(sample_webhook, {})

        assert result['success'] is False
        assert result['status_code'] == 503
        assert result['error'] == 'HTTP 503: Service Unavailable'
        assert mock_session.request.call_count == 3

    @pytest.mark.unit
    def test_timeout_message(self, service, mock_session, sample_webhook):
        mock_session.request.side_effect = requests.Timeout()

        result = service.execute_webhook({**sample_webhook, 'retry_count': 0}, {})

        assert result['error'] == 'Request timeout after 5000ms'
        assert result['status_code'] is None

    @pytest.mark.unit
    def test_connection_error(self, service, mock_session, sample_webhook):
        mock_session.request.side_effect = requests.ConnectionError("Name or service not known")

        result = service.execute_webhook({**sample_webhook, 'retry_count': 0}, {})

        assert result['success'] is False
        assert 'Name or service not known' in result['error']

    @pytest.mark.unit
    def test_lowercase_method(self, service, mock_session, sample_webhook):
        mock_session.request.return_value = http_response(200, 'ok')

        service.execute_webhook({**sample_webhook, 'http_method': 'put'}, {})

        assert mock_session.request.call_args.args[0] == 'PUT'

    @pytest.mark.unit
    @pytest.mark.parametrize('override,message', [
        ({'http_method': 'DELETE'}, 'HTTP method: DELETE'),
        ({'auth_type': 'oauth'}, 'auth type: oauth'),
    ])
    def test_rejects_unsupported_config(self, service, mock_session, sample_webhook, override, message):
        """Should refuse methods and auth types webhooks cannot use"""
        with pytest.raises(BadRequestError, match=message):
            service.execute_webhook({**sample_webhook, **override}, {})
        mock_session.request.assert_not_called()


class TestTriggerWebhook:
    """Tests for trigger_webhook() method"""

    @pytest.mark.unit
    def test_delivers_and_logs(self, service, fake_supabase, mock_session, sample_webhook, sample_content_row):
        """Should map the content row into the payload and log the result"""
        fake_supabase.queue('webhook_configs', [sample_webhook])
        fake_supabase.queue('generated_content', [sample_content_row])
        mock_session.request.return_value = http_response(200, 'ok')

        result = service.trigger_webhook('user-123', 'wh-1', 'content-1')

        assert result['success'] is True
        log = fake_supabase.payloads('webhook_logs', 'insert')[0]
        assert log['webhook_id'] == 'wh-1'
        assert log['content_id'] == 'content-1'
        assert log['status'] == 'success'
        assert log['request_payload']['post']['title'] == 'Habits Beat Goals'
        assert log['response_body'] == 'ok'

    @pytest.mark.unit
    def test_logs_failures(self, service, fake_supabase, mock_session, sample_webhook, sample_content_row):
        fake_supabase.queue('webhook_configs', [{**sample_webhook, 'retry_count': 0}])
        fake_supabase.queue('generated_content', [sample_content_row])
        mock_session.request.return_value = http_response(400, 'bad')

        result = service.trigger_webhook('user-123', 'wh-1', 'content-1')

        assert result['success'] is False
        log = fake_supabase.payloads('webhook_logs', 'insert')[0]
        assert log['status'] == 'failed'
        assert log['error_message'] == 'HTTP 400: bad'

    @pytest.mark.unit
    def test_unknown_webhook(self, service):
        with pytest.raises(NotFoundError, match="Webhook not found"):
            service.trigger_webhook('user-123', 'missing', 'content-1')

    @pytest.mark.unit
    def test_disabled_webhook(self, service, fake_supabase, sample_webhook, mock_session):
        """Should refuse disabled webhooks without sending anything"""
        fake_supabase.queue('webhook_configs', [{**sample_webhook, 'enabled': False}])

        with pytest.raises(BadRequestError):
            service.trigger_webhook('user-123', 'wh-1', 'content-1')
        mock_session.request.assert_not_called()

    @pytest.mark.unit
    def test_unknown_content(self, service, fake_supabase, sample_webhook):
        fake_supabase.queue('webhook_configs', [sample_webhook])
        with pytest.raises(NotFoundError, match="Content not found"):
            service.trigger_webhook('user-123', 'wh-1', 'missing')


class TestTestWebhook:
    """Tests for test_webhook() and get_webhook_logs()"""

    @pytest.mark.unit
    def test_sends_sample_content(self, service, fake_supabase, mock_session, sample_webhook):
        """Should send sample content, report the payload and skip logging"""
        fake_supabase.queue('webhook_configs', [sample_webhook])
        mock_session.request.return_value = http_response(200, 'ok')

        result = service.test_webhook('user-123', 'wh-1')

        assert result['message'] == 'Webhook test successful!'
        assert result['sent_payload']['post']['title'] == 'Test Content Title'
        assert fake_supabase.payloads('webhook_logs', 'insert') == []

    @pytest.mark.unit
    def test_sample_has_created_at(self, service, fake_supabase, mock_session, sample_webhook):
        """Should fill createdAt mappings from the sample content"""
        fake_supabase.queue('webhook_configs', [{**sample_webhook, 'field_mappings': {'createdAt': 'createdAt'}}])
        mock_session.request.return_value = http_response(200, 'ok')

        result = service.test_webhook('user-123', 'wh-1')

        assert result['sent_payload']['createdAt'].startswith('20')

    @pytest.mark.unit
    def test_override_data(self, service, fake_supabase, mock_session, sample_webhook):
        fake_supabase.queue('webhook_configs', [{**sample_webhook, 'retry_count': 0}])
        mock_session.request.return_value = http_response(500, 'down')

        result = service.test_webhook('user-123', 'wh-1', {'title': 'Custom'})

        assert result['sent_payload']['post']['title'] == 'Custom'
        assert result['message'] == 'Webhook test failed: HTTP 500: down'

    @pytest.mark.unit
    def test_logs_require_owned_webhook(self, service):
        with pytest.raises(NotFoundError):
            service.get_webhook_logs('missing', 'user-123')

    @pytest.mark.unit
    def test_logs(self, service, fake_supabase, sample_webhook):
        fake_supabase.queue('webhook_configs', [sample_webhook])
        fake_supabase.queue('webhook_logs', [{'id': 'log-1', 'status': 'success'}])

        logs = service.get_webhook_logs('wh-1', 'user-123', limit=10)

        assert logs == [{'id': 'log-1', 'status': 'success'}]
        query = fake_supabase.queries_for('webhook_logs')[0]
        assert query.called('limit') == [((10,), {})]
