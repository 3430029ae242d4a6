"""
Webhook Service

Sends generated content to user-configured endpoints. Payloads are built
from a JSON template plus dotted-path field mappings, authenticated per the
webhook's auth type, retried with exponential backoff and logged.
"""

import base64
import copy
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import requests

from core.config import Config
from core.errors import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

AUTH_TYPES = ('none', 'bearer', 'api_key', 'basic', 'custom_header')
HTTP_METHODS = ('POST', 'PUT', 'PATCH')

SAMPLE_CONTENT = {
    'id': '00000000-0000-0000-0000-000000000000',
    'title': 'Test Content Title',
    'content': ('This is a test content body. It demonstrates how your webhook payload '
                'will be structured when triggered with real content.'),
    'format': 'linkedin',
    'voice': 'professional',
    'excerpt': 'This is a test excerpt for the content.',
    'metadata': {
        'wordCount': 25,
        'readingTime': 1,
        'isTest': True,
    },
}


def _child(current: Any, key: str) -> Any:
    if isinstance(current, dict):
        return current.get(key)
    if isinstance(current, list) and key.isdigit() and int(key) < len(current):
        return current[int(key)]
    return None


def get_nested_value(data: Dict, path: str) -> Any:
    """Resolve a dotted path such as 'metadata.wordCount'; list indexes are digits"""
    current: Any = data
    for key in path.split('.'):
        current = _child(current, key)
        if current is None:
            return None
    return current


def _assign(container: Any, key: str, value: Any) -> bool:
    """Store value under key; list indexes past the end pad the list with None"""
    if isinstance(container, list):
        if not key.isdigit():
            return False
        index = int(key)
        if index >= len(container):
            container.extend([None] * (index + 1 - len(container)))
        container[index] = value
        return True
    container[key] = value
    return True


def set_nested_value(data: Dict, path: str, value: Any):
    """Set a dotted path, creating intermediate objects as needed"""
    keys = path.split('.')
    current: Any = data
    for key in keys[:-1]:
        nxt = _child(current, key)
        if not isinstance(nxt, (dict, list)):
            nxt = {}
            if not _assign(current, key, nxt):
                logger.warning(f"⚠️ [WEBHOOK] Cannot set {path!r}: {key!r} is not a list index")
                return
        current = nxt

    if not _assign(current, keys[-1], value):
        logger.warning(f"⚠️ [WEBHOOK] Cannot set {path!r}: {keys[-1]!r} is not a list index")


def build_payload(template: Dict, field_mappings: Dict[str, str], content_data: Dict) -> Dict:
    """
    Build a webhook payload

    Args:
        template: Base JSON body (never mutated)
        field_mappings: payload path -> content path, both dotted
        content_data: Content fields available for mapping

    Returns:
        The template with every mapped field filled in
    """
    payload = copy.deepcopy(template or {})
    for payload_field, content_field in (field_mappings or {}).items():
        set_nested_value(payload, payload_field, get_nested_value(content_data, content_field))
    return payload


def build_auth_headers(auth_type: str, auth_config: Optional[Dict]) -> Dict[str, str]:
    """
    Authentication headers for a webhook

    Incomplete configs produce no headers.
    """
    config = auth_config or {}

    if auth_type == 'bearer':
        if not config.get('token'):
            return {}
        return {'Authorization': f"Bearer {config['token']}"}

    if auth_type == 'api_key':
        if not config.get('header_name') or not config.get('api_key'):
            return {}
        return {config['header_name']: config['api_key']}

    if auth_type == 'basic':
        if not config.get('username') or not config.get('password'):
            return {}
        credentials = base64.b64encode(f"{config['username']}:{config['password']}".encode()).decode()
        return {'Authorization': f"Basic {credentials}"}

    if auth_type == 'custom_header':
        if not config.get('header_name') or not config.get('header_value'):
            return {}
        return {config['header_name']: config['header_value']}

    return {}


def content_row_to_data(content: Dict) -> Dict:
    """Fields of a generated_content row exposed to field mappings, keyed as mappings reference them"""
    return {
        'id': content.get('id'),
        'title': content.get('title'),
        'content': content.get('content'),
        'format': content.get('format'),
        'voice': content.get('voice'),
        'imageUrl': content.get('image_url'),
        'seoData': content.get('seo_data'),
        'createdAt': content.get('created_at'),
    }


class WebhookService:
    """Execute and log outbound webhooks"""

    def __init__(self, supabase=None, session: Optional[requests.Session] = None):
        self._supabase = supabase
        self.session = session or requests.Session()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def supabase(self):
        if self._supabase is None:
            from app.middleware.auth import get_supabase_admin
            self._supabase = get_supabase_admin()
        return self._supabase

    def execute_webhook(self, config: Dict, content_data: Dict) -> Dict:
        """
        Send a webhook, retrying failures

        Args:
            config: webhook_configs row
            content_data: Values for the field mappings

        Raises:
            BadRequestError: Unsupported HTTP method or auth type

        Returns:
            {'success', 'status_code', 'response', 'error', 'duration_ms'}
        """
        method = (config.get('http_method') or 'POST').upper()
        if method not in HTTP_METHODS:
            raise BadRequestError(f"Unsupported webhook HTTP method: {method}")
        auth_type = config.get('auth_type') or 'none'
        if auth_type not in AUTH_TYPES:
            raise BadRequestError(f"Unsupported webhook auth type: {auth_type}")

        start = time.monotonic()
        payload = build_payload(config.get('payload_template'), config.get('field_mappings'), content_data)
        headers = {
            'Content-Type': 'application/json',
            **(config.get('headers') or {}),
            **build_auth_headers(auth_type, config.get('auth_config')),
        }
        retry_count = config.get('retry_count', Config.DEFAULT_RETRIES)
        timeout_ms = config.get('timeout_ms', Config.DEFAULT_TIMEOUT * 1000)

        last_error = None
        status_code = None
        response_body = None

        for attempt in range(retry_count + 1):
            try:
                self.logger.info(f"🔗 [WEBHOOK] {method} {config['endpoint_url']} (attempt {attempt + 1}/{retry_count + 1})")
                response = self.session.request(
                    method,
                    config['endpoint_url'],
                    json=payload,
                    headers=headers,
                    timeout=timeout_ms / 1000,
                )
                status_code = response.status_code
                response_body = response.text

                if response.ok:
                    self.logger.info(f"✅ [WEBHOOK] Delivered with HTTP {status_code}")
                    return {
                        'success': True,
                        'status_code': status_code,
                        'response': response_body,
                        'error': None,
                        'duration_ms': int((time.monotonic() - start) * 1000),
                    }

                last_error = f"HTTP {status_code}: {response_body[:200]}"

            except requests.Timeout:
                last_error = f"Request timeout after {timeout_ms}ms"
            except requests.RequestException as e:
                last_error = str(e)

            self.logger.warning(f"⚠️ [WEBHOOK] Attempt {attempt + 1} failed: {last_error}")

            if attempt < retry_count:
                time.sleep(2 ** attempt)

        return {
            'success': False,
            'status_code': status_code,
            'response': response_body,
            'error': last_error,
            'duration_ms': int((time.monotonic() - start) * 1000),
        }

    def log_webhook_execution(self, webhook_id: str, content_id: Optional[str], result: Dict, payload: Dict):
        self.supabase.table('webhook_logs').insert({
            'webhook_id': webhook_id,
            'content_id': content_id,
            'status': 'success' if result['success'] else 'failed',
            'status_code': result.get('status_code'),
            'request_payload': payload,
            'response_body': (result.get('response') or '')[:Config.MAX_RESPONSE_BODY_CHARS] or None,
            'error_message': result.get('error'),
            'duration_ms': result.get('duration_ms'),
            'executed_at': datetime.now(timezone.utc).isoformat(),
        }).execute()

    def get_webhook(self, webhook_id: str, user_id: str) -> Optional[Dict]:
        result = self.supabase.table('webhook_configs')\
            .select('*')\
            .eq('id', webhook_id)\
            .eq('user_id', user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def list_webhooks(self, user_id: str) -> List[Dict]:
        result = self.supabase.table('webhook_configs')\
            .select('*')\
            .eq('user_id', user_id)\
            .order('created_at', desc=True)\
            .execute()
        return result.data or []

    def trigger_webhook(self, user_id: str, webhook_id: str, content_id: str) -> Dict:
        """
        Send a piece of generated content through a webhook and log it

        Raises:
            NotFoundError: Webhook or content missing
            BadRequestError: Webhook disabled

        Returns:
            Execution result; callers report failures as 502
        """
        webhook = self.get_webhook(webhook_id, user_id)
        if not webhook:
            raise NotFoundError("Webhook not found")
        if not webhook.get('enabled', True):
            raise BadRequestError("Webhook is disabled")

        content = self.supabase.table('generated_content')\
            .select('*')\
            .eq('id', content_id)\
            .eq('user_id', user_id)\
            .limit(1)\
            .execute()
        if not content.data:
            raise NotFoundError("Content not found")

        content_data = content_row_to_data(content.data[0])
        payload = build_payload(webhook.get('payload_template'), webhook.get('field_mappings'), content_data)

        result = self.execute_webhook(webhook, content_data)
        self.log_webhook_execution(webhook_id, content_id, result, payload)
        return result

    def test_webhook(self, user_id: str, webhook_id: str, test_data: Optional[Dict] = None) -> Dict:
        """
        Send sample content through a webhook without logging

        Returns:
            Execution result plus sent_payload and a message
        """
        webhook = self.get_webhook(webhook_id, user_id)
        if not webhook:
            raise NotFoundError("Webhook not found")

        sample = {
            **copy.deepcopy(SAMPLE_CONTENT),
            'createdAt': datetime.now(timezone.utc).isoformat(),
            **(test_data or {}),
        }
        payload = build_payload(webhook.get('payload_template'), webhook.get('field_mappings'), sample)
        result = self.execute_webhook(webhook, sample)

        return {
            **result,
            'sent_payload': payload,
            'message': 'Webhook test successful!' if result['success'] else f"Webhook test failed: {result['error']}",
        }

    def get_webhook_logs(self, webhook_id: str, user_id: str, limit: int = 50) -> List[Dict]:
        if not self.get_webhook(webhook_id, user_id):
            raise NotFoundError("Webhook not found")

        result = self.supabase.table('webhook_logs')\
            .select('*')\
            .eq('webhook_id', webhook_id)\
            .order('executed_at', desc=True)\
            .limit(limit)\
            .execute()
        return result.data or []
