#!/usr/bin/env python3
"""
Error taxonomy shared by the extractor, the dispatchers and the HTTP layer
"""

import json
from typing import Any, Dict, Optional

MAX_ERROR_TEXT = 500


class ReferentError(Exception):
    """Base error carrying a user-facing message and an HTTP status"""

    status = 500
    kind = 'unknown'

    def __init__(self, message: str, status: Optional[int] = None, kind: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        if kind is not None:
            self.kind = kind

    def to_payload(self) -> Dict[str, Any]:
        return {'error': self.message}


class ValidationError(ReferentError):
    """Missing or malformed request field"""
    status = 400
    kind = 'validation'


class ConfigurationError(ReferentError):
    """Required provider configuration (API key) is absent"""
    status = 500
    kind = 'configuration'


class UpstreamTransportError(ReferentError):
    """Network failure reaching the article page or a provider"""
    status = 500
    kind = 'transport'


class UpstreamHTTPError(ReferentError):
    """Non-2xx response from the article page or a provider"""
    kind = 'http'


class UpstreamFormatError(ReferentError):
    """Upstream answered with an unexpected payload or content type"""
    status = 500
    kind = 'format'


class UnknownError(ReferentError):
    """Catch-all"""
    status = 500
    kind = 'unknown'


class ContentMissingError(ReferentError):
    """No usable article text, generation is not attempted"""
    status = 422
    kind = 'content'


class WorkflowBusyError(ReferentError):
    """Another action is still in flight"""
    status = 409
    kind = 'busy'


def message_from_error_body(body: str) -> Optional[str]:
    """
    Pull a human message out of an upstream error body

    Understands the envelopes used by OpenAI-compatible APIs
    ({"error": {"message": ...}}), Hugging Face ({"error": "..."},
    [{"error": "..."}]) and plain {"message"} / {"details"} objects.
    Falls back to the raw text when the body is not JSON.

    Returns:
        Message or None when the body carries nothing useful
    """
    if not body or not body.strip():
        return None

    try:
        data = json.loads(body)
    except ValueError:
        return body.strip()[:MAX_ERROR_TEXT]

    if isinstance(data, list):
        data = data[0] if data and isinstance(data[0], dict) else {}

    if not isinstance(data, dict):
        return None

    error = data.get('error')
    if isinstance(error, dict):
        message = error.get('message')
        if message:
            return str(message)
    elif error:
        return str(error)

    for key in ('message', 'details'):
        if data.get(key):
            return str(data[key])

    return None
