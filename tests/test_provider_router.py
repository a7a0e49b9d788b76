"""
Tests for provider resolution
"""

import pytest

from llm.provider_router import PROVIDER_TABLE, Provider, parse_provider, resolve_provider
from utils.errors import ConfigurationError


class TestParseProvider:
    """Provider names, aliases and the default"""

    def test_names(self):
        assert parse_provider('openai') is Provider.OPENAI
        assert parse_provider('perplexity') is Provider.PERPLEXITY
        assert parse_provider('OpenRouter') is Provider.OPENROUTER

    def test_aliases(self):
        assert parse_provider('primary') is Provider.OPENAI
        assert parse_provider('secondary') is Provider.PERPLEXITY
        assert parse_provider('tertiary') is Provider.OPENROUTER

    def test_default_is_secondary(self):
        assert parse_provider(None) is Provider.PERPLEXITY
        assert parse_provider('') is Provider.PERPLEXITY
        assert parse_provider('claude') is Provider.PERPLEXITY

    def test_configured_default(self):
        assert parse_provider(None, 'openrouter') is Provider.OPENROUTER
        assert parse_provider('unknown', 'nonsense') is Provider.PERPLEXITY


def test_every_provider_has_defaults():
    assert set(PROVIDER_TABLE) == set(Provider)


def test_resolve_defaults(make_config):
    config = make_config(PERPLEXITY_API_KEY='pplx-key')

    resolved = resolve_provider(config)

    assert resolved.provider is Provider.PERPLEXITY
    assert resolved.api_key == 'pplx-key'
    assert resolved.base_url == 'https://api.perplexity.ai'
    assert resolved.model == 'sonar-pro'
    assert resolved.chat_completions_url == 'https://api.perplexity.ai/chat/completions'
    assert 'HTTP-Referer' not in resolved.headers()


def test_resolve_overrides_and_trailing_slash(make_config):
    config = make_config(
        OPENAI_API_KEY='sk-test',
        OPENAI_BASE_URL='https://proxy.local/v1/',
        OPENAI_MODEL='gpt-4o',
    )

    resolved = resolve_provider(config, 'primary')

    assert resolved.model == 'gpt-4o'
    assert resolved.chat_completions_url == 'https://proxy.local/v1/chat/completions'
    assert resolved.headers()['Authorization'] == 'Bearer sk-test'


def test_openrouter_sends_referer(make_config):
    config = make_config(OPENROUTER_API_KEY='or-key', APP_URL='https://referent.example')

    resolved = resolve_provider(config, 'openrouter')

    assert resolved.model == 'deepseek/deepseek-chat'
    assert resolved.headers()['HTTP-Referer'] == 'https://referent.example'


def test_missing_key_is_configuration_error(make_config):
    config = make_config(OPENAI_API_KEY='sk-test')

    with pytest.raises(ConfigurationError) as exc_info:
        resolve_provider(config, 'perplexity')

    assert exc_info.value.status == 500
    assert exc_info.value.message == 'API ключ Perplexity не настроен'


def test_missing_key_is_not_defaulted_to_another_provider(make_config):
    config = make_config(OPENAI_API_KEY='sk-test', OPENROUTER_API_KEY='or-key')

    with pytest.raises(ConfigurationError):
        resolve_provider(config)
