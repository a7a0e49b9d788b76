"""
LLM Provider Router - resolves API key, base URL and model per provider
Supports OpenAI (primary), Perplexity (secondary, default) and OpenRouter (tertiary)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

from utils.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Provider(str, Enum):
    OPENAI = 'openai'
    PERPLEXITY = 'perplexity'
    OPENROUTER = 'openrouter'


DEFAULT_PROVIDER = Provider.PERPLEXITY

PROVIDER_ALIASES: Dict[str, Provider] = {
    'primary': Provider.OPENAI,
    'secondary': Provider.PERPLEXITY,
    'tertiary': Provider.OPENROUTER,
}


@dataclass(frozen=True)
class ProviderDefaults:
    """Provider-specific defaults and the config attributes that override them"""
    label: str
    key_attr: str
    base_url_attr: str
    model_attr: str
    default_base_url: str
    default_model: str
    send_referer: bool = False


PROVIDER_TABLE: Dict[Provider, ProviderDefaults] = {
    Provider.OPENAI: ProviderDefaults(
        label='OpenAI',
        key_attr='OPENAI_API_KEY',
        base_url_attr='OPENAI_BASE_URL',
        model_attr='OPENAI_MODEL',
        default_base_url='https://api.openai.com/v1',
        default_model='gpt-4.1-mini',
    ),
    Provider.PERPLEXITY: ProviderDefaults(
        label='Perplexity',
        key_attr='PERPLEXITY_API_KEY',
        base_url_attr='PERPLEXITY_BASE_URL',
        model_attr='PERPLEXITY_MODEL',
        default_base_url='https://api.perplexity.ai',
        default_model='sonar-pro',
    ),
    Provider.OPENROUTER: ProviderDefaults(
        label='OpenRouter',
        key_attr='OPENROUTER_API_KEY',
        base_url_attr='OPENROUTER_BASE_URL',
        model_attr='OPENROUTER_MODEL',
        default_base_url='https://openrouter.ai/api/v1',
        default_model='deepseek/deepseek-chat',
        send_referer=True,
    ),
}


@dataclass(frozen=True)
class ProviderConfig:
    provider: Provider
    label: str
    api_key: str
    base_url: str
    model: str
    referer: Optional[str] = None

    @property
    def chat_completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"

    def headers(self) -> Dict[str, str]:
        headers = {
            'Content-Type': 'application/json; charset=utf-8',
            'Authorization': f'Bearer {self.api_key}',
        }
        if self.referer:
            headers['HTTP-Referer'] = self.referer
        return headers


def parse_provider(value: Union[str, Provider, None], default: Union[str, Provider, None] = None) -> Provider:
    """
    Map a request's provider field onto the enum

    Accepts provider names and the primary/secondary/tertiary aliases.
    Anything else falls back to the configured default.
    """
    if isinstance(value, Provider):
        return value

    key = (value or '').strip().lower()
    if key in PROVIDER_ALIASES:
        return PROVIDER_ALIASES[key]
    try:
        return Provider(key)
    except ValueError:
        pass

    if default is not None:
        return parse_provider(default)
    return DEFAULT_PROVIDER


def resolve_provider(config, provider: Union[str, Provider, None] = None) -> ProviderConfig:
    """
    Resolve key, base URL and model for the requested provider

    Raises:
        ConfigurationError: If the provider's API key is not configured
    """
    selected = parse_provider(provider, getattr(config, 'DEFAULT_PROVIDER', None))
    defaults = PROVIDER_TABLE[selected]

    api_key = getattr(config, defaults.key_attr, '') or ''
    if not api_key:
        logger.error(f"API key for {defaults.label} is not configured")
        raise ConfigurationError(f"API ключ {defaults.label} не настроен")

    return ProviderConfig(
        provider=selected,
        label=defaults.label,
        api_key=api_key,
        base_url=getattr(config, defaults.base_url_attr, '') or defaults.default_base_url,
        model=getattr(config, defaults.model_attr, '') or defaults.default_model,
        referer=config.APP_URL if defaults.send_referer else None,
    )
