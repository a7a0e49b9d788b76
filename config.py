"""
Конфигурация и настройки Referent
"""

import os
from typing import Mapping, Optional

from dotenv import load_dotenv


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Класс конфигурации с настройками сервиса"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ

        # Провайдеры LLM. Базовый URL и модель по умолчанию задаются в llm.provider_router
        self.OPENAI_API_KEY = env.get('OPENAI_API_KEY', '')
        self.OPENAI_BASE_URL = env.get('OPENAI_BASE_URL', '')
        self.OPENAI_MODEL = env.get('OPENAI_MODEL', '')

        self.PERPLEXITY_API_KEY = env.get('PERPLEXITY_API_KEY', '')
        self.PERPLEXITY_BASE_URL = env.get('PERPLEXITY_BASE_URL', '')
        self.PERPLEXITY_MODEL = env.get('PERPLEXITY_MODEL', '')

        self.OPENROUTER_API_KEY = env.get('OPENROUTER_API_KEY', '')
        self.OPENROUTER_BASE_URL = env.get('OPENROUTER_BASE_URL', '')
        self.OPENROUTER_MODEL = env.get('OPENROUTER_MODEL', '')

        self.DEFAULT_PROVIDER = env.get('DEFAULT_PROVIDER', 'perplexity')

        # Генерация изображений
        self.HUGGINGFACE_API_KEY = env.get('HUGGINGFACE_API_KEY', '')
        self.HUGGINGFACE_MODEL = env.get('HUGGINGFACE_MODEL', 'stabilityai/stable-diffusion-xl-base-1.0')
        self.HUGGINGFACE_BASE_URL = env.get(
            'HUGGINGFACE_BASE_URL', 'https://router.huggingface.co/hf-inference/models'
        )

        # Адрес приложения, уходит в HTTP-Referer для OpenRouter
        self.APP_URL = env.get('APP_URL') or env.get('NEXT_PUBLIC_APP_URL') or 'http://localhost:3000'

        # Сеть. Без HTTP_TIMEOUT_S таймаут не ограничивается
        timeout = env.get('HTTP_TIMEOUT_S', '')
        self.HTTP_TIMEOUT_S: Optional[float] = float(timeout) if timeout else None
        self.BLOCK_PRIVATE_URLS = _as_bool(env.get('BLOCK_PRIVATE_URLS'), True)

        # HTTP сервер
        self.HOST = env.get('HOST', '0.0.0.0')
        self.PORT = int(env.get('PORT', '5000'))

        # Логирование
        self.LOG_LEVEL = env.get('LOG_LEVEL', 'INFO')
        self.STRUCTURED_LOGGING = _as_bool(env.get('STRUCTURED_LOGGING'), False)
        self.DEBUG_MODE = _as_bool(env.get('DEBUG_MODE'), False)

        self._validate_config()

    def _validate_config(self):
        """Валидация конфигурации"""
        if not 0 < self.PORT < 65536:
            raise ValueError(f"PORT вне допустимого диапазона: {self.PORT}")

        if self.HTTP_TIMEOUT_S is not None and self.HTTP_TIMEOUT_S <= 0:
            raise ValueError("HTTP_TIMEOUT_S должен быть больше 0")

    def configured_providers(self) -> list:
        """Список провайдеров, для которых задан API ключ"""
        keys = {
            'openai': self.OPENAI_API_KEY,
            'perplexity': self.PERPLEXITY_API_KEY,
            'openrouter': self.OPENROUTER_API_KEY,
        }
        return [name for name, key in keys.items() if key]

    def __str__(self) -> str:
        """Строковое представление конфигурации (без чувствительных данных)"""
        return f"""Configuration:
- Default Provider: {self.DEFAULT_PROVIDER}
- Configured Providers: {', '.join(self.configured_providers()) or 'none'}
- Image Model: {self.HUGGINGFACE_MODEL}
- Image Key Present: {bool(self.HUGGINGFACE_API_KEY)}
- Listen: {self.HOST}:{self.PORT}
- HTTP Timeout: {self.HTTP_TIMEOUT_S or 'transport default'}
- Block Private URLs: {self.BLOCK_PRIVATE_URLS}
- Log Level: {self.LOG_LEVEL}"""


def load_config() -> Config:
    """Загружает .env и строит конфигурацию один раз при старте процесса"""
    load_dotenv()
    return Config()
