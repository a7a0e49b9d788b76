"""
Image dispatcher: Hugging Face inference endpoint, result as a data URI
"""

import base64
import logging
from dataclasses import dataclass

import httpx

from utils.errors import (
    ConfigurationError,
    UpstreamFormatError,
    UpstreamHTTPError,
    UpstreamTransportError,
    message_from_error_body,
)
from utils.logging_config import TimedLogger

logger = logging.getLogger(__name__)

IMAGE_PARAMETERS = {
    'guidance_scale': 7.5,
    'num_inference_steps': 50,
    'width': 512,
    'height': 512,
}

DEFAULT_MIME_TYPE = 'image/png'
MODEL_LOADING_MESSAGE = 'Модель загружается. Попробуйте через несколько секунд.'
GENERIC_IMAGE_ERROR = 'Ошибка при генерации изображения'
NOT_AN_IMAGE_ERROR = 'Ожидалось изображение, но получен другой формат'


@dataclass(frozen=True)
class GeneratedImage:
    data_uri: str
    mime_type: str
    size: int


class ImageDispatcher:
    """Single text-to-image request, no retries (503 is only reported)"""

    def __init__(self, config, client: httpx.AsyncClient):
        self.config = config
        self.client = client

    @property
    def endpoint(self) -> str:
        return f"{self.config.HUGGINGFACE_BASE_URL.rstrip('/')}/{self.config.HUGGINGFACE_MODEL}"

    async def generate(self, prompt: str) -> GeneratedImage:
        api_key = self.config.HUGGINGFACE_API_KEY
        if not api_key:
            raise ConfigurationError('API ключ Hugging Face не настроен')

        logger.info(f"Отправка запроса к Hugging Face: model={self.config.HUGGINGFACE_MODEL}, "
                    f"prompt_length={len(prompt)}")

        with TimedLogger(logger, 'image generation', external_service='huggingface') as timer:
            try:
                response = await self.client.post(
                    self.endpoint,
                    json={'inputs': prompt, 'parameters': IMAGE_PARAMETERS},
                    headers={
                        'Authorization': f'Bearer {api_key}',
                        'Content-Type': 'application/json',
                    },
                )
            except httpx.RequestError as e:
                raise UpstreamTransportError(
                    f"Не удалось связаться с Hugging Face: {str(e) or type(e).__name__}"
                )
            timer.add(status_code=response.status_code)

            content_type = response.headers.get('content-type', '')

            if not response.is_success:
                logger.error(f"Ошибка от Hugging Face API: {response.status_code} {response.text[:500]}")
                if response.status_code == 503:
                    raise UpstreamHTTPError(MODEL_LOADING_MESSAGE, status=503, kind='model_loading')
                message = (
                    message_from_error_body(response.text)
                    or response.reason_phrase
                    or GENERIC_IMAGE_ERROR
                )
                raise UpstreamHTTPError(message, status=response.status_code)

            if 'image/' not in content_type:
                logger.warning(f"Получен неожиданный Content-Type: {content_type}")
                message = message_from_error_body(response.text) or NOT_AN_IMAGE_ERROR
                raise UpstreamFormatError(message)

        mime_type = content_type.split(';')[0].strip() or DEFAULT_MIME_TYPE
        image_bytes = response.content
        encoded = base64.b64encode(image_bytes).decode('ascii')
        logger.info(f"Изображение получено: {len(image_bytes)} байт, {mime_type}")

        return GeneratedImage(
            data_uri=f"data:{mime_type};base64,{encoded}",
            mime_type=mime_type,
            size=len(image_bytes),
        )
