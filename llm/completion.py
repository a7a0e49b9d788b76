"""
Completion dispatcher: one chat-completions request per task, no retries
"""

import logging
from typing import Optional, Union

import httpx

from llm.provider_router import Provider, ProviderConfig, resolve_provider
from llm.tasks import GenerationRequest, TaskType, build_request, get_task
from utils.errors import UpstreamFormatError, UpstreamHTTPError, UpstreamTransportError, message_from_error_body
from utils.logging_config import TimedLogger

logger = logging.getLogger(__name__)


class CompletionDispatcher:
    """Sends task requests to the resolved provider and normalizes the answer"""

    def __init__(self, config, client: httpx.AsyncClient):
        self.config = config
        self.client = client

    async def complete(self,
                       task: Union[str, TaskType],
                       content: str,
                       title: Optional[str] = None,
                       date: Optional[str] = None,
                       provider: Union[str, Provider, None] = None) -> str:
        """
        Generate text for a task

        Args:
            task: Task type (translate, summarize, theses, telegram-post, image-prompt)
            content: Article text; length is not checked here
            title: Optional article title
            date: Optional publication date (used by telegram-post)
            provider: Provider name or alias, default provider when omitted

        Returns:
            Generated text or the task's placeholder when the answer is empty

        Raises:
            ConfigurationError: Missing API key
            UpstreamTransportError: Provider unreachable
            UpstreamHTTPError: Non-2xx provider response
            UpstreamFormatError: 2xx response that is not JSON
        """
        task = TaskType(task)
        task_spec = get_task(task)
        provider_config = resolve_provider(self.config, provider)
        request = build_request(task, content, title, date)

        data = await self._post_chat(provider_config, request, task)
        result = extract_message_content(data)
        if not result:
            logger.warning(f"{provider_config.label} returned no content for {task.value}")
            return task_spec.placeholder
        return result.strip() if task_spec.strip_result else result

    async def _post_chat(self, provider_config: ProviderConfig,
                         request: GenerationRequest, task: TaskType) -> dict:
        body = {
            'model': provider_config.model,
            'messages': request.messages(),
            'temperature': request.temperature,
        }

        with TimedLogger(logger, f"{task.value} via {provider_config.label}",
                         external_service='llm',
                         provider=provider_config.provider.value, task=task.value) as timer:
            try:
                response = await self.client.post(
                    provider_config.chat_completions_url,
                    json=body,
                    headers=provider_config.headers(),
                )
            except httpx.RequestError as e:
                raise UpstreamTransportError(
                    f"Не удалось связаться с API {provider_config.label}: {str(e) or type(e).__name__}"
                )
            timer.add(status_code=response.status_code)

            if not response.is_success:
                message = (
                    message_from_error_body(response.text)
                    or f"Ошибка API {provider_config.label}: {response.reason_phrase}"
                )
                raise UpstreamHTTPError(message, status=response.status_code)

            try:
                return response.json()
            except ValueError:
                raise UpstreamFormatError(f"Некорректный ответ API {provider_config.label}")


def extract_message_content(data) -> Optional[str]:
    """choices[0].message.content or None"""
    if not isinstance(data, dict):
        return None
    choices = data.get('choices') or []
    if not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get('message') or {}
    content = message.get('content') if isinstance(message, dict) else None
    return content if isinstance(content, str) else None
