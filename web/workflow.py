"""
Оркестрация одного действия пользователя: извлечение, затем не более одной генерации

Состояния: IDLE -> EXTRACTING -> (IDLE | GENERATING -> IDLE)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from content_extraction.article_extractor import ArticleFetcher, ParsedArticle, is_long_enough
from llm.completion import CompletionDispatcher
from llm.tasks import TaskType
from utils.errors import ContentMissingError, ReferentError, UpstreamTransportError, WorkflowBusyError

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    IDLE = 'idle'
    EXTRACTING = 'extracting'
    GENERATING = 'generating'


# Названия кнопок интерфейса
ACTION_LABELS = {
    TaskType.SUMMARIZE: 'О чем статья?',
    TaskType.THESES: 'Тезисы',
    TaskType.TELEGRAM_POST: 'Пост для Telegram',
    TaskType.TRANSLATE: 'Перевод',
    TaskType.IMAGE_PROMPT: 'Описание иллюстрации',
}


@dataclass(frozen=True)
class WorkflowResult:
    article: ParsedArticle
    task: TaskType
    output: str

    def to_dict(self) -> dict:
        return {
            'article': self.article.to_dict(),
            'action': self.task.value,
            'result': self.output,
        }


class ArticleWorkflow:
    """Последовательно выполняет извлечение и генерацию, не допуская параллельных действий"""

    def __init__(self, fetcher: ArticleFetcher, completions: CompletionDispatcher):
        self.fetcher = fetcher
        self.completions = completions
        self._state = WorkflowState.IDLE

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is not WorkflowState.IDLE

    async def run(self, url: str, task: Union[str, TaskType],
                  provider: Optional[str] = None) -> WorkflowResult:
        if self.busy:
            raise WorkflowBusyError('Дождитесь завершения текущей операции')

        task = TaskType(task)
        try:
            self._state = WorkflowState.EXTRACTING
            logger.info(f"Действие «{ACTION_LABELS[task]}»: извлечение {url}")
            article = await self.fetcher.fetch(url)

            if not is_long_enough(article.content):
                raise ContentMissingError('Не удалось извлечь текст статьи')

            self._state = WorkflowState.GENERATING
            output = await self.completions.complete(
                task,
                article.content,
                title=article.title,
                date=article.date,
                provider=provider,
            )
            return WorkflowResult(article=article, task=task, output=output)
        finally:
            self._state = WorkflowState.IDLE


class ErrorCategory(str, Enum):
    NETWORK = 'network'
    PARSE = 'parse'
    CONTENT = 'content'
    API = 'api'
    UNKNOWN = 'unknown'


ERROR_HINTS = {
    ErrorCategory.NETWORK: 'Проблема с сетью. Проверьте подключение и ссылку.',
    ErrorCategory.PARSE: 'Не удалось загрузить или разобрать страницу.',
    ErrorCategory.CONTENT: 'На странице не найден текст статьи.',
    ErrorCategory.API: 'Сервис ИИ вернул ошибку. Попробуйте позже или выберите другого провайдера.',
    ErrorCategory.UNKNOWN: 'Произошла ошибка.',
}

BUSY_HINT = 'Предыдущее действие ещё выполняется. Дождитесь результата и повторите.'

_NETWORK_MARKERS = ('network', 'fetch failed', 'timeout', 'timed out', 'сеть', 'связаться', 'подключ')
_PARSE_MARKERS = ('загрузить страницу', 'парс', 'parse', 'некорректный url')
_CONTENT_MARKERS = ('контент', 'текст статьи', 'content')
_API_MARKERS = ('api', 'ключ', 'модель', 'rate limit', 'quota')


def classify_error(message: Optional[str], status: Optional[int] = None) -> ErrorCategory:
    """
    Сводит текст ошибки и статус к категории для отображения.
    Статус ответа при этом не меняется.
    """
    text = (message or '').lower()

    if any(marker in text for marker in _NETWORK_MARKERS):
        return ErrorCategory.NETWORK
    if any(marker in text for marker in _PARSE_MARKERS):
        return ErrorCategory.PARSE
    if status == 422 or any(marker in text for marker in _CONTENT_MARKERS):
        return ErrorCategory.CONTENT
    if status in (401, 402, 403, 429) or (status is not None and status >= 500) \
            or any(marker in text for marker in _API_MARKERS):
        return ErrorCategory.API
    return ErrorCategory.UNKNOWN


def classify_exception(error: Exception) -> ErrorCategory:
    if isinstance(error, UpstreamTransportError):
        return ErrorCategory.NETWORK
    if isinstance(error, ContentMissingError):
        return ErrorCategory.CONTENT
    if isinstance(error, ReferentError):
        return classify_error(error.message, error.status)
    return classify_error(str(error))


def describe_error(error: Exception) -> dict:
    """Тело ответа об ошибке для интерфейса"""
    category = classify_exception(error)
    message = error.message if isinstance(error, ReferentError) else (str(error) or 'Произошла ошибка')
    hint = BUSY_HINT if isinstance(error, WorkflowBusyError) else ERROR_HINTS[category]
    return {'error': message, 'category': category.value, 'hint': hint}
