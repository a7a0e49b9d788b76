"""
Тесты оркестрации действия и классификации ошибок
"""

import asyncio

import pytest

from content_extraction.article_extractor import ParsedArticle
from utils.errors import (
    ConfigurationError,
    ContentMissingError,
    UpstreamHTTPError,
    UpstreamTransportError,
    WorkflowBusyError,
)
from web.workflow import (
    BUSY_HINT,
    ERROR_HINTS,
    ArticleWorkflow,
    ErrorCategory,
    WorkflowState,
    classify_error,
    describe_error,
)

LONG_TEXT = "Long enough article body that easily passes the minimum length check. " * 3


class StubFetcher:
    def __init__(self, article=None, error=None, gate=None):
        self.article = article or ParsedArticle(title='Title', date='2024-01-01', content=LONG_TEXT)
        self.error = error
        self.gate = gate
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.article


class StubCompletions:
    def __init__(self, result='Результат', error=None, observer=None):
        self.result = result
        self.error = error
        self.observer = observer
        self.calls = []

    async def complete(self, task, content, title=None, date=None, provider=None):
        if self.observer is not None:
            self.observer()
        self.calls.append({'task': task, 'content': content, 'title': title, 'date': date, 'provider': provider})
        if self.error is not None:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_successful_run_passes_article_fields():
    completions = StubCompletions()
    workflow = ArticleWorkflow(StubFetcher(), completions)

    result = await workflow.run('https://example.com/a', 'telegram-post', provider='openrouter')

    assert result.to_dict() == {
        'article': {'date': '2024-01-01', 'title': 'Title', 'content': LONG_TEXT},
        'action': 'telegram-post',
        'result': 'Результат',
    }
    assert completions.calls == [{
        'task': 'telegram-post',
        'content': LONG_TEXT,
        'title': 'Title',
        'date': '2024-01-01',
        'provider': 'openrouter',
    }]
    assert workflow.state is WorkflowState.IDLE


@pytest.mark.asyncio
async def test_state_is_generating_during_generation():
    states = []
    workflow = ArticleWorkflow(StubFetcher(), StubCompletions(observer=lambda: states.append(workflow.state)))

    await workflow.run('https://example.com/a', 'summarize')

    assert states == [WorkflowState.GENERATING]


@pytest.mark.asyncio
async def test_missing_content_skips_generation():
    completions = StubCompletions()
    fetcher = StubFetcher(article=ParsedArticle(title='Title', content=None))
    workflow = ArticleWorkflow(fetcher, completions)

    with pytest.raises(ContentMissingError) as exc_info:
        await workflow.run('https://example.com/a', 'summarize')

    assert exc_info.value.status == 422
    assert completions.calls == []
    assert workflow.state is WorkflowState.IDLE


@pytest.mark.asyncio
async def test_second_action_is_rejected_while_busy():
    gate = asyncio.Event()
    workflow = ArticleWorkflow(StubFetcher(gate=gate), StubCompletions())

    first = asyncio.create_task(workflow.run('https://example.com/a', 'summarize'))
    await asyncio.sleep(0)
    assert workflow.state is WorkflowState.EXTRACTING
    assert workflow.busy

    with pytest.raises(WorkflowBusyError) as exc_info:
        await workflow.run('https://example.com/b', 'theses')
    assert exc_info.value.status == 409

    gate.set()
    result = await first
    assert result.output == 'Результат'
    assert not workflow.busy


@pytest.mark.asyncio
async def test_state_resets_after_failures():
    fetch_failure = ArticleWorkflow(StubFetcher(error=UpstreamTransportError('fetch failed')), StubCompletions())
    with pytest.raises(UpstreamTransportError):
        await fetch_failure.run('https://example.com/a', 'summarize')
    assert fetch_failure.state is WorkflowState.IDLE

    generation_failure = ArticleWorkflow(StubFetcher(), StubCompletions(error=UpstreamHTTPError('rate limited', 429)))
    with pytest.raises(UpstreamHTTPError):
        await generation_failure.run('https://example.com/a', 'summarize')
    assert generation_failure.state is WorkflowState.IDLE


@pytest.mark.asyncio
async def test_unknown_action_is_value_error():
    workflow = ArticleWorkflow(StubFetcher(), StubCompletions())
    with pytest.raises(ValueError):
        await workflow.run('https://example.com/a', 'poem')
    assert workflow.state is WorkflowState.IDLE


class TestClassifyError:
    """Категории ошибок для интерфейса"""

    def test_network(self):
        assert classify_error('fetch failed') is ErrorCategory.NETWORK
        assert classify_error('Не удалось связаться с API OpenAI: timed out') is ErrorCategory.NETWORK

    def test_parse(self):
        assert classify_error('Не удалось загрузить страницу: Not Found', 404) is ErrorCategory.PARSE

    def test_content(self):
        assert classify_error('Не удалось извлечь текст статьи') is ErrorCategory.CONTENT
        assert classify_error('nothing here', 422) is ErrorCategory.CONTENT

    def test_api(self):
        assert classify_error('rate limited', 429) is ErrorCategory.API
        assert classify_error('API ключ Perplexity не настроен', 500) is ErrorCategory.API

    def test_unknown(self):
        assert classify_error('Something odd') is ErrorCategory.UNKNOWN
        assert classify_error(None) is ErrorCategory.UNKNOWN


def test_describe_error_keeps_message():
    described = describe_error(ConfigurationError('API ключ OpenAI не настроен'))

    assert described['error'] == 'API ключ OpenAI не настроен'
    assert described['category'] == 'api'
    assert described['hint']


def test_describe_transport_error_is_network():
    assert describe_error(UpstreamTransportError('boom'))['category'] == 'network'


def test_busy_error_has_dedicated_hint():
    described = describe_error(WorkflowBusyError('Дождитесь завершения текущей операции'))

    assert described['hint'] == BUSY_HINT
    assert described['hint'] != ERROR_HINTS[ErrorCategory.UNKNOWN]
