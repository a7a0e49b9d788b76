"""
Тесты диспетчера генерации: запрос, промпты и нормализация ошибок
"""

import json

import httpx
import pytest

from conftest import chat_response
from llm.completion import CompletionDispatcher, extract_message_content
from llm.tasks import TASKS, TaskType, build_request
from utils.errors import ConfigurationError, UpstreamFormatError, UpstreamHTTPError, UpstreamTransportError


@pytest.fixture
def config(make_config):
    return make_config(
        PERPLEXITY_API_KEY='pplx-key',
        OPENROUTER_API_KEY='or-key',
        APP_URL='https://referent.example',
    )


class Recorder:
    """Запоминает запросы и отвечает заданным ответом"""

    def __init__(self, response):
        self.response = response
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.response

    @property
    def body(self):
        return json.loads(self.requests[-1].content)


@pytest.mark.asyncio
async def test_summary_request_shape(config, mock_client):
    recorder = Recorder(chat_response('Краткое резюме'))
    dispatcher = CompletionDispatcher(config, mock_client(recorder))

    result = await dispatcher.complete('summarize', 'Article body', title='Headline')

    assert result == 'Краткое резюме'
    request = recorder.requests[0]
    assert str(request.url) == 'https://api.perplexity.ai/chat/completions'
    assert request.headers['authorization'] == 'Bearer pplx-key'
    assert recorder.body['model'] == 'sonar-pro'
    assert recorder.body['temperature'] == 0.3
    assert recorder.body['messages'] == [
        {'role': 'system', 'content': TASKS[TaskType.SUMMARIZE].system_prompt},
        {'role': 'user', 'content': 'Заголовок: Headline\n\nКонтент: Article body'},
    ]


@pytest.mark.asyncio
async def test_translate_sends_raw_content(config, mock_client):
    recorder = Recorder(chat_response('Привет, мир'))
    dispatcher = CompletionDispatcher(config, mock_client(recorder))

    result = await dispatcher.complete(TaskType.TRANSLATE, 'Hello world', title='ignored')

    assert result == 'Привет, мир'
    assert recorder.body['messages'][1]['content'] == 'Hello world'


@pytest.mark.asyncio
async def test_openrouter_referer_header(config, mock_client):
    recorder = Recorder(chat_response('• тезис'))
    dispatcher = CompletionDispatcher(config, mock_client(recorder))

    await dispatcher.complete('theses', 'text', provider='tertiary')

    request = recorder.requests[0]
    assert str(request.url) == 'https://openrouter.ai/api/v1/chat/completions'
    assert request.headers['http-referer'] == 'https://referent.example'
    assert recorder.body['model'] == 'deepseek/deepseek-chat'


@pytest.mark.asyncio
async def test_telegram_post_includes_date_and_higher_temperature(config, mock_client):
    recorder = Recorder(chat_response('**Пост**'))
    dispatcher = CompletionDispatcher(config, mock_client(recorder))

    await dispatcher.complete('telegram-post', 'text', title='T', date='2024-01-01')

    assert recorder.body['temperature'] == 0.7
    assert recorder.body['messages'][1]['content'] == 'Заголовок: T\n\nДата: 2024-01-01\n\nКонтент: text'


@pytest.mark.asyncio
async def test_image_prompt_truncates_content_and_strips_result(config, mock_client):
    recorder = Recorder(chat_response('  A lighthouse at dawn  \n'))
    dispatcher = CompletionDispatcher(config, mock_client(recorder))

    result = await dispatcher.complete('image-prompt', 'a' * 5000)

    assert result == 'A lighthouse at dawn'
    user_prompt = recorder.body['messages'][1]['content']
    assert user_prompt == 'Контент: ' + 'a' * 2000


@pytest.mark.asyncio
async def test_short_content_is_not_rejected(config, mock_client):
    recorder = Recorder(chat_response('ok'))
    dispatcher = CompletionDispatcher(config, mock_client(recorder))

    assert await dispatcher.complete('summarize', 'Hi') == 'ok'
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_missing_choice_uses_placeholder(config, mock_client):
    dispatcher = CompletionDispatcher(config, mock_client(Recorder(httpx.Response(200, json={'choices': []}))))

    result = await dispatcher.complete('summarize', 'text')

    assert result == 'Не удалось создать резюме статьи'


@pytest.mark.asyncio
async def test_error_envelope_message_and_status(config, mock_client):
    response = httpx.Response(429, json={'error': {'message': 'rate limited'}})
    dispatcher = CompletionDispatcher(config, mock_client(Recorder(response)))

    with pytest.raises(UpstreamHTTPError) as exc_info:
        await dispatcher.complete('summarize', 'text')

    assert exc_info.value.status == 429
    assert exc_info.value.message == 'rate limited'


@pytest.mark.asyncio
async def test_error_raw_text_fallback(config, mock_client):
    response = httpx.Response(502, text='upstream gateway exploded')
    dispatcher = CompletionDispatcher(config, mock_client(Recorder(response)))

    with pytest.raises(UpstreamHTTPError) as exc_info:
        await dispatcher.complete('summarize', 'text')

    assert exc_info.value.status == 502
    assert exc_info.value.message == 'upstream gateway exploded'


@pytest.mark.asyncio
async def test_error_status_phrase_fallback(config, mock_client):
    dispatcher = CompletionDispatcher(config, mock_client(Recorder(httpx.Response(401))))

    with pytest.raises(UpstreamHTTPError) as exc_info:
        await dispatcher.complete('summarize', 'text')

    assert exc_info.value.message == 'Ошибка API Perplexity: Unauthorized'


@pytest.mark.asyncio
async def test_transport_error(config, mock_client):
    def handler(request):
        raise httpx.ConnectTimeout('timed out', request=request)

    dispatcher = CompletionDispatcher(config, mock_client(handler))

    with pytest.raises(UpstreamTransportError):
        await dispatcher.complete('summarize', 'text')


@pytest.mark.asyncio
async def test_non_json_success_body(config, mock_client):
    dispatcher = CompletionDispatcher(config, mock_client(Recorder(httpx.Response(200, text='<html>'))))

    with pytest.raises(UpstreamFormatError):
        await dispatcher.complete('summarize', 'text')


@pytest.mark.asyncio
async def test_missing_key_makes_no_request(make_config, mock_client):
    recorder = Recorder(chat_response('never'))
    dispatcher = CompletionDispatcher(make_config(), mock_client(recorder))

    with pytest.raises(ConfigurationError):
        await dispatcher.complete('translate', 'Hello world')
    assert recorder.requests == []


def test_build_request_without_title():
    request = build_request('summarize', 'Body')
    assert request.user_prompt == 'Контент: Body'
    assert request.messages()[0]['role'] == 'system'


def test_extract_message_content_variants():
    assert extract_message_content({'choices': [{'message': {'content': 'x'}}]}) == 'x'
    assert extract_message_content({'choices': [{'message': {}}]}) is None
    assert extract_message_content({}) is None
    assert extract_message_content([]) is None
