#!/usr/bin/env python3
"""
HTTP server: article parsing and generation routes, static page and health check
"""

import asyncio
import functools
import json
import logging
from pathlib import Path
from typing import Optional

import httpx
from aiohttp import web

from content_extraction.article_extractor import ArticleFetcher
from llm.completion import CompletionDispatcher
from llm.image_generation import ImageDispatcher
from llm.tasks import TaskType, get_task
from utils.errors import ReferentError, UnknownError, ValidationError
from utils.logging_config import clear_request_context, new_request_id
from utils.network import NetworkSession
from web.workflow import ArticleWorkflow, describe_error

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / 'static'

json_response = functools.partial(
    web.json_response,
    dumps=functools.partial(json.dumps, ensure_ascii=False),
)

# Ключи приложения
CONFIG_KEY = web.AppKey('config', object)
SESSION_KEY = web.AppKey('session', NetworkSession)
FETCHER_KEY = web.AppKey('fetcher', ArticleFetcher)
COMPLETIONS_KEY = web.AppKey('completions', CompletionDispatcher)
IMAGES_KEY = web.AppKey('images', ImageDispatcher)

# Сообщение об отсутствии обязательного поля для каждого маршрута
CONTENT_REQUIRED = 'Контент статьи обязателен'
TRANSLATION_CONTENT_REQUIRED = 'Контент для перевода обязателен'
URL_REQUIRED = 'URL обязателен'
PROMPT_REQUIRED = 'Промпт обязателен'

TASK_FAILURE_MESSAGES = {
    TaskType.TRANSLATE: 'Произошла ошибка при переводе',
    TaskType.SUMMARIZE: 'Произошла ошибка при создании резюме',
    TaskType.THESES: 'Произошла ошибка при выделении тезисов',
    TaskType.TELEGRAM_POST: 'Произошла ошибка при создании поста',
    TaskType.IMAGE_PROMPT: 'Произошла ошибка при создании промпта',
}


@web.middleware
async def request_context_middleware(request: web.Request, handler):
    request_id = new_request_id()
    try:
        response = await handler(request)
        response.headers['X-Request-ID'] = request_id
        return response
    finally:
        clear_request_context()


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Converts errors into {"error": ...} JSON with the mapped status"""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ReferentError as e:
        logger.warning(f"{request.method} {request.path} -> {e.status} ({e.kind}): {e.message}")
        return json_response(e.to_payload(), status=e.status)
    except Exception as e:
        logger.exception(f"Unhandled error in {request.method} {request.path}")
        error = UnknownError(str(e) or 'Произошла ошибка')
        return json_response(error.to_payload(), status=error.status)


async def read_json(request: web.Request) -> dict:
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError('Некорректный JSON в теле запроса')
    if not isinstance(payload, dict):
        raise ValidationError('Тело запроса должно быть JSON-объектом')
    return payload


def require_string(payload: dict, field: str, message: str) -> str:
    value = payload.get(field)
    if not value or not isinstance(value, str):
        raise ValidationError(message)
    return value


def optional_string(payload: dict, field: str) -> Optional[str]:
    value = payload.get(field)
    return value if isinstance(value, str) and value else None


async def index(request: web.Request) -> web.FileResponse:
    return web.FileResponse(STATIC_DIR / 'index.html')


async def health_check(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    return json_response({
        'status': 'healthy',
        'service': 'referent',
        'providers': config.configured_providers(),
    })


async def parse_handler(request: web.Request) -> web.Response:
    payload = await read_json(request)
    url = require_string(payload, 'url', URL_REQUIRED)
    article = await request.app[FETCHER_KEY].fetch(url)
    return json_response(article.to_dict())


def task_handler(task: TaskType, content_message: str = CONTENT_REQUIRED):
    """Builds the handler for one generation route"""
    task_spec = get_task(task)

    async def handler(request: web.Request) -> web.Response:
        payload = await read_json(request)
        content = require_string(payload, 'content', content_message)
        try:
            result = await request.app[COMPLETIONS_KEY].complete(
                task,
                content,
                title=optional_string(payload, 'title'),
                date=optional_string(payload, 'date'),
                provider=optional_string(payload, 'provider'),
            )
        except ReferentError:
            raise
        except Exception as e:
            logger.exception(f"{task.value} failed")
            raise UnknownError(str(e) or TASK_FAILURE_MESSAGES[task])
        return json_response({task_spec.result_key: result})

    return handler


async def generate_image_handler(request: web.Request) -> web.Response:
    payload = await read_json(request)
    prompt = require_string(payload, 'prompt', PROMPT_REQUIRED)
    image = await request.app[IMAGES_KEY].generate(prompt)
    return json_response({'image': image.data_uri, 'prompt': prompt})


async def process_handler(request: web.Request) -> web.Response:
    """Extraction followed by one generation, errors carry a display category"""
    payload = await read_json(request)
    url = require_string(payload, 'url', URL_REQUIRED)
    action = require_string(payload, 'action', 'Действие обязательно')
    try:
        task = TaskType(action)
    except ValueError:
        raise ValidationError(f"Неизвестное действие: {action}")

    try:
        # отдельный workflow на каждый запрос
        workflow = ArticleWorkflow(request.app[FETCHER_KEY], request.app[COMPLETIONS_KEY])
        result = await workflow.run(url, task, optional_string(payload, 'provider'))
    except ReferentError as e:
        logger.warning(f"process {task.value} -> {e.status}: {e.message}")
        return json_response(describe_error(e), status=e.status)
    return json_response(result.to_dict())


ROUTES = [
    ('/parse', parse_handler),
    ('/translate', task_handler(TaskType.TRANSLATE, TRANSLATION_CONTENT_REQUIRED)),
    ('/summarize', task_handler(TaskType.SUMMARIZE)),
    ('/theses', task_handler(TaskType.THESES)),
    ('/telegram-post', task_handler(TaskType.TELEGRAM_POST)),
    ('/image-prompt', task_handler(TaskType.IMAGE_PROMPT)),
    ('/generate-image', generate_image_handler),
    ('/process', process_handler),
]


def create_app(config, transport: Optional[httpx.AsyncBaseTransport] = None) -> web.Application:
    """
    Build the application

    Args:
        config: Config instance built once at start-up
        transport: Optional httpx transport (tests inject httpx.MockTransport)
    """
    app = web.Application(middlewares=[request_context_middleware, error_middleware])
    session = NetworkSession(timeout=config.HTTP_TIMEOUT_S, transport=transport)
    client = session.client

    fetcher = ArticleFetcher(client, block_private_urls=config.BLOCK_PRIVATE_URLS)
    completions = CompletionDispatcher(config, client)

    app[CONFIG_KEY] = config
    app[SESSION_KEY] = session
    app[FETCHER_KEY] = fetcher
    app[COMPLETIONS_KEY] = completions
    app[IMAGES_KEY] = ImageDispatcher(config, client)

    app.router.add_get('/', index)
    app.router.add_get('/health', health_check)
    for path, handler in ROUTES:
        app.router.add_post(path, handler)
        app.router.add_post(f'/api{path}', handler)

    async def close_session(app: web.Application):
        await app[SESSION_KEY].close()

    app.on_cleanup.append(close_session)
    return app


class ReferentServer:
    """Runs the application until a shutdown signal arrives"""

    def __init__(self, config):
        self.config = config
        self.runner = None
        self.site = None
        self.shutdown_event = asyncio.Event()

    async def start_server(self) -> bool:
        try:
            app = create_app(self.config)
            self.runner = web.AppRunner(app)
            await self.runner.setup()

            self.site = web.TCPSite(self.runner, self.config.HOST, self.config.PORT)
            await self.site.start()

            logger.info(f"HTTP server started on {self.config.HOST}:{self.config.PORT}")
            return True

        except OSError as e:
            logger.error(f"Failed to start HTTP server: {e}")
            return False

    async def run(self):
        try:
            if not await self.start_server():
                return
            logger.info(str(self.config))
            await self.shutdown_event.wait()
        finally:
            await self.cleanup()

    async def cleanup(self):
        logger.info("Shutting down...")
        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()
        logger.info("Shutdown complete")
