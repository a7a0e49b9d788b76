"""
Общие фикстуры: конфигурация без реальных ключей и httpx-клиенты с подменённым транспортом
"""

from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from config import Config

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(filename: str) -> str:
    """Загружает HTML фикстуру из файла"""
    return (FIXTURES_DIR / filename).read_text(encoding='utf-8')


def chat_response(content, status: int = 200) -> httpx.Response:
    """Ответ в формате chat/completions"""
    return httpx.Response(status, json={'choices': [{'message': {'role': 'assistant', 'content': content}}]})


@pytest.fixture
def make_config():
    def factory(**env):
        base = {'BLOCK_PRIVATE_URLS': 'false'}
        base.update(env)
        return Config(environ=base)
    return factory


@pytest_asyncio.fixture
async def mock_client():
    """Фабрика httpx.AsyncClient поверх httpx.MockTransport"""
    clients = []

    def factory(handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
