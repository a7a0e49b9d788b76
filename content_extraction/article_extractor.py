"""
Экстрактор статей: заголовок, дата публикации и основной текст

Поиск идёт по упорядоченным цепочкам CSS-селекторов с запасными вариантами.
Цепочки хранятся как данные (SelectorRule), поэтому каждую можно проверить отдельно.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

import httpx
from bs4 import BeautifulSoup, Tag

from utils.errors import UpstreamHTTPError, UpstreamTransportError
from utils.logging_config import TimedLogger
from utils.network import check_ssrf_protection

logger = logging.getLogger(__name__)

# Минимальная длина основного текста (строго больше)
MIN_CONTENT_LENGTH = 100
MAX_REDIRECTS = 10

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Charset": "utf-8",
}


@dataclass(frozen=True)
class ParsedArticle:
    """Результат разбора страницы; отсутствующее поле равно None"""
    title: Optional[str] = None
    date: Optional[str] = None
    content: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


@dataclass(frozen=True)
class SelectorRule:
    """
    Один шаг цепочки поиска

    attributes - атрибуты, которые читаются раньше видимого текста;
    use_text - можно ли брать видимый текст, если атрибутов нет.
    """
    selector: str
    attributes: Tuple[str, ...] = ()
    use_text: bool = True

    def value(self, element: Tag) -> Optional[str]:
        for attribute in self.attributes:
            raw = element.get(attribute)
            if isinstance(raw, list):
                raw = ' '.join(raw)
            # значение атрибута возвращается как есть
            if raw:
                return raw
        if self.use_text:
            text = element.get_text().strip()
            return text or None
        return None


TITLE_RULES = (
    SelectorRule('h1'),
    SelectorRule('article h1'),
    SelectorRule('.post-title'),
    SelectorRule('.article-title'),
    SelectorRule('[class*="title"]'),
    SelectorRule('title'),
)

_DATE_ATTRIBUTES = ('datetime', 'content')

DATE_RULES = (
    SelectorRule('time[datetime]', _DATE_ATTRIBUTES),
    SelectorRule('[datetime]', _DATE_ATTRIBUTES),
    SelectorRule('.date', _DATE_ATTRIBUTES),
    SelectorRule('.published', _DATE_ATTRIBUTES),
    SelectorRule('.post-date', _DATE_ATTRIBUTES),
    SelectorRule('.article-date', _DATE_ATTRIBUTES),
    SelectorRule('[class*="date"]', _DATE_ATTRIBUTES),
    SelectorRule('meta[property="article:published_time"]', ('content',), use_text=False),
    SelectorRule('meta[name="publish-date"]', ('content',), use_text=False),
)

CONTENT_RULES = (
    SelectorRule('article'),
    SelectorRule('.post'),
    SelectorRule('.content'),
    SelectorRule('.article-content'),
    SelectorRule('.post-content'),
    SelectorRule('[class*="content"]'),
    SelectorRule('main'),
    SelectorRule('.entry-content'),
)

# Мусор внутри контейнера-кандидата
CONTENT_NOISE = 'script, style, nav, aside, .ad, .advertisement'
# Мусор при запасном варианте с <body>
BODY_NOISE = 'script, style, nav, aside, header, footer'


def is_long_enough(text: Optional[str]) -> bool:
    return bool(text) and len(text) > MIN_CONTENT_LENGTH


def _strip_noise(element: Tag, noise: str) -> Tag:
    for junk in element.select(noise):
        junk.decompose()
    return element


def first_match(
    soup: BeautifulSoup,
    rules: Iterable[SelectorRule],
    accept: Callable[[Optional[str]], bool] = bool,
    prepare: Optional[Callable[[Tag], Tag]] = None,
) -> Optional[str]:
    """
    Проходит цепочку правил и возвращает первое подходящее значение

    Для каждого селектора рассматривается только первый найденный элемент;
    пустые и неподходящие совпадения пропускаются.
    """
    for rule in rules:
        element = soup.select_one(rule.selector)
        if element is None:
            continue
        if prepare is not None:
            element = prepare(element)
        value = rule.value(element)
        if accept(value):
            logger.debug(f"Селектор {rule.selector!r} подошёл")
            return value
    return None


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    return first_match(soup, TITLE_RULES)


def extract_date(soup: BeautifulSoup) -> Optional[str]:
    return first_match(soup, DATE_RULES)


def extract_content(soup: BeautifulSoup) -> Optional[str]:
    """Основной текст: контейнеры по приоритету, затем очищенный <body>"""
    content = first_match(
        soup,
        CONTENT_RULES,
        accept=is_long_enough,
        prepare=lambda element: _strip_noise(element, CONTENT_NOISE),
    )
    if content:
        return content

    body = soup.body
    if body is None:
        return None
    text = _strip_noise(body, BODY_NOISE).get_text().strip()
    return text if is_long_enough(text) else None


def parse_article(raw_html: str, url: str = '') -> ParsedArticle:
    """
    Разбирает HTML статьи. Никогда не бросает исключений: любое поле,
    которое не удалось найти, становится None.
    """
    try:
        soup = BeautifulSoup(raw_html or '', 'html.parser')
    except Exception as e:
        logger.warning(f"Не удалось разобрать HTML {url}: {e}")
        return ParsedArticle()

    fields = {}
    for name, extractor in (('title', extract_title), ('date', extract_date), ('content', extract_content)):
        try:
            fields[name] = extractor(soup)
        except Exception as e:
            logger.warning(f"Ошибка извлечения поля {name} со страницы {url}: {e}")
            fields[name] = None

    article = ParsedArticle(**fields)
    logger.info(
        f"Разбор {url or 'HTML'}: заголовок={'да' if article.title else 'нет'}, "
        f"дата={'да' if article.date else 'нет'}, "
        f"текст={len(article.content) if article.content else 0} символов"
    )
    return article


class ArticleFetcher:
    """Загружает страницу GET-запросом, проверяя каждый редирект, и разбирает её"""

    def __init__(self, client: httpx.AsyncClient, block_private_urls: bool = True):
        self.client = client
        self.block_private_urls = block_private_urls

    async def fetch_html(self, url: str) -> str:
        with TimedLogger(logger, f"fetch {url}", external_service='article') as timer:
            response = await self._get_following_redirects(url)
            timer.add(status_code=response.status_code, content_length=len(response.content))

        if not response.is_success:
            raise UpstreamHTTPError(
                f"Не удалось загрузить страницу: {response.reason_phrase}",
                status=response.status_code,
            )

        return response.text

    async def _get_following_redirects(self, url: str) -> httpx.Response:
        """GET с ручным переходом по редиректам: каждый адрес проходит SSRF-проверку"""
        target = url
        for _ in range(MAX_REDIRECTS + 1):
            if self.block_private_urls:
                await check_ssrf_protection(str(target))

            try:
                response = await self.client.get(target, headers=REQUEST_HEADERS, follow_redirects=False)
            except httpx.InvalidURL as e:
                raise UpstreamTransportError(f"Некорректный URL: {e}")
            except httpx.RequestError as e:
                raise UpstreamTransportError(
                    f"Не удалось загрузить страницу: {str(e) or type(e).__name__}"
                )

            if response.next_request is None:
                return response
            target = response.next_request.url
            logger.info(f"Редирект {response.status_code} -> {target}")

        raise UpstreamTransportError(f"Не удалось загрузить страницу: больше {MAX_REDIRECTS} перенаправлений")

    async def fetch(self, url: str) -> ParsedArticle:
        raw_html = await self.fetch_html(url)
        return parse_article(raw_html, url)
