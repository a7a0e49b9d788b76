"""
Модуль для извлечения статей с веб-страниц
Цепочки селекторов: заголовок → дата → основной текст
"""

from .article_extractor import ArticleFetcher, ParsedArticle, parse_article, MIN_CONTENT_LENGTH

__all__ = ['ArticleFetcher', 'ParsedArticle', 'parse_article', 'MIN_CONTENT_LENGTH']
