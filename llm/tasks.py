"""
Каталог задач генерации: системные промпты, температура, лимиты и заглушки
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Union


class TaskType(str, Enum):
    TRANSLATE = 'translate'
    SUMMARIZE = 'summarize'
    THESES = 'theses'
    TELEGRAM_POST = 'telegram-post'
    IMAGE_PROMPT = 'image-prompt'


@dataclass(frozen=True)
class TaskSpec:
    """Описание задачи для одного запроса к провайдеру"""
    system_prompt: str
    temperature: float
    result_key: str
    placeholder: str
    content_limit: Optional[int] = None
    raw_content: bool = False
    include_date: bool = False
    strip_result: bool = False


@dataclass(frozen=True)
class GenerationRequest:
    system_prompt: str
    user_prompt: str
    temperature: float

    def messages(self) -> List[Dict[str, str]]:
        return [
            {'role': 'system', 'content': self.system_prompt},
            {'role': 'user', 'content': self.user_prompt},
        ]


TRANSLATE_PROMPT = (
    'Ты профессиональный переводчик. Переведи следующий текст с английского на русский язык, '
    'сохраняя структуру и стиль оригинала.'
)

SUMMARY_PROMPT = (
    'Ты профессиональный аналитик. Прочитай следующую статью и создай краткое резюме на русском '
    'языке (2-3 абзаца), объясняющее основную тему и ключевые моменты статьи.'
)

THESES_PROMPT = (
    'Ты профессиональный аналитик. Прочитай следующую статью и выдели основные тезисы '
    '(ключевые идеи, утверждения, выводы). Представь их в виде структурированного списка на русском '
    'языке. Каждый тезис должен быть кратким и содержательным. Используй формат маркированного списка.'
)

TELEGRAM_POST_PROMPT = (
    'Ты профессиональный копирайтер. На основе следующей статьи создай пост для Telegram на русском '
    'языке. Пост должен быть:\n'
    '- Интересным и привлекающим внимание\n'
    '- Структурированным (используй Markdown: **жирный**, *курсив*, списки)\n'
    '- Содержать краткое резюме и ключевые моменты\n'
    '- Иметь призыв к действию или вопрос для обсуждения\n'
    '- Длина: 500-800 символов\n'
    'Используй только Markdown форматирование, поддерживаемое Telegram.'
)

IMAGE_PROMPT_PROMPT = (
    'Ты профессиональный художник и иллюстратор. На основе следующей статьи создай детальное описание '
    'изображения на английском языке для генерации иллюстрации. Описание должно быть конкретным, '
    'визуально богатым и отражать основную тему статьи. Используй стиль фотографии или реалистичной '
    'иллюстрации. Описание должно быть длиной 50-100 слов. Ответ должен содержать только описание '
    'изображения, без дополнительных комментариев.'
)

TASKS: Dict[TaskType, TaskSpec] = {
    TaskType.TRANSLATE: TaskSpec(
        system_prompt=TRANSLATE_PROMPT,
        temperature=0.3,
        result_key='translation',
        placeholder='Не удалось получить перевод',
        raw_content=True,
    ),
    TaskType.SUMMARIZE: TaskSpec(
        system_prompt=SUMMARY_PROMPT,
        temperature=0.3,
        result_key='summary',
        placeholder='Не удалось создать резюме статьи',
    ),
    TaskType.THESES: TaskSpec(
        system_prompt=THESES_PROMPT,
        temperature=0.3,
        result_key='theses',
        placeholder='Не удалось выделить тезисы статьи',
    ),
    TaskType.TELEGRAM_POST: TaskSpec(
        system_prompt=TELEGRAM_POST_PROMPT,
        temperature=0.7,
        result_key='post',
        placeholder='Не удалось создать пост для Telegram',
        include_date=True,
    ),
    TaskType.IMAGE_PROMPT: TaskSpec(
        system_prompt=IMAGE_PROMPT_PROMPT,
        temperature=0.7,
        result_key='prompt',
        placeholder='Не удалось создать промпт для изображения',
        content_limit=2000,
        strip_result=True,
    ),
}


def get_task(task: Union[str, TaskType]) -> TaskSpec:
    return TASKS[TaskType(task)]


def build_user_prompt(task_spec: TaskSpec, content: str,
                      title: Optional[str] = None, date: Optional[str] = None) -> str:
    """Заголовок (если есть), дата (для поста), затем контент с учётом лимита"""
    if task_spec.content_limit is not None:
        content = content[:task_spec.content_limit]

    if task_spec.raw_content:
        return content

    parts = []
    if title:
        parts.append(f'Заголовок: {title}')
    if task_spec.include_date and date:
        parts.append(f'Дата: {date}')
    parts.append(f'Контент: {content}')
    return '\n\n'.join(parts)


def build_request(task: Union[str, TaskType], content: str,
                  title: Optional[str] = None, date: Optional[str] = None) -> GenerationRequest:
    task_spec = get_task(task)
    return GenerationRequest(
        system_prompt=task_spec.system_prompt,
        user_prompt=build_user_prompt(task_spec, content, title, date),
        temperature=task_spec.temperature,
    )
