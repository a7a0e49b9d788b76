#!/usr/bin/env python3
"""
CLI tool: run one article action or generate an illustration from a prompt
"""

import argparse
import asyncio
import base64
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import load_config
from content_extraction.article_extractor import ArticleFetcher
from llm.completion import CompletionDispatcher
from llm.image_generation import ImageDispatcher
from llm.provider_router import PROVIDER_ALIASES, Provider
from llm.tasks import TaskType
from utils.errors import ReferentError
from utils.logging_config import setup_logging
from utils.network import NetworkSession
from web.workflow import ArticleWorkflow, describe_error

IMAGE_ACTION = 'image'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Referent: article parsing and AI processing')
    parser.add_argument('action', choices=['parse'] + [t.value for t in TaskType] + [IMAGE_ACTION],
                        help='Action to perform')
    parser.add_argument('--url', help='Article URL')
    parser.add_argument('--provider',
                        choices=[p.value for p in Provider] + list(PROVIDER_ALIASES),
                        help='LLM provider (default from DEFAULT_PROVIDER)')
    parser.add_argument('--prompt', help='Prompt for the image action')
    parser.add_argument('--output', default='illustration.png', help='Where to save the image')
    return parser


async def run_action(args, config) -> int:
    session = NetworkSession(timeout=config.HTTP_TIMEOUT_S)
    try:
        client = session.client

        if args.action == IMAGE_ACTION:
            if not args.prompt:
                print("Please provide --prompt for the image action")
                return 1
            image = await ImageDispatcher(config, client).generate(args.prompt)
            encoded = image.data_uri.split(',', 1)[1]
            Path(args.output).write_bytes(base64.b64decode(encoded))
            print(f"Image saved: {args.output} ({image.mime_type}, {image.size} bytes)")
            return 0

        if not args.url:
            print("Please provide --url")
            return 1

        fetcher = ArticleFetcher(client, block_private_urls=config.BLOCK_PRIVATE_URLS)

        if args.action == 'parse':
            article = await fetcher.fetch(args.url)
            print("Title:", article.title)
            print("Date:", article.date)
            print("Content:", article.content)
            return 0

        workflow = ArticleWorkflow(fetcher, CompletionDispatcher(config, client))
        result = await workflow.run(args.url, args.action, args.provider)
        print(result.output)
        return 0

    except ReferentError as e:
        details = describe_error(e)
        print(f"Error [{details['category']}]: {details['error']}")
        print(details['hint'])
        return 1
    finally:
        await session.close()


def main():
    args = build_parser().parse_args()
    config = load_config()
    setup_logging(config)
    return asyncio.run(run_action(args, config))


if __name__ == '__main__':
    sys.exit(main())
