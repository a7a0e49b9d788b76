"""
HTTP surface: aiohttp routes, the article workflow and the static page
"""
