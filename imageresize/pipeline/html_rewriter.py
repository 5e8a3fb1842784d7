"""
Rewrite image references inside an HTML fragment to resized URLs.

Handles <img src|data-src|lazy-src="..."> and inline
style="background[-image]: ... url(...)" declarations. Everything around the
reference itself is left byte-for-byte as it was.
"""

import re
from typing import Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

# Group 2 is the reference; groups 1 and 3 are kept verbatim
IMG_PATTERN = re.compile(
    r'(<img\s[^>]*(?:src|data-src|lazy-src)=")([^"]+)(")',
    re.IGNORECASE,
)
BACKGROUND_PATTERN = re.compile(
    r"""(style="[^"]*background(?:-image)?:[^"]*?url\(['"]?)([^'")]+)(['"]?\))""",
    re.IGNORECASE,
)

PATTERNS = (IMG_PATTERN, BACKGROUND_PATTERN)


async def rewrite_html_images(
    html: str,
    resize: Callable[[str], Awaitable[str]],
    limit: int = 255,
) -> str:
    """
    Replace up to `limit` references per pattern with `await resize(ref)`.
    Each distinct reference is resized once.
    """
    urls: dict[str, str] = {}

    for pattern in PATTERNS:
        for match in list(pattern.finditer(html))[:limit]:
            reference = match.group(2)
            if reference not in urls:
                urls[reference] = await resize(reference)

        html = pattern.sub(
            lambda m: m.group(1) + urls.get(m.group(2), m.group(2)) + m.group(3),
            html,
            count=limit,
        )

    logger.debug("html_images_rewritten", references=len(urls))
    return html
