"""
Image placeholder protocol over generated markup.

Two independent conventions are handled here:
  - the sentinel `src="[AI_IMAGE_PROMPT: <prompt>]"`, resolved once at
    generation time and rewritten positionally
  - the slot identifier `id="ai-image-<n>"`, used afterwards to find and
    replace individual images
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from .prompts import IMAGE_ID_PREFIX, IMAGE_PROMPT_SENTINEL
from .schemas import ImageResult, ImageSlot

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r'src="\[' + IMAGE_PROMPT_SENTINEL + r': (.*?)]"')
SENTINEL_FRAGMENT_PATTERN = re.compile(r"\[?" + IMAGE_PROMPT_SENTINEL + r"[^\]\n>]*\]?")
IMAGE_ID_PATTERN = re.compile("^" + re.escape(IMAGE_ID_PREFIX) + r"\d+$")

IMG_START_TAG_PATTERN = re.compile(r"""<img\b(?:"[^"]*"|'[^']*'|[^'">])*>""", re.IGNORECASE)
IMG_NAME_PATTERN = re.compile(r"<img\b", re.IGNORECASE)
ATTRIBUTE_PATTERN = re.compile(
    r"""(\s+)([^\s"'>/=]+)(?:(\s*=\s*)("[^"]*"|'[^']*'|[^\s"'>]+))?"""
)


@dataclass(frozen=True)
class ImagePlaceholder:
    index: int
    prompt: str
    start: int
    end: int


def find_placeholders(markup: str) -> List[ImagePlaceholder]:
    """All exact sentinel occurrences, in document order."""
    return [
        ImagePlaceholder(index=i, prompt=match.group(1), start=match.start(), end=match.end())
        for i, match in enumerate(PLACEHOLDER_PATTERN.finditer(markup))
    ]


def _quote_attr(value: str) -> str:
    return '"' + value.replace('"', "&quot;") + '"'


def rewrite_placeholders(markup: str, uris: Sequence[str]) -> str:
    """Substitute the Nth placeholder with the Nth URI."""
    placeholders = find_placeholders(markup)
    if len(placeholders) != len(uris):
        raise ValueError(
            f"Expected {len(placeholders)} image URIs for the placeholders, got {len(uris)}"
        )

    remaining = iter(uris)
    return PLACEHOLDER_PATTERN.sub(lambda _match: "src=" + _quote_attr(next(remaining)), markup)


async def resolve_placeholders(
    markup: str,
    resolve: Callable[[str], Awaitable[ImageResult]],
) -> Tuple[str, List[ImageResult]]:
    """
    Generate an image for every placeholder and rewrite the markup.

    All `resolve` calls run concurrently and are joined before the single
    rewrite pass. Results are assigned by position, so two identical prompts
    each get their own image. `resolve` is expected not to raise.
    """
    placeholders = find_placeholders(markup)
    if not placeholders:
        return markup, []

    logger.info("Resolving %d image placeholders", len(placeholders))
    results = list(await asyncio.gather(*(resolve(p.prompt) for p in placeholders)))
    return rewrite_placeholders(markup, [result.uri for result in results]), results


def find_unresolved_sentinels(markup: str) -> List[str]:
    """Sentinel-looking fragments that the exact placeholder pattern did not match."""
    return [match.group(0) for match in SENTINEL_FRAGMENT_PATTERN.finditer(markup)]


def _attr_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def scan_images(markup: str) -> List[ImageSlot]:
    soup = BeautifulSoup(markup, "html.parser")
    return [
        ImageSlot(
            id=_attr_text(tag.get("id")),
            src=_attr_text(tag.get("src")),
            alt=_attr_text(tag.get("alt")),
        )
        for tag in soup.find_all("img", id=IMAGE_ID_PATTERN)
    ]


def _offset_of(markup: str, line: int, column: int) -> int:
    # html.parser reports 1-based lines split on "\n" and 0-based columns
    offset = 0
    for _ in range(line - 1):
        offset = markup.index("\n", offset) + 1
    return offset + column


def _with_src(start_tag: str, new_src: str) -> str:
    name = IMG_NAME_PATTERN.match(start_tag)
    if name is None:
        raise ValueError(f"Not an img start tag: {start_tag[:40]!r}")

    for attr in ATTRIBUTE_PATTERN.finditer(start_tag, name.end()):
        if attr.group(2).lower() != "src":
            continue
        if attr.group(4) is not None:
            return start_tag[: attr.start(4)] + _quote_attr(new_src) + start_tag[attr.end(4):]
        return start_tag[: attr.end(2)] + "=" + _quote_attr(new_src) + start_tag[attr.end(2):]

    return start_tag[: name.end()] + " src=" + _quote_attr(new_src) + start_tag[name.end():]


def replace_image_source(markup: str, image_id: str, new_src: str) -> Tuple[str, bool]:
    """
    Point the image carrying `image_id` at `new_src`.

    Only the value of that element's `src` attribute changes; every other
    byte of the markup is preserved. A missing identifier is logged and the
    markup is returned unchanged with `False`.
    """
    soup = BeautifulSoup(markup, "html.parser")
    matches = soup.find_all("img", id=image_id)
    if not matches:
        logger.warning('Could not find image with id="%s" to replace src', image_id)
        return markup, False
    if len(matches) > 1:
        logger.warning('Found %d images with id="%s"; replacing the first', len(matches), image_id)

    tag = matches[0]
    if tag.sourceline is None or tag.sourcepos is None:
        logger.warning('No source position for image id="%s"', image_id)
        return markup, False

    start = _offset_of(markup, tag.sourceline, tag.sourcepos)
    start_tag = IMG_START_TAG_PATTERN.match(markup, start)
    if start_tag is None:
        logger.warning('Could not locate start tag for image id="%s" at offset %d', image_id, start)
        return markup, False

    rewritten = _with_src(start_tag.group(0), new_src)
    return markup[: start_tag.start()] + rewritten + markup[start_tag.end():], True


def extract_title(markup: str) -> Optional[str]:
    soup = BeautifulSoup(markup, "html.parser")
    title = soup.find("title")
    if title is None:
        return None
    text = title.get_text().strip()
    return text or None
