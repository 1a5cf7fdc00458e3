"""HTML reduction before sending a page to the LLM."""
import logging
import re

from bs4 import BeautifulSoup, Comment

logger = logging.getLogger(__name__)

MAX_HTML_LENGTH: int = 50000
TRUNCATE_THRESHOLD: float = 0.8

KEPT_ATTRIBUTES: frozenset[str] = frozenset(
    {"id", "name", "type", "required", "placeholder", "class", "for"}
)
VALUE_TAGS: frozenset[str] = frozenset({"input", "button"})
REMOVED_TAGS: tuple[str, ...] = ("script", "style", "noscript")
WRAPPER_TAGS: frozenset[str] = frozenset(
    {"div", "span", "p", "section", "article", "header", "footer", "nav", "aside"}
)
CLOSING_TAGS: tuple[str, ...] = ("</form>", "</div>", "</section>")


def _keep_attribute(tag_name: str, attr: str) -> bool:
    if attr in KEPT_ATTRIBUTES or attr.startswith("aria-"):
        return True
    return attr == "value" and tag_name in VALUE_TAGS


def truncate_html(html: str, max_length: int = MAX_HTML_LENGTH) -> str:
    """Cut HTML to max_length, preferring the last closing container tag near the end."""
    if len(html) <= max_length:
        return html

    truncated = html[:max_length]
    cut = -1
    for tag in CLOSING_TAGS:
        index = truncated.rfind(tag)
        if index >= 0:
            cut = max(cut, index + len(tag))

    if cut > max_length * TRUNCATE_THRESHOLD:
        return truncated[:cut]
    return truncated


def optimize_html(html: str, max_length: int = MAX_HTML_LENGTH) -> str:
    """Strip a page down to the markup that matters for form detection.

    Removes comments, scripts, styles and noscript blocks, keeps only
    selector- and label-relevant attributes, drops empty layout wrappers and
    collapses whitespace.

    Args:
        html: Full page HTML.
        max_length: Character ceiling for the result.

    Returns:
        Reduced HTML of the body (or the whole document if there is no body).
    """
    soup = BeautifulSoup(html or "", "html.parser")

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    for tag in soup.find_all(list(REMOVED_TAGS)):
        tag.decompose()

    root = soup.body or soup

    for tag in root.find_all(True):
        tag.attrs = {
            attr: value
            for attr, value in tag.attrs.items()
            if _keep_attribute(tag.name, attr)
        }

    # Reverse document order so nested empty wrappers collapse in one pass
    for tag in reversed(root.find_all(list(WRAPPER_TAGS))):
        if not tag.find(True) and not tag.get_text(strip=True):
            tag.decompose()

    optimized = root.decode_contents() if soup.body else str(soup)
    optimized = re.sub(r"\s+", " ", optimized)
    optimized = re.sub(r">\s+<", "><", optimized).strip()
    optimized = truncate_html(optimized, max_length)

    if html:
        reduction = (len(html) - len(optimized)) / len(html) * 100
        logger.debug(f"Optimized HTML {len(html)} -> {len(optimized)} chars ({reduction:.1f}%)")
    return optimized
