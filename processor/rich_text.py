"""HTML rendering of rich-text cells."""
from bs4 import BeautifulSoup

from processor.models import RichText


def render_rich_text(text: RichText) -> str:
    """
    Render a rich-text cell as Basecamp-compatible HTML.

    Hyperlinked cells become an anchor and struck-through cells are wrapped
    in <s>, so both kinds of formatting are part of the rendered value.

    Args:
        text: RichText cell to render

    Returns:
        HTML fragment with the cell value escaped
    """
    soup = BeautifulSoup('', 'html.parser')
    container = soup.new_tag('span')
    node = text.value

    if text.link:
        anchor = soup.new_tag('a', href=text.link)
        anchor.string = text.value
        node = anchor

    if text.strikethrough:
        struck = soup.new_tag('s')
        struck.append(node)
        node = struck

    container.append(node)
    return container.decode_contents()


def render_link(label: str, url: str) -> str:
    """Render a single anchor tag."""
    return render_rich_text(RichText(value=label, link=url))
