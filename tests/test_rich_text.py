"""Unit tests for rich-text rendering."""
from processor.models import RichText
from processor.rich_text import render_link, render_rich_text


def test_render_plain_text_is_escaped():
    assert render_rich_text(RichText('Tea & <cookies>')) == 'Tea &amp; &lt;cookies&gt;'


def test_render_link():
    assert render_rich_text(RichText('Hall', link='https://example.com/hall')) == (
        '<a href="https://example.com/hall">Hall</a>'
    )


def test_render_strikethrough_link():
    text = RichText('Hall', link='https://example.com/hall', strikethrough=True)

    assert render_rich_text(text) == '<s><a href="https://example.com/hall">Hall</a></s>'


def test_render_empty_value():
    assert render_rich_text(RichText()) == ''


def test_render_link_helper():
    assert render_link('Lead', 'https://3.basecamp.com/1/todos/2') == '<a href="https://3.basecamp.com/1/todos/2">Lead</a>'
