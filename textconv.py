"""Text helpers shared by the editor and the public pages.

The HTML -> Markdown conversion is a fixed sequence of regex substitutions,
not a parser. Substitution order matters and nested or malformed markup is
passed through lossily.
"""

import math
import re

import markdown

WORDS_PER_MINUTE = 200

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "nl2br", "sane_lists"]

_HTML_TO_MARKDOWN = [
    (re.compile(r"<h1>(.*?)</h1>"), r"# \1\n\n"),
    (re.compile(r"<h2>(.*?)</h2>"), r"## \1\n\n"),
    (re.compile(r"<p>(.*?)</p>"), r"\1\n\n"),
    (re.compile(r"<strong>(.*?)</strong>"), r"**\1**"),
    (re.compile(r"<em>(.*?)</em>"), r"*\1*"),
    (re.compile(r"<blockquote>(.*?)</blockquote>"), r"> \1\n\n"),
    (re.compile(r"<ul>(.*?)</ul>", re.S), r"\1\n"),
    (re.compile(r"<ol>(.*?)</ol>", re.S), r"\1\n"),
    (re.compile(r"<li>(.*?)</li>"), r"- \1\n"),
    (re.compile(r'<a href="(.*?)">(.*?)</a>'), r"[\2](\1)"),
    (re.compile(r'<img src="(.*?)" alt="(.*?)">'), r"![\2](\1)"),
]

_ANY_TAG = re.compile(r"</?[^>]+(?:>|$)")
_SLUG_DROP = re.compile(r"[^\w ]+", re.ASCII)
_SLUG_EDIT_DROP = re.compile(r"[^\w -]+", re.ASCII)
_SLUG_SPACES = re.compile(r" +")


def generate_slug(title: str) -> str:
    """URL-safe slug: lowercase, punctuation dropped, spaces -> '-'."""
    slug = (title or "").lower()
    slug = _SLUG_DROP.sub("", slug)
    return _SLUG_SPACES.sub("-", slug)


def normalize_slug(slug: str) -> str:
    """Clean a hand-typed slug. Unlike generate_slug, existing '-' are kept."""
    slug = (slug or "").strip().lower()
    slug = _SLUG_EDIT_DROP.sub("", slug)
    return _SLUG_SPACES.sub("-", slug)


def html_to_markdown(html: str) -> str:
    text = html or ""
    for pattern, repl in _HTML_TO_MARKDOWN:
        text = pattern.sub(repl, text)
    text = _ANY_TAG.sub("", text)
    return text.strip()


def markdown_to_html(text: str) -> str:
    return markdown.markdown(text or "", extensions=MARKDOWN_EXTENSIONS)


def strip_tags(html: str) -> str:
    return re.sub(r"<[^>]*>", "", html or "")


def reading_time(html: str) -> int:
    """Minutes to read, at WORDS_PER_MINUTE. Never less than one."""
    words = strip_tags(html).split()
    return max(1, math.ceil(len(words) / WORDS_PER_MINUTE))
