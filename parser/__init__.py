"""Parser package: HTML parsing, CSS selection and link resolution."""

from parser.html import HtmlDocument, decode_body, select_tags
from parser.links import resolve_link, unique_links

__all__ = ["HtmlDocument", "decode_body", "select_tags", "resolve_link", "unique_links"]
