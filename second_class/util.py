"""Utility helpers."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")


def strip_html(value: str) -> str:
    """Drop every markup tag and turn non-breaking spaces into spaces.

    Script and style contents are dropped along with their tags.
    """
    soup = BeautifulSoup(value, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text(" ").replace("\u00a0", " ")
