"""
Format converters between the workspace project model and foreign formats.

Each converter exposes ``parse_<format>(data) -> ImportedProject`` and,
where supported, ``generate_<format>(project)``. cURL works on single
requests instead of projects.
"""

from typing import Any, Callable

from ...schemas.project import ImportedProject, Project
from .curl import generate_curl, parse_curl
from .insomnia import generate_insomnia, parse_insomnia
from .native import generate_native, parse_native
from .openapi import generate_openapi, parse_openapi
from .postman import generate_postman, parse_postman

PARSERS: dict[str, Callable[[Any], ImportedProject]] = {
    "postman": parse_postman,
    "insomnia": parse_insomnia,
    "openapi": parse_openapi,
    "native": parse_native,
}

GENERATORS: dict[str, Callable[[Project], dict]] = {
    "postman": generate_postman,
    "insomnia": generate_insomnia,
    "openapi": generate_openapi,
    "native": generate_native,
}

__all__ = [
    "PARSERS",
    "GENERATORS",
    "parse_postman",
    "generate_postman",
    "parse_insomnia",
    "generate_insomnia",
    "parse_openapi",
    "generate_openapi",
    "parse_native",
    "generate_native",
    "parse_curl",
    "generate_curl",
]
