"""Username generation for issued database users."""

import re
import secrets
import shlex
import string
import time
import uuid
from typing import Callable, List, Tuple, Union

from atlas_broker.core.validation import sanitize_username_fragment
from atlas_broker.models.database import UsernameMetadata

ALPHANUMERIC = string.ascii_letters + string.digits

DEFAULT_PREFIX = "v"
DEFAULT_SEPARATOR = "-"
DEFAULT_ROLE_LENGTH = 15
DEFAULT_RANDOM_LENGTH = 20
DEFAULT_MAX_LENGTH = 20

ACTION_PATTERN = re.compile(r"\{\{\s*(.*?)\s*\}\}")

FIELD_ALIASES = {
    "role": "role_name",
    "role_name": "role_name",
    ".RoleName": "role_name",
    "display": "display_name",
    "display_name": "display_name",
    ".DisplayName": "display_name",
}


class TemplateError(ValueError):
    """Raised when a username template cannot be parsed."""


def random_alphanumeric(length: int) -> str:
    """Cryptographically random string of letters and digits."""
    return "".join(secrets.choice(ALPHANUMERIC) for _ in range(length))


def generate_default_username(metadata: UsernameMetadata) -> str:
    """
    Build ``v-<role>-<random>`` capped at 20 characters.

    The role name is stripped of characters Atlas rejects and truncated to 15
    characters; the random suffix fills whatever room is left.
    """
    role = sanitize_username_fragment(metadata.role_name)[:DEFAULT_ROLE_LENGTH]
    username = DEFAULT_SEPARATOR.join(
        [DEFAULT_PREFIX, role, random_alphanumeric(DEFAULT_RANDOM_LENGTH)]
    )
    return username[:DEFAULT_MAX_LENGTH]


Source = Callable[[UsernameMetadata], str]
Filter = Callable[[str], str]
Segment = Union[str, Tuple[Source, List[Filter]]]


def _parse_int(value: str, action: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise TemplateError(f"expected a number in '{{{{{action}}}}}', got '{value}'") from None
    if number < 0:
        raise TemplateError(f"negative number in '{{{{{action}}}}}'")
    return number


def _split(expr: str, action: str) -> List[str]:
    try:
        return shlex.split(expr)
    except ValueError:
        raise TemplateError(f"unterminated quote in '{{{{{action}}}}}'") from None


def _parse_source(expr: str, action: str) -> Source:
    words = _split(expr, action)
    if not words:
        raise TemplateError("empty template action")
    name, args = words[0], words[1:]

    if name in FIELD_ALIASES and not args:
        field = FIELD_ALIASES[name]
        return lambda metadata: getattr(metadata, field)
    if name == "random" and len(args) == 1:
        length = _parse_int(args[0], action)
        return lambda metadata: random_alphanumeric(length)
    if name == "unix_time" and not args:
        return lambda metadata: str(int(time.time()))
    if name == "uuid" and not args:
        return lambda metadata: str(uuid.uuid4())
    raise TemplateError(f"unknown template action '{{{{{action}}}}}'")


def _parse_filter(expr: str, action: str) -> Filter:
    words = _split(expr, action)
    if not words:
        raise TemplateError(f"empty pipeline stage in '{{{{{action}}}}}'")
    name, args = words[0], words[1:]

    if name == "truncate" and len(args) == 1:
        length = _parse_int(args[0], action)
        return lambda value: value[:length]
    if name == "lowercase" and not args:
        return str.lower
    if name == "uppercase" and not args:
        return str.upper
    if name == "replace" and len(args) == 2:
        old, new = args
        return lambda value: value.replace(old, new)
    raise TemplateError(f"unknown template function '{name}' in '{{{{{action}}}}}'")


class UsernameTemplate:
    """A ``{{...}}`` username template.

    Each action is a source optionally piped through filters::

        action  := source ( "|" filter )*
        source  := role | role_name | .RoleName
                 | display | display_name | .DisplayName
                 | random N | unix_time | uuid
        filter  := truncate N | lowercase | uppercase | replace OLD NEW

    Arguments may be quoted (``replace "." "_"``). There is no ``printf``,
    no parenthesised sub-expressions and no variables; anything else is
    rejected. Examples:

        ``begin_{{role}}_end``
        ``v_{{.DisplayName | truncate 8}}_{{random 10 | lowercase}}``

    Parsing happens once, at construction, so a bad template is reported when
    the plugin is configured rather than on the first issuance.
    """

    def __init__(self, template: str):
        if not template:
            raise TemplateError("username template is empty")
        self.template = template
        self._segments = self._parse(template)

    @staticmethod
    def _parse(template: str) -> List[Segment]:
        segments: List[Segment] = []
        position = 0
        for match in ACTION_PATTERN.finditer(template):
            if match.start() > position:
                segments.append(template[position:match.start()])
            action = match.group(1)
            stages = [stage.strip() for stage in action.split("|")]
            source = _parse_source(stages[0], action)
            filters = [_parse_filter(stage, action) for stage in stages[1:]]
            segments.append((source, filters))
            position = match.end()
        if position < len(template):
            segments.append(template[position:])

        literal = "".join(s for s in segments if isinstance(s, str))
        if "{{" in literal or "}}" in literal:
            raise TemplateError("unbalanced '{{' or '}}' in username template")
        return segments

    def render(self, metadata: UsernameMetadata) -> str:
        parts = []
        for segment in self._segments:
            if isinstance(segment, str):
                parts.append(segment)
                continue
            source, filters = segment
            value = source(metadata)
            for apply in filters:
                value = apply(value)
            parts.append(value)
        return "".join(parts)
