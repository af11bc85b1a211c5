"""File name templates.

Names are built either from one of the built-in patterns or from a custom
template such as ``"{date}_{host}_{title}"``. Every generated name goes
through :func:`sanitize_file_name`, which is idempotent.
"""

from __future__ import annotations

import re
import time
from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import datetime

from .models import NamingPattern
from .urls import extract_hostname

MAX_FILE_NAME_LENGTH = 200

TEMPLATE_VARIABLES: dict[str, str] = {
    "{title}": "Page title",
    "{domain}": "Full domain (e.g. www.example.com)",
    "{host}": "Host without www and TLD (e.g. example)",
    "{date}": "Current date (YYYY-MM-DD)",
    "{time}": "Current time (HH-MM-SS)",
    "{timestamp}": "Unix timestamp in milliseconds",
    "{year}": "Current year (YYYY)",
    "{month}": "Current month (MM)",
    "{day}": "Current day (DD)",
}

_INVALID_CHARS_RE = re.compile(r'[<>:"|?*\\/]')
_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]")
_UNDERSCORES_RE = re.compile(r"_+")
_VARIABLE_RE = re.compile(r"\{([^}]+)\}")


@dataclass(frozen=True, slots=True)
class FileNameContext:
    title: str
    url: str
    domain: str | None = None
    timestamp: float | None = None

    def moment(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp if self.timestamp is not None else time.time())


@dataclass(slots=True)
class TemplateValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
    used_variables: list[str] = field(default_factory=list)


def sanitize_file_name(name: str) -> str:
    cleaned = _INVALID_CHARS_RE.sub("", name)
    cleaned = _WHITESPACE_RE.sub("_", cleaned)
    cleaned = _UNSAFE_RE.sub("", cleaned)
    cleaned = _UNDERSCORES_RE.sub("_", cleaned)
    cleaned = cleaned.strip("._")
    return cleaned[:MAX_FILE_NAME_LENGTH].strip("._")


def format_date(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d")


def format_time(moment: datetime) -> str:
    return moment.strftime("%H-%M-%S")


def validate_template(template: str) -> TemplateValidation:
    errors: list[str] = []
    used: list[str] = []
    if not template or not template.strip():
        return TemplateValidation(valid=False, errors=["Template cannot be empty"])

    literal = _VARIABLE_RE.sub("", template)
    if _INVALID_CHARS_RE.search(literal):
        errors.append('Template contains invalid characters for file names: < > : " | ? * \\ /')

    for match in _VARIABLE_RE.finditer(template):
        variable = "{" + match.group(1) + "}"
        if variable in TEMPLATE_VARIABLES:
            used.append(variable)
        else:
            errors.append(f"Unknown variable: {variable}")

    if not used:
        errors.append("Template should include at least one variable")

    return TemplateValidation(valid=not errors, errors=errors, used_variables=used)


def process_template(template: str, context: FileNameContext) -> str:
    moment = context.moment()
    hostname = extract_hostname(context.url)
    domain = hostname or context.domain or ""
    host = re.sub(r"^www\.", "", domain).split(".")[0] if domain else ""
    values = {
        "{title}": sanitize_file_name(context.title),
        "{domain}": domain,
        "{host}": host,
        "{date}": format_date(moment),
        "{time}": format_time(moment),
        "{timestamp}": str(int(moment.timestamp() * 1000)),
        "{year}": f"{moment.year:04d}",
        "{month}": f"{moment.month:02d}",
        "{day}": f"{moment.day:02d}",
    }
    file_name = _VARIABLE_RE.sub(lambda m: values.get(m.group(0), m.group(0)), template)
    return sanitize_file_name(file_name)


def generate_file_name(
    pattern: NamingPattern | str,
    custom_template: str | None,
    context: FileNameContext,
) -> str:
    pattern = NamingPattern(pattern)
    if pattern is NamingPattern.DOMAIN_TITLE:
        hostname = extract_hostname(context.url)
        domain = re.sub(r"^www\.", "", hostname) if hostname else "unknown"
        return sanitize_file_name(f"{domain}_{context.title}")
    if pattern is NamingPattern.TIMESTAMP:
        return sanitize_file_name(f"{format_date(context.moment())}_{context.title}")
    if pattern is NamingPattern.CUSTOM_PREFIX and custom_template:
        return process_template(custom_template, context)
    return sanitize_file_name(context.title)



def unique_file_name(name: str, taken: Collection[str]) -> str:
    """Return *name*, or *name* with a ``-2``, ``-3`` ... suffix before ``.md`` when it is taken."""

    if name not in taken:
        return name
    stem, suffix = (name[: -len(".md")], ".md") if name.endswith(".md") else (name, "")
    counter = 2
    while f"{stem}-{counter}{suffix}" in taken:
        counter += 1
    return f"{stem}-{counter}{suffix}"


__all__ = [
    "FileNameContext",
    "MAX_FILE_NAME_LENGTH",
    "TEMPLATE_VARIABLES",
    "TemplateValidation",
    "format_date",
    "format_time",
    "generate_file_name",
    "process_template",
    "sanitize_file_name",
    "unique_file_name",
    "validate_template",
]
