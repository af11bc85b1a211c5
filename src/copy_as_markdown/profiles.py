"""Profile construction, (de)serialisation and collection invariants.

Profiles arrive as plain mappings, either in the camelCase shape of
exported profile files (``markdownFlavor``, ``imageHandling``...) or in
snake_case. Both are accepted; output is always camelCase.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from pathlib import Path
from typing import Any

from .errors import ProfileError
from .models import (
    CodeBlockStyle,
    ContentFilters,
    ConversionProfile,
    EmissionOptions,
    FormattingOptions,
    HeadingStyle,
    ImageHandling,
    ImageStrategy,
    LinkHandling,
    LinkStyle,
    MarkdownFlavor,
    MatchMode,
    MatchType,
    OutputFormat,
    ProfileMatchRule,
    ProfileMatchRules,
    RuleType,
)

DEFAULT_PROFILE_ID = "default"

_CAMEL_RE = re.compile(r"_([a-z])")


def _camel(key: str) -> str:
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), key)


def _get(data: Mapping[str, Any] | None, key: str, default: Any = None) -> Any:
    """Look up *key* (snake_case) in *data* accepting its camelCase spelling too."""

    if not data:
        return default
    if key in data:
        return data[key]
    return data.get(_camel(key), default)


def _section(data: Mapping[str, Any] | None, key: str) -> Mapping[str, Any] | None:
    value = _get(data, key)
    return value if isinstance(value, Mapping) else None


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def default_profile(timestamp: int = 0) -> ConversionProfile:
    return ConversionProfile(
        id=DEFAULT_PROFILE_ID,
        name="Default",
        match_rules=ProfileMatchRules(
            enabled=True,
            priority=0,
            match_type=MatchType.ANY,
            rules=(ProfileMatchRule(RuleType.URL_PATTERN, "*", MatchMode.CONTAINS),),
        ),
        is_default=True,
        is_built_in=True,
        created_at=timestamp,
        updated_at=timestamp,
    )


def _build_images(data: Mapping[str, Any] | None) -> ImageHandling:
    if not data:
        return ImageHandling()
    return ImageHandling(
        strategy=ImageStrategy(_get(data, "strategy", "link")),
        max_width=_optional_int(_get(data, "max_width")),
        lazy_load_handling=bool(_get(data, "lazy_load_handling", True)),
        fallback_alt_text=str(_get(data, "fallback_alt_text", "Image")),
    )


def _build_links(data: Mapping[str, Any] | None) -> LinkHandling:
    if not data:
        return LinkHandling()
    # Older stores wrote ``trackingRemoval``; the newer field wins when both exist.
    remove_tracking = _get(data, "remove_tracking_params")
    if remove_tracking is None:
        remove_tracking = _get(data, "tracking_removal", True)
    return LinkHandling(
        style=LinkStyle(_get(data, "style", "absolute")),
        remove_tracking_params=bool(remove_tracking),
        convert_relative_urls=bool(_get(data, "convert_relative_urls", True)),
        open_in_new_tab=bool(_get(data, "open_in_new_tab", False)),
        follow_redirects=bool(_get(data, "follow_redirects", False)),
        shorten_urls=bool(_get(data, "shorten_urls", False)),
    )


def _build_filters(data: Mapping[str, Any] | None) -> ContentFilters:
    if not data:
        return ContentFilters()
    level = int(_get(data, "max_heading_level", 6))
    return ContentFilters(
        include_css=tuple(str(item) for item in _get(data, "include_css", ()) or ()),
        exclude_css=tuple(
            str(item) for item in _get(data, "exclude_css", ContentFilters().exclude_css) or ()
        ),
        include_hidden=bool(_get(data, "include_hidden", False)),
        include_comments=bool(_get(data, "include_comments", False)),
        include_scripts=bool(_get(data, "include_scripts", False)),
        include_iframes=bool(_get(data, "include_iframes", False)),
        max_heading_level=max(1, min(level, 6)),
        min_content_length=int(_get(data, "min_content_length", 0)),
    )


def _build_formatting(data: Mapping[str, Any] | None) -> FormattingOptions:
    if not data:
        return FormattingOptions()
    return FormattingOptions(
        line_width=_optional_int(_get(data, "line_width")),
        bold_style=str(_get(data, "bold_style", "**")),
        italic_style=str(_get(data, "italic_style", "*")),
        hr_style=str(_get(data, "hr_style", "---")),
        list_indentation=int(_get(data, "list_indentation", 2)),
        code_block_syntax=bool(_get(data, "code_block_syntax", True)),
        table_alignment=bool(_get(data, "table_alignment", True)),
    )


def _build_emission(
    data: Mapping[str, Any] | None, formatting: FormattingOptions
) -> EmissionOptions:
    # Without explicit emission options the formatting styles supply the delimiters.
    if not data:
        return EmissionOptions(
            strong_delimiter=formatting.bold_style, em_delimiter=formatting.italic_style
        )
    return EmissionOptions(
        heading_style=HeadingStyle(_get(data, "heading_style", "atx")),
        bullet_list_marker=str(_get(data, "bullet_list_marker", "-")),
        code_block_style=CodeBlockStyle(_get(data, "code_block_style", "fenced")),
        fence=str(_get(data, "fence", "```")),
        em_delimiter=str(_get(data, "em_delimiter", formatting.italic_style)),
        strong_delimiter=str(_get(data, "strong_delimiter", formatting.bold_style)),
        link_style=str(_get(data, "link_style", "inlined")),
    )


def _build_output(data: Mapping[str, Any] | None) -> OutputFormat:
    if not data:
        return OutputFormat()
    return OutputFormat(
        add_metadata=bool(_get(data, "add_metadata", True)),
        add_table_of_contents=bool(_get(data, "add_table_of_contents", False)),
        add_footnotes=bool(_get(data, "add_footnotes", True)),
        wrap_line_length=int(_get(data, "wrap_line_length", 0)),
        preserve_newlines=bool(_get(data, "preserve_newlines", False)),
    )


def _build_match_rules(data: Mapping[str, Any] | None) -> ProfileMatchRules | None:
    if data is None:
        return None
    rules = tuple(
        ProfileMatchRule(
            type=RuleType(_get(rule, "type")),
            pattern=str(_get(rule, "pattern", "")),
            match_mode=MatchMode(_get(rule, "match_mode", "contains")),
        )
        for rule in _get(data, "rules", ()) or ()
    )
    return ProfileMatchRules(
        enabled=bool(_get(data, "enabled", False)),
        priority=int(_get(data, "priority", 0)),
        match_type=MatchType(_get(data, "match_type", "any")),
        rules=rules,
    )


def profile_from_dict(data: Mapping[str, Any]) -> ConversionProfile:
    profile_id = _get(data, "id")
    if not profile_id:
        raise ProfileError("Profile is missing an id")
    formatting = _build_formatting(_section(data, "formatting"))
    emission_data = _section(data, "emission") or _section(data, "conversion_options")
    return ConversionProfile(
        id=str(profile_id),
        name=str(_get(data, "name", profile_id)),
        markdown_flavor=MarkdownFlavor(_get(data, "markdown_flavor", "commonmark")),
        image_handling=_build_images(_section(data, "image_handling")),
        link_handling=_build_links(_section(data, "link_handling")),
        content_filters=_build_filters(_section(data, "content_filters")),
        formatting=formatting,
        emission=_build_emission(emission_data, formatting),
        output_format=_build_output(_section(data, "output_format")),
        match_rules=_build_match_rules(_section(data, "match_rules")),
        is_default=bool(_get(data, "is_default", False)),
        is_built_in=bool(_get(data, "is_built_in", False)),
        created_at=int(_get(data, "created_at", 0)),
        updated_at=int(_get(data, "updated_at", 0)),
    )


def _camel_dict(value: Any) -> Any:
    if hasattr(value, "__dataclass_fields__"):
        return {
            _camel(name): _camel_dict(getattr(value, name))
            for name in value.__dataclass_fields__
        }
    if isinstance(value, tuple):
        return [_camel_dict(item) for item in value]
    if hasattr(value, "value") and isinstance(getattr(value, "value"), str):
        return value.value
    return value


def profile_to_dict(profile: ConversionProfile) -> dict[str, Any]:
    return _camel_dict(profile)


def load_profiles(path: Path) -> list[ConversionProfile]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, Mapping):
        raw = raw.get("profiles", [])
    if not isinstance(raw, list):
        raise ProfileError(f"Expected a list of profiles in {path}")
    return [profile_from_dict(item) for item in raw]


class ProfileCollection:
    """Ordered profiles with exactly one default."""

    def __init__(self, profiles: Iterable[ConversionProfile]) -> None:
        self._profiles = list(profiles)
        self._validate()

    def _validate(self) -> None:
        defaults = [profile for profile in self._profiles if profile.is_default]
        if len(defaults) != 1:
            raise ProfileError(f"Expected exactly one default profile, found {len(defaults)}")
        seen: set[str] = set()
        for profile in self._profiles:
            if profile.id in seen:
                raise ProfileError(f"Duplicate profile id: {profile.id}")
            seen.add(profile.id)

    @classmethod
    def with_builtin(cls, profiles: Iterable[ConversionProfile] = ()) -> "ProfileCollection":
        extra = list(profiles)
        if any(profile.id == DEFAULT_PROFILE_ID for profile in extra):
            return cls(extra)
        builtin = default_profile()
        if any(profile.is_default for profile in extra):
            builtin = replace(builtin, is_default=False)
        return cls([builtin, *extra])

    def __iter__(self):
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    @property
    def profiles(self) -> Sequence[ConversionProfile]:
        return tuple(self._profiles)

    @property
    def default(self) -> ConversionProfile:
        return next(profile for profile in self._profiles if profile.is_default)

    def get(self, profile_id: str) -> ConversionProfile | None:
        return next((profile for profile in self._profiles if profile.id == profile_id), None)

    def update(self, profile: ConversionProfile) -> "ProfileCollection":
        """Return a new collection with *profile* replacing the one sharing its id."""

        current = self.get(profile.id)
        if current is None:
            return ProfileCollection([*self._profiles, profile])
        if current.is_built_in and (
            profile.name != current.name
            or profile.created_at != current.created_at
            or not profile.is_built_in
        ):
            raise ProfileError(f"Built-in profile {current.id} cannot change its identity")
        return ProfileCollection(
            [profile if existing.id == profile.id else existing for existing in self._profiles]
        )

    def set_default(self, profile_id: str) -> "ProfileCollection":
        if self.get(profile_id) is None:
            raise ProfileError(f"Unknown profile: {profile_id}")
        return ProfileCollection(
            [replace(profile, is_default=profile.id == profile_id) for profile in self._profiles]
        )

    def remove(self, profile_id: str) -> "ProfileCollection":
        profile = self.get(profile_id)
        if profile is None:
            raise ProfileError(f"Unknown profile: {profile_id}")
        if profile.is_built_in:
            raise ProfileError(f"Built-in profile {profile_id} cannot be deleted")
        remaining = [existing for existing in self._profiles if existing.id != profile_id]
        if profile.is_default and remaining:
            fallback = next((item for item in remaining if item.is_built_in), remaining[0])
            remaining = [replace(item, is_default=item.id == fallback.id) for item in remaining]
        return ProfileCollection(remaining)


def load_collection(path: Path | None) -> ProfileCollection:
    """Load user profiles from *path* alongside the built-in default."""

    if path is None or not path.exists():
        return ProfileCollection.with_builtin()
    try:
        return ProfileCollection.with_builtin(load_profiles(path))
    except (json.JSONDecodeError, ValueError, TypeError) as exc:
        raise ProfileError(f"Invalid profiles file {path}: {exc}") from exc


__all__ = [
    "DEFAULT_PROFILE_ID",
    "ProfileCollection",
    "default_profile",
    "load_collection",
    "load_profiles",
    "profile_from_dict",
    "profile_to_dict",
]
