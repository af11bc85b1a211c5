"""Automatic profile selection from match rules."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from .models import ConversionProfile, MatchMode, MatchType, PageContext, ProfileMatchRule, RuleType
from .urls import extract_hostname

_MODE_TEXT = {
    MatchMode.EXACT: "exactly matches",
    MatchMode.CONTAINS: "contains",
    MatchMode.STARTS_WITH: "starts with",
    MatchMode.ENDS_WITH: "ends with",
    MatchMode.REGEX: "matches pattern",
}

_TYPE_TEXT = {
    RuleType.DOMAIN: "Domain",
    RuleType.URL_PATTERN: "URL",
    RuleType.TITLE: "Page title",
    RuleType.META_TAG: "Meta tag",
    RuleType.SELECTOR: "CSS selector",
}


def matches_pattern(value: str, pattern: str, mode: MatchMode) -> bool:
    if not value:
        return False
    lowered_value = value.lower()
    lowered_pattern = pattern.lower()
    if mode is MatchMode.EXACT:
        return lowered_value == lowered_pattern
    if mode is MatchMode.CONTAINS:
        return pattern == "*" or lowered_pattern in lowered_value
    if mode is MatchMode.STARTS_WITH:
        return lowered_value.startswith(lowered_pattern)
    if mode is MatchMode.ENDS_WITH:
        return lowered_value.endswith(lowered_pattern)
    if mode is MatchMode.REGEX:
        try:
            compiled = re.compile(pattern, re.IGNORECASE)
        except re.error:
            return False
        return compiled.search(value) is not None
    raise ValueError(f"Unsupported match mode: {mode!r}")


def _split_meta_pattern(pattern: str, meta_tags: Mapping[str, str]) -> tuple[str, str]:
    # Names such as ``og:site_name`` contain colons, so prefer the longest known name.
    parts = pattern.split(":")
    for index in range(len(parts) - 1, 0, -1):
        name = ":".join(parts[:index])
        if name in meta_tags:
            return name, ":".join(parts[index:])
    name, _, expected = pattern.partition(":")
    return name, expected


def rule_matches(rule: ProfileMatchRule, context: PageContext) -> bool:
    if rule.type is RuleType.DOMAIN:
        domain = context.domain or extract_hostname(context.url) or ""
        return matches_pattern(domain, rule.pattern, rule.match_mode)
    if rule.type is RuleType.URL_PATTERN:
        return matches_pattern(context.url, rule.pattern, rule.match_mode)
    if rule.type is RuleType.TITLE:
        return matches_pattern(context.title, rule.pattern, rule.match_mode)
    if rule.type is RuleType.META_TAG:
        name, expected = _split_meta_pattern(rule.pattern, context.meta_tags)
        actual = context.meta_tags.get(name)
        if actual is None:
            return False
        return matches_pattern(actual, expected, rule.match_mode)
    if rule.type is RuleType.SELECTOR:
        if context.has_selector is None:
            return False
        return bool(context.has_selector(rule.pattern))
    raise ValueError(f"Unsupported rule type: {rule.type!r}")


def describe_rule(rule: ProfileMatchRule) -> str:
    return f'{_TYPE_TEXT[rule.type]} {_MODE_TEXT[rule.match_mode]} "{rule.pattern}"'


def is_regex_valid(pattern: str) -> bool:
    try:
        re.compile(pattern)
    except re.error:
        return False
    return True


class ProfileMatcher:
    """Ranks profiles against a page.

    Holds no state between calls; construct one wherever it is needed.
    """

    def find_matching_profile(
        self, profiles: Sequence[ConversionProfile], context: PageContext
    ) -> ConversionProfile | None:
        candidates = [
            profile
            for profile in profiles
            if profile.match_rules is not None
            and profile.match_rules.enabled
            and profile.match_rules.rules
        ]
        matching = [profile for profile in candidates if self.profile_matches(profile, context)]
        if not matching:
            return self._default(profiles)
        # sorted() is stable, so equal priorities keep input order
        ranked = sorted(matching, key=lambda profile: profile.match_rules.priority, reverse=True)
        return ranked[0]

    def profile_matches(self, profile: ConversionProfile, context: PageContext) -> bool:
        match_rules = profile.match_rules
        if match_rules is None or not match_rules.enabled or not match_rules.rules:
            return False
        results = (rule_matches(rule, context) for rule in match_rules.rules)
        if match_rules.match_type is MatchType.ALL:
            return all(results)
        return any(results)

    def get_match_reasons(self, profile: ConversionProfile, context: PageContext) -> list[str]:
        match_rules = profile.match_rules
        if match_rules is None or not match_rules.enabled:
            return []
        return [describe_rule(rule) for rule in match_rules.rules if rule_matches(rule, context)]

    def invalid_rules(self, profile: ConversionProfile) -> list[str]:
        """Return a warning for every regex rule that does not compile."""

        if profile.match_rules is None:
            return []
        return [
            f"INVALID_REGEX:{rule.pattern}"
            for rule in profile.match_rules.rules
            if rule.match_mode is MatchMode.REGEX and not is_regex_valid(rule.pattern)
        ]

    @staticmethod
    def _default(profiles: Sequence[ConversionProfile]) -> ConversionProfile | None:
        return next((profile for profile in profiles if profile.is_default), None)


__all__ = [
    "ProfileMatcher",
    "describe_rule",
    "is_regex_valid",
    "matches_pattern",
    "rule_matches",
]
