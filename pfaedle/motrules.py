"""Parsing of the small rule expressions used in mode-of-transport configs."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field

KeyVal = tuple[str, str]
ReplRule = tuple[str, str]


class OsmFlag(enum.IntFlag):
    """Flags attached to an OSM filter rule."""

    USE = 1
    REL_NO_DOWN = 2
    NO_RELATIONS = 4
    NO_WAYS = 8
    MULT_VAL_MATCH = 16
    NO_NODES = 32


_FLAG_NAMES: dict[str, OsmFlag] = {
    "rel_flat": OsmFlag.REL_NO_DOWN,
    "no_match_nds": OsmFlag.NO_NODES,
    "no_match_rels": OsmFlag.NO_RELATIONS,
    "no_match_ways": OsmFlag.NO_WAYS,
    "mult_val_match": OsmFlag.MULT_VAL_MATCH,
}


@dataclass(frozen=True)
class FilterRule:
    """A key=value match together with its textual flags."""

    kv: KeyVal = ("", "")
    flags: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class DeepAttrRule:
    """An attribute to read, optionally from a relation matching a rule."""

    attr: str
    rel_rule: FilterRule = field(default_factory=FilterRule)


def get_kv(kv: str) -> KeyVal:
    """Split "key=value" at the first '='; a missing value is empty."""
    key, _, value = kv.partition("=")
    return key, value


def get_filter_rule(rule: str) -> FilterRule:
    """Parse "key=value|flag|flag" into a filter rule."""
    head, *flags = rule.strip().split("|")
    return FilterRule(get_kv(head), frozenset(flags))


def get_flags(flags: Iterable[str]) -> OsmFlag:
    """Combine textual flags into a flag value; unknown names are ignored."""
    result = OsmFlag.USE
    for name in flags:
        result |= _FLAG_NAMES.get(name, OsmFlag(0))
    return result


def _unquote(text: str) -> str:
    if len(text) > 1 and text[0] == "'" and text[-1] == "'":
        return text[1:-1]
    return text


def get_norm_rules(arr: Iterable[str]) -> list[ReplRule]:
    """Parse "pattern -> replacement" entries, skipping those without an arrow."""
    rules: list[ReplRule] = []
    for entry in arr:
        pattern, sep, replacement = entry.partition(" -> ")
        if not sep:
            continue
        rules.append((_unquote(pattern), _unquote(replacement)))
    return rules


def get_deep_attr_rule(rule: str) -> DeepAttrRule:
    """Parse "[key=value|flags]attr" or a plain attribute name."""
    close = rule.find("]")
    if rule.startswith("[") and close != -1:
        return DeepAttrRule(rule[close + 1 :], get_filter_rule(rule[1:close]))
    return DeepAttrRule(rule, FilterRule())