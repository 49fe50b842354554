"""Reading of mode-of-transport configuration files."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from pfaedle.mots import RouteType, parse_mots
from pfaedle.motrules import (
    DeepAttrRule,
    OsmFlag,
    ReplRule,
    get_deep_attr_rule,
    get_filter_rule,
    get_flags,
    get_kv,
    get_norm_rules,
)

log = logging.getLogger(__name__)

DEF_TRANS_PEN = 0.0083
DEF_SPEED = 85.0
KMH_TO_MS = 0.2777
UINT32_MAX = 2**32 - 1
NUM_LEVELS = 8

AttrFlagPair = tuple[str, OsmFlag]
AttrMap = dict[str, set[AttrFlagPair]]


class ParseError(Exception):
    """Raised when a configuration file or value is malformed."""

    def __init__(self, line: int, pos: int, expected: str, got: str, file: str) -> None:
        super().__init__(f"{file}:{line}:{pos}: expected {expected}, got {got}")
        self.line = line
        self.pos = pos
        self.expected = expected
        self.got = got
        self.file = file


@dataclass
class _Value:
    text: str
    line: int
    pos: int
    file: str


class ConfigFileParser:
    """Parser for sectioned "key: value" configuration text.

    Indented lines continue the value of the preceding key; lines starting
    with '#' are comments. Keys before the first section belong to the
    unnamed section "".
    """

    def __init__(self) -> None:
        self.sections: dict[str, dict[str, _Value]] = {}

    def parse(self, path: str) -> None:
        """Parse a configuration file."""
        try:
            with open(path, encoding="utf-8") as fh:
                text = fh.read()
        except OSError as exc:
            raise ParseError(0, 0, "<readable file>", str(exc), path) from exc
        self._parse_text(text, path)

    def parse_str(self, text: str) -> None:
        """Parse configuration text given directly."""
        self._parse_text(text, "<literal>")

    def _parse_text(self, text: str, file: str) -> None:
        section = ""
        current: _Value | None = None
        for lineno, raw in enumerate(text.splitlines(), start=1):
            line = raw.rstrip("\r")
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if line[0] in " \t":
                if current is None:
                    raise ParseError(lineno, 1, "key: value", stripped, file)
                current.text = f"{current.text}\n{stripped}" if current.text else stripped
                continue
            if stripped.startswith("["):
                if not stripped.endswith("]"):
                    raise ParseError(lineno, len(line), "]", stripped, file)
                section = stripped[1:-1].strip()
                self.sections.setdefault(section, {})
                current = None
                continue
            seps = [i for i in (line.find(":"), line.find("=")) if i != -1]
            if not seps:
                raise ParseError(lineno, len(line), "key: value", stripped, file)
            sep = min(seps)
            key = line[:sep].strip()
            if not key:
                raise ParseError(lineno, 1, "<key>", stripped, file)
            current = _Value(line[sep + 1 :].strip(), lineno, sep + 2, file)
            self.sections.setdefault(section, {})[key] = current

    def has_key(self, section: str, key: str) -> bool:
        return key in self.sections.get(section, {})

    def get_val(self, section: str, key: str) -> _Value:
        try:
            return self.sections[section][key]
        except KeyError:
            raise ParseError(0, 0, f"<key {key} in [{section}]>", "<nothing>", "") from None

    def get_str(self, section: str, key: str) -> str:
        return self.get_val(section, key).text

    def get_str_arr(self, section: str, key: str, sep: str) -> list[str]:
        text = self.get_str(section, key)
        parts: list[str] = []
        for line in text.split("\n"):
            parts.extend(p.strip() for p in line.split(sep))
        return [p for p in parts if p]

    def get_bool(self, section: str, key: str) -> bool:
        val = self.get_val(section, key)
        word = val.text.strip().lower()
        if word in ("true", "yes", "1", "on"):
            return True
        if word in ("false", "no", "0", "off"):
            return False
        raise ParseError(val.line, val.pos, "<boolean>", val.text, val.file)

    def get_int(self, section: str, key: str) -> int:
        val = self.get_val(section, key)
        try:
            return int(val.text.strip())
        except ValueError:
            raise ParseError(val.line, val.pos, "<integer>", val.text, val.file) from None

    def get_double(self, section: str, key: str) -> float:
        val = self.get_val(section, key)
        return self._to_float(val.text, val)

    def get_pos_double(self, section: str, key: str) -> float:
        val = self.get_val(section, key)
        num = self._to_float(val.text, val)
        if num < 0:
            raise ParseError(val.line, val.pos, "<positive number>", val.text, val.file)
        return num

    def get_double_arr(self, section: str, key: str, sep: str) -> list[float]:
        val = self.get_val(section, key)
        return [self._to_float(p, val) for p in self.get_str_arr(section, key, sep)]

    @staticmethod
    def _to_float(text: str, val: _Value) -> float:
        try:
            return float(text.strip())
        except ValueError:
            raise ParseError(val.line, val.pos, "<number>", text, val.file) from None


def _level_speeds() -> list[float]:
    return [s * KMH_TO_MS for s in (85, 70, 55, 40, 30, 20, 10, 5)]


@dataclass
class StationAttrRules:
    name_rule: list[DeepAttrRule] = field(default_factory=list)
    platform_rule: list[DeepAttrRule] = field(default_factory=list)
    id_rule: list[DeepAttrRule] = field(default_factory=list)


@dataclass
class RelLineRules:
    from_name_rule: list[str] = field(default_factory=list)
    to_name_rule: list[str] = field(default_factory=list)
    s_name_rule: list[str] = field(default_factory=list)
    color_rule: list[str] = field(default_factory=list)


@dataclass
class OsmReadOpts:
    """Options controlling how OSM data is read into the routing graph."""

    keep_filter: AttrMap = field(default_factory=dict)
    level_filters: list[AttrMap] = field(default_factory=lambda: [{} for _ in range(NUM_LEVELS)])
    drop_filter: AttrMap = field(default_factory=dict)
    no_hup_filter: AttrMap = field(default_factory=dict)
    one_way_filter: AttrMap = field(default_factory=dict)
    one_way_filter_rev: AttrMap = field(default_factory=dict)
    two_way_filter: AttrMap = field(default_factory=dict)
    station_filter: AttrMap = field(default_factory=dict)
    station_blocker_filter: AttrMap = field(default_factory=dict)
    turn_cycle_filter: AttrMap = field(default_factory=dict)
    restr_pos_restr: AttrMap = field(default_factory=dict)
    restr_neg_restr: AttrMap = field(default_factory=dict)
    no_restr_filter: AttrMap = field(default_factory=dict)
    stat_attr_rules: StationAttrRules = field(default_factory=StationAttrRules)
    edge_platform_rules: list[DeepAttrRule] = field(default_factory=list)
    rel_line_rules: RelLineRules = field(default_factory=RelLineRules)
    max_snap_level: int = 7
    max_snap_distance: float = 50.0
    max_station_cand_distance: float = 100.0
    max_osm_station_distances: list[float] = field(default_factory=list)
    max_block_distance: float = 0.0
    level_def_speed: list[float] = field(default_factory=_level_speeds)
    one_way_speed_pen: float = 1.0
    one_way_entry_cost: float = 0.0
    full_turn_angle: float = 5.0
    max_angle_snap_reach: float = 5.0
    no_lines_punish_fact: float = 1.0
    stat_normzer: list[ReplRule] = field(default_factory=list)
    track_normzer: list[ReplRule] = field(default_factory=list)
    line_normzer: list[ReplRule] = field(default_factory=list)
    id_normzer: list[ReplRule] = field(default_factory=list)
    max_speed: float = 0.0
    max_speed_cor_fac: float = 1.0


@dataclass
class RoutingOpts:
    """Options controlling the routing and its penalties."""

    em_pen_method: str = "exp"
    trans_pen_method: str = "exp"
    statsimi_method: str = "jaccard-geodist"
    use_stations: bool = True
    turn_restr_cost: float = 0.0
    full_turn_punish_fac: float = 1000.0
    no_self_hops: bool = True
    full_turn_angle: float = 5.0
    no_lines_punish_fact: float = 1.0
    line_unmatched_punish_fact: float = 1.0
    line_name_from_unmatched_punish_fact: float = 1.0
    line_name_to_unmatched_punish_fact: float = 1.0
    platform_unmatched_pen: float = 0.0
    transition_pen: float = DEF_TRANS_PEN
    station_dist_pen_factor: float = 1.0
    non_station_pen: float = 0.0
    station_unmatched_pen: float = 0.0


@dataclass(eq=False)
class MotConfig:
    """Configuration for a set of modes of transport."""

    mots: set[RouteType] = field(default_factory=set)
    osm_build_opts: OsmReadOpts = field(default_factory=OsmReadOpts)
    routing_opts: RoutingOpts = field(default_factory=RoutingOpts)
    trans_weight: str = "expo"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MotConfig):
            return NotImplemented
        return (
            self.osm_build_opts == other.osm_build_opts
            and self.routing_opts == other.routing_opts
        )

    __hash__ = None  # type: ignore[assignment]


_FILTER_KEYS = (
    ("osm_filter_keep", "keep_filter"),
    ("osm_filter_drop", "drop_filter"),
    ("osm_filter_nohup", "no_hup_filter"),
    ("osm_filter_oneway", "one_way_filter"),
    ("osm_filter_oneway_reverse", "one_way_filter_rev"),
    ("osm_filter_undirected", "two_way_filter"),
    ("osm_filter_station", "station_filter"),
    ("osm_filter_station_blocker", "station_blocker_filter"),
    ("osm_filter_turning_circle", "turn_cycle_filter"),
    ("osm_node_positive_restriction", "restr_pos_restr"),
    ("osm_node_negative_restriction", "restr_neg_restr"),
    ("osm_filter_no_restriction", "no_restr_filter"),
)

_NORM_KEYS = (
    ("station_normalize_chain", "stat_normzer"),
    ("track_normalize_chain", "track_normzer"),
    ("line_normalize_chain", "line_normzer"),
    ("station_id_normalize_chain", "id_normzer"),
)

_REMOVED = (
    "osm_station_group_attrs",
    "osm_max_snap_fallback_distance",
    "routing_pass_thru_station_punish",
)


def _add_rules(target: AttrMap, rules: Iterable[str]) -> None:
    for text in rules:
        rule = get_filter_rule(text)
        target.setdefault(rule.kv[0], set()).add((rule.kv[1], get_flags(rule.flags)))


def _capped(value: float) -> float:
    return min(value, float(UINT32_MAX))


class MotConfigReader:
    """Reads MOT configurations, merging sections with identical settings."""

    def __init__(self) -> None:
        self.configs: list[MotConfig] = []

    def parse(self, paths: Iterable[str] = (), literal: str = "") -> None:
        """Parse the given files, then the literal text, into configurations."""
        p = ConfigFileParser()
        for path in paths:
            log.debug("Reading config file %s", path)
            p.parse(path)
        if literal:
            p.parse_str(literal)

        for sec in p.sections:
            if not sec:
                continue
            cfg = self._read_section(p, sec)
            for existing in self.configs:
                if existing == cfg:
                    existing.mots |= parse_mots(sec)
                    break
            else:
                cfg.mots = parse_mots(sec)
                self.configs.append(cfg)

    def _read_section(self, p: ConfigFileParser, sec: str) -> MotConfig:
        cfg = MotConfig()
        osm = cfg.osm_build_opts
        ro = cfg.routing_opts

        def has(key: str) -> bool:
            return p.has_key(sec, key)

        if has("routing_emission_method"):
            ro.em_pen_method = p.get_str(sec, "routing_emission_method")
        if has("routing_transition_method"):
            ro.trans_pen_method = p.get_str(sec, "routing_transition_method")
        if has("station_similarity_classification_method"):
            ro.statsimi_method = p.get_str(sec, "station_similarity_classification_method")
        if has("routing_use_stations"):
            ro.use_stations = p.get_bool(sec, "routing_use_stations")

        for key, attr in _FILTER_KEYS:
            if has(key):
                _add_rules(getattr(osm, attr), p.get_str_arr(sec, key, " "))
        for lvl in range(NUM_LEVELS):
            key = f"osm_filter_lvl{lvl}"
            if has(key):
                _add_rules(osm.level_filters[lvl], p.get_str_arr(sec, key, " "))

        if has("osm_max_snap_level"):
            osm.max_snap_level = p.get_int(sec, "osm_max_snap_level")

        for key, target in (
            ("osm_station_name_attrs", osm.stat_attr_rules.name_rule),
            ("osm_track_number_tags", osm.stat_attr_rules.platform_rule),
            ("osm_station_id_attrs", osm.stat_attr_rules.id_rule),
            ("osm_edge_track_number_tags", osm.edge_platform_rules),
        ):
            if has(key):
                target.extend(get_deep_attr_rule(r) for r in p.get_str_arr(sec, key, " "))

        for key in _REMOVED:
            if has(key):
                log.warning("Option %s has been removed.", key)

        osm.rel_line_rules.color_rule = ["colour", "color"]
        if has("osm_line_relation_tags"):
            for rule_str in p.get_str_arr(sec, "osm_line_relation_tags", " "):
                name, tags_str = get_kv(rule_str)
                tags = tags_str.split(",") if tags_str else []
                if name == "from_name":
                    osm.rel_line_rules.from_name_rule = tags
                elif name == "to_name":
                    osm.rel_line_rules.to_name_rule = tags
                elif name == "line_name":
                    osm.rel_line_rules.s_name_rule = tags
                elif name == "line_color":
                    osm.rel_line_rules.color_rule = tags

        osm.max_snap_distance = 50.0
        if has("osm_max_snap_distance"):
            dists = p.get_double_arr(sec, "osm_max_snap_distance", ",")
            if dists:
                osm.max_snap_distance = dists[-1]

        osm.max_station_cand_distance = osm.max_snap_distance * 2
        if has("osm_max_station_cand_distance"):
            osm.max_station_cand_distance = p.get_double(sec, "osm_max_station_cand_distance")

        if has("osm_max_osm_station_distance"):
            osm.max_osm_station_distances.append(
                p.get_double(sec, "osm_max_osm_station_distance")
            )
        else:
            osm.max_osm_station_distances.append(15.0)

        if has("osm_max_node_block_distance"):
            osm.max_block_distance = p.get_double(sec, "osm_max_node_block_distance")
        else:
            osm.max_block_distance = max(osm.max_osm_station_distances) / 8

        for lvl in range(NUM_LEVELS):
            key = f"routing_lvl{lvl}_fac"
            if has(key):
                fac = p.get_pos_double(sec, key)
                log.warning("Option %s is deprecated, use osm_lvl%d_avg_speed instead.", key, lvl)
                osm.level_def_speed[lvl] = DEF_SPEED / fac * KMH_TO_MS
        for lvl in range(NUM_LEVELS):
            key = f"osm_lvl{lvl}_avg_speed"
            if has(key):
                osm.level_def_speed[lvl] = p.get_pos_double(sec, key) * KMH_TO_MS

        osm.one_way_speed_pen = 1.0
        if has("routing_one_way_meter_punish_fac"):
            log.warning(
                "Option routing_one_way_meter_punish_fac is deprecated, "
                "use osm_one_way_speed_penalty_fac instead."
            )
            osm.one_way_speed_pen = 1 + p.get_pos_double(sec, "routing_one_way_meter_punish_fac")
        if has("osm_one_way_speed_penalty_fac"):
            osm.one_way_speed_pen = p.get_pos_double(sec, "osm_one_way_speed_penalty_fac")

        osm.one_way_entry_cost = 0.0
        if has("osm_one_way_entry_cost"):
            osm.one_way_entry_cost = p.get_pos_double(sec, "osm_one_way_entry_cost")

        # restricted turns cost the same as entering a one-way street
        ro.turn_restr_cost = _capped(osm.one_way_entry_cost * 10.0)

        if has("routing_full_turn_punish"):
            val = p.get_pos_double(sec, "routing_full_turn_punish")
            log.warning(
                "Option routing_full_turn_punish is deprecated, "
                "use routing_full_turn_penalty instead."
            )
            ro.full_turn_punish_fac = _capped(val / osm.level_def_speed[0] * 10.0)
        if has("routing_full_turn_penalty"):
            ro.full_turn_punish_fac = _capped(
                p.get_pos_double(sec, "routing_full_turn_penalty") * 10.0
            )

        if has("routing_no_self_hops"):
            ro.no_self_hops = p.get_bool(sec, "routing_no_self_hops")

        ang = p.get_pos_double(sec, "routing_full_turn_angle") if has(
            "routing_full_turn_angle") else 5.0
        ro.full_turn_angle = ang
        osm.full_turn_angle = ang

        if has("routing_snap_full_turn_angle"):
            osm.max_angle_snap_reach = p.get_pos_double(sec, "routing_snap_full_turn_angle")
        else:
            osm.max_angle_snap_reach = ro.full_turn_angle

        ro.turn_restr_cost *= 10.0

        ro.no_lines_punish_fact = 1.0
        if has("routing_no_lines_punish_fac"):
            log.warning(
                "Option routing_no_lines_punish_fac is deprecated, "
                "use routing_no_lines_penalty_fac instead."
            )
            ro.no_lines_punish_fact = 1 + p.get_pos_double(sec, "routing_no_lines_punish_fac")
        if has("routing_no_lines_penalty_fac"):
            ro.no_lines_punish_fact = p.get_pos_double(sec, "routing_no_lines_penalty_fac")
        osm.no_lines_punish_fact = ro.no_lines_punish_fact

        if has("routing_line_unmatched_punish_fac"):
            log.warning("Option routing_line_unmatched_punish_fac is deprecated.")
            fac = 1 + p.get_pos_double(sec, "routing_line_unmatched_punish_fac") / 3
            ro.line_unmatched_punish_fact = fac
            ro.line_name_from_unmatched_punish_fact = fac
            ro.line_name_to_unmatched_punish_fact = fac
        if has("routing_line_unmatched_time_penalty_fac"):
            ro.line_unmatched_punish_fact = p.get_pos_double(
                sec, "routing_line_unmatched_time_penalty_fac")
        if has("routing_line_station_from_unmatched_time_penalty"):
            ro.line_name_from_unmatched_punish_fact = p.get_pos_double(
                sec, "routing_line_station_from_unmatched_time_penalty")
        if has("routing_line_station_to_unmatched_time_penalty"):
            ro.line_name_to_unmatched_punish_fact = p.get_pos_double(
                sec, "routing_line_station_to_unmatched_time_penalty")

        legacy_fac = DEF_TRANS_PEN / osm.level_def_speed[0]

        ro.platform_unmatched_pen = 0.0
        if has("routing_platform_unmatched_punish"):
            log.warning(
                "Option routing_platform_unmatched_punish is deprecated, "
                "use routing_platform_unmatched_penalty instead."
            )
            ro.platform_unmatched_pen = (
                p.get_pos_double(sec, "routing_platform_unmatched_punish") * legacy_fac
            )
        if has("routing_platform_unmatched_penalty"):
            ro.platform_unmatched_pen = p.get_pos_double(sec, "routing_platform_unmatched_penalty")

        ro.transition_pen = DEF_TRANS_PEN
        if has("routing_transition_penalty_fac"):
            ro.transition_pen = p.get_pos_double(sec, "routing_transition_penalty_fac")

        if has("routing_station_distance_punish_fac"):
            log.warning(
                "Option routing_station_distance_punish_fac is deprecated, "
                "use routing_station_move_penalty_fac instead."
            )
            ro.station_dist_pen_factor = (
                p.get_pos_double(sec, "routing_station_distance_punish_fac") * legacy_fac
            )
        else:
            ro.station_dist_pen_factor *= legacy_fac
        if has("routing_station_move_penalty_fac"):
            ro.station_dist_pen_factor = p.get_pos_double(sec, "routing_station_move_penalty_fac")

        ro.non_station_pen = 0.0
        if has("routing_non_osm_station_punish"):
            log.warning(
                "Option routing_non_osm_station_punish is deprecated, "
                "use routing_non_station_penalty instead."
            )
            ro.non_station_pen = (
                p.get_pos_double(sec, "routing_non_osm_station_punish") * legacy_fac
            )
        if has("routing_non_station_penalty"):
            ro.non_station_pen = p.get_pos_double(sec, "routing_non_station_penalty")

        if has("routing_station_unmatched_penalty"):
            ro.station_unmatched_pen = p.get_pos_double(sec, "routing_station_unmatched_penalty")
        else:
            ro.station_unmatched_pen = ro.non_station_pen / 2

        for key, attr in _NORM_KEYS:
            if has(key):
                rules = get_norm_rules(p.get_str_arr(sec, key, ";"))
                try:
                    for pattern, _ in rules:
                        re.compile(pattern)
                except re.error as exc:
                    val = p.get_val(sec, key)
                    raise ParseError(
                        val.line, val.pos, "<valid regular expression>",
                        f"<regex error: {exc}>", val.file,
                    ) from exc
                setattr(osm, attr, rules)

        # fastest possible speed, used to prune far-off stations from the box
        osm.max_speed = max(0.0, *osm.level_def_speed)
        osm.max_speed_cor_fac = 1.0
        for fac in (
            ro.line_unmatched_punish_fact,
            ro.line_name_from_unmatched_punish_fact,
            ro.line_name_to_unmatched_punish_fact,
            ro.no_lines_punish_fact,
            osm.one_way_speed_pen,
        ):
            if fac < 1:
                osm.max_speed_cor_fac *= fac
        osm.max_speed /= osm.max_speed_cor_fac

        return cfg