"""
Static rule tables for crash analysis.

Cause rules, the suspect blocklist and alias groups are plain data
consumed by one evaluation loop each. Adding a failure signature means
adding a ``CauseRule`` here (or in a YAML rules file), not new code.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from crashscope.exceptions import ConfigurationError, RuleDefinitionError
from crashscope.logging import get_logger

if TYPE_CHECKING:
    from crashscope.config import Config

logger = get_logger(__name__)


@dataclass(frozen=True)
class CauseRule:
    """A recognizable failure signature."""

    id: str
    title: str
    patterns: tuple[re.Pattern[str], ...]
    weight: float
    fixes: tuple[str, ...] = ()

    def matches(self, message: str) -> bool:
        return any(pattern.search(message) for pattern in self.patterns)

    @classmethod
    def build(
        cls,
        id: str,
        title: str,
        patterns: Iterable[str],
        weight: float,
        fixes: Iterable[str] = (),
    ) -> CauseRule:
        """Compile patterns case-insensitively and validate the rule."""
        if not id or not title:
            raise RuleDefinitionError.invalid_rule(id or "<unnamed>", "id and title are required")
        if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight <= 0:
            raise RuleDefinitionError.invalid_rule(id, f"weight must be a positive number, got {weight!r}")

        compiled: list[re.Pattern[str]] = []
        for source in patterns:
            try:
                compiled.append(re.compile(source, re.IGNORECASE))
            except re.error as exc:
                raise RuleDefinitionError.invalid_pattern(id, source, str(exc)) from exc
        if not compiled:
            raise RuleDefinitionError.invalid_rule(id, "at least one pattern is required")

        return cls(id=id, title=title, patterns=tuple(compiled), weight=float(weight), fixes=tuple(fixes))


@dataclass(frozen=True)
class AliasGroup:
    """Tokens that all name the same mod (forks and ports)."""

    canonical: str
    tokens: frozenset[str]


CAUSE_RULES: tuple[CauseRule, ...] = (
    CauseRule.build(
        id="mixin_failure",
        title="Mixin apply or injection failure",
        patterns=[r"mixinapplyerror", r"mixin.*(?:failed|error|exception|target)", r"org\.spongepowered\.asm"],
        weight=9,
        fixes=[
            "Update or remove the mod named in the first mixin error.",
            "Check for duplicate rendering/performance mods.",
            "Match every mod to the exact loader and Minecraft version.",
        ],
    ),
    CauseRule.build(
        id="missing_mixin_target",
        title="Mixin target missing (incompatible dependency)",
        patterns=[r"invalidinjectorexception", r"could not find target method", r"target class .* was not found"],
        weight=8,
        fixes=[
            "Update the target mod and its addon mods together.",
            "Remove addons built for older API versions.",
            "Verify the loader family for every jar.",
        ],
    ),
    CauseRule.build(
        id="missing_class_or_method",
        title="Missing class or method dependency",
        patterns=[r"noclassdeffounderror", r"classnotfoundexception", r"nosuchmethoderror", r"nosuchfielderror"],
        weight=9,
        fixes=[
            "Install the required dependency mod or matching API library.",
            "Update dependent mods as a compatible set.",
            "Remove stale jars from old pack versions.",
        ],
    ),
    CauseRule.build(
        id="dependency_mismatch",
        title="Dependency version mismatch",
        patterns=[r"requires .* but .* is present", r"depends on .* versions?", r"missing mandatory dependency"],
        weight=8,
        fixes=[
            "Install the dependency version requested by the failing mod.",
            "Use one modpack version set instead of mixed versions.",
        ],
    ),
    CauseRule.build(
        id="wrong_loader",
        title="Wrong loader or wrong side mod",
        patterns=[r"mod .* requires .* (fabric|forge|quilt|neoforge)", r"not a valid mod file", r"wrong side"],
        weight=8,
        fixes=[
            "Use the correct Fabric/Forge/Quilt/NeoForge build.",
            "Remove client-only mods from server contexts (and vice versa).",
        ],
    ),
    CauseRule.build(
        id="duplicate_mods",
        title="Duplicate or conflicting mod jars",
        patterns=[r"duplicate mod", r"already present", r"found conflicting files", r"re-registered"],
        weight=7,
        fixes=[
            "Keep only one jar per mod.",
            "Delete old jars with version suffixes that overlap.",
        ],
    ),
    CauseRule.build(
        id="mod_metadata_mismatch",
        title="Invalid mod metadata",
        patterns=[r"invalid mod metadata", r"mod metadata parsing failed", r"mods\.toml", r"fabric\.mod\.json"],
        weight=7,
        fixes=[
            "Replace the broken jar with a fresh download.",
            "Check loader metadata format support for this version.",
        ],
    ),
    CauseRule.build(
        id="service_loader_failure",
        title="Service loader initialization failure",
        patterns=[r"serviceconfigurationerror", r"failed to load service", r"spi"],
        weight=6,
        fixes=[
            "Update mods that register Java services.",
            "Remove duplicate core libraries bundled by multiple mods.",
        ],
    ),
    CauseRule.build(
        id="config_parse_error",
        title="Config parsing or validation failed",
        patterns=[r"parse.*config", r"invalid config", r"toml.*error", r"json.*error", r"properties.*error"],
        weight=8,
        fixes=[
            "Fix or reset the referenced config file.",
            "Run the config formatter and safe fixes before launching again.",
        ],
    ),
    CauseRule.build(
        id="access_transformer_failure",
        title="Access transformer / class transform failure",
        patterns=[r"accesstransformer", r"transformer.*failed", r"failed to transform class"],
        weight=7,
        fixes=[
            "Update loader and core mods together.",
            "Remove recently added coremods and retry.",
        ],
    ),
    CauseRule.build(
        id="java_mismatch",
        title="Java runtime mismatch",
        patterns=[r"unsupportedclassversionerror", r"needs java", r"class file version", r"java \d+ detected"],
        weight=10,
        fixes=[
            "Switch the instance Java path to the required version.",
            "For modern packs, use Java 17 or 21 when requested.",
        ],
    ),
    CauseRule.build(
        id="memory_oom",
        title="Out of memory",
        patterns=[r"outofmemoryerror", r"java heap space", r"gc overhead limit exceeded", r"unable to allocate"],
        weight=9,
        fixes=[
            "Increase memory allocation for the instance.",
            "Disable heavy shaders/resource packs and retry.",
        ],
    ),
    CauseRule.build(
        id="shader_render_conflict",
        title="Render or shader stack conflict",
        patterns=[r"opengl", r"shader", r"iris", r"oculus", r"embeddium|sodium|rubidium", r"rendering overlay"],
        weight=6,
        fixes=[
            "Disable shaders and test vanilla rendering first.",
            "Use known-compatible versions of render mods together.",
        ],
    ),
    CauseRule.build(
        id="native_crash",
        title="Native JVM or driver crash",
        patterns=[r"sigsegv", r"fatal error has been detected by the java runtime environment", r"exit code -1"],
        weight=8,
        fixes=[
            "Update GPU drivers and Java runtime.",
            "Isolate recently added native-heavy mods.",
        ],
    ),
)

# Generic words that show up in token positions but never name a mod.
SUSPECT_BLOCKED: frozenset[str] = frozenset(
    {
        "minecraft", "java", "client", "server", "mixin", "thread", "launch",
        "error", "warn", "debug", "trace", "info", "render",
        "fabric", "forge", "quilt", "neoforge",
        "net", "com", "org",
    }
)

SUSPECT_ALIAS_GROUPS: tuple[AliasGroup, ...] = (
    AliasGroup("sodium", frozenset({"sodium", "rubidium", "embeddium", "magnesium", "chlorine"})),
    AliasGroup("iris", frozenset({"iris", "oculus"})),
    AliasGroup("architectury", frozenset({"architectury", "architectury_api"})),
    AliasGroup("cloth_config", frozenset({"cloth_config", "clothconfig"})),
    AliasGroup("forge_config_api_port", frozenset({"forge_config_api_port", "forgeconfigapiport"})),
)


@dataclass(frozen=True)
class RuleTables:
    """The read-only tables one analysis run scores against."""

    cause_rules: tuple[CauseRule, ...] = CAUSE_RULES
    blocked_tokens: frozenset[str] = SUSPECT_BLOCKED
    alias_groups: tuple[AliasGroup, ...] = SUSPECT_ALIAS_GROUPS
    _alias_index: Mapping[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for rule in self.cause_rules:
            if rule.id in seen:
                raise RuleDefinitionError.duplicate_id(rule.id)
            seen.add(rule.id)

        index: dict[str, str] = {}
        for group in self.alias_groups:
            for token in group.tokens:
                index.setdefault(token, group.canonical)
        object.__setattr__(self, "_alias_index", index)

    def canonical_alias(self, token: str) -> str:
        return self._alias_index.get(token, token)

    def with_extra_rules(self, rules: Iterable[CauseRule]) -> RuleTables:
        """Return a new bundle with ``rules`` appended to the cause catalogue."""
        return RuleTables(
            cause_rules=(*self.cause_rules, *rules),
            blocked_tokens=self.blocked_tokens,
            alias_groups=self.alias_groups,
        )


DEFAULT_TABLES = RuleTables()


def _rule_from_mapping(entry: Any, position: int) -> CauseRule:
    if not isinstance(entry, Mapping):
        raise RuleDefinitionError.invalid_rule(f"#{position}", "rule entry must be a mapping")
    rule_id = str(entry.get("id") or "")
    patterns = entry.get("patterns") or []
    if isinstance(patterns, str):
        patterns = [patterns]
    fixes = entry.get("fixes") or []
    if isinstance(fixes, str):
        fixes = [fixes]
    return CauseRule.build(
        id=rule_id,
        title=str(entry.get("title") or ""),
        patterns=[str(p) for p in patterns],
        weight=entry.get("weight", 0),
        fixes=[str(f) for f in fixes],
    )


def load_cause_rules(path: str | Path) -> tuple[CauseRule, ...]:
    """
    Load additional cause rules from a YAML file.

    Expected shape::

        rules:
          - id: create_contraption_crash
            title: Create contraption crash
            patterns: ["contraption.*exception"]
            weight: 7
            fixes: ["Update Create and its addons together."]

    Raises:
        ConfigurationError: If the file does not exist.
        RuleDefinitionError: If an entry is malformed or a pattern does not compile.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError.missing_file(str(path))

    with path.open() as f:
        data = yaml.safe_load(f) or {}

    entries = data.get("rules", []) if isinstance(data, Mapping) else data
    if not isinstance(entries, list):
        raise RuleDefinitionError.invalid_rule(str(path), "'rules' must be a list")

    rules = tuple(_rule_from_mapping(entry, i) for i, entry in enumerate(entries))
    logger.debug("cause_rules_loaded", path=str(path), count=len(rules))
    return rules


def tables_from_config(config: Config) -> RuleTables:
    """Build the rule tables for a configuration, adding any extra rules file."""
    extra = config.analysis.extra_rules_file
    if not extra:
        return DEFAULT_TABLES
    return DEFAULT_TABLES.with_extra_rules(load_cause_rules(extra))
