"""
Value rules, key docs and preset tables for config files.

Rules are matched against the dotted key path (last segment anchored),
so ``renderDistance`` also covers ``video.renderDistance``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from crashscope.configfile.models import ConfigDoc, ConfigPreset


class ValueType(str, Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"


@dataclass(frozen=True)
class ValueRule:
    """Expected type, range and default for matching keys."""

    key_pattern: re.Pattern[str]
    type: ValueType
    min: float | None = None
    max: float | None = None
    allowed: tuple[str, ...] = ()
    default: float | bool | str | None = None


def _key(names: str) -> re.Pattern[str]:
    return re.compile(rf"(^|\.)({names})$", re.IGNORECASE)


VALUE_RULES: tuple[ValueRule, ...] = (
    ValueRule(_key("renderDistance|max-mob-count|spawn-radius"), ValueType.NUMBER, min=2, max=128, default=12),
    ValueRule(_key("simulationDistance"), ValueType.NUMBER, min=2, max=64, default=10),
    ValueRule(_key("chunkUpdates"), ValueType.NUMBER, min=1, max=20, default=3),
    ValueRule(_key("gamma"), ValueType.NUMBER, min=0, max=2, default=1),
    ValueRule(_key("fov"), ValueType.NUMBER, min=-1, max=110, default=0),
    ValueRule(
        _key("entityShadows|fullscreen|enableVsync|enabled|asyncIO|autoJoinServer"),
        ValueType.BOOLEAN,
        default=True,
    ),
    ValueRule(_key("graphicsMode"), ValueType.ENUM, allowed=("fast", "fancy", "fabulous"), default="fancy"),
    ValueRule(_key("particles"), ValueType.ENUM, allowed=("all", "decreased", "minimal"), default="all"),
    ValueRule(_key("preset"), ValueType.ENUM, allowed=("performance", "balanced", "quality"), default="balanced"),
)

KEY_DOCS: tuple[tuple[re.Pattern[str], ConfigDoc], ...] = (
    (
        _key("renderDistance"),
        ConfigDoc(
            title="Render distance",
            type="number",
            description="Controls how many chunks are rendered around the player.",
            recommendations=["Low-end: 8-12", "Balanced: 12-20", "High-end: 24+"],
        ),
    ),
    (
        _key("simulationDistance"),
        ConfigDoc(
            title="Simulation distance",
            type="number",
            description="Controls entity/tick simulation radius around the player.",
            recommendations=["Lower value improves CPU performance", "Balanced default is around 10-12"],
        ),
    ),
    (
        _key("entityShadows"),
        ConfigDoc(
            title="Entity shadows",
            type="boolean",
            description="Enables dynamic shadows under entities.",
            recommendations=["Disable for extra FPS", "Enable for better visual quality"],
        ),
    ),
    (
        _key("graphicsMode"),
        ConfigDoc(
            title="Graphics mode",
            type="enum",
            description="Switches base rendering quality presets.",
            recommendations=["fast", "fancy", "fabulous"],
        ),
    ),
    (
        _key("particles"),
        ConfigDoc(
            title="Particles",
            type="enum",
            description="Controls number of visible particles.",
            recommendations=["all", "decreased", "minimal"],
        ),
    ),
    (
        _key("enabled"),
        ConfigDoc(
            title="Enabled",
            type="boolean",
            description="Toggles whether this feature/module is active.",
            recommendations=["Set false when debugging a problematic feature"],
        ),
    ),
    (
        _key("preset"),
        ConfigDoc(
            title="Graphics preset",
            type="enum",
            description="High-level quality/performance profile.",
            recommendations=["performance", "balanced", "quality"],
        ),
    ),
)

JSON_FIELD_DOC = ConfigDoc(
    title="JSON field",
    type="json",
    description="This key is part of the JSON config tree for this file.",
    recommendations=["Use structured editing for nested values", "Save only when warnings are resolved"],
)

TEXT_FIELD_DOC = ConfigDoc(
    title="Text config field",
    type="text",
    description="This value is stored as plain text key/value config.",
    recommendations=["Use Format to normalize spacing", "Keep comments and order intact"],
)

# Dotted paths; line-oriented files match on the last segment only.
PRESET_VALUES: dict[ConfigPreset, dict[str, int | bool | str]] = {
    ConfigPreset.PERFORMANCE: {
        "renderDistance": 8,
        "simulationDistance": 6,
        "entityShadows": False,
        "graphicsMode": "fast",
        "particles": "minimal",
        "graphics.preset": "performance",
        "graphics.shadows": False,
        "graphics.particles": "minimal",
        "performance.chunkUpdates": 1,
    },
    ConfigPreset.BALANCED: {
        "renderDistance": 16,
        "simulationDistance": 10,
        "entityShadows": True,
        "graphicsMode": "fancy",
        "particles": "all",
        "graphics.preset": "balanced",
        "graphics.shadows": True,
        "graphics.particles": "all",
        "performance.chunkUpdates": 3,
    },
    ConfigPreset.QUALITY: {
        "renderDistance": 24,
        "simulationDistance": 14,
        "entityShadows": True,
        "graphicsMode": "fabulous",
        "particles": "all",
        "graphics.preset": "quality",
        "graphics.shadows": True,
        "graphics.particles": "all",
        "performance.chunkUpdates": 4,
    },
}
