"""
Label Rules Loader

One configuration table drives the hysteresis classifier: each primitive label
names a feature, an enter threshold, an exit threshold and a trigger direction.
Tuning is a data change, not a code change.

Thresholds are loaded from NMF_THRESHOLDS_URL (if set), else NMF_THRESHOLDS_PATH
(if the file exists), else the built-in defaults below.

JSON format:
  {"labels": {"eyebrows-raised": {"enter": 0.12, "exit": 0.10}, ...}}
Only enter/exit can be overridden; features, directions and descriptions are fixed.

Default values (normalized by inter-ocular distance unless noted):
- browRaise 0.12 / 0.10, mouthOpen 0.08 / 0.05
- eyeOpenness below 0.04 closes, above 0.06 reopens
- headRoll and shoulderTilt in degrees, +/-10 enter, +/-6 exit
- headNod: neutral chin-below-nose sits around 0.7
"""

import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

import requests

import config

logger = logging.getLogger(__name__)

HIGH = "high"
LOW = "low"


@dataclass(frozen=True)
class LabelRule:
    """
    Threshold rule for one primitive label.

    direction "high": activates when the feature rises above `enter`, releases below `exit`.
    direction "low": activates when the feature falls below `enter`, releases above `exit`.
    """
    label: str
    feature: str
    enter: float
    exit: float
    direction: str
    description: str
    priority: int
    exclusive_with: Optional[str] = None

    def __post_init__(self):
        if self.direction not in (HIGH, LOW):
            raise ValueError(f"{self.label}: direction must be '{HIGH}' or '{LOW}'")
        if self.direction == HIGH and not self.exit < self.enter:
            raise ValueError(f"{self.label}: exit ({self.exit}) must be below enter ({self.enter})")
        if self.direction == LOW and not self.exit > self.enter:
            raise ValueError(f"{self.label}: exit ({self.exit}) must be above enter ({self.enter})")


@dataclass(frozen=True)
class CompositeRule:
    """
    Label derived from primitive labels; no threshold state of its own.

    Each entry in `requires` must be active. An entry "a|b" is satisfied by either.
    """
    label: str
    requires: Tuple[str, ...]
    description: str
    priority: int

    def matches(self, active: set) -> bool:
        return all(any(alt in active for alt in req.split("|")) for req in self.requires)


DEFAULT_LABEL_RULES: List[LabelRule] = [
    LabelRule("eyebrows-raised", "browRaise", 0.12, 0.10, HIGH, "eyebrows raised", 10),
    LabelRule("brow-furrow", "browAsymmetry", 0.04, 0.025, HIGH, "brow furrow", 20),
    LabelRule("eyes-closed", "eyeOpenness", 0.04, 0.06, LOW, "eyes closed", 30),
    LabelRule("mouth-open", "mouthOpen", 0.08, 0.05, HIGH, "mouth open", 40),
    LabelRule("smile", "smileMetric", 0.62, 0.58, HIGH, "smile", 50),
    LabelRule("head-tilt-left", "headRoll", -10.0, -6.0, LOW, "head tilt left", 60, "head-tilt-right"),
    LabelRule("head-tilt-right", "headRoll", 10.0, 6.0, HIGH, "head tilt right", 61, "head-tilt-left"),
    LabelRule("head-nod-down", "headNod", 0.85, 0.80, HIGH, "head nod down", 70, "head-nod-up"),
    LabelRule("head-nod-up", "headNod", 0.55, 0.60, LOW, "head nod up", 71, "head-nod-down"),
    LabelRule("head-turn-left", "headYaw", -0.10, -0.06, LOW, "head turn left", 80, "head-turn-right"),
    LabelRule("head-turn-right", "headYaw", 0.10, 0.06, HIGH, "head turn right", 81, "head-turn-left"),
    LabelRule("head-nodding", "headNodMotion", 0.12, 0.08, HIGH, "head nodding", 85),
    LabelRule("head-shaking", "headShakeMotion", 0.20, 0.14, HIGH, "head shaking", 86),
    LabelRule("gaze-left", "gazeMetric", -0.05, -0.03, LOW, "gaze left", 90, "gaze-right"),
    LabelRule("gaze-right", "gazeMetric", 0.05, 0.03, HIGH, "gaze right", 91, "gaze-left"),
    LabelRule("shoulder-lean-left", "shoulderTilt", -10.0, -6.0, LOW, "shoulder lean left", 100, "shoulder-lean-right"),
    LabelRule("shoulder-lean-right", "shoulderTilt", 10.0, 6.0, HIGH, "shoulder lean right", 101, "shoulder-lean-left"),
]

DEFAULT_COMPOSITE_RULES: List[CompositeRule] = [
    CompositeRule("surprise", ("eyebrows-raised", "mouth-open"), "surprise", 200),
    CompositeRule("rhetorical-question", ("eyebrows-raised", "head-nod-down"), "rhetorical question", 210),
    CompositeRule("disbelief", ("eyebrows-raised", "head-turn-left|head-turn-right"), "disbelief", 220),
]

# In-memory table (updated by load_rules, set_thresholds)
_current: Dict[str, LabelRule] = {r.label: r for r in DEFAULT_LABEL_RULES}


def get_rules() -> List[LabelRule]:
    """Return the current primitive rules in priority order."""
    return sorted(_current.values(), key=lambda r: r.priority)


def get_composite_rules() -> List[CompositeRule]:
    return list(DEFAULT_COMPOSITE_RULES)


def get_thresholds() -> Dict[str, Dict[str, float]]:
    """Return {label: {"enter", "exit", "feature", "direction"}} for the current table."""
    return {
        r.label: {"feature": r.feature, "direction": r.direction, "enter": r.enter, "exit": r.exit}
        for r in get_rules()
    }


def set_thresholds(label: str, enter: float, exit: float) -> LabelRule:
    """
    Update one label's thresholds. Raises KeyError for an unknown label and
    ValueError when the dead zone would be empty or inverted.
    """
    rule = check_thresholds(label, enter, exit)
    _current[label] = rule
    return rule


def check_thresholds(label: str, enter: float, exit: float) -> LabelRule:
    """Build the retuned rule without storing it (same errors as set_thresholds)."""
    if label not in _current:
        raise KeyError(label)
    return replace(_current[label], enter=float(enter), exit=float(exit))


def _apply(data: dict) -> int:
    labels = data.get("labels") if isinstance(data, dict) else None
    if not isinstance(labels, dict):
        return 0
    applied = 0
    for label, values in labels.items():
        if label not in _current:
            logger.warning("Ignoring threshold override for unknown label %r", label)
            continue
        if not isinstance(values, dict):
            logger.warning("Ignoring threshold override for %s: expected an object, got %s", label, type(values).__name__)
            continue
        try:
            set_thresholds(label, values.get("enter", _current[label].enter), values.get("exit", _current[label].exit))
            applied += 1
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring invalid thresholds for %s: %s", label, e)
    return applied


def reset_rules() -> List[LabelRule]:
    _current.clear()
    _current.update({r.label: r for r in DEFAULT_LABEL_RULES})
    return get_rules()


def load_rules() -> List[LabelRule]:
    """
    Load from NMF_THRESHOLDS_URL, else NMF_THRESHOLDS_PATH, else defaults.
    Updates the in-memory table and returns get_rules().
    """
    reset_rules()

    # 1) URL
    url = getattr(config, "NMF_THRESHOLDS_URL", None)
    if url:
        try:
            r = requests.get(url, timeout=5)
            if r.ok:
                _apply(r.json())
                return get_rules()
            logger.warning("Threshold URL returned HTTP %s; trying file", r.status_code)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Could not load thresholds from %s: %s", url, e)

    # 2) File
    path = getattr(config, "NMF_THRESHOLDS_PATH", "")
    if path and os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                _apply(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning("Could not load thresholds from %s: %s", path, e)

    # 3) Defaults already in place
    return get_rules()
