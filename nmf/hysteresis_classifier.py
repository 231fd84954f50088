"""
Hysteresis Classifier

Per-label two-threshold state machines over the smoothed Feature Vector.

A "high" label switches ON when its feature rises above `enter` and OFF only once
it falls below `exit` (exit < enter). "Low" labels mirror this. Values inside the
dead zone never change a flag, so a feature hovering near one threshold cannot
make a label flicker. Opposite-direction pairs (tilt left/right, gaze left/right,
...) clear each other on activation.

All mutable state lives in a ClassifierState owned by one classifier instance;
independent pipelines never share flags.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from nmf import label_rules
from nmf.label_rules import HIGH, CompositeRule, LabelRule

NEUTRAL_TEXT = "neutral"


@dataclass
class LabelState:
    """Flag for one label plus the thresholds that govern it."""
    label: str
    active: bool
    enter: float
    exit: float


@dataclass
class ClassifierState:
    """Mutable per-pipeline classifier state: one LabelState per primitive label."""
    labels: Dict[str, LabelState] = field(default_factory=dict)

    @classmethod
    def from_rules(cls, rules: Iterable[LabelRule]) -> "ClassifierState":
        return cls({r.label: LabelState(r.label, False, r.enter, r.exit) for r in rules})

    def active(self) -> Set[str]:
        return {name for name, s in self.labels.items() if s.active}

    def clear(self) -> None:
        for s in self.labels.values():
            s.active = False


class HysteresisClassifier:
    """
    Rule-based label classifier with enter/exit hysteresis.

    Usage:
        classifier = HysteresisClassifier()
        labels, text = classifier.classify(smoothed_vector)
        print(text)   # e.g. "eyebrows raised, mouth open, surprise" or "neutral"
    """

    def __init__(
        self,
        rules: Optional[List[LabelRule]] = None,
        composites: Optional[List[CompositeRule]] = None,
        state: Optional[ClassifierState] = None,
        delimiter: str = ", ",
    ):
        rules = list(rules) if rules is not None else label_rules.get_rules()
        self._rules: Dict[str, LabelRule] = {r.label: r for r in rules}
        self._composites: List[CompositeRule] = (
            list(composites) if composites is not None else label_rules.get_composite_rules()
        )
        for r in self._rules.values():
            if r.exclusive_with and r.exclusive_with not in self._rules:
                raise ValueError(f"{r.label}: exclusive partner {r.exclusive_with!r} has no rule")
        self.state = state if state is not None else ClassifierState.from_rules(self._rules.values())
        self.delimiter = delimiter
        self._last_active: List[str] = []

    @property
    def rules(self) -> List[LabelRule]:
        return sorted(self._rules.values(), key=lambda r: r.priority)

    def classify(self, vector: Optional[Dict[str, float]]) -> Tuple[Set[str], str]:
        """
        Update label states from one smoothed vector.

        Returns:
            (active label ids, display text). An absent vector returns (set(), "")
            and leaves every flag untouched.
        """
        if vector is None:
            return set(), ""

        for rule in self.rules:
            value = vector.get(rule.feature)
            if value is None:
                continue
            self._step(rule, self.state.labels[rule.label], float(value))

        active = self.state.active()
        ordered = [r for r in self.rules if r.label in active]
        composites = sorted(
            (c for c in self._composites if c.matches(active)), key=lambda c: c.priority
        )
        self._last_active = [r.label for r in ordered] + [c.label for c in composites]

        descriptions = [r.description for r in ordered] + [c.description for c in composites]
        text = self.delimiter.join(descriptions) if descriptions else NEUTRAL_TEXT
        return set(self._last_active), text

    def _step(self, rule: LabelRule, s: LabelState, value: float) -> None:
        high = rule.direction == HIGH
        if not s.active:
            if (value > s.enter) if high else (value < s.enter):
                s.active = True
                if rule.exclusive_with:
                    self.state.labels[rule.exclusive_with].active = False
        elif (value < s.exit) if high else (value > s.exit):
            s.active = False

    def active_labels(self) -> List[str]:
        """Labels active after the last classify(), in priority order (composites last)."""
        return list(self._last_active)

    def set_thresholds(self, label: str, enter: float, exit: float) -> LabelRule:
        """Retune one label in place; the flag keeps its current value."""
        rule = LabelRule(
            label, self._rules[label].feature, float(enter), float(exit),
            self._rules[label].direction, self._rules[label].description,
            self._rules[label].priority, self._rules[label].exclusive_with,
        )
        self._rules[label] = rule
        s = self.state.labels[label]
        s.enter, s.exit = rule.enter, rule.exit
        return rule

    def reset(self) -> None:
        """Turn every label OFF."""
        self.state.clear()
        self._last_active = []
