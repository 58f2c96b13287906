# src/parcel_notifier/extraction/templates.py
"""
Carrier notification templates and line extraction.

Two fixed templates are recognized, each identified by a marker phrase
anywhere in the decoded body:

- pickup-time change request: keep every line naming the requested pickup
  time or the tracking number;
- delivery notice: keep every expected-delivery line plus the lines that
  follow the first one, four lines counted in total.

Rules are evaluated in order and the first marker found wins, so the
pickup-time change request takes precedence if a body somehow carries both.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple


class Template(enum.Enum):
    PICKUP_TIME_CHANGE = "pickup_time_change"
    DELIVERY_NOTICE = "delivery_notice"


# ---------------------------
# Carrier wording
# ---------------------------
PICKUP_CHANGE_MARKER = "お荷物の受け取り日時変更のご依頼"
PICKUP_TIME_LABEL = "■お受け取りご希望日時"
TRACKING_NUMBER_LABEL = "■伝票番号"

DELIVERY_NOTICE_MARKER = "お荷物のお届けについてお知らせします。"
EXPECTED_DELIVERY_LABEL = "■お届け予定日時"

#: Lines kept for a delivery notice, trigger line included.
DELIVERY_WINDOW_SIZE = 4


def select_matching_lines(lines: Iterable[str], needles: Sequence[str]) -> List[str]:
    """Keep, in order, every line containing at least one of `needles`."""
    return [line for line in lines if any(n in line for n in needles)]


def select_window(lines: Iterable[str], needle: str, size: int = DELIVERY_WINDOW_SIZE) -> List[str]:
    """
    Keep every line containing `needle` plus the lines following the first
    one, until `size` lines have been counted.

    Each line containing `needle` is always kept and counted, so a notice
    listing several parcels keeps every expected-delivery line even after
    the window is full.
    """
    selected: List[str] = []
    count = 0
    for line in lines:
        if needle in line:
            count += 1
            selected.append(line)
        elif 0 < count < size:
            selected.append(line)
            count += 1
    return selected


@dataclass(frozen=True)
class TemplateRule:
    """Marker phrase plus the line-selection predicate for one template."""
    template: Template
    marker: str
    title: str
    select: Callable[[List[str]], List[str]]

    def matches(self, body: str) -> bool:
        return self.marker in body


@dataclass(frozen=True)
class Extraction:
    """Lines pulled from a matched message, ready to be forwarded."""
    template: Template
    title: str
    lines: Tuple[str, ...]

    @property
    def text(self) -> str:
        return "".join(line + "\n" for line in self.lines)


def pickup_change_rule(
    marker: str = PICKUP_CHANGE_MARKER,
    labels: Sequence[str] = (PICKUP_TIME_LABEL, TRACKING_NUMBER_LABEL),
    title: str = "Pickup time change request",
) -> TemplateRule:
    labels = tuple(labels)
    return TemplateRule(
        template=Template.PICKUP_TIME_CHANGE,
        marker=marker,
        title=title,
        select=lambda lines: select_matching_lines(lines, labels),
    )


def delivery_notice_rule(
    marker: str = DELIVERY_NOTICE_MARKER,
    label: str = EXPECTED_DELIVERY_LABEL,
    size: int = DELIVERY_WINDOW_SIZE,
    title: str = "Delivery notice",
) -> TemplateRule:
    return TemplateRule(
        template=Template.DELIVERY_NOTICE,
        marker=marker,
        title=title,
        select=lambda lines: select_window(lines, label, size),
    )


#: Priority order matters: first matching marker wins.
RULES: Tuple[TemplateRule, ...] = (
    pickup_change_rule(),
    delivery_notice_rule(),
)


def match_rule(body: str, rules: Sequence[TemplateRule] = RULES) -> Optional[TemplateRule]:
    for rule in rules:
        if rule.matches(body):
            return rule
    return None


def extract(body: str, rules: Sequence[TemplateRule] = RULES) -> Optional[Extraction]:
    """
    Classify a decoded body and pull out the template's relevant lines.

    Args:
        body: Decoded message body.
        rules: Ordered template rules; defaults to the carrier templates.

    Returns:
        Extraction, or None if no marker is present or the matched template
        yields no lines.
    """
    rule = match_rule(body, rules)
    if rule is None:
        return None
    lines = rule.select(body.split("\n"))
    if not lines:
        return None
    return Extraction(template=rule.template, title=rule.title, lines=tuple(lines))
