"""Template-driven extraction of carrier notification lines."""

from parcel_notifier.extraction.templates import (
    RULES,
    Extraction,
    Template,
    TemplateRule,
    delivery_notice_rule,
    extract,
    pickup_change_rule,
)

__all__ = [
    "RULES",
    "Extraction",
    "Template",
    "TemplateRule",
    "delivery_notice_rule",
    "extract",
    "pickup_change_rule",
]
