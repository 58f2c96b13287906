"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add src to path for imports
PROJ_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJ_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


@pytest.fixture
def watermark():
    """A fixed whole-second watermark."""
    return datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def watermark_ms(watermark):
    return int(watermark.timestamp()) * 1000


@pytest.fixture
def pickup_change_body():
    """Pickup-time change request in the carrier's wording."""
    return "\n".join([
        "ヤマト運輸です。",
        "お荷物の受け取り日時変更のご依頼を承りました。",
        "■お受け取りご希望日時：10月5日 14時～16時",
        "ご不明点はお問い合わせください。",
        "■伝票番号：1234-5678-9012",
        "",
    ])


@pytest.fixture
def delivery_notice_body():
    """Delivery notice in the carrier's wording."""
    return "\n".join([
        "お荷物のお届けについてお知らせします。",
        "■お届け予定日時",
        "10月6日",
        "午前中",
        "■伝票番号",
        "1234-5678-9012",
        "",
    ])


@pytest.fixture
def unrelated_body():
    return "Your newsletter for this week.\nNothing to see here.\n"
