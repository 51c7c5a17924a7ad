import os
import sys

import pytest

# Ensure project root is on sys.path so tests can import the package under test
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from rolegate import AccessControl, Settings  # noqa: E402

CATEGORY_SPORTS_CONDITION = {"Fn": "EQUALS", "args": {"category": "sports"}}


@pytest.fixture
def ac():
    """Fresh access control engine with default settings"""
    return AccessControl(settings=Settings())


@pytest.fixture
def grant_list():
    """Flat grant list, as fetched from a database"""
    return [
        {"role": "admin", "resource": "video", "action": "create", "attributes": ["*"]},
        {"role": "admin", "resource": "video", "action": "read", "attributes": ["*"]},
        {"role": "admin", "resource": "video", "action": "update", "attributes": ["*"]},
        {"role": "admin", "resource": "video", "action": "delete", "attributes": ["*"]},
        {"role": "user", "resource": "video", "action": "create", "attributes": ["*"]},
        {"role": "user", "resource": "video", "action": "read", "attributes": ["*"]},
        {"role": "user", "resource": "video", "action": "update", "attributes": ["*"]},
        {"role": "user", "resource": "video", "action": "delete", "attributes": ["*"]},
    ]


@pytest.fixture
def grants_object():
    """Grants mapping keyed by role"""
    return {
        "admin": {
            "grants": [
                {"resource": "video", "action": "create"},
                {"resource": "video", "action": "read"},
                {"resource": "video", "action": "update"},
                {"resource": "video", "action": "delete"},
            ]
        },
        "user": {
            "grants": [
                {"resource": "video", "action": "create", "attributes": ["*"]},
                {"resource": "video", "action": "read", "attributes": ["*"]},
                {"resource": "video", "action": "update", "attributes": ["*"]},
                {"resource": "video", "action": "delete", "attributes": ["*"]},
            ]
        },
    }


@pytest.fixture
def conditional_grant_list():
    """Flat grant list with conditions"""
    return [
        {
            "role": "sports/editor",
            "resource": "article",
            "action": "create",
            "attributes": ["*"],
            "condition": CATEGORY_SPORTS_CONDITION,
        },
        {
            "role": "sports/editor",
            "resource": "article",
            "action": "update",
            "attributes": ["*"],
            "condition": CATEGORY_SPORTS_CONDITION,
        },
        {
            "role": "sports/writer",
            "resource": "article",
            "action": "create",
            "attributes": ["*", "!status"],
            "condition": CATEGORY_SPORTS_CONDITION,
        },
        {
            "role": "sports/writer",
            "resource": "article",
            "action": "update",
            "attributes": ["*", "!status"],
            "condition": CATEGORY_SPORTS_CONDITION,
        },
    ]


@pytest.fixture
def conditional_grants_object():
    """Grants mapping with conditions"""
    return {
        "sports/editor": {
            "grants": [
                {
                    "resource": "article",
                    "action": "create",
                    "attributes": ["*"],
                    "condition": CATEGORY_SPORTS_CONDITION,
                },
                {
                    "resource": "article",
                    "action": "update",
                    "attributes": ["*"],
                    "condition": CATEGORY_SPORTS_CONDITION,
                },
            ]
        },
        "sports/writer": {
            "grants": [
                {
                    "resource": "article",
                    "action": "create",
                    "attributes": ["*", "!status"],
                    "condition": CATEGORY_SPORTS_CONDITION,
                },
                {
                    "resource": "article",
                    "action": "update",
                    "attributes": ["*", "!status"],
                    "condition": CATEGORY_SPORTS_CONDITION,
                },
            ]
        },
    }
