"""Root pytest configuration and fixtures.

This module provides:
- Environment setup (loads .env)
- Shared component schema fixtures
- Sample UI-State fixtures
"""

from __future__ import annotations

import copy
from typing import Any

import pytest
from dotenv import load_dotenv

from adaptly.schema import ComponentSchema, validate_schema
from adaptly.state import UIElement, UIState

# Load environment variables from .env file
load_dotenv()


# =============================================================================
# Schema fixtures
# =============================================================================

SCHEMA_DOCUMENT: dict[str, Any] = {
    "version": "1.0.0",
    "components": {
        "MetricCard": {
            "description": "Single key metric with optional trend",
            "props": {
                "title": {"type": "string", "required": True},
                "value": {"type": "string", "required": True},
                "change": {"type": "string", "required": False},
                "changeType": {
                    "type": "string",
                    "required": False,
                    "allowed": ["positive", "negative", "neutral"],
                },
                "progress": {"type": "number", "required": False},
            },
            "useCases": ["revenue", "kpi", "sales figures"],
            "space": {"min": [1, 1], "max": [3, 2], "preferred": [2, 1]},
        },
        "StatCard": {
            "description": "Compact statistic",
            "props": {
                "label": {"type": "string", "required": True},
                "value": {"type": "string", "required": True},
            },
            "useCases": ["counts", "totals"],
            "space": {"min": [1, 1], "max": [2, 1], "preferred": [1, 1]},
        },
        "NoteCard": {
            "description": "Free text note",
            "props": {
                "title": {"type": "string", "required": True},
                "content": {"type": "string", "required": False},
                "pinned": {"type": "boolean", "required": False},
            },
            "useCases": ["notes", "reminders"],
            "space": {"min": [1, 1], "max": [4, 4], "preferred": [2, 2]},
        },
        "TaskList": {
            "description": "Checklist of tasks",
            "props": {
                "title": {"type": "string", "required": True},
                "tasks": {"type": "array", "required": False},
                "meta": {"type": "object", "required": False},
            },
            "useCases": ["todo", "planning"],
            "space": {"min": [2, 2], "max": [6, 6], "preferred": [3, 3]},
        },
    },
}


@pytest.fixture
def schema_document() -> dict[str, Any]:
    """Raw schema document as it would appear in adaptly.json."""
    return copy.deepcopy(SCHEMA_DOCUMENT)


@pytest.fixture
def metric_schema() -> ComponentSchema:
    """Validated schema with MetricCard, StatCard, NoteCard and TaskList."""
    return validate_schema(SCHEMA_DOCUMENT)


# =============================================================================
# State fixtures
# =============================================================================


@pytest.fixture
def sample_state() -> UIState:
    """Two valid metric cards in grid mode."""
    return UIState(
        elements=[
            UIElement(
                id="revenue",
                type="MetricCard",
                arguments={"title": "Revenue", "value": "$45,231"},
                placement={"x": 0, "y": 0, "w": 2, "h": 1},
            ),
            UIElement(
                id="users",
                type="MetricCard",
                arguments={"title": "Users", "value": "2,350", "change": "+12%"},
                placement={"x": 2, "y": 0, "w": 2, "h": 1},
            ),
        ]
    )


@pytest.fixture
def metric_candidate() -> dict[str, Any]:
    """A single raw MetricCard candidate as a backend would return it."""
    return {
        "id": "sales",
        "type": "MetricCard",
        "props": {"title": "Sales", "value": "$12,400", "changeType": "positive"},
        "position": {"x": 0, "y": 0, "w": 2, "h": 1},
        "visible": True,
    }
