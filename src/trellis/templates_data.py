"""Built-in project templates.

This file is pure data; loading and lookup live in registry.py. Each template
is a JSON-compatible dict in the template document shape accepted by
``trellis.schema.parse_template_schema``.
"""

from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Weekly course -- one node per week, nested lecture/exercise repeats
# ---------------------------------------------------------------------------

_COURSE_WEEKLY: dict[str, Any] = {
    "id": "course_weekly",
    "name": "Weekly Course",
    "domain": "education",
    "version": "1.0",
    "description": "A course split into weeks, each with lectures, exercises and a weekly quiz",
    "variables": [
        {"key": "weeks", "type": "int", "required": False, "default": 12, "min": 1, "max": 52},
        {"key": "lectures_per_week", "type": "int", "required": False, "default": 2, "min": 1, "max": 7},
    ],
    "defaults": {
        "duration_mode": "estimate",
        "session_policy": {"min_session_min": 20, "max_session_min": 90, "default_session_min": 45, "splittable": True},
    },
    "nodes": [
        {
            "id": "w{i}",
            "title": "Week {i}",
            "kind": "week",
            "order": "i",
            "repeat": {"var": "i", "from": 1, "to_var": "weeks"},
            "constraints": {"not_before_offset_days": "(i-1)*7", "due_date_offset_days": "i*7-1"},
        },
    ],
    "work_items": [
        {
            "id": "w{i}_lecture{j}",
            "node_id": "w{i}",
            "title": "Week {i} lecture {j}",
            "type": "lecture",
            "planned_min": 90,
            "repeat": [
                {"var": "i", "from": 1, "to_var": "weeks"},
                {"var": "j", "from": 1, "to_var": "lectures_per_week"},
            ],
        },
        {
            "id": "w{i}_exercises",
            "node_id": "w{i}",
            "title": "Week {i} exercises",
            "type": "assignment",
            "planned_min": 120,
            "repeat": {"var": "i", "from": 1, "to_var": "weeks"},
            "constraints": {"due_date_offset_days": "i*7-1"},
        },
        {
            "id": "w{i}_quiz",
            "node_id": "w{i}",
            "title": "Week {i} quiz",
            "type": "quiz",
            "duration_mode": "fixed",
            "planned_min": 30,
            "session_policy": {"min_session_min": 30, "max_session_min": 30, "default_session_min": 30, "splittable": False},
            "repeat": {"var": "i", "from": 1, "to_var": "weeks"},
            "constraints": {"due_date_offset_days": "{i*7-1}"},
        },
    ],
    "dependencies": [
        {"predecessor": "w{weeks}_exercises", "successor": "w{weeks}_quiz"},
        {"predecessor": "w{weeks}_quiz", "successor": "w{weeks+1}_exercises"},
    ],
}

# ---------------------------------------------------------------------------
# Book reading -- one node per book, one work item per chapter
# ---------------------------------------------------------------------------

_BOOK_READING: dict[str, Any] = {
    "id": "book_reading",
    "name": "Book Reading",
    "domain": "reading",
    "version": "1.0",
    "description": "Read a book chapter by chapter, then write notes",
    "variables": [
        {"key": "chapters", "type": "int", "required": True, "min": 1, "max": 200},
    ],
    "defaults": {
        "duration_mode": "estimate",
        "estimate_confidence": 0.6,
        "session_policy": {"min_session_min": 15, "max_session_min": 60, "default_session_min": 30, "splittable": True},
    },
    "nodes": [
        {"id": "book", "title": "Book", "kind": "book", "order": 1},
    ],
    "work_items": [
        {
            "id": "ch{n}",
            "node_id": "book",
            "title": "Chapter {n}",
            "type": "reading",
            "planned_min": 40,
            "units": {"kind": "pages", "total": 20},
            "repeat": {"var": "n", "from": 1, "to_var": "chapters"},
        },
        {
            "id": "notes",
            "node_id": "book",
            "title": "Write reading notes",
            "type": "writing",
            "planned_min": 60,
        },
    ],
}

# ---------------------------------------------------------------------------
# Exam preparation -- staged review with linear inference
# ---------------------------------------------------------------------------

_EXAM_PREP: dict[str, Any] = {
    "id": "exam_prep",
    "name": "Exam Preparation",
    "domain": "education",
    "version": "1.0",
    "description": "Topic review, practice papers, and a final mock exam",
    "variables": [
        {"key": "topics", "type": "int", "required": False, "default": 5, "min": 1, "max": 30},
        {"key": "practice_papers", "type": "int", "required": False, "default": 3, "min": 0, "max": 10},
    ],
    "defaults": {"duration_mode": "estimate", "planned_min": 60},
    "nodes": [
        {"id": "review", "title": "Topic review", "kind": "stage", "order": 1},
        {"id": "practice", "title": "Practice papers", "kind": "stage", "order": 2},
        {"id": "mock", "title": "Mock exam", "kind": "stage", "order": 3},
    ],
    "work_items": [
        {
            "id": "topic{t}",
            "node_id": "review",
            "title": "Review topic {t}",
            "type": "review",
            "repeat": {"var": "t", "from": 1, "to_var": "topics"},
        },
        {
            "id": "paper{p}",
            "node_id": "practice",
            "title": "Practice paper {p}",
            "type": "practice",
            "planned_min": 120,
            "repeat": {"var": "p", "from": 1, "to_var": "practice_papers"},
        },
        {
            "id": "mock_exam",
            "node_id": "mock",
            "title": "Full mock exam",
            "type": "assessment",
            "duration_mode": "fixed",
            "planned_min": 180,
            "session_policy": {"min_session_min": 180, "max_session_min": 180, "default_session_min": 180, "splittable": False},
        },
    ],
}

BUILT_IN_TEMPLATES: dict[str, dict[str, Any]] = {
    "course_weekly": _COURSE_WEEKLY,
    "book_reading": _BOOK_READING,
    "exam_prep": _EXAM_PREP,
}
