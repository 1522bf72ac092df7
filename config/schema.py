"""Custom OpenAPI schema hooks for drf-spectacular.

Groups every operation under one feature tag so the Swagger UI shows
Evaluations, Evaluator Setups, Notifications and Authentication sections.
"""

from __future__ import annotations

from typing import Any

# Method names that contain operations in the OpenAPI path item
_HTTP_METHODS = {"get", "post", "put", "patch", "delete", "options", "head"}


PATTERN_TAGS = [
    ("/api/v1/evaluations/{id}/answers", "Evaluation Answers"),
    ("/api/v1/evaluations", "Evaluations"),
    ("/api/v1/evaluator-setups", "Evaluator Setups"),
    ("/api/v1/notifications", "Notifications"),
    ("/api/v1/auth/jwt", "Authentication"),
]

ALL_TAGS = list(dict.fromkeys(t for _, t in PATTERN_TAGS))


def assign_group_tag(path: str) -> str | None:
    """Return the first matching tag name for a given path."""
    for prefix, tag in PATTERN_TAGS:
        if path.startswith(prefix):
            return tag
    return None


def group_tags(result: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
    """Post-processing hook overwriting each operation's ``tags``."""
    paths = result.get("paths", {})
    for path, path_item in paths.items():  # type: ignore[assignment]
        tag = assign_group_tag(path)
        if not tag:
            continue
        for method, op_obj in path_item.items():
            if method.lower() not in _HTTP_METHODS:
                continue
            if not isinstance(op_obj, dict):
                continue
            op_obj["tags"] = [tag]

    existing = {t.get("name") for t in result.get("tags", [])}
    tag_list = result.setdefault("tags", [])
    for tag in ALL_TAGS:
        if tag not in existing:
            tag_list.append({"name": tag})
    return result
