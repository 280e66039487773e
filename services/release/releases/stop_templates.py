"""Stop template used when a release train is created without explicit stops."""
from __future__ import annotations

from typing import Any, Dict, List

from django.conf import settings

DEFAULT_STOP_TEMPLATE: List[Dict[str, Any]] = [
    {
        "title": "Build dev for QA",
        "description": "After feature/SDK integrations/internal testing",
        "owner_type": "automation",
        "owner_name": "Automation/Team",
    },
    {
        "title": "QA approves",
        "description": "Quality assurance sign-off",
        "owner_type": "person",
        "owner_name": "QA Lead",
    },
    {
        "title": "Pull changes from main to dev",
        "description": "Sync development branch",
        "owner_type": "automation",
        "owner_name": "Script",
    },
    {
        "title": "Client cut",
        "description": "Create release branch",
        "owner_type": "automation",
        "owner_name": "Script",
    },
    {
        "title": "Build main release",
        "description": "CI/CD pipeline build",
        "owner_type": "automation",
        "owner_name": "GitHub Action",
    },
    {
        "title": "Sanity",
        "description": "Final sanity check",
        "owner_type": "person",
        "owner_name": "QA Lead",
    },
    {
        "title": "Upload to store",
        "description": "Deploy to App Store / Play Store",
        "owner_type": "automation",
        "owner_name": "Fastlane",
    },
    {
        "title": "Release notes",
        "description": "Write and publish release notes",
        "owner_type": "person",
        "owner_name": "Product Manager",
    },
    {
        "title": "Rollout 10%",
        "description": "Initial staged rollout",
        "owner_type": "person",
        "owner_name": "Release Manager",
    },
    {
        "title": "Update rollout",
        "description": "Expand rollout percentage",
        "owner_type": "person",
        "owner_name": "Approver",
    },
]


def get_stop_template() -> List[Dict[str, Any]]:
    """Return a copy of the configured template (``RELEASE_STOP_TEMPLATE``)."""

    template = getattr(settings, "RELEASE_STOP_TEMPLATE", None) or DEFAULT_STOP_TEMPLATE
    return [dict(spec) for spec in template]
