"""Policy loader for policy.yaml."""

from __future__ import annotations

from pathlib import Path

import yaml

from marine_workflow.policy.models import AccessPolicyConfig


def load_policy(path: str | None) -> AccessPolicyConfig:
    if path is None:
        return AccessPolicyConfig()
    policy_path = Path(path)
    if not policy_path.exists():
        raise FileNotFoundError(f"Policy file not found: {policy_path}")
    with policy_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return AccessPolicyConfig.from_yaml(data)
