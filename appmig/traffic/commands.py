#!/usr/bin/env python3
# CUI // SP-CTI
"""Platform command builders (App Engine via the gcloud CLI).

Each builder returns only the argument vector; the binary name comes from
settings so the executor call site reads ``executor.execute(binary, args)``.
"""

from typing import List

SERVING_FILTER = "version.servingStatus=SERVING AND traffic_split>0"


def describe_version_args(project: str, service: str, version: str) -> List[str]:
    return [
        "app", "versions", "describe",
        f"--project={project}",
        f"--service={service}",
        "--format=value(id)",
        version,
    ]


def list_serving_versions_args(project: str, service: str) -> List[str]:
    return [
        "app", "versions", "list",
        f"--project={project}",
        f"--service={service}",
        f"--filter={SERVING_FILTER}",
        "--format=json",
    ]


def format_splits(current_id: str, current_fraction: float,
                  target_id: str, target_fraction: float) -> str:
    """Build the ``--splits`` value for one step.

    At 1.0 the current revision is dropped entirely: the platform rejects a
    zero-weighted entry.
    """
    if target_fraction == 1.0:
        return f"{target_id}=1.00"
    return f"{current_id}={current_fraction:.2f},{target_id}={target_fraction:.2f}"


def set_traffic_args(project: str, service: str, splits: str, split_by: str = "ip") -> List[str]:
    return [
        f"--project={project}",
        "app", "services", "set-traffic",
        service,
        f"--splits={splits}",
        f"--split-by={split_by}",
        "--quiet",
    ]
