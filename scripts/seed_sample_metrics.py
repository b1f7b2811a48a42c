#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
from dataclasses import dataclass
from uuid import uuid4

import httpx


@dataclass(frozen=True)
class SeedMetric:
    resource: str
    resource_id: str
    key: str
    value: int

    def payload(self) -> dict[str, object]:
        return {
            "resource": self.resource,
            "resourceId": self.resource_id,
            "key": self.key,
            "value": self.value,
        }


def build_seed_metrics(resource: str, count: int) -> list[SeedMetric]:
    metrics: list[SeedMetric] = []
    for index in range(count):
        resource_id = str(uuid4())
        metrics.extend(
            [
                SeedMetric(resource, resource_id, "views", 100 * (index + 1)),
                SeedMetric(resource, resource_id, "likes", 7 * (index + 1)),
                SeedMetric(resource, resource_id, "shares", index),
            ]
        )
    return metrics


def seed_metric(client: httpx.Client, base_url: str, metric: SeedMetric) -> tuple[str, str]:
    try:
        response = client.post(f"{base_url.rstrip('/')}/metrics", json=metric.payload())
    except httpx.HTTPError as exc:
        return ("error", f"request_failed: {exc}")

    if response.status_code == 201:
        return ("created", response.json()["id"])

    detail = response.text
    try:
        detail = json.dumps(response.json(), indent=2)
    except ValueError:
        pass
    return ("error", f"status={response.status_code} detail={detail}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the metrics API with sample counters")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="Metrics API base URL (default: http://localhost:8000)",
    )
    parser.add_argument("--resource", default="post", help="Resource type to seed (default: post)")
    parser.add_argument("--count", type=int, default=3, help="Number of resource instances")
    args = parser.parse_args()

    metrics = build_seed_metrics(args.resource, args.count)
    print(f"Seeding {len(metrics)} sample metrics into {args.base_url}...")

    failures = 0
    with httpx.Client(timeout=10) as client:
        for metric in metrics:
            outcome, info = seed_metric(client, args.base_url, metric)
            if outcome == "error":
                failures += 1
            print(f"- {metric.resource}/{metric.resource_id} {metric.key}={metric.value}: {outcome} ({info})")

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
