"""Local stand-in for the pipelines CLI used by integration tests."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from autonotes.models import IMAGE_BOM_ARTIFACT, RELEASE_NOTES_ARTIFACT

FAIL_ARTIFACTS_ENV = "AUTONOTES_ECHO_FAIL_ARTIFACTS"


def main(argv: list[str] | None = None) -> int:
    """Write a deterministic artifact file named like the real download."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--run-id", required=True)
    parser.add_argument("--path", required=True)
    parser.add_argument("--artifact-name", required=True)
    args = parser.parse_args(argv)

    failing = {
        name.strip()
        for name in os.getenv(FAIL_ARTIFACTS_ENV, "").split(",")
        if name.strip()
    }
    if args.artifact_name in failing:
        print(f"ERROR: Artifact not found: {args.artifact_name}")
        return 1

    destination = Path(args.path)
    destination.mkdir(parents=True, exist_ok=True)
    for artifact in (RELEASE_NOTES_ARTIFACT, IMAGE_BOM_ARTIFACT):
        prefix = f"{artifact.artifact_prefix}-"
        if not args.artifact_name.startswith(prefix):
            continue
        variant = args.artifact_name.removeprefix(prefix)
        target = destination / artifact.workspace_filename
        if target.suffix == ".json":
            payload = {"run_id": args.run_id, "variant": variant, "images": []}
            target.write_text(json.dumps(payload), "utf-8")
        else:
            target.write_text(f"release notes for {variant} from run {args.run_id}\n", "utf-8")
        print(f"downloaded {args.artifact_name} to {target}")
        return 0

    print(f"ERROR: unsupported artifact name {args.artifact_name}")
    return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
