#!/usr/bin/env python3
"""Run the cart transform function over a cart input document.

Reads the function input JSON from --input (or stdin) and writes the
operations document to stdout, the same contract the storefront runtime uses.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from services.cart_transform import run  # noqa: E402


def _load_input(path: str | None) -> Dict[str, Any]:
    if path and path != "-":
        raw = Path(path).read_text(encoding="utf-8")
    else:
        raw = sys.stdin.read()
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("Function input must be a JSON object")
    return payload


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--input", "-i", help="Path to the input JSON (default: stdin)")
    parser.add_argument("--pretty", action="store_true", help="Indent the output JSON")
    args = parser.parse_args(argv)

    try:
        function_input = _load_input(args.input)
        result = run(function_input)
    except ValueError as exc:  # includes JSON and component reference errors
        print(f"cart transform failed: {exc}", file=sys.stderr)
        return 1

    json.dump(result, sys.stdout, indent=2 if args.pretty else None)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
