#!/usr/bin/env python3
"""
Fail the build if services, controllers or the panel contain raw SQL or
connection usage. Only repositories talk to the database.
"""

import sys
from pathlib import Path


FORBIDDEN = [
    "conn.execute",
    "transactional_connection(",
    "sa_connection(",
    "db.engine",
    "SELECT ",
    "UPDATE users",
]

ROOTS = [
    Path("backend/services"),
    Path("backend/controllers"),
    Path("backend/users_panel.py"),
]


def _python_files(root: Path):
    if root.is_file():
        return [root]
    return sorted(root.rglob("*.py"))


def scan_paths(paths):
    violations = []
    for path in paths:
        for file in _python_files(path):
            text = file.read_text(encoding="utf-8")
            for idx, line in enumerate(text.splitlines(), start=1):
                for token in FORBIDDEN:
                    if token in line:
                        violations.append(f"{file}:{idx}: {line.strip()}")
                        break
    return violations


def main() -> int:
    violations = scan_paths(ROOTS)
    if violations:
        print("Forbidden data-layer usage found:")
        for v in violations:
            print(v)
        return 1
    print("Layering check passed: no data-layer access outside repositories.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
