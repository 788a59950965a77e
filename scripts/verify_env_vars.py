"""
Compare the environment variables the portal reads against a deployment's .env file.

Usage:
  python scripts/verify_env_vars.py [path/to/.env]
"""
import re
import sys
from pathlib import Path

from dotenv import dotenv_values

ROOT = Path(__file__).resolve().parents[1]

REQUIRED_IN_PRODUCTION = ["APP_ENV", "BACKEND_URL", "SECRET_KEY"]


def find_env_vars():
    """Find all settings aliases and direct environment lookups in the portal package."""
    env_vars = set()
    for py_file in (ROOT / "portal").rglob("*.py"):
        content = py_file.read_text(encoding="utf-8", errors="ignore")
        env_vars.update(re.findall(r'alias=["\']([A-Z0-9_]+)["\']', content))
        env_vars.update(re.findall(r'os\.getenv\(["\']([A-Z0-9_]+)["\']', content))
        env_vars.update(re.findall(r'os\.environ\[\s*["\']([A-Z0-9_]+)["\']\s*\]', content))
    return sorted(env_vars)


def verify_against_env_file(env_path: Path) -> int:
    deployed = dotenv_values(env_path) if env_path.exists() else {}

    code_vars = set(find_env_vars())
    deployed_set = {key for key, value in deployed.items() if value not in (None, "")}
    missing_required = sorted(set(REQUIRED_IN_PRODUCTION) - deployed_set)
    defaulted = sorted(code_vars - deployed_set - set(REQUIRED_IN_PRODUCTION))
    unused_in_code = sorted(deployed_set - code_vars)

    print("=== ENV VAR VERIFICATION ===")
    print(f"Env file: {env_path} ({'found' if env_path.exists() else 'missing'})")
    print(f"Code references: {len(code_vars)} unique vars")
    print(f"Env file sets: {len(deployed_set)} vars")
    print("")
    if missing_required:
        print(f"MISSING REQUIRED ({len(missing_required)}):")
        for v in missing_required:
            print(f"  - {v}")
    else:
        print("All required vars are set.")
    print("")
    if defaulted:
        print(f"USING DEFAULTS ({len(defaulted)}):")
        for v in defaulted:
            print(f"  - {v}")
    print("")
    if unused_in_code:
        print(f"UNUSED IN CODE ({len(unused_in_code)}):")
        for v in unused_in_code:
            print(f"  - {v}")
    else:
        print("No unused vars in env file.")

    return 1 if missing_required else 0


if __name__ == "__main__":
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else ROOT / ".env"
    sys.exit(verify_against_env_file(target))
