#!/usr/bin/env python3
"""Helper script to check and create .env file for Supabase configuration."""

from pathlib import Path
import os

ENV_TEMPLATE = """# Supabase Configuration (Required)
# Get these from: https://supabase.com/dashboard → Your Project → Settings → API
PRIVACY_SUPABASE_URL=https://your-project-id.supabase.co
PRIVACY_SUPABASE_KEY=your-service-role-key-here

# API Configuration
PRIVACY_API_PREFIX=/api

# Guide catalog
PRIVACY_GUIDE_CATALOG_FILE=./data/guides.json

# Deindexing lifecycle as a JSON array, last step = removal approved
# PRIVACY_DEINDEXING_STATUS_STEPS=["received","case_started","request_submitted","removal_approved"]

# Guide completion writes: compensating | rpc
PRIVACY_GUIDE_TOGGLE_STRATEGY=compensating
"""


def _mask(value: str) -> str:
    return value[:20] + "..." + value[-10:] if len(value) > 30 else value


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Privacy onboarding environment checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        print(f"❌ .env file NOT found at: {env_file}")
        print("Creating template .env file...")
        env_file.write_text(ENV_TEMPLATE, encoding="utf-8")
        print(f"✅ Created .env file at: {env_file}")
        print("⚠️  Please edit .env and add your Supabase credentials!")
        return

    print(f"✅ Found .env file at: {env_file}")
    for line in env_file.read_text(encoding="utf-8").splitlines():
        if "PRIVACY_SUPABASE_KEY" in line and "=" in line:
            name, value = line.split("=", 1)
            print(f"{name}={_mask(value.strip())}")
        else:
            print(line)
    print()

    for name in ("PRIVACY_SUPABASE_URL", "PRIVACY_SUPABASE_KEY"):
        value = os.getenv(name)
        if value:
            print(f"✅ {name} (from environment): {_mask(value)}")
        else:
            print(f"❌ {name} not found in environment")
    print()

    try:
        import sys
        sys.path.insert(0, str(project_root / "src"))
        from privacy_app.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return

    if settings.supabase_url and settings.supabase_key:
        print("✅ SUCCESS: Supabase is configured!")
    else:
        print("❌ ERROR: Supabase is NOT configured")
        print("Make sure variables start with the PRIVACY_ prefix and restart the backend.")
    catalog = settings.guide_catalog_file
    print(f"{'✅' if catalog.exists() else '⚠️ '} Guide catalog: {catalog}")
    print(f"Deindexing steps: {', '.join(settings.deindexing_status_steps)}")


if __name__ == "__main__":
    main()
