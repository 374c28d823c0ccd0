#!/usr/bin/env python3
"""
Checks the sync configuration and the declared state without touching AIX
"""

import os
import sys
from dotenv import load_dotenv

from aix_adapter import build_definitions
from exceptions import ValidationError
from state_adapter import StateAdapter
from user_provider import PASSWD_FILE

# Load environment variables
load_dotenv()


def validate_config():
    """Validate that all required configuration is set"""
    required_vars = [
        'AIX_STATE_FILE',
    ]

    missing = []
    for var in required_vars:
        if not os.getenv(var):
            missing.append(var)

    if missing:
        print("❌ Missing required configuration variables:")
        for var in missing:
            print(f"   - {var}")
        return False

    print("✅ All required configuration variables are set")
    return True


def validate_state():
    """Load the state file the same way the sync does; no command is run"""
    adapter = StateAdapter()
    adapter.definitions = build_definitions()

    try:
        adapter.load(os.getenv("AIX_STATE_FILE"))
    except (OSError, ValidationError) as e:
        print(f"❌ Invalid state file: {e}")
        return False

    for modelname, objects in adapter.declared.items():
        present = len(adapter.get_all(modelname))
        print(f"✅ {present} present and {len(objects) - present} absent {modelname}(s) declared")
    return True


def display_config():
    """Display current configuration"""
    print("\n📋 Current Configuration:")
    print(f"   State File: {os.getenv('AIX_STATE_FILE')}")
    print(f"   IA Load Module: {os.getenv('AIX_IA_LOAD_MODULE') or '(none)'}")
    print(f"   Password File: {os.getenv('AIX_PASSWD_FILE', PASSWD_FILE)}")
    print(f"   Dry Run Mode: {os.getenv('SYNC_DRY_RUN', 'false')}")
    print(f"   Log Level: {os.getenv('SYNC_LOG_LEVEL', 'INFO')}")
    print()


if __name__ == "__main__":
    print("🔍 AIX User and Group Sync - Configuration Validator\n")

    if validate_config() and validate_state():
        display_config()
        print("✅ Configuration is valid. You can now run:")
        print("   python sync.py")
    else:
        print("\n❌ Please update your .env file or the state file")
        print("   See .env.example for reference")
        sys.exit(1)
