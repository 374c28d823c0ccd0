#!/usr/bin/env python3
"""
AIX User and Group Sync

This script brings AIX users and groups in line with a declared state file
using the diffsync library. Only the users and groups named in the state file
are managed, and only the properties declared for them.
"""

import os
import sys
import logging
from dotenv import load_dotenv

import command
from aix_adapter import AixAdapter, build_definitions
from state_adapter import StateAdapter
from user_provider import PASSWD_FILE


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# Load environment variables
load_dotenv()


def sync_aix(execute=command.execute):
    """
    Main sync function.
    Creates, changes and deletes AIX users and groups to match the state file.
    """
    logging.getLogger().setLevel(os.getenv("SYNC_LOG_LEVEL", "INFO").upper())
    logger.info("Starting AIX user and group sync")

    dry_run = os.getenv("SYNC_DRY_RUN", "false").lower() == "true"
    if dry_run:
        logger.info("Running in DRY RUN mode - no changes will be made")

    definitions = build_definitions(execute)

    # Initialize adapters
    state_adapter = StateAdapter()
    state_adapter.definitions = definitions

    aix_adapter = AixAdapter()
    aix_adapter.execute = execute
    aix_adapter.definitions = definitions
    aix_adapter.dry_run = dry_run
    aix_adapter.ia_load_module = os.getenv("AIX_IA_LOAD_MODULE") or None
    aix_adapter.passwd_file = os.getenv("AIX_PASSWD_FILE", PASSWD_FILE)

    try:
        # Load the declared state first, it decides what is managed on AIX
        state_adapter.load(os.getenv("AIX_STATE_FILE"))
        aix_adapter.declared = state_adapter.declared

        aix_adapter.connect_aix()
        aix_adapter.load()

        # Sync AIX to match the state file using diffsync's built-in sync mechanism
        logger.info("Syncing AIX to match the declared state")
        for modelname in aix_adapter.top_level:
            logger.debug(f"State file declares {len(state_adapter.get_all(modelname))} present {modelname}(s)")
            logger.debug(f"AIX has {len(aix_adapter.get_all(modelname))} declared {modelname}(s)")

        # Use sync_from to queue changes via the model's create/update/delete methods
        aix_adapter.sync_from(state_adapter)

        # Execute the pending operations that were queued during sync
        aix_adapter.execute_pending_operations()

        logger.info("Sync completed successfully")

    except Exception as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    sync_aix()
