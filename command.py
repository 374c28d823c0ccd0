"""
Runs the native AIX administration commands.
"""

import logging
import subprocess
from typing import Optional, Sequence

from exceptions import ExecutionFailure


logger = logging.getLogger(__name__)


def execute(command: Sequence[str], failonfail: bool = True, combine: bool = True,
            stdinfile: Optional[str] = None) -> str:
    """
    Run command without a shell and return its output.

    With combine, stderr is merged into the returned output. With stdinfile,
    the named file is fed to the command as standard input. A nonzero exit
    status raises ExecutionFailure unless failonfail is False.
    """
    command = [str(arg) for arg in command]
    logger.debug(f"Executing: {' '.join(command)}")

    stdin = open(stdinfile, "rb") if stdinfile else subprocess.DEVNULL
    try:
        result = subprocess.run(
            command,
            stdin=stdin,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if combine else subprocess.DEVNULL,
            universal_newlines=True,
            # lsuser prints attribute values (gecos, ...) in whatever codeset
            # they were stored in
            errors="surrogateescape",
            check=False,
        )
    except OSError as e:
        raise ExecutionFailure(f"Could not execute {command[0]}: {e}", command=command) from e
    finally:
        if stdinfile:
            stdin.close()

    output = result.stdout or ""
    if failonfail and result.returncode != 0:
        raise ExecutionFailure(
            f"Execution of '{' '.join(command)}' returned {result.returncode}: {output.strip()}",
            command=command,
            exitstatus=result.returncode,
            output=output,
        )

    return output
