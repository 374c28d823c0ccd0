"""
User management for AIX with lsuser, mkuser, chuser, rmuser and chpasswd.

Notes:
- AIX users can have an expiry date with minute granularity, but the expiry
  property only carries the date.
- AIX maximum password age is in weeks, not days.
"""

import logging
import os
import re
import tempfile
from datetime import date, datetime
from typing import Any, Mapping, TextIO

from exceptions import ExecutionFailure, ValidationError
from group_provider import users_to_members
from mappings import MappingRegistry
from provider import ABSENT, AixObjectProvider, ObjectStore, ProviderDefinition


logger = logging.getLogger(__name__)

USER_COMMANDS = {
    "list": "/usr/sbin/lsuser",
    "add": "/usr/bin/mkuser",
    "modify": "/usr/bin/chuser",
    "delete": "/usr/sbin/rmuser",
    "chpasswd": "/bin/chpasswd",
}

# ASCII per the AIX files reference
PASSWD_FILE = "/etc/security/passwd"

_EXPIRES = re.compile(r"\A(\d\d)(\d\d)(\d\d)(\d\d)(\d\d)\Z")


def pgrp_to_gid(value: str, groups: Mapping[str, int]) -> int:
    """Resolve the user's primary group name to its gid."""
    gid = groups.get(value)
    if gid is None:
        raise ValueError(f"FATAL: No gid exists for the primary AIX group {value}!")
    return gid


def gid_to_pgrp(value: Any, groups: Mapping[str, int]) -> str:
    """Resolve a gid, given as a group name or a number, to a group name."""
    if isinstance(value, str):
        pgrp = value if value in groups else None
    else:
        pgrp = next((group for group, gid in groups.items() if gid == value), None)

    if pgrp is None:
        raise ValueError(f"No AIX pgrp exists with a gid of {value}!")
    return pgrp


def expires_to_expiry(value: str) -> Any:
    if value == "0":
        return ABSENT

    # expires is formatted as mmddHHMMyy
    match = _EXPIRES.match(value)
    if not match:
        logger.warning(f"Could not convert AIX expires date '{value}'")
        return ABSENT

    month, day, year = match.group(1), match.group(2), match.group(5)
    return f"20{year}-{month}-{day}"


def expiry_to_expires(value: Any) -> str:
    if value is ABSENT or value in ("0000-00-00", "absent"):
        return "0"

    if isinstance(value, date):
        return value.strftime("%m%d%H%M%y")

    for fmt in ("%Y-%m-%d %H:%M", "%Y-%m-%d"):
        try:
            return datetime.strptime(str(value), fmt).strftime("%m%d%H%M%y")
        except ValueError:
            continue

    raise ValueError(f"Invalid expiry date {value!r}: expected YYYY-MM-DD")


def groups_to_groups(value: Any) -> str:
    """
    Join the groups with commas. Whitespace would make chuser read the
    remaining groups as separate arguments, so it is rejected.
    """
    if isinstance(value, (list, tuple)):
        value = ",".join(value)

    if re.search(r"\s", value):
        raise ValueError(f"Invalid value {value}: Groups must be comma separated!")

    return value


class AixUserProvider(AixObjectProvider):
    """AIX user provider; adds the password property."""

    def __init__(self, *args, passwd_file: str = PASSWD_FILE, **kwargs):
        super().__init__(*args, **kwargs)
        self.passwd_file = passwd_file

    def parse_password(self, f: TextIO) -> Any:
        """
        Find this user's password in an open /etc/security/passwd.

        A user stanza looks like:
            <user>:
                <attribute1> = <value1>
                <attribute2> = <value2>
            (blank line)
        """
        stanza_start = re.compile(rf"\A{re.escape(self.name)}:")
        stanzas = re.split(r"^\n", f.read(), flags=re.MULTILINE)
        stanza = next((stanza for stanza in stanzas if stanza_start.match(stanza)), None)
        if stanza is None:
            return ABSENT

        match = re.search(r"password\s*=\s*(\S*)$", stanza, flags=re.MULTILINE)
        if not match:
            return ABSENT

        return match.group(1)

    @property
    def password(self) -> Any:
        try:
            with open(self.passwd_file, "r", encoding="ascii", errors="replace") as f:
                return self.parse_password(f)
        except OSError as e:
            raise self._error(
                f"Could not read the password of {self.kind} {self.name} from {self.passwd_file}", e
            ) from e

    @password.setter
    def password(self, value: str) -> None:
        """
        Set the encrypted password with chpasswd.

        chpasswd only reads "user:password" lines from standard input, so the
        password goes through a temporary file instead of the command line.
        """
        pwfile = None
        try:
            pwfile = tempfile.NamedTemporaryFile(
                mode="w", encoding="ascii", prefix=f"aix_{self.name}_pw", delete=False
            )
            pwfile.write(f"{self.name}:{value}\n")
            pwfile.close()

            # -e: the password is encrypted, -c: clear the password flags
            cmd = [self.definition.command("chpasswd")] + self.ia_module_args() + ["-e", "-c"]
            output = self.execute(cmd, failonfail=False, combine=True, stdinfile=pwfile.name)

            # chpasswd can return 1 even on success; empty output means success
            if output != "":
                raise ExecutionFailure(f"chpasswd said {output}", command=cmd, output=output)
        except UnicodeEncodeError as e:
            raise ValidationError(f"Could not set password on {self.kind}[{self.name}]: {e}") from e
        except ExecutionFailure as e:
            raise self._error(f"Could not set password on {self.kind}[{self.name}]", e) from e
        finally:
            if pwfile is not None:
                # Closing twice is a no-op; the write above may have failed
                pwfile.close()
                os.unlink(pwfile.name)

        logger.info(f"Changed password of {self.kind} {self.name}")

    def create(self) -> None:
        super().create()

        password = self.should.get("password")
        if password is not None:
            self.password = password


def user_definition(group_store: ObjectStore) -> ProviderDefinition:
    """
    Build the user definition. Primary groups are resolved through
    group_store, which lists the existing groups.
    """
    def to_pgrp(value: Any) -> str:
        return gid_to_pgrp(value, group_store.list_all())

    def to_gid(value: str) -> int:
        return pgrp_to_gid(value, group_store.list_all())

    mappings = MappingRegistry()
    mappings.mapping("gid", "pgrp", property_to_attribute=to_pgrp, attribute_to_property=to_gid)
    mappings.numeric_mapping("uid", "id")
    mappings.mapping("groups", property_to_attribute=groups_to_groups,
                     attribute_to_property=users_to_members)
    mappings.mapping("home")
    mappings.mapping("shell")
    mappings.mapping("expiry", "expires", property_to_attribute=expiry_to_expires,
                     attribute_to_property=expires_to_expiry)
    mappings.numeric_mapping("password_max_age", "maxage")
    mappings.numeric_mapping("password_min_age", "minage")
    mappings.numeric_mapping("password_warn_days", "pwdwarntime")
    mappings.mapping("comment", "gecos")

    return ProviderDefinition("user", USER_COMMANDS, mappings, provider_class=AixUserProvider)
